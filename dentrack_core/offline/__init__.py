# =============================================================================
# dentrack_core/offline/__init__.py
# Local-First Sync Layer for DentTrack
# =============================================================================
"""
Local-First Sync Layer

The device copy is the source of truth for the running session. A signed-in
user's writes go to Supabase first and to the local cache always; signing in
replaces the local copy with the account's data.

Architecture:
------------
┌─────────────────────────────────────────────────────────────────┐
│                      LOCAL-FIRST SYNC LAYER                      │
├─────────────────────────────────────────────────────────────────┤
│                                                                  │
│   ┌──────────────────────────────────────────────────────────┐  │
│   │                    SyncCoordinator                        │  │
│   │     (Single writer - UI issues all mutations here)        │  │
│   └──────────────────────────────────────────────────────────┘  │
│              │                  │                   ▲            │
│              ▼                  ▼                   │ events     │
│   ┌──────────────────┐  ┌──────────────────┐  ┌─────────────┐   │
│   │   RemoteStore    │  │    LocalCache    │  │  Session    │   │
│   │ (1st, if signed  │  │ (always, after   │  │  Manager    │   │
│   │       in)        │  │    remote)       │  │             │   │
│   └──────────────────┘  └──────────────────┘  └─────────────┘   │
│              │                  │                                │
│              ▼                  ▼                                │
│         ┌────────┐        ┌──────────┐                           │
│         │Supabase│        │  SQLite  │                           │
│         │(Cloud) │        │ (Local)  │                           │
│         └────────┘        └──────────┘                           │
└─────────────────────────────────────────────────────────────────┘

Usage:
------
from dentrack_core.offline import create_sync_coordinator

coordinator = await create_sync_coordinator()
await coordinator.add_or_edit_treatment(draft)

print(coordinator.has_session)   # True/False
print(coordinator.is_syncing)    # remote call in flight
"""

from dentrack_core.offline.storage import (
    KeyValueStorage,
    InMemoryStorage,
    SqliteKeyValueStorage,
)

from dentrack_core.offline.local_cache import LocalCache

from dentrack_core.offline.remote_store import RemoteStore

from dentrack_core.offline.sync_coordinator import (
    Collections,
    SyncCoordinator,
    SyncState,
)

from dentrack_core.offline.factory import (
    create_supabase_client,
    create_sync_coordinator,
)

__all__ = [
    # Storage
    "KeyValueStorage",
    "InMemoryStorage",
    "SqliteKeyValueStorage",
    # Cache
    "LocalCache",
    # Remote
    "RemoteStore",
    # Coordinator (Main API)
    "Collections",
    "SyncCoordinator",
    "SyncState",
    # Wiring
    "create_supabase_client",
    "create_sync_coordinator",
]
