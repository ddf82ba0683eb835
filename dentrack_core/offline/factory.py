# =============================================================================
# dentrack_core/offline/factory.py
# Explicit Wiring of the Sync Stack
# =============================================================================
"""
Builds storage, cache, Supabase client, session manager and coordinator in
one place. Nothing here is cached at module level: each call returns a new,
independent stack, and tests build their own from fakes.
"""

from __future__ import annotations
from typing import Optional
import logging

from supabase import AsyncClient, acreate_client

from dentrack_core.auth import SessionManager, SupabaseAuthProvider
from dentrack_core.config import AppSettings, load_settings
from dentrack_core.logging import setup_logging
from dentrack_core.offline.local_cache import LocalCache
from dentrack_core.offline.remote_store import RemoteStore
from dentrack_core.offline.storage import SqliteKeyValueStorage
from dentrack_core.offline.sync_coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


async def create_supabase_client(settings: AppSettings) -> Optional[AsyncClient]:
    """Async Supabase client, or None when credentials are absent or unusable."""
    if settings.supabase is None:
        return None
    try:
        return await acreate_client(settings.supabase.url, settings.supabase.key)
    except Exception as e:
        logger.warning(f"Could not create Supabase client, running guest-only: {e}")
        return None


async def create_sync_coordinator(
    settings: Optional[AppSettings] = None,
    initialize: bool = True,
    configure_logging: bool = False,
) -> SyncCoordinator:
    """
    Wire and (optionally) initialize a ``SyncCoordinator``.

    Args:
        settings: Loaded with ``load_settings()`` when None
        initialize: Load the cache and restore any stored session
        configure_logging: Apply the settings' log level and file logging
        (app entry points pass True; tests and embedding hosts keep their own)

    Usage:
        coordinator = await create_sync_coordinator()
        coordinator.subscribe(render)
    """
    settings = settings or load_settings()
    if configure_logging:
        setup_logging(settings.log_level, log_to_file=settings.log_to_file)

    storage = SqliteKeyValueStorage(settings.cache_path)
    cache = LocalCache(storage)

    client = await create_supabase_client(settings)
    remote = None
    session_manager = None
    if client is not None:
        remote = RemoteStore(client)
        session_manager = SessionManager(
            SupabaseAuthProvider(client, oauth_provider=settings.supabase.oauth_provider),
            redirect_url=settings.supabase.redirect_url,
        )

    coordinator = SyncCoordinator(cache, remote=remote, session_manager=session_manager)
    logger.info(
        f"Sync stack ready (cache={settings.cache_path}, "
        f"cloud={'on' if remote is not None else 'off'})"
    )

    if initialize:
        await coordinator.initialize()
    return coordinator
