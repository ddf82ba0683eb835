# =============================================================================
# dentrack_core/offline/local_cache.py
# Local Cache of Treatments, Dentists and Tooth Status
# =============================================================================
"""
LocalCache - durable, always-available copy of the three collections.

One device-local copy is kept per collection (not per user). Values are
stored as JSON under fixed keys. A corrupted entry is logged and read back
as the empty default; it never raises to the caller.
"""

from __future__ import annotations
import json
from typing import Any, Callable, Dict, List, Optional, TypeVar
import logging

from dentrack_core.errors import CacheCorruptionError
from dentrack_core.models import (
    Dentist,
    TeethStatus,
    ToothStatus,
    Treatment,
    UserProfile,
    is_valid_tooth_id,
    teeth_status_to_dict,
)
from dentrack_core.offline.storage import KeyValueStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalCache:
    """
    JSON serialization of the domain collections over a key-value storage.

    Usage:
        cache = LocalCache(SqliteKeyValueStorage("local_data/dentrack.db"))
        cache.set_treatments(treatments)
        cache.get_treatments()  # [] when absent or corrupted
    """

    TREATMENTS_KEY = "dentrack_treatments"
    DENTISTS_KEY = "dentrack_dentists"
    TEETH_STATUS_KEY = "dentrack_teeth_status"
    PROFILE_KEY = "dentrack_profile"
    UNSYNCED_KEY = "dentrack_unsynced"

    ALL_KEYS = (TREATMENTS_KEY, DENTISTS_KEY, TEETH_STATUS_KEY, PROFILE_KEY, UNSYNCED_KEY)

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage

    # =========================================================================
    # LOW-LEVEL READ / WRITE
    # =========================================================================

    def _read(self, key: str, decode: Callable[[Any], T], default: Callable[[], T]) -> T:
        """Read and decode a key, falling back to ``default()`` on any problem."""
        try:
            raw = self.storage.get_item(key)
        except Exception as e:
            logger.warning(f"Error reading cache key {key}: {e}")
            return default()

        if raw is None:
            return default()

        try:
            return decode(json.loads(raw))
        except (ValueError, TypeError, KeyError, AttributeError, CacheCorruptionError) as e:
            logger.warning(f"Discarding corrupted cache entry {key}: {e}")
            return default()

    def _write(self, key: str, payload: Any) -> None:
        self.storage.set_item(key, json.dumps(payload))

    # =========================================================================
    # TREATMENTS
    # =========================================================================

    def get_treatments(self) -> List[Treatment]:
        """Stored treatments, or [] if absent or corrupted."""
        return self._read(self.TREATMENTS_KEY, _decode_treatments, list)

    def set_treatments(self, treatments: List[Treatment]) -> None:
        self._write(self.TREATMENTS_KEY, [t.to_dict() for t in treatments])

    # =========================================================================
    # DENTISTS
    # =========================================================================

    def get_dentists(self) -> List[Dentist]:
        """Stored dentists, or [] if absent or corrupted."""
        return self._read(self.DENTISTS_KEY, _decode_dentists, list)

    def set_dentists(self, dentists: List[Dentist]) -> None:
        self._write(self.DENTISTS_KEY, [d.to_dict() for d in dentists])

    # =========================================================================
    # TOOTH STATUS
    # =========================================================================

    def get_teeth_status(self) -> TeethStatus:
        """Stored tooth->status mapping exactly as written, or {} if absent or corrupted."""
        return self._read(self.TEETH_STATUS_KEY, _decode_teeth_status, dict)

    def set_teeth_status(self, teeth_status: TeethStatus) -> None:
        self._write(self.TEETH_STATUS_KEY, teeth_status_to_dict(teeth_status))

    # =========================================================================
    # PROFILE & SYNC BOOKKEEPING
    # =========================================================================

    def get_profile(self) -> UserProfile:
        return self._read(self.PROFILE_KEY, _decode_profile, UserProfile)

    def set_profile(self, profile: UserProfile) -> None:
        self._write(self.PROFILE_KEY, profile.to_dict())

    def has_unsynced_changes(self) -> bool:
        """True when local edits were made that never reached the remote store."""
        return self._read(self.UNSYNCED_KEY, bool, lambda: False)

    def mark_unsynced(self) -> None:
        self._write(self.UNSYNCED_KEY, True)

    def clear_unsynced(self) -> None:
        self.storage.remove_item(self.UNSYNCED_KEY)

    def clear(self) -> None:
        """Remove every cached value."""
        for key in self.ALL_KEYS:
            self.storage.remove_item(key)
        logger.info("Local cache cleared")


# =============================================================================
# DECODERS
# =============================================================================

def _expect(payload: Any, kind: type, key: str) -> Any:
    if not isinstance(payload, kind):
        raise CacheCorruptionError(
            f"Expected {kind.__name__}, found {type(payload).__name__}", key=key
        )
    return payload


def _decode_treatments(payload: Any) -> List[Treatment]:
    return [Treatment.from_dict(item) for item in _expect(payload, list, LocalCache.TREATMENTS_KEY)]


def _decode_dentists(payload: Any) -> List[Dentist]:
    return [Dentist.from_dict(item) for item in _expect(payload, list, LocalCache.DENTISTS_KEY)]


def _decode_teeth_status(payload: Any) -> TeethStatus:
    result: Dict[int, ToothStatus] = {}
    for raw_id, raw_status in _expect(payload, dict, LocalCache.TEETH_STATUS_KEY).items():
        tooth_id = int(raw_id)
        if not is_valid_tooth_id(tooth_id):
            raise CacheCorruptionError(f"Unknown tooth id {raw_id!r}", key=LocalCache.TEETH_STATUS_KEY)
        result[tooth_id] = ToothStatus(raw_status)
    return result


def _decode_profile(payload: Any) -> UserProfile:
    return UserProfile.from_dict(_expect(payload, dict, LocalCache.PROFILE_KEY))
