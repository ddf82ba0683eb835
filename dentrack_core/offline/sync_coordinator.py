# =============================================================================
# dentrack_core/offline/sync_coordinator.py
# Local-First Sync Coordinator
# =============================================================================
"""
SyncCoordinator - the only writer of the in-memory collections and the cache.

Features:
- Guest mode: every mutation goes to the local cache only
- Signed in: remote write first (awaited), then the local cache, always
- Remote failures never abort a mutation; new records get a client id
- Session-start reconciliation: one-way overwrite of local state from the
  account, all-or-nothing across the three collections
- Change notifications with a fresh ``Collections`` snapshot
- Error callbacks for attachable error banners
"""

from __future__ import annotations
import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from dentrack_core.errors import (
    CacheWriteError,
    DentTrackError,
    RemoteStoreError,
    SignInError,
    UnsyncedDataOverwrittenError,
    handle_error,
)
from dentrack_core.models import (
    Dentist,
    DentistDraft,
    Session,
    SessionEvent,
    TeethStatus,
    ToothStatus,
    Treatment,
    TreatmentDraft,
    UserProfile,
    is_valid_tooth_id,
    normalize_teeth_status,
    sort_treatments,
)
from dentrack_core.offline.local_cache import LocalCache
from dentrack_core.services import ServiceResult

logger = logging.getLogger(__name__)


@dataclass
class Collections:
    """Snapshot of the three synchronized collections."""
    treatments: List[Treatment] = field(default_factory=list)
    dentists: List[Dentist] = field(default_factory=list)
    teeth_status: TeethStatus = field(default_factory=dict)


@dataclass
class SyncState:
    """Current sync state."""
    in_flight: int = 0
    degraded: bool = False
    last_sync: Optional[datetime] = None
    last_error: Optional[str] = None

    @property
    def is_syncing(self) -> bool:
        return self.in_flight > 0


def _new_client_id() -> str:
    return str(uuid.uuid4())


class SyncCoordinator:
    """
    Decides, per operation, which store to touch and in what order.

    Usage:
        coordinator = SyncCoordinator(cache, remote, session_manager)
        await coordinator.initialize()
        coordinator.subscribe(lambda c: render(c.treatments))
        await coordinator.add_or_edit_treatment(draft)
    """

    def __init__(
        self,
        cache: LocalCache,
        remote=None,
        session_manager=None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Args:
            cache: Local cache (always written)
            remote: RemoteStore, or None when cloud sync is not configured
            session_manager: SessionManager, or None for a guest-only install
            id_factory: Client-side id generator for records created offline
        """
        self.cache = cache
        self.remote = remote
        self.session_manager = session_manager
        self._new_id = id_factory or _new_client_id

        self._treatments: List[Treatment] = []
        self._dentists: List[Dentist] = []
        self._teeth_status: TeethStatus = normalize_teeth_status(None)
        self._profile = UserProfile()

        self._state = SyncState()
        self._subscribers: List[Callable[[Collections], None]] = []
        self._error_callbacks: List[Callable[[DentTrackError], None]] = []
        self._initialized = False

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def collections(self) -> Collections:
        """Copy of the current collections."""
        return Collections(
            treatments=list(self._treatments),
            dentists=list(self._dentists),
            teeth_status=dict(self._teeth_status),
        )

    @property
    def profile(self) -> UserProfile:
        return self._profile

    @property
    def sync_state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        """True while at least one remote call is in flight."""
        return self._state.is_syncing

    @property
    def has_session(self) -> bool:
        return self.session_manager is not None and self.session_manager.is_authenticated

    @property
    def user_id(self) -> Optional[str]:
        if self.session_manager is None:
            return None
        return self.session_manager.user_id

    @property
    def is_remote_configured(self) -> bool:
        return self.remote is not None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def initialize(self) -> Collections:
        """
        Load the cache, attach to the session manager and reconcile if a
        session is (or can be silently) restored.
        """
        if self._initialized:
            return self.collections
        self._initialized = True

        self._load_from_cache()
        logger.info(
            f"Loaded {len(self._treatments)} treatments and "
            f"{len(self._dentists)} dentists from local cache"
        )

        if self.session_manager is not None:
            already_signed_in = self.session_manager.is_authenticated
            self.session_manager.register_listener(self._on_session_event)
            if already_signed_in:
                await self.reconcile()
            else:
                # A restored session emits SIGNED_IN, which reconciles
                await self.session_manager.initialize()

        self._notify()
        return self.collections

    def _load_from_cache(self) -> None:
        self._treatments = sort_treatments(self.cache.get_treatments())
        self._dentists = self.cache.get_dentists()
        self._teeth_status = normalize_teeth_status(self.cache.get_teeth_status())
        self._profile = self.cache.get_profile()

    async def _on_session_event(self, event: SessionEvent, session: Session) -> None:
        if event is SessionEvent.SIGNED_IN:
            await self.reconcile(session.user_id)
        elif event is SessionEvent.SIGNED_OUT:
            # Collections and cache stay as they are; they become guest data
            logger.info("Signed out; continuing in guest mode with local data")
            self._state.degraded = False
            self._notify()

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    async def reconcile(self, user_id: Optional[str] = None) -> bool:
        """
        Replace local state with the account's data.

        All three fetches must succeed; otherwise local state is reloaded
        from the cache unchanged and the coordinator runs degraded.

        Returns:
            True if the account data was adopted
        """
        user_id = user_id or self.user_id
        if self.remote is None or user_id is None:
            logger.debug("Reconciliation skipped: no remote store or no session")
            return False

        started = datetime.now()
        results = await self._remote_gather(
            self.remote.fetch_treatments(user_id),
            self.remote.fetch_dentists(user_id),
            self.remote.fetch_teeth_status(user_id),
        )

        if self.user_id != user_id:
            logger.info("Session changed during reconciliation; fetched data discarded")
            return False

        failed = [r for r in results if not r]
        if failed:
            self._load_from_cache()
            self._state.degraded = True
            first = failed[0]
            self._report(RemoteStoreError(
                f"Could not load account data, using local data: {first.error}",
                operation="reconcile",
                code=first.error_code if str(first.error_code).startswith("REMOTE_") else None,
            ))
            self._notify()
            return False

        if self.cache.has_unsynced_changes():
            self._report(UnsyncedDataOverwrittenError(
                "Local changes made without cloud sync were replaced by account data"
            ))

        treatments, dentists, teeth_status = (r.data for r in results)
        self._treatments = sort_treatments(treatments)
        self._dentists = list(dentists)
        self._teeth_status = normalize_teeth_status(teeth_status)

        self._persist(self.cache.set_treatments, self._treatments, key=LocalCache.TREATMENTS_KEY)
        self._persist(self.cache.set_dentists, self._dentists, key=LocalCache.DENTISTS_KEY)
        self._persist(self.cache.set_teeth_status, self._teeth_status, key=LocalCache.TEETH_STATUS_KEY)
        self._persist(self.cache.clear_unsynced, key=LocalCache.UNSYNCED_KEY)

        self._state.degraded = False
        self._state.last_sync = datetime.now()
        elapsed = (self._state.last_sync - started).total_seconds()
        logger.info(
            f"Reconciled {len(self._treatments)} treatments, {len(self._dentists)} dentists "
            f"from account in {elapsed:.2f}s"
        )
        self._notify()
        return True

    # =========================================================================
    # TREATMENTS
    # =========================================================================

    async def add_or_edit_treatment(
        self,
        draft: TreatmentDraft,
        existing_id: Optional[str] = None,
    ) -> Treatment:
        """
        Save a treatment and apply its tooth-status side effect.

        Never raises for remote failures; the local write always happens.
        """
        record_id = existing_id
        user_id = self._remote_user_id()

        if user_id is not None:
            result = await self._remote_call(self.remote.save_treatment(user_id, draft, existing_id))
            if not result:
                self._remote_failed("Saving treatment", result)
            elif existing_id is None:
                record_id = self._adopt_server_id(user_id, result.data, "treatment")
        else:
            self._mark_unsynced()

        if record_id is None:
            record_id = self._new_id()

        treatment = draft.to_treatment(record_id)
        index = next((i for i, t in enumerate(self._treatments) if t.id == record_id), None)
        if index is None:
            if existing_id is not None:
                logger.warning(f"Treatment {existing_id} not found locally; storing it as new")
            self._treatments.append(treatment)
        else:
            self._treatments[index] = treatment
        self._treatments = sort_treatments(self._treatments)
        self._persist(self.cache.set_treatments, self._treatments, key=LocalCache.TREATMENTS_KEY)

        effect = treatment.status_effect
        if effect is not None:
            await self._write_tooth_status(treatment.tooth_id, effect)

        self._notify()
        return treatment

    async def delete_treatment(self, treatment_id: str) -> bool:
        """Remove a treatment; returns False if it is not known locally."""
        if not any(t.id == treatment_id for t in self._treatments):
            logger.warning(f"Delete requested for unknown treatment {treatment_id}")
            return False

        user_id = self._remote_user_id()
        if user_id is not None:
            result = await self._remote_call(self.remote.delete_treatment(user_id, treatment_id))
            if not result:
                self._remote_failed("Deleting treatment", result)
        else:
            self._mark_unsynced()

        self._treatments = [t for t in self._treatments if t.id != treatment_id]
        self._persist(self.cache.set_treatments, self._treatments, key=LocalCache.TREATMENTS_KEY)
        self._notify()
        return True

    # =========================================================================
    # DENTISTS
    # =========================================================================

    async def add_dentist(self, draft: DentistDraft) -> Dentist:
        record_id = None
        user_id = self._remote_user_id()

        if user_id is not None:
            result = await self._remote_call(self.remote.save_dentist(user_id, draft))
            if result:
                record_id = self._adopt_server_id(user_id, result.data, "dentist")
            else:
                self._remote_failed("Saving dentist", result)
        else:
            self._mark_unsynced()

        dentist = draft.to_dentist(record_id or self._new_id())
        self._dentists.append(dentist)
        self._persist(self.cache.set_dentists, self._dentists, key=LocalCache.DENTISTS_KEY)
        self._notify()
        return dentist

    # =========================================================================
    # TOOTH STATUS & PROFILE
    # =========================================================================

    async def set_tooth_status(self, tooth_id: int, status: ToothStatus) -> TeethStatus:
        """Set one tooth's status directly (e.g. flag it as needing attention)."""
        if not is_valid_tooth_id(tooth_id):
            raise ValueError(f"Not an FDI tooth number: {tooth_id!r}")
        await self._write_tooth_status(tooth_id, ToothStatus(status))
        self._notify()
        return dict(self._teeth_status)

    async def _write_tooth_status(self, tooth_id: int, status: ToothStatus) -> None:
        user_id = self._remote_user_id()
        if user_id is not None:
            result = await self._remote_call(self.remote.save_tooth_status(user_id, tooth_id, status))
            if not result:
                self._remote_failed(f"Saving status of tooth {tooth_id}", result)
        else:
            self._mark_unsynced()

        self._teeth_status[tooth_id] = status
        self._persist(self.cache.set_teeth_status, self._teeth_status, key=LocalCache.TEETH_STATUS_KEY)

    def update_profile(self, profile: UserProfile) -> UserProfile:
        """Profile details are kept on the device only."""
        self._profile = profile
        self._persist(self.cache.set_profile, profile, key=LocalCache.PROFILE_KEY)
        self._notify()
        return profile

    # =========================================================================
    # SESSION DELEGATION
    # =========================================================================

    async def sign_in(self) -> str:
        """Start sign-in; returns the URL to open."""
        if self.session_manager is None:
            raise SignInError("Cloud sync is not configured", reason="not_configured", recoverable=False)
        return await self.session_manager.sign_in()

    async def complete_sign_in(self, callback_url: str) -> bool:
        """Feed the redirect / deep-link URL back; reconciliation follows on success."""
        if self.session_manager is None:
            raise SignInError("Cloud sync is not configured", reason="not_configured", recoverable=False)
        return await self.session_manager.handle_callback(callback_url)

    async def wait_for_callback(self, timeout: float = 300.0) -> Session:
        """Wait for the redirect; a timeout returns to guest mode and raises ``SignInError``."""
        if self.session_manager is None:
            raise SignInError("Cloud sync is not configured", reason="not_configured", recoverable=False)
        return await self.session_manager.wait_for_callback(timeout)

    async def cancel_sign_in(self) -> None:
        """Abandon a sign-in whose browser window was closed."""
        if self.session_manager is None:
            return
        await self.session_manager.cancel_sign_in()

    async def sign_out(self) -> None:
        """Clear the session only; collections and cache are left untouched."""
        if self.session_manager is None:
            return
        await self.session_manager.sign_out()

    # =========================================================================
    # REMOTE HELPERS
    # =========================================================================

    def _remote_user_id(self) -> Optional[str]:
        """User id to write through to, or None when working locally only."""
        if self.remote is None:
            return None
        return self.user_id

    async def _remote_call(self, call: Awaitable[ServiceResult]) -> ServiceResult:
        self._state.in_flight += 1
        try:
            return await call
        except Exception as e:
            # RemoteStore reports through ServiceResult; this catches stand-ins that raise
            logger.warning(f"Remote call raised instead of returning a result: {e}")
            return ServiceResult.from_exception(e)
        finally:
            self._state.in_flight -= 1

    async def _remote_gather(self, *calls: Awaitable[ServiceResult]) -> List[ServiceResult]:
        return list(await asyncio.gather(*(self._remote_call(c) for c in calls)))

    def _adopt_server_id(self, user_id: str, server_id: Any, kind: str) -> Optional[str]:
        """Server id, unless the session that issued the insert has ended."""
        if self.user_id != user_id:
            logger.info(
                f"Session ended while inserting {kind}; server id {server_id} not adopted"
            )
            return None
        return str(server_id) if server_id is not None else None

    def _remote_failed(self, operation: str, result: ServiceResult) -> None:
        self._mark_unsynced()
        code = result.error_code if str(result.error_code).startswith("REMOTE_") else None
        self._report(RemoteStoreError(
            f"{operation} failed, kept locally: {result.error}",
            operation=operation,
            code=code,
        ))

    # =========================================================================
    # LOCAL HELPERS
    # =========================================================================

    def _persist(self, write: Callable[..., None], *args, key: str) -> None:
        try:
            write(*args)
        except Exception as e:
            self._report(CacheWriteError(f"Could not write local cache: {e}", key=key))

    def _mark_unsynced(self) -> None:
        self._persist(self.cache.mark_unsynced, key=LocalCache.UNSYNCED_KEY)

    # =========================================================================
    # CALLBACKS
    # =========================================================================

    def subscribe(self, callback: Callable[[Collections], None]) -> None:
        """Register a callback invoked with a snapshot after every change."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Collections], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def register_error_callback(self, callback: Callable[[DentTrackError], None]) -> None:
        """Register a callback for non-fatal sync errors."""
        if callback not in self._error_callbacks:
            self._error_callbacks.append(callback)

    def unregister_error_callback(self, callback: Callable[[DentTrackError], None]) -> None:
        if callback in self._error_callbacks:
            self._error_callbacks.remove(callback)

    def _notify(self) -> None:
        snapshot = self.collections
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Error in collections callback: {e}")

    def _report(self, error: DentTrackError) -> None:
        self._state.last_error = error.message
        handle_error(error)
        for callback in list(self._error_callbacks):
            try:
                callback(error)
            except Exception as e:
                logger.error(f"Error in error callback: {e}")

    def get_status(self) -> Dict[str, Any]:
        """Summary for status displays."""
        return {
            "has_session": self.has_session,
            "user_id": self.user_id,
            "remote_configured": self.is_remote_configured,
            "is_syncing": self.is_syncing,
            "degraded": self._state.degraded,
            "last_sync": self._state.last_sync.isoformat() if self._state.last_sync else None,
            "last_error": self._state.last_error,
            "unsynced_changes": self.cache.has_unsynced_changes(),
            "treatments": len(self._treatments),
            "dentists": len(self._dentists),
        }
