# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import asyncio
import itertools
from datetime import date
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from dentrack_core.auth import AuthUser, SessionManager
from dentrack_core.models import (
    Dentist,
    DentistDraft,
    ToothStatus,
    Treatment,
    TreatmentDraft,
    TreatmentType,
    normalize_teeth_status,
)
from dentrack_core.offline import InMemoryStorage, LocalCache, SyncCoordinator
from dentrack_core.services import ServiceResult


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def make_draft():
    """Build a TreatmentDraft with sensible defaults"""
    def _make(type=TreatmentType.CHECKUP, date=date(2024, 1, 1), tooth_id=None, **kwargs):
        return TreatmentDraft(type=type, date=date, tooth_id=tooth_id, **kwargs)
    return _make


@pytest.fixture
def sample_treatments():
    """Three treatments, most recent first"""
    return [
        Treatment(
            id="t-3",
            tooth_id=36,
            type=TreatmentType.CROWN,
            date=date(2024, 5, 2),
            notes="Zirconia",
            cost=900.0,
            currency="EUR",
            warranty_until=date(2029, 5, 2),
            dentist_id="d-1",
        ),
        Treatment(id="t-2", tooth_id=None, type=TreatmentType.HYGIENE, date=date(2024, 3, 10), cost=80.0),
        Treatment(id="t-1", tooth_id=16, type=TreatmentType.EXTRACTION, date=date(2023, 11, 20)),
    ]


@pytest.fixture
def sample_dentists():
    return [
        Dentist(id="d-1", name="Dr. Olena Kovalenko", clinic_name="Smile Clinic"),
        Dentist(id="d-2", name="Dr. Mark Reyes"),
    ]


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeRemoteStore:
    """
    In-memory stand-in for RemoteStore with switchable failures.

    ``failing`` holds operation names (e.g. "fetch_dentists") that return a
    REMOTE_NETWORK failure; ``fail_all`` fails every call.
    """

    def __init__(self):
        self.treatments: Dict[str, Dict[str, Treatment]] = {}
        self.dentists: Dict[str, Dict[str, Dentist]] = {}
        self.teeth: Dict[str, Dict[int, ToothStatus]] = {}
        self.failing = set()
        self.fail_all = False
        self.calls: List[tuple] = []
        self.insert_gate: Optional[asyncio.Event] = None
        self.fetch_gate: Optional[asyncio.Event] = None
        self._ids = itertools.count(1)

    def _failed(self, operation: str, default=None) -> Optional[ServiceResult]:
        if self.fail_all or operation in self.failing:
            return ServiceResult.fail("network unreachable", error_code="REMOTE_NETWORK", data=default)
        return None

    async def fetch_treatments(self, user_id):
        self.calls.append(("fetch_treatments", user_id))
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        failure = self._failed("fetch_treatments", [])
        if failure is not None:
            return failure
        rows = sorted(self.treatments.get(user_id, {}).values(), key=lambda t: t.date, reverse=True)
        return ServiceResult.ok(rows)

    async def save_treatment(self, user_id, draft, existing_id=None):
        self.calls.append(("save_treatment", user_id, existing_id))
        if existing_id is None and self.insert_gate is not None:
            await self.insert_gate.wait()
        failure = self._failed("save_treatment")
        if failure is not None:
            return failure
        record_id = existing_id or f"srv-{next(self._ids)}"
        self.treatments.setdefault(user_id, {})[record_id] = draft.to_treatment(record_id)
        return ServiceResult.ok(record_id)

    async def delete_treatment(self, user_id, treatment_id):
        self.calls.append(("delete_treatment", user_id, treatment_id))
        failure = self._failed("delete_treatment")
        if failure is not None:
            return failure
        self.treatments.get(user_id, {}).pop(treatment_id, None)
        return ServiceResult.ok(True)

    async def fetch_dentists(self, user_id):
        self.calls.append(("fetch_dentists", user_id))
        failure = self._failed("fetch_dentists", [])
        if failure is not None:
            return failure
        return ServiceResult.ok(sorted(self.dentists.get(user_id, {}).values(), key=lambda d: d.name))

    async def save_dentist(self, user_id, draft):
        self.calls.append(("save_dentist", user_id))
        failure = self._failed("save_dentist")
        if failure is not None:
            return failure
        record_id = f"srv-{next(self._ids)}"
        self.dentists.setdefault(user_id, {})[record_id] = draft.to_dentist(record_id)
        return ServiceResult.ok(record_id)

    async def fetch_teeth_status(self, user_id):
        self.calls.append(("fetch_teeth_status", user_id))
        failure = self._failed("fetch_teeth_status", {})
        if failure is not None:
            return failure
        return ServiceResult.ok(normalize_teeth_status(self.teeth.get(user_id, {})))

    async def save_tooth_status(self, user_id, tooth_id, status):
        self.calls.append(("save_tooth_status", user_id, tooth_id))
        failure = self._failed("save_tooth_status")
        if failure is not None:
            return failure
        self.teeth.setdefault(user_id, {})[tooth_id] = ToothStatus(status)
        return ServiceResult.ok(True)

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]


class FakeAuthProvider:
    """Scriptable AuthProvider"""

    def __init__(self, user: Optional[AuthUser] = None):
        self.restored_user = None
        self.user = user or AuthUser(user_id="user-1", email="patient@example.com")
        self.fail_restore = False
        self.fail_start = False
        self.fail_complete = False
        self.fail_sign_out = False
        self.complete_calls = 0
        self.sign_out_calls = 0
        self.last_redirect = None

    async def restore_session(self):
        if self.fail_restore:
            raise RuntimeError("refresh token expired")
        return self.restored_user

    async def start_oauth(self, redirect_to):
        if self.fail_start:
            raise RuntimeError("provider disabled")
        self.last_redirect = redirect_to
        return f"https://auth.example.com/authorize?provider=google&redirect_to={redirect_to}"

    async def complete_oauth(self, access_token, refresh_token):
        self.complete_calls += 1
        if self.fail_complete:
            raise RuntimeError("invalid JWT")
        return self.user

    async def exchange_code(self, auth_code):
        self.complete_calls += 1
        if self.fail_complete:
            raise RuntimeError("invalid code")
        return self.user

    async def sign_out(self):
        self.sign_out_calls += 1
        if self.fail_sign_out:
            raise RuntimeError("network unreachable")


CALLBACK_URL = "com.denttrack.app://auth-callback#access_token=at-123&refresh_token=rt-456&token_type=bearer"


# =============================================================================
# WIRING FIXTURES
# =============================================================================

@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def cache(storage):
    return LocalCache(storage)


@pytest.fixture
def fake_remote():
    return FakeRemoteStore()


@pytest.fixture
def fake_auth():
    return FakeAuthProvider()


@pytest.fixture
def session_manager(fake_auth):
    return SessionManager(fake_auth, redirect_url="com.denttrack.app://auth-callback")


@pytest.fixture
def id_factory():
    """Deterministic client ids: local-1, local-2, ..."""
    counter = itertools.count(1)
    return lambda: f"local-{next(counter)}"


@pytest.fixture
def guest_coordinator(cache, id_factory):
    """Coordinator with no cloud configuration at all"""
    return SyncCoordinator(cache, id_factory=id_factory)


@pytest.fixture
def coordinator(cache, fake_remote, session_manager, id_factory):
    """Coordinator with cloud sync configured (not yet signed in)"""
    return SyncCoordinator(cache, remote=fake_remote, session_manager=session_manager, id_factory=id_factory)


@pytest.fixture
def callback_url():
    return CALLBACK_URL


@pytest.fixture
def dentist_draft():
    return DentistDraft(name="  Dr. Olena Kovalenko ", clinic_name="Smile Clinic")


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_streamlit(monkeypatch):
    """Mock Streamlit as seen by the error handlers and settings loader"""
    mock_st = MagicMock()
    mock_st.session_state = {}
    mock_st.secrets = {}

    monkeypatch.setattr("dentrack_core.errors.handlers.st", mock_st)
    monkeypatch.setattr("dentrack_core.config.settings.st", mock_st)
    return mock_st


@pytest.fixture
def mock_supabase():
    """
    Mock async Supabase client.

    Every query-builder method returns the same builder, so chains like
    ``table(..).select(..).eq(..).order(..)`` resolve to it; ``execute`` is
    an AsyncMock whose response ``data`` defaults to [].
    """
    mock_client = MagicMock()
    builder = MagicMock()
    for method in ("select", "eq", "order", "insert", "update", "delete", "upsert", "limit"):
        getattr(builder, method).return_value = builder
    builder.execute = AsyncMock(return_value=MagicMock(data=[]))
    mock_client.table.return_value = builder
    mock_client.builder = builder
    return mock_client


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def cached_collections(cache: LocalCache):
    """Cache contents in the shape of ``Collections`` (absent teeth read as Healthy)"""
    return (
        cache.get_treatments(),
        cache.get_dentists(),
        normalize_teeth_status(cache.get_teeth_status()),
    )


@pytest.fixture
def read_cache():
    return cached_collections
