# =============================================================================
# tests/unit/test_remote_store.py
# Unit Tests for RemoteStore (mocked async Supabase client)
# =============================================================================

from datetime import date
from unittest.mock import MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError

from dentrack_core.models import (
    DentistDraft,
    ToothStatus,
    TreatmentDraft,
    TreatmentType,
)
from dentrack_core.offline import RemoteStore


TREATMENT_ROW = {
    "id": "7b6c",
    "user_id": "user-1",
    "tooth_id": 16,
    "type": "Extraction",
    "date": "2024-01-01",
    "notes": "",
    "cost": "120.50",
    "currency": "USD",
    "warranty_until": None,
    "attachments": [],
    "dentist_id": None,
}


class TestFetch:
    """Reads are scoped by user and ordered"""

    @pytest.mark.asyncio
    async def test_fetch_treatments(self, mock_supabase):
        mock_supabase.builder.execute.return_value = MagicMock(data=[TREATMENT_ROW])
        store = RemoteStore(mock_supabase)

        result = await store.fetch_treatments("user-1")

        assert result.success
        assert result.data[0].id == "7b6c"
        assert result.data[0].cost == 120.5
        mock_supabase.table.assert_called_with("treatments")
        mock_supabase.builder.eq.assert_called_with("user_id", "user-1")
        mock_supabase.builder.order.assert_called_with("date", desc=True)

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, mock_supabase, caplog):
        bad = dict(TREATMENT_ROW, id="bad", type="Whitening")
        mock_supabase.builder.execute.return_value = MagicMock(data=[bad, TREATMENT_ROW])

        result = await RemoteStore(mock_supabase).fetch_treatments("user-1")

        assert [t.id for t in result.data] == ["7b6c"]
        assert "Skipping malformed treatments row" in caplog.text

    @pytest.mark.asyncio
    async def test_fetch_dentists_ordered_by_name(self, mock_supabase):
        mock_supabase.builder.execute.return_value = MagicMock(data=[
            {"id": "d-1", "user_id": "user-1", "name": "Dr. Reyes", "is_verified": False},
        ])

        result = await RemoteStore(mock_supabase).fetch_dentists("user-1")

        assert result.data[0].name == "Dr. Reyes"
        mock_supabase.builder.order.assert_called_with("name")

    @pytest.mark.asyncio
    async def test_fetch_teeth_status_is_complete(self, mock_supabase):
        mock_supabase.builder.execute.return_value = MagicMock(data=[
            {"tooth_id": 16, "status": "Missing"},
            {"tooth_id": 36, "status": "Crown"},
        ])

        result = await RemoteStore(mock_supabase).fetch_teeth_status("user-1")

        assert len(result.data) == 32
        assert result.data[16] is ToothStatus.MISSING
        assert result.data[36] is ToothStatus.CROWN
        assert result.data[11] is ToothStatus.HEALTHY


class TestWrites:
    """Inserts, scoped updates and upserts"""

    @pytest.mark.asyncio
    async def test_insert_returns_server_id(self, mock_supabase):
        mock_supabase.builder.execute.return_value = MagicMock(data=[{"id": "srv-9"}])
        draft = TreatmentDraft(type=TreatmentType.FILLING, date=date(2024, 2, 1), tooth_id=26)

        result = await RemoteStore(mock_supabase).save_treatment("user-1", draft)

        assert result.success
        assert result.data == "srv-9"
        row = mock_supabase.builder.insert.call_args[0][0]
        assert row["user_id"] == "user-1"
        assert row["tooth_id"] == 26
        assert row["date"] == "2024-02-01"

    @pytest.mark.asyncio
    async def test_insert_without_returned_row_fails(self, mock_supabase):
        draft = TreatmentDraft(type=TreatmentType.FILLING, date=date(2024, 2, 1))

        result = await RemoteStore(mock_supabase).save_treatment("user-1", draft)

        assert not result.success
        assert result.error_code == "REMOTE_ERROR"

    @pytest.mark.asyncio
    async def test_update_scoped_to_id_and_user(self, mock_supabase):
        draft = TreatmentDraft(type=TreatmentType.FILLING, date=date(2024, 2, 1))

        result = await RemoteStore(mock_supabase).save_treatment("user-1", draft, existing_id="t-1")

        assert result.data == "t-1"
        mock_supabase.builder.update.assert_called_once()
        mock_supabase.builder.eq.assert_any_call("id", "t-1")
        mock_supabase.builder.eq.assert_any_call("user_id", "user-1")
        mock_supabase.builder.insert.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_scoped_to_id_and_user(self, mock_supabase):
        result = await RemoteStore(mock_supabase).delete_treatment("user-1", "t-1")

        assert result.success
        mock_supabase.builder.delete.assert_called_once()
        mock_supabase.builder.eq.assert_any_call("id", "t-1")
        mock_supabase.builder.eq.assert_any_call("user_id", "user-1")

    @pytest.mark.asyncio
    async def test_save_dentist_forces_unverified(self, mock_supabase):
        mock_supabase.builder.execute.return_value = MagicMock(data=[{"id": "d-7"}])

        result = await RemoteStore(mock_supabase).save_dentist("user-1", DentistDraft(name="Dr. Reyes"))

        assert result.data == "d-7"
        assert mock_supabase.builder.insert.call_args[0][0]["is_verified"] is False

    @pytest.mark.asyncio
    async def test_tooth_status_upsert_uses_composite_key(self, mock_supabase):
        store = RemoteStore(mock_supabase)

        await store.save_tooth_status("user-1", 16, ToothStatus.MISSING)
        await store.save_tooth_status("user-1", 16, ToothStatus.MISSING)

        assert mock_supabase.builder.upsert.call_count == 2
        for call in mock_supabase.builder.upsert.call_args_list:
            row = call[0][0]
            assert (row["user_id"], row["tooth_id"], row["status"]) == ("user-1", 16, "Missing")
            assert call[1]["on_conflict"] == "user_id,tooth_id"
        mock_supabase.builder.insert.assert_not_called()


class TestFailures:
    """Errors come back as values with a distinguishing code"""

    @pytest.mark.asyncio
    async def test_network_error(self, mock_supabase):
        mock_supabase.builder.execute.side_effect = httpx.ConnectError("Name or service not known")

        result = await RemoteStore(mock_supabase).fetch_treatments("user-1")

        assert not result.success
        assert result.data == []
        assert result.error_code == "REMOTE_NETWORK"

    @pytest.mark.asyncio
    async def test_row_level_security_rejection(self, mock_supabase):
        mock_supabase.builder.execute.side_effect = APIError({
            "message": "new row violates row-level security policy",
            "code": "42501",
            "hint": None,
            "details": None,
        })

        result = await RemoteStore(mock_supabase).save_tooth_status("user-1", 16, ToothStatus.MISSING)

        assert not result.success
        assert result.error_code == "REMOTE_AUTH"

    @pytest.mark.asyncio
    async def test_other_errors_are_generic(self, mock_supabase):
        mock_supabase.builder.execute.side_effect = RuntimeError("unexpected")

        result = await RemoteStore(mock_supabase).fetch_teeth_status("user-1")

        assert not result.success
        assert result.data == {}
        assert result.error_code == "REMOTE_ERROR"

    @pytest.mark.asyncio
    async def test_missing_client(self):
        store = RemoteStore(None)

        result = await store.fetch_dentists("user-1")

        assert not store.is_connected()
        assert not result.success
        assert result.data == []
