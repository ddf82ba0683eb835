# =============================================================================
# dentrack_core/offline/remote_store.py
# Supabase Remote Store for Per-User Dental Records
# =============================================================================
"""
RemoteStore - per-user Supabase persistence mirroring the local collections.

Every call is scoped by the authenticated user id and returns a
``ServiceResult``; network, authorization and query errors are logged and
reported through ``error_code`` instead of being raised:

- ``REMOTE_NETWORK``: transport failure (offline, DNS, timeout)
- ``REMOTE_AUTH``: expired JWT or row-level-security rejection
- ``REMOTE_ERROR``: anything else

Tables (see ``scripts/setup_dentrack_tables.py``):
    treatments    (id, user_id, tooth_id, type, date, notes, cost, currency,
                   warranty_until, attachments, dentist_id)
    dentists      (id, user_id, name, clinic_name, type, phone, notes, is_verified)
    teeth_status  (user_id, tooth_id, status, updated_at)  UNIQUE(user_id, tooth_id)
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
import logging

import httpx
from postgrest.exceptions import APIError

from dentrack_core.errors import RemoteStoreError
from dentrack_core.models import (
    Dentist,
    DentistDraft,
    TeethStatus,
    ToothStatus,
    Treatment,
    TreatmentDraft,
    normalize_teeth_status,
)
from dentrack_core.services import BaseService, ServiceResult

logger = logging.getLogger(__name__)

# PostgREST / Postgres codes that mean the caller is not allowed in
AUTH_ERROR_CODES = {"PGRST301", "PGRST302", "42501", "401", "403"}


class RemoteStore(BaseService):
    """
    Async Supabase access for treatments, dentists and tooth status.

    Usage:
        client = await acreate_client(url, key)
        store = RemoteStore(client)
        result = await store.fetch_treatments(user_id)
        if result:
            treatments = result.data
    """

    TABLES = {
        "treatments": "treatments",
        "dentists": "dentists",
        "teeth_status": "teeth_status",
    }

    def __init__(self, client):
        """
        Args:
            client: ``supabase.AsyncClient`` (or anything exposing the same
                ``table(...)`` query builder)
        """
        super().__init__()
        self.client = client

    def is_connected(self) -> bool:
        """Check if a Supabase client is available."""
        return self.client is not None

    def classify_error(self, e: Exception) -> Optional[str]:
        if isinstance(e, httpx.TransportError):
            return RemoteStoreError.NETWORK
        if isinstance(e, httpx.HTTPStatusError) and e.response.status_code in (401, 403):
            return RemoteStoreError.AUTH
        if isinstance(e, APIError) and str(getattr(e, "code", "")) in AUTH_ERROR_CODES:
            return RemoteStoreError.AUTH
        return RemoteStoreError.GENERIC

    def _table(self, name: str):
        if self.client is None:
            raise RemoteStoreError("Supabase client not configured", table=name)
        return self.client.table(self.TABLES[name])

    # =========================================================================
    # TREATMENTS
    # =========================================================================

    async def fetch_treatments(self, user_id: str) -> ServiceResult:
        """All treatments for the user, most recent first; ``data`` is [] on failure."""
        async def _fetch() -> List[Treatment]:
            response = await (
                self._table("treatments")
                .select("*")
                .eq("user_id", user_id)
                .order("date", desc=True)
                .execute()
            )
            return _rows_to_records(response.data, treatment_from_row, "treatments")

        return await self.safe_execute_async("Fetching treatments", _fetch, default=[])

    async def save_treatment(
        self,
        user_id: str,
        draft: TreatmentDraft,
        existing_id: Optional[str] = None,
    ) -> ServiceResult:
        """
        Insert a treatment, or update ``existing_id`` scoped to the user.

        Returns:
            ServiceResult whose ``data`` is the record id (server-assigned
            for inserts)
        """
        row = treatment_to_row(user_id, draft)

        async def _update() -> str:
            await (
                self._table("treatments")
                .update(row)
                .eq("id", existing_id)
                .eq("user_id", user_id)
                .execute()
            )
            return existing_id

        async def _insert() -> str:
            response = await self._table("treatments").insert(row).execute()
            return _inserted_id(response.data, "treatments")

        if existing_id:
            return await self.safe_execute_async(f"Updating treatment {existing_id}", _update)
        return await self.safe_execute_async("Inserting treatment", _insert)

    async def delete_treatment(self, user_id: str, treatment_id: str) -> ServiceResult:
        async def _delete() -> bool:
            await (
                self._table("treatments")
                .delete()
                .eq("id", treatment_id)
                .eq("user_id", user_id)
                .execute()
            )
            return True

        return await self.safe_execute_async(f"Deleting treatment {treatment_id}", _delete)

    # =========================================================================
    # DENTISTS
    # =========================================================================

    async def fetch_dentists(self, user_id: str) -> ServiceResult:
        """All dentists for the user ordered by name; ``data`` is [] on failure."""
        async def _fetch() -> List[Dentist]:
            response = await (
                self._table("dentists")
                .select("*")
                .eq("user_id", user_id)
                .order("name")
                .execute()
            )
            return _rows_to_records(response.data, dentist_from_row, "dentists")

        return await self.safe_execute_async("Fetching dentists", _fetch, default=[])

    async def save_dentist(self, user_id: str, draft: DentistDraft) -> ServiceResult:
        """Insert a dentist; ``is_verified`` is always stored as false."""
        row = dentist_to_row(user_id, draft)

        async def _insert() -> str:
            response = await self._table("dentists").insert(row).execute()
            return _inserted_id(response.data, "dentists")

        return await self.safe_execute_async("Inserting dentist", _insert)

    async def delete_dentist(self, user_id: str, dentist_id: str) -> ServiceResult:
        async def _delete() -> bool:
            await (
                self._table("dentists")
                .delete()
                .eq("id", dentist_id)
                .eq("user_id", user_id)
                .execute()
            )
            return True

        return await self.safe_execute_async(f"Deleting dentist {dentist_id}", _delete)

    # =========================================================================
    # TOOTH STATUS
    # =========================================================================

    async def fetch_teeth_status(self, user_id: str) -> ServiceResult:
        """Complete 32-tooth mapping; teeth without a row are Healthy."""
        async def _fetch() -> TeethStatus:
            response = await (
                self._table("teeth_status")
                .select("tooth_id, status")
                .eq("user_id", user_id)
                .execute()
            )
            rows = response.data or []
            return normalize_teeth_status({row["tooth_id"]: row["status"] for row in rows})

        return await self.safe_execute_async("Fetching teeth status", _fetch, default={})

    async def save_tooth_status(
        self,
        user_id: str,
        tooth_id: int,
        status: ToothStatus,
    ) -> ServiceResult:
        """Upsert keyed by (user_id, tooth_id); repeating the call overwrites."""
        row = {
            "user_id": user_id,
            "tooth_id": tooth_id,
            "status": ToothStatus(status).value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

        async def _upsert() -> bool:
            await (
                self._table("teeth_status")
                .upsert(row, on_conflict="user_id,tooth_id")
                .execute()
            )
            return True

        return await self.safe_execute_async(f"Saving status of tooth {tooth_id}", _upsert)


# =============================================================================
# ROW MAPPING
# =============================================================================

def treatment_to_row(user_id: str, draft: TreatmentDraft) -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "tooth_id": draft.tooth_id,
        "type": draft.type.value,
        "date": draft.date.isoformat(),
        "notes": draft.notes,
        "cost": draft.cost,
        "currency": draft.currency,
        "warranty_until": draft.warranty_until.isoformat() if draft.warranty_until else None,
        "attachments": [a.to_dict() for a in draft.attachments],
        "dentist_id": draft.dentist_id,
    }


def treatment_from_row(row: Mapping[str, Any]) -> Treatment:
    return Treatment.from_dict({
        "id": row["id"],
        "toothId": row.get("tooth_id"),
        "type": row["type"],
        "date": row["date"],
        "notes": row.get("notes"),
        "currency": row.get("currency"),
        "attachments": row.get("attachments"),
        "cost": row.get("cost"),
        "warrantyUntil": row.get("warranty_until"),
        "dentistId": row.get("dentist_id"),
    })


def dentist_to_row(user_id: str, draft: DentistDraft) -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "name": draft.name,
        "clinic_name": draft.clinic_name,
        "type": draft.type.value if draft.type else None,
        "phone": draft.phone,
        "notes": draft.notes,
        "is_verified": False,
    }


def dentist_from_row(row: Mapping[str, Any]) -> Dentist:
    return Dentist.from_dict({
        "id": row["id"],
        "name": row["name"],
        "clinicName": row.get("clinic_name"),
        "type": row.get("type"),
        "phone": row.get("phone"),
        "notes": row.get("notes"),
        "isVerified": row.get("is_verified", False),
    })


def _rows_to_records(rows: Optional[List[Mapping[str, Any]]], convert, table: str) -> list:
    records = []
    for row in rows or []:
        try:
            records.append(convert(row))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed {table} row {row.get('id')!r}: {e}")
    return records


def _inserted_id(rows: Optional[List[Mapping[str, Any]]], table: str) -> str:
    if not rows or rows[0].get("id") is None:
        raise RemoteStoreError("Insert returned no row", operation="insert", table=table)
    return str(rows[0]["id"])
