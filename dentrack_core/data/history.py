# =============================================================================
# dentrack_core/data/history.py
# Tabular Views of the Treatment History for Timeline and Report Pages
# =============================================================================

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Mapping, Optional

import pandas as pd

from dentrack_core.models import (
    Dentist,
    ToothStatus,
    Treatment,
    find_dentist,
    normalize_teeth_status,
)

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

UNKNOWN_DENTIST = "Unknown"

TREATMENT_COLUMNS = [
    "id",
    "date",
    "tooth_id",
    "type",
    "dentist",
    "clinic",
    "cost",
    "currency",
    "warranty_until",
    "notes",
    "attachments",
]

WARRANTY_COLUMNS = ["id", "type", "tooth_id", "warranty_until", "days_left"]


# =============================================================================
# TREATMENTS
# =============================================================================

def treatments_frame(
    treatments: Iterable[Treatment],
    dentists: Iterable[Dentist] = (),
) -> pd.DataFrame:
    """
    One row per treatment, in the order given (most recent first as held by
    the coordinator).

    Dentist references are resolved to names; a reference to a dentist that
    no longer exists is shown as "Unknown", no reference as None.
    """
    dentists = list(dentists)
    rows: List[dict] = []
    for t in treatments:
        dentist = find_dentist(dentists, t.dentist_id)
        if dentist is not None:
            dentist_name, clinic = dentist.name, dentist.clinic_name
        elif t.dentist_id is not None:
            dentist_name, clinic = UNKNOWN_DENTIST, None
        else:
            dentist_name, clinic = None, None

        rows.append({
            "id": t.id,
            "date": pd.Timestamp(t.date),
            "tooth_id": t.tooth_id,
            "type": t.type.value,
            "dentist": dentist_name,
            "clinic": clinic,
            "cost": t.cost,
            "currency": t.currency,
            "warranty_until": pd.Timestamp(t.warranty_until) if t.warranty_until else pd.NaT,
            "notes": t.notes,
            "attachments": len(t.attachments),
        })

    df = pd.DataFrame(rows, columns=TREATMENT_COLUMNS)
    # Object columns: a missing dentist or clinic reads back as None, not NaN
    for column in ("dentist", "clinic"):
        df[column] = pd.Series([row[column] for row in rows], index=df.index, dtype=object)
    # Nullable ints so general procedures (no tooth) don't force floats
    df["tooth_id"] = df["tooth_id"].astype("Int64")
    return df


def spending_by_currency(treatments: Iterable[Treatment]) -> pd.Series:
    """Total recorded cost per currency code; treatments without a cost are skipped."""
    costs = [(t.currency, t.cost) for t in treatments if t.cost is not None]
    if not costs:
        return pd.Series(dtype="float64", name="cost")
    df = pd.DataFrame(costs, columns=["currency", "cost"])
    return df.groupby("currency")["cost"].sum().sort_index()


def active_warranties(
    treatments: Iterable[Treatment],
    as_of: Optional[date] = None,
) -> pd.DataFrame:
    """
    Treatments whose warranty has not expired on ``as_of`` (default today),
    soonest expiry first. A warranty ending on ``as_of`` is still active.
    """
    as_of = as_of or date.today()
    rows = [
        {
            "id": t.id,
            "type": t.type.value,
            "tooth_id": t.tooth_id,
            "warranty_until": pd.Timestamp(t.warranty_until),
            "days_left": (t.warranty_until - as_of).days,
        }
        for t in treatments
        if t.warranty_until is not None and t.warranty_until >= as_of
    ]
    df = pd.DataFrame(rows, columns=WARRANTY_COLUMNS)
    df["tooth_id"] = df["tooth_id"].astype("Int64")
    return df.sort_values("warranty_until", kind="stable").reset_index(drop=True)


# =============================================================================
# TOOTH STATUS
# =============================================================================

def status_summary(teeth_status: Mapping[int, ToothStatus]) -> pd.Series:
    """
    Number of teeth per status over the full 32-tooth chart, in status
    enumeration order; statuses with no teeth are omitted.
    """
    full = normalize_teeth_status(teeth_status)
    counts = pd.Series([s.value for s in full.values()]).value_counts()
    order = [s.value for s in ToothStatus if s.value in counts.index]
    summary = counts.reindex(order)
    summary.name = "teeth"
    return summary
