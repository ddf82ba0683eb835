# =============================================================================
# dentrack_core/models/teeth.py
# FDI Tooth Numbering and Tooth Status
# =============================================================================
"""
Tooth identifiers and per-tooth status.

Teeth use FDI two-digit numbering: quadrant digit 1-4 followed by position
digit 1-8. ``ALL_TOOTH_IDS`` lists the 32 permanent teeth in chart order
(upper right 18->11, upper left 21->28, lower left 31->38, lower right
41->48).
"""

from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Mapping, Optional
import logging

logger = logging.getLogger(__name__)


class ToothStatus(str, Enum):
    """Current condition of a single tooth."""
    HEALTHY = "Healthy"
    FILLED = "Filled"
    ROOT_CANAL_TREATED = "Root Canal"
    CROWN = "Crown"
    VENEER = "Veneer"
    MISSING = "Missing"
    IMPLANT = "Implant"
    NEEDS_ATTENTION = "Needs Attention"


ALL_TOOTH_IDS = (
    tuple(range(18, 10, -1))
    + tuple(range(21, 29))
    + tuple(range(31, 39))
    + tuple(range(48, 40, -1))
)

_TOOTH_ID_SET = frozenset(ALL_TOOTH_IDS)

QUADRANTS = {
    1: "Upper Right",
    2: "Upper Left",
    3: "Lower Left",
    4: "Lower Right",
}

TeethStatus = Dict[int, ToothStatus]


def is_valid_tooth_id(value: Any) -> bool:
    """True for the 32 FDI permanent-tooth numbers (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and value in _TOOTH_ID_SET


def quadrant_of(tooth_id: int) -> str:
    """Human-readable quadrant name for an FDI tooth number."""
    if not is_valid_tooth_id(tooth_id):
        raise ValueError(f"Not an FDI tooth number: {tooth_id!r}")
    return QUADRANTS[tooth_id // 10]


def default_teeth_status() -> TeethStatus:
    """Every tooth Healthy."""
    return {tooth_id: ToothStatus.HEALTHY for tooth_id in ALL_TOOTH_IDS}


def normalize_teeth_status(mapping: Optional[Mapping[Any, Any]]) -> TeethStatus:
    """
    Build a complete 32-tooth status map from a partial one.

    Keys may be ints or numeric strings (JSON object keys are strings).
    Unknown teeth and unknown status values are dropped with a debug log;
    teeth without an entry default to Healthy.
    """
    result = default_teeth_status()
    if not mapping:
        return result

    for raw_id, raw_status in mapping.items():
        try:
            tooth_id = int(raw_id)
            status = ToothStatus(raw_status)
        except (TypeError, ValueError):
            logger.debug(f"Ignoring tooth status entry {raw_id!r}: {raw_status!r}")
            continue
        if tooth_id in _TOOTH_ID_SET:
            result[tooth_id] = status
    return result


def teeth_status_to_dict(teeth_status: Mapping[int, ToothStatus]) -> Dict[str, str]:
    """JSON-compatible form: string keys, status values."""
    return {str(tooth_id): ToothStatus(status).value for tooth_id, status in teeth_status.items()}
