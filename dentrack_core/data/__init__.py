# =============================================================================
# dentrack_core/data/__init__.py
# Presentation-Facing Data Views
# =============================================================================

from .history import (
    UNKNOWN_DENTIST,
    active_warranties,
    spending_by_currency,
    status_summary,
    treatments_frame,
)

__all__ = [
    "UNKNOWN_DENTIST",
    "active_warranties",
    "spending_by_currency",
    "status_summary",
    "treatments_frame",
]
