# =============================================================================
# dentrack_core/models/__init__.py
# Domain Model
# =============================================================================

from dentrack_core.models.teeth import (
    ALL_TOOTH_IDS,
    TeethStatus,
    ToothStatus,
    default_teeth_status,
    is_valid_tooth_id,
    normalize_teeth_status,
    quadrant_of,
    teeth_status_to_dict,
)

from dentrack_core.models.records import (
    Attachment,
    Dentist,
    DentistDraft,
    DentistType,
    Treatment,
    TreatmentDraft,
    TreatmentType,
    UserProfile,
    find_dentist,
    sort_treatments,
    status_for_treatment,
)

from dentrack_core.models.session import (
    Session,
    SessionEvent,
    SessionStatus,
)

__all__ = [
    # Teeth
    "ALL_TOOTH_IDS",
    "TeethStatus",
    "ToothStatus",
    "default_teeth_status",
    "is_valid_tooth_id",
    "normalize_teeth_status",
    "quadrant_of",
    "teeth_status_to_dict",
    # Records
    "Attachment",
    "Dentist",
    "DentistDraft",
    "DentistType",
    "Treatment",
    "TreatmentDraft",
    "TreatmentType",
    "UserProfile",
    "find_dentist",
    "sort_treatments",
    "status_for_treatment",
    # Session
    "Session",
    "SessionEvent",
    "SessionStatus",
]
