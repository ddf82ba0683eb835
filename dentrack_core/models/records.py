# =============================================================================
# dentrack_core/models/records.py
# Treatment, Dentist and Profile Records
# =============================================================================
"""
Record types shared by the local cache, the remote store and the sync
coordinator.

Each record serializes to a JSON-compatible dict with camelCase keys (the
persisted local layout). Optional fields that are ``None`` are left out of
the dict and read back as ``None``.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from dentrack_core.errors import DataValidationError
from dentrack_core.models.teeth import ToothStatus, is_valid_tooth_id


class TreatmentType(str, Enum):
    """Kinds of dental procedure a patient can log."""
    FILLING = "Filling"
    ROOT_CANAL = "Root Canal"
    CROWN = "Crown"
    EXTRACTION = "Extraction"
    VENEER = "Veneer"
    IMPLANT = "Implant"
    BRACES = "Braces/Mouthguard"
    HYGIENE = "Hygiene/Cleaning"
    CHECKUP = "Checkup"
    OTHER = "Other"


class DentistType(str, Enum):
    """Dentist specialties."""
    GENERAL = "General Dentist"
    SURGEON = "Oral Surgeon"
    ENDODONTIST = "Endodontist"
    ORTHODONTIST = "Orthodontist"
    PERIODONTIST = "Periodontist"
    PEDIATRIC = "Pediatric Dentist"
    PROSTHODONTIST = "Prosthodontist"
    OTHER = "Other"


# Treatment kinds that change the treated tooth's status when saved
TREATMENT_STATUS_EFFECTS: Dict[TreatmentType, ToothStatus] = {
    TreatmentType.EXTRACTION: ToothStatus.MISSING,
    TreatmentType.ROOT_CANAL: ToothStatus.ROOT_CANAL_TREATED,
    TreatmentType.CROWN: ToothStatus.CROWN,
    TreatmentType.FILLING: ToothStatus.FILLED,
    TreatmentType.VENEER: ToothStatus.VENEER,
    TreatmentType.IMPLANT: ToothStatus.IMPLANT,
}

DEFAULT_CURRENCY = "USD"


def status_for_treatment(treatment_type: TreatmentType) -> Optional[ToothStatus]:
    """Tooth status implied by a treatment kind, or None if it leaves status alone."""
    return TREATMENT_STATUS_EFFECTS.get(TreatmentType(treatment_type))


def parse_date(value: Any) -> date:
    """Accept a date, or an ISO string (a trailing time part is ignored)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        return date.fromisoformat(value[:10])
    raise ValueError(f"Invalid date: {value!r}")


def _optional_date(value: Any) -> Optional[date]:
    return None if value in (None, "") else parse_date(value)


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _text(value: Any, default: str = "") -> str:
    # Only a missing value takes the default; "" is a real value
    return default if value is None else str(value)


def _optional_float(value: Any) -> Optional[float]:
    return None if value in (None, "") else float(value)


def _optional_tooth_id(value: Any) -> Optional[int]:
    if value is None:
        return None
    tooth_id = int(value)
    if not is_valid_tooth_id(tooth_id):
        raise ValueError(f"Not an FDI tooth number: {value!r}")
    return tooth_id


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


# =============================================================================
# ATTACHMENTS
# =============================================================================

@dataclass
class Attachment:
    """A file attached to a treatment (x-ray, photo, invoice)."""
    id: str
    name: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "url": self.url}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Attachment:
        return cls(id=str(data["id"]), name=str(data["name"]), url=str(data["url"]))


# =============================================================================
# TREATMENTS
# =============================================================================

@dataclass
class TreatmentDraft:
    """
    Treatment payload as entered by the user, before it has an identifier.

    Raises:
        DataValidationError: tooth_id is not an FDI number, type is unknown
            or the date cannot be parsed
    """
    type: TreatmentType
    date: date
    tooth_id: Optional[int] = None
    notes: str = ""
    currency: str = DEFAULT_CURRENCY
    attachments: List[Attachment] = field(default_factory=list)
    cost: Optional[float] = None
    warranty_until: Optional[date] = None
    dentist_id: Optional[str] = None

    def __post_init__(self):
        if self.tooth_id is not None and not is_valid_tooth_id(self.tooth_id):
            raise DataValidationError(
                f"Tooth {self.tooth_id!r} is not a valid FDI tooth number",
                field="tooth_id",
                value=self.tooth_id,
            )
        try:
            self.type = TreatmentType(self.type)
        except ValueError as e:
            raise DataValidationError(
                f"Unknown treatment type: {self.type!r}", field="type", value=self.type
            ) from e
        try:
            self.date = parse_date(self.date)
            self.warranty_until = _optional_date(self.warranty_until)
        except ValueError as e:
            raise DataValidationError(str(e), field="date") from e

    def to_treatment(self, treatment_id: str) -> Treatment:
        """Attach an identifier."""
        return Treatment(
            id=treatment_id,
            tooth_id=self.tooth_id,
            type=self.type,
            date=self.date,
            notes=self.notes,
            currency=self.currency,
            attachments=list(self.attachments),
            cost=self.cost,
            warranty_until=self.warranty_until,
            dentist_id=self.dentist_id,
        )


@dataclass
class Treatment:
    """A logged dental procedure."""
    id: str
    tooth_id: Optional[int]
    type: TreatmentType
    date: date
    notes: str = ""
    currency: str = DEFAULT_CURRENCY
    attachments: List[Attachment] = field(default_factory=list)
    cost: Optional[float] = None
    warranty_until: Optional[date] = None
    dentist_id: Optional[str] = None

    @property
    def status_effect(self) -> Optional[ToothStatus]:
        """Status this treatment sets on its tooth, if any."""
        if self.tooth_id is None:
            return None
        return status_for_treatment(self.type)

    def to_draft(self) -> TreatmentDraft:
        return TreatmentDraft(
            type=self.type,
            date=self.date,
            tooth_id=self.tooth_id,
            notes=self.notes,
            currency=self.currency,
            attachments=list(self.attachments),
            cost=self.cost,
            warranty_until=self.warranty_until,
            dentist_id=self.dentist_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "toothId": self.tooth_id,
            "type": self.type.value,
            "date": self.date.isoformat(),
            "notes": self.notes,
            "currency": self.currency,
            "attachments": [a.to_dict() for a in self.attachments],
            "cost": self.cost,
            "warrantyUntil": self.warranty_until.isoformat() if self.warranty_until else None,
            "dentistId": self.dentist_id,
        }
        # toothId is always present; null means a general procedure
        compact = _compact(data)
        compact["toothId"] = self.tooth_id
        return compact

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Treatment:
        """
        Rebuild a treatment from its dict form.

        Raises:
            KeyError, TypeError, ValueError: malformed payload
        """
        return cls(
            id=str(data["id"]),
            tooth_id=_optional_tooth_id(data.get("toothId")),
            type=TreatmentType(data["type"]),
            date=parse_date(data["date"]),
            notes=_text(data.get("notes")),
            currency=_text(data.get("currency"), DEFAULT_CURRENCY),
            attachments=[Attachment.from_dict(a) for a in data.get("attachments") or []],
            cost=_optional_float(data.get("cost")),
            warranty_until=_optional_date(data.get("warrantyUntil")),
            dentist_id=_optional_str(data.get("dentistId")),
        )


def sort_treatments(treatments: Iterable[Treatment]) -> List[Treatment]:
    """
    Most recent date first.

    ``sorted`` is stable even with ``reverse=True``, so treatments sharing a
    date keep their existing (insertion) order.
    """
    return sorted(treatments, key=lambda t: t.date, reverse=True)


# =============================================================================
# DENTISTS
# =============================================================================

@dataclass
class DentistDraft:
    """
    Dentist payload as entered by the user.

    Raises:
        DataValidationError: name is blank or type is unknown
    """
    name: str
    clinic_name: Optional[str] = None
    type: Optional[DentistType] = None
    phone: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise DataValidationError("Dentist name is required", field="name")
        if self.type is not None:
            try:
                self.type = DentistType(self.type)
            except ValueError as e:
                raise DataValidationError(
                    f"Unknown dentist type: {self.type!r}", field="type", value=self.type
                ) from e
        # Blank optional text is stored as absent
        self.clinic_name = (self.clinic_name or "").strip() or None
        self.phone = (self.phone or "").strip() or None
        self.notes = (self.notes or "").strip() or None

    def to_dentist(self, dentist_id: str) -> Dentist:
        return Dentist(
            id=dentist_id,
            name=self.name,
            clinic_name=self.clinic_name,
            type=self.type,
            phone=self.phone,
            notes=self.notes,
            is_verified=False,
        )


@dataclass
class Dentist:
    """A dentist the patient has seen."""
    id: str
    name: str
    clinic_name: Optional[str] = None
    type: Optional[DentistType] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    is_verified: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "id": self.id,
            "name": self.name,
            "clinicName": self.clinic_name,
            "type": self.type.value if self.type else None,
            "phone": self.phone,
            "notes": self.notes,
            "isVerified": self.is_verified,
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Dentist:
        raw_type = data.get("type")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            clinic_name=_optional_str(data.get("clinicName")),
            type=DentistType(raw_type) if raw_type else None,
            phone=_optional_str(data.get("phone")),
            notes=_optional_str(data.get("notes")),
            is_verified=bool(data.get("isVerified", False)),
        )


def find_dentist(dentists: Iterable[Dentist], dentist_id: Optional[str]) -> Optional[Dentist]:
    """Look up a dentist; dangling references return None."""
    if dentist_id is None:
        return None
    return next((d for d in dentists if d.id == dentist_id), None)


# =============================================================================
# PROFILE
# =============================================================================

@dataclass
class UserProfile:
    """Account-level patient details kept on the device."""
    name: str = "Guest User"
    dob: str = ""
    blood_type: str = ""
    allergies: str = ""
    medical_notes: str = ""
    next_checkup_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "name": self.name,
            "dob": self.dob,
            "bloodType": self.blood_type,
            "allergies": self.allergies,
            "medicalNotes": self.medical_notes,
            "nextCheckupDate": self.next_checkup_date.isoformat() if self.next_checkup_date else None,
        })

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserProfile:
        return cls(
            name=_text(data.get("name"), "Guest User"),
            dob=_text(data.get("dob")),
            blood_type=_text(data.get("bloodType")),
            allergies=_text(data.get("allergies")),
            medical_notes=_text(data.get("medicalNotes")),
            next_checkup_date=_optional_date(data.get("nextCheckupDate")),
        )
