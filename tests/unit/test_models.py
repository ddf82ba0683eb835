# =============================================================================
# tests/unit/test_models.py
# Unit Tests for the Domain Model
# =============================================================================

from datetime import date

import pytest

from dentrack_core.errors import DataValidationError
from dentrack_core.models import (
    ALL_TOOTH_IDS,
    Attachment,
    Dentist,
    DentistDraft,
    DentistType,
    Session,
    SessionStatus,
    ToothStatus,
    Treatment,
    TreatmentDraft,
    TreatmentType,
    UserProfile,
    default_teeth_status,
    find_dentist,
    is_valid_tooth_id,
    normalize_teeth_status,
    quadrant_of,
    sort_treatments,
    status_for_treatment,
    teeth_status_to_dict,
)


class TestToothNumbering:
    """FDI tooth identifiers"""

    def test_thirty_two_unique_teeth(self):
        assert len(ALL_TOOTH_IDS) == 32
        assert len(set(ALL_TOOTH_IDS)) == 32

    def test_chart_order_starts_upper_right(self):
        assert ALL_TOOTH_IDS[:3] == (18, 17, 16)
        assert ALL_TOOTH_IDS[-1] == 41

    @pytest.mark.parametrize("tooth_id", [11, 18, 21, 28, 31, 38, 41, 48])
    def test_valid_ids(self, tooth_id):
        assert is_valid_tooth_id(tooth_id)

    @pytest.mark.parametrize("tooth_id", [0, 10, 19, 20, 49, 51, "16", None, True, 16.0])
    def test_invalid_ids(self, tooth_id):
        assert not is_valid_tooth_id(tooth_id)

    def test_quadrant_of(self):
        assert quadrant_of(16) == "Upper Right"
        assert quadrant_of(36) == "Lower Left"

    def test_quadrant_of_rejects_unknown_tooth(self):
        with pytest.raises(ValueError):
            quadrant_of(19)


class TestTeethStatus:
    """Per-tooth status mapping"""

    def test_default_is_all_healthy(self):
        status = default_teeth_status()
        assert set(status) == set(ALL_TOOTH_IDS)
        assert set(status.values()) == {ToothStatus.HEALTHY}

    def test_normalize_fills_missing_teeth(self):
        status = normalize_teeth_status({16: "Missing", "36": ToothStatus.CROWN})

        assert len(status) == 32
        assert status[16] is ToothStatus.MISSING
        assert status[36] is ToothStatus.CROWN
        assert status[11] is ToothStatus.HEALTHY

    def test_normalize_drops_unknown_entries(self):
        status = normalize_teeth_status({99: "Missing", 16: "Chipped", "x": "Filled"})
        assert status == default_teeth_status()

    def test_to_dict_uses_string_keys(self):
        assert teeth_status_to_dict({16: ToothStatus.MISSING}) == {"16": "Missing"}


class TestStatusEffects:
    """Treatment kind -> tooth status mapping"""

    @pytest.mark.parametrize("treatment_type, expected", [
        (TreatmentType.EXTRACTION, ToothStatus.MISSING),
        (TreatmentType.ROOT_CANAL, ToothStatus.ROOT_CANAL_TREATED),
        (TreatmentType.CROWN, ToothStatus.CROWN),
        (TreatmentType.FILLING, ToothStatus.FILLED),
        (TreatmentType.VENEER, ToothStatus.VENEER),
        (TreatmentType.IMPLANT, ToothStatus.IMPLANT),
    ])
    def test_status_changing_kinds(self, treatment_type, expected):
        assert status_for_treatment(treatment_type) is expected

    @pytest.mark.parametrize("treatment_type", [
        TreatmentType.HYGIENE,
        TreatmentType.CHECKUP,
        TreatmentType.BRACES,
        TreatmentType.OTHER,
    ])
    def test_other_kinds_leave_status_alone(self, treatment_type):
        assert status_for_treatment(treatment_type) is None

    def test_general_treatment_has_no_effect(self):
        treatment = Treatment(id="t", tooth_id=None, type=TreatmentType.EXTRACTION, date=date(2024, 1, 1))
        assert treatment.status_effect is None


class TestTreatmentDraft:
    """Form payload validation"""

    def test_rejects_non_fdi_tooth(self):
        with pytest.raises(DataValidationError) as exc_info:
            TreatmentDraft(type=TreatmentType.FILLING, date=date(2024, 1, 1), tooth_id=19)
        assert exc_info.value.details["field"] == "tooth_id"

    def test_rejects_unknown_type(self):
        with pytest.raises(DataValidationError):
            TreatmentDraft(type="Whitening", date=date(2024, 1, 1))

    def test_rejects_bad_date(self):
        with pytest.raises(DataValidationError):
            TreatmentDraft(type=TreatmentType.CHECKUP, date="01/02/2024")

    def test_coerces_strings(self):
        draft = TreatmentDraft(type="Root Canal", date="2024-02-03T10:00:00Z", warranty_until="2026-02-03")

        assert draft.type is TreatmentType.ROOT_CANAL
        assert draft.date == date(2024, 2, 3)
        assert draft.warranty_until == date(2026, 2, 3)

    def test_to_treatment_round_trips_through_draft(self, make_draft):
        draft = make_draft(TreatmentType.CROWN, tooth_id=36, cost=500.0, dentist_id="d-1")
        treatment = draft.to_treatment("t-1")

        assert treatment.id == "t-1"
        assert treatment.to_draft() == draft


class TestTreatmentSerialization:
    """Dict form used by the local cache"""

    def test_absent_optionals_are_omitted(self):
        treatment = Treatment(id="t-1", tooth_id=None, type=TreatmentType.CHECKUP, date=date(2024, 1, 1))
        data = treatment.to_dict()

        assert data["toothId"] is None
        assert "cost" not in data
        assert "warrantyUntil" not in data
        assert "dentistId" not in data

    def test_round_trip_minimal(self):
        treatment = Treatment(id="t-1", tooth_id=None, type=TreatmentType.CHECKUP, date=date(2024, 1, 1))
        assert Treatment.from_dict(treatment.to_dict()) == treatment

    def test_round_trip_full(self):
        treatment = Treatment(
            id="t-1",
            tooth_id=46,
            type=TreatmentType.IMPLANT,
            date=date(2024, 1, 1),
            notes="Titanium post",
            currency="UAH",
            attachments=[Attachment(id="a-1", name="xray.png", url="https://files.example.com/xray.png")],
            cost=0.0,
            warranty_until=date(2034, 1, 1),
            dentist_id="d-9",
        )
        assert Treatment.from_dict(treatment.to_dict()) == treatment

    def test_from_dict_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            Treatment.from_dict({"id": "t", "type": "Whitening", "date": "2024-01-01"})


class TestSorting:
    """Most-recent-first ordering"""

    def test_most_recent_first(self):
        old = Treatment(id="old", tooth_id=None, type=TreatmentType.CHECKUP, date=date(2023, 1, 1))
        new = Treatment(id="new", tooth_id=None, type=TreatmentType.CHECKUP, date=date(2024, 1, 1))
        assert [t.id for t in sort_treatments([old, new])] == ["new", "old"]

    def test_equal_dates_keep_insertion_order(self):
        same_day = [
            Treatment(id=f"t-{i}", tooth_id=None, type=TreatmentType.CHECKUP, date=date(2024, 1, 1))
            for i in range(4)
        ]
        older = Treatment(id="older", tooth_id=None, type=TreatmentType.CHECKUP, date=date(2023, 1, 1))

        result = sort_treatments([older] + same_day)
        assert [t.id for t in result] == ["t-0", "t-1", "t-2", "t-3", "older"]


class TestDentists:
    """Dentist records"""

    def test_blank_name_rejected(self):
        with pytest.raises(DataValidationError):
            DentistDraft(name="   ")

    def test_unknown_type_rejected(self):
        with pytest.raises(DataValidationError):
            DentistDraft(name="Dr. Who", type="Time Lord")

    def test_draft_trims_and_is_never_verified(self):
        dentist = DentistDraft(name=" Dr. Reyes ", phone=" ", type="Orthodontist").to_dentist("d-1")

        assert dentist.name == "Dr. Reyes"
        assert dentist.phone is None
        assert dentist.type is DentistType.ORTHODONTIST
        assert dentist.is_verified is False

    def test_round_trip(self):
        dentist = Dentist(id="d-1", name="Dr. Reyes", clinic_name="Bright", type=DentistType.SURGEON, phone="+380")
        assert Dentist.from_dict(dentist.to_dict()) == dentist

    def test_find_dentist_tolerates_dangling_reference(self, sample_dentists):
        assert find_dentist(sample_dentists, "d-2").name == "Dr. Mark Reyes"
        assert find_dentist(sample_dentists, "gone") is None
        assert find_dentist(sample_dentists, None) is None


class TestProfile:
    def test_defaults(self):
        assert UserProfile().name == "Guest User"

    def test_round_trip(self):
        profile = UserProfile(name="Ira", blood_type="A+", next_checkup_date=date(2025, 3, 1))
        assert UserProfile.from_dict(profile.to_dict()) == profile


class TestSession:
    """Tagged session variants"""

    def test_unauthenticated_is_guest(self):
        session = Session.unauthenticated()
        assert session.is_guest
        assert session.user_id is None

    def test_authenticating_is_still_guest(self):
        assert Session.authenticating().status is SessionStatus.AUTHENTICATING
        assert Session.authenticating().is_guest

    def test_authenticated_requires_user_id(self):
        with pytest.raises(ValueError):
            Session.authenticated("")

    def test_authenticated(self):
        session = Session.authenticated("user-1", "patient@example.com")
        assert session.is_authenticated
        assert session.email == "patient@example.com"
