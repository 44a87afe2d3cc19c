"""Tests for the records service."""

import pytest

from carechat.models.patient import PatientCreate, PatientUpdate
from carechat.models.records import (
    PostOperativeNoteCreate,
    RecoveryMilestoneCreate,
    SurgeryCreate,
    VitalSigns,
)
from carechat.services import records


def new_patient(**overrides):
    data = {
        "full_name": "Maria Lopez",
        "date_of_birth": "1958-02-14",
        "gender": "female",
        "department": "oncology",
    }
    data.update(overrides)
    return PatientCreate(**data)


class TestPatients:
    async def test_create_and_get(self, storage, staff):
        created = await records.create_patient(storage, new_patient(), staff.id)
        assert created.status == "admitted"
        assert created.created_by == staff.id

        fetched = await records.get_patient(storage, created.id)
        assert fetched.full_name == "Maria Lopez"

    async def test_invalid_status_is_a_validation_error(self, storage):
        with pytest.raises(records.RecordValidationError, match="Status must be one of"):
            await records.create_patient(storage, new_patient(status="sleeping"))

    async def test_get_missing(self, storage):
        with pytest.raises(records.RecordNotFoundError):
            await records.get_patient(storage, "missing")

    async def test_list_filters(self, storage):
        await records.create_patient(storage, new_patient(full_name="A", department="oncology"))
        await records.create_patient(storage, new_patient(full_name="B", department="surgery"))
        await records.create_patient(
            storage, new_patient(full_name="C", department="surgery", status="discharged")
        )

        surgery = await records.list_patients(storage, department="surgery")
        assert {p.full_name for p in surgery} == {"B", "C"}
        discharged = await records.list_patients(storage, department="surgery", status="discharged")
        assert [p.full_name for p in discharged] == ["C"]

    async def test_partial_update(self, storage):
        created = await records.create_patient(storage, new_patient(phone="555-0142"))
        updated = await records.update_patient(storage, created.id, PatientUpdate(status="recovering"))
        assert updated.status == "recovering"
        assert updated.phone == "555-0142"

    async def test_overview_counts(self, storage):
        p = await records.create_patient(storage, new_patient())
        await records.create_milestone(
            storage, p.id, RecoveryMilestoneCreate(milestone_type="mobility", milestone_description="Walk")
        )
        m = await records.create_milestone(
            storage, p.id, RecoveryMilestoneCreate(milestone_type="wound", milestone_description="Drain out")
        )
        await records.toggle_milestone(storage, m.id)

        overview = await records.patient_overview(storage, p.id)
        assert overview.milestones_total == 2
        assert overview.milestones_achieved == 1
        assert overview.progress_percentage == 50
        assert overview.surgeries == 0
        assert overview.latest_diagnosis is None


class TestPostOpNotes:
    async def test_pain_level_eleven_rejected(self, storage):
        p = await records.create_patient(storage, new_patient())
        with pytest.raises(records.RecordValidationError, match="Pain level must be between 0 and 10."):
            await records.create_post_op_note(
                storage, p.id, PostOperativeNoteCreate(day_number=1, pain_level=11)
            )
        assert await records.list_post_op_notes(storage, p.id) == []

    async def test_surgery_must_belong_to_patient(self, storage):
        maria = await records.create_patient(storage, new_patient())
        other = await records.create_patient(storage, new_patient(full_name="Other Person"))
        surgery = await records.create_surgery(
            storage,
            other.id,
            SurgeryCreate(surgery_type="Colectomy", surgery_date="2026-01-04", surgeon_name="Dr. Park"),
        )

        with pytest.raises(records.RecordValidationError, match="does not belong"):
            await records.create_post_op_note(
                storage, maria.id, PostOperativeNoteCreate(day_number=1, surgery_id=surgery.id)
            )

    async def test_notes_listed_in_day_order(self, storage):
        p = await records.create_patient(storage, new_patient())
        for day in (3, 1, 2):
            await records.create_post_op_note(
                storage,
                p.id,
                PostOperativeNoteCreate(day_number=day, vital_signs=VitalSigns(heart_rate=80 + day)),
            )

        notes = await records.list_post_op_notes(storage, p.id)
        assert [n.day_number for n in notes] == [1, 2, 3]
        assert notes[0].vital_signs.heart_rate == 81

    async def test_missing_patient(self, storage):
        with pytest.raises(records.RecordNotFoundError):
            await records.create_post_op_note(storage, "missing", PostOperativeNoteCreate(day_number=1))


class TestMilestoneToggle:
    async def test_round_trip(self, storage):
        p = await records.create_patient(storage, new_patient())
        m = await records.create_milestone(
            storage, p.id, RecoveryMilestoneCreate(milestone_type="mobility", milestone_description="Walk")
        )
        assert m.achieved is False
        assert m.achieved_date is None

        on = await records.toggle_milestone(storage, m.id)
        assert on.achieved is True
        assert on.achieved_date is not None

        off = await records.toggle_milestone(storage, m.id)
        assert off.achieved is False
        assert off.achieved_date is None

    async def test_missing(self, storage):
        with pytest.raises(records.RecordNotFoundError):
            await records.toggle_milestone(storage, "missing")
