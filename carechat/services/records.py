"""Staff-facing create/read/update operations for patients and their records."""

import logging
from typing import Any

from carechat.models.patient import Patient, PatientCreate, PatientOverview, PatientUpdate
from carechat.models.records import (
    MedicalRecord,
    MedicalRecordCreate,
    PostOperativeNote,
    PostOperativeNoteCreate,
    RecoveryMilestone,
    RecoveryMilestoneCreate,
    Surgery,
    SurgeryCreate,
)
from carechat.storage import Order, Storage, StorageResult, eq, now_iso

logger = logging.getLogger(__name__)


class RecordNotFoundError(LookupError):
    pass


class RecordValidationError(ValueError):
    pass


class RecordStorageError(RuntimeError):
    pass


def _read(result: StorageResult, what: str) -> Any:
    if not result.ok:
        logger.error("Failed to read %s: %s", what, result.error)
        raise RecordStorageError(f"Could not read {what}.")
    return result.data


def _written(result: StorageResult, what: str) -> dict:
    if not result.ok:
        logger.warning("Rejected write to %s: %s", what, result.error)
        raise RecordValidationError(result.error)
    return result.data


# --- patients ---

async def _patient_row(storage: Storage, patient_id: str) -> dict:
    row = _read(await storage.select_one("patients", [eq("id", patient_id)]), "patient")
    if not row:
        raise RecordNotFoundError("Patient not found")
    return row


async def create_patient(storage: Storage, body: PatientCreate, created_by: str | None = None) -> Patient:
    row = _written(
        await storage.insert("patients", {**body.model_dump(), "created_by": created_by}),
        "patients",
    )
    logger.info("Created patient %s", row["id"])
    return Patient.model_validate(row)


async def list_patients(
    storage: Storage, department: str | None = None, status: str | None = None
) -> list[Patient]:
    filters = []
    if department:
        filters.append(eq("department", department))
    if status:
        filters.append(eq("status", status))
    rows = _read(await storage.select("patients", filters, order=Order("created_at")), "patients")
    return [Patient.model_validate(r) for r in rows]


async def get_patient(storage: Storage, patient_id: str) -> Patient:
    return Patient.model_validate(await _patient_row(storage, patient_id))


async def update_patient(storage: Storage, patient_id: str, body: PatientUpdate) -> Patient:
    await _patient_row(storage, patient_id)
    row = _written(
        await storage.update("patients", patient_id, body.model_dump(exclude_unset=True)),
        "patients",
    )
    return Patient.model_validate(row)


async def patient_overview(storage: Storage, patient_id: str) -> PatientOverview:
    patient = await get_patient(storage, patient_id)
    scoped = [eq("patient_id", patient_id)]

    records = _read(await storage.count("medical_records", scoped), "medical records")
    surgeries = _read(await storage.count("surgeries", scoped), "surgeries")
    notes = _read(await storage.count("post_operative_notes", scoped), "post-op notes")
    milestones = _read(
        await storage.select("recovery_milestones", scoped, columns=("id", "achieved")), "milestones"
    )
    latest = _read(
        await storage.select("medical_records", scoped, order=Order("created_at"), limit=1,
                             columns=("diagnosis",)),
        "medical records",
    )

    total = len(milestones)
    achieved = sum(1 for m in milestones if m["achieved"])
    return PatientOverview(
        patient=patient,
        medical_records=records,
        surgeries=surgeries,
        post_op_notes=notes,
        milestones_total=total,
        milestones_achieved=achieved,
        progress_percentage=round(achieved / total * 100) if total else 0,
        latest_diagnosis=latest[0]["diagnosis"] if latest else None,
    )


# --- related records ---

async def create_medical_record(
    storage: Storage, patient_id: str, body: MedicalRecordCreate, created_by: str | None = None
) -> MedicalRecord:
    await _patient_row(storage, patient_id)
    row = _written(
        await storage.insert(
            "medical_records", {**body.model_dump(), "patient_id": patient_id, "created_by": created_by}
        ),
        "medical_records",
    )
    return MedicalRecord.model_validate(row)


async def list_medical_records(storage: Storage, patient_id: str) -> list[MedicalRecord]:
    await _patient_row(storage, patient_id)
    rows = _read(
        await storage.select("medical_records", [eq("patient_id", patient_id)], order=Order("created_at")),
        "medical records",
    )
    return [MedicalRecord.model_validate(r) for r in rows]


async def create_surgery(
    storage: Storage, patient_id: str, body: SurgeryCreate, created_by: str | None = None
) -> Surgery:
    await _patient_row(storage, patient_id)
    row = _written(
        await storage.insert(
            "surgeries", {**body.model_dump(), "patient_id": patient_id, "created_by": created_by}
        ),
        "surgeries",
    )
    return Surgery.model_validate(row)


async def list_surgeries(storage: Storage, patient_id: str) -> list[Surgery]:
    await _patient_row(storage, patient_id)
    rows = _read(
        await storage.select("surgeries", [eq("patient_id", patient_id)], order=Order("surgery_date")),
        "surgeries",
    )
    return [Surgery.model_validate(r) for r in rows]


async def create_post_op_note(
    storage: Storage, patient_id: str, body: PostOperativeNoteCreate, created_by: str | None = None
) -> PostOperativeNote:
    await _patient_row(storage, patient_id)
    if body.surgery_id:
        surgery = _read(await storage.select_one("surgeries", [eq("id", body.surgery_id)]), "surgery")
        if not surgery or surgery["patient_id"] != patient_id:
            raise RecordValidationError("Surgery does not belong to this patient.")

    values = body.model_dump(exclude={"vital_signs"})
    values["vital_signs"] = body.vital_signs.model_dump(exclude_none=True)
    row = _written(
        await storage.insert(
            "post_operative_notes", {**values, "patient_id": patient_id, "created_by": created_by}
        ),
        "post_operative_notes",
    )
    return PostOperativeNote.model_validate(row)


async def list_post_op_notes(storage: Storage, patient_id: str) -> list[PostOperativeNote]:
    await _patient_row(storage, patient_id)
    rows = _read(
        await storage.select(
            "post_operative_notes",
            [eq("patient_id", patient_id)],
            order=Order("day_number", descending=False),
        ),
        "post-op notes",
    )
    return [PostOperativeNote.model_validate(r) for r in rows]


async def create_milestone(storage: Storage, patient_id: str, body: RecoveryMilestoneCreate) -> RecoveryMilestone:
    await _patient_row(storage, patient_id)
    row = _written(
        await storage.insert("recovery_milestones", {**body.model_dump(), "patient_id": patient_id}),
        "recovery_milestones",
    )
    return RecoveryMilestone.model_validate(row)


async def list_milestones(storage: Storage, patient_id: str) -> list[RecoveryMilestone]:
    await _patient_row(storage, patient_id)
    rows = _read(
        await storage.select("recovery_milestones", [eq("patient_id", patient_id)], order=Order("created_at")),
        "milestones",
    )
    return [RecoveryMilestone.model_validate(r) for r in rows]


async def toggle_milestone(storage: Storage, milestone_id: str) -> RecoveryMilestone:
    """Flip ``achieved``; achieving stamps ``achieved_date``, un-achieving clears it."""
    row = _read(await storage.select_one("recovery_milestones", [eq("id", milestone_id)]), "milestone")
    if not row:
        raise RecordNotFoundError("Milestone not found")

    achieved = not row["achieved"]
    updated = _written(
        await storage.update(
            "recovery_milestones",
            milestone_id,
            {"achieved": achieved, "achieved_date": now_iso() if achieved else None},
        ),
        "recovery_milestones",
    )
    logger.info("Milestone %s marked %s", milestone_id, "achieved" if achieved else "not achieved")
    return RecoveryMilestone.model_validate(updated)
