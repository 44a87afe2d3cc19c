"""Patient context snapshot for the external assistant.

The five reads run concurrently. A failed patient read means there is no
context at all; any other failed read only drops its own section.
"""

import asyncio
import logging

from carechat.models.context import (
    MedicalSummary,
    MilestoneProgress,
    MilestoneSnapshot,
    PatientContext,
    PatientSnapshot,
    RecoveryStatus,
    SurgerySnapshot,
)
from carechat.models.records import VitalSigns
from carechat.services import fetchers
from carechat.services.formatter import calculate_age
from carechat.storage import Storage

logger = logging.getLogger(__name__)

RECENT_MILESTONES = 5


def _medical_summary(records: list[dict]) -> MedicalSummary:
    latest = records[0] if records else {}
    return MedicalSummary(
        total_records=len(records),
        latest_diagnosis=latest.get("diagnosis") or "None",
        current_medications=latest.get("medications") or "None",
        allergies=latest.get("allergies") or "None",
    )


def _recovery_status(notes: list[dict]) -> RecoveryStatus:
    if not notes:
        return RecoveryStatus()
    latest = notes[0]
    return RecoveryStatus(
        days_post_operation=latest.get("day_number") or 0,
        total_post_op_notes=len(notes),
        latest_vital_signs=VitalSigns.model_validate(latest.get("vital_signs") or {}),
        latest_pain_level=latest.get("pain_level"),
        mobility_status=latest.get("mobility_status") or "Not recorded",
        wound_condition=latest.get("wound_condition") or "Not recorded",
        complications=latest.get("complications") or "None",
    )


def _milestone_progress(milestones: list[dict]) -> MilestoneProgress:
    total = len(milestones)
    achieved = sum(1 for m in milestones if m.get("achieved"))
    return MilestoneProgress(
        total=total,
        achieved=achieved,
        progress_percentage=round(achieved / total * 100) if total else 0,
        recent_milestones=[
            MilestoneSnapshot(
                type=m["milestone_type"],
                description=m["milestone_description"],
                achieved=bool(m.get("achieved")),
                target_date=m.get("target_date"),
            )
            for m in milestones[:RECENT_MILESTONES]
        ],
    )


async def build_patient_context(storage: Storage, patient_id: str | None) -> PatientContext | None:
    if not patient_id:
        return None

    patient, records, surgeries, notes, milestones = await asyncio.gather(
        fetchers.fetch_patient(storage, patient_id),
        fetchers.fetch_medical_records(storage, patient_id),
        fetchers.fetch_surgeries(storage, patient_id),
        fetchers.fetch_post_op_notes(storage, patient_id),
        fetchers.fetch_milestones(storage, patient_id),
    )
    if not patient:
        logger.warning("No context for patient %s: patient record unavailable", patient_id)
        return None

    missing = [
        name
        for name, rows in (
            ("medical_summary", records),
            ("surgeries", surgeries),
            ("recovery_status", notes),
            ("milestones", milestones),
        )
        if rows is None
    ]
    if missing:
        logger.warning("Context for patient %s is missing sections: %s", patient_id, ", ".join(missing))

    return PatientContext(
        patient=PatientSnapshot(
            name=patient["full_name"],
            age=calculate_age(patient.get("date_of_birth")),
            gender=patient.get("gender"),
            blood_type=patient.get("blood_type"),
            department=patient.get("department"),
            status=patient.get("status"),
            admission_date=patient.get("admission_date"),
        ),
        medical_summary=_medical_summary(records) if records is not None else None,
        surgeries=[
            SurgerySnapshot(
                type=s["surgery_type"],
                date=s.get("surgery_date"),
                surgeon=s.get("surgeon_name"),
                duration=s.get("duration_minutes"),
            )
            for s in surgeries
        ] if surgeries is not None else None,
        recovery_status=_recovery_status(notes) if notes is not None else None,
        milestones=_milestone_progress(milestones) if milestones is not None else None,
    )
