import logging

from fastapi import APIRouter, Depends, HTTPException

from carechat.models.auth import Profile
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
from carechat.routers.auth import require_user
from carechat.services import records
from carechat.storage import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["patients"], dependencies=[Depends(require_user)])


async def _call(operation, *args):
    """Run a records operation, mapping its errors onto HTTP status codes."""
    try:
        return await operation(await get_storage(), *args)
    except records.RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except records.RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except records.RecordStorageError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.post("/patients", response_model=Patient)
async def create_patient(body: PatientCreate, user: Profile = Depends(require_user)):
    return await _call(records.create_patient, body, user.id)


@router.get("/patients", response_model=list[Patient])
async def list_patients(department: str | None = None, status: str | None = None):
    """List patients, newest first, optionally filtered by department and status."""
    return await _call(records.list_patients, department, status)


@router.get("/patients/{patient_id}", response_model=Patient)
async def get_patient(patient_id: str):
    return await _call(records.get_patient, patient_id)


@router.patch("/patients/{patient_id}", response_model=Patient)
async def update_patient(patient_id: str, body: PatientUpdate):
    return await _call(records.update_patient, patient_id, body)


@router.get("/patients/{patient_id}/overview", response_model=PatientOverview)
async def get_patient_overview(patient_id: str):
    """Patient plus record counts and recovery progress."""
    return await _call(records.patient_overview, patient_id)


@router.post("/patients/{patient_id}/medical-records", response_model=MedicalRecord)
async def create_medical_record(patient_id: str, body: MedicalRecordCreate, user: Profile = Depends(require_user)):
    return await _call(records.create_medical_record, patient_id, body, user.id)


@router.get("/patients/{patient_id}/medical-records", response_model=list[MedicalRecord])
async def list_medical_records(patient_id: str):
    return await _call(records.list_medical_records, patient_id)


@router.post("/patients/{patient_id}/surgeries", response_model=Surgery)
async def create_surgery(patient_id: str, body: SurgeryCreate, user: Profile = Depends(require_user)):
    return await _call(records.create_surgery, patient_id, body, user.id)


@router.get("/patients/{patient_id}/surgeries", response_model=list[Surgery])
async def list_surgeries(patient_id: str):
    return await _call(records.list_surgeries, patient_id)


@router.post("/patients/{patient_id}/post-op-notes", response_model=PostOperativeNote)
async def create_post_op_note(
    patient_id: str, body: PostOperativeNoteCreate, user: Profile = Depends(require_user)
):
    return await _call(records.create_post_op_note, patient_id, body, user.id)


@router.get("/patients/{patient_id}/post-op-notes", response_model=list[PostOperativeNote])
async def list_post_op_notes(patient_id: str):
    """Post-op notes in day order."""
    return await _call(records.list_post_op_notes, patient_id)


@router.post("/patients/{patient_id}/milestones", response_model=RecoveryMilestone)
async def create_milestone(patient_id: str, body: RecoveryMilestoneCreate):
    return await _call(records.create_milestone, patient_id, body)


@router.get("/patients/{patient_id}/milestones", response_model=list[RecoveryMilestone])
async def list_milestones(patient_id: str):
    return await _call(records.list_milestones, patient_id)


@router.post("/milestones/{milestone_id}/toggle", response_model=RecoveryMilestone)
async def toggle_milestone(milestone_id: str):
    """Flip a milestone between achieved and not achieved."""
    return await _call(records.toggle_milestone, milestone_id)
