"""Patient context snapshot handed to the external assistant."""

from pydantic import BaseModel

from carechat.models.records import VitalSigns


class PatientSnapshot(BaseModel):
    name: str
    age: int | None = None
    gender: str | None = None
    blood_type: str | None = None
    department: str | None = None
    status: str | None = None
    admission_date: str | None = None


class MedicalSummary(BaseModel):
    total_records: int = 0
    latest_diagnosis: str = "None"
    current_medications: str = "None"
    allergies: str = "None"


class SurgerySnapshot(BaseModel):
    type: str
    date: str | None = None
    surgeon: str | None = None
    duration: int | None = None


class RecoveryStatus(BaseModel):
    days_post_operation: int = 0
    total_post_op_notes: int = 0
    latest_vital_signs: VitalSigns = VitalSigns()
    latest_pain_level: int | None = None
    mobility_status: str = "Not recorded"
    wound_condition: str = "Not recorded"
    complications: str = "None"


class MilestoneSnapshot(BaseModel):
    type: str
    description: str
    achieved: bool = False
    target_date: str | None = None


class MilestoneProgress(BaseModel):
    total: int = 0
    achieved: int = 0
    progress_percentage: int = 0
    recent_milestones: list[MilestoneSnapshot] = []


class PatientContext(BaseModel):
    """Sections left as None could not be loaded for this request."""

    patient: PatientSnapshot
    medical_summary: MedicalSummary | None = None
    surgeries: list[SurgerySnapshot] | None = None
    recovery_status: RecoveryStatus | None = None
    milestones: MilestoneProgress | None = None
