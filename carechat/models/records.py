from pydantic import BaseModel


class MedicalRecordCreate(BaseModel):
    diagnosis: str
    treatment_plan: str | None = None
    medications: str | None = None
    allergies: str | None = None
    medical_history: str | None = None


class MedicalRecord(MedicalRecordCreate):
    id: str
    patient_id: str
    created_by: str | None = None
    created_at: str


class SurgeryCreate(BaseModel):
    surgery_type: str
    surgery_date: str
    surgeon_name: str
    duration_minutes: int | None = None
    notes: str | None = None


class Surgery(SurgeryCreate):
    id: str
    patient_id: str
    created_by: str | None = None
    created_at: str


class VitalSigns(BaseModel):
    blood_pressure: str | None = None
    heart_rate: int | None = None
    temperature: float | None = None
    oxygen_saturation: int | None = None


class PostOperativeNoteCreate(BaseModel):
    # pain_level range (0-10) is enforced by the pain_level_range constraint.
    day_number: int
    surgery_id: str | None = None
    vital_signs: VitalSigns = VitalSigns()
    pain_level: int | None = None
    mobility_status: str | None = None
    wound_condition: str | None = None
    complications: str | None = None
    notes: str | None = None


class PostOperativeNote(PostOperativeNoteCreate):
    id: str
    patient_id: str
    created_by: str | None = None
    created_at: str


class RecoveryMilestoneCreate(BaseModel):
    milestone_type: str
    milestone_description: str
    target_date: str | None = None
    notes: str | None = None


class RecoveryMilestone(RecoveryMilestoneCreate):
    id: str
    patient_id: str
    achieved: bool = False
    achieved_date: str | None = None
    created_at: str
