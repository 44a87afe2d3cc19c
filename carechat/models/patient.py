from pydantic import BaseModel

DEPARTMENTS = ("cardiology", "oncology", "surgery")


class PatientCreate(BaseModel):
    full_name: str
    date_of_birth: str
    gender: str
    department: str
    blood_type: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    admission_date: str | None = None
    status: str = "admitted"


class PatientUpdate(BaseModel):
    full_name: str | None = None
    date_of_birth: str | None = None
    gender: str | None = None
    department: str | None = None
    blood_type: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    admission_date: str | None = None
    status: str | None = None


class Patient(BaseModel):
    id: str
    full_name: str
    date_of_birth: str
    gender: str
    department: str
    status: str
    blood_type: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    admission_date: str | None = None
    created_by: str | None = None
    created_at: str
    updated_at: str | None = None


class PatientOverview(BaseModel):
    """Patient plus the record counts shown on the patient detail screen."""

    patient: Patient
    medical_records: int = 0
    surgeries: int = 0
    post_op_notes: int = 0
    milestones_total: int = 0
    milestones_achieved: int = 0
    progress_percentage: int = 0
    latest_diagnosis: str | None = None
