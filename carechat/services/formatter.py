"""Plain-text answer templates for the chat assistant.

Everything here is pure: rows in, line-oriented text out. Rows are the dicts
returned by :class:`carechat.storage.Storage`.
"""

from datetime import date, datetime
from typing import Any, Iterable, Sequence

from carechat.services.knowledge import DiseaseInfo, SurgeryInfo, find_disease_info, find_surgery_info

Row = dict[str, Any]

MAX_LIST_ROWS = 10

NO_TOPIC_INFO = (
    "I do not have structured information on that topic locally. I can still look up patient "
    "records or provide basic guidance based on available data."
)


def _parse(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def format_date(value: str | None, default: str = "Unknown") -> str:
    parsed = _parse(value)
    return parsed.strftime("%Y-%m-%d") if parsed else default


def format_datetime(value: str | None, default: str = "date/time unknown") -> str:
    parsed = _parse(value)
    return parsed.strftime("%Y-%m-%d %H:%M") if parsed else default


def calculate_age(date_of_birth: str | None, today: date | None = None) -> int | None:
    """Age as current year minus birth year."""
    parsed = _parse(date_of_birth)
    if parsed is None:
        return None
    return (today or date.today()).year - parsed.year


def _age_text(patient: Row) -> str:
    age = calculate_age(patient.get("date_of_birth"))
    return str(age) if age is not None else "Unknown"


def _or(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return str(value)


def format_not_found(name: str) -> str:
    return f'No patients found matching "{name}".'


def format_age_line(patient: Row) -> str:
    return f"{patient['full_name']} — Age: {_age_text(patient)}"


def format_disambiguation(name: str, patients: Sequence[Row], with_department: bool = True) -> str:
    rows = []
    for p in patients[:MAX_LIST_ROWS]:
        if with_department:
            rows.append(f"• {p['full_name']} — {_or(p.get('department'), 'Unknown dept')} — Age: {_age_text(p)}")
        else:
            rows.append(f"• {p['full_name']} — Age: {_age_text(p)}")
    return (
        f'Multiple patients found matching "{name}":\n'
        + "\n".join(rows)
        + "\n\nPlease repeat with the full name or select the patient in the UI for detailed info."
    )


def format_patient_count(patients: Sequence[Row]) -> str:
    if not patients:
        return "No patients found."
    names = "\n• ".join(p["full_name"] for p in patients)
    return f"Total patients: {len(patients)}\n\n• {names}"


def format_department_list(department: str, patients: Sequence[Row]) -> str:
    if not patients:
        return f"No patients found in {department}."
    lines = []
    for p in patients[:MAX_LIST_ROWS]:
        admitted = format_date(p.get("admission_date"), "admission date unknown")
        lines.append(f"• {p['full_name']} — {_or(p.get('status'), 'status unknown')}, admitted {admitted}")
    return f"Patients in {department} (showing up to {MAX_LIST_ROWS}):\n" + "\n".join(lines)


def format_patient_search(name: str, patients: Sequence[Row]) -> str:
    if not patients:
        return format_not_found(name)
    blocks = []
    for p in patients[:MAX_LIST_ROWS]:
        lines = [
            f"• {p['full_name']}",
            f"    Department: {_or(p.get('department'), 'Not specified')}",
            f"    Status: {_or(p.get('status'), 'Not specified')}",
        ]
        if p.get("admission_date"):
            lines.append(f"    Admitted: {format_date(p['admission_date'])}")
        blocks.append("\n".join(lines))
    return f'Found {len(blocks)} patient(s) matching "{name}":\n' + "\n\n".join(blocks)


def format_brief_patient(patient: Row) -> str:
    return (
        f"Found patient: {patient['full_name']} — Department: {_or(patient.get('department'), 'N/A')}"
        f" — Status: {_or(patient.get('status'), 'N/A')}"
    )


# --- contact / PII ---

_CONTACT_LABELS = {"address": "Address", "phone": "Phone", "email": "Email"}


def contact_lines(pii: Row, fields: Iterable[str]) -> list[str]:
    lines = []
    for name in fields:
        value = pii.get(name)
        if value:
            lines.append(f"{_CONTACT_LABELS[name]}: {value}")
    return lines


def format_contact_card(patient: Row) -> str:
    return (
        f"Contact for {patient['full_name']}:\n"
        f"Phone: {_or(patient.get('phone'), 'Not recorded')}\n"
        f"Email: {_or(patient.get('email'), 'Not recorded')}\n"
        f"Address: {_or(patient.get('address'), 'Not recorded')}\n"
        f"Emergency contact: {_or(patient.get('emergency_contact_name'), 'Not recorded')}"
        f" — {_or(patient.get('emergency_contact_phone'), 'Not recorded')}"
    )


def format_selected_field(patient: Row, field: str) -> str:
    if field == "age":
        return f"Age: {_age_text(patient)} (DOB: {format_date(patient.get('date_of_birth'), 'unknown')})"
    if field == "blood_type":
        return f"Blood type: {_or(patient.get('blood_type'), 'Not recorded')}"
    if field == "phone":
        return (
            f"Phone: {_or(patient.get('phone'), 'Not recorded')}\n"
            f"Emergency contact: {_or(patient.get('emergency_contact_name'), 'Not recorded')}"
            f" — {_or(patient.get('emergency_contact_phone'), 'Not recorded')}"
        )
    if field == "email":
        return f"Email: {_or(patient.get('email'), 'Not recorded')}"
    return f"Address: {_or(patient.get('address'), 'Not recorded')}"


# --- vitals / post-op ---

def _vital_parts(vitals: dict | None) -> list[str]:
    vitals = vitals or {}
    parts = []
    if vitals.get("blood_pressure"):
        parts.append(f"BP: {vitals['blood_pressure']}")
    if vitals.get("heart_rate"):
        parts.append(f"HR: {vitals['heart_rate']}")
    if vitals.get("temperature") is not None:
        parts.append(f"Temp: {vitals['temperature']}°C")
    if vitals.get("oxygen_saturation") is not None:
        parts.append(f"SpO2: {vitals['oxygen_saturation']}%")
    return parts


def format_vitals(vitals: dict | None) -> str:
    return ", ".join(_vital_parts(vitals))


def _note_line(note: Row, with_vitals: bool = False) -> str:
    line = f"• Day {_or(note.get('day_number'), '?')} — "
    if with_vitals:
        line += f"Vitals: {format_vitals(note.get('vital_signs')) or 'not recorded'} | "
    line += f"Pain: {_or(note.get('pain_level'), 'N/A')} | Wound: {_or(note.get('wound_condition'), 'N/A')}"
    if note.get("complications"):
        line += f" | Complications: {note['complications']}"
    return line


def format_post_op_notes(patient: Row, notes: Sequence[Row]) -> str:
    if not notes:
        return f"No post-operative notes found for {patient['full_name']}."
    lines = [_note_line(n, with_vitals=True) for n in notes]
    return f"Post-operative notes for {patient['full_name']} (most recent first):\n" + "\n".join(lines)


def format_latest_note(note: Row) -> str:
    lines = _vital_parts(note.get("vital_signs"))
    if note.get("pain_level") is not None:
        lines.append(f"Pain level: {note['pain_level']}")
    if note.get("mobility_status"):
        lines.append(f"Mobility: {note['mobility_status']}")
    if note.get("wound_condition"):
        lines.append(f"Wound: {note['wound_condition']}")
    if note.get("complications"):
        lines.append(f"Complications: {note['complications']}")
    return f"Latest post-op note (day {note.get('day_number')}):\n" + "\n".join(lines)


# --- surgeries ---

def format_patient_surgeries(patient: Row, surgeries: Sequence[Row], latest_notes: dict[str, Row]) -> str:
    """Surgeries for a patient found by name, with teaching material and latest post-op state."""
    if not surgeries:
        return f"No surgeries found for {patient['full_name']}."
    out = f"Surgeries for {patient['full_name']}:\n"
    for s in surgeries:
        duration = f"{s['duration_minutes']} minutes" if s.get("duration_minutes") else "Not recorded"
        out += (
            f"\n• {s['surgery_type']} — {format_datetime(s.get('surgery_date'))}\n"
            f"  Surgeon: {_or(s.get('surgeon_name'), 'Unknown')}\n"
            f"  Duration: {duration}\n"
        )
        match = find_surgery_info(s["surgery_type"])
        if match:
            _, info = match
            out += f"  Procedure: {info.procedure}\n  Purpose: {info.purpose}\n  Learning: {info.learning}\n"
        note = latest_notes.get(s["id"])
        if note:
            out += f"  Latest post-op: {_note_line(note)[2:]}\n"
        out += "\n"
    return out.rstrip() + "\n"


def format_surgery_history(
    surgeries: Sequence[Row],
    latest_notes: dict[str, Row],
    include_process: bool = False,
    include_learning: bool = False,
) -> str:
    """Surgery history for the selected patient."""
    if not surgeries:
        return "No surgeries found for this patient."
    out = "Surgery History:\n"
    for s in surgeries:
        duration = f"{s['duration_minutes']} minutes" if s.get("duration_minutes") else "duration not recorded"
        out += (
            f"\n{s['surgery_type']}\n"
            f"Date: {format_date(s.get('surgery_date'), 'date unknown')}\n"
            f"Surgeon: {_or(s.get('surgeon_name'), 'unknown')}\n"
            f"Duration: {duration}\n"
        )
        match = find_surgery_info(s["surgery_type"])
        if match:
            _, info = match
            out += f"\nProcedure Overview:\n{info.procedure}\n"
            if include_process:
                out += f"\nSurgical Process:\n{info.process}\n"
            if include_learning:
                out += f"\nLearning Points for Interns:\n{info.learning}\n"
        note = latest_notes.get(s["id"])
        if note and (note.get("complications") or note.get("wound_condition") or note.get("notes")):
            out += "\nLatest Post-Op Status:\n"
            if note.get("complications"):
                out += f"• Complications: {note['complications']}\n"
            if note.get("wound_condition"):
                out += f"• Wound: {note['wound_condition']}\n"
            if note.get("notes"):
                out += f"• Recovery Notes: {note['notes']}\n"
        out += "\n-------------------\n"
    return out


# --- medical records / milestones ---

def format_latest_medications(record: Row, patient: Row | None = None) -> str:
    header = f"Latest medical record for {patient['full_name']}:" if patient else "Latest medical record:"
    return (
        f"{header}\n"
        f"Diagnosis: {_or(record.get('diagnosis'), 'N/A')}\n"
        f"Medications: {_or(record.get('medications'), 'No medications recorded')}"
    )


def format_milestones(milestones: Sequence[Row], patient: Row | None = None) -> str:
    achieved = sum(1 for m in milestones if m.get("achieved"))
    recent = [
        f"• {m['milestone_type']} — {m['milestone_description']}" + (" (achieved)" if m.get("achieved") else "")
        for m in milestones[:5]
    ]
    if patient:
        header = f"Recovery progress for {patient['full_name']}: {achieved}/{len(milestones)} achieved"
    else:
        header = f"Milestones: {achieved}/{len(milestones)} achieved"
    return header + "\nRecent:\n" + "\n".join(recent)


def format_condition_explainer(record: Row) -> str:
    match = find_disease_info(record.get("diagnosis") or "")
    if match:
        _, info = match
        return (
            f"Patient's Diagnosis: {record['diagnosis']}\n\n"
            f"About this condition:\n{info.summary}\n\n"
            "Clinical Context:\n"
            f"• Current Medications: {_or(record.get('medications'), 'None recorded')}\n"
            f"• Medical History: {_or(record.get('medical_history'), 'Not available')}\n"
            f"• Allergies: {_or(record.get('allergies'), 'None recorded')}\n\n"
            f"Teaching Notes for Interns:\n{info.notes}\n\n"
            f"Treatment Plan:\n{_or(record.get('treatment_plan'), 'No specific treatment plan recorded')}\n\n"
            "Key Learning Points:\n"
            "1. Observe how the theoretical knowledge applies to this real case\n"
            "2. Note any variations from typical presentation\n"
            "3. Follow the treatment response and adjust care accordingly"
        )
    return (
        f"Patient's Diagnosis: {record.get('diagnosis')}\n\n"
        "Available Clinical Information:\n"
        f"• Medications: {_or(record.get('medications'), 'None recorded')}\n"
        f"• Medical History: {_or(record.get('medical_history'), 'Not available')}\n"
        f"• Treatment Plan: {_or(record.get('treatment_plan'), 'Not specified')}\n"
        f"• Allergies: {_or(record.get('allergies'), 'None recorded')}\n\n"
        "Note: Consider researching more about this condition in medical literature for comprehensive understanding."
    )


def format_full_record(
    patient: Row,
    records: Sequence[Row],
    surgeries: Sequence[Row],
    notes: Sequence[Row],
    milestones: Sequence[Row],
) -> str:
    out = [
        f"Full record for {patient['full_name']}:",
        f"- Age: {_age_text(patient)}",
        f"- DOB: {format_date(patient.get('date_of_birth'))}",
        f"- Gender: {_or(patient.get('gender'), 'Not specified')}",
        f"- Blood type: {_or(patient.get('blood_type'), 'Not specified')}",
        f"- Department: {_or(patient.get('department'), 'Not specified')}",
        f"- Status: {_or(patient.get('status'), 'Not specified')}",
        f"- Contact: {_or(patient.get('phone'), 'Not provided')} | {_or(patient.get('email'), 'No email')}",
        f"- Address: {_or(patient.get('address'), 'Not provided')}",
        "",
    ]
    if records:
        rec = records[0]
        out += [
            "Diagnosis & Treatment:",
            f"• Diagnosis: {_or(rec.get('diagnosis'), 'Not recorded')}",
            f"• Medications: {_or(rec.get('medications'), 'Not recorded')}",
            f"• Allergies: {_or(rec.get('allergies'), 'Not recorded')}",
            f"• Treatment Plan: {_or(rec.get('treatment_plan'), 'Not recorded')}",
            "",
        ]
    if surgeries:
        out.append("Surgeries:")
        for s in surgeries:
            out.append(
                f"• {s['surgery_type']} — {format_datetime(s.get('surgery_date'))}"
                f" by {_or(s.get('surgeon_name'), 'Unknown')}"
            )
            if s.get("notes"):
                out.append(f"  Notes: {s['notes']}")
        out.append("")
    if notes:
        out.append("Recent Post-Op Notes:")
        out += [_note_line(n) for n in notes[:5]]
        out.append("")
    if milestones:
        achieved = sum(1 for m in milestones if m.get("achieved"))
        out.append(f"Recovery milestones: {achieved}/{len(milestones)} achieved")
    return "\n".join(out).rstrip()


# --- knowledge tables ---

def format_disease_info(key: str, info: DiseaseInfo) -> str:
    return f"About {key}:\n{info.summary}\n\nNotes for learners:\n{info.notes}"


def format_surgery_teaching(key: str, info: SurgeryInfo) -> str:
    return (
        f"About {key}:\n"
        f"Purpose: {info.purpose}\n\n"
        f"Procedure Overview:\n{info.procedure}\n\n"
        f"Process:\n{info.process}\n\n"
        f"Risks:\n{info.risks}\n\n"
        f"Precautions:\n{info.precautions}\n\n"
        f"Recovery:\n{info.recovery}\n\n"
        f"Learning points for interns:\n{info.learning}"
    )
