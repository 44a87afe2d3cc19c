"""Tests for the chat response templates and knowledge tables."""

from datetime import date

import pytest

from carechat.services import formatter as fmt
from carechat.services.knowledge import (
    DISEASE_INFO,
    SURGERY_INFO,
    disease_mentioned_in,
    find_disease_info,
    find_surgery_info,
)


def patient(name, **extra):
    return {"id": name.lower(), "full_name": name, "date_of_birth": "1990-05-01", **extra}


class TestDates:
    def test_age_is_year_difference(self):
        assert fmt.calculate_age("1990-05-01", today=date(2026, 1, 2)) == 36

    def test_age_unknown(self):
        assert fmt.calculate_age(None) is None
        assert fmt.calculate_age("not a date") is None

    def test_format_date(self):
        assert fmt.format_date("2026-01-10T09:00:00+00:00") == "2026-01-10"
        assert fmt.format_date(None) == "Unknown"


class TestPatientTemplates:
    def test_age_line(self):
        expected = f"Priya Sharma — Age: {date.today().year - 1990}"
        assert fmt.format_age_line(patient("Priya Sharma")) == expected

    def test_not_found(self):
        assert fmt.format_not_found("zed") == 'No patients found matching "zed".'

    def test_disambiguation_caps_at_ten(self):
        rows = [patient(f"Sam {i}", department="oncology") for i in range(14)]
        text = fmt.format_disambiguation("sam", rows)
        assert text.startswith('Multiple patients found matching "sam":')
        assert text.count("• ") == 10
        assert "Sam 0 — oncology — Age:" in text
        assert "full name" in text

    def test_disambiguation_without_department(self):
        text = fmt.format_disambiguation("sam", [patient("Sam A"), patient("Sam B")], with_department=False)
        assert "• Sam A — Age:" in text
        assert "Unknown dept" not in text

    def test_department_list(self):
        rows = [
            patient("Ann", status="recovering", admission_date="2026-01-05T10:00:00+00:00"),
            patient("Bob", status="admitted", admission_date=None),
        ]
        text = fmt.format_department_list("cardiology", rows)
        assert text.splitlines() == [
            "Patients in cardiology (showing up to 10):",
            "• Ann — recovering, admitted 2026-01-05",
            "• Bob — admitted, admitted admission date unknown",
        ]

    def test_department_list_empty(self):
        assert fmt.format_department_list("oncology", []) == "No patients found in oncology."

    def test_patient_count(self):
        text = fmt.format_patient_count([patient("Ann"), patient("Bob")])
        assert text == "Total patients: 2\n\n• Ann\n• Bob"


class TestClinicalTemplates:
    def test_vitals(self):
        vitals = {"blood_pressure": "120/80", "heart_rate": 72, "temperature": 36.9, "oxygen_saturation": 98}
        assert fmt.format_vitals(vitals) == "BP: 120/80, HR: 72, Temp: 36.9°C, SpO2: 98%"
        assert fmt.format_vitals(None) == ""

    def test_latest_note(self):
        note = {"day_number": 3, "vital_signs": {"heart_rate": 80}, "pain_level": 0, "wound_condition": "Clean"}
        text = fmt.format_latest_note(note)
        assert text.splitlines() == ["Latest post-op note (day 3):", "HR: 80", "Pain level: 0", "Wound: Clean"]

    def test_latest_note_vitals_match_vitals_summary(self):
        vitals = {"blood_pressure": "118/76", "heart_rate": 88, "temperature": 37.2, "oxygen_saturation": 96}
        lines = fmt.format_latest_note({"day_number": 1, "vital_signs": vitals}).splitlines()[1:]
        assert ", ".join(lines) == fmt.format_vitals(vitals)

    def test_contact_lines_only_requested_fields(self):
        pii = {"phone": "555", "email": "a@b.c", "address": None}
        assert fmt.contact_lines(pii, ("address", "phone")) == ["Phone: 555"]

    def test_milestones(self):
        rows = [
            {"milestone_type": "Walk", "milestone_description": "10 m unaided", "achieved": True},
            {"milestone_type": "Diet", "milestone_description": "Soft diet", "achieved": False},
        ]
        text = fmt.format_milestones(rows, patient("Ann"))
        assert text.startswith("Recovery progress for Ann: 1/2 achieved")
        assert "• Walk — 10 m unaided (achieved)" in text
        assert "• Diet — Soft diet" in text

    def test_condition_explainer_uses_disease_table(self):
        record = {"diagnosis": "Atrial fibrillation", "medications": "Apixaban"}
        text = fmt.format_condition_explainer(record)
        assert DISEASE_INFO["atrial fibrillation"].summary in text
        assert "Current Medications: Apixaban" in text

    def test_condition_explainer_unknown_diagnosis(self):
        text = fmt.format_condition_explainer({"diagnosis": "Gout"})
        assert "Available Clinical Information" in text

    def test_surgery_history_includes_overview(self):
        surgeries = [{"id": "s1", "surgery_type": "Laparoscopic Appendectomy", "surgeon_name": "Dr. Iyer"}]
        text = fmt.format_surgery_history(surgeries, {}, include_learning=True)
        assert "Procedure Overview:" in text
        assert SURGERY_INFO["appendectomy"].learning in text
        assert "Surgical Process:" not in text

    def test_surgery_teaching_sections(self):
        info = SURGERY_INFO["appendectomy"]
        text = fmt.format_surgery_teaching("appendectomy", info)
        assert text == (
            f"About appendectomy:\nPurpose: {info.purpose}\n\n"
            f"Procedure Overview:\n{info.procedure}\n\n"
            f"Process:\n{info.process}\n\n"
            f"Risks:\n{info.risks}\n\n"
            f"Precautions:\n{info.precautions}\n\n"
            f"Recovery:\n{info.recovery}\n\n"
            f"Learning points for interns:\n{info.learning}"
        )


class TestKnowledge:
    def test_surgery_lookup_matches_either_way(self):
        assert find_surgery_info("Laparoscopic Appendectomy")[0] == "appendectomy"
        assert find_surgery_info("mastectomy")[0] == "mastectomy"
        assert find_surgery_info("knee replacement") is None

    def test_disease_lookup(self):
        assert find_disease_info("Coronary artery disease, stable")[0] == "coronary artery disease"

    def test_disease_mentioned_requires_key_in_message(self):
        assert disease_mentioned_in("tell me about Pneumonia") == "pneumonia"
        assert disease_mentioned_in("pneu") is None

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            SURGERY_INFO["new"] = None
