"""Tests for the table-scoped storage collaborator."""

from carechat.storage import Order, eq, ilike


async def test_insert_sets_id_and_timestamps(storage, make_patient):
    row = await make_patient("Priya Sharma")
    assert row["id"]
    assert row["created_at"]
    assert row["updated_at"] == row["created_at"]
    assert row["full_name"] == "Priya Sharma"


async def test_ilike_is_case_insensitive(storage, make_patient):
    await make_patient("Priya Sharma")
    await make_patient("Arjun Mehta")

    result = await storage.select("patients", [ilike("full_name", "%PRIYA%")])
    assert result.ok
    assert [r["full_name"] for r in result.data] == ["Priya Sharma"]


async def test_select_order_and_limit(storage, make_patient):
    await make_patient("First", created_at="2026-01-01T00:00:00+00:00")
    await make_patient("Second", created_at="2026-01-02T00:00:00+00:00")
    await make_patient("Third", created_at="2026-01-03T00:00:00+00:00")

    result = await storage.select("patients", order=Order("created_at"), limit=2)
    assert [r["full_name"] for r in result.data] == ["Third", "Second"]


async def test_count(storage, make_patient):
    await make_patient("A", department="oncology")
    await make_patient("B", department="oncology")
    await make_patient("C", department="surgery")

    result = await storage.count("patients", [eq("department", "oncology")])
    assert result.data == 2


async def test_pain_level_out_of_range_rejected(storage, make_patient):
    p = await make_patient()
    result = await storage.insert(
        "post_operative_notes", {"patient_id": p["id"], "day_number": 1, "pain_level": 11}
    )
    assert not result.ok
    assert result.error == "Pain level must be between 0 and 10."

    count = await storage.count("post_operative_notes")
    assert count.data == 0


async def test_invalid_department_rejected(storage, make_patient):
    result = await storage.insert(
        "patients",
        {"full_name": "X", "date_of_birth": "1980-01-01", "gender": "male", "department": "radiology"},
    )
    assert result.error == "Department must be one of cardiology, oncology or surgery."


async def test_missing_parent_rejected(storage):
    result = await storage.insert("medical_records", {"patient_id": "nope", "diagnosis": "Flu"})
    assert result.error == "Referenced record does not exist."


async def test_unknown_column_is_an_error_not_an_exception(storage):
    result = await storage.select("patients", [eq("full_name; DROP TABLE patients", "x")])
    assert not result.ok
    assert "Unknown column" in result.error

    result = await storage.select("secrets")
    assert result.error == "Unknown table: secrets"


async def test_json_and_bool_columns_round_trip(storage, make_patient):
    p = await make_patient()
    note = await storage.insert(
        "post_operative_notes",
        {"patient_id": p["id"], "day_number": 2, "vital_signs": {"heart_rate": 88}},
    )
    assert note.data["vital_signs"] == {"heart_rate": 88}

    milestone = await storage.insert(
        "recovery_milestones",
        {"patient_id": p["id"], "milestone_type": "Walk", "milestone_description": "Corridor walk"},
    )
    assert milestone.data["achieved"] is False


async def test_update_can_clear_a_field(storage, make_patient):
    p = await make_patient(phone="555-0100")
    result = await storage.update("patients", p["id"], {"phone": None, "status": "recovering"})
    assert result.ok
    assert result.data["phone"] is None
    assert result.data["status"] == "recovering"
    assert result.data["updated_at"] >= p["updated_at"]


async def test_delete_requires_filter(storage, make_patient):
    await make_patient()
    result = await storage.delete("patients", [])
    assert not result.ok
    assert (await storage.count("patients")).data == 1
