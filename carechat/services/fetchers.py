"""Scoped reads used by the chat handlers.

Fetchers never raise. A storage failure is logged and returned as ``None``
so handlers can tell "the read failed" apart from "there is nothing to show"
(an empty list).
"""

import asyncio
import logging
from typing import Any

from carechat.storage import Order, Storage, StorageResult, eq, ilike

logger = logging.getLogger(__name__)

Row = dict[str, Any]

LIST_LIMIT = 10
RECENT_NOTES_LIMIT = 5

PII_COLUMNS = (
    "id", "full_name", "address", "phone", "email",
    "emergency_contact_name", "emergency_contact_phone",
)


def _rows(result: StorageResult, what: str) -> list[Row] | None:
    if not result.ok:
        logger.error("Failed to fetch %s: %s", what, result.error)
        return None
    return result.data or []


async def fetch_patient(storage: Storage, patient_id: str) -> Row | None:
    result = await storage.select_one("patients", [eq("id", patient_id)])
    if not result.ok:
        logger.error("Failed to fetch patient %s: %s", patient_id, result.error)
        return None
    return result.data


async def fetch_patient_pii(storage: Storage, patient_id: str) -> Row | None:
    result = await storage.select_one("patients", [eq("id", patient_id)], columns=PII_COLUMNS)
    if not result.ok:
        logger.error("Failed to fetch contact details for %s: %s", patient_id, result.error)
        return None
    return result.data


async def search_patients_by_name(storage: Storage, name: str, limit: int = LIST_LIMIT) -> list[Row] | None:
    result = await storage.select(
        "patients",
        [ilike("full_name", f"%{name}%")],
        order=Order("created_at"),
        limit=limit,
    )
    return _rows(result, f"patients matching {name!r}")


async def fetch_patients_by_department(
    storage: Storage, department: str, limit: int = LIST_LIMIT
) -> list[Row] | None:
    result = await storage.select(
        "patients", [eq("department", department)], order=Order("created_at"), limit=limit
    )
    return _rows(result, f"{department} patients")


async def fetch_all_patients(storage: Storage) -> list[Row] | None:
    result = await storage.select("patients", columns=("id", "full_name"), order=Order("created_at"))
    return _rows(result, "patient list")


async def fetch_medical_records(storage: Storage, patient_id: str, limit: int | None = None) -> list[Row] | None:
    result = await storage.select(
        "medical_records", [eq("patient_id", patient_id)], order=Order("created_at"), limit=limit
    )
    return _rows(result, f"medical records for {patient_id}")


async def fetch_surgeries(storage: Storage, patient_id: str) -> list[Row] | None:
    result = await storage.select("surgeries", [eq("patient_id", patient_id)], order=Order("surgery_date"))
    return _rows(result, f"surgeries for {patient_id}")


async def fetch_post_op_notes(
    storage: Storage,
    patient_id: str,
    *,
    latest_first: bool = True,
    limit: int | None = None,
    surgery_id: str | None = None,
) -> list[Row] | None:
    filters = [eq("patient_id", patient_id)]
    if surgery_id:
        filters.append(eq("surgery_id", surgery_id))
    result = await storage.select(
        "post_operative_notes",
        filters,
        order=Order("day_number", descending=latest_first),
        limit=limit,
    )
    return _rows(result, f"post-op notes for {patient_id}")


async def fetch_latest_notes_by_surgery(
    storage: Storage, patient_id: str, surgeries: list[Row]
) -> dict[str, Row]:
    """Latest post-op note per surgery id; surgeries without notes are omitted."""
    notes = await asyncio.gather(*(
        fetch_post_op_notes(storage, patient_id, surgery_id=s["id"], limit=1) for s in surgeries
    ))
    return {s["id"]: rows[0] for s, rows in zip(surgeries, notes) if rows}


async def fetch_milestones(storage: Storage, patient_id: str) -> list[Row] | None:
    result = await storage.select(
        "recovery_milestones", [eq("patient_id", patient_id)], order=Order("created_at")
    )
    return _rows(result, f"milestones for {patient_id}")


async def fetch_related_records(storage: Storage, patient_id: str) -> dict[str, list[Row] | None]:
    """Medical records, surgeries, recent notes and milestones for one patient, read concurrently."""
    records, surgeries, notes, milestones = await asyncio.gather(
        fetch_medical_records(storage, patient_id),
        fetch_surgeries(storage, patient_id),
        fetch_post_op_notes(storage, patient_id, limit=RECENT_NOTES_LIMIT),
        fetch_milestones(storage, patient_id),
    )
    return {
        "records": records,
        "surgeries": surgeries,
        "notes": notes,
        "milestones": milestones,
    }
