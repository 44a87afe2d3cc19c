"""Local answers for classified chat intents.

Each handler takes the classified :class:`Intent`, the message context and a
:class:`Storage` and returns the reply text. ``HANDLERS`` maps every local
intent kind to its handler; ``IntentKind.EXTERNAL`` has none and is answered
by the external assistant instead.
"""

import logging
from typing import Awaitable, Callable

from carechat.services import fetchers
from carechat.services import formatter as fmt
from carechat.services.intents import Intent, IntentKind, MessageContext
from carechat.services.knowledge import DISEASE_INFO, find_disease_info, find_surgery_info
from carechat.storage import Storage

logger = logging.getLogger(__name__)

Handler = Callable[[Intent, MessageContext, Storage], Awaitable[str]]

STORAGE_APOLOGY = "I encountered an error while reading patient records. Please try again."
SELECTED_NOT_FOUND = "No patient selected or patient record not found."

PII_SIGNED_OUT = "I cannot provide personal contact details unless you are signed in with appropriate access."
PII_NO_SUBJECT = "Please select a patient or include a patient name when requesting contact details."
PII_SELECTED_MISSING = "No contact information available for the selected patient."
PII_NO_FIELDS = "No matching contact fields found for this patient."


async def _resolve_by_name(
    storage: Storage, name: str, with_department: bool = True
) -> tuple[dict | None, str | None]:
    """Look up exactly one patient by name.

    Returns ``(patient, None)`` on a unique match, otherwise ``(None, reply)``
    where reply is the not-found text, a disambiguation list, or an apology.
    """
    patients = await fetchers.search_patients_by_name(storage, name)
    if patients is None:
        return None, STORAGE_APOLOGY
    if not patients:
        return None, fmt.format_not_found(name)
    if len(patients) > 1:
        return None, fmt.format_disambiguation(name, patients, with_department=with_department)
    return patients[0], None


# --- 1. contact details ---

async def handle_pii(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    if not ctx.authenticated:
        return PII_SIGNED_OUT
    fields = intent.params.get("fields", ())

    if ctx.selected_patient_id:
        pii = await fetchers.fetch_patient_pii(storage, ctx.selected_patient_id)
        if not pii:
            return PII_SELECTED_MISSING
        lines = fmt.contact_lines(pii, fields)
        return "\n".join(lines) if lines else PII_NO_FIELDS

    name = intent.params.get("name")
    if not name:
        return PII_NO_SUBJECT
    patient, reply = await _resolve_by_name(storage, name)
    if reply:
        return reply
    lines = fmt.contact_lines(patient, fields)
    if not lines:
        return f"No contact details found for {patient['full_name']}."
    return f"Contact details for {patient['full_name']}:\n" + "\n".join(lines)


# --- 2-3. reference and aggregate answers ---

async def handle_disease_info(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    key = intent.params["key"]
    return fmt.format_disease_info(key, DISEASE_INFO[key])


async def handle_patient_count(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    patients = await fetchers.fetch_all_patients(storage)
    if patients is None:
        return STORAGE_APOLOGY
    return fmt.format_patient_count(patients)


# --- 4-5. name-scoped lookups ---

async def _full_record(storage: Storage, patient: dict) -> str:
    related = await fetchers.fetch_related_records(storage, patient["id"])
    return fmt.format_full_record(
        patient,
        related["records"] or [],
        related["surgeries"] or [],
        related["notes"] or [],
        related["milestones"] or [],
    )


async def handle_full_details(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    patient, reply = await _resolve_by_name(storage, intent.params["name"])
    if reply:
        return reply
    return await _full_record(storage, patient)


async def _surgeries_for(storage: Storage, patient: dict) -> str:
    surgeries = await fetchers.fetch_surgeries(storage, patient["id"])
    if surgeries is None:
        return STORAGE_APOLOGY
    latest = await fetchers.fetch_latest_notes_by_surgery(storage, patient["id"], surgeries)
    return fmt.format_patient_surgeries(patient, surgeries, latest)


async def _post_op_for(storage: Storage, patient: dict) -> str:
    notes = await fetchers.fetch_post_op_notes(storage, patient["id"], limit=fetchers.LIST_LIMIT)
    if notes is None:
        return STORAGE_APOLOGY
    return fmt.format_post_op_notes(patient, notes)


async def _recovery_for(storage: Storage, patient: dict) -> str:
    milestones = await fetchers.fetch_milestones(storage, patient["id"])
    if milestones is None:
        return STORAGE_APOLOGY
    if not milestones:
        return f"No recovery milestones found for {patient['full_name']}."
    return fmt.format_milestones(milestones, patient)


async def _meds_for(storage: Storage, patient: dict) -> str:
    records = await fetchers.fetch_medical_records(storage, patient["id"], limit=5)
    if records is None:
        return STORAGE_APOLOGY
    if not records:
        return f"No medical records found for {patient['full_name']}."
    return fmt.format_latest_medications(records[0], patient)


async def _vitals_for(storage: Storage, patient: dict) -> str:
    notes = await fetchers.fetch_post_op_notes(storage, patient["id"], limit=1)
    if notes is None:
        return STORAGE_APOLOGY
    if not notes:
        return f"No post-operative notes found for {patient['full_name']}."
    return f"{patient['full_name']}: " + fmt.format_latest_note(notes[0])


async def handle_name_action(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    patient, reply = await _resolve_by_name(storage, intent.params["name"])
    if reply:
        return reply

    action = intent.params["action"]
    if action == "age":
        return fmt.format_age_line(patient)
    if action == "contact":
        if not ctx.authenticated:
            return PII_SIGNED_OUT
        return fmt.format_contact_card(patient)
    if action == "surgery":
        return await _surgeries_for(storage, patient)
    if action == "post_op":
        return await _post_op_for(storage, patient)
    if action == "recovery":
        return await _recovery_for(storage, patient)
    if action == "meds":
        return await _meds_for(storage, patient)
    if action == "vitals":
        return await _vitals_for(storage, patient)
    return fmt.format_brief_patient(patient)


# --- 6. department listing ---

async def handle_department_list(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    department = intent.params["department"]
    patients = await fetchers.fetch_patients_by_department(storage, department)
    if patients is None:
        return STORAGE_APOLOGY
    return fmt.format_department_list(department, patients)


# --- 7. single field of the selected patient ---

async def handle_selected_field(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    patient = await fetchers.fetch_patient(storage, ctx.selected_patient_id)
    if not patient:
        return SELECTED_NOT_FOUND
    return fmt.format_selected_field(patient, intent.params["field"])


# --- 8. teaching ---

async def handle_teach(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    topic = intent.params["topic"]
    surgery = find_surgery_info(topic)
    if surgery:
        return fmt.format_surgery_teaching(*surgery)
    disease = find_disease_info(topic)
    if disease:
        return fmt.format_disease_info(*disease)
    return fmt.NO_TOPIC_INFO


# --- 9-10. quick age and search ---

async def handle_name_age(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    patient, reply = await _resolve_by_name(storage, intent.params["name"], with_department=False)
    if reply:
        return reply
    return fmt.format_age_line(patient)


async def handle_patient_search(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    name = intent.params["name"]
    patients = await fetchers.search_patients_by_name(storage, name)
    if patients is None:
        return STORAGE_APOLOGY
    return fmt.format_patient_search(name, patients)


# --- 11. selected-patient lookups ---

async def handle_selected_all_info(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    patient = await fetchers.fetch_patient(storage, ctx.selected_patient_id)
    if not patient:
        return SELECTED_NOT_FOUND
    return await _full_record(storage, patient)


async def handle_selected_condition(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    records = await fetchers.fetch_medical_records(storage, ctx.selected_patient_id, limit=1)
    if records is None:
        return STORAGE_APOLOGY
    if not records:
        return "No medical records found for this patient."
    return fmt.format_condition_explainer(records[0])


async def handle_selected_surgeries(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    patient_id = ctx.selected_patient_id
    surgeries = await fetchers.fetch_surgeries(storage, patient_id)
    if surgeries is None:
        return STORAGE_APOLOGY
    latest = await fetchers.fetch_latest_notes_by_surgery(storage, patient_id, surgeries)
    return fmt.format_surgery_history(
        surgeries,
        latest,
        include_process=intent.params.get("include_process", False),
        include_learning=intent.params.get("include_learning", False),
    )


async def handle_selected_vitals(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    notes = await fetchers.fetch_post_op_notes(
        storage, ctx.selected_patient_id, limit=fetchers.RECENT_NOTES_LIMIT
    )
    if notes is None:
        return STORAGE_APOLOGY
    if not notes:
        return "No post-operative notes found for this patient."
    return fmt.format_latest_note(notes[0])


async def handle_selected_medications(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    records = await fetchers.fetch_medical_records(storage, ctx.selected_patient_id, limit=5)
    if records is None:
        return STORAGE_APOLOGY
    if not records:
        return "No medical records found for this patient."
    return fmt.format_latest_medications(records[0])


async def handle_selected_milestones(intent: Intent, ctx: MessageContext, storage: Storage) -> str:
    milestones = await fetchers.fetch_milestones(storage, ctx.selected_patient_id)
    if milestones is None:
        return STORAGE_APOLOGY
    if not milestones:
        return "No recovery milestones found for this patient."
    return fmt.format_milestones(milestones)


HANDLERS: dict[IntentKind, Handler] = {
    IntentKind.PII: handle_pii,
    IntentKind.DISEASE_INFO: handle_disease_info,
    IntentKind.PATIENT_COUNT: handle_patient_count,
    IntentKind.FULL_DETAILS: handle_full_details,
    IntentKind.NAME_ACTION: handle_name_action,
    IntentKind.DEPARTMENT_LIST: handle_department_list,
    IntentKind.SELECTED_FIELD: handle_selected_field,
    IntentKind.TEACH: handle_teach,
    IntentKind.NAME_AGE: handle_name_age,
    IntentKind.PATIENT_SEARCH: handle_patient_search,
    IntentKind.SELECTED_ALL_INFO: handle_selected_all_info,
    IntentKind.SELECTED_CONDITION: handle_selected_condition,
    IntentKind.SELECTED_SURGERIES: handle_selected_surgeries,
    IntentKind.SELECTED_VITALS: handle_selected_vitals,
    IntentKind.SELECTED_MEDICATIONS: handle_selected_medications,
    IntentKind.SELECTED_MILESTONES: handle_selected_milestones,
}


async def answer_locally(intent: Intent, ctx: MessageContext, storage: Storage) -> str | None:
    """Run the handler for ``intent``; None when the intent has no local handler."""
    handler = HANDLERS.get(intent.kind)
    if handler is None:
        return None
    logger.info("Answering %s locally", intent.kind.value)
    return await handler(intent, ctx, storage)
