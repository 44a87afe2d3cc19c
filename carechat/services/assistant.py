"""External generative-text assistant with a local fallback.

``ask`` never raises. When the provider is unavailable, errors, times out or
returns no text, the reply is synthesised from the patient context snapshot,
or is the fixed ``FALLBACK_RESPONSE`` when there is no context.
"""

import logging

from carechat.models.context import PatientContext
from carechat.services.formatter import format_date, format_vitals
from carechat.services.llm import LLMClient, get_llm_client

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = (
    "I'm currently unable to reach the AI service. I can still help with general guidance, "
    "clarifying questions, or walk through patient data you provide. Could you please rephrase "
    "or add more details about your request?"
)

CLOSING_PROMPT = "If you want more specific data (vitals, medications, surgery notes), please ask for it directly."


def build_prompt(message: str, context: PatientContext | None = None) -> str:
    if context is None:
        return message
    return (
        f"Context: {context.model_dump_json(indent=2)}\n\n"
        f"Question: {message}\n\n"
        "Provide a helpful medical response based on the context provided."
    )


def synthesize_patient_summary(context: PatientContext) -> str:
    """Plain summary of a context snapshot, used when the assistant cannot be reached."""
    p = context.patient
    parts = [f"Patient: {p.name or 'Unknown'}"]
    if p.age is not None:
        parts.append(f"Age: {p.age}")
    if p.gender:
        parts.append(f"Gender: {p.gender}")
    if p.blood_type:
        parts.append(f"Blood type: {p.blood_type}")
    if p.department:
        parts.append(f"Department: {p.department}")
    if p.status:
        parts.append(f"Status: {p.status}")
    if p.admission_date:
        parts.append(f"Admission date: {format_date(p.admission_date)}")

    medical = context.medical_summary
    if medical:
        parts.append(f"Latest diagnosis: {medical.latest_diagnosis or 'None recorded'}")
        parts.append(f"Current medications: {medical.current_medications or 'None recorded'}")
        parts.append(f"Allergies: {medical.allergies or 'None recorded'}")

    if context.surgeries:
        ops = [
            s.type + (f" on {format_date(s.date)}" if s.date else "")
            for s in context.surgeries[:5]
        ]
        parts.append(f"Surgeries: {', '.join(ops)}")

    recovery = context.recovery_status
    if recovery:
        parts.append(f"Days post-operation: {recovery.days_post_operation}")
        vitals = format_vitals(recovery.latest_vital_signs.model_dump(exclude_none=True))
        if vitals:
            parts.append(f"Latest vitals: {vitals}")
        if recovery.latest_pain_level is not None:
            parts.append(f"Pain level: {recovery.latest_pain_level}")
        parts.append(f"Mobility: {recovery.mobility_status}")
        parts.append(f"Wound: {recovery.wound_condition}")
        parts.append(f"Complications: {recovery.complications}")

    milestones = context.milestones
    if milestones:
        parts.append(f"Milestones progress: {milestones.progress_percentage}%")
        if milestones.recent_milestones:
            recent = [
                m.type + (" (achieved)" if m.achieved else "")
                for m in milestones.recent_milestones[:3]
            ]
            parts.append(f"Recent milestones: {', '.join(recent)}")

    parts.append(CLOSING_PROMPT)
    return "\n".join(parts)


def _fallback(context: PatientContext | None) -> str:
    if context is not None:
        return synthesize_patient_summary(context)
    return FALLBACK_RESPONSE


async def ask(message: str, context: PatientContext | None = None, client: LLMClient | None = None) -> str:
    client = client or get_llm_client()
    if not client.available():
        logger.info("External assistant unavailable (provider=%s), answering from local data", client.provider)
        return _fallback(context)

    try:
        text = await client.generate_text(build_prompt(message, context))
    except Exception as exc:
        logger.error("External assistant call failed: %s", exc)
        return _fallback(context)

    if not text or not text.strip():
        logger.warning("External assistant returned empty content")
        return _fallback(context)
    return text
