"""Chat pipeline: classify, answer locally or ask the external assistant, log."""

import logging

from carechat.models.auth import Profile
from carechat.models.chat import ChatHistoryItem, ChatReply
from carechat.models.context import PatientContext
from carechat.services.assistant import ask
from carechat.services.context import build_patient_context
from carechat.services.handlers import answer_locally
from carechat.services.intents import IntentKind, MessageContext, classify
from carechat.services.llm import LLMClient
from carechat.storage import Order, Storage, eq, get_storage

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


def error_reply(exc: Exception) -> str:
    detail = str(exc) or exc.__class__.__name__
    return f"I encountered an error processing your request: {detail}. Please try again."


async def record_exchange(
    storage: Storage,
    *,
    user_id: str,
    patient_id: str | None,
    message: str,
    response: str,
    context: PatientContext | None,
) -> None:
    result = await storage.insert(
        "chat_history",
        {
            "user_id": user_id,
            "patient_id": patient_id,
            "message": message,
            "response": response,
            "context_data": context.model_dump() if context else None,
        },
    )
    if not result.ok:
        logger.warning("Could not save chat exchange for user %s: %s", user_id, result.error)


async def handle_message(
    message: str,
    *,
    user: Profile | None = None,
    selected_patient_id: str | None = None,
    storage: Storage | None = None,
    client: LLMClient | None = None,
) -> ChatReply:
    try:
        storage = storage or await get_storage()
        ctx = MessageContext(
            text=message,
            selected_patient_id=selected_patient_id,
            user_id=user.id if user else None,
        )
        intent = classify(ctx)
        logger.info("Chat message classified as %s", intent.kind.value)

        context = None
        response = await answer_locally(intent, ctx, storage)
        if response is not None:
            source = "local"
        else:
            context = await build_patient_context(storage, selected_patient_id)
            response = await ask(message, context, client)
            source = "assistant"

        if user:
            await record_exchange(
                storage,
                user_id=user.id,
                patient_id=selected_patient_id,
                message=message,
                response=response,
                context=context,
            )
        return ChatReply(response=response, intent=intent.kind.value, source=source)
    except Exception as exc:
        logger.exception("Chat pipeline failed")
        return ChatReply(response=error_reply(exc), intent=IntentKind.EXTERNAL.value, source="error")


async def list_history(storage: Storage, user_id: str, limit: int = HISTORY_LIMIT) -> list[ChatHistoryItem]:
    result = await storage.select(
        "chat_history", [eq("user_id", user_id)], order=Order("created_at"), limit=limit
    )
    if not result.ok:
        logger.error("Failed to load chat history for %s: %s", user_id, result.error)
        return []
    return [ChatHistoryItem.model_validate(row) for row in result.data]
