import logging

from fastapi import APIRouter, Depends

from carechat.models.auth import Profile
from carechat.models.chat import ChatHistoryItem, ChatReply, ChatRequest
from carechat.routers.auth import current_user, require_user
from carechat.services import chat
from carechat.storage import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("", response_model=ChatReply)
async def send_message(body: ChatRequest, user: Profile | None = Depends(current_user)):
    """Answer a chat message. Anonymous callers are allowed but never see contact details."""
    return await chat.handle_message(
        body.message,
        user=user,
        selected_patient_id=body.patient_id,
        storage=await get_storage(),
    )


@router.get("/history", response_model=list[ChatHistoryItem])
async def get_history(user: Profile = Depends(require_user)):
    """The caller's own chat exchanges, newest first."""
    return await chat.list_history(await get_storage(), user.id)
