from typing import Any

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    patient_id: str | None = None


class ChatReply(BaseModel):
    response: str
    intent: str
    source: str  # "local", "assistant" or "error"


class ChatHistoryItem(BaseModel):
    id: str
    user_id: str
    patient_id: str | None = None
    message: str
    response: str
    context_data: dict[str, Any] | None = None
    created_at: str
