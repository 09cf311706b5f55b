"""Message schemas for API requests and responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MessageCreate(BaseModel):
    """Send a message. Length is checked after trimming by the service."""
    content: str
    # Client-generated id echoed back so optimistic inserts can be reconciled
    client_id: str | None = Field(None, max_length=64)


class MessageResponse(BaseModel):
    """Message response."""
    id: UUID
    room_id: UUID
    sender_id: UUID
    content: str
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SendMessageResponse(BaseModel):
    message: MessageResponse
    contact_filtered: bool
    client_id: str | None = None


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
    has_more: bool


class MarkReadResponse(BaseModel):
    updated: int
