"""Chat room schemas for API requests and responses."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.schemas.profile import RevealedProfile


class ChatRequestCreate(BaseModel):
    """Ask to chat with the person behind a profile."""
    profile_id: UUID


class ChatRequestResponse(BaseModel):
    room_id: UUID


class ChatRoomResponse(BaseModel):
    """Chat room state as seen by a participant."""
    id: UUID
    kind: str
    profile_id: UUID | None
    requester_id: UUID
    target_id: UUID
    status: str
    profile_revealed: bool
    profile_revealed_at: datetime | None
    reveal_requested_by: UUID | None
    last_message_at: datetime | None
    expires_at: datetime | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChatPreview(BaseModel):
    """Preview of a room for the chat list."""
    room: ChatRoomResponse
    profile_photo_url: str | None
    last_message: str | None
    unread_count: int


class ChatListResponse(BaseModel):
    rooms: list[ChatPreview]


class RevealAcceptResponse(BaseModel):
    room: ChatRoomResponse
    profile: RevealedProfile | None
