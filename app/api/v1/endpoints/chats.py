from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.database import get_db
from app.schemas.chat import (
    ChatListResponse,
    ChatPreview,
    ChatRequestCreate,
    ChatRequestResponse,
    ChatRoomResponse,
    RevealAcceptResponse,
)
from app.schemas.message import (
    MarkReadResponse,
    MessageCreate,
    MessageListResponse,
    MessageResponse,
    SendMessageResponse,
)
from app.schemas.profile import RevealedProfile
from app.schemas.user import CurrentUser
from app.services import chat_request_service, chat_room_service, message_service

router = APIRouter(prefix="", tags=["chats"])


@router.post(
    "/requests", response_model=ChatRequestResponse, status_code=status.HTTP_201_CREATED
)
async def request_chat(
    request: ChatRequestCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ChatRequestResponse:
    """Ask the person behind a profile to chat. Creates a pending room."""
    room = await chat_request_service.request_chat(db, request.profile_id, current_user.id)
    return ChatRequestResponse(room_id=room.id)


@router.get("/", response_model=ChatListResponse)
async def list_chats(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ChatListResponse:
    """All rooms the user takes part in, most recently active first."""
    previews = await chat_room_service.get_chat_previews(db, current_user.id)
    return ChatListResponse(
        rooms=[
            ChatPreview(
                room=ChatRoomResponse.model_validate(preview["room"]),
                profile_photo_url=preview["profile_photo_url"],
                last_message=preview["last_message"],
                unread_count=preview["unread_count"],
            )
            for preview in previews
        ]
    )


@router.get("/support", response_model=ChatRoomResponse)
async def open_support_chat(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ChatRoomResponse:
    room = await chat_room_service.open_support_room(db, current_user.id)
    return ChatRoomResponse.model_validate(room)


@router.get("/{room_id}", response_model=ChatRoomResponse)
async def get_chat(
    room_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ChatRoomResponse:
    room = await chat_room_service.get_room_for_participant(db, room_id, current_user.id)
    return ChatRoomResponse.model_validate(room)


@router.post("/{room_id}/accept", response_model=ChatRoomResponse)
async def accept_chat(
    room_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ChatRoomResponse:
    """Target accepts a pending request; the 48 hour window starts now."""
    room = await chat_room_service.accept_chat_request(db, room_id, current_user.id)
    return ChatRoomResponse.model_validate(room)


@router.post("/{room_id}/reject", response_model=ChatRoomResponse)
async def reject_chat(
    room_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ChatRoomResponse:
    room = await chat_room_service.reject_chat_request(db, room_id, current_user.id)
    return ChatRoomResponse.model_validate(room)


@router.post("/{room_id}/reveal-request", response_model=ChatRoomResponse)
async def request_reveal(
    room_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ChatRoomResponse:
    room = await chat_room_service.request_reveal(db, room_id, current_user.id)
    return ChatRoomResponse.model_validate(room)


@router.post("/{room_id}/reveal-accept", response_model=RevealAcceptResponse)
async def accept_reveal(
    room_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RevealAcceptResponse:
    """Accept the other party's reveal request and receive the profile's contact details."""
    room, profile = await chat_room_service.accept_reveal(db, room_id, current_user.id)
    return RevealAcceptResponse(
        room=ChatRoomResponse.model_validate(room),
        profile=RevealedProfile.model_validate(profile) if profile else None,
    )


@router.get("/{room_id}/revealed-profile", response_model=RevealedProfile | None)
async def get_revealed_profile(
    room_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RevealedProfile | None:
    profile = await chat_room_service.get_revealed_profile(db, room_id, current_user.id)
    return RevealedProfile.model_validate(profile) if profile else None


@router.get("/{room_id}/messages", response_model=MessageListResponse)
async def list_messages(
    room_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    before: datetime | None = Query(None),
    limit: int = Query(message_service.PAGE_SIZE, ge=1, le=100),
) -> MessageListResponse:
    messages, has_more = await message_service.get_messages(
        db, room_id, current_user.id, before=before, limit=limit
    )
    return MessageListResponse(
        messages=[MessageResponse.model_validate(message) for message in messages],
        has_more=has_more,
    )


@router.post(
    "/{room_id}/messages",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    room_id: UUID,
    message_data: MessageCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> SendMessageResponse:
    """Send a message. Contact details are replaced before the message is stored."""
    message, contact_filtered = await message_service.send_message(
        db, room_id, current_user.id, message_data.content, client_id=message_data.client_id
    )
    return SendMessageResponse(
        message=MessageResponse.model_validate(message),
        contact_filtered=contact_filtered,
        client_id=message_data.client_id,
    )


@router.post("/{room_id}/read", response_model=MarkReadResponse)
async def mark_read(
    room_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MarkReadResponse:
    updated = await message_service.mark_messages_as_read(db, room_id, current_user.id)
    return MarkReadResponse(updated=updated)
