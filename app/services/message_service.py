"""Message service: sending, listing and read receipts."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AuthorizationError,
    ErrorCode,
    InvalidStateError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from app.models.chat_room import ChatRoom, RoomStatus
from app.models.message import Message
from app.services import chat_room_service, expiry, realtime
from app.services.contact_filter import redact

logger = logging.getLogger(__name__)

PAGE_SIZE = 30


def validate_content(raw_content: str) -> str:
    """Trim and length-check message content; never truncates."""
    content = raw_content.strip()
    if not content or len(content) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"메시지는 1~{settings.MESSAGE_MAX_LENGTH}자 사이로 입력해주세요",
            field="content",
            code=ErrorCode.VALIDATION_MESSAGE_LENGTH,
        )
    return content


async def _load_participant_room(db: AsyncSession, room_id: UUID, user_id: UUID) -> ChatRoom:
    room = await chat_room_service.get_room_by_id(db, room_id)
    if room is None:
        raise NotFoundError("채팅방을 찾을 수 없어요", resource="chat_room")
    if not room.is_participant(user_id):
        raise AuthorizationError(code=ErrorCode.AUTHZ_NOT_PARTICIPANT)
    return room


async def send_message(
    db: AsyncSession,
    room_id: UUID,
    sender_id: UUID,
    raw_content: str,
    client_id: str | None = None,
) -> tuple[Message, bool]:
    """
    Validate, redact and store a message in an active room.
    Returns (message, has_contact). Only the redacted text is persisted.
    """
    content = validate_content(raw_content)
    room = await _load_participant_room(db, room_id, sender_id)

    now = expiry.utcnow()
    if room.status == RoomStatus.active.value and expiry.is_expired(room.expires_at, now):
        await chat_room_service.check_and_expire(db, room, now)
        raise InvalidStateError("대화가 만료되었어요", code=ErrorCode.CHAT_ROOM_EXPIRED)
    if room.status != RoomStatus.active.value:
        code = (
            ErrorCode.CHAT_ROOM_EXPIRED
            if room.status == RoomStatus.expired.value
            else ErrorCode.CHAT_ROOM_NOT_ACTIVE
        )
        raise InvalidStateError("대화가 종료된 채팅방이에요", code=code)

    filtered, has_contact = redact(content)

    message = Message(
        room_id=room.id,
        sender_id=sender_id,
        content=filtered,
        created_at=now,
    )
    try:
        db.add(message)
        await db.flush()
        # Only lands while the room is still active
        result = await db.execute(
            update(ChatRoom)
            .where(and_(ChatRoom.id == room.id, ChatRoom.status == RoomStatus.active.value))
            .values(last_message_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.rollback()
            await db.refresh(room)
            raise InvalidStateError("대화가 종료된 채팅방이에요", code=ErrorCode.CHAT_ROOM_NOT_ACTIVE)
        await db.commit()
    except SQLAlchemyError:
        logger.exception("Message insert failed (room=%s)", room_id)
        await db.rollback()
        raise UpstreamError("메시지 전송에 실패했어요")

    await db.refresh(message)
    await db.refresh(room)

    if has_contact:
        logger.info("Contact info filtered from message (room=%s)", room.id)
    realtime.publish_message(message, room, client_id=client_id)
    realtime.publish_room_change(room)
    return message, has_contact


async def get_messages(
    db: AsyncSession,
    room_id: UUID,
    user_id: UUID,
    before: datetime | None = None,
    limit: int = PAGE_SIZE,
) -> tuple[list[Message], bool]:
    """
    Page of messages in display (created_at) order, newest page first.
    Pass the oldest loaded created_at as ``before`` to load older ones.
    Returns (messages, has_more).
    """
    room = await _load_participant_room(db, room_id, user_id)
    await chat_room_service.check_and_expire(db, room)

    query = select(Message).where(Message.room_id == room_id)
    if before is not None:
        query = query.where(Message.created_at < before)
    result = await db.execute(
        query.order_by(Message.created_at.desc(), Message.id.desc()).limit(limit)
    )
    messages = list(result.scalars().all())
    # Reverse to get chronological order for display
    messages.reverse()
    return messages, len(messages) == limit


async def mark_messages_as_read(db: AsyncSession, room_id: UUID, reader_id: UUID) -> int:
    """
    Mark every unread message the other party sent in this room as read.
    Idempotent; returns how many rows flipped. Clients debounce calls to
    this, but any call frequency is safe.
    """
    room = await _load_participant_room(db, room_id, reader_id)

    unread_result = await db.execute(
        select(Message).where(
            and_(
                Message.room_id == room_id,
                Message.sender_id != reader_id,
                Message.is_read.is_(False),
            )
        )
    )
    unread = list(unread_result.scalars().all())
    if not unread:
        return 0
    snapshots = [realtime.message_snapshot(message, is_read=True) for message in unread]

    result = await db.execute(
        update(Message)
        .where(
            and_(
                Message.id.in_([message.id for message in unread]),
                Message.sender_id != reader_id,
                Message.is_read.is_(False),
            )
        )
        .values(is_read=True)
        .execution_options(synchronize_session="fetch")
    )
    await db.commit()

    realtime.publish_messages_read(snapshots, room)
    return result.rowcount
