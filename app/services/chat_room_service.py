"""Chat room state machine.

    pending --accept--> active --expire--> expired
        \\--reject--> rejected  \\--reveal accepted--> completed

Every transition is a conditional UPDATE whose WHERE clause repeats the state
the caller observed. When two requests race, the database lets exactly one
UPDATE match; the loser sees rowcount 0 and gets a ConflictError instead of
applying its effects or sending its notification.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ErrorCode,
    InvalidStateError,
    NotFoundError,
    UpstreamError,
)
from app.models.chat_room import ChatRoom, RoomKind, RoomStatus, can_transition
from app.models.message import Message
from app.models.notification import NotificationType
from app.models.profile import Profile
from app.services import expiry, notification_service, profile_service, realtime

logger = logging.getLogger(__name__)


async def get_room_by_id(db: AsyncSession, room_id: UUID) -> ChatRoom | None:
    """Get chat room by ID."""
    result = await db.execute(select(ChatRoom).where(ChatRoom.id == room_id))
    return result.scalar_one_or_none()


async def _load_room(db: AsyncSession, room_id: UUID) -> ChatRoom:
    room = await get_room_by_id(db, room_id)
    if room is None:
        raise NotFoundError("채팅방을 찾을 수 없어요", resource="chat_room")
    return room


def _require_participant(room: ChatRoom, user_id: UUID) -> None:
    if not room.is_participant(user_id):
        raise AuthorizationError(code=ErrorCode.AUTHZ_NOT_PARTICIPANT)


def _require_normal_room(room: ChatRoom) -> None:
    if room.is_support:
        raise InvalidStateError(
            "고객센터 채팅방에서는 사용할 수 없는 기능이에요",
            code=ErrorCode.CHAT_SUPPORT_ROOM,
        )


async def _compare_and_set(
    db: AsyncSession,
    room: ChatRoom,
    expected: dict[str, Any],
    values: dict[str, Any],
) -> bool:
    """
    UPDATE chat_rooms SET values WHERE id = room.id AND every expected column
    still holds its expected value. Commits and refreshes ``room`` on success;
    rolls back and returns False when another request got there first.
    """
    if "status" in values and "status" in expected:
        if not can_transition(expected["status"], values["status"]):
            raise ValueError(f"illegal transition {expected['status']} -> {values['status']}")

    conditions = [ChatRoom.id == room.id]
    for column, value in expected.items():
        attr = getattr(ChatRoom, column)
        conditions.append(attr.is_(None) if value is None else attr == value)

    result = await db.execute(
        update(ChatRoom)
        .where(and_(*conditions))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        return False

    await db.commit()
    await db.refresh(room)
    return True


async def _notify(
    db: AsyncSession,
    room: ChatRoom,
    user_ids: UUID | list[UUID],
    notification_type: NotificationType,
    link_url: str,
) -> None:
    if not await notification_service.notify(db, user_ids, notification_type, link_url):
        # rollback expired the instance
        await db.refresh(room)


async def check_and_expire(
    db: AsyncSession, room: ChatRoom, now: datetime | None = None
) -> ChatRoom:
    """
    Lazily move an active room past its deadline to expired.
    Safe to call on any room at any time; rooms in other states are untouched.
    """
    now = now or expiry.utcnow()
    if room.status != RoomStatus.active.value or not expiry.is_expired(room.expires_at, now):
        return room

    if await _compare_and_set(
        db,
        room,
        expected={"status": RoomStatus.active.value},
        values={"status": RoomStatus.expired.value},
    ):
        logger.info("Chat room expired (room=%s)", room.id)
        realtime.publish_room_change(room)
    else:
        # someone else expired or completed it
        await db.refresh(room)
    return room


async def accept_chat_request(db: AsyncSession, room_id: UUID, user_id: UUID) -> ChatRoom:
    room = await _load_room(db, room_id)
    _require_normal_room(room)
    if room.target_id != user_id:
        raise AuthorizationError()
    if room.status != RoomStatus.pending.value:
        raise InvalidStateError("이미 처리된 요청이에요", code=ErrorCode.CHAT_ALREADY_HANDLED)

    now = expiry.utcnow()
    won = await _compare_and_set(
        db,
        room,
        expected={"status": RoomStatus.pending.value},
        values={"status": RoomStatus.active.value, "expires_at": expiry.room_expires_at(now)},
    )
    if not won:
        logger.warning("Accept lost the race (room=%s)", room_id)
        raise ConflictError("이미 처리된 요청이에요", metadata={"room_id": str(room_id)})

    logger.info("Chat request accepted (room=%s)", room.id)
    realtime.publish_room_change(room)
    await _notify(db, room, room.requester_id, NotificationType.chat_accepted, f"/chat/{room.id}")
    return room


async def reject_chat_request(db: AsyncSession, room_id: UUID, user_id: UUID) -> ChatRoom:
    room = await _load_room(db, room_id)
    _require_normal_room(room)
    if room.target_id != user_id:
        raise AuthorizationError()
    if room.status != RoomStatus.pending.value:
        raise InvalidStateError("이미 처리된 요청이에요", code=ErrorCode.CHAT_ALREADY_HANDLED)

    won = await _compare_and_set(
        db,
        room,
        expected={"status": RoomStatus.pending.value},
        values={"status": RoomStatus.rejected.value},
    )
    if not won:
        logger.warning("Reject lost the race (room=%s)", room_id)
        raise ConflictError("이미 처리된 요청이에요", metadata={"room_id": str(room_id)})

    logger.info("Chat request rejected (room=%s)", room.id)
    realtime.publish_room_change(room)
    await _notify(db, room, room.requester_id, NotificationType.chat_rejected, "/chat")
    return room


async def request_reveal(db: AsyncSession, room_id: UUID, user_id: UUID) -> ChatRoom:
    room = await _load_room(db, room_id)
    _require_normal_room(room)
    _require_participant(room, user_id)

    await check_and_expire(db, room)
    if room.status != RoomStatus.active.value:
        raise InvalidStateError(
            "활성 상태의 채팅방에서만 요청할 수 있어요", code=ErrorCode.REVEAL_NOT_ACTIVE
        )
    if room.profile_revealed:
        raise InvalidStateError("이미 프로필이 공개되었어요", code=ErrorCode.REVEAL_ALREADY_DONE)
    if room.reveal_requested_by is not None:
        raise InvalidStateError(
            "이미 공개 요청이 진행 중이에요", code=ErrorCode.REVEAL_ALREADY_REQUESTED
        )

    won = await _compare_and_set(
        db,
        room,
        expected={
            "status": RoomStatus.active.value,
            "profile_revealed": False,
            "reveal_requested_by": None,
        },
        values={"reveal_requested_by": user_id},
    )
    if not won:
        logger.warning("Reveal request lost the race (room=%s)", room_id)
        raise ConflictError("이미 공개 요청이 진행 중이에요", metadata={"room_id": str(room_id)})

    logger.info("Reveal requested (room=%s, by=%s)", room.id, user_id)
    realtime.publish_room_change(room)
    await _notify(
        db, room, room.other_party(user_id), NotificationType.reveal_requested, f"/chat/{room.id}"
    )
    return room


async def accept_reveal(
    db: AsyncSession, room_id: UUID, user_id: UUID
) -> tuple[ChatRoom, Profile | None]:
    """
    The other party accepts a pending reveal request: the room is completed
    and the profile's identity fields are returned to the accepting user.
    """
    room = await _load_room(db, room_id)
    _require_normal_room(room)
    _require_participant(room, user_id)

    if room.profile_revealed:
        raise InvalidStateError("이미 프로필이 공개되었어요", code=ErrorCode.REVEAL_ALREADY_DONE)
    requested_by = room.reveal_requested_by
    if requested_by is None:
        raise InvalidStateError("공개 요청이 없어요", code=ErrorCode.REVEAL_NOT_REQUESTED)
    if requested_by == user_id:
        raise AuthorizationError(
            "본인의 요청은 수락할 수 없어요", code=ErrorCode.AUTHZ_OWN_REVEAL_REQUEST
        )

    await check_and_expire(db, room)
    if room.status != RoomStatus.active.value:
        raise InvalidStateError(
            "활성 상태의 채팅방에서만 수락할 수 있어요", code=ErrorCode.REVEAL_NOT_ACTIVE
        )

    now = expiry.utcnow()
    won = await _compare_and_set(
        db,
        room,
        expected={
            "status": RoomStatus.active.value,
            "profile_revealed": False,
            "reveal_requested_by": requested_by,
        },
        values={
            "status": RoomStatus.completed.value,
            "profile_revealed": True,
            "profile_revealed_at": now,
            "reveal_requested_by": None,
        },
    )
    if not won:
        logger.warning("Reveal accept lost the race (room=%s)", room_id)
        raise ConflictError("이미 처리된 공개 요청이에요", metadata={"room_id": str(room_id)})

    logger.info("Profile revealed (room=%s)", room.id)
    realtime.publish_room_change(room)
    await _notify(
        db,
        room,
        [user_id, room.other_party(user_id)],
        NotificationType.reveal_accepted,
        f"/chat/{room.id}",
    )

    profile = None
    if room.profile_id is not None:
        profile = await profile_service.get_profile_by_id(db, room.profile_id)
    return room, profile


async def get_room_for_participant(
    db: AsyncSession, room_id: UUID, user_id: UUID
) -> ChatRoom:
    """Participant read of a room with lazy expiry applied."""
    room = await _load_room(db, room_id)
    _require_participant(room, user_id)
    return await check_and_expire(db, room)


async def get_revealed_profile(
    db: AsyncSession, room_id: UUID, user_id: UUID
) -> Profile | None:
    room = await _load_room(db, room_id)
    _require_participant(room, user_id)
    if not room.profile_revealed:
        raise InvalidStateError("아직 프로필이 공개되지 않았어요", code=ErrorCode.REVEAL_NOT_DONE)
    if room.profile_id is None:
        return None
    return await profile_service.get_profile_by_id(db, room.profile_id)


async def get_support_room(db: AsyncSession, user_id: UUID) -> ChatRoom | None:
    result = await db.execute(
        select(ChatRoom).where(
            and_(
                ChatRoom.kind == RoomKind.support.value,
                ChatRoom.requester_id == user_id,
            )
        )
    )
    return result.scalar_one_or_none()


async def open_support_room(db: AsyncSession, user_id: UUID) -> ChatRoom:
    """Return the user's support room, creating it on first use."""
    support_user_id = settings.SUPPORT_USER_ID
    if support_user_id is None or support_user_id == user_id:
        raise NotFoundError("고객센터 채팅을 사용할 수 없어요", resource="support_room")

    room = await get_support_room(db, user_id)
    if room is not None:
        return room

    room = ChatRoom(
        kind=RoomKind.support.value,
        profile_id=None,
        requester_id=user_id,
        target_id=support_user_id,
        status=RoomStatus.active.value,
    )
    db.add(room)
    try:
        await db.commit()
    except IntegrityError:
        # a concurrent open inserted it first
        await db.rollback()
        existing = await get_support_room(db, user_id)
        if existing is None:
            logger.exception("Support room insert failed (user=%s)", user_id)
            raise UpstreamError("고객센터 채팅을 열지 못했어요")
        return existing
    await db.refresh(room)
    logger.info("Support room opened (room=%s, user=%s)", room.id, user_id)
    realtime.publish_room_change(room, event="INSERT")
    return room


async def get_user_rooms(db: AsyncSession, user_id: UUID) -> list[ChatRoom]:
    result = await db.execute(
        select(ChatRoom)
        .where(or_(ChatRoom.requester_id == user_id, ChatRoom.target_id == user_id))
        .order_by(
            func.coalesce(ChatRoom.last_message_at, ChatRoom.created_at).desc()
        )
    )
    return list(result.scalars().all())


async def get_chat_previews(db: AsyncSession, user_id: UUID) -> list[dict[str, Any]]:
    """Rooms for the chat list with last message, unread count and photo."""
    now = expiry.utcnow()
    rooms = await get_user_rooms(db, user_id)

    previews = []
    for room in rooms:
        await check_and_expire(db, room, now)

        last_msg_result = await db.execute(
            select(Message.content)
            .where(Message.room_id == room.id)
            .order_by(Message.created_at.desc())
            .limit(1)
        )
        last_message = last_msg_result.scalar_one_or_none()

        unread_result = await db.execute(
            select(func.count(Message.id)).where(
                and_(
                    Message.room_id == room.id,
                    Message.sender_id != user_id,
                    Message.is_read.is_(False),
                )
            )
        )

        photo_url = None
        if room.profile_id is not None:
            profile = await profile_service.get_profile_by_id(db, room.profile_id)
            if profile is not None:
                photo_url = (
                    profile.original_photo_url
                    if room.profile_revealed and profile.original_photo_url
                    else profile.photo_url
                )

        previews.append(
            {
                "room": room,
                "profile_photo_url": photo_url,
                "last_message": last_message,
                "unread_count": unread_result.scalar() or 0,
            }
        )

    return previews


async def expire_stale_rooms(db: AsyncSession) -> int:
    """
    Hygiene sweep: expire every active room past its deadline.
    Reads already expire rooms lazily, so nothing depends on this running.
    """
    now = expiry.utcnow()
    result = await db.execute(
        update(ChatRoom)
        .where(
            and_(
                ChatRoom.status == RoomStatus.active.value,
                ChatRoom.kind == RoomKind.normal.value,
                ChatRoom.expires_at.is_not(None),
                ChatRoom.expires_at < now,
            )
        )
        .values(status=RoomStatus.expired.value)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount
