"""Chat requests: a viewer of a live profile asks its owner to talk."""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AuthorizationError,
    ErrorCode,
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
    UpstreamError,
)
from app.models.chat_room import ChatRoom, RoomKind, RoomStatus
from app.models.notification import NotificationType
from app.models.profile import Profile
from app.services import block_service, expiry, notification_service, profile_service, realtime

logger = logging.getLogger(__name__)


async def get_room_for_pair(
    db: AsyncSession, profile_id: UUID, requester_id: UUID
) -> ChatRoom | None:
    """The single room allowed per (profile, requester)."""
    result = await db.execute(
        select(ChatRoom).where(
            and_(
                ChatRoom.profile_id == profile_id,
                ChatRoom.requester_id == requester_id,
            )
        )
    )
    return result.scalar_one_or_none()


async def count_requests_since(db: AsyncSession, requester_id: UUID, since: datetime) -> int:
    result = await db.execute(
        select(func.count(ChatRoom.id)).where(
            and_(
                ChatRoom.requester_id == requester_id,
                ChatRoom.kind == RoomKind.normal.value,
                ChatRoom.created_at >= since,
            )
        )
    )
    return result.scalar() or 0


def _raise_for_existing_room(room: ChatRoom) -> None:
    if room.status == RoomStatus.pending.value:
        raise InvalidStateError(
            "이미 대화를 신청한 프로필이에요. 응답을 기다려주세요.",
            code=ErrorCode.CHAT_ALREADY_REQUESTED,
            metadata={"room_id": str(room.id)},
        )
    if room.status == RoomStatus.active.value:
        raise InvalidStateError(
            "이미 대화가 진행 중이에요",
            code=ErrorCode.CHAT_ALREADY_ACTIVE,
            metadata={"room_id": str(room.id)},
        )
    if room.status == RoomStatus.rejected.value:
        raise InvalidStateError(
            "이전에 거절당한 프로필이에요",
            code=ErrorCode.CHAT_PREVIOUSLY_REJECTED,
        )
    # expired / completed: the pair already had its conversation
    raise InvalidStateError(
        "이미 대화가 끝난 프로필이에요",
        code=ErrorCode.CHAT_ROOM_NOT_ACTIVE,
        metadata={"room_id": str(room.id)},
    )


async def _check_preconditions(
    db: AsyncSession, profile: Profile | None, requester_id: UUID, now: datetime
) -> UUID:
    """Run the request checks in order; returns the answering user id."""
    if profile is None:
        raise NotFoundError("프로필을 찾을 수 없어요", resource="profile")

    if not profile.is_active or expiry.is_expired(profile.expires_at, now):
        raise InvalidStateError(
            "이 프로필은 더 이상 활성화되지 않았어요",
            code=ErrorCode.PROFILE_INACTIVE,
        )

    if requester_id == profile.creator_id:
        raise AuthorizationError(
            "본인이 만든 프로필에는 신청할 수 없어요", code=ErrorCode.AUTHZ_OWN_PROFILE
        )
    if profile.matchmaker_id is not None and requester_id == profile.matchmaker_id:
        raise AuthorizationError(
            "직접 소개한 프로필에는 신청할 수 없어요", code=ErrorCode.AUTHZ_OWN_PROFILE
        )

    existing = await get_room_for_pair(db, profile.id, requester_id)
    if existing is not None:
        _raise_for_existing_room(existing)

    sent_today = await count_requests_since(db, requester_id, expiry.start_of_local_day(now))
    if sent_today >= settings.MAX_DAILY_CHAT_REQUESTS:
        raise QuotaExceededError(
            "오늘은 더 이상 대화를 신청할 수 없어요. 내일 다시 시도해주세요!",
            limit=settings.MAX_DAILY_CHAT_REQUESTS,
        )

    target_id = profile.answering_user_id
    if requester_id == target_id:
        raise AuthorizationError(
            "본인이 만든 프로필에는 신청할 수 없어요", code=ErrorCode.AUTHZ_OWN_PROFILE
        )
    if await block_service.is_blocked(db, requester_id, target_id):
        raise AuthorizationError("대화를 신청할 수 없는 사용자예요", code=ErrorCode.AUTHZ_BLOCKED)

    return target_id


async def request_chat(db: AsyncSession, profile_id: UUID, requester_id: UUID) -> ChatRoom:
    """
    Create a pending room for (profile, requester).

    Every precondition is checked before anything is written. The unique
    constraint on (profile_id, requester_id) settles duplicate requests that
    race past the existence check. The daily quota is only a count query, so a
    race can let one extra request through.
    """
    now = expiry.utcnow()
    profile = await profile_service.get_profile_by_id(db, profile_id)
    target_id = await _check_preconditions(db, profile, requester_id, now)

    room = ChatRoom(
        kind=RoomKind.normal.value,
        profile_id=profile_id,
        requester_id=requester_id,
        target_id=target_id,
        status=RoomStatus.pending.value,
        created_at=now,
    )
    db.add(room)
    try:
        await db.flush()
        await profile_service.increment_chat_request_count(db, profile_id)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        existing = await get_room_for_pair(db, profile_id, requester_id)
        if existing is None:
            logger.exception("Chat room insert failed (profile=%s)", profile_id)
            raise UpstreamError("대화 신청에 실패했어요")
        logger.info("Duplicate chat request lost the insert race (profile=%s)", profile_id)
        _raise_for_existing_room(existing)
    await db.refresh(room)

    logger.info(
        "Chat requested (room=%s, profile=%s, requester=%s)", room.id, profile_id, requester_id
    )
    realtime.publish_room_change(room, event="INSERT")

    if not await notification_service.notify(
        db, target_id, NotificationType.chat_requested, f"/chat?pending={room.id}"
    ):
        await db.refresh(room)
    return room
