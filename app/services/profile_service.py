import logging
import re
import secrets
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AuthorizationError,
    ErrorCode,
    InvalidFormatError,
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
    UpstreamError,
)
from app.models.chat_room import ChatRoom
from app.models.notification import NotificationType
from app.models.profile import Profile
from app.schemas.profile import ProfileCreate
from app.services import expiry, notification_service

logger = logging.getLogger(__name__)

SHORT_ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
SHORT_ID_LENGTH = 8
SHORT_ID_ATTEMPTS = 5
INSTAGRAM_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_.]{1,30}$")


def generate_short_id(length: int = SHORT_ID_LENGTH) -> str:
    return "".join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(length))


def get_share_url(short_id: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/m/{short_id}"


def validate_instagram_id(value: str | None) -> str | None:
    if not value:
        return None
    handle = value.strip().lstrip("@")
    if not INSTAGRAM_ID_PATTERN.match(handle):
        raise InvalidFormatError(
            "올바른 인스타그램 아이디를 입력해주세요", field="instagram_id"
        )
    return handle


async def get_profile_by_id(db: AsyncSession, profile_id: UUID) -> Profile | None:
    """Get profile by profile ID."""
    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    return result.scalar_one_or_none()


async def get_profile_by_short_id(db: AsyncSession, short_id: str) -> Profile | None:
    result = await db.execute(select(Profile).where(Profile.short_id == short_id))
    return result.scalar_one_or_none()


async def count_profiles_created_since(
    db: AsyncSession, creator_id: UUID, since: datetime
) -> int:
    result = await db.execute(
        select(func.count(Profile.id)).where(
            and_(Profile.creator_id == creator_id, Profile.created_at >= since)
        )
    )
    return result.scalar() or 0


async def allocate_short_id(db: AsyncSession) -> str:
    for _ in range(SHORT_ID_ATTEMPTS):
        short_id = generate_short_id()
        if await get_profile_by_short_id(db, short_id) is None:
            return short_id
    logger.error("Could not allocate a free short_id after %d attempts", SHORT_ID_ATTEMPTS)
    raise UpstreamError("링크 생성에 실패했어요. 다시 시도해주세요.")


def profile_fields(data: ProfileCreate, instagram_id: str | None) -> dict:
    """Column values taken from the submitted form."""
    fields = data.model_dump()
    fields["gender"] = data.gender.value
    fields["instagram_id"] = instagram_id
    return fields


async def create_profile(
    db: AsyncSession, creator_id: UUID, data: ProfileCreate
) -> Profile:
    """
    Create a self-authored profile that is live immediately.

    The daily quota is a count query since local midnight; two requests racing
    past it can create one extra profile, which is acceptable.
    """
    instagram_id = validate_instagram_id(data.instagram_id)

    now = expiry.utcnow()
    created_today = await count_profiles_created_since(
        db, creator_id, expiry.start_of_local_day(now)
    )
    if created_today >= settings.MAX_DAILY_PROFILE_CREATIONS:
        raise QuotaExceededError(
            "오늘은 더 이상 프로필을 만들 수 없어요. 내일 다시 시도해주세요!",
            limit=settings.MAX_DAILY_PROFILE_CREATIONS,
        )

    short_id = await allocate_short_id(db)

    profile = Profile(
        short_id=short_id,
        creator_id=creator_id,
        matchmaker_id=None,
        invitation_id=None,
        expires_at=expiry.profile_expires_at(now),
        is_active=True,
        **profile_fields(data, instagram_id),
    )
    db.add(profile)
    await db.commit()
    await db.refresh(profile)

    logger.info("Profile created (id=%s, short_id=%s)", profile.id, profile.short_id)
    return profile


async def increment_view_count(db: AsyncSession, profile_id: UUID) -> None:
    """Single-statement increment; never read-modify-write."""
    await db.execute(
        update(Profile)
        .where(Profile.id == profile_id)
        .values(view_count=Profile.view_count + 1)
        .execution_options(synchronize_session="fetch")
    )


async def increment_chat_request_count(db: AsyncSession, profile_id: UUID) -> None:
    """Single-statement increment; never read-modify-write."""
    await db.execute(
        update(Profile)
        .where(Profile.id == profile_id)
        .values(chat_request_count=Profile.chat_request_count + 1)
        .execution_options(synchronize_session="fetch")
    )


async def get_public_profile(db: AsyncSession, short_id: str) -> tuple[Profile, bool]:
    """
    Load a profile for a public viewer and count the view.
    Returns (profile, is_expired). Expired or inactive profiles are still
    returned so the page can render its expired state.
    """
    profile = await get_profile_by_short_id(db, short_id)
    if profile is None:
        raise NotFoundError("프로필을 찾을 수 없어요", resource="profile")

    await increment_view_count(db, profile.id)
    await db.commit()
    await db.refresh(profile)

    is_expired = not profile.is_active or expiry.is_expired(profile.expires_at, expiry.utcnow())
    return profile, is_expired


async def get_user_profiles(db: AsyncSession, user_id: UUID) -> list[Profile]:
    """Profiles the user wrote or introduced, newest first."""
    result = await db.execute(
        select(Profile)
        .where((Profile.creator_id == user_id) | (Profile.matchmaker_id == user_id))
        .order_by(Profile.created_at.desc())
    )
    return list(result.scalars().all())


async def activate_shared_profile(
    db: AsyncSession, profile_id: UUID, user_id: UUID
) -> Profile:
    """
    Matchmaker shares an invitation-originated profile: it goes live and its
    expiry window starts now. Guarded so a double share activates once.
    """
    profile = await get_profile_by_id(db, profile_id)
    if profile is None:
        raise NotFoundError("프로필을 찾을 수 없어요", resource="profile")
    if profile.matchmaker_id is None:
        raise InvalidStateError(
            "초대로 만들어진 프로필만 공유할 수 있어요",
            code=ErrorCode.PROFILE_NOT_INVITED,
        )
    if profile.matchmaker_id != user_id:
        raise AuthorizationError()
    if profile.is_active:
        raise InvalidStateError(
            "이미 공유된 프로필이에요", code=ErrorCode.PROFILE_ALREADY_ACTIVE
        )

    now = expiry.utcnow()
    result = await db.execute(
        update(Profile)
        .where(and_(Profile.id == profile_id, Profile.is_active.is_(False)))
        .values(is_active=True, expires_at=expiry.profile_expires_at(now))
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount == 0:
        await db.rollback()
        raise InvalidStateError(
            "이미 공유된 프로필이에요", code=ErrorCode.PROFILE_ALREADY_ACTIVE
        )
    await db.commit()
    await db.refresh(profile)

    if not await notification_service.notify(
        db, profile.creator_id, NotificationType.profile_shared, f"/m/{profile.short_id}"
    ):
        await db.refresh(profile)
    return profile


async def delete_profile(db: AsyncSession, profile_id: UUID, user_id: UUID) -> None:
    """Owner deletes a profile. Its chat rooms stay, detached from it."""
    profile = await get_profile_by_id(db, profile_id)
    if profile is None:
        raise NotFoundError("프로필을 찾을 수 없어요", resource="profile")
    if profile.creator_id != user_id:
        raise AuthorizationError()

    await db.execute(
        update(ChatRoom)
        .where(ChatRoom.profile_id == profile_id)
        .values(profile_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(profile)
    await db.commit()
    logger.info("Profile deleted (id=%s)", profile_id)
