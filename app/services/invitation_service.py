"""Invitations: a matchmaker asks a friend to write their own profile.

The friend's profile is created inactive and only goes live when the
matchmaker shares it (see ``profile_service.activate_shared_profile``).
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ErrorCode,
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
    UpstreamError,
)
from app.models.invitation import Invitation, InvitationStatus
from app.models.notification import NotificationType
from app.models.profile import Profile
from app.schemas.profile import ProfileCreate
from app.services import expiry, notification_service, profile_service

logger = logging.getLogger(__name__)

INVITE_CODE_ATTEMPTS = 5


def get_invite_url(invite_code: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/invite/{invite_code}"


async def get_invitation_by_code(db: AsyncSession, invite_code: str) -> Invitation | None:
    result = await db.execute(select(Invitation).where(Invitation.invite_code == invite_code))
    return result.scalar_one_or_none()


async def count_invitations_since(
    db: AsyncSession, matchmaker_id: UUID, since: datetime
) -> int:
    result = await db.execute(
        select(func.count(Invitation.id)).where(
            and_(Invitation.matchmaker_id == matchmaker_id, Invitation.created_at >= since)
        )
    )
    return result.scalar() or 0


async def _allocate_invite_code(db: AsyncSession) -> str:
    for _ in range(INVITE_CODE_ATTEMPTS):
        invite_code = profile_service.generate_short_id()
        if await get_invitation_by_code(db, invite_code) is None:
            return invite_code
    logger.error("Could not allocate a free invite code after %d attempts", INVITE_CODE_ATTEMPTS)
    raise UpstreamError("초대 링크 생성에 실패했어요. 다시 시도해주세요.")


async def create_invitation(
    db: AsyncSession, matchmaker_id: UUID, message: str | None = None
) -> Invitation:
    """
    Create a pending invitation that expires after INVITATION_EXPIRY_DAYS.
    Limited to MAX_DAILY_INVITATIONS per local day.
    """
    now = expiry.utcnow()
    sent_today = await count_invitations_since(
        db, matchmaker_id, expiry.start_of_local_day(now)
    )
    if sent_today >= settings.MAX_DAILY_INVITATIONS:
        raise QuotaExceededError(
            "오늘은 더 이상 초대를 보낼 수 없어요. 내일 다시 시도해주세요!",
            limit=settings.MAX_DAILY_INVITATIONS,
        )

    invitation = Invitation(
        invite_code=await _allocate_invite_code(db),
        matchmaker_id=matchmaker_id,
        matchmaker_message=(message or "").strip() or None,
        status=InvitationStatus.pending.value,
        expires_at=expiry.invitation_expires_at(now),
        created_at=now,
    )
    db.add(invitation)
    await db.commit()
    await db.refresh(invitation)

    logger.info("Invitation created (id=%s, matchmaker=%s)", invitation.id, matchmaker_id)
    return invitation


async def get_open_invitation(db: AsyncSession, invite_code: str) -> tuple[Invitation, bool]:
    """Invitation for the invite page. Returns (invitation, is_expired)."""
    invitation = await get_invitation_by_code(db, invite_code)
    if invitation is None:
        raise NotFoundError("유효하지 않은 초대 링크예요", resource="invitation")
    return invitation, expiry.is_expired(invitation.expires_at, expiry.utcnow())


async def get_user_invitations(db: AsyncSession, matchmaker_id: UUID) -> list[Invitation]:
    result = await db.execute(
        select(Invitation)
        .where(Invitation.matchmaker_id == matchmaker_id)
        .order_by(Invitation.created_at.desc())
    )
    return list(result.scalars().all())


async def submit_invite_profile(
    db: AsyncSession, invite_code: str, user_id: UUID, data: ProfileCreate
) -> Profile:
    """
    The invited friend writes their profile.

    The profile is inserted inactive with the matchmaker attached, and the
    invitation is completed in the same transaction by a conditional UPDATE,
    so only one submission per invitation can succeed.
    """
    invitation = await get_invitation_by_code(db, invite_code)
    if invitation is None:
        raise NotFoundError("유효하지 않은 초대 링크예요", resource="invitation")
    if invitation.status != InvitationStatus.pending.value:
        raise InvalidStateError(
            "이미 프로필이 작성된 초대예요", code=ErrorCode.INVITATION_ALREADY_USED
        )
    now = expiry.utcnow()
    if expiry.is_expired(invitation.expires_at, now):
        raise InvalidStateError("만료된 초대 링크예요", code=ErrorCode.INVITATION_EXPIRED)
    if invitation.matchmaker_id == user_id:
        raise AuthorizationError(
            "본인이 만든 초대에는 프로필을 작성할 수 없어요",
            code=ErrorCode.AUTHZ_OWN_INVITATION,
        )

    instagram_id = profile_service.validate_instagram_id(data.instagram_id)
    short_id = await profile_service.allocate_short_id(db)

    profile = Profile(
        short_id=short_id,
        creator_id=user_id,
        matchmaker_id=invitation.matchmaker_id,
        invitation_id=invitation.id,
        # Reset when the matchmaker shares the profile
        expires_at=expiry.profile_expires_at(now),
        is_active=False,
        created_at=now,
        **profile_service.profile_fields(data, instagram_id),
    )
    db.add(profile)
    await db.flush()

    result = await db.execute(
        update(Invitation)
        .where(
            and_(
                Invitation.id == invitation.id,
                Invitation.status == InvitationStatus.pending.value,
            )
        )
        .values(status=InvitationStatus.completed.value, target_id=user_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.warning("Invite submission lost the race (invitation=%s)", invitation.id)
        raise ConflictError(
            "이미 프로필이 작성된 초대예요", metadata={"invitation_id": str(invitation.id)}
        )
    await db.commit()
    await db.refresh(profile)

    logger.info("Invited profile written (profile=%s, invitation=%s)", profile.id, invitation.id)
    if not await notification_service.notify(
        db, invitation.matchmaker_id, NotificationType.profile_completed, "/dashboard"
    ):
        await db.refresh(profile)
    return profile
