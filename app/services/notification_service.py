"""Fire-and-forget notification records.

Notifications are a side channel: they are written after the state change
they describe has been committed, and a failure here is logged and rolled
back without touching that state change.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)

TEMPLATES: dict[NotificationType, tuple[str, str]] = {
    NotificationType.chat_requested: (
        "새로운 대화 신청",
        "누군가가 대화를 신청했어요! 확인해보세요.",
    ),
    NotificationType.chat_accepted: (
        "대화가 시작되었어요!",
        "상대방이 대화 신청을 수락했어요. 지금 바로 대화해보세요!",
    ),
    NotificationType.chat_rejected: (
        "대화 신청 결과",
        "아쉽지만 상대방이 정중히 거절했어요.",
    ),
    NotificationType.reveal_requested: (
        "프로필 공개 요청",
        "상대방이 프로필 공개를 요청했어요!",
    ),
    NotificationType.reveal_accepted: (
        "프로필이 공개되었어요!",
        "상대방의 프로필을 확인해보세요.",
    ),
    NotificationType.profile_shared: (
        "프로필이 공개되었어요",
        "주선자가 프로필을 공유했어요. 이제 대화 신청을 받을 수 있어요!",
    ),
    NotificationType.profile_completed: (
        "프로필 작성 완료",
        "초대한 친구가 프로필을 작성했어요! 확인하고 공유해보세요.",
    ),
}


async def notify(
    db: AsyncSession,
    user_ids: UUID | list[UUID],
    notification_type: NotificationType,
    link_url: str,
) -> bool:
    """
    Insert one notification per recipient and commit.
    Returns False (after logging) if the insert failed.
    """
    if isinstance(user_ids, UUID):
        user_ids = [user_ids]

    title, message = TEMPLATES[notification_type]

    try:
        for user_id in user_ids:
            db.add(
                Notification(
                    user_id=user_id,
                    type=notification_type.value,
                    title=title,
                    message=message,
                    link_url=link_url,
                )
            )
        await db.commit()
    except SQLAlchemyError:
        logger.exception(
            "Notification insert failed (type=%s, users=%s)",
            notification_type.value,
            user_ids,
        )
        await db.rollback()
        return False

    return True
