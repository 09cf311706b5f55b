import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.chat_room import ChatRoom


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Public slug used in share links (/m/{short_id})
    short_id: Mapped[str] = mapped_column(String(16), unique=True, nullable=False, index=True)

    # Who wrote the profile
    creator_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Set only for invitation-originated profiles
    matchmaker_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    invitation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("invitations.id", name="fk_profiles_invitation_id"), nullable=True
    )

    # Person who answers chat requests; falls back to creator_id when null
    target_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    # Photos: photo_url is what strangers see (possibly blurred)
    photo_url: Mapped[str] = mapped_column(String(500), nullable=False)
    original_photo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Disclosed only after a mutual reveal
    name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    instagram_id: Mapped[str | None] = mapped_column(String(30), nullable=True)
    kakao_open_chat_id: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Demographics and preferences
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[str] = mapped_column(String(10), nullable=False)
    occupation_category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bio: Mapped[str] = mapped_column(String(100), nullable=False)
    interest_tags: Mapped[list] = mapped_column(JSON, default=list)
    mbti: Mapped[str | None] = mapped_column(String(4), nullable=True)
    music_genre: Mapped[str | None] = mapped_column(String(30), nullable=True)

    # Lifecycle
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Counters, only ever changed with single-statement increments
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    chat_request_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    chat_rooms: Mapped[list["ChatRoom"]] = relationship(
        "ChatRoom", back_populates="profile", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint(
            "(matchmaker_id IS NULL AND invitation_id IS NULL)"
            " OR (matchmaker_id IS NOT NULL AND invitation_id IS NOT NULL)",
            name="profile_origin_check",
        ),
    )

    @property
    def is_self_authored(self) -> bool:
        return self.matchmaker_id is None

    @property
    def answering_user_id(self) -> uuid.UUID:
        return self.target_id or self.creator_id
