import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.models.profile import utcnow

if TYPE_CHECKING:
    from app.models.message import Message
    from app.models.profile import Profile


class RoomStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    rejected = "rejected"
    expired = "expired"
    completed = "completed"


class RoomKind(str, enum.Enum):
    normal = "normal"
    support = "support"


# Allowed forward moves; everything else is illegal
ROOM_TRANSITIONS: dict[RoomStatus, frozenset[RoomStatus]] = {
    RoomStatus.pending: frozenset({RoomStatus.active, RoomStatus.rejected}),
    RoomStatus.active: frozenset({RoomStatus.expired, RoomStatus.completed}),
    RoomStatus.rejected: frozenset(),
    RoomStatus.expired: frozenset(),
    RoomStatus.completed: frozenset(),
}


def can_transition(current: str, new: str) -> bool:
    return RoomStatus(new) in ROOM_TRANSITIONS[RoomStatus(current)]


class ChatRoom(Base):
    __tablename__ = "chat_rooms"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    kind: Mapped[str] = mapped_column(String(10), default=RoomKind.normal.value, nullable=False)

    # Null for support rooms and for rooms whose profile was deleted
    profile_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    requester_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Status: pending, active, rejected, expired, completed
    status: Mapped[str] = mapped_column(
        String(20), default=RoomStatus.pending.value, nullable=False
    )

    # Reveal sub-protocol
    profile_revealed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    profile_revealed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reveal_requested_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    last_message_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # Set on activation; support rooms never expire
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )

    profile: Mapped["Profile | None"] = relationship("Profile", back_populates="chat_rooms")
    messages: Mapped[list["Message"]] = relationship(
        "Message",
        back_populates="room",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("profile_id", "requester_id", name="uq_chat_rooms_profile_requester"),
        # profile_id is NULL for support rooms, so the pair constraint never fires for them
        Index(
            "uq_chat_rooms_support_requester",
            "requester_id",
            unique=True,
            postgresql_where=text("kind = 'support'"),
            sqlite_where=text("kind = 'support'"),
        ),
        CheckConstraint(
            "reveal_requested_by IS NULL"
            " OR reveal_requested_by = requester_id"
            " OR reveal_requested_by = target_id",
            name="reveal_requester_check",
        ),
    )

    @property
    def is_support(self) -> bool:
        return self.kind == RoomKind.support.value

    def is_participant(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.requester_id, self.target_id)

    def other_party(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.target_id if user_id == self.requester_id else self.requester_id
