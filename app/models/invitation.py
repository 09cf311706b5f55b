import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.profile import utcnow


class InvitationStatus(str, enum.Enum):
    pending = "pending"
    completed = "completed"


class Invitation(Base):
    """A matchmaker's link asking a friend to write their own profile."""

    __tablename__ = "invitations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Slug used in invite links (/invite/{invite_code})
    invite_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False, index=True)

    matchmaker_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    matchmaker_message: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Status: pending, completed
    status: Mapped[str] = mapped_column(
        String(20), default=InvitationStatus.pending.value, nullable=False
    )

    # Friend who filled the invitation in
    target_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )
