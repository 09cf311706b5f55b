from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class InvitationCreate(BaseModel):
    """Optional note shown to the friend on the invite page"""

    message: str | None = Field(None, max_length=200)


class InvitationPublicResponse(BaseModel):
    """What the invited friend sees before writing their profile"""

    invite_code: str
    matchmaker_message: str | None
    status: str
    expires_at: datetime
    is_expired: bool = False

    model_config = ConfigDict(from_attributes=True)


class InvitationResponse(InvitationPublicResponse):
    """Matchmaker view of an invitation"""

    id: UUID
    matchmaker_id: UUID
    target_id: UUID | None
    created_at: datetime
    invite_url: str | None = None
