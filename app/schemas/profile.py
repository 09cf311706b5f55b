from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Gender(str, Enum):
    male = "male"
    female = "female"


class ProfileCreate(BaseModel):
    """Self-authored profile; photos come from the photo pipeline"""

    photo_url: str = Field(..., max_length=500)
    original_photo_url: str | None = Field(None, max_length=500)
    name: str | None = Field(None, max_length=50)
    age: int = Field(..., ge=18, le=99)
    gender: Gender
    occupation_category: str | None = Field(None, max_length=50)
    bio: str = Field(..., min_length=10, max_length=50)
    interest_tags: list[str] = Field(..., min_length=3, max_length=3)
    mbti: str | None = Field(None, pattern="^[EI][SN][TF][JP]$")
    music_genre: str | None = Field(None, max_length=30)
    # Checked by the service so a bad handle is a domain validation error
    instagram_id: str | None = None
    kakao_open_chat_id: str | None = Field(None, max_length=200)


class PublicProfileResponse(BaseModel):
    """What a stranger sees: blurred photo, no identity fields"""

    id: UUID
    short_id: str
    photo_url: str
    age: int
    gender: str
    occupation_category: str | None
    bio: str
    interest_tags: list[str]
    mbti: str | None
    music_genre: str | None
    expires_at: datetime
    is_active: bool
    is_expired: bool = False
    view_count: int
    chat_request_count: int

    model_config = ConfigDict(from_attributes=True)


class ProfileResponse(PublicProfileResponse):
    """Owner view of a profile"""

    creator_id: UUID
    matchmaker_id: UUID | None
    target_id: UUID | None
    original_photo_url: str | None
    name: str | None
    instagram_id: str | None
    kakao_open_chat_id: str | None
    created_at: datetime
    share_url: str | None = None


class RevealedProfile(BaseModel):
    """Identity fields disclosed after a mutual reveal"""

    original_photo_url: str | None
    instagram_id: str | None
    kakao_open_chat_id: str | None
    name: str | None

    model_config = ConfigDict(from_attributes=True)
