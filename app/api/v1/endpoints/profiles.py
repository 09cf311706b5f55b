from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.database import get_db
from app.models.profile import Profile
from app.schemas.profile import ProfileCreate, ProfileResponse, PublicProfileResponse
from app.schemas.user import CurrentUser
from app.services import expiry, profile_service

router = APIRouter(prefix="", tags=["profiles"])


def to_owner_response(profile: Profile) -> ProfileResponse:
    response = ProfileResponse.model_validate(profile)
    response.share_url = profile_service.get_share_url(profile.short_id)
    response.is_expired = not profile.is_active or expiry.is_expired(
        profile.expires_at, expiry.utcnow()
    )
    return response


@router.post("/", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    profile_data: ProfileCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Create a self-authored profile; it is live for 24 hours."""
    profile = await profile_service.create_profile(db, current_user.id, profile_data)
    return to_owner_response(profile)


@router.get("/me", response_model=list[ProfileResponse])
async def get_my_profiles(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[ProfileResponse]:
    """Profiles the current user wrote or introduced."""
    profiles = await profile_service.get_user_profiles(db, current_user.id)
    return [to_owner_response(profile) for profile in profiles]


@router.get("/s/{short_id}", response_model=PublicProfileResponse)
async def get_public_profile(
    short_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PublicProfileResponse:
    """Public share-link view. No login needed; identity fields are never included."""
    profile, is_expired = await profile_service.get_public_profile(db, short_id)
    response = PublicProfileResponse.model_validate(profile)
    response.is_expired = is_expired
    return response


@router.post("/{profile_id}/share", response_model=ProfileResponse)
async def share_profile(
    profile_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Matchmaker publishes a profile their friend completed."""
    profile = await profile_service.activate_shared_profile(db, profile_id, current_user.id)
    return to_owner_response(profile)


@router.delete("/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_profile(
    profile_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    await profile_service.delete_profile(db, profile_id, current_user.id)
