from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.api.v1.endpoints.profiles import to_owner_response
from app.database import get_db
from app.models.invitation import Invitation
from app.schemas.invitation import (
    InvitationCreate,
    InvitationPublicResponse,
    InvitationResponse,
)
from app.schemas.profile import ProfileCreate, ProfileResponse
from app.schemas.user import CurrentUser
from app.services import expiry, invitation_service

router = APIRouter(prefix="", tags=["invitations"])


def _matchmaker_response(invitation: Invitation) -> InvitationResponse:
    response = InvitationResponse.model_validate(invitation)
    response.invite_url = invitation_service.get_invite_url(invitation.invite_code)
    response.is_expired = expiry.is_expired(invitation.expires_at, expiry.utcnow())
    return response


@router.post("/", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def create_invitation(
    request: InvitationCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InvitationResponse:
    """Create an invite link for a friend to write their own profile."""
    invitation = await invitation_service.create_invitation(
        db, current_user.id, request.message
    )
    return _matchmaker_response(invitation)


@router.get("/me", response_model=list[InvitationResponse])
async def get_my_invitations(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[InvitationResponse]:
    invitations = await invitation_service.get_user_invitations(db, current_user.id)
    return [_matchmaker_response(invitation) for invitation in invitations]


@router.get("/{invite_code}", response_model=InvitationPublicResponse)
async def get_invitation(
    invite_code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> InvitationPublicResponse:
    """Invite page data. No login needed."""
    invitation, is_expired = await invitation_service.get_open_invitation(db, invite_code)
    response = InvitationPublicResponse.model_validate(invitation)
    response.is_expired = is_expired
    return response


@router.post(
    "/{invite_code}/profile",
    response_model=ProfileResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_invite_profile(
    invite_code: str,
    profile_data: ProfileCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ProfileResponse:
    """Invited friend writes their profile; it stays hidden until the matchmaker shares it."""
    profile = await invitation_service.submit_invite_profile(
        db, invite_code, current_user.id, profile_data
    )
    return to_owner_response(profile)
