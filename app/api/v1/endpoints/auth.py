from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordBearer

from app.core.exceptions import AuthenticationError, ErrorCode
from app.core.security import resolve_user_id
from app.schemas.user import CurrentUser

router = APIRouter(prefix="", tags=["auth"])

# Tokens are issued by the external identity broker; this service only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> CurrentUser:
    if not token:
        raise AuthenticationError()

    user_id = resolve_user_id(token)
    if user_id is None:
        raise AuthenticationError(
            "로그인 정보가 올바르지 않아요. 다시 로그인해주세요",
            code=ErrorCode.AUTH_TOKEN_INVALID,
        )
    return CurrentUser(id=user_id)


@router.get("/me", response_model=CurrentUser)
async def get_me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    return current_user
