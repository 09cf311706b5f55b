from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.auth import get_current_user
from app.database import get_db
from app.schemas.block import BlockCreate, BlockListResponse, BlockResponse
from app.schemas.user import CurrentUser
from app.services import block_service

router = APIRouter(prefix="", tags=["blocks"])


@router.post("/", response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
async def block_user(
    request: BlockCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BlockResponse:
    """Block a user. Blocked pairs cannot request chats with each other."""
    block = await block_service.block_user(db, current_user.id, request.user_id)
    return BlockResponse.model_validate(block)


@router.get("/", response_model=BlockListResponse)
async def list_blocks(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BlockListResponse:
    blocks = await block_service.get_blocks(db, current_user.id)
    return BlockListResponse(blocks=[BlockResponse.model_validate(b) for b in blocks])


@router.delete("/{block_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_user(
    block_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    await block_service.unblock_user(db, current_user.id, block_id)
