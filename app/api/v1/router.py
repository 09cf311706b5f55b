from fastapi import APIRouter

from app.api.v1.endpoints import (
    auth,
    blocks,
    chats,
    invitations,
    photos,
    profiles,
    realtime,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth")
router.include_router(profiles.router, prefix="/profiles")
router.include_router(invitations.router, prefix="/invitations")
router.include_router(chats.router, prefix="/chats")
router.include_router(blocks.router, prefix="/blocks")
router.include_router(photos.router, prefix="/photos")
router.include_router(realtime.router, prefix="/realtime")
