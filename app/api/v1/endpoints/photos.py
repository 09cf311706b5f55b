from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.endpoints.auth import get_current_user
from app.schemas.photo import PhotoProcessRequest, PhotoProcessResponse
from app.schemas.user import CurrentUser
from app.services import photo_service
from app.services.storage_service import StorageClient, get_storage_client

router = APIRouter(prefix="", tags=["photos"])


@router.post("/process", response_model=PhotoProcessResponse)
async def process_photo(
    request: PhotoProcessRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
) -> PhotoProcessResponse:
    """
    Produce the public (blurred) URL for a photo the client uploaded to
    "{user_id}/..." in blob storage.
    """
    photo_url, original_photo_url = await photo_service.process_uploaded_photo(
        current_user.id, request.storage_path, blur=request.blur, storage=storage
    )
    return PhotoProcessResponse(photo_url=photo_url, original_photo_url=original_photo_url)
