"""Profile photo pipeline: original in storage -> blurred public copy."""

import logging
import posixpath
from uuid import UUID

from app.core.exceptions import AuthorizationError, ErrorCode
from app.services import image_service
from app.services.storage_service import StorageClient

logger = logging.getLogger(__name__)

BLURRED_FILENAME = "blurred.jpeg"


def validate_storage_path(user_id: UUID, storage_path: str) -> str:
    """Uploads live under "{user_id}/"; anything else is someone else's file."""
    path = storage_path.strip().lstrip("/")
    # Encoded or backslash separators could smuggle a ".." past the segment check
    if (
        "%" in path
        or "\\" in path
        or ".." in path.split("/")
        or not path.startswith(f"{user_id}/")
    ):
        raise AuthorizationError(
            "본인이 올린 사진만 처리할 수 있어요", code=ErrorCode.AUTHZ_STORAGE_PATH
        )
    return path


async def process_uploaded_photo(
    user_id: UUID,
    storage_path: str,
    blur: bool = True,
    storage: StorageClient | None = None,
) -> tuple[str, str]:
    """
    Turn an uploaded original into the URLs a profile stores.

    The original stays where the client uploaded it and is only ever shown
    after a reveal. With ``blur`` the public photo is a blurred copy written
    next to it; without, both URLs point at the original.

    Returns:
        (photo_url, original_photo_url)
    """
    path = validate_storage_path(user_id, storage_path)
    storage = storage or StorageClient()

    original_url = storage.get_public_url(path)
    if not blur:
        return original_url, original_url

    original = await storage.download(path)
    blurred = await image_service.blur_image(original)

    blurred_path = posixpath.join(posixpath.dirname(path), BLURRED_FILENAME)
    photo_url = await storage.upload(blurred_path, blurred, content_type="image/jpeg")

    logger.info("Blurred photo stored (user=%s, path=%s)", user_id, blurred_path)
    return photo_url, original_url
