"""Image processing for profile photos."""

import asyncio
import io
import logging

from PIL import Image, ImageFilter, UnidentifiedImageError

from app.core.exceptions import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

BLUR_WIDTH = 400
BLUR_RADIUS = 30
BLUR_QUALITY = 60


def blur_image_sync(data: bytes) -> bytes:
    """
    Produce the public, blurred variant of a photo.

    Args:
        data: Original image bytes (any format Pillow can read)

    Returns:
        JPEG bytes, resized to BLUR_WIDTH wide and heavily blurred
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = img.convert("RGB")
            if img.width != BLUR_WIDTH:
                height = max(1, round(img.height * BLUR_WIDTH / img.width))
                img = img.resize((BLUR_WIDTH, height), Image.Resampling.LANCZOS)
            blurred = img.filter(ImageFilter.GaussianBlur(radius=BLUR_RADIUS))

            output = io.BytesIO()
            blurred.save(output, format="JPEG", quality=BLUR_QUALITY)
            return output.getvalue()
    except UnidentifiedImageError:
        raise ValidationError("이미지 파일만 올릴 수 있어요", field="storage_path")
    except OSError as e:
        logger.error(f"Image blur failed: {e}")
        raise UpstreamError("사진 처리에 실패했어요")


async def blur_image(data: bytes) -> bytes:
    """Run the blur off the event loop."""
    return await asyncio.to_thread(blur_image_sync, data)
