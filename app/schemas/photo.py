from pydantic import BaseModel, Field


class PhotoProcessRequest(BaseModel):
    """A photo the client already uploaded straight to blob storage."""

    storage_path: str = Field(..., min_length=1, max_length=300)
    blur: bool = True


class PhotoProcessResponse(BaseModel):
    photo_url: str
    original_photo_url: str
