"""Blob storage client for profile photos (Supabase-style storage REST API)."""

import logging

import httpx

from app.config import settings
from app.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0


class StorageClient:
    """
    Thin async client over the storage object endpoints.

    ``transport`` lets tests plug in ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        bucket: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.STORAGE_URL).rstrip("/")
        self.service_key = service_key if service_key is not None else settings.STORAGE_SERVICE_KEY
        self.bucket = bucket or settings.STORAGE_BUCKET
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/storage/v1",
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
            },
            timeout=REQUEST_TIMEOUT,
            transport=self._transport,
        )

    def get_public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    async def download(self, path: str) -> bytes:
        """
        Download an object from the bucket.

        Args:
            path: Object path inside the bucket

        Returns:
            Raw object bytes
        """
        try:
            async with self._client() as client:
                resp = await client.get(f"/object/{self.bucket}/{path}")
                resp.raise_for_status()
                return resp.content
        except httpx.HTTPError as e:
            logger.error(f"Storage download failed for {path}: {e}")
            raise UpstreamError("사진을 불러오지 못했어요")

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str = "image/jpeg",
        upsert: bool = True,
    ) -> str:
        """
        Upload bytes to the bucket and return the object's public URL.
        """
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"/object/{self.bucket}/{path}",
                    content=data,
                    headers={
                        "Content-Type": content_type,
                        "x-upsert": "true" if upsert else "false",
                    },
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Storage upload failed for {path}: {e}")
            raise UpstreamError("사진을 저장하지 못했어요")
        return self.get_public_url(path)


def get_storage_client() -> StorageClient:
    """FastAPI dependency; overridden in tests."""
    return StorageClient()
