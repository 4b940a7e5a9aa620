"""
Media storage (CDN) client.

`MediaStorage` is the narrow contract the rest of the service depends on:
upload a local file into a folder and get back its `secure_url`, or delete a
previously uploaded asset by URL. `CloudinaryStorage` implements it against
the Cloudinary REST API. Any non-success response is a ServerError.
"""

from __future__ import annotations

import hashlib
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog

from videotube.config import get_settings
from videotube.errors import ServerError

logger = structlog.get_logger()


class MediaStorage(ABC):
    """Abstract remote media store."""

    @abstractmethod
    async def upload(self, local_path: str | Path, folder: str) -> dict[str, Any]:
        """Upload a file. The result contains at least `secure_url`."""
        ...

    @abstractmethod
    async def delete(self, url: str) -> None:
        """Delete a previously uploaded asset by its URL."""
        ...


def public_id_from_url(url: str) -> str:
    """
    Derive the Cloudinary public id from a delivery URL.

    https://res.cloudinary.com/demo/image/upload/v1712/videotube/users/abc.png
    -> videotube/users/abc
    """
    path = urlparse(url).path
    _, sep, tail = path.partition("/upload/")
    if not sep or not tail:
        msg = f"Not a media storage URL: {url}"
        raise ValueError(msg)
    segments = tail.split("/")
    if segments[0].startswith("v") and segments[0][1:].isdigit():
        segments = segments[1:]
    stem = "/".join(segments)
    return stem.rsplit(".", 1)[0] if "." in segments[-1] else stem


class CloudinaryStorage(MediaStorage):
    """Signed uploads and deletes through the Cloudinary REST API."""

    API_BASE = "https://api.cloudinary.com/v1_1"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout = timeout
        self._transport = transport

    def _sign(self, params: dict[str, str]) -> str:
        to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
        return hashlib.sha1((to_sign + self.api_secret).encode()).hexdigest()  # noqa: S324

    def _signed(self, params: dict[str, str]) -> dict[str, str]:
        params = {**params, "timestamp": str(int(time.time()))}
        return {**params, "api_key": self.api_key, "signature": self._sign(params)}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def upload(self, local_path: str | Path, folder: str) -> dict[str, Any]:
        """Upload with resource_type auto. Raises ServerError on any failure."""
        path = Path(local_path)
        url = f"{self.API_BASE}/{self.cloud_name}/auto/upload"
        try:
            async with self._client() as client:
                with path.open("rb") as fh:
                    response = await client.post(
                        url,
                        data=self._signed({"folder": folder}),
                        files={"file": (path.name, fh)},
                    )
                response.raise_for_status()
                result: dict[str, Any] = response.json()
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.exception("media_upload_failed", path=str(path), folder=folder)
            msg = "Error while uploading file"
            raise ServerError(msg) from e

        if not result.get("secure_url"):
            logger.error("media_upload_missing_url", path=str(path), folder=folder)
            msg = "Error while uploading file"
            raise ServerError(msg)

        logger.info("media_uploaded", folder=folder, url=result["secure_url"])
        return result

    async def delete(self, url: str) -> None:
        """Destroy an image by URL. A missing asset counts as deleted."""
        try:
            public_id = public_id_from_url(url)
        except ValueError as e:
            raise ServerError(str(e)) from e

        endpoint = f"{self.API_BASE}/{self.cloud_name}/image/destroy"
        try:
            async with self._client() as client:
                response = await client.post(endpoint, data=self._signed({"public_id": public_id}))
                response.raise_for_status()
                result = response.json().get("result")
        except (httpx.HTTPError, ValueError) as e:
            logger.exception("media_delete_failed", url=url)
            msg = "Error while deleting file"
            raise ServerError(msg) from e

        if result not in ("ok", "not found"):
            logger.error("media_delete_rejected", url=url, result=result)
            msg = "Error while deleting file"
            raise ServerError(msg)
        logger.info("media_deleted", public_id=public_id, result=result)


_media_storage: MediaStorage | None = None


def get_media_storage() -> MediaStorage:
    """Get or create the media storage singleton."""
    global _media_storage  # noqa: PLW0603
    if _media_storage is None:
        settings = get_settings()
        _media_storage = CloudinaryStorage(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            timeout=settings.media_timeout_seconds,
        )
    return _media_storage


def reset_media_storage() -> None:
    """Reset the media storage singleton (for testing)."""
    global _media_storage  # noqa: PLW0603
    _media_storage = None
