from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError

from ..errors import FetchError
from ..store import write_atomic

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FetchedOriginal:
    relpath: str
    width: int
    height: int
    format: Optional[str]


class OriginalFetcher:
    """Download a remote original into the upload directory, with retries."""

    def __init__(
        self,
        upload_dir: Path,
        timeout: float = 20.0,
        retries: int = 2,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.upload_dir = Path(upload_dir)
        self.timeout = timeout
        self.retries = retries
        self.transport = transport

    def fetch(self, url: str, subdir: Optional[str] = None) -> FetchedOriginal:
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                with httpx.Client(
                    timeout=self.timeout, follow_redirects=True, transport=self.transport
                ) as client:
                    logger.debug("Downloading original %s (attempt %s)", url, attempt + 1)
                    response = client.get(url)
                    response.raise_for_status()
                    content = response.content
                break
            except httpx.HTTPError as exc:
                logger.warning("Failed to download %s: %s", url, exc)
                last_error = exc
        else:
            raise FetchError(f"Unable to download original {url}") from last_error

        try:
            with Image.open(BytesIO(content)) as fetched:
                width, height = fetched.size
                image_format = fetched.format
        except UnidentifiedImageError as exc:
            raise FetchError(f"Downloaded content from {url} is not an image") from exc

        relpath = self._relpath(url, image_format, subdir)
        write_atomic(self.upload_dir / relpath, content)
        logger.info("Stored original %s as %s", url, relpath)
        return FetchedOriginal(relpath=relpath, width=width, height=height, format=image_format)

    def _relpath(self, url: str, image_format: Optional[str], subdir: Optional[str]) -> str:
        name = PurePosixPath(urlparse(url).path).name
        if not name or "." not in name:
            digest = hashlib.sha1(url.encode("utf-8"), usedforsecurity=False).hexdigest()[:12]
            extension = {"JPEG": "jpg"}.get(image_format or "", (image_format or "bin").lower())
            name = f"{digest}.{extension}"
        if subdir:
            return str(PurePosixPath(subdir.strip("/")) / name)
        return name
