from __future__ import annotations

from pathlib import Path
from typing import Optional


class GrayscalerError(Exception):
    """Base class for errors raised by grayscaler."""


class SourceUnreadable(GrayscalerError):
    def __init__(self, path: Path, reason: Optional[str] = None) -> None:
        self.path = path
        message = f"Unable to read source image {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SizeRejected(GrayscalerError):
    """The source exceeds the configured pixel ceiling."""

    def __init__(self, path: Path, width: int, height: int, limit: int) -> None:
        self.path = path
        self.width = width
        self.height = height
        self.limit = limit
        super().__init__(
            f"{path} is {width}x{height} ({width * height} px), above the {limit} px limit"
        )


class UnsupportedFormat(GrayscalerError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Unsupported image format {value!r}; expected PNG or JPEG")


class AssetNotFound(GrayscalerError, KeyError):
    def __init__(self, asset_id: str) -> None:
        self.asset_id = asset_id
        super().__init__(f"Unknown asset {asset_id!r}")

    def __str__(self) -> str:
        return str(self.args[0])


class FetchError(GrayscalerError):
    """A remote original could not be downloaded."""
