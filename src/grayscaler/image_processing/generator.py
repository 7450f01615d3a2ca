from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Iterator

import numpy as np
from PIL import Image

from ..errors import SizeRejected, SourceUnreadable, UnsupportedFormat
from ..models import EncodedImage, format_for_extension

try:
    import cv2
except ImportError as exc:  # pragma: no cover - optional dependency guard
    raise RuntimeError("OpenCV is required for grayscale conversion") from exc

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("PNG", "JPEG")
DEFAULT_MAX_PIXELS = 2000 * 2000


@dataclass(slots=True)
class GeneratorConfig:
    max_pixels: int = DEFAULT_MAX_PIXELS
    jpeg_quality: int = 90


class DerivativeGenerator:
    """Decode an image, desaturate it and re-encode it in the same format."""

    def __init__(self, config: GeneratorConfig | None = None) -> None:
        self.config = config or GeneratorConfig()

    def generate(self, source_path: Path, format: str) -> EncodedImage:
        target_format = self.normalize_format(format)
        try:
            with _open_header(source_path) as image:
                width, height = image.size
                self.check_size(source_path, width, height)
                logger.debug("Desaturating %s (%sx%s)", source_path, width, height)
                image.load()
                gray = self.desaturate(image, keep_alpha=target_format == "PNG")
        except OSError as exc:
            raise SourceUnreadable(source_path, str(exc)) from exc

        return EncodedImage(
            data=self._encode(gray, target_format),
            format=target_format,
            width=width,
            height=height,
        )

    @staticmethod
    def normalize_format(value: str) -> str:
        upper = value.upper()
        if upper in SUPPORTED_FORMATS:
            return upper
        mapped = format_for_extension(value.lstrip("."))
        if mapped is None:
            raise UnsupportedFormat(value)
        return mapped

    def check_size(self, source_path: Path, width: int, height: int) -> None:
        if width * height > self.config.max_pixels:
            raise SizeRejected(source_path, width, height, self.config.max_pixels)

    def desaturate(self, image: Image.Image, *, keep_alpha: bool = False) -> Image.Image:
        rgb = np.array(image.convert("RGB"))
        gray = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
        if keep_alpha and _has_alpha(image):
            alpha = np.array(image.convert("RGBA"))[:, :, 3]
            return Image.fromarray(np.dstack((gray, alpha)))
        return Image.fromarray(gray)

    def _encode(self, image: Image.Image, target_format: str) -> bytes:
        buffer = BytesIO()
        if target_format == "JPEG":
            image.save(buffer, format="JPEG", quality=self.config.jpeg_quality)
        else:
            image.save(buffer, format="PNG")
        return buffer.getvalue()


def _has_alpha(image: Image.Image) -> bool:
    if image.mode in ("RGBA", "LA", "PA"):
        return True
    return image.mode in ("P", "L", "RGB") and "transparency" in image.info


@contextmanager
def _open_header(source_path: Path) -> Iterator[Image.Image]:
    """Open lazily with Pillow's bomb limit lifted; ``check_size`` applies ours."""

    limit = Image.MAX_IMAGE_PIXELS
    Image.MAX_IMAGE_PIXELS = None
    try:
        image = Image.open(source_path)
    finally:
        Image.MAX_IMAGE_PIXELS = limit
    with image:
        yield image
