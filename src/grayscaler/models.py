from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from .paths import extension_of

FULL_SIZE = "full"
GRAYSCALE_PREFIX = "grayscale"


@dataclass(slots=True)
class SizeVariant:
    """A named rendition of an asset, stored beside the original file."""

    label: str
    file: str
    width: Optional[int] = None
    height: Optional[int] = None
    mime_type: Optional[str] = None

    @property
    def extension(self) -> str:
        return extension_of(self.file)


@dataclass(slots=True)
class Asset:
    """Metadata describing an uploaded image and its size variants."""

    id: str
    file: str
    width: Optional[int] = None
    height: Optional[int] = None
    sizes: Dict[str, SizeVariant] = field(default_factory=dict)

    @property
    def extension(self) -> str:
        return extension_of(self.file)

    @property
    def format(self) -> Optional[str]:
        return format_for_extension(self.extension)

    def variants(self) -> list[SizeVariant]:
        """Return the original as ``full`` followed by every listed size."""

        basename = self.file.rsplit("/", 1)[-1]
        full = SizeVariant(label=FULL_SIZE, file=basename, width=self.width, height=self.height)
        return [full, *self.sizes.values()]

    @classmethod
    def from_metadata(cls, asset_id: str, metadata: Mapping[str, Any]) -> "Asset":
        sizes: Dict[str, SizeVariant] = {}
        for label, data in (metadata.get("sizes") or {}).items():
            sizes[label] = SizeVariant(
                label=label,
                file=str(data["file"]).rsplit("/", 1)[-1],
                width=data.get("width"),
                height=data.get("height"),
                mime_type=data.get("mime-type"),
            )
        return cls(
            id=asset_id,
            file=str(metadata["file"]),
            width=metadata.get("width"),
            height=metadata.get("height"),
            sizes=sizes,
        )


@dataclass(frozen=True, slots=True)
class DerivativeMeta:
    file: str
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DerivativeMeta":
        return cls(file=str(data["file"]), width=int(data["width"]), height=int(data["height"]))


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """Encoded output of the generator; persisting it is up to the caller."""

    data: bytes
    format: str
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class Downsize:
    url: str
    width: int
    height: int
    is_downsized: bool

    def as_tuple(self) -> tuple[str, int, int, bool]:
        return (self.url, self.width, self.height, self.is_downsized)


@dataclass(frozen=True, slots=True)
class UseOriginal:
    """Resolve ``label`` against the original asset; no derivative applies."""

    label: str


@dataclass(frozen=True, slots=True)
class Plain:
    label: str


@dataclass(frozen=True, slots=True)
class GrayscalePlain:
    label: str = FULL_SIZE


@dataclass(frozen=True, slots=True)
class GrayscaleOf:
    label: str


SizeRequest = Union[Plain, GrayscalePlain, GrayscaleOf]
Resolution = Union[Downsize, UseOriginal]

_FORMATS = {"png": "PNG", "jpg": "JPEG", "jpeg": "JPEG"}


def format_for_extension(extension: str) -> Optional[str]:
    return _FORMATS.get(extension.lower())


def parse_size_request(value: Union[str, SizeRequest]) -> SizeRequest:
    """Parse a size string such as ``grayscale:thumbnail`` into a request."""

    if isinstance(value, (Plain, GrayscalePlain, GrayscaleOf)):
        return value
    if value == GRAYSCALE_PREFIX:
        return GrayscalePlain()
    prefix = f"{GRAYSCALE_PREFIX}:"
    if value.startswith(prefix):
        return GrayscaleOf(value[len(prefix):])
    return Plain(value)
