from .coordinator import LifecycleCoordinator
from .errors import (
    AssetNotFound,
    FetchError,
    GrayscalerError,
    SizeRejected,
    SourceUnreadable,
    UnsupportedFormat,
)
from .events import AssetDeleted, AssetIngested, EventBus, SizeRequested
from .image_processing.generator import DerivativeGenerator, GeneratorConfig
from .models import (
    Asset,
    DerivativeMeta,
    Downsize,
    EncodedImage,
    GrayscaleOf,
    GrayscalePlain,
    Plain,
    SizeVariant,
    UseOriginal,
    parse_size_request,
)
from .registry import DerivativeRegistry
from .store import InMemoryAssetStore, JsonAssetStore

__all__ = [
    "Asset",
    "AssetDeleted",
    "AssetIngested",
    "AssetNotFound",
    "DerivativeGenerator",
    "DerivativeMeta",
    "DerivativeRegistry",
    "Downsize",
    "EncodedImage",
    "EventBus",
    "FetchError",
    "GeneratorConfig",
    "GrayscaleOf",
    "GrayscalePlain",
    "GrayscalerError",
    "InMemoryAssetStore",
    "JsonAssetStore",
    "LifecycleCoordinator",
    "Plain",
    "SizeRejected",
    "SizeRequested",
    "SizeVariant",
    "SourceUnreadable",
    "UnsupportedFormat",
    "UseOriginal",
    "parse_size_request",
]
