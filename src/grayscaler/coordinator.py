from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Union

from .errors import SizeRejected, SourceUnreadable, UnsupportedFormat
from .events import AssetDeleted, AssetIngested, EventBus, SizeRequested
from .image_processing.generator import DerivativeGenerator
from .models import (
    FULL_SIZE,
    Asset,
    DerivativeMeta,
    Downsize,
    GrayscaleOf,
    Plain,
    Resolution,
    SizeRequest,
    UseOriginal,
    parse_size_request,
)
from .paths import derivative_name, sibling_path, sibling_url
from .registry import REGISTRY_KEY, DerivativeRegistry
from .store import AssetStore, Metadata, write_atomic

logger = logging.getLogger(__name__)


class LifecycleCoordinator:
    """Generate, resolve and clean up grayscale derivatives of assets."""

    def __init__(
        self,
        store: AssetStore,
        generator: DerivativeGenerator | None = None,
        registry: DerivativeRegistry | None = None,
    ) -> None:
        self.store = store
        self.generator = generator or DerivativeGenerator()
        self.registry = registry or DerivativeRegistry(store)

    def bind(self, bus: EventBus) -> None:
        bus.subscribe(AssetIngested, lambda event: self.on_ingest(event.asset_id, event.metadata))
        bus.subscribe(AssetDeleted, lambda event: self.on_delete(event.asset_id))
        bus.subscribe(SizeRequested, lambda event: self.on_fetch(event.asset_id, event.request))

    def on_ingest(self, asset_id: str, metadata: Optional[Metadata]) -> Optional[Metadata]:
        """Create a grayscale derivative for every size of the asset.

        Returns the metadata with its ``grayscaled`` map filled in, or the
        metadata untouched when the asset is not a PNG/JPEG image. Variants
        that are too large or unreadable are skipped.
        """

        if not metadata or "file" not in metadata:
            return metadata

        # Files from an earlier ingestion are not reused.
        self.registry.delete_all(asset_id)
        self.store.save_metadata(asset_id, metadata)

        asset = Asset.from_metadata(asset_id, metadata)
        if asset.format is None:
            logger.info("Skipping asset %s: %s", asset_id, UnsupportedFormat(asset.extension or asset.file))
            return metadata

        self.registry.reset(asset_id)
        upload_dir = self.registry.upload_dir
        for variant in asset.variants():
            source = sibling_path(upload_dir, asset.file, variant.file)
            try:
                encoded = self.generator.generate(source, variant.extension)
            except SizeRejected as exc:
                logger.info("Skipping %s size of asset %s: %s", variant.label, asset_id, exc)
                continue
            except (SourceUnreadable, UnsupportedFormat) as exc:
                logger.warning("Skipping %s size of asset %s: %s", variant.label, asset_id, exc)
                continue

            filename = derivative_name(variant.file)
            try:
                write_atomic(sibling_path(upload_dir, asset.file, filename), encoded.data)
            except OSError as exc:
                logger.warning("Unable to store %s size of asset %s: %s", variant.label, asset_id, exc)
                continue
            self.registry.record(
                asset_id,
                variant.label,
                DerivativeMeta(file=filename, width=encoded.width, height=encoded.height),
            )

        entries = self.registry.entries(asset_id) or {}
        logger.info("Generated %s grayscale derivative(s) for asset %s", len(entries), asset_id)
        return self.store.get_metadata(asset_id)

    def on_delete(self, asset_id: str) -> None:
        self.registry.delete_all(asset_id)

    def on_fetch(
        self, asset_id: str, requested: Union[str, SizeRequest]
    ) -> Optional[Resolution]:
        """Resolve a grayscale size request.

        ``None`` means the request is not a grayscale one and is left to the
        caller; ``UseOriginal`` means the asset has no usable derivative.
        """

        request = parse_size_request(requested)
        if isinstance(request, Plain):
            return None

        label = request.label
        picked = self.registry.pick(self.registry.entries(asset_id), label)
        if picked is None:
            return UseOriginal(label)

        resolved, derivative = picked
        url = sibling_url(self.store.get_url(asset_id), derivative.file)
        return Downsize(
            url=url,
            width=derivative.width,
            height=derivative.height,
            is_downsized=resolved != FULL_SIZE,
        )

    def resolve(self, asset_id: str, requested: Union[str, SizeRequest]) -> Downsize:
        request = parse_size_request(requested)
        result = self.on_fetch(asset_id, request)
        if isinstance(result, Downsize):
            return result
        if isinstance(result, UseOriginal):
            return self.store.original_downsize(asset_id, result.label)
        return self.store.original_downsize(asset_id, request.label)

    def prepare_for_display(self, asset_id: str, response: Dict[str, Any]) -> Dict[str, Any]:
        """Add a ``grayscaled`` entry for each size listed in ``response``."""

        metadata = self.store.get_metadata(asset_id)
        if not metadata or REGISTRY_KEY not in metadata:
            return response

        grayscaled: Dict[str, Any] = {}
        for label, data in (response.get("sizes") or {}).items():
            result = self.on_fetch(asset_id, GrayscaleOf(label))
            if isinstance(result, Downsize):
                grayscaled[label] = _size_entry(result)
            else:
                grayscaled[label] = dict(data)
        response["grayscaled"] = grayscaled
        return response

    def display_response(self, asset_id: str) -> Dict[str, Any]:
        metadata = self.store.get_metadata(asset_id) or {}
        labels = [FULL_SIZE, *(metadata.get("sizes") or {})]
        response: Dict[str, Any] = {
            "id": asset_id,
            "url": self.store.get_url(asset_id),
            "sizes": {label: _size_entry(self.store.original_downsize(asset_id, label)) for label in labels},
        }
        return self.prepare_for_display(asset_id, response)


def _size_entry(downsize: Downsize) -> Dict[str, Any]:
    return {
        "url": downsize.url,
        "width": downsize.width,
        "height": downsize.height,
        "orientation": "portrait" if downsize.height > downsize.width else "landscape",
    }
