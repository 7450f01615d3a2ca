from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from .models import FULL_SIZE, DerivativeMeta
from .paths import sibling_path
from .store import AssetStore

logger = logging.getLogger(__name__)

REGISTRY_KEY = "grayscaled"


class DerivativeRegistry:
    """Track grayscale derivatives in the ``grayscaled`` map of asset metadata."""

    def __init__(self, store: AssetStore, upload_dir: Optional[Path] = None) -> None:
        self.store = store
        self.upload_dir = Path(upload_dir) if upload_dir is not None else store.upload_dir

    def reset(self, asset_id: str) -> None:
        metadata = self.store.get_metadata(asset_id)
        if metadata is None:
            return
        metadata[REGISTRY_KEY] = {}
        self.store.save_metadata(asset_id, metadata)

    def record(self, asset_id: str, size_label: str, derivative: DerivativeMeta) -> None:
        metadata = self.store.get_metadata(asset_id)
        if metadata is None:
            logger.warning("Not recording %s derivative for unknown asset %s", size_label, asset_id)
            return
        metadata.setdefault(REGISTRY_KEY, {})[size_label] = derivative.to_dict()
        self.store.save_metadata(asset_id, metadata)
        logger.debug("Recorded %s derivative %s for asset %s", size_label, derivative.file, asset_id)

    def entries(self, asset_id: str) -> Optional[Dict[str, DerivativeMeta]]:
        metadata = self.store.get_metadata(asset_id)
        if metadata is None or REGISTRY_KEY not in metadata:
            return None
        return {
            label: DerivativeMeta.from_dict(data)
            for label, data in (metadata[REGISTRY_KEY] or {}).items()
        }

    def lookup(self, asset_id: str, size_label: str) -> Optional[DerivativeMeta]:
        picked = self.pick(self.entries(asset_id), size_label)
        return picked[1] if picked else None

    @staticmethod
    def pick(
        entries: Optional[Dict[str, DerivativeMeta]], size_label: str
    ) -> Optional[Tuple[str, DerivativeMeta]]:
        """Return the label actually served for ``size_label`` and its derivative."""

        if not entries:
            return None
        for label in (size_label, FULL_SIZE):
            if label in entries:
                return label, entries[label]
        return None

    def delete_all(self, asset_id: str) -> None:
        metadata = self.store.get_metadata(asset_id)
        if metadata is None or REGISTRY_KEY not in metadata:
            return

        for label, data in (metadata[REGISTRY_KEY] or {}).items():
            path = sibling_path(self.upload_dir, metadata["file"], data["file"])
            try:
                path.unlink()
                logger.debug("Deleted %s derivative %s", label, path)
            except FileNotFoundError:
                logger.debug("Derivative %s already gone", path)

        del metadata[REGISTRY_KEY]
        self.store.save_metadata(asset_id, metadata)
        logger.info("Removed grayscale derivatives of asset %s", asset_id)
