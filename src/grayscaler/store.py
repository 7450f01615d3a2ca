from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol

from .errors import AssetNotFound
from .models import FULL_SIZE, Downsize
from .paths import sibling_url

logger = logging.getLogger(__name__)

Metadata = Dict[str, Any]

INDEX_DIRNAME = ".grayscaler"
INDEX_FILENAME = "attachments.json"


class AssetStore(Protocol):
    upload_dir: Path

    def get_metadata(self, asset_id: str) -> Optional[Metadata]: ...

    def save_metadata(self, asset_id: str, metadata: Metadata) -> None: ...

    def delete(self, asset_id: str) -> None: ...

    def get_url(self, asset_id: str) -> str: ...

    def original_downsize(self, asset_id: str, label: str) -> Downsize: ...


class BaseAssetStore(ABC):
    """URL rendering shared by the concrete stores."""

    def __init__(self, upload_dir: Path, base_url: str = "") -> None:
        self.upload_dir = Path(upload_dir)
        self.base_url = base_url.rstrip("/")

    @abstractmethod
    def get_metadata(self, asset_id: str) -> Optional[Metadata]: ...

    @abstractmethod
    def save_metadata(self, asset_id: str, metadata: Metadata) -> None: ...

    @abstractmethod
    def delete(self, asset_id: str) -> None: ...

    def require_metadata(self, asset_id: str) -> Metadata:
        metadata = self.get_metadata(asset_id)
        if metadata is None:
            raise AssetNotFound(asset_id)
        return metadata

    def get_url(self, asset_id: str) -> str:
        metadata = self.require_metadata(asset_id)
        return f"{self.base_url}/{metadata['file']}"

    def original_downsize(self, asset_id: str, label: str) -> Downsize:
        """Resolve ``label`` against the original renditions of the asset."""

        metadata = self.require_metadata(asset_id)
        url = self.get_url(asset_id)
        size = (metadata.get("sizes") or {}).get(label)
        if label == FULL_SIZE or size is None:
            return Downsize(
                url=url,
                width=int(metadata.get("width") or 0),
                height=int(metadata.get("height") or 0),
                is_downsized=False,
            )
        return Downsize(
            url=sibling_url(url, size["file"]),
            width=int(size.get("width") or 0),
            height=int(size.get("height") or 0),
            is_downsized=True,
        )


class InMemoryAssetStore(BaseAssetStore):
    def __init__(self, upload_dir: Path, base_url: str = "") -> None:
        super().__init__(upload_dir, base_url)
        self._items: Dict[str, Metadata] = {}

    def get_metadata(self, asset_id: str) -> Optional[Metadata]:
        metadata = self._items.get(asset_id)
        return copy.deepcopy(metadata) if metadata is not None else None

    def save_metadata(self, asset_id: str, metadata: Metadata) -> None:
        self._items[asset_id] = copy.deepcopy(metadata)

    def delete(self, asset_id: str) -> None:
        self._items.pop(asset_id, None)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))


class JsonAssetStore(BaseAssetStore):
    """Keep every asset's metadata in one JSON index under the upload dir."""

    def __init__(self, upload_dir: Path, base_url: str = "", index_path: Optional[Path] = None) -> None:
        super().__init__(upload_dir, base_url)
        self.index_path = index_path or self.upload_dir / INDEX_DIRNAME / INDEX_FILENAME

    def get_metadata(self, asset_id: str) -> Optional[Metadata]:
        return self._load().get(asset_id)

    def save_metadata(self, asset_id: str, metadata: Metadata) -> None:
        items = self._load()
        items[asset_id] = metadata
        self._dump(items)

    def delete(self, asset_id: str) -> None:
        items = self._load()
        if items.pop(asset_id, None) is not None:
            self._dump(items)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._load()))

    def _load(self) -> Dict[str, Metadata]:
        if not self.index_path.exists():
            return {}
        try:
            payload = json.loads(self.index_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Corrupt asset index at {self.index_path}") from exc
        if not isinstance(payload, dict):
            raise ValueError(f"Asset index at {self.index_path} must contain a JSON object")
        return payload

    def _dump(self, items: Dict[str, Metadata]) -> None:
        content = json.dumps(items, indent=2, sort_keys=True).encode("utf-8")
        write_atomic(self.index_path, content)
        logger.debug("Wrote asset index with %s entries to %s", len(items), self.index_path)


def write_atomic(target: Path, content: bytes) -> None:
    """Write ``content`` next to ``target`` and move it into place."""

    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
