from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from ..config import GrayscalerConfig
from ..coordinator import LifecycleCoordinator
from ..errors import AssetNotFound, FetchError, GrayscalerError
from ..image_processing.generator import DerivativeGenerator
from ..media.fetcher import OriginalFetcher
from ..paths import sibling_path
from ..store import JsonAssetStore

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage grayscale derivatives of uploaded images")
    parser.add_argument("--upload-dir", type=Path, default=None, help="Base directory of uploaded files")
    parser.add_argument("--base-url", default=None, help="Public URL prefix of the upload directory")
    parser.add_argument(
        "--max-pixels", type=int, default=None, help="Largest pixel area that gets a grayscale derivative"
    )
    parser.add_argument("--jpeg-quality", type=int, default=None, help="Quality of JPEG derivatives (1-100)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Register an upload and generate its derivatives")
    ingest.add_argument("source", help="Path inside the upload directory, or an http(s) URL to fetch")
    ingest.add_argument("--id", dest="asset_id", default=None, help="Asset identifier (defaults to the file path)")
    ingest.add_argument(
        "--size",
        action="append",
        default=[],
        metavar="LABEL=FILE",
        help="Size variant stored beside the original, e.g. thumbnail=photo-150x50.jpg",
    )
    ingest.add_argument("--subdir", default=None, help="Upload subdirectory for fetched originals")

    delete = subparsers.add_parser("delete", help="Delete an asset's derivatives and its record")
    delete.add_argument("asset_id")

    fetch = subparsers.add_parser("fetch", help="Resolve a size request, e.g. grayscale:thumbnail")
    fetch.add_argument("asset_id")
    fetch.add_argument("size", nargs="?", default="grayscale")

    show = subparsers.add_parser("show", help="Print the display data of an asset as JSON")
    show.add_argument("asset_id")
    return parser.parse_args(argv)


def _load_config(args: argparse.Namespace) -> GrayscalerConfig:
    config = GrayscalerConfig.load(
        {
            "upload_dir": args.upload_dir,
            "base_url": args.base_url,
            "max_pixels": args.max_pixels,
            "jpeg_quality": args.jpeg_quality,
        }
    )
    if args.verbose:
        config.log_level = "DEBUG"
    return config


def _build_coordinator(config: GrayscalerConfig) -> LifecycleCoordinator:
    store = JsonAssetStore(config.upload_dir, config.base_url)
    return LifecycleCoordinator(store, generator=DerivativeGenerator(config.generator))


def _parse_sizes(values: List[str]) -> Dict[str, str]:
    sizes: Dict[str, str] = {}
    for value in values:
        label, sep, filename = value.partition("=")
        if not sep or not label.strip() or not filename.strip():
            raise ValueError(f"Size must look like LABEL=FILE, got {value!r}")
        sizes[label.strip()] = Path(filename.strip()).name
    return sizes


def _dimensions(path: Path) -> Dict[str, int]:
    try:
        with Image.open(path) as image:
            width, height = image.size
    except (OSError, UnidentifiedImageError):
        logger.debug("Unable to read dimensions of %s", path, exc_info=True)
        return {}
    return {"width": width, "height": height}


def _relative_source(config: GrayscalerConfig, source: str) -> str:
    path = Path(source)
    if not path.is_absolute():
        return path.as_posix()
    try:
        return path.resolve().relative_to(config.upload_dir.resolve()).as_posix()
    except ValueError as exc:
        raise ValueError(f"{source} is not inside the upload directory {config.upload_dir}") from exc


def _build_metadata(config: GrayscalerConfig, args: argparse.Namespace) -> Dict[str, Any]:
    if args.source.startswith(("http://", "https://")):
        fetcher = OriginalFetcher(config.upload_dir, timeout=config.timeout, retries=config.retries)
        fetched = fetcher.fetch(args.source, subdir=args.subdir)
        metadata: Dict[str, Any] = {"file": fetched.relpath, "width": fetched.width, "height": fetched.height}
    else:
        relpath = _relative_source(config, args.source)
        metadata = {"file": relpath, **_dimensions(config.upload_dir / relpath)}

    metadata["sizes"] = {}
    for label, filename in _parse_sizes(args.size).items():
        entry: Dict[str, Any] = {"file": filename}
        entry.update(_dimensions(sibling_path(config.upload_dir, metadata["file"], filename)))
        metadata["sizes"][label] = entry
    return metadata


def _run(args: argparse.Namespace, config: GrayscalerConfig) -> None:
    coordinator = _build_coordinator(config)

    if args.command == "ingest":
        metadata = _build_metadata(config, args)
        asset_id = args.asset_id or metadata["file"]
        result = coordinator.on_ingest(asset_id, metadata) or {}
        grayscaled = result.get("grayscaled")
        if grayscaled is None:
            logger.info("Asset %s is not a PNG/JPEG image; no derivatives created", asset_id)
        for label, entry in (grayscaled or {}).items():
            logger.info("Stored %s derivative %s (%sx%s)", label, entry["file"], entry["width"], entry["height"])
        print(asset_id)
    elif args.command == "delete":
        coordinator.store.require_metadata(args.asset_id)
        coordinator.on_delete(args.asset_id)
        coordinator.store.delete(args.asset_id)
        logger.info("Deleted asset %s", args.asset_id)
    elif args.command == "fetch":
        downsize = coordinator.resolve(args.asset_id, args.size)
        print(json.dumps(list(downsize.as_tuple())))
    elif args.command == "show":
        print(json.dumps(coordinator.display_response(args.asset_id), indent=2))


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        config = _load_config(args)
    except ValueError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("Invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))

    try:
        _run(args, config)
    except FetchError as exc:
        logger.error("Failed to fetch original: %s", exc)
        raise SystemExit(2) from exc
    except AssetNotFound as exc:
        logger.error("%s", exc)
        raise SystemExit(3) from exc
    except (GrayscalerError, ValueError) as exc:
        logger.error("Command failed: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
