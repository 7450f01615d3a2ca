"""Naming and placement rules for derivative files.

Derivatives always live in the directory of the original upload. Stored
metadata only keeps their basenames, so every path is rebuilt from the
original's relative path.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath

DERIVATIVE_SUFFIX = "-grayscale"


def extension_of(filename: str) -> str:
    suffix = PurePosixPath(filename).suffix
    return suffix[1:] if suffix else ""


def derivative_name(filename: str) -> str:
    """``photo-150x50.jpg`` -> ``photo-150x50-grayscale.jpg``."""

    name = PurePosixPath(filename).name
    ext = extension_of(name)
    if not ext:
        return f"{name}{DERIVATIVE_SUFFIX}"
    stem = name[: -(len(ext) + 1)]
    return f"{stem}{DERIVATIVE_SUFFIX}.{ext}"


def sibling_relpath(original_relpath: str, basename: str) -> str:
    if "/" in basename:
        raise ValueError(f"Expected a bare file name, got {basename!r}")
    parent = PurePosixPath(original_relpath).parent
    if str(parent) == ".":
        return basename
    return str(parent / basename)


def sibling_path(upload_dir: Path, original_relpath: str, basename: str) -> Path:
    """Absolute path of ``basename`` placed beside the original upload."""

    return upload_dir / sibling_relpath(original_relpath, basename)


def sibling_url(original_url: str, basename: str) -> str:
    head, sep, _ = original_url.rpartition("/")
    return f"{head}{sep}{basename}"
