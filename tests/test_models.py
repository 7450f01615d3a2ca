from __future__ import annotations

import pytest

from grayscaler.models import (
    Asset,
    GrayscaleOf,
    GrayscalePlain,
    Plain,
    format_for_extension,
    parse_size_request,
)
from grayscaler.paths import derivative_name, sibling_path, sibling_relpath, sibling_url


@pytest.mark.parametrize(
    "value, expected",
    [
        ("grayscale", GrayscalePlain()),
        ("grayscale:thumbnail", GrayscaleOf("thumbnail")),
        ("grayscale:medium_large", GrayscaleOf("medium_large")),
        ("thumbnail", Plain("thumbnail")),
        ("full", Plain("full")),
        ("grayscaled", Plain("grayscaled")),
    ],
)
def test_parse_size_request(value: str, expected: object) -> None:
    assert parse_size_request(value) == expected


def test_parse_size_request_passes_parsed_requests_through() -> None:
    request = GrayscaleOf("medium")
    assert parse_size_request(request) is request


def test_grayscale_plain_means_full() -> None:
    assert GrayscalePlain().label == "full"


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("photo.jpg", "photo-grayscale.jpg"),
        ("photo-150x50.JPEG", "photo-150x50-grayscale.JPEG"),
        ("2024/05/logo.png", "logo-grayscale.png"),
        ("archive.tar.png", "archive.tar-grayscale.png"),
    ],
)
def test_derivative_name(filename: str, expected: str) -> None:
    assert derivative_name(filename) == expected


def test_sibling_paths_stay_in_original_directory(tmp_path) -> None:
    assert sibling_relpath("2024/05/photo.jpg", "photo-grayscale.jpg") == "2024/05/photo-grayscale.jpg"
    assert sibling_relpath("photo.jpg", "photo-grayscale.jpg") == "photo-grayscale.jpg"
    assert sibling_path(tmp_path, "2024/05/photo.jpg", "a.jpg") == tmp_path / "2024" / "05" / "a.jpg"
    assert (
        sibling_url("https://cdn.example.com/uploads/2024/05/photo.jpg", "photo-grayscale.jpg")
        == "https://cdn.example.com/uploads/2024/05/photo-grayscale.jpg"
    )
    with pytest.raises(ValueError):
        sibling_relpath("2024/05/photo.jpg", "other/photo.jpg")


def test_asset_from_metadata_lists_full_first() -> None:
    metadata = {
        "file": "2024/05/photo.jpg",
        "width": 3000,
        "height": 1000,
        "sizes": {
            "thumbnail": {"file": "photo-150x50.jpg", "width": 150, "height": 50, "mime-type": "image/jpeg"},
            "medium": {"file": "photo-300x100.jpg", "width": 300, "height": 100},
        },
    }
    asset = Asset.from_metadata("42", metadata)

    assert asset.format == "JPEG"
    labels = [variant.label for variant in asset.variants()]
    assert labels == ["full", "thumbnail", "medium"]
    full = asset.variants()[0]
    assert full.file == "photo.jpg"
    assert (full.width, full.height) == (3000, 1000)
    assert asset.sizes["thumbnail"].mime_type == "image/jpeg"


@pytest.mark.parametrize(
    "extension, expected",
    [("png", "PNG"), ("JPG", "JPEG"), ("jpeg", "JPEG"), ("gif", None), ("", None)],
)
def test_format_for_extension(extension: str, expected: str | None) -> None:
    assert format_for_extension(extension) == expected
