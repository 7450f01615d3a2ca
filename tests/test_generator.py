from __future__ import annotations

import struct
import zlib
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from grayscaler.errors import SizeRejected, SourceUnreadable, UnsupportedFormat
from grayscaler.image_processing.generator import DerivativeGenerator, GeneratorConfig


def _colorful(width: int = 40, height: int = 20) -> Image.Image:
    image = Image.new("RGB", (width, height), (255, 0, 0))
    for x in range(width // 2, width):
        for y in range(height):
            image.putpixel((x, y), (0, 0, 255))
    return image


def test_generate_jpeg_is_grayscale(tmp_path: Path) -> None:
    source = tmp_path / "photo.jpg"
    _colorful().save(source, format="JPEG")

    encoded = DerivativeGenerator().generate(source, "jpg")

    assert encoded.format == "JPEG"
    assert (encoded.width, encoded.height) == (40, 20)
    output = Image.open(BytesIO(encoded.data))
    assert output.format == "JPEG"
    assert output.mode == "L"
    r, g, b = output.convert("RGB").getpixel((5, 5))
    assert r == g == b


def test_generate_uses_luminance_weights(tmp_path: Path) -> None:
    source = tmp_path / "photo.png"
    _colorful().save(source)

    encoded = DerivativeGenerator().generate(source, "PNG")

    output = Image.open(BytesIO(encoded.data))
    red_side = output.getpixel((5, 5))
    blue_side = output.getpixel((35, 5))
    assert red_side == pytest.approx(76, abs=1)
    assert blue_side == pytest.approx(29, abs=1)


def test_generate_png_keeps_alpha(tmp_path: Path) -> None:
    source = tmp_path / "logo.png"
    image = Image.new("RGBA", (10, 10), (0, 255, 0, 0))
    image.putpixel((5, 5), (0, 255, 0, 255))
    image.save(source)

    encoded = DerivativeGenerator().generate(source, "png")

    output = Image.open(BytesIO(encoded.data))
    assert output.mode == "LA"
    assert output.getpixel((0, 0))[1] == 0
    assert output.getpixel((5, 5))[1] == 255


def test_generate_rejects_unsupported_format(tmp_path: Path) -> None:
    source = tmp_path / "anim.gif"
    Image.new("RGB", (4, 4)).save(source)

    with pytest.raises(UnsupportedFormat):
        DerivativeGenerator().generate(source, "gif")


def test_generate_rejects_oversized_image(tmp_path: Path) -> None:
    source = tmp_path / "big.png"
    Image.new("L", (30, 20)).save(source)
    generator = DerivativeGenerator(GeneratorConfig(max_pixels=500))

    with pytest.raises(SizeRejected) as excinfo:
        generator.generate(source, "png")
    assert (excinfo.value.width, excinfo.value.height) == (30, 20)
    assert excinfo.value.limit == 500


def test_default_ceiling_is_four_megapixels(tmp_path: Path) -> None:
    generator = DerivativeGenerator()
    generator.check_size(tmp_path / "edge.png", 2000, 2000)
    generator.check_size(tmp_path / "wide.png", 4000, 1000)
    with pytest.raises(SizeRejected):
        generator.check_size(tmp_path / "over.png", 2001, 2000)


def test_generate_missing_source(tmp_path: Path) -> None:
    with pytest.raises(SourceUnreadable):
        DerivativeGenerator().generate(tmp_path / "missing.jpg", "jpg")


def test_generate_corrupt_source(tmp_path: Path) -> None:
    source = tmp_path / "broken.jpg"
    source.write_bytes(b"definitely not a jpeg")

    with pytest.raises(SourceUnreadable):
        DerivativeGenerator().generate(source, "jpg")


def test_generate_does_not_write_files(tmp_path: Path) -> None:
    source = tmp_path / "photo.png"
    _colorful().save(source)

    DerivativeGenerator().generate(source, "png")

    assert sorted(p.name for p in tmp_path.iterdir()) == ["photo.png"]


def _png_header_only(path: Path, width: int, height: int) -> None:
    def chunk(kind: bytes, data: bytes) -> bytes:
        crc = zlib.crc32(kind + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    path.write_bytes(
        b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"") + chunk(b"IEND", b"")
    )


def test_huge_header_is_rejected_by_size(tmp_path: Path) -> None:
    source = tmp_path / "bomb.png"
    _png_header_only(source, 20000, 20000)

    with pytest.raises(SizeRejected) as excinfo:
        DerivativeGenerator().generate(source, "png")
    assert (excinfo.value.width, excinfo.value.height) == (20000, 20000)
    assert Image.MAX_IMAGE_PIXELS is not None
