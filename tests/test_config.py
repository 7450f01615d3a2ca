from __future__ import annotations

from pathlib import Path

import pytest

from grayscaler.config import GrayscalerConfig


def test_defaults(tmp_path: Path) -> None:
    config = GrayscalerConfig.load(environ={}, env_file=tmp_path / ".env")

    assert config.upload_dir == Path("uploads")
    assert config.max_pixels == 4_000_000
    assert config.generator.jpeg_quality == 90


def test_precedence_overrides_env_and_env_file(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local settings\n"
        "GRAYSCALER_UPLOAD_DIR='/srv/from-file'\n"
        "GRAYSCALER_BASE_URL=https://file.example.com\n"
        "GRAYSCALER_JPEG_QUALITY=70\n"
        "OTHER=ignored\n",
        encoding="utf-8",
    )
    environ = {"GRAYSCALER_BASE_URL": "https://env.example.com", "GRAYSCALER_MAX_PIXELS": "1000"}

    config = GrayscalerConfig.load({"max_pixels": 50, "base_url": None}, environ=environ, env_file=env_file)

    assert config.upload_dir == Path("/srv/from-file")
    assert config.base_url == "https://env.example.com"
    assert config.jpeg_quality == 70
    assert config.max_pixels == 50


@pytest.mark.parametrize(
    "environ",
    [
        {"GRAYSCALER_MAX_PIXELS": "lots"},
        {"GRAYSCALER_MAX_PIXELS": "0"},
        {"GRAYSCALER_JPEG_QUALITY": "101"},
    ],
)
def test_invalid_values(tmp_path: Path, environ: dict) -> None:
    with pytest.raises(ValueError):
        GrayscalerConfig.load(environ=environ, env_file=tmp_path / ".env")


def test_unknown_override(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        GrayscalerConfig.load({"colour": "red"}, environ={}, env_file=tmp_path / ".env")
