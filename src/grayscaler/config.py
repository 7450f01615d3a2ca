from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from .image_processing.generator import DEFAULT_MAX_PIXELS, GeneratorConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "GRAYSCALER_"


@dataclass(slots=True)
class GrayscalerConfig:
    upload_dir: Path = Path("uploads")
    base_url: str = "/uploads"
    max_pixels: int = DEFAULT_MAX_PIXELS
    jpeg_quality: int = 90
    timeout: float = 20.0
    retries: int = 2
    log_level: str = "INFO"

    @property
    def generator(self) -> GeneratorConfig:
        return GeneratorConfig(max_pixels=self.max_pixels, jpeg_quality=self.jpeg_quality)

    @classmethod
    def load(
        cls,
        overrides: Optional[Mapping[str, object]] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Path = Path(".env"),
    ) -> "GrayscalerConfig":
        """Build a config from explicit overrides, the environment and ``.env``.

        Explicit overrides win over ``GRAYSCALER_*`` environment variables,
        which win over values found in ``env_file``.
        """

        values: Dict[str, str] = _read_env_file(env_file)
        source = os.environ if environ is None else environ
        for key, value in source.items():
            if key.startswith(ENV_PREFIX) and value.strip():
                values[key] = value.strip()

        config = cls()
        if "GRAYSCALER_UPLOAD_DIR" in values:
            config.upload_dir = Path(values["GRAYSCALER_UPLOAD_DIR"])
        if "GRAYSCALER_BASE_URL" in values:
            config.base_url = values["GRAYSCALER_BASE_URL"]
        if "GRAYSCALER_MAX_PIXELS" in values:
            config.max_pixels = _parse_int("GRAYSCALER_MAX_PIXELS", values["GRAYSCALER_MAX_PIXELS"])
        if "GRAYSCALER_JPEG_QUALITY" in values:
            config.jpeg_quality = _parse_int("GRAYSCALER_JPEG_QUALITY", values["GRAYSCALER_JPEG_QUALITY"])
        if "GRAYSCALER_LOG_LEVEL" in values:
            config.log_level = values["GRAYSCALER_LOG_LEVEL"].upper()

        for key, value in (overrides or {}).items():
            if value is None:
                continue
            if not hasattr(config, key):
                raise ValueError(f"Unknown configuration option {key!r}")
            setattr(config, key, Path(value) if key == "upload_dir" else value)

        if config.max_pixels <= 0:
            raise ValueError("max_pixels must be positive")
        if not 1 <= config.jpeg_quality <= 100:
            raise ValueError("jpeg_quality must be between 1 and 100")
        return config


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _read_env_file(env_path: Path) -> Dict[str, str]:
    values: Dict[str, str] = {}
    if not env_path.exists():
        return values

    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if "=" not in stripped:
                continue
            key, raw_value = stripped.split("=", 1)
            key = key.strip()
            if key.startswith(ENV_PREFIX):
                value = raw_value.strip().strip('"').strip("'")
                if value:
                    values[key] = value
    except OSError:
        logger.debug("Unable to read %s", env_path, exc_info=True)
    return values
