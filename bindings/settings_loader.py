"""Settings loader: parse and validate mistralkit.yaml."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from contracts.settings import Settings

DEFAULT_SETTINGS_PATH = "./mistralkit.yaml"


def settings_path() -> str:
    """Settings file location, overridable with ``$MISTRALKIT_CONFIG``."""
    return os.environ.get("MISTRALKIT_CONFIG", DEFAULT_SETTINGS_PATH)


def load_settings(path: str) -> Settings:
    """Load a mistralkit.yaml file and return validated Settings."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    raw = p.read_text(encoding="utf-8")
    data = yaml.safe_load(raw)
    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ValueError(f"Settings must be a YAML mapping, got {type(data).__name__}")

    return Settings(**data)


def configure_logging(settings: Settings) -> None:
    """Route library logs to stderr at the configured level."""
    level = logging.getLevelName(settings.logging.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {settings.logging.level}")
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
