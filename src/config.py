from __future__ import annotations

import os
import shlex
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_PORT = 5000
DEFAULT_MAX_CONCURRENT_BUILDS = 4
DEFAULT_COMPILE_TIMEOUT = 300
DEFAULT_UPLOAD_TIMEOUT = 120

_TRUTHY = {"true", "1", "yes"}


class Settings(BaseModel):
    """Runtime configuration for the build service."""

    port: int = Field(DEFAULT_PORT, ge=1, le=65535)
    temp_dir: Path = PROJECT_ROOT / "temp"
    static_dir: Path = PROJECT_ROOT / "public"
    cli_command: List[str] = Field(default_factory=lambda: ["arduino-cli"])
    max_concurrent_builds: int = Field(DEFAULT_MAX_CONCURRENT_BUILDS, ge=1, le=64)
    compile_timeout: int = Field(DEFAULT_COMPILE_TIMEOUT, ge=1, le=3600)
    upload_timeout: int = Field(DEFAULT_UPLOAD_TIMEOUT, ge=1, le=3600)
    fail_on_stderr: bool = False
    return_binary: bool = False
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


def _int_env(name: str, default: int, maximum: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid {name} value: {raw}. Error: {e}. Using default: {default}")
        return default
    if value <= 0:
        logger.warning(f"Invalid {name} value: {raw}. Must be positive. Using default: {default}")
        return default
    if value > maximum:
        logger.warning(
            f"{name} value {value} exceeds maximum ({maximum}). Using default: {default}"
        )
        return default
    return value


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


def _list_env(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name, "")
    items = [part.strip() for part in raw.split(",") if part.strip()]
    return items or list(default)


def _command_env(name: str, default: str) -> List[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return [default]
    try:
        parts = shlex.split(raw)
    except ValueError as e:
        logger.warning(f"Invalid {name} value: {raw}. Error: {e}. Using default: {default}")
        return [default]
    return parts or [default]


def load_settings(base_dir: Optional[Path] = None) -> Settings:
    """Build Settings from the process environment.

    Malformed numeric values fall back to their defaults with a warning
    rather than failing startup.
    """
    base = base_dir or PROJECT_ROOT
    temp_dir = os.getenv("SKETCH_TEMP_DIR")
    static_dir = os.getenv("STATIC_DIR")

    settings = Settings(
        port=_int_env("PORT", DEFAULT_PORT, 65535),
        temp_dir=Path(temp_dir) if temp_dir else base / "temp",
        static_dir=Path(static_dir) if static_dir else base / "public",
        cli_command=_command_env("ARDUINO_CLI", "arduino-cli"),
        max_concurrent_builds=_int_env(
            "MAX_CONCURRENT_BUILDS", DEFAULT_MAX_CONCURRENT_BUILDS, 64
        ),
        compile_timeout=_int_env("COMPILE_TIMEOUT_SECONDS", DEFAULT_COMPILE_TIMEOUT, 3600),
        upload_timeout=_int_env("UPLOAD_TIMEOUT_SECONDS", DEFAULT_UPLOAD_TIMEOUT, 3600),
        fail_on_stderr=_bool_env("FAIL_ON_STDERR"),
        return_binary=_bool_env("RETURN_BINARY"),
        cors_origins=_list_env("CORS_ORIGINS", ["*"]),
    )
    logger.debug(f"Loaded settings: {settings}")
    return settings
