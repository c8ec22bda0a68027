"""
Environment-backed settings for the record service.

Settings are read once per `Settings()` call and validated eagerly; every
invalid variable is reported in a single SettingsValidationError.
"""

from __future__ import annotations

import os
import tomllib
import warnings
from pathlib import Path
from typing import List, Tuple

from stores import DEFAULT_KEY_PREFIX, StoreConfig, parse_endpoints

_PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"
_FALLBACK_VERSION = "0.1.0"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class SettingsValidationError(ValueError):
    """Raised when one or more environment settings are invalid."""

    def __init__(self, errors: List[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid settings: " + "; ".join(self.errors))


def _load_version() -> str:
    try:
        with _PYPROJECT.open("rb") as f:
            return tomllib.load(f)["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        return _FALLBACK_VERSION


def _float_env(name: str, default: float, errors: List[str]) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        errors.append(f"{name} must be a number, got {raw!r}")
        return default
    if value <= 0:
        errors.append(f"{name} must be greater than 0, got {raw!r}")
    return value


def _int_env(name: str, default: int, errors: List[str]) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        errors.append(f"{name} must be an integer, got {raw!r}")
        return default


class Settings:
    """Process settings, read from the environment."""

    def __init__(self) -> None:
        errors: List[str] = []

        self.VERSION = _load_version()

        # Store selection
        self.STORE_ENDPOINTS: Tuple[str, ...] = parse_endpoints(os.getenv("STORE_ENDPOINTS"))
        self.STORE_PREFIX = os.getenv("STORE_PREFIX", "").strip() or DEFAULT_KEY_PREFIX
        self.STORE_TIMEOUT_SECONDS = _float_env("STORE_TIMEOUT_SECONDS", 5.0, errors)

        # HTTP server
        self.API_HOST = os.getenv("API_HOST", "0.0.0.0").strip() or "0.0.0.0"
        self.API_PORT = _int_env("API_PORT", 8080, errors)
        if not 1 <= self.API_PORT <= 65535:
            errors.append(f"API_PORT must be between 1 and 65535, got {self.API_PORT}")
        self.SHUTDOWN_TIMEOUT_SECONDS = _float_env("SHUTDOWN_TIMEOUT_SECONDS", 30.0, errors)

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
        if self.LOG_LEVEL not in VALID_LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got {self.LOG_LEVEL!r}")

        if errors:
            raise SettingsValidationError(errors)

        if self.STORE_ENDPOINTS and not self.STORE_PREFIX.startswith("/"):
            warnings.warn(
                f"STORE_PREFIX {self.STORE_PREFIX!r} does not start with '/'; keys will not share the usual layout",
                stacklevel=2,
            )

    def store_config(self) -> StoreConfig:
        return StoreConfig(
            endpoints=self.STORE_ENDPOINTS,
            prefix=self.STORE_PREFIX,
            timeout_seconds=self.STORE_TIMEOUT_SECONDS,
        )
