from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, ValidationError

from .constants import DEFAULT_BASE_URL, LOGGER


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_env_int(key: str, default: int | None) -> int | None:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number.")


def load_env(env_path: str | Path | None = None) -> None:
    path = Path(env_path) if env_path is not None else Path.cwd() / ".env"
    if not path.exists():
        return
    load_dotenv(path, override=False)


def validate_env() -> None:
    required = ("POKITDOK_CLIENT_ID", "POKITDOK_CLIENT_SECRET")
    missing = [key for key in required if not os.getenv(key, "").strip()]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    base_url = os.getenv("POKITDOK_BASE_URL", "").strip()
    if base_url:
        normalize_base_url(base_url, source="POKITDOK_BASE_URL")


def normalize_base_url(url: str, *, source: str = "base_url") -> str:
    try:
        parsed = AnyHttpUrl(url.strip())
    except ValidationError as error:
        raise RuntimeError(
            f"{source} must be a valid http(s) URL (for example: {DEFAULT_BASE_URL})."
        ) from error
    return str(parsed).rstrip("/")


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("POKITDOK_API_DEBUG", "0"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
