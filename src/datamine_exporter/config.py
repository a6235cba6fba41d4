"""Configuration management for the datamine exporter."""

import os
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values
from pydantic import BaseModel

# Spreadsheet the datamine community maintains
DATAMINE_SHEET_ID = "13d_LAJPlxMa_DubPTuirkIV4DERBMXbrWQsmSh8ReK4"

DEFAULT_ENV_FILE = Path(".env")


class DatamineError(Exception):
    """Base class for errors that abort an export run."""


class ConfigError(DatamineError):
    """Raised when the configuration file is missing or incomplete."""


class Settings(BaseModel):
    """Export settings, loaded once at startup."""

    # Sheets API key (required, read from the env file)
    api_key: str

    spreadsheet_id: str = DATAMINE_SHEET_ID

    # Output directory for the per-sheet JSON files
    export_dir: Path = Path("export")

    # HTTP timeout in seconds, applies to the spreadsheet fetch and image downloads
    request_timeout: float = 300.0

    # Maximum number of images downloaded at the same time
    image_concurrency: int = 8

    model_config = {"frozen": True}


def _lookup(values: dict, key: str) -> Optional[str]:
    """Read a key from the env file, falling back to the process environment."""
    value = values.get(key)
    if value is None:
        value = os.getenv(key)
    return value


def _parse_number(values: dict, key: str, default, cast):
    raw = _lookup(values, key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Load settings from a dotenv file.

    The file must exist and define a non-empty API_KEY. Nothing here touches
    the network, so a bad configuration fails before any request is made.

    Args:
        env_file: Path to the dotenv file (defaults to ``.env`` in the cwd)

    Returns:
        The loaded settings

    Raises:
        ConfigError: If the file is missing or API_KEY is not set
    """
    env_file = Path(env_file) if env_file is not None else DEFAULT_ENV_FILE

    if not env_file.is_file():
        raise ConfigError(f"Configuration file not found at {env_file}. API_KEY must be set in it.")

    values = dotenv_values(env_file)

    # The key itself only comes from the file
    api_key = (values.get("API_KEY") or "").strip()
    if not api_key:
        raise ConfigError(f"API_KEY must be set in {env_file}")

    export_dir = _lookup(values, "EXPORT_DIR")
    concurrency = _parse_number(values, "IMAGE_CONCURRENCY", 8, int)
    if concurrency < 1:
        raise ConfigError(f"IMAGE_CONCURRENCY must be at least 1, got {concurrency}")
    timeout = _parse_number(values, "REQUEST_TIMEOUT", 300.0, float)
    if timeout <= 0:
        raise ConfigError(f"REQUEST_TIMEOUT must be positive, got {timeout}")

    return Settings(
        api_key=api_key,
        export_dir=Path(export_dir) if export_dir else Path("export"),
        request_timeout=timeout,
        image_concurrency=concurrency,
    )
