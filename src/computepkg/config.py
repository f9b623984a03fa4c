"""Configuration management for computepkg using Pydantic models."""

import json
import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .manifest import DEFAULT_PACKAGE_DIR, DEFAULT_PACKAGE_SUFFIX, MANIFEST_FILENAME
from .validation.tracker import DEFAULT_REQUIRED_FILES

CONFIG_FILENAME = ".computepkg.json"


class LogLevel(str, Enum):
    """Logging levels."""
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"

    def to_logging(self) -> int:
        return {
            LogLevel.ERROR: logging.ERROR,
            LogLevel.WARN: logging.WARNING,
            LogLevel.INFO: logging.INFO,
            LogLevel.DEBUG: logging.DEBUG,
        }[self]


class PackageConfig(BaseModel):
    """Package location and required contents."""
    dir: str = DEFAULT_PACKAGE_DIR
    suffix: str = DEFAULT_PACKAGE_SUFFIX
    required_files: list[str] = Field(
        alias="requiredFiles", default_factory=lambda: list(DEFAULT_REQUIRED_FILES)
    )

    @field_validator("required_files")
    @classmethod
    def validate_required_files(cls, v):
        if any(not name for name in v):
            raise ValueError("required file names must be non-empty")
        return v

    model_config = ConfigDict(populate_by_name=True)


class ManifestConfig(BaseModel):
    """Project manifest section."""
    filename: str = MANIFEST_FILENAME


class ValidationConfig(BaseModel):
    """Per-entry validation section."""
    deny: list[str] = Field(default_factory=list)
    max_entry_size: int | None = Field(alias="maxEntrySize", default=None)

    @field_validator("max_entry_size")
    @classmethod
    def validate_max_entry_size(cls, v):
        if v is not None and v < 0:
            raise ValueError("max_entry_size must be >= 0")
        return v

    model_config = ConfigDict(populate_by_name=True)


class DiagnosticsConfig(BaseModel):
    """Error log section."""
    enabled: bool = False
    dir: str = ".computepkg/errors"
    max_runs: int = Field(alias="maxRuns", default=100)

    @field_validator("max_runs")
    @classmethod
    def validate_max_runs(cls, v):
        if v < 1:
            raise ValueError("max_runs must be >= 1")
        return v

    model_config = ConfigDict(populate_by_name=True)


class LoggingConfig(BaseModel):
    """Logging configuration section."""
    level: LogLevel = LogLevel.WARN


class ComputePkgConfig(BaseModel):
    """Complete computepkg configuration model."""
    package: PackageConfig = Field(default_factory=PackageConfig)
    manifest: ManifestConfig = Field(default_factory=ManifestConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="forbid")


def load_config(config_path: str | Path | None = None) -> ComputePkgConfig:
    """Load configuration, searching for .computepkg.json when no path is given.

    Defaults are used only when the search finds nothing. A path passed
    explicitly must exist.

    Args:
        config_path: Config file to load, or None to search the current
                    directory and its parents

    Returns:
        ComputePkgConfig: Loaded and validated configuration

    Raises:
        ValueError: If an explicit path is missing or the file is invalid
    """
    if config_path is None:
        found = find_config_file()
        if found is None:
            return create_default_config()
        return _read_config(found)

    config_path = Path(config_path)
    if not config_path.is_file():
        raise ValueError(f"Config file not found: {config_path}")
    return _read_config(config_path)


def _read_config(config_path: Path) -> ComputePkgConfig:
    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {config_path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Failed to read config from {config_path}: {e}") from e

    if not isinstance(config_data, dict):
        raise ValueError(f"Failed to load config from {config_path}: expected a JSON object")
    try:
        return ComputePkgConfig(**config_data)
    except ValidationError as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Find the nearest .computepkg.json at or above ``start_dir``.

    Directories named .computepkg.json are skipped.
    """
    start = Path(start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def create_default_config() -> ComputePkgConfig:
    """Create default configuration."""
    return ComputePkgConfig()
