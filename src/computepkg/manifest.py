"""Project manifest (fastly.toml) parsing and default package paths."""

import logging
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator
from slugify import slugify

from .errors import ManifestError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "fastly.toml"
DEFAULT_PACKAGE_DIR = "pkg"
DEFAULT_PACKAGE_SUFFIX = ".tar.gz"

# Characters kept as-is in package file names; everything else becomes "-".
_DISALLOWED_NAME_CHARS = r"[^-a-zA-Z0-9_]+"


class PackageManifest(BaseModel):
    """The parts of a project manifest needed to locate its package."""
    manifest_version: int | None = None
    name: str
    description: str | None = None
    authors: list[str] = Field(default_factory=list)
    language: str | None = None
    service_id: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("name must be non-empty")
        return v

    model_config = {"extra": "allow"}

    @property
    def package_name(self) -> str:
        return sanitize_name(self.name)


def load_manifest(path: str | Path = MANIFEST_FILENAME) -> PackageManifest:
    """Read and validate a project manifest.

    Args:
        path: Path to fastly.toml

    Returns:
        PackageManifest: Parsed manifest

    Raises:
        ManifestError: If the file is missing, not valid TOML or has no name
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ManifestError(f"error reading manifest: {path} not found") from e
    except OSError as e:
        raise ManifestError(f"error reading manifest {path}: {e}") from e
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ManifestError(f"invalid TOML in manifest {path}: {e}") from e

    try:
        manifest = PackageManifest(**data)
    except ValidationError as e:
        raise ManifestError(f"invalid manifest {path}: {e}") from e

    logger.debug(f"Loaded manifest {path} for project {manifest.name!r}")
    return manifest


def sanitize_name(name: str) -> str:
    """Turn a project name into a safe file base name.

    Case is kept; path separators, whitespace and other unsafe characters
    collapse into single hyphens.

    Examples:
        >>> sanitize_name("My Project")
        'My-Project'
        >>> sanitize_name("../etc/passwd")
        'etc-passwd'
    """
    sanitized = slugify(name, lowercase=False, regex_pattern=_DISALLOWED_NAME_CHARS)
    return sanitized or "unnamed"


def default_package_path(
    project_name: str,
    directory: str | Path = DEFAULT_PACKAGE_DIR,
    suffix: str = DEFAULT_PACKAGE_SUFFIX,
) -> Path:
    """Location the build step writes the package for ``project_name`` to."""
    return Path(directory) / f"{sanitize_name(project_name)}{suffix}"
