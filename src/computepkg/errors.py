"""Error taxonomy for package validation.

Every failure of a validation pass is one of the ``PackageError`` subclasses
below. Each carries the archive path and enough context to render a
remediation message; the CLI layer adds the remediation text itself.
"""

from pathlib import Path
from typing import Any


class PackageError(Exception):
    """Base class for all package validation failures."""

    kind = "package"

    def __init__(self, archive_path: str | Path | None, message: str):
        super().__init__(message)
        self.archive_path = Path(archive_path) if archive_path is not None else None
        self.message = message

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "kind": self.kind,
            "message": self.message,
            "path": str(self.archive_path) if self.archive_path else None,
        }


class OpenError(PackageError):
    """The archive path is missing or unreadable."""

    kind = "open"


class UnarchiveError(PackageError):
    """The file is not a valid gzip-compressed tar archive."""

    kind = "unarchive"


class ReadError(PackageError):
    """The archive is corrupt or truncated part way through the stream."""

    kind = "read"

    def __init__(self, archive_path: str | Path | None, message: str, entry_name: str | None = None):
        super().__init__(archive_path, message)
        self.entry_name = entry_name

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["entry"] = self.entry_name
        return data


class CloseError(PackageError):
    """An archive entry could not be released cleanly."""

    kind = "close"

    def __init__(self, archive_path: str | Path | None, message: str, entry_name: str | None = None):
        super().__init__(archive_path, message)
        self.entry_name = entry_name

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["entry"] = self.entry_name
        return data


class ValidatorError(PackageError):
    """An entry validator rejected an entry and aborted the pass."""

    kind = "validator"

    def __init__(
        self,
        archive_path: str | Path | None,
        entry_name: str,
        validator: str,
        cause: BaseException,
    ):
        super().__init__(archive_path, f"{validator} rejected {entry_name}: {cause}")
        self.entry_name = entry_name
        self.validator = validator
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["entry"] = self.entry_name
        data["validator"] = self.validator
        return data


class MissingRequiredFileError(PackageError):
    """One or more required entries were absent after the full stream."""

    kind = "missing_required_file"

    def __init__(self, archive_path: str | Path | None, missing: list[str] | tuple[str, ...]):
        self.missing = tuple(sorted(missing))
        if len(self.missing) == 1:
            message = f"error validating package: package must contain a {self.missing[0]} file"
        else:
            message = f"error validating package: package must contain files: {', '.join(self.missing)}"
        super().__init__(archive_path, message)

    @property
    def name(self) -> str:
        """First missing entry name."""
        return self.missing[0]

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["missing"] = list(self.missing)
        return data


class EntryRejected(Exception):
    """Raised by an entry validator to reject the entry it was given."""

    def __init__(self, message: str, validator: str | None = None):
        super().__init__(message)
        self.validator = validator


class ManifestError(Exception):
    """The project manifest could not be read."""


class RemediationError(Exception):
    """An error paired with a hint telling the user how to fix it."""

    def __init__(self, inner: BaseException | str, remediation: str):
        super().__init__(str(inner))
        self.inner = inner
        self.remediation = remediation

    def __str__(self) -> str:
        return str(self.inner)
