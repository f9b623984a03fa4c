"""Single-pass package validation.

Drives the entry stream once: each entry updates the required-file tracker,
then goes through the optional entry validator, then is closed before the next
header is read. The first failure of any kind ends the pass.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from ..archive import ArchiveEntry, open_archive
from ..errors import EntryRejected, PackageError, ValidatorError
from .hooks import EntryValidator, validator_name
from .tracker import DEFAULT_REQUIRED_FILES, RequiredFileTracker

logger = logging.getLogger(__name__)


class ValidationStatus(str, Enum):
    """Overall result of a validation pass."""
    PASS = "pass"
    FAIL = "fail"


@dataclass
class ValidationOutcome:
    """Result of validating one package archive."""
    archive_path: Path
    status: ValidationStatus = ValidationStatus.PASS
    entries_read: int = 0
    observed: list[str] = field(default_factory=list)
    error: PackageError | None = None
    digest: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ValidationStatus.PASS

    @property
    def exit_code(self) -> int:
        """Exit code for CI: 0 = pass, 1 = fail."""
        return 0 if self.ok else 1

    def fail(self, error: PackageError) -> None:
        self.status = ValidationStatus.FAIL
        self.error = error

    def raise_for_status(self) -> None:
        """Raise the recorded failure, if any."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "path": str(self.archive_path),
            "status": self.status.value,
            "exit_code": self.exit_code,
            "entries_read": self.entries_read,
            "observed": self.observed,
            "digest": self.digest,
            "error": self.error.to_dict() if self.error else None,
        }


class PackageValidator:
    """Validate package archives against a set of required entries.

    Args:
        required_files: Entry names the archive must contain at top level
        entry_validator: Optional check run once per streamed entry

    Raises:
        ValueError: If a required file name is empty
    """

    def __init__(
        self,
        required_files: Iterable[str] = DEFAULT_REQUIRED_FILES,
        entry_validator: EntryValidator | None = None,
    ):
        # Builds a throwaway tracker so bad names fail here, not mid-pass.
        self.required_files = RequiredFileTracker(required_files).required
        self.entry_validator = entry_validator

    def validate(self, path: str | Path) -> ValidationOutcome:
        """Stream the archive once and report the outcome.

        Never raises ``PackageError``; the failure is recorded on the outcome.
        """
        outcome = ValidationOutcome(archive_path=Path(path))
        tracker = RequiredFileTracker(self.required_files)

        logger.info(f"Validating package {outcome.archive_path}")

        try:
            with open_archive(outcome.archive_path) as archive:
                for entry in archive.entries():
                    outcome.entries_read += 1
                    with entry:
                        self._process(entry, tracker)
            tracker.check(outcome.archive_path)
        except PackageError as e:
            logger.debug(f"Validation of {outcome.archive_path} failed: {e.kind}: {e}")
            outcome.fail(e)

        outcome.observed = tracker.observed()
        logger.info(
            f"Validation completed with status: {outcome.status.value} "
            f"({outcome.entries_read} entries read)"
        )
        return outcome

    def _process(self, entry: ArchiveEntry, tracker: RequiredFileTracker) -> None:
        if tracker.observe(entry.name):
            logger.debug(f"Found required file {entry.name}")

        if self.entry_validator is None:
            return

        try:
            self.entry_validator(entry)
        except PackageError:
            raise
        except Exception as e:
            name = e.validator if isinstance(e, EntryRejected) and e.validator else validator_name(self.entry_validator)
            raise ValidatorError(entry.archive_path, entry.name, name, e) from e


def validate_package(
    path: str | Path,
    required_files: Iterable[str] = DEFAULT_REQUIRED_FILES,
    entry_validator: EntryValidator | None = None,
) -> ValidationOutcome:
    """Validate a package archive, raising on failure.

    Args:
        path: Path to the ``.tar.gz`` package
        required_files: Entry names that must be present
        entry_validator: Optional per-entry check

    Returns:
        The successful ValidationOutcome

    Raises:
        PackageError: The typed failure (OpenError, UnarchiveError, ReadError,
            CloseError, ValidatorError or MissingRequiredFileError)
    """
    outcome = PackageValidator(required_files, entry_validator).validate(path)
    outcome.raise_for_status()
    return outcome
