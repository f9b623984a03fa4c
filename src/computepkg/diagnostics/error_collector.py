"""Run-level error collection for computepkg.

Collects errors during a single CLI run and flushes them to an error log
directory so failed validations can be inspected after the fact.
"""

import json
import logging
import traceback
import uuid
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from ..errors import PackageError

logger = logging.getLogger(__name__)

DEFAULT_MAX_RUNS = 100


class ErrorSeverity(str, Enum):
    """Error severity levels."""
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ErrorContext:
    """Context information for an error occurrence."""
    operation: str                          # e.g. "validate"
    component: str                          # e.g. "PackageValidator"
    archive_path: str | None = None
    entry_name: str | None = None
    additional_context: dict[str, Any] | None = None

    @classmethod
    def from_package_error(cls, error: PackageError, operation: str = "validate") -> "ErrorContext":
        return cls(
            operation=operation,
            component=type(error).__name__,
            archive_path=str(error.archive_path) if error.archive_path else None,
            entry_name=getattr(error, "entry_name", None),
            additional_context={"kind": error.kind},
        )


@dataclass
class CollectedError:
    """A single error occurrence during a run."""
    error_id: str
    run_id: str
    timestamp: str
    severity: ErrorSeverity
    error_type: str
    message: str
    context: dict[str, Any]
    traceback_lines: list[str]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_id": self.error_id,
            "run_id": self.run_id,
            "timestamp": self.timestamp,
            "severity": self.severity.value,
            "error_type": self.error_type,
            "message": self.message,
            "context": self.context,
            "traceback_lines": self.traceback_lines,
        }


class ErrorCollector:
    """Collects errors during a single run for later inspection."""

    def __init__(self, errors_dir: Path, command: str, max_runs: int = DEFAULT_MAX_RUNS):
        """Initialize error collector.

        Args:
            errors_dir: Directory receiving run error files and the index
            command: CLI command being executed
            max_runs: Number of runs kept in the index
        """
        self.errors_dir = Path(errors_dir)
        self.command = command
        self.max_runs = max_runs
        self.start_time = datetime.now(UTC)
        self.run_id = self._generate_run_id()
        self.errors: list[CollectedError] = []

        logger.debug(f"Initialized error collector for run {self.run_id}")

    def collect_error(
        self,
        error: BaseException,
        context: ErrorContext,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> str:
        """Collect error with context for later flush.

        Returns:
            Error ID for reference
        """
        error_id = str(uuid.uuid4())[:8]

        collected = CollectedError(
            error_id=error_id,
            run_id=self.run_id,
            timestamp=datetime.now(UTC).isoformat(),
            severity=severity,
            error_type=type(error).__name__,
            message=str(error),
            context=asdict(context),
            traceback_lines=traceback.format_exception(error),
        )
        self.errors.append(collected)

        logger.debug(f"Collected error {error_id}: {collected.error_type} - {collected.message}")
        return error_id

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def get_error_counts(self) -> dict[str, int]:
        """Get error counts by severity."""
        counts = {severity.value: 0 for severity in ErrorSeverity}
        for error in self.errors:
            counts[error.severity.value] += 1
        return counts

    def flush_to_filesystem(self) -> Path | None:
        """Write collected errors and update the index.

        Returns:
            Path to the run's error file, or None if no errors
        """
        if not self.errors:
            logger.debug(f"No errors to flush for run {self.run_id}")
            return None

        self.errors_dir.mkdir(parents=True, exist_ok=True)

        end_time = datetime.now(UTC)
        summary = {
            "schema_version": "1.0.0",
            "run_id": self.run_id,
            "command": self.command,
            "started_at": self.start_time.isoformat(),
            "completed_at": end_time.isoformat(),
            "duration_seconds": (end_time - self.start_time).total_seconds(),
            "total_errors": len(self.errors),
            "errors_by_severity": self.get_error_counts(),
            "errors": [error.to_dict() for error in self.errors],
        }

        error_file = self.errors_dir / f"{self.run_id}.json"
        with open(error_file, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, ensure_ascii=False)

        self._update_errors_index(summary)

        logger.info(f"Flushed {len(self.errors)} errors to: {error_file}")
        return error_file

    def _update_errors_index(self, summary: dict[str, Any]) -> None:
        index_file = self.errors_dir / "index.json"

        if index_file.exists():
            try:
                with open(index_file, encoding="utf-8") as f:
                    index_data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to read errors index, creating new one: {e}")
                index_data = self._create_empty_index()
        else:
            index_data = self._create_empty_index()

        runs = [run for run in index_data.get("runs", []) if run["run_id"] != summary["run_id"]]
        runs.append({
            "run_id": summary["run_id"],
            "command": summary["command"],
            "started_at": summary["started_at"],
            "total_errors": summary["total_errors"],
            "error_file": f"{summary['run_id']}.json",
        })
        runs.sort(key=lambda r: r["started_at"], reverse=True)

        # Drop the oldest runs beyond the retention limit
        for old_run in runs[self.max_runs:]:
            old_error_file = self.errors_dir / old_run["error_file"]
            if old_error_file.exists():
                old_error_file.unlink()
        runs = runs[:self.max_runs]

        index_data["runs"] = runs
        index_data["total_runs"] = len(runs)
        index_data["last_updated"] = datetime.now(UTC).isoformat()

        with open(index_file, "w", encoding="utf-8") as f:
            json.dump(index_data, f, indent=2, ensure_ascii=False)

    def _create_empty_index(self) -> dict[str, Any]:
        now = datetime.now(UTC).isoformat()
        return {
            "schema_version": "1.0.0",
            "created_at": now,
            "last_updated": now,
            "total_runs": 0,
            "description": "Error log index for computepkg runs",
            "runs": [],
        }

    def _generate_run_id(self) -> str:
        # Format: run-YYYYMMDD-HHMMSS-{short_uuid}
        timestamp_part = self.start_time.strftime("run-%Y%m%d-%H%M%S")
        uuid_part = str(uuid.uuid4())[:8]
        return f"{timestamp_part}-{uuid_part}"
