"""Bookkeeping for the entries a package must contain."""

from collections.abc import Iterable
from pathlib import Path

from ..errors import MissingRequiredFileError

DEFAULT_REQUIRED_FILES: tuple[str, ...] = ("fastly.toml", "main.wasm")


class RequiredFileTracker:
    """Record which required entry names have been seen in one pass.

    Names match exactly: no path normalization, case folding or globbing, so
    ``subdir/main.wasm`` does not satisfy ``main.wasm``. Create a new tracker
    for every pass.
    """

    def __init__(self, required: Iterable[str] = DEFAULT_REQUIRED_FILES):
        self._found: dict[str, bool] = {}
        for name in required:
            if not name:
                raise ValueError("required file names must be non-empty")
            self._found[name] = False

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(self._found)

    def observe(self, name: str) -> bool:
        """Mark ``name`` as seen. Returns True if it is a required name."""
        if name in self._found:
            self._found[name] = True
            return True
        return False

    def observed(self) -> list[str]:
        return sorted(name for name, found in self._found.items() if found)

    def missing(self) -> list[str]:
        return sorted(name for name, found in self._found.items() if not found)

    @property
    def complete(self) -> bool:
        return all(self._found.values())

    def check(self, archive_path: str | Path | None = None) -> None:
        """Raise MissingRequiredFileError naming every unobserved entry."""
        missing = self.missing()
        if missing:
            raise MissingRequiredFileError(archive_path, missing)
