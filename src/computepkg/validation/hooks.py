"""Pluggable per-entry checks run during the streaming pass.

An entry validator is any callable taking an ``ArchiveEntry``. It accepts the
entry by returning and rejects it by raising, usually ``EntryRejected``. The
classes here are the built-in validators; plain functions work the same way.
"""

import hashlib
import logging
import tomllib
from collections.abc import Callable, Iterable

from ..archive import ArchiveEntry
from ..errors import EntryRejected, PackageError

logger = logging.getLogger(__name__)

EntryValidator = Callable[[ArchiveEntry], None]

MANIFEST_FILENAME = "fastly.toml"


def validator_name(validator: EntryValidator) -> str:
    """Name used to identify a validator in errors and logs."""
    name = getattr(validator, "name", None)
    if isinstance(name, str) and name:
        return name
    return getattr(validator, "__name__", type(validator).__name__)


class DenyEntries:
    """Reject entries whose name is in a deny list."""

    name = "deny_entries"

    def __init__(self, names: Iterable[str]):
        self.names = frozenset(names)

    def __call__(self, entry: ArchiveEntry) -> None:
        if entry.name in self.names:
            raise EntryRejected(f"entry {entry.name} is not allowed in a package")


class MaxEntrySize:
    """Reject entries larger than a byte limit, judged from the tar header."""

    name = "max_entry_size"

    def __init__(self, limit: int):
        if limit < 0:
            raise ValueError("limit must be >= 0")
        self.limit = limit

    def __call__(self, entry: ArchiveEntry) -> None:
        if entry.size > self.limit:
            raise EntryRejected(f"entry {entry.name} is {entry.size} bytes, limit is {self.limit}")


class ManifestName:
    """Check the packaged manifest declares the expected project name."""

    name = "manifest_name"

    def __init__(self, expected: str, filename: str = MANIFEST_FILENAME, max_size: int = 1024 * 1024):
        self.expected = expected
        self.filename = filename
        self.max_size = max_size

    def __call__(self, entry: ArchiveEntry) -> None:
        if entry.name != self.filename:
            return
        if entry.size > self.max_size:
            raise EntryRejected(f"manifest {entry.name} exceeds {self.max_size} bytes")

        content = b"".join(entry.iter_chunks())
        try:
            data = tomllib.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            raise EntryRejected(f"manifest {entry.name} is not valid TOML: {e}") from e

        actual = data.get("name")
        if actual != self.expected:
            raise EntryRejected(f"manifest name {actual!r} does not match expected {self.expected!r}")


class ContentDigest:
    """Accumulate a SHA-256 over entry names and bodies.

    The body is hashed through a tap on the entry, so validators later in a
    chain can still read it and the digest is complete once the entry is
    closed. An entry whose body was already partly consumed is rejected,
    since its digest could not cover the whole body.
    """

    name = "content_digest"

    def __init__(self):
        self._hash = hashlib.sha256()
        self.entries = 0

    def __call__(self, entry: ArchiveEntry) -> None:
        if entry.bytes_read:
            raise EntryRejected(
                f"entry {entry.name} was read before {self.name}; place it first in the chain"
            )
        self._hash.update(entry.name.encode("utf-8"))
        self._hash.update(b"\0")
        entry.tap(self._hash.update)
        self.entries += 1

    def hexdigest(self) -> str:
        return self._hash.hexdigest()


class ChainedValidator:
    """Run several validators in order; the first rejection wins."""

    def __init__(self, validators: Iterable[EntryValidator]):
        self.validators = list(validators)

    @property
    def name(self) -> str:
        return "+".join(validator_name(v) for v in self.validators) or "chain"

    def __call__(self, entry: ArchiveEntry) -> None:
        for validator in self.validators:
            logger.debug(f"Running {validator_name(validator)} on {entry.name}")
            try:
                validator(entry)
            except PackageError:
                raise
            except EntryRejected as e:
                if e.validator is None:
                    e.validator = validator_name(validator)
                raise
            except Exception as e:
                raise EntryRejected(str(e) or type(e).__name__, validator_name(validator)) from e


def chain(*validators: EntryValidator | None) -> EntryValidator | None:
    """Combine validators, dropping ``None``. Returns None when nothing is left."""
    remaining = [v for v in validators if v is not None]
    if not remaining:
        return None
    if len(remaining) == 1:
        return remaining[0]
    return ChainedValidator(remaining)
