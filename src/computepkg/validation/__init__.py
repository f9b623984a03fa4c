"""Validation of Compute package archives.

A validation pass streams the archive once, checks that the required entries
are present and runs an optional per-entry validator along the way.
"""

from .hooks import (
    ChainedValidator,
    ContentDigest,
    DenyEntries,
    EntryValidator,
    ManifestName,
    MaxEntrySize,
    chain,
)
from .tracker import DEFAULT_REQUIRED_FILES, RequiredFileTracker
from .validator import PackageValidator, ValidationOutcome, ValidationStatus, validate_package

__all__ = [
    "DEFAULT_REQUIRED_FILES",
    "RequiredFileTracker",
    "PackageValidator",
    "ValidationOutcome",
    "ValidationStatus",
    "validate_package",
    "EntryValidator",
    "ChainedValidator",
    "ContentDigest",
    "DenyEntries",
    "ManifestName",
    "MaxEntrySize",
    "chain",
]
