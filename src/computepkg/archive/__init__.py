"""Streaming reader for gzip-compressed tar packages."""

from .reader import ArchiveEntry, ArchiveHandle, open_archive

__all__ = [
    "ArchiveEntry",
    "ArchiveHandle",
    "open_archive",
]
