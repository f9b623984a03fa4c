"""Streaming access to gzip-compressed tar packages.

The archive is opened as three layers (file, gzip, tar) and read strictly
front to back. Entries are handed out one at a time; the stream closes the
previous entry before it reads the next header, so two entries are never open
at once.
"""

import gzip
import logging
import tarfile
import zlib
from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import IO

from ..errors import CloseError, OpenError, ReadError, UnarchiveError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

# Errors the gzip and tar layers raise on corrupt or truncated input.
_TRANSPORT_ERRORS = (tarfile.TarError, OSError, EOFError, zlib.error)


class ArchiveEntry:
    """A single member of the archive, readable until it is closed."""

    def __init__(self, archive_path: Path, member: tarfile.TarInfo, reader: IO[bytes] | None):
        self.archive_path = archive_path
        self.member = member
        self._reader = reader
        self._closed = False
        self._bytes_read = 0
        self._taps: list[Callable[[bytes], None]] = []

    def __repr__(self) -> str:
        return f"ArchiveEntry({self.name!r}, size={self.size})"

    def __enter__(self) -> "ArchiveEntry":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # Aborted iterations release without reading the rest of the body.
        self.close(drain=exc_type is None)

    @property
    def name(self) -> str:
        """Member name exactly as stored in the tar header.

        ``tarfile`` strips the trailing slash from directory members; it is
        restored here so ``main.wasm/`` never reads as ``main.wasm``.
        """
        if self.member.isdir() and not self.member.name.endswith("/"):
            return self.member.name + "/"
        return self.member.name

    @property
    def size(self) -> int:
        return self.member.size

    @property
    def is_file(self) -> bool:
        return self.member.isreg()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def bytes_read(self) -> int:
        """Body bytes consumed so far, by readers or by draining on close."""
        return self._bytes_read

    def tap(self, callback: Callable[[bytes], None]) -> None:
        """Pass every body chunk read from now on to ``callback``.

        Chunks consumed while draining on close are included, so a tap added
        before any read sees the whole body no matter who reads it.
        """
        if self._closed:
            raise ValueError(f"cannot tap closed archive entry {self.name}")
        self._taps.append(callback)

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes of the entry body (all remaining if negative)."""
        if self._closed:
            raise ValueError(f"I/O operation on closed archive entry {self.name}")
        return self._read(size)

    def iter_chunks(self, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the remaining body in chunks of at most ``chunk_size`` bytes."""
        while True:
            chunk = self.read(chunk_size)
            if not chunk:
                return
            yield chunk

    def close(self, drain: bool = True) -> None:
        """Release the entry.

        With ``drain`` the unread remainder of the body is consumed first so a
        truncated member surfaces as ``ReadError`` here rather than being
        skipped silently by the tar layer.
        """
        if self._closed:
            return
        self._closed = True
        if self._reader is None:
            return

        try:
            if drain:
                while self._read(CHUNK_SIZE):
                    pass
        except ReadError:
            self._reader.close()
            raise

        try:
            self._reader.close()
        except OSError as e:
            raise CloseError(self.archive_path, f"error closing file: {e}", entry_name=self.name) from e

    def _read(self, size: int) -> bytes:
        if self._reader is None:
            return b""
        try:
            data = self._reader.read(size)
        except _TRANSPORT_ERRORS as e:
            raise ReadError(
                self.archive_path,
                f"error reading package: {self.name}: {e}",
                entry_name=self.name,
            ) from e
        self._bytes_read += len(data)
        for callback in self._taps:
            callback(data)
        return data


class ArchiveHandle:
    """Open archive resources for the duration of one validation pass."""

    def __init__(self, path: Path, tar: tarfile.TarFile):
        self.path = path
        self._tar = tar
        self._current: ArchiveEntry | None = None
        self._started = False

    def entries(self) -> Iterator[ArchiveEntry]:
        """Stream the archive entries once, front to back.

        Raises:
            RuntimeError: If the stream was already started; reopen the archive
                to read it again.
            ReadError: If a header or compressed block cannot be read.
        """
        if self._started:
            raise RuntimeError(f"entry stream for {self.path} already consumed; reopen the archive")
        self._started = True

        while True:
            if self._current is not None:
                self._current.close()
                self._current = None

            member = self._next_member()
            if member is None:
                return

            reader = self._tar.extractfile(member) if member.isreg() else None
            self._current = ArchiveEntry(self.path, member, reader)
            yield self._current

    def close(self) -> None:
        if self._current is not None and not self._current.closed:
            self._current.close(drain=False)
        self._current = None
        self._tar.close()

    def _next_member(self) -> tarfile.TarInfo | None:
        try:
            return self._tar.next()
        except _TRANSPORT_ERRORS as e:
            raise ReadError(self.path, f"error reading package: {e}") from e


@contextmanager
def open_archive(path: str | Path) -> Iterator[ArchiveHandle]:
    """Open a ``.tar.gz`` package for a single streaming pass.

    Args:
        path: Location of the archive on disk

    Yields:
        ArchiveHandle whose resources are released when the block exits

    Raises:
        OpenError: If the file is missing or unreadable
        UnarchiveError: If the file is not a gzip-compressed tar archive
    """
    path = Path(path)

    try:
        fileobj = open(path, "rb")
    except OSError as e:
        raise OpenError(path, f"error reading package: {e}") from e

    with ExitStack() as stack:
        stack.callback(fileobj.close)

        compressed = gzip.GzipFile(fileobj=fileobj, mode="rb")
        stack.callback(compressed.close)

        try:
            tar = tarfile.open(fileobj=compressed, mode="r|")
        except _TRANSPORT_ERRORS as e:
            raise UnarchiveError(path, f"error unarchiving package: {e}") from e

        handle = ArchiveHandle(path, tar)
        stack.callback(handle.close)

        logger.debug(f"Opened archive {path}")
        yield handle
