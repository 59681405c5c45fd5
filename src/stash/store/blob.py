"""
Filesystem blob store for stash.

Every entry is one regular file in the storage directory. Its name is the
entry id and its content is the raw payload.

Layout:
    <root>/00001729000000000123-1a2b3c4d    published entry
    <root>/.push-XXXXXXXX.tmp                 push in progress
    <root>/.take-<id>-<suffix>                entry claimed by a pop

Ids are a 20-digit zero-padded nanosecond timestamp plus a random hex
suffix, so a plain lexicographic sort of the directory is chronological.

There is no manifest and no lock file. Each operation is a single atomic
filesystem primitive:
    - push: write a hidden temp file, then link() it to its id (fails if
      the id exists, so nothing is ever overwritten)
    - delete: unlink() (exactly one of two concurrent callers succeeds)
    - take: rename() the entry to a private hidden name, then read it
Hidden names are never listed, so a half-written entry is never visible.
Only regular files count as entries; a symlink or directory that happens
to carry an id name is ignored by every operation.

An invocation killed mid-push or mid-pop leaves its hidden file behind.
clear() removes hidden files older than STALE_AFTER_SECONDS.
"""

import errno
import os
import re
import secrets
import stat
import tempfile
import threading
import time
from contextlib import suppress
from pathlib import Path

from stash.errors import (
    EntryNotFoundError,
    InvalidEntryIdError,
    StorageAccessError,
    StorageDeleteError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from stash.schema import ClearFailure, ClearReport, Entry

ID_PATTERN = re.compile(r"(?P<ns>\d{20})-(?P<suffix>[0-9a-f]{8})")
TEMP_PREFIX = ".push-"
CLAIM_PREFIX = ".take-"

# Collisions need the same nanosecond and the same 32-bit suffix.
MAX_PUBLISH_ATTEMPTS = 8

# Hidden files untouched for this long belong to a killed invocation.
STALE_AFTER_SECONDS = 3600

_OPEN_FLAGS = os.O_RDONLY | getattr(os, "O_NOFOLLOW", 0) | getattr(os, "O_NONBLOCK", 0)

_clock_lock = threading.Lock()
_last_ns = 0


def _next_timestamp_ns() -> int:
    """Wall-clock nanoseconds, strictly increasing within this process."""
    global _last_ns
    with _clock_lock:
        now = time.time_ns()
        if now <= _last_ns:
            now = _last_ns + 1
        _last_ns = now
        return now


def generate_id(ns: int | None = None) -> str:
    """Generate an entry id for the given (or current) timestamp."""
    if ns is None:
        ns = _next_timestamp_ns()
    return f"{ns:020d}-{secrets.token_hex(4)}"


def is_valid_id(name: str) -> bool:
    """Check whether a file name is a published entry id."""
    return ID_PATTERN.fullmatch(name) is not None


def parse_id(entry_id: str) -> int:
    """
    Extract the creation timestamp from an entry id.

    Raises:
        InvalidEntryIdError: If the id is malformed
    """
    match = ID_PATTERN.fullmatch(entry_id)
    if match is None:
        raise InvalidEntryIdError(entry_id=entry_id)
    return int(match.group("ns"))


def _read_regular(path: Path) -> bytes:
    """
    Read a file only if it is a regular file, never through a symlink.

    Raises:
        FileNotFoundError: If the path is absent, a symlink or not a regular file
        OSError: If the file cannot be read
    """
    try:
        fd = os.open(path, _OPEN_FLAGS)
    except OSError as e:
        # FreeBSD reports a symlink under O_NOFOLLOW as EMLINK.
        if e.errno in (errno.ELOOP, errno.EMLINK):
            raise FileNotFoundError(errno.ENOENT, "not a regular file", str(path)) from e
        raise
    with os.fdopen(fd, "rb") as f:
        if not stat.S_ISREG(os.fstat(f.fileno()).st_mode):
            raise FileNotFoundError(errno.ENOENT, "not a regular file", str(path))
        return f.read()


class BlobStore:
    """
    Persistent, recency-ordered collection of opaque payloads.

    Instances hold no state besides the root path; every call looks at the
    directory afresh, so any number of processes can share one root.

    Usage:
        store = BlobStore(Path("~/.config/stash/entries").expanduser())
        entry = store.push(b"hello")
        store.read(entry.id)
        store.delete(entry.id)
    """

    def __init__(self, root: str | Path) -> None:
        """
        Open (and create if needed) a storage directory.

        Args:
            root: Directory holding one file per entry

        Raises:
            StorageAccessError: If the directory cannot be created
        """
        self.root = Path(root)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageAccessError(
                operation="open",
                path=str(self.root),
                underlying_error=str(e),
            ) from e

    def __repr__(self) -> str:
        return f"BlobStore(root={str(self.root)!r})"

    def _path(self, entry_id: str) -> Path:
        parse_id(entry_id)
        return self.root / entry_id

    # =========================================================================
    # Writes
    # =========================================================================

    def push(self, payload: bytes) -> Entry:
        """
        Persist a payload as a new entry.

        Args:
            payload: Bytes to store (may be empty)

        Returns:
            The published Entry

        Raises:
            StorageWriteError: If the storage medium rejects the write
        """
        payload = bytes(payload)

        try:
            fd, tmp_name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=".tmp", dir=self.root)
        except OSError as e:
            raise StorageWriteError(
                operation="push",
                path=str(self.root),
                underlying_error=str(e),
            ) from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())

            for _ in range(MAX_PUBLISH_ATTEMPTS):
                entry_id = generate_id()
                try:
                    os.link(tmp_path, self.root / entry_id)
                except FileExistsError:
                    continue
                return Entry(id=entry_id, created_ns=parse_id(entry_id), size=len(payload))

            raise StorageWriteError(
                operation="push",
                path=str(self.root),
                underlying_error=f"no free entry id after {MAX_PUBLISH_ATTEMPTS} attempts",
            )
        except OSError as e:
            raise StorageWriteError(
                operation="push",
                path=str(tmp_path),
                underlying_error=str(e),
            ) from e
        finally:
            # The entry (if any) is already published under its own name.
            with suppress(OSError):
                tmp_path.unlink(missing_ok=True)

    def delete(self, entry_id: str) -> None:
        """
        Remove an entry.

        Raises:
            EntryNotFoundError: If the entry is already absent
            StorageDeleteError: If the file exists but cannot be removed
        """
        path = self._path(entry_id)
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise EntryNotFoundError(entry_id=entry_id) from e
        except OSError as e:
            raise StorageDeleteError(
                operation="delete",
                path=str(path),
                underlying_error=str(e),
            ) from e

    def take(self, entry_id: str) -> bytes:
        """
        Read an entry and remove it as one atomic claim.

        The entry is first renamed to a private hidden name. Of several
        concurrent takers only one rename can succeed; the rest see
        EntryNotFoundError and never observe the payload.

        Raises:
            EntryNotFoundError: If the entry is absent (or claimed by another caller)
            StorageReadError: If the claimed payload cannot be read; the entry is put back
            StorageDeleteError: If the entry cannot be claimed or the claim not removed
        """
        path = self._path(entry_id)
        claim = self.root / f"{CLAIM_PREFIX}{entry_id}-{secrets.token_hex(4)}"

        try:
            if not stat.S_ISREG(os.lstat(path).st_mode):
                raise EntryNotFoundError(entry_id=entry_id)
            os.rename(path, claim)
        except FileNotFoundError as e:
            raise EntryNotFoundError(entry_id=entry_id) from e
        except OSError as e:
            raise StorageDeleteError(
                operation="take",
                path=str(path),
                underlying_error=str(e),
            ) from e

        try:
            payload = _read_regular(claim)
        except FileNotFoundError as e:
            # Swapped for a non-entry between lstat and rename.
            with suppress(OSError):
                os.rename(claim, path)
            raise EntryNotFoundError(entry_id=entry_id) from e
        except OSError as e:
            detail = str(e)
            try:
                os.rename(claim, path)
            except OSError as restore_error:
                detail = f"{e}; entry left at {claim.name}: {restore_error}"
            raise StorageReadError(
                operation="take",
                path=str(claim),
                underlying_error=detail,
            ) from e

        try:
            claim.unlink()
        except OSError as e:
            raise StorageDeleteError(
                operation="take",
                path=str(claim),
                underlying_error=str(e),
            ) from e
        return payload

    def clear(self) -> ClearReport:
        """
        Delete every entry currently listed.

        Each deletion is independent: a failure is recorded and the clear
        moves on to the next entry. Hidden temp and claim files left by
        killed invocations are swept once they are older than
        STALE_AFTER_SECONDS; younger ones may belong to a running push or pop.

        Returns:
            ClearReport with removed, already_gone, failed and swept files

        Raises:
            StorageReadError: If the directory cannot be listed at all
        """
        report = ClearReport()
        for entry in self.list():
            try:
                self.delete(entry.id)
            except EntryNotFoundError:
                report.already_gone.append(entry.id)
            except StorageError as e:
                report.failed.append(ClearFailure(entry_id=entry.id, reason=e.message))
            else:
                report.removed.append(entry.id)
        report.swept.extend(self._sweep_stale())
        return report

    def _sweep_stale(self) -> list[str]:
        """Remove abandoned hidden files; returns the names removed."""
        cutoff = time.time() - STALE_AFTER_SECONDS
        swept = []
        try:
            with os.scandir(self.root) as it:
                names = [
                    d.name for d in it if d.name.startswith((TEMP_PREFIX, CLAIM_PREFIX))
                ]
        except OSError as e:
            raise StorageReadError(
                operation="clear",
                path=str(self.root),
                underlying_error=str(e),
            ) from e

        for name in names:
            path = self.root / name
            try:
                st = os.lstat(path)
                # rename() bumps ctime, so a fresh claim of an old entry is kept.
                if max(st.st_mtime, st.st_ctime) > cutoff:
                    continue
                path.unlink()
            except OSError:
                continue  # gone already, or retried by the next clear
            swept.append(name)
        return swept

    # =========================================================================
    # Reads
    # =========================================================================

    def read(self, entry_id: str) -> bytes:
        """
        Return an entry's payload.

        Raises:
            EntryNotFoundError: If the entry is absent at call time
            StorageReadError: If the file exists but cannot be read
        """
        path = self._path(entry_id)
        try:
            return _read_regular(path)
        except FileNotFoundError as e:
            raise EntryNotFoundError(entry_id=entry_id) from e
        except OSError as e:
            raise StorageReadError(
                operation="read",
                path=str(path),
                underlying_error=str(e),
            ) from e

    def exists(self, entry_id: str) -> bool:
        """Check whether an entry is currently published."""
        if not is_valid_id(entry_id):
            return False
        try:
            st = os.lstat(self.root / entry_id)
        except OSError:
            return False
        return stat.S_ISREG(st.st_mode)

    def count(self) -> int:
        """Number of entries currently published."""
        return len(self.list())

    def list(self) -> list[Entry]:
        """
        Snapshot of all entries, newest first.

        Entries created or removed while the directory is being scanned may
        or may not appear, but every returned entry was fully published.

        Raises:
            StorageReadError: If the directory cannot be scanned
        """
        entries = []
        try:
            with os.scandir(self.root) as it:
                for dir_entry in it:
                    match = ID_PATTERN.fullmatch(dir_entry.name)
                    if match is None:
                        continue
                    try:
                        st = dir_entry.stat(follow_symlinks=False)
                    except FileNotFoundError:
                        continue
                    if not stat.S_ISREG(st.st_mode):
                        continue
                    entries.append(
                        Entry(
                            id=dir_entry.name,
                            created_ns=int(match.group("ns")),
                            size=st.st_size,
                        )
                    )
        except OSError as e:
            raise StorageReadError(
                operation="list",
                path=str(self.root),
                underlying_error=str(e),
            ) from e

        entries.sort(key=lambda entry: entry.id, reverse=True)
        return entries
