"""
stash - Capture command output and retrieve it later by recency.

stash keeps a stack of opaque byte payloads on disk. The newest entry is
always index 0, and entries can be shown, popped or cleared from any number
of concurrent shell invocations without locks.

Example usage:
    $ pytest 2>&1 | stash
    $ stash list
    $ stash show 1
    $ stash pop > last-run.txt
"""

__version__ = "0.1.0"
__author__ = "stash Contributors"

from stash.errors import (
    EmptyStoreError,
    EntryNotFoundError,
    IndexOutOfRangeError,
    StashError,
    StorageError,
)
from stash.resolver import IndexResolver
from stash.schema import ClearReport, Entry
from stash.store import BlobStore

__all__ = [
    "__version__",
    "__author__",
    "BlobStore",
    "ClearReport",
    "EmptyStoreError",
    "Entry",
    "EntryNotFoundError",
    "IndexOutOfRangeError",
    "IndexResolver",
    "StashError",
    "StorageError",
]
