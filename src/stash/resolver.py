"""
Recency index resolution for stash.

Index 0 is the newest entry still present, 1 the one before it, and so on.
The mapping is never cached: every call takes a fresh listing, so it is
correct even when other invocations pushed or removed entries in between.

Resolution and the action that follows are separate store calls. If the
entry disappears in between, the store raises EntryNotFoundError.
"""

from stash.errors import EmptyStoreError, IndexOutOfRangeError
from stash.schema import Entry
from stash.store import BlobStore


class IndexResolver:
    """Translate recency indexes into entries of a BlobStore."""

    def __init__(self, store: BlobStore) -> None:
        self.store = store

    def resolve(self, index: int = 0) -> Entry:
        """
        Return the entry at a recency index.

        Args:
            index: Zero-based position in the newest-first view

        Raises:
            EmptyStoreError: If the store has no entries
            IndexOutOfRangeError: If index is negative or >= the entry count
        """
        entries = self.store.list()
        if not entries:
            raise EmptyStoreError(index=index, count=0)
        if index < 0 or index >= len(entries):
            raise IndexOutOfRangeError(index=index, count=len(entries))
        return entries[index]

    def show(self, index: int = 0) -> bytes:
        """Payload at index, left in place."""
        return self.store.read(self.resolve(index).id)

    def pop(self, index: int = 0) -> bytes:
        """Payload at index, removed from the store."""
        return self.store.take(self.resolve(index).id)

    def drop(self, index: int = 0) -> Entry:
        """Remove the entry at index without reading it."""
        entry = self.resolve(index)
        self.store.delete(entry.id)
        return entry
