"""
Storage module for stash.

Entries are persisted as one file per entry in a single directory. Order is
never stored; it is derived from the file names at read time.

Design principles:
    - Write-once: Payloads are never modified, only deleted
    - Atomic: Entries become visible fully written or not at all
    - Lock-free: link/rename/unlink are the only synchronization
    - Stateless: Every call looks at the directory afresh
"""

from stash.store.blob import BlobStore, generate_id, is_valid_id, parse_id

__all__ = [
    "BlobStore",
    "generate_id",
    "is_valid_id",
    "parse_id",
]
