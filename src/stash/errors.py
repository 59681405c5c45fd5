"""
Exception hierarchy for stash.

All stash exceptions inherit from StashError, so the CLI can render any
core failure with a single except clause.

Exception Categories:
    - EntryNotFoundError: The addressed entry does not exist (any more)
    - IndexOutOfRangeError: The recency index is past the end of the store
    - StorageError: The storage directory could not be read or written
    - ConfigError: The configuration file is malformed

Core modules only raise these; rendering and exit codes belong to the CLI.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Lookup errors: 1xxx
ERROR_ENTRY_NOT_FOUND = 1001
ERROR_ENTRY_INVALID_ID = 1002

# Index errors: 2xxx
ERROR_INDEX_OUT_OF_RANGE = 2001
ERROR_STORE_EMPTY = 2002

# Storage errors: 3xxx
ERROR_STORAGE_ACCESS = 3001
ERROR_STORAGE_WRITE = 3002
ERROR_STORAGE_READ = 3003
ERROR_STORAGE_DELETE = 3004

# Config errors: 4xxx
ERROR_CONFIG_INVALID = 4001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class StashError(Exception):
    """
    Base exception for all stash errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Lookup Errors
# =============================================================================


@dataclass
class EntryNotFoundError(StashError):
    """
    Raised when an entry id is absent at call time.

    This is also what a caller sees when another invocation removed the
    entry between index resolution and the read or delete.

    Attributes:
        entry_id: The id that was looked up
    """

    entry_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Entry not found: {self.entry_id}"
        if self.code == 0:
            self.code = ERROR_ENTRY_NOT_FOUND
        self.context["entry_id"] = self.entry_id


@dataclass
class InvalidEntryIdError(EntryNotFoundError):
    """Raised when an entry id is not a well-formed stash id."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid entry id: {self.entry_id!r}"
        if self.code == 0:
            self.code = ERROR_ENTRY_INVALID_ID
        super().__post_init__()


# =============================================================================
# Index Errors
# =============================================================================


@dataclass
class IndexOutOfRangeError(StashError):
    """
    Raised when a recency index does not address a live entry.

    Attributes:
        index: The requested index
        count: Number of entries in the store when the index was resolved
    """

    index: int = 0
    count: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Index {self.index} out of range: store has {self.count} entries"
        if self.code == 0:
            self.code = ERROR_INDEX_OUT_OF_RANGE
        if not self.suggestion and self.count:
            self.suggestion = f"Use an index between 0 and {self.count - 1}"
        self.context.update({
            "index": self.index,
            "count": self.count,
        })


@dataclass
class EmptyStoreError(IndexOutOfRangeError):
    """Raised when an index is resolved against a store with no entries."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Stash is empty"
        if self.code == 0:
            self.code = ERROR_STORE_EMPTY
        if not self.suggestion:
            self.suggestion = "Pipe some output into 'stash push' first"
        super().__post_init__()


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(StashError):
    """
    Base class for storage directory errors.

    Local storage failures are not transient, so nothing retries these.

    Attributes:
        operation: The operation that failed (e.g., "push", "read")
        path: The filesystem path involved
    """

    operation: str = ""
    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "operation": self.operation,
            "path": self.path,
        })


@dataclass
class StorageAccessError(StorageError):
    """Raised when the storage directory cannot be created or used."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot use storage directory {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_ACCESS
        if not self.suggestion:
            self.suggestion = "Check the directory permissions or set STASH_DIR"
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageWriteError(StorageError):
    """Raised when an entry cannot be written."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Storage write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageReadError(StorageError):
    """Raised when an entry or the directory listing cannot be read."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Storage read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageDeleteError(StorageError):
    """Raised when an existing entry cannot be removed."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Storage delete failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_DELETE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(StashError):
    """Raised when the configuration file cannot be parsed or validated."""

    config_path: str = ""
    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid config {self.config_path}: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        if not self.suggestion:
            self.suggestion = "Fix the file or point STASH_CONFIG elsewhere"
        self.context.update({
            "config_path": self.config_path,
            "validation_error": self.validation_error,
        })
