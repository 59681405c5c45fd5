"""
Schema definitions for stash.

This module defines the Pydantic models shared by the store, the resolver
and the CLI:
- Entry: One stored payload's identity, creation time and size
- ClearFailure/ClearReport: Outcome of a bulk clear
- StashConfig: Values read from the optional YAML config file

Payload bytes never live on these models; they are read from the store on
demand so a listing never has to load every payload.
"""

from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, computed_field


# =============================================================================
# Entry Models
# =============================================================================


class Entry(BaseModel):
    """
    A stored payload as seen in a listing snapshot.

    Entries are write-once, so the model is frozen.

    Attributes:
        id: Unique, lexicographically orderable identifier (the file name)
        created_ns: Creation time in nanoseconds since the epoch
        size: Payload length in bytes
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Unique entry identifier", min_length=1)
    created_ns: int = Field(..., description="Creation time in ns since the epoch", ge=0)
    size: int = Field(default=0, description="Payload length in bytes", ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def created_at(self) -> datetime:
        """Creation time as an aware UTC datetime (microsecond precision)."""
        seconds, nanos = divmod(self.created_ns, 1_000_000_000)
        return datetime.fromtimestamp(seconds, UTC).replace(microsecond=nanos // 1000)


# =============================================================================
# Clear Report
# =============================================================================


class ClearFailure(BaseModel):
    """An entry that clear() could not remove, and why."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    entry_id: str = Field(..., description="Id of the entry that was not removed")
    reason: str = Field(..., description="Why removal failed")


class ClearReport(BaseModel):
    """
    Result of clearing the store.

    Each entry is deleted independently, so one failure never stops the
    rest. Entries removed by a concurrent invocation during the clear are
    listed under already_gone rather than failed.

    Attributes:
        removed: Ids deleted by this clear
        already_gone: Ids that vanished before this clear reached them
        failed: Entries that could not be deleted
        swept: Abandoned hidden temp and claim files removed
    """

    model_config = ConfigDict(extra="forbid")

    removed: list[str] = Field(default_factory=list)
    already_gone: list[str] = Field(default_factory=list)
    failed: list[ClearFailure] = Field(default_factory=list)
    swept: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when every listed entry is gone."""
        return not self.failed


# =============================================================================
# Configuration
# =============================================================================


class StashConfig(BaseModel):
    """
    Contents of the optional config.yaml.

    Attributes:
        data_dir: Storage directory; overridden by --dir and STASH_DIR
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    data_dir: Path | None = Field(
        default=None,
        description="Directory holding one file per entry",
    )
