"""
Integration tests for the stash CLI.

Tests cover:
- push / show / pop / delete / list / clear / path commands
- Default push when input is piped without a subcommand
- Exit codes for empty stores and out-of-range indexes
- Storage directory selection via --dir, STASH_DIR and --config
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from stash import __version__
from stash.cli import app
from stash.store import BlobStore


runner = CliRunner()


@pytest.fixture
def stash(store_dir: Path):
    """Invoke the CLI against the test storage directory."""

    def invoke(*args: str, input: bytes | str | None = None):
        return runner.invoke(app, ["--dir", str(store_dir), *args], input=input)

    return invoke


# =============================================================================
# Basic Commands
# =============================================================================


class TestPushShow:
    """Tests for storing and printing entries."""

    def test_push_then_show(self, stash) -> None:
        assert stash("push", input=b"hello\n").exit_code == 0
        result = stash("show")
        assert result.exit_code == 0
        assert result.stdout_bytes == b"hello\n"

    def test_binary_roundtrip(self, stash) -> None:
        payload = bytes(range(256))
        stash("push", input=payload)
        assert stash("show").stdout_bytes == payload

    def test_empty_payload(self, stash, store_dir: Path) -> None:
        assert stash("push", input=b"").exit_code == 0
        result = stash("show")
        assert result.exit_code == 0
        assert result.stdout_bytes == b""
        assert BlobStore(store_dir).count() == 1

    def test_default_action_pushes_piped_input(self, stash) -> None:
        result = stash(input=b"piped")
        assert result.exit_code == 0
        assert stash("show").stdout_bytes == b"piped"

    def test_push_verbose_reports_id(self, stash, store_dir: Path) -> None:
        result = stash("--verbose", "push", input=b"abc")
        assert result.exit_code == 0
        entry = BlobStore(store_dir).list()[0]
        assert entry.id in result.output

    def test_show_by_index(self, stash) -> None:
        for word in ("one", "two", "three"):
            stash("push", input=word)
        assert stash("show", "0").stdout_bytes == b"three"
        assert stash("show", "2").stdout_bytes == b"one"


class TestPop:
    """Tests for pop."""

    def test_pop_removes(self, stash, store_dir: Path) -> None:
        stash("push", input="First")
        stash("push", input="Second")

        result = stash("pop")
        assert result.exit_code == 0
        assert result.stdout_bytes == b"Second"
        assert BlobStore(store_dir).count() == 1
        assert stash("show").stdout_bytes == b"First"

    def test_pop_index(self, stash) -> None:
        for word in ("a", "b", "c"):
            stash("push", input=word)
        assert stash("pop", "1").stdout_bytes == b"b"
        assert stash("show", "1").stdout_bytes == b"a"


class TestDelete:
    """Tests for delete."""

    def test_delete_prints_nothing(self, stash, store_dir: Path) -> None:
        stash("push", input="keep")
        stash("push", input="drop")

        result = stash("delete")
        assert result.exit_code == 0
        assert result.stdout_bytes == b""
        assert stash("show").stdout_bytes == b"keep"


class TestList:
    """Tests for list."""

    def test_list_empty(self, stash) -> None:
        result = stash("list")
        assert result.exit_code == 0
        assert "No entries." in result.stdout

    def test_list_table(self, stash, store_dir: Path) -> None:
        stash("push", input="First")
        stash("push", input="Second!")
        ids = [e.id for e in BlobStore(store_dir).list()]

        result = stash("list")
        assert result.exit_code == 0
        assert ids[0] in result.stdout
        assert ids[1] in result.stdout
        assert result.stdout.index(ids[0]) < result.stdout.index(ids[1])
        assert "7 B" in result.stdout

    def test_list_json(self, stash) -> None:
        stash("push", input="First")
        stash("push", input="Second")

        result = stash("list", "--json")
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["count"] == 2
        assert [e["index"] for e in data["entries"]] == [0, 1]
        assert [e["size"] for e in data["entries"]] == [6, 5]
        assert "created_at" in data["entries"][0]


class TestClear:
    """Tests for clear."""

    def test_clear(self, stash, store_dir: Path) -> None:
        for word in ("a", "b"):
            stash("push", input=word)
        result = stash("clear")
        assert result.exit_code == 0
        assert "Removed 2 entries" in result.stdout
        assert BlobStore(store_dir).count() == 0

    def test_clear_twice(self, stash) -> None:
        stash("push", input="a")
        assert stash("clear").exit_code == 0
        result = stash("clear")
        assert result.exit_code == 0
        assert "Removed 0 entries" in result.stdout


class TestPath:
    """Tests for path."""

    def test_path(self, stash, store_dir: Path) -> None:
        result = stash("path")
        assert result.exit_code == 0
        assert result.stdout.strip() == str(store_dir.resolve())


# =============================================================================
# Failures
# =============================================================================


class TestFailures:
    """Core failures map to a non-zero exit code."""

    @pytest.mark.parametrize("command", ["show", "pop", "delete"])
    def test_empty_store(self, stash, command: str) -> None:
        result = stash(command)
        assert result.exit_code == 1
        assert "Stash is empty" in result.output

    @pytest.mark.parametrize("command", ["show", "pop", "delete"])
    def test_out_of_range(self, stash, command: str) -> None:
        stash("push", input="only")
        result = stash(command, "1")
        assert result.exit_code == 1
        assert "out of range" in result.output

    def test_negative_index_is_usage_error(self, stash) -> None:
        stash("push", input="only")
        result = stash("show", "--", "-1")
        assert result.exit_code == 2

    def test_debug_prints_traceback(self, stash) -> None:
        result = stash("--debug", "show")
        assert result.exit_code == 1
        assert "Traceback" in result.output

    def test_unusable_storage_dir(self, temp_dir: Path) -> None:
        blocker = temp_dir / "file"
        blocker.write_text("x")
        result = runner.invoke(app, ["--dir", str(blocker / "sub"), "list"])
        assert result.exit_code == 1
        assert "E3001" in result.output

    def test_bad_config(self, temp_dir: Path) -> None:
        config = temp_dir / "config.yaml"
        config.write_text("unknown: 1\n")
        result = runner.invoke(app, ["--config", str(config), "list"])
        assert result.exit_code == 1
        assert "E4001" in result.output


# =============================================================================
# Configuration
# =============================================================================


class TestStorageSelection:
    """Tests for choosing the storage directory."""

    def test_env_var(self, temp_dir: Path) -> None:
        target = temp_dir / "from-env"
        result = runner.invoke(app, ["push"], input="x", env={"STASH_DIR": str(target)})
        assert result.exit_code == 0
        assert BlobStore(target).count() == 1

    def test_config_file(self, temp_dir: Path) -> None:
        target = temp_dir / "from-config"
        config = temp_dir / "config.yaml"
        config.write_text(f"data_dir: {target}\n")

        result = runner.invoke(app, ["--config", str(config), "push"], input="x")
        assert result.exit_code == 0
        assert BlobStore(target).count() == 1


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


# =============================================================================
# End-to-end Scenario
# =============================================================================


def test_first_second_scenario(stash, store_dir: Path) -> None:
    """push, list, show, pop and clear behave as a recency stack."""
    stash("push", input="First")
    stash("push", input="Second")

    entries = json.loads(stash("list", "--json").stdout)["entries"]
    assert len(entries) == 2
    assert entries[0]["created_ns"] > entries[1]["created_ns"]

    assert stash("show", "0").stdout_bytes == b"Second"
    assert stash("show", "1").stdout_bytes == b"First"
    assert stash("pop").stdout_bytes == b"Second"

    entries = json.loads(stash("list", "--json").stdout)["entries"]
    assert len(entries) == 1
    assert stash("show", "0").stdout_bytes == b"First"

    assert stash("clear").exit_code == 0
    assert json.loads(stash("list", "--json").stdout)["count"] == 0
