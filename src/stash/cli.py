"""
CLI entry point for stash.

This module provides the Typer-based command-line interface for stash.

Commands:
    push        Store standard input as a new entry (default when piped)
    show        Print an entry by recency index
    pop         Print an entry and remove it
    delete      Remove an entry without printing it
    list        List entries newest-first
    clear       Remove every entry
    path        Print the storage directory

The CLI is thin: it resolves configuration, calls into the store, writes
payload bytes to stdout and renders errors on stderr. Only this layer
chooses exit codes.
"""

import json
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from stash import __version__
from stash.config import CONFIG_PATH_ENV, DATA_DIR_ENV, load_config, resolve_data_dir
from stash.errors import StashError
from stash.resolver import IndexResolver
from stash.store import BlobStore

app = typer.Typer(
    name="stash",
    help="Capture command output and get it back later by recency.",
    add_completion=False,
)

# Payloads, listings and reports go to stdout; errors and --verbose notes go to stderr
console = Console()
err_console = Console(stderr=True)

IndexArgument = Annotated[
    int,
    typer.Argument(
        help="Recency index; 0 is the newest entry.",
        min=0,
        show_default=True,
    ),
]


@dataclass
class CliState:
    """Per-invocation objects shared with subcommands via ctx.obj."""

    store: BlobStore
    resolver: IndexResolver
    verbose: bool = False
    debug: bool = False


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]stash[/bold] version {__version__}")
        raise typer.Exit()


def _fail(error: StashError, debug: bool) -> NoReturn:
    """Render a core failure and exit non-zero."""
    err_console.print(f"[red]Error:[/red] {escape(str(error))}")
    if debug:
        err_console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
    raise typer.Exit(code=1)


def _note(state: CliState, message: str) -> None:
    if state.verbose:
        err_console.print(f"[dim]{escape(message)}[/dim]")


def _format_size(size: int) -> str:
    """Human-readable byte count."""
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KiB", "MiB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GiB"


def _push_stdin(state: CliState) -> None:
    # Buffer all input before committing anything.
    payload = sys.stdin.buffer.read()
    try:
        entry = state.store.push(payload)
    except StashError as e:
        _fail(e, state.debug)
    _note(state, f"Stashed {entry.id} ({_format_size(entry.size)})")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    data_dir: Annotated[
        Optional[Path],
        typer.Option(
            "--dir",
            "-d",
            help="Storage directory.",
            envvar=DATA_DIR_ENV,
            file_okay=False,
        ),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            help="Path to config.yaml.",
            envvar=CONFIG_PATH_ENV,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Report what was done on stderr."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full tracebacks on errors."),
    ] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    stash - a stack of captured command output.

    Pipe anything into stash to keep it, then show or pop it by index:

        $ make 2>&1 | stash
        $ stash show | less
    """
    try:
        config = load_config(config_path)
        store = BlobStore(resolve_data_dir(data_dir, config))
    except StashError as e:
        _fail(e, debug)

    state = CliState(
        store=store,
        resolver=IndexResolver(store),
        verbose=verbose,
        debug=debug,
    )
    ctx.obj = state

    if ctx.invoked_subcommand is None:
        if sys.stdin.isatty():
            typer.echo(ctx.get_help())
            raise typer.Exit()
        _push_stdin(state)


@app.command()
def push(ctx: typer.Context) -> None:
    """
    Store standard input as a new entry.

    Example:
        $ cargo build 2>&1 | stash push
    """
    _push_stdin(ctx.obj)


@app.command()
def show(ctx: typer.Context, index: IndexArgument = 0) -> None:
    """
    Print an entry without removing it.

    Example:
        $ stash show 2
    """
    state: CliState = ctx.obj
    try:
        payload = state.resolver.show(index)
    except StashError as e:
        _fail(e, state.debug)
    typer.echo(payload, nl=False)


@app.command()
def pop(ctx: typer.Context, index: IndexArgument = 0) -> None:
    """
    Print an entry and remove it.

    Example:
        $ stash pop > build.log
    """
    state: CliState = ctx.obj
    try:
        payload = state.resolver.pop(index)
    except StashError as e:
        _fail(e, state.debug)
    typer.echo(payload, nl=False)


@app.command()
def delete(ctx: typer.Context, index: IndexArgument = 0) -> None:
    """
    Remove an entry without printing it.

    Example:
        $ stash delete 1
    """
    state: CliState = ctx.obj
    try:
        entry = state.resolver.drop(index)
    except StashError as e:
        _fail(e, state.debug)
    _note(state, f"Deleted {entry.id}")


@app.command("list")
def list_entries(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output entries in JSON format."),
    ] = False,
) -> None:
    """
    List all entries, newest first.

    Example:
        $ stash list --json
    """
    state: CliState = ctx.obj
    try:
        entries = state.store.list()
    except StashError as e:
        _fail(e, state.debug)

    if json_output:
        output = {
            "count": len(entries),
            "entries": [
                {"index": index, **entry.model_dump(mode="json")}
                for index, entry in enumerate(entries)
            ],
        }
        print(json.dumps(output, indent=2))
        return

    if not entries:
        console.print("[dim]No entries.[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", style="dim", justify="right")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Created", no_wrap=True)
    table.add_column("Size", justify="right", no_wrap=True)

    for index, entry in enumerate(entries):
        table.add_row(
            str(index),
            entry.id,
            entry.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            _format_size(entry.size),
        )

    console.print(table)


@app.command()
def clear(ctx: typer.Context) -> None:
    """
    Remove every entry.

    Entries are removed one by one; any that cannot be removed are
    reported and the command exits non-zero.
    """
    state: CliState = ctx.obj
    try:
        report = state.store.clear()
    except StashError as e:
        _fail(e, state.debug)

    console.print(f"Removed {len(report.removed)} entries")
    if report.already_gone:
        _note(state, f"{len(report.already_gone)} entries were removed concurrently")
    if report.swept:
        _note(state, f"Swept {len(report.swept)} files left by interrupted commands")

    if not report.ok:
        err_console.print(f"[red]Failed to remove {len(report.failed)} entries:[/red]")
        for failure in report.failed:
            err_console.print(f"  [red]• {failure.entry_id}: {escape(failure.reason)}[/red]")
        raise typer.Exit(code=1)


@app.command()
def path(ctx: typer.Context) -> None:
    """Print the storage directory."""
    state: CliState = ctx.obj
    typer.echo(str(state.store.root))


if __name__ == "__main__":
    app()
