"""tagindex CLI: operator console for creating and querying tagged records."""

from __future__ import annotations

from typing import Optional

import typer

from tagindex.cli import info, records

app = typer.Typer(
    name="tagindex",
    help="tagindex CLI: create tagged records and list those matching all given tags.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    storage_uri: str | None = None
    json_output: bool = False


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        from tagindex import __version__

        print(f"tagindex {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    storage_uri: Optional[str] = typer.Option(
        None,
        "--storage-uri",
        envvar="TAGINDEX_STORAGE_URI",
        help="Backend storage URI (e.g. sqlite:///tagindex.db or dynamodb://table)",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all tagindex commands."""
    from tagindex.errors import StorageBackendError
    from tagindex.storage import parse_storage_target

    if storage_uri:
        try:
            parse_storage_target(storage_uri)
        except StorageBackendError as e:
            raise typer.BadParameter(str(e))
    if verbose:
        from tagindex.logging_config import enable_debug_mode

        enable_debug_mode()

    state.storage_uri = storage_uri
    state.json_output = json_output
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


# Register top-level commands
app.command(name="create")(records.create_cmd)
app.command(name="list")(records.list_cmd)
app.command(name="get")(records.get_cmd)
app.command(name="info")(info.info_cmd)


def main() -> None:
    """Entry point for the tagindex CLI."""
    app()
