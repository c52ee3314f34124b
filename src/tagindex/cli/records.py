"""tagindex create / list / get: write and read tagged records."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from tagindex.cli import _exitcodes as ec
from tagindex.cli._output import print_error, print_object, print_records
from tagindex.cli._storage import open_store_and_config
from tagindex.cli._tags import parse_tag_args
from tagindex.create import CreateService
from tagindex.errors import StorageBackendError, TagIndexError, ValidationError
from tagindex.query import ListService


def create_cmd(
    name: str = typer.Argument(..., help="Record name"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
    tag_args: Optional[list[str]] = typer.Option(
        None, "--tag", "-t", help="NAME=VALUE (repeatable)"
    ),
) -> None:
    """Create a record and index its tags."""
    from tagindex.cli import state

    try:
        tags = parse_tag_args(tag_args)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        store, config = open_store_and_config()
    except StorageBackendError as e:
        print_error(f"Cannot open storage backend: {e}")
        raise typer.Exit(ec.GENERAL_ERROR)

    try:
        item = {"name": name, "description": description, "tags": tags or None}
        created = asyncio.run(CreateService(store, config).create(item))
        print_object(created.model_dump(), json_mode=state.json_output)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)
    except TagIndexError as e:
        print_error(str(e))
        raise typer.Exit(ec.EXECUTION_FAILURE)
    finally:
        store.close()


def list_cmd(
    tag_args: Optional[list[str]] = typer.Option(
        None, "--tag", "-t", help="NAME=VALUE (repeatable, all must match)"
    ),
    pagination_key: Optional[str] = typer.Option(
        None, "--pagination-key", help="Resume after this record id"
    ),
    limit: Optional[int] = typer.Option(None, "--limit", help="Max results"),
) -> None:
    """List records, optionally only those carrying every given tag."""
    from tagindex.cli import state

    try:
        tags = parse_tag_args(tag_args)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        store, config = open_store_and_config()
    except StorageBackendError as e:
        print_error(f"Cannot open storage backend: {e}")
        raise typer.Exit(ec.GENERAL_ERROR)

    try:
        result = asyncio.run(ListService(store, config).list(tags, pagination_key, limit))
        print_records(result.items, result.next_pagination_key, json_mode=state.json_output)
    except ValidationError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)
    except TagIndexError as e:
        print_error(str(e))
        raise typer.Exit(ec.EXECUTION_FAILURE)
    finally:
        store.close()


def get_cmd(
    record_id: str = typer.Argument(..., help="Record id"),
) -> None:
    """Show one record by id."""
    from tagindex.cli import state

    try:
        store, config = open_store_and_config()
    except StorageBackendError as e:
        print_error(f"Cannot open storage backend: {e}")
        raise typer.Exit(ec.GENERAL_ERROR)

    try:
        record = asyncio.run(ListService(store, config).get(record_id))
    except TagIndexError as e:
        print_error(str(e))
        raise typer.Exit(ec.EXECUTION_FAILURE)
    finally:
        store.close()

    if record is None:
        print_error(f"Record '{record_id}' not found")
        raise typer.Exit(ec.GENERAL_ERROR)
    print_object(record.model_dump(), json_mode=state.json_output)
