"""tagindex info: show store status and high-level counts."""

from __future__ import annotations

import os
from typing import Any

import typer

from tagindex.cli import _exitcodes as ec
from tagindex.cli._output import print_error, print_object
from tagindex.cli._storage import open_store_and_config
from tagindex.errors import StorageBackendError


def info_cmd() -> None:
    """Show store status and high-level counts."""
    from tagindex.cli import state

    try:
        store, config = open_store_and_config()
    except StorageBackendError as e:
        print_error(f"Cannot open storage backend: {e}")
        raise typer.Exit(ec.GENERAL_ERROR)

    try:
        data: dict[str, Any] = store.describe()
        db_path = data.get("db_path")
        if db_path and db_path != ":memory:" and os.path.exists(str(db_path)):
            data["file_size_bytes"] = os.path.getsize(str(db_path))
        data["list_index_name"] = config.list_index_name
        data["max_read_batch_size"] = config.max_read_batch_size
        data["max_write_batch_size"] = config.max_write_batch_size
        print_object(data, json_mode=state.json_output)
    except StorageBackendError as e:
        print_error(str(e))
        raise typer.Exit(ec.EXECUTION_FAILURE)
    finally:
        store.close()
