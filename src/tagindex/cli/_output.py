"""Output formatting helpers for the CLI."""

from __future__ import annotations

import json
import sys
from typing import Any

from tagindex.types import TaskItem


def print_table(headers: list[str], rows: list[list[Any]], *, json_mode: bool = False) -> None:
    """Print data as a table (text) or JSON array."""
    if json_mode:
        data = [dict(zip(headers, row)) for row in rows]
        print(json.dumps(data, indent=2, default=str))
        return

    if not rows:
        return

    # Compute column widths
    widths = [len(h) for h in headers]
    str_rows = [[str(v) for v in row] for row in rows]
    for row in str_rows:
        for i, val in enumerate(row):
            if i < len(widths):
                widths[i] = max(widths[i], len(val))

    print("  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
    print("  ".join("-" * w for w in widths))
    for row in str_rows:
        print("  ".join(val.ljust(widths[i]) for i, val in enumerate(row)))


def print_object(data: dict[str, Any], *, json_mode: bool = False) -> None:
    """Print a single object as JSON or key-value pairs."""
    if json_mode:
        print(json.dumps(data, indent=2, default=str))
        return

    for k, v in data.items():
        print(f"{k}: {v}")


def format_tags(tags: dict[str, str] | None) -> str:
    if not tags:
        return ""
    return ",".join(f"{name}={value}" for name, value in sorted(tags.items()))


def print_records(
    records: list[TaskItem],
    next_pagination_key: str | None,
    *,
    json_mode: bool = False,
) -> None:
    """Print a page of records, followed by the key to resume after it."""
    if json_mode:
        payload: dict[str, Any] = {"items": [r.model_dump() for r in records]}
        if next_pagination_key is not None:
            payload["pagination"] = {"nextToken": next_pagination_key, "count": len(records)}
        print(json.dumps(payload, indent=2, default=str))
        return

    if not records:
        print("No records found.")
        return
    print_table(
        ["id", "name", "description", "tags"],
        [[r.id, r.name, r.description or "", format_tags(r.tags)] for r in records],
    )
    if next_pagination_key is not None:
        print(f"\nNext pagination key: {next_pagination_key}")


def print_error(msg: str) -> None:
    """Print an error message to stderr."""
    print(f"Error: {msg}", file=sys.stderr)
