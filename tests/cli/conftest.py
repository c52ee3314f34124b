"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from tagindex.cli import app

if TYPE_CHECKING:
    from click.testing import Result


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def storage_uri(tmp_path):
    """A fresh SQLite store URI in a temp directory."""
    return f"sqlite:///{tmp_path / 'cli_test.db'}"


def invoke(runner: CliRunner, args: list[str], storage_uri: str | None = None) -> "Result":
    """Invoke CLI with the storage URI injected before the subcommand."""
    if storage_uri:
        args = ["--storage-uri", storage_uri] + args
    return runner.invoke(app, args, catch_exceptions=False)
