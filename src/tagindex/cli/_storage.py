"""CLI helpers for backend-aware store construction."""

from __future__ import annotations

import os

from tagindex.config import TagIndexConfig
from tagindex.storage import TagStoreProtocol, open_store


def _config_from_env() -> TagIndexConfig:
    """Build engine config from CLI environment defaults."""
    return TagIndexConfig(
        dynamodb_region=os.getenv("TAGINDEX_DYNAMODB_REGION"),
        dynamodb_endpoint_url=os.getenv("TAGINDEX_DYNAMODB_ENDPOINT_URL"),
    )


def open_store_and_config() -> tuple[TagStoreProtocol, TagIndexConfig]:
    """Open the store selected by global CLI state; the store owns its table name."""
    from tagindex.cli import state

    config = _config_from_env()
    return open_store(state.storage_uri, config=config), config
