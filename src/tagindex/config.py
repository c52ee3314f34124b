"""Configuration for the tagindex query engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class TagIndexConfig:
    """Configuration passed explicitly to every store and engine component."""

    table_name: str = "tagindex"
    list_index_name: str = "siKey1-sk-index"
    default_list_limit: int = 20
    max_read_batch_size: int = 100
    max_write_batch_size: int = 25
    max_batch_retries: int = 3
    batch_backoff_base_ms: int = 50
    batch_backoff_max_ms: int = 1000
    id_length: int = 9
    dynamodb_region: str | None = None
    dynamodb_endpoint_url: str | None = None
    dynamodb_request_timeout_s: float = 10.0
