"""tagindex: multi-tag intersection queries over a sorted key-value store."""

__version__ = "0.1.0"

from tagindex.batch import BatchExecutor, BatchKind
from tagindex.config import TagIndexConfig
from tagindex.create import CreateService
from tagindex.errors import (
    SaveIncompleteError,
    StorageBackendError,
    StoreThrottledError,
    StoreUnavailableError,
    TagIndexError,
    ValidationError,
)
from tagindex.expand import RecordExpander
from tagindex.intersect import Intersector
from tagindex.query import ListService
from tagindex.storage import SqliteTagStore, TagStoreProtocol, open_store
from tagindex.types import IntersectionResult, ListResult, Tags, TaskItem

__all__ = [
    "__version__",
    "BatchExecutor",
    "BatchKind",
    "CreateService",
    "Intersector",
    "IntersectionResult",
    "ListResult",
    "ListService",
    "RecordExpander",
    "SaveIncompleteError",
    "SqliteTagStore",
    "StorageBackendError",
    "StoreThrottledError",
    "StoreUnavailableError",
    "TagIndexConfig",
    "TagIndexError",
    "TagStoreProtocol",
    "Tags",
    "TaskItem",
    "ValidationError",
    "open_store",
]
