"""
Search Sink

Turns ordered batches of keyed change records into bulk index mutations
against an OpenSearch cluster, preserving per-key order and reporting
failures as retriable or not.

Usage:
    from search_sink import SearchSinkTask, CollectionPolicy, Record

    task = SearchSinkTask(admin_transport, dispatch_transport)
    task.start(CollectionPolicy(auto_create=True))
    result = task.process_batch([Record("articles", key="k1", value={"title": "t"})])
"""

from .batch import DestinationBatch, DispatchRequest
from .converter import JsonDocumentConverter
from .errors import (
    InvalidRecordError,
    RetryableError,
    SinkOperationalError,
    TransportFailure,
)
from .existence import CollectionPolicy, ExistenceCache
from .models import Delete, OperationKind, Record, Upsert, classify
from .routing import DestinationRouter
from .settings import SinkSettings, get_settings
from .task import BatchResult, BatchStatus, SearchSinkTask, build_task

__version__ = "1.0.0"
__all__ = [
    "Record",
    "Upsert",
    "Delete",
    "OperationKind",
    "classify",
    "DestinationBatch",
    "DispatchRequest",
    "ExistenceCache",
    "CollectionPolicy",
    "JsonDocumentConverter",
    "DestinationRouter",
    "SearchSinkTask",
    "BatchResult",
    "BatchStatus",
    "build_task",
    "SinkSettings",
    "get_settings",
    "SinkOperationalError",
    "RetryableError",
    "InvalidRecordError",
    "TransportFailure",
]
