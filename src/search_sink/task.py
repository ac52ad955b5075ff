"""
Search sink task: records -> per-destination batches -> cluster.

Each ``process_batch`` call is fully drained before it returns. The caller
sees either total success or one failure; a retriable failure means the
identical batch can be redelivered safely (upserts and deletes are keyed by
document id, and the existence check is idempotent).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from time import perf_counter
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from loguru import logger

from .batch import DestinationBatch
from .converter import JsonDocumentConverter
from .errors import InvalidRecordError, SinkOperationalError, map_transport_error
from .existence import CollectionPolicy, ExistenceCache
from .metrics import metrics_registry
from .models import Record, classify
from .routing import DestinationRouter
from .types import AdminTransport, Converter, DispatchTransport


class BatchStatus(str, Enum):
    SUCCESS = "success"
    RETRIABLE = "retriable"  # redeliver the identical batch
    FAILED = "failed"  # malformed input, do not retry


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one ``process_batch`` call."""

    status: BatchStatus
    error: Optional[SinkOperationalError] = None
    records: int = 0
    requests: int = 0

    @property
    def ok(self) -> bool:
        return self.status is BatchStatus.SUCCESS

    @property
    def retriable(self) -> bool:
        return self.status is BatchStatus.RETRIABLE

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error


class SearchSinkTask:
    """
    Converts batches of change records into index mutations.

    Usage:
        task = SearchSinkTask(admin, dispatch)
        task.start(CollectionPolicy(auto_create=True))
        result = task.process_batch(records)
        if result.retriable:
            ...  # redeliver the same records later
        task.stop()
    """

    def __init__(
        self,
        admin: AdminTransport,
        dispatch: DispatchTransport,
        converter: Optional[Converter] = None,
        router: Optional[Callable[[Record], str]] = None,
        max_request_size: Optional[int] = None,
    ):
        self._admin = admin
        self._dispatch = dispatch
        self._converter = converter or JsonDocumentConverter()
        self._router = router or DestinationRouter()
        self._max_request_size = max_request_size
        self._policy: Optional[CollectionPolicy] = None
        self._cache: Optional[ExistenceCache] = None

    # --------------------------- lifecycle

    def start(self, policy: CollectionPolicy) -> None:
        logger.info(
            f"Starting search sink task (auto_create={policy.auto_create}, "
            f"shards={policy.num_shards}, rf={policy.replication_factor})"
        )
        self._policy = policy
        self._cache = ExistenceCache()

    def stop(self) -> None:
        logger.info("Stopping search sink task")
        self._dispatch.close()

    def flush(self, offsets: Optional[Mapping[Any, Any]] = None) -> None:
        """Acknowledge a framework flush.

        Nothing is buffered across ``process_batch`` calls, so there is
        nothing to do.
        """
        return None

    def __enter__(self) -> "SearchSinkTask":
        if self._policy is None:
            raise RuntimeError("SearchSinkTask must be started before use")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @property
    def existence_cache(self) -> ExistenceCache:
        if self._cache is None:
            raise RuntimeError("SearchSinkTask must be started before use")
        return self._cache

    # --------------------------- processing

    def process_batch(self, records: Iterable[Record]) -> BatchResult:
        """Route, classify and dispatch one batch of records."""
        if self._policy is None or self._cache is None:
            raise RuntimeError("SearchSinkTask must be started before use")

        try:
            batches, count = self._route(records)
        except InvalidRecordError as e:
            logger.error(f"Rejecting batch: {e}")
            metrics_registry.batches_total.labels(outcome=BatchStatus.FAILED.value).inc()
            return BatchResult(BatchStatus.FAILED, error=e)

        sent = 0
        for destination, batch in batches.items():
            try:
                sent += self._dispatch_destination(destination, batch)
            except Exception as e:
                err = map_transport_error(e, destination)
                status = BatchStatus.RETRIABLE if err.retriable else BatchStatus.FAILED
                logger.warning(
                    f"Dispatch to {destination} failed after {sent} request(s); "
                    f"batch of {count} record(s) is {status.value}: {err}"
                )
                metrics_registry.batches_total.labels(outcome=status.value).inc()
                return BatchResult(status, error=err, records=count, requests=sent)

        metrics_registry.batches_total.labels(outcome=BatchStatus.SUCCESS.value).inc()
        logger.debug(
            f"Applied {count} record(s) to {len(batches)} destination(s) in {sent} request(s)"
        )
        return BatchResult(BatchStatus.SUCCESS, records=count, requests=sent)

    def put(self, records: Iterable[Record]) -> None:
        """Exception-style entry point; raises on any failure."""
        self.process_batch(records).raise_for_status()

    # --------------------------- internals

    def _route(self, records: Iterable[Record]) -> tuple[Dict[str, DestinationBatch], int]:
        batches: Dict[str, DestinationBatch] = {}
        count = 0
        for position, record in enumerate(records):
            destination = self._router(record)
            batch = batches.get(destination)
            if batch is None:
                batch = batches[destination] = DestinationBatch(destination, self._max_request_size)
            op = classify(record, self._converter, position=position)
            logger.trace(f"{destination}: {op.kind.value} {op.doc_id}")
            metrics_registry.records_total.labels(operation=op.kind.value).inc()
            batch.add(op)
            count += 1
        return batches, count

    def _dispatch_destination(self, destination: str, batch: DestinationBatch) -> int:
        assert self._cache is not None and self._policy is not None
        self._cache.assure(self._admin, destination, self._policy)

        sent = 0
        for request in batch.requests():
            t0 = perf_counter()
            try:
                self._dispatch.send(destination, request)
            except Exception:
                metrics_registry.requests_total.labels(
                    destination=destination, kind=request.kind.value, status="failure"
                ).inc()
                raise
            elapsed = perf_counter() - t0
            metrics_registry.dispatch_latency.labels(destination=destination).observe(elapsed)
            metrics_registry.requests_total.labels(
                destination=destination, kind=request.kind.value, status="success"
            ).inc()
            sent += 1
        self._dispatch.drain()
        return sent


def build_task(settings) -> SearchSinkTask:
    """Wire an OpenSearch-backed task from settings and start it."""
    from .transports import (
        BufferedDispatchTransport,
        DirectDispatchTransport,
        OpenSearchAdminTransport,
        create_client,
    )

    client = create_client(settings)
    if settings.transport == "buffered":
        dispatch = BufferedDispatchTransport(
            client, max_actions=settings.buffer_max_actions, refresh=settings.refresh
        )
    else:
        dispatch = DirectDispatchTransport(client, refresh=settings.refresh)

    task = SearchSinkTask(
        OpenSearchAdminTransport(client),
        dispatch,
        router=DestinationRouter(settings.destination_map),
        max_request_size=settings.max_request_size,
    )
    task.start(settings.collection_policy())
    return task
