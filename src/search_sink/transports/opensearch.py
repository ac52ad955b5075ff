"""
OpenSearch transports.

- OpenSearchAdminTransport: list/create collections (indices)
- DirectDispatchTransport: one bulk call per dispatch request
- BufferedDispatchTransport: accumulate actions, bulk on size or drain()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from loguru import logger
from opensearchpy import OpenSearch, helpers
from opensearchpy.exceptions import RequestError

from ..batch import DispatchRequest
from ..errors import TransportFailure

if TYPE_CHECKING:
    from ..settings import SinkSettings


def create_client(settings: "SinkSettings") -> OpenSearch:
    http_auth = None
    if settings.username:
        http_auth = (settings.username, settings.password or "")
    return OpenSearch(
        hosts=list(settings.hosts),
        http_auth=http_auth,
        use_ssl=settings.use_ssl,
        verify_certs=settings.verify_certs,
        timeout=settings.timeout,
    )


class OpenSearchAdminTransport:
    """Collection existence checks and creation."""

    def __init__(self, client: OpenSearch):
        self._client = client

    def list_destinations(self) -> List[str]:
        """Index names plus the aliases pointing at them."""
        resp = self._client.indices.get_alias(index="*")
        names = set(resp.keys())
        for info in resp.values():
            names.update((info or {}).get("aliases", {}).keys())
        return sorted(names)

    def create_destination(
        self, name: str, shards: int, replication_factor: int, max_shards_per_node: int
    ) -> None:
        # replication_factor counts every copy; OpenSearch counts replicas only
        body = {
            "settings": {
                "index": {
                    "number_of_shards": shards,
                    "number_of_replicas": max(replication_factor - 1, 0),
                    "routing.allocation.total_shards_per_node": max_shards_per_node,
                }
            }
        }
        try:
            self._client.indices.create(index=name, body=body)
        except RequestError as e:
            if e.error == "resource_already_exists_exception":
                logger.debug(f"Collection {name} was created concurrently")
                return
            raise


def _check_bulk_errors(destination: str, errors: Iterable[Dict[str, Any]]) -> None:
    """Raise TransportFailure for failed items; deleting a missing doc is fine."""
    failed = []
    for item in errors:
        op_type, info = next(iter(item.items()))
        if op_type == "delete" and info.get("status") == 404:
            continue
        failed.append(item)
    if failed:
        raise TransportFailure(
            f"{len(failed)} bulk item(s) rejected by {destination}: {failed[:3]}",
            errors=failed,
        )


class DirectDispatchTransport:
    """Sends every request as its own bulk call."""

    def __init__(self, client: OpenSearch, refresh: Optional[str] = None):
        self._client = client
        self._refresh = refresh

    def _bulk_kwargs(self) -> Dict[str, Any]:
        return {"refresh": self._refresh} if self._refresh else {}

    def send(self, destination: str, request: DispatchRequest) -> None:
        actions = request.to_actions(destination)
        logger.trace(f"bulk {request.kind.value} x{len(actions)} -> {destination}")
        _, errors = helpers.bulk(
            self._client, actions, raise_on_error=False, **self._bulk_kwargs()
        )
        _check_bulk_errors(destination, errors)

    def drain(self) -> None:
        return None

    def close(self) -> None:
        self._client.close()


class BufferedDispatchTransport(DirectDispatchTransport):
    """
    Accumulates actions across requests and bulk-sends them together.

    Action order is preserved, so coalescing requests never moves a delete
    ahead of an upsert. The buffer is emptied on ``drain()`` and whenever it
    reaches ``max_actions``.
    """

    def __init__(self, client: OpenSearch, max_actions: int = 500, refresh: Optional[str] = None):
        if max_actions <= 0:
            raise ValueError("max_actions must be > 0")
        super().__init__(client, refresh=refresh)
        self._max_actions = max_actions
        self._buffer: List[Dict[str, Any]] = []
        self._destination: Optional[str] = None

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def send(self, destination: str, request: DispatchRequest) -> None:
        if self._destination is not None and destination != self._destination:
            self.drain()
        self._destination = destination
        self._buffer.extend(request.to_actions(destination))
        if len(self._buffer) >= self._max_actions:
            self.drain()

    def drain(self) -> None:
        if not self._buffer:
            return
        destination = self._destination or "?"
        actions, self._buffer = self._buffer, []
        logger.trace(f"bulk flush x{len(actions)} -> {destination}")
        _, errors = helpers.bulk(
            self._client, actions, raise_on_error=False, **self._bulk_kwargs()
        )
        _check_bulk_errors(destination, errors)

    def close(self) -> None:
        # Whatever is still buffered belongs to a failed batch that will be redelivered.
        if self._buffer:
            logger.warning(f"Discarding {len(self._buffer)} buffered action(s) on close")
            self._buffer.clear()
        super().close()
