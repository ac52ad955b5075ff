"""
Collaborator contracts used by the sink task.

The task only talks to the cluster through these narrow protocols, so the
direct and buffered transports (and test doubles) are interchangeable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .batch import DispatchRequest

Document = Dict[str, Any]


@runtime_checkable
class Converter(Protocol):
    """Turns a record value into a document. Pure; never called for deletes."""

    def convert(self, value: Any) -> Document: ...


@runtime_checkable
class AdminTransport(Protocol):
    """Collection listing/creation against the cluster."""

    def list_destinations(self) -> List[str]: ...

    def create_destination(
        self, name: str, shards: int, replication_factor: int, max_shards_per_node: int
    ) -> None: ...


@runtime_checkable
class DispatchTransport(Protocol):
    """Sends ordered update/delete requests to one destination."""

    def send(self, destination: str, request: "DispatchRequest") -> None: ...

    def drain(self) -> None:
        """Push out anything held back; no-op for direct transports."""
        ...

    def close(self) -> None: ...
