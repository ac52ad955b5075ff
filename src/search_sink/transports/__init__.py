"""Cluster transports: collection admin plus direct and buffered dispatch."""

from .opensearch import (
    BufferedDispatchTransport,
    DirectDispatchTransport,
    OpenSearchAdminTransport,
    create_client,
)

__all__ = [
    "create_client",
    "OpenSearchAdminTransport",
    "DirectDispatchTransport",
    "BufferedDispatchTransport",
]
