"""
Destination existence cache.

Memoizes the "does this collection exist" check for the lifetime of one task
instance so the cluster is asked at most once per destination.
"""

from __future__ import annotations

from typing import Set

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .metrics import metrics_registry
from .types import AdminTransport


class CollectionPolicy(BaseModel):
    """Read-only collection auto-creation parameters, passed through to the cluster."""

    model_config = ConfigDict(frozen=True)

    auto_create: bool = False
    num_shards: int = Field(1, ge=1)
    replication_factor: int = Field(1, ge=1)
    max_shards_per_node: int = Field(1, ge=1)

    @property
    def shards_per_node_cap(self) -> int:
        return max(self.num_shards, self.max_shards_per_node)


class ExistenceCache:
    """Set of destinations already confirmed or created; grows, never shrinks.

    Entries are never invalidated: collections are assumed not to be deleted
    out-of-band while the task runs. One cache per task instance.
    """

    def __init__(self) -> None:
        self._known: Set[str] = set()

    def __contains__(self, destination: object) -> bool:
        return destination in self._known

    def __len__(self) -> int:
        return len(self._known)

    def assure(self, admin: AdminTransport, destination: str, policy: CollectionPolicy) -> None:
        """Make sure ``destination`` exists when auto-create is on.

        Transport errors propagate to the caller untouched; the destination is
        only remembered once the check (or creation) succeeded, so a later
        redelivery repeats it.
        """
        if not policy.auto_create:
            return
        if destination in self._known:
            return

        existing = admin.list_destinations()
        if destination not in existing:
            logger.info(
                f"Auto-creating collection {destination} "
                f"(shards={policy.num_shards}, rf={policy.replication_factor}, "
                f"max_shards_per_node={policy.shards_per_node_cap})"
            )
            admin.create_destination(
                destination,
                policy.num_shards,
                policy.replication_factor,
                policy.shards_per_node_cap,
            )
            metrics_registry.collections_created_total.inc()
        else:
            logger.debug(f"Collection {destination} already exists")
        self._known.add(destination)
