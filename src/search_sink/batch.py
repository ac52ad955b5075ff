from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .models import Delete, Operation, OperationKind, Upsert


@dataclass(frozen=True)
class DispatchRequest:
    """A run of same-kind operations sent to the cluster as one request."""

    kind: OperationKind
    operations: Tuple[Operation, ...]

    def __len__(self) -> int:
        return len(self.operations)

    def to_actions(self, destination: str) -> List[Dict[str, Any]]:
        """Render as bulk-helper actions, in order."""
        actions: List[Dict[str, Any]] = []
        for op in self.operations:
            if isinstance(op, Upsert):
                action = {"_op_type": "index", "_index": destination, "_source": op.document}
                if op.doc_id is not None:
                    action["_id"] = op.doc_id
            elif isinstance(op, Delete):
                action = {"_op_type": "delete", "_index": destination, "_id": op.doc_id}
            else:
                raise TypeError(f"unsupported operation: {op!r}")
            actions.append(action)
        return actions


class DestinationBatch:
    """
    Ordered operations for one destination within a single batch call.

    Usage:
        batch = DestinationBatch("articles")
        batch.add(Upsert({"title": "a"}, key="k1"))
        batch.add(Delete("k2"))
        for request in batch.requests():
            transport.send(batch.destination, request)
    """

    def __init__(self, destination: str, max_request_size: Optional[int] = None):
        if max_request_size is not None and max_request_size <= 0:
            raise ValueError("max_request_size must be > 0")
        self.destination = destination
        self._max = max_request_size
        self._ops: List[Operation] = []

    def __len__(self) -> int:
        return len(self._ops)

    def add(self, operation: Operation) -> None:
        self._ops.append(operation)

    def requests(self) -> Iterator[DispatchRequest]:
        """Yield requests in arrival order.

        Consecutive operations of the same kind share a request; a kind
        change (upsert->delete or delete->upsert) always starts a new one so
        a later delete can never overtake an earlier upsert for the same key.
        """
        run: List[Operation] = []
        for op in self._ops:
            if run and (op.kind != run[0].kind or len(run) == self._max):
                yield DispatchRequest(run[0].kind, tuple(run))
                run = []
            run.append(op)
        if run:
            yield DispatchRequest(run[0].kind, tuple(run))
