from __future__ import annotations

from typing import Mapping, Optional

from .models import Record


class DestinationRouter:
    """Maps a record's origin topic to its collection name.

    Identity unless the topic appears in ``mapping``.
    """

    def __init__(self, mapping: Optional[Mapping[str, str]] = None):
        self._mapping = dict(mapping or {})

    def __call__(self, record: Record) -> str:
        return self._mapping.get(record.destination, record.destination)
