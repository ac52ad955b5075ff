"""
Change records and the index operations derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from .errors import InvalidRecordError
from .types import Converter, Document


@dataclass(frozen=True)
class Record:
    """One keyed change record, produced upstream.

    Attributes:
        destination: Origin topic; names the target collection by default
        key: Document key (str, bytes or anything with a useful ``str()``)
        value: Payload; ``None`` marks a deletion (tombstone)
    """

    destination: str
    key: Any = None
    value: Any = None


class OperationKind(str, Enum):
    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class Upsert:
    """Insert or overwrite the document stored under ``key``."""

    document: Document
    key: Optional[str] = None

    kind = OperationKind.UPSERT

    @property
    def doc_id(self) -> Optional[str]:
        if self.key is not None:
            return self.key
        fallback = self.document.get("id")
        return str(fallback) if fallback is not None else None


@dataclass(frozen=True)
class Delete:
    """Remove the document stored under ``key``."""

    key: str

    kind = OperationKind.DELETE

    @property
    def doc_id(self) -> str:
        return self.key


Operation = Union[Upsert, Delete]


def normalize_key(key: Any) -> Optional[str]:
    if key is None:
        return None
    if isinstance(key, (bytes, bytearray)):
        return bytes(key).decode("utf-8")
    return str(key)


def classify(record: Record, converter: Converter, position: Optional[int] = None) -> Operation:
    """Derive the operation for a record.

    A present value is always an upsert; an absent value with a key is a
    delete. A record with neither is rejected.
    """
    try:
        key = normalize_key(record.key)
    except UnicodeDecodeError as e:
        raise InvalidRecordError(
            f"key for '{record.destination}' is not valid UTF-8: {e}", position=position
        ) from e
    if record.value is not None:
        try:
            document = converter.convert(record.value)
        except InvalidRecordError as e:
            if e.position is None:
                e.position = position
            raise
        except (TypeError, ValueError) as e:
            raise InvalidRecordError(
                f"cannot convert value for '{record.destination}': {e}", position=position
            ) from e
        return Upsert(document=document, key=key)
    if key is not None:
        return Delete(key=key)
    raise InvalidRecordError(
        f"record for '{record.destination}' has neither key nor value", position=position
    )


def record_from_dict(row: Dict[str, Any]) -> Record:
    """Build a Record from an NDJSON row (``topic`` accepted for ``destination``)."""
    if not isinstance(row, dict):
        raise InvalidRecordError(f"row must be a JSON object, got {type(row).__name__}")
    destination = row.get("destination", row.get("topic"))
    if not destination:
        raise InvalidRecordError(f"row has no destination: {row!r}")
    return Record(destination=destination, key=row.get("key"), value=row.get("value"))
