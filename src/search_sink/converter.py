from __future__ import annotations

import dataclasses
import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from .errors import InvalidRecordError
from .types import Document


class JsonDocumentConverter:
    """Default value converter.

    Accepts mappings, pydantic models, dataclass instances and JSON encoded
    as ``bytes``/``str`` (the object must decode to a JSON object).
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def convert(self, value: Any) -> Document:
        if isinstance(value, Mapping):
            return dict(value)
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json")
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return dataclasses.asdict(value)
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode(self.encoding)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as e:
                raise InvalidRecordError(f"value is not valid JSON: {e}") from e
            if not isinstance(parsed, dict):
                raise InvalidRecordError(
                    f"value must decode to a JSON object, got {type(parsed).__name__}"
                )
            return parsed
        raise InvalidRecordError(f"cannot convert value of type {type(value).__name__}")
