"""
Helpers for reading record files.
"""

from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, TypeVar, Union

T = TypeVar("T")


def iter_ndjson(path: Union[str, Path]) -> Iterator[Dict[str, Any]]:
    """Yield one dict per non-blank line; ``.gz`` files are decompressed."""
    p = Path(path)
    opener = gzip.open if p.suffix == ".gz" else open
    with opener(p, "rt", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{p}:{lineno}: invalid JSON: {e}") from e


def chunked(items: Iterable[T], size: int) -> Iterator[List[T]]:
    if size <= 0:
        raise ValueError("size must be > 0")
    chunk: List[T] = []
    for item in items:
        chunk.append(item)
        if len(chunk) >= size:
            yield chunk
            chunk = []
    if chunk:
        yield chunk
