"""JSON document format for stored snapshots."""

from __future__ import annotations

import json
from typing import Any

from pyrbo.exceptions import RboDecodeError, RboEncodeError


def encode_document(root: Any) -> str:
    """Serialize the whole root as compact JSON, keys in insertion order."""
    try:
        return json.dumps(root, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise RboEncodeError(f"Value is not JSON-serializable: {exc}") from exc


def decode_document(raw: str | bytes, *, key: str) -> Any:
    """Parse a stored snapshot.

    Raises
    ------
    RboDecodeError
        If *raw* is not valid JSON (including invalid UTF-8 bytes).
    """
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        return json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        preview = raw[:64]
        raise RboDecodeError(
            f"Stored value under {key!r} is not JSON: {preview!r}",
            key=key,
            operation="get",
        ) from exc
