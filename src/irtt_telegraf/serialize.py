"""Serialization helpers for deterministic single-line JSON."""

from __future__ import annotations

import json
from typing import Any

try:  # pragma: no cover - optional speed-up
    import orjson
except Exception:  # pragma: no cover - fallback to stdlib
    orjson = None  # type: ignore[assignment]


def dumps_line(data: Any) -> str:
    """Compact, key-sorted JSON without a trailing newline."""
    if orjson is not None:
        return orjson.dumps(data, option=orjson.OPT_SORT_KEYS).decode()
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
