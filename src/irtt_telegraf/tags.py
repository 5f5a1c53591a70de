"""Tag assembly and line-protocol tag escaping."""

from __future__ import annotations

import re
from typing import Dict

from .options import TelegrafOptions

TARGET_TAG = "target"

# comma, equals sign, space
_ESCAPED_CHARS = (",", "=", " ")
_UNESCAPE_RE = re.compile(r"\\([,= ])")


def build_tags(options: TelegrafOptions, target: str = "") -> Dict[str, str]:
    """Static tags plus ``target`` when known, as a new dict with sorted keys."""
    tags = dict(options.tags)
    if target:
        tags[TARGET_TAG] = target
    return {key: tags[key] for key in sorted(tags)}


def escape_tag_value(value: str) -> str:
    for char in _ESCAPED_CHARS:
        value = value.replace(char, "\\" + char)
    return value


def unescape_tag_value(value: str) -> str:
    return _UNESCAPE_RE.sub(r"\1", value)


def format_tag_section(tags: Dict[str, str]) -> str:
    """Render ``,k=v,k=v`` for a line-protocol line, or "" without tags."""
    if not tags:
        return ""
    pairs = [
        f"{escape_tag_value(key)}={escape_tag_value(tags[key])}" for key in sorted(tags)
    ]
    return "," + ",".join(pairs)
