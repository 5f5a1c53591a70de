"""Wire encoders for telegraf: JSON documents and InfluxDB line protocol."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

from .fields import FieldGroup, FieldValue, Fields, merge_fields
from .options import JSONShape
from .serialize import dumps_line
from .tags import format_tag_section

MEASUREMENT = "irtt"


def format_field_value(value: FieldValue) -> str:
    if isinstance(value, bool):
        raise TypeError("boolean field values are not supported")
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return f"{value:.4f}"
    raise TypeError(f"unsupported field value {value!r}")


def format_field_section(fields: Fields) -> str:
    return ",".join(f"{key}={format_field_value(value)}" for key, value in fields.items())


def encode_json(
    status: Fields,
    groups: Sequence[FieldGroup],
    tags: Mapping[str, str],
    timestamp_s: int,
    shape: JSONShape = JSONShape.NESTED,
) -> str:
    """Encode one export as a single newline-terminated JSON document."""
    fields: Fields = dict(status)
    fields.update(merge_fields(list(groups)))

    doc: Dict[str, Any]
    if shape is JSONShape.FLAT:
        # tags first so a field of the same name wins
        doc = dict(tags)
        doc.update(fields)
        doc["timestamp"] = timestamp_s
    else:
        doc = {"fields": fields, "tags": dict(tags), "timestamp": timestamp_s}
    return dumps_line(doc) + "\n"


def encode_line_protocol(
    status: Fields,
    groups: Sequence[FieldGroup],
    tags: Mapping[str, str],
    timestamp_ns: int,
) -> List[str]:
    """Encode one export as line-protocol lines, status line first."""
    tag_section = format_tag_section(dict(tags))
    lines: List[str] = []
    for fields in [status, *(group.fields for group in groups)]:
        if not fields:
            continue
        lines.append(
            f"{MEASUREMENT}{tag_section} {format_field_section(fields)} {timestamp_ns}\n"
        )
    return lines
