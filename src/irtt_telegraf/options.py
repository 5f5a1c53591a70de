"""Export options: which metric groups to emit and which static tags to attach."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping

import yaml


class OptionsError(ValueError):
    """Raised for an unusable options mapping or file."""


class OutputFormat(str, Enum):
    JSON = "json"
    INFLUX = "influx"


class JSONShape(str, Enum):
    """Layout of JSON documents.

    ``nested`` keeps fields and tags in separate objects and is the default.
    ``flat`` merges tags, fields and the timestamp into one object, as older
    telegraf json_v2 configurations expect.
    """

    NESTED = "nested"
    FLAT = "flat"


def _freeze_tags(tags: Mapping[Any, Any] | None) -> Mapping[str, str]:
    if not tags:
        return MappingProxyType({})
    return MappingProxyType({str(k): str(v) for k, v in tags.items()})


@dataclass(frozen=True)
class TelegrafOptions:
    """Immutable export configuration."""

    tags: Mapping[str, str] = field(default_factory=dict)

    include_rtt: bool = True
    include_send_delay: bool = True
    include_receive_delay: bool = True
    include_ipdv: bool = True
    include_packet_loss: bool = True
    include_bitrate: bool = True
    include_server_processing: bool = True
    include_timer_error: bool = False

    def __post_init__(self) -> None:
        # Detach from the caller's dict so later mutations on it are not seen
        object.__setattr__(self, "tags", _freeze_tags(self.tags))

    def with_tags(self, extra: Mapping[str, str]) -> "TelegrafOptions":
        merged: Dict[str, str] = dict(self.tags)
        merged.update({str(k): str(v) for k, v in extra.items()})
        return replace(self, tags=merged)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "TelegrafOptions":
        """Build options from a plain mapping such as a parsed YAML file."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise OptionsError("options must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise OptionsError(f"unknown option(s): {', '.join(map(str, unknown))}")

        kwargs: Dict[str, Any] = {}
        for name, value in data.items():
            if name == "tags":
                if value is None:
                    value = {}
                if not isinstance(value, Mapping):
                    raise OptionsError("'tags' must be a mapping of strings")
                kwargs[name] = value
            elif isinstance(value, bool):
                kwargs[name] = value
            else:
                raise OptionsError(f"'{name}' must be true or false, got {value!r}")
        return cls(**kwargs)


def default_options() -> TelegrafOptions:
    return TelegrafOptions()


def load_options(path: str | Path) -> TelegrafOptions:
    """Load options from a YAML file."""
    options_path = Path(path)
    try:
        data = yaml.safe_load(options_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise OptionsError(f"Invalid YAML in {options_path}: {e}") from e
    return TelegrafOptions.from_mapping(data)
