"""Read-only views of an irtt result as produced by ``irtt client -o``.

Only the pieces the exporter consumes are modelled. Durations are kept as
integer nanoseconds, which is how irtt writes them in its JSON output.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional


class ResultParseError(ValueError):
    """Raised when an irtt JSON document cannot be interpreted."""


def _as_int(data: Mapping[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ResultParseError(f"'{key}' must be a number, got {value!r}")
    return int(value)


def _as_float(data: Mapping[str, Any], key: str, default: float = 0.0) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ResultParseError(f"'{key}' must be a number, got {value!r}")
    return float(value)


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ResultParseError(f"'{key}' must be an object")
    return value


@dataclass(frozen=True, slots=True)
class DurationStats:
    """Precomputed summary of a set of duration samples, in nanoseconds."""

    n: int = 0
    min: int = 0
    max: int = 0
    mean: int = 0
    median: Optional[int] = None
    stddev: int = 0

    @property
    def is_empty(self) -> bool:
        return self.n == 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DurationStats":
        # irtt omits "median" when it is undefined
        median = data.get("median")
        if median is not None:
            median = _as_int(data, "median")
        return cls(
            n=_as_int(data, "n"),
            min=_as_int(data, "min"),
            max=_as_int(data, "max"),
            mean=_as_int(data, "mean"),
            median=median,
            stddev=_as_int(data, "stddev"),
        )


def _duration(data: Mapping[str, Any], key: str) -> DurationStats:
    return DurationStats.from_dict(_section(data, key))


def _rate(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if isinstance(value, Mapping):
        return _as_float(value, "bps")
    if value is None:
        return 0.0
    return _as_float(data, key)


@dataclass(frozen=True, slots=True)
class ResultStats:
    """Aggregated statistics of one finished irtt test."""

    rtt: DurationStats = field(default_factory=DurationStats)
    send_delay: DurationStats = field(default_factory=DurationStats)
    receive_delay: DurationStats = field(default_factory=DurationStats)
    ipdv_round_trip: DurationStats = field(default_factory=DurationStats)
    ipdv_send: DurationStats = field(default_factory=DurationStats)
    ipdv_receive: DurationStats = field(default_factory=DurationStats)
    server_processing_time: DurationStats = field(default_factory=DurationStats)
    timer_error: DurationStats = field(default_factory=DurationStats)

    packets_sent: int = 0
    packets_received: int = 0
    duplicates: int = 0
    late_packets: int = 0
    packet_loss_percent: float = 0.0
    upstream_loss_percent: float = 0.0
    downstream_loss_percent: float = 0.0
    duplicate_percent: float = 0.0
    late_packets_percent: float = 0.0

    send_rate: float = 0.0
    receive_rate: float = 0.0
    bytes_sent: int = 0
    bytes_received: int = 0

    timer_err_percent: float = 0.0
    timer_misses: int = 0
    timer_miss_percent: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResultStats":
        return cls(
            rtt=_duration(data, "rtt"),
            send_delay=_duration(data, "send_delay"),
            receive_delay=_duration(data, "receive_delay"),
            ipdv_round_trip=_duration(data, "ipdv_round_trip"),
            ipdv_send=_duration(data, "ipdv_send"),
            ipdv_receive=_duration(data, "ipdv_receive"),
            server_processing_time=_duration(data, "server_processing_time"),
            timer_error=_duration(data, "timer_error"),
            packets_sent=_as_int(data, "packets_sent"),
            packets_received=_as_int(data, "packets_received"),
            duplicates=_as_int(data, "duplicates"),
            late_packets=_as_int(data, "late_packets"),
            packet_loss_percent=_as_float(data, "packet_loss_percent"),
            upstream_loss_percent=_as_float(data, "upstream_loss_percent"),
            downstream_loss_percent=_as_float(data, "downstream_loss_percent"),
            duplicate_percent=_as_float(data, "duplicate_percent"),
            late_packets_percent=_as_float(data, "late_packets_percent"),
            send_rate=_rate(data, "send_rate"),
            receive_rate=_rate(data, "receive_rate"),
            bytes_sent=_as_int(data, "bytes_sent"),
            bytes_received=_as_int(data, "bytes_received"),
            timer_err_percent=_as_float(data, "timer_err_percent"),
            timer_misses=_as_int(data, "timer_misses"),
            timer_miss_percent=_as_float(data, "timer_miss_percent"),
        )


@dataclass(frozen=True, slots=True)
class ResultConfig:
    remote_address: str = ""


@dataclass(frozen=True, slots=True)
class Result:
    """A finished irtt test. ``stats`` is None when nothing was computed."""

    stats: Optional[ResultStats] = None
    config: Optional[ResultConfig] = None

    @property
    def remote_address(self) -> str:
        if self.config is None:
            return ""
        return self.config.remote_address

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Result":
        if not isinstance(data, Mapping):
            raise ResultParseError("irtt result must be a JSON object")

        stats_data = data.get("stats")
        stats = None
        if stats_data is not None:
            stats = ResultStats.from_dict(_section(data, "stats"))

        config = None
        config_data = data.get("config")
        if config_data is not None:
            remote = _section(data, "config").get("remote_address") or ""
            config = ResultConfig(remote_address=str(remote))

        return cls(stats=stats, config=config)

    @classmethod
    def from_json(cls, text: str) -> "Result":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ResultParseError(f"Invalid JSON at line {e.lineno}: {e.msg}") from e
        return cls.from_dict(data)
