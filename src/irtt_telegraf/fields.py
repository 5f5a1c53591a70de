"""Projection of result statistics into named metric fields.

Every duration aggregate goes through :func:`duration_fields`, so the naming
and omission rules live in one place:

    {prefix}_n, {prefix}_min_ns, {prefix}_max_ns, {prefix}_mean_ns,
    {prefix}_median_ns (only when defined), {prefix}_stddev_ns

An aggregate with no samples yields no fields at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .models import DurationStats, ResultStats
from .options import TelegrafOptions

FieldValue = Union[int, float]
Fields = Dict[str, FieldValue]


@dataclass(frozen=True)
class FieldGroup:
    """Fields that belong together; one line-protocol line per group."""

    name: str
    fields: Fields


def duration_fields(prefix: str, stats: Optional[DurationStats]) -> Fields:
    if stats is None or stats.n == 0:
        return {}

    out: Fields = {
        f"{prefix}_n": int(stats.n),
        f"{prefix}_min_ns": int(stats.min),
        f"{prefix}_max_ns": int(stats.max),
        f"{prefix}_mean_ns": int(stats.mean),
    }
    if stats.median is not None:
        out[f"{prefix}_median_ns"] = int(stats.median)
    out[f"{prefix}_stddev_ns"] = int(stats.stddev)
    return out


def status_fields(success: bool) -> Fields:
    return {"success": 1 if success else 0}


def _rate_bps(rate: float) -> int:
    # rates are reported unsigned, fractional bits are dropped
    return max(0, int(rate))


def packet_loss_fields(stats: ResultStats) -> Fields:
    return {
        "packets_sent": int(stats.packets_sent),
        "packets_received": int(stats.packets_received),
        "packet_loss_percent": float(stats.packet_loss_percent),
        "upstream_loss_percent": float(stats.upstream_loss_percent),
        "downstream_loss_percent": float(stats.downstream_loss_percent),
        "duplicates": int(stats.duplicates),
        "duplicate_percent": float(stats.duplicate_percent),
        "late_packets": int(stats.late_packets),
        "late_packets_percent": float(stats.late_packets_percent),
    }


def bitrate_fields(stats: ResultStats) -> Fields:
    return {
        "send_rate_bps": _rate_bps(stats.send_rate),
        "receive_rate_bps": _rate_bps(stats.receive_rate),
        "bytes_sent": int(stats.bytes_sent),
        "bytes_received": int(stats.bytes_received),
    }


def timer_error_fields(stats: ResultStats) -> Fields:
    """Timer error aggregate plus the three timer scalars.

    The scalars are always present, so the group is never empty.
    """
    out = duration_fields("timer_error", stats.timer_error)
    out["timer_err_percent"] = float(stats.timer_err_percent)
    out["timer_misses"] = int(stats.timer_misses)
    out["timer_miss_percent"] = float(stats.timer_miss_percent)
    return out


def build_field_groups(stats: ResultStats, options: TelegrafOptions) -> List[FieldGroup]:
    """Return the enabled, non-empty field groups in emission order."""

    candidates: List[FieldGroup] = []

    if options.include_rtt:
        candidates.append(FieldGroup("rtt", duration_fields("rtt", stats.rtt)))
    if options.include_send_delay:
        candidates.append(
            FieldGroup("send_delay", duration_fields("send_delay", stats.send_delay))
        )
    if options.include_receive_delay:
        candidates.append(
            FieldGroup("receive_delay", duration_fields("receive_delay", stats.receive_delay))
        )
    if options.include_ipdv:
        candidates.append(
            FieldGroup("ipdv_rtt", duration_fields("ipdv_rtt", stats.ipdv_round_trip))
        )
        candidates.append(FieldGroup("ipdv_send", duration_fields("ipdv_send", stats.ipdv_send)))
        candidates.append(
            FieldGroup("ipdv_receive", duration_fields("ipdv_receive", stats.ipdv_receive))
        )
    if options.include_server_processing:
        candidates.append(
            FieldGroup(
                "server_processing",
                duration_fields("server_processing", stats.server_processing_time),
            )
        )
    if options.include_packet_loss:
        candidates.append(FieldGroup("packet_loss", packet_loss_fields(stats)))
    if options.include_bitrate:
        candidates.append(FieldGroup("bitrate", bitrate_fields(stats)))
    if options.include_timer_error:
        candidates.append(FieldGroup("timer_error", timer_error_fields(stats)))

    return [group for group in candidates if group.fields]


def merge_fields(groups: List[FieldGroup]) -> Fields:
    merged: Fields = {}
    for group in groups:
        merged.update(group.fields)
    return merged
