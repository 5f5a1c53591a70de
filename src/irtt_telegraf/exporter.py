"""Export irtt results as telegraf metrics.

Two entry points write to any text sink (an object with ``write(str)``):

* :func:`export_result` projects a finished result's statistics.
* :func:`export_error` records a failed test as ``success=0``.

Both capture the clock once per call; pass ``timestamp_ns`` to pin it.
Sink errors propagate unchanged. In line-protocol mode each line is a
separate write, so a failing sink may leave earlier lines written.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional, Protocol

from .encoders import encode_json, encode_line_protocol
from .fields import FieldGroup, Fields, build_field_groups, status_fields
from .models import Result
from .options import JSONShape, OutputFormat, TelegrafOptions, default_options
from .tags import build_tags

logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1_000_000_000


class Sink(Protocol):
    def write(self, data: str) -> object: ...


class ExportError(Exception):
    """Base class for exporter failures detected before anything is written."""


class MissingStatsError(ExportError):
    """The result carries no computed statistics."""

    def __init__(self, message: str = "no stats in result") -> None:
        super().__init__(message)


def _write(
    sink: Sink,
    status: Fields,
    groups: List[FieldGroup],
    tags: dict,
    timestamp_ns: int,
    fmt: OutputFormat,
    json_shape: JSONShape,
) -> None:
    if fmt is OutputFormat.INFLUX:
        for line in encode_line_protocol(status, groups, tags, timestamp_ns):
            sink.write(line)
        return
    sink.write(encode_json(status, groups, tags, timestamp_ns // NANOS_PER_SECOND, json_shape))


def export_result(
    sink: Sink,
    result: Result,
    options: Optional[TelegrafOptions] = None,
    *,
    fmt: OutputFormat = OutputFormat.JSON,
    json_shape: JSONShape = JSONShape.NESTED,
    timestamp_ns: Optional[int] = None,
) -> None:
    """Write the metrics of a successful test.

    Raises:
        MissingStatsError: ``result.stats`` is None; nothing is written.
    """
    if options is None:
        options = default_options()
    if timestamp_ns is None:
        timestamp_ns = time.time_ns()

    stats = result.stats
    if stats is None:
        raise MissingStatsError()

    tags = build_tags(options, result.remote_address)
    groups = build_field_groups(stats, options)
    logger.debug(
        "Exporting %d field group(s) for %s as %s",
        len(groups),
        result.remote_address or "<unknown target>",
        fmt.value,
    )
    _write(sink, status_fields(True), groups, tags, timestamp_ns, fmt, json_shape)


def export_error(
    sink: Sink,
    err: Optional[BaseException],
    target: str = "",
    options: Optional[TelegrafOptions] = None,
    *,
    fmt: OutputFormat = OutputFormat.JSON,
    json_shape: JSONShape = JSONShape.NESTED,
    timestamp_ns: Optional[int] = None,
) -> None:
    """Write a single ``success=0`` record for a failed test.

    ``err`` is not encoded into the output.
    """
    if options is None:
        options = default_options()
    if timestamp_ns is None:
        timestamp_ns = time.time_ns()

    logger.debug("Exporting failure for %s: %s", target or "<unknown target>", err)
    tags = build_tags(options, target)
    _write(sink, status_fields(False), [], tags, timestamp_ns, fmt, json_shape)


class TelegrafExporter:
    """Holds export settings for repeated writes to the same kind of sink."""

    def __init__(
        self,
        options: Optional[TelegrafOptions] = None,
        *,
        fmt: OutputFormat = OutputFormat.JSON,
        json_shape: JSONShape = JSONShape.NESTED,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self.options = options or default_options()
        self.fmt = fmt
        self.json_shape = json_shape
        self._clock = clock

    def export(self, sink: Sink, result: Result) -> None:
        export_result(
            sink,
            result,
            self.options,
            fmt=self.fmt,
            json_shape=self.json_shape,
            timestamp_ns=self._clock(),
        )

    def export_error(self, sink: Sink, err: Optional[BaseException], target: str = "") -> None:
        export_error(
            sink,
            err,
            target,
            self.options,
            fmt=self.fmt,
            json_shape=self.json_shape,
            timestamp_ns=self._clock(),
        )
