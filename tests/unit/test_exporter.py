import io
import json
from unittest.mock import MagicMock

import pytest

from irtt_telegraf.exporter import (
    MissingStatsError,
    TelegrafExporter,
    export_error,
    export_result,
)
from irtt_telegraf.models import DurationStats, Result, ResultConfig, ResultStats
from irtt_telegraf.options import JSONShape, OutputFormat, TelegrafOptions

TS = 1_700_000_000_123_456_789
TS_S = 1_700_000_000


def _influx(result, options=None, **kwargs):
    sink = io.StringIO()
    export_result(sink, result, options, fmt=OutputFormat.INFLUX, timestamp_ns=TS, **kwargs)
    return sink.getvalue().splitlines()


def test_rtt_line_protocol(sample_result):
    lines = _influx(sample_result)
    assert (
        f"irtt,target=10.0.0.1 rtt_n=10i,rtt_min_ns=1000000i,rtt_max_ns=5000000i,"
        f"rtt_mean_ns=3000000i,rtt_median_ns=3000000i,rtt_stddev_ns=1000000i {TS}"
    ) in lines


def test_line_protocol_full_output(sample_result):
    lines = _influx(sample_result)
    assert lines[0] == f"irtt,target=10.0.0.1 success=1i {TS}"
    assert lines[2] == (
        "irtt,target=10.0.0.1 packets_sent=10i,packets_received=9i,"
        "packet_loss_percent=10.0000,upstream_loss_percent=5.0000,"
        "downstream_loss_percent=5.0000,duplicates=1i,duplicate_percent=11.1111,"
        f"late_packets=2i,late_packets_percent=22.2000 {TS}"
    )
    assert lines[3] == (
        "irtt,target=10.0.0.1 send_rate_bps=4800i,receive_rate_bps=4320i,"
        f"bytes_sent=600i,bytes_received=540i {TS}"
    )
    assert len(lines) == 4


def test_lines_share_timestamp_and_tags(sample_result):
    options = TelegrafOptions(tags={"site": "lab a"})
    for line in _influx(sample_result, options):
        assert line.startswith("irtt,site=lab\\ a,target=10.0.0.1 ")
        assert line.endswith(f" {TS}")


def test_empty_aggregate_emits_no_line(sample_result):
    lines = _influx(sample_result)
    assert not any("send_delay" in line for line in lines)
    assert not any("ipdv" in line for line in lines)


def test_timer_error_off_by_default():
    stats = ResultStats(
        timer_error=DurationStats(n=5, min=1, max=9, mean=4, median=4, stddev=2),
        timer_misses=3,
    )
    result = Result(stats=stats)
    assert not any("timer" in line for line in _influx(result))

    sink = io.StringIO()
    export_result(sink, result, timestamp_ns=TS)
    assert "timer" not in sink.getvalue()


def test_timer_error_enabled_with_empty_aggregate():
    result = Result(stats=ResultStats(timer_misses=3, timer_miss_percent=1.5))
    lines = _influx(result, TelegrafOptions(include_timer_error=True))
    assert lines[-1] == (
        f"irtt timer_err_percent=0.0000,timer_misses=3i,timer_miss_percent=1.5000 {TS}"
    )


def test_missing_stats_writes_nothing():
    sink = io.StringIO()
    with pytest.raises(MissingStatsError, match="no stats"):
        export_result(sink, Result(config=ResultConfig(remote_address="h")), timestamp_ns=TS)
    assert sink.getvalue() == ""


def test_json_nested(sample_result):
    sink = io.StringIO()
    export_result(sink, sample_result, timestamp_ns=TS)
    text = sink.getvalue()
    assert text.count("\n") == 1
    doc = json.loads(text)
    assert doc["timestamp"] == TS_S
    assert doc["tags"] == {"target": "10.0.0.1"}
    assert doc["fields"]["success"] == 1
    assert doc["fields"]["rtt_median_ns"] == 3_000_000
    assert doc["fields"]["send_rate_bps"] == 4800
    assert doc["fields"]["duplicate_percent"] == pytest.approx(11.111111)
    assert "send_delay_n" not in doc["fields"]


def test_json_flat(sample_result):
    sink = io.StringIO()
    export_result(
        sink,
        sample_result,
        TelegrafOptions(tags={"site": "lab"}),
        json_shape=JSONShape.FLAT,
        timestamp_ns=TS,
    )
    doc = json.loads(sink.getvalue())
    assert doc["site"] == "lab"
    assert doc["target"] == "10.0.0.1"
    assert doc["success"] == 1
    assert doc["rtt_n"] == 10
    assert doc["timestamp"] == TS_S


def test_export_is_idempotent(sample_result):
    options = TelegrafOptions(tags={"b": "2", "a": "1"}, include_timer_error=True)
    for fmt in OutputFormat:
        first, second = io.StringIO(), io.StringIO()
        export_result(first, sample_result, options, fmt=fmt, timestamp_ns=TS)
        export_result(second, sample_result, options, fmt=fmt, timestamp_ns=TS)
        assert first.getvalue() == second.getvalue()


def test_export_uses_clock_when_no_timestamp(sample_result, mocker):
    mocker.patch("irtt_telegraf.exporter.time.time_ns", return_value=TS)
    sink = io.StringIO()
    export_result(sink, sample_result)
    assert json.loads(sink.getvalue())["timestamp"] == TS_S


def test_export_error_line_protocol_no_tags():
    sink = io.StringIO()
    export_error(sink, RuntimeError("boom"), "", fmt=OutputFormat.INFLUX, timestamp_ns=TS)
    assert sink.getvalue() == f"irtt success=0i {TS}\n"


def test_export_error_json():
    sink = io.StringIO()
    export_error(
        sink,
        RuntimeError("boom"),
        "10.0.0.9",
        TelegrafOptions(tags={"site": "lab"}),
        timestamp_ns=TS,
    )
    doc = json.loads(sink.getvalue())
    assert doc == {
        "fields": {"success": 0},
        "tags": {"site": "lab", "target": "10.0.0.9"},
        "timestamp": TS_S,
    }
    assert "boom" not in sink.getvalue()


def test_export_error_json_without_tags():
    sink = io.StringIO()
    export_error(sink, None, "", json_shape=JSONShape.FLAT, timestamp_ns=TS)
    assert json.loads(sink.getvalue()) == {"success": 0, "timestamp": TS_S}


def test_sink_error_propagates(sample_result):
    sink = MagicMock()
    sink.write.side_effect = OSError("disk full")
    with pytest.raises(OSError, match="disk full"):
        export_result(sink, sample_result, timestamp_ns=TS)


def test_sink_error_leaves_earlier_lines(sample_result):
    written = []

    def write(data):
        if len(written) == 2:
            raise BrokenPipeError("closed")
        written.append(data)

    sink = MagicMock()
    sink.write.side_effect = write
    with pytest.raises(BrokenPipeError):
        export_result(sink, sample_result, fmt=OutputFormat.INFLUX, timestamp_ns=TS)
    assert len(written) == 2
    assert written[0].startswith("irtt,target=10.0.0.1 success=1i")


def test_telegraf_exporter_class(sample_result):
    exporter = TelegrafExporter(
        TelegrafOptions(tags={"site": "lab"}),
        fmt=OutputFormat.INFLUX,
        clock=lambda: TS,
    )
    sink = io.StringIO()
    exporter.export(sink, sample_result)
    exporter.export_error(sink, TimeoutError(), "10.0.0.2")
    lines = sink.getvalue().splitlines()
    assert lines[0] == f"irtt,site=lab,target=10.0.0.1 success=1i {TS}"
    assert lines[-1] == f"irtt,site=lab,target=10.0.0.2 success=0i {TS}"
