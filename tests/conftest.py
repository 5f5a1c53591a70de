import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from irtt_telegraf.models import DurationStats, Result, ResultConfig, ResultStats

FIXTURES = Path(__file__).resolve().parent / "fixtures"

MS = 1_000_000
FIXED_TS_NS = 1_700_000_000_123_456_789


@pytest.fixture
def fixed_ts():
    return FIXED_TS_NS


@pytest.fixture
def result_json_path():
    return FIXTURES / "irtt_result.json"


@pytest.fixture
def rtt_stats():
    return DurationStats(n=10, min=1 * MS, max=5 * MS, mean=3 * MS, median=3 * MS, stddev=1 * MS)


@pytest.fixture
def sample_stats(rtt_stats):
    """Stats with RTT filled in and every other aggregate empty."""
    return ResultStats(
        rtt=rtt_stats,
        packets_sent=10,
        packets_received=9,
        duplicates=1,
        late_packets=2,
        packet_loss_percent=10.0,
        upstream_loss_percent=5.0,
        downstream_loss_percent=5.0,
        duplicate_percent=11.111111,
        late_packets_percent=22.2,
        send_rate=4800.9,
        receive_rate=4320.2,
        bytes_sent=600,
        bytes_received=540,
        timer_err_percent=0.5,
        timer_misses=1,
        timer_miss_percent=10.0,
    )


@pytest.fixture
def sample_result(sample_stats):
    return Result(stats=sample_stats, config=ResultConfig(remote_address="10.0.0.1"))


@pytest.fixture
def mocker():
    """Basic replacement for pytest-mock's mocker fixture."""

    from unittest.mock import MagicMock, Mock, patch

    active_patchers = []

    class SimpleMocker:
        def patch(self, target, *args, **kwargs):
            patcher = patch(target, *args, **kwargs)
            active_patchers.append(patcher)
            return patcher.start()

        def stopall(self):
            while active_patchers:
                active_patchers.pop().stop()

    SimpleMocker.MagicMock = MagicMock  # type: ignore[attr-defined]
    SimpleMocker.Mock = Mock  # type: ignore[attr-defined]

    helper = SimpleMocker()
    try:
        yield helper
    finally:
        helper.stopall()
