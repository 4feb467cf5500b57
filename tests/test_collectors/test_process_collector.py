"""Tests for process collector."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from host_agent.collectors.process_collector import ProcessCollector, normalize_state
from host_agent.config.models import ProcessCollectorConfig


def proc(pid, status="sleeping", cpu=0.0, mem=0.0, **extra):
    info = {
        "pid": pid,
        "ppid": 1,
        "name": f"proc{pid}",
        "cmdline": [f"/usr/bin/proc{pid}", "--flag"],
        "exe": f"/usr/bin/proc{pid}",
        "username": "root",
        "status": status,
        "cpu_percent": cpu,
        "memory_percent": mem,
        "memory_info": SimpleNamespace(rss=4096, vms=8192),
        "nice": 0,
        "create_time": 1_700_000_000.0,
        "num_threads": 2,
    }
    info.update(extra)
    return SimpleNamespace(info=info)


@pytest.fixture
def processes():
    return [
        proc(1, "running", cpu=1.0, mem=1.0),
        proc(2, "sleeping", cpu=50.0, mem=10.0),
        proc(3, "zombie"),
        proc(4, "sleeping", cpu=5.0, mem=30.0),
        proc(5, "disk-sleep", cpu=0.5),
    ]


@pytest.fixture
def mock_psutil(processes):
    with patch("host_agent.collectors.process_collector.psutil") as mock:
        mock.process_iter.return_value = processes
        yield mock


class TestNormalizeState:
    @pytest.mark.parametrize("raw,expected", [
        ("running", "running"),
        ("sleeping", "sleeping"),
        ("S", "sleeping"),
        ("interruptible", "sleeping"),
        ("disk-sleep", "disk-sleep"),
        ("D", "disk-sleep"),
        ("stopped", "stopped"),
        ("tracing-stop", "stopped"),
        ("zombie", "zombie"),
        ("Z", "zombie"),
        ("idle", "idle"),
        ("dead", "unknown"),
        ("", "unknown"),
        (None, "unknown"),
    ])
    def test_states(self, raw, expected):
        assert normalize_state(raw) == expected


@pytest.mark.asyncio
async def test_collect_counts_states(logger, mock_psutil):
    collector = ProcessCollector(ProcessCollectorConfig(), logger)

    metrics = await collector.collect()

    assert metrics == {
        "process_count": 5,
        "process_running_count": 1,
        "process_sleeping_count": 2,
        "process_zombie_count": 1,
    }


@pytest.mark.asyncio
async def test_collect_processes_top_n(logger, mock_psutil):
    collector = ProcessCollector(ProcessCollectorConfig(top_n=2), logger)

    records = await collector.collect_processes()

    assert [r.pid for r in records] == [2, 4]


@pytest.mark.asyncio
async def test_collect_all_ignores_top_n(logger, mock_psutil):
    collector = ProcessCollector(ProcessCollectorConfig(top_n=2, collect_all=True), logger)

    records = await collector.collect_processes()

    assert len(records) == 5


@pytest.mark.asyncio
async def test_record_fields(logger, mock_psutil):
    collector = ProcessCollector(ProcessCollectorConfig(), logger)

    record = (await collector.collect_processes())[0]

    assert record.pid == 1
    assert record.command == "/usr/bin/proc1 --flag"
    assert record.path == "/usr/bin/proc1"
    assert record.user == "root"
    assert record.state == "running"
    assert record.mem_rss == 4096
    assert record.mem_vms == 8192
    assert record.started == datetime.fromtimestamp(1_700_000_000.0, tz=timezone.utc)

    payload = record.to_payload()
    assert payload["exe_path"] == "/usr/bin/proc1"
    assert payload["username"] == "root"
    assert payload["status"] == "running"
    assert payload["started_at"].endswith("Z")


@pytest.mark.asyncio
async def test_inaccessible_attributes_get_defaults(logger, mock_psutil, processes):
    processes[:] = [proc(9, status=None, name=None, cmdline=None, exe=None,
                         username=None, memory_info=None, create_time=None,
                         cpu_percent=None, memory_percent=None)]
    collector = ProcessCollector(ProcessCollectorConfig(), logger)

    record = (await collector.collect_processes())[0]

    assert record.name == "unknown"
    assert record.command == ""
    assert record.state == "unknown"
    assert record.mem_rss == 0
    assert record.started is None
    assert record.to_payload()["started_at"] is None
