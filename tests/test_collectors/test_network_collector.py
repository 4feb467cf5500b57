"""Tests for network collector."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from host_agent.collectors.delta import DeltaRateState
from host_agent.collectors.network_collector import NetworkCollector
from host_agent.config.models import NetworkCollectorConfig


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def nic(rx, tx, prx=0, ptx=0, errin=0, errout=0):
    return SimpleNamespace(
        bytes_recv=rx, bytes_sent=tx,
        packets_recv=prx, packets_sent=ptx,
        errin=errin, errout=errout,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def collector(clock, logger):
    return NetworkCollector(NetworkCollectorConfig(), logger, rates=DeltaRateState(clock=clock))


@pytest.fixture
def mock_psutil():
    with patch("host_agent.collectors.network_collector.psutil") as mock:
        mock.net_io_counters.return_value = {
            "lo": nic(500, 500, 5, 5),
            "eth0": nic(1000, 2000, 10, 20, errin=1, errout=2),
        }
        yield mock


@pytest.mark.asyncio
async def test_totals_summed_across_interfaces(collector, mock_psutil):
    metrics = await collector.collect()

    assert metrics["network_rx_bytes"] == 1500
    assert metrics["network_tx_bytes"] == 2500
    assert metrics["network_rx_packets"] == 15
    assert metrics["network_tx_packets"] == 25
    assert metrics["network_rx_errors"] == 1
    assert metrics["network_tx_errors"] == 2


@pytest.mark.asyncio
async def test_baseline_rates_are_zero(collector, mock_psutil):
    metrics = await collector.collect()

    assert metrics["network_rx_rate_bytes"] == 0
    assert metrics["network_tx_rate_bytes"] == 0


@pytest.mark.asyncio
async def test_rates_from_aggregate_totals(collector, mock_psutil, clock):
    await collector.collect()

    clock.now += 4000
    mock_psutil.net_io_counters.return_value = {
        "lo": nic(900, 900),
        "eth0": nic(4600, 6100),
    }
    metrics = await collector.collect()

    # rx: (5500 - 1500) / 4, tx: (7000 - 2500) / 4
    assert metrics["network_rx_rate_bytes"] == 1000
    assert metrics["network_tx_rate_bytes"] == 1125


@pytest.mark.asyncio
async def test_interface_disappearing_never_negative(collector, mock_psutil, clock):
    await collector.collect()

    clock.now += 1000
    mock_psutil.net_io_counters.return_value = {"lo": nic(600, 600)}
    metrics = await collector.collect()

    assert metrics["network_rx_rate_bytes"] == 0
    assert metrics["network_tx_rate_bytes"] == 0
    assert metrics["network_rx_bytes"] == 600


@pytest.mark.asyncio
async def test_interfaces_filter(logger, mock_psutil):
    collector = NetworkCollector(NetworkCollectorConfig(interfaces=["eth0"]), logger)

    metrics = await collector.collect()

    assert metrics["network_rx_bytes"] == 1000
    assert metrics["network_tx_bytes"] == 2000


@pytest.mark.asyncio
async def test_same_instant_sample_has_no_rates(collector, mock_psutil):
    await collector.collect()
    metrics = await collector.collect()

    assert "network_rx_rate_bytes" not in metrics
    assert metrics["network_rx_bytes"] == 1500
