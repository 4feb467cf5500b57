"""Network traffic collector."""

import logging
from typing import Optional

import psutil

from ..config.models import NetworkCollectorConfig
from ..utils.metrics import CollectorMetrics
from .base import BaseCollector, collection_errors
from .delta import DeltaRateState


class NetworkCollector(BaseCollector):
    """
    Collector for network totals and receive/transmit rates.

    Byte counters are summed over the selected interfaces and a single
    aggregate rate is computed from the totals. A total that shrinks
    (an interface went away, a counter reset) gives a rate of zero.
    """

    name = "network"

    def __init__(
        self,
        config: Optional[NetworkCollectorConfig] = None,
        logger: logging.Logger = None,
        rates: Optional[DeltaRateState] = None,
    ):
        super().__init__(config, logger)
        self.rates = rates or DeltaRateState()

    @collection_errors
    async def collect(self) -> CollectorMetrics:
        per_nic = await self._run_blocking(psutil.net_io_counters, pernic=True)

        wanted = getattr(self.config, "interfaces", None)
        nics = [
            counters for name, counters in per_nic.items()
            if not wanted or name in wanted
        ]

        total_rx = sum(n.bytes_recv for n in nics)
        total_tx = sum(n.bytes_sent for n in nics)

        metrics: CollectorMetrics = {
            "network_rx_bytes": total_rx,
            "network_tx_bytes": total_tx,
            "network_rx_packets": sum(n.packets_recv for n in nics),
            "network_tx_packets": sum(n.packets_sent for n in nics),
            "network_rx_errors": sum(n.errin for n in nics),
            "network_tx_errors": sum(n.errout for n in nics),
        }

        was_warm = self.rates.warm
        rates = self.rates.update({
            "network_rx_rate_bytes": total_rx,
            "network_tx_rate_bytes": total_tx,
        })

        if rates is not None:
            metrics.update(rates)
        elif not was_warm:
            metrics["network_rx_rate_bytes"] = 0
            metrics["network_tx_rate_bytes"] = 0

        return metrics
