"""System load average collector."""

import psutil

from ..utils.metrics import CollectorMetrics
from .base import BaseCollector, collection_errors


class LoadCollector(BaseCollector):
    """Collector for 1/5/15 minute load averages."""

    name = "load"

    @collection_errors
    async def collect(self) -> CollectorMetrics:
        # psutil emulates load averages on Windows
        load_1m, load_5m, load_15m = await self._run_blocking(psutil.getloadavg)

        return {
            "load_avg_1m": round(load_1m, 2),
            "load_avg_5m": round(load_5m, 2),
            "load_avg_15m": round(load_15m, 2),
        }
