"""CPU utilisation collector."""

import psutil

from ..utils.metrics import CollectorMetrics
from .base import BaseCollector, collection_errors


class CPUCollector(BaseCollector):
    """Collector for CPU usage percentages."""

    name = "cpu"

    # Seconds psutil blocks to measure utilisation
    sample_interval = 1.0

    @collection_errors
    async def collect(self) -> CollectorMetrics:
        times = await self._run_blocking(psutil.cpu_times_percent, interval=self.sample_interval)

        return {
            "cpu_usage_percent": round(100.0 - times.idle, 2),
            "cpu_user_percent": round(times.user, 2),
            "cpu_system_percent": round(times.system, 2),
            "cpu_idle_percent": round(times.idle, 2),
        }
