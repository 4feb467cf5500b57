"""Memory usage collector."""

import psutil

from ..utils.metrics import CollectorMetrics
from .base import BaseCollector, collection_errors


class MemoryCollector(BaseCollector):
    """Collector for physical memory usage."""

    name = "memory"

    @collection_errors
    async def collect(self) -> CollectorMetrics:
        mem = await self._run_blocking(psutil.virtual_memory)

        usage_percent = (mem.used / mem.total) * 100 if mem.total else 0.0

        return {
            "memory_usage_percent": round(usage_percent, 2),
            "memory_used_bytes": mem.used,
            "memory_total_bytes": mem.total,
            "memory_available_bytes": mem.available,
            "memory_free_bytes": mem.free,
        }
