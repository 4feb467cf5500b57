"""Process summary and inventory collector."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psutil

from ..config.models import ProcessCollectorConfig
from ..utils.metrics import CollectorMetrics, ProcessRecord
from .base import BaseCollector, collection_errors

PROCESS_ATTRS = [
    "pid", "ppid", "name", "cmdline", "exe", "username", "status",
    "cpu_percent", "memory_percent", "memory_info", "nice",
    "create_time", "num_threads",
]


def normalize_state(state: Optional[str]) -> str:
    """Map a platform process status onto the inventory state vocabulary."""
    state_lower = (state or "").lower()

    if "run" in state_lower:
        return "running"
    if "disk" in state_lower or state_lower in ("d", "uninterruptible"):
        return "disk-sleep"
    if "sleep" in state_lower or state_lower in ("s", "interruptible"):
        return "sleeping"
    if "stop" in state_lower or state_lower == "t":
        return "stopped"
    if "zombie" in state_lower or state_lower == "z":
        return "zombie"
    if "idle" in state_lower or state_lower == "i":
        return "idle"

    return "unknown"


class ProcessCollector(BaseCollector):
    """
    Collector for process counts, plus the detailed process inventory.

    ``collect`` contributes summary counts to the snapshot.
    ``collect_processes`` returns the top N processes by combined CPU and
    memory share (or every process with ``collect_all``) for the
    inventory upload.
    """

    name = "process"

    def __init__(self, config: Optional[ProcessCollectorConfig] = None, logger: logging.Logger = None):
        super().__init__(config or ProcessCollectorConfig(), logger)

    @collection_errors
    async def collect(self) -> CollectorMetrics:
        processes = await self._run_blocking(self._read_processes)
        states = [normalize_state(p.get("status")) for p in processes]

        return {
            "process_count": len(processes),
            "process_running_count": states.count("running"),
            "process_sleeping_count": states.count("sleeping"),
            "process_zombie_count": states.count("zombie"),
        }

    @collection_errors
    async def collect_processes(self) -> List[ProcessRecord]:
        """
        Collect detailed process records.

        Returns:
            List[ProcessRecord]: Top processes, highest CPU + memory first
        """
        processes = await self._run_blocking(self._read_processes)

        if not self.config.collect_all and len(processes) > self.config.top_n:
            processes = sorted(
                processes,
                key=lambda p: (p.get("cpu_percent") or 0) + (p.get("memory_percent") or 0),
                reverse=True,
            )[:self.config.top_n]

        return [self._to_record(p) for p in processes]

    @staticmethod
    def _read_processes() -> List[Dict[str, Any]]:
        """Snapshot process attributes; vanished or protected processes yield None values."""
        return [proc.info for proc in psutil.process_iter(attrs=PROCESS_ATTRS, ad_value=None)]

    @staticmethod
    def _to_record(info: Dict[str, Any]) -> ProcessRecord:
        memory_info = info.get("memory_info")
        create_time = info.get("create_time")
        cmdline = info.get("cmdline") or []

        return ProcessRecord(
            pid=info["pid"],
            ppid=info.get("ppid") or 0,
            name=info.get("name") or "unknown",
            command=" ".join(cmdline),
            path=info.get("exe") or "",
            user=info.get("username") or "",
            state=normalize_state(info.get("status")),
            cpu_percent=round(info.get("cpu_percent") or 0.0, 2),
            mem_percent=round(info.get("memory_percent") or 0.0, 2),
            mem_rss=memory_info.rss if memory_info else 0,
            mem_vms=memory_info.vms if memory_info else 0,
            nice=info.get("nice") or 0,
            started=datetime.fromtimestamp(create_time, tz=timezone.utc) if create_time else None,
            num_threads=info.get("num_threads") or 1,
        )
