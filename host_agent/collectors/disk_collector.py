"""Disk usage and disk I/O rate collector."""

import os
import logging
from typing import Dict, List, Optional

import psutil

from ..config.models import DiskCollectorConfig
from ..utils.metrics import CollectorMetrics
from .base import BaseCollector, collection_errors
from .delta import DeltaRateState

# Filesystems smaller than this are treated as special/virtual
MIN_REAL_FS_BYTES = 100 * 1024 * 1024
VIRTUAL_FS_MARKERS = ("tmpfs", "devtmpfs")

# Host root filesystem as mounted into the agent container
HOST_ROOTFS = "/rootfs"


def running_in_docker() -> bool:
    """Detect whether the agent runs inside a container."""
    return os.path.exists("/.dockerenv") or os.getenv("HOST_AGENT_DOCKER_MODE", "").lower() == "true"


class DiskCollector(BaseCollector):
    """
    Collector for filesystem usage and disk throughput.

    Usage is aggregated over real filesystems (larger than 100 MB and not
    tmpfs/devtmpfs), falling back to every partition if none qualify.
    Throughput is a delta rate over the host-wide I/O counters, which
    psutil already sums across physical disks.
    """

    name = "disk"

    def __init__(
        self,
        config: Optional[DiskCollectorConfig] = None,
        logger: logging.Logger = None,
        rates: Optional[DeltaRateState] = None,
    ):
        super().__init__(config, logger)
        self.rates = rates or DeltaRateState()
        self.is_docker = running_in_docker()

    @collection_errors
    async def collect(self) -> CollectorMetrics:
        metrics: CollectorMetrics = {}

        filesystems = await self._run_blocking(self._read_filesystems)
        metrics.update(self._usage_fields(filesystems))

        io = await self._run_blocking(psutil.disk_io_counters)
        if io is None:
            self.logger.debug("No disk I/O counters available")
            return metrics

        counters = {
            "disk_read_bytes": io.read_bytes,
            "disk_write_bytes": io.write_bytes,
            "disk_io_read_ops": io.read_count,
            "disk_io_write_ops": io.write_count,
        }

        was_warm = self.rates.warm
        rates = self.rates.update(counters)

        if rates is not None:
            metrics.update(rates)
        elif not was_warm:
            # Baseline sample: no previous counters to diff against
            metrics.update({key: 0 for key in counters})

        return metrics

    def _read_filesystems(self) -> List[Dict[str, object]]:
        """List mounted filesystems with size and used bytes."""
        if self.is_docker and os.path.exists(HOST_ROOTFS):
            try:
                usage = psutil.disk_usage(HOST_ROOTFS)
                return [{"device": "/dev/root", "fstype": "unknown", "mount": "/",
                         "size": usage.total, "used": usage.used}]
            except OSError as e:
                self.logger.warning(f"Failed to read {HOST_ROOTFS} filesystem: {e}")

        mount_points = getattr(self.config, "mount_points", None)
        filesystems = []

        for part in psutil.disk_partitions(all=False):
            if mount_points and part.mountpoint not in mount_points:
                continue
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except (PermissionError, OSError) as e:
                self.logger.debug(f"Skipping {part.mountpoint}: {e}")
                continue

            filesystems.append({
                "device": part.device,
                "fstype": part.fstype,
                "mount": part.mountpoint,
                "size": usage.total,
                "used": usage.used,
            })

        return filesystems

    @staticmethod
    def _usage_fields(filesystems: List[Dict[str, object]]) -> CollectorMetrics:
        """Aggregate used/total bytes across filesystems."""
        def is_real(fs) -> bool:
            name = f"{fs['device']} {fs['fstype']}"
            return fs["size"] > MIN_REAL_FS_BYTES and not any(m in name for m in VIRTUAL_FS_MARKERS)

        selected = [fs for fs in filesystems if is_real(fs)] or filesystems

        total_size = sum(fs["size"] for fs in selected)
        total_used = sum(fs["used"] for fs in selected)

        if total_size <= 0:
            return {}

        return {
            "disk_usage_percent": round(total_used / total_size * 100, 2),
            "disk_used_bytes": total_used,
            "disk_total_bytes": total_size,
        }
