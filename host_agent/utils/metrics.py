"""Metric data structures shared by collectors and the delivery client."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

MetricValue = Union[int, float, str, bool, None]
CollectorMetrics = Dict[str, MetricValue]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    """Serialize a datetime as ISO 8601 text with millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Snapshot:
    """One timestamped set of metric fields produced by a collection cycle."""

    fields: CollectorMetrics = field(default_factory=dict)
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = utc_now()

    def to_payload(self) -> Dict[str, Any]:
        """Flat JSON object: timestamp plus every present field."""
        payload: Dict[str, Any] = dict(self.fields)
        payload["timestamp"] = isoformat(self.timestamp)
        return payload


@dataclass
class ContainerRecord:
    """Container inventory entry."""

    id: str
    name: str
    image: str
    status: str  # online | offline | degraded
    state: str
    ports: List[str] = field(default_factory=list)
    created: str = ""
    restart_count: int = 0
    compose_project: Optional[str] = None
    compose_service: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "container_id": self.id,
            "name": self.name,
            "image": self.image,
            "status": self.status,
            "state": self.state,
            "ports": self.ports,
            "restart_count": self.restart_count,
            "compose_project": self.compose_project,
            "compose_service": self.compose_service,
            "labels": self.labels,
        }


@dataclass
class ProcessRecord:
    """Process inventory entry."""

    pid: int
    ppid: int
    name: str
    command: str
    path: str
    user: str
    state: str  # running | sleeping | stopped | zombie | idle | disk-sleep | unknown
    cpu_percent: float
    mem_percent: float
    mem_rss: int
    mem_vms: int
    nice: int
    started: Optional[datetime]
    num_threads: int

    def to_payload(self) -> Dict[str, Any]:
        return {
            "pid": self.pid,
            "ppid": self.ppid,
            "name": self.name,
            "command": self.command,
            "exe_path": self.path,
            "username": self.user,
            "status": self.state,
            "cpu_percent": self.cpu_percent,
            "memory_percent": self.mem_percent,
            "memory_rss": self.mem_rss,
            "memory_vms": self.mem_vms,
            "nice": self.nice,
            "started_at": isoformat(self.started) if self.started else None,
            "num_threads": self.num_threads,
        }
