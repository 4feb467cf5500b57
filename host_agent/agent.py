"""Host agent orchestrator: registration, periodic collection and delivery."""

import asyncio
import logging
import socket
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config.models import AgentConfig
from .collectors.base import BaseCollector
from .collectors.cpu_collector import CPUCollector
from .collectors.disk_collector import DiskCollector
from .collectors.docker_collector import DockerCollector
from .collectors.host_info import collect_host_info
from .collectors.load_collector import LoadCollector
from .collectors.memory_collector import MemoryCollector
from .collectors.network_collector import NetworkCollector
from .collectors.process_collector import ProcessCollector
from .services.api_client import APIClient
from .services.metric_buffer import MetricBuffer
from .utils.logger import setup_logger
from .utils.metrics import CollectorMetrics, Snapshot
from .utils.status import AgentState


class HostAgent:
    """
    Orchestrates the host telemetry pipeline.

    Registers the host once, then runs three independent schedules on the
    event loop: metric collection (every ``collection_interval`` seconds,
    first run immediately), heartbeat (fixed 30 s) and container/process
    inventory (every ``inventory_interval`` seconds). Collected snapshots
    are buffered and flushed in batches of ``batch_size``. A flush runs as
    its own task so collection keeps its period while delivery retries;
    only one flush runs at a time, and a failed flush puts the batch back
    at the front of the buffer.
    """

    HEARTBEAT_INTERVAL = 30  # seconds

    def __init__(
        self,
        config: AgentConfig,
        logger: logging.Logger = None,
        api_client: Optional[APIClient] = None,
        collectors: Optional[List[BaseCollector]] = None,
        docker_collector: Optional[DockerCollector] = None,
        host_info_provider: Callable[[Optional[str]], Dict[str, Any]] = collect_host_info,
        scheduler_factory: Callable[[], AsyncIOScheduler] = AsyncIOScheduler,
    ):
        """
        Initialize host agent.

        Args:
            config: Agent configuration
            logger: Optional logger instance
            api_client: Delivery client; built from config when omitted
            collectors: Snapshot collectors; built from config when omitted
            docker_collector: Container inventory collector
            host_info_provider: Returns registration data for a hostname override
            scheduler_factory: Creates the scheduler driving periodic cycles
        """
        self.config = config
        self.logger = logger or setup_logger("host_agent", config.log_level)
        self.api_client = api_client or APIClient(config, self.logger)
        self.buffer = MetricBuffer(config.max_buffer_size, self.logger)

        self.collectors = collectors if collectors is not None else self._build_collectors()
        self.docker_collector = docker_collector or DockerCollector(config.collectors.docker, self.logger)

        self.resource_id: Optional[str] = None
        self.hostname: Optional[str] = None
        self.state = AgentState.STOPPED

        # Called with the new resource id after a registration call
        self.on_registered: Optional[Callable[[str], None]] = None

        self._host_info_provider = host_info_provider
        self._scheduler_factory = scheduler_factory
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._jobs: Dict[str, Any] = {}
        self._inflight: Set[asyncio.Future] = set()
        self._flush_task: Optional[asyncio.Future] = None

        self.logger.info(
            f"Initialized {len(self.collectors)} collectors: "
            f"{', '.join(c.name for c in self.collectors)}"
        )

    def _build_collectors(self) -> List[BaseCollector]:
        """Fixed collector list; each collector honours its own enabled flag."""
        sections = self.config.collectors
        return [
            CPUCollector(sections.cpu, self.logger),
            MemoryCollector(sections.memory, self.logger),
            DiskCollector(sections.disk, self.logger),
            NetworkCollector(sections.network, self.logger),
            LoadCollector(sections.load, self.logger),
            ProcessCollector(sections.process, self.logger),
        ]

    @property
    def process_collector(self) -> Optional[ProcessCollector]:
        for collector in self.collectors:
            if isinstance(collector, ProcessCollector):
                return collector
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Register the host and start the periodic schedules.

        Raises:
            DeliveryError: If registration fails; the agent stays stopped
        """
        if self.state is not AgentState.STOPPED:
            self.logger.warning(f"Agent already {self.state.value}, ignoring start")
            return

        self.logger.info("Starting host agent...")
        await self._register_or_abort()

        self.state = AgentState.RUNNING
        self._start_schedules()
        self.logger.info("Agent started successfully")

    async def run_once(self) -> bool:
        """
        Register, run one collection cycle and flush.

        Returns:
            bool: True if nothing was left undelivered
        """
        await self._register_or_abort()
        self.state = AgentState.RUNNING

        await self.collect_metrics()
        await self.stop()

        return not self.buffer

    async def stop(self) -> None:
        """
        Stop the schedules, wait for running cycles and flushes, then flush once.

        A failed final flush leaves the batch in the buffer and is only
        logged; stop always returns.
        """
        if self.state in (AgentState.STOPPED, AgentState.STOPPING):
            return

        self.logger.info("Stopping agent...")
        self.state = AgentState.STOPPING

        for name, job in self._jobs.items():
            try:
                job.remove()
            except JobLookupError:
                self.logger.debug(f"Job '{name}' already removed")
        self._jobs.clear()

        if self._inflight:
            self.logger.info(f"Waiting for {len(self._inflight)} in-flight cycle(s)")
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

        await self.wait_for_flush()

        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None

        if self.buffer and self.resource_id:
            if not await self.flush_metrics():
                self.logger.error(
                    f"Final flush failed, {len(self.buffer)} snapshot(s) not delivered"
                )

        self.state = AgentState.STOPPED
        self.logger.info("Agent stopped")

    async def _register_or_abort(self) -> None:
        self.state = AgentState.REGISTERING
        try:
            await self.register_host()
        except Exception as e:
            self.state = AgentState.STOPPED
            self.logger.error(f"Failed to start agent: {e}")
            raise

    async def register_host(self) -> str:
        """
        Obtain the host's resource id.

        Reuses an id already held or pre-configured without any network
        call; otherwise registers once and keeps the returned id.

        Returns:
            str: Resource identifier
        """
        if self.resource_id:
            return self.resource_id

        configured = self.config.assigned_resource_id()
        if configured:
            self.resource_id = configured
            self.hostname = self.config.configured_hostname() or socket.gethostname()
            self.logger.info(f"Using existing resource ID: {self.resource_id}")
            return self.resource_id

        loop = asyncio.get_running_loop()
        host_data = await loop.run_in_executor(
            None, self._host_info_provider, self.config.configured_hostname()
        )
        self.hostname = host_data["hostname"]

        self.logger.info(f"Registering host: {self.hostname}")
        resource_id = await self.api_client.register_host(host_data)

        self.resource_id = resource_id
        self.config.resource_id = resource_id
        self.logger.info(f"Host registered with ID: {resource_id}")

        if self.on_registered is not None:
            self.on_registered(resource_id)

        return resource_id

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _start_schedules(self) -> None:
        """Create the scheduler and the three periodic jobs."""
        self._scheduler = self._scheduler_factory()
        now = datetime.now(timezone.utc)

        self._jobs["collection"] = self._scheduler.add_job(
            self._tracked(self.collect_metrics),
            trigger=IntervalTrigger(seconds=self.config.collection_interval),
            id="collection",
            name="Metric collection",
            max_instances=1,
            coalesce=True,
            next_run_time=now,
        )

        self._jobs["heartbeat"] = self._scheduler.add_job(
            self._tracked(self.send_heartbeat),
            trigger=IntervalTrigger(seconds=self.HEARTBEAT_INTERVAL),
            id="heartbeat",
            name="Heartbeat",
            max_instances=1,
            coalesce=True,
        )

        if self.docker_collector.is_enabled() or (
            self.process_collector is not None and self.process_collector.is_enabled()
        ):
            self._jobs["inventory"] = self._scheduler.add_job(
                self._tracked(self.send_inventory),
                trigger=IntervalTrigger(seconds=self.config.inventory_interval),
                id="inventory",
                name="Container and process inventory",
                max_instances=1,
                coalesce=True,
                next_run_time=now,
            )

        self._scheduler.start()
        self.logger.info(
            f"Scheduled {', '.join(self._jobs)} "
            f"(collection every {self.config.collection_interval}s, "
            f"heartbeat every {self.HEARTBEAT_INTERVAL}s)"
        )

    def _tracked(self, cycle: Callable[[], Awaitable[Any]]) -> Callable[[], Awaitable[None]]:
        """
        Wrap a cycle so the scheduler cannot cancel it once started.

        The cycle runs as its own task, recorded until done; the scheduler
        only awaits a shield around it. ``stop`` waits on the recorded tasks.
        """
        async def run() -> None:
            if not self.state.accepts_cycles():
                return
            task = asyncio.ensure_future(cycle())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            await asyncio.shield(task)

        run.__name__ = getattr(cycle, "__name__", "cycle")
        return run

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    async def collect_metrics(self) -> Optional[Snapshot]:
        """
        Run one collection cycle.

        Returns:
            Snapshot appended to the buffer, or None if skipped
        """
        if not self.resource_id:
            self.logger.warning("Cannot collect metrics: resource not registered")
            return None

        snapshot = Snapshot()
        enabled = [c for c in self.collectors if c.is_enabled()]

        results = await asyncio.gather(*(self._collect_from(c) for c in enabled))

        for fields in results:
            snapshot.fields.update(fields)

        self.logger.debug(
            f"Collected {len(snapshot.fields)} field(s) from {len(enabled)} collector(s)"
        )

        self.buffer.append(snapshot)

        if len(self.buffer) >= self.config.batch_size:
            self._request_flush()

        return snapshot

    async def _collect_from(self, collector: BaseCollector) -> CollectorMetrics:
        """Invoke one collector; any failure yields no fields."""
        try:
            return dict(await collector.collect())
        except Exception as e:
            self.logger.error(f"Failed to collect from {collector.name}: {e}")
            return {}

    def _request_flush(self) -> asyncio.Future:
        """
        Start a background flush unless one is already running.

        A running flush blocks a second flush, never collection. Snapshots
        appended meanwhile stay buffered behind any batch it restores, and
        the next full collection cycle requests another flush.
        """
        if self._flush_task is not None and not self._flush_task.done():
            self.logger.debug("Flush already in progress, keeping new snapshots buffered")
            return self._flush_task

        self._flush_task = asyncio.ensure_future(self.flush_metrics())
        return self._flush_task

    async def wait_for_flush(self) -> None:
        """Wait for the background flush, if any, to finish."""
        if self._flush_task is not None:
            await self._flush_task
            self._flush_task = None

    async def flush_metrics(self) -> bool:
        """
        Deliver everything currently buffered.

        Returns:
            bool: True if the batch was delivered (or there was nothing to send)
        """
        if not self.buffer or not self.resource_id:
            return True

        batch = self.buffer.take_all()

        try:
            await self.api_client.send_metrics(self.resource_id, batch)
        except Exception as e:
            self.buffer.restore(batch)
            self.logger.error(
                f"Metrics delivery failed, requeued {len(batch)} snapshot(s): {e}"
            )
            return False

        self.logger.debug(f"Sent {len(batch)} metrics")
        return True

    async def send_heartbeat(self) -> None:
        """Send one liveness signal; failures are logged and dropped."""
        if not self.resource_id:
            return

        try:
            await self.api_client.send_heartbeat(self.resource_id)
            self.logger.debug("Heartbeat sent")
        except Exception as e:
            self.logger.error(f"Heartbeat failed: {e}")

    async def send_inventory(self) -> None:
        """Upload container and process inventories concurrently."""
        if not self.resource_id:
            return

        await asyncio.gather(self._send_containers(), self._send_processes())

    async def _send_containers(self) -> None:
        if not self.docker_collector.is_enabled():
            return

        try:
            if not await self.docker_collector.is_available():
                self.logger.debug("Docker not available, skipping container inventory")
                return
            containers = await self.docker_collector.collect_containers()
            await self.api_client.send_containers(
                self.resource_id, self.hostname or socket.gethostname(), containers
            )
            self.logger.debug(f"Sent {len(containers)} containers")
        except Exception as e:
            self.logger.error(f"Container inventory failed: {e}")

    async def _send_processes(self) -> None:
        collector = self.process_collector
        if collector is None or not collector.is_enabled():
            return

        try:
            processes = await collector.collect_processes()
            await self.api_client.send_processes(self.resource_id, processes)
            self.logger.debug(f"Sent {len(processes)} processes")
        except Exception as e:
            self.logger.error(f"Process inventory failed: {e}")
