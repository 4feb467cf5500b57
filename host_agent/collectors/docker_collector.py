"""Docker container inventory collector."""

import asyncio
import json
import logging
import os
import time
from typing import Dict, List, Optional

from ..config.models import CollectorConfig
from ..utils.metrics import ContainerRecord

DOCKER_SOCKETS = ("/var/run/docker.sock", "/rootfs/var/run/docker.sock")


class DockerCommandError(Exception):
    """docker CLI exited non-zero or timed out."""
    pass


class DockerCollector:
    """
    Collector for the local Docker container inventory.

    Not a snapshot collector: the orchestrator calls
    ``collect_containers`` on the inventory schedule and uploads the
    records as-is.
    """

    name = "docker"

    # Seconds an availability answer stays cached
    availability_ttl = 60.0

    def __init__(self, config: Optional[CollectorConfig] = None, logger: logging.Logger = None):
        """
        Initialize Docker collector.

        Args:
            config: Collector toggle section
            logger: Logger instance
        """
        self.config = config or CollectorConfig()
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self._available: Optional[bool] = None
        self._last_check = 0.0

    def is_enabled(self) -> bool:
        return self.config.enabled

    async def is_available(self) -> bool:
        """
        Check whether a Docker daemon is reachable.

        Returns:
            bool: True if a socket exists and ``docker info`` succeeds
        """
        now = time.monotonic()
        if self._available is not None and now - self._last_check < self.availability_ttl:
            return self._available

        available = False
        if any(os.path.exists(sock) for sock in DOCKER_SOCKETS):
            try:
                await self._docker("info", "--format", "{{.ID}}", timeout=5)
                available = True
            except (DockerCommandError, OSError) as e:
                self.logger.debug(f"Docker not available: {e}")

        self._available = available
        self._last_check = now
        return available

    async def collect_containers(self) -> List[ContainerRecord]:
        """
        Collect all containers, running or not.

        Returns:
            List[ContainerRecord]: Container inventory, empty if Docker is unavailable
        """
        if not await self.is_available():
            return []

        try:
            output = await self._docker("ps", "-a", "--format", "{{json .}}", timeout=30)
        except (DockerCommandError, OSError) as e:
            self.logger.error(f"Failed to list Docker containers: {e}")
            return []

        containers = []
        for container in self._parse_containers(output):
            details = await self._inspect(container.get("ID", ""))
            containers.append(self._to_record(container, details))

        return containers

    def _parse_containers(self, docker_output: str) -> List[dict]:
        """
        Parse docker ps JSON output.

        Args:
            docker_output: Output from docker ps -a --format "{{json .}}"

        Returns:
            List[dict]: Parsed container data

        Example output (one JSON per line):
            {"ID":"abc123","Image":"nginx:latest","Names":"web","Ports":"0.0.0.0:80->80/tcp","State":"running","Status":"Up 2 days","CreatedAt":"2024-01-15 10:30:45 +0000 UTC"}
        """
        containers = []

        for line in docker_output.strip().split('\n'):
            line = line.strip()
            if not line:
                continue

            try:
                containers.append(json.loads(line))
            except json.JSONDecodeError as e:
                self.logger.warning(f"Failed to parse container JSON: {line[:100]} - {e}")

        return containers

    async def _inspect(self, container_id: str) -> Dict:
        """Fetch ``docker inspect`` data; empty dict when it fails."""
        if not container_id:
            return {}
        try:
            output = await self._docker("inspect", "--format", "{{json .}}", container_id, timeout=5)
            return json.loads(output.strip())
        except (DockerCommandError, OSError, json.JSONDecodeError) as e:
            self.logger.debug(f"docker inspect failed for {container_id}: {e}")
            return {}

    @staticmethod
    def _to_record(container: dict, details: dict) -> ContainerRecord:
        state = container.get("State", "") or ""
        state_lower = state.lower()

        if state_lower == "running":
            status = "online"
        elif state_lower in ("restarting", "paused"):
            status = "degraded"
        else:
            status = "offline"

        ports_str = container.get("Ports", "") or ""
        ports = [p.strip() for p in ports_str.split(",") if p.strip()]

        labels = (details.get("Config") or {}).get("Labels") or {}

        return ContainerRecord(
            id=container.get("ID", ""),
            name=container.get("Names", ""),
            image=container.get("Image", ""),
            status=status,
            state=state,
            ports=ports,
            created=container.get("CreatedAt", ""),
            restart_count=details.get("RestartCount", 0) or 0,
            compose_project=labels.get("com.docker.compose.project"),
            compose_service=labels.get("com.docker.compose.service"),
            labels=labels,
        )

    async def _docker(self, *args: str, timeout: float) -> str:
        """Run a docker CLI command and return stdout."""
        proc = await asyncio.create_subprocess_exec(
            "docker", *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise DockerCommandError(f"docker {args[0]} timed out after {timeout}s")

        if proc.returncode != 0:
            raise DockerCommandError(
                f"docker {args[0]} exited {proc.returncode}: {stderr.decode(errors='replace').strip()}"
            )

        return stdout.decode(errors="replace")
