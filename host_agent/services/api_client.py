"""HTTP delivery client for the remote collection service."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..config.models import AgentConfig
from ..utils.metrics import ContainerRecord, ProcessRecord, Snapshot, isoformat, utc_now
from .retry_handler import RetryHandler


class DeliveryError(Exception):
    """Base exception for delivery failures."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail
        self.context: Optional[str] = None

    def with_context(self, context: str) -> "DeliveryError":
        """Attach the failing operation's description and return self."""
        self.context = context
        return self

    def __str__(self) -> str:
        if self.context:
            return f"{self.context}: {self.detail}"
        return self.detail


class RemoteRejectedError(DeliveryError):
    """The service answered with a non-success status."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"{status_code} - {body}")
        self.status_code = status_code
        self.body = body


class NoResponseError(DeliveryError):
    """Request was sent but no response arrived (timeout, refused, DNS)."""

    def __init__(self, reason: str = ""):
        detail = "No response received from server"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(detail)
        self.reason = reason


class RequestBuildError(DeliveryError):
    """Request could not be constructed locally."""
    pass


class APIClient:
    """
    Async client for the infrastructure collection API.

    Every operation is a JSON POST carrying the agent key and tenant id
    headers, wrapped in the shared retry/backoff policy. After the retry
    budget is spent the last error is re-raised with the operation name
    attached (e.g. "Failed to send metrics: 503 - ...").
    """

    HOSTS_PATH = "/api/infrastructure/hosts"
    METRICS_PATH = "/api/infrastructure/metrics"
    HEARTBEAT_PATH = "/api/infrastructure/heartbeat"
    CONTAINERS_PATH = "/api/infrastructure/containers"
    PROCESSES_PATH = "/api/infrastructure/processes"

    def __init__(
        self,
        config: AgentConfig,
        logger: logging.Logger = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize API client.

        Args:
            config: Agent configuration (URL, credentials, retry policy)
            logger: Optional logger instance
            transport: Optional httpx transport, used by tests
            sleep: Awaitable used for backoff waits
        """
        self.config = config
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.request_timeout,
            headers={
                "Content-Type": "application/json",
                "X-DevSkin-Agent-Key": config.agent_key,
                "X-Tenant-ID": config.tenant_id,
            },
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def register_host(self, host_data: Dict[str, Any]) -> str:
        """
        Register this host and return its resource id.

        Args:
            host_data: hostname, ip_address, os, os_version, metadata

        Returns:
            str: Resource identifier assigned by the service

        Raises:
            DeliveryError: On registration failure
        """
        context = "Failed to register host"
        response_data = await self._deliver(
            context,
            self.HOSTS_PATH,
            {**host_data, "tenant_id": self.config.tenant_id},
        )

        try:
            return str(response_data["data"]["id"])
        except (KeyError, TypeError):
            raise DeliveryError(
                f"Unexpected registration response: {response_data!r}"
            ).with_context(context)

    async def send_metrics(self, resource_id: str, metrics: List[Snapshot]) -> None:
        """Deliver a batch of snapshots."""
        await self._deliver(
            "Failed to send metrics",
            self.METRICS_PATH,
            {
                "tenant_id": self.config.tenant_id,
                "resource_id": resource_id,
                "metrics": [snapshot.to_payload() for snapshot in metrics],
            },
        )

    async def send_heartbeat(self, resource_id: str) -> None:
        """Send a liveness signal."""
        await self._deliver(
            "Failed to send heartbeat",
            self.HEARTBEAT_PATH,
            {
                "resource_id": resource_id,
                "tenant_id": self.config.tenant_id,
                "timestamp": isoformat(utc_now()),
            },
        )

    async def send_containers(
        self,
        host_id: str,
        hostname: str,
        containers: List[ContainerRecord],
    ) -> None:
        """Deliver the container inventory."""
        await self._deliver(
            "Failed to send containers",
            self.CONTAINERS_PATH,
            {
                "host_id": host_id,
                "hostname": hostname,
                "tenant_id": self.config.tenant_id,
                "containers": [c.to_payload() for c in containers],
            },
        )

    async def send_processes(self, host_id: str, processes: List[ProcessRecord]) -> None:
        """Deliver the process inventory."""
        await self._deliver(
            "Failed to send processes",
            self.PROCESSES_PATH,
            {
                "host_id": host_id,
                "tenant_id": self.config.tenant_id,
                "collected_at": isoformat(utc_now()),
                "processes": [p.to_payload() for p in processes],
            },
        )

    async def _deliver(self, context: str, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST with retry; on final failure attach the operation context."""
        try:
            return await RetryHandler.with_retry(
                lambda: self._post(path, body),
                max_attempts=self.config.retry_attempts,
                base_delay_ms=self.config.retry_delay,
                exceptions=(DeliveryError,),
                logger=self.logger,
                sleep=self._sleep,
            )
        except DeliveryError as e:
            raise e.with_context(context)

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute one POST and classify its failure.

        Returns:
            dict: Decoded JSON response, empty if there is none

        Raises:
            RemoteRejectedError: Non-2xx response
            NoResponseError: Timeout or connection-level failure
            RequestBuildError: Request could not be built
        """
        try:
            response = await self._client.post(path, json=body)

        except (httpx.InvalidURL, httpx.UnsupportedProtocol, TypeError, ValueError) as e:
            raise RequestBuildError(f"Invalid request: {e}") from e

        except httpx.TimeoutException as e:
            raise NoResponseError("timeout") from e

        except httpx.RequestError as e:
            raise NoResponseError(type(e).__name__) from e

        if not response.is_success:
            raise RemoteRejectedError(response.status_code, response.text)

        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError:
            self.logger.debug(f"Non-JSON response body from {path}")
            return {}
