"""Shared pytest configuration and fixtures."""

import pytest
from typing import Dict, List, Optional

from host_agent.collectors.base import BaseCollector, CollectionError
from host_agent.config.models import AgentConfig
from host_agent.utils.logger import setup_logger


class StaticCollector(BaseCollector):
    """Collector returning fixed fields, or failing on demand."""

    def __init__(self, name: str, fields: Optional[Dict] = None, fail: bool = False,
                 enabled: bool = True, sequence: Optional[List[Dict]] = None):
        super().__init__(None)
        self.name = name
        self.fields = fields or {}
        self.fail = fail
        self.enabled = enabled
        self.sequence = list(sequence or [])
        self.calls = 0

    def is_enabled(self) -> bool:
        return self.enabled

    async def collect(self):
        self.calls += 1
        if self.fail:
            raise CollectionError(self.name, "simulated failure")
        if self.sequence:
            return self.sequence.pop(0)
        return dict(self.fields)


@pytest.fixture
def logger():
    """Create logger for tests."""
    return setup_logger("test")


@pytest.fixture
def config():
    """Minimal valid configuration with docker inventory disabled."""
    return AgentConfig(
        api_url="https://collector.test",
        agent_key="agent-key-123",
        tenant_id="tenant-1",
        batch_size=10,
        retry_attempts=3,
        retry_delay=5000,
        collectors={"docker": {"enabled": False}},
    )


@pytest.fixture
def host_info():
    """Registration data provider that never touches the OS."""
    def provider(hostname=None):
        return {
            "hostname": hostname or "test-host",
            "ip_address": "10.0.0.5",
            "os": "Linux 6.1.0",
            "os_version": "#1 SMP",
            "metadata": {"platform": "linux", "arch": "x86_64", "cpus": 4, "total_memory": 8589934592},
        }
    return provider
