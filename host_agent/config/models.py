"""Pydantic configuration models for the host agent."""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

# Placeholder written by installers before the host has been registered
UNASSIGNED_RESOURCE_ID = "auto-generate-on-first-run"
AUTO_DETECT_HOSTNAME = "auto-detect"


class CollectorConfig(BaseModel):
    """Per-collector toggle."""
    enabled: bool = True


class DiskCollectorConfig(CollectorConfig):
    """Disk collector configuration."""
    mount_points: Optional[List[str]] = None  # None = all real filesystems


class NetworkCollectorConfig(CollectorConfig):
    """Network collector configuration."""
    interfaces: Optional[List[str]] = None  # None = all interfaces


class ProcessCollectorConfig(CollectorConfig):
    """Process collector configuration."""
    top_n: int = Field(default=50, ge=1)
    collect_all: bool = False


class CollectorsConfig(BaseModel):
    """All collector sections."""
    cpu: CollectorConfig = Field(default_factory=CollectorConfig)
    memory: CollectorConfig = Field(default_factory=CollectorConfig)
    disk: DiskCollectorConfig = Field(default_factory=DiskCollectorConfig)
    network: NetworkCollectorConfig = Field(default_factory=NetworkCollectorConfig)
    load: CollectorConfig = Field(default_factory=CollectorConfig)
    process: ProcessCollectorConfig = Field(default_factory=ProcessCollectorConfig)
    docker: CollectorConfig = Field(default_factory=CollectorConfig)


class AgentConfig(BaseModel):
    """Root configuration model for the host agent."""
    api_url: str
    agent_key: str
    tenant_id: str
    resource_id: Optional[str] = None
    hostname: Optional[str] = None
    collection_interval: float = Field(default=60, ge=1)  # seconds
    batch_size: int = Field(default=10, ge=1)
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=5000, ge=0)  # milliseconds
    max_buffer_size: Optional[int] = Field(default=None, ge=1)
    inventory_interval: float = Field(default=300, ge=1)  # seconds
    request_timeout: float = Field(default=30, gt=0)  # seconds
    log_level: str = "INFO"
    collectors: CollectorsConfig = Field(default_factory=CollectorsConfig)

    @field_validator('api_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('api_url must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('agent_key', 'tenant_id')
    @classmethod
    def not_blank(cls, v: str, info) -> str:
        """Credentials must be present after env substitution."""
        if not v.strip():
            raise ValueError(f'{info.field_name} is required')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'Unknown log level: {v}')
        return level

    def assigned_resource_id(self) -> Optional[str]:
        """Return the configured resource id, or None if it still needs registration."""
        if self.resource_id and self.resource_id != UNASSIGNED_RESOURCE_ID:
            return self.resource_id
        return None

    def configured_hostname(self) -> Optional[str]:
        """Return the hostname override, or None when it should be detected."""
        if self.hostname and self.hostname != AUTO_DETECT_HOSTNAME:
            return self.hostname
        return None
