"""Tests for BaseCollector and collector error scoping."""

import logging

import pytest

from host_agent.collectors.base import BaseCollector, CollectionError, collection_errors
from host_agent.config.models import CollectorConfig


class MockCollector(BaseCollector):
    """Mock collector for testing BaseCollector functionality."""

    name = "mock"

    def __init__(self, config=None, logger=None, error=None):
        super().__init__(config, logger)
        self.error = error

    @collection_errors
    async def collect(self):
        if self.error is not None:
            raise self.error
        return {"mock_value": 1}


class TestBaseCollector:
    """Test suite for BaseCollector."""

    @pytest.mark.asyncio
    async def test_collect_returns_fields(self):
        collector = MockCollector()
        assert await collector.collect() == {"mock_value": 1}

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_collection_error(self):
        """Any exception surfaces as CollectionError carrying the collector name."""
        collector = MockCollector(error=RuntimeError("boom"))

        with pytest.raises(CollectionError) as exc_info:
            await collector.collect()

        assert exc_info.value.collector_name == "mock"
        assert "boom" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_collection_error_passes_through(self):
        original = CollectionError("other", "already scoped")
        collector = MockCollector(error=original)

        with pytest.raises(CollectionError) as exc_info:
            await collector.collect()

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_error_without_message_uses_type_name(self):
        collector = MockCollector(error=KeyError())

        with pytest.raises(CollectionError) as exc_info:
            await collector.collect()

        assert "KeyError" in exc_info.value.message

    def test_enabled_without_config(self):
        assert MockCollector().is_enabled() is True

    def test_enabled_follows_config(self):
        assert MockCollector(CollectorConfig(enabled=True)).is_enabled() is True
        assert MockCollector(CollectorConfig(enabled=False)).is_enabled() is False

    def test_collector_logger_hierarchy(self):
        """Collector creates a child logger named after its class."""
        parent_logger = logging.getLogger("test_parent")
        collector = MockCollector(logger=parent_logger)

        assert collector.logger.parent == parent_logger
        assert collector.logger.name == "test_parent.MockCollector"

    @pytest.mark.asyncio
    async def test_run_blocking_uses_executor(self):
        collector = MockCollector()
        result = await collector._run_blocking(sorted, [3, 1, 2], reverse=True)
        assert result == [3, 2, 1]
