"""Base collector abstract class for all metric collectors."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar
import asyncio
import logging
from functools import partial, wraps

from ..utils.metrics import CollectorMetrics

T = TypeVar('T')


class CollectionError(Exception):
    """A collector failed to produce its fields."""

    def __init__(self, collector_name: str, message: str):
        super().__init__(f"[{collector_name}] {message}")
        self.collector_name = collector_name
        self.message = message


class BaseCollector(ABC):
    """Abstract base class for all collectors."""

    #: Stable identifier used for logging and attribution
    name: str = "base"

    def __init__(self, config: Any = None, logger: Optional[logging.Logger] = None):
        """
        Initialize base collector.

        Args:
            config: Collector-specific configuration section
            logger: Logger instance
        """
        self.config = config
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    @abstractmethod
    async def collect(self) -> CollectorMetrics:
        """
        Collect metrics and return named fields.

        Returns:
            CollectorMetrics: Field name to value mapping

        Raises:
            CollectionError: On internal fault, carrying the collector name

        Note:
            Implementations should use the @collection_errors decorator so
            any unexpected exception surfaces as a CollectionError.
        """
        pass

    def is_enabled(self) -> bool:
        """Whether the orchestrator should invoke this collector."""
        if self.config is None:
            return True
        return bool(getattr(self.config, "enabled", True))

    async def _run_blocking(self, func: Callable[..., T], *args, **kwargs) -> T:
        """Run a blocking OS read in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))


def collection_errors(func):
    """
    Decorator that scopes collector failures to the collector.

    Any exception other than CollectionError is logged and re-raised as a
    CollectionError carrying the collector's name, chained to the original.

    Args:
        func: Collector method to wrap

    Returns:
        Wrapped coroutine function
    """
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except CollectionError:
            raise
        except Exception as e:
            self.logger.debug(f"Collection failed: {e}", exc_info=True)
            raise CollectionError(self.name, str(e) or type(e).__name__) from e
    return wrapper
