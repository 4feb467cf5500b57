"""Retry handler with exponential backoff for transient delivery failures."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, TypeVar


T = TypeVar('T')


class RetryHandler:
    """
    Handles retry logic with exponential backoff.

    Attempt 1 runs immediately. After failed attempt ``n`` (while
    ``n < max_attempts``) the handler waits ``base_delay_ms * 2 ** (n - 1)``
    milliseconds before attempt ``n + 1``. Waiting goes through
    ``asyncio.sleep`` so other scheduled work keeps running.
    """

    @staticmethod
    def backoff_delay_ms(attempt: int, base_delay_ms: float) -> float:
        """
        Delay to wait after a failed attempt.

        Args:
            attempt: 1-based number of the attempt that just failed
            base_delay_ms: Base delay in milliseconds

        Returns:
            float: Delay in milliseconds
        """
        return base_delay_ms * (2 ** (attempt - 1))

    @staticmethod
    async def with_retry(
        func: Callable[[], Awaitable[T]],
        max_attempts: int = 3,
        base_delay_ms: float = 5000,
        exceptions: Tuple[type, ...] = (Exception,),
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> T:
        """
        Execute coroutine function with exponential backoff retry.

        Args:
            func: Async callable to execute
            max_attempts: Maximum attempts, at least 1
            base_delay_ms: Initial delay in milliseconds
            exceptions: Tuple of exception types to retry on
            logger: Optional logger for retry events
            sleep: Awaitable sleep taking seconds

        Returns:
            Result from successful function execution

        Raises:
            Exception: Last attempt's exception if all attempts fail
        """
        logger = logger or logging.getLogger(__name__)

        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        for attempt in range(1, max_attempts + 1):
            try:
                return await func()

            except exceptions as e:
                if attempt == max_attempts:
                    if max_attempts > 1:
                        logger.error(f"All {max_attempts} retry attempts exhausted: {e}")
                    raise

                delay_ms = RetryHandler.backoff_delay_ms(attempt, base_delay_ms)

                logger.warning(
                    f"Attempt {attempt}/{max_attempts} failed: {e}. "
                    f"Retrying in {delay_ms:.0f}ms..."
                )

                await sleep(delay_ms / 1000.0)

        # Unreachable: the loop either returns or re-raises
        raise RuntimeError("Retry loop exited without result")
