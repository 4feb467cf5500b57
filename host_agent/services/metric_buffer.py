"""In-memory buffer of snapshots awaiting delivery."""

import logging
from typing import Iterable, List, Optional

from ..utils.metrics import Snapshot


class MetricBuffer:
    """
    Ordered sequence of snapshots, oldest first.

    Only the orchestrator's callbacks touch the buffer, all on one event
    loop, so ``take_all`` is a plain swap with no lock. An implementation
    moved onto OS threads needs a mutex around ``take_all``/``restore``.

    With ``max_size`` set, the oldest snapshots are dropped once the
    buffer would exceed it. ``max_size=None`` leaves growth unbounded.
    """

    def __init__(self, max_size: Optional[int] = None, logger: logging.Logger = None):
        if max_size is not None and max_size < 1:
            raise ValueError("max_size must be >= 1 or None")
        self.max_size = max_size
        self.logger = logger or logging.getLogger(__name__)
        self._items: List[Snapshot] = []
        self.dropped_total = 0

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def snapshots(self) -> List[Snapshot]:
        """Copy of the buffered snapshots in delivery order."""
        return list(self._items)

    def append(self, snapshot: Snapshot) -> None:
        """Add a newly collected snapshot at the back."""
        self._items.append(snapshot)
        self._enforce_bound()

    def take_all(self) -> List[Snapshot]:
        """Remove and return every buffered snapshot."""
        batch, self._items = self._items, []
        return batch

    def restore(self, batch: Iterable[Snapshot]) -> None:
        """
        Put a failed batch back at the front.

        Snapshots appended after the batch was taken stay behind it, so
        the next flush re-delivers in collection order.
        """
        self._items = list(batch) + self._items
        self._enforce_bound()

    def _enforce_bound(self) -> None:
        if self.max_size is None or len(self._items) <= self.max_size:
            return

        overflow = len(self._items) - self.max_size
        del self._items[:overflow]
        self.dropped_total += overflow
        self.logger.warning(
            f"Metric buffer over capacity ({self.max_size}), "
            f"dropped {overflow} oldest snapshot(s)"
        )
