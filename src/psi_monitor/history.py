"""Per-resource rolling history of stall rates.

Fixed-count sliding window: once a resource holds ``capacity`` points,
each append evicts the oldest one.
"""

from collections import deque
from collections.abc import Iterable

from psi_monitor.aggregator import RatePoint

HISTORY_LIMIT = 1024


class HistoryBuffer:
    """Bounded chronological history of RatePoints per resource."""

    def __init__(self, resources: Iterable[str], capacity: int = HISTORY_LIMIT) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._series: dict[str, deque[RatePoint]] = {
            resource: deque(maxlen=capacity) for resource in resources
        }

    def __len__(self) -> int:
        """Return the length of the longest series."""
        return max((len(s) for s in self._series.values()), default=0)

    @property
    def capacity(self) -> int:
        """Maximum number of points kept per resource."""
        return self._capacity

    def append(self, resource: str, point: RatePoint) -> None:
        """Append a point, evicting the oldest if at capacity."""
        self._series[resource].append(point)

    def series(self, resource: str) -> list[RatePoint]:
        """Copy of one resource's points, oldest first."""
        return list(self._series[resource])

    def snapshot(self) -> dict[str, tuple[RatePoint, ...]]:
        """Immutable copy of every series for the renderer."""
        return {resource: tuple(points) for resource, points in self._series.items()}
