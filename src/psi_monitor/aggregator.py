"""Stall rate derivation from consecutive counter snapshots."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

import structlog

from psi_monitor.sampler import SamplerPool

log = structlog.get_logger()

MICROSECONDS_PER_SECOND = 1_000_000


class AggregatorState(Enum):
    """Whether a baseline snapshot exists yet."""

    COLD_START = "cold_start"
    WARM = "warm"


@dataclass(frozen=True)
class Snapshot:
    """Counters from one complete round, tagged with wall-clock time (seconds)."""

    taken_at: float
    counters: Mapping[str, int]


@dataclass(frozen=True)
class RatePoint:
    """Stall rate for one resource at one round.

    ``value`` is percent of wall time stalled and may exceed 100.
    """

    timestamp: float
    value: float


def stall_rate(previous: int, current: int, elapsed_us: float) -> float:
    """Percent of ``elapsed_us`` covered by the counter delta.

    Returns 0.0 when no time elapsed (or the clock stepped back) and when
    the counter went backwards. Values above 100 are not clamped.
    """
    if elapsed_us <= 0:
        return 0.0
    delta = current - previous
    if delta < 0:
        return 0.0
    return 100 * delta / elapsed_us


class RateAggregator:
    """Runs synchronized rounds and turns counter deltas into rates."""

    def __init__(self, pool: SamplerPool) -> None:
        self._pool = pool
        self._previous: Snapshot | None = None

    @property
    def state(self) -> AggregatorState:
        """Current state; never returns to COLD_START once warm."""
        if self._previous is None:
            return AggregatorState.COLD_START
        return AggregatorState.WARM

    @property
    def previous(self) -> Snapshot | None:
        """Baseline snapshot for the next round's deltas."""
        return self._previous

    async def tick(self, now: float) -> dict[str, RatePoint] | None:
        """Sample all resources and compute rates against the previous round.

        Args:
            now: Wall-clock time of this round in seconds.

        Returns:
            One RatePoint per resource, or None on the cold-start round.

        Raises:
            RoundError: If any resource failed; the baseline is left untouched.
        """
        counters = await self._pool.sample_all()
        snapshot = Snapshot(taken_at=now, counters=MappingProxyType(counters))

        previous = self._previous
        self._previous = snapshot
        if previous is None:
            log.debug("aggregator_warm", resources=list(counters))
            return None

        elapsed_us = (now - previous.taken_at) * MICROSECONDS_PER_SECOND
        points: dict[str, RatePoint] = {}
        for resource, current in counters.items():
            before = previous.counters[resource]
            if current < before:
                log.warning(
                    "counter_went_backwards",
                    resource=resource,
                    previous=before,
                    current=current,
                )
            points[resource] = RatePoint(
                timestamp=now,
                value=stall_rate(before, current, elapsed_us),
            )
        return points
