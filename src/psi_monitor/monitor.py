"""Sampling control loop for psi-monitor."""

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from psi_monitor.aggregator import RateAggregator, RatePoint
from psi_monitor.config import Config
from psi_monitor.history import HistoryBuffer
from psi_monitor.reader import pressure_paths, read_counter
from psi_monitor.sampler import CounterReader, SamplerPool

log = structlog.get_logger()


@dataclass(frozen=True)
class Round:
    """Everything the presentation layer needs after one successful round."""

    number: int
    points: Mapping[str, RatePoint]
    history: Mapping[str, tuple[RatePoint, ...]]

    @property
    def timestamp(self) -> float:
        return next(iter(self.points.values())).timestamp


RoundCallback = Callable[[Round], Awaitable[None]]


@dataclass
class MonitorState:
    """Runtime counters for heartbeat logging."""

    rounds: int = 0
    heartbeat_rounds: int = 0
    peaks: dict[str, float] = field(default_factory=dict)

    def update(self, points: Mapping[str, RatePoint]) -> None:
        self.rounds += 1
        self.heartbeat_rounds += 1
        for resource, point in points.items():
            self.peaks[resource] = max(self.peaks.get(resource, 0.0), point.value)

    def reset_heartbeat(self) -> None:
        self.heartbeat_rounds = 0
        self.peaks.clear()


class Monitor:
    """Owns the sampler pool, rate aggregator and history."""

    def __init__(
        self,
        config: Config,
        paths: Mapping[str, Path] | None = None,
        reader: CounterReader = read_counter,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.paths = dict(paths) if paths is not None else pressure_paths(
            config.system.pressure_dir
        )
        self.pool = SamplerPool(self.paths, reader=reader)
        self.aggregator = RateAggregator(self.pool)
        self.history = HistoryBuffer(self.paths)
        self.state = MonitorState()
        self._clock = clock

    @property
    def resources(self) -> tuple[str, ...]:
        return tuple(self.paths)

    async def run(self, on_round: RoundCallback, rounds: int | None = None) -> None:
        """Sample until killed, or until ``rounds`` rate rounds have been shown.

        Each iteration:
        1. Tick the aggregator (blocks until every resource answered)
        2. Append the new rates to history
        3. Await the presentation callback
        4. Sleep for the remainder of the interval

        Rounds never overlap. A RoundError propagates to the caller.
        """
        interval = self.config.system.sample_interval
        heartbeat_every = self.config.system.heartbeat_rounds
        loop = asyncio.get_running_loop()

        self.pool.start()
        log.info(
            "monitor_started",
            interval=interval,
            resources=list(self.resources),
            capacity=self.history.capacity,
        )
        try:
            while rounds is None or self.state.rounds < rounds:
                iteration_start = loop.time()

                points = await self.aggregator.tick(self._clock())
                if points is not None:
                    for resource, point in points.items():
                        self.history.append(resource, point)
                    self.state.update(points)
                    await on_round(
                        Round(
                            number=self.state.rounds,
                            points=points,
                            history=self.history.snapshot(),
                        )
                    )

                    if self.state.heartbeat_rounds >= heartbeat_every:
                        self._heartbeat()
                    if rounds is not None and self.state.rounds >= rounds:
                        break

                elapsed = loop.time() - iteration_start
                await asyncio.sleep(max(0.0, interval - elapsed))
        finally:
            await self.pool.close()

    def _heartbeat(self) -> None:
        log.info(
            "monitor_heartbeat",
            rounds=self.state.heartbeat_rounds,
            total_rounds=self.state.rounds,
            peaks={r: round(v, 2) for r, v in self.state.peaks.items()},
            history=f"{len(self.history)}/{self.history.capacity}",
        )
        self.state.reset_heartbeat()
