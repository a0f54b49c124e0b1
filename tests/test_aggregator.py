"""Tests for stall rate derivation."""

import pytest

from conftest import ScriptedReader, fake_paths, read_failure
from psi_monitor.aggregator import (
    AggregatorState,
    RateAggregator,
    RatePoint,
    stall_rate,
)
from psi_monitor.sampler import RoundError, SamplerPool


class TestStallRate:
    """Tests for the rate formula."""

    def test_basic_rate(self) -> None:
        """500us stalled over 100ms is 0.5%."""
        assert stall_rate(1000, 1500, 100_000) == pytest.approx(0.5)

    @pytest.mark.parametrize(
        ("previous", "current", "elapsed_us"),
        [(0, 0, 1.0), (0, 1, 3.0), (10, 250_000, 1_000_000), (5, 5, 7.5)],
    )
    def test_matches_arithmetic(self, previous: int, current: int, elapsed_us: float) -> None:
        """Rate equals 100 * delta / elapsed and is never negative."""
        rate = stall_rate(previous, current, elapsed_us)
        assert rate == 100 * (current - previous) / elapsed_us
        assert rate >= 0

    def test_zero_delta(self) -> None:
        """No additional stall is 0%."""
        assert stall_rate(1500, 1500, 100_000) == 0.0

    def test_zero_elapsed_is_zero(self) -> None:
        """A zero interval yields 0% instead of dividing by zero."""
        assert stall_rate(1000, 5000, 0) == 0.0

    def test_negative_elapsed_is_zero(self) -> None:
        """A wall clock stepping backwards yields 0%."""
        assert stall_rate(1000, 5000, -10.0) == 0.0

    def test_counter_went_backwards_is_zero(self) -> None:
        """A decreasing counter yields 0%, not a negative rate."""
        assert stall_rate(5000, 1000, 100_000) == 0.0

    def test_over_100_not_clamped(self) -> None:
        """Rates above 100% pass through unmodified."""
        assert stall_rate(0, 150_000, 100_000) == pytest.approx(150.0)


def _aggregator(scripts: dict) -> tuple[SamplerPool, RateAggregator]:
    pool = SamplerPool(fake_paths(scripts), reader=ScriptedReader(scripts))
    return pool, RateAggregator(pool)


class TestRateAggregator:
    """Tests for round orchestration and the cold-start state machine."""

    @pytest.mark.asyncio
    async def test_cold_start_yields_nothing(self) -> None:
        """The first round stores a baseline and returns None."""
        pool, agg = _aggregator({"cpu": [1000], "io": [2000]})
        pool.start()
        try:
            assert agg.state is AggregatorState.COLD_START
            assert agg.previous is None
            assert await agg.tick(0.0) is None
            assert agg.state is AggregatorState.WARM
            assert agg.previous is not None
            assert agg.previous.taken_at == 0.0
            assert dict(agg.previous.counters) == {"cpu": 1000, "io": 2000}
        finally:
            await pool.close()

    @pytest.mark.asyncio
    async def test_second_round_one_point_per_resource(self) -> None:
        """After warm-up each round yields exactly one point per resource."""
        pool, agg = _aggregator({"cpu": [0, 10_000], "io": [0, 20_000], "memory": [0, 0]})
        pool.start()
        try:
            await agg.tick(100.0)
            points = await agg.tick(101.0)
        finally:
            await pool.close()

        assert points is not None
        assert set(points) == {"cpu", "io", "memory"}
        assert isinstance(points["cpu"], RatePoint)
        assert points["cpu"].timestamp == 101.0
        assert points["cpu"].value == pytest.approx(1.0)
        assert points["io"].value == pytest.approx(2.0)
        assert points["memory"].value == 0.0

    @pytest.mark.asyncio
    async def test_zero_counter_baseline_is_not_cold_start(self) -> None:
        """A legitimately zero previous counter still produces a rate."""
        pool, agg = _aggregator({"cpu": [0, 50_000]})
        pool.start()
        try:
            assert await agg.tick(0.0) is None
            points = await agg.tick(0.1)
        finally:
            await pool.close()
        assert points is not None
        assert points["cpu"].value == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_same_timestamp_rounds(self) -> None:
        """Two rounds at the same instant give 0% instead of failing."""
        pool, agg = _aggregator({"cpu": [0, 999]})
        pool.start()
        try:
            await agg.tick(5.0)
            points = await agg.tick(5.0)
        finally:
            await pool.close()
        assert points is not None
        assert points["cpu"].value == 0.0

    @pytest.mark.asyncio
    async def test_failure_during_cold_start_stays_cold(self) -> None:
        """A failed first round leaves no baseline."""
        pool, agg = _aggregator({"cpu": [read_failure("cpu"), 100]})
        pool.start()
        try:
            with pytest.raises(RoundError):
                await agg.tick(0.0)
            assert agg.state is AggregatorState.COLD_START
            assert await agg.tick(0.1) is None
        finally:
            await pool.close()

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self) -> None:
        """A failed round does not touch the stored baseline."""
        pool, agg = _aggregator({"cpu": [1000, 2000, 3000], "io": [10, read_failure("io"), 30]})
        pool.start()
        try:
            await agg.tick(1.0)
            before = agg.previous
            with pytest.raises(RoundError):
                await agg.tick(2.0)
            assert agg.previous is before
            assert agg.state is AggregatorState.WARM
        finally:
            await pool.close()


class TestScenarios:
    """End-to-end round sequences."""

    @pytest.mark.asyncio
    async def test_cpu_three_rounds(self) -> None:
        """cpu 1000, 1500, 1500 at 100ms -> none, 0.5%, 0%."""
        pool, agg = _aggregator({"cpu": [1000, 1500, 1500]})
        pool.start()
        try:
            round1 = await agg.tick(0.0)
            round2 = await agg.tick(0.1)
            round3 = await agg.tick(0.2)
        finally:
            await pool.close()

        assert round1 is None
        assert round2 is not None and round3 is not None
        assert round2["cpu"].value == pytest.approx(0.5)
        assert round3["cpu"].value == pytest.approx(0.0)

    @pytest.mark.asyncio
    async def test_io_failure_reverts_to_round_two_baseline(self) -> None:
        """io fails on round 3; round 4 deltas use the round-2 snapshot."""
        pool, agg = _aggregator(
            {
                "cpu": [1000, 2000, 9_999_999, 4000],
                "io": [100, 200, read_failure("io"), 600],
            }
        )
        pool.start()
        try:
            assert await agg.tick(0.0) is None
            round2 = await agg.tick(1.0)
            with pytest.raises(RoundError) as exc_info:
                await agg.tick(2.0)
            baseline = agg.previous
            round4 = await agg.tick(3.0)
        finally:
            await pool.close()

        assert exc_info.value.resource == "io"
        assert round2 is not None
        assert baseline is not None
        assert baseline.taken_at == 1.0
        assert dict(baseline.counters) == {"cpu": 2000, "io": 200}

        # Round 4 spans round 2 -> round 4: 2 seconds
        assert round4 is not None
        assert round4["cpu"].value == pytest.approx(100 * 2000 / 2_000_000)
        assert round4["io"].value == pytest.approx(100 * 400 / 2_000_000)
