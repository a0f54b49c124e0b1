"""Shared test fixtures for psi-monitor."""

import asyncio
from collections.abc import Iterable, Iterator
from contextlib import ExitStack
from pathlib import Path
from unittest.mock import patch

import pytest

from psi_monitor.config import Config
from psi_monitor.reader import RESOURCES, ReadError


def make_pressure_text(
    some_total: int,
    full_total: int | None = None,
    avg10: float = 0.0,
    avg60: float = 0.0,
    avg300: float = 0.0,
) -> str:
    """Build /proc/pressure file content."""
    text = f"some avg10={avg10:.2f} avg60={avg60:.2f} avg300={avg300:.2f} total={some_total}\n"
    if full_total is not None:
        text += f"full avg10=0.00 avg60=0.00 avg300=0.00 total={full_total}\n"
    return text


def write_pressure_dir(base: Path, totals: dict[str, int]) -> Path:
    """Write one pressure file per resource under base and return base."""
    base.mkdir(parents=True, exist_ok=True)
    for resource, total in totals.items():
        full = None if resource == "cpu" else total // 2
        (base / resource).write_text(make_pressure_text(total, full))
    return base


class ScriptedReader:
    """Counter reader that replays a per-resource script.

    Each script entry is either a counter value or an exception to raise.
    The last entry repeats once the script is exhausted.
    """

    def __init__(self, scripts: dict[str, Iterable[int | Exception]]) -> None:
        self._scripts = {resource: list(values) for resource, values in scripts.items()}
        self._positions = {resource: 0 for resource in self._scripts}
        self.calls: list[str] = []

    def __call__(self, path: Path) -> int:
        resource = Path(path).name
        self.calls.append(resource)
        script = self._scripts[resource]
        pos = min(self._positions[resource], len(script) - 1)
        self._positions[resource] += 1
        value = script[pos]
        if isinstance(value, Exception):
            raise value
        return value


def fake_paths(resources: Iterable[str] = RESOURCES) -> dict[str, Path]:
    """Resource paths that only need to exist for ScriptedReader."""
    return {resource: Path("/fake/pressure") / resource for resource in resources}


def read_failure(resource: str) -> ReadError:
    return ReadError(f"/fake/pressure/{resource}", "No such file or directory")


async def wait_until(condition, timeout=2.0, interval=0.01):
    """Wait until condition() returns True, or timeout."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise TimeoutError(f"Condition not met within {timeout}s")
        await asyncio.sleep(interval)


@pytest.fixture
def pressure_dir(tmp_path: Path) -> Path:
    """A fake /proc/pressure with all tracked resources."""
    return write_pressure_dir(tmp_path / "pressure", {"cpu": 1000, "io": 2000, "memory": 3000})


@pytest.fixture
def patched_config_paths(tmp_path: Path) -> Iterator[Path]:
    """Point Config's config and state directories at tmp_path."""
    with ExitStack() as stack:
        # fmt: off
        stack.enter_context(patch.object(
            Config, "config_dir",
            new_callable=lambda: property(lambda self: tmp_path / "config")
        ))
        stack.enter_context(patch.object(
            Config, "state_dir",
            new_callable=lambda: property(lambda self: tmp_path / "state")
        ))
        # fmt: on
        yield tmp_path


@pytest.fixture
def fast_config() -> Config:
    """Config with no sleep between rounds."""
    config = Config()
    config.system.sample_interval = 0.0
    return config
