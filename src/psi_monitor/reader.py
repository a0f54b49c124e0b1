"""Pressure-stall counter reader for /proc/pressure files.

Each file looks like:

    some avg10=0.00 avg60=0.12 avg300=0.05 total=1234567
    full avg10=0.00 avg60=0.00 avg300=0.00 total=89012

The cumulative ``total`` is in microseconds of stalled time since boot.
"""

from dataclasses import dataclass
from pathlib import Path

# Tracked resources, in display order
RESOURCES: tuple[str, ...] = ("cpu", "io", "memory")

DEFAULT_PRESSURE_DIR = Path("/proc/pressure")


class PressureError(Exception):
    """Base class for pressure sampling errors."""


class ReadError(PressureError):
    """Pressure file could not be read."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"read {self.path}: {reason}")


class ParseError(PressureError):
    """Pressure file content is malformed."""

    def __init__(self, path: Path | str | None, reason: str) -> None:
        self.path = Path(path) if path is not None else None
        self.reason = reason
        where = f"{self.path}: " if self.path is not None else ""
        super().__init__(f"parse {where}{reason}")


@dataclass(frozen=True)
class StallLine:
    """One ``some``/``full`` line of a pressure file."""

    avg10: float
    avg60: float
    avg300: float
    total: int  # Cumulative stalled microseconds


@dataclass(frozen=True)
class PressureRecord:
    """Full contents of a pressure file.

    ``full`` is None for the cpu file on kernels that only report ``some``.
    """

    some: StallLine
    full: StallLine | None = None


def pressure_paths(pressure_dir: Path | str = DEFAULT_PRESSURE_DIR) -> dict[str, Path]:
    """Map each tracked resource to its pressure file."""
    base = Path(pressure_dir)
    return {resource: base / resource for resource in RESOURCES}


def _parse_total(value: str, path: Path | str | None) -> int:
    # int() accepts "+12", " 12" and "1_000"; PSI totals are plain digits
    if not (value.isascii() and value.isdigit()):
        raise ParseError(path, f"total is not an unsigned integer: {value!r}")
    return int(value)


def parse_counter(text: str, path: Path | str | None = None) -> int:
    """Extract the first ``total=`` value from pressure file text."""
    _, found, rest = text.partition("total=")
    if not found:
        raise ParseError(path, "no total= field")
    tokens = rest.split("\n", 1)[0].split()
    return _parse_total(tokens[0] if tokens else "", path)


def _parse_line(fields: list[str], path: Path | str | None) -> StallLine:
    values: dict[str, str] = {}
    for token in fields:
        key, sep, value = token.partition("=")
        if not sep:
            raise ParseError(path, f"malformed field: {token!r}")
        values[key] = value

    missing = {"avg10", "avg60", "avg300", "total"} - values.keys()
    if missing:
        raise ParseError(path, f"missing fields: {', '.join(sorted(missing))}")

    try:
        avg10, avg60, avg300 = (float(values[k]) for k in ("avg10", "avg60", "avg300"))
    except ValueError as e:
        raise ParseError(path, f"bad average: {e}") from e

    return StallLine(
        avg10=avg10,
        avg60=avg60,
        avg300=avg300,
        total=_parse_total(values["total"], path),
    )


def parse_pressure(text: str, path: Path | str | None = None) -> PressureRecord:
    """Parse every ``some``/``full`` line of a pressure file."""
    lines: dict[str, StallLine] = {}
    for raw in text.splitlines():
        parts = raw.split()
        if not parts:
            continue
        kind = parts[0]
        if kind not in ("some", "full"):
            raise ParseError(path, f"unknown line kind: {kind!r}")
        lines[kind] = _parse_line(parts[1:], path)

    if "some" not in lines:
        raise ParseError(path, "no 'some' line")
    return PressureRecord(some=lines["some"], full=lines.get("full"))


def _read_text(path: Path | str) -> str:
    try:
        return Path(path).read_text()
    except OSError as e:
        raise ReadError(path, e.strerror or str(e)) from e
    except UnicodeDecodeError as e:
        raise ParseError(path, "not a text file") from e


def read_counter(path: Path | str) -> int:
    """Read the current cumulative stall counter (microseconds).

    Raises:
        ReadError: If the file cannot be read.
        ParseError: If the total field is absent or non-numeric.
    """
    return parse_counter(_read_text(path), path)


def read_pressure(path: Path | str) -> PressureRecord:
    """Read and parse a whole pressure file."""
    return parse_pressure(_read_text(path), path)
