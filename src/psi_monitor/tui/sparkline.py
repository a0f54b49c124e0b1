"""Braille time-series chart for stall rate history.

The chart logic lives in ChartRenderer (plain Rich Text, usable from the
console dashboard); Sparkline wraps it as a Textual widget.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum
from typing import TYPE_CHECKING

from rich.text import Text
from textual.reactive import reactive
from textual.widgets import Static

if TYPE_CHECKING:
    from textual.app import RenderResult


def _parse_hex_color(hex_color: str) -> tuple[int, int, int]:
    """Parse a hex color string to RGB tuple.

    Args:
        hex_color: Color in format "#RRGGBB" or "#RGB".

    Returns:
        Tuple of (red, green, blue) integers 0-255.
    """
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        # Expand shorthand #RGB to #RRGGBB
        hex_color = "".join(c * 2 for c in hex_color)
    return (
        int(hex_color[0:2], 16),
        int(hex_color[2:4], 16),
        int(hex_color[4:6], 16),
    )


def _rgb_to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def _lerp_color(
    color1: tuple[int, int, int],
    color2: tuple[int, int, int],
    t: float,
) -> tuple[int, int, int]:
    """Linearly interpolate between two RGB colors (t clamped to 0..1)."""
    t = max(0.0, min(1.0, t))
    return (
        int(color1[0] + (color2[0] - color1[0]) * t),
        int(color1[1] + (color2[1] - color1[1]) * t),
        int(color1[2] + (color2[2] - color1[2]) * t),
    )


class GradientColor:
    """A color gradient that interpolates between color stops.

    Example:
        ```python
        gradient = GradientColor([
            (0, "#50fa7b"),    # Green at 0%
            (50, "#f1fa8c"),   # Yellow at 50%
            (100, "#ff5555"),  # Red at 100%
        ])
        color = gradient(35)  # Interpolated green-yellow
        ```
    """

    def __init__(self, stops: list[tuple[float, str]]) -> None:
        """Initialize gradient with color stops.

        Args:
            stops: List of (threshold, hex_color) tuples. Must have at least 2 stops.
        """
        if len(stops) < 2:
            raise ValueError("Gradient requires at least 2 color stops")
        self._parsed: list[tuple[float, tuple[int, int, int]]] = [
            (threshold, _parse_hex_color(color))
            for threshold, color in sorted(stops, key=lambda s: s[0])
        ]

    def __call__(self, value: float) -> str:
        """Get interpolated hex color for a value."""
        if value <= self._parsed[0][0]:
            return _rgb_to_hex(*self._parsed[0][1])
        if value >= self._parsed[-1][0]:
            return _rgb_to_hex(*self._parsed[-1][1])

        for (t1, c1), (t2, c2) in zip(self._parsed, self._parsed[1:]):
            if t1 <= value <= t2:
                t = (value - t1) / (t2 - t1) if t2 != t1 else 0.0
                return _rgb_to_hex(*_lerp_color(c1, c2, t))

        return _rgb_to_hex(*self._parsed[-1][1])


class SparklineMode(Enum):
    """Rendering mode for chart characters."""

    BLOCKS = "blocks"  # ▁▂▃▄▅▆▇█ - solid bars
    BRAILLE = "braille"  # ⡀⣀⣄⣤⣦⣶⣷⣿ - dot patterns


def bucket_values(
    values: Sequence[float],
    width: int,
    summary_func: Callable[[Sequence[float]], float] = max,
) -> list[float]:
    """Fit ``values`` into at most ``width`` columns.

    When there are more values than columns, consecutive values are grouped
    into ``width`` buckets (oldest first) and each bucket is summarized.
    """
    if width <= 0:
        return []
    count = len(values)
    if count <= width:
        return list(values)
    buckets = []
    for col in range(width):
        start = col * count // width
        end = (col + 1) * count // width
        buckets.append(summary_func(values[start:end]))
    return buckets


class ChartRenderer:
    """Renders a value series as a multi-row column chart.

    Values are scaled to the vertical range:
    - height=1: 8 levels
    - height=10: 80 levels (bottom row fills first)

    Values outside [min_value, max_value] are clamped to the chart edges.
    """

    CHARS: dict[SparklineMode, str] = {
        SparklineMode.BLOCKS: " ▁▂▃▄▅▆▇█",
        SparklineMode.BRAILLE: " ⡀⣀⣄⣤⣦⣶⣷⣿",
    }
    LEVELS_PER_ROW = 8

    def __init__(
        self,
        height: int = 10,
        max_value: float = 100,
        min_value: float = 0,
        mode: SparklineMode = SparklineMode.BRAILLE,
        color_func: Callable[[float], str] | None = None,
        summary_func: Callable[[Sequence[float]], float] = max,
    ) -> None:
        self.height = max(1, height)
        self._max_value = max_value
        self._min_value = min_value
        self._mode = mode
        self._color_func = color_func
        self._summary_func = summary_func

    def render(self, values: Sequence[float], width: int) -> Text:
        """Render the newest data right-aligned in a ``width`` x height block."""
        columns = bucket_values(values, width, self._summary_func)
        padding = max(0, width - len(columns))
        rows: list[Text] = [Text(" " * padding) for _ in range(self.height)]

        for value in columns:
            level = self._scale_value(value)
            color = self._color_func(value) if self._color_func else ""
            for row_idx, char in enumerate(self._render_column(level)):
                rows[row_idx].append(char, style=color or None)

        result = Text()
        for i, row in enumerate(reversed(rows)):
            if i > 0:
                result.append("\n")
            result.append(row)
        return result

    def _scale_value(self, value: float) -> int:
        """Scale a value to 0..(height * LEVELS_PER_ROW)."""
        total_levels = self.height * self.LEVELS_PER_ROW
        span = self._max_value - self._min_value
        if span <= 0:
            return 0
        normalized = (value - self._min_value) / span
        normalized = max(0.0, min(1.0, normalized))
        return int(normalized * total_levels)

    def _render_column(self, level: int) -> list[str]:
        """Render one column as characters, bottom row first."""
        chars = self.CHARS[self._mode]
        result: list[str] = []
        for row in range(self.height):
            remaining = level - row * self.LEVELS_PER_ROW
            if remaining <= 0:
                result.append(chars[0])
            elif remaining >= self.LEVELS_PER_ROW:
                result.append(chars[self.LEVELS_PER_ROW])
            else:
                result.append(chars[remaining])
        return result


class Sparkline(Static):
    """Textual widget showing a stall rate history chart.

    Example:
        ```python
        chart = Sparkline(height=10)
        chart.data = [0.5, 12.0, 3.2]  # Replace all data
        ```
    """

    DEFAULT_CSS = """
    Sparkline {
        width: 1fr;
        height: auto;
    }
    """

    # Reactive property - triggers re-render on change
    data: reactive[list[float]] = reactive(list, always_update=True)

    def __init__(
        self,
        height: int = 10,
        max_value: float = 100,
        mode: SparklineMode = SparklineMode.BRAILLE,
        color_func: Callable[[float], str] | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._renderer = ChartRenderer(
            height=height,
            max_value=max_value,
            mode=mode,
            color_func=color_func,
        )
        self.styles.height = self._renderer.height

    def render(self) -> RenderResult:
        """Render the chart at the current widget width."""
        return self._renderer.render(self.data, max(1, self.size.width))
