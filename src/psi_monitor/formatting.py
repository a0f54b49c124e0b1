"""Formatting utilities shared by the console and TUI dashboards."""

from datetime import datetime

from rich.console import Console

# Left-aligned partial blocks, index = filled eighths of a cell
LEFT_BAR_CHARS = (" ", "▏", "▎", "▍", "▌", "▋", "▊", "▉", "█")
EIGHTHS_PER_CELL = 8

OVERFLOW_MARKER = "!"
FALLBACK_WIDTH = 80


def format_meter_label(label: str, value: float, maximum: float = 100.0) -> str:
    """Format the line above a meter.

    Returns:
        "<label>\\t<value>/<maximum> (<percent>%)", e.g. "cpu\\t0.50/100.00 (0.50%)".
        A zero maximum reports 0%.
    """
    fraction = value / maximum if maximum != 0 else 0.0
    return f"{label}\t{value:.2f}/{maximum:.2f} ({100 * fraction:.2f}%)"


def render_meter(fraction: float, width: int) -> str:
    """Render a horizontal bar ``width`` cells wide at eighth-cell resolution.

    The fill is clamped to the bar width. A fraction above 1 appends the
    overflow marker after the bar instead of clipping silently.
    """
    width = max(0, width)
    total_eighths = width * EIGHTHS_PER_CELL
    remaining = int(min(total_eighths * max(fraction, 0.0), total_eighths))

    cells = []
    for _ in range(width):
        filled = min(remaining, EIGHTHS_PER_CELL)
        cells.append(LEFT_BAR_CHARS[filled])
        remaining -= filled

    bar = "".join(cells)
    if fraction > 1:
        bar += OVERFLOW_MARKER
    return bar


def terminal_width(console: Console) -> int:
    """Usable width: one less than the terminal so the overflow marker fits."""
    if console.is_terminal:
        return max(1, console.width - 1)
    return FALLBACK_WIDTH


def format_timestamp(timestamp: float) -> str:
    """Format a round timestamp as local HH:MM:SS."""
    return datetime.fromtimestamp(timestamp).strftime("%H:%M:%S")
