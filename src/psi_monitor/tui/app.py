"""Real-time pressure dashboard.

One panel per resource: a label with the current rate, a meter bar and a
braille history chart. The sampling loop runs as a single task so rounds
never overlap; a failed round closes the app with exit code 1.
"""

import asyncio
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widgets import Footer, Label, Static

from psi_monitor.aggregator import RatePoint
from psi_monitor.config import Config
from psi_monitor.display import make_gradient
from psi_monitor.formatting import (
    OVERFLOW_MARKER,
    format_meter_label,
    format_timestamp,
    render_meter,
)
from psi_monitor.monitor import Monitor, Round
from psi_monitor.reader import read_counter
from psi_monitor.sampler import CounterReader, RoundError
from psi_monitor.tui.sparkline import GradientColor, Sparkline


class Meter(Static):
    """Horizontal bar for a single rate; marks values above 100% with '!'."""

    DEFAULT_CSS = """
    Meter {
        height: 1;
        width: 1fr;
    }
    """

    value: reactive[float] = reactive(0.0)

    def __init__(self, style: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._bar_style = style

    def render(self) -> Text:
        # Keep one cell free for the overflow marker
        width = max(1, self.size.width - 1)
        bar = render_meter(self.value / 100, width)
        text = Text(bar[:width], style=self._bar_style)
        if bar.endswith(OVERFLOW_MARKER):
            text.append(OVERFLOW_MARKER, style="bold red")
        return text


class ResourcePanel(Static):
    """Label, meter and history chart for one resource."""

    DEFAULT_CSS = """
    ResourcePanel {
        height: auto;
        padding: 0 1;
        border: solid $primary;
        border-title-align: left;
    }
    """

    def __init__(self, resource: str, config: Config, gradient: GradientColor, **kwargs: Any):
        super().__init__(**kwargs)
        self.resource = resource
        self._config = config
        self._gradient = gradient

    def compose(self) -> ComposeResult:
        yield Label(format_meter_label(self.resource, 0.0), classes="meter-label")
        yield Meter(self._config.tui.colors.meter, classes="meter")
        yield Sparkline(
            height=self._config.tui.chart_height,
            max_value=100,
            color_func=self._gradient,
            classes="chart",
        )

    def on_mount(self) -> None:
        self.border_title = self.resource

    def update_from_round(self, point: RatePoint, history: tuple[RatePoint, ...]) -> None:
        """Show the latest rate and the full history."""
        try:
            self.query_one(".meter-label", Label).update(
                format_meter_label(self.resource, point.value)
            )
            self.query_one(".meter", Meter).value = point.value
            self.query_one(".chart", Sparkline).data = [p.value for p in history]
        except NoMatches:
            pass
        self.border_subtitle = format_timestamp(point.timestamp)
        self.styles.border = ("solid", self._gradient(point.value))


class PressureApp(App):
    """Real-time pressure-stall dashboard."""

    CSS = """
    Screen {
        layout: vertical;
        overflow-y: auto;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        config: Config | None = None,
        paths: Mapping[str, Path] | None = None,
        reader: CounterReader = read_counter,
    ):
        super().__init__()
        self.config = config or Config.load()
        self.monitor = Monitor(self.config, paths=paths, reader=reader)
        self._gradient = make_gradient(self.config)
        self._poll_task: asyncio.Task | None = None
        self.error: RoundError | None = None

    def compose(self) -> ComposeResult:
        """Create one panel per resource."""
        for resource in self.monitor.resources:
            yield ResourcePanel(
                resource,
                self.config,
                self._gradient,
                id=f"panel-{resource}",
            )
        yield Footer()

    def on_mount(self) -> None:
        """Start sampling."""
        self.title = "psi-monitor"
        self.sub_title = "warming up"
        self._poll_task = asyncio.create_task(self._poll_loop())

    async def on_unmount(self) -> None:
        """Stop sampling."""
        if self._poll_task and not self._poll_task.done():
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass

    async def _poll_loop(self) -> None:
        try:
            await self.monitor.run(self._show_round)
        except RoundError as e:
            self.error = e
            self.exit(return_code=1, message=f"error: {e}")

    async def _show_round(self, round_: Round) -> None:
        self.sub_title = f"round #{round_.number}  {format_timestamp(round_.timestamp)}"
        for resource, point in round_.points.items():
            try:
                panel = self.query_one(f"#panel-{resource}", ResourcePanel)
            except NoMatches:
                continue
            panel.update_from_round(point, round_.history[resource])
