"""Plain console dashboard: meters then charts, redrawn every round.

Works when stdout is not a terminal (fixed 80 columns), so output can be
piped or captured.
"""

from rich.console import Console
from rich.text import Text

from psi_monitor.config import Config
from psi_monitor.formatting import format_meter_label, render_meter, terminal_width
from psi_monitor.monitor import Round
from psi_monitor.tui.sparkline import ChartRenderer, GradientColor


def make_gradient(config: Config) -> GradientColor:
    """Gradient from configured colors: low at 0%, elevated at 50%, critical at 100%."""
    colors = config.tui.colors
    return GradientColor([(0, colors.low), (50, colors.elevated), (100, colors.critical)])


class ConsoleDashboard:
    """Renders each Round to a Rich console."""

    def __init__(self, config: Config, console: Console | None = None) -> None:
        self.config = config
        self.console = console or Console(highlight=False)
        self._meter_style = config.tui.colors.meter
        self._chart = ChartRenderer(
            height=config.tui.chart_height,
            max_value=100,
            color_func=make_gradient(config),
        )

    def render(self, round_: Round) -> list[Text]:
        """Build the lines for one round without printing."""
        width = terminal_width(self.console)
        lines: list[Text] = []

        for resource, point in round_.points.items():
            lines.append(Text(format_meter_label(resource, point.value)))
            bar = render_meter(point.value / 100, width)
            meter = Text(bar[:width], style=self._meter_style)
            meter.append(bar[width:], style="bold red")
            lines.append(meter)

        for resource, points in round_.history.items():
            lines.append(Text(resource))
            lines.append(self._chart.render([p.value for p in points], width))
        return lines

    async def show(self, round_: Round) -> None:
        """Clear the screen and draw one round."""
        lines = self.render(round_)
        self.console.clear()
        for line in lines:
            self.console.print(line, soft_wrap=True)
