"""CLI commands for psi-monitor."""

import click

from psi_monitor.config import Config


def _load_config(interval_ms: float | None) -> Config:
    """Load config, apply --interval, and set up file logging."""
    from psi_monitor import logging as pm_logging

    try:
        config = Config.load()
    except ValueError as e:
        pm_logging.config_invalid(str(e))
        raise SystemExit(1)

    if interval_ms is not None:
        if interval_ms < 0:
            raise click.BadParameter("must be >= 0", param_hint="--interval")
        config.system.sample_interval = interval_ms / 1000

    pm_logging.configure(config)
    return config


interval_option = click.option(
    "--interval",
    "-i",
    "interval_ms",
    type=float,
    default=None,
    help="Poll interval in milliseconds [default: 100]",
)


@click.group(invoke_without_command=True)
@click.version_option(package_name="psi-monitor")
@click.pass_context
def main(ctx) -> None:
    """Watch Linux pressure-stall rates for CPU, I/O and memory."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(tui)


@main.command()
@interval_option
def tui(interval_ms: float | None = None) -> None:
    """Launch interactive dashboard."""
    import structlog

    from psi_monitor.tui.app import PressureApp

    config = _load_config(interval_ms)
    app = PressureApp(config)
    app.run()
    if app.error is not None:
        structlog.get_logger().error(
            "round_failed", resource=app.error.resource, error=str(app.error)
        )
    raise SystemExit(app.return_code or 0)


@main.command()
@interval_option
@click.option("--count", "-n", type=int, default=None, help="Stop after N rate rounds")
def watch(interval_ms: float | None, count: int | None) -> None:
    """Print meters and charts to the console every round."""
    import asyncio

    import structlog

    from psi_monitor import logging as pm_logging
    from psi_monitor.display import ConsoleDashboard
    from psi_monitor.monitor import Monitor
    from psi_monitor.sampler import RoundError

    config = _load_config(interval_ms)
    dashboard = ConsoleDashboard(config)
    monitor = Monitor(config)

    try:
        asyncio.run(monitor.run(dashboard.show, rounds=count))
    except RoundError as e:
        structlog.get_logger().error("round_failed", resource=e.resource, error=str(e))
        pm_logging.round_failed(str(e))
        raise SystemExit(1)
    except KeyboardInterrupt:
        pass


@main.command()
def status() -> None:
    """Quick snapshot of current pressure averages."""
    from psi_monitor import logging as pm_logging
    from psi_monitor.reader import PressureError, pressure_paths, read_pressure

    try:
        config = Config.load()
    except ValueError as e:
        pm_logging.config_invalid(str(e))
        raise SystemExit(1)

    click.echo(
        f"{'Resource':10}  {'Kind':4}  {'avg10':>7}  {'avg60':>7}  {'avg300':>7}  "
        f"{'total (us)':>16}"
    )
    click.echo("-" * 62)

    failed = False
    for resource, path in pressure_paths(config.system.pressure_dir).items():
        try:
            record = read_pressure(path)
        except PressureError as e:
            pm_logging.pressure_unavailable(str(path))
            click.echo(f"{resource:10}  error: {e}")
            failed = True
            continue

        for kind, line in (("some", record.some), ("full", record.full)):
            if line is None:
                continue
            click.echo(
                f"{resource:10}  {kind:4}  {line.avg10:7.2f}  {line.avg60:7.2f}  "
                f"{line.avg300:7.2f}  {line.total:>16}"
            )

    if failed:
        raise SystemExit(1)


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    cfg = Config.load()

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[system]")
    click.echo(f"  sample_interval = {cfg.system.sample_interval}")
    click.echo(f"  pressure_dir = {cfg.system.pressure_dir}")
    click.echo(f"  heartbeat_rounds = {cfg.system.heartbeat_rounds}")
    click.echo()
    click.echo("[tui]")
    click.echo(f"  chart_height = {cfg.tui.chart_height}")
    click.echo()
    click.echo(f"Log file: {cfg.log_path}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    from psi_monitor import logging as pm_logging

    cfg = Config.load()

    if not cfg.config_path.exists():
        cfg.save()
        pm_logging.config_created(str(cfg.config_path))

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")
