"""Configuration system for psi-monitor."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

from psi_monitor.reader import DEFAULT_PRESSURE_DIR


@dataclass
class SystemConfig:
    """Sampling and logging configuration."""

    sample_interval: float = 0.1  # Seconds between rounds (100ms)
    pressure_dir: str = str(DEFAULT_PRESSURE_DIR)  # Directory holding cpu/io/memory files
    heartbeat_rounds: int = 600  # Log heartbeat every N rounds (~60s at 10Hz)
    # Log file rotation
    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


@dataclass
class ChartColors:
    """Gradient stops for meters and charts.

    Colors are hex strings; values between stops are interpolated.
    Default palette: Dracula theme.
    """

    low: str = "#50fa7b"  # Dracula green - 0%
    elevated: str = "#f1fa8c"  # Dracula yellow - 50%
    critical: str = "#ff5555"  # Dracula red - 100% and above
    meter: str = "bright_white on grey37"  # Meter bar style


@dataclass
class TUIConfig:
    """Display configuration."""

    colors: ChartColors = field(default_factory=ChartColors)
    chart_height: int = 10  # Character rows per chart (each row adds 8 levels)


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    system: SystemConfig = field(default_factory=SystemConfig)
    tui: TUIConfig = field(default_factory=TUIConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "psi-monitor"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "psi-monitor"

    @property
    def log_path(self) -> Path:
        """Log path (JSON Lines)."""
        return self.state_dir / "monitor.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("system", "tui"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            system=_load_system_config(data.get("system", {}), path),
            tui=_load_tui_config(data.get("tui", {}), path),
        )


def _number(data: dict, key: str, default: int | float, path: Path) -> int | float:
    """Read a numeric field, converting to the default's type."""
    value = data.get(key, default)
    try:
        return type(default)(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{key} must be a number, got {value!r} in {path}") from e


def _load_system_config(data: dict, path: Path) -> SystemConfig:
    """Load system config from TOML data, using dataclass defaults for missing fields."""
    d = SystemConfig()

    sample_interval = _number(data, "sample_interval", d.sample_interval, path)
    heartbeat_rounds = _number(data, "heartbeat_rounds", d.heartbeat_rounds, path)

    if sample_interval < 0:
        raise ValueError(f"sample_interval must be >= 0, got {sample_interval}")
    if heartbeat_rounds < 1:
        raise ValueError(f"heartbeat_rounds must be >= 1, got {heartbeat_rounds}")

    return SystemConfig(
        sample_interval=sample_interval,
        pressure_dir=str(data.get("pressure_dir", d.pressure_dir)),
        heartbeat_rounds=heartbeat_rounds,
        log_max_bytes=_number(data, "log_max_bytes", d.log_max_bytes, path),
        log_backup_count=_number(data, "log_backup_count", d.log_backup_count, path),
    )


def _load_tui_config(data: dict, path: Path) -> TUIConfig:
    """Load TUI config from TOML data.

    Handles the nested [tui.colors] section with defaults.
    """
    colors_data = data.get("colors", {})
    c = ChartColors()
    t = TUIConfig()

    chart_height = _number(data, "chart_height", t.chart_height, path)
    if not 1 <= chart_height <= 20:
        raise ValueError(f"chart_height must be between 1 and 20, got {chart_height}")

    return TUIConfig(
        colors=ChartColors(
            low=colors_data.get("low", c.low),
            elevated=colors_data.get("elevated", c.elevated),
            critical=colors_data.get("critical", c.critical),
            meter=colors_data.get("meter", c.meter),
        ),
        chart_height=chart_height,
    )
