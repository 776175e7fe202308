"""Configuration system for smartmon."""

from dataclasses import dataclass, field, fields
from pathlib import Path

import tomlkit

from smartmon.session import DEFAULT_TICK_INTERVAL, MIN_TICK_INTERVAL


def _default_config_path() -> Path:
    return Path.home() / ".config" / "smartmon" / "config.toml"


def _default_state_dir() -> Path:
    return Path.home() / ".local" / "state" / "smartmon"


@dataclass
class Config:
    """Runtime settings. Alert thresholds are fixed and not configurable."""

    tick_interval: float = DEFAULT_TICK_INTERVAL  # Seconds between ticks
    prime_delay: float = 0.3  # Nap after priming baselines, before the first tick
    log_level: str = "INFO"
    log_max_bytes: int = 1024 * 1024
    log_backup_count: int = 2
    state_dir: Path = field(default_factory=_default_state_dir)

    def __post_init__(self) -> None:
        self.tick_interval = max(MIN_TICK_INTERVAL, float(self.tick_interval))
        self.prime_delay = max(0.0, float(self.prime_delay))
        self.log_level = str(self.log_level).upper()
        self.state_dir = Path(self.state_dir).expanduser()

    @property
    def log_path(self) -> Path:
        """JSON lines log file. The terminal belongs to the UI."""
        return self.state_dir / "smartmon.log"

    def save(self, path: Path | None = None) -> Path:
        """Save config to a TOML file and return the path written."""
        path = path or _default_config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        doc.add(tomlkit.comment("smartmon configuration"))
        for f in fields(self):
            value = getattr(self, f.name)
            doc.add(f.name, str(value) if isinstance(value, Path) else value)
        path.write_text(tomlkit.dumps(doc))
        return path

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from a TOML file, using defaults for anything missing.

        Raises:
            ValueError: The file exists but is not valid TOML, or holds a
                value of the wrong type.
        """
        path = path or _default_config_path()
        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = tomlkit.load(f).unwrap()
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        try:
            return cls(**values)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value in config file {path}: {e}") from e
