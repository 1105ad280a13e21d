"""Application settings and configuration management."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from bite.errors import ConfigurationError

VALID_BACKENDS = ("sqlite", "csv")


def default_home() -> Path:
    """Return the data directory, honouring BITE_HOME."""
    env = os.environ.get("BITE_HOME")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".bite"


@dataclass
class StorageConfig:
    """Where the user config and entry log live."""

    backend: str = "sqlite"  # "sqlite" or "csv"
    database_path: Optional[Path] = None
    csv_path: Optional[Path] = None
    user_config_path: Optional[Path] = None

    def resolve(self, home: Path) -> None:
        """Fill unset paths relative to the data directory."""
        if self.database_path is None:
            self.database_path = home / "bite.db"
        if self.csv_path is None:
            self.csv_path = home / "entries.csv"
        if self.user_config_path is None:
            self.user_config_path = home / "user.yaml"


@dataclass
class ProgressConfig:
    """Progress evaluation parameters."""

    tolerance: float = 0.2  # fraction of the target weekly rate
    maintenance_band: float = 0.1  # kg/week, used when target rate is zero


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    file: Optional[Path] = None
    console: bool = True


@dataclass
class Settings:
    """Main application settings."""

    home: Path = field(default_factory=default_home)
    storage: StorageConfig = field(default_factory=StorageConfig)
    progress: ProgressConfig = field(default_factory=ProgressConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self) -> None:
        self.storage.resolve(self.home)

    @classmethod
    def load(cls, home: Optional[Path] = None) -> "Settings":
        """Load settings from <home>/settings.yaml or return defaults.

        Args:
            home: Data directory. If None, uses BITE_HOME or ~/.bite

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If the file is not valid YAML or holds bad values
        """
        if home is None:
            home = default_home()

        config_path = home / "settings.yaml"
        if not config_path.exists():
            return cls(home=home)

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigurationError(f"Can't read {config_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping")

        storage = StorageConfig()
        progress = ProgressConfig()
        log_config = LoggingConfig()

        try:
            # Parse storage config
            if "storage" in data:
                st_data = data["storage"] or {}
                if "backend" in st_data:
                    storage.backend = str(st_data["backend"]).lower()
                if st_data.get("database_path"):
                    storage.database_path = Path(st_data["database_path"]).expanduser()
                if st_data.get("csv_path"):
                    storage.csv_path = Path(st_data["csv_path"]).expanduser()
                if st_data.get("user_config_path"):
                    storage.user_config_path = Path(
                        st_data["user_config_path"]
                    ).expanduser()

            # Parse progress config
            if "progress" in data:
                pr_data = data["progress"] or {}
                if "tolerance" in pr_data:
                    progress.tolerance = float(pr_data["tolerance"])
                if "maintenance_band" in pr_data:
                    progress.maintenance_band = float(pr_data["maintenance_band"])

            # Parse logging config
            if "logging" in data:
                lg_data = data["logging"] or {}
                if "level" in lg_data:
                    log_config.level = str(lg_data["level"]).upper()
                if "format" in lg_data:
                    log_config.format = str(lg_data["format"])
                if lg_data.get("file"):
                    log_config.file = Path(lg_data["file"]).expanduser()
                if "console" in lg_data:
                    log_config.console = bool(lg_data["console"])
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid value in {config_path}: {e}") from e

        if storage.backend not in VALID_BACKENDS:
            raise ConfigurationError(
                f"storage.backend must be one of {VALID_BACKENDS}, got '{storage.backend}'"
            )
        if not 0 < progress.tolerance < 1:
            raise ConfigurationError(
                f"progress.tolerance must be between 0 and 1, got {progress.tolerance}"
            )

        return cls(home=home, storage=storage, progress=progress, logging=log_config)

    def save(self) -> None:
        """Save current settings to <home>/settings.yaml.

        Raises:
            ConfigurationError: If the file can't be written
        """
        config_path = self.home / "settings.yaml"

        data = {
            "storage": {
                "backend": self.storage.backend,
                "database_path": str(self.storage.database_path),
                "csv_path": str(self.storage.csv_path),
                "user_config_path": str(self.storage.user_config_path),
            },
            "progress": {
                "tolerance": self.progress.tolerance,
                "maintenance_band": self.progress.maintenance_band,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
                "file": str(self.logging.file) if self.logging.file else None,
                "console": self.logging.console,
            },
        }

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w") as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            raise ConfigurationError(f"Can't write {config_path}: {e}") from e
