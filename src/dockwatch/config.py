"""
Configuration management for dockwatch.

YAML configuration file at ~/.config/dockwatch/config.yaml (directory can be
moved with DOCKWATCH_CONFIG_DIR). User values are merged over dataclass
defaults; a missing file is created with the defaults, a broken one is
logged and ignored.

Sections:
  - sampler: poll interval, per-container stats timeout, fan-out cap
  - engine: docker base_url (empty -> DOCKER_HOST / local socket)
  - ui: display refresh interval and colors
  - keybindings: quit / up / down / enter / back
  - logging: level, file path, rotation
"""

import os
import yaml
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, asdict
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class KeyBindings:
    """Customizable key bindings."""
    quit: str = "q"
    up: str = "up"
    down: str = "down"
    enter: str = "enter"
    back: str = "escape"


@dataclass
class ColorTheme:
    """Color theme configuration."""
    name: str = "default"
    accent: str = "cyan"
    success: str = "green"
    warning: str = "yellow"
    error: str = "red"


@dataclass
class UIConfig:
    """UI-related configuration."""
    color_theme: ColorTheme = field(default_factory=ColorTheme)
    refresh_interval: int = 100  # milliseconds


@dataclass
class SamplerConfig:
    """Polling configuration."""
    interval: float = 1.0  # seconds between poll cycles
    stats_timeout: float = 0.8  # per-container stats request, must stay below interval
    max_in_flight: int = 4  # concurrent stats requests


@dataclass
class EngineConfig:
    """Docker engine connection."""
    base_url: Optional[str] = None


@dataclass
class LogConfig:
    """Logging configuration."""
    level: str = "INFO"
    file_path: Optional[str] = None  # None for default
    max_size_mb: int = 10
    backup_count: int = 5


@dataclass
class AppConfig:
    """Main application configuration."""
    keybindings: KeyBindings = field(default_factory=KeyBindings)
    ui: UIConfig = field(default_factory=UIConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    logging: LogConfig = field(default_factory=LogConfig)


def default_config_dir() -> Path:
    override = os.environ.get("DOCKWATCH_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "dockwatch"


class ConfigManager:
    """Configuration manager with YAML file support."""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self.config_file = self.config_dir / "config.yaml"
        self._config: AppConfig = AppConfig()

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Cannot create config directory {self.config_dir}: {e}")

        self.load_config()

    def load_config(self) -> None:
        """Load configuration from YAML file."""
        try:
            if self.config_file.exists():
                with open(self.config_file, 'r') as f:
                    user_config = yaml.safe_load(f) or {}
                if not isinstance(user_config, dict):
                    raise ValueError(f"top level of {self.config_file} must be a mapping")

                self._config = self._merge_configs(AppConfig(), user_config)
                logger.debug(f"Loaded configuration from {self.config_file}")
            else:
                self._config = AppConfig()
                self.save_config()
                logger.info(f"Created default configuration at {self.config_file}")
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config: {e}, using defaults")
            self._config = AppConfig()
        self._validate(self._config)

    def save_config(self) -> None:
        """Save current configuration to YAML file."""
        try:
            with open(self.config_file, 'w') as f:
                yaml.dump(asdict(self._config), f, default_flow_style=False, indent=2)
            logger.debug(f"Saved configuration to {self.config_file}")
        except OSError as e:
            logger.error(f"Failed to save config: {e}")

    def get_config(self) -> AppConfig:
        """Get current configuration."""
        return self._config

    def _merge_configs(self, default: AppConfig, user: Dict[str, Any]) -> AppConfig:
        """Merge user config with defaults."""
        for section in ('keybindings', 'sampler', 'engine', 'logging'):
            if isinstance(user.get(section), dict):
                self._merge_dataclass(getattr(default, section), user[section])
        if isinstance(user.get('ui'), dict):
            ui = dict(user['ui'])
            theme = ui.pop('color_theme', None)
            self._merge_dataclass(default.ui, ui)
            if isinstance(theme, dict):
                self._merge_dataclass(default.ui.color_theme, theme)
        return default

    def _merge_dataclass(self, obj: Any, updates: Dict[str, Any]) -> None:
        """Merge updates into dataclass object."""
        for key, value in updates.items():
            if hasattr(obj, key):
                setattr(obj, key, value)
            else:
                logger.warning(f"Ignoring unknown config key: {key}")

    def _validate(self, config: AppConfig) -> None:
        sampler = config.sampler
        defaults = SamplerConfig()
        try:
            sampler.interval = float(sampler.interval)
            sampler.stats_timeout = float(sampler.stats_timeout)
            sampler.max_in_flight = int(sampler.max_in_flight)
        except (TypeError, ValueError):
            logger.error("Invalid sampler settings, using defaults")
            config.sampler = sampler = SamplerConfig()

        if sampler.interval <= 0:
            logger.warning(f"sampler.interval must be positive, using {defaults.interval}")
            sampler.interval = defaults.interval
        if sampler.max_in_flight < 1:
            logger.warning(f"sampler.max_in_flight must be >= 1, using {defaults.max_in_flight}")
            sampler.max_in_flight = defaults.max_in_flight
        if sampler.stats_timeout <= 0 or sampler.stats_timeout >= sampler.interval:
            clamped = round(sampler.interval * 0.8, 3)
            logger.warning(
                f"sampler.stats_timeout={sampler.stats_timeout} must be below interval "
                f"{sampler.interval}, using {clamped}"
            )
            sampler.stats_timeout = clamped

        # YAML reads `up: 1` as an int
        key_defaults = KeyBindings()
        for action, value in vars(config.keybindings).items():
            if isinstance(value, str):
                continue
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                setattr(config.keybindings, action, str(value))
            else:
                default = getattr(key_defaults, action)
                logger.warning(f"keybindings.{action}={value!r} is not a key, using {default!r}")
                setattr(config.keybindings, action, default)

        try:
            config.ui.refresh_interval = max(10, int(config.ui.refresh_interval))
        except (TypeError, ValueError):
            config.ui.refresh_interval = UIConfig().refresh_interval

    def get_key_binding(self, action: str) -> str:
        """Get key binding for action."""
        return getattr(self._config.keybindings, action, '')

    def get_log_level(self) -> str:
        """Get configured log level."""
        return str(self._config.logging.level).upper()

    def get_custom_log_path(self) -> Optional[str]:
        """Get custom log file path if configured."""
        return self._config.logging.file_path

    def get_refresh_interval(self) -> int:
        """Get UI refresh interval in milliseconds."""
        return self._config.ui.refresh_interval


# Global config instance
config_manager = ConfigManager()
