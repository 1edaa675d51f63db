"""Process configuration.

Loads configuration and provides typed access to settings.

Priority (highest to lowest):
1. Environment variables (DAYBOOK_*), including a .env file
2. YAML config file (daybook.yaml or DAYBOOK_CONFIG)
3. Defaults

Dashboard settings that change at runtime (profit rate, currency) live in
the ledger, not here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..core.business_day import DEFAULT_ROLLOVER_RULE, RolloverRule, parse_rollover_rule
from ..core.time import DEFAULT_TIMEZONE, resolve_timezone
from ..core.validation import InvalidConfig

__all__ = [
    "ConfigError",
    "Settings",
    "generate_example_env",
    "get_settings",
    "load_env_file",
    "load_yaml_config",
    "load_settings",
]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class Settings:
    """Settings for a Daybook process.

    Attributes
    ----------
    db_path : Path
        SQLite ledger file
    timezone : str
        Restaurant timezone (IANA name)
    rollover_rule : RolloverRule
        Business-day rule applied on every write path
    log_level : str
        Logging level
    log_dir : Path | None
        Directory for JSONL logs (console only when None)
    """

    db_path: Path = Path("daybook.db")
    timezone: str = DEFAULT_TIMEZONE
    rollover_rule: RolloverRule = DEFAULT_ROLLOVER_RULE
    log_level: str = "INFO"
    log_dir: Path | None = None

    def __post_init__(self):
        """Validate settings after initialization."""
        if isinstance(self.db_path, str):
            self.db_path = Path(self.db_path)
        if self.log_dir and isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)

        if not str(self.db_path):
            raise ConfigError("DAYBOOK_DB_PATH must not be empty")

        try:
            resolve_timezone(self.timezone)
            self.rollover_rule = parse_rollover_rule(self.rollover_rule)
        except InvalidConfig as exc:
            raise ConfigError(str(exc)) from exc

        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"DAYBOOK_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}")

    @classmethod
    def from_env(cls, env_file: Path | str | None = None, config_file: Path | str | None = None) -> Settings:
        """Load settings from environment.

        Loads the .env file if present, then the YAML config file if
        present; environment variables win over the YAML file.

        Parameters
        ----------
        env_file
            Path to .env file (default: .env in current directory)
        config_file
            Path to YAML config (default: DAYBOOK_CONFIG or daybook.yaml)

        Raises
        ------
        ConfigError
            If settings are invalid
        """
        if env_file is None:
            env_file = Path(".env")

        if isinstance(env_file, str):
            env_file = Path(env_file)

        if env_file.exists():
            load_env_file(env_file)

        if config_file is None:
            config_file = Path(os.environ.get("DAYBOOK_CONFIG", "daybook.yaml"))
        file_values = load_yaml_config(Path(config_file)) if Path(config_file).exists() else {}

        def pick(env_key: str, file_key: str, default: Any) -> Any:
            if os.environ.get(env_key):
                return os.environ[env_key]
            value = file_values.get(file_key)
            return default if value is None else value

        log_dir = pick("DAYBOOK_LOG_DIR", "log_dir", None)
        return cls(
            db_path=Path(pick("DAYBOOK_DB_PATH", "db_path", "daybook.db")),
            timezone=str(pick("DAYBOOK_TIMEZONE", "timezone", DEFAULT_TIMEZONE)),
            rollover_rule=pick("DAYBOOK_ROLLOVER_RULE", "rollover_rule", DEFAULT_ROLLOVER_RULE.value),
            log_level=str(pick("DAYBOOK_LOG_LEVEL", "log_level", "INFO")),
            log_dir=Path(log_dir) if log_dir else None,
        )


SETTINGS_KEYS = ("db_path", "timezone", "rollover_rule", "log_level", "log_dir")


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load the YAML config file.

    Raises
    ------
    ConfigError
        If the file is not valid YAML, not a mapping, or has unknown keys
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    unknown = sorted(set(data) - set(SETTINGS_KEYS))
    if unknown:
        raise ConfigError(f"Unknown keys in {path}: {', '.join(unknown)}")
    return data


def load_env_file(env_file: Path) -> None:
    """Load environment variables from .env file.

    Variables already set in the environment are not overridden.
    """
    with open(env_file, encoding="utf-8") as f:
        for line in f:
            line = line.strip()

            # Skip comments and empty lines
            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                # Remove quotes
                if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]

                os.environ.setdefault(key, value)


# Global settings instance
_settings: Settings | None = None


def load_settings(env_file: Path | str | None = None) -> Settings:
    """Load settings from environment and keep them for get_settings()."""
    global _settings
    _settings = Settings.from_env(env_file)
    return _settings


def get_settings() -> Settings:
    """Get current settings, loading them from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def generate_example_env(output_path: Path | None = None) -> str:
    """Generate example .env file with all settings."""
    example = """# Daybook configuration
# Copy this to .env and adjust values

# SQLite ledger file (default: daybook.db)
DAYBOOK_DB_PATH=daybook.db

# Restaurant timezone (default: Asia/Karachi)
DAYBOOK_TIMEZONE=Asia/Karachi

# Business-day rule for every sale write (default: trading_window)
# trading_window: trading day runs 14:00-02:00
# cutoff_2am:     day rolls over at 02:00
DAYBOOK_ROLLOVER_RULE=trading_window

# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
DAYBOOK_LOG_LEVEL=INFO

# JSONL log directory (optional, console only if not set)
# DAYBOOK_LOG_DIR=logs

# YAML config file with the same keys in lower case (default: daybook.yaml)
# DAYBOOK_CONFIG=daybook.yaml
"""

    if output_path:
        output_path.write_text(example, encoding="utf-8")

    return example
