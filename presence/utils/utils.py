"""Utility functions for the rich presence config source."""

import os
import sys
from pathlib import Path
from typing import Any

from presence.services.config_source import SourceConfig
from presence.sources.mode_selector import SourceMode, select_mode


def _echo(message: str = "") -> None:
    # stdout carries the update stream
    print(message, file=sys.stderr)


def parse_boolean_env(env_var: str, default: str = "false") -> bool:
    """
    Parse a boolean environment variable with consistent behavior.

    Args:
        env_var: Environment variable name
        default: Default value if env var is not set

    Returns:
        Boolean value
    """
    value = os.getenv(env_var, default).lower()
    return value in ("true", "1", "yes", "on")


def get_environment_config() -> dict[str, Any]:
    """
    Get all environment configuration values used by the runner.

    Returns:
        Dictionary of configuration values
    """
    return {
        "log_level": os.getenv("LOG_LEVEL", "info").lower(),
        "update_queue_size": int(os.getenv("UPDATE_QUEUE_SIZE", "0")),
        "print_updates": parse_boolean_env("PRINT_UPDATES", "true"),
    }


def build_source_config(path: str | Path | None = None, debounce_delay: float | None = None) -> SourceConfig:
    """
    Build a SourceConfig from the environment, with command-line overrides.

    Args:
        path: Config path overriding PRESENCE_CONFIG
        debounce_delay: Debounce delay overriding WATCH_DEBOUNCE_DELAY

    Returns:
        The source configuration
    """
    config = SourceConfig(log_level=os.getenv("LOG_LEVEL", "info").upper())
    if path is not None:
        config.config_path = Path(os.path.expandvars(os.path.expanduser(str(path))))
    if debounce_delay is not None:
        config.debounce_delay = debounce_delay
    return config


def print_startup_info(config: SourceConfig, env_config: dict[str, Any]) -> None:
    """
    Print the configuration the runner starts with.

    Args:
        config: Source configuration
        env_config: Environment configuration
    """
    path = Path(config.config_path)

    _echo("Starting rich presence config source...")
    _echo(f"Config path: {path}")

    if not path.exists():
        _echo(f"⚠️  Warning: Config path not found at {path}")
    elif select_mode(path) is SourceMode.EXECUTABLE:
        _echo("🚀 Config is executable - updates are read from its output, one JSON message per line")
    else:
        _echo("📄 Config is a plain file - it is loaded as a single JSON message")
    _echo()

    _echo("Configuration:")
    _echo(f"  PRESENCE_CONFIG={path}")
    _echo(f"  WATCH_DEBOUNCE_DELAY={config.debounce_delay}")
    _echo(f"  PROCESS_LINE_LIMIT={config.line_limit}")
    _echo(f"  UPDATE_QUEUE_SIZE={env_config['update_queue_size']}")
    _echo(f"  LOG_LEVEL={env_config['log_level']}")
    _echo(f"  PRINT_UPDATES={env_config['print_updates']}")
    _echo()
