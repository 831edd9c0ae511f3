"""Configuration utilities for the filerelay CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path

from filerelay.core.config import Credentials, ServerConfig


def get_config_dir() -> Path:
    """Get the configuration directory for filerelay.

    Returns:
        Path to ~/.filerelay or equivalent.
    """
    return Path.home() / ".filerelay"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, str]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, str]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_download_dir(config: dict[str, str] | None = None) -> Path:
    """Get the download directory.

    Returns:
        Configured directory, or the current working directory.
    """
    config = load_config() if config is None else config
    if config.get("download_dir"):
        return Path(config["download_dir"]).expanduser().resolve()
    return Path.cwd()


def get_server_config(config: dict[str, str]) -> ServerConfig | None:
    """Build a ServerConfig from saved settings, or None if not configured."""
    if not config.get("server_url"):
        return None
    return ServerConfig(server_url=config["server_url"])


def get_credentials(config: dict[str, str]) -> Credentials:
    """Build Credentials from saved settings."""
    return Credentials(
        token=config.get("auth_token") or None,
        session_id=config.get("session_id") or None,
    )
