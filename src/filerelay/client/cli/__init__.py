"""Command-line interface for filerelay.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Save server URL, credentials and download directory
- check: Validate a file against the upload rules
- upload: Upload a file
- download: Download a stored file
- url: Print the preview or download URL of a stored file
"""

from __future__ import annotations

import logging
import sys

import click

from filerelay.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_credentials,
    get_download_dir,
    get_server_config,
    load_config,
    save_config,
)
from filerelay.client.cli.configure import configure
from filerelay.client.cli.transfer import check, download, upload, url

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool) -> None:
    """Configure the filerelay logger to write to stderr.

    Args:
        verbose: Log everything from DEBUG up instead of warnings only.
    """
    root_logger = logging.getLogger("filerelay")
    root_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(stderr_handler)
    root_logger.propagate = False


@click.group()
@click.version_option(package_name="filerelay")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """filerelay - upload and download files through presigned URLs."""
    setup_logging(verbose)


# Configuration commands
cli.add_command(configure)

# Transfer commands
cli.add_command(check)
cli.add_command(upload)
cli.add_command(download)
cli.add_command(url)

__all__ = [
    "cli",
    "get_config_dir",
    "get_config_file",
    "get_credentials",
    "get_download_dir",
    "get_server_config",
    "load_config",
    "save_config",
    "setup_logging",
]
