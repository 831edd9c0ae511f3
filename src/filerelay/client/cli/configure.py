"""Configuration command for the filerelay CLI.

Commands:
- configure: Save server URL, credentials and download directory
"""

from __future__ import annotations

import click

from filerelay.client.cli.config import get_config_file, load_config, save_config


@click.command()
@click.option(
    "--server",
    required=True,
    help="Server URL (e.g., http://localhost:8080).",
)
@click.option("--token", default=None, help="Authentication token.")
@click.option("--session-id", default=None, help="Session identifier paired with the token.")
@click.option(
    "--download-dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Directory where downloads are saved (default: current directory).",
)
def configure(
    server: str,
    token: str | None,
    session_id: str | None,
    download_dir: str | None,
) -> None:
    """Save connection settings for later commands."""
    config = load_config()
    config["server_url"] = server.rstrip("/")
    if token is not None:
        config["auth_token"] = token
    if session_id is not None:
        config["session_id"] = session_id
    if download_dir is not None:
        config["download_dir"] = download_dir
    save_config(config)

    click.echo(f"Server: {config['server_url']}")
    if not (config.get("auth_token") and config.get("session_id")):
        click.echo("Warning: no complete credentials saved; requests will be anonymous.", err=True)
    click.echo(f"Configuration saved to {get_config_file()}")
