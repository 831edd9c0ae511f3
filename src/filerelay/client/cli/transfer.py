"""Transfer commands for the filerelay CLI.

Commands:
- check: Validate a file without uploading it
- upload: Upload a file through presign, PUT and finalize
- download: Download a stored file
- url: Print the preview or download URL of a stored file
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any

import click

from filerelay.client.api import AuthenticationError
from filerelay.client.cli.config import (
    get_credentials,
    get_download_dir,
    get_server_config,
    load_config,
)
from filerelay.client.transfer import (
    FileDescriptor,
    FileTransferService,
    TransferResult,
    UrlResolver,
    format_file_size,
    get_file_type,
    retry_transfer,
    validate,
)


def _build_service(download_dir: Path | None = None) -> FileTransferService:
    """Build the service from saved configuration, or exit if not configured."""
    config = load_config()
    server_config = get_server_config(config)
    if server_config is None:
        click.echo("Error: No server configured. Run 'filerelay configure' first.", err=True)
        sys.exit(1)
    return FileTransferService(
        server_config,
        credentials=get_credentials(config),
        download_dir=download_dir or get_download_dir(config),
    )


class ProgressReporter:
    """Feeds upload percentages into a click progress bar.

    The bar is rewound when a retried attempt starts over from 0%.
    """

    def __init__(self, bar: Any) -> None:
        self._bar = bar
        self._shown = 0

    def __call__(self, percent: int) -> None:
        if percent > self._shown:
            self._bar.update(percent - self._shown)
            self._shown = percent

    def reset(self) -> None:
        """Rewind the bar to 0%."""
        if self._shown:
            self._bar.update(-self._shown)
            self._shown = 0


def _report(result: TransferResult) -> None:
    """Print a failed result and exit with status 1."""
    if result.success:
        return
    click.echo(f"Error: {result.message}", err=True)
    if result.retryable:
        click.echo("This error is temporary; try again later.", err=True)
    sys.exit(1)


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--mimetype", default=None, help="MIME type (default: guessed from name).")
def check(file: Path, mimetype: str | None) -> None:
    """Validate FILE against the upload rules without uploading it."""
    descriptor = FileDescriptor.from_path(file, mimetype)
    result = validate(descriptor)
    if not result.success:
        click.echo(f"Error: {result.message}", err=True)
        sys.exit(1)
    click.echo(
        f"OK: {descriptor.name} ({get_file_type(descriptor.name)}, "
        f"{format_file_size(descriptor.size)})"
    )


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--mimetype", default=None, help="MIME type (default: guessed from name).")
@click.option(
    "--retries",
    default=0,
    type=click.IntRange(min=0),
    help="Retry this many times on temporary errors.",
)
@click.option("--no-progress", is_flag=True, help="Disable the progress bar.")
def upload(file: Path, mimetype: str | None, retries: int, no_progress: bool) -> None:
    """Upload FILE to the configured server."""
    descriptor = FileDescriptor.from_path(file, mimetype)
    service = _build_service()

    async def run() -> TransferResult:
        async with service:
            if no_progress:
                return await retry_transfer(
                    lambda: service.upload(descriptor), max_attempts=retries + 1
                )

            with click.progressbar(length=100, label=descriptor.name) as bar:
                progress = ProgressReporter(bar)
                return await retry_transfer(
                    lambda: service.upload(descriptor, on_progress=progress),
                    max_attempts=retries + 1,
                    on_retry=lambda attempt, result: progress.reset(),
                )

    try:
        result = asyncio.run(run())
    except AuthenticationError as e:
        click.echo(f"Error: {e} Run 'filerelay configure' with a new token.", err=True)
        sys.exit(1)

    _report(result)
    click.echo(f"Uploaded: {result.data['file']['url'] if result.data else descriptor.name}")


@click.command()
@click.argument("filename")
@click.option("--name", default=None, help="Save-as name if the server sends none.")
@click.option(
    "--dest",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to save into (default: configured download directory).",
)
def download(filename: str, name: str | None, dest: Path | None) -> None:
    """Download the stored file FILENAME."""
    service = _build_service(dest)

    async def run() -> TransferResult:
        async with service:
            return await service.download(filename, display_name=name)

    try:
        result = asyncio.run(run())
    except AuthenticationError as e:
        click.echo(f"Error: {e} Run 'filerelay configure' with a new token.", err=True)
        sys.exit(1)

    _report(result)
    data = result.data or {}
    click.echo(f"Saved: {data.get('path')} ({format_file_size(data.get('size'))})")


@click.command()
@click.argument("filename")
@click.option("--download", "for_download", is_flag=True, help="Print the download URL.")
@click.option("--auth/--no-auth", default=False, help="Append token and session id.")
def url(filename: str, for_download: bool, auth: bool) -> None:
    """Print the URL of the stored file FILENAME."""
    config = load_config()
    server_config = get_server_config(config)
    if server_config is None:
        click.echo("Error: No server configured. Run 'filerelay configure' first.", err=True)
        sys.exit(1)

    resolver = UrlResolver(server_config.server_url)
    if for_download:
        click.echo(resolver.resource_url(filename, "download"))
    else:
        credentials = get_credentials(config)
        click.echo(resolver.preview_url({"filename": filename}, credentials, with_auth=auth))
