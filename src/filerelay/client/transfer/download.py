"""Download: existence probe, bounded fetch, save.

This module provides:
- DownloadOrchestrator: Probes, fetches and saves a stored file
- resolve_filename: Save-as name from a Content-Disposition header
- FileSaver / DirectorySaver: The save action run on a materialized payload
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import unquote

import httpx

from filerelay.client.api import APIError, AuthenticationError, HTTPClient
from filerelay.client.transfer.domain.transfers import (
    TransferState,
    TransferTask,
    TransferType,
)
from filerelay.client.transfer.errors import (
    ErrorClass,
    ErrorKind,
    classify,
    classify_status,
    failure_message,
    status_message,
)
from filerelay.client.transfer.registry import CancellationRegistry
from filerelay.client.transfer.types import TransferError, TransferResult
from filerelay.client.transfer.urls import UrlResolver
from filerelay.core.config import DEFAULT_LIMITS, Credentials, TransferLimits

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
PREPARE_FAILED_MESSAGE = "An error occurred while preparing the download."

# Tried in order: RFC 5987 extended syntax, quoted, bare
DISPOSITION_PATTERNS = (
    re.compile(r"filename\*=UTF-8''([^;]+)", re.IGNORECASE),
    re.compile(r'filename="([^"]+)"', re.IGNORECASE),
    re.compile(r"filename=([^;]+)", re.IGNORECASE),
)


def resolve_filename(content_disposition: str | None, fallback: str) -> str:
    """Get the save-as name for a download.

    Args:
        content_disposition: Content-Disposition header value, if any.
        fallback: Name used when the header is absent or has no filename.

    Returns:
        Percent-decoded file name.
    """
    if content_disposition:
        for pattern in DISPOSITION_PATTERNS:
            match = pattern.search(content_disposition)
            if match:
                return unquote(match.group(1).strip())
    return fallback


def safe_filename(name: str, fallback: str) -> str:
    """Strip directory parts so a saved file stays in its target directory."""
    base = PurePosixPath(name.replace("\\", "/")).name
    return base if base not in ("", ".", "..") else fallback


class FileSaver(Protocol):
    """Save action run on a materialized download."""

    def save(self, source: Path, filename: str, content_type: str) -> Path:
        """Save the payload at source under filename and return the result path."""
        ...


class DirectorySaver:
    """Copies downloads into a directory."""

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    def save(self, source: Path, filename: str, content_type: str) -> Path:
        self._directory.mkdir(parents=True, exist_ok=True)
        target = self._directory / filename
        shutil.copyfile(source, target)
        logger.debug(f"Saved {filename} ({content_type}) to {target}")
        return target


class DownloadOrchestrator:
    """Probes, fetches and saves stored files.

    The HEAD probe gives precise NotFound/Forbidden results before any body
    is transferred; only a 200 probe leads to the GET.
    """

    def __init__(
        self,
        client: HTTPClient,
        registry: CancellationRegistry,
        resolver: UrlResolver,
        saver: FileSaver,
        limits: TransferLimits = DEFAULT_LIMITS,
        temp_dir: Path | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: HTTP client for the origin API.
            registry: Registry of in-flight transfers.
            resolver: Builds the download URL.
            saver: Save action for fetched payloads.
            limits: Release delay for materialized payloads.
            temp_dir: Directory for transient payload files.
        """
        self._client = client
        self._registry = registry
        self._resolver = resolver
        self._saver = saver
        self._limits = limits
        self._temp_dir = temp_dir
        self._releases: set[asyncio.Task[None]] = set()

    async def download(
        self,
        filename: str,
        display_name: str | None = None,
        credentials: Credentials | None = None,
        on_task: Callable[[TransferTask], None] | None = None,
    ) -> TransferResult:
        """Download a stored file.

        Args:
            filename: Stored file name.
            display_name: Save-as name used when the server sends none.
            credentials: Origin credentials.
            on_task: Called with the registered task before the first
                network call.

        Returns:
            TransferResult; on success data holds the saved path and name.

        Raises:
            AuthenticationError: If the origin answers 401 at any phase.
        """
        if not filename:
            return TransferResult(
                success=False,
                message="No file specified.",
                error=ErrorClass(ErrorKind.VALIDATION, detail="No file specified."),
            )

        task = TransferTask(filename=filename, transfer_type=TransferType.DOWNLOAD)
        self._registry.register(task.id, task.handle)
        try:
            if on_task:
                on_task(task)
            return await self._run(task, display_name or filename, credentials)
        finally:
            self._registry.discard(task.id)

    async def _run(
        self,
        task: TransferTask,
        fallback_name: str,
        credentials: Credentials | None,
    ) -> TransferResult:
        url = self._resolver.resource_url(task.filename, "download")
        logger.info(f"Downloading {task.filename} as task {task.id}")
        try:
            status = await task.handle.run(self._client.probe(url, credentials))
            if status != 200:
                return self._probe_failed(task, status)

            task.transition_to(TransferState.FETCHING)
            response = await task.handle.run(self._client.fetch(url, credentials))

            task.transition_to(TransferState.SAVING)
            content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
            save_name = safe_filename(
                resolve_filename(response.headers.get("content-disposition"), fallback_name),
                fallback_name,
            )
            saved_path = self._materialize_and_save(response.content, save_name, content_type)
        except AuthenticationError:
            task.transition_to(TransferState.FAILED)
            raise
        except (APIError, TransferError, httpx.HTTPError, TimeoutError, OSError) as e:
            return self._failed(task, classify(e), e)

        task.transition_to(TransferState.COMPLETED)
        logger.info(f"Download {task.id} saved as {saved_path}")
        return TransferResult(
            success=True,
            message="Download complete.",
            data={
                "filename": save_name,
                "path": str(saved_path),
                "content_type": content_type,
                "size": len(response.content),
            },
            task_id=task.id,
        )

    def _probe_failed(self, task: TransferTask, status: int) -> TransferResult:
        error = classify_status(status)
        if status in (403, 404):
            message = status_message(status)
        else:
            message = PREPARE_FAILED_MESSAGE
        task.transition_to(TransferState.FAILED)
        logger.warning(f"Download {task.id} probe returned {status}")
        return TransferResult(success=False, message=message, error=error, task_id=task.id)

    def _failed(self, task: TransferTask, error: ErrorClass, exc: Exception) -> TransferResult:
        if error.kind is ErrorKind.CANCELED:
            task.transition_to(TransferState.CANCELED)
            logger.info(f"Download {task.id} canceled")
        else:
            task.transition_to(TransferState.FAILED)
            logger.warning(f"Download {task.id} failed ({error.kind.value}): {exc}")
        return TransferResult(
            success=False,
            message=failure_message(error, "download"),
            error=error,
            task_id=task.id,
        )

    def _materialize_and_save(self, content: bytes, filename: str, content_type: str) -> Path:
        """Write the payload to a transient file, save it, schedule its release."""
        fd, name = tempfile.mkstemp(prefix="filerelay-", dir=self._temp_dir)
        transient = Path(name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            return self._saver.save(transient, filename, content_type)
        finally:
            self._schedule_release(transient)

    def _schedule_release(self, path: Path) -> None:
        release = asyncio.create_task(self._release_later(path))
        self._releases.add(release)
        release.add_done_callback(self._releases.discard)

    async def _release_later(self, path: Path) -> None:
        try:
            await asyncio.sleep(self._limits.release_delay)
        finally:
            path.unlink(missing_ok=True)

    async def wait_released(self) -> None:
        """Wait until every transient payload file has been released."""
        if self._releases:
            await asyncio.gather(*self._releases, return_exceptions=True)
