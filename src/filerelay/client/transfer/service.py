"""Transfer service wiring the orchestrators around one configuration.

Build one FileTransferService at startup and pass it to whatever needs
transfers; it owns the HTTP client and the cancellation registry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from filerelay.client.api import HTTPClient
from filerelay.client.transfer.domain.transfers import TransferTask
from filerelay.client.transfer.download import DirectorySaver, DownloadOrchestrator, FileSaver
from filerelay.client.transfer.registry import CancellationRegistry
from filerelay.client.transfer.types import FileDescriptor, ProgressCallback, TransferResult
from filerelay.client.transfer.upload import UploadOrchestrator
from filerelay.client.transfer.urls import UrlMode, UrlResolver
from filerelay.client.transfer.validation import (
    DEFAULT_TYPE_RULES,
    TypeRule,
    ValidationResult,
    validate,
)
from filerelay.core.config import DEFAULT_LIMITS, Credentials, ServerConfig, TransferLimits

logger = logging.getLogger(__name__)


class FileTransferService:
    """Upload, download, cancel and resolve URLs against one server.

    Usage:
        async with FileTransferService(ServerConfig("https://files.example.com"),
                                       credentials=Credentials(token, session_id)) as service:
            result = await service.upload(FileDescriptor.from_path("a.png"))
    """

    def __init__(
        self,
        config: ServerConfig,
        credentials: Credentials | None = None,
        download_dir: Path | str = ".",
        saver: FileSaver | None = None,
        rules: Sequence[TypeRule] = DEFAULT_TYPE_RULES,
        limits: TransferLimits = DEFAULT_LIMITS,
    ) -> None:
        """Initialize the service.

        Args:
            config: Server configuration.
            credentials: Default origin credentials for every call.
            download_dir: Directory used by the default saver.
            saver: Save action for downloads (defaults to DirectorySaver).
            rules: Ordered type rules for validation.
            limits: Transfer limits.
        """
        self._config = config
        self._credentials = credentials
        self._rules = tuple(rules)
        self._limits = limits
        self._client = HTTPClient(config)
        self.registry = CancellationRegistry()
        self.resolver = UrlResolver(config.server_url)
        self._uploads = UploadOrchestrator(
            self._client, self.registry, self.resolver, self._rules, limits
        )
        self._downloads = DownloadOrchestrator(
            self._client,
            self.registry,
            self.resolver,
            saver or DirectorySaver(download_dir),
            limits,
        )

    @property
    def config(self) -> ServerConfig:
        """Get the server configuration."""
        return self._config

    async def aclose(self) -> None:
        """Release pending download files and close the HTTP client."""
        await self._downloads.wait_released()
        await self._client.aclose()

    async def __aenter__(self) -> FileTransferService:
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.aclose()

    def validate(self, file: FileDescriptor | None) -> ValidationResult:
        """Validate a file without any network call."""
        return validate(file, self._rules, self._limits.max_file_size)

    async def upload(
        self,
        file: FileDescriptor | None,
        on_progress: ProgressCallback | None = None,
        credentials: Credentials | None = None,
        on_task: Callable[[TransferTask], None] | None = None,
    ) -> TransferResult:
        """Upload a file. See UploadOrchestrator.upload."""
        return await self._uploads.upload(
            file, on_progress, credentials or self._credentials, on_task
        )

    async def download(
        self,
        filename: str,
        display_name: str | None = None,
        credentials: Credentials | None = None,
        on_task: Callable[[TransferTask], None] | None = None,
    ) -> TransferResult:
        """Download a file. See DownloadOrchestrator.download."""
        return await self._downloads.download(
            filename, display_name, credentials or self._credentials, on_task
        )

    def cancel(self, task_id: str) -> TransferResult:
        """Cancel one in-flight transfer."""
        if self.registry.cancel(task_id):
            return TransferResult(success=True, message="Transfer canceled.", task_id=task_id)
        return TransferResult(
            success=False, message="No transfer found to cancel.", task_id=task_id
        )

    def cancel_all(self) -> TransferResult:
        """Cancel every in-flight transfer."""
        count = self.registry.cancel_all()
        return TransferResult(
            success=True,
            message=f"{count} transfer(s) canceled.",
            data={"canceled_count": count},
        )

    def file_url(self, filename: str | None, mode: UrlMode = "preview") -> str:
        """Get the view or download URL of a stored file."""
        return self.resolver.resource_url(filename, mode)

    def preview_url(
        self,
        file: Mapping[str, Any] | None,
        credentials: Credentials | None = None,
        with_auth: bool = True,
    ) -> str:
        """Get the preview URL, with auth query parameters if requested."""
        return self.resolver.preview_url(file, credentials or self._credentials, with_auth)
