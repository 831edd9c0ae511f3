"""Three-phase upload: presign, direct PUT, finalize.

This module provides:
- UploadOrchestrator: Validates a file and drives it through the protocol
- progress_percent: Progress computation used for the PUT phase
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import AsyncGenerator, Callable, Iterator, Sequence
from typing import Any

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
    failure_message,
)
from filerelay.client.transfer.registry import CancellationRegistry
from filerelay.client.transfer.types import (
    FileDescriptor,
    PresignResult,
    ProgressCallback,
    TransferError,
    TransferResult,
)
from filerelay.client.transfer.urls import UrlResolver
from filerelay.client.transfer.validation import (
    DEFAULT_TYPE_RULES,
    TypeRule,
    format_file_size,
    validate,
)
from filerelay.core.config import DEFAULT_LIMITS, Credentials, TransferLimits

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "File upload failed."


def progress_percent(sent: int, total: int) -> int:
    """Get upload progress as an integer percent, rounding halves up."""
    if total <= 0:
        return 100
    return int(math.floor(sent * 100 / total + 0.5))


class UploadOrchestrator:
    """Drives validated files through presign, PUT and finalize.

    Usage:
        orchestrator = UploadOrchestrator(client, registry, resolver)
        result = await orchestrator.upload(
            FileDescriptor.from_path("photo.png"),
            on_progress=lambda pct: print(pct),
            credentials=Credentials(token, session_id),
        )
        if result.success:
            print(result.data["file"]["url"])
    """

    def __init__(
        self,
        client: HTTPClient,
        registry: CancellationRegistry,
        resolver: UrlResolver,
        rules: Sequence[TypeRule] = DEFAULT_TYPE_RULES,
        limits: TransferLimits = DEFAULT_LIMITS,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: HTTP client for the origin API and the presigned PUT.
            registry: Registry of in-flight transfers.
            resolver: Builds the final file URL.
            rules: Ordered type rules for validation.
            limits: Size ceiling and streaming chunk size.
        """
        self._client = client
        self._registry = registry
        self._resolver = resolver
        self._rules = tuple(rules)
        self._limits = limits

    async def upload(
        self,
        file: FileDescriptor | None,
        on_progress: ProgressCallback | None = None,
        credentials: Credentials | None = None,
        on_task: Callable[[TransferTask], None] | None = None,
    ) -> TransferResult:
        """Upload a file.

        Args:
            file: File to upload.
            on_progress: Called with the percent sent during the PUT phase.
            credentials: Origin credentials for presign and finalize.
            on_task: Called with the registered task before the first
                network call, so the caller can cancel it by id.

        Returns:
            TransferResult; on success data["file"]["url"] holds the file URL.

        Raises:
            AuthenticationError: If the origin answers 401 at any phase.
        """
        validation = validate(file, self._rules, self._limits.max_file_size)
        if not validation.success or file is None:
            message = validation.message or UPLOAD_FAILED_MESSAGE
            logger.warning(f"Upload rejected: {message}")
            return TransferResult(
                success=False,
                message=message,
                error=ErrorClass(ErrorKind.VALIDATION, detail=message),
            )

        task = TransferTask(
            filename=file.name,
            transfer_type=TransferType.UPLOAD,
            size=file.size,
            mimetype=file.mimetype,
        )
        self._registry.register(task.id, task.handle)
        try:
            if on_task:
                on_task(task)
            return await self._run(task, file, on_progress, credentials)
        finally:
            self._registry.discard(task.id)

    async def _run(
        self,
        task: TransferTask,
        file: FileDescriptor,
        on_progress: ProgressCallback | None,
        credentials: Credentials | None,
    ) -> TransferResult:
        logger.info(f"Uploading {file.name} ({format_file_size(file.size)}) as task {task.id}")
        try:
            task.transition_to(TransferState.PRESIGNING)
            presign = PresignResult.from_dict(
                await task.handle.run(
                    self._client.presign(file.name, file.mimetype, file.size, credentials)
                )
            )

            task.transition_to(TransferState.UPLOADING)
            headers = {
                **presign.headers,
                "Content-Type": file.mimetype,
                "Content-Length": str(file.size),
            }
            async with contextlib.aclosing(self._stream(file, on_progress)) as body:
                await task.handle.run(
                    self._client.put_object(presign.upload_url, body, headers)
                )

            task.transition_to(TransferState.FINALIZING)
            response = await task.handle.run(
                self._client.finalize(presign.upload_id, credentials)
            )
        except AuthenticationError:
            task.transition_to(TransferState.FAILED)
            raise
        except (APIError, TransferError, httpx.HTTPError, OSError) as e:
            return self._failed(task, classify(e), e)

        return self._finalized(task, response)

    def _finalized(self, task: TransferTask, response: httpx.Response) -> TransferResult:
        """Turn the finalize response into the caller's result."""
        try:
            body: Any = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict) or not body.get("success"):
            detail = body.get("message") if isinstance(body, dict) else None
            error = ErrorClass(
                ErrorKind.SERVER_ERROR,
                status_code=response.status_code,
                detail=detail or UPLOAD_FAILED_MESSAGE,
            )
            task.transition_to(TransferState.FAILED)
            logger.warning(f"Upload {task.id} rejected at finalize: {error.detail}")
            return TransferResult(
                success=False,
                message=error.detail or UPLOAD_FAILED_MESSAGE,
                error=error,
                task_id=task.id,
            )

        file_data = dict(body.get("file") or {})
        file_data["url"] = self._resolver.resource_url(file_data.get("filename"), "preview")
        task.transition_to(TransferState.COMPLETED)
        logger.info(f"Upload {task.id} completed: {file_data.get('filename')}")
        return TransferResult(
            success=True,
            message="Upload complete.",
            data={**body, "file": file_data},
            task_id=task.id,
        )

    def _failed(self, task: TransferTask, error: ErrorClass, exc: Exception) -> TransferResult:
        if error.kind is ErrorKind.CANCELED:
            task.transition_to(TransferState.CANCELED)
            logger.info(f"Upload {task.id} canceled")
        else:
            task.transition_to(TransferState.FAILED)
            logger.warning(f"Upload {task.id} failed ({error.kind.value}): {exc}")
        return TransferResult(
            success=False,
            message=failure_message(error, "upload"),
            error=error,
            task_id=task.id,
        )

    async def _stream(
        self, file: FileDescriptor, on_progress: ProgressCallback | None
    ) -> AsyncGenerator[bytes, None]:
        """Yield the file body, reporting progress after each chunk is sent."""
        sent = 0
        chunks = self._chunks(file)
        with contextlib.closing(chunks):
            for chunk in chunks:
                yield chunk
                sent += len(chunk)
                if on_progress and file.size:
                    on_progress(progress_percent(sent, file.size))
                await asyncio.sleep(0)

    def _chunks(self, file: FileDescriptor) -> Iterator[bytes]:
        chunk_size = self._limits.chunk_size
        if file.content is not None:
            view = memoryview(file.content)
            for start in range(0, len(view), chunk_size):
                yield bytes(view[start : start + chunk_size])
            return
        if file.path is None:
            raise TransferError(f"No content for {file.name}")
        with file.path.open("rb") as f:
            while chunk := f.read(chunk_size):
                yield chunk
