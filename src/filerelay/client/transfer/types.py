"""Shared types and dataclasses for transfer operations.

This module provides:
- TransferError, PresignError, TransferCancelledError: Exception classes
- FileDescriptor: Immutable description of a file to upload
- PresignResult: Destination issued by the presign call
- TransferResult: Outcome returned to callers
- Type aliases for callbacks
"""

from __future__ import annotations

import mimetypes
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from filerelay.client.transfer.errors import ErrorClass, ErrorKind


class TransferError(Exception):
    """Base exception for transfer errors."""


class PresignError(TransferError):
    """The presign call succeeded but did not return a usable destination."""


class TransferCancelledError(TransferError):
    """Raised when a transfer is cancelled through its handle."""


# Type alias for progress callback (percent 0-100)
ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class FileDescriptor:
    """A candidate file for upload.

    Size and MIME type are fixed at creation. The content comes either
    from a local path or from an in-memory payload.

    Attributes:
        name: File name as it will be presented to the server.
        size: Size in bytes.
        mimetype: Declared MIME type.
        path: Local file to stream during the PUT phase.
        content: In-memory payload, used when no path is given.
    """

    name: str
    size: int
    mimetype: str
    path: Path | None = None
    content: bytes | None = field(default=None, repr=False)

    @classmethod
    def from_path(cls, path: Path | str, mimetype: str | None = None) -> FileDescriptor:
        """Describe a local file.

        Args:
            path: Path to the file.
            mimetype: MIME type override. Guessed from the name if omitted.

        Returns:
            FileDescriptor for the file.
        """
        path = Path(path)
        if mimetype is None:
            mimetype = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, size=path.stat().st_size, mimetype=mimetype, path=path)

    @classmethod
    def from_bytes(cls, name: str, content: bytes, mimetype: str) -> FileDescriptor:
        """Describe an in-memory payload."""
        return cls(name=name, size=len(content), mimetype=mimetype, content=content)


@dataclass(frozen=True)
class PresignResult:
    """Pre-authorized destination for a single upload."""

    upload_url: str
    upload_id: str
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> PresignResult:
        """Create from the presign response body.

        Raises:
            PresignError: If uploadUrl or uploadId is missing.
        """
        data = data or {}
        upload_url = data.get("uploadUrl")
        upload_id = data.get("uploadId")
        if not upload_url or not upload_id:
            raise PresignError("Could not create an upload URL.")
        headers = data.get("headers") or {}
        return cls(
            upload_url=str(upload_url),
            upload_id=str(upload_id),
            headers={str(k): str(v) for k, v in headers.items()},
        )


@dataclass
class TransferResult:
    """Result of an upload, download or cancellation request.

    Attributes:
        success: Whether the operation succeeded.
        message: Human-readable message for the user.
        data: Optional payload (finalize body, saved file info, ...).
        error: Classification of the failure, if any.
        task_id: Identifier of the transfer attempt, if one was registered.
    """

    success: bool
    message: str = ""
    data: dict[str, Any] | None = None
    error: ErrorClass | None = None
    task_id: str | None = None

    @property
    def error_kind(self) -> ErrorKind | None:
        """Get the error kind, if the result carries an error."""
        return self.error.kind if self.error else None

    @property
    def retryable(self) -> bool:
        """Check whether the caller may retry this operation."""
        return bool(self.error and self.error.retryable)
