"""File transfer against a presigned object store.

Architecture:
    FileTransferService → UploadOrchestrator / DownloadOrchestrator → HTTPClient

Components:
- **validation**: Accepts or rejects a file before any network call
- **errors**: Maps every failure into ErrorKind with a retryable flag
- **registry**: CancelHandle per transfer, CancellationRegistry by task id
- **upload**: presign → PUT → finalize, with progress and cancellation
- **download**: HEAD probe → GET (30 s) → save
- **urls**: Preview/download URL construction
- **retry**: Opt-in, caller-driven retry on retryable results

All public symbols are re-exported here.
"""

from filerelay.client.transfer.domain.transfers import (
    InvalidTransitionError,
    TransferState,
    TransferTask,
    TransferType,
)
from filerelay.client.transfer.download import (
    DirectorySaver,
    DownloadOrchestrator,
    FileSaver,
    resolve_filename,
)
from filerelay.client.transfer.errors import (
    ErrorClass,
    ErrorKind,
    classify,
    classify_status,
    failure_message,
    is_retryable_error,
    status_message,
)
from filerelay.client.transfer.registry import (
    CancelHandle,
    CancellationRegistry,
    new_task_id,
)
from filerelay.client.transfer.retry import retry_transfer
from filerelay.client.transfer.service import FileTransferService
from filerelay.client.transfer.types import (
    FileDescriptor,
    PresignError,
    PresignResult,
    ProgressCallback,
    TransferCancelledError,
    TransferError,
    TransferResult,
)
from filerelay.client.transfer.upload import UploadOrchestrator, progress_percent
from filerelay.client.transfer.urls import UrlResolver
from filerelay.client.transfer.validation import (
    DEFAULT_TYPE_RULES,
    TypeRule,
    ValidationResult,
    format_file_size,
    get_file_extension,
    get_file_type,
    validate,
)

__all__ = [
    # Types
    "FileDescriptor",
    "PresignError",
    "PresignResult",
    "ProgressCallback",
    "TransferCancelledError",
    "TransferError",
    "TransferResult",
    # Validation
    "DEFAULT_TYPE_RULES",
    "TypeRule",
    "ValidationResult",
    "format_file_size",
    "get_file_extension",
    "get_file_type",
    "validate",
    # Errors
    "ErrorClass",
    "ErrorKind",
    "classify",
    "classify_status",
    "failure_message",
    "is_retryable_error",
    "status_message",
    # Cancellation
    "CancelHandle",
    "CancellationRegistry",
    "new_task_id",
    # Domain
    "InvalidTransitionError",
    "TransferState",
    "TransferTask",
    "TransferType",
    # Orchestrators
    "DirectorySaver",
    "DownloadOrchestrator",
    "FileSaver",
    "UploadOrchestrator",
    "progress_percent",
    "resolve_filename",
    # URLs, retry, service
    "UrlResolver",
    "retry_transfer",
    "FileTransferService",
]
