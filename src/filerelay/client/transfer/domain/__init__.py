"""Domain model for transfer tasks."""

from filerelay.client.transfer.domain.transfers import (
    INITIAL_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    InvalidTransitionError,
    TransferState,
    TransferTask,
    TransferType,
)

__all__ = [
    "INITIAL_STATES",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    "InvalidTransitionError",
    "TransferState",
    "TransferTask",
    "TransferType",
]
