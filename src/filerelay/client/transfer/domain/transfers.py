"""Transfer task state machines.

Upload:
    VALIDATING -> PRESIGNING -> UPLOADING -> FINALIZING -> COMPLETED
    any non-terminal state -> CANCELED | FAILED

Download:
    PROBING -> FETCHING -> SAVING -> COMPLETED
    any non-terminal state -> CANCELED | FAILED

All state transitions are validated.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import IntEnum, auto

from filerelay.client.transfer.registry import CancelHandle, new_task_id


class TransferType(IntEnum):
    """Type of transfer operation."""

    UPLOAD = auto()
    DOWNLOAD = auto()


class TransferState(IntEnum):
    """Lifecycle state of a transfer task."""

    VALIDATING = auto()
    PRESIGNING = auto()
    UPLOADING = auto()
    FINALIZING = auto()
    PROBING = auto()
    FETCHING = auto()
    SAVING = auto()
    COMPLETED = auto()
    CANCELED = auto()
    FAILED = auto()


TERMINAL_STATES = frozenset(
    {TransferState.COMPLETED, TransferState.CANCELED, TransferState.FAILED}
)

_EXITS = {TransferState.CANCELED, TransferState.FAILED}

# Valid state transitions
VALID_TRANSITIONS: dict[TransferType, dict[TransferState, set[TransferState]]] = {
    TransferType.UPLOAD: {
        TransferState.VALIDATING: {TransferState.PRESIGNING, *_EXITS},
        TransferState.PRESIGNING: {TransferState.UPLOADING, *_EXITS},
        TransferState.UPLOADING: {TransferState.FINALIZING, *_EXITS},
        TransferState.FINALIZING: {TransferState.COMPLETED, *_EXITS},
    },
    TransferType.DOWNLOAD: {
        TransferState.PROBING: {TransferState.FETCHING, *_EXITS},
        TransferState.FETCHING: {TransferState.SAVING, *_EXITS},
        TransferState.SAVING: {TransferState.COMPLETED, *_EXITS},
    },
}

INITIAL_STATES: dict[TransferType, TransferState] = {
    TransferType.UPLOAD: TransferState.VALIDATING,
    TransferType.DOWNLOAD: TransferState.PROBING,
}


class InvalidTransitionError(Exception):
    """Raised when attempting invalid state transition."""


@dataclass
class TransferTask:
    """A tracked transfer attempt.

    Attributes:
        filename: Target file name.
        transfer_type: Upload or download.
        size: Size in bytes, fixed at creation (uploads only).
        mimetype: MIME type, fixed at creation (uploads only).
        id: Unique identifier of this attempt, independent of filename.
        handle: Cancellation handle spanning all network phases.
        state: Current lifecycle state.
        started_at: When the task was created.
    """

    filename: str
    transfer_type: TransferType
    size: int | None = None
    mimetype: str | None = None
    id: str = field(default_factory=new_task_id)
    handle: CancelHandle = field(default_factory=CancelHandle, repr=False)
    state: TransferState | None = None
    started_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if self.state is None:
            self.state = INITIAL_STATES[self.transfer_type]

    def transition_to(self, new_state: TransferState) -> None:
        """Transition to a new state with validation."""
        allowed = VALID_TRANSITIONS[self.transfer_type].get(self.state, set())  # type: ignore[arg-type]
        if new_state not in allowed:
            current = self.state.name if self.state else "NONE"
            raise InvalidTransitionError(
                f"Cannot transition {self.transfer_type.name.lower()} "
                f"from {current} to {new_state.name}"
            )
        self.state = new_state

    def cancel(self) -> None:
        """Request cancellation of the in-flight phase."""
        self.handle.cancel()

    @property
    def is_terminal(self) -> bool:
        """Check if task is in a terminal state."""
        return self.state in TERMINAL_STATES
