"""Worker lifecycle model."""

from enum import Enum

from runcmd.errors import WorkerStateError


class WorkerState(str, Enum):
    """Lifecycle of a single command invocation.

    CREATED -> STARTED -> COMPLETED. A failed start goes straight to
    COMPLETED. There are no transitions out of COMPLETED.
    """

    CREATED = "created"
    STARTED = "started"
    COMPLETED = "completed"


def require_state(actual: WorkerState, expected: WorkerState, operation: str) -> None:
    """Raise WorkerStateError unless a worker is in the expected state."""
    if actual is not expected:
        raise WorkerStateError(
            f"cannot {operation}: worker is {actual.value}, expected {expected.value}"
        )
