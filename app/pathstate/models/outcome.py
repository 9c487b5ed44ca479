"""Outcome model for reconciliation operations.

Every mutating operation returns an Outcome: failed, unchanged or changed.
Unchanged and changed are both success, but callers that need to know
whether work occurred (e.g. restart a service only when its config
directory changed) can tell them apart.
"""

from dataclasses import dataclass
from enum import Enum


class OutcomeStatus(str, Enum):
    """Tri-state result of a reconciliation operation.

    Attributes:
        FAILED: The operation failed, see Outcome.message.
        UNCHANGED: State already matched, nothing was done.
        CHANGED: The operation altered the filesystem (or would have, in dry-run).
    """

    FAILED = "failed"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of a single reconciliation operation.

    Truthiness follows success: ``if not outcome`` reads as "it failed".

    Attributes:
        status: Failed, unchanged or changed.
        message: Failure message, None on success.
        path: Resolved path payload (directory creation only). None when
            no usable path exists, e.g. a temporary directory in dry-run.
    """

    status: OutcomeStatus
    message: str | None = None
    path: str | None = None

    def __post_init__(self) -> None:
        """Validate outcome data after initialization."""
        if self.status == OutcomeStatus.FAILED and not self.message:
            msg = "Failed outcome requires a message"
            raise ValueError(msg)

    def __bool__(self) -> bool:
        return self.status != OutcomeStatus.FAILED

    @property
    def failed(self) -> bool:
        """Check if the operation failed."""
        return self.status == OutcomeStatus.FAILED

    @property
    def changed(self) -> bool:
        """Check if the operation altered the filesystem."""
        return self.status == OutcomeStatus.CHANGED

    @property
    def unchanged(self) -> bool:
        """Check if the operation was a no-op."""
        return self.status == OutcomeStatus.UNCHANGED

    @classmethod
    def failure(cls, message: str) -> "Outcome":
        """Create a failed outcome carrying ``message``."""
        return cls(status=OutcomeStatus.FAILED, message=message)

    @classmethod
    def from_changed(cls, changed: bool, path: str | None = None) -> "Outcome":
        """Create a success outcome from a changed flag.

        Args:
            changed: Whether something changed.
            path: Optional path payload.

        Returns:
            CHANGED or UNCHANGED outcome with the given payload.
        """
        status = OutcomeStatus.CHANGED if changed else OutcomeStatus.UNCHANGED
        return cls(status=status, path=path)


CHANGED = Outcome(status=OutcomeStatus.CHANGED)
UNCHANGED = Outcome(status=OutcomeStatus.UNCHANGED)
