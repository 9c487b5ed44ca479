"""Result and option models for reconciliation operations."""

from pathstate.models.options import StatusRequest
from pathstate.models.outcome import CHANGED, UNCHANGED, Outcome, OutcomeStatus

__all__ = [
    "CHANGED",
    "UNCHANGED",
    "Outcome",
    "OutcomeStatus",
    "StatusRequest",
]
