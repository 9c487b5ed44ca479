"""pathstate - idempotent filesystem state reconciliation.

Make a path (file, directory, symlink, hardlink) match a declared target
state and report whether anything actually changed.
"""

import logging

from pathstate.core.context import LogSink, ReconcilerContext
from pathstate.core.errors import (
    PreconditionError,
    ReconcileError,
    UnsupportedOperationError,
    ValidationError,
)
from pathstate.core.executor import effective_identity, run_as
from pathstate.core.reconciler import CheckKind, PathReconciler, make_reconciler
from pathstate.core.settings import ReconcilerSettings
from pathstate.models.outcome import CHANGED, UNCHANGED, Outcome, OutcomeStatus

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CHANGED",
    "UNCHANGED",
    "CheckKind",
    "LogSink",
    "Outcome",
    "OutcomeStatus",
    "PathReconciler",
    "PreconditionError",
    "ReconcileError",
    "ReconcilerContext",
    "ReconcilerSettings",
    "UnsupportedOperationError",
    "ValidationError",
    "__version__",
    "effective_identity",
    "make_reconciler",
    "run_as",
]
