"""Exception hierarchy for the reconciliation engine.

These exceptions never cross a public operation: the operation boundary
converts them (and OSError) into a failed Outcome and stores the message
in the context's last_failure slot.
"""

from pydantic import ValidationError as OptionsValidationError


class ReconcileError(Exception):
    """Base exception for reconciliation errors."""


class ValidationError(ReconcileError):
    """Raised when a path or option value cannot be used."""


class PreconditionError(ReconcileError):
    """Raised when the filesystem is not in a state the operation accepts."""


class UnsupportedOperationError(ReconcileError):
    """Raised when asked to dispatch to a check that does not exist."""


# Exceptions translated into a failure at the operation boundary
BOUNDARY_ERRORS: tuple[type[Exception], ...] = (ReconcileError, OSError, OptionsValidationError)


def describe_error(exc: BaseException) -> str:
    """Render an exception as a single-line failure message.

    Option validation errors are flattened to ``field: message`` pairs.

    Args:
        exc: Exception caught at the boundary.

    Returns:
        Human-readable message.
    """
    if isinstance(exc, OptionsValidationError):
        parts = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err["loc"])
            parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
        return "invalid options: " + "; ".join(parts)
    return str(exc)
