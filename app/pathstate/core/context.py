"""Per-caller reconciliation context.

Holds the log sink, the process-wide simulate flag and the last failure
message. A context is single-writer: use one per thread or task.
"""

from dataclasses import dataclass
from typing import Protocol


class LogSink(Protocol):
    """Write-only logging capability.

    ``logging.Logger`` satisfies this protocol.
    """

    def debug(self, msg: str, *args: object) -> None: ...

    def info(self, msg: str, *args: object) -> None: ...

    def warning(self, msg: str, *args: object) -> None: ...

    def error(self, msg: str, *args: object) -> None: ...


@dataclass(slots=True)
class ReconcilerContext:
    """Mutable state shared by all operations of one caller.

    Attributes:
        log: Optional log sink. None makes every log call a no-op.
        simulate_only: Dry-run unless a call passes keeps_state=True.
        backup: Instance default backup suffix for cleanup. None disables it.
        temp_placeholders: Minimum trailing X width for temp dir templates.
        last_failure: Message of the most recent failure, None otherwise.
    """

    log: LogSink | None = None
    simulate_only: bool = False
    backup: str | None = None
    temp_placeholders: int = 4
    last_failure: str | None = None

    def resolve_dry_run(self, keeps_state: bool | None, label: str) -> bool:
        """Decide whether a mutation only gets logged.

        An explicit keeps_state=True disables dry-run for this call;
        otherwise simulate_only governs.

        Args:
            keeps_state: Per-call override.
            label: Operation label for the trace message.

        Returns:
            True if the mutation must be skipped.
        """
        if keeps_state:
            self.trace("%s: keeps_state set, dry-run disabled", label)
            return False
        if self.simulate_only:
            self.trace("%s: simulate mode, dry-run enabled", label)
        return self.simulate_only

    def reset_failure(self) -> None:
        """Clear the last failure at the start of a public operation."""
        self.last_failure = None

    def fail(self, message: str) -> None:
        """Record a failure message."""
        self.last_failure = message
        self.debug("Failure: %s", message)

    def trace(self, msg: str, *args: object) -> None:
        if self.log is not None:
            self.log.debug(msg, *args)

    def debug(self, msg: str, *args: object) -> None:
        if self.log is not None:
            self.log.debug(msg, *args)

    def verbose(self, msg: str, *args: object) -> None:
        if self.log is not None:
            self.log.info(msg, *args)

    def warn(self, msg: str, *args: object) -> None:
        if self.log is not None:
            self.log.warning(msg, *args)

    def error(self, msg: str, *args: object) -> None:
        if self.log is not None:
            self.log.error(msg, *args)
