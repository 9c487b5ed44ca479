"""Reconciler settings.

Defaults a caller hands to the engine at construction time: simulate
mode, default backup suffix, and temporary directory template width.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pathstate.core.context import LogSink, ReconcilerContext


class ReconcilerSettings(BaseModel):
    """Construction-time settings for a reconciler.

    Attributes:
        simulate_only: Run every mutating call in dry-run mode unless the
            call passes keeps_state=True.
        backup: Default backup suffix for cleanup (None = no backup).
        temp_placeholders: Minimum number of trailing X characters in a
            temporary directory template.
    """

    model_config = ConfigDict(extra="forbid")

    simulate_only: Annotated[
        bool,
        Field(description="Dry-run unless a call keeps state"),
    ] = False
    backup: Annotated[
        str | None,
        Field(description="Default backup suffix for cleanup"),
    ] = None
    temp_placeholders: Annotated[
        int,
        Field(ge=1, le=16, description="Minimum trailing X width for temp templates (1-16)"),
    ] = 4

    @field_validator("backup")
    @classmethod
    def validate_backup(cls, v: str | None) -> str | None:
        """Reject suffixes that could never form a valid path."""
        if v is not None and "\0" in v:
            msg = "backup suffix cannot contain NUL bytes"
            raise ValueError(msg)
        return v

    def create_context(self, log: LogSink | None = None) -> ReconcilerContext:
        """Build a fresh context from these settings.

        Args:
            log: Log sink for the context (None = silent).

        Returns:
            New ReconcilerContext with no recorded failure.
        """
        return ReconcilerContext(
            log=log,
            simulate_only=self.simulate_only,
            backup=self.backup,
            temp_placeholders=self.temp_placeholders,
        )
