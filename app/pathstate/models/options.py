"""Validated per-call options.

Status attributes come from callers as loose keyword arguments; they are
validated here before any syscall is issued.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StatusRequest(BaseModel):
    """Desired status attributes for an existing path.

    Unset attributes (None) are left untouched.

    Attributes:
        owner: User name, uid, or "user:group".
        group: Group name or gid.
        mode: Permission bits (0 to 0o7777).
        mtime: Modification time as seconds since the epoch.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    owner: Annotated[
        str | int | None,
        Field(description="User name, uid or user:group"),
    ] = None
    group: Annotated[
        str | int | None,
        Field(description="Group name or gid"),
    ] = None
    mode: Annotated[
        int | None,
        Field(ge=0, le=0o7777, description="Permission bits"),
    ] = None
    mtime: Annotated[
        int | float | None,
        Field(ge=0, description="Modification time (epoch seconds)"),
    ] = None

    @field_validator("owner", "group")
    @classmethod
    def validate_principal(cls, v: str | int | None) -> str | int | None:
        """Reject empty names and negative ids."""
        if isinstance(v, str) and not v.strip():
            msg = "name cannot be empty"
            raise ValueError(msg)
        if isinstance(v, int) and v < 0:
            msg = f"id must be non-negative, got {v}"
            raise ValueError(msg)
        return v

    @property
    def is_empty(self) -> bool:
        """Check if no attribute was requested."""
        return all(v is None for v in (self.owner, self.group, self.mode, self.mtime))
