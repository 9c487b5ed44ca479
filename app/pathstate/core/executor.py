"""Privilege-scoped command execution.

Runs commands with a different effective user and/or group and always
restores the original identity afterwards. The group is switched first
(the new euid may lack the permission to change it) and restored last.
"""

import grp
import logging
import os
import pwd
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager

from pathstate.core.context import ReconcilerContext
from pathstate.core.errors import PreconditionError, ValidationError
from pathstate.utils.shell import CommandResult, command_exists, format_command, run_command

logger = logging.getLogger(__name__)


def _lookup_user(user: str | int) -> pwd.struct_passwd:
    try:
        if isinstance(user, int) or user.isdigit():
            return pwd.getpwuid(int(user))
        return pwd.getpwnam(user)
    except KeyError as e:
        msg = f"No such user {user}"
        raise ValidationError(msg) from e


def _lookup_group(group: str | int) -> int:
    try:
        if isinstance(group, int) or group.isdigit():
            return grp.getgrgid(int(group)).gr_gid
        return grp.getgrnam(group).gr_gid
    except KeyError as e:
        msg = f"No such group {group}"
        raise ValidationError(msg) from e


def resolve_identity(
    user: str | int | None = None, group: str | int | None = None
) -> tuple[int | None, int | None]:
    """Resolve a user and group to numeric ids.

    The user's primary group is used when no group is given.

    Args:
        user: User name or uid.
        group: Group name or gid.

    Returns:
        Tuple of (uid, gid); None where nothing needs switching.

    Raises:
        ValidationError: If the user or group does not exist.
    """
    uid = gid = None
    if user is not None:
        info = _lookup_user(user)
        uid, gid = info.pw_uid, info.pw_gid
    if group is not None:
        gid = _lookup_group(group)
    return uid, gid


def _set_egid(gid: int, oper: str) -> None:
    current = os.getegid()
    if current == gid:
        logger.debug("%s EGID from %s to %s: no changes required", oper, current, gid)
        return
    os.setegid(gid)
    logger.info("%s EGID from %s to %s", oper, current, gid)


def _set_euid(uid: int, oper: str) -> None:
    current = os.geteuid()
    if current == uid:
        logger.debug("%s EUID from %s to %s: no changes required", oper, current, uid)
        return
    os.seteuid(uid)
    logger.info("%s EUID from %s to %s", oper, current, uid)


@contextmanager
def effective_identity(
    user: str | int | None = None, group: str | int | None = None
) -> Iterator[None]:
    """Run the enclosed block with the given effective user and group.

    Args:
        user: User name or uid (None = keep current).
        group: Group name or gid (None = user's primary group, or keep).

    Raises:
        ValidationError: If the user or group does not exist.
        OSError: If switching fails.
    """
    uid, gid = resolve_identity(user, group)
    orig_uid, orig_gid = os.geteuid(), os.getegid()
    try:
        if gid is not None:
            _set_egid(gid, "Changing")
        if uid is not None:
            _set_euid(uid, "Changing")
        yield
    finally:
        if uid is not None:
            _set_euid(orig_uid, "Restoring")
        if gid is not None:
            _set_egid(orig_gid, "Restoring")


def run_as(
    context: ReconcilerContext,
    args: Sequence[str],
    *,
    user: str | int | None = None,
    group: str | int | None = None,
    keeps_state: bool = False,
    sensitive: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Execute a command as another effective user/group.

    In dry-run the command is only logged and an empty successful result
    is returned.

    Args:
        context: Reconciler context providing the simulate flag and log sink.
        args: Command and arguments.
        user: Effective user for the command.
        group: Effective group for the command.
        keeps_state: The command does not modify managed state; run it
            even in simulate mode.
        sensitive: Log only the executable, not the arguments.
        timeout: Maximum time in seconds to wait for the command.
        cwd: Working directory for the command.
        env: Variables laid over the current environment.

    Returns:
        CommandResult of the command.

    Raises:
        ValidationError: If args is empty or the user or group does not exist.
        PreconditionError: If the executable cannot be found.
        OSError: If switching identity or starting the command fails.
    """
    if not args:
        msg = "run_as: empty command"
        raise ValidationError(msg)
    shown = format_command(args, sensitive=sensitive)

    if context.resolve_dry_run(keeps_state, "run_as"):
        context.verbose("Not running command: %s", shown)
        return CommandResult.skipped()

    if not command_exists(args[0]):
        msg = f"run_as: command {args[0]} not found"
        raise PreconditionError(msg)

    context.verbose("Running command: %s", shown)
    with effective_identity(user, group):
        return run_command(args, timeout=timeout, cwd=cwd, env=env)
