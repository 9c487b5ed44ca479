"""Low-level state checks.

Each check compares the current state of a path with the desired one,
performs only the OS calls needed to converge (none in dry-run), and
returns whether something changed or would change. Checks raise on
failure; the operation boundary translates the exceptions.
"""

import grp
import os
import pwd
import stat
import uuid

from pathstate.core.context import ReconcilerContext
from pathstate.core.errors import PreconditionError, ValidationError
from pathstate.models.options import StatusRequest


def ensure_directory(
    context: ReconcilerContext,
    path: str,
    *,
    mode: int | None = None,
    dry_run: bool = False,
) -> bool:
    """Create a directory and its missing parents.

    Args:
        context: Reconciler context for logging.
        path: Directory to create.
        mode: Permission bits for the new leaf directory (umask applies).
        dry_run: If True, only log what would be done.

    Returns:
        True if the directory was (or would be) created.

    Raises:
        OSError: If the directory cannot be created.
    """
    if os.path.isdir(path):
        return False
    if dry_run:
        context.verbose("Dry-run: would create directory %s", path)
        return True
    if mode is None:
        os.makedirs(path)
    else:
        os.makedirs(path, mode=mode)
    context.verbose("Created directory %s", path)
    return True


def _is_plain_file(path: str) -> bool:
    return stat.S_ISREG(os.lstat(path).st_mode)


def _same_inode(path1: str, path2: str) -> bool:
    st1 = os.lstat(path1)
    st2 = os.lstat(path2)
    return (st1.st_dev, st1.st_ino) == (st2.st_dev, st2.st_ino)


def _create_link(target: str, link_path: str, *, hard: bool) -> None:
    if hard:
        os.link(target, link_path)
    else:
        os.symlink(target, link_path)


def _replace_link(target: str, link_path: str, *, hard: bool) -> None:
    """Replace an existing entry with a link.

    The link is created under a sibling name and renamed over the old
    entry, so the old entry survives a failed creation.
    """
    parent, name = os.path.split(link_path)
    tmp = os.path.join(parent, f".{name}.{uuid.uuid4().hex[:8]}.tmp")
    _create_link(target, tmp, hard=hard)
    try:
        os.replace(tmp, link_path)
    except OSError:
        if os.path.lexists(tmp):
            os.unlink(tmp)
        raise


def ensure_link(
    context: ReconcilerContext,
    link_path: str,
    target: str,
    *,
    hard: bool = False,
    force: bool = False,
    check: bool = False,
    dry_run: bool = False,
) -> bool:
    """Make link_path a symlink or hardlink to target.

    Symlink targets are kept as given (possibly relative); with check=True
    the target must exist, resolved relative to the link's directory.
    Hardlink targets must always exist. An existing regular file is
    replaced by a hardlink, and by a symlink only with force=True.

    Args:
        context: Reconciler context for logging.
        link_path: Path of the link.
        target: Link target.
        hard: Create a hardlink instead of a symlink.
        force: Allow a symlink to replace a regular file.
        check: Require the symlink target to exist.
        dry_run: If True, only log what would be done.

    Returns:
        True if the link was (or would be) created or updated.

    Raises:
        PreconditionError: If the target is missing or link_path holds an
            entry of the wrong kind.
        OSError: If the link cannot be created (e.g. cross-device hardlink).
    """
    kind = "hardlink" if hard else "symlink"

    if hard:
        if not os.path.lexists(target):
            msg = f"hardlink target {target} does not exist"
            raise PreconditionError(msg)
    elif check:
        resolved = os.path.join(os.path.dirname(os.path.abspath(link_path)), target)
        if not os.path.exists(resolved):
            msg = f"symlink target {target} does not exist"
            raise PreconditionError(msg)

    if not os.path.lexists(link_path):
        if dry_run:
            context.verbose("Dry-run: would create %s %s -> %s", kind, link_path, target)
            return True
        _create_link(target, link_path, hard=hard)
        context.verbose("Created %s %s -> %s", kind, link_path, target)
        return True

    if hard:
        if _same_inode(link_path, target):
            context.debug("Hardlink %s already points to %s", link_path, target)
            return False
        if not _is_plain_file(link_path):
            msg = f"{link_path} exists and is not a file"
            raise PreconditionError(msg)
    elif os.path.islink(link_path):
        if os.readlink(link_path) == target:
            context.debug("Symlink %s already points to %s", link_path, target)
            return False
    elif not (force and _is_plain_file(link_path)):
        msg = f"{link_path} exists and is not a symlink"
        raise PreconditionError(msg)

    if dry_run:
        context.verbose("Dry-run: would update %s %s -> %s", kind, link_path, target)
        return True
    _replace_link(target, link_path, hard=hard)
    context.verbose("Updated %s %s -> %s", kind, link_path, target)
    return True


def _resolve_uid(owner: str | int) -> int:
    if isinstance(owner, int):
        return owner
    if owner.isdigit():
        return int(owner)
    try:
        return pwd.getpwnam(owner).pw_uid
    except KeyError as e:
        msg = f"No such user {owner}"
        raise ValidationError(msg) from e


def _resolve_gid(group: str | int) -> int:
    if isinstance(group, int):
        return group
    if group.isdigit():
        return int(group)
    try:
        return grp.getgrnam(group).gr_gid
    except KeyError as e:
        msg = f"No such group {group}"
        raise ValidationError(msg) from e


def resolve_owner_group(request: StatusRequest) -> tuple[int | None, int | None]:
    """Resolve requested owner and group to numeric ids.

    An owner given as "user:group" supplies the group unless group is
    also set explicitly.

    Returns:
        Tuple of (uid, gid); None where nothing was requested.

    Raises:
        ValidationError: If a user or group name is unknown.
    """
    owner = request.owner
    group = request.group
    if isinstance(owner, str) and ":" in owner:
        owner, _, owner_group = owner.partition(":")
        if group is None and owner_group:
            group = owner_group
        owner = owner or None
    uid = _resolve_uid(owner) if owner is not None else None
    gid = _resolve_gid(group) if group is not None else None
    return uid, gid


def _mtime_ns(mtime: int | float) -> int:
    """Convert epoch seconds to nanoseconds as stored by the filesystem."""
    if isinstance(mtime, int):
        return mtime * 1_000_000_000
    return round(mtime * 1_000_000_000)


def ensure_status(
    context: ReconcilerContext,
    path: str,
    request: StatusRequest,
    *,
    dry_run: bool = False,
) -> bool:
    """Apply owner, group, mode and mtime to an existing path.

    Each attribute is compared with the current value and only differing
    attributes are written, so an unchanged result is exact.

    Args:
        context: Reconciler context for logging.
        path: Existing path (symlinks are followed).
        request: Desired attributes.
        dry_run: If True, only log what would be done.

    Returns:
        True if any attribute was (or would be) changed.

    Raises:
        PreconditionError: If the path does not exist.
        ValidationError: If a user or group name is unknown.
        OSError: If an attribute cannot be changed.
    """
    if not os.path.exists(path):
        msg = f"{path} does not exist"
        raise PreconditionError(msg)

    uid, gid = resolve_owner_group(request)
    st = os.stat(path)
    changed = False

    new_uid = uid if uid is not None and st.st_uid != uid else -1
    new_gid = gid if gid is not None and st.st_gid != gid else -1
    if new_uid != -1 or new_gid != -1:
        changed = True
        if dry_run:
            context.verbose("Dry-run: would change ownership of %s to %s:%s", path, uid, gid)
        else:
            os.chown(path, new_uid, new_gid)
            context.verbose("Changed ownership of %s to %s:%s", path, uid, gid)

    if request.mode is not None and stat.S_IMODE(st.st_mode) != request.mode:
        changed = True
        if dry_run:
            context.verbose("Dry-run: would change mode of %s to %04o", path, request.mode)
        else:
            os.chmod(path, request.mode)
            context.verbose("Changed mode of %s to %04o", path, request.mode)

    mtime_ns = _mtime_ns(request.mtime) if request.mtime is not None else None
    if mtime_ns is not None and st.st_mtime_ns != mtime_ns:
        changed = True
        if dry_run:
            context.verbose("Dry-run: would change mtime of %s to %s", path, request.mtime)
        else:
            os.utime(path, ns=(st.st_atime_ns, mtime_ns))
            context.verbose("Changed mtime of %s to %s", path, request.mtime)

    if not changed:
        context.debug("Status of %s already as requested", path)
    return changed
