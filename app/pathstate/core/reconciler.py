"""Filesystem state reconciliation engine.

PathReconciler makes paths match a declared state (directories, symlinks,
hardlinks, status attributes, absence) and reports whether anything
changed. Every public operation:

- clears the context's last_failure on entry,
- honors dry-run (simulate mode) unless called with keeps_state=True,
  still performing the reads needed to report an accurate outcome,
- never raises: failures become a failed Outcome (or None for the
  non-Outcome queries) with the message stored in last_failure.

Public operations may call each other; only the outermost call translates
failures, so nested errors keep their context in the final message.
"""

import atexit
import errno
import functools
import logging
import os
import re
import shutil
import tempfile
from collections.abc import Callable
from enum import Enum
from typing import Any, TypeVar

from pathstate.core import predicates
from pathstate.core.checks import ensure_directory, ensure_link, ensure_status
from pathstate.core.context import LogSink, ReconcilerContext
from pathstate.core.errors import (
    BOUNDARY_ERRORS,
    PreconditionError,
    ReconcileError,
    UnsupportedOperationError,
    describe_error,
)
from pathstate.core.listing import EntryTest, compose_entry_tests, filter_entries, scan_directory
from pathstate.core.predicates import PathArg, untaint_path
from pathstate.core.settings import ReconcilerSettings
from pathstate.models.options import StatusRequest
from pathstate.models.outcome import CHANGED, UNCHANGED, Outcome

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class CheckKind(str, Enum):
    """Low-level checks the engine dispatches to."""

    DIRECTORY = "directory"
    LINK = "link"
    STATUS = "status"


_CHECKS: dict[CheckKind, Callable[..., bool]] = {
    CheckKind.DIRECTORY: ensure_directory,
    CheckKind.LINK: ensure_link,
    CheckKind.STATUS: ensure_status,
}


def reconcile_operation(label: str, *, outcome: bool = True) -> Callable[[F], F]:
    """Wrap a public operation in the exception-to-failure boundary.

    Args:
        label: Operation name used as failure message prefix.
        outcome: If True, failures return a failed Outcome; otherwise None.

    Returns:
        Decorator for PathReconciler methods.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: "PathReconciler", *args: Any, **kwargs: Any) -> Any:
            if self._depth:
                # Nested call: let errors reach the outermost boundary
                self._depth += 1
                try:
                    return func(self, *args, **kwargs)
                finally:
                    self._depth -= 1

            self.context.reset_failure()
            self._depth = 1
            try:
                return func(self, *args, **kwargs)
            except BOUNDARY_ERRORS as e:
                message = f"{label}: {describe_error(e)}"
                self.context.fail(message)
                return Outcome.failure(message) if outcome else None
            finally:
                self._depth = 0

        return wrapper  # type: ignore[return-value]

    return decorator


def _remove_tempdir(path: str, context: ReconcilerContext) -> None:
    """Best-effort removal of a temporary directory at process exit."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as e:
        context.trace("Failed to remove temporary directory %s: %s", path, e)
        return
    context.trace("Removed temporary directory %s", path)


def _copy_then_delete(src: str, dest: str) -> None:
    """Move src to dest across filesystems."""
    if os.path.isdir(src) and not os.path.islink(src):
        shutil.copytree(src, dest, symlinks=True)
        shutil.rmtree(src)
    else:
        shutil.copy2(src, dest, follow_symlinks=False)
        os.unlink(src)


class PathReconciler:
    """Idempotent filesystem operations with dry-run and backup support.

    Attributes:
        context: Log sink, simulate flag and last failure of this caller.
    """

    def __init__(self, context: ReconcilerContext | None = None) -> None:
        """Initialize the PathReconciler.

        Args:
            context: Reconciler context. A silent, non-simulating context
                is created if None.
        """
        self.context = context if context is not None else ReconcilerContext()
        self._depth = 0

    @property
    def last_failure(self) -> str | None:
        """Message of the most recent failure, None if the last call succeeded."""
        return self.context.last_failure

    # =========================================================================
    # Predicates
    # =========================================================================

    def directory_exists(self, path: PathArg | None) -> bool:
        """Test if path is a directory (following symlinks)."""
        return predicates.directory_exists(path)

    def file_exists(self, path: PathArg | None) -> bool:
        """Test if path is a regular file (following symlinks)."""
        return predicates.file_exists(path)

    def any_exists(self, path: PathArg | None) -> bool:
        """Test if path exists; a broken symlink exists."""
        return predicates.any_exists(path)

    def is_symlink(self, path: PathArg | None) -> bool:
        """Test if path is a symlink, broken or not."""
        return predicates.is_symlink(path)

    def _require_file_or_symlink(self, path: str, label: str) -> None:
        if not self.file_exists(path) and not self.is_symlink(path):
            msg = f"{path} doesn't exist or is not a file"
            self.context.debug("%s: %s", label, msg)
            raise PreconditionError(msg)

    @reconcile_operation("has_hardlinks", outcome=False)
    def has_hardlinks(self, path: PathArg) -> int | None:
        """Return the number of hardlinks of path.

        This is the number of entries referring to the inode minus one,
        so 0 when the file is not hardlinked.

        Returns:
            Hardlink count, or None if path is not a file or symlink.
        """
        path = untaint_path(path, "has_hardlinks")
        self._require_file_or_symlink(path, "has_hardlinks")
        nlinks = os.lstat(path).st_nlink
        self.context.debug("Number of links to %s: %s", path, nlinks)
        return nlinks - 1 if nlinks else 0

    @reconcile_operation("is_hardlink", outcome=False)
    def is_hardlink(self, path1: PathArg, path2: PathArg) -> bool | None:
        """Test if path1 and path2 are distinct paths to the same inode.

        The result does not depend on the argument order.

        Returns:
            True for distinct hardlinked paths, False for different inodes
            or the same path given twice, None if either path is missing.
        """
        path1 = untaint_path(path1, "is_hardlink path1")
        path2 = untaint_path(path2, "is_hardlink path2")
        self._require_file_or_symlink(path1, "is_hardlink")
        self._require_file_or_symlink(path2, "is_hardlink")

        st1 = os.lstat(path1)
        st2 = os.lstat(path2)
        self.context.debug(
            "Comparing %s inode (%s) and %s inode (%s)", path1, st1.st_ino, path2, st2.st_ino
        )
        same = (st1.st_dev, st1.st_ino) == (st2.st_dev, st2.st_ino)
        return same and path1 != path2

    # =========================================================================
    # Check dispatch
    # =========================================================================

    def _check(
        self, kind: CheckKind | str, *args: Any, keeps_state: bool = False, **kwargs: Any
    ) -> bool:
        """Run a low-level check with the resolved dry-run flag.

        Raises:
            UnsupportedOperationError: If kind names no known check.
        """
        name = kind.value if isinstance(kind, CheckKind) else str(kind)
        try:
            check = _CHECKS[CheckKind(name)]
        except (ValueError, KeyError) as e:
            msg = f"Unsupported check function {name}"
            raise UnsupportedOperationError(msg) from e
        dry_run = self.context.resolve_dry_run(keeps_state, name)
        return check(self.context, *args, dry_run=dry_run, **kwargs)

    def _resolve_backup(self, dest: str, backup: str | None, what: str) -> str | None:
        """Return the backup path for dest, or None when backup is disabled."""
        if backup is None:
            backup = self.context.backup
        if backup is None or backup == "":
            return None
        return dest + untaint_path(backup, what)

    def _ensure_parent(self, path: str, keeps_state: bool) -> None:
        base = os.path.dirname(path)
        if base and not self.directory_exists(base):
            self.directory(base, keeps_state=keeps_state)

    # =========================================================================
    # Mutating operations
    # =========================================================================

    @reconcile_operation("cleanup")
    def cleanup(
        self, dest: PathArg, backup: str | None = None, *, keeps_state: bool = False
    ) -> Outcome:
        """Make sure dest does not exist, optionally keeping a backup.

        Args:
            dest: Path to remove.
            backup: Backup suffix for dest. None falls back to the context
                default; an empty string disables backup.
            keeps_state: Disable dry-run for this call.

        Returns:
            CHANGED if something was removed, UNCHANGED if dest did not exist.
        """
        dest = untaint_path(dest, "cleanup dest")

        if not self.any_exists(dest):
            return UNCHANGED

        old = self._resolve_backup(dest, backup, "cleanup backup")
        if old:
            # Previous backup is removed without a backup of its own
            try:
                self.cleanup(old, "", keeps_state=keeps_state)
                self.move(dest, old, "", keeps_state=keeps_state)
            except BOUNDARY_ERRORS as e:
                msg = f"move to backup failed: {describe_error(e)}"
                raise ReconcileError(msg) from e
            return CHANGED

        is_tree = self.directory_exists(dest) and not self.is_symlink(dest)
        method = "rmtree" if is_tree else "unlink"

        if self.context.resolve_dry_run(keeps_state, "cleanup"):
            self.context.verbose("cleanup: dry-run, not going to %s %s", method, dest)
            return CHANGED

        try:
            if is_tree:
                shutil.rmtree(dest)
            else:
                os.unlink(dest)
        except OSError as e:
            msg = f"{method} failed to remove {dest}: {e.strerror or e}"
            raise ReconcileError(msg) from e

        self.context.verbose("cleanup: %s removed %s", method, dest)
        return CHANGED

    @reconcile_operation("directory")
    def directory(
        self,
        path: PathArg,
        *,
        temp: bool = False,
        owner: str | int | None = None,
        group: str | int | None = None,
        mode: int | None = None,
        mtime: int | float | None = None,
        keeps_state: bool = False,
    ) -> Outcome:
        """Make sure a directory exists with the requested status.

        Missing parents are created. When any attribute is requested a
        status pass runs on the directory, so an existing directory reports
        CHANGED when an attribute was updated.

        Args:
            path: Directory path, or a template when temp is set.
            temp: Create a unique temporary directory from the template,
                removed at process exit.
            owner: Desired owner (see status).
            group: Desired group.
            mode: Desired permission bits.
            mtime: Desired modification time.
            keeps_state: Disable dry-run for this call.

        Returns:
            Outcome whose path is the resolved directory. For a temporary
            directory in dry-run the path is None.
        """
        path = untaint_path(path, "directory")
        request = StatusRequest(owner=owner, group=group, mode=mode, mtime=mtime)

        if temp:
            return self._tempdir(path, request, keeps_state)

        if self.directory_exists(path):
            newdir = False
            self.context.debug("Directory %s already exists", path)
        else:
            # ownership and mtime are applied by the status pass
            newdir = self._check(CheckKind.DIRECTORY, path, mode=mode, keeps_state=keeps_state)
            if not self.directory_exists(path):
                # simulated creation, nothing to apply status to
                return Outcome.from_changed(True, path=path)
            self.context.debug("Created directory %s", path)

        if request.is_empty:
            return Outcome.from_changed(newdir, path=path)
        status = self.status(path, **request.model_dump(), keeps_state=keeps_state)
        return Outcome.from_changed(newdir or status.changed, path=path)

    def _tempdir(self, template: str, request: StatusRequest, keeps_state: bool) -> Outcome:
        width = self.context.temp_placeholders
        if not template.endswith("X" * width):
            template += "X" * width

        if self.context.resolve_dry_run(keeps_state, "directory (tempdir)"):
            self.context.verbose(
                "Dry-run: not going to create a temporary directory %s", template
            )
            return Outcome.from_changed(True)

        base = os.path.dirname(template)
        if base and not self.directory_exists(base):
            try:
                self.directory(base, **request.model_dump(), keeps_state=keeps_state)
            except BOUNDARY_ERRORS as e:
                msg = (
                    f"Failed to create basedir for temporary directory {template}: "
                    f"{describe_error(e)}"
                )
                raise ReconcileError(msg) from e

        prefix = os.path.basename(template).rstrip("X")
        try:
            path = tempfile.mkdtemp(prefix=prefix, dir=base or os.curdir)
        except OSError as e:
            msg = f"Failed to create temporary directory {template}: {e}"
            raise ReconcileError(msg) from e
        path = os.path.normpath(path)
        atexit.register(_remove_tempdir, path, self.context)
        self.context.debug("Created temp directory %s", path)

        if not request.is_empty:
            self.status(path, **request.model_dump(), keeps_state=keeps_state)
        return Outcome.from_changed(True, path=path)

    def _make_link(
        self,
        target: PathArg,
        link_path: PathArg,
        *,
        hard: bool,
        force: bool = False,
        check: bool = False,
        keeps_state: bool = False,
    ) -> Outcome:
        kind = "hardlink" if hard else "symlink"
        link_path = untaint_path(link_path, kind)
        target = untaint_path(target, kind)

        self.context.debug("Creating %s %s to target %s", kind, link_path, target)
        self._ensure_parent(link_path, keeps_state)
        changed = self._check(
            CheckKind.LINK,
            link_path,
            target,
            hard=hard,
            force=force,
            check=check,
            keeps_state=keeps_state,
        )
        return Outcome.from_changed(changed)

    @reconcile_operation("symlink")
    def symlink(
        self,
        target: PathArg,
        link_path: PathArg,
        *,
        force: bool = False,
        check: bool = False,
        keeps_state: bool = False,
    ) -> Outcome:
        """Make link_path a symlink to target.

        Arguments follow ``ln -s`` order. An existing symlink is updated;
        any other existing entry makes the call fail, except a regular
        file when force is set. The target is kept as given and is only
        required to exist when check is set. The parent directory of
        link_path is created if missing.

        Returns:
            UNCHANGED if the symlink already pointed to target, CHANGED if
            it was created or updated.
        """
        return self._make_link(
            target, link_path, hard=False, force=force, check=check, keeps_state=keeps_state
        )

    @reconcile_operation("hardlink")
    def hardlink(
        self, target: PathArg, link_path: PathArg, *, keeps_state: bool = False
    ) -> Outcome:
        """Make link_path a hardlink to target.

        target must exist and reside on the same filesystem as link_path.
        An existing regular file at link_path is replaced. The parent
        directory of link_path is created if missing.

        Returns:
            UNCHANGED if link_path already shared target's inode, CHANGED if
            the hardlink was created or updated.
        """
        return self._make_link(target, link_path, hard=True, keeps_state=keeps_state)

    @reconcile_operation("status")
    def status(
        self,
        path: PathArg,
        *,
        owner: str | int | None = None,
        group: str | int | None = None,
        mode: int | None = None,
        mtime: int | float | None = None,
        keeps_state: bool = False,
    ) -> Outcome:
        """Set owner, group, mode and/or mtime of an existing path.

        The path is never created. Unspecified attributes are untouched.

        Returns:
            CHANGED if an attribute was updated, UNCHANGED if all requested
            attributes already matched.
        """
        path = untaint_path(path, "status")
        request = StatusRequest(owner=owner, group=group, mode=mode, mtime=mtime)
        changed = self._check(CheckKind.STATUS, path, request, keeps_state=keeps_state)
        return Outcome.from_changed(changed)

    @reconcile_operation("move")
    def move(
        self,
        src: PathArg,
        dest: PathArg,
        backup: str | None = None,
        *,
        keeps_state: bool = False,
    ) -> Outcome:
        """Move src to dest.

        The goal is that src no longer exists: if src is missing this is
        an immediate UNCHANGED and no backup of dest is made. An existing
        dest is preserved as a hardlink at dest + backup before the move.
        The parent directory of dest is created if missing.

        Args:
            src: Path to move.
            dest: Destination path.
            backup: Backup suffix for an existing dest (None or "" = no backup).
            keeps_state: Disable dry-run for this call.

        Returns:
            CHANGED if src was moved, UNCHANGED if src did not exist.
        """
        src = untaint_path(src, "move src")
        dest = untaint_path(dest, "move dest")

        if not self.any_exists(src):
            return UNCHANGED

        if backup:
            old = dest + untaint_path(backup, "move backup")
            if self.any_exists(dest):
                try:
                    self.hardlink(dest, old, keeps_state=keeps_state)
                except BOUNDARY_ERRORS as e:
                    msg = f"backup of dest {dest} to {old} failed: {describe_error(e)}"
                    raise ReconcileError(msg) from e

        if self.context.resolve_dry_run(keeps_state, "move"):
            self.context.verbose("move: dry-run, not going to move %s to %s", src, dest)
            return CHANGED

        try:
            self._ensure_parent(dest, keeps_state)
        except BOUNDARY_ERRORS as e:
            msg = f"Failed to create basedir for dest {dest}: {describe_error(e)}"
            raise ReconcileError(msg) from e

        try:
            try:
                os.replace(src, dest)
            except OSError as e:
                if e.errno != errno.EXDEV:
                    raise
                self.context.debug("move: %s and %s on different filesystems, copying", src, dest)
                _copy_then_delete(src, dest)
        except OSError as e:
            msg = f"Failed to move {src} to {dest}: {e}"
            raise ReconcileError(msg) from e

        self.context.debug("Moved src %s to dest %s", src, dest)
        return CHANGED

    # =========================================================================
    # Listing
    # =========================================================================

    @reconcile_operation("listdir", outcome=False)
    def listdir(
        self,
        directory: PathArg,
        *,
        test: EntryTest | None = None,
        filter: str | re.Pattern[str] | None = None,
        file_exists: bool = False,
        inverse: bool = False,
        adddir: bool = False,
    ) -> list[str] | None:
        """Return the sorted entry names of a directory.

        ``.`` and ``..`` are never returned. Can replace a glob:
        ``listdir("/path", filter=r"\\.ext$", adddir=True)``.

        Args:
            directory: Directory to list.
            test: Callable (name, directory) -> bool; true keeps the entry.
            filter: Pattern (string or compiled); matching names are kept.
            file_exists: Keep only entries that are regular files.
            inverse: Invert the test, filter and file_exists logic.
            adddir: Prefix the directory to the returned names.

        Returns:
            Sorted list of names (or paths), None on failure.
        """
        directory = untaint_path(directory, "listdir directory")
        directory = directory.rstrip("/") or "/"

        if not self.directory_exists(directory):
            msg = f"directory {directory} is not a directory"
            raise PreconditionError(msg)

        tests = compose_entry_tests(
            test=test,
            pattern=filter,
            file_exists=self.file_exists if file_exists else None,
            inverse=inverse,
        )

        # first test runs during the scan
        names = sorted(scan_directory(directory, tests[0]))
        names = filter_entries(names, directory, tests[1:])

        if adddir:
            names = [os.path.join(directory, name) for name in names]
        return names


def make_reconciler(
    log: LogSink | None = logger,
    *,
    simulate_only: bool = False,
    backup: str | None = None,
    settings: ReconcilerSettings | None = None,
) -> PathReconciler:
    """Create a ready-to-use PathReconciler.

    Args:
        log: Log sink (default: this module's logger; None = silent).
        simulate_only: Run in dry-run mode. Ignored when settings is given.
        backup: Default cleanup backup suffix. Ignored when settings is given.
        settings: Full settings; built from the keyword arguments if None.

    Returns:
        PathReconciler with a fresh context.
    """
    if settings is None:
        settings = ReconcilerSettings(simulate_only=simulate_only, backup=backup)
    return PathReconciler(settings.create_context(log))
