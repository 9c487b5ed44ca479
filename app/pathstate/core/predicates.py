"""Stateless path predicates.

Predicates are advisory: an empty path, an unreadable path or any other
problem yields False instead of raising.
"""

import os

from pathstate.core.errors import ValidationError

PathArg = str | os.PathLike[str]


def untaint_path(path: PathArg | None, what: str) -> str:
    """Validate a path before it is handed to the OS.

    Args:
        path: Path to validate.
        what: Description of the argument for the error message.

    Returns:
        The path as a string.

    Raises:
        ValidationError: If the path is empty, not a string or contains NUL.
    """
    try:
        value = os.fspath(path) if path is not None else ""
    except TypeError as e:
        msg = f"Failed to untaint {what}: path {path!r}"
        raise ValidationError(msg) from e
    if not isinstance(value, str) or not value or "\0" in value:
        msg = f"Failed to untaint {what}: path {value!r}"
        raise ValidationError(msg)
    return value


def directory_exists(path: PathArg | None) -> bool:
    """Check if path is a directory, following symlinks."""
    return bool(path) and os.path.isdir(path)


def file_exists(path: PathArg | None) -> bool:
    """Check if path is a regular file, following symlinks."""
    return bool(path) and os.path.isfile(path)


def any_exists(path: PathArg | None) -> bool:
    """Check if anything exists at path, including a broken symlink."""
    return bool(path) and os.path.lexists(path)


def is_symlink(path: PathArg | None) -> bool:
    """Check if path is a symlink, whether or not its target exists."""
    return bool(path) and os.path.islink(path)
