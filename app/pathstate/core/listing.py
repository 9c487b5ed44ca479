"""Directory listing with composable entry filters."""

import os
import re
from collections.abc import Callable

from pathstate.core.errors import ReconcileError, ValidationError

# Entry test: (name, directory) -> keep?
EntryTest = Callable[[str, str], object]

_DOT_ENTRIES = frozenset({".", ".."})


def _not_dot_entry(name: str, directory: str) -> bool:
    return name not in _DOT_ENTRIES


def compose_entry_tests(
    *,
    test: EntryTest | None = None,
    pattern: str | re.Pattern[str] | None = None,
    file_exists: Callable[[str], bool] | None = None,
    inverse: bool = False,
) -> list[Callable[[str, str], bool]]:
    """Build the ordered list of entry tests for a listing.

    Order: custom test, pattern filter, file-exists test, each inverted
    when ``inverse`` is set, then the non-invertible . and .. exclusion.

    Args:
        test: Custom test called with (name, directory).
        pattern: Regular expression (string or compiled); names it
            matches are kept.
        file_exists: Predicate called with the full entry path; entries
            that are not regular files are dropped.
        inverse: Invert every test except the . and .. exclusion.

    Returns:
        List of boolean entry tests.

    Raises:
        ValidationError: If test is not callable, or pattern is not a str
            pattern or does not compile.
    """
    tests: list[EntryTest] = []

    if test is not None:
        if not callable(test):
            msg = "test option must be callable"
            raise ValidationError(msg)
        tests.append(test)

    if pattern is not None:
        if isinstance(pattern, str):
            try:
                pattern = re.compile(pattern)
            except re.error as e:
                msg = f"invalid filter pattern {pattern!r}: {e}"
                raise ValidationError(msg) from e
        elif not (isinstance(pattern, re.Pattern) and isinstance(pattern.pattern, str)):
            msg = f"filter must be a regular expression string, got {type(pattern).__name__}"
            raise ValidationError(msg)
        regex = pattern
        tests.append(lambda name, directory: regex.search(name) is not None)

    if file_exists is not None:
        check = file_exists
        tests.append(lambda name, directory: check(os.path.join(directory, name)))

    def _wrap(func: EntryTest) -> Callable[[str, str], bool]:
        return lambda name, directory: bool(func(name, directory)) != inverse

    composed = [_wrap(func) for func in tests]
    composed.append(_not_dot_entry)
    return composed


def scan_directory(directory: str, test: Callable[[str, str], bool]) -> list[str]:
    """Read directory entries, keeping those accepted by test.

    Args:
        directory: Directory to read.
        test: Entry test applied during the scan.

    Returns:
        Unsorted list of accepted entry names.

    Raises:
        ReconcileError: If the directory cannot be read or test raises.
    """
    try:
        names = os.listdir(directory)
    except OSError as e:
        msg = f"opendir {directory} failed: {e}"
        raise ReconcileError(msg) from e
    try:
        return [name for name in names if test(name, directory)]
    except Exception as e:
        msg = f"readdir filter {directory} failed: {e}"
        raise ReconcileError(msg) from e


def filter_entries(
    names: list[str], directory: str, tests: list[Callable[[str, str], bool]]
) -> list[str]:
    """Apply the remaining tests in sequence to already-scanned names.

    Raises:
        ReconcileError: If a test raises.
    """
    result = names
    try:
        for test in tests:
            result = [name for name in result if test(name, directory)]
    except Exception as e:
        msg = f"filter {directory} failed: {e}"
        raise ReconcileError(msg) from e
    return result
