"""Unit tests for path predicates and hardlink queries."""

import os
from pathlib import Path

import pytest
from pathstate.core.errors import ValidationError
from pathstate.core.predicates import (
    any_exists,
    directory_exists,
    file_exists,
    is_symlink,
    untaint_path,
)
from pathstate.core.reconciler import PathReconciler


@pytest.fixture
def tree(tmp_path: Path) -> dict[str, Path]:
    """Directory, file, symlinks (valid and broken) under tmp_path."""
    directory = tmp_path / "dir"
    directory.mkdir()
    regular = tmp_path / "file.txt"
    regular.write_text("content")
    link_to_dir = tmp_path / "link_dir"
    link_to_dir.symlink_to(directory)
    link_to_file = tmp_path / "link_file"
    link_to_file.symlink_to(regular)
    broken = tmp_path / "broken"
    broken.symlink_to(tmp_path / "missing")
    return {
        "dir": directory,
        "file": regular,
        "link_dir": link_to_dir,
        "link_file": link_to_file,
        "broken": broken,
        "missing": tmp_path / "missing",
    }


class TestUntaintPath:
    """Tests for untaint_path."""

    def test_accepts_string_and_pathlike(self, tmp_path: Path) -> None:
        """Strings and path-like objects are returned as str."""
        assert untaint_path("/some/path", "x") == "/some/path"
        assert untaint_path(tmp_path, "x") == str(tmp_path)

    @pytest.mark.parametrize("bad", ["", None, "with\0nul"])
    def test_rejects_invalid(self, bad: str | None) -> None:
        """Empty, None and NUL-containing paths are rejected."""
        with pytest.raises(ValidationError, match="Failed to untaint x"):
            untaint_path(bad, "x")

    def test_rejects_bytes(self) -> None:
        """Bytes paths are rejected."""
        with pytest.raises(ValidationError):
            untaint_path(b"/tmp", "x")  # type: ignore[arg-type]


class TestPredicates:
    """Tests for directory_exists, file_exists, any_exists, is_symlink."""

    def test_directory_exists(self, tree: dict[str, Path]) -> None:
        """directory_exists follows symlinks."""
        assert directory_exists(str(tree["dir"])) is True
        assert directory_exists(str(tree["link_dir"])) is True
        assert directory_exists(str(tree["file"])) is False
        assert directory_exists(str(tree["broken"])) is False

    def test_file_exists(self, tree: dict[str, Path]) -> None:
        """file_exists follows symlinks, false for broken links."""
        assert file_exists(str(tree["file"])) is True
        assert file_exists(str(tree["link_file"])) is True
        assert file_exists(str(tree["dir"])) is False
        assert file_exists(str(tree["broken"])) is False

    def test_any_exists(self, tree: dict[str, Path]) -> None:
        """A broken symlink exists."""
        assert any_exists(str(tree["broken"])) is True
        assert any_exists(str(tree["dir"])) is True
        assert any_exists(str(tree["missing"])) is False

    def test_is_symlink(self, tree: dict[str, Path]) -> None:
        """is_symlink is true for broken symlinks too."""
        assert is_symlink(str(tree["broken"])) is True
        assert is_symlink(str(tree["link_file"])) is True
        assert is_symlink(str(tree["file"])) is False

    @pytest.mark.parametrize("func", [directory_exists, file_exists, any_exists, is_symlink])
    @pytest.mark.parametrize("empty", ["", None])
    def test_empty_is_false(self, func: object, empty: str | None) -> None:
        """Empty or None paths yield False without raising."""
        assert func(empty) is False  # type: ignore[operator]

    def test_nul_is_false(self) -> None:
        """Paths with NUL bytes are advisory False."""
        assert directory_exists("a\0b") is False
        assert any_exists("a\0b") is False


class TestHasHardlinks:
    """Tests for PathReconciler.has_hardlinks."""

    def test_plain_file(self, reconciler: PathReconciler, tmp_path: Path) -> None:
        """A file with a single link has 0 hardlinks."""
        f = tmp_path / "f"
        f.write_text("x")

        assert reconciler.has_hardlinks(str(f)) == 0

    def test_hardlinked_file(self, reconciler: PathReconciler, tmp_path: Path) -> None:
        """Each extra link is counted."""
        f = tmp_path / "f"
        f.write_text("x")
        os.link(f, tmp_path / "g")
        os.link(f, tmp_path / "h")

        assert reconciler.has_hardlinks(str(f)) == 2

    def test_symlink_counts_itself(self, reconciler: PathReconciler, tmp_path: Path) -> None:
        """A symlink is inspected with lstat."""
        link = tmp_path / "l"
        link.symlink_to(tmp_path / "missing")

        assert reconciler.has_hardlinks(str(link)) == 0

    def test_missing_fails(self, reconciler: PathReconciler, tmp_path: Path) -> None:
        """A missing path fails with None and a failure message."""
        assert reconciler.has_hardlinks(str(tmp_path / "nope")) is None
        assert reconciler.last_failure is not None
        assert "doesn't exist or is not a file" in reconciler.last_failure

    def test_directory_fails(self, reconciler: PathReconciler, tmp_path: Path) -> None:
        """A directory is not a file."""
        assert reconciler.has_hardlinks(str(tmp_path)) is None


class TestIsHardlink:
    """Tests for PathReconciler.is_hardlink."""

    def test_same_inode(self, reconciler: PathReconciler, tmp_path: Path) -> None:
        """Two paths on the same inode are hardlinks, in either order."""
        f = tmp_path / "f"
        f.write_text("x")
        g = tmp_path / "g"
        os.link(f, g)

        assert reconciler.is_hardlink(str(f), str(g)) is True
        assert reconciler.is_hardlink(str(g), str(f)) is True

    def test_same_path_twice(self, reconciler: PathReconciler, tmp_path: Path) -> None:
        """The same path given twice is not a hardlink."""
        f = tmp_path / "f"
        f.write_text("x")

        assert reconciler.is_hardlink(str(f), str(f)) is False

    def test_different_files(self, reconciler: PathReconciler, tmp_path: Path) -> None:
        """Different inodes are not hardlinks."""
        f = tmp_path / "f"
        f.write_text("x")
        g = tmp_path / "g"
        g.write_text("x")

        assert reconciler.is_hardlink(str(f), str(g)) is False
        assert reconciler.last_failure is None

    def test_missing_fails(self, reconciler: PathReconciler, tmp_path: Path) -> None:
        """A missing path fails."""
        f = tmp_path / "f"
        f.write_text("x")

        assert reconciler.is_hardlink(str(f), str(tmp_path / "nope")) is None
        assert reconciler.last_failure is not None
