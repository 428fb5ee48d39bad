"""Unit tests for the directory walker."""

import os
import stat
from pathlib import Path

import pytest
from checkitall.filesystem.models import EntryKind
from checkitall.filesystem.walker import DirectoryWalker, classify_mode


class TestClassifyMode:
    """Tests for classify_mode."""

    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            (stat.S_IFREG | 0o644, EntryKind.REGULAR),
            (stat.S_IFDIR | 0o755, EntryKind.DIRECTORY),
            (stat.S_IFLNK | 0o777, EntryKind.SYMLINK),
            (stat.S_IFCHR | 0o600, EntryKind.DEVICE),
            (stat.S_IFBLK | 0o600, EntryKind.DEVICE),
            (stat.S_IFIFO | 0o600, EntryKind.PIPE),
            (stat.S_IFSOCK | 0o600, EntryKind.SOCKET),
            (0, EntryKind.IRREGULAR),
        ],
    )
    def test_modes(self, mode: int, expected: EntryKind) -> None:
        """Every file type bit maps to its entry kind."""
        assert classify_mode(mode) == expected


class TestWalk:
    """Tests for DirectoryWalker.walk."""

    def test_regular_files_in_pre_order(self, make_tree) -> None:
        """Files are yielded depth-first in name order."""
        root = make_tree({"b.txt": "b", "a/z.txt": "z", "a/y/x.txt": "x", "c.txt": "c"})

        paths = [f.path for f in DirectoryWalker(str(root)).walk()]

        assert paths == [
            str(root / "a" / "y" / "x.txt"),
            str(root / "a" / "z.txt"),
            str(root / "b.txt"),
            str(root / "c.txt"),
        ]

    def test_descriptor_fields(self, make_tree) -> None:
        """Descriptors carry the lstat size and kind."""
        root = make_tree({"data.bin": "12345"})

        (descriptor,) = DirectoryWalker(str(root)).walk()

        assert descriptor.size == 5
        assert descriptor.kind == EntryKind.REGULAR
        assert descriptor.is_regular

    def test_counts(self, make_tree) -> None:
        """found counts yielded files."""
        root = make_tree({"a": "1", "b": "2", "sub/c": "3"})
        walker = DirectoryWalker(str(root))

        list(walker.walk())

        assert walker.found == 3
        assert walker.skipped == 0

    def test_empty_directory(self, tmp_path: Path) -> None:
        """An empty directory yields nothing."""
        assert list(DirectoryWalker(str(tmp_path)).walk()) == []

    def test_symlinks_not_followed(self, make_tree) -> None:
        """Symlinks to files and directories are skipped."""
        root = make_tree({"real/file.txt": "x"})
        os.symlink(root / "real" / "file.txt", root / "link.txt")
        os.symlink(root / "real", root / "linkdir")
        walker = DirectoryWalker(str(root))

        paths = [f.path for f in walker.walk()]

        assert paths == [str(root / "real" / "file.txt")]
        assert walker.skipped == 2

    def test_special_files_skipped(self, make_tree) -> None:
        """Named pipes are not yielded."""
        root = make_tree({"file.txt": "x"})
        os.mkfifo(root / "pipe")
        walker = DirectoryWalker(str(root))

        paths = [f.path for f in walker.walk()]

        assert paths == [str(root / "file.txt")]
        assert walker.skipped == 1

    def test_root_not_a_directory(self, tmp_path: Path) -> None:
        """Walking a file is an error."""
        path = tmp_path / "file.txt"
        path.write_text("x")

        with pytest.raises(NotADirectoryError):
            list(DirectoryWalker(str(path)).walk())

    def test_missing_root(self, tmp_path: Path) -> None:
        """Walking a missing directory raises OSError."""
        with pytest.raises(OSError):
            list(DirectoryWalker(str(tmp_path / "missing")).walk())

    def test_progress_logged(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        """Progress is reported once the progress interval has passed."""
        walker = DirectoryWalker(str(tmp_path))

        with caplog.at_level("INFO", logger="checkitall.filesystem.walker"):
            walker._last_progress = float("-inf")
            walker._report_progress()

        assert "Found 0 files" in caplog.text


class TestSkipList:
    """Tests for skip-list pruning."""

    def test_prefix_prunes_subtree(self, make_tree) -> None:
        """A prefix skips the directory and everything below it."""
        root = make_tree({"keep/a.txt": "a", "drop/b.txt": "b", "drop/deep/c.txt": "c"})
        walker = DirectoryWalker(str(root), skip=[str(root / "drop")])

        paths = [f.path for f in walker.walk()]

        assert paths == [str(root / "keep" / "a.txt")]
        assert walker.skipped == 1

    def test_prefix_is_path_component_aware(self, make_tree) -> None:
        """A prefix does not match siblings sharing its leading characters."""
        root = make_tree({"drop/a.txt": "a", "dropped/b.txt": "b"})
        walker = DirectoryWalker(str(root), skip=[str(root / "drop") + "/"])

        paths = [f.path for f in walker.walk()]

        assert paths == [str(root / "dropped" / "b.txt")]

    def test_glob_pattern(self, make_tree) -> None:
        """Entries with glob characters match full paths."""
        root = make_tree({"a.log": "a", "sub/b.log": "b", "c.txt": "c"})
        walker = DirectoryWalker(str(root), skip=["*.log"])

        paths = [f.path for f in walker.walk()]

        assert paths == [str(root / "c.txt")]
        assert walker.skipped == 2

    def test_is_skipped(self) -> None:
        """is_skipped normalizes paths before prefix comparison."""
        walker = DirectoryWalker("/data", skip=["/data/cache/", "*.tmp"])

        assert walker.is_skipped("/data/cache")
        assert walker.is_skipped("/data/cache/x/y")
        assert walker.is_skipped("/data/work/file.tmp")
        assert not walker.is_skipped("/data/cachefile")
        assert not walker.is_skipped("/data/work/file.txt")
