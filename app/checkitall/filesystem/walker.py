"""Directory walker producing admission candidates.

Walks a tree in pre-order without following symlinks, classifies every
entry by its lstat mode and yields only regular files. Skip-listed
paths are pruned together with everything below them.
"""

import fnmatch
import logging
import os
import stat
import time
from collections.abc import Iterator, Sequence

from checkitall.filesystem.models import EntryKind, FileDescriptor

logger = logging.getLogger(__name__)

# Minimum number of seconds between two progress log lines
PROGRESS_INTERVAL = 10.0

_GLOB_CHARS = frozenset("*?[")


def classify_mode(mode: int) -> EntryKind:
    """Classify an lstat mode into an entry kind.

    Args:
        mode: ``st_mode`` from ``os.lstat``.

    Returns:
        EntryKind for the mode.
    """
    if stat.S_ISLNK(mode):
        return EntryKind.SYMLINK
    if stat.S_ISDIR(mode):
        return EntryKind.DIRECTORY
    if stat.S_ISREG(mode):
        return EntryKind.REGULAR
    if stat.S_ISCHR(mode) or stat.S_ISBLK(mode):
        return EntryKind.DEVICE
    if stat.S_ISFIFO(mode):
        return EntryKind.PIPE
    if stat.S_ISSOCK(mode):
        return EntryKind.SOCKET
    return EntryKind.IRREGULAR


class DirectoryWalker:
    """Enumerates regular files under a root directory.

    Args:
        root: Directory to walk.
        skip: Paths to prune. An entry without glob characters is a path
            prefix (it matches itself and everything below it); an entry
            with glob characters is matched with fnmatch against the
            full path. Entries are compared against paths as walked,
            i.e. joined onto ``root`` as given.

    Attributes:
        found: Number of regular files yielded so far.
        skipped: Number of entries excluded (non-regular or skip-listed).
    """

    def __init__(self, root: str, skip: Sequence[str] = ()) -> None:
        self._root = root
        self._prefixes = [os.path.normpath(s) for s in skip if not _GLOB_CHARS & set(s)]
        self._patterns = [s for s in skip if _GLOB_CHARS & set(s)]
        self.found = 0
        self.skipped = 0
        self._last_progress = 0.0

    def walk(self) -> Iterator[FileDescriptor]:
        """Walk the tree and yield a descriptor for each regular file.

        Yields:
            FileDescriptor for every regular file not skip-listed.

        Raises:
            OSError: If the root or a directory below it cannot be read.
                Walk errors are fatal to the run.
        """
        self.found = 0
        self.skipped = 0
        self._last_progress = time.monotonic()

        root_mode = os.lstat(self._root).st_mode
        if not stat.S_ISDIR(root_mode):
            msg = f"Not a directory: {self._root}"
            raise NotADirectoryError(msg)

        yield from self._walk_dir(self._root)

    def is_skipped(self, path: str) -> bool:
        """Check if a path is excluded by the skip list.

        Args:
            path: Path as produced by the walk.

        Returns:
            True if the path matches a skip prefix or pattern.
        """
        normalized = os.path.normpath(path)
        for prefix in self._prefixes:
            if normalized == prefix or normalized.startswith(prefix.rstrip(os.sep) + os.sep):
                return True
        return any(fnmatch.fnmatchcase(path, pattern) for pattern in self._patterns)

    def _walk_dir(self, directory: str) -> Iterator[FileDescriptor]:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)

        for entry in entries:
            path = entry.path
            if self.is_skipped(path):
                logger.debug("Skip listed: %s", path)
                self.skipped += 1
                continue

            info = entry.stat(follow_symlinks=False)
            kind = classify_mode(info.st_mode)

            if kind == EntryKind.DIRECTORY:
                yield from self._walk_dir(path)
                continue

            if kind != EntryKind.REGULAR:
                logger.debug("Skip %s: %s", kind.value, path)
                self.skipped += 1
                continue

            self.found += 1
            self._report_progress()
            yield FileDescriptor(path=path, size=info.st_size, kind=kind)

    def _report_progress(self) -> None:
        now = time.monotonic()
        if now - self._last_progress >= PROGRESS_INTERVAL:
            self._last_progress = now
            logger.info("Found %d files", self.found)
