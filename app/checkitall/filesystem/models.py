"""Filesystem domain models for admission.

Defines the entry classification used by the walker and the file
descriptor handed through the admission pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum

from checkitall.filesystem.mime import resolve_mime


class EntryKind(str, Enum):
    """Kind of a filesystem entry, determined without following symlinks.

    Attributes:
        REGULAR: Regular file. The only kind that is admitted for analysis.
        DIRECTORY: Directory. Descended into by the walker.
        SYMLINK: Symbolic link (never followed).
        DEVICE: Character or block device.
        PIPE: Named pipe (FIFO).
        SOCKET: Unix domain socket.
        IRREGULAR: Anything else the platform reports.
    """

    REGULAR = "regular"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    DEVICE = "device"
    PIPE = "pipe"
    SOCKET = "socket"
    IRREGULAR = "irregular"


@dataclass(slots=True)
class FileDescriptor:
    """A filesystem entry selected for possible submission.

    Path, size and kind are fixed at creation. The MIME type is
    resolved on first use and memoized, since only filters with a
    ``mime`` rule need it and resolution spawns a subprocess.

    A descriptor is owned by exactly one pipeline worker at a time,
    so the memo needs no locking.

    Attributes:
        path: Path of the entry as produced by the walk.
        size: Size in bytes (from lstat).
        kind: Entry kind.
    """

    path: str
    size: int
    kind: EntryKind = EntryKind.REGULAR
    _mime: str | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Validate descriptor data after initialization."""
        if not self.path:
            msg = "Path cannot be empty"
            raise ValueError(msg)
        if self.size < 0:
            msg = f"Size cannot be negative, got {self.size}"
            raise ValueError(msg)

    @property
    def is_regular(self) -> bool:
        """Check if the entry is a regular file."""
        return self.kind == EntryKind.REGULAR

    def mime(self) -> str:
        """Return the MIME type of the file, resolving it on first call.

        Raises:
            MimeResolutionError: If the MIME type cannot be determined.
        """
        if self._mime is None:
            self._mime = resolve_mime(self.path)
        return self._mime

    def __str__(self) -> str:
        return f"{self.path} ({self.size} bytes)"
