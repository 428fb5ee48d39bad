"""Unit tests for filesystem models."""

from unittest.mock import MagicMock, patch

import pytest
from checkitall.filesystem.models import EntryKind, FileDescriptor


class TestFileDescriptor:
    """Tests for FileDescriptor dataclass."""

    def test_defaults(self) -> None:
        """Descriptors default to regular files."""
        descriptor = FileDescriptor(path="/data/a.bin", size=10)

        assert descriptor.kind == EntryKind.REGULAR
        assert descriptor.is_regular
        assert str(descriptor) == "/data/a.bin (10 bytes)"

    def test_empty_path_rejected(self) -> None:
        """An empty path is invalid."""
        with pytest.raises(ValueError, match="Path cannot be empty"):
            FileDescriptor(path="", size=0)

    def test_negative_size_rejected(self) -> None:
        """A negative size is invalid."""
        with pytest.raises(ValueError, match="negative"):
            FileDescriptor(path="/data/a.bin", size=-1)

    @patch("checkitall.filesystem.models.resolve_mime")
    def test_mime_is_memoized(self, mock_mime: MagicMock) -> None:
        """The MIME type is resolved once per descriptor."""
        mock_mime.return_value = "text/plain"
        descriptor = FileDescriptor(path="/data/a.txt", size=1)

        assert descriptor.mime() == "text/plain"
        assert descriptor.mime() == "text/plain"
        mock_mime.assert_called_once_with("/data/a.txt")

    @patch("checkitall.filesystem.models.resolve_mime")
    def test_mime_not_part_of_equality(self, mock_mime: MagicMock) -> None:
        """Resolving the MIME type does not change equality."""
        mock_mime.return_value = "text/plain"
        resolved = FileDescriptor(path="/data/a.txt", size=1)
        resolved.mime()

        assert resolved == FileDescriptor(path="/data/a.txt", size=1)
