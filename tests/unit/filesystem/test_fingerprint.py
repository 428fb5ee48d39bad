"""Unit tests for content fingerprinting."""

import hashlib
from pathlib import Path
from unittest.mock import patch

import pytest
from checkitall.core.errors import FingerprintError
from checkitall.filesystem.fingerprint import fingerprint


class TestFingerprint:
    """Tests for fingerprint function."""

    def test_known_digest(self, tmp_path: Path) -> None:
        """The fingerprint is the SHA-1 of the content."""
        path = tmp_path / "hello.txt"
        path.write_bytes(b"hello world\n")

        assert fingerprint(str(path)) == "22596363b3de40b06f981fb85d82312e8c0ed511"

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file has the SHA-1 of no bytes."""
        path = tmp_path / "empty"
        path.write_bytes(b"")

        assert fingerprint(str(path)) == "da39a3ee5e6b4b0d3255bfef95601890afd80709"

    def test_multi_chunk_file(self, tmp_path: Path) -> None:
        """Content spanning several chunks hashes like a single read."""
        content = bytes(range(256)) * 100
        path = tmp_path / "big.bin"
        path.write_bytes(content)

        with patch("checkitall.filesystem.fingerprint.CHUNK_SIZE", 1000):
            result = fingerprint(str(path))

        assert result == hashlib.sha1(content).hexdigest()

    def test_missing_file(self, tmp_path: Path) -> None:
        """A vanished file raises FingerprintError naming the path."""
        missing = str(tmp_path / "gone.bin")

        with pytest.raises(FingerprintError, match="Calculating SHA1") as exc_info:
            fingerprint(missing)

        assert exc_info.value.path == missing
