"""Content fingerprinting.

The analyzer identifies samples by the SHA-1 of their content, so the
fingerprint is a service identity, not a security control.
"""

import hashlib

from checkitall.core.errors import FingerprintError

CHUNK_SIZE = 1024 * 1024


def fingerprint(path: str) -> str:
    """Compute the SHA-1 hex digest of a file's content.

    The file is streamed in chunks, so memory use does not depend on
    file size.

    Args:
        path: Path of the file to hash.

    Returns:
        Lowercase hex digest.

    Raises:
        FingerprintError: If the file cannot be opened or read, for
            example when it vanished after the walk saw it.
    """
    digest = hashlib.sha1(usedforsecurity=False)
    try:
        with open(path, "rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                digest.update(chunk)
    except OSError as e:
        raise FingerprintError(path, f"Calculating SHA1 for {path}: {e}") from e
    return digest.hexdigest()
