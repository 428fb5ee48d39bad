"""Filesystem side of admission.

Directory walking with entry classification, MIME resolution and
content fingerprinting.
"""

from checkitall.filesystem.fingerprint import fingerprint
from checkitall.filesystem.mime import resolve_mime
from checkitall.filesystem.models import EntryKind, FileDescriptor
from checkitall.filesystem.walker import DirectoryWalker, classify_mode

__all__ = [
    "DirectoryWalker",
    "EntryKind",
    "FileDescriptor",
    "classify_mode",
    "fingerprint",
    "resolve_mime",
]
