"""MIME type resolution using the file(1) utility."""

import logging
import subprocess

from checkitall.core.errors import MimeResolutionError
from checkitall.utils.shell import run_command

logger = logging.getLogger(__name__)

_FILE_COMMAND = "file"


def resolve_mime(path: str) -> str:
    """Determine the MIME type of a file.

    Runs ``file --mime-type --brief <path>``.

    Args:
        path: Path of the file to classify.

    Returns:
        MIME type string such as ``application/zip``.

    Raises:
        MimeResolutionError: If file(1) is missing, times out, fails,
            or prints nothing.
    """
    args = [_FILE_COMMAND, "--mime-type", "--brief", path]
    try:
        result = run_command(args, timeout=30.0)
    except (OSError, subprocess.SubprocessError) as e:
        raise MimeResolutionError(path, f"{' '.join(args)}: {e}") from e

    if not result.success:
        msg = f"{' '.join(args)}: exit code {result.returncode}: {result.stderr.strip()}"
        raise MimeResolutionError(path, msg)

    mime = result.stdout.strip()
    if not mime:
        raise MimeResolutionError(path, f"{' '.join(args)}: empty output")

    logger.debug("MIME %s: %s", mime, path)
    return mime
