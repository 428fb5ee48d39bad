"""Error taxonomy for admission runs.

Errors fall into three families:

- ConfigError: bad configuration, fatal before the run starts.
- FileAdmissionError: a single file could not be processed. The
  pipeline either escalates it or rejects the one file, depending on
  ``pipeline.on_file_error``.
- RunAbortedError: the whole run was aborted. Wraps the first
  run-fatal cause.
"""


class CheckItAllError(Exception):
    """Base exception for all checkitall errors."""


class ConfigError(CheckItAllError):
    """Raised when configuration cannot be loaded or is invalid."""


class ConfigNotFoundError(ConfigError):
    """Raised when the configuration file does not exist."""


class FilterConfigError(ConfigError):
    """Raised for an unreadable filter file or an unknown rule type."""


class FileAdmissionError(CheckItAllError):
    """Raised when one file cannot be taken through admission.

    Attributes:
        path: Path of the file that failed.
    """

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path


class MimeResolutionError(FileAdmissionError):
    """Raised when the MIME type of a file cannot be determined."""


class FingerprintError(FileAdmissionError):
    """Raised when a file cannot be read for fingerprinting."""


class PolicyInvariantError(CheckItAllError):
    """Raised when a non-terminal verdict reaches the policy evaluator."""


class RunCancelledError(CheckItAllError):
    """Raised inside a worker when the run has already been aborted."""


class RunAbortedError(CheckItAllError):
    """Raised when a run-fatal error stopped the admission run.

    The original cause is available as ``__cause__`` and ``cause``.
    """

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Run aborted: {cause}")
        self.cause = cause
