"""Analyzer domain models.

Samples, verdict statuses and risk levels as the admission pipeline
sees them, independent of the service wire format.
"""

from dataclasses import dataclass
from enum import Enum

from checkitall.filesystem.models import FileDescriptor


class SampleStatus(str, Enum):
    """Processing status of a sample on the analyzer.

    Attributes:
        NOT_FOUND: The analyzer has no record of the sample.
        ARRIVED: Queued, analysis not started.
        PROCESSING: Analysis in progress.
        DONE: Analysis finished; the risk level is meaningful.
        ERROR: Analysis failed on the analyzer side.
        TIMEOUT: Analysis did not finish in time.
    """

    NOT_FOUND = "not_found"
    ARRIVED = "arrived"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        """Check if polling can stop at this status."""
        return self in (SampleStatus.DONE, SampleStatus.ERROR, SampleStatus.TIMEOUT)


class RiskLevel(str, Enum):
    """Risk rating of a sample whose analysis is done."""

    UNSUPPORTED = "unsupported"
    NO_RISK_FOUND = "no_risk_found"
    LOW_RISK = "low_risk"
    MEDIUM_RISK = "medium_risk"
    HIGH_RISK = "high_risk"


@dataclass(frozen=True, slots=True)
class Sample:
    """A file submitted for analysis, identified by content fingerprint.

    Attributes:
        sha1: Lowercase hex SHA-1 of the file content.
        file: Descriptor of the originating file.
    """

    sha1: str
    file: FileDescriptor

    @property
    def path(self) -> str:
        """Path of the originating file."""
        return self.file.path


@dataclass(frozen=True, slots=True)
class Verdict:
    """Latest analysis result for a sample.

    ``risk_level`` is only meaningful when ``status`` is DONE. It holds
    a RiskLevel, or the raw integer the analyzer returned when that
    value is not a known rating.

    Attributes:
        sha1: Fingerprint the verdict refers to.
        status: Processing status.
        risk_level: Rating for DONE samples, None otherwise.
    """

    sha1: str
    status: SampleStatus
    risk_level: RiskLevel | int | None = None

    @property
    def is_terminal(self) -> bool:
        """Check if the verdict ends polling."""
        return self.status.is_terminal

    def __str__(self) -> str:
        if self.status == SampleStatus.DONE:
            risk = self.risk_level.value if isinstance(self.risk_level, RiskLevel) else self.risk_level
            return f"{self.status.value}/{risk}"
        return self.status.value
