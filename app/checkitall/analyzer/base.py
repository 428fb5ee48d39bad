"""Abstract base class for analyzer clients.

The admission pipeline only talks to this interface. A concrete
client may call the service directly or wrap such a call with a local
result cache; the pipeline cannot tell the difference.
"""

from abc import ABC, abstractmethod

from checkitall.analyzer.models import Verdict
from checkitall.core.errors import CheckItAllError


class AnalyzerError(CheckItAllError):
    """Raised when a call to the analyzer fails.

    Transport and service errors are fatal to the run; calls are never
    retried transparently.
    """


class AlreadyRegisteredError(AnalyzerError):
    """Raised by register() when this client is already registered."""


class Analyzer(ABC):
    """Client of a remote content-analysis service.

    Implementations must be safe for concurrent use by all submit
    workers of a run.

    Example:
        >>> analyzer = DDANClient(settings)
        >>> analyzer.register()
        >>> if sha1 not in analyzer.check_duplicate([sha1]):
        ...     analyzer.upload(path, sha1)
        >>> analyzer.get_verdict([sha1])
    """

    @abstractmethod
    def register(self) -> None:
        """Register this client with the analyzer.

        Raises:
            AlreadyRegisteredError: If the client is already registered.
                Callers treat this as success.
            AnalyzerError: On any other failure.
        """

    @abstractmethod
    def check_duplicate(self, sha1s: list[str]) -> list[str]:
        """Return the fingerprints from ``sha1s`` already known to the analyzer.

        Raises:
            AnalyzerError: If the query fails.
        """

    @abstractmethod
    def upload(self, path: str, sha1: str) -> None:
        """Upload the content of ``path`` as the sample ``sha1``.

        Raises:
            AnalyzerError: If the upload fails.
        """

    @abstractmethod
    def get_verdict(self, sha1s: list[str]) -> list[Verdict]:
        """Return the current verdict for each fingerprint, in order.

        Raises:
            AnalyzerError: If the query fails.
        """

    def get_single_verdict(self, sha1: str) -> Verdict:
        """Query the verdict for exactly one fingerprint.

        Args:
            sha1: Fingerprint to query.

        Returns:
            The verdict for ``sha1``.

        Raises:
            AnalyzerError: If the query fails or the analyzer answers
                with anything but a single matching verdict.
        """
        verdicts = self.get_verdict([sha1])
        if len(verdicts) != 1:
            msg = f"Expected 1 verdict for {sha1}, got {len(verdicts)}"
            raise AnalyzerError(msg)
        verdict = verdicts[0]
        if verdict.sha1.lower() != sha1.lower():
            msg = f"Verdict for {verdict.sha1} returned when {sha1} was requested"
            raise AnalyzerError(msg)
        return verdict
