"""Run-wide tally of admission outcomes."""

import threading
from collections import Counter
from dataclasses import dataclass, field

from checkitall.admission.policy import OutcomeCategory


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Final result of an admission run.

    Attributes:
        rejected: Number of inadmissible files.
        admitted: Number of files admitted after a decision.
        ignored: Number of files the filter did not submit.
        submitted: Number of files handed to the analyzer.
        skipped: Number of entries excluded by the walk.
        categories: Files per outcome category (admitted and rejected).
    """

    rejected: int
    admitted: int
    ignored: int
    submitted: int
    skipped: int = 0
    categories: dict[OutcomeCategory, int] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """Check if the run found no inadmissible files."""
        return self.rejected == 0

    @property
    def message(self) -> str:
        """Human-readable summary line."""
        if self.success:
            return "All files are admissible"
        return f"Found {self.rejected} inadmissible files"


class RunAggregate:
    """Thread-safe counters shared by all pipeline workers.

    Only the rejected count decides the run; the other counters feed
    the summary.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rejected = 0
        self._admitted = 0
        self._ignored = 0
        self._submitted = 0
        self._categories: Counter[OutcomeCategory] = Counter()

    def record(self, category: OutcomeCategory, admitted: bool) -> None:
        """Record one decided file.

        Args:
            category: Outcome category the decision was based on.
            admitted: Whether the file was admitted.
        """
        with self._lock:
            self._categories[category] += 1
            if admitted:
                self._admitted += 1
            else:
                self._rejected += 1

    def record_ignored(self) -> None:
        """Record a file the filter did not submit."""
        with self._lock:
            self._ignored += 1

    def record_submitted(self) -> None:
        """Record a file entering the submit stage."""
        with self._lock:
            self._submitted += 1

    def outcome(self, skipped: int = 0) -> RunOutcome:
        """Snapshot the counters into a RunOutcome.

        Args:
            skipped: Number of entries the walk excluded.
        """
        with self._lock:
            return RunOutcome(
                rejected=self._rejected,
                admitted=self._admitted,
                ignored=self._ignored,
                submitted=self._submitted,
                skipped=skipped,
                categories=dict(self._categories),
            )
