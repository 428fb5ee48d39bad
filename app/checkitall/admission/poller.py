"""Verdict polling with state-dependent randomized backoff.

A sample that has merely arrived at the analyzer waits longer between
queries than one already being processed.
"""

import logging
import random
import time
from collections.abc import Callable

from checkitall.analyzer.base import Analyzer, AnalyzerError
from checkitall.analyzer.models import Sample, SampleStatus, Verdict
from checkitall.core.errors import RunCancelledError

logger = logging.getLogger(__name__)

# Sleeps for the given number of seconds; returns True if cancelled
Waiter = Callable[[float], bool]


class SampleNotFoundError(AnalyzerError):
    """Raised when the analyzer has no record of a submitted sample."""


def _sleep(seconds: float) -> bool:
    time.sleep(seconds)
    return False


class VerdictPoller:
    """Polls the analyzer until a sample reaches a terminal status.

    Args:
        analyzer: Analyzer client.
        interval: Base poll interval in seconds.
        max_polls: Maximum number of queries per sample (None = unbounded).
        timeout: Maximum seconds spent polling one sample (None = unbounded).
        wait: Sleep function returning True when the run was cancelled.
            Defaults to an uninterruptible ``time.sleep``.
        rng: Random source for backoff jitter.
    """

    def __init__(
        self,
        analyzer: Analyzer,
        interval: float,
        *,
        max_polls: int | None = None,
        timeout: float | None = None,
        wait: Waiter | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._analyzer = analyzer
        self._interval = interval
        self._max_polls = max_polls
        self._timeout = timeout
        self._wait = wait or _sleep
        self._rng = rng or random.Random()

    def long_delay(self) -> float:
        """Delay while the sample is queued: uniform in [interval/2, interval]."""
        return self._rng.uniform(self._interval / 2, self._interval)

    def short_delay(self) -> float:
        """Delay while the sample is processed: uniform in [interval/8, interval/4]."""
        return self._rng.uniform(self._interval / 8, self._interval / 4)

    def wait_for_verdict(self, sample: Sample) -> Verdict:
        """Poll until the sample's verdict is terminal.

        Args:
            sample: Submitted sample.

        Returns:
            Terminal verdict (DONE, ERROR or TIMEOUT). When the poll
            budget is exhausted a local TIMEOUT verdict is returned.

        Raises:
            SampleNotFoundError: If the analyzer does not know the sample.
            AnalyzerError: If a query fails.
            RunCancelledError: If the run was aborted while waiting.
        """
        started = time.monotonic()
        polls = 0

        while True:
            verdict = self._analyzer.get_single_verdict(sample.sha1)
            polls += 1

            match verdict.status:
                case SampleStatus.NOT_FOUND:
                    msg = f"Not found by analyzer: {sample.sha1} ({sample.path})"
                    raise SampleNotFoundError(msg)
                case SampleStatus.ARRIVED:
                    delay = self.long_delay()
                case SampleStatus.PROCESSING:
                    delay = self.short_delay()
                case SampleStatus.ERROR | SampleStatus.TIMEOUT:
                    logger.warning("Analysis %s for %s", verdict.status.value, sample.path)
                    return verdict
                case SampleStatus.DONE:
                    logger.info("%s: %s", verdict, sample.path)
                    return verdict

            if self._budget_exhausted(polls, started, delay):
                logger.warning(
                    "Gave up waiting for %s after %d polls (%.0fs)",
                    sample.path,
                    polls,
                    time.monotonic() - started,
                )
                return Verdict(sha1=sample.sha1, status=SampleStatus.TIMEOUT)

            logger.debug("%s is %s, next poll in %.1fs", sample.path, verdict.status.value, delay)
            if self._wait(delay):
                msg = f"Run cancelled while waiting for {sample.path}"
                raise RunCancelledError(msg)

    def _budget_exhausted(self, polls: int, started: float, delay: float) -> bool:
        if self._max_polls is not None and polls >= self._max_polls:
            return True
        if self._timeout is not None:
            return time.monotonic() - started + delay > self._timeout
        return False
