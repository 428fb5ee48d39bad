"""Two-stage concurrent admission pipeline.

The walker feeds candidate files into a bounded prescan queue. Prescan
workers apply the filter and the size ceiling and forward survivors to
a bounded submit queue. Submit workers fingerprint, deduplicate, upload,
poll for the verdict and apply the policy.

Shutdown is ordered: the prescan queue is closed after the walk ends,
the submit queue only after every prescan worker has exited, so no
in-flight file is dropped.

The first run-fatal error wins. It is logged at once, the walker stops,
queued files are drained without processing and waiting pollers wake
up; run() then raises RunAbortedError.
"""

import logging
import queue
import random
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import cast

from checkitall.admission.aggregate import RunAggregate, RunOutcome
from checkitall.admission.filter import Filter
from checkitall.admission.policy import OutcomeCategory, Policy
from checkitall.admission.poller import VerdictPoller
from checkitall.analyzer.base import AlreadyRegisteredError, Analyzer, AnalyzerError
from checkitall.analyzer.models import Sample
from checkitall.core.config import AppConfig, FileErrorMode
from checkitall.core.errors import FileAdmissionError, RunAbortedError, RunCancelledError
from checkitall.filesystem.fingerprint import fingerprint
from checkitall.filesystem.models import FileDescriptor
from checkitall.filesystem.walker import DirectoryWalker

logger = logging.getLogger(__name__)

# Queue sentinel: one per worker closes a queue
_DONE = object()


class _LedgerEntry:
    """In-flight state of one fingerprint."""

    __slots__ = ("holders", "lock", "uploaded")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0
        self.uploaded = False


class _UploadLedger:
    """Deduplicates uploads across concurrent submit workers.

    Files with the same fingerprint are serialized on a per-fingerprint
    lock. The analyzer's duplicate check is always consulted first, and
    a fingerprint is uploaded at most once while any file carrying it is
    in flight, even when the analyzer has not indexed the upload yet.
    An entry lives only as long as a submit worker holds it, so the
    ledger never grows beyond the number of submit workers.
    """

    def __init__(self, analyzer: Analyzer) -> None:
        self._analyzer = analyzer
        self._lock = threading.Lock()
        self._entries: dict[str, _LedgerEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @contextmanager
    def claim(self, sample: Sample) -> Iterator[bool]:
        """Hold the sample's fingerprint while it is uploaded and analyzed.

        The sample is uploaded on entry unless the analyzer or another
        in-flight holder already has it. Keep the claim until the
        verdict is known.

        Yields:
            True if this claim performed the upload.

        Raises:
            AnalyzerError: If the duplicate check or upload fails.
        """
        with self._lock:
            entry = self._entries.get(sample.sha1)
            if entry is None:
                entry = self._entries[sample.sha1] = _LedgerEntry()
            entry.holders += 1
        try:
            with entry.lock:
                uploaded = self._upload_once(entry, sample)
            yield uploaded
        finally:
            with self._lock:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[sample.sha1]

    def _upload_once(self, entry: _LedgerEntry, sample: Sample) -> bool:
        known = self._analyzer.check_duplicate([sample.sha1])
        if any(k.lower() == sample.sha1.lower() for k in known):
            logger.debug("Known to analyzer: %s (%s)", sample.path, sample.sha1)
            return False
        if entry.uploaded:
            logger.debug("Uploaded by another worker: %s (%s)", sample.path, sample.sha1)
            return False
        self._analyzer.upload(sample.path, sample.sha1)
        entry.uploaded = True
        logger.info("Uploaded %s", sample.path)
        return True


class AdmissionPipeline:
    """Decides admission for every regular file under a directory.

    Args:
        analyzer: Analyzer client, shared by all submit workers.
        policy: Admit/reject policy.
        filter: Filter rules. None submits every file.
        max_file_size: Size ceiling in bytes.
        prescan_jobs: Number of prescan workers.
        submit_jobs: Number of submit workers.
        queue_depth: Capacity of each work queue.
        on_file_error: ``abort`` escalates per-file errors (MIME
            resolution, fingerprinting) to the run; ``reject`` rejects
            only the affected file.
        poll_interval: Base verdict poll interval in seconds.
        max_polls: Poll budget per sample (None = unbounded).
        poll_timeout: Poll time budget per sample (None = unbounded).
        rng: Random source for poll jitter.
    """

    def __init__(
        self,
        analyzer: Analyzer,
        policy: Policy,
        *,
        filter: Filter | None = None,
        max_file_size: int = 50_000_000,
        prescan_jobs: int = 4,
        submit_jobs: int = 100,
        queue_depth: int = 1000,
        on_file_error: FileErrorMode = "abort",
        poll_interval: float = 60.0,
        max_polls: int | None = None,
        poll_timeout: float | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if prescan_jobs < 1 or submit_jobs < 1:
            msg = "Worker pools need at least one worker each"
            raise ValueError(msg)
        self._analyzer = analyzer
        self._policy = policy
        self._filter = filter or Filter.submit_all()
        self._max_file_size = max_file_size
        self._prescan_jobs = prescan_jobs
        self._submit_jobs = submit_jobs
        self._queue_depth = queue_depth
        self._on_file_error = on_file_error
        self._poll_interval = poll_interval
        self._max_polls = max_polls
        self._poll_timeout = poll_timeout
        self._rng = rng

        # Per-run state, rebuilt by _reset() at the start of every run
        self._fatal_lock = threading.Lock()
        self._abort: threading.Event
        self._fatal: BaseException | None
        self._aggregate: RunAggregate
        self._uploads: _UploadLedger
        self._poller: VerdictPoller
        self._reset()

    @classmethod
    def from_config(
        cls,
        analyzer: Analyzer,
        config: AppConfig,
        filter: Filter | None = None,
    ) -> "AdmissionPipeline":
        """Create a pipeline from the run configuration."""
        return cls(
            analyzer,
            config.policy,
            filter=filter,
            max_file_size=config.pipeline.max_file_size,
            prescan_jobs=config.pipeline.prescan_jobs,
            submit_jobs=config.pipeline.submit_jobs,
            queue_depth=config.pipeline.queue_depth,
            on_file_error=config.pipeline.on_file_error,
            poll_interval=config.poll.interval,
            max_polls=config.poll.max_polls,
            poll_timeout=config.poll.timeout,
        )

    def _reset(self) -> None:
        self._abort = threading.Event()
        self._fatal = None
        self._aggregate = RunAggregate()
        self._uploads = _UploadLedger(self._analyzer)
        self._poller = VerdictPoller(
            self._analyzer,
            self._poll_interval,
            max_polls=self._max_polls,
            timeout=self._poll_timeout,
            wait=self._abort.wait,
            rng=self._rng,
        )

    def run(self, folder: str, skip: Sequence[str] = ()) -> RunOutcome:
        """Run admission over a directory tree.

        Args:
            folder: Directory to check.
            skip: Path prefixes or glob patterns excluded from the walk.

        Returns:
            RunOutcome with the number of inadmissible files.

        Raises:
            RunAbortedError: If a run-fatal error occurred. The outcome
                of an aborted run is not trustworthy and is not returned.
        """
        self._reset()
        self._register()

        logger.info(
            "Process folder: %s (prescan jobs: %d, submit jobs: %d)",
            folder,
            self._prescan_jobs,
            self._submit_jobs,
        )

        prescan_queue: queue.Queue[object] = queue.Queue(maxsize=self._queue_depth)
        submit_queue: queue.Queue[object] = queue.Queue(maxsize=self._queue_depth)
        prescan_workers = self._start_workers(
            "prescan", self._prescan_jobs, self._prescan_worker, prescan_queue, submit_queue
        )
        submit_workers = self._start_workers(
            "submit", self._submit_jobs, self._submit_worker, submit_queue
        )

        walker = DirectoryWalker(folder, skip)
        try:
            self._walk(walker, prescan_queue)

            self._close(prescan_queue, prescan_workers)
            self._close(submit_queue, submit_workers)
        except KeyboardInterrupt:
            self._abort.set()
            raise

        if self._fatal is not None:
            raise RunAbortedError(self._fatal) from self._fatal

        outcome = self._aggregate.outcome(skipped=walker.skipped)
        logger.info(
            "Done: %d submitted, %d ignored, %d admitted, %d rejected",
            outcome.submitted,
            outcome.ignored,
            outcome.admitted,
            outcome.rejected,
        )
        return outcome

    # === Coordination ===

    def _register(self) -> None:
        try:
            self._analyzer.register()
        except AlreadyRegisteredError:
            logger.debug("Analyzer client already registered")
        except AnalyzerError as e:
            logger.error("Analyzer register: %s", e)
            raise RunAbortedError(e) from e
        else:
            logger.info("Registration complete")

    def _walk(self, walker: DirectoryWalker, prescan_queue: queue.Queue[object]) -> None:
        try:
            for file in walker.walk():
                if self._abort.is_set():
                    return
                prescan_queue.put(file)
        except OSError as e:
            self._fail(e)
            return
        logger.info("Scan complete. Found %d files. Waiting for analysis results", walker.found)

    @staticmethod
    def _start_workers(
        name: str,
        count: int,
        target: Callable[..., None],
        *args: object,
    ) -> list[threading.Thread]:
        workers = [
            threading.Thread(target=target, args=args, name=f"{name}-{i}", daemon=True)
            for i in range(count)
        ]
        for worker in workers:
            worker.start()
        return workers

    @staticmethod
    def _close(work_queue: queue.Queue[object], workers: list[threading.Thread]) -> None:
        for _ in workers:
            work_queue.put(_DONE)
        for worker in workers:
            worker.join()

    def _fail(self, error: BaseException) -> None:
        with self._fatal_lock:
            if self._fatal is not None:
                return
            self._fatal = error
        logger.error("Fatal: %s", error)
        self._abort.set()

    def _handle_error(self, file: FileDescriptor, error: Exception) -> None:
        if isinstance(error, RunCancelledError):
            return
        if isinstance(error, FileAdmissionError) and self._on_file_error == "reject":
            logger.error("Rejecting %s: %s", file.path, error)
            self._aggregate.record(OutcomeCategory.FILE_ERROR, admitted=False)
            return
        self._fail(error)

    # === Workers ===

    def _prescan_worker(
        self,
        inbox: queue.Queue[object],
        outbox: queue.Queue[object],
    ) -> None:
        while True:
            item = inbox.get()
            if item is _DONE:
                return
            if self._abort.is_set():
                continue
            file = cast(FileDescriptor, item)
            try:
                self._prescan(file, outbox)
            except Exception as e:  # noqa: BLE001 - forwarded to the coordinator
                self._handle_error(file, e)

    def _submit_worker(self, inbox: queue.Queue[object]) -> None:
        while True:
            item = inbox.get()
            if item is _DONE:
                return
            if self._abort.is_set():
                continue
            file = cast(FileDescriptor, item)
            try:
                self._submit(file)
            except Exception as e:  # noqa: BLE001 - forwarded to the coordinator
                self._handle_error(file, e)

    # === Stages ===

    def _prescan(self, file: FileDescriptor, outbox: queue.Queue[object]) -> None:
        if not self._filter.evaluate(file):
            logger.debug("Ignore: %s", file.path)
            self._aggregate.record_ignored()
            return

        if file.size > self._max_file_size:
            admitted = self._policy.decide_big_file()
            if admitted:
                logger.info("Skip %d bytes file: %s", file.size, file.path)
            else:
                logger.warning("Too big (%d bytes) file: %s", file.size, file.path)
            self._aggregate.record(OutcomeCategory.BIG_FILE, admitted)
            return

        outbox.put(file)

    def _submit(self, file: FileDescriptor) -> None:
        logger.debug("Check file %s", file.path)
        self._aggregate.record_submitted()

        sample = Sample(sha1=fingerprint(file.path), file=file)
        with self._uploads.claim(sample):
            verdict = self._poller.wait_for_verdict(sample)

        admitted = self._policy.decide(verdict)
        category = self._policy.category(verdict)
        if not admitted:
            logger.warning("Inadmissible (%s): %s", category.value, file.path)
        self._aggregate.record(category, admitted)
