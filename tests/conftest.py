"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import threading
from collections import Counter
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest
from checkitall.analyzer.base import Analyzer, AnalyzerError
from checkitall.analyzer.models import RiskLevel, SampleStatus, Verdict


class FakeAnalyzer(Analyzer):
    """In-memory analyzer that rates samples by their content.

    A file whose content is a RiskLevel value (``high_risk``,
    ``unsupported``, ...) is rated with that level; any other content is
    rated NO_RISK_FOUND. Every sample reports the statuses in
    ``progress`` on its first polls before it is DONE.

    Args:
        progress: Statuses reported before DONE, one per poll.
        known: Samples the analyzer already holds, with their rating.
        index_uploads: Whether uploads show up in check_duplicate right
            away. When false they show up once their analysis is DONE.
        lose_uploads: Accept uploads but never store them.
    """

    def __init__(
        self,
        *,
        progress: Sequence[SampleStatus] = (),
        known: dict[str, RiskLevel] | None = None,
        index_uploads: bool = True,
        lose_uploads: bool = False,
    ) -> None:
        self.lock = threading.Lock()
        self.progress = list(progress)
        self.known: dict[str, RiskLevel] = dict(known or {})
        self.index_uploads = index_uploads
        self.lose_uploads = lose_uploads
        self.scripts: dict[str, list[Verdict]] = {}
        self.registrations = 0
        self.duplicate_checks = 0
        self.uploads: list[str] = []
        self.polls: Counter[str] = Counter()
        self.register_error: AnalyzerError | None = None
        self.upload_error: AnalyzerError | None = None
        self.poll_error: AnalyzerError | None = None
        self._uploaded: dict[str, RiskLevel] = {}
        self._analyzed: set[str] = set()

    def add_sample(self, sha1: str, risk_level: RiskLevel = RiskLevel.NO_RISK_FOUND) -> None:
        """Store a sample as if it had been uploaded."""
        with self.lock:
            self._uploaded[sha1] = risk_level

    def script(self, sha1: str, *verdicts: Verdict) -> None:
        """Answer polls for ``sha1`` with the given verdicts, repeating the last."""
        with self.lock:
            self.scripts[sha1] = list(verdicts)

    def register(self) -> None:
        with self.lock:
            self.registrations += 1
        if self.register_error is not None:
            raise self.register_error

    def check_duplicate(self, sha1s: list[str]) -> list[str]:
        with self.lock:
            self.duplicate_checks += 1
            visible = set(self.known)
            visible |= set(self._uploaded) if self.index_uploads else self._analyzed
            return [s for s in sha1s if s in visible]

    def upload(self, path: str, sha1: str) -> None:
        if self.upload_error is not None:
            raise self.upload_error
        content = Path(path).read_text().strip()
        try:
            risk_level = RiskLevel(content)
        except ValueError:
            risk_level = RiskLevel.NO_RISK_FOUND
        with self.lock:
            self.uploads.append(sha1)
            if not self.lose_uploads:
                self._uploaded[sha1] = risk_level

    def get_verdict(self, sha1s: list[str]) -> list[Verdict]:
        if self.poll_error is not None:
            raise self.poll_error
        with self.lock:
            return [self._verdict(sha1) for sha1 in sha1s]

    def _verdict(self, sha1: str) -> Verdict:
        poll = self.polls[sha1]
        self.polls[sha1] += 1

        if sha1 in self.scripts:
            script = self.scripts[sha1]
            return script[min(poll, len(script) - 1)]

        risk_level = self.known.get(sha1, self._uploaded.get(sha1))
        if risk_level is None:
            return Verdict(sha1=sha1, status=SampleStatus.NOT_FOUND)
        if poll < len(self.progress):
            return Verdict(sha1=sha1, status=self.progress[poll])
        self._analyzed.add(sha1)
        return Verdict(sha1=sha1, status=SampleStatus.DONE, risk_level=risk_level)


@pytest.fixture
def fake_analyzer() -> FakeAnalyzer:
    """Analyzer that answers DONE on the first poll."""
    return FakeAnalyzer()


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[dict[str, str]], Path]:
    """Factory writing a directory tree of text files.

    Keys are paths relative to the tree root, values the file content.
    """

    def _make(files: dict[str, str]) -> Path:
        root = tmp_path / "tree"
        root.mkdir(exist_ok=True)
        for relative, content in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return root

    return _make


@pytest.fixture
def analyzer_factory() -> type[FakeAnalyzer]:
    """The FakeAnalyzer class, for tests that need custom construction."""
    return FakeAnalyzer
