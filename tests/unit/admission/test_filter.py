"""Unit tests for filter rules and loading."""

from pathlib import Path
from unittest.mock import patch

import pytest
from checkitall.admission.filter import Filter, Rule, RuleType, glob_match, load_filter
from checkitall.core.errors import FilterConfigError, MimeResolutionError
from checkitall.filesystem.models import FileDescriptor


def _file(path: str = "/data/app/lib.so") -> FileDescriptor:
    return FileDescriptor(path=path, size=10)


class TestGlobMatch:
    """Tests for glob_match."""

    @pytest.mark.parametrize(
        ("pattern", "candidate", "expected"),
        [
            ("*.txt", "/data/readme.txt", True),
            ("*.txt", "/data/readme.TXT", False),
            ("application/*zip", "application/x-gzip", True),
            ("application/*zip", "application/zip", True),
            ("text/*", "application/zip", False),
            ("/data/?.bin", "/data/a.bin", True),
            ("*", "anything at all", True),
        ],
    )
    def test_patterns(self, pattern: str, candidate: str, expected: bool) -> None:
        """Shell globs match case-sensitively; * crosses directory separators."""
        assert glob_match(pattern, candidate) is expected


class TestEvaluate:
    """Tests for Filter.evaluate."""

    def test_first_match_wins(self) -> None:
        """The first matching rule decides, later rules are not consulted."""
        rules = Filter(
            rules=[
                Rule(submit=False, type=RuleType.PATH, value="*/vendor/*"),
                Rule(submit=True, type=RuleType.PATH, value="*.so"),
            ]
        )

        assert rules.evaluate(_file("/data/vendor/lib.so")) is False
        assert rules.evaluate(_file("/data/app/lib.so")) is True

    def test_no_match_ignores(self) -> None:
        """A file no rule matches is not submitted."""
        rules = Filter(rules=[Rule(submit=True, type=RuleType.PATH, value="*.zip")])

        assert rules.evaluate(_file()) is False

    def test_empty_filter_ignores(self) -> None:
        """An empty rule list submits nothing."""
        assert Filter().evaluate(_file()) is False

    def test_submit_all(self) -> None:
        """The default filter submits every file."""
        assert Filter.submit_all().evaluate(_file("/x")) is True

    def test_mime_rule(self) -> None:
        """MIME rules match against the resolved type."""
        rules = Filter(rules=[Rule(submit=True, type=RuleType.MIME, value="application/*")])

        with patch(
            "checkitall.filesystem.models.resolve_mime", return_value="application/x-sharedlib"
        ):
            assert rules.evaluate(_file()) is True

    def test_mime_not_resolved_for_path_match(self) -> None:
        """A path rule that decides first saves the MIME lookup."""
        rules = Filter(
            rules=[
                Rule(submit=False, type=RuleType.PATH, value="*.so"),
                Rule(submit=True, type=RuleType.MIME, value="*"),
            ]
        )

        with patch("checkitall.filesystem.models.resolve_mime") as mock_mime:
            assert rules.evaluate(_file()) is False

        mock_mime.assert_not_called()

    def test_mime_error_propagates(self) -> None:
        """MIME resolution failures reach the caller."""
        rules = Filter(rules=[Rule(submit=True, type=RuleType.MIME, value="*")])
        error = MimeResolutionError("/data/app/lib.so", "file: exit code 1")

        with (
            patch("checkitall.filesystem.models.resolve_mime", side_effect=error),
            pytest.raises(MimeResolutionError),
        ):
            rules.evaluate(_file())


class TestLoadFilter:
    """Tests for load_filter."""

    def test_load(self, tmp_path: Path) -> None:
        """Rules load in file order."""
        path = tmp_path / "filter.toml"
        path.write_text(
            """
[[rules]]
submit = false
type = "path"
value = "*.txt"

[[rules]]
submit = true
type = "mime"
value = "application/*"
"""
        )

        loaded = load_filter(path)

        assert [r.type for r in loaded.rules] == [RuleType.PATH, RuleType.MIME]
        assert loaded.rules[0].submit is False
        assert loaded.rules[1].value == "application/*"

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing filter file is a configuration error."""
        with pytest.raises(FilterConfigError, match="missing.toml"):
            load_filter(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        """Broken TOML is a configuration error."""
        path = tmp_path / "filter.toml"
        path.write_text("[[rules]\nsubmit = ")

        with pytest.raises(FilterConfigError, match="invalid TOML"):
            load_filter(path)

    def test_unknown_rule_type(self, tmp_path: Path) -> None:
        """Unknown rule types are rejected on load."""
        path = tmp_path / "filter.toml"
        path.write_text('[[rules]]\nsubmit = true\ntype = "size"\nvalue = "*"\n')

        with pytest.raises(FilterConfigError, match="invalid filter"):
            load_filter(path)

    def test_empty_pattern(self, tmp_path: Path) -> None:
        """Rules need a non-empty pattern."""
        path = tmp_path / "filter.toml"
        path.write_text('[[rules]]\nsubmit = true\ntype = "path"\nvalue = ""\n')

        with pytest.raises(FilterConfigError):
            load_filter(path)

    def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file loads as a filter without rules."""
        path = tmp_path / "filter.toml"
        path.write_text("")

        assert load_filter(path).rules == []
