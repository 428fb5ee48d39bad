"""Rule-based filter deciding which files are submitted for analysis.

A filter is an ordered list of rules loaded once from a TOML file::

    [[rules]]
    submit = true
    type = "mime"
    value = "application/*zip"

    [[rules]]
    submit = false
    type = "path"
    value = "*.txt"

The first rule whose target matches its glob decides; when no rule
matches, the file is not submitted.
"""

import fnmatch
import logging
import tomllib
from enum import Enum
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from checkitall.core.errors import FilterConfigError
from checkitall.filesystem.models import FileDescriptor

logger = logging.getLogger(__name__)


class RuleType(str, Enum):
    """What a rule's pattern is matched against."""

    PATH = "path"
    MIME = "mime"


def glob_match(pattern: str, candidate: str) -> bool:
    """Match a candidate string against a shell glob, case-sensitively."""
    return fnmatch.fnmatchcase(candidate, pattern)


class Rule(BaseModel):
    """A single filter rule.

    Attributes:
        submit: Outcome when the rule matches.
        type: Match target, ``path`` or ``mime``.
        value: Shell glob pattern.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    submit: bool
    type: RuleType
    value: Annotated[str, Field(min_length=1)]

    def matches(self, file: FileDescriptor) -> bool:
        """Check whether the rule's pattern matches the file.

        Raises:
            MimeResolutionError: If a mime rule cannot resolve the type.
            FilterConfigError: If the rule type is unknown.
        """
        if self.type == RuleType.PATH:
            return glob_match(self.value, file.path)
        if self.type == RuleType.MIME:
            return glob_match(self.value, file.mime())
        msg = f"Unknown rule type: {self.type!r}"
        raise FilterConfigError(msg)


class Filter(BaseModel):
    """Ordered rule set. Read-only after load, safe for concurrent use."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    rules: list[Rule] = Field(default_factory=list)

    @classmethod
    def submit_all(cls) -> "Filter":
        """Return a filter that submits every file."""
        return cls(rules=[Rule(submit=True, type=RuleType.PATH, value="*")])

    def evaluate(self, file: FileDescriptor) -> bool:
        """Decide whether a file should be submitted.

        Args:
            file: Candidate file.

        Returns:
            The ``submit`` value of the first matching rule, or False
            when no rule matches.

        Raises:
            MimeResolutionError: If a mime rule is reached and the MIME
                type cannot be resolved.
            FilterConfigError: If a rule has an unknown type.
        """
        for rule in self.rules:
            if rule.matches(file):
                logger.debug("%s %s rule %r: %s", "Submit" if rule.submit else "Ignore",
                             rule.type, rule.value, file.path)
                return rule.submit
        logger.debug("No rule matched: %s", file.path)
        return False


def load_filter(path: Path) -> Filter:
    """Load filter rules from a TOML file.

    Args:
        path: Path to the filter file.

    Returns:
        Validated Filter.

    Raises:
        FilterConfigError: If the file is missing, unreadable, not valid
            TOML, or a rule is malformed or has an unknown type.
    """
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise FilterConfigError(f"{path}: invalid TOML syntax: {e}") from e
    except OSError as e:
        raise FilterConfigError(f"{path}: {e}") from e

    try:
        loaded = Filter.model_validate(data)
    except ValidationError as e:
        raise FilterConfigError(f"{path}: invalid filter: {e}") from e

    logger.debug("Loaded %d filter rules from %s", len(loaded.rules), path)
    return loaded
