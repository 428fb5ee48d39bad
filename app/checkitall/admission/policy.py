"""Policy evaluation for terminal verdicts.

Maps a terminal verdict, or the oversize special case, to an
admit/reject decision using the operator-supplied policy.
"""

import logging
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from checkitall.analyzer.models import RiskLevel, SampleStatus, Verdict
from checkitall.core.errors import PolicyInvariantError

logger = logging.getLogger(__name__)


class OutcomeCategory(str, Enum):
    """Outcome category of one admitted or rejected file.

    The first seven values are the configurable policy keys.
    """

    HIGH_RISK = "highRisk"
    MEDIUM_RISK = "mediumRisk"
    LOW_RISK = "lowRisk"
    ERROR = "error"
    UNSCANNABLE = "unscannable"
    TIMEOUT = "timeout"
    BIG_FILE = "bigFile"
    NO_RISK = "noRisk"
    INTERNAL_ERROR = "internalError"
    FILE_ERROR = "fileError"


POLICY_CATEGORIES: tuple[OutcomeCategory, ...] = (
    OutcomeCategory.HIGH_RISK,
    OutcomeCategory.MEDIUM_RISK,
    OutcomeCategory.LOW_RISK,
    OutcomeCategory.ERROR,
    OutcomeCategory.UNSCANNABLE,
    OutcomeCategory.TIMEOUT,
    OutcomeCategory.BIG_FILE,
)

_RISK_CATEGORIES: dict[RiskLevel, OutcomeCategory] = {
    RiskLevel.UNSUPPORTED: OutcomeCategory.UNSCANNABLE,
    RiskLevel.NO_RISK_FOUND: OutcomeCategory.NO_RISK,
    RiskLevel.LOW_RISK: OutcomeCategory.LOW_RISK,
    RiskLevel.MEDIUM_RISK: OutcomeCategory.MEDIUM_RISK,
    RiskLevel.HIGH_RISK: OutcomeCategory.HIGH_RISK,
}


class Policy(BaseModel):
    """Admit/reject policy per outcome category.

    Keys use the camelCase category names in configuration files.
    ``NoRiskFound`` is not configurable and always admitted. Defaults
    admit unscannable and oversize files and reject everything else.

    Attributes:
        high_risk: Admit files rated high risk.
        medium_risk: Admit files rated medium risk.
        low_risk: Admit files rated low risk.
        error: Admit files whose analysis ended in an error.
        unscannable: Admit files of a type the analyzer does not support.
        timeout: Admit files whose analysis timed out.
        big_file: Admit files above the size ceiling without analysis.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    high_risk: Annotated[bool, Field(alias="highRisk")] = False
    medium_risk: Annotated[bool, Field(alias="mediumRisk")] = False
    low_risk: Annotated[bool, Field(alias="lowRisk")] = False
    error: bool = False
    unscannable: bool = True
    timeout: bool = False
    big_file: Annotated[bool, Field(alias="bigFile")] = True

    def admits(self, category: OutcomeCategory) -> bool:
        """Return the decision for an outcome category.

        Args:
            category: Outcome category.

        Returns:
            True to admit. NO_RISK is always admitted, INTERNAL_ERROR
            and FILE_ERROR are always rejected.
        """
        if category == OutcomeCategory.NO_RISK:
            return True
        if category in (OutcomeCategory.INTERNAL_ERROR, OutcomeCategory.FILE_ERROR):
            return False
        return self.model_dump(by_alias=True)[category.value]

    def category(self, verdict: Verdict) -> OutcomeCategory:
        """Classify a terminal verdict into an outcome category.

        Args:
            verdict: Verdict with status DONE, ERROR or TIMEOUT.

        Returns:
            OutcomeCategory for the verdict. An unknown risk level on a
            DONE verdict is INTERNAL_ERROR.

        Raises:
            PolicyInvariantError: If the verdict is not terminal.
        """
        if verdict.status == SampleStatus.ERROR:
            return OutcomeCategory.ERROR
        if verdict.status == SampleStatus.TIMEOUT:
            return OutcomeCategory.TIMEOUT
        if verdict.status != SampleStatus.DONE:
            msg = f"Verdict for {verdict.sha1} is not ready: {verdict.status.value}"
            raise PolicyInvariantError(msg)

        if isinstance(verdict.risk_level, RiskLevel):
            return _RISK_CATEGORIES[verdict.risk_level]
        return OutcomeCategory.INTERNAL_ERROR

    def decide(self, verdict: Verdict) -> bool:
        """Decide whether the file behind a terminal verdict is admitted.

        Args:
            verdict: Verdict with status DONE, ERROR or TIMEOUT.

        Returns:
            True to admit, False to reject.

        Raises:
            PolicyInvariantError: If the verdict is not terminal.
        """
        category = self.category(verdict)
        if category == OutcomeCategory.INTERNAL_ERROR:
            logger.error("Unknown risk level %r for %s", verdict.risk_level, verdict.sha1)
        return self.admits(category)

    def decide_big_file(self) -> bool:
        """Decide whether a file above the size ceiling is admitted."""
        return self.big_file
