"""Admission decisions: filter rules, verdict polling, policy and tally.

The pipeline that wires these together lives in
``checkitall.admission.pipeline``.
"""

from checkitall.admission.aggregate import RunAggregate, RunOutcome
from checkitall.admission.filter import Filter, Rule, RuleType, load_filter
from checkitall.admission.policy import POLICY_CATEGORIES, OutcomeCategory, Policy
from checkitall.admission.poller import SampleNotFoundError, VerdictPoller

__all__ = [
    "POLICY_CATEGORIES",
    "Filter",
    "OutcomeCategory",
    "Policy",
    "Rule",
    "RuleType",
    "RunAggregate",
    "RunOutcome",
    "SampleNotFoundError",
    "VerdictPoller",
    "load_filter",
]
