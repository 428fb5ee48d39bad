"""Analyzer client interface and domain models.

The DDAN web service implementation lives in ``checkitall.analyzer.ddan``.
"""

from checkitall.analyzer.base import AlreadyRegisteredError, Analyzer, AnalyzerError
from checkitall.analyzer.models import RiskLevel, Sample, SampleStatus, Verdict

__all__ = [
    "AlreadyRegisteredError",
    "Analyzer",
    "AnalyzerError",
    "RiskLevel",
    "Sample",
    "SampleStatus",
    "Verdict",
]
