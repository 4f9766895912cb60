"""Политики поиска параметров кодирования."""

from .base import SearchParameters, EncodeAttempt, AbstractSearchPolicy
from .iterative import IterativeDescentPolicy
from .analytic import AnalyticCorrectionPolicy
from .factory import create_policy, POLICIES

__all__ = [
    "SearchParameters",
    "EncodeAttempt",
    "AbstractSearchPolicy",
    "IterativeDescentPolicy",
    "AnalyticCorrectionPolicy",
    "create_policy",
    "POLICIES",
]
