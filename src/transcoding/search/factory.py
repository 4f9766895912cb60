"""Выбор политики поиска по имени."""

from typing import Dict, Optional, Type

from src.domain.contracts import PolicyTuning
from ..domain.exceptions import TranscodingConfigurationError
from .analytic import AnalyticCorrectionPolicy
from .base import AbstractSearchPolicy
from .iterative import IterativeDescentPolicy

POLICIES: Dict[str, Type[AbstractSearchPolicy]] = {
    IterativeDescentPolicy.name: IterativeDescentPolicy,
    AnalyticCorrectionPolicy.name: AnalyticCorrectionPolicy,
}


def create_policy(name: str, tuning: Optional[PolicyTuning] = None) -> AbstractSearchPolicy:
    """
    Создаёт политику поиска.

    Args:
        name: "iterative" или "analytic"
        tuning: Константы политики (по умолчанию эталонные)

    Raises:
        TranscodingConfigurationError: неизвестное имя политики
    """
    policy_cls = POLICIES.get(name)
    if policy_cls is None:
        raise TranscodingConfigurationError(
            message=f"Unknown search policy: {name!r} (available: {', '.join(POLICIES)})",
            component="create_policy",
        )
    return policy_cls(tuning)
