"""
Базовые типы политик поиска.

Политика - чистая функция: по последней попытке и бюджету
возвращает параметры следующей попытки или None (Stop).
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from src.domain.contracts import EncodeRequest, PolicyTuning
from ..domain.interfaces import ISearchPolicy


@dataclass(frozen=True)
class SearchParameters:
    """Параметры одной попытки кодирования."""
    quality: int
    width: Optional[int] = None  # None = без ограничения ширины


@dataclass(frozen=True)
class EncodeAttempt:
    """Результат одной попытки (эфемерный, контроллер хранит только последнюю)."""
    attempt_index: int
    quality: int
    width: Optional[int]
    output_width: int
    output_height: int
    result_bytes: bytes
    result_size: int

    @property
    def parameters(self) -> SearchParameters:
        return SearchParameters(quality=self.quality, width=self.width)


class AbstractSearchPolicy(ISearchPolicy):
    """Общая часть политик: тюнинг и стартовое качество."""

    name = "abstract"

    def __init__(self, tuning: Optional[PolicyTuning] = None):
        self.tuning = tuning or PolicyTuning()

    def initial_parameters(self, source_size: Tuple[int, int], request: EncodeRequest) -> SearchParameters:
        return SearchParameters(quality=request.initial_quality, width=request.target_width)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(max_attempts={self.max_attempts})"
