"""
DTO контракт: Transcoding -> HTTP / CLI

Результат подбора кодирования под бюджет.

ВАЖНО: бюджет гарантируется по принципу best-effort.
Если попытки исчерпаны, возвращается последний буфер с outcome=EXHAUSTED,
и вызывающая сторона сама решает, принять его или отклонить.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FitOutcome(str, Enum):
    """Терминальное состояние поиска."""
    SUCCESS = "success"        # Результат уложился в бюджет
    EXHAUSTED = "exhausted"    # Попытки исчерпаны, возвращён последний буфер


@dataclass
class FitResult:
    """
    Результат AdaptiveSizeController.fit().
    """
    data: bytes                         # Закодированный результат
    size: int                           # len(data)
    attempts: int                       # Сколько раз вызывался кодек
    quality: int                        # Качество последней попытки
    width: Optional[int]                # Ограничение ширины последней попытки
    output_width: int                   # Ширина результата (px)
    output_height: int                  # Высота результата (px)
    byte_budget: int                    # Бюджет, под который шёл поиск
    outcome: FitOutcome
    first_attempt_size: Optional[int] = None  # Размер попытки 0 (диагностика)
    policy: str = ""                    # Имя политики поиска
    elapsed_ms: float = 0.0

    @property
    def budget_met(self) -> bool:
        """True только если результат действительно не больше бюджета."""
        return self.size <= self.byte_budget


@dataclass
class TranscodeResult:
    """
    Результат обработки одной загрузки.
    """
    original_size: int                  # Размер загрузки (байт)
    format: str                         # Выходной формат ("jpeg", "webp", ...)
    mime_type: str
    fit: FitResult

    @property
    def data(self) -> bytes:
        return self.fit.data

    @property
    def optimized_size(self) -> int:
        return self.fit.size

    @property
    def size_reduction(self) -> float:
        """Процент уменьшения (отрицательный, если результат больше оригинала)."""
        if self.original_size <= 0:
            return 0.0
        return (self.original_size - self.optimized_size) / self.original_size * 100
