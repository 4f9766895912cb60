"""
Analytic correction: быстрая политика (максимум 2 кодирования).

Перед первой попыткой ширина ограничивается по числу пикселей.
Если результат не влез, одна аналитическая коррекция:
    width   = floor(output_width * sqrt(budget / size) * 0.95)
    quality = max(60, floor(quality * 0.85))
Вторая попытка финальная независимо от результата.
"""

import math
from typing import Optional, Tuple

from loguru import logger

from src.domain.contracts import EncodeRequest
from .base import AbstractSearchPolicy, EncodeAttempt, SearchParameters


class AnalyticCorrectionPolicy(AbstractSearchPolicy):
    """Фиксированный потолок в два кодирования: латентность важнее точности."""

    name = "analytic"

    @property
    def max_attempts(self) -> int:
        return 2

    def initial_parameters(self, source_size: Tuple[int, int], request: EncodeRequest) -> SearchParameters:
        width, height = source_size
        pixels = width * height
        requested = request.target_width

        for threshold, cap in self.tuning.width_breakpoints:
            if pixels > threshold:
                if cap < width:
                    logger.debug(
                        f"[AnalyticCorrectionPolicy] {pixels / 1_000_000:.0f} MP > "
                        f"{threshold / 1_000_000:.0f} MP -> ширина {cap}px"
                    )
                    requested = cap if requested is None else min(requested, cap)
                break

        return SearchParameters(quality=request.initial_quality, width=requested)

    def next_parameters(self, last_attempt: EncodeAttempt, byte_budget: int) -> Optional[SearchParameters]:
        if last_attempt.attempt_index >= self.max_attempts - 1:
            return None
        if last_attempt.result_size <= byte_budget:
            return None

        t = self.tuning
        ratio = math.sqrt(byte_budget / last_attempt.result_size)
        new_width = max(1, math.floor(last_attempt.output_width * ratio * t.safety_margin))
        new_quality = min(
            last_attempt.quality,
            max(t.analytic_quality_floor, math.floor(last_attempt.quality * t.quality_factor)),
        )

        logger.debug(
            f"[AnalyticCorrectionPolicy] Коррекция: ratio={ratio:.3f}, "
            f"width {last_attempt.output_width} -> {new_width}, quality {last_attempt.quality} -> {new_quality}"
        )
        return SearchParameters(quality=new_quality, width=new_width)
