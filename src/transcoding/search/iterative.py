"""
Iterative descent: основная политика поиска (до 15 попыток).

Порядок уступок на каждой попытке:
  a. quality > 60        -> quality -= 10
  b. ширина не ограничена -> width = 8000 (только если реально уменьшает)
  c. width > 2000        -> width = floor(width * 0.8)
  d. иначе               -> quality = max(50, quality - 5), либо Stop

Качество дешевле разрешения, поэтому сначала снижается оно.
Ширина уменьшается только для изображений, где размер определяется числом пикселей.
"""

import math
from typing import Optional

from loguru import logger

from .base import AbstractSearchPolicy, EncodeAttempt, SearchParameters


class IterativeDescentPolicy(AbstractSearchPolicy):
    """
    Пошаговое снижение качества и ширины до попадания в бюджет.

    Гарантии:
    - quality не опускается ниже quality_floor
    - width после введения только уменьшается
    - каждый шаг меняет quality или width, иначе возвращается None
    """

    name = "iterative"

    @property
    def max_attempts(self) -> int:
        return self.tuning.max_attempts

    def next_parameters(self, last_attempt: EncodeAttempt, byte_budget: int) -> Optional[SearchParameters]:
        t = self.tuning
        quality = last_attempt.quality
        width = last_attempt.width

        # a. Крупный шаг по качеству
        if quality > t.coarse_quality_threshold:
            new_quality = max(t.quality_floor, quality - t.coarse_quality_step)
            if new_quality < quality:
                return SearchParameters(quality=new_quality, width=width)

        # b. Первое грубое ограничение ширины
        if width is None and last_attempt.output_width > t.coarse_width:
            return SearchParameters(quality=quality, width=t.coarse_width)

        # c. Уменьшение ширины от фактической ширины результата
        current_width = last_attempt.output_width
        if current_width > t.width_floor:
            new_width = max(1, math.floor(current_width * t.width_reduction_factor))
            return SearchParameters(quality=quality, width=new_width)

        # d. Последний резерв: мелкий шаг по качеству
        new_quality = max(t.quality_floor, quality - t.fine_quality_step)
        if new_quality < quality:
            return SearchParameters(quality=new_quality, width=width)

        logger.debug(
            f"[IterativeDescentPolicy] Уступать нечего: quality={quality} (floor {t.quality_floor}), "
            f"width={current_width} (floor {t.width_floor})"
        )
        return None
