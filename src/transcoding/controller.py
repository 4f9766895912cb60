"""
Adaptive Size Controller.

Повторяет кодирование исходника, пока результат не уложится в бюджет
или не закончатся попытки. Параметры каждой следующей попытки выбирает
политика поиска (ISearchPolicy), контроллер отвечает только за цикл,
завершение, отмену и логирование.

Состояния:
    Idle -> Attempting(n) -> {Success | Attempting(n+1) | ExhaustedReturnLast}

КРИТИЧЕСКОЕ: каждая попытка строится из исходного SourceImage,
а не из результата предыдущей попытки (иначе потери сжатия накапливаются).
"""

import threading
import time
from dataclasses import dataclass, replace
from typing import Optional

from loguru import logger

from src.domain.contracts import EncodeRequest, ImageFormat
from contracts.transcoding_dto import FitOutcome, FitResult
from .codec.geometry import ResizeBox, width_cap_for_dimension
from .codec.source_image import SourceImage
from .domain.exceptions import SearchCancelledError
from .domain.interfaces import ICodecAdapter, ISearchPolicy, ISizeController
from .search.base import EncodeAttempt, SearchParameters

MIB = 1024 * 1024


@dataclass
class SearchState:
    """Локальное состояние одного вызова fit()."""
    current_quality: int
    current_width: Optional[int]
    attempts_taken: int = 0


class AdaptiveSizeController(ISizeController):
    """
    Подбор (quality x width) под бюджет на размер.

    Контроллер не хранит состояния между вызовами и может
    использоваться из нескольких потоков одновременно.
    """

    def __init__(self, codec: ICodecAdapter, policy: ISearchPolicy):
        self.codec = codec
        self.policy = policy
        logger.debug(f"[AdaptiveSizeController] Инициализирован (policy={policy.name}, max_attempts={policy.max_attempts})")

    def fit(
        self,
        source: SourceImage,
        request: EncodeRequest,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> FitResult:
        """
        Кодирует source так, чтобы результат уложился в request.byte_budget.

        Args:
            source: Неизменяемый исходник
            request: Валидированный EncodeRequest
            deadline: Момент time.monotonic(), после которого поиск прерывается
            cancel_event: Внешний сигнал отмены

        Returns:
            FitResult (outcome=EXHAUSTED, если бюджет не достигнут)

        Raises:
            SearchCancelledError: дедлайн истёк или поиск отменён
            EncodeError: ошибка кодека (фатальна для вызова)
        """
        started = time.monotonic()
        budget = request.byte_budget
        box = ResizeBox.from_request(request)

        base_size = self.codec.output_size(source, box=box)
        params = self.policy.initial_parameters(base_size, request)
        params = self._clamp_to_format(params, base_size, request.format)

        state = SearchState(current_quality=params.quality, current_width=params.width)
        first_attempt_size: Optional[int] = None
        last: Optional[EncodeAttempt] = None
        outcome = FitOutcome.EXHAUSTED

        while state.attempts_taken < self.policy.max_attempts:
            self._check_cancelled(deadline, cancel_event, state.attempts_taken)

            encoded = self.codec.encode(
                source, request.format, state.current_quality, state.current_width, box
            )
            last = EncodeAttempt(
                attempt_index=state.attempts_taken,
                quality=state.current_quality,
                width=state.current_width,
                output_width=encoded.output_width,
                output_height=encoded.output_height,
                result_bytes=encoded.data,
                result_size=encoded.size,
            )
            state.attempts_taken += 1
            if first_attempt_size is None:
                first_attempt_size = last.result_size

            logger.info(
                f"[AdaptiveSizeController] Попытка {last.attempt_index}: качество={last.quality}, "
                f"ширина={last.width or 'исходная'} ({last.output_width}x{last.output_height}), "
                f"размер={last.result_size / MIB:.2f} MB (бюджет {budget / MIB:.2f} MB)"
            )

            if last.result_size <= budget:
                outcome = FitOutcome.SUCCESS
                break

            if state.attempts_taken >= self.policy.max_attempts:
                break

            next_params = self.policy.next_parameters(last, budget)
            if next_params is None:
                logger.debug("[AdaptiveSizeController] Политика остановила поиск")
                break

            next_params = self._keep_width_monotonic(last, next_params)
            if next_params == last.parameters:
                logger.warning(f"[AdaptiveSizeController] Политика вернула те же параметры {next_params}, стоп")
                break

            state.current_quality = next_params.quality
            state.current_width = next_params.width

        elapsed_ms = (time.monotonic() - started) * 1000

        if outcome == FitOutcome.EXHAUSTED:
            logger.warning(
                f"[AdaptiveSizeController] Не удалось уложиться в {budget / MIB:.2f} MB "
                f"за {state.attempts_taken} попыток, возвращаем последний результат "
                f"({last.result_size / MIB:.2f} MB)"
            )

        return FitResult(
            data=last.result_bytes,
            size=last.result_size,
            attempts=state.attempts_taken,
            quality=last.quality,
            width=last.width,
            output_width=last.output_width,
            output_height=last.output_height,
            byte_budget=budget,
            outcome=outcome,
            first_attempt_size=first_attempt_size,
            policy=self.policy.name,
            elapsed_ms=elapsed_ms,
        )

    @staticmethod
    def _check_cancelled(
        deadline: Optional[float],
        cancel_event: Optional[threading.Event],
        attempts_taken: int,
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.warning(f"[AdaptiveSizeController] Поиск отменён после {attempts_taken} попыток")
            raise SearchCancelledError(
                message="Encoding search was cancelled",
                attempts_taken=attempts_taken,
                component="AdaptiveSizeController",
            )
        if deadline is not None and time.monotonic() >= deadline:
            logger.warning(f"[AdaptiveSizeController] Дедлайн истёк после {attempts_taken} попыток")
            raise SearchCancelledError(
                message="Encoding search exceeded its time budget",
                attempts_taken=attempts_taken,
                component="AdaptiveSizeController",
            )

    @staticmethod
    def _clamp_to_format(params: SearchParameters, base_size, fmt: ImageFormat) -> SearchParameters:
        """Ограничивает ширину так, чтобы ни одна сторона не превышала предел формата."""
        cap = width_cap_for_dimension(base_size, fmt.max_dimension)
        if cap is None or (params.width is not None and params.width <= cap):
            return params
        logger.info(
            f"[AdaptiveSizeController] {base_size[0]}x{base_size[1]} больше предела {fmt.value} "
            f"({fmt.max_dimension}px) -> ширина {cap}px"
        )
        return replace(params, width=cap)

    @staticmethod
    def _keep_width_monotonic(last: EncodeAttempt, params: SearchParameters) -> SearchParameters:
        """Введённое ограничение ширины не снимается и не увеличивается."""
        if last.width is not None and (params.width is None or params.width > last.width):
            return replace(params, width=last.width)
        return params
