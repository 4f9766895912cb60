"""
Transcoding Service: загрузка -> SourceImage -> подбор кодирования.

Проверяет лимит загрузки до декодирования, собирает EncodeRequest
с учётом значений по умолчанию и вызывает контроллер.
"""

import threading
import time
from pathlib import Path
from typing import Optional, Union

from loguru import logger
from pydantic import ValidationError

from src.domain.contracts import (
    ContractValidationError,
    EncodeRequest,
    FitMode,
    ImageFormat,
    TranscoderSettings,
)
from contracts.transcoding_dto import TranscodeResult
from ..codec.source_image import SourceImage
from ..domain.exceptions import UploadTooLargeError
from ..domain.interfaces import IImageDecoder, ISizeController

MIB = 1024 * 1024


class TranscodingService:
    """
    Обработка одной загрузки целиком.

    Не хранит состояния запросов: один экземпляр обслуживает все потоки пула.
    """

    def __init__(
        self,
        decoder: IImageDecoder,
        controller: ISizeController,
        settings: TranscoderSettings,
    ):
        self.decoder = decoder
        self.controller = controller
        self.settings = settings
        logger.debug(
            f"[TranscodingService] Инициализирован (бюджет {settings.byte_budget / MIB:.1f} MB, "
            f"лимит загрузки {settings.max_upload_bytes / MIB:.0f} MB)"
        )

    def check_upload_size(self, size: int) -> None:
        """
        Raises:
            UploadTooLargeError: если загрузка больше лимита
        """
        if size > self.settings.max_upload_bytes:
            logger.warning(
                f"[TranscodingService] Загрузка {size} байт больше лимита {self.settings.max_upload_bytes}"
            )
            raise UploadTooLargeError(size=size, limit=self.settings.max_upload_bytes, component="TranscodingService")

    def build_request(
        self,
        format: Optional[Union[str, ImageFormat]] = None,
        quality: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        fit: Optional[Union[str, FitMode]] = None,
        byte_budget: Optional[int] = None,
        default_quality: Optional[int] = None,
    ) -> EncodeRequest:
        """
        Собирает EncodeRequest, подставляя значения по умолчанию из настроек.

        Пустой формат заменяется форматом по умолчанию; неизвестный формат
        не заменяется никогда.

        Raises:
            UnsupportedFormatError: неизвестный формат
            ContractValidationError: значения вне допустимых диапазонов
        """
        fmt = ImageFormat.parse(format) if format else self.settings.default_format

        if quality is None:
            quality = default_quality if default_quality is not None else self.settings.default_quality

        try:
            return EncodeRequest(
                format=fmt,
                initial_quality=quality,
                target_width=width,
                target_height=height,
                fit_mode=fit or self.settings.default_fit,
                byte_budget=byte_budget if byte_budget is not None else self.settings.byte_budget,
            )
        except ValidationError as e:
            raise ContractValidationError("TranscodingService", "EncodeRequest", e.errors())

    def deadline_from_now(self) -> float:
        """Дедлайн для controller.fit() по time budget из настроек."""
        return time.monotonic() + self.settings.time_budget_seconds

    def process(
        self,
        raw: bytes,
        request: EncodeRequest,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TranscodeResult:
        """
        Обрабатывает загруженные байты.

        Args:
            raw: Байты загрузки
            request: Валидированный EncodeRequest
            deadline: Момент time.monotonic() для прерывания поиска
            cancel_event: Внешний сигнал отмены

        Returns:
            TranscodeResult

        Raises:
            UploadTooLargeError: загрузка больше лимита (до декодирования)
            DecodeError: байты не изображение
            EncodeError: ошибка кодека
            SearchCancelledError: дедлайн или отмена
        """
        self.check_upload_size(len(raw))

        source = self.decoder.decode(raw)
        return self._fit_source(source, request, deadline, cancel_event)

    def process_file(self, path: Path, request: EncodeRequest) -> TranscodeResult:
        """
        Обрабатывает файл с диска (CLI).

        Raises:
            FileNotFoundError: файл не найден
            UploadTooLargeError: файл больше лимита (до чтения)
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found: {path}")
        self.check_upload_size(path.stat().st_size)

        source = self.decoder.decode_file(path)
        return self._fit_source(source, request, self.deadline_from_now(), None)

    def _fit_source(
        self,
        source: SourceImage,
        request: EncodeRequest,
        deadline: Optional[float],
        cancel_event: Optional[threading.Event],
    ) -> TranscodeResult:
        fit = self.controller.fit(source, request, deadline=deadline, cancel_event=cancel_event)

        result = TranscodeResult(
            original_size=source.original_bytes,
            format=request.format.value,
            mime_type=request.format.mime_type,
            fit=fit,
        )

        logger.info(
            f"[TranscodingService] {source.width}x{source.height} -> {request.format.value} "
            f"{fit.output_width}x{fit.output_height}: {result.original_size} -> {result.optimized_size} байт "
            f"({result.size_reduction:.2f}%), попыток {fit.attempts}, "
            f"бюджет {'соблюдён' if fit.budget_met else 'НЕ соблюдён'} ({fit.elapsed_ms:.0f} ms)"
        )

        return result
