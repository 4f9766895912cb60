"""
Transcoding Domain: Интерфейсы и абстракции.

Определяет контракты для декодера, кодека, политики поиска и контроллера.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple

if TYPE_CHECKING:
    from src.domain.contracts import EncodeRequest, ImageFormat
    from src.transcoding.codec.geometry import ResizeBox
    from src.transcoding.codec.source_image import EncodedImage, SourceImage
    from src.transcoding.search.base import EncodeAttempt, SearchParameters
    from contracts.transcoding_dto import FitResult


class IImageDecoder(ABC):
    """Декодирование загруженных байтов в SourceImage."""

    @abstractmethod
    def decode(self, raw: bytes) -> SourceImage:
        """
        Raises:
            DecodeError: если байты не являются изображением
        """
        pass

    @abstractmethod
    def decode_file(self, path: Path) -> SourceImage:
        pass


class ICodecAdapter(ABC):
    """
    Одна операция resize + encode.

    Чистая детерминированная функция без собственных повторов.
    Исходный SourceImage не изменяется.
    """

    @abstractmethod
    def encode(
        self,
        source: SourceImage,
        format: ImageFormat | str,
        quality: int,
        width: Optional[int] = None,
        box: Optional[ResizeBox] = None,
    ) -> EncodedImage:
        """
        Raises:
            UnsupportedFormatError: неизвестный формат
            EncodeError: ошибка кодека
        """
        pass

    @abstractmethod
    def output_size(
        self,
        source: SourceImage,
        width: Optional[int] = None,
        box: Optional[ResizeBox] = None,
    ) -> Tuple[int, int]:
        """Размер результата (width, height) без кодирования."""
        pass


class ISearchPolicy(ABC):
    """
    Политика поиска параметров кодирования.

    Чистая функция (lastAttempt, budget) -> nextParameters | None (Stop).
    Состояние между вызовами не хранится.
    """

    name: str = "abstract"

    @property
    @abstractmethod
    def max_attempts(self) -> int:
        pass

    @abstractmethod
    def initial_parameters(
        self,
        source_size: Tuple[int, int],
        request: EncodeRequest,
    ) -> SearchParameters:
        """
        Параметры попытки 0.

        Args:
            source_size: (width, height) после применения бокса запроса
            request: валидированный EncodeRequest
        """
        pass

    @abstractmethod
    def next_parameters(
        self,
        last_attempt: EncodeAttempt,
        byte_budget: int,
    ) -> Optional[SearchParameters]:
        """Параметры следующей попытки или None, если двигаться некуда."""
        pass


class ISizeController(ABC):
    """Подбор параметров кодирования под бюджет на размер."""

    @abstractmethod
    def fit(
        self,
        source: SourceImage,
        request: EncodeRequest,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> FitResult:
        """
        Raises:
            SearchCancelledError: дедлайн истёк или поиск отменён
            EncodeError: ошибка кодека (фатальна для вызова)
        """
        pass
