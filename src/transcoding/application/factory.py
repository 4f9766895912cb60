"""
Фабрика для создания компонентов домена Transcoding.

Предоставляет удобные методы для создания и конфигурации
всех компонентов домена через единый интерфейс. Настройки передаются
явно (TranscoderSettings), глобального состояния нет.
"""

from typing import Optional, Dict, Any
from loguru import logger

from src.domain.contracts import FitMode, ImageFormat, TranscoderSettings
from ..codec.image_decoder import ImageDecoder
from ..codec.pillow_codec import PillowCodecAdapter
from ..controller import AdaptiveSizeController
from ..domain.interfaces import ICodecAdapter, IImageDecoder, ISearchPolicy
from ..search.factory import create_policy
from .transcoding_service import TranscodingService


class TranscodingComponentFactory:
    """
    Фабрика для создания компонентов домена Transcoding.

    Домен Transcoding отвечает за:
    - Декодирование загрузки
    - Кодирование в выбранный формат
    - Подбор качества и ширины под бюджет на размер
    """

    @staticmethod
    def create_decoder(settings: TranscoderSettings) -> IImageDecoder:
        logger.debug("[Transcoding] Создание декодера")
        return ImageDecoder(max_pixels=settings.max_input_pixels)

    @staticmethod
    def create_codec() -> ICodecAdapter:
        logger.debug("[Transcoding] Создание кодека")
        return PillowCodecAdapter()

    @staticmethod
    def create_policy(settings: TranscoderSettings) -> ISearchPolicy:
        logger.debug(f"[Transcoding] Создание политики поиска ({settings.search_policy})")
        return create_policy(settings.search_policy, settings.tuning)

    @staticmethod
    def create_controller(
        settings: TranscoderSettings,
        codec: Optional[ICodecAdapter] = None,
        policy: Optional[ISearchPolicy] = None,
    ) -> AdaptiveSizeController:
        """
        Создает контроллер подбора под бюджет.

        Args:
            settings: Настройки сервиса
            codec: Кодек (опционально)
            policy: Политика поиска (опционально, иначе по settings.search_policy)
        """
        if codec is None:
            codec = TranscodingComponentFactory.create_codec()
        if policy is None:
            policy = TranscodingComponentFactory.create_policy(settings)
        return AdaptiveSizeController(codec=codec, policy=policy)

    @staticmethod
    def create_service(
        settings: Optional[TranscoderSettings] = None,
        decoder: Optional[IImageDecoder] = None,
        codec: Optional[ICodecAdapter] = None,
        policy: Optional[ISearchPolicy] = None,
    ) -> TranscodingService:
        """
        Создает TranscodingService.

        Args:
            settings: Настройки (по умолчанию из config.settings)

        Returns:
            Полностью сконфигурированный TranscodingService
        """
        if settings is None:
            settings = TranscoderSettings.from_settings()

        logger.info(
            f"[Transcoding] Создание сервиса (policy={settings.search_policy}, "
            f"budget={settings.byte_budget} байт)"
        )

        if decoder is None:
            decoder = TranscodingComponentFactory.create_decoder(settings)

        controller = TranscodingComponentFactory.create_controller(settings, codec=codec, policy=policy)
        return TranscodingService(decoder=decoder, controller=controller, settings=settings)

    @staticmethod
    def get_transcoding_info(settings: TranscoderSettings) -> Dict[str, Any]:
        """
        Возвращает информацию о возможностях сервиса (для GET /).
        """
        return {
            "max_output_size": settings.byte_budget,
            "max_output_size_human": f"{settings.byte_budget / (1024 * 1024):g} MB",
            "max_upload_size": settings.max_upload_bytes,
            "formats": [f.value for f in ImageFormat],
            "default_format": settings.default_format.value,
            "fit_modes": [m.value for m in FitMode],
            "default_fit": settings.default_fit.value,
            "default_quality": settings.default_quality,
            "search_policy": settings.search_policy,
            "max_attempts": create_policy(settings.search_policy, settings.tuning).max_attempts,
            "time_budget_seconds": settings.time_budget_seconds,
        }
