"""
Валидационные контракты (contracts) для сервиса Image Budget.

Каждый контракт гарантирует:
  1. Правильный тип данных (type safety)
  2. Значения в допустимых диапазонах (data integrity)
  3. Обязательные поля (completeness)

Без этих контрактов контроллер мог бы получить невалидные данные:
  - quality = 0 или 150 (должно быть [1, 100])
  - byte_budget = -1 (должен быть > 0)
  - fit = "stretch" (неизвестный режим)

Все модели используют Pydantic v2 с Field validators.
"""

from enum import Enum
from typing import List, Optional, Dict, Any, Tuple, Union
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict

from src.transcoding.domain.exceptions import UnsupportedFormatError


# ============================================================================
# ФОРМАТЫ И РЕЖИМЫ
# ============================================================================

class ImageFormat(str, Enum):
    """Поддерживаемые выходные форматы."""
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"

    @classmethod
    def parse(cls, token: Union[str, "ImageFormat"]) -> "ImageFormat":
        """
        Преобразует строку из запроса в ImageFormat.

        Регистр не важен, "jpg" считается алиасом "jpeg".

        Raises:
            UnsupportedFormatError: если формат неизвестен (подмены формата нет)
        """
        if isinstance(token, cls):
            return token
        normalized = str(token).strip().lower()
        if normalized == "jpg":
            normalized = "jpeg"
        try:
            return cls(normalized)
        except ValueError:
            raise UnsupportedFormatError(
                message=f"Unsupported output format: {token!r}",
                component="ImageFormat",
            )

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def max_dimension(self) -> int:
        """Максимальная сторона, которую способен закодировать кодек."""
        return _MAX_DIMENSIONS[self]


_MAX_DIMENSIONS = {
    ImageFormat.JPEG: 65500,
    ImageFormat.PNG: 2 ** 31 - 1,
    ImageFormat.WEBP: 16383,
    ImageFormat.AVIF: 65536,
}


class FitMode(str, Enum):
    """Режимы вписывания изображения в заданные размеры."""
    COVER = "cover"       # Заполнить бокс с обрезкой по центру
    CONTAIN = "contain"   # Вписать в бокс с полями (letterbox)
    FILL = "fill"         # Растянуть без сохранения пропорций
    INSIDE = "inside"     # Вписать, пропорции сохраняются (по умолчанию)
    OUTSIDE = "outside"   # Покрыть бокс, пропорции сохраняются, без обрезки


# ============================================================================
# ЗАПРОС НА КОДИРОВАНИЕ
# ============================================================================

class EncodeRequest(BaseModel):
    """
    Входной контракт для AdaptiveSizeController.

    Неизменяемый после создания. Валидируется ДО первой попытки кодирования.
    """

    model_config = ConfigDict(frozen=True)

    format: ImageFormat = Field(..., description="Целевой формат")
    initial_quality: int = Field(..., ge=1, le=100, description="Стартовое качество [1-100]")
    target_width: Optional[int] = Field(None, gt=0, description="Максимальная ширина (px)")
    target_height: Optional[int] = Field(None, gt=0, description="Максимальная высота (px)")
    fit_mode: FitMode = Field(FitMode.INSIDE, description="Режим вписывания в target_width x target_height")
    byte_budget: int = Field(..., gt=0, description="Бюджет на размер результата (байт)")

    @field_validator("format", mode="before")
    @classmethod
    def format_alias(cls, v: Any) -> Any:
        """Разрешаем "jpg" и любой регистр."""
        if isinstance(v, str):
            return ImageFormat.parse(v)
        return v

    @property
    def has_box(self) -> bool:
        return self.target_width is not None or self.target_height is not None


# ============================================================================
# ТЮНИНГ ПОЛИТИК ПОИСКА
# ============================================================================

class PolicyTuning(BaseModel):
    """
    Константы политик поиска.

    Значения по умолчанию совпадают с эталонным поведением сервиса,
    но ни одна из них не является "физикой" и может быть переопределена.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(15, ge=1, le=100, description="Потолок попыток для iterative")

    # Iterative descent
    quality_floor: int = Field(50, ge=1, le=100, description="Нижняя граница качества")
    coarse_quality_threshold: int = Field(60, ge=1, le=100, description="Пока quality > порога, шаг крупный")
    coarse_quality_step: int = Field(10, ge=1, description="Крупный шаг качества")
    fine_quality_step: int = Field(5, ge=1, description="Мелкий шаг качества (последний резерв)")
    coarse_width: int = Field(8000, gt=0, description="Первое грубое ограничение ширины")
    width_floor: int = Field(2000, gt=0, description="Ниже этой ширины уменьшаем только качество")
    width_reduction_factor: float = Field(0.8, gt=0, lt=1, description="Множитель уменьшения ширины")

    # Analytic correction
    width_breakpoints: List[Tuple[int, int]] = Field(
        default_factory=lambda: [(100_000_000, 10000), (50_000_000, 12000), (20_000_000, 15000)],
        description="(порог пикселей, максимальная ширина), по убыванию порога",
    )
    safety_margin: float = Field(0.95, gt=0, le=1, description="Запас при аналитической коррекции ширины")
    quality_factor: float = Field(0.85, gt=0, lt=1, description="Множитель качества при коррекции")
    analytic_quality_floor: int = Field(60, ge=1, le=100, description="Нижняя граница качества для analytic")

    @field_validator("width_breakpoints")
    @classmethod
    def breakpoints_descending(cls, v: List[Tuple[int, int]]) -> List[Tuple[int, int]]:
        """Пороги должны идти по убыванию, иначе первый совпавший будет неверным."""
        thresholds = [threshold for threshold, _ in v]
        if thresholds != sorted(thresholds, reverse=True):
            raise ValueError(f"Пороги должны быть по убыванию: {thresholds}")
        return v


# ============================================================================
# НАСТРОЙКИ СЕРВИСА
# ============================================================================

class TranscoderSettings(BaseModel):
    """
    Явная конфигурация сервиса.

    Собирается один раз из config.settings и передаётся в фабрику, сервис и приложение.
    """

    model_config = ConfigDict(frozen=True)

    byte_budget: int = Field(9 * 1024 * 1024, gt=0, description="Бюджет на размер результата по умолчанию")
    max_upload_bytes: int = Field(500 * 1024 * 1024, gt=0, description="Лимит размера загрузки")
    max_input_pixels: Optional[int] = Field(None, gt=0, description="Лимит пикселей при декодировании")
    default_format: ImageFormat = Field(ImageFormat.WEBP)
    default_quality: int = Field(80, ge=1, le=100)
    convert_default_quality: int = Field(80, ge=1, le=100)
    default_fit: FitMode = Field(FitMode.INSIDE)
    search_policy: str = Field("iterative", description="iterative | analytic")
    time_budget_seconds: float = Field(120.0, gt=0)
    encode_workers: Optional[int] = Field(None, gt=0, description="None = по числу ядер")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    tuning: PolicyTuning = Field(default_factory=PolicyTuning)

    @field_validator("default_format", mode="before")
    @classmethod
    def default_format_alias(cls, v: Any) -> Any:
        if isinstance(v, str):
            return ImageFormat.parse(v)
        return v

    @field_validator("search_policy")
    @classmethod
    def known_policy(cls, v: str) -> str:
        if v not in ("iterative", "analytic"):
            raise ValueError(f"Неизвестная политика поиска: {v!r}")
        return v

    @classmethod
    def from_settings(cls) -> "TranscoderSettings":
        """Собирает настройки из модуля config.settings."""
        from config import settings

        tuning = PolicyTuning(
            max_attempts=settings.MAX_ENCODE_ATTEMPTS,
            quality_floor=settings.QUALITY_FLOOR,
            coarse_quality_threshold=settings.COARSE_QUALITY_THRESHOLD,
            coarse_quality_step=settings.COARSE_QUALITY_STEP,
            fine_quality_step=settings.FINE_QUALITY_STEP,
            coarse_width=settings.COARSE_WIDTH,
            width_floor=settings.WIDTH_FLOOR,
            width_reduction_factor=settings.WIDTH_REDUCTION_FACTOR,
            width_breakpoints=settings.ANALYTIC_WIDTH_BREAKPOINTS,
            safety_margin=settings.ANALYTIC_SAFETY_MARGIN,
            quality_factor=settings.ANALYTIC_QUALITY_FACTOR,
            analytic_quality_floor=settings.ANALYTIC_QUALITY_FLOOR,
        )
        return cls(
            byte_budget=settings.MAX_OUTPUT_SIZE,
            max_upload_bytes=settings.MAX_UPLOAD_SIZE,
            max_input_pixels=settings.MAX_INPUT_PIXELS or None,
            default_format=settings.DEFAULT_FORMAT,
            default_quality=settings.DEFAULT_QUALITY,
            convert_default_quality=settings.CONVERT_DEFAULT_QUALITY,
            default_fit=settings.DEFAULT_FIT,
            search_policy=settings.SEARCH_POLICY,
            time_budget_seconds=settings.TIME_BUDGET_SECONDS,
            encode_workers=settings.ENCODE_WORKERS or None,
            cors_origins=settings.CORS_ORIGINS,
            tuning=tuning,
        )


# ============================================================================
# ERRORS & DIAGNOSTICS
# ============================================================================

class ContractValidationError(Exception):
    """Exception для нарушения контрактов (используется вместо Pydantic ValidationError)."""

    def __init__(self, stage_name: str, contract_name: str, errors: Union[List[Dict[str, Any]], List[Any]]) -> None:
        self.stage_name = stage_name
        self.contract_name = contract_name
        self.errors = errors

        error_messages = []
        for err in errors:
            if isinstance(err, dict):
                loc = err.get('loc', [])[0] if err.get('loc') else 'unknown'
                err_type = err.get('type', 'unknown')
                msg = err.get('msg', 'unknown error')
                error_messages.append(f"  {loc} ({err_type}): {msg}")
            else:
                error_messages.append(f"  {str(err)}")

        message = (
            f"Contract violation in {stage_name} ({contract_name}):\n"
            + "\n".join(error_messages)
        )
        super().__init__(message)
