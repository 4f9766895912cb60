"""
Codec Adapter на Pillow.

Одна операция: resize (по плану geometry) + кодирование в выбранный формат.
Каждый формат трактует quality по-своему; для контроллера это непрозрачная
монотонная ручка "больше = крупнее и лучше".

Метаданные исходника (EXIF, ICC, XMP) в результат не переносятся.
"""

import io
from typing import Callable, Dict, Optional, Tuple, Union

import cv2
from loguru import logger
from PIL import Image, features

from src.domain.contracts import ImageFormat
from ..domain.exceptions import EncodeError
from ..domain.interfaces import ICodecAdapter
from .geometry import ResizeBox, plan_output, render
from .source_image import EncodedImage, SourceImage

JPEG_BACKGROUND = (255, 255, 255)
PNG_COMPRESS_LEVEL = 9
WEBP_METHOD = 4
AVIF_SPEED = 6


def _encode_jpeg(image: Image.Image, quality: int, buffer: io.BytesIO) -> None:
    if image.mode == "RGBA":
        flattened = Image.new("RGB", image.size, JPEG_BACKGROUND)
        flattened.paste(image, mask=image.getchannel("A"))
        image = flattened
    image.save(buffer, format="JPEG", quality=quality, optimize=True, progressive=True)


def png_palette_colors(quality: int) -> int:
    """Число цветов палитры для quality < 100."""
    return max(2, round(256 * quality / 100))


def _encode_png(image: Image.Image, quality: int, buffer: io.BytesIO) -> None:
    # quality 100 = lossless truecolor, ниже = палитра с числом цветов по quality
    if quality < 100 and image.mode in ("RGB", "RGBA"):
        image = image.quantize(
            colors=min(256, png_palette_colors(quality)),
            method=Image.Quantize.FASTOCTREE,
        )
    image.save(buffer, format="PNG", compress_level=PNG_COMPRESS_LEVEL)


def _encode_webp(image: Image.Image, quality: int, buffer: io.BytesIO) -> None:
    image.save(buffer, format="WEBP", quality=quality, method=WEBP_METHOD)


def _encode_avif(image: Image.Image, quality: int, buffer: io.BytesIO) -> None:
    if not features.check("avif"):
        raise EncodeError(
            message="AVIF encoding is not available in this Pillow build",
            component="PillowCodecAdapter",
        )
    image.save(buffer, format="AVIF", quality=quality, speed=AVIF_SPEED)


class PillowCodecAdapter(ICodecAdapter):
    """
    Codec Adapter: SourceImage -> байты выбранного формата.

    Детерминирован: одинаковые (source, format, quality, width, box)
    дают одинаковый результат.
    """

    def __init__(self) -> None:
        self._encoders: Dict[ImageFormat, Callable[[Image.Image, int, io.BytesIO], None]] = {
            ImageFormat.JPEG: _encode_jpeg,
            ImageFormat.PNG: _encode_png,
            ImageFormat.WEBP: _encode_webp,
            ImageFormat.AVIF: _encode_avif,
        }
        logger.debug(f"[PillowCodecAdapter] Инициализирован (форматы: {[f.value for f in self._encoders]})")

    def output_size(
        self,
        source: SourceImage,
        width: Optional[int] = None,
        box: Optional[ResizeBox] = None,
    ) -> Tuple[int, int]:
        return plan_output(source.size, box, width).canvas

    def encode(
        self,
        source: SourceImage,
        format: Union[ImageFormat, str],
        quality: int,
        width: Optional[int] = None,
        box: Optional[ResizeBox] = None,
    ) -> EncodedImage:
        """
        Кодирует изображение.

        Args:
            source: Неизменяемый исходник
            format: Целевой формат (ImageFormat или строка)
            quality: Качество [1-100]
            width: Ограничение ширины (без увеличения)
            box: Бокс запроса с режимом вписывания

        Returns:
            EncodedImage с байтами и итоговыми размерами

        Raises:
            UnsupportedFormatError: неизвестный формат
            EncodeError: ошибка кодека
        """
        fmt = ImageFormat.parse(format)
        encoder = self._encoders[fmt]

        plan = plan_output(source.size, box, width)

        try:
            pixels = render(source.pixels, plan)
            image = Image.fromarray(pixels)
            buffer = io.BytesIO()
            encoder(image, quality, buffer)
        except EncodeError:
            raise
        except (OSError, ValueError, MemoryError, cv2.error) as e:
            logger.error(f"[PillowCodecAdapter] Ошибка кодирования {fmt.value} q={quality} w={width}: {e}")
            raise EncodeError(
                message=f"Failed to encode image to {fmt.value}",
                component="PillowCodecAdapter",
                original_error=e,
            )

        data = buffer.getvalue()
        out_w, out_h = plan.canvas

        logger.debug(
            f"[PillowCodecAdapter] Закодировано в {fmt.value}: {len(data)} байт, "
            f"качество {quality}, {out_w}x{out_h}"
        )

        return EncodedImage(
            data=data,
            format=fmt.value,
            quality=quality,
            width=width,
            output_width=out_w,
            output_height=out_h,
        )
