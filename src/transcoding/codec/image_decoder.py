"""
Image Decoder для домена Transcoding.

Декодирование загруженных байтов в SourceImage.
Операция отвечает только за декодирование, нормализацию ориентации и режима пикселей.
"""

import io
from pathlib import Path
from typing import Optional

import numpy as np
from loguru import logger
from PIL import Image, ImageOps, UnidentifiedImageError

from ..domain.exceptions import DecodeError
from ..domain.interfaces import IImageDecoder
from .source_image import SourceImage

EXIF_ORIENTATION_TAG = 0x0112
HIGH_BIT_DEPTH_MODES = ("I;16", "I;16B", "I;16L", "I;16N", "I")

# Настройка процесса: защита Pillow от decompression bomb глобальна и заменяется
# лимитом max_pixels каждого декодера (MAX_INPUT_PIXELS в config.settings)
Image.MAX_IMAGE_PIXELS = None


class ImageDecoder(IImageDecoder):
    """
    Декодирует байты изображения в неизменяемый SourceImage.

    ЦКП: SourceImage с пикселями в режиме L, RGB или RGBA и нормальной ориентацией.
    """

    def __init__(self, max_pixels: Optional[int] = None):
        """
        Args:
            max_pixels: Лимит пикселей (None = без ограничений)
        """
        self.max_pixels = max_pixels
        logger.debug(f"[ImageDecoder] Инициализирован (max_pixels={max_pixels})")

    def decode(self, raw: bytes) -> SourceImage:
        """
        Декодирует байты в SourceImage.

        Args:
            raw: Байты загруженного файла

        Returns:
            SourceImage (пиксели только для чтения)

        Raises:
            DecodeError: Если байты пустые, не изображение или превышен лимит пикселей
        """
        if not raw:
            raise DecodeError(message="Uploaded file is empty", component="ImageDecoder")

        try:
            with Image.open(io.BytesIO(raw)) as img:
                width, height = img.size
                if self.max_pixels is not None and width * height > self.max_pixels:
                    raise DecodeError(
                        message=f"Image has too many pixels ({width}x{height}, max {self.max_pixels})",
                        component="ImageDecoder",
                    )

                img.load()
                source_format = img.format
                orientation = img.getexif().get(EXIF_ORIENTATION_TAG, 1)
                upright = ImageOps.exif_transpose(img)
                normalized = self._normalize_mode(self._reduce_bit_depth(upright))
                pixels = np.asarray(normalized)
        except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
            logger.warning(f"[ImageDecoder] Не удалось декодировать изображение: {e}")
            raise DecodeError(
                message="Uploaded file is not a decodable image",
                component="ImageDecoder",
                original_error=e,
            )

        source = SourceImage.from_array(
            pixels,
            orientation=orientation,
            source_format=source_format,
            original_bytes=len(raw),
        )

        logger.debug(
            f"[ImageDecoder] Декодировано: {source_format} {source.width}x{source.height} "
            f"({source.pixel_count / 1_000_000:.1f} MP), режим {source.mode}, "
            f"ориентация {orientation}, {len(raw)} байт"
        )

        return source

    def decode_file(self, path: Path) -> SourceImage:
        """
        Читает файл и декодирует его.

        Raises:
            FileNotFoundError: Если файл не найден
            DecodeError: Если файл не изображение
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found: {path}")

        with open(path, "rb") as f:
            raw = f.read()

        return self.decode(raw)

    @staticmethod
    def _reduce_bit_depth(img: Image.Image) -> Image.Image:
        """
        Переводит 16-битные и float изображения в 8-битный L.

        convert() у Pillow обрезает значения выше 255, а не масштабирует,
        поэтому 16-битный PNG стал бы почти белым, а float TIFF почти чёрным.
        """
        if img.mode in HIGH_BIT_DEPTH_MODES:
            values = np.clip(np.asarray(img).astype(np.int64), 0, 65535)
            return Image.fromarray((values >> 8).astype(np.uint8))

        if img.mode == "F":
            values = np.asarray(img, dtype=np.float64)
            values = np.nan_to_num(values, nan=0.0, posinf=0.0, neginf=0.0)
            low, high = float(values.min()), float(values.max())
            if high > low:
                scaled = (values - low) * (255.0 / (high - low))
            else:
                scaled = np.zeros_like(values)
            return Image.fromarray(np.rint(scaled).astype(np.uint8))

        return img

    @staticmethod
    def _normalize_mode(img: Image.Image) -> Image.Image:
        """Приводит режим к L, RGB или RGBA (альфа сохраняется, если есть)."""
        has_transparency = (
            img.mode in ("RGBA", "LA", "PA", "RGBa", "La")
            or "transparency" in img.info
        )
        if has_transparency:
            return img if img.mode == "RGBA" else img.convert("RGBA")
        if img.mode in ("L", "RGB"):
            return img
        if img.mode == "1":
            return img.convert("L")
        return img.convert("RGB")
