"""
SourceImage и EncodedImage.

SourceImage создаётся один раз на запрос и больше не меняется:
каждая попытка кодирования строит свой производный массив.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class SourceImage:
    """
    Декодированное изображение (ориентация уже нормализована).

    pixels: numpy массив (H, W) для L, (H, W, 3) для RGB, (H, W, 4) для RGBA.
    Флаг writeable сброшен: запись в массив вызовет ValueError.
    """

    pixels: np.ndarray
    width: int
    height: int
    mode: str                      # "L", "RGB", "RGBA"
    orientation: int = 1           # EXIF Orientation исходника (1 = нормальная)
    source_format: Optional[str] = None  # Формат загрузки по мнению Pillow ("JPEG", "PNG", ...)
    original_bytes: int = 0        # Размер загрузки в байтах

    @classmethod
    def from_array(
        cls,
        pixels: np.ndarray,
        orientation: int = 1,
        source_format: Optional[str] = None,
        original_bytes: int = 0,
    ) -> "SourceImage":
        """Создаёт SourceImage из массива, запрещая дальнейшую запись в него."""
        if pixels.ndim == 2:
            mode = "L"
        elif pixels.ndim == 3 and pixels.shape[2] in (3, 4):
            mode = "RGB" if pixels.shape[2] == 3 else "RGBA"
        else:
            raise ValueError(f"Unsupported pixel array shape: {pixels.shape}")

        frozen = np.ascontiguousarray(pixels, dtype=np.uint8)
        frozen.flags.writeable = False

        height, width = frozen.shape[:2]
        return cls(
            pixels=frozen,
            width=width,
            height=height,
            mode=mode,
            orientation=orientation,
            source_format=source_format,
            original_bytes=original_bytes,
        )

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass(frozen=True)
class EncodedImage:
    """Результат одной операции кодирования."""

    data: bytes
    format: str
    quality: int
    width: Optional[int]   # Запрошенное ограничение ширины (None = без ограничения)
    output_width: int
    output_height: int

    @property
    def size(self) -> int:
        return len(self.data)
