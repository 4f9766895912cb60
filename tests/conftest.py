import io

import numpy as np
import pytest
from PIL import Image

from src.domain.contracts import TranscoderSettings


def _noise_array(width: int, height: int, channels: int = 3, seed: int = 0) -> np.ndarray:
    # Шум плохо сжимается: размер результата зависит от quality и ширины
    rng = np.random.default_rng(seed)
    shape = (height, width) if channels == 1 else (height, width, channels)
    return rng.integers(0, 256, size=shape, dtype=np.uint8)


def _image_bytes(array: np.ndarray, format: str = "PNG", **save_kwargs) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(array).save(buffer, format=format, **save_kwargs)
    return buffer.getvalue()


@pytest.fixture
def noise_array():
    """Fixture: фабрика массивов с шумом (width, height, channels)."""
    return _noise_array


@pytest.fixture
def image_bytes():
    """Fixture: кодирование массива в байты файла."""
    return _image_bytes


@pytest.fixture
def png_bytes():
    """Fixture: PNG 200x150 с шумом."""
    return _image_bytes(_noise_array(200, 150))


@pytest.fixture
def settings():
    """Fixture: настройки с небольшим пулом и эталонным бюджетом."""
    return TranscoderSettings(encode_workers=2, max_upload_bytes=5 * 1024 * 1024)
