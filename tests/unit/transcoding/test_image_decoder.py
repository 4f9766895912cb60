import io

import numpy as np
import pytest
from PIL import Image

from src.transcoding.codec import ImageDecoder, SourceImage
from src.transcoding.domain.exceptions import DecodeError


@pytest.fixture
def decoder():
    return ImageDecoder()


def test_decode_rgb_png(decoder, noise_array, image_bytes):
    source = decoder.decode(image_bytes(noise_array(40, 30)))
    assert source.size == (40, 30)
    assert source.mode == "RGB"
    assert source.source_format == "PNG"
    assert source.pixels.shape == (30, 40, 3)


def test_decode_keeps_alpha(decoder, noise_array, image_bytes):
    source = decoder.decode(image_bytes(noise_array(20, 10, channels=4)))
    assert source.mode == "RGBA"


def test_decode_grayscale(decoder, noise_array, image_bytes):
    source = decoder.decode(image_bytes(noise_array(20, 10, channels=1)))
    assert source.mode == "L"
    assert source.pixels.ndim == 2


def test_palette_converted_to_rgb(decoder):
    buffer = io.BytesIO()
    Image.new("P", (16, 16), 3).save(buffer, format="PNG")
    assert decoder.decode(buffer.getvalue()).mode == "RGB"


def test_original_bytes_recorded(decoder, noise_array, image_bytes):
    raw = image_bytes(noise_array(20, 10), format="JPEG")
    source = decoder.decode(raw)
    assert source.original_bytes == len(raw)
    assert source.source_format == "JPEG"


def test_exif_orientation_applied(decoder):
    """Тест: Orientation=6 поворачивает изображение, исходный тег сохраняется."""
    exif = Image.Exif()
    exif[0x0112] = 6
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), (200, 10, 10)).save(buffer, format="JPEG", exif=exif)

    source = decoder.decode(buffer.getvalue())
    assert source.size == (20, 40)
    assert source.orientation == 6


def test_pixels_are_read_only(decoder, noise_array, image_bytes):
    source = decoder.decode(image_bytes(noise_array(8, 8)))
    with pytest.raises(ValueError):
        source.pixels[0, 0, 0] = 1


def test_empty_bytes(decoder):
    with pytest.raises(DecodeError):
        decoder.decode(b"")


def test_not_an_image(decoder):
    with pytest.raises(DecodeError):
        decoder.decode(b"definitely not an image")


def test_truncated_image(decoder, noise_array, image_bytes):
    raw = image_bytes(noise_array(64, 64))
    with pytest.raises(DecodeError):
        decoder.decode(raw[: len(raw) // 2])


def test_pixel_limit(noise_array, image_bytes):
    decoder = ImageDecoder(max_pixels=100)
    with pytest.raises(DecodeError):
        decoder.decode(image_bytes(noise_array(20, 20)))


def test_decode_file(decoder, tmp_path, noise_array, image_bytes):
    path = tmp_path / "photo.png"
    path.write_bytes(image_bytes(noise_array(12, 6)))
    assert decoder.decode_file(path).size == (12, 6)


def test_decode_missing_file(decoder, tmp_path):
    with pytest.raises(FileNotFoundError):
        decoder.decode_file(tmp_path / "missing.png")


def test_from_array_rejects_bad_shape():
    with pytest.raises(ValueError):
        SourceImage.from_array(np.zeros((4, 4, 2), dtype=np.uint8))


def test_16_bit_gradient_rescaled(decoder):
    """Тест: 16-битный PNG масштабируется в 8 бит, а не обрезается до белого."""
    gradient = np.tile(np.linspace(0, 65535, 256).astype(np.uint16), (4, 1))
    buffer = io.BytesIO()
    Image.fromarray(gradient).save(buffer, format="PNG")

    source = decoder.decode(buffer.getvalue())
    row = source.pixels[0]

    assert source.mode == "L"
    assert np.mean(row == 255) < 0.1
    assert row[0] == 0
    assert row[-1] == 255
    assert np.all(np.diff(row.astype(int)) >= 0)


def test_float_image_scaled_by_range(decoder):
    gradient = np.tile(np.linspace(0.0, 1.0, 64, dtype=np.float32), (4, 1))
    buffer = io.BytesIO()
    Image.fromarray(gradient).save(buffer, format="TIFF")

    row = decoder.decode(buffer.getvalue()).pixels[0]

    assert row.min() == 0
    assert row.max() == 255
    assert np.mean(row == 0) < 0.1


def test_pillow_pixel_guard_replaced_by_decoder_limit(noise_array, image_bytes):
    """Тест: глобальная защита Pillow снята на уровне модуля, лимит задаёт max_pixels."""
    assert Image.MAX_IMAGE_PIXELS is None
    assert ImageDecoder(max_pixels=400).decode(image_bytes(noise_array(20, 20))).pixel_count == 400
