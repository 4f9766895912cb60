import threading
import time

import pytest

from src.domain.contracts import ContractValidationError, FitMode, ImageFormat, TranscoderSettings
from src.transcoding.application import TranscodingComponentFactory
from src.transcoding.codec import ImageDecoder
from src.transcoding.domain.exceptions import (
    DecodeError,
    SearchCancelledError,
    UnsupportedFormatError,
    UploadTooLargeError,
)


@pytest.fixture
def service(settings):
    return TranscodingComponentFactory.create_service(settings)


def test_build_request_defaults(service, settings):
    """Тест: пустые поля заменяются значениями по умолчанию."""
    request = service.build_request()
    assert request.format == settings.default_format
    assert request.initial_quality == settings.default_quality
    assert request.byte_budget == settings.byte_budget
    assert request.fit_mode == FitMode.INSIDE


def test_build_request_empty_format_uses_default(service):
    assert service.build_request(format="").format == ImageFormat.WEBP


def test_build_request_unknown_format(service):
    with pytest.raises(UnsupportedFormatError):
        service.build_request(format="gif")


def test_build_request_quality_out_of_range(service):
    with pytest.raises(ContractValidationError):
        service.build_request(quality=150)


def test_build_request_unknown_fit(service):
    with pytest.raises(ContractValidationError):
        service.build_request(width=100, fit="stretch")


def test_build_request_endpoint_default_quality(service):
    assert service.build_request(default_quality=75).initial_quality == 75
    assert service.build_request(quality=40, default_quality=75).initial_quality == 40


def test_upload_limit_checked_before_decode(noise_array, image_bytes):
    service = TranscodingComponentFactory.create_service(TranscoderSettings(max_upload_bytes=10))
    request = service.build_request()
    with pytest.raises(UploadTooLargeError) as exc_info:
        service.process(image_bytes(noise_array(16, 16)), request)
    assert exc_info.value.limit == 10


def test_process_jpeg(service, png_bytes):
    request = service.build_request(format="jpeg", quality=80)
    result = service.process(png_bytes, request)

    assert result.format == "jpeg"
    assert result.mime_type == "image/jpeg"
    assert result.data[:2] == b"\xff\xd8"
    assert result.original_size == len(png_bytes)
    assert result.fit.budget_met
    assert result.fit.attempts == 1


def test_process_with_box(service, png_bytes):
    request = service.build_request(format="png", width=100, height=100, fit="cover")
    result = service.process(png_bytes, request)
    assert (result.fit.output_width, result.fit.output_height) == (100, 100)


def test_process_small_budget_lowers_quality(service, png_bytes):
    """Тест: бюджет меньше первой попытки -> качество снижается."""
    request = service.build_request(format="jpeg", quality=95)
    first = service.process(png_bytes, request).fit.size

    tight = service.build_request(format="jpeg", quality=95, byte_budget=first - 1)
    result = service.process(png_bytes, tight)

    assert result.fit.attempts > 1
    assert result.fit.quality < 95


def test_process_not_an_image(service):
    with pytest.raises(DecodeError):
        service.process(b"not an image at all", service.build_request())


def test_process_cancelled(service, png_bytes):
    cancel_event = threading.Event()
    cancel_event.set()
    with pytest.raises(SearchCancelledError):
        service.process(png_bytes, service.build_request(), cancel_event=cancel_event)


def test_deadline_from_now(service, settings):
    deadline = service.deadline_from_now()
    assert deadline > time.monotonic()
    assert deadline <= time.monotonic() + settings.time_budget_seconds


def test_process_file(service, tmp_path, png_bytes):
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes)
    result = service.process_file(path, service.build_request(format="webp"))
    assert result.data[8:12] == b"WEBP"


def test_process_missing_file(service, tmp_path):
    with pytest.raises(FileNotFoundError):
        service.process_file(tmp_path / "missing.png", service.build_request())


def test_transcoding_info(settings):
    info = TranscodingComponentFactory.get_transcoding_info(settings)
    assert info["max_output_size_human"] == "9 MB"
    assert info["formats"] == ["jpeg", "png", "webp", "avif"]
    assert info["max_attempts"] == 15


class RecordingDecoder(ImageDecoder):
    """Запоминает, какие файлы читались через decode_file."""

    def __init__(self):
        super().__init__()
        self.files = []

    def decode_file(self, path):
        self.files.append(path)
        return super().decode_file(path)


def test_process_file_reads_through_decoder(settings, tmp_path, png_bytes):
    """Тест: файл читается декодером, original_size = размер файла."""
    decoder = RecordingDecoder()
    service = TranscodingComponentFactory.create_service(settings, decoder=decoder)
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes)

    result = service.process_file(path, service.build_request(format="jpeg"))

    assert decoder.files == [path]
    assert result.original_size == len(png_bytes)


def test_process_file_too_large(tmp_path, png_bytes):
    service = TranscodingComponentFactory.create_service(TranscoderSettings(max_upload_bytes=10))
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes)
    with pytest.raises(UploadTooLargeError):
        service.process_file(path, service.build_request())
