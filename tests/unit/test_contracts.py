import pytest
from pydantic import ValidationError

from src.domain.contracts import (
    ContractValidationError,
    EncodeRequest,
    FitMode,
    ImageFormat,
    PolicyTuning,
    TranscoderSettings,
)
from src.transcoding.domain.exceptions import UnsupportedFormatError
from contracts.transcoding_dto import FitOutcome, FitResult, TranscodeResult


@pytest.mark.parametrize("token,expected", [
    ("jpeg", ImageFormat.JPEG),
    ("JPG", ImageFormat.JPEG),
    (" WebP ", ImageFormat.WEBP),
    ("png", ImageFormat.PNG),
    ("avif", ImageFormat.AVIF),
])
def test_format_parse(token, expected):
    assert ImageFormat.parse(token) == expected


@pytest.mark.parametrize("token", ["gif", "tiff", "", "jpeg2000"])
def test_unknown_format_is_not_substituted(token):
    """Тест: неизвестный формат -> ошибка, а не формат по умолчанию."""
    with pytest.raises(UnsupportedFormatError):
        ImageFormat.parse(token)


def test_format_properties():
    assert ImageFormat.JPEG.mime_type == "image/jpeg"
    assert ImageFormat.WEBP.max_dimension == 16383


def test_encode_request_valid():
    request = EncodeRequest(format="jpg", initial_quality=80, byte_budget=1024)
    assert request.format == ImageFormat.JPEG
    assert request.fit_mode == FitMode.INSIDE
    assert not request.has_box


@pytest.mark.parametrize("quality", [0, 101, -5])
def test_encode_request_quality_range(quality):
    with pytest.raises(ValidationError):
        EncodeRequest(format="webp", initial_quality=quality, byte_budget=1024)


def test_encode_request_budget_positive():
    with pytest.raises(ValidationError):
        EncodeRequest(format="webp", initial_quality=80, byte_budget=0)


def test_encode_request_unknown_fit():
    with pytest.raises(ValidationError):
        EncodeRequest(format="webp", initial_quality=80, byte_budget=1024, fit_mode="stretch")


def test_encode_request_is_frozen():
    request = EncodeRequest(format="webp", initial_quality=80, byte_budget=1024)
    with pytest.raises(ValidationError):
        request.initial_quality = 10


def test_tuning_breakpoints_must_descend():
    with pytest.raises(ValidationError):
        PolicyTuning(width_breakpoints=[(20_000_000, 15000), (100_000_000, 10000)])


def test_settings_reject_unknown_policy():
    with pytest.raises(ValidationError):
        TranscoderSettings(search_policy="random")


def test_settings_defaults():
    settings = TranscoderSettings()
    assert settings.byte_budget == 9 * 1024 * 1024
    assert settings.default_format == ImageFormat.WEBP
    assert settings.tuning.max_attempts == 15


def test_contract_validation_error_message():
    error = ContractValidationError("Stage", "EncodeRequest", [{"loc": ("initial_quality",), "type": "less_than_equal", "msg": "too big"}])
    assert "initial_quality" in str(error)
    assert error.contract_name == "EncodeRequest"


def make_fit(size, budget=1000):
    return FitResult(
        data=b"\0" * size,
        size=size,
        attempts=1,
        quality=80,
        width=None,
        output_width=10,
        output_height=10,
        byte_budget=budget,
        outcome=FitOutcome.SUCCESS if size <= budget else FitOutcome.EXHAUSTED,
    )


def test_budget_met_is_truthful():
    assert make_fit(1000).budget_met
    assert not make_fit(1001).budget_met


def test_size_reduction():
    result = TranscodeResult(original_size=4000, format="webp", mime_type="image/webp", fit=make_fit(1000))
    assert result.size_reduction == pytest.approx(75.0)
    assert result.optimized_size == 1000


def test_size_reduction_negative_when_larger():
    result = TranscodeResult(original_size=500, format="png", mime_type="image/png", fit=make_fit(1000))
    assert result.size_reduction < 0
