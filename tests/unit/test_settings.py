from config import settings
from src.domain.contracts import TranscoderSettings


def test_default_config_is_valid():
    assert settings.validate_config() is True


def test_settings_built_from_config_module():
    """Тест: TranscoderSettings собирается из config.settings без ошибок."""
    built = TranscoderSettings.from_settings()
    assert built.byte_budget == settings.MAX_OUTPUT_SIZE
    assert built.tuning.width_breakpoints == settings.ANALYTIC_WIDTH_BREAKPOINTS
    assert built.search_policy == settings.SEARCH_POLICY
