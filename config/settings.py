"""
Настройки сервиса Image Budget.

Все значения можно переопределить через переменные окружения.
Сервис и контроллер получают их не напрямую, а через TranscoderSettings
(src/domain/contracts.py), который собирается из этого модуля один раз.
"""

import os


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


# =============================================================================
# HTTP СЕРВЕР
# =============================================================================
HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 3000)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Разрешённые origin для CORS (через запятую)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# =============================================================================
# ЛИМИТЫ
# =============================================================================
MIB = 1024 * 1024

# Бюджет на размер результата (байт)
MAX_OUTPUT_SIZE = _env_int("MAX_OUTPUT_SIZE", 9 * MIB)

# Максимальный размер загружаемого файла (байт)
MAX_UPLOAD_SIZE = _env_int("MAX_UPLOAD_SIZE", 500 * MIB)

# Лимит пикселей при декодировании (0 = без ограничений)
MAX_INPUT_PIXELS = _env_int("MAX_INPUT_PIXELS", 0)

# Общий бюджет времени на один запрос (секунды)
TIME_BUDGET_SECONDS = _env_float("TIME_BUDGET_SECONDS", 120.0)

# Размер пула для CPU-bound кодирования (0 = по числу ядер)
ENCODE_WORKERS = _env_int("ENCODE_WORKERS", 0)

# =============================================================================
# ЗНАЧЕНИЯ ПО УМОЛЧАНИЮ ДЛЯ ЗАПРОСОВ
# =============================================================================
SUPPORTED_OUTPUT_FORMATS = ["jpeg", "png", "webp", "avif"]
DEFAULT_FORMAT = os.getenv("DEFAULT_FORMAT", "webp")
DEFAULT_QUALITY = _env_int("DEFAULT_QUALITY", 80)
CONVERT_DEFAULT_QUALITY = _env_int("CONVERT_DEFAULT_QUALITY", 80)
DEFAULT_FIT = os.getenv("DEFAULT_FIT", "inside")

# =============================================================================
# ПОЛИТИКА ПОИСКА
# =============================================================================
# "iterative" (до 15 попыток) или "analytic" (максимум 2 попытки)
SEARCH_POLICY = os.getenv("SEARCH_POLICY", "iterative")

MAX_ENCODE_ATTEMPTS = _env_int("MAX_ENCODE_ATTEMPTS", 15)

# Iterative descent
QUALITY_FLOOR = _env_int("QUALITY_FLOOR", 50)
COARSE_QUALITY_THRESHOLD = _env_int("COARSE_QUALITY_THRESHOLD", 60)
COARSE_QUALITY_STEP = _env_int("COARSE_QUALITY_STEP", 10)
FINE_QUALITY_STEP = _env_int("FINE_QUALITY_STEP", 5)
COARSE_WIDTH = _env_int("COARSE_WIDTH", 8000)
WIDTH_FLOOR = _env_int("WIDTH_FLOOR", 2000)
WIDTH_REDUCTION_FACTOR = _env_float("WIDTH_REDUCTION_FACTOR", 0.8)

# Analytic correction
ANALYTIC_WIDTH_BREAKPOINTS = [
    (100_000_000, 10000),  # > 100 MP -> 10000px
    (50_000_000, 12000),   # > 50 MP -> 12000px
    (20_000_000, 15000),   # > 20 MP -> 15000px
]
ANALYTIC_SAFETY_MARGIN = _env_float("ANALYTIC_SAFETY_MARGIN", 0.95)
ANALYTIC_QUALITY_FACTOR = _env_float("ANALYTIC_QUALITY_FACTOR", 0.85)
ANALYTIC_QUALITY_FLOOR = _env_int("ANALYTIC_QUALITY_FLOOR", 60)


# =============================================================================
# ПРОВЕРКА КОНФИГУРАЦИИ
# =============================================================================
def validate_config():
    """Проверяет корректность конфигурации."""
    errors = []

    if MAX_OUTPUT_SIZE <= 0:
        errors.append(f"MAX_OUTPUT_SIZE должен быть > 0 (получено {MAX_OUTPUT_SIZE})")
    if MAX_UPLOAD_SIZE <= 0:
        errors.append(f"MAX_UPLOAD_SIZE должен быть > 0 (получено {MAX_UPLOAD_SIZE})")
    if DEFAULT_FORMAT.lower() not in SUPPORTED_OUTPUT_FORMATS + ["jpg"]:
        errors.append(
            f"DEFAULT_FORMAT={DEFAULT_FORMAT!r} не поддерживается "
            f"(доступно: {', '.join(SUPPORTED_OUTPUT_FORMATS)})"
        )
    if SEARCH_POLICY not in ("iterative", "analytic"):
        errors.append(f"SEARCH_POLICY={SEARCH_POLICY!r}: ожидается 'iterative' или 'analytic'")
    if not 1 <= QUALITY_FLOOR <= 100:
        errors.append(f"QUALITY_FLOOR вне диапазона [1, 100]: {QUALITY_FLOOR}")
    if not 0 < WIDTH_REDUCTION_FACTOR < 1:
        errors.append(f"WIDTH_REDUCTION_FACTOR должен быть в (0, 1): {WIDTH_REDUCTION_FACTOR}")
    if TIME_BUDGET_SECONDS <= 0:
        errors.append(f"TIME_BUDGET_SECONDS должен быть > 0: {TIME_BUDGET_SECONDS}")

    if errors:
        raise ValueError("\n".join(errors))

    return True
