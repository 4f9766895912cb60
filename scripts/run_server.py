#!/usr/bin/env python3
"""
Точка входа HTTP сервера.

Использование:
    python scripts/run_server.py
    PORT=8080 SEARCH_POLICY=analytic python scripts/run_server.py
"""

import sys
from pathlib import Path

# Добавляем корень проекта в путь
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import uvicorn
from loguru import logger

from config.settings import validate_config, HOST, PORT, LOG_LEVEL, MAX_OUTPUT_SIZE
from src.api import create_app


def main():
    """Проверяет конфигурацию и запускает uvicorn."""
    logger.remove()
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=LOG_LEVEL
    )

    try:
        validate_config()
    except ValueError as e:
        logger.error(f"[Server] Некорректная конфигурация:\n{e}")
        sys.exit(1)

    app = create_app()

    logger.info(f"[Server] Запуск на http://{HOST}:{PORT}")
    logger.info(f"[Server] Максимальный размер результата: {MAX_OUTPUT_SIZE / (1024 * 1024):g} MB")

    uvicorn.run(app, host=HOST, port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
