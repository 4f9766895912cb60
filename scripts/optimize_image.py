#!/usr/bin/env python3
"""
Оптимизация изображения с диска под бюджет на размер (без HTTP).

Использование:
    python scripts/optimize_image.py photo.jpg
    python scripts/optimize_image.py photo.png -f avif -q 70 -b 2097152 -o out.avif
    python scripts/optimize_image.py big.png --width 4000 --height 3000 --fit cover --policy analytic

Коды выхода:
    0 - успех
    1 - ошибка
    2 - бюджет не достигнут (только с --strict)
"""

import sys
import argparse
from pathlib import Path

# Добавляем корень проекта в путь
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from loguru import logger

from config.settings import LOG_LEVEL
from src.domain.contracts import ContractValidationError, TranscoderSettings
from src.transcoding.application.factory import TranscodingComponentFactory
from src.transcoding.domain.exceptions import TranscodingError


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Re-encode an image to fit a byte budget.")
    parser.add_argument("input", help="Путь к исходному изображению")
    parser.add_argument("-o", "--output", help="Файл результата (по умолчанию <input>.opt.<format>)")
    parser.add_argument("-f", "--format", default=None, help="jpeg | png | webp | avif")
    parser.add_argument("-q", "--quality", type=int, default=None, help="Стартовое качество [1-100]")
    parser.add_argument("-b", "--budget", type=int, default=None, help="Бюджет в байтах")
    parser.add_argument("--width", type=int, default=None, help="Максимальная ширина")
    parser.add_argument("--height", type=int, default=None, help="Максимальная высота")
    parser.add_argument("--fit", default=None, help="cover | contain | fill | inside | outside")
    parser.add_argument("--policy", choices=["iterative", "analytic"], default=None, help="Политика поиска")
    parser.add_argument("--strict", action="store_true", help="Код выхода 2, если бюджет не достигнут")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    settings = TranscoderSettings.from_settings()
    if args.policy:
        settings = settings.model_copy(update={"search_policy": args.policy})

    try:
        service = TranscodingComponentFactory.create_service(settings)
        request = service.build_request(
            format=args.format,
            quality=args.quality,
            width=args.width,
            height=args.height,
            fit=args.fit,
            byte_budget=args.budget,
        )
        input_path = Path(args.input)
        result = service.process_file(input_path, request)
    except (TranscodingError, ContractValidationError, FileNotFoundError) as e:
        logger.error(f"[CLI] {e}")
        return 1

    output_path = Path(args.output) if args.output else input_path.with_suffix(f".opt.{result.format}")
    output_path.write_bytes(result.data)

    fit = result.fit
    print(f"{input_path} -> {output_path}")
    print(f"  Формат:   {result.format} {fit.output_width}x{fit.output_height}, качество {fit.quality}")
    print(f"  Размер:   {result.original_size} -> {result.optimized_size} байт ({result.size_reduction:.2f}%)")
    print(f"  Попыток:  {fit.attempts} ({fit.policy}), {fit.elapsed_ms:.0f} ms")
    print(f"  Бюджет:   {fit.byte_budget} байт, {'соблюдён' if fit.budget_met else 'НЕ соблюдён'}")

    if args.strict and not fit.budget_met:
        return 2
    return 0


if __name__ == "__main__":
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=LOG_LEVEL
    )
    sys.exit(main())
