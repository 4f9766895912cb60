"""
HTTP слой сервиса Image Budget (FastAPI).

Эндпоинты:
- GET  /          - статус и возможности сервиса
- POST /optimize  - оптимизация под бюджет
- POST /resize    - ресайз (width, height, fit) + оптимизация
- POST /convert   - смена формата + оптимизация

Кодирование CPU-bound, поэтому выполняется в пуле потоков,
а не в event loop.
"""

import asyncio
import functools
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from loguru import logger

from src.domain.contracts import EncodeRequest, TranscoderSettings
from src.transcoding.application.factory import TranscodingComponentFactory
from src.transcoding.application.transcoding_service import TranscodingService
from src.transcoding.domain.exceptions import DecodeError, NoFileProvidedError, UploadTooLargeError
from contracts.transcoding_dto import TranscodeResult
from .errors import register_error_handlers

UPLOAD_CHUNK_SIZE = 1024 * 1024
DISCONNECT_POLL_SECONDS = 0.5

EXPOSED_HEADERS = [
    "X-Original-Size",
    "X-Optimized-Size",
    "X-Size-Reduction",
    "X-Under-9MB",
    "X-Byte-Budget",
    "X-Encode-Attempts",
]


def parse_int(value: Optional[str]) -> Optional[int]:
    """
    Целое из поля формы. Пустое, нечисловое или 0 -> None (значение по умолчанию).
    """
    if value is None:
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return None
    return parsed or None


async def read_upload(image: Optional[UploadFile], limit: int) -> bytes:
    """
    Читает загрузку целиком, не превышая лимит.

    Raises:
        NoFileProvidedError: файла нет
        DecodeError: content type не image/*
        UploadTooLargeError: загрузка больше лимита
    """
    if image is None:
        raise NoFileProvidedError(message="No image provided", component="API")

    if image.content_type and not image.content_type.startswith("image/"):
        raise DecodeError(message="The uploaded file must be an image", component="API")

    if image.size is not None and image.size > limit:
        raise UploadTooLargeError(size=image.size, limit=limit, component="API")

    chunks = []
    total = 0
    while True:
        chunk = await image.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise UploadTooLargeError(size=total, limit=limit, component="API")
        chunks.append(chunk)

    if total == 0:
        raise NoFileProvidedError(message="No image provided", component="API")

    return b"".join(chunks)


def build_headers(result: TranscodeResult, include_original: bool = True) -> Dict[str, str]:
    """Заголовки ответа. X-Under-9MB = true только если размер <= бюджета."""
    fit = result.fit
    headers = {
        "X-Optimized-Size": str(result.optimized_size),
        "X-Under-9MB": "true" if fit.budget_met else "false",
        "X-Byte-Budget": str(fit.byte_budget),
        "X-Encode-Attempts": str(fit.attempts),
    }
    if include_original:
        headers["X-Original-Size"] = str(result.original_size)
        headers["X-Size-Reduction"] = f"{result.size_reduction:.2f}%"
    return headers


async def watch_disconnect(
    request: Request,
    future: asyncio.Future,
    cancel_event: threading.Event,
    interval: float = DISCONNECT_POLL_SECONDS,
) -> None:
    """
    Опрашивает соединение, пока идёт кодирование.

    Starlette не отменяет обработчик при отключении клиента,
    поэтому воркер останавливается через cancel_event.
    """
    while not future.done():
        if await request.is_disconnected():
            logger.info(f"[API] Клиент отключился от {request.url.path}, поиск останавливается")
            cancel_event.set()
            return
        await asyncio.sleep(interval)


async def run_transcode(
    executor: ThreadPoolExecutor,
    service: TranscodingService,
    request: Request,
    raw: bytes,
    encode_request: EncodeRequest,
    poll_interval: float = DISCONNECT_POLL_SECONDS,
) -> TranscodeResult:
    """
    Выполняет service.process в пуле потоков.

    Отключение клиента или отмена задачи выставляют cancel_event:
    воркер остановится перед следующей попыткой кодирования.
    """
    loop = asyncio.get_running_loop()
    cancel_event = threading.Event()
    deadline = service.deadline_from_now()
    future = loop.run_in_executor(
        executor,
        functools.partial(service.process, raw, encode_request, deadline, cancel_event),
    )
    watcher = asyncio.ensure_future(watch_disconnect(request, future, cancel_event, poll_interval))
    try:
        return await future
    except asyncio.CancelledError:
        cancel_event.set()
        raise
    finally:
        watcher.cancel()


def create_app(
    settings: Optional[TranscoderSettings] = None,
    service: Optional[TranscodingService] = None,
) -> FastAPI:
    """
    Создает FastAPI приложение.

    Args:
        settings: Настройки (по умолчанию из config.settings)
        service: Готовый TranscodingService (для тестов)
    """
    if settings is None:
        settings = service.settings if service is not None else TranscoderSettings.from_settings()
    if service is None:
        service = TranscodingComponentFactory.create_service(settings)

    workers = settings.encode_workers or os.cpu_count() or 1
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="encode")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[API] Запуск (пул кодирования: {workers} потоков, policy={settings.search_policy})")
        yield
        executor.shutdown(wait=False, cancel_futures=True)
        logger.info("[API] Остановлен")

    app = FastAPI(title="Image Budget API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service
    app.state.executor = executor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=EXPOSED_HEADERS,
    )
    register_error_handlers(app)

    budget_mb = f"{settings.byte_budget / (1024 * 1024):g} MB"

    @app.get("/")
    async def index():
        info = TranscodingComponentFactory.get_transcoding_info(settings)
        return {
            "status": "ok",
            "message": "Image optimization API is running",
            "maxOutputSize": info["max_output_size_human"],
            "capabilities": info,
            "endpoints": {
                "optimize": f"POST /optimize - Optimize an image (max {budget_mb} output)",
                "resize": f"POST /resize - Resize and optimize an image (max {budget_mb} output)",
                "convert": f"POST /convert - Convert the image format (max {budget_mb} output)",
            },
        }

    @app.post("/optimize")
    async def optimize(
        http_request: Request,
        image: Optional[UploadFile] = File(None),
        quality: Optional[str] = Form(None),
        format: Optional[str] = Form(None),
        byte_budget: Optional[str] = Form(None),
    ):
        if image is None:
            raise NoFileProvidedError(message="No image provided", component="API")
        encode_request = service.build_request(
            format=format,
            quality=parse_int(quality),
            byte_budget=parse_int(byte_budget),
        )
        raw = await read_upload(image, settings.max_upload_bytes)
        result = await run_transcode(executor, service, http_request, raw, encode_request)
        return Response(content=result.data, media_type=result.mime_type, headers=build_headers(result))

    @app.post("/resize")
    async def resize(
        http_request: Request,
        image: Optional[UploadFile] = File(None),
        width: Optional[str] = Form(None),
        height: Optional[str] = Form(None),
        fit: Optional[str] = Form(None),
        quality: Optional[str] = Form(None),
        format: Optional[str] = Form(None),
        byte_budget: Optional[str] = Form(None),
    ):
        if image is None:
            raise NoFileProvidedError(message="No image provided", component="API")
        encode_request = service.build_request(
            format=format,
            quality=parse_int(quality),
            width=parse_int(width),
            height=parse_int(height),
            fit=fit or None,
            byte_budget=parse_int(byte_budget),
        )
        raw = await read_upload(image, settings.max_upload_bytes)
        result = await run_transcode(executor, service, http_request, raw, encode_request)
        return Response(content=result.data, media_type=result.mime_type, headers=build_headers(result))

    @app.post("/convert")
    async def convert(
        http_request: Request,
        image: Optional[UploadFile] = File(None),
        format: Optional[str] = Form(None),
        quality: Optional[str] = Form(None),
        byte_budget: Optional[str] = Form(None),
    ):
        if image is None:
            raise NoFileProvidedError(message="No image provided", component="API")
        encode_request = service.build_request(
            format=format,
            quality=parse_int(quality),
            byte_budget=parse_int(byte_budget),
            default_quality=settings.convert_default_quality,
        )
        raw = await read_upload(image, settings.max_upload_bytes)
        result = await run_transcode(executor, service, http_request, raw, encode_request)
        return Response(
            content=result.data,
            media_type=result.mime_type,
            headers=build_headers(result, include_original=False),
        )

    return app
