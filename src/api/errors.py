"""
Отображение исключений домена в HTTP ответы.

Клиентские ошибки -> 4xx с сообщением, ошибки кодека -> 5xx без внутренних деталей.
"""

from typing import Tuple, Type

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from src.domain.contracts import ContractValidationError
from src.transcoding.domain.exceptions import (
    ClientInputError,
    EncodeError,
    SearchCancelledError,
    TranscodingError,
    UploadTooLargeError,
)

# Порядок важен: первый подходящий класс определяет статус
STATUS_CODES: Tuple[Tuple[Type[TranscodingError], int], ...] = (
    (UploadTooLargeError, 413),
    (ClientInputError, 400),
    (SearchCancelledError, 503),
    (EncodeError, 500),
)

ENCODE_FAILURE_MESSAGE = "Error while optimizing the image"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def status_for(exc: TranscodingError) -> int:
    for exc_type, status in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status
    return 500


def error_body(exc: TranscodingError) -> dict:
    status = status_for(exc)
    if isinstance(exc, (ClientInputError, SearchCancelledError)):
        message = exc.message
    elif isinstance(exc, EncodeError):
        message = ENCODE_FAILURE_MESSAGE
    else:
        message = INTERNAL_ERROR_MESSAGE
    return {"error": message, "type": type(exc).__name__, "status": status}


def register_error_handlers(app: FastAPI) -> None:
    """Регистрирует обработчики исключений домена."""

    @app.exception_handler(TranscodingError)
    async def handle_transcoding_error(request: Request, exc: TranscodingError) -> JSONResponse:
        body = error_body(exc)
        if body["status"] >= 500:
            logger.error(f"[API] {request.method} {request.url.path}: {exc}")
        else:
            logger.warning(f"[API] {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=body["status"], content=body)

    @app.exception_handler(ContractValidationError)
    async def handle_contract_error(request: Request, exc: ContractValidationError) -> JSONResponse:
        logger.warning(f"[API] {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request parameters",
                "type": type(exc).__name__,
                "status": 400,
                "details": [str(err.get("msg", err)) if isinstance(err, dict) else str(err) for err in exc.errors],
            },
        )
