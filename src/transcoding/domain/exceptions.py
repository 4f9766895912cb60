"""
Исключения для домена Transcoding.

Клиентские ошибки (ClientInputError) отделены от внутренних ошибок кодека,
чтобы HTTP слой мог отличить 4xx от 5xx без разбора сообщений.
"""

from typing import Optional


class TranscodingError(Exception):
    """Базовое исключение для ошибок домена Transcoding."""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.message = message
        self.component = component
        self.original_error = original_error
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Transcoding Error: {self.message}"
        if self.component:
            msg += f" (Component: {self.component})"
        if self.original_error:
            msg += f" [Original: {type(self.original_error).__name__}: {str(self.original_error)}]"
        return msg


class ClientInputError(TranscodingError):
    """Ошибка во входных данных клиента."""
    pass


class NoFileProvidedError(ClientInputError):
    """В запросе нет изображения."""
    pass


class UnsupportedFormatError(ClientInputError):
    """Неизвестный выходной формат."""
    pass


class DecodeError(ClientInputError):
    """Загруженные байты не декодируются как изображение."""
    pass


class UploadTooLargeError(ClientInputError):
    """Загрузка превышает лимит размера."""

    def __init__(self, size: int, limit: int, component: Optional[str] = None):
        self.size = size
        self.limit = limit
        super().__init__(
            message=f"Uploaded file is too large ({size} bytes, max {limit} bytes)",
            component=component,
        )


class EncodeError(TranscodingError):
    """Ошибка кодека при кодировании."""
    pass


class SearchCancelledError(TranscodingError):
    """Поиск прерван по дедлайну или внешнему сигналу."""

    def __init__(self, message: str, attempts_taken: int = 0, component: Optional[str] = None):
        self.attempts_taken = attempts_taken
        super().__init__(message=message, component=component)


class TranscodingConfigurationError(TranscodingError):
    """Ошибка конфигурации домена Transcoding."""
    pass
