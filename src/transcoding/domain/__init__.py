"""Transcoding Domain exports."""

from .interfaces import (
    IImageDecoder,
    ICodecAdapter,
    ISearchPolicy,
    ISizeController,
)
from .exceptions import (
    TranscodingError,
    ClientInputError,
    NoFileProvidedError,
    UnsupportedFormatError,
    DecodeError,
    UploadTooLargeError,
    EncodeError,
    SearchCancelledError,
    TranscodingConfigurationError,
)

__all__ = [
    'IImageDecoder',
    'ICodecAdapter',
    'ISearchPolicy',
    'ISizeController',
    'TranscodingError',
    'ClientInputError',
    'NoFileProvidedError',
    'UnsupportedFormatError',
    'DecodeError',
    'UploadTooLargeError',
    'EncodeError',
    'SearchCancelledError',
    'TranscodingConfigurationError',
]
