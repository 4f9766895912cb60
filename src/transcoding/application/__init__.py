"""Application слой домена Transcoding."""

from .transcoding_service import TranscodingService
from .factory import TranscodingComponentFactory

__all__ = [
    "TranscodingService",
    "TranscodingComponentFactory",
]
