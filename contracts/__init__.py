"""
Контракты DTO на границе домена Transcoding.

Контракты:
- Transcoding -> HTTP / CLI: FitResult, TranscodeResult (transcoding_dto.py)
"""

from .transcoding_dto import FitOutcome, FitResult, TranscodeResult

__all__ = [
    "FitOutcome",
    "FitResult",
    "TranscodeResult",
]
