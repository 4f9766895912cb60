"""Codec: декодирование, геометрия ресайза и кодирование на Pillow."""

from .source_image import SourceImage, EncodedImage
from .image_decoder import ImageDecoder
from .geometry import ResizeBox, OutputPlan, plan_output
from .pillow_codec import PillowCodecAdapter

__all__ = [
    "SourceImage",
    "EncodedImage",
    "ImageDecoder",
    "ResizeBox",
    "OutputPlan",
    "plan_output",
    "PillowCodecAdapter",
]
