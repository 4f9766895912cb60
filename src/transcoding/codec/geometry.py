"""
Геометрия ресайза: режимы вписывания и ограничение ширины.

Размеры бокса и ширины являются верхними границами: увеличения нет никогда.
План считается без пикселей, поэтому контроллер может узнать размер
результата заранее, а кодек строит по нему один resize (+ crop или pad).
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from src.domain.contracts import EncodeRequest, FitMode

Size = Tuple[int, int]  # (width, height)


@dataclass(frozen=True)
class ResizeBox:
    """Явные целевые размеры из запроса."""
    width: Optional[int] = None
    height: Optional[int] = None
    fit: FitMode = FitMode.INSIDE

    @classmethod
    def from_request(cls, request: EncodeRequest) -> Optional["ResizeBox"]:
        if not request.has_box:
            return None
        return cls(width=request.target_width, height=request.target_height, fit=request.fit_mode)


@dataclass(frozen=True)
class OutputPlan:
    """
    План построения результата.

    scaled: размер после resize
    canvas: итоговый размер (после обрезки для cover или полей для contain)
    """
    scaled: Size
    canvas: Size
    adjust: str = "none"  # "none", "crop", "pad"


def _scale(size: Size, factor: float) -> Size:
    w, h = size
    return (max(1, round(w * factor)), max(1, round(h * factor)))


def plan_box(source: Size, box: Optional[ResizeBox]) -> OutputPlan:
    """Применяет бокс и режим вписывания к исходному размеру."""
    w, h = source
    if box is None:
        return OutputPlan(scaled=source, canvas=source)

    bw, bh = box.width, box.height

    # С одной заданной стороной любой режим ведёт себя как inside
    if bw is None or bh is None or box.fit == FitMode.INSIDE:
        factor = min(
            1.0,
            bw / w if bw else math.inf,
            bh / h if bh else math.inf,
        )
        size = _scale(source, factor) if factor < 1.0 else source
        return OutputPlan(scaled=size, canvas=size)

    if box.fit == FitMode.OUTSIDE:
        factor = min(1.0, max(bw / w, bh / h))
        size = _scale(source, factor) if factor < 1.0 else source
        return OutputPlan(scaled=size, canvas=size)

    # cover / contain / fill работают с боксом, обрезанным до исходного размера
    cw, ch = min(bw, w), min(bh, h)

    if box.fit == FitMode.FILL:
        return OutputPlan(scaled=(cw, ch), canvas=(cw, ch))

    if box.fit == FitMode.COVER:
        factor = max(cw / w, ch / h)
        sw, sh = _scale(source, factor)
        scaled = (max(cw, sw), max(ch, sh))
        return OutputPlan(scaled=scaled, canvas=(cw, ch), adjust="crop" if scaled != (cw, ch) else "none")

    # CONTAIN
    factor = min(cw / w, ch / h)
    sw, sh = _scale(source, factor)
    scaled = (min(cw, sw), min(ch, sh))
    return OutputPlan(scaled=scaled, canvas=(cw, ch), adjust="pad" if scaled != (cw, ch) else "none")


def plan_output(source: Size, box: Optional[ResizeBox] = None, width: Optional[int] = None) -> OutputPlan:
    """
    Полный план: бокс запроса, затем ограничение ширины от контроллера.

    Ограничение ширины масштабирует и scaled, и canvas одним множителем,
    поэтому пикселям достаточно одного resize.
    """
    plan = plan_box(source, box)
    cw, ch = plan.canvas

    if width is None or width >= cw:
        return plan

    factor = width / cw
    canvas = (width, max(1, round(ch * factor)))
    sw, sh = _scale(plan.scaled, factor)

    if plan.adjust == "crop":
        scaled = (max(canvas[0], sw), max(canvas[1], sh))
    elif plan.adjust == "pad":
        scaled = (min(canvas[0], sw), min(canvas[1], sh))
    else:
        scaled = canvas

    adjust = plan.adjust if scaled != canvas else "none"
    return OutputPlan(scaled=scaled, canvas=canvas, adjust=adjust)


def width_cap_for_dimension(size: Size, max_dimension: int) -> Optional[int]:
    """
    Ширина, при которой ни одна сторона не превышает max_dimension.

    Returns:
        None, если ограничение не нужно
    """
    w, h = size
    if max(w, h) <= max_dimension:
        return None
    if w >= h:
        return max_dimension
    return max(1, math.floor(max_dimension * w / h))


def resize_area(pixels: np.ndarray, size: Size) -> np.ndarray:
    """
    cv2.resize(INTER_AREA) с учётом альфы.

    RGBA уменьшается в premultiplied виде, иначе цвет полностью прозрачных
    пикселей (обычно чёрный) затекает в края видимых областей.
    """
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        return cv2.resize(pixels, size, interpolation=cv2.INTER_AREA)

    alpha = pixels[..., 3:4].astype(np.float32)
    premultiplied = np.concatenate([pixels[..., :3].astype(np.float32) * (alpha / 255.0), alpha], axis=2)
    resized = cv2.resize(premultiplied, size, interpolation=cv2.INTER_AREA)

    alpha = resized[..., 3:4]
    color = np.where(alpha > 0, resized[..., :3] * (255.0 / np.maximum(alpha, 1e-6)), 0.0)
    out = np.concatenate([color, alpha], axis=2)
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def render(pixels: np.ndarray, plan: OutputPlan) -> np.ndarray:
    """
    Строит новый массив по плану. Исходный массив не изменяется.

    Args:
        pixels: Исходные пиксели (H, W[, C])
        plan: План из plan_output()

    Returns:
        np.ndarray размера plan.canvas (C-contiguous)
    """
    h, w = pixels.shape[:2]
    out = pixels

    if plan.scaled != (w, h):
        out = resize_area(pixels, plan.scaled)

    sw, sh = plan.scaled
    cw, ch = plan.canvas

    if plan.adjust == "crop":
        x0 = (sw - cw) // 2
        y0 = (sh - ch) // 2
        out = out[y0:y0 + ch, x0:x0 + cw]
    elif plan.adjust == "pad":
        top = (ch - sh) // 2
        bottom = ch - sh - top
        left = (cw - sw) // 2
        right = cw - sw - left
        out = cv2.copyMakeBorder(
            out, top, bottom, left, right,
            cv2.BORDER_CONSTANT, value=[0, 0, 0, 0]
        )

    return np.ascontiguousarray(out)
