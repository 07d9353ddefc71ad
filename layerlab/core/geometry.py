"""Geometry helpers — map pointer gestures to layer edits.

All functions are pure: they take the layer state captured when a gesture
started plus the current pointer position and return new values.  Degenerate
input (zero-size sources, empty crop rectangles) yields ``None`` rather than
raising; callers treat that as "no change".
"""

from __future__ import annotations

from enum import Enum

from PyQt6.QtCore import QPointF, QRectF, QSizeF

from layerlab.config.constants import (
    BASE_SELECTION,
    CROP_MIN_SIZE,
    HANDLE_SIZE,
    MIN_LAYER_WIDTH,
)
from layerlab.core.document import Document, Layer, Selection


class Handle(Enum):
    TOP_LEFT = "top_left"
    TOP_RIGHT = "top_right"
    BOTTOM_LEFT = "bottom_left"
    BOTTOM_RIGHT = "bottom_right"

    @property
    def is_left(self) -> bool:
        return self in (Handle.TOP_LEFT, Handle.BOTTOM_LEFT)

    @property
    def is_top(self) -> bool:
        return self in (Handle.TOP_LEFT, Handle.TOP_RIGHT)


# --- coordinate mapping ---


def screen_to_canvas(pos: QPointF, displayed: QRectF, canvas_size: QSizeF) -> QPointF | None:
    """Map a widget position into canvas pixels.

    *displayed* is the rectangle the canvas occupies on screen; the mapping
    divides out the display scaling on each axis independently.
    """
    if displayed.width() <= 0 or displayed.height() <= 0:
        return None
    sx = canvas_size.width() / displayed.width()
    sy = canvas_size.height() / displayed.height()
    return QPointF((pos.x() - displayed.left()) * sx, (pos.y() - displayed.top()) * sy)


def canvas_to_screen(pos: QPointF, displayed: QRectF, canvas_size: QSizeF) -> QPointF | None:
    if canvas_size.width() <= 0 or canvas_size.height() <= 0:
        return None
    sx = displayed.width() / canvas_size.width()
    sy = displayed.height() / canvas_size.height()
    return QPointF(displayed.left() + pos.x() * sx, displayed.top() + pos.y() * sy)


def fit_rect(canvas_size: QSizeF, bounds: QRectF) -> QRectF:
    """Largest rectangle with the canvas aspect ratio centered in *bounds*."""
    cw, ch = canvas_size.width(), canvas_size.height()
    if cw <= 0 or ch <= 0 or bounds.width() <= 0 or bounds.height() <= 0:
        return QRectF()
    zoom = min(bounds.width() / cw, bounds.height() / ch)
    w, h = cw * zoom, ch * zoom
    return QRectF(
        bounds.left() + (bounds.width() - w) / 2.0,
        bounds.top() + (bounds.height() - h) / 2.0,
        w,
        h,
    )


# --- hit testing ---


def contains(layer: Layer, pos: QPointF) -> bool:
    """Inclusive axis-aligned bounds test."""
    return (
        layer.x <= pos.x() <= layer.x + layer.width
        and layer.y <= pos.y() <= layer.y + layer.height
    )


def hit_test(document: Document, pos: QPointF) -> Selection:
    """Return the id of the topmost layer under *pos*, else the base sentinel."""
    for layer in document.layers:
        if layer.source.is_decoded and contains(layer, pos):
            return layer.id
    return BASE_SELECTION


def handle_rects(layer: Layer, size: float = HANDLE_SIZE) -> dict[Handle, QRectF]:
    """Square handle rectangles centered on the layer's four corners."""
    half = size / 2.0
    x, y, w, h = layer.x, layer.y, layer.width, layer.height
    return {
        Handle.TOP_LEFT: QRectF(x - half, y - half, size, size),
        Handle.TOP_RIGHT: QRectF(x + w - half, y - half, size, size),
        Handle.BOTTOM_LEFT: QRectF(x - half, y + h - half, size, size),
        Handle.BOTTOM_RIGHT: QRectF(x + w - half, y + h - half, size, size),
    }


def handle_at(layer: Layer, pos: QPointF, size: float = HANDLE_SIZE) -> Handle | None:
    for handle, rect in handle_rects(layer, size).items():
        if (
            rect.left() <= pos.x() <= rect.left() + size
            and rect.top() <= pos.y() <= rect.top() + size
        ):
            return handle
    return None


# --- transforms ---


def drag_layer(start: Layer, start_pos: QPointF, pos: QPointF) -> Layer:
    """Translate *start* by the pointer delta."""
    return start.with_changes(
        x=start.x + (pos.x() - start_pos.x()),
        y=start.y + (pos.y() - start_pos.y()),
    )


def scale_from_handle(
    start: Layer,
    handle: Handle,
    start_pos: QPointF,
    pos: QPointF,
    min_width: float = MIN_LAYER_WIDTH,
) -> Layer | None:
    """Resize *start* uniformly by dragging one of its corner handles.

    Width follows the horizontal delta; height follows the source aspect
    ratio.  The edges opposite the handle stay anchored.
    """
    src_w, src_h = start.source.width, start.source.height
    if src_w <= 0 or src_h <= 0:
        return None
    dx = pos.x() - start_pos.x()
    start_w = src_w * start.scale
    new_w = start_w - dx if handle.is_left else start_w + dx
    new_w = max(new_w, min_width)
    new_scale = new_w / src_w

    new_x = start.x + (start_w - new_w) if handle.is_left else start.x
    new_y = start.y
    if handle.is_top:
        new_y = start.y - (src_h * new_scale - src_h * start.scale)
    return start.with_changes(x=new_x, y=new_y, scale=new_scale)


def fit_scale(canvas_size: QSizeF, width: int, height: int, factor: float) -> float | None:
    """Scale that fits a *width* x *height* image in the canvas, never upscaling."""
    if width <= 0 or height <= 0:
        return None
    return min(canvas_size.width() / width, canvas_size.height() / height, 1.0) * factor


def preserve_height_scale(old: Layer, new_height: int) -> float:
    """Scale that keeps *old*'s rendered height for a source *new_height* tall."""
    if new_height <= 0:
        return 1.0
    scale = old.height / new_height
    return scale if scale > 0 else 1.0


# --- crop ---


def normalize_rect(p1: QPointF, p2: QPointF) -> QRectF:
    return QRectF(
        min(p1.x(), p2.x()),
        min(p1.y(), p2.y()),
        abs(p2.x() - p1.x()),
        abs(p2.y() - p1.y()),
    )


def is_valid_crop(rect: QRectF | None, threshold: float = CROP_MIN_SIZE) -> bool:
    return rect is not None and rect.width() > threshold and rect.height() > threshold


def crop_to_layer(layer: Layer, crop_rect: QRectF) -> tuple[QRectF, QRectF] | None:
    """Map a canvas-space crop rectangle into *layer*'s source pixels.

    Returns ``(canvas_rect, source_rect)`` where *canvas_rect* is the crop
    clipped to the layer's bounds.  ``None`` when nothing of the layer
    remains.
    """
    if layer.scale <= 0 or not layer.source.is_decoded:
        return None
    clipped = crop_rect.intersected(layer.rect)
    if clipped.width() <= 0 or clipped.height() <= 0:
        return None
    source_rect = QRectF(
        (clipped.x() - layer.x) / layer.scale,
        (clipped.y() - layer.y) / layer.scale,
        clipped.width() / layer.scale,
        clipped.height() / layer.scale,
    )
    return clipped, source_rect


def clamp_corner_radius(width: float, height: float, radius: float) -> float:
    return max(0.0, min(radius, width / 2.0, height / 2.0))
