"""RenderEngine — deterministic compositing of a Document for display and export.

The preview and the exported file go through the same :meth:`RenderEngine.render`
pipeline; export only suppresses the interaction overlay (handles, outline,
crop spotlight), so both are pixel-identical apart from that chrome.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from PyQt6.QtCore import QPoint, QRect, QRectF, QSize, Qt
from PyQt6.QtGui import QColor, QImage, QPainter, QPen

from layerlab.config.constants import (
    CROP_BOX_FILL_COLOR,
    CROP_TINT_COLOR,
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
    HANDLE_COLOR,
    HANDLE_SIZE,
    OUTLINE_WIDTH,
)
from layerlab.core import image_ops
from layerlab.core.geometry import clamp_corner_radius, handle_rects

if TYPE_CHECKING:
    from layerlab.core.document import BlendMode, Document, Layer, Selection


class RenderEngine:
    """Rasterizes a :class:`~layerlab.core.document.Document` snapshot.

    The base image is drawn first, then ``layers`` from the end of the list
    to the front, so ``layers[0]`` ends up on top.
    """

    def __init__(self, document: Document) -> None:
        self._doc = document

    @property
    def canvas_size(self) -> QSize:
        base = self._doc.base_image
        if base is not None and base.is_decoded:
            return QSize(base.width, base.height)
        return QSize(DEFAULT_CANVAS_WIDTH, DEFAULT_CANVAS_HEIGHT)

    # --- public API ---

    def render(
        self,
        *,
        selection: Selection | None = None,
        cropping: bool = False,
        crop_rect: QRectF | None = None,
        overlay: bool = True,
    ) -> QImage | None:
        """Render the full composite.

        Returns ``None`` while the base image is missing or not yet decoded.
        """
        base = self._doc.base_image
        if base is None or not base.is_decoded:
            return None

        size = self.canvas_size
        canvas = image_ops.new_surface(size.width(), size.height())
        painter = QPainter(canvas)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        self._draw_base(painter)

        selected = self._doc.layer_by_id(selection) if overlay else None
        for layer in reversed(self._doc.layers):
            if not layer.source.is_decoded:
                continue
            if overlay and cropping and selected is not None and layer.id == selected.id:
                self._draw_crop_spotlight(painter, canvas, layer, crop_rect)
            else:
                self.draw_layer(painter, canvas, layer)

        if overlay:
            if cropping and crop_rect is not None:
                self._draw_crop_box(painter, crop_rect)
            if selected is not None and selected.source.is_decoded and not cropping:
                self._draw_selection_handles(painter, selected)

        painter.end()
        return canvas

    def render_composite(self) -> QImage | None:
        """Flattened composite for export (no interaction overlay)."""
        return self.render(overlay=False)

    def render_layer(self, layer: Layer) -> QImage | None:
        """One layer at the origin, at its native rendered size."""
        if not layer.source.is_decoded:
            return None
        w = max(1, int(math.ceil(layer.width)))
        h = max(1, int(math.ceil(layer.height)))
        return self._render_isolated(layer.with_changes(x=0.0, y=0.0), w, h)

    def render_layer_for_edit(self, layer: Layer) -> QImage | None:
        """One layer padded by its feather on every side (remote edit input)."""
        if not layer.source.is_decoded:
            return None
        f = layer.feather
        w = max(1, int(math.ceil(layer.width + 2 * f)))
        h = max(1, int(math.ceil(layer.height + 2 * f)))
        return self._render_isolated(layer.with_changes(x=f, y=f), w, h)

    def render_base(self) -> QImage | None:
        """The base image's own pixels, without effects."""
        base = self._doc.base_image
        if base is None or not base.is_decoded:
            return None
        return base.image.convertToFormat(QImage.Format.Format_ARGB32_Premultiplied)

    # --- per-layer algorithm ---

    def draw_layer(
        self,
        painter: QPainter,
        canvas: QImage,
        layer: Layer,
        clip: QRectF | None = None,
    ) -> None:
        """Filter, mask and blend *layer* onto *canvas* through *painter*."""
        w, h = layer.width, layer.height
        if w <= 0 or h <= 0:
            return
        chain = image_ops.build_filter_chain(
            layer.blur, layer.brightness, layer.contrast, layer.saturation, layer.hue
        )
        feather = max(0.0, layer.feather)
        pad = int(math.ceil(feather)) + image_ops.blur_padding(layer.blur)

        # Surface is integer-aligned on the canvas; the fractional part of the
        # layer position is absorbed inside it.
        ox = math.floor(layer.x)
        oy = math.floor(layer.y)
        fx = layer.x - ox + pad
        fy = layer.y - oy + pad
        surface = image_ops.new_surface(
            int(math.ceil(layer.x - ox + w)) + 2 * pad,
            int(math.ceil(layer.y - oy + h)) + 2 * pad,
        )

        sp = QPainter(surface)
        sp.setRenderHint(QPainter.RenderHint.Antialiasing)
        sp.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        target = QRectF(fx, fy, w, h)
        if feather > 0:
            sp.drawImage(target, layer.source.image)
            mask = self._feather_mask(surface.size(), target, layer)
            sp.setCompositionMode(QPainter.CompositionMode.CompositionMode_DestinationIn)
            sp.drawImage(QPoint(0, 0), mask)
        else:
            radius = clamp_corner_radius(w, h, layer.corner_radius)
            if radius > 0:
                sp.setClipPath(image_ops.rounded_rect_path(fx, fy, w, h, radius))
            sp.drawImage(target, layer.source.image)
        sp.end()

        surface = image_ops.apply_filters(surface, chain)
        self._composite(painter, canvas, surface, QPoint(ox - pad, oy - pad), layer.blend_mode, clip)

    @staticmethod
    def _feather_mask(size: QSize, target: QRectF, layer: Layer) -> QImage:
        """Soft-edge alpha mask inset by ``feather_start`` then blurred by ``feather``."""
        inset = layer.effective_feather_start
        mask = image_ops.new_surface(size.width(), size.height())
        mp = QPainter(mask)
        mp.setRenderHint(QPainter.RenderHint.Antialiasing)
        mp.setPen(Qt.PenStyle.NoPen)
        mp.setBrush(QColor(0, 0, 0))
        mp.drawPath(
            image_ops.rounded_rect_path(
                target.x() + inset,
                target.y() + inset,
                target.width() - 2 * inset,
                target.height() - 2 * inset,
                max(0.0, layer.corner_radius - inset),
            )
        )
        mp.end()
        return image_ops.apply_filters(mask, [("blur", layer.feather)])

    def _composite(
        self,
        painter: QPainter,
        canvas: QImage,
        surface: QImage,
        origin: QPoint,
        mode: BlendMode,
        clip: QRectF | None,
    ) -> None:
        painter.save()
        if clip is not None:
            painter.setClipRect(clip)
        if mode.is_non_separable:
            region = QRect(origin, surface.size()).intersected(canvas.rect())
            if not region.isEmpty():
                dest = image_ops.qimage_to_array(canvas.copy(region))
                src = image_ops.qimage_to_array(
                    surface.copy(region.translated(-origin.x(), -origin.y()))
                )
                blended = image_ops.blend_non_separable(dest, src, mode)
                painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Source)
                painter.drawImage(region.topLeft(), image_ops.array_to_qimage(blended))
        else:
            painter.setCompositionMode(mode.qt_mode)
            painter.drawImage(origin, surface)
        painter.restore()

    def _draw_base(self, painter: QPainter) -> None:
        base = self._doc.base_image
        if base is None:
            return
        fx = self._doc.base_image_effects
        chain = image_ops.build_filter_chain(
            fx.blur, fx.brightness, fx.contrast, fx.saturation, fx.hue
        )
        pad = image_ops.blur_padding(fx.blur)
        surface = image_ops.new_surface(base.width + 2 * pad, base.height + 2 * pad)
        sp = QPainter(surface)
        sp.drawImage(QPoint(pad, pad), base.image)
        sp.end()
        surface = image_ops.apply_filters(surface, chain)
        painter.drawImage(QPoint(-pad, -pad), surface)

    def _render_isolated(self, layer: Layer, width: int, height: int) -> QImage:
        canvas = image_ops.new_surface(width, height)
        painter = QPainter(canvas)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        self.draw_layer(painter, canvas, layer)
        painter.end()
        return canvas

    # --- overlay ---

    def _draw_crop_spotlight(
        self, painter: QPainter, canvas: QImage, layer: Layer, crop_rect: QRectF | None
    ) -> None:
        self.draw_layer(painter, canvas, layer)
        painter.fillRect(layer.rect, QColor(*CROP_TINT_COLOR))
        if crop_rect is not None and crop_rect.width() > 0 and crop_rect.height() > 0:
            self.draw_layer(painter, canvas, layer, clip=crop_rect)

    @staticmethod
    def _draw_crop_box(painter: QPainter, crop_rect: QRectF) -> None:
        painter.save()
        painter.fillRect(crop_rect, QColor(*CROP_BOX_FILL_COLOR))
        painter.setPen(QPen(QColor(*HANDLE_COLOR), OUTLINE_WIDTH))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(crop_rect)
        painter.restore()

    @staticmethod
    def _draw_selection_handles(painter: QPainter, layer: Layer) -> None:
        painter.save()
        color = QColor(*HANDLE_COLOR)
        painter.setPen(QPen(color, OUTLINE_WIDTH))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(layer.rect)
        for rect in handle_rects(layer, HANDLE_SIZE).values():
            painter.fillRect(rect, color)
        painter.restore()
