"""Tests for PNG export."""

from pathlib import Path

import numpy as np
from PyQt6.QtGui import QColor, QImage
from PyQt6.QtWidgets import QApplication

from layerlab.config.constants import BASE_SELECTION
from layerlab.core import image_ops
from layerlab.core.document import BaseEffects, Document, Layer, PixelSource
from layerlab.core.render_engine import RenderEngine
from layerlab.io import exporter


def _source(w: int, h: int, color: str) -> PixelSource:
    img = QImage(w, h, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(QColor(color))
    return PixelSource(img)


def _doc() -> tuple[Document, Layer]:
    layer = Layer("Sticker", _source(20, 10, "red"), x=5, y=5, scale=2.0)
    doc = Document(
        base_image=_source(64, 48, "#c86432"),
        base_image_effects=BaseEffects(brightness=50),
        layers=(layer,),
    )
    return doc, layer


def test_export_composition_matches_render(qapp: QApplication, tmp_path: Path) -> None:
    doc, _ = _doc()
    path = tmp_path / "composition.png"
    assert exporter.export_composition(doc, path)
    saved = QImage(str(path))
    assert (saved.width(), saved.height()) == (64, 48)
    expected = RenderEngine(doc).render_composite()
    assert np.array_equal(image_ops.qimage_to_array(saved), image_ops.qimage_to_array(expected))


def test_export_layer(qapp: QApplication, tmp_path: Path) -> None:
    doc, layer = _doc()
    path = tmp_path / "sticker.png"
    assert exporter.export_layer(doc, layer.id, path)
    saved = QImage(str(path))
    assert (saved.width(), saved.height()) == (40, 20)


def test_export_base_is_raw(qapp: QApplication, tmp_path: Path) -> None:
    doc, _ = _doc()
    path = tmp_path / "base.png"
    assert exporter.export_layer(doc, BASE_SELECTION, path)
    saved = QImage(str(path))
    assert saved.pixelColor(1, 1) == QColor("#c86432")


def test_export_unknown_layer(qapp: QApplication, tmp_path: Path) -> None:
    doc, _ = _doc()
    assert not exporter.export_layer(doc, 987654, tmp_path / "x.png")
    assert not exporter.export_composition(Document(), tmp_path / "y.png")
