"""Tests for CanvasWidget coordinate mapping and input forwarding."""

from PyQt6.QtCore import QPoint, QPointF, Qt
from pytestqt.qtbot import QtBot

from conftest import SourceFactory

from layerlab.config.constants import BASE_SELECTION
from layerlab.core.layer_manager import LayerManager
from layerlab.tools.interaction import InteractionController
from layerlab.ui.canvas_widget import CanvasWidget


def _canvas(qtbot: QtBot, manager: LayerManager) -> CanvasWidget:
    controller = InteractionController(manager, parent=manager)
    widget = CanvasWidget(manager, controller)
    widget.resize(432, 432)
    qtbot.addWidget(widget)
    return widget


def test_displayed_rect_fits_canvas(qtbot: QtBot, based_manager: LayerManager) -> None:
    widget = _canvas(qtbot, based_manager)
    rect = widget.displayed_rect()
    assert rect.width() == 400
    assert rect.height() == 400


def test_map_to_canvas_divides_out_zoom(qtbot: QtBot, based_manager: LayerManager) -> None:
    widget = _canvas(qtbot, based_manager)
    assert widget.map_to_canvas(QPointF(216, 216)) == QPointF(100, 100)
    assert widget.map_to_canvas(QPointF(16, 16)) == QPointF(0, 0)


def test_click_selects_layer(
    qtbot: QtBot, based_manager: LayerManager, make_source: SourceFactory
) -> None:
    layer_id = based_manager.add_layer(make_source(40, 40), "a")
    based_manager.select(BASE_SELECTION)
    widget = _canvas(qtbot, based_manager)
    qtbot.mouseClick(widget, Qt.MouseButton.LeftButton, pos=QPoint(216, 216))
    assert based_manager.selection == layer_id


def test_paints_without_document(qtbot: QtBot, manager: LayerManager) -> None:
    widget = _canvas(qtbot, manager)
    pixmap = widget.grab()
    assert not pixmap.isNull()


def test_paints_with_document(qtbot: QtBot, based_manager: LayerManager, make_source: SourceFactory) -> None:
    based_manager.add_layer(make_source(40, 40), "a")
    widget = _canvas(qtbot, based_manager)
    image = widget.grab().toImage()
    assert image.pixelColor(216, 216).red() > 200
