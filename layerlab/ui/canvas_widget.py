"""CanvasWidget — shows the live composite and forwards pointer input."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from PyQt6.QtCore import QPointF, QRectF, QSizeF, Qt, pyqtSignal
from PyQt6.QtGui import (
    QColor,
    QDragEnterEvent,
    QDropEvent,
    QFont,
    QKeyEvent,
    QMouseEvent,
    QPainter,
    QPaintEvent,
)
from PyQt6.QtWidgets import QWidget

from layerlab.config.constants import (
    CHECKERBOARD_CELL_SIZE,
    CHECKERBOARD_COLOR_A,
    CHECKERBOARD_COLOR_B,
    EMPTY_CANVAS_FONT_SIZE,
    EMPTY_CANVAS_TEXT,
    EMPTY_CANVAS_TEXT_COLOR,
    PASTEBOARD_COLOR,
)
from layerlab.core.geometry import fit_rect, screen_to_canvas
from layerlab.core.render_engine import RenderEngine

if TYPE_CHECKING:
    from layerlab.core.layer_manager import LayerManager
    from layerlab.tools.interaction import InteractionController

_MARGIN = 16


class CanvasWidget(QWidget):
    """Paints the document scaled to fit and maps pointer events to canvas pixels.

    Holding Space arms crop mode; releasing it applies the crop.
    """

    files_dropped = pyqtSignal(list)

    def __init__(
        self,
        manager: LayerManager,
        controller: InteractionController,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._manager = manager
        self._controller = controller
        self.setAcceptDrops(True)
        self.setMouseTracking(False)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(320, 240)

        manager.document_changed.connect(self.update)
        manager.selection_changed.connect(self.update)
        controller.crop_changed.connect(self.update)

    def displayed_rect(self) -> QRectF:
        bounds = QRectF(self.rect()).adjusted(_MARGIN, _MARGIN, -_MARGIN, -_MARGIN)
        return fit_rect(self._manager.canvas_size, bounds)

    def map_to_canvas(self, pos: QPointF) -> QPointF | None:
        return screen_to_canvas(pos, self.displayed_rect(), self._manager.canvas_size)

    # --- painting ---

    def paintEvent(self, event: QPaintEvent | None) -> None:  # noqa: N802
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(PASTEBOARD_COLOR))
        image = RenderEngine(self._manager.document).render(
            selection=self._manager.selection,
            cropping=self._controller.is_cropping,
            crop_rect=self._controller.crop_rect,
        )
        if image is None:
            painter.setPen(QColor(EMPTY_CANVAS_TEXT_COLOR))
            font = QFont()
            font.setPointSize(EMPTY_CANVAS_FONT_SIZE)
            painter.setFont(font)
            painter.drawText(
                QRectF(self.rect()),
                Qt.AlignmentFlag.AlignCenter | Qt.TextFlag.TextWordWrap,
                EMPTY_CANVAS_TEXT,
            )
            painter.end()
            return
        target = self.displayed_rect()
        self._draw_checkerboard(painter, target)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.drawImage(target, image)
        painter.end()

    @staticmethod
    def _draw_checkerboard(painter: QPainter, rect: QRectF) -> None:
        painter.save()
        painter.setClipRect(rect)
        painter.fillRect(rect, QColor(CHECKERBOARD_COLOR_A))
        cell = CHECKERBOARD_CELL_SIZE
        color_b = QColor(CHECKERBOARD_COLOR_B)
        rows = int(rect.height() // cell) + 1
        cols = int(rect.width() // cell) + 1
        for row in range(rows):
            for col in range(row % 2, cols, 2):
                painter.fillRect(
                    QRectF(rect.left() + col * cell, rect.top() + row * cell, cell, cell), color_b
                )
        painter.restore()

    # --- pointer ---

    def mousePressEvent(self, event: QMouseEvent | None) -> None:  # noqa: N802
        if event is None or event.button() != Qt.MouseButton.LeftButton:
            return
        pos = self.map_to_canvas(event.position())
        if pos is not None and self._controller.mouse_press(pos):
            event.accept()

    def mouseMoveEvent(self, event: QMouseEvent | None) -> None:  # noqa: N802
        if event is None:
            return
        pos = self.map_to_canvas(event.position())
        if pos is not None:
            self._controller.mouse_move(pos)

    def mouseReleaseEvent(self, event: QMouseEvent | None) -> None:  # noqa: N802
        if event is None or event.button() != Qt.MouseButton.LeftButton:
            return
        self._controller.mouse_release(self.map_to_canvas(event.position()))

    # --- keyboard ---

    def keyPressEvent(self, event: QKeyEvent | None) -> None:  # noqa: N802
        if event is not None and event.key() == Qt.Key.Key_Space:
            if not event.isAutoRepeat():
                self._controller.arm_crop()
            event.accept()
            return
        super().keyPressEvent(event)

    def keyReleaseEvent(self, event: QKeyEvent | None) -> None:  # noqa: N802
        if event is not None and event.key() == Qt.Key.Key_Space:
            if not event.isAutoRepeat():
                self._controller.finish_crop()
            event.accept()
            return
        super().keyReleaseEvent(event)

    # --- drag and drop ---

    def dragEnterEvent(self, event: QDragEnterEvent | None) -> None:  # noqa: N802
        if event is not None and event.mimeData() is not None and event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dropEvent(self, event: QDropEvent | None) -> None:  # noqa: N802
        if event is None or event.mimeData() is None:
            return
        paths = [Path(url.toLocalFile()) for url in event.mimeData().urls() if url.isLocalFile()]
        if paths:
            self.files_dropped.emit(paths)
            event.acceptProposedAction()

    def sizeHint(self):  # noqa: N802
        size = self._manager.canvas_size
        return QSizeF(size.width() / 2, size.height() / 2).toSize()
