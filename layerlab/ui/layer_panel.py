"""LayerPanel — dock widget listing the layers front to back above the base."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QDropEvent
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QDockWidget,
    QHBoxLayout,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from layerlab.config.constants import BASE_SELECTION

if TYPE_CHECKING:
    from layerlab.core.layer_manager import LayerManager

_ROLE = Qt.ItemDataRole.UserRole


class _LayerList(QListWidget):
    """List that reports drops as (dragged, target) instead of moving rows."""

    reorder_requested = pyqtSignal(object, object)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setDragDropMode(QAbstractItemView.DragDropMode.InternalMove)
        self.setDefaultDropAction(Qt.DropAction.MoveAction)

    def dropEvent(self, event: QDropEvent | None) -> None:  # noqa: N802
        if event is None:
            return
        dragged = self.currentItem()
        target = self.itemAt(event.position().toPoint())
        event.setDropAction(Qt.DropAction.IgnoreAction)
        event.accept()
        if dragged is None or target is None:
            return
        dragged_id = dragged.data(_ROLE)
        target_id = target.data(_ROLE)
        if BASE_SELECTION in (dragged_id, target_id):
            return
        self.reorder_requested.emit(dragged_id, target_id)


class LayerPanel(QDockWidget):
    """Layer stack with selection, drag-and-drop reorder and rename."""

    def __init__(self, manager: LayerManager, parent: QWidget | None = None) -> None:
        super().__init__("Layers", parent)
        self._manager = manager
        self._rows: list[tuple[object, str]] = []
        self.setAllowedAreas(
            Qt.DockWidgetArea.LeftDockWidgetArea | Qt.DockWidgetArea.RightDockWidgetArea
        )

        container = QWidget()
        layout = QVBoxLayout(container)

        self._list = _LayerList()
        self._list.currentItemChanged.connect(self._on_current_changed)
        self._list.reorder_requested.connect(manager.reorder)
        layout.addWidget(self._list)

        self._name_edit = QLineEdit()
        self._name_edit.setPlaceholderText("Layer name")
        self._name_edit.textEdited.connect(self._on_name_edited)
        self._name_edit.editingFinished.connect(self._on_name_finished)
        layout.addWidget(self._name_edit)

        btn_layout = QHBoxLayout()
        self._duplicate_btn = QPushButton("Duplicate")
        self._duplicate_btn.clicked.connect(self._on_duplicate)
        btn_layout.addWidget(self._duplicate_btn)
        self._delete_btn = QPushButton("Delete")
        self._delete_btn.clicked.connect(self._on_delete)
        btn_layout.addWidget(self._delete_btn)
        layout.addLayout(btn_layout)

        self.setWidget(container)

        manager.document_changed.connect(self.refresh)
        manager.selection_changed.connect(self.refresh)
        self.refresh()

    @property
    def list_widget(self) -> QListWidget:
        return self._list

    def refresh(self, *_args: object) -> None:
        doc = self._manager.document
        selection = self._manager.selection
        rows: list[tuple[object, str]] = [(layer.id, layer.name) for layer in doc.layers]
        if doc.is_populated:
            rows.append((BASE_SELECTION, doc.base_image_name))

        self._list.blockSignals(True)
        # Items must outlive a row click that is still being delivered
        if rows != self._rows:
            self._rows = rows
            self._list.clear()
            for key, name in rows:
                item = QListWidgetItem(name)
                item.setData(_ROLE, key)
                if key == BASE_SELECTION:
                    item.setFlags(item.flags() & ~Qt.ItemFlag.ItemIsDragEnabled)
                self._list.addItem(item)
        keys = [key for key, _ in rows]
        self._list.setCurrentRow(keys.index(selection) if selection in keys else -1)
        self._list.blockSignals(False)

        name = self._selected_name()
        if not self._name_edit.hasFocus():
            self._name_edit.setText(name or "")
        has_selection = name is not None
        self._name_edit.setEnabled(has_selection)
        self._duplicate_btn.setEnabled(has_selection)
        self._delete_btn.setEnabled(self._manager.selected_layer is not None)

    def _selected_name(self) -> str | None:
        if self._manager.is_base_selected:
            return self._manager.document.base_image_name
        layer = self._manager.selected_layer
        return layer.name if layer is not None else None

    def _on_current_changed(self, current: QListWidgetItem | None, _prev: object) -> None:
        if current is not None:
            self._manager.select(current.data(_ROLE))

    def _on_name_edited(self, text: str) -> None:
        selection = self._manager.selection
        if selection is not None:
            self._manager.rename(selection, text, provisional=True)

    def _on_name_finished(self) -> None:
        self._manager.finish_adjustment("Rename")

    def _on_duplicate(self) -> None:
        if self._manager.selection is not None:
            self._manager.duplicate(self._manager.selection)

    def _on_delete(self) -> None:
        layer = self._manager.selected_layer
        if layer is not None:
            self._manager.delete(layer.id)
