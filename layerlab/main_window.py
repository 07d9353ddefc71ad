"""MainWindow — top-level window wiring the editor core to the widgets."""

from __future__ import annotations

import logging
from pathlib import Path

from PyQt6.QtCore import QThreadPool, Qt
from PyQt6.QtGui import QAction, QCloseEvent, QKeySequence
from PyQt6.QtWidgets import QFileDialog, QMainWindow, QMenuBar, QMessageBox, QWidget

from layerlab.config.constants import (
    APP_NAME,
    APP_VERSION,
    BASE_SELECTION,
    COMPOSITION_FILENAME,
    EXPORT_EXTENSION,
    IMAGE_FILE_FILTER,
)
from layerlab.config.settings import AppSettings
from layerlab.config.shortcuts import SHORTCUTS
from layerlab.core.document import PixelSource
from layerlab.core.layer_manager import LayerManager, PendingDecode
from layerlab.core.render_engine import RenderEngine
from layerlab.io import exporter
from layerlab.io.ai_edit import AiEditWorker
from layerlab.io.importer import DecodeWorker
from layerlab.tools.interaction import InteractionController
from layerlab.ui.canvas_widget import CanvasWidget
from layerlab.ui.layer_panel import LayerPanel
from layerlab.ui.preferences_dialog import PreferencesDialog
from layerlab.ui.property_panel import PropertyPanel
from layerlab.ui.status_bar import LayerLabStatusBar

log = logging.getLogger(__name__)

# What a finished decode is for
_SET_BASE = "base"
_ADD = "add"
_REPLACE = "replace"
_AI_RESULT = "ai"


class MainWindow(QMainWindow):
    """Primary application window.

    Owns the LayerManager, the InteractionController and the panels.
    Image decodes and remote edits run on the global QThreadPool; their
    results are applied only while the matching :class:`PendingDecode`
    ticket is still current.
    """

    def __init__(self, settings: AppSettings | None = None, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._settings = settings if settings is not None else AppSettings()
        self._pool = QThreadPool.globalInstance()
        self._decodes: dict[int, tuple[PendingDecode, str]] = {}
        self._ai_pending: dict[int, PendingDecode] = {}
        self._queued_layers: list[Path] = []
        self.setWindowTitle(APP_NAME)
        self.resize(1200, 800)

        self._manager = LayerManager(parent=self)
        self._controller = InteractionController(self._manager, parent=self)

        self._canvas = CanvasWidget(self._manager, self._controller, self)
        self._canvas.files_dropped.connect(self.open_paths)
        self.setCentralWidget(self._canvas)

        self._layer_panel = LayerPanel(self._manager, self)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self._layer_panel)

        self._property_panel = PropertyPanel(self._manager, self._settings, self)
        self._property_panel.ai_edit_requested.connect(self.start_ai_edit)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, self._property_panel)

        self._status_bar = LayerLabStatusBar()
        self.setStatusBar(self._status_bar)
        self._manager.notice.connect(self._status_bar.show_notice)
        self._manager.busy_changed.connect(self._status_bar.set_busy)
        self._manager.document_changed.connect(self._on_document_changed)

        self._undo_action: QAction | None = None
        self._redo_action: QAction | None = None
        self._setup_menus()
        self._manager.history.can_undo_changed.connect(self._sync_undo_actions)
        self._manager.history.can_redo_changed.connect(self._sync_undo_actions)
        self._sync_undo_actions()

    @property
    def manager(self) -> LayerManager:
        return self._manager

    @property
    def controller(self) -> InteractionController:
        return self._controller

    # --- menus ---

    def _setup_menus(self) -> None:
        menu_bar = self.menuBar()
        if menu_bar is None:
            return
        self._setup_file_menu(menu_bar)
        self._setup_edit_menu(menu_bar)
        self._setup_layer_menu(menu_bar)
        self._setup_help_menu(menu_bar)

    def _add_action(self, menu, text: str, slot, shortcut: str | None = None) -> QAction | None:  # noqa: ANN001
        action = menu.addAction(text)
        if action is not None:
            if shortcut is not None:
                action.setShortcut(QKeySequence(SHORTCUTS[shortcut]))
            action.triggered.connect(slot)
        return action

    def _setup_file_menu(self, menu_bar: QMenuBar) -> None:
        file_menu = menu_bar.addMenu("&File")
        if file_menu is None:
            return
        self._add_action(file_menu, "&Open Image...", self._file_open, "file.open")
        self._add_action(file_menu, "New &Base Image...", self._file_new_base)
        file_menu.addSeparator()
        self._add_action(
            file_menu, "Export &Composition...", self._file_export_composition, "file.export_composition"
        )
        self._add_action(
            file_menu, "Export Selected &Layer...", self._file_export_layer, "file.export_layer"
        )
        file_menu.addSeparator()
        self._add_action(file_menu, "Pre&ferences...", self._file_preferences, "file.preferences")
        file_menu.addSeparator()
        quit_action = file_menu.addAction("&Quit")
        if quit_action is not None:
            quit_action.setShortcut(QKeySequence("Ctrl+Q"))
            quit_action.triggered.connect(self.close)

    def _setup_edit_menu(self, menu_bar: QMenuBar) -> None:
        edit_menu = menu_bar.addMenu("&Edit")
        if edit_menu is None:
            return
        self._undo_action = self._add_action(edit_menu, "&Undo", self._edit_undo, "edit.undo")
        self._redo_action = self._add_action(edit_menu, "&Redo", self._edit_redo, "edit.redo")
        edit_menu.addSeparator()
        self._add_action(edit_menu, "&Duplicate", self._edit_duplicate, "edit.duplicate")
        delete_action = self._add_action(edit_menu, "De&lete Layer", self._edit_delete, "edit.delete")
        if delete_action is not None:
            delete_action.setShortcuts(
                [QKeySequence(SHORTCUTS["edit.delete"]), QKeySequence(SHORTCUTS["edit.delete_alt"])]
            )
        edit_menu.addSeparator()
        self._add_action(edit_menu, "&AI Edit", self._edit_ai, "edit.ai_edit")

    def _setup_layer_menu(self, menu_bar: QMenuBar) -> None:
        layer_menu = menu_bar.addMenu("&Layer")
        if layer_menu is None:
            return
        self._add_action(layer_menu, "&Replace Image...", self._layer_replace_image, "layer.replace_image")
        self._add_action(layer_menu, "Toggle &Crop", self._controller.toggle_crop, "layer.toggle_crop")
        self._add_action(layer_menu, "Cancel Crop", self._controller.cancel_crop)

    def _setup_help_menu(self, menu_bar: QMenuBar) -> None:
        help_menu = menu_bar.addMenu("&Help")
        if help_menu is None:
            return
        self._add_action(help_menu, f"&About {APP_NAME}", self._help_about)

    def _sync_undo_actions(self, *_args: object) -> None:
        history = self._manager.history
        if self._undo_action is not None:
            self._undo_action.setEnabled(history.can_undo)
            self._undo_action.setText(f"&Undo {history.undo_text}".rstrip())
        if self._redo_action is not None:
            self._redo_action.setEnabled(history.can_redo)
            self._redo_action.setText(f"&Redo {history.redo_text}".rstrip())

    def _on_document_changed(self) -> None:
        size = self._manager.canvas_size
        self._status_bar.set_canvas_size(int(size.width()), int(size.height()))

    # --- loading ---

    def open_paths(self, paths: list[Path]) -> None:
        """First image becomes the base when there is none; the rest become layers."""
        paths = list(paths)
        if not paths:
            return
        if not self._manager.document.is_populated and not self._base_pending():
            self._start_decode(paths[0], None, _SET_BASE)
            self._queued_layers.extend(paths[1:])
            return
        if self._base_pending():
            self._queued_layers.extend(paths)
            return
        for path in paths:
            self._start_decode(path, None, _ADD)

    def _base_pending(self) -> bool:
        return any(intent == _SET_BASE for _, intent in self._decodes.values())

    def _start_decode(self, path: Path, target: object, intent: str) -> None:
        pending = self._manager.begin_decode(target)  # type: ignore[arg-type]
        self._decodes[pending.token] = (pending, intent)
        worker = DecodeWorker(pending.token, path=path)
        worker.signals.finished.connect(self._on_decode_finished)
        worker.signals.failed.connect(self._on_decode_failed)
        self._pool.start(worker)

    def _on_decode_finished(self, token: int, source: PixelSource, name: str) -> None:
        entry = self._decodes.pop(token, None)
        if entry is None:
            return
        pending, intent = entry
        if intent == _AI_RESULT:
            self._finish_ai_edit(pending, source)
            return
        if not self._manager.finish_decode(pending):
            return
        if intent == _SET_BASE:
            self._manager.set_base_image(source, name)
            queued, self._queued_layers = self._queued_layers, []
            for path in queued:
                self._start_decode(path, None, _ADD)
        elif intent == _ADD:
            self._manager.add_layer(source, name)
        elif intent == _REPLACE:
            self._manager.replace_image(pending.target, source, name)  # type: ignore[arg-type]

    def _on_decode_failed(self, token: int, message: str) -> None:
        entry = self._decodes.pop(token, None)
        if entry is None:
            return
        pending, intent = entry
        self._manager.finish_decode(pending)
        if intent == _AI_RESULT:
            self._manager.set_busy(False)
        elif intent == _SET_BASE and self._queued_layers:
            queued, self._queued_layers = self._queued_layers, []
            self.open_paths(queued)
        self._manager.notice.emit(f"Error loading image: {message}")

    def _pick_images(self, title: str, multiple: bool = True) -> list[Path]:
        if multiple:
            names, _ = QFileDialog.getOpenFileNames(self, title, "", IMAGE_FILE_FILTER)
        else:
            name, _ = QFileDialog.getOpenFileName(self, title, "", IMAGE_FILE_FILTER)
            names = [name] if name else []
        return [Path(n) for n in names if n]

    def _file_open(self) -> None:
        self.open_paths(self._pick_images("Open Image"))

    def _file_new_base(self) -> None:
        paths = self._pick_images("New Base Image", multiple=False)
        if paths:
            self._start_decode(paths[0], None, _SET_BASE)

    def _layer_replace_image(self) -> None:
        layer = self._manager.selected_layer
        if layer is None:
            self._manager.notice.emit("Select a layer to replace its image.")
            return
        paths = self._pick_images("Replace Image", multiple=False)
        if paths:
            self._start_decode(paths[0], layer.id, _REPLACE)

    # --- export ---

    def _file_export_composition(self) -> None:
        if not self._manager.document.is_populated:
            self._manager.notice.emit("Nothing to export.")
            return
        path_str, _ = QFileDialog.getSaveFileName(
            self, "Export Composition", COMPOSITION_FILENAME, "PNG (*.png)"
        )
        if path_str:
            if exporter.export_composition(self._manager.document, Path(path_str)):
                self._manager.notice.emit("Composition exported.")
            else:
                self._manager.notice.emit("Export failed.")

    def _file_export_layer(self) -> None:
        selection = self._manager.selection
        doc = self._manager.document
        if selection is None or not doc.has_selection(selection):
            self._manager.notice.emit("Select a layer to export.")
            return
        if selection == BASE_SELECTION:
            name = doc.base_image_name
        else:
            name = doc.layer_by_id(selection).name  # type: ignore[union-attr]
        default = Path(name).stem + EXPORT_EXTENSION
        path_str, _ = QFileDialog.getSaveFileName(self, "Export Layer", default, "PNG (*.png)")
        if path_str:
            if exporter.export_layer(doc, selection, Path(path_str)):
                self._manager.notice.emit(f"Exported {name}.")
            else:
                self._manager.notice.emit("Export failed.")

    # --- edit ---

    def _edit_undo(self) -> None:
        self._controller.cancel()
        self._manager.undo()

    def _edit_redo(self) -> None:
        self._controller.cancel()
        self._manager.redo()

    def _edit_duplicate(self) -> None:
        if self._manager.selection is not None:
            self._manager.duplicate(self._manager.selection)

    def _edit_delete(self) -> None:
        layer = self._manager.selected_layer
        if layer is not None:
            self._controller.cancel()
            self._manager.delete(layer.id)

    def _edit_ai(self) -> None:
        self.start_ai_edit(self._property_panel.prompt)

    # --- remote edit ---

    def start_ai_edit(self, prompt: str) -> None:
        manager = self._manager
        if manager.busy:
            return
        if not self._settings.has_api_key:
            manager.notice.emit("Please set your API key in Preferences.")
            return
        if not prompt.strip():
            manager.notice.emit("Please enter a prompt.")
            return
        selection = manager.selection
        engine = RenderEngine(manager.document)
        if selection == BASE_SELECTION:
            image = engine.render_base()
        else:
            layer = manager.selected_layer
            image = engine.render_layer_for_edit(layer) if layer is not None else None
        if image is None:
            manager.notice.emit("Select a layer or the base image to edit.")
            return

        pending = manager.begin_decode(selection)
        self._ai_pending[pending.token] = pending
        manager.set_busy(True)
        worker = AiEditWorker(pending.token, self._settings.api_key, prompt, image)
        worker.signals.succeeded.connect(self._on_ai_succeeded)
        worker.signals.failed.connect(self._on_ai_failed)
        self._pool.start(worker)

    def _on_ai_succeeded(self, token: int, data_uri: str) -> None:
        pending = self._ai_pending.pop(token, None)
        if pending is None:
            return
        self._decodes[token] = (pending, _AI_RESULT)
        worker = DecodeWorker(token, data_uri=data_uri, name="AI edit")
        worker.signals.finished.connect(self._on_decode_finished)
        worker.signals.failed.connect(self._on_decode_failed)
        self._pool.start(worker)

    def _on_ai_failed(self, token: int, reason: str) -> None:
        pending = self._ai_pending.pop(token, None)
        if pending is not None:
            self._manager.finish_decode(pending)
        self._manager.set_busy(False)
        self._manager.notice.emit(f"AI Edit Failed: {reason}")

    def _finish_ai_edit(self, pending: PendingDecode, source: PixelSource) -> None:
        self._manager.set_busy(False)
        if not self._manager.finish_decode(pending):
            return
        if self._manager.apply_edit_result(
            pending.target,  # type: ignore[arg-type]
            source,
            self._settings.ai_feather_percent,
        ):
            self._manager.notice.emit("AI edit applied.")

    def _help_about(self) -> None:
        QMessageBox.about(
            self,
            f"About {APP_NAME}",
            f"<h3>{APP_NAME} v{APP_VERSION}</h3>"
            "<p>Layered image compositor with live preview and undo history.</p>"
            "<p>Built with Python and PyQt6.</p>",
        )

    # --- preferences ---

    def _file_preferences(self) -> None:
        dialog = PreferencesDialog(self._settings, self)
        if dialog.exec():
            dialog.apply()
            self._manager.notice.emit("Settings saved!")

    def closeEvent(self, event: QCloseEvent | None) -> None:  # noqa: N802
        self._controller.cancel()
        self._pool.waitForDone(2000)
        super().closeEvent(event)
