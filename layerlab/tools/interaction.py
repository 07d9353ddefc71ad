"""InteractionController — pointer gestures to provisional and committed edits."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from PyQt6.QtCore import QObject, QPointF, QRectF, pyqtSignal

from layerlab.config.constants import BASE_SELECTION
from layerlab.core import geometry
from layerlab.core.document import Layer, LayerId
from layerlab.core.geometry import Handle

if TYPE_CHECKING:
    from layerlab.core.layer_manager import LayerManager

log = logging.getLogger(__name__)

BASE_CROP_REFUSED = "Cannot crop the base layer. Please duplicate it first."


class InteractionState(Enum):
    IDLE = auto()
    DRAGGING = auto()
    SCALING = auto()
    CROPPING_DRAG = auto()


@dataclass
class GestureSession:
    """A move or scale gesture in progress.

    Every :meth:`update` stages a provisional document; :meth:`finish`
    promotes the staged state to one history entry under ``label``.
    """

    manager: LayerManager
    start_layer: Layer
    start_pos: QPointF
    label: str
    handle: Handle | None = None

    @property
    def layer_id(self) -> LayerId:
        return self.start_layer.id

    def update(self, pos: QPointF) -> bool:
        if self.handle is None:
            moved: Layer | None = geometry.drag_layer(self.start_layer, self.start_pos, pos)
        else:
            moved = geometry.scale_from_handle(self.start_layer, self.handle, self.start_pos, pos)
        if moved is None:
            return False
        return self.manager.update_layer(
            self.layer_id,
            {"x": moved.x, "y": moved.y, "scale": moved.scale},
            provisional=True,
        )

    def finish(self) -> bool:
        return self.manager.finish_adjustment(self.label)

    def cancel(self) -> None:
        self.manager.cancel_adjustment()


class InteractionController(QObject):
    """Consumes canvas-space pointer events and drives the layer manager.

    Crop mode is a separate armed flag.  While armed, presses draw the crop
    rectangle instead of selecting or moving layers; the rectangle is kept
    after release and only applied when crop mode is switched off.
    """

    state_changed = pyqtSignal(object)
    crop_changed = pyqtSignal()

    def __init__(self, manager: LayerManager, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._manager = manager
        self._state = InteractionState.IDLE
        self._session: GestureSession | None = None
        self._cropping = False
        self._crop_target: LayerId | None = None
        self._crop_start = QPointF()
        self._crop_rect: QRectF | None = None
        manager.document_changed.connect(self._on_document_changed)
        manager.selection_changed.connect(self._on_selection_changed)

    # --- queries ---

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def is_cropping(self) -> bool:
        return self._cropping

    @property
    def crop_rect(self) -> QRectF | None:
        return QRectF(self._crop_rect) if self._crop_rect is not None else None

    @property
    def session(self) -> GestureSession | None:
        return self._session

    @property
    def is_active_operation(self) -> bool:
        return self._state is not InteractionState.IDLE

    def _set_state(self, state: InteractionState) -> None:
        if state is not self._state:
            self._state = state
            self.state_changed.emit(state)

    # --- pointer events (canvas coordinates) ---

    def mouse_press(self, pos: QPointF) -> bool:
        manager = self._manager
        if manager.busy or not manager.document.is_populated:
            return False
        if self._state is not InteractionState.IDLE:
            return True

        if self._cropping:
            self._crop_start = QPointF(pos)
            self._crop_rect = geometry.normalize_rect(pos, pos)
            self._set_state(InteractionState.CROPPING_DRAG)
            self.crop_changed.emit()
            return True

        selected = manager.selected_layer
        if selected is not None and selected.source.is_decoded:
            handle = geometry.handle_at(selected, pos)
            if handle is not None:
                self._session = GestureSession(manager, selected, QPointF(pos), "Scale Layer", handle)
                self._set_state(InteractionState.SCALING)
                return True

        hit = geometry.hit_test(manager.document, pos)
        manager.select(hit)
        if hit == BASE_SELECTION:
            return True
        layer = manager.document.layer_by_id(hit)
        if layer is None:
            return False
        self._session = GestureSession(manager, layer, QPointF(pos), "Move Layer")
        self._set_state(InteractionState.DRAGGING)
        return True

    def mouse_move(self, pos: QPointF) -> bool:
        if self._state is InteractionState.CROPPING_DRAG:
            self._crop_rect = geometry.normalize_rect(self._crop_start, pos)
            self.crop_changed.emit()
            return True
        if self._session is not None:
            self._session.update(pos)
            return True
        return False

    def mouse_release(self, pos: QPointF | None = None) -> bool:
        if self._state is InteractionState.CROPPING_DRAG:
            if pos is not None:
                self._crop_rect = geometry.normalize_rect(self._crop_start, pos)
                self.crop_changed.emit()
            self._set_state(InteractionState.IDLE)
            return True
        session = self._session
        if session is None:
            return False
        if pos is not None:
            session.update(pos)
        self._session = None
        self._set_state(InteractionState.IDLE)
        session.finish()
        return True

    def cancel(self) -> None:
        """Abort any gesture in progress and leave crop mode without applying."""
        if self._session is not None:
            session = self._session
            self._session = None
            session.cancel()
        self._set_state(InteractionState.IDLE)
        self.cancel_crop()

    # --- crop mode ---

    def arm_crop(self) -> bool:
        manager = self._manager
        if self._cropping or manager.busy:
            return False
        if manager.selection == BASE_SELECTION:
            manager.notice.emit(BASE_CROP_REFUSED)
            return False
        layer = manager.selected_layer
        if layer is None or not layer.source.is_decoded:
            return False
        self._cropping = True
        self._crop_target = layer.id
        self._crop_rect = None
        self.crop_changed.emit()
        return True

    def finish_crop(self) -> bool:
        """Leave crop mode, applying the pending rectangle when it is valid."""
        if not self._cropping:
            return False
        target = self._crop_target
        rect = self._crop_rect
        self._reset_crop()
        if target is None or not geometry.is_valid_crop(rect):
            log.debug("crop discarded: %r", rect)
            return False
        return self._manager.apply_crop(target, rect)  # type: ignore[arg-type]

    def toggle_crop(self) -> bool:
        """Arm crop mode, or finalize it when already armed."""
        if self._cropping:
            return self.finish_crop()
        return self.arm_crop()

    def cancel_crop(self) -> None:
        if self._cropping:
            self._reset_crop()

    def _reset_crop(self) -> None:
        self._cropping = False
        self._crop_target = None
        self._crop_rect = None
        if self._state is InteractionState.CROPPING_DRAG:
            self._set_state(InteractionState.IDLE)
        self.crop_changed.emit()

    # --- slots ---

    def _on_document_changed(self) -> None:
        if self._cropping and self._manager.document.layer_by_id(self._crop_target) is None:
            self.cancel_crop()

    def _on_selection_changed(self, selection: object) -> None:
        if self._cropping and selection != self._crop_target:
            self.cancel_crop()
