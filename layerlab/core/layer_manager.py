"""LayerManager — history-backed document edits, selection and decode tokens."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any

from PyQt6.QtCore import QObject, QRectF, QSizeF, pyqtSignal

from layerlab.config.constants import (
    ADD_LAYER_FIT_FACTOR,
    AI_FEATHER_START_FACTOR,
    BASE_SELECTION,
    DEFAULT_CANVAS_HEIGHT,
    DEFAULT_CANVAS_WIDTH,
)
from layerlab.core import geometry, image_ops
from layerlab.core.document import (
    BaseEffects,
    Document,
    Layer,
    LayerId,
    PixelSource,
    Selection,
)
from layerlab.core.history import HistoryStore

log = logging.getLogger(__name__)

_tokens = itertools.count(1)


@dataclass(frozen=True)
class PendingDecode:
    """Ticket for an in-flight decode whose result will edit *target*.

    The result may only be applied while the ticket is still current: the
    document generation is unchanged, no newer decode was started for the
    same target, and the target still holds the source it had when the
    decode began.
    """

    token: int
    target: Selection | None
    generation: int
    expected_source: PixelSource | None


class LayerManager(QObject):
    """Owns the :class:`HistoryStore` and performs every document edit through it.

    Edits are committed as one undo step each.  Continuous edits (slider
    drags, text typing) pass ``provisional=True`` and are later promoted by
    :meth:`finish_adjustment`.

    Signals
    -------
    document_changed()
        Emitted after any committed, staged, undone or redone change.
    selection_changed(object)
        Emitted with the new selection (layer id, ``"base"`` or ``None``).
    notice(str)
        User-facing message (undo/redo labels, refused operations).
    busy_changed(bool)
        Emitted when a remote edit starts or finishes.
    """

    document_changed = pyqtSignal()
    selection_changed = pyqtSignal(object)
    notice = pyqtSignal(str)
    busy_changed = pyqtSignal(bool)

    def __init__(self, parent: QObject | None = None, history: HistoryStore | None = None) -> None:
        super().__init__(parent)
        self._history: HistoryStore = history if history is not None else HistoryStore(Document())
        self._selection: Selection | None = None
        self._generation = 0
        self._pending: dict[Selection, int] = {}
        self._busy = False
        self._history.changed.connect(self.document_changed.emit)

    # --- queries ---

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def document(self) -> Document:
        """Latest snapshot, including staged provisional edits."""
        return self._history.current

    @property
    def selection(self) -> Selection | None:
        return self._selection

    @property
    def selected_layer(self) -> Layer | None:
        return self.document.layer_by_id(self._selection)

    @property
    def is_base_selected(self) -> bool:
        return self._selection == BASE_SELECTION

    @property
    def canvas_size(self) -> QSizeF:
        base = self.document.base_image
        if base is not None and base.is_decoded:
            return QSizeF(base.width, base.height)
        return QSizeF(DEFAULT_CANVAS_WIDTH, DEFAULT_CANVAS_HEIGHT)

    @property
    def busy(self) -> bool:
        return self._busy

    def set_busy(self, busy: bool) -> None:
        if busy != self._busy:
            self._busy = busy
            self.busy_changed.emit(busy)

    # --- selection ---

    def select(self, selection: Selection | None) -> None:
        """Select a layer id or the base sentinel; unknown ids are ignored."""
        if selection is not None and not self.document.has_selection(selection):
            return
        self._set_selection(selection)

    def _set_selection(self, selection: Selection | None) -> None:
        if selection != self._selection:
            self._selection = selection
            self.selection_changed.emit(selection)

    def _reconcile_selection(self, fallback: Any) -> None:
        doc = self.document
        if self._selection is not None and doc.has_selection(self._selection):
            return
        if fallback is not None and doc.has_selection(fallback):
            self._set_selection(fallback)
        elif doc.is_populated:
            self._set_selection(BASE_SELECTION)
        else:
            self._set_selection(None)

    # --- history ---

    def _commit(self, doc: Document, label: str, selection: Any = ...) -> bool:
        if selection is not ...:
            self._set_selection(selection)
        return self._history.commit(doc, label, context=self._selection)

    def undo(self) -> str | None:
        label = self._history.undo()
        if label is None:
            self.notice.emit("Nothing to undo")
            return None
        self._reconcile_selection(self._history.current_entry.context)
        self.notice.emit(f"Undid {label}")
        return label

    def redo(self) -> str | None:
        label = self._history.redo()
        if label is None:
            self.notice.emit("Nothing to redo")
            return None
        self._reconcile_selection(self._history.current_entry.context)
        self.notice.emit(f"Redid {label}")
        return label

    def finish_adjustment(self, label: str) -> bool:
        """Promote staged provisional edits to one history entry."""
        if not self._history.has_staged:
            return False
        return self._commit(self.document, label)

    def cancel_adjustment(self) -> bool:
        """Throw away staged provisional edits."""
        discarded = self._history.discard()
        if discarded:
            self._reconcile_selection(self._history.current_entry.context)
        return discarded

    # --- base image ---

    def set_base_image(self, source: PixelSource, name: str) -> bool:
        """Start a new document on *source*; existing layers are dropped."""
        if not source.is_decoded:
            return False
        self._generation += 1
        self._pending.clear()
        doc = Document(base_image=source, base_image_name=name, base_image_effects=BaseEffects())
        return self._commit(doc, "Set Base Image", BASE_SELECTION)

    def update_base_effects(
        self, changes: dict[str, float], *, provisional: bool = False, label: str = "Adjust Base"
    ) -> bool:
        doc = self.document
        if not doc.is_populated:
            return False
        new_doc = doc.with_changes(base_image_effects=doc.base_image_effects.with_changes(**changes))
        if provisional:
            self._history.overwrite(new_doc)
            return True
        return self._commit(new_doc, label)

    # --- layer operations ---

    def add_layer(self, source: PixelSource, name: str) -> LayerId | None:
        """Center *source* on the canvas, fitted without upscaling, on top."""
        doc = self.document
        canvas = self.canvas_size
        scale = geometry.fit_scale(canvas, source.width, source.height, ADD_LAYER_FIT_FACTOR)
        if scale is None:
            return None
        layer = Layer(
            name=name,
            source=source,
            x=(canvas.width() - source.width * scale) / 2.0,
            y=(canvas.height() - source.height * scale) / 2.0,
            scale=scale,
        )
        self._commit(doc.with_layers((layer, *doc.layers)), "Add Layer", layer.id)
        return layer.id

    def duplicate(self, target: Selection) -> LayerId | None:
        doc = self.document
        if target == BASE_SELECTION:
            base = doc.base_image
            if base is None:
                return None
            copy = Layer(name=f"{doc.base_image_name} copy", source=base, x=0.0, y=0.0, scale=1.0)
            layers = [copy, *doc.layers]
        else:
            index = doc.index_of(target)
            if index < 0:
                return None
            copy = doc.layers[index].duplicate()
            layers = list(doc.layers)
            layers.insert(index, copy)
        self._commit(doc.with_layers(layers), "Duplicate Layer", copy.id)
        return copy.id

    def delete(self, layer_id: LayerId) -> bool:
        doc = self.document
        if doc.layer_by_id(layer_id) is None:
            return False
        selection = BASE_SELECTION if self._selection == layer_id else self._selection
        layers = [layer for layer in doc.layers if layer.id != layer_id]
        return self._commit(doc.with_layers(layers), "Delete Layer", selection)

    def reorder(self, dragged_id: LayerId, target_id: LayerId) -> bool:
        """Drop *dragged_id* onto *target_id*: it takes the target's slot."""
        if dragged_id == target_id:
            return False
        doc = self.document
        dragged_index = doc.index_of(dragged_id)
        target_index = doc.index_of(target_id)
        if dragged_index < 0 or target_index < 0:
            return False
        layers = list(doc.layers)
        dragged = layers.pop(dragged_index)
        layers.insert(target_index, dragged)
        return self._commit(doc.with_layers(layers), "Reorder Layers")

    def update_layer(
        self,
        layer_id: LayerId,
        changes: dict[str, Any],
        *,
        provisional: bool = False,
        label: str = "Update Layer",
    ) -> bool:
        doc = self.document
        layer = doc.layer_by_id(layer_id)
        if layer is None:
            return False
        new_doc = doc.with_layer(layer.with_changes(**changes))
        if provisional:
            self._history.overwrite(new_doc)
            return True
        return self._commit(new_doc, label)

    def rename(self, target: Selection, name: str, *, provisional: bool = False) -> bool:
        if target == BASE_SELECTION:
            doc = self.document
            if not doc.is_populated:
                return False
            new_doc = doc.with_changes(base_image_name=name)
            if provisional:
                self._history.overwrite(new_doc)
                return True
            return self._commit(new_doc, "Rename")
        return self.update_layer(target, {"name": name}, provisional=provisional, label="Rename")

    def replace_image(self, layer_id: LayerId, source: PixelSource, name: str) -> bool:
        """Swap the pixel source, keeping the rendered height, position and style."""
        layer = self.document.layer_by_id(layer_id)
        if layer is None:
            return False
        scale = geometry.preserve_height_scale(layer, source.height)
        return self.update_layer(
            layer_id,
            {"name": name, "source": source, "original_source": source, "scale": scale},
            label="Replace Layer",
        )

    def apply_crop(self, layer_id: LayerId, crop_rect: QRectF) -> bool:
        """Cut *layer_id* down to the canvas-space *crop_rect*.

        The layer gets a new standalone source holding the retained pixels at
        their rendered size, is moved to the crop origin and reset to scale 1.
        """
        layer = self.document.layer_by_id(layer_id)
        if layer is None or not geometry.is_valid_crop(crop_rect):
            return False
        mapped = geometry.crop_to_layer(layer, crop_rect)
        if mapped is None:
            return False
        canvas_rect, source_rect = mapped
        width = max(1, int(round(canvas_rect.width())))
        height = max(1, int(round(canvas_rect.height())))
        image = image_ops.extract_region(layer.source.image, source_rect, width, height)
        source = PixelSource(image, image_ops.encode_data_uri(image))
        return self.update_layer(
            layer_id,
            {
                "source": source,
                "original_source": source,
                "x": canvas_rect.x(),
                "y": canvas_rect.y(),
                "scale": 1.0,
            },
            label="Crop Layer",
        )

    def apply_edit_result(
        self, target: Selection, source: PixelSource, feather_percent: float
    ) -> bool:
        """Install an edited image returned by the remote edit service."""
        if not source.is_decoded:
            return False
        doc = self.document
        if target == BASE_SELECTION:
            if not doc.is_populated:
                return False
            return self._commit(doc.with_changes(base_image=source), "AI Edit Base Image")
        layer = doc.layer_by_id(target)
        if layer is None:
            return False
        feather = source.width * (feather_percent / 1000.0)
        return self.update_layer(
            layer.id,
            {
                "source": source,
                "original_source": source,
                "scale": geometry.preserve_height_scale(layer, source.height),
                "feather": feather,
                "feather_start": feather * AI_FEATHER_START_FACTOR,
            },
            label="AI Edit Layer",
        )

    # --- pending decodes ---

    def begin_decode(self, target: Selection | None = None) -> PendingDecode:
        """Register a decode whose result will be applied to *target*.

        ``None`` means the result creates something new (an added layer);
        such decodes only go stale when the base image is replaced.
        """
        token = next(_tokens)
        if target is not None:
            self._pending[target] = token
        expected: PixelSource | None = None
        if target == BASE_SELECTION:
            expected = self.document.base_image
        elif target is not None:
            layer = self.document.layer_by_id(target)
            expected = layer.source if layer is not None else None
        return PendingDecode(token, target, self._generation, expected)

    def is_current(self, pending: PendingDecode) -> bool:
        if pending.generation != self._generation:
            return False
        if pending.target is None:
            return True
        if self._pending.get(pending.target) != pending.token:
            return False
        if pending.target == BASE_SELECTION:
            return self.document.base_image is pending.expected_source
        layer = self.document.layer_by_id(pending.target)
        return layer is not None and layer.source is pending.expected_source

    def finish_decode(self, pending: PendingDecode) -> bool:
        """Consume *pending*; returns False (and logs) when it went stale."""
        current = self.is_current(pending)
        if self._pending.get(pending.target) == pending.token:
            del self._pending[pending.target]
        if not current:
            log.info("discarding stale decode %d for %r", pending.token, pending.target)
        return current

