"""PropertyPanel — style controls for the selected layer or the base image."""

from __future__ import annotations

from typing import TYPE_CHECKING

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QComboBox,
    QDockWidget,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QScrollArea,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from layerlab.config.constants import (
    BLUR_RANGE,
    BRIGHTNESS_RANGE,
    CONTRAST_RANGE,
    CORNER_RADIUS_RANGE,
    FEATHER_RANGE,
    HUE_RANGE,
    SATURATION_RANGE,
)
from layerlab.core.document import BlendMode
from layerlab.ui.collapsible_section import CollapsibleSection

if TYPE_CHECKING:
    from layerlab.config.settings import AppSettings
    from layerlab.core.layer_manager import LayerManager

# (attribute, label, range, unit)
_ADJUSTMENTS = [
    ("blur", "Blur", BLUR_RANGE, "px"),
    ("brightness", "Brightness", BRIGHTNESS_RANGE, "%"),
    ("contrast", "Contrast", CONTRAST_RANGE, "%"),
    ("saturation", "Saturation", SATURATION_RANGE, "%"),
    ("hue", "Hue", HUE_RANGE, "°"),
]
_MASKING = [
    ("feather", "Feather", FEATHER_RANGE, "px"),
    ("feather_start", "Feather Start", (0, 250, 0), "px"),
    ("corner_radius", "Corner Radius", CORNER_RADIUS_RANGE, "px"),
]


class _SliderRow(QWidget):
    def __init__(self, value_range: tuple[int, int, int], unit: str) -> None:
        super().__init__()
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self.slider = QSlider(Qt.Orientation.Horizontal)
        self.slider.setRange(value_range[0], value_range[1])
        self.slider.setValue(value_range[2])
        self.value_label = QLabel()
        self.value_label.setMinimumWidth(48)
        self._unit = unit
        self.slider.valueChanged.connect(self._sync_label)
        layout.addWidget(self.slider)
        layout.addWidget(self.value_label)
        self._sync_label(self.slider.value())

    def _sync_label(self, value: int) -> None:
        self.value_label.setText(f"{value}{self._unit}")


class PropertyPanel(QDockWidget):
    """Sliders stage provisional edits while dragged and commit once on release."""

    ai_edit_requested = pyqtSignal(str)

    def __init__(
        self,
        manager: LayerManager,
        settings: AppSettings | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__("Properties", parent)
        self._manager = manager
        self._updating = False
        self._rows: dict[str, _SliderRow] = {}
        self._labels: dict[str, str] = {}

        self.setAllowedAreas(
            Qt.DockWidgetArea.LeftDockWidgetArea | Qt.DockWidgetArea.RightDockWidgetArea
        )

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QScrollArea.Shape.NoFrame)
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(2)

        adjustments_open = settings.default_adjustments_open if settings is not None else False
        masking_open = settings.default_masking_open if settings is not None else True

        self._blend_section = CollapsibleSection("Blending")
        self._blend_combo = QComboBox()
        for mode in BlendMode:
            self._blend_combo.addItem(mode.label, mode.value)
        self._blend_combo.currentIndexChanged.connect(self._on_blend_changed)
        self._blend_section.add_row("Mode:", self._blend_combo)
        layout.addWidget(self._blend_section)

        self._adjustments = CollapsibleSection("Adjustments", adjustments_open)
        for attr, label, value_range, unit in _ADJUSTMENTS:
            self._add_slider(self._adjustments, attr, label, value_range, unit)
        layout.addWidget(self._adjustments)

        self._masking = CollapsibleSection("Masking", masking_open)
        for attr, label, value_range, unit in _MASKING:
            self._add_slider(self._masking, attr, label, value_range, unit)
        layout.addWidget(self._masking)

        self._ai_section = CollapsibleSection("AI Edit")
        self._prompt_edit = QLineEdit()
        self._prompt_edit.setPlaceholderText("Describe the change…")
        self._ai_button = QPushButton("Generate")
        self._ai_button.clicked.connect(self._on_ai_clicked)
        self._prompt_edit.returnPressed.connect(self._on_ai_clicked)
        self._ai_section.add_row("Prompt:", self._prompt_edit)
        self._ai_section.add_row("", self._ai_button)
        layout.addWidget(self._ai_section)

        layout.addStretch()
        scroll.setWidget(container)
        self.setWidget(scroll)

        manager.document_changed.connect(self.refresh)
        manager.selection_changed.connect(self.refresh)
        manager.busy_changed.connect(self._on_busy_changed)
        self.refresh()

    @property
    def prompt(self) -> str:
        return self._prompt_edit.text()

    def slider(self, attr: str) -> QSlider:
        return self._rows[attr].slider

    def _add_slider(
        self,
        section: CollapsibleSection,
        attr: str,
        label: str,
        value_range: tuple[int, int, int],
        unit: str,
    ) -> None:
        row = _SliderRow(value_range, unit)
        row.slider.valueChanged.connect(lambda value, a=attr: self._on_slider_changed(a, value))
        row.slider.sliderReleased.connect(lambda a=attr: self._on_slider_released(a))
        self._rows[attr] = row
        self._labels[attr] = label
        section.add_row(f"{label}:", row)

    # --- refresh from the document ---

    def refresh(self, *_args: object) -> None:
        self._updating = True
        try:
            layer = self._manager.selected_layer
            base = self._manager.is_base_selected
            self.setEnabled(layer is not None or base)
            self._blend_section.setVisible(layer is not None)
            self._masking.setVisible(layer is not None)
            if layer is not None:
                values = {attr: getattr(layer, attr) for attr in self._rows}
                self._rows["feather_start"].slider.setMaximum(
                    max(0, int(min(layer.width, layer.height) / 2))
                )
                index = self._blend_combo.findData(layer.blend_mode.value)
                self._blend_combo.setCurrentIndex(max(0, index))
            elif base:
                fx = self._manager.document.base_image_effects
                values = {attr: getattr(fx, attr) for attr, *_ in _ADJUSTMENTS}
            else:
                values = {}
            for attr, value in values.items():
                self._rows[attr].slider.setValue(int(round(value)))
        finally:
            self._updating = False

    # --- edits ---

    def _apply(self, attr: str, value: float, provisional: bool) -> None:
        label = f"Adjust {self._labels[attr]}"
        if self._manager.is_base_selected:
            self._manager.update_base_effects({attr: value}, provisional=provisional, label=label)
            return
        layer = self._manager.selected_layer
        if layer is not None:
            self._manager.update_layer(layer.id, {attr: value}, provisional=provisional, label=label)

    def _on_slider_changed(self, attr: str, value: int) -> None:
        if self._updating:
            return
        # Keyboard and wheel changes have no release, so they commit at once
        self._apply(attr, float(value), provisional=self._rows[attr].slider.isSliderDown())

    def _on_slider_released(self, attr: str) -> None:
        if not self._updating:
            self._manager.finish_adjustment(f"Adjust {self._labels[attr]}")

    def _on_blend_changed(self, index: int) -> None:
        if self._updating:
            return
        layer = self._manager.selected_layer
        data = self._blend_combo.itemData(index)
        if layer is not None and data is not None:
            mode = BlendMode(data)
            self._manager.update_layer(layer.id, {"blend_mode": mode}, label="Change Blend Mode")

    def _on_ai_clicked(self) -> None:
        self.ai_edit_requested.emit(self._prompt_edit.text())

    def _on_busy_changed(self, busy: bool) -> None:
        self._ai_button.setEnabled(not busy)
        self._ai_button.setText("Generating…" if busy else "Generate")
