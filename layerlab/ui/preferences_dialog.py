"""PreferencesDialog — panel defaults and remote edit credentials."""

from __future__ import annotations

from PyQt6.QtWidgets import (
    QCheckBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QGroupBox,
    QLineEdit,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from layerlab.config.constants import AI_FEATHER_PERCENT_MAX
from layerlab.config.settings import AppSettings


class PreferencesDialog(QDialog):
    """Modal dialog; :meth:`apply` writes the edited values back to settings."""

    def __init__(self, settings: AppSettings, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._settings = settings
        self.setWindowTitle("Preferences")
        self.setMinimumWidth(380)

        layout = QVBoxLayout(self)

        panels_group = QGroupBox("Panels")
        panels_layout = QFormLayout()
        self._adjustments_cb = QCheckBox()
        self._adjustments_cb.setChecked(settings.default_adjustments_open)
        panels_layout.addRow("Adjustments open by default:", self._adjustments_cb)
        self._masking_cb = QCheckBox()
        self._masking_cb.setChecked(settings.default_masking_open)
        panels_layout.addRow("Masking open by default:", self._masking_cb)
        panels_group.setLayout(panels_layout)
        layout.addWidget(panels_group)

        ai_group = QGroupBox("AI Edit")
        ai_layout = QFormLayout()
        self._api_key_edit = QLineEdit(settings.api_key)
        self._api_key_edit.setEchoMode(QLineEdit.EchoMode.Password)
        ai_layout.addRow("API key:", self._api_key_edit)
        self._feather_spin = QSpinBox()
        self._feather_spin.setRange(0, AI_FEATHER_PERCENT_MAX)
        self._feather_spin.setSuffix(" %")
        self._feather_spin.setValue(settings.ai_feather_percent)
        ai_layout.addRow("Result feather:", self._feather_spin)
        ai_group.setLayout(ai_layout)
        layout.addWidget(ai_group)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def apply(self) -> None:
        """Copy the dialog values into the settings object and persist them."""
        self._settings.update(
            default_adjustments_open=self._adjustments_cb.isChecked(),
            default_masking_open=self._masking_cb.isChecked(),
            api_key=self._api_key_edit.text().strip(),
            ai_feather_percent=self._feather_spin.value(),
        )
        self._settings.save()
