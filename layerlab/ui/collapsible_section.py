"""CollapsibleSection — titled form section that folds away."""

from __future__ import annotations

from PyQt6.QtWidgets import QFormLayout, QPushButton, QVBoxLayout, QWidget


class CollapsibleSection(QWidget):
    """A flat header button over a QFormLayout content area."""

    def __init__(self, title: str, expanded: bool = True, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._title = title
        self._expanded = expanded

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self._header = QPushButton()
        self._header.setFlat(True)
        self._header.setStyleSheet(
            "QPushButton { text-align: left; font-weight: bold; padding: 4px; }"
        )
        self._header.clicked.connect(self.toggle)
        layout.addWidget(self._header)

        self._content = QWidget()
        self._form = QFormLayout(self._content)
        self._form.setContentsMargins(8, 4, 8, 4)
        self._form.setFieldGrowthPolicy(QFormLayout.FieldGrowthPolicy.ExpandingFieldsGrow)
        layout.addWidget(self._content)

        self._sync()

    @property
    def is_expanded(self) -> bool:
        return self._expanded

    def add_row(self, label: str, widget: QWidget) -> None:
        self._form.addRow(label, widget)

    def set_expanded(self, expanded: bool) -> None:
        self._expanded = expanded
        self._sync()

    def toggle(self) -> None:
        self.set_expanded(not self._expanded)

    def _sync(self) -> None:
        self._content.setVisible(self._expanded)
        prefix = "▾" if self._expanded else "▸"
        self._header.setText(f"{prefix} {self._title}")
