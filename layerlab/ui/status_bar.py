"""LayerLabStatusBar — transient notices plus a busy indicator."""

from __future__ import annotations

from PyQt6.QtWidgets import QLabel, QStatusBar

NOTICE_TIMEOUT_MS = 3000


class LayerLabStatusBar(QStatusBar):
    def __init__(self) -> None:
        super().__init__()
        self._busy_label = QLabel("")
        self._size_label = QLabel("")
        self.addPermanentWidget(self._busy_label)
        self.addPermanentWidget(self._size_label)

    def show_notice(self, text: str) -> None:
        self.showMessage(text, NOTICE_TIMEOUT_MS)

    def set_busy(self, busy: bool) -> None:
        self._busy_label.setText("Generating…" if busy else "")

    def set_canvas_size(self, width: int, height: int) -> None:
        self._size_label.setText(f"{width} × {height}")
