"""Shared pytest fixtures."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from collections.abc import Callable  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from PyQt6.QtCore import QSettings  # noqa: E402
from PyQt6.QtGui import QColor, QImage  # noqa: E402
from PyQt6.QtWidgets import QApplication  # noqa: E402
from pytestqt.qtbot import QtBot  # noqa: E402

from layerlab.config.settings import AppSettings  # noqa: E402
from layerlab.core.document import PixelSource  # noqa: E402
from layerlab.core.layer_manager import LayerManager  # noqa: E402
from layerlab.main_window import MainWindow  # noqa: E402

SourceFactory = Callable[..., PixelSource]


def solid_image(width: int, height: int, color: QColor | str = "red") -> QImage:
    img = QImage(width, height, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(QColor(color))
    return img


@pytest.fixture()
def make_source(qapp: QApplication) -> SourceFactory:
    """Factory for opaque single-color pixel sources."""

    def _make(width: int = 40, height: int = 40, color: QColor | str = "red") -> PixelSource:
        return PixelSource(solid_image(width, height, color))

    return _make


@pytest.fixture()
def manager(qapp: QApplication) -> LayerManager:
    """A bare LayerManager with an empty document."""
    return LayerManager()


@pytest.fixture()
def based_manager(manager: LayerManager, make_source: SourceFactory) -> LayerManager:
    """LayerManager whose document has a white 200x200 base image."""
    manager.set_base_image(make_source(200, 200, "white"), "base.png")
    return manager


@pytest.fixture()
def settings(tmp_path: Path) -> AppSettings:
    qs = QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)
    return AppSettings(qs)


@pytest.fixture()
def main_window(qtbot: QtBot, settings: AppSettings) -> MainWindow:
    """Create a MainWindow instance managed by qtbot."""
    window = MainWindow(settings)
    qtbot.addWidget(window)
    return window
