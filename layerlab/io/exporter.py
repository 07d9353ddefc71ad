"""Exporter — write the flattened composition or a single layer as PNG."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from PyQt6.QtGui import QImage

from layerlab.config.constants import BASE_SELECTION
from layerlab.core.render_engine import RenderEngine

if TYPE_CHECKING:
    from layerlab.core.document import Document, Selection

log = logging.getLogger(__name__)


def _save(image: QImage | None, path: Path) -> bool:
    if image is None:
        return False
    ok = image.save(str(path), "PNG")
    if ok:
        log.info("exported %dx%d to %s", image.width(), image.height(), path)
    else:
        log.warning("could not write %s", path)
    return ok


def export_composition(document: Document, path: Path) -> bool:
    """Export the flattened composite without the interaction overlay."""
    return _save(RenderEngine(document).render_composite(), path)


def export_layer(document: Document, selection: Selection, path: Path) -> bool:
    """Export one layer with its effects, or the raw base image."""
    engine = RenderEngine(document)
    if selection == BASE_SELECTION:
        return _save(engine.render_base(), path)
    layer = document.layer_by_id(selection)
    if layer is None:
        return False
    return _save(engine.render_layer(layer), path)
