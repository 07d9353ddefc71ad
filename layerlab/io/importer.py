"""Importer — turn image files into self-contained payloads and pixel sources."""

from __future__ import annotations

import base64
import binascii
import io
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from PyQt6.QtCore import QObject, QRunnable, pyqtSignal, pyqtSlot
from PyQt6.QtGui import QImage

from layerlab.config.constants import HEIC_SUFFIXES
from layerlab.core.document import PixelSource
from layerlab.core.errors import DecodeError

log = logging.getLogger(__name__)

_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
}


def make_data_uri(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def split_data_uri(data_uri: str) -> tuple[str, bytes]:
    """Return ``(mime, raw bytes)`` for a base64 data URI."""
    if not data_uri.startswith("data:") or "," not in data_uri:
        raise DecodeError("Not an image payload.")
    header, _, body = data_uri.partition(",")
    mime = header[5:].split(";", 1)[0] or "application/octet-stream"
    if ";base64" not in header:
        raise DecodeError("Image payload is not base64 encoded.")
    try:
        return mime, base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError("Image payload is corrupt.") from exc


def convert_to_png(data: bytes) -> bytes:
    """Re-encode an image Qt cannot read as PNG through Pillow."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            rgba = img.convert("RGBA")
    except Image.DecompressionBombError as exc:
        raise DecodeError("Image is too large to open.") from exc
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise DecodeError("Unsupported or corrupt image.") from exc
    out = io.BytesIO()
    rgba.save(out, format="PNG")
    return out.getvalue()


def load_payload(path: Path) -> tuple[str, str]:
    """Read *path* and return ``(data_uri, display_name)``.

    HEIC/HEIF files and anything else Qt has no reader for are converted to
    PNG first so the payload is always drawable.
    """
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise DecodeError(f"Could not read {path.name}: {exc.strerror or exc}") from exc
    suffix = path.suffix.lower()
    if suffix in HEIC_SUFFIXES or QImage.fromData(data).isNull():
        log.info("converting %s to PNG", path.name)
        return make_data_uri(convert_to_png(data), "image/png"), path.name
    return make_data_uri(data, _MIME_TYPES.get(suffix, "image/png")), path.name


def decode(data_uri: str) -> PixelSource:
    """Decode a data URI payload into a drawable :class:`PixelSource`."""
    _, data = split_data_uri(data_uri)
    image = QImage.fromData(data)
    if image.isNull():
        raise DecodeError("Unsupported or corrupt image.")
    return PixelSource(image.convertToFormat(QImage.Format.Format_ARGB32_Premultiplied), data_uri)


class _DecodeWorkerSignals(QObject):
    finished = pyqtSignal(int, object, str)
    failed = pyqtSignal(int, str)


class DecodeWorker(QRunnable):
    """Load and decode an image off the GUI thread.

    Give either a file *path* or an existing *data_uri*.  ``finished``
    carries ``(token, PixelSource, name)``; ``failed`` carries
    ``(token, message)``.
    """

    def __init__(
        self,
        token: int,
        *,
        path: Path | None = None,
        data_uri: str | None = None,
        name: str = "",
    ) -> None:
        super().__init__()
        self.token = token
        self.path = path
        self.data_uri = data_uri
        self.name = name
        self.signals = _DecodeWorkerSignals()

    @pyqtSlot()
    def run(self) -> None:
        try:
            if self.path is not None:
                uri, name = load_payload(self.path)
            elif self.data_uri is not None:
                uri, name = self.data_uri, self.name
            else:
                raise DecodeError("Nothing to decode.")
            source = decode(uri)
        except DecodeError as exc:
            log.warning("decode %d failed: %s", self.token, exc)
            self.signals.failed.emit(self.token, str(exc))
            return
        except Exception:
            log.exception("decode %d crashed", self.token)
            self.signals.failed.emit(self.token, "Unexpected error while decoding the image.")
            return
        self.signals.finished.emit(self.token, source, name)
