"""Tests for image loading and decoding."""

from pathlib import Path

import pytest
from PIL import Image
from PyQt6.QtGui import QColor, QImage
from PyQt6.QtWidgets import QApplication

from layerlab.core import image_ops
from layerlab.core.errors import DecodeError
from layerlab.io import importer
from layerlab.io.importer import DecodeWorker


def _png(path: Path, w: int = 12, h: int = 8) -> Path:
    img = QImage(w, h, QImage.Format.Format_ARGB32)
    img.fill(QColor("orange"))
    assert img.save(str(path), "PNG")
    return path


def test_load_payload_png(qapp: QApplication, tmp_path: Path) -> None:
    uri, name = importer.load_payload(_png(tmp_path / "photo.png"))
    assert uri.startswith("data:image/png;base64,")
    assert name == "photo.png"


def test_heic_suffix_is_converted_to_png(qapp: QApplication, tmp_path: Path) -> None:
    src = _png(tmp_path / "tmp.png")
    heic = tmp_path / "phone.heic"
    heic.write_bytes(src.read_bytes())
    uri, name = importer.load_payload(heic)
    assert uri.startswith("data:image/png;base64,")
    assert name == "phone.heic"
    assert importer.decode(uri).width == 12


def test_load_payload_rejects_garbage(qapp: QApplication, tmp_path: Path) -> None:
    bad = tmp_path / "notes.png"
    bad.write_bytes(b"this is not an image")
    with pytest.raises(DecodeError):
        importer.load_payload(bad)


def test_load_payload_missing_file(qapp: QApplication, tmp_path: Path) -> None:
    with pytest.raises(DecodeError):
        importer.load_payload(tmp_path / "missing.png")


def test_decode_round_trips_dimensions(qapp: QApplication) -> None:
    img = QImage(7, 5, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(QColor("purple"))
    uri = image_ops.encode_data_uri(img)
    source = importer.decode(uri)
    assert (source.width, source.height) == (7, 5)
    assert source.data_uri == uri
    assert source.image.format() == QImage.Format.Format_ARGB32_Premultiplied


@pytest.mark.parametrize(
    "uri",
    [
        "not a data uri",
        "data:image/png,rawtext",
        "data:image/png;base64,@@@@",
        "data:image/png;base64,aGVsbG8=",
    ],
)
def test_decode_errors(qapp: QApplication, uri: str) -> None:
    with pytest.raises(DecodeError):
        importer.decode(uri)


def test_decode_worker_success(qapp: QApplication, tmp_path: Path) -> None:
    results: list[tuple] = []
    worker = DecodeWorker(7, path=_png(tmp_path / "a.png"))
    worker.signals.finished.connect(lambda *args: results.append(args))
    worker.run()
    token, source, name = results[0]
    assert token == 7
    assert source.width == 12
    assert name == "a.png"


def test_decode_worker_failure(qapp: QApplication) -> None:
    failures: list[tuple] = []
    worker = DecodeWorker(3, data_uri="data:image/png;base64,aGVsbG8=")
    worker.signals.failed.connect(lambda *args: failures.append(args))
    worker.run()
    assert failures and failures[0][0] == 3
    assert "corrupt" in failures[0][1]


def test_oversized_image_is_rejected(
    qapp: QApplication, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    huge = tmp_path / "huge.heic"
    huge.write_bytes(_png(tmp_path / "tmp.png").read_bytes())
    with pytest.raises(DecodeError, match="too large"):
        importer.load_payload(huge)

    failures: list[tuple] = []
    worker = DecodeWorker(4, path=huge)
    worker.signals.failed.connect(lambda *args: failures.append(args))
    worker.run()
    assert failures == [(4, "Image is too large to open.")]


def test_decode_worker_reports_unexpected_errors(
    qapp: QApplication, monkeypatch: pytest.MonkeyPatch
) -> None:
    def boom(uri: str) -> None:
        raise RuntimeError("unexpected")

    monkeypatch.setattr(importer, "decode", boom)
    failures: list[tuple] = []
    worker = DecodeWorker(5, data_uri="data:image/png;base64,QUJD")
    worker.signals.failed.connect(lambda *args: failures.append(args))
    worker.run()
    assert failures == [(5, "Unexpected error while decoding the image.")]
