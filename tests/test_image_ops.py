"""Tests for pixel operations."""

import numpy as np
import pytest
from PyQt6.QtCore import QRectF
from PyQt6.QtGui import QColor, QImage
from PyQt6.QtWidgets import QApplication

from layerlab.core import image_ops
from layerlab.core.document import BlendMode


def _solid(rgba: tuple[int, int, int, int], w: int = 4, h: int = 4) -> np.ndarray:
    arr = np.zeros((h, w, 4), dtype=np.uint8)
    arr[...] = rgba
    return arr


def test_filter_chain_skips_identity_values() -> None:
    assert image_ops.build_filter_chain() == []
    assert image_ops.build_filter_chain(brightness=100, hue=0) == []


def test_filter_chain_order() -> None:
    chain = image_ops.build_filter_chain(blur=2, brightness=50, contrast=120, saturation=0, hue=30)
    assert [name for name, _ in chain] == ["blur", "brightness", "contrast", "saturate", "hue-rotate"]


def test_blur_padding() -> None:
    assert image_ops.blur_padding(0) == 0
    assert image_ops.blur_padding(2.5) == 8


def test_qimage_to_array_is_rgba(qapp: QApplication) -> None:
    img = QImage(2, 2, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(QColor(255, 0, 0))
    arr = image_ops.qimage_to_array(img)
    assert arr.shape == (2, 2, 4)
    assert arr[0, 0].tolist() == [255, 0, 0, 255]


def test_brightness_scales_color() -> None:
    out = image_ops.apply_filters_array(_solid((200, 100, 50, 255)), [("brightness", 50)])
    assert out[0, 0].tolist() == [100, 50, 25, 255]


def test_contrast_zero_is_mid_gray() -> None:
    out = image_ops.apply_filters_array(_solid((10, 200, 90, 255)), [("contrast", 0)])
    assert out[0, 0].tolist() == [128, 128, 128, 255]


def test_saturate_zero_desaturates_red() -> None:
    out = image_ops.apply_filters_array(_solid((255, 0, 0, 255)), [("saturate", 0)])
    assert out[0, 0].tolist() == [54, 54, 54, 255]


def test_identity_matrices() -> None:
    assert np.allclose(image_ops.saturate_matrix(1.0), np.eye(3), atol=1e-6)
    assert np.allclose(image_ops.hue_rotate_matrix(0.0), np.eye(3), atol=1e-6)


def test_color_terms_keep_transparent_pixels_transparent() -> None:
    out = image_ops.apply_filters_array(_solid((0, 0, 0, 0)), [("brightness", 200), ("hue-rotate", 90)])
    assert not out.any()


def test_color_terms_work_on_straight_color() -> None:
    # 50% alpha premultiplied white: brightness 50 halves the straight color
    out = image_ops.apply_filters_array(_solid((128, 128, 128, 128)), [("brightness", 50)])
    assert out[0, 0, 3] == 128
    assert abs(int(out[0, 0, 0]) - 64) <= 1


def test_blur_spreads_alpha() -> None:
    arr = np.zeros((21, 21, 4), dtype=np.uint8)
    arr[10, 10] = (255, 255, 255, 255)
    out = image_ops.apply_filters_array(arr, [("blur", 2)])
    assert out[10, 10, 3] < 255
    assert out[10, 12, 3] > 0


def test_non_separable_luminosity() -> None:
    dest = _solid((128, 128, 128, 255))
    src = _solid((200, 200, 200, 255))
    out = image_ops.blend_non_separable(dest, src, BlendMode.LUMINOSITY)
    assert out[0, 0].tolist() == [200, 200, 200, 255]


def test_non_separable_color_takes_backdrop_luminosity() -> None:
    dest = _solid((128, 128, 128, 255))
    src = _solid((200, 200, 200, 255))
    out = image_ops.blend_non_separable(dest, src, BlendMode.COLOR)
    assert out[0, 0].tolist() == [128, 128, 128, 255]


def test_non_separable_transparent_source_leaves_backdrop() -> None:
    dest = _solid((30, 60, 90, 255))
    src = _solid((0, 0, 0, 0))
    for mode in (BlendMode.HUE, BlendMode.SATURATION, BlendMode.COLOR, BlendMode.LUMINOSITY):
        out = image_ops.blend_non_separable(dest, src, mode)
        assert out[0, 0].tolist() == [30, 60, 90, 255]


def test_non_separable_over_transparent_backdrop_is_source() -> None:
    dest = _solid((0, 0, 0, 0))
    src = _solid((40, 80, 120, 255))
    out = image_ops.blend_non_separable(dest, src, BlendMode.HUE)
    assert out[0, 0].tolist() == [40, 80, 120, 255]


def test_blend_function_rejects_separable_modes() -> None:
    with pytest.raises(ValueError):
        image_ops.blend_function(BlendMode.MULTIPLY, np.zeros((1, 3)), np.zeros((1, 3)))


def test_rounded_rect_path_radius_is_clamped(qapp: QApplication) -> None:
    path = image_ops.rounded_rect_path(0, 0, 40, 20, 500)
    bounds = path.boundingRect()
    assert (bounds.width(), bounds.height()) == (40, 20)
    assert not path.contains(QRectF(0, 0, 1, 1).center())


def test_extract_region_exact_copy(qapp: QApplication) -> None:
    img = QImage(10, 10, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(QColor("blue"))
    img.setPixelColor(3, 4, QColor("red"))
    out = image_ops.extract_region(img, QRectF(3, 4, 5, 5), 5, 5)
    assert (out.width(), out.height()) == (5, 5)
    assert out.pixelColor(0, 0) == QColor("red")
    assert out.pixelColor(1, 1) == QColor("blue")


def test_extract_region_resamples(qapp: QApplication) -> None:
    img = QImage(10, 10, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(QColor("blue"))
    out = image_ops.extract_region(img, QRectF(0, 0, 10, 10), 20, 5)
    assert (out.width(), out.height()) == (20, 5)
    assert out.pixelColor(10, 2) == QColor("blue")


def test_encode_data_uri(qapp: QApplication) -> None:
    img = QImage(3, 3, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(QColor("green"))
    uri = image_ops.encode_data_uri(img)
    assert uri.startswith("data:image/png;base64,")
