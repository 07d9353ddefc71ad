"""Pixel operations used by the compositor.

Arrays are ``(height, width, 4)`` uint8 in premultiplied RGBA order, which
matches ``QImage.Format_RGBA8888_Premultiplied`` byte-for-byte.
"""

from __future__ import annotations

import base64
import math

import numpy as np
from PIL import Image, ImageFilter
from PyQt6.QtCore import QBuffer, QByteArray, QIODevice, QRect, QRectF
from PyQt6.QtGui import QImage, QPainter, QPainterPath

from layerlab.core.document import BlendMode

FilterTerm = tuple[str, float]

# Rec. 709 luma weights used by the CSS saturate/hue-rotate matrices
_LUMA = (0.213, 0.715, 0.072)
# Luminosity weights of the non-separable blend modes
_BLEND_LUM = np.array([0.3, 0.59, 0.11], dtype=np.float32)


# --- QImage <-> numpy ---


def qimage_to_array(image: QImage) -> np.ndarray:
    q = image.convertToFormat(QImage.Format.Format_RGBA8888_Premultiplied)
    w, h = q.width(), q.height()
    ptr = q.constBits()
    ptr.setsize(h * q.bytesPerLine())
    buf = np.frombuffer(ptr, dtype=np.uint8).reshape((h, q.bytesPerLine()))
    return buf[:, : w * 4].reshape((h, w, 4)).copy()


def array_to_qimage(arr: np.ndarray) -> QImage:
    u8 = np.ascontiguousarray(arr, dtype=np.uint8)
    h, w = u8.shape[:2]
    return QImage(u8.data, w, h, w * 4, QImage.Format.Format_RGBA8888_Premultiplied).copy()


def new_surface(width: int, height: int) -> QImage:
    """Transparent premultiplied ARGB32 image."""
    image = QImage(max(1, width), max(1, height), QImage.Format.Format_ARGB32_Premultiplied)
    image.fill(0)
    return image


# --- filters ---


def build_filter_chain(
    blur: float = 0.0,
    brightness: float = 100.0,
    contrast: float = 100.0,
    saturation: float = 100.0,
    hue: float = 0.0,
) -> list[FilterTerm]:
    """Ordered filter terms, omitting those at their identity value."""
    chain: list[FilterTerm] = []
    if blur > 0:
        chain.append(("blur", float(blur)))
    if brightness != 100:
        chain.append(("brightness", float(brightness)))
    if contrast != 100:
        chain.append(("contrast", float(contrast)))
    if saturation != 100:
        chain.append(("saturate", float(saturation)))
    if hue != 0:
        chain.append(("hue-rotate", float(hue)))
    return chain


def blur_padding(blur: float) -> int:
    """Margin a blurred surface needs so the falloff is not cut off."""
    if blur <= 0:
        return 0
    return int(math.ceil(blur * 3))


def gaussian_blur(arr: np.ndarray, radius: float) -> np.ndarray:
    """Blur each channel independently; *radius* is the standard deviation."""
    if radius <= 0:
        return arr
    blur = ImageFilter.GaussianBlur(radius=radius)
    channels = [
        np.asarray(Image.fromarray(np.ascontiguousarray(arr[..., c])).filter(blur))
        for c in range(arr.shape[2])
    ]
    return np.stack(channels, axis=-1)


def saturate_matrix(amount: float) -> np.ndarray:
    s = amount
    r, g, b = _LUMA
    return np.array(
        [
            [r + (1 - r) * s, g - g * s, b - b * s],
            [r - r * s, g + (1 - g) * s, b - b * s],
            [r - r * s, g - g * s, b + (1 - b) * s],
        ],
        dtype=np.float32,
    )


def hue_rotate_matrix(degrees: float) -> np.ndarray:
    rad = math.radians(degrees)
    c, s = math.cos(rad), math.sin(rad)
    return np.array(
        [
            [0.213 + c * 0.787 - s * 0.213, 0.715 - c * 0.715 - s * 0.715, 0.072 - c * 0.072 + s * 0.928],
            [0.213 - c * 0.213 + s * 0.143, 0.715 + c * 0.285 + s * 0.140, 0.072 - c * 0.072 - s * 0.283],
            [0.213 - c * 0.213 - s * 0.787, 0.715 - c * 0.715 + s * 0.715, 0.072 + c * 0.928 + s * 0.072],
        ],
        dtype=np.float32,
    )


def _apply_color_term(rgb: np.ndarray, name: str, value: float) -> np.ndarray:
    amount = value / 100.0
    if name == "brightness":
        out = rgb * amount
    elif name == "contrast":
        out = (rgb - 0.5) * amount + 0.5
    elif name == "saturate":
        out = rgb @ saturate_matrix(amount).T
    elif name == "hue-rotate":
        out = rgb @ hue_rotate_matrix(value).T
    else:
        raise ValueError(f"unknown filter {name!r}")
    return np.clip(out, 0.0, 1.0)


def apply_filters_array(arr: np.ndarray, chain: list[FilterTerm]) -> np.ndarray:
    """Apply *chain* in order to a premultiplied RGBA array."""
    if not chain:
        return arr
    out = arr
    color_terms: list[FilterTerm] = []
    for name, value in chain:
        if name == "blur":
            out = gaussian_blur(out, value)
        else:
            color_terms.append((name, value))
    if not color_terms:
        return out

    # Color matrices operate on straight (unpremultiplied) color
    alpha = out[..., 3:4].astype(np.float32) / 255.0
    rgb = out[..., :3].astype(np.float32) / 255.0
    safe = np.where(alpha > 0, alpha, 1.0)
    rgb = np.where(alpha > 0, np.clip(rgb / safe, 0.0, 1.0), 0.0)
    for name, value in color_terms:
        rgb = _apply_color_term(rgb, name, value)
    result = np.empty_like(out)
    result[..., :3] = np.rint(rgb * alpha * 255.0).astype(np.uint8)
    result[..., 3] = out[..., 3]
    return result


def apply_filters(image: QImage, chain: list[FilterTerm]) -> QImage:
    """Return *image* with the filter chain applied (same size)."""
    if not chain:
        return image
    return array_to_qimage(apply_filters_array(qimage_to_array(image), chain))


# --- non-separable blend modes ---


def _lum(c: np.ndarray) -> np.ndarray:
    return (c @ _BLEND_LUM)[..., None]


def _clip_color(c: np.ndarray) -> np.ndarray:
    lum = _lum(c)
    n = c.min(axis=-1, keepdims=True)
    x = c.max(axis=-1, keepdims=True)
    low = np.where(lum - n != 0, lum - n, 1.0)
    c = np.where(n < 0, lum + (c - lum) * lum / low, c)
    high = np.where(x - lum != 0, x - lum, 1.0)
    c = np.where(x > 1, lum + (c - lum) * (1 - lum) / high, c)
    return c


def _set_lum(c: np.ndarray, lum: np.ndarray) -> np.ndarray:
    return _clip_color(c + (lum - _lum(c)))


def _sat(c: np.ndarray) -> np.ndarray:
    return c.max(axis=-1, keepdims=True) - c.min(axis=-1, keepdims=True)


def _set_sat(c: np.ndarray, sat: np.ndarray) -> np.ndarray:
    cmin = c.min(axis=-1, keepdims=True)
    rng = _sat(c)
    safe = np.where(rng > 0, rng, 1.0)
    return np.where(rng > 0, (c - cmin) * sat / safe, 0.0)


def blend_function(mode: BlendMode, cb: np.ndarray, cs: np.ndarray) -> np.ndarray:
    """B(Cb, Cs) for the non-separable modes on straight RGB in [0, 1]."""
    if mode is BlendMode.HUE:
        return _set_lum(_set_sat(cs, _sat(cb)), _lum(cb))
    if mode is BlendMode.SATURATION:
        return _set_lum(_set_sat(cb, _sat(cs)), _lum(cb))
    if mode is BlendMode.COLOR:
        return _set_lum(cs, _lum(cb))
    if mode is BlendMode.LUMINOSITY:
        return _set_lum(cb, _lum(cs))
    raise ValueError(f"{mode.value} is not a non-separable blend mode")


def blend_non_separable(dest: np.ndarray, src: np.ndarray, mode: BlendMode) -> np.ndarray:
    """Compose premultiplied *src* over *dest* with a non-separable *mode*."""
    ab = dest[..., 3:4].astype(np.float32) / 255.0
    a_s = src[..., 3:4].astype(np.float32) / 255.0
    cb_p = dest[..., :3].astype(np.float32) / 255.0
    cs_p = src[..., :3].astype(np.float32) / 255.0
    cb = np.where(ab > 0, cb_p / np.where(ab > 0, ab, 1.0), 0.0)
    cs = np.where(a_s > 0, cs_p / np.where(a_s > 0, a_s, 1.0), 0.0)

    mixed = np.clip(blend_function(mode, cb, cs), 0.0, 1.0)
    co = cs_p * (1 - ab) + cb_p * (1 - a_s) + a_s * ab * mixed
    ao = a_s + ab * (1 - a_s)

    out = np.empty_like(dest)
    out[..., :3] = np.rint(np.clip(co, 0.0, 1.0) * 255.0).astype(np.uint8)
    out[..., 3:4] = np.rint(np.clip(ao, 0.0, 1.0) * 255.0).astype(np.uint8)
    return out


# --- shapes ---


def rounded_rect_path(x: float, y: float, w: float, h: float, radius: float) -> QPainterPath:
    """Rounded rectangle; the radius is clamped to half the shorter side."""
    r = max(0.0, min(radius, w / 2.0, h / 2.0))
    path = QPainterPath()
    if r <= 0:
        path.addRect(QRectF(x, y, w, h))
    else:
        path.addRoundedRect(QRectF(x, y, w, h), r, r)
    return path


def extract_region(image: QImage, source_rect: QRectF, width: int, height: int) -> QImage:
    """Copy *source_rect* of *image* into a new ``width`` x ``height`` image."""
    exact = QRect(
        round(source_rect.x()),
        round(source_rect.y()),
        round(source_rect.width()),
        round(source_rect.height()),
    )
    if (
        QRectF(exact) == source_rect
        and exact.width() == width
        and exact.height() == height
    ):
        return image.copy(exact).convertToFormat(QImage.Format.Format_ARGB32_Premultiplied)

    out = new_surface(width, height)
    painter = QPainter(out)
    painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
    painter.drawImage(QRectF(0, 0, width, height), image, source_rect)
    painter.end()
    return out


def encode_png(image: QImage) -> bytes:
    data = QByteArray()
    buf = QBuffer(data)
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buf, "PNG")
    buf.close()
    return bytes(data.data())


def encode_data_uri(image: QImage) -> str:
    """Self-contained ``data:image/png;base64,...`` payload for *image*."""
    return "data:image/png;base64," + base64.b64encode(encode_png(image)).decode("ascii")
