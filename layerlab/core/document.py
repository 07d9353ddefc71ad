"""Document data model — immutable snapshots stored in the history.

A :class:`Document` is never mutated in place.  Every edit builds a new
snapshot (``dataclasses.replace``) and hands it to the
:class:`~layerlab.core.history.HistoryStore`.  Pixel data lives in
:class:`PixelSource` handles which compare by identity, so structural
equality of two snapshots never touches pixel content.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Union

from PyQt6.QtCore import QRectF
from PyQt6.QtGui import QImage, QPainter

from layerlab.config.constants import BASE_SELECTION, DEFAULT_BASE_NAME

LayerId = int
Selection = Union[LayerId, str]

_layer_ids = itertools.count(1)


def new_layer_id() -> LayerId:
    """Return a process-wide unique layer id (monotonic counter)."""
    return next(_layer_ids)


class BlendMode(str, Enum):
    """Blend modes, named after the standard 2D compositing operators."""

    NORMAL = "normal"
    MULTIPLY = "multiply"
    SCREEN = "screen"
    OVERLAY = "overlay"
    DARKEN = "darken"
    LIGHTEN = "lighten"
    COLOR_DODGE = "color-dodge"
    COLOR_BURN = "color-burn"
    HARD_LIGHT = "hard-light"
    SOFT_LIGHT = "soft-light"
    DIFFERENCE = "difference"
    EXCLUSION = "exclusion"
    HUE = "hue"
    SATURATION = "saturation"
    COLOR = "color"
    LUMINOSITY = "luminosity"

    @property
    def is_non_separable(self) -> bool:
        """True for the HSL modes QPainter cannot compose natively."""
        return self in _NON_SEPARABLE

    @property
    def qt_mode(self) -> QPainter.CompositionMode:
        """QPainter composition mode for separable modes.

        Non-separable modes are composed with source-over here; the
        compositor blends them itself.
        """
        return _QT_MODES.get(self, QPainter.CompositionMode.CompositionMode_SourceOver)

    @property
    def label(self) -> str:
        return self.value.replace("-", " ").title()


_NON_SEPARABLE = frozenset(
    {BlendMode.HUE, BlendMode.SATURATION, BlendMode.COLOR, BlendMode.LUMINOSITY}
)

_QT_MODES: dict[BlendMode, QPainter.CompositionMode] = {
    BlendMode.NORMAL: QPainter.CompositionMode.CompositionMode_SourceOver,
    BlendMode.MULTIPLY: QPainter.CompositionMode.CompositionMode_Multiply,
    BlendMode.SCREEN: QPainter.CompositionMode.CompositionMode_Screen,
    BlendMode.OVERLAY: QPainter.CompositionMode.CompositionMode_Overlay,
    BlendMode.DARKEN: QPainter.CompositionMode.CompositionMode_Darken,
    BlendMode.LIGHTEN: QPainter.CompositionMode.CompositionMode_Lighten,
    BlendMode.COLOR_DODGE: QPainter.CompositionMode.CompositionMode_ColorDodge,
    BlendMode.COLOR_BURN: QPainter.CompositionMode.CompositionMode_ColorBurn,
    BlendMode.HARD_LIGHT: QPainter.CompositionMode.CompositionMode_HardLight,
    BlendMode.SOFT_LIGHT: QPainter.CompositionMode.CompositionMode_SoftLight,
    BlendMode.DIFFERENCE: QPainter.CompositionMode.CompositionMode_Difference,
    BlendMode.EXCLUSION: QPainter.CompositionMode.CompositionMode_Exclusion,
}


@dataclass(frozen=True, eq=False)
class PixelSource:
    """A decoded image plus the self-contained payload it was decoded from.

    Equality and hashing are by identity: two handles are "the same image"
    only if they are the same object.
    """

    image: QImage
    data_uri: str = ""

    @property
    def width(self) -> int:
        return 0 if self.image.isNull() else self.image.width()

    @property
    def height(self) -> int:
        return 0 if self.image.isNull() else self.image.height()

    @property
    def is_decoded(self) -> bool:
        return not self.image.isNull() and self.width > 0 and self.height > 0


@dataclass(frozen=True)
class BaseEffects:
    """Filter settings applied to the base image."""

    blur: float = 0.0
    brightness: float = 100.0
    contrast: float = 100.0
    saturation: float = 100.0
    hue: float = 0.0

    def with_changes(self, **changes: float) -> BaseEffects:
        return replace(self, **changes)


@dataclass(frozen=True)
class Layer:
    """One image layer.  ``x``/``y`` are the top-left in base-image pixels."""

    name: str
    source: PixelSource
    id: LayerId = field(default_factory=new_layer_id)
    original_source: PixelSource | None = None
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    blur: float = 0.0
    feather: float = 0.0
    feather_start: float = 0.0
    corner_radius: float = 0.0
    blend_mode: BlendMode = BlendMode.NORMAL
    brightness: float = 100.0
    contrast: float = 100.0
    saturation: float = 100.0
    hue: float = 0.0

    def __post_init__(self) -> None:
        if self.scale <= 0:
            raise ValueError(f"layer scale must be positive, got {self.scale}")
        if self.original_source is None:
            object.__setattr__(self, "original_source", self.source)

    # --- derived geometry ---

    @property
    def image_src(self) -> str:
        return self.source.data_uri

    @property
    def width(self) -> float:
        return self.source.width * self.scale

    @property
    def height(self) -> float:
        return self.source.height * self.scale

    @property
    def rect(self) -> QRectF:
        return QRectF(self.x, self.y, self.width, self.height)

    @property
    def effective_feather_start(self) -> float:
        """Feather inset clamped to half the shorter rendered side."""
        if self.feather <= 0:
            return 0.0
        limit = min(self.width, self.height) / 2.0
        return max(0.0, min(self.feather_start, limit))

    def with_changes(self, **changes: object) -> Layer:
        return replace(self, **changes)  # type: ignore[arg-type]

    def duplicate(self) -> Layer:
        """Return a copy with a fresh id and " copy" appended to the name."""
        return replace(self, id=new_layer_id(), name=f"{self.name} copy")


@dataclass(frozen=True)
class Document:
    """A versioned snapshot: the base image, its effects and the layer stack.

    ``layers[0]`` is the topmost layer; rendering walks the list in reverse.
    """

    base_image: PixelSource | None = None
    base_image_name: str = DEFAULT_BASE_NAME
    base_image_effects: BaseEffects = field(default_factory=BaseEffects)
    layers: tuple[Layer, ...] = ()

    @property
    def is_populated(self) -> bool:
        return self.base_image is not None

    @property
    def layer_ids(self) -> list[LayerId]:
        return [layer.id for layer in self.layers]

    def layer_by_id(self, layer_id: Selection | None) -> Layer | None:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def index_of(self, layer_id: Selection | None) -> int:
        for i, layer in enumerate(self.layers):
            if layer.id == layer_id:
                return i
        return -1

    def has_selection(self, selection: Selection | None) -> bool:
        if selection == BASE_SELECTION:
            return self.is_populated
        return self.layer_by_id(selection) is not None

    def with_layers(self, layers: list[Layer] | tuple[Layer, ...]) -> Document:
        return replace(self, layers=tuple(layers))

    def with_layer(self, layer: Layer) -> Document:
        """Return a snapshot with the layer of the same id swapped for *layer*."""
        return self.with_layers(
            [layer if existing.id == layer.id else existing for existing in self.layers]
        )

    def with_changes(self, **changes: object) -> Document:
        return replace(self, **changes)  # type: ignore[arg-type]
