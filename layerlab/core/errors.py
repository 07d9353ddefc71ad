"""Exception types surfaced to the user as notices.

Degenerate geometry and history no-ops are not exceptions: the geometry
helpers return ``None`` and :class:`~layerlab.core.history.HistoryStore`
returns ``None`` from ``undo``/``redo`` when there is nothing to do.
"""

from __future__ import annotations


class LayerLabError(Exception):
    """Base class for recoverable editor errors."""


class DecodeError(LayerLabError):
    """An image payload could not be decoded or converted."""


class RemoteEditError(LayerLabError):
    """The remote image-edit service failed; ``reason`` is user-facing."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
