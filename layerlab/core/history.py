"""HistoryStore — linear undo/redo log of immutable document snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from PyQt6.QtCore import QObject, pyqtSignal

from layerlab.config.constants import UNDO_LIMIT

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class HistoryEntry(Generic[T]):
    """One committed snapshot.

    ``context`` is opaque to the store; the layer manager keeps the
    selection that was active when the entry was committed there.
    """

    snapshot: T
    label: str
    context: Any = None


class HistoryStore(QObject):
    """Ordered list of :class:`HistoryEntry` objects with a cursor.

    Continuous gestures use a two-phase protocol.  :meth:`overwrite` stages a
    provisional snapshot on top of the entry at the cursor without touching
    the entry itself; :meth:`commit` then compares against the *committed*
    snapshot and appends one new entry.  Any number of overwrites followed by
    one commit therefore adds exactly one entry, and undoing it returns to the
    state before the gesture began.

    Signals
    -------
    changed()
        Emitted after any commit/overwrite/discard/undo/redo that alters
        :attr:`current`.
    can_undo_changed(bool)
    can_redo_changed(bool)
    """

    changed = pyqtSignal()
    can_undo_changed = pyqtSignal(bool)
    can_redo_changed = pyqtSignal(bool)

    def __init__(
        self,
        initial: T,
        label: str = "Initial",
        parent: QObject | None = None,
        limit: int = UNDO_LIMIT,
        context: Any = None,
    ) -> None:
        super().__init__(parent)
        self._entries: list[HistoryEntry[T]] = [HistoryEntry(initial, label, context)]
        self._index: int = 0
        self._staged: T | None = None
        self._has_staged = False
        self._limit = limit

    # --- queries ---

    @property
    def current(self) -> T:
        """The latest snapshot, including any staged provisional state."""
        if self._has_staged:
            return self._staged  # type: ignore[return-value]
        return self._entries[self._index].snapshot

    @property
    def committed(self) -> T:
        """The snapshot of the entry at the cursor, ignoring staged state."""
        return self._entries[self._index].snapshot

    @property
    def current_entry(self) -> HistoryEntry[T]:
        return self._entries[self._index]

    @property
    def has_staged(self) -> bool:
        return self._has_staged

    @property
    def index(self) -> int:
        return self._index

    @property
    def count(self) -> int:
        return len(self._entries)

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    @property
    def undo_text(self) -> str:
        if self.can_undo:
            return self._entries[self._index].label
        return ""

    @property
    def redo_text(self) -> str:
        if self.can_redo:
            return self._entries[self._index + 1].label
        return ""

    @property
    def labels(self) -> list[str]:
        return [entry.label for entry in self._entries]

    # --- mutators ---

    def commit(self, snapshot: T, label: str, context: Any = None) -> bool:
        """Append *snapshot* as a new entry after the cursor.

        Returns ``False`` (and records nothing) when *snapshot* equals the
        committed snapshot at the cursor.  Entries after the cursor are
        discarded: there is no branching history.
        """
        had_staged = self._clear_staged()
        if snapshot == self._entries[self._index].snapshot:
            log.debug("commit %r ignored: no change", label)
            if had_staged:
                self._emit_signals()
            return False

        del self._entries[self._index + 1 :]
        self._entries.append(HistoryEntry(snapshot, label, context))
        self._index += 1

        if self._limit and len(self._entries) > self._limit + 1:
            excess = len(self._entries) - self._limit - 1
            del self._entries[:excess]
            self._index -= excess

        log.debug("commit %r -> entry %d of %d", label, self._index, len(self._entries))
        self._emit_signals()
        return True

    def overwrite(self, snapshot: T) -> None:
        """Stage *snapshot* as the provisional state of the current entry.

        No entry is created and the entry's label is untouched.
        """
        self._staged = snapshot
        self._has_staged = True
        self.changed.emit()

    def discard(self) -> bool:
        """Drop staged provisional state.  Returns True if there was any."""
        if self._clear_staged():
            self._emit_signals()
            return True
        return False

    def undo(self) -> str | None:
        """Step back one entry.

        Returns the label of the entry being left, or ``None`` when there
        is nothing to undo.
        """
        had_staged = self._clear_staged()
        if not self.can_undo:
            if had_staged:
                self._emit_signals()
            return None
        label = self._entries[self._index].label
        self._index -= 1
        log.debug("undo %r", label)
        self._emit_signals()
        return label

    def redo(self) -> str | None:
        """Step forward one entry.

        Returns the label of the entry being entered, or ``None`` when there
        is nothing to redo.
        """
        had_staged = self._clear_staged()
        if not self.can_redo:
            if had_staged:
                self._emit_signals()
            return None
        self._index += 1
        label = self._entries[self._index].label
        log.debug("redo %r", label)
        self._emit_signals()
        return label

    def clear(self, initial: T, label: str = "Initial", context: Any = None) -> None:
        """Reset to a single entry holding *initial*."""
        self._clear_staged()
        self._entries = [HistoryEntry(initial, label, context)]
        self._index = 0
        self._emit_signals()

    # --- internal ---

    def _clear_staged(self) -> bool:
        had = self._has_staged
        self._staged = None
        self._has_staged = False
        return had

    def _emit_signals(self) -> None:
        self.can_undo_changed.emit(self.can_undo)
        self.can_redo_changed.emit(self.can_redo)
        self.changed.emit()
