"""Keyboard shortcut definitions.

Each entry maps a logical action name to a key sequence string
compatible with ``QKeySequence``.  Crop mode is bound to the Space key
directly by the canvas (press arms, release finalizes) and is not listed.
"""

SHORTCUTS: dict[str, str] = {
    # File
    "file.open": "Ctrl+O",
    "file.export_composition": "Ctrl+Shift+S",
    "file.export_layer": "Ctrl+Alt+S",
    "file.preferences": "Ctrl+,",
    # Edit
    "edit.undo": "Ctrl+Z",
    "edit.redo": "Ctrl+Shift+Z",
    "edit.duplicate": "Ctrl+D",
    "edit.delete": "Delete",
    "edit.delete_alt": "Backspace",
    "edit.ai_edit": "Ctrl+E",
    # Layers
    "layer.replace_image": "Ctrl+Shift+R",
    "layer.toggle_crop": "C",
}
