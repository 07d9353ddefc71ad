"""Tests for PropertyPanel."""

from __future__ import annotations

from pytestqt.qtbot import QtBot

from conftest import SourceFactory

from layerlab.config.constants import BASE_SELECTION
from layerlab.config.settings import AppSettings
from layerlab.core.document import BlendMode
from layerlab.core.layer_manager import LayerManager
from layerlab.ui.property_panel import PropertyPanel


def _panel(qtbot: QtBot, manager: LayerManager, settings: AppSettings | None = None) -> PropertyPanel:
    panel = PropertyPanel(manager, settings)
    qtbot.addWidget(panel)
    return panel


def test_disabled_without_selection(qtbot: QtBot, manager: LayerManager) -> None:
    panel = _panel(qtbot, manager)
    assert not panel.isEnabled()


def test_section_defaults_follow_settings(
    qtbot: QtBot, manager: LayerManager, settings: AppSettings
) -> None:
    settings.update(default_adjustments_open=True, default_masking_open=False)
    panel = _panel(qtbot, manager, settings)
    assert panel._adjustments.is_expanded
    assert not panel._masking.is_expanded


def test_slider_reflects_selected_layer(
    qtbot: QtBot, based_manager: LayerManager, make_source: SourceFactory
) -> None:
    layer_id = based_manager.add_layer(make_source(), "a")
    based_manager.update_layer(layer_id, {"brightness": 150.0})
    panel = _panel(qtbot, based_manager)
    assert panel.slider("brightness").value() == 150


def test_slider_change_commits_one_entry(
    qtbot: QtBot, based_manager: LayerManager, make_source: SourceFactory
) -> None:
    layer_id = based_manager.add_layer(make_source(), "a")
    panel = _panel(qtbot, based_manager)
    count = based_manager.history.count
    panel.slider("blur").setValue(7)
    assert based_manager.document.layer_by_id(layer_id).blur == 7.0
    assert based_manager.history.count == count + 1
    assert based_manager.history.undo_text == "Adjust Blur"


def test_base_selected_edits_base_effects(qtbot: QtBot, based_manager: LayerManager) -> None:
    based_manager.select(BASE_SELECTION)
    panel = _panel(qtbot, based_manager)
    assert not panel._masking.isVisibleTo(panel)
    panel.slider("hue").setValue(45)
    assert based_manager.document.base_image_effects.hue == 45.0


def test_blend_combo_changes_mode(
    qtbot: QtBot, based_manager: LayerManager, make_source: SourceFactory
) -> None:
    layer_id = based_manager.add_layer(make_source(), "a")
    panel = _panel(qtbot, based_manager)
    index = panel._blend_combo.findData(BlendMode.MULTIPLY.value)
    panel._blend_combo.setCurrentIndex(index)
    assert based_manager.document.layer_by_id(layer_id).blend_mode is BlendMode.MULTIPLY
    assert based_manager.history.undo_text == "Change Blend Mode"


def test_generate_emits_prompt(qtbot: QtBot, based_manager: LayerManager) -> None:
    panel = _panel(qtbot, based_manager)
    panel._prompt_edit.setText("add a moon")
    with qtbot.waitSignal(panel.ai_edit_requested) as blocker:
        panel._ai_button.click()
    assert blocker.args == ["add a moon"]


def test_busy_disables_generate(qtbot: QtBot, based_manager: LayerManager) -> None:
    panel = _panel(qtbot, based_manager)
    based_manager.set_busy(True)
    assert not panel._ai_button.isEnabled()
    based_manager.set_busy(False)
    assert panel._ai_button.isEnabled()
