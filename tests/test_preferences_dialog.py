"""Tests for PreferencesDialog."""

from __future__ import annotations

from pytestqt.qtbot import QtBot

from layerlab.config.settings import AppSettings
from layerlab.ui.preferences_dialog import PreferencesDialog


class TestPreferencesDialogInitialValues:
    def test_shows_panel_defaults(self, qtbot: QtBot, settings: AppSettings) -> None:
        settings.update(default_adjustments_open=True, default_masking_open=False)
        dlg = PreferencesDialog(settings)
        qtbot.addWidget(dlg)
        assert dlg._adjustments_cb.isChecked() is True
        assert dlg._masking_cb.isChecked() is False

    def test_shows_api_key_masked(self, qtbot: QtBot, settings: AppSettings) -> None:
        settings.update(api_key="secret")
        dlg = PreferencesDialog(settings)
        qtbot.addWidget(dlg)
        assert dlg._api_key_edit.text() == "secret"
        assert dlg._api_key_edit.echoMode() == dlg._api_key_edit.EchoMode.Password

    def test_shows_feather_percent(self, qtbot: QtBot, settings: AppSettings) -> None:
        settings.update(ai_feather_percent=8)
        dlg = PreferencesDialog(settings)
        qtbot.addWidget(dlg)
        assert dlg._feather_spin.value() == 8


class TestPreferencesDialogApply:
    def test_apply_writes_settings(self, qtbot: QtBot, settings: AppSettings) -> None:
        dlg = PreferencesDialog(settings)
        qtbot.addWidget(dlg)
        dlg._adjustments_cb.setChecked(True)
        dlg._api_key_edit.setText("  new-key  ")
        dlg._feather_spin.setValue(20)
        dlg.apply()
        assert settings.default_adjustments_open is True
        assert settings.api_key == "new-key"
        assert settings.ai_feather_percent == 20

    def test_cancel_leaves_settings(self, qtbot: QtBot, settings: AppSettings) -> None:
        dlg = PreferencesDialog(settings)
        qtbot.addWidget(dlg)
        dlg._api_key_edit.setText("ignored")
        dlg.reject()
        assert settings.api_key == ""
