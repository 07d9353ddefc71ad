"""Persistent application settings backed by QSettings."""

from PyQt6.QtCore import QSettings

from layerlab.config.constants import (
    AI_FEATHER_PERCENT_DEFAULT,
    AI_FEATHER_PERCENT_MAX,
    APP_NAME,
    ORG_NAME,
)


def _to_bool(val: object, default: bool) -> bool:
    # QSettings returns "true"/"false" strings on some backends
    if isinstance(val, str):
        return val.lower() in ("1", "true", "yes")
    if val is None:
        return default
    return bool(val)


class AppSettings:
    """Thin wrapper around QSettings for typed access to user preferences.

    Values are read at startup and written only when :meth:`save` is called
    from the preferences dialog.
    """

    def __init__(self, qsettings: QSettings | None = None) -> None:
        self._qs = qsettings if qsettings is not None else QSettings(ORG_NAME, APP_NAME)
        self.default_adjustments_open: bool = _to_bool(
            self._qs.value("panels/adjustmentsOpen"), False
        )
        self.default_masking_open: bool = _to_bool(self._qs.value("panels/maskingOpen"), True)
        self.api_key: str = str(self._qs.value("ai/apiKey", "") or "")
        self.ai_feather_percent: int = self._clamp_percent(
            self._qs.value("ai/featherPercent", AI_FEATHER_PERCENT_DEFAULT)
        )

    @staticmethod
    def _clamp_percent(val: object) -> int:
        try:
            pct = int(val)  # type: ignore[call-overload]
        except (TypeError, ValueError):
            pct = AI_FEATHER_PERCENT_DEFAULT
        return max(0, min(AI_FEATHER_PERCENT_MAX, pct))

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())

    def update(
        self,
        *,
        default_adjustments_open: bool | None = None,
        default_masking_open: bool | None = None,
        api_key: str | None = None,
        ai_feather_percent: int | None = None,
    ) -> None:
        """Change preferences in memory; call :meth:`save` to persist them."""
        if default_adjustments_open is not None:
            self.default_adjustments_open = default_adjustments_open
        if default_masking_open is not None:
            self.default_masking_open = default_masking_open
        if api_key is not None:
            self.api_key = api_key
        if ai_feather_percent is not None:
            self.ai_feather_percent = self._clamp_percent(ai_feather_percent)

    def save(self) -> None:
        self._qs.setValue("panels/adjustmentsOpen", self.default_adjustments_open)
        self._qs.setValue("panels/maskingOpen", self.default_masking_open)
        self._qs.setValue("ai/apiKey", self.api_key)
        self._qs.setValue("ai/featherPercent", self.ai_feather_percent)
        self._qs.sync()
