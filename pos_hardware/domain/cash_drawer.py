"""
Cash Drawer Policy - Drawer configuration and kick-command resolution.

Decides whether a payment event opens the drawer and translates the
configured command profile into the descriptor sent to the print bridge.
Sending the command is the print bridge's job.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from configs import DC4, DLE, ESC, ESC_P_COMMAND, PULSE_FUNCTION, PULSE_TIME_UNITS
from core.exceptions import HardwareError, InvalidSettingsError
from core.interfaces import SettingsStore
from core.value_objects import (
    SETTINGS_ALIASES,
    CashDrawerSettings,
    CashEvent,
    CommandProfile,
    KickCommand,
)
from loggers import logger


_FIELD_BY_ALIAS: dict[str, str] = {alias: name for name, alias in SETTINGS_ALIASES.items()}

_BOOL_FIELDS = frozenset({
    "enabled",
    "auto_open_on_cash_initiated",
    "auto_open_on_cash_completed",
    "require_manager_pin_for_manual_open",
})
_PULSE_TIME_FIELDS = frozenset({"t1", "t2"})


# =============================================================================
# Validation
# =============================================================================


def _field_name(key: str) -> str:
    if key in SETTINGS_ALIASES:
        return key
    if key in _FIELD_BY_ALIAS:
        return _FIELD_BY_ALIAS[key]
    raise InvalidSettingsError(f"Unknown cash drawer setting: {key}", field_name=key)


def _validate_value(name: str, value: Any) -> Any:
    if name in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise InvalidSettingsError(f"{name} must be a boolean", field_name=name)
        return value

    if name == "printer_name":
        if value is None:
            return None
        if not isinstance(value, str):
            raise InvalidSettingsError("printer_name must be a string", field_name=name)
        return value.strip() or None

    if name == "kick_mode":
        if isinstance(value, bool) or value not in (0, 1):
            raise InvalidSettingsError("kick_mode must be 0 or 1", field_name=name)
        return int(value)

    if name in _PULSE_TIME_FIELDS:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 255:
            raise InvalidSettingsError(f"{name} must be an integer between 0 and 255", field_name=name)
        return value

    if name == "command_profile":
        try:
            return CommandProfile(value)
        except ValueError:
            raise InvalidSettingsError(f"Unknown command profile: {value}", field_name=name)

    raise InvalidSettingsError(f"Unknown cash drawer setting: {name}", field_name=name)


def validate_settings_update(changes: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate a partial settings update.

    Accepts snake_case field names and the persisted camelCase keys.

    Raises:
        InvalidSettingsError: On unknown keys or invalid values.
    """
    validated: dict[str, Any] = {}
    for key, value in changes.items():
        name = _field_name(key)
        validated[name] = _validate_value(name, value)
    return validated


def settings_from_dict(data: Optional[Mapping[str, Any]]) -> CashDrawerSettings:
    """
    Merge stored overrides over the defaults.

    Invalid stored fields are skipped with a warning.
    """
    settings = CashDrawerSettings()
    if not data:
        return settings

    changes: dict[str, Any] = {}
    for key, value in data.items():
        try:
            name = _field_name(key)
            changes[name] = _validate_value(name, value)
        except InvalidSettingsError as e:
            logger.warning(f"Ignoring stored cash drawer setting: {e.message}")
    return settings.merge(**changes)


# =============================================================================
# Kick Command
# =============================================================================


def resolve_kick_command(settings: CashDrawerSettings) -> KickCommand:
    """
    Translate drawer settings into a print-bridge command descriptor.

    Deterministic and side-effect free. A disabled drawer or a missing
    printer yields an inert command so callers can fall back to a manual
    payout.
    """
    base = dict(
        printer_name=settings.printer_name,
        profile=settings.command_profile,
        kick_mode=settings.kick_mode,
        t1=settings.t1,
        t2=settings.t2,
    )

    if not settings.enabled:
        return KickCommand(**base, inert=True, reason="Cash drawer is disabled in settings")
    if not settings.printer_name:
        return KickCommand(**base, inert=True, reason="No printer configured for cash drawer")

    if settings.command_profile is CommandProfile.ESC_P:
        # ESC p m t1 t2
        data = bytes([ESC, ESC_P_COMMAND, settings.kick_mode, settings.t1, settings.t2])
    elif settings.command_profile is CommandProfile.PULSE:
        # DLE DC4 fn m t
        data = bytes([DLE, DC4, PULSE_FUNCTION, settings.kick_mode, PULSE_TIME_UNITS])
    else:
        data = None

    return KickCommand(**base, data=data)


# =============================================================================
# Cash Drawer Policy
# =============================================================================


class CashDrawerPolicy:
    """
    Holds cash drawer configuration and answers drawer-open questions.

    Settings are loaded explicitly with ``load_settings`` and rewritten
    as a whole on every update.
    """

    def __init__(self, store: SettingsStore) -> None:
        """
        Initialize the policy with defaults.

        Args:
            store: Persistent settings store.
        """
        self._store = store
        self._settings = CashDrawerSettings()

    async def load_settings(self) -> CashDrawerSettings:
        """Load stored overrides. Unreadable settings fall back to defaults."""
        try:
            stored = await self._store.load()
        except HardwareError as e:
            logger.warning(f"Failed to load cash drawer settings: {e.message}")
            stored = None
        self._settings = settings_from_dict(stored)
        return self._settings

    def get_settings(self) -> CashDrawerSettings:
        return self._settings

    async def update_settings(
        self,
        partial: Optional[Mapping[str, Any]] = None,
        **changes: Any,
    ) -> CashDrawerSettings:
        """
        Merge a partial update over the current settings and persist them.

        Raises:
            InvalidSettingsError: If the update is invalid. Nothing is saved.
        """
        merged_changes = {**(partial or {}), **changes}
        validated = validate_settings_update(merged_changes)
        updated = self._settings.merge(**validated)
        await self._store.save(updated.to_dict())
        self._settings = updated
        logger.info(f"Cash drawer settings updated: {sorted(validated)}")
        return updated

    def should_auto_open(self, event: Union[CashEvent, str]) -> bool:
        """Check whether a payment event opens the drawer automatically."""
        try:
            event = CashEvent(event)
        except ValueError:
            return False
        if event is CashEvent.CASH_INITIATED:
            return self._settings.auto_open_on_cash_initiated
        return self._settings.auto_open_on_cash_completed

    def requires_manager_pin(self) -> bool:
        """Whether manual opens need manager approval."""
        return self._settings.require_manager_pin_for_manual_open

    def resolve_kick_command(self, settings: Optional[CashDrawerSettings] = None) -> KickCommand:
        return resolve_kick_command(settings or self._settings)
