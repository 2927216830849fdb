"""
Quotebook Backend — Preferences Service
=======================================

What:  Reads and writes the presentation preferences kept next to the
       remembered session in the preference store.

Stored keys:
    quoteFontSize         float, 0 or missing → 16
    appTheme              "Light" | "Dark" | "Auto"
    accentColor           "Yellow" | "Blue" | "Purple" | "Green" | "Red"
    notificationsEnabled  bool
    notificationTime      "HH:MM"

Unknown or malformed stored values fall back to the defaults instead of
failing the read.
"""

import logging
from datetime import time
from typing import Any, Dict, Optional

from quotebook.schemas.preferences import (
    DEFAULT_FONT_SIZE,
    MAX_FONT_SIZE,
    MIN_FONT_SIZE,
    AccentColor,
    AppTheme,
    PreferencesUpdate,
    PresentationPreferences,
)
from quotebook.services.preference_store import PreferenceStore

logger = logging.getLogger(__name__)

FONT_SIZE_KEY = "quoteFontSize"
THEME_KEY = "appTheme"
ACCENT_COLOR_KEY = "accentColor"
NOTIFICATIONS_KEY = "notificationsEnabled"
NOTIFICATION_TIME_KEY = "notificationTime"

PREFERENCE_KEYS = (
    FONT_SIZE_KEY,
    THEME_KEY,
    ACCENT_COLOR_KEY,
    NOTIFICATIONS_KEY,
    NOTIFICATION_TIME_KEY,
)


def _font_size(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_FONT_SIZE
    if value == 0 or not MIN_FONT_SIZE <= value <= MAX_FONT_SIZE:
        return DEFAULT_FONT_SIZE
    return float(value)


def _parse_time(value: Any) -> Optional[time]:
    if not isinstance(value, str):
        return None
    try:
        hours, minutes = value.split(":", 1)
        return time(int(hours), int(minutes))
    except ValueError:
        logger.debug("Ignoring malformed notification time %r", value)
        return None


def _format_time(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


class PreferencesService:
    def __init__(self, store: PreferenceStore):
        self.store = store

    async def get(self) -> PresentationPreferences:
        stored = await self.store.get_many(PREFERENCE_KEYS)
        defaults = PresentationPreferences()

        try:
            theme = AppTheme(stored.get(THEME_KEY, defaults.app_theme))
        except ValueError:
            theme = defaults.app_theme
        try:
            accent = AccentColor(stored.get(ACCENT_COLOR_KEY, defaults.accent_color))
        except ValueError:
            accent = defaults.accent_color

        notifications = stored.get(NOTIFICATIONS_KEY)
        return PresentationPreferences(
            quote_font_size=_font_size(stored.get(FONT_SIZE_KEY)),
            app_theme=theme,
            accent_color=accent,
            notifications_enabled=notifications if isinstance(notifications, bool) else False,
            notification_time=_parse_time(stored.get(NOTIFICATION_TIME_KEY)),
        )

    async def update(self, changes: PreferencesUpdate) -> PresentationPreferences:
        """Write only the fields present in `changes`, then return the full set."""
        values: Dict[str, Any] = {}
        supplied = changes.model_fields_set

        if "quote_font_size" in supplied and changes.quote_font_size is not None:
            values[FONT_SIZE_KEY] = changes.quote_font_size
        if "app_theme" in supplied and changes.app_theme is not None:
            values[THEME_KEY] = changes.app_theme.value
        if "accent_color" in supplied and changes.accent_color is not None:
            values[ACCENT_COLOR_KEY] = changes.accent_color.value
        if "notifications_enabled" in supplied and changes.notifications_enabled is not None:
            values[NOTIFICATIONS_KEY] = changes.notifications_enabled
        if "notification_time" in supplied:
            if changes.notification_time is None:
                await self.store.remove(NOTIFICATION_TIME_KEY)
            else:
                values[NOTIFICATION_TIME_KEY] = _format_time(changes.notification_time)

        if values:
            await self.store.set_many(values)
            logger.info("Updated preferences: %s", ", ".join(sorted(values)))

        return await self.get()
