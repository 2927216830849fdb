"""
Quotebook Backend — Presentation Preference Schemas
===================================================

What:  Typed view of the light presentation settings the UI keeps locally:
       quote font size, theme, accent color and the daily-quote reminder.
How:   PreferencesService maps these fields onto preference-store keys.
       Rendering them (themes, notifications) is the UI's job.
"""

from datetime import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

MIN_FONT_SIZE = 10.0
MAX_FONT_SIZE = 40.0
DEFAULT_FONT_SIZE = 16.0


class AppTheme(str, Enum):
    LIGHT = "Light"
    DARK = "Dark"
    AUTO = "Auto"


class AccentColor(str, Enum):
    YELLOW = "Yellow"
    BLUE = "Blue"
    PURPLE = "Purple"
    GREEN = "Green"
    RED = "Red"


class PresentationPreferences(BaseModel):
    """Current presentation settings, defaults filled in."""

    quote_font_size: float = Field(
        default=DEFAULT_FONT_SIZE, ge=MIN_FONT_SIZE, le=MAX_FONT_SIZE
    )
    app_theme: AppTheme = AppTheme.DARK
    accent_color: AccentColor = AccentColor.YELLOW
    notifications_enabled: bool = False
    notification_time: Optional[time] = Field(
        default=None, description="Local time of the daily quote reminder"
    )


class PreferencesUpdate(BaseModel):
    """
    Request body for PATCH /api/preferences.

    Only fields present in the request are written.
    """

    quote_font_size: Optional[float] = Field(
        default=None, ge=MIN_FONT_SIZE, le=MAX_FONT_SIZE
    )
    app_theme: Optional[AppTheme] = None
    accent_color: Optional[AccentColor] = None
    notifications_enabled: Optional[bool] = None
    notification_time: Optional[time] = None
