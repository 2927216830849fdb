"""
Quotebook Backend — Preferences Route Handlers
==============================================

What:  Read and partially update the presentation preferences.
"""

from fastapi import APIRouter, Depends

from quotebook.dependencies import get_preferences_service
from quotebook.schemas.api import ErrorResponse
from quotebook.schemas.preferences import PreferencesUpdate, PresentationPreferences
from quotebook.services.preferences_service import PreferencesService

router = APIRouter(prefix="/api/preferences", tags=["Preferences"])


@router.get("", response_model=PresentationPreferences, summary="Current preferences")
async def get_preferences(
    preferences: PreferencesService = Depends(get_preferences_service),
) -> PresentationPreferences:
    return await preferences.get()


@router.patch(
    "",
    response_model=PresentationPreferences,
    responses={500: {"description": "Preferences could not be saved", "model": ErrorResponse}},
    summary="Change some preferences",
)
async def update_preferences(
    changes: PreferencesUpdate,
    preferences: PreferencesService = Depends(get_preferences_service),
) -> PresentationPreferences:
    """Only fields present in the body are written."""
    return await preferences.update(changes)
