"""
Quotebook Backend — Session Store
=================================

What:  Mirrors the signed-in session to the preference store when, and only
       when, the user chose "stay logged in".
Who:   Driven exclusively by AuthService. The gateway never touches persisted
       credentials.

Stored keys:
    stayLoggedIn   bool, the user's choice (default False)
    userEmail      ┐
    userName       │
    userId         ├ session keys, present only while stayLoggedIn is true
    accessToken    │
    refreshToken   │ optional
    clientKey      ┘ optional, the signed-in client's secret

Invariants:
    - Turning the preference off erases every session key immediately.
    - restore_session() fails closed: any missing mandatory key → None.
    - Optional keys absent from the session being saved are removed, so a
      stored value never outlives the session it belonged to.
"""

import logging
from typing import Optional

from quotebook.schemas.auth import Session
from quotebook.services.preference_store import PreferenceStore

logger = logging.getLogger(__name__)

STAY_LOGGED_IN_KEY = "stayLoggedIn"
USER_EMAIL_KEY = "userEmail"
USER_NAME_KEY = "userName"
USER_ID_KEY = "userId"
ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"
CLIENT_KEY_KEY = "clientKey"

SESSION_KEYS = (
    USER_EMAIL_KEY,
    USER_NAME_KEY,
    USER_ID_KEY,
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    CLIENT_KEY_KEY,
)


class SessionStore:
    """Remembered-session persistence on top of a PreferenceStore."""

    def __init__(self, store: PreferenceStore):
        self.store = store

    async def get_stay_logged_in(self) -> bool:
        return bool(await self.store.get(STAY_LOGGED_IN_KEY, False))

    async def set_stay_logged_in(self, flag: bool, current: Optional[Session] = None) -> None:
        """
        Persist the preference.

        Args:
            flag: New preference value.
            current: The in-memory session, if any. When the preference is
                turned on, its fields are written so the next start can
                restore it.

        Turning the preference off removes all stored session keys but leaves
        the caller's in-memory session alone.
        """
        await self.store.set(STAY_LOGGED_IN_KEY, flag)

        if not flag:
            await self.clear_session()
            logger.info("Stay-logged-in disabled, stored session erased")
            return

        if current is not None:
            await self.save_session(
                token=current.access_token,
                refresh_token=current.refresh_token,
                user_id=current.user_id,
                email=current.email,
                name=current.name,
                client_key=current.client_key,
            )

    async def save_session(
        self,
        token: str,
        refresh_token: Optional[str],
        user_id: str,
        email: str,
        name: str,
        client_key: Optional[str] = None,
    ) -> None:
        """Write the session keys if the user wants to stay logged in; no-op otherwise."""
        if not await self.get_stay_logged_in():
            logger.debug("Stay-logged-in is off, session not persisted")
            return

        values = {
            ACCESS_TOKEN_KEY: token,
            USER_ID_KEY: user_id,
            USER_EMAIL_KEY: email,
            USER_NAME_KEY: name,
        }
        absent = []
        for key, value in ((REFRESH_TOKEN_KEY, refresh_token), (CLIENT_KEY_KEY, client_key)):
            if value is None:
                absent.append(key)
            else:
                values[key] = value

        await self.store.set_many(values, remove=absent)
        logger.info("Session persisted for user %s", user_id)

    async def update_name(self, name: str) -> None:
        if await self.get_stay_logged_in():
            await self.store.set(USER_NAME_KEY, name)

    async def restore_session(self) -> Optional[Session]:
        """
        Rebuild the remembered session.

        Returns:
            A Session when stayLoggedIn is true and email, name, user id and
            access token are all stored and non-empty; otherwise None.
        """
        if not await self.get_stay_logged_in():
            return None

        stored = await self.store.get_many(SESSION_KEYS)
        mandatory = (USER_EMAIL_KEY, USER_NAME_KEY, USER_ID_KEY, ACCESS_TOKEN_KEY)
        if not all(isinstance(stored.get(key), str) and stored[key] for key in mandatory):
            logger.info("Stored session incomplete, not restoring")
            return None

        refresh_token = stored.get(REFRESH_TOKEN_KEY)
        client_key = stored.get(CLIENT_KEY_KEY)
        return Session(
            user_id=stored[USER_ID_KEY],
            email=stored[USER_EMAIL_KEY],
            name=stored[USER_NAME_KEY],
            access_token=stored[ACCESS_TOKEN_KEY],
            refresh_token=refresh_token if isinstance(refresh_token, str) else None,
            stay_logged_in=True,
            client_key=client_key if isinstance(client_key, str) and client_key else None,
        )

    async def clear_session(self) -> None:
        """Remove every session key. The stayLoggedIn preference is kept."""
        await self.store.remove(*SESSION_KEYS)
