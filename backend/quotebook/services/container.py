"""
Quotebook Backend — Service Container
=====================================

What:  Builds the service graph once and hands out the shared instances.
How:   `ServiceContainer.from_settings()` wires store → gateway → services.
       Tests build one directly with a fake transport and an in-memory store.
Who:   Created by the application lifespan (or passed to create_app) and kept
       on `app.state.services`; route dependencies read it from there.

Wiring:
    PreferenceStore ──┬──▶ SessionStore ──┐
                      │                   ├──▶ AuthService
    BackendGateway ───┼───────────────────┘
                      ├──▶ QuoteService
                      └──▶ PreferencesService (store only)
"""

import logging
from typing import Optional

import httpx

from quotebook.config import Settings
from quotebook.services.auth_service import AuthService
from quotebook.services.gateway import BackendGateway
from quotebook.services.preference_store import (
    InMemoryPreferenceStore,
    JsonFilePreferenceStore,
    PreferenceStore,
)
from quotebook.services.preferences_service import PreferencesService
from quotebook.services.quote_service import DEFAULT_PAGE_SIZE, QuoteService
from quotebook.services.session_store import SessionStore

logger = logging.getLogger(__name__)


class ServiceContainer:
    """One instance of every service, sharing a gateway and a preference store."""

    def __init__(
        self,
        gateway: BackendGateway,
        store: PreferenceStore,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.gateway = gateway
        self.store = store
        self.default_page_size = default_page_size
        self.session_store = SessionStore(store)
        self.auth = AuthService(gateway, self.session_store)
        self.quotes = QuoteService(gateway)
        self.preferences = PreferencesService(store)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ServiceContainer":
        if settings.preferences_path:
            store: PreferenceStore = JsonFilePreferenceStore(settings.preferences_path)
        else:
            logger.info("No preferences path configured, local state kept in memory")
            store = InMemoryPreferenceStore()

        gateway = BackendGateway(
            base_url=settings.supabase_url,
            api_key=settings.supabase_key,
            timeout=settings.http_timeout,
            transport=transport,
        )
        return cls(
            gateway=gateway,
            store=store,
            default_page_size=settings.default_page_size,
        )

    async def aclose(self) -> None:
        await self.gateway.aclose()
