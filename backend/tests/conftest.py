"""
Quotebook Backend — Test Configuration (conftest.py)
====================================================

What:  Shared fixtures: a scripted fake of the Supabase HTTP API, services
       wired to it, and an HTTP client for the FastAPI app.
How:   The gateway's httpx.AsyncClient gets an httpx.MockTransport whose
       handler is FakeBackend.handle, so no test touches the network.

Fixture Hierarchy (all function-scoped):
    fake_backend ──▶ gateway ──┬──▶ services ──▶ app ──┬──▶ test_client
    memory_store ──────────────┤                       └──▶ other_client
                               └──▶ session_store
"""

import json
import os
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep tests off any developer .env and the on-disk preference file
os.environ["SUPABASE_URL"] = "https://demo.supabase.co"
os.environ["SUPABASE_KEY"] = "anon-test-key"
os.environ["PREFERENCES_PATH"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from quotebook.services.container import ServiceContainer  # noqa: E402
from quotebook.services.gateway import BackendGateway  # noqa: E402
from quotebook.services.preference_store import InMemoryPreferenceStore  # noqa: E402
from quotebook.services.session_store import SessionStore  # noqa: E402

BASE_URL = "https://demo.supabase.co"
API_KEY = "anon-test-key"

_UNSET = object()


# ══════════════════════════════════════════════════════════════════════════
# Fake Backend
# ══════════════════════════════════════════════════════════════════════════

class FakeBackend:
    """
    Scripted stand-in for Supabase.

    Routes are registered per method and path+query prefix, e.g.
        fake.on("GET", "/rest/v1/quotes?order=created_at.desc", json=[...])
    The longest matching prefix answers. Unmatched requests get a 404 so a
    missing script shows up as an ApiError instead of a hang.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._routes: List[Tuple[str, str, Callable[[httpx.Request], httpx.Response]]] = []

    def on(
        self,
        method: str,
        target: str,
        status: int = 200,
        json: Any = _UNSET,
        text: Optional[str] = None,
        error: Optional[Exception] = None,
    ) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if error is not None:
                raise error
            if json is not _UNSET:
                return httpx.Response(status, json=json)
            return httpx.Response(status, text=text or "")

        self._routes.append((method.upper(), target, respond))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        target = target_of(request)
        matches = [
            (len(prefix), respond)
            for method, prefix, respond in self._routes
            if method == request.method and target.startswith(prefix)
        ]
        if not matches:
            return httpx.Response(404, json={"message": f"No fake route for {request.method} {target}"})
        # max() on the length alone; later registrations win ties
        return max(reversed(matches), key=lambda match: match[0])[1](request)

    def targets(self, method: Optional[str] = None) -> List[str]:
        return [
            target_of(request)
            for request in self.requests
            if method is None or request.method == method
        ]


def target_of(request: httpx.Request) -> str:
    """Path plus query exactly as sent on the wire."""
    return request.url.raw_path.decode("ascii")


def body_of(request: httpx.Request) -> Union[Dict[str, Any], List[Any], None]:
    return json.loads(request.content) if request.content else None


# ══════════════════════════════════════════════════════════════════════════
# Sample Payloads
# ══════════════════════════════════════════════════════════════════════════

def make_quote(n: int, category: str = "Wisdom") -> Dict[str, Any]:
    return {
        "id": f"q-{n}",
        "text": f"Quote number {n}",
        "author": f"Author {n}",
        "category": category,
        "created_at": "2024-01-15T12:00:00.123456+00:00",
    }


def make_user(user_id: str = "user-1", email: str = "ada@example.com", name: Optional[str] = "Ada") -> Dict[str, Any]:
    return {
        "id": user_id,
        "email": email,
        "user_metadata": {"name": name} if name else {},
    }


def token_payload(user: Optional[Dict[str, Any]] = _UNSET, token: str = "access-123") -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "access_token": token,
        "refresh_token": "refresh-456",
        "token_type": "bearer",
        "expires_in": 3600,
    }
    if user is _UNSET:
        payload["user"] = make_user()
    elif user is not None:
        payload["user"] = user
    return payload


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def gateway(fake_backend):
    """BackendGateway talking to the fake backend."""
    gw = BackendGateway(
        base_url=BASE_URL,
        api_key=API_KEY,
        transport=httpx.MockTransport(fake_backend.handle),
    )
    yield gw
    await gw.aclose()


@pytest.fixture
def memory_store() -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore()


@pytest.fixture
def session_store(memory_store) -> SessionStore:
    return SessionStore(memory_store)


@pytest.fixture
def services(gateway, memory_store) -> ServiceContainer:
    return ServiceContainer(gateway=gateway, store=memory_store)


@pytest.fixture
def app(services):
    """
    A fresh app that uses the `services` fixture.

    ASGITransport does not run the lifespan, so the container is attached
    directly by create_app().
    """
    from quotebook.main import create_app

    return create_app(services=services)


@pytest_asyncio.fixture
async def test_client(app):
    """HTTPX AsyncClient bound to `app`, with its own cookie jar."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def other_client(app):
    """A second client of the same app, sharing no cookies with `test_client`."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
