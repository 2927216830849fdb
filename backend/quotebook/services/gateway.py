"""
Quotebook Backend — Backend Gateway
===================================

What:  The single chokepoint for every call to the remote backend
       (Supabase PostgREST at /rest/v1 and GoTrue auth at /auth/v1).
How:   Wraps one shared httpx.AsyncClient. Builds URLs from the configured
       base, attaches headers, serializes JSON bodies, decodes JSON responses
       into pydantic models, and maps failures to ApiError.
Who:   QuoteService (data) and AuthService (auth) call it; nothing else talks
       HTTP to the backend.

Headers on data calls:
    apikey: <publishable key>             always
    Authorization: Bearer <access token>  only while a token is held
    Content-Type / Accept: application/json
    Prefer: return=representation         POST returns the inserted rows

Error mapping:
    2xx, empty body or "[]"         → [] (list calls) / None (single calls)
    2xx, body fails model decoding  → ApiError(server message or "Failed to decode response: ...")
    non-2xx                         → ApiError(message | msg | error, else "Request failed with status N")
    transport failure               → ApiError("Network error: ...")
    protocol garbage                → InvalidResponseError

The gateway holds the access token in memory only. Persisting it is the
SessionStore's job, driven by AuthService.

No call is retried.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from quotebook.exceptions import ApiError, InvalidResponseError, QuotebookError
from quotebook.schemas.auth import ConfirmationPending, TokenIssued, parse_auth_payload

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Keys searched, in order, for a human-readable message in error bodies
REST_ERROR_KEYS = ("message", "msg", "error")
AUTH_ERROR_KEYS = ("msg", "message", "error_description")


@lru_cache(maxsize=None)
def _list_adapter(model: type) -> TypeAdapter:
    return TypeAdapter(List[model])


@lru_cache(maxsize=None)
def _item_adapter(model: type) -> TypeAdapter:
    return TypeAdapter(model)


def _safe_json(response: httpx.Response) -> Any:
    """Parsed JSON body, or None when the body is empty or not JSON."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _first_message(payload: Any, keys: Iterable[str]) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _token_preview(token: Optional[str]) -> str:
    return f"{token[:8]}…" if token else "none"


class BackendGateway:
    """
    Async client for the Supabase REST and auth APIs.

    Lifecycle:
        Created once when the application starts (ServiceContainer), shared by
        every service, closed with aclose() on shutdown. Tests pass an
        httpx.MockTransport through `transport`.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.strip().rstrip("/")
        self.api_key = api_key
        self._token: Optional[str] = None
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

        logger.info("BackendGateway initialized for %s (timeout=%.0fs)", self.base_url, timeout)

    # ── Token State ───────────────────────────────────────────────────────

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token

    def clear_token(self) -> None:
        self._token = None

    # ── Plumbing ──────────────────────────────────────────────────────────

    def _rest_url(self, endpoint: str) -> str:
        return f"{self.base_url}/rest/v1/{endpoint.lstrip('/')}"

    def _auth_url(self, path: str) -> str:
        return f"{self.base_url}/auth/v1/{path.lstrip('/')}"

    def _rest_headers(self) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Prefer": "return=representation",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Content-Type": "application/json",
        }

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Issue one HTTP call and translate transport failures.

        Returns the response for any status code; status handling belongs to
        the caller because REST and auth endpoints accept different codes.
        """
        try:
            if body is None:
                response = await self._client.request(method, url, headers=headers)
            else:
                response = await self._client.request(method, url, headers=headers, json=body)
        except (httpx.RemoteProtocolError, httpx.DecodingError) as e:
            logger.error("%s %s returned an unusable response: %s", method, url, e)
            raise InvalidResponseError(context={"url": url, "error_type": type(e).__name__})
        except httpx.RequestError as e:
            detail = str(e) or type(e).__name__
            logger.error("%s %s failed: %s", method, url, detail)
            raise ApiError(
                message=f"Network error: {detail}",
                context={"url": url, "error_type": type(e).__name__},
            )

        level = logging.WARNING if response.status_code >= 400 else logging.DEBUG
        logger.log(level, "%s %s → %d", method, url, response.status_code)
        return response

    def _rest_error(self, response: httpx.Response) -> ApiError:
        payload = _safe_json(response)
        message = _first_message(payload, REST_ERROR_KEYS) or (
            f"Request failed with status {response.status_code}"
        )
        return ApiError(message=message, status_code=response.status_code)

    def _auth_error(self, response: httpx.Response, operation: str) -> ApiError:
        payload = _safe_json(response)
        message = _first_message(payload, AUTH_ERROR_KEYS) or (
            f"{operation} failed with status {response.status_code}"
        )
        error_code = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error_code, str) and error_code and error_code != message:
            message = f"{error_code}: {message}"
        return ApiError(message=message, status_code=response.status_code)

    def _decode_failure(self, payload: Any, detail: str, status_code: int) -> ApiError:
        message = _first_message(payload, REST_ERROR_KEYS) or f"Failed to decode response: {detail}"
        return ApiError(message=message, status_code=status_code)

    # ── Data API (PostgREST) ──────────────────────────────────────────────

    async def request_list(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        model: Optional[Type[ModelT]] = None,
    ) -> Union[List[ModelT], List[Any]]:
        """
        Call `{base}/rest/v1/{endpoint}` and decode a JSON array.

        Args:
            endpoint: Table name plus query string, e.g. "quotes?limit=1".
            method: HTTP method (GET, POST, DELETE, PATCH).
            body: JSON object to send, if any.
            model: Pydantic model for each element; raw dicts when omitted.

        Returns:
            Decoded rows. An empty body or a literal "[]" yields [].

        Raises:
            ApiError: Non-2xx status, transport failure, or undecodable body.
        """
        url = self._rest_url(endpoint)
        logger.debug("%s %s (token=%s)", method, endpoint, _token_preview(self._token))
        response = await self._send(method, url, self._rest_headers(), body)

        if not response.is_success:
            raise self._rest_error(response)

        text = response.text.strip()
        if not text or text == "[]":
            return []

        payload = _safe_json(response)
        if payload is None:
            raise ApiError(
                message="Failed to decode response: body is not JSON",
                status_code=response.status_code,
            )
        if not isinstance(payload, list):
            raise self._decode_failure(payload, "expected a JSON array", response.status_code)

        if model is None:
            return payload
        try:
            return _list_adapter(model).validate_python(payload)
        except PydanticValidationError as e:
            logger.warning("Decoding %s from %s failed: %s", model.__name__, endpoint, e)
            raise self._decode_failure(
                None, f"{e.error_count()} invalid field(s) in {model.__name__}", response.status_code
            )

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Dict[str, Any]] = None,
        model: Optional[Type[ModelT]] = None,
    ) -> Any:
        """
        Call `{base}/rest/v1/{endpoint}` and decode a single JSON value.

        Returns None for an empty body (e.g., DELETE without representation),
        [] for a literal "[]". Errors are mapped exactly as in request_list().
        """
        url = self._rest_url(endpoint)
        logger.debug("%s %s (token=%s)", method, endpoint, _token_preview(self._token))
        response = await self._send(method, url, self._rest_headers(), body)

        if not response.is_success:
            raise self._rest_error(response)

        text = response.text.strip()
        if not text:
            return None
        if text == "[]":
            return []

        payload = _safe_json(response)
        if payload is None:
            raise ApiError(
                message="Failed to decode response: body is not JSON",
                status_code=response.status_code,
            )
        if model is None:
            return payload
        try:
            return _item_adapter(model).validate_python(payload)
        except PydanticValidationError as e:
            logger.warning("Decoding %s from %s failed: %s", model.__name__, endpoint, e)
            raise self._decode_failure(
                payload, f"{e.error_count()} invalid field(s) in {model.__name__}", response.status_code
            )

    # ── Auth API (GoTrue) ─────────────────────────────────────────────────

    def _parse_auth(self, response: httpx.Response, operation: str):
        payload = _safe_json(response)
        try:
            result = parse_auth_payload(payload)
        except PydanticValidationError as e:
            logger.warning("%s response did not match a known shape: %s", operation, e)
            result = None

        if result is None:
            message = _first_message(payload, AUTH_ERROR_KEYS)
            raise ApiError(
                message=message or f"Failed to decode {operation.lower()} response",
                status_code=response.status_code,
            )
        return result

    async def sign_up(
        self, email: str, password: str, name: str
    ) -> Union[TokenIssued, ConfirmationPending]:
        """
        Register a new user.

        Returns:
            TokenIssued when the project does not require email confirmation
            (the gateway starts using the new token), otherwise
            ConfirmationPending with the created user and no token.

        Raises:
            ApiError: Status other than 200/201, or an unrecognizable body.
        """
        body = {"email": email, "password": password, "data": {"name": name}}
        response = await self._send("POST", self._auth_url("signup"), self._auth_headers(), body)
        logger.info("Sign-up responded with status %d", response.status_code)

        if response.status_code not in (200, 201):
            raise self._auth_error(response, "Sign up")

        result = self._parse_auth(response, "Sign-up")
        if isinstance(result, TokenIssued):
            self.set_token(result.access_token)
        return result

    async def sign_in(self, email: str, password: str) -> TokenIssued:
        """
        Exchange email + password for a session (password grant).

        Raises:
            ApiError: Status other than 200, or a body without an access token.
        """
        body = {"email": email, "password": password}
        response = await self._send(
            "POST", self._auth_url("token?grant_type=password"), self._auth_headers(), body
        )
        logger.info("Sign-in responded with status %d", response.status_code)

        if response.status_code != 200:
            raise self._auth_error(response, "Sign in")

        result = self._parse_auth(response, "Sign-in")
        if not isinstance(result, TokenIssued):
            raise ApiError(
                message="Failed to decode sign-in response: no access token",
                status_code=response.status_code,
            )
        self.set_token(result.access_token)
        return result

    async def reset_password(self, email: str) -> None:
        """Ask the auth server to email a password recovery link."""
        response = await self._send(
            "POST", self._auth_url("recover"), self._auth_headers(), {"email": email}
        )
        logger.info("Password recovery responded with status %d", response.status_code)
        if response.status_code not in (200, 201):
            raise self._auth_error(response, "Password reset")

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def health_check(self) -> bool:
        """True when the auth server answers its health endpoint; never raises."""
        try:
            response = await self._send("GET", self._auth_url("health"), self._auth_headers())
        except QuotebookError as e:
            logger.warning("Backend health check failed: %s", e.message)
            return False
        return response.is_success

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "BackendGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
