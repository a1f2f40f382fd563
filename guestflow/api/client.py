"""Async JSON client for the marketplace API.

Every call returns an ``ApiEnvelope``. Success is read from the envelope's
``success`` flag, never from the HTTP status alone.
"""

import logging
import time
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from guestflow.config import Settings, settings as default_settings
from guestflow.core.exceptions import BusinessError, TransportError
from guestflow.schemas.envelope import ApiEnvelope

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


def extract_error_message(payload: ApiEnvelope | dict[str, Any] | None, fallback: str = GENERIC_ERROR_MESSAGE) -> str:
    """Best-effort user-facing message from a failed response.

    Order: ``message``, then ``errors`` joined with '. ', then ``fallback``.
    """
    if isinstance(payload, ApiEnvelope):
        message, errors = payload.message, payload.errors
    elif isinstance(payload, dict):
        message, errors = payload.get("message"), payload.get("errors")
    else:
        return fallback

    if isinstance(message, str) and message.strip():
        return message
    if isinstance(errors, list) and errors:
        return ". ".join(str(e) for e in errors)
    return fallback


def ensure_success(envelope: ApiEnvelope, fallback: str = GENERIC_ERROR_MESSAGE) -> ApiEnvelope:
    """Raise ``BusinessError`` with the backend message unless ``success`` is true."""
    if envelope.success:
        return envelope
    status_code = envelope.status_code if envelope.status_code >= 400 else 400
    raise BusinessError(
        detail=extract_error_message(envelope, fallback),
        status_code=status_code,
        errors=envelope.errors,
    )


class ApiClient:
    """Thin async wrapper over ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        app_settings: Settings | None = None,
    ) -> None:
        self.settings = app_settings or default_settings
        self.base_url = (base_url or self.settings.api_base_url).rstrip("/")
        self._http_client = http_client
        self._headers: dict[str, str] = {"Accept": "application/json"}
        token = token or self.settings.api_token
        if token:
            self.set_auth(token)

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.settings.api_timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()

    def set_auth(self, token: str) -> None:
        self._headers["Authorization"] = f"Bearer {token}"

    def clear_auth(self) -> None:
        self._headers.pop("Authorization", None)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> ApiEnvelope:
        """Send a request and parse the envelope.

        Raises:
            TransportError: On network failure or a body that is not an envelope
        """
        method = method.upper()
        start_time = time.perf_counter()
        try:
            response = await self.http_client.request(
                method,
                self._url(path),
                json=json,
                params={k: v for k, v in (params or {}).items() if v is not None} or None,
                headers=self._headers,
                timeout=self.settings.api_timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"{method} {path} timed out: {e}")
            raise TransportError("The request timed out. Please try again.") from e
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise TransportError(str(e) or None) from e

        duration = time.perf_counter() - start_time
        logger.info(f"{method} {path} -> {response.status_code} ({duration:.3f}s)")
        if duration > 1.0 and self.settings.debug:
            logger.warning(f"SLOW REQUEST: {method} {path} took {duration:.3f}s")

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"{method} {path} returned a non-JSON body (status {response.status_code})")
            raise TransportError(status_code=response.status_code) from e

        if not isinstance(body, dict):
            raise TransportError("Invalid response from server", status_code=response.status_code)

        try:
            envelope = ApiEnvelope.model_validate(body)
        except PydanticValidationError as e:
            raise TransportError("Invalid response from server", status_code=response.status_code) from e
        envelope.status_code = response.status_code
        return envelope

    async def get(self, path: str, params: dict[str, Any] | None = None) -> ApiEnvelope:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: dict[str, Any] | None = None) -> ApiEnvelope:
        return await self.request("POST", path, json=json or {})

    async def patch(self, path: str, json: dict[str, Any] | None = None) -> ApiEnvelope:
        return await self.request("PATCH", path, json=json)
