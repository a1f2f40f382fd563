import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio

from guestflow.api.client import ApiClient
from guestflow.config import Settings
from guestflow.gateways.property_payment import PropertyPaymentVerifier
from guestflow.services.notification_service import NotificationService
from guestflow.services.payment_gate_service import PaymentAtPropertySubflow

BASE_URL = "http://api.test/api"


class FakeBackend:
    """Scripted marketplace API behind ``httpx.MockTransport``.

    Responses registered for the same route are served in order; the last one
    is repeated once the queue runs out.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Callable[[], httpx.Response]]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, body: Any = None, status: int = 200) -> "FakeBackend":
        self.routes.setdefault((method, path), []).append(lambda: httpx.Response(status, json=body))
        return self

    def on_raw(self, method: str, path: str, status: int, content: bytes) -> "FakeBackend":
        self.routes.setdefault((method, path), []).append(lambda: httpx.Response(status, content=content))
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api")
        queue = self.routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, json={"success": False, "message": f"No route {request.method} {path}"})
        factory = queue.pop(0) if len(queue) > 1 else queue[0]
        return factory()

    def calls(self, method: str, path: str) -> list[dict[str, Any]]:
        """JSON bodies of the requests sent to one route."""
        return [
            json.loads(r.content) if r.content else {}
            for r in self.requests
            if r.method == method and r.url.path.removeprefix("/api") == path
        ]


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        api_base_url=BASE_URL,
        default_currency="RWF",
        payment_gate_countdown_seconds=20,
        payment_gate_tick_seconds=0.001,
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest_asyncio.fixture
async def api_client(backend, test_settings):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
    client = ApiClient(http_client=http_client, app_settings=test_settings)
    try:
        yield client
    finally:
        await client.close()


@pytest.fixture
def notifier():
    return NotificationService()


@pytest.fixture
def opened_urls():
    return []


@pytest_asyncio.fixture
async def payment_gate(api_client, notifier, opened_urls, test_settings):
    gate = PaymentAtPropertySubflow(
        PropertyPaymentVerifier(api_client),
        opener=opened_urls.append,
        notifier=notifier,
        app_settings=test_settings,
    )
    try:
        yield gate
    finally:
        await gate.aclose()


def unlock_payload(**overrides: Any) -> dict[str, Any]:
    """A my-unlocks entry as the backend sends it."""
    payload = {
        "id": "U1",
        "propertyId": "P1",
        "property": {"name": "Kigali Heights Loft"},
        "paymentMethod": "three_month_30_percent",
        "amountPaid": 60000,
        "currency": "RWF",
        "unlockedAt": "2026-09-01T10:00:00Z",
        "appreciationSubmitted": False,
        "appreciationLevel": None,
        "bookingId": None,
        "bookingCompleted": False,
        "canCancel": True,
        "canRequestDealCode": True,
        "canBook": False,
        "status": "active",
    }
    payload.update(overrides)
    return payload


def unlocks_response(*unlocks: dict[str, Any], **stats: Any) -> dict[str, Any]:
    data = {"unlocks": list(unlocks), "totalUnlocks": len(unlocks), "totalSpent": 60000 * len(unlocks)}
    data.update(stats)
    return {"success": True, "data": data}


def deal_codes_response(*codes: dict[str, Any]) -> dict[str, Any]:
    return {"success": True, "data": {"dealCodes": list(codes)}}


def deal_code_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "code": "ABC123",
        "remainingUnlocks": 3,
        "usageHistory": [],
        "expiresAt": "2099-01-01T00:00:00Z",
        "generatedAt": "2026-09-02T10:00:00Z",
        "isActive": True,
        "isValid": True,
        "isExpired": False,
    }
    payload.update(overrides)
    return payload
