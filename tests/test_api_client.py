import httpx
import pytest

from guestflow.api.client import GENERIC_ERROR_MESSAGE, ApiClient, ensure_success, extract_error_message
from guestflow.core.exceptions import BusinessError, TransportError
from guestflow.schemas.envelope import ApiEnvelope


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"message": "Unlock not found", "errors": ["ignored"]}, "Unlock not found"),
        ({"message": "", "errors": ["Reason is required", "Unlock id is invalid"]}, "Reason is required. Unlock id is invalid"),
        ({"success": False}, "Fallback"),
        (None, "Fallback"),
    ],
)
def test_extract_error_message_order(payload, expected):
    assert extract_error_message(payload, "Fallback") == expected


def test_ensure_success_never_trusts_http_status():
    envelope = ApiEnvelope.model_validate({"message": "Nope"})

    with pytest.raises(BusinessError) as exc_info:
        ensure_success(envelope)

    assert exc_info.value.detail == "Nope"
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_request_sends_bearer_token_and_parses_envelope(test_settings):
    seen = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": {"ok": 1}, "paymentUrl": "https://pay.test/x"})

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = ApiClient(token="secret", http_client=http_client, app_settings=test_settings)

    envelope = await client.get("/property-unlock/my-unlocks", params={"page": 1, "limit": None})
    await client.close()

    assert envelope.success is True
    assert envelope.data_dict() == {"ok": 1}
    assert envelope.payment_url == "https://pay.test/x"
    assert envelope.status_code == 200
    assert seen[0].headers["Authorization"] == "Bearer secret"
    assert str(seen[0].url) == "http://api.test/api/property-unlock/my-unlocks?page=1"


@pytest.mark.asyncio
async def test_failed_status_is_parsed_not_raised(api_client, backend):
    backend.on("POST", "/property-unlock/cancel", {"success": False, "message": "Already cancelled"}, status=409)

    envelope = await api_client.post("/property-unlock/cancel", {"unlockId": "U1", "reason": "x"})

    assert envelope.success is False
    assert envelope.status_code == 409
    with pytest.raises(BusinessError) as exc_info:
        ensure_success(envelope)
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_non_json_body_is_a_transport_error(api_client, backend):
    backend.on_raw("GET", "/property-unlock/deal-codes", 502, b"<html>Bad gateway</html>")

    with pytest.raises(TransportError) as exc_info:
        await api_client.get("/property-unlock/deal-codes")

    assert exc_info.value.detail == GENERIC_ERROR_MESSAGE
    assert exc_info.value.response_status == 502


@pytest.mark.asyncio
async def test_network_failure_is_a_transport_error(test_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = ApiClient(http_client=http_client, app_settings=test_settings)

    with pytest.raises(TransportError, match="connection refused"):
        await client.get("/property-unlock/my-unlocks")
    await client.close()


@pytest.mark.asyncio
async def test_timeout_is_a_transport_error(test_settings):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = ApiClient(http_client=http_client, app_settings=test_settings)

    with pytest.raises(TransportError, match="timed out"):
        await client.get("/property-unlock/my-unlocks")
    await client.close()
