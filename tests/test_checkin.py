from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from guestflow.api import endpoints
from guestflow.core.exceptions import BusinessError, GuardViolation, PaymentRequired, ValidationError
from guestflow.domain.checkin_state import CheckInStep, UserRole
from guestflow.domain.payment_gate import GateState
from guestflow.gateways.property_payment import PropertyPaymentVerifier
from guestflow.schemas.checkin import AwaitingBookingId, DetailsLoaded
from guestflow.services.checkin_service import CheckInOutController, map_booking_payload
from guestflow.services.payment_gate_service import PaymentAtPropertySubflow

GATE_RESPONSE = {
    "success": False,
    "message": "This booking requires payment at the property",
    "data": {"paymentUrl": "https://pay.test/bookings/BK-1"},
}

BOOKING_RESPONSE = {
    "success": True,
    "data": {
        "booking": {
            "id": "BK-1",
            "guest": {"firstName": "Jane", "lastName": "Doe", "email": "jane@example.com"},
            "property": {"name": "Lake Kivu Cabin"},
            "checkIn": "2026-03-01T14:00:00Z",
            "checkOut": "2026-03-04T10:00:00Z",
            "guests": 2,
            "paymentStatus": "completed",
            "totalPrice": 240000,
        }
    },
}


@pytest_asyncio.fixture
async def host(api_client, notifier, payment_gate, test_settings):
    return CheckInOutController(
        api_client, UserRole.HOST, notifier=notifier, payment_gate=payment_gate, app_settings=test_settings
    )


@pytest_asyncio.fixture
async def guide(api_client, notifier, payment_gate, test_settings):
    return CheckInOutController(
        api_client, "tourguide", notifier=notifier, payment_gate=payment_gate, app_settings=test_settings
    )


# ==================== LOOKUP ====================


@pytest.mark.asyncio
async def test_lookup_loads_booking_details(host, backend):
    backend.on("GET", endpoints.verify_booking("BK-1"), BOOKING_RESPONSE)

    session = await host.lookup_booking(" BK-1 ")

    assert isinstance(session, DetailsLoaded)
    assert host.step == CheckInStep.DETAILS_LOADED
    details = session.details
    assert details.guest_name == "Jane Doe"
    assert details.guest_phone == "Not provided"
    assert details.stay_duration == "3 nights"
    assert details.currency == "RWF"
    assert details.rules == ()
    assert details.total_amount == Decimal("240000")


@pytest.mark.asyncio
async def test_lookup_with_empty_booking_id_makes_no_request(host, backend):
    with pytest.raises(ValidationError, match="Please enter a booking ID"):
        await host.lookup_booking("   ")
    assert backend.requests == []


@pytest.mark.asyncio
async def test_lookup_enters_payment_gate_instead_of_details(api_client, backend, notifier, opened_urls, test_settings):
    slow_settings = test_settings.model_copy(update={"payment_gate_tick_seconds": 10.0})
    gate = PaymentAtPropertySubflow(
        PropertyPaymentVerifier(api_client), opener=opened_urls.append, notifier=notifier, app_settings=slow_settings
    )
    controller = CheckInOutController(
        api_client, UserRole.HOST, notifier=notifier, payment_gate=gate, app_settings=slow_settings
    )
    backend.on("GET", endpoints.verify_booking("BK-1"), GATE_RESPONSE, status=402)

    try:
        session = await controller.lookup_booking("BK-1")

        assert isinstance(session, AwaitingBookingId)
        assert session.booking_id == "BK-1"
        assert session.payment_gate.countdown_seconds == 20
        assert session.payment_gate.payment_url == "https://pay.test/bookings/BK-1"
        assert gate.state == GateState.SHOWN
        assert controller.step == CheckInStep.AWAITING_ID
    finally:
        await gate.aclose()
    assert opened_urls == []


@pytest.mark.asyncio
async def test_verified_payment_re_fetches_booking(host, backend):
    backend.on("GET", endpoints.verify_booking("BK-1"), GATE_RESPONSE, status=402)
    backend.on("GET", endpoints.verify_booking("BK-1"), BOOKING_RESPONSE)
    backend.on("POST", endpoints.COLLECT_PAYMENT_AT_PROPERTY, {"success": True, "message": "Payment collected"})

    await host.lookup_booking("BK-1")
    await host.payment_gate.verify("TXN-778812")

    assert backend.calls("POST", endpoints.COLLECT_PAYMENT_AT_PROPERTY) == [
        {"transactionReference": "TXN-778812", "bookingId": "BK-1"}
    ]
    assert isinstance(host.session, DetailsLoaded)
    assert host.session.details.guest_name == "Jane Doe"
    assert host.payment_gate.state == GateState.VERIFIED


@pytest.mark.asyncio
async def test_lookup_failure_keeps_session(host, backend):
    backend.on("GET", endpoints.verify_booking("BK-1"), BOOKING_RESPONSE)
    backend.on("GET", endpoints.verify_booking("BK-2"), {"success": False, "message": "Booking not found"}, status=404)

    loaded = await host.lookup_booking("BK-1")
    with pytest.raises(BusinessError, match="Booking not found"):
        await host.lookup_booking("BK-2")

    assert host.session is loaded


# ==================== CHECK-IN ====================


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["", "ABC12", "ABC1234"])
async def test_confirm_rejects_code_of_wrong_length_without_network(host, backend, code):
    with pytest.raises(ValidationError, match="exactly 6 characters"):
        await host.confirm_check_in("BK-1", code)
    assert backend.requests == []


@pytest.mark.asyncio
async def test_confirm_requires_loaded_booking(host, backend):
    with pytest.raises(GuardViolation):
        await host.confirm_check_in("BK-1", "ABC123")
    assert backend.requests == []


@pytest.mark.asyncio
async def test_confirm_check_in_uppercases_code_and_sends_instructions(host, backend, notifier):
    backend.on("GET", endpoints.verify_booking("BK-1"), BOOKING_RESPONSE)
    backend.on("POST", endpoints.CONFIRM_CHECK_IN, {"success": True})

    await host.lookup_booking("BK-1")
    result = await host.confirm_check_in("BK-1", "abc123", "Key box code is 4411, wifi: lakeside")

    assert backend.calls("POST", endpoints.CONFIRM_CHECK_IN) == [
        {"bookingId": "BK-1", "bookingCode": "ABC123", "instructions": "Key box code is 4411, wifi: lakeside"}
    ]
    assert result.message == "Check-in confirmed successfully!"
    assert result.instructions_delivered is True
    assert host.session == AwaitingBookingId()
    assert "Instructions delivered to guest" in [n.message for n in notifier.history]


@pytest.mark.asyncio
async def test_confirm_without_instructions_reports_nothing_delivered(host, backend):
    backend.on("GET", endpoints.verify_booking("BK-1"), BOOKING_RESPONSE)
    backend.on("POST", endpoints.CONFIRM_CHECK_IN, {"success": True, "message": "Guest checked in"})

    await host.lookup_booking("BK-1")
    result = await host.confirm_check_in("BK-1", "ABC123", "")

    assert result.instructions_delivered is False
    assert result.message == "Guest checked in"
    assert "instructions" not in backend.calls("POST", endpoints.CONFIRM_CHECK_IN)[0]


@pytest.mark.asyncio
async def test_confirm_failure_preserves_session(host, backend):
    backend.on("GET", endpoints.verify_booking("BK-1"), BOOKING_RESPONSE)
    backend.on("POST", endpoints.CONFIRM_CHECK_IN, {"success": False, "message": "Invalid check-in code"}, status=400)

    loaded = await host.lookup_booking("BK-1")
    with pytest.raises(BusinessError, match="Invalid check-in code"):
        await host.confirm_check_in("BK-1", "ZZZ999", "Welcome!")

    assert host.session is loaded


@pytest.mark.asyncio
async def test_confirm_refuses_guest_already_checked_in(host, backend):
    payload = {"success": True, "data": {**BOOKING_RESPONSE["data"]["booking"], "checkInValidated": True}}
    backend.on("GET", endpoints.verify_booking("BK-1"), payload)

    await host.lookup_booking("BK-1")
    with pytest.raises(GuardViolation):
        await host.confirm_check_in("BK-1", "ABC123")
    assert backend.calls("POST", endpoints.CONFIRM_CHECK_IN) == []


@pytest.mark.asyncio
async def test_confirm_gated_by_payment_raises_payment_required(host, backend):
    backend.on("GET", endpoints.verify_booking("BK-1"), BOOKING_RESPONSE)
    backend.on("POST", endpoints.CONFIRM_CHECK_IN, GATE_RESPONSE, status=402)

    loaded = await host.lookup_booking("BK-1")
    with pytest.raises(PaymentRequired):
        await host.confirm_check_in("BK-1", "ABC123")

    assert host.payment_gate.is_open
    assert host.session is loaded


# ==================== RESEND ====================


@pytest.mark.asyncio
async def test_resend_code_only_while_details_loaded(host, backend):
    backend.on("GET", endpoints.verify_booking("BK-1"), BOOKING_RESPONSE)
    backend.on("POST", endpoints.RESEND_BOOKING_CODE, {"success": True, "message": "Code sent"})

    with pytest.raises(GuardViolation):
        await host.resend_code("BK-1")

    loaded = await host.lookup_booking("BK-1")
    assert await host.resend_code("BK-1") == "Code sent"
    assert host.session is loaded


@pytest.mark.asyncio
async def test_resend_failure_does_not_touch_session(host, backend):
    backend.on("GET", endpoints.verify_booking("BK-1"), BOOKING_RESPONSE)
    backend.on("POST", endpoints.RESEND_BOOKING_CODE, {"success": False, "errors": ["SMS gateway down"]}, status=502)

    loaded = await host.lookup_booking("BK-1")
    with pytest.raises(BusinessError, match="SMS gateway down"):
        await host.resend_code("BK-1")
    assert host.session is loaded


# ==================== CHECK-OUT ====================


@pytest.mark.asyncio
async def test_tour_guide_checkout_routes_to_tour_guide_endpoint(guide, backend):
    backend.on("PATCH", endpoints.tour_guide_checkout("BK-1"), {"success": True})
    backend.on("PATCH", endpoints.host_checkout("BK-1"), {"success": True})

    result = await guide.confirm_check_out("BK-1")

    assert result.role == UserRole.TOUR_GUIDE
    assert result.message == "Check-out confirmed successfully!"
    assert len(backend.calls("PATCH", endpoints.tour_guide_checkout("BK-1"))) == 1
    assert backend.calls("PATCH", endpoints.host_checkout("BK-1")) == []


@pytest.mark.asyncio
async def test_host_checkout_routes_to_property_endpoint(host, backend):
    backend.on("PATCH", endpoints.host_checkout("BK-1"), {"success": True, "message": "Guest checked out"})

    result = await host.confirm_check_out("BK-1")

    assert result.message == "Guest checked out"
    assert [r.url.path for r in backend.requests] == ["/api/bookings/properties/BK-1/checkout"]


@pytest.mark.asyncio
async def test_checkout_failure_surfaces_backend_message(host, backend):
    backend.on("PATCH", endpoints.host_checkout("BK-1"), {"success": False, "message": "Guest has not checked in"}, status=400)

    with pytest.raises(BusinessError, match="Guest has not checked in"):
        await host.confirm_check_out("BK-1")


@pytest.mark.asyncio
async def test_unknown_role_is_rejected(api_client):
    with pytest.raises(ValidationError, match="Unknown role"):
        CheckInOutController(api_client, "admin")


# ==================== PAYLOAD MAPPING ====================


def test_map_booking_payload_applies_defaults():
    details = map_booking_payload("BK-3", {"guest": {}}, UserRole.HOST, "USD")

    assert details.booking_id == "BK-3"
    assert details.guest_name == "Guest"
    assert details.guest_phone == "Not provided"
    assert details.rules == ()
    assert details.currency == "USD"
    assert details.stay_duration == "Dates not provided"
    assert details.already_checked_in is False


def test_map_booking_payload_for_tour_counts_days():
    data = {
        "tour": {"title": "Nyungwe Canopy Walk", "rules": "No flash photography"},
        "user": {"firstName": "Amani", "lastName": "K", "phone": "+250788000000"},
        "startDate": "2026-05-10",
        "endDate": "2026-05-12",
        "numberOfParticipants": 4,
        "currency": "USD",
    }

    details = map_booking_payload("TB-1", data, UserRole.TOUR_GUIDE)

    assert details.listing_type == "tour"
    assert details.listing_name == "Nyungwe Canopy Walk"
    assert details.stay_duration == "2 days"
    assert details.check_in == date(2026, 5, 10)
    assert details.guests == 4
    assert details.guest_phone == "+250788000000"
    assert details.rules == ("No flash photography",)
