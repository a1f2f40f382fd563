#!/usr/bin/env python3
"""
Host / tour-guide check-in and check-out flow.

DO NOT ADD BUSINESS LOGIC HERE.
This script only drives the controller.

Usage:
    python scripts/flow_checkin.py --booking-id BK-1 --code A1B2C3
    python scripts/flow_checkin.py --role tourguide --booking-id BK-9 --checkout
    python scripts/flow_checkin.py --booking-id BK-1 --code A1B2C3 --reference TXN-778812

Flow:
    1. Look up the booking (opens the payment gate when payment is due at the property)
    2. Verify the on-site payment reference (only when the gate opened)
    3. Confirm check-in with the guest's code
    4. Confirm check-out (with --checkout)
"""

import argparse
import asyncio
import logging
import sys

from guestflow.api.client import ApiClient
from guestflow.config import settings
from guestflow.core.exceptions import AppException
from guestflow.schemas.checkin import DetailsLoaded
from guestflow.services.checkin_service import CheckInOutController
from guestflow.services.notification_service import Notification
from guestflow.utils.formatting import format_currency


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_notification(notification: Notification):
    print(f"[{notification.level.value.upper()}] {notification.message}")


async def run(args: argparse.Namespace) -> int:
    client = ApiClient(base_url=args.base_url, token=args.token)
    controller = CheckInOutController(client, args.role)
    controller.notifier.subscribe(print_notification)

    try:
        if args.checkout:
            print_step(1, f"Check out booking {args.booking_id}")
            result = await controller.confirm_check_out(args.booking_id)
            print(f"{result.message} ({result.role.value})")
            return 0

        # Step 1: Lookup
        print_step(1, f"Look up booking {args.booking_id}")
        session = await controller.lookup_booking(args.booking_id)

        # Step 2: Payment at property
        if controller.payment_gate.is_open:
            print_step(2, "Payment at the property")
            print(f"Payment link: {controller.payment_gate.gate.payment_url}")
            if not args.reference:
                print("Re-run with --reference once the guest has paid.")
                return 2
            await controller.payment_gate.verify(args.reference)
            session = controller.session

        if not isinstance(session, DetailsLoaded):
            print("ERROR: Booking details are not available")
            return 1

        details = session.details
        print(f"Guest:    {details.guest_name} <{details.guest_email}> {details.guest_phone}")
        print(f"Listing:  {details.listing_name} ({details.listing_type})")
        print(f"Stay:     {details.check_in} → {details.check_out} ({details.stay_duration})")
        print(f"Amount:   {format_currency(details.total_amount, details.currency)} [{details.payment_status}]")
        for rule in details.rules:
            print(f"  - {rule}")

        if not args.code:
            return 0

        # Step 3: Confirm
        print_step(3, "Confirm check-in")
        confirmation = await controller.confirm_check_in(args.booking_id, args.code, args.instructions)
        print(confirmation.message)
        if confirmation.instructions_delivered:
            print("Instructions delivered to guest")
    except AppException as e:
        print(f"ERROR ({e.status_code}): {e.detail}")
        return 1
    finally:
        await controller.payment_gate.aclose()
        await client.close()

    print("\n" + "="*60)
    print("FLOW COMPLETE")
    print("="*60)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Check-in / check-out flow")
    parser.add_argument("--base-url", default=settings.api_base_url, help="API base URL")
    parser.add_argument("--token", default=settings.api_token, help="Bearer token of the host or guide")
    parser.add_argument("--role", choices=["host", "tourguide"], default="host")
    parser.add_argument("--booking-id", required=True, help="Booking ID given by the guest")
    parser.add_argument("--code", help="Guest's 6-character check-in code")
    parser.add_argument("--instructions", help="Instructions delivered to the guest on check-in")
    parser.add_argument("--reference", help="Payment-at-property transaction reference")
    parser.add_argument("--checkout", action="store_true", help="Confirm check-out instead of check-in")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
