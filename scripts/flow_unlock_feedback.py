#!/usr/bin/env python3
"""
Unlock feedback and booking conversion flow.

DO NOT ADD BUSINESS LOGIC HERE.
This script only drives the controllers.
Guards and rewards are decided by the backend.

Usage:
    python scripts/flow_unlock_feedback.py --token <JWT>
    python scripts/flow_unlock_feedback.py --unlock-id 42 --level not_appreciated --feedback "Photos were misleading"
    python scripts/flow_unlock_feedback.py --unlock-id 42 --level appreciated \
        --check-in 2026-11-01 --check-out 2026-11-05 --guests 2 --total-price 450000

Flow:
    1. Load unlocks and deal codes
    2. Submit feedback for one unlock (optional)
    3. Convert an appreciated unlock to a booking (optional)
    4. Cancel an unlock (optional, instead of 2 and 3)
"""

import argparse
import asyncio
import logging
import sys

from guestflow.api.client import ApiClient
from guestflow.config import settings
from guestflow.core.exceptions import AppException, PaymentRequired
from guestflow.services.notification_service import Notification
from guestflow.services.unlock_service import UnlockLifecycleController
from guestflow.utils.formatting import format_currency


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_notification(notification: Notification):
    print(f"[{notification.level.value.upper()}] {notification.message}")


def print_unlocks(controller: UnlockLifecycleController):
    stats = controller.store.stats
    print(f"Unlocks: {stats.total_unlocked}  Spent: {format_currency(stats.total_spent, stats.currency)}")
    for record in controller.store.all():
        print(
            f"  {record.id:>6}  {record.property_title[:30]:<30}  {record.payment_method.value:<16}"
            f"  {controller.state_of(record.id).value:<18}"
            f"  cancel={record.can_cancel} deal={record.can_request_deal_code} book={record.can_book}"
        )
    print(f"Deal codes: {len(controller.ledger)} (active: {controller.ledger.active_count()})")
    for code in controller.ledger.all():
        print(f"  {code.display_code}  remaining={code.remaining_unlocks}  usable={code.is_usable()}")


async def run(args: argparse.Namespace) -> int:
    client = ApiClient(base_url=args.base_url, token=args.token)
    controller = UnlockLifecycleController(client)
    controller.notifier.subscribe(print_notification)

    try:
        # Step 1: Load unlocks
        print_step(1, "Load unlocks and deal codes")
        await controller.refresh()
        print_unlocks(controller)

        if not args.unlock_id:
            return 0

        if args.cancel_reason:
            print_step(2, f"Cancel unlock {args.unlock_id}")
            await controller.cancel(args.unlock_id, args.cancel_reason)
            print_unlocks(controller)
            return 0

        # Step 2: Feedback
        if args.level:
            print_step(2, f"Submit '{args.level}' feedback")
            record = controller.get_record(args.unlock_id)
            deal_code = await controller.submit_appreciation(
                args.unlock_id, record.property_id, args.level, args.feedback
            )
            print(f"Deal code: {deal_code or '(none)'}")
            print_unlocks(controller)

        # Step 3: Conversion
        if args.check_in and args.check_out and args.total_price:
            print_step(3, "Convert unlock to booking")
            due = controller.amount_due(args.unlock_id, args.total_price)
            record = controller.get_record(args.unlock_id)
            print(f"Amount due after deposit: {format_currency(due, record.currency)}")
            try:
                booking_id = await controller.convert_to_booking(
                    args.unlock_id,
                    args.check_in,
                    args.check_out,
                    args.guests,
                    args.special_requests,
                    args.total_price,
                )
            except PaymentRequired as e:
                print(f"Payment required at the property: {e.payment_url}")
                await controller.payment_gate.aclose()
                return 2
            print(f"Booking created: {booking_id}")
            print(f"Pay here: {controller.payment_url_for(args.unlock_id, booking_id)}")
            await controller.payment_gate.aclose()
    except AppException as e:
        print(f"ERROR ({e.status_code}): {e.detail}")
        return 1
    finally:
        await client.close()

    print("\n" + "="*60)
    print("FLOW COMPLETE")
    print("="*60)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Unlock feedback and booking conversion flow")
    parser.add_argument("--base-url", default=settings.api_base_url, help="API base URL")
    parser.add_argument("--token", default=settings.api_token, help="Bearer token of the guest")
    parser.add_argument("--unlock-id", help="Unlock to act on")
    parser.add_argument("--level", choices=["appreciated", "neutral", "not_appreciated"], help="Feedback level")
    parser.add_argument("--feedback", default="", help="Feedback text (required for not_appreciated)")
    parser.add_argument("--cancel-reason", help="Cancel the unlock with this reason")
    parser.add_argument("--check-in", help="Check-in date (YYYY-MM-DD)")
    parser.add_argument("--check-out", help="Check-out date (YYYY-MM-DD)")
    parser.add_argument("--guests", type=int, default=1, help="Number of guests")
    parser.add_argument("--special-requests", help="Special requests for the host")
    parser.add_argument("--total-price", help="Total booking price")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
