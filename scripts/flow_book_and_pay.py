#!/usr/bin/env python3
"""
Complete booking and payment flow against a running Flupp API.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_pay.py --email owner@flupp.co.uk
    python scripts/flow_book_and_pay.py --email owner@flupp.co.uk --days-ahead 10 --service grooming

Flow:
    1. Check health
    2. Create booking
    3. Create payment intent
    4. Send a signed payment_intent.succeeded webhook (simulated gateway only)
    5. Check booking status
    6. Leave a review
"""

import argparse
import json
import sys
import uuid
from datetime import UTC, datetime, timedelta

import httpx

from flupp.config import settings
from flupp.gateways.simulated import sign_payload

BASE_URL = settings.flupp_base_url


def api_request(method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make an API request and return status plus decoded body."""
    response = httpx.request(
        method,
        f"{BASE_URL}{endpoint}",
        json=data,
        timeout=settings.flupp_timeout_seconds,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields and isinstance(result["data"], dict):
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def send_simulated_webhook(booking_id: str, intent_id: str, secret: str) -> dict:
    """POST a payment_intent.succeeded event signed like the processor would."""
    payload = json.dumps({
        "id": f"evt_script_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": intent_id, "metadata": {"bookingId": booking_id}}},
    }).encode()
    response = httpx.post(
        f"{BASE_URL}/api/payments/webhook",
        content=payload,
        headers={"Content-Type": "application/json", "Stripe-Signature": sign_payload(payload, secret)},
        timeout=settings.flupp_timeout_seconds,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def main():
    parser = argparse.ArgumentParser(description="Complete booking and payment flow")
    parser.add_argument("--email", required=True, help="Customer email")
    parser.add_argument("--pet-name", default="Biscuit", help="Pet name")
    parser.add_argument("--species", default="dog", help="Species")
    parser.add_argument("--service", default="boarding", help="Service type")
    parser.add_argument("--days-ahead", type=int, default=7, help="Start this many days from now")
    parser.add_argument("--hours", type=int, default=24, help="Booking length in hours")
    parser.add_argument("--price-cents", type=int, default=4500, help="Price in minor units")
    parser.add_argument("--webhook-secret", default=settings.simulated_webhook_secret,
                        help="Secret the simulated gateway verifies webhooks with")
    parser.add_argument("--skip-webhook", action="store_true", help="Stop after creating the intent")
    args = parser.parse_args()

    # Step 1: Health
    print_step(1, "Check health")
    if not print_result(api_request("GET", "/health")):
        sys.exit(1)

    # Step 2: Create booking
    print_step(2, "Create booking")
    start_at = datetime.now(UTC).replace(microsecond=0) + timedelta(days=args.days_ahead)
    booking_result = api_request("POST", "/api/bookings", {
        "petName": args.pet_name,
        "species": args.species,
        "serviceType": args.service,
        "startAt": start_at.isoformat(),
        "endAt": (start_at + timedelta(hours=args.hours)).isoformat(),
        "priceCents": args.price_cents,
        "customerEmail": args.email,
    })
    if not print_result(booking_result, ["id", "status", "priceCents", "currency", "startAt", "endAt"]):
        sys.exit(1)
    booking_id = booking_result["data"]["id"]

    # Step 3: Create payment intent
    print_step(3, "Create payment intent")
    intent_result = api_request("POST", "/api/payments/create-intent", {"bookingId": booking_id})
    if not print_result(intent_result, ["paymentIntentId", "reused"]):
        sys.exit(1)
    intent_id = intent_result["data"]["paymentIntentId"]

    if args.skip_webhook:
        print("\n" + "="*60)
        print("FLOW COMPLETE (payment left to the card form)")
        print("="*60)
        return

    # Step 4: Simulated webhook
    print_step(4, "Send payment_intent.succeeded webhook")
    if not print_result(send_simulated_webhook(booking_id, intent_id, args.webhook_secret)):
        sys.exit(1)

    # Step 5: Status
    print_step(5, "Check booking status")
    status_result = api_request("GET", f"/api/bookings/{booking_id}")
    if not print_result(status_result, ["id", "status", "paymentIntentId"]):
        sys.exit(1)
    if status_result["data"]["status"] != "confirmed":
        print("ERROR: booking was not confirmed by the webhook")
        sys.exit(1)

    # Step 6: Review
    print_step(6, "Leave a review")
    review_result = api_request("POST", "/api/reviews", {
        "bookingId": booking_id,
        "rating": 5,
        "comment": "Lovely stay, came home happy.",
        "reviewerName": "Script Runner",
    })
    if not print_result(review_result, ["id", "rating", "createdAt"]):
        sys.exit(1)

    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
