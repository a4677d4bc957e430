"""
Stripe subscriptions drive the subscriber tier.
Set STRIPE_SECRET_KEY and STRIPE_WEBHOOK_SECRET. Checkout sessions should carry
metadata.clerk_user_id so subscription events can be tied back to a user.
"""
from __future__ import annotations

import os
from typing import Any, Optional

import stripe

STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")

# Subscription statuses that keep subscriber access
ACTIVE_SUBSCRIPTION_STATUSES = frozenset({"active", "trialing"})


def get_stripe():
    if not STRIPE_SECRET_KEY:
        return None
    stripe.api_key = STRIPE_SECRET_KEY
    return stripe


def tier_for_subscription(event_type: str, status: Optional[str]) -> str:
    """user_type implied by a customer.subscription.* event."""
    if event_type == "customer.subscription.deleted":
        return "free"
    return "subscriber" if status in ACTIVE_SUBSCRIPTION_STATUSES else "free"


def subscription_owner(subscription: dict[str, Any]) -> tuple[Optional[str], Optional[str]]:
    """(clerk_user_id from metadata, stripe customer id) for a subscription object."""
    metadata = subscription.get("metadata") or {}
    clerk_user_id = metadata.get("clerk_user_id") if isinstance(metadata, dict) else None
    customer = subscription.get("customer")
    if isinstance(customer, dict):
        customer = customer.get("id")
    return clerk_user_id, customer if isinstance(customer, str) else None
