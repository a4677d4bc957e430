"""
Webhooks: Stripe (subscription -> tier), Clerk (user sync, default free tier).
"""
from __future__ import annotations

import logging
import os
import json

import svix
from fastapi import APIRouter, Request, HTTPException, Header, Depends
from sqlalchemy.orm import Session

from db.models import User
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
):
    """Verify Stripe signature and move the subscribing user between free and subscriber."""
    from stripe_billing import STRIPE_WEBHOOK_SECRET, get_stripe, subscription_owner, tier_for_subscription
    from user_tiers import set_user_tier
    payload = await request.body()
    if not STRIPE_WEBHOOK_SECRET or not stripe_signature:
        raise HTTPException(status_code=400, detail="Webhook secret or signature missing")
    stripe = get_stripe()
    if not stripe:
        raise HTTPException(status_code=503, detail="Stripe not configured")
    try:
        stripe.Webhook.construct_event(payload, stripe_signature, STRIPE_WEBHOOK_SECRET)
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Invalid signature: {e}")
    # Signature checked; read the plain JSON rather than the StripeObject wrapper.
    event = json.loads(payload)
    typ = event.get("type") or ""
    if typ.startswith("customer.subscription."):
        subscription = event["data"]["object"]
        clerk_user_id, customer_id = subscription_owner(subscription)
        if not clerk_user_id and customer_id:
            user = db.query(User).filter(User.stripe_customer_id == customer_id).first()
            clerk_user_id = user.clerk_id if user else None
        if not clerk_user_id:
            logger.warning("STRIPE_EVENT_UNMATCHED type=%s customer=%s", typ, customer_id)
            return {"received": True}
        user_type = tier_for_subscription(typ, subscription.get("status"))
        user = set_user_tier(db, clerk_user_id, user_type, actor_id="stripe")
        if customer_id and user.stripe_customer_id != customer_id:
            user.stripe_customer_id = customer_id
            db.commit()
        logger.info("STRIPE_TIER user=%s type=%s user_type=%s", clerk_user_id, typ, user_type)
    return {"received": True}


@router.post("/webhooks/clerk")
async def clerk_webhook(
    request: Request,
    svix_id: str | None = Header(None, alias="Svix-Id"),
    svix_timestamp: str | None = Header(None, alias="Svix-Timestamp"),
    svix_signature: str | None = Header(None, alias="Svix-Signature"),
    db: Session = Depends(get_db),
):
    """Verify Svix signature and sync users from Clerk events."""
    from user_tiers import ensure_user_synced
    payload = await request.body()
    secret = os.environ.get("CLERK_WEBHOOK_SECRET")
    if not secret or not svix_signature:
        raise HTTPException(status_code=400, detail="CLERK_WEBHOOK_SECRET or Svix-Signature missing")
    try:
        wh = svix.Webhook(secret)
        wh.verify(payload, {"svix-id": svix_id, "svix-timestamp": svix_timestamp, "svix-signature": svix_signature})
    except Exception as e:
        raise HTTPException(status_code=400, detail=f"Invalid webhook: {e}")
    data = json.loads(payload)
    typ = data.get("type")
    if typ == "user.created" or typ == "user.updated":
        obj = data.get("data", {})
        user_id = obj.get("id")
        email = obj.get("email_addresses", [{}])[0].get("email_address") if obj.get("email_addresses") else None
        if user_id:
            ensure_user_synced(db, user_id, user_email=email)
    return {"received": True}
