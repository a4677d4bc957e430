"""
Keep each user's tier in the local users table and in Clerk public metadata.
The session-claim template copies public_metadata.user_type into the token, which
is what auth.resolve_tier reads. Call from the Clerk and Stripe webhooks.
"""
from __future__ import annotations

import logging
import os
import uuid

import requests
from sqlalchemy.orm import Session

from audit import log as audit_log
from db.models import User, UserType

logger = logging.getLogger(__name__)

CLERK_API_URL = os.environ.get("CLERK_API_URL", "https://api.clerk.com/v1")
CLERK_API_TIMEOUT_SECONDS = 10


def push_tier_claim(clerk_user_id: str, user_type: str) -> bool:
    """Write user_type into Clerk public metadata. False when not configured or the call fails."""
    secret = os.environ.get("CLERK_SECRET_KEY")
    if not secret:
        logger.warning("TIER_CLAIM_SKIPPED user=%s reason=no_clerk_secret", clerk_user_id)
        return False
    try:
        resp = requests.patch(
            f"{CLERK_API_URL.rstrip('/')}/users/{clerk_user_id}/metadata",
            json={"public_metadata": {"user_type": user_type}},
            headers={"Authorization": f"Bearer {secret}"},
            timeout=CLERK_API_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.error("TIER_CLAIM_FAILED user=%s err=%s", clerk_user_id, str(e)[:300])
        return False
    logger.info("TIER_CLAIM_SET user=%s user_type=%s", clerk_user_id, user_type)
    return True


def ensure_user_synced(
    db: Session,
    clerk_user_id: str,
    user_email: str | None = None,
) -> User:
    """Create or update User by clerk_id. New users start on the free tier."""
    user = db.query(User).filter(User.clerk_id == clerk_user_id).first()
    created = user is None
    if created:
        user = User(
            id=str(uuid.uuid4()),
            clerk_id=clerk_user_id,
            email=user_email,
            user_type=UserType.free.value,
        )
        db.add(user)
        db.flush()
    elif user_email is not None:
        user.email = user_email
    db.commit()
    db.refresh(user)
    if created:
        push_tier_claim(clerk_user_id, user.user_type)
    return user


def set_user_tier(
    db: Session,
    clerk_user_id: str,
    user_type: str,
    actor_id: str = "system",
) -> User:
    """
    Change a user's tier. No-op (no claim push, no audit entry) when unchanged.
    Raises ValueError for anything other than free/subscriber.
    """
    try:
        new_type = UserType(user_type).value
    except ValueError:
        raise ValueError(f"Unsupported user_type: {user_type!r}")
    user = db.query(User).filter(User.clerk_id == clerk_user_id).first()
    if user is None:
        user = ensure_user_synced(db, clerk_user_id)
    previous = user.user_type
    if previous == new_type:
        return user
    user.user_type = new_type
    db.commit()
    db.refresh(user)
    audit_log(
        db,
        actor_id,
        "update",
        "user_type",
        user.id,
        {"from": previous, "to": new_type},
    )
    push_tier_claim(clerk_user_id, new_type)
    return user
