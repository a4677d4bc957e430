"""
Token verification and access-tier resolution.
Expect Authorization: Bearer <session_token>.
Set CLERK_JWT_ISSUER (e.g. https://your-clerk-domain.clerk.accounts.dev) and optionally
CLERK_JWKS_URL; or set AUTH_JWT_SECRET to accept HS256 tokens (local development).
The tier lives in the user_type claim (Clerk session-claim template: {"user_type": "{{user.public_metadata.user_type}}"}).
"""
from __future__ import annotations

import os
from typing import Annotated, Any, Optional

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from errors import PermissionDenied, Unauthenticated
from models import Tier

security = HTTPBearer(auto_error=False)

# Claim value -> tier. "premium" is the paid tier's older name.
_TIER_CLAIM_VALUES = {
    "free": Tier.FREE,
    "premium": Tier.SUBSCRIBER,
    "subscriber": Tier.SUBSCRIBER,
}


class IdentityClaims(BaseModel):
    sub: str  # clerk user id
    email: Optional[str] = None
    user_type: Any = None


def _tier_attribute(payload: dict) -> Any:
    if "user_type" in payload:
        return payload.get("user_type")
    if "userType" in payload:
        return payload.get("userType")
    metadata = payload.get("public_metadata")
    if isinstance(metadata, dict):
        return metadata.get("user_type")
    return None


def resolve_tier(claims: Any) -> Tier:
    """
    Tier for the given claims (IdentityClaims, a raw claims dict, or None).
    Anything missing or unrecognized resolves to guest.
    """
    if claims is None:
        return Tier.GUEST
    if isinstance(claims, IdentityClaims):
        value = claims.user_type
    elif isinstance(claims, dict):
        value = _tier_attribute(claims)
    else:
        return Tier.GUEST
    if not isinstance(value, str):
        return Tier.GUEST
    return _TIER_CLAIM_VALUES.get(value, Tier.GUEST)


def _decode(token: str) -> dict:
    secret = os.environ.get("AUTH_JWT_SECRET")
    if secret:
        return jwt.decode(token, secret, algorithms=["HS256"], options={"verify_aud": False})
    issuer = os.environ.get("CLERK_JWT_ISSUER")
    if not issuer:
        raise HTTPException(status_code=503, detail="CLERK_JWT_ISSUER not set")
    jwks_client = jwt.PyJWKClient(
        os.environ.get("CLERK_JWKS_URL", issuer.rstrip("/") + "/.well-known/jwks.json")
    )
    signing_key = jwks_client.get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        issuer=issuer,
        options={"verify_aud": False},
    )


def verify_token(token: str) -> IdentityClaims:
    """Verify a session JWT and return its claims."""
    try:
        payload = _decode(token)
    except (jwt.PyJWKClientError, jwt.InvalidTokenError) as e:
        raise Unauthenticated(f"Invalid token: {e}")
    if not payload.get("sub"):
        raise Unauthenticated("Invalid token: missing subject")
    return IdentityClaims(
        sub=str(payload["sub"]),
        email=payload.get("email") if isinstance(payload.get("email"), str) else None,
        user_type=_tier_attribute(payload),
    )


def get_optional_claims(
    creds: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[IdentityClaims]:
    if not creds or not creds.credentials:
        return None
    return verify_token(creds.credentials)


def require_auth(
    claims: Annotated[Optional[IdentityClaims], Depends(get_optional_claims)],
) -> IdentityClaims:
    if not claims:
        raise Unauthenticated()
    return claims


def require_subscriber(
    claims: Annotated[IdentityClaims, Depends(require_auth)],
) -> IdentityClaims:
    if resolve_tier(claims) != Tier.SUBSCRIBER:
        raise PermissionDenied()
    return claims
