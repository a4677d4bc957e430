"""
League-table handlers: public (guest), authenticated (free), subscriber, and the
tier-resolving rank table. Callable endpoints take {"data": {...}} bodies and raise
CallableError; the public endpoint keeps the {success, data, error} envelope.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from auth import IdentityClaims, get_optional_claims, require_auth, require_subscriber, resolve_tier
from db.session import get_db
from deal_store import load_deals
from engine.league import aggregate_deals
from engine.participants import os_type_breakdown, unique_participants
from engine.visibility import apply_visibility_all
from errors import DataUnavailable, InternalError
from models import CallableRequest, PublicLeagueResponse, RankTableResponse, Tier
from reporting.format_utils import display_row

logger = logging.getLogger(__name__)

router = APIRouter(tags=["league"])


def build_league_view(db: Session, tier: Tier) -> List[dict]:
    """Store -> aggregate -> filter for one tier."""
    deals = load_deals(db)
    rows = apply_visibility_all(aggregate_deals(deals), tier)
    logger.info("LEAGUE_DONE tier=%s deals=%s managers=%s", tier.value, len(deals), len(rows))
    return rows


def _guarded(caller: str, compute: Callable[[], Any]) -> Any:
    """Run a callable handler body; every failure surfaces as the generic internal error."""
    try:
        return compute()
    except DataUnavailable:
        # Returning [] here would look like "no deals" to a paying caller.
        raise InternalError()
    except Exception:
        logger.exception("LEAGUE_ERR handler=%s", caller)
        raise InternalError()


def _callable_league(db: Session, tier: Tier, caller: str) -> List[dict]:
    return _guarded(caller, lambda: build_league_view(db, tier))


@router.get("/getPublicLeagueData", response_model=PublicLeagueResponse)
def get_public_league_data(db: Session = Depends(get_db)):
    try:
        data = build_league_view(db, Tier.GUEST)
    except DataUnavailable:
        logger.warning("LEAGUE_EMPTY handler=getPublicLeagueData reason=data_unavailable")
        data = []
    except Exception:
        logger.exception("LEAGUE_ERR handler=getPublicLeagueData")
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to fetch league data"},
        )
    return PublicLeagueResponse(success=True, data=data)


@router.post("/getAuthenticatedLeagueData")
def get_authenticated_league_data(
    claims: IdentityClaims = Depends(require_auth),
    db: Session = Depends(get_db),
):
    # Any signed-in caller gets the free view; subscribers have their own endpoint.
    return _callable_league(db, Tier.FREE, "getAuthenticatedLeagueData")


@router.post("/getSubscriberLeagueData")
def get_subscriber_league_data(
    claims: IdentityClaims = Depends(require_subscriber),
    db: Session = Depends(get_db),
):
    return _callable_league(db, Tier.SUBSCRIBER, "getSubscriberLeagueData")


@router.post("/getRankTableData", response_model=RankTableResponse)
def get_rank_table_data(
    body: Optional[CallableRequest] = Body(default=None),
    claims: Optional[IdentityClaims] = Depends(get_optional_claims),
    db: Session = Depends(get_db),
):
    tier = resolve_tier(claims)
    display = bool((body.data if body else {}).get("display"))
    try:
        rows = build_league_view(db, tier)
    except Exception:
        logger.exception("LEAGUE_ERR handler=getRankTableData tier=%s", tier.value)
        return RankTableResponse(success=False, error="Failed to fetch rank table data")
    if display:
        rows = [display_row(r) for r in rows]
    return RankTableResponse(success=True, tier=tier, data=rows)


@router.post("/getUniqueParticipants")
def get_unique_participants(
    claims: IdentityClaims = Depends(require_subscriber),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return _guarded(
        "getUniqueParticipants",
        lambda: unique_participants(load_deals(db)).model_dump(),
    )


@router.post("/getOsTypeBreakdown")
def get_os_type_breakdown(
    claims: IdentityClaims = Depends(require_subscriber),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    return _guarded(
        "getOsTypeBreakdown",
        lambda: [row.model_dump() for row in os_type_breakdown(load_deals(db))],
    )
