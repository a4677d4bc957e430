"""
Tier-aware serializer for league rows.

Each output field has a minimum tier. Below it the value becomes LOCKED and
the row's visibilityInfo names the tier that unlocks it. A value missing from
the source data stays null, which the client renders differently from a lock.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from models import LOCKED, DealRecord, ManagerAggregate, Tier

# (output key, getter, minimum tier)
RowField = Tuple[str, Callable[[ManagerAggregate], Any], Tier]
DealField = Tuple[str, Callable[[DealRecord], Any], Tier]

ROW_FIELDS: Tuple[RowField, ...] = (
    ("leadLeftManager", lambda row: row.lead_left_manager, Tier.GUEST),
    ("rank", lambda row: row.rank, Tier.GUEST),
    ("aggregatePar", lambda row: row.aggregate_par, Tier.GUEST),
    ("dealCount", lambda row: row.deal_count, Tier.GUEST),
    ("avgFeeAmount", lambda row: row.avg_fee_amount, Tier.FREE),
    ("avgFeePercentage", lambda row: row.avg_fee_percentage, Tier.FREE),
)

# Free callers get deal summaries; the full deal list is a subscriber feature.
DEAL_LIST_MIN_TIER = Tier.FREE
DEAL_LIST_MARKER_TIER = Tier.SUBSCRIBER
DEAL_DETAILS_MIN_TIER = Tier.SUBSCRIBER

DEAL_FIELDS: Tuple[DealField, ...] = (
    ("series_name_obligor", lambda deal: deal.display_name, Tier.FREE),
    ("total_par", lambda deal: deal.total_par, Tier.FREE),
    ("issuer", lambda deal: deal.issuer or None, Tier.SUBSCRIBER),
    ("date", lambda deal: deal.date, Tier.SUBSCRIBER),
    ("state", lambda deal: deal.state, Tier.SUBSCRIBER),
    ("sector", lambda deal: deal.sector, Tier.SUBSCRIBER),
    ("method", lambda deal: deal.method, Tier.SUBSCRIBER),
    ("os_type", lambda deal: deal.os_type, Tier.SUBSCRIBER),
    ("lead_managers", lambda deal: [m for m in deal.lead_managers if m], Tier.SUBSCRIBER),
    ("co_managers", lambda deal: list(deal.co_managers), Tier.SUBSCRIBER),
    ("counsels", lambda deal: list(deal.counsels), Tier.SUBSCRIBER),
    ("municipal_advisors", lambda deal: list(deal.municipal_advisors), Tier.SUBSCRIBER),
    ("underwriters_advisors", lambda deal: list(deal.underwriters_advisors), Tier.SUBSCRIBER),
)

# Only emitted when the deal actually has a document link.
OPTIONAL_DEAL_FIELDS: Tuple[DealField, ...] = (
    ("emma_os_url", lambda deal: deal.emma_os_url, Tier.SUBSCRIBER),
)


def unlock_marker(tier: Tier) -> str:
    return f"need_{tier.value}"


def _underwriter_fee_view(deal: DealRecord, tier: Tier) -> Optional[Dict[str, Any]]:
    if deal.underwriter_fee is None:
        return None
    if tier.at_least(DEAL_DETAILS_MIN_TIER):
        return deal.underwriter_fee.model_dump()
    return {"total": deal.underwriter_fee.total}


def deal_view(deal: DealRecord, tier: Tier) -> Dict[str, Any]:
    """Fields of one deal visible at tier, in wire (snake_case) naming."""
    out: Dict[str, Any] = {}
    for key, getter, min_tier in DEAL_FIELDS:
        if tier.at_least(min_tier):
            out[key] = getter(deal)
    if tier.at_least(DEAL_LIST_MIN_TIER):
        out["underwriter_fee"] = _underwriter_fee_view(deal, tier)
    for key, getter, min_tier in OPTIONAL_DEAL_FIELDS:
        value = getter(deal)
        if value and tier.at_least(min_tier):
            out[key] = value
    return out


def apply_visibility(row: ManagerAggregate, tier: Tier) -> Dict[str, Any]:
    """Serialize one league row for a caller at tier. Does not modify row."""
    out: Dict[str, Any] = {}
    visibility_info: Dict[str, str] = {}

    for key, getter, min_tier in ROW_FIELDS:
        if tier.at_least(min_tier):
            out[key] = getter(row)
        else:
            out[key] = LOCKED
            visibility_info[key] = unlock_marker(min_tier)

    if tier.at_least(DEAL_LIST_MIN_TIER):
        out["deals"] = [deal_view(deal, tier) for deal in row.deals]
        if not tier.at_least(DEAL_DETAILS_MIN_TIER):
            visibility_info["dealDetails"] = unlock_marker(DEAL_DETAILS_MIN_TIER)
    else:
        out["deals"] = LOCKED
        visibility_info["deals"] = unlock_marker(DEAL_LIST_MARKER_TIER)

    if visibility_info:
        out["visibilityInfo"] = visibility_info
    return out


def apply_visibility_all(rows: Sequence[ManagerAggregate], tier: Tier) -> List[Dict[str, Any]]:
    return [apply_visibility(row, tier) for row in rows]
