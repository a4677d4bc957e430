"""Subscriber-only summaries across the whole deal set: participant directory and offering-type split."""
from __future__ import annotations

from typing import Dict, List, Sequence

from models import DealRecord, OsTypeRow, ParticipantLists

UNKNOWN_OS_TYPE = "Unknown"


def unique_participants(deals: Sequence[DealRecord]) -> ParticipantLists:
    lead_managers: set[str] = set()
    co_managers: set[str] = set()
    counsels: set[str] = set()
    municipal_advisors: set[str] = set()
    underwriters_advisors: set[str] = set()
    for deal in deals:
        lead_managers.update(m for m in deal.lead_managers if m)
        co_managers.update(deal.co_managers)
        counsels.update(deal.counsels)
        municipal_advisors.update(deal.municipal_advisors)
        underwriters_advisors.update(deal.underwriters_advisors)
    return ParticipantLists(
        lead_managers=sorted(lead_managers),
        co_managers=sorted(co_managers),
        counsels=sorted(counsels),
        municipal_advisors=sorted(municipal_advisors),
        underwriters_advisors=sorted(underwriters_advisors),
    )


def os_type_breakdown(deals: Sequence[DealRecord]) -> List[OsTypeRow]:
    """
    Par and known underwriter fees per offering type, largest par first.
    share_of_par is the fraction of all par in the set; None when the set has no par.
    """
    totals: Dict[str, Dict[str, float]] = {}
    for deal in deals:
        key = deal.os_type or UNKNOWN_OS_TYPE
        bucket = totals.setdefault(key, {"total_par": 0.0, "underwriter_fee": 0.0, "deal_count": 0})
        bucket["total_par"] += deal.total_par
        if deal.fee_total is not None:
            bucket["underwriter_fee"] += deal.fee_total
        bucket["deal_count"] += 1

    overall_par = sum(b["total_par"] for b in totals.values())
    rows = [
        OsTypeRow(
            os_type=os_type,
            total_par=b["total_par"],
            underwriter_fee=b["underwriter_fee"],
            deal_count=int(b["deal_count"]),
            share_of_par=(b["total_par"] / overall_par) if overall_par > 0 else None,
        )
        for os_type, b in totals.items()
    ]
    return sorted(rows, key=lambda r: -r.total_par)
