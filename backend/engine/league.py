from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from models import DealRecord, ManagerAggregate


@dataclass
class _ManagerAccumulator:
    """Running totals for one lead-left manager within a single aggregate_deals call."""
    lead_left_manager: str
    aggregate_par: float = 0.0
    fee_sum: float = 0.0
    fee_count: int = 0
    deals: List[DealRecord] = field(default_factory=list)

    def add(self, deal: DealRecord) -> None:
        self.deals.append(deal)
        self.aggregate_par += deal.total_par
        fee = deal.fee_total
        if _is_finite_number(fee):
            self.fee_sum += fee
            self.fee_count += 1


def _is_finite_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def average_fee_amount(fee_sum: float, fee_count: int) -> Optional[float]:
    """Mean of the known fees; None when no deal in the group has one."""
    if fee_count <= 0:
        return None
    return _finite_or_none(fee_sum / fee_count)


def average_fee_percentage(
    avg_fee_amount: Optional[float],
    aggregate_par: float,
    fee_count: int,
) -> Optional[float]:
    """
    Average fee as a percentage of average par.

    The denominator is aggregate_par spread over the fee-bearing deals only,
    not over every deal in the group. Kept that way until the business
    definition is confirmed.
    """
    if avg_fee_amount is None or fee_count <= 0:
        return None
    avg_par = aggregate_par / fee_count
    if avg_par <= 0:
        return None
    return _finite_or_none(avg_fee_amount / avg_par * 100.0)


def fee_to_par_ratio(deal: DealRecord) -> Optional[float]:
    fee = deal.fee_total
    if not _is_finite_number(fee) or deal.total_par <= 0:
        return None
    return _finite_or_none(fee / deal.total_par)


def sort_deals_by_fee_ratio(deals: Sequence[DealRecord]) -> List[DealRecord]:
    """Highest fee-to-par first; deals without a usable ratio go last. Stable."""
    def key(deal: DealRecord) -> tuple[int, float]:
        ratio = fee_to_par_ratio(deal)
        if ratio is None:
            return (1, 0.0)
        return (0, -ratio)

    return sorted(deals, key=key)


def aggregate_deals(deals: Sequence[DealRecord]) -> List[ManagerAggregate]:
    """
    Build the league table: one row per lead-left manager.

    Rows are ordered by aggregate par, largest first; equal totals keep the
    order in which their manager first appeared. rank is the 1-based position.
    """
    accumulators: Dict[str, _ManagerAccumulator] = {}
    for deal in deals:
        key = deal.lead_left_manager
        acc = accumulators.get(key)
        if acc is None:
            acc = accumulators[key] = _ManagerAccumulator(lead_left_manager=key)
        acc.add(deal)

    ordered = sorted(accumulators.values(), key=lambda a: -a.aggregate_par)

    rows: List[ManagerAggregate] = []
    for index, acc in enumerate(ordered):
        avg_fee = average_fee_amount(acc.fee_sum, acc.fee_count)
        rows.append(
            ManagerAggregate(
                lead_left_manager=acc.lead_left_manager,
                aggregate_par=acc.aggregate_par,
                deal_count=len(acc.deals),
                avg_fee_amount=avg_fee,
                avg_fee_percentage=average_fee_percentage(avg_fee, acc.aggregate_par, acc.fee_count),
                rank=index + 1,
                deals=sort_deals_by_fee_ratio(acc.deals),
            )
        )
    return rows
