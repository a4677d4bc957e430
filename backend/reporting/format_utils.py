"""Consistent formatting for league-table numbers. Never render raw floats; null renders as '-'."""
from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Dict

from models import LOCKED

EMPTY = "-"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def format_currency(value: Any, precision: int = 0) -> str:
    if value == LOCKED:
        return LOCKED
    if not _is_number(value):
        return EMPTY
    if precision <= 0:
        return f"${value:,.0f}" if abs(value) >= 1 or value == 0 else f"${value:,.2f}"
    return f"${value:,.{precision}f}"


def format_percent(value: Any, precision: int = 2) -> str:
    """value is already a percentage (0.52 -> '0.52%')."""
    if value == LOCKED:
        return LOCKED
    if not _is_number(value):
        return EMPTY
    return f"{value:,.{precision}f}%"


def format_date(d: Any) -> str:
    if d is None:
        return EMPTY
    if isinstance(d, (date, datetime)):
        return d.strftime("%m.%d.%Y")
    text = str(d).strip()
    if not text:
        return EMPTY
    for fmt in ("%Y-%m-%d", "%m.%d.%Y", "%m/%d/%Y", "%Y/%m/%d"):
        try:
            parsed = datetime.strptime(text[:10], fmt).date()
            return parsed.strftime("%m.%d.%Y")
        except ValueError:
            continue
    return text


def _display_deal(deal: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(deal)
    if "total_par" in out:
        out["total_par"] = format_currency(out["total_par"])
    if "underwriter_fee" in out:
        fee = out["underwriter_fee"]
        out["underwriter_fee"] = format_currency(fee.get("total") if isinstance(fee, dict) else None)
    if "date" in out:
        out["date"] = format_date(out["date"])
    return out


def display_row(row: Dict[str, Any]) -> Dict[str, Any]:
    """Format an already tier-filtered league row for direct rendering."""
    out = dict(row)
    out["aggregatePar"] = format_currency(row.get("aggregatePar"))
    out["avgFeeAmount"] = format_currency(row.get("avgFeeAmount"))
    out["avgFeePercentage"] = format_percent(row.get("avgFeePercentage"))
    deals = row.get("deals")
    if isinstance(deals, list):
        out["deals"] = [_display_deal(d) for d in deals]
    return out
