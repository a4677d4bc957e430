"""
Bulk read of the deals collection. Raw documents become DealRecord at this boundary,
so the engine never has to check whether a field is present.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, List

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import DealDocument
from errors import DataUnavailable
from models import DealRecord

logger = logging.getLogger(__name__)


def normalize_deal(raw: Any) -> DealRecord | None:
    """Validate one stored document; None when it is not an object at all."""
    if isinstance(raw, DealRecord):
        return raw
    if not isinstance(raw, dict):
        return None
    try:
        return DealRecord.model_validate(raw)
    except ValidationError as e:
        # Field validators default everything they can; a failure here is a shape we have never seen.
        logger.warning("DEAL_MALFORMED err=%s", str(e)[:300])
        return None


def normalize_deals(raw_documents: Iterable[Any]) -> List[DealRecord]:
    deals: List[DealRecord] = []
    skipped = 0
    for raw in raw_documents:
        deal = normalize_deal(raw)
        if deal is None:
            skipped += 1
            continue
        deals.append(deal)
    if skipped:
        logger.warning("DEALS_SKIPPED count=%s", skipped)
    return deals


def load_deals(db: Session) -> List[DealRecord]:
    """
    Read every deal document, newest deal date first; deals without a date go
    last and id breaks ties. Read order decides rank among equal-par managers.
    Raises DataUnavailable when the store cannot be read.
    """
    try:
        rows = db.query(DealDocument).order_by(DealDocument.id).all()
    except SQLAlchemyError as e:
        logger.error("DEALS_READ_FAILED err=%s", str(e)[:300])
        raise DataUnavailable("deals collection unavailable") from e
    deals = normalize_deals(row.document for row in rows)
    # date is an ISO string inside the JSON document; reverse=True keeps the sort stable.
    return sorted(deals, key=lambda deal: deal.date or "", reverse=True)
