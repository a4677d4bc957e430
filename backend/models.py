from __future__ import annotations

import math
from datetime import date as _date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

UNKNOWN_MANAGER = "Unknown Manager"
LOCKED = "locked"


class Tier(str, Enum):
    GUEST = "guest"
    FREE = "free"
    SUBSCRIBER = "subscriber"

    @property
    def level(self) -> int:
        return _TIER_LEVELS[self]

    def at_least(self, other: "Tier") -> bool:
        return self.level >= other.level


_TIER_LEVELS = {Tier.GUEST: 0, Tier.FREE: 1, Tier.SUBSCRIBER: 2}


def _coerce_number(value: Any) -> Optional[float]:
    """Return a finite float for numbers and numeric strings, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip().replace(",", "").replace("$", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def _coerce_str_list(value: Any, keep_blank: bool = False) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    out: List[str] = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip()
        if text or keep_blank:
            out.append(text)
    return out


class UnderwriterFee(BaseModel):
    """Underwriter compensation. total=None means the fee is not known yet (not zero)."""
    model_config = ConfigDict(extra="ignore")

    total: Optional[float] = None
    scrape_success: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("scrape_success", "scrapeSuccess")
    )

    @field_validator("total", mode="before")
    @classmethod
    def normalize_total(cls, v: Any) -> Optional[float]:
        number = _coerce_number(v)
        if number is None or number < 0:
            return None
        return number

    @field_validator("scrape_success", mode="before")
    @classmethod
    def normalize_scrape_success(cls, v: Any) -> Optional[bool]:
        return v if isinstance(v, bool) else None


class DealRecord(BaseModel):
    """
    One municipal bond issuance as stored in the deals collection.

    Validation never rejects a dict: missing numbers default to 0, missing
    lists to [], so every stored document can take part in aggregation.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    issuer: str = ""
    series_name_obligor: str = Field(
        default="", validation_alias=AliasChoices("series_name_obligor", "seriesNameObligor")
    )
    total_par: float = Field(default=0.0, validation_alias=AliasChoices("total_par", "totalPar"))
    underwriter_fee: Optional[UnderwriterFee] = Field(
        default=None, validation_alias=AliasChoices("underwriter_fee", "underwriterFee")
    )
    lead_managers: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("lead_managers", "leadManagers")
    )
    co_managers: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("co_managers", "coManagers")
    )
    counsels: List[str] = Field(default_factory=list)
    municipal_advisors: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("municipal_advisors", "municipalAdvisors")
    )
    underwriters_advisors: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("underwriters_advisors", "underwritersAdvisors"),
    )
    os_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("os_type", "osType"))
    date: Optional[str] = None
    state: Optional[str] = None
    sector: Optional[str] = None
    method: Optional[str] = None
    emma_os_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("emma_os_url", "emmaOsUrl")
    )

    @field_validator("issuer", "series_name_obligor", mode="before")
    @classmethod
    def normalize_name(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("total_par", mode="before")
    @classmethod
    def normalize_total_par(cls, v: Any) -> float:
        number = _coerce_number(v)
        if number is None or number < 0:
            return 0.0
        return number

    @field_validator("underwriter_fee", mode="before")
    @classmethod
    def normalize_fee(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, dict):
            return v
        # Some documents carry the fee as a bare number.
        return {"total": v}

    @field_validator("lead_managers", mode="before")
    @classmethod
    def normalize_lead_managers(cls, v: Any) -> List[str]:
        # Position matters: a blank first entry still means no known lead-left manager.
        return _coerce_str_list(v, keep_blank=True)

    @field_validator(
        "co_managers",
        "counsels",
        "municipal_advisors",
        "underwriters_advisors",
        mode="before",
    )
    @classmethod
    def normalize_lists(cls, v: Any) -> List[str]:
        return _coerce_str_list(v)

    @field_validator("os_type", "date", "state", "sector", "method", "emma_os_url", mode="before")
    @classmethod
    def normalize_optional_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if isinstance(v, (datetime, _date)):
            return v.isoformat()
        text = str(v).strip()
        return text or None

    @property
    def display_name(self) -> str:
        return self.series_name_obligor or self.issuer

    @property
    def fee_total(self) -> Optional[float]:
        return self.underwriter_fee.total if self.underwriter_fee is not None else None

    @property
    def lead_left_manager(self) -> str:
        if self.lead_managers and self.lead_managers[0]:
            return self.lead_managers[0]
        return UNKNOWN_MANAGER


class ManagerAggregate(BaseModel):
    """League-table row for one lead-left manager, before tier filtering."""
    model_config = ConfigDict(frozen=True)

    lead_left_manager: str
    aggregate_par: float
    deal_count: int
    avg_fee_amount: Optional[float] = None
    avg_fee_percentage: Optional[float] = None
    rank: int
    deals: List[DealRecord] = Field(default_factory=list)


# --- Callable / HTTP payloads ---

class CallableRequest(BaseModel):
    """Callable-protocol body: {"data": {...}}. Every field is optional."""
    data: Dict[str, Any] = Field(default_factory=dict)


class PublicLeagueResponse(BaseModel):
    success: bool
    data: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None


class RankTableResponse(BaseModel):
    success: bool
    tier: Optional[Tier] = None
    data: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None


class ParticipantLists(BaseModel):
    lead_managers: List[str] = Field(default_factory=list)
    co_managers: List[str] = Field(default_factory=list)
    counsels: List[str] = Field(default_factory=list)
    municipal_advisors: List[str] = Field(default_factory=list)
    underwriters_advisors: List[str] = Field(default_factory=list)


class OsTypeRow(BaseModel):
    os_type: str
    total_par: float = 0.0
    underwriter_fee: float = 0.0
    deal_count: int = 0
    share_of_par: Optional[float] = None
