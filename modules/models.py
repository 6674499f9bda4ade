"""
Rotation Data Proxy - Data Models

Request-scoped records shared by the extractors, the source chains and the
API layer. Nothing here is persisted.
"""
from __future__ import annotations

from datetime import date
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Union

UNKNOWN = "?"
SEE_FILING = "See filing"


class TransactionType(str, Enum):
    """Normalized transaction direction."""
    PURCHASE = "Purchase"
    SALE = "Sale"
    EXCHANGE = "Exchange"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class AmountRange:
    """Numeric disclosure band."""
    min: float
    max: float

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max}


# Resolved value, numeric band, or an opaque display string such as
# "$1,001 - $15,000" when only the printed band is known.
Amount = Union[float, AmountRange, str]


def amount_to_json(amount: Amount):
    if isinstance(amount, AmountRange):
        return amount.to_dict()
    return amount


def _iso(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d else None


@dataclass
class TradeFact:
    """Canonical normalized trade record (any source)."""
    subject: str
    role: str
    ticker: str  # 1-5 uppercase letters or "?"
    company: str
    transaction_type: TransactionType
    amount: Amount
    trade_date: Optional[date]
    filed_date: Optional[date]
    source_url: Optional[str]
    origin: str
    # Display extras, never part of dedup or clustering keys
    party: Optional[str] = None
    chamber: Optional[str] = None
    state: Optional[str] = None
    price: Optional[float] = None
    shares: Optional[float] = None

    @property
    def is_placeholder(self) -> bool:
        return self.ticker == UNKNOWN and self.amount == SEE_FILING

    def to_dict(self) -> dict:
        data = {
            "subject": self.subject,
            "role": self.role,
            "ticker": self.ticker,
            "company": self.company,
            "transaction_type": self.transaction_type.value,
            "amount": amount_to_json(self.amount),
            "trade_date": _iso(self.trade_date),
            "filed_date": _iso(self.filed_date),
            "source_url": self.source_url,
            "origin": self.origin,
        }
        for key in ("party", "chamber", "state", "price", "shares"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class FilingReference:
    """A filing seen in an index/listing, before its document is extracted."""
    subject: str
    role: str
    filed_date: Optional[date]
    document_id: str
    document_year: int
    document_url: str
    company: Optional[str] = None
    source_url: Optional[str] = None

    def placeholder(self, origin: str) -> TradeFact:
        """The record emitted when the filing exists but its trades could not be read."""
        return TradeFact(
            subject=self.subject,
            role=self.role,
            ticker=UNKNOWN,
            company=self.company or SEE_FILING,
            transaction_type=TransactionType.UNKNOWN,
            amount=SEE_FILING,
            trade_date=self.filed_date,
            filed_date=self.filed_date,
            source_url=self.source_url or self.document_url,
            origin=origin,
        )


@dataclass
class ExtractedTrade:
    """One transaction recovered by an extractor, before filing metadata is attached."""
    ticker: str
    transaction_type: TransactionType
    amount: Amount
    asset_description: Optional[str] = None
    trade_date: Optional[date] = None
    filed_date: Optional[date] = None
    subject: Optional[str] = None
    role: Optional[str] = None
    price: Optional[float] = None
    shares: Optional[float] = None

    def to_fact(self, origin: str,
                filing: Optional[FilingReference] = None,
                source_url: Optional[str] = None) -> TradeFact:
        """Merge row-level fields with the filing context (row wins)."""
        subject = self.subject or (filing.subject if filing else None) or "Unknown"
        role = self.role or (filing.role if filing else None) or UNKNOWN
        company = self.asset_description or (filing.company if filing else None) or UNKNOWN
        filed = self.filed_date or (filing.filed_date if filing else None)
        if source_url is None and filing is not None:
            source_url = filing.source_url or filing.document_url

        return TradeFact(
            subject=subject,
            role=role,
            ticker=self.ticker,
            company=company,
            transaction_type=self.transaction_type,
            amount=self.amount,
            trade_date=self.trade_date or filed,
            filed_date=filed,
            source_url=source_url,
            origin=origin,
            price=self.price,
            shares=self.shares,
        )


@dataclass
class TickerCluster:
    """Buy/sell activity grouped under one ticker."""
    ticker: str
    company: str
    buys: list[TradeFact] = field(default_factory=list)
    sells: list[TradeFact] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.buys) + len(self.sells)

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "company": self.company,
            "buys": [t.to_dict() for t in self.buys],
            "sells": [t.to_dict() for t in self.sells],
        }
