"""
Rotation Data Proxy - Field Parsing

Small, forgiving converters shared by every extractor: dates, tickers,
transaction codes, dollar amounts, and ordered-synonym field lookup.
None of these raise on bad input; they return a sentinel instead.
"""
from __future__ import annotations

import re
import logging
from datetime import date, datetime
from typing import Any, Iterable, Optional

from modules.models import UNKNOWN, Amount, AmountRange, TransactionType

parsing_logger = logging.getLogger("rotation.parsing")

TICKER_RE = re.compile(r'^[A-Z]{1,5}$')
UNDISCLOSED = "Undisclosed"

DATE_FORMATS = [
    "%m/%d/%Y",
    "%Y-%m-%d",
    "%m-%d-%Y",
    "%B %d, %Y",
    "%b %d, %Y",
]


# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------
def parse_date(value: Any) -> Optional[date]:
    """Parse the date formats seen across sources. ``MM/DD/YYYY`` is the common one."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    date_str = str(value).strip()
    if not date_str:
        return None

    # Timestamps: "2025-01-15T00:00:00Z", "2025-01-15 16:05:12"
    if re.match(r'^\d{4}-\d{2}-\d{2}[T ]', date_str):
        date_str = date_str[:10]

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    parsing_logger.debug(f"Could not parse date: {date_str}")
    return None


# -----------------------------------------------------------------------------
# Tickers and transaction codes
# -----------------------------------------------------------------------------
def normalize_ticker(value: Any) -> str:
    """Return a 1-5 letter uppercase ticker or the unknown sentinel."""
    if value is None:
        return UNKNOWN
    ticker = str(value).replace('$', '').strip().upper()
    # Exchange-qualified symbols: "AAPL:US"
    ticker = ticker.split(':', 1)[0].strip()
    if TICKER_RE.match(ticker):
        return ticker
    return UNKNOWN


# Single-letter codes printed on PTRs and Form 4s
TRANSACTION_CODES = {
    "P": TransactionType.PURCHASE,
    "S": TransactionType.SALE,
    "E": TransactionType.EXCHANGE,
}


def normalize_transaction(value: Any) -> TransactionType:
    """Map a raw type/code string onto the four normalized values."""
    if value is None:
        return TransactionType.UNKNOWN
    if isinstance(value, TransactionType):
        return value

    raw = str(value).strip()
    if not raw:
        return TransactionType.UNKNOWN

    # "P - Purchase", "S (partial)", "S-Sale+OE"
    code = re.match(r'^([A-Za-z])(?:$|[\s\-(+])', raw)
    if code and code.group(1).upper() in TRANSACTION_CODES:
        return TRANSACTION_CODES[code.group(1).upper()]

    lowered = raw.lower()
    if 'buy' in lowered or 'purchase' in lowered:
        return TransactionType.PURCHASE
    if 'sell' in lowered or 'sale' in lowered or 'sold' in lowered:
        return TransactionType.SALE
    if 'exchange' in lowered:
        return TransactionType.EXCHANGE
    return TransactionType.UNKNOWN


# -----------------------------------------------------------------------------
# Amounts
# -----------------------------------------------------------------------------
def parse_money(value: Any) -> Optional[float]:
    """Parse "$1,234.50", "+$12,000" or a number into a float."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = re.sub(r'[$,+\s]', '', str(value))
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def format_amount_display(text: str) -> str:
    """Normalize a printed band to the "$X - $Y" spacing."""
    text = re.sub(r'\s+', ' ', text).strip()
    return re.sub(r'\s*[-–]\s*', ' - ', text)


def parse_amount(value: Any) -> Amount:
    """
    Keep whichever representation the source gave us.

    Numbers stay numeric, {min, max} objects become an AmountRange and
    printed bands stay display strings.
    """
    if value is None or value == "":
        return UNDISCLOSED
    if isinstance(value, bool):
        return UNDISCLOSED
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, dict):
        low = parse_money(value.get('min'))
        high = parse_money(value.get('max'))
        if low is not None and high is not None:
            return AmountRange(min=low, max=high)
        if low is not None or high is not None:
            return low if low is not None else high
        return UNDISCLOSED
    return format_amount_display(str(value))


# -----------------------------------------------------------------------------
# Ordered-synonym lookup for JSON records
# -----------------------------------------------------------------------------
def _dig(record: Any, path: str) -> Any:
    current = record
    for part in path.split('.'):
        if isinstance(current, dict):
            current = current.get(part)
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
    return current


def first_value(record: Any, keys: Iterable[str]) -> Any:
    """
    Return the first non-empty value among candidate keys.

    Keys may be dotted paths ("politician.name", "committees.0").
    """
    for key in keys:
        value = _dig(record, key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value.strip() if isinstance(value, str) else value
    return None


def format_district(state_dst: Optional[str]) -> str:
    """"CA12" -> "CA-12"; anything else is returned trimmed."""
    if not state_dst:
        return UNKNOWN
    state_dst = state_dst.strip()
    match = re.match(r'^([A-Z]{2})(\d{1,2})$', state_dst)
    if match:
        return f"{match.group(1)}-{match.group(2)}"
    return state_dst
