"""
Rotation Data Proxy - Trade Extractors

Turns one normalized document into zero or more ExtractedTrade records.
Three interchangeable strategies share the ``extract(text, context)``
contract:

- TableRowExtractor: HTML listing tables read by fixed column position
- FlattenedStreamExtractor: PTR PDF text layers flattened to one line
- LooseXmlExtractor: XML whose tag names drift across filings and years

Extraction never raises on malformed input; an empty list means the caller
should fall back to a placeholder.
"""
from __future__ import annotations

import re
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Iterator, Optional

from bs4 import BeautifulSoup

from modules.models import ExtractedTrade, FilingReference, TransactionType
from modules.parsing import (
    TRANSACTION_CODES,
    format_amount_display,
    format_district,
    normalize_ticker,
    normalize_transaction,
    parse_date,
    parse_money,
)
from modules.text_normalizer import strip_markup

extract_logger = logging.getLogger("rotation.extractors")


# -----------------------------------------------------------------------------
# Table-row strategy
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class TableLayout:
    """Column positions of a listing table whose layout is stable per endpoint."""
    min_cells: int
    ticker: int
    code: int
    value: tuple[int, ...]  # first non-empty cell wins
    trade_date: Optional[int] = None
    filed_date: Optional[int] = None
    company: Optional[int] = None
    subject: Optional[int] = None
    role: Optional[int] = None
    price: Optional[int] = None
    shares: Optional[int] = None
    # Value cells reported in thousands are scaled back to dollars
    value_scale: float = 1.0
    min_value: float = 0.0


OPENINSIDER_LAYOUT = TableLayout(
    min_cells=10,
    filed_date=1,
    trade_date=2,
    ticker=3,
    company=4,
    subject=5,
    role=6,
    code=7,
    price=8,
    shares=9,
    value=(11, 10),
    value_scale=1000.0,
    min_value=50_000.0,
)


def isolate_table(html: str, css_class: str) -> Optional[str]:
    """Return the markup of the first ``<table>`` carrying ``css_class``."""
    if not html:
        return None
    soup = BeautifulSoup(html, 'lxml')
    table = soup.find('table', class_=css_class)
    return str(table) if table else None


class TableRowExtractor:
    """Reads trades out of an isolated HTML table by column position."""

    def __init__(self, layout: TableLayout):
        self.layout = layout

    def _cell(self, cells: list[str], index: Optional[int]) -> str:
        if index is None or index >= len(cells):
            return ""
        return cells[index]

    def _value(self, cells: list[str]) -> float:
        for index in self.layout.value:
            raw = self._cell(cells, index)
            if raw:
                value = parse_money(raw)
                return (value or 0.0) * self.layout.value_scale
        return 0.0

    def extract(self, table_html: str, context=None) -> list[ExtractedTrade]:
        if not table_html:
            return []

        soup = BeautifulSoup(table_html, 'lxml')
        rows = soup.find_all('tr')[1:]  # Skip header row
        trades = []

        for row in rows:
            cells = [strip_markup(td.decode_contents()) for td in row.find_all('td')]
            if len(cells) < self.layout.min_cells:
                continue

            value = self._value(cells)
            if value < self.layout.min_value:
                continue

            layout = self.layout
            company = self._cell(cells, layout.company)
            trades.append(ExtractedTrade(
                ticker=normalize_ticker(self._cell(cells, layout.ticker)),
                transaction_type=normalize_transaction(self._cell(cells, layout.code)),
                amount=value,
                asset_description=company or None,
                trade_date=parse_date(self._cell(cells, layout.trade_date)),
                filed_date=parse_date(self._cell(cells, layout.filed_date)),
                subject=self._cell(cells, layout.subject) or None,
                role=self._cell(cells, layout.role) or None,
                price=parse_money(self._cell(cells, layout.price)),
                shares=parse_money(self._cell(cells, layout.shares)),
            ))

        extract_logger.debug(f"Table rows: {len(rows)}, usable trades: {len(trades)}")
        return trades


# -----------------------------------------------------------------------------
# Flattened-stream strategy (PTR PDFs)
# -----------------------------------------------------------------------------
_MARKER = r'\((?P<marker>[A-Z]{1,5})\)'
_DATE = r'\d{2}/\d{2}/\d{4}'
_AMOUNT = r'(?:Over\s+)?\$[\d,]+(?:\.\d{2})?(?:\s*[-–]\s*\$[\d,]+(?:\.\d{2})?)?'

# Code, transaction date, notification date, amount. Whitespace between
# them is optional because some layouts print "P12/08/2025".
_TIGHT_TXN = (
    rf'(?<![A-Za-z])(?P<code>[PSE])(?:\s*\((?i:partial)\))?'
    rf'\s*(?P<tx_date>{_DATE})\s*(?P<notified>{_DATE})\s*(?P<amount>{_AMOUNT})'
)
_TIGHT_RE = re.compile(rf'{_MARKER}|{_TIGHT_TXN}')
_MARKER_RE = re.compile(_MARKER)
_LOOSE_TXN_RE = re.compile(rf'(?<![A-Za-z])(?P<code>[PSE])(?![A-Za-z]).*?(?P<amount>{_AMOUNT})')
_DATE_RE = re.compile(_DATE)
_OWNER_CODE_RE = re.compile(r'\b(?:SP|JT|DC)\b')

_DESCRIPTION_CHARS = 80


class FlattenedStreamExtractor:
    """
    Single-pass scan over a flattened PTR text layer.

    The only state is the most recent ticker marker. A transaction binds to
    it and the marker is kept, because one asset line often carries several
    transactions. When the tight grammar finds nothing at all, a looser
    marker-then-code-then-amount search runs over a bounded window; it can
    pair a ticker with a neighbour's transaction, which is accepted.
    """

    def __init__(self, non_ticker_codes: Iterable[str] = (), window: int = 250):
        self.non_ticker_codes = frozenset(code.upper() for code in non_ticker_codes)
        self.window = window

    def _is_ticker(self, marker: str) -> bool:
        return marker not in self.non_ticker_codes

    def _describe(self, segment: str) -> Optional[str]:
        """Asset name printed before the ticker marker, after the owner code."""
        owners = list(_OWNER_CODE_RE.finditer(segment))
        if owners:
            segment = segment[owners[-1].end():]
        segment = segment.strip(' -:')
        if len(segment) > _DESCRIPTION_CHARS:
            segment = segment[-_DESCRIPTION_CHARS:].split(' ', 1)[-1]
        return segment.strip() or None

    def _scan_tight(self, text: str) -> list[ExtractedTrade]:
        trades = []
        current_ticker = None
        description = None
        segment_start = 0

        for match in _TIGHT_RE.finditer(text):
            marker = match.group('marker')
            if marker:
                if self._is_ticker(marker):
                    current_ticker = marker
                    description = self._describe(text[segment_start:match.start()])
                continue

            if current_ticker is None:
                continue

            trades.append(ExtractedTrade(
                ticker=current_ticker,
                transaction_type=TRANSACTION_CODES[match.group('code')],
                amount=format_amount_display(match.group('amount')),
                asset_description=description,
                trade_date=parse_date(match.group('tx_date')),
            ))
            segment_start = match.end()

        return trades

    def _scan_loose(self, text: str) -> list[ExtractedTrade]:
        trades = []
        for match in _MARKER_RE.finditer(text):
            marker = match.group('marker')
            if not self._is_ticker(marker):
                continue

            window = text[match.end():match.end() + self.window]
            hit = _LOOSE_TXN_RE.search(window)
            if not hit:
                continue

            date_match = _DATE_RE.search(window, hit.start())
            trades.append(ExtractedTrade(
                ticker=marker,
                transaction_type=TRANSACTION_CODES[hit.group('code')],
                amount=format_amount_display(hit.group('amount')),
                trade_date=parse_date(date_match.group()) if date_match else None,
            ))

        if trades:
            extract_logger.debug(f"Loose grammar recovered {len(trades)} trades")
        return trades

    def extract(self, text: str, context=None) -> list[ExtractedTrade]:
        if not text or not isinstance(text, str):
            return []
        trades = self._scan_tight(text)
        if not trades:
            trades = self._scan_loose(text)
        return trades


# -----------------------------------------------------------------------------
# Loose-XML strategy
# -----------------------------------------------------------------------------
# Logical field -> tag names it has been spelled as, most preferred first
FieldSynonyms = dict[str, tuple[str, ...]]


class XmlRecord:
    """Field access over one record element by ordered tag synonyms."""

    def __init__(self, element, synonyms: FieldSynonyms, fallback=None,
                 document_fields: frozenset = frozenset()):
        self.element = element
        self.synonyms = synonyms
        self.fallback = fallback
        self.document_fields = document_fields

    def get(self, field: str) -> Optional[str]:
        """
        First non-empty synonym in the record.

        Only ``document_fields`` are then looked up in the fallback scope;
        any other field missing from the record is None.
        """
        scopes = [self.element]
        if self.fallback is not None and field in self.document_fields:
            scopes.append(self.fallback)
        for scope in scopes:
            for tag in self.synonyms.get(field, ()):
                found = scope.find(tag)
                if found is None:
                    continue
                text = found.get_text(' ', strip=True)
                if text:
                    return text
        return None

    def flag(self, field: str) -> bool:
        return (self.get(field) or "").lower() in ("1", "true")


class XmlRecordReader:
    """
    Record iteration over XML documents whose vocabulary is inconsistent.

    Subclasses declare the record element names and field synonyms; a
    missing field yields None for that field instead of failing the record.
    """
    record_tags: tuple[str, ...] = ()
    fields: FieldSynonyms = {}
    # Fields that describe the whole document, looked up there when a record lacks them
    document_fields: frozenset = frozenset()

    def parse(self, xml_text: str):
        if not xml_text:
            return None
        try:
            return BeautifulSoup(xml_text, 'xml')
        except Exception as e:
            extract_logger.warning(f"XML parse failed: {e}")
            return None

    def iter_records(self, xml_text: str) -> Iterator[XmlRecord]:
        document = self.parse(xml_text)
        if document is None:
            return
        fallback = document if self.document_fields else None
        for element in document.find_all(list(self.record_tags)):
            yield XmlRecord(element, self.fields, fallback, self.document_fields)


class LooseXmlExtractor(XmlRecordReader):
    """Trade extraction, one ExtractedTrade per usable record."""

    def to_trade(self, record: XmlRecord) -> Optional[ExtractedTrade]:
        raise NotImplementedError

    def extract(self, xml_text: str, context=None) -> list[ExtractedTrade]:
        trades = []
        for record in self.iter_records(xml_text):
            trade = self.to_trade(record)
            if trade is not None:
                trades.append(trade)
        return trades


# Form 4 transaction codes that are not P/S
FORM4_CONVERSION_CODES = {"M", "C", "X", "O"}


class Form4Extractor(LooseXmlExtractor):
    """Transactions from an SEC ownership (Form 4) XML document."""
    record_tags = ("nonDerivativeTransaction", "derivativeTransaction")
    document_fields = frozenset({
        "ticker", "description", "period", "subject", "officer_title", "other_text",
        "is_director", "is_officer", "is_ten_percent", "is_other",
    })
    fields = {
        "ticker": ("issuerTradingSymbol", "tradingSymbol", "ticker"),
        "code": ("transactionCode", "transactionType"),
        "shares": ("transactionShares", "shares", "sharesAmount"),
        "price": ("transactionPricePerShare", "pricePerShare"),
        "total": ("transactionTotalValue", "totalValue"),
        "description": ("issuerName",),
        "date": ("transactionDate",),
        "period": ("periodOfReport",),
        "subject": ("rptOwnerName", "reportingOwnerName", "ownerName"),
        "officer_title": ("officerTitle",),
        "other_text": ("otherText",),
        "is_director": ("isDirector",),
        "is_officer": ("isOfficer",),
        "is_ten_percent": ("isTenPercentOwner",),
        "is_other": ("isOther",),
    }

    def _role(self, record: XmlRecord) -> Optional[str]:
        if record.flag("is_director"):
            return "Director"
        if record.flag("is_officer"):
            return record.get("officer_title") or "Officer"
        if record.flag("is_ten_percent"):
            return "10% Owner"
        if record.flag("is_other"):
            return record.get("other_text") or "Other"
        return record.get("officer_title")

    def _transaction_type(self, code: Optional[str]) -> TransactionType:
        if code and code.strip().upper() in FORM4_CONVERSION_CODES:
            return TransactionType.EXCHANGE
        return normalize_transaction(code)

    def to_trade(self, record: XmlRecord) -> Optional[ExtractedTrade]:
        shares = parse_money(record.get("shares"))
        price = parse_money(record.get("price"))
        total = parse_money(record.get("total"))
        if total is None and shares is not None and price is not None:
            total = round(shares * price, 2)

        return ExtractedTrade(
            ticker=normalize_ticker(record.get("ticker")),
            transaction_type=self._transaction_type(record.get("code")),
            amount=total if total is not None else "Undisclosed",
            asset_description=record.get("description"),
            trade_date=parse_date(record.get("date") or record.get("period")),
            subject=record.get("subject"),
            role=self._role(record),
            price=price,
            shares=shares,
        )


class HouseIndexReader(XmlRecordReader):
    """Filing rows (``<Member>``) of the House Clerk annual disclosure index."""
    record_tags = ("Member",)
    fields = {
        "first": ("First", "FirstName"),
        "last": ("Last", "LastName"),
        "name": ("Name", "FullName"),
        "filing_type": ("FilingType", "DocType"),
        "filed": ("FilingDate", "DateFiled"),
        "doc_id": ("DocID", "DocId", "DocumentID"),
        "district": ("StateDst", "StateDistrict", "State"),
        "year": ("Year", "FilingYear"),
    }

    def member_filings(self, xml_text: str, year: int,
                       document_url: Callable[[int, str], str],
                       since: Optional[date] = None,
                       filing_types: tuple[str, ...] = ("P",)) -> list[FilingReference]:
        """
        Periodic transaction report filings listed in one year's index.

        Rows of another filing type, without a document id, or filed
        before ``since`` are skipped. An unreadable filing date falls back
        to January 1st of the index year.
        """
        filings = []
        for record in self.iter_records(xml_text):
            if (record.get("filing_type") or "").upper() not in filing_types:
                continue
            doc_id = record.get("doc_id")
            if not doc_id:
                continue

            filed = parse_date(record.get("filed")) or date(year, 1, 1)
            if since is not None and filed < since:
                continue

            name = record.get("name") or " ".join(
                part for part in (record.get("first"), record.get("last")) if part
            )
            url = document_url(year, doc_id)
            filings.append(FilingReference(
                subject=name or "Unknown",
                role=f"House — {format_district(record.get('district'))}",
                filed_date=filed,
                document_id=doc_id,
                document_year=year,
                document_url=url,
                source_url=url,
            ))
        return filings
