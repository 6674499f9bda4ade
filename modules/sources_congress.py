"""
Rotation Data Proxy - Congressional Trade Sources

Adapters for the congress chain, highest priority first:

1. House Clerk disclosure index + PTR PDFs (official)
2. Capitol Trades JSON API
3. House Stock Watcher feed
4. Senate Stock Watcher feed
5. Unusual Whales congress feed
6. Capitol Trades page scrape (embedded JSON)
"""
from __future__ import annotations

import re
import json
import asyncio
import logging
from datetime import date, timedelta
from typing import Any, Iterator, Optional

from bs4 import BeautifulSoup

from config.settings import Config, get_config
from modules.exceptions import FetchError
from modules.extractors import FlattenedStreamExtractor, HouseIndexReader
from modules.fetcher import DocumentFetcher
from modules.models import UNKNOWN, FilingReference, TradeFact
from modules.parsing import (
    first_value,
    format_district,
    normalize_ticker,
    normalize_transaction,
    parse_amount,
    parse_date,
)
from modules.pdf_text import pdf_to_text
from modules.source_chain import FilingSourceAdapter, SourceAdapter, SourceChain
from modules.text_normalizer import flatten_pdf_text

congress_logger = logging.getLogger("rotation.sources.congress")

HTML_HEADERS = {"Accept": "text/html,application/xhtml+xml", "Cache-Control": "no-cache"}
PTR_NOTE = "Periodic Transaction Reports (PTR), mandatory within 30-45 days of each trade"


# -----------------------------------------------------------------------------
# House Clerk (official)
# -----------------------------------------------------------------------------
class HouseClerkAdapter(FilingSourceAdapter):
    """
    Periodic transaction reports from the House Clerk.

    Reads the annual ``{year}FD.xml`` index for the current year, then the
    previous one if not enough recent filings were found, and extracts each
    PTR PDF's text layer with the flattened-stream grammar.
    """
    name = "house_clerk"
    label = "House Clerk Financial Disclosures"
    note = PTR_NOTE

    def __init__(self, config: Optional[Config] = None, today: Optional[date] = None):
        config = config or get_config()
        sources = config.congress
        self.base_url = sources.house_clerk_base.rstrip('/')
        self.lookback_days = sources.lookback_days
        self.enough_filings = sources.enough_filings
        self.max_filings = sources.max_filings
        self.max_concurrency = sources.max_concurrency
        self.detail_timeout = config.fetch.detail_timeout_seconds
        self.ocr_enabled = config.extraction.ocr_enabled
        self.ocr_dpi = config.extraction.ocr_dpi
        self.today = today

        self.index_reader = HouseIndexReader()
        self.extractor = FlattenedStreamExtractor(
            config.extraction.non_ticker_codes,
            window=config.extraction.loose_window,
        )

    def index_url(self, year: int) -> str:
        return f"{self.base_url}/public_disc/financial-pdfs/{year}FD.xml"

    def ptr_url(self, year: int, doc_id: str) -> str:
        return f"{self.base_url}/public_disc/ptr-pdfs/{year}/{doc_id}.pdf"

    async def list_filings(self, fetcher: DocumentFetcher) -> list[FilingReference]:
        today = self.today or date.today()
        since = today - timedelta(days=self.lookback_days)
        filings: list[FilingReference] = []

        for year in (today.year, today.year - 1):
            try:
                result = await self.get_ok(fetcher, self.index_url(year))
            except FetchError as e:
                congress_logger.warning(f"House index {year} unavailable: {e.reason}")
                continue
            if result is None:
                continue

            found = self.index_reader.member_filings(result.text, year, self.ptr_url, since=since)
            congress_logger.info(f"House index {year}: {len(found)} PTR filings since {since}")
            filings.extend(found)
            if len(filings) >= self.enough_filings:
                break

        # Newest first so the max_filings cap keeps the most recent
        filings.sort(key=lambda f: f.filed_date or date.min, reverse=True)
        return filings

    async def extract_filing(self, fetcher: DocumentFetcher,
                             filing: FilingReference) -> list[TradeFact]:
        result = await self.get_ok(fetcher, filing.document_url)
        if result is None:
            return []

        # pdfplumber/OCR are CPU bound
        text = await asyncio.to_thread(pdf_to_text, result.content, self.ocr_enabled, self.ocr_dpi)
        trades = []
        for extracted in self.extractor.extract(flatten_pdf_text(text), filing):
            fact = extracted.to_fact(self.name, filing)
            fact.chamber = "House"
            trades.append(fact)
        return trades


# -----------------------------------------------------------------------------
# JSON feeds (aggregators)
# -----------------------------------------------------------------------------
class JsonFeedAdapter(SourceAdapter):
    """
    A JSON endpoint listing trades, mapped by ordered candidate keys.

    ``fields`` maps each logical TradeFact field to the keys (dotted paths
    allowed) it appears under in this feed, most preferred first.
    """
    record_keys: tuple[str, ...] = ("data", "trades", "transactions")
    fields: dict[str, tuple[str, ...]] = {}
    chamber: Optional[str] = None
    headers: Optional[dict] = None
    note = PTR_NOTE

    def __init__(self, url: str, cap: int = 60, lookback_days: Optional[int] = None,
                 today: Optional[date] = None):
        self.url = url
        self.cap = cap
        self.lookback_days = lookback_days
        self.today = today

    def records(self, data: Any) -> list:
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in self.record_keys:
                candidate = data.get(key)
                if isinstance(candidate, list):
                    return candidate
        congress_logger.warning(f"[{self.name}] no record list in response")
        return []

    def _get(self, record: dict, field: str) -> Any:
        return first_value(record, self.fields.get(field, ()))

    def _subject(self, record: dict) -> str:
        subject = self._get(record, "subject")
        if subject:
            return str(subject)
        name = " ".join(
            str(part) for part in (self._get(record, "first_name"), self._get(record, "last_name")) if part
        )
        return name or "Unknown"

    def to_fact(self, record: dict) -> TradeFact:
        chamber = self.chamber or self._get(record, "chamber")
        chamber = str(chamber).title() if chamber else None
        state = self._get(record, "state")
        district = self._get(record, "district")
        seat = format_district(str(district)) if district else state

        if chamber and seat:
            role = f"{chamber} — {seat}"
        else:
            role = chamber or UNKNOWN

        filed = parse_date(self._get(record, "filed_date"))
        return TradeFact(
            subject=self._subject(record),
            role=role,
            ticker=normalize_ticker(self._get(record, "ticker")),
            company=str(self._get(record, "company") or UNKNOWN),
            transaction_type=normalize_transaction(self._get(record, "transaction_type")),
            amount=parse_amount(self._get(record, "amount")),
            trade_date=parse_date(self._get(record, "trade_date")) or filed,
            filed_date=filed,
            source_url=self._get(record, "source_url") or self.url,
            origin=self.name,
            party=self._get(record, "party"),
            chamber=chamber,
            state=state,
        )

    def map_records(self, records: list) -> list[TradeFact]:
        since = None
        if self.lookback_days is not None:
            since = (self.today or date.today()) - timedelta(days=self.lookback_days)

        trades = []
        for record in records:
            if not isinstance(record, dict):
                continue
            fact = self.to_fact(record)
            if since is not None and fact.trade_date is not None and fact.trade_date < since:
                continue
            trades.append(fact)
            if self.cap and len(trades) >= self.cap:
                break
        return trades

    async def fetch_trades(self, fetcher: DocumentFetcher) -> list[TradeFact]:
        result = await self.get_ok(fetcher, self.url, headers=self.headers)
        if result is None:
            return []
        return self.map_records(self.records(result.json()))


CAPITOL_TRADES_FIELDS = {
    "subject": ("politician.name", "politician.fullName"),
    "first_name": ("politician.firstName",),
    "last_name": ("politician.lastName",),
    "party": ("politician.party",),
    "chamber": ("politician.chamber",),
    "state": ("politician.state", "politician.stateId"),
    "ticker": ("issuer.ticker", "issuer.issuerTicker"),
    "company": ("issuer.name", "issuer.issuerName"),
    "amount": ("amount", "value"),
    "trade_date": ("txDate", "reportedDate"),
    "filed_date": ("reportedDate", "pubDate"),
    "transaction_type": ("type", "txType"),
}


class CapitolTradesApiAdapter(JsonFeedAdapter):
    name = "capitol_trades_api"
    label = "Capitol Trades"
    fields = CAPITOL_TRADES_FIELDS
    headers = {"Accept": "application/json"}


class HouseStockWatcherAdapter(JsonFeedAdapter):
    name = "house_stock_watcher"
    label = "House Stock Watcher"
    chamber = "House"
    fields = {
        "subject": ("representative", "name"),
        "party": ("party",),
        "state": ("state",),
        "district": ("district",),
        "ticker": ("ticker",),
        "company": ("asset_description", "company"),
        "amount": ("amount",),
        "trade_date": ("transaction_date", "disclosure_date", "date"),
        "filed_date": ("disclosure_date", "transaction_date", "date"),
        "transaction_type": ("type", "transaction_type"),
        "source_url": ("ptr_link", "link"),
    }


class SenateStockWatcherAdapter(JsonFeedAdapter):
    name = "senate_stock_watcher"
    label = "Senate Stock Watcher"
    chamber = "Senate"
    fields = {
        "subject": ("senator", "name"),
        "first_name": ("first_name",),
        "last_name": ("last_name",),
        "party": ("party",),
        "state": ("state",),
        "ticker": ("ticker",),
        "company": ("asset_description", "company"),
        "amount": ("amount",),
        "trade_date": ("transaction_date", "disclosure_date", "date"),
        "filed_date": ("disclosure_date", "transaction_date", "date"),
        "transaction_type": ("type", "transaction_type"),
        "source_url": ("ptr_link", "link"),
    }


class UnusualWhalesAdapter(JsonFeedAdapter):
    name = "unusual_whales"
    label = "Unusual Whales"
    headers = {"Accept": "application/json"}
    fields = {
        "subject": ("representative", "politician_name", "name"),
        "party": ("party",),
        "chamber": ("chamber",),
        "state": ("state",),
        "ticker": ("ticker", "symbol"),
        "company": ("issuer_name", "company"),
        "amount": ("amount", "trade_size"),
        "trade_date": ("traded_at", "transaction_date", "date"),
        "filed_date": ("filed_at", "disclosure_date"),
        "transaction_type": ("type", "transaction_type", "txn_type"),
    }


# -----------------------------------------------------------------------------
# Capitol Trades page (last resort)
# -----------------------------------------------------------------------------
EMBEDDED_JSON_PATTERNS = (
    re.compile(r'window\.__INITIAL_STATE__\s*=\s*({[\s\S]*?});'),
    re.compile(r'"trades":\s*(\[[\s\S]*?\])\s*[,}]'),
)

# Where the trade list has lived in the page state, newest layout first
CANDIDATE_PATHS = (
    "props.pageProps.trades.data",
    "props.pageProps.trades",
    "trades.data",
    "trades",
)


def embedded_json_blobs(html: str) -> Iterator[str]:
    """Raw JSON strings embedded in the page, most reliable first."""
    soup = BeautifulSoup(html, 'lxml')
    script = soup.find('script', id='__NEXT_DATA__')
    if script is not None and script.string:
        yield script.string
    for pattern in EMBEDDED_JSON_PATTERNS:
        match = pattern.search(html)
        if match:
            yield match.group(1)


def find_trade_list(parsed: Any) -> Optional[list]:
    """First candidate that is a non-empty list of politician trade objects."""
    candidates = [first_value(parsed, (path,)) for path in CANDIDATE_PATHS]
    candidates.append(parsed)
    for candidate in candidates:
        if (isinstance(candidate, list) and candidate
                and isinstance(candidate[0], dict) and candidate[0].get("politician")):
            return candidate
    return None


class CapitolTradesHtmlAdapter(CapitolTradesApiAdapter):
    name = "capitol_trades_html"
    label = "Capitol Trades (HTML)"
    headers = HTML_HEADERS

    async def fetch_trades(self, fetcher: DocumentFetcher) -> list[TradeFact]:
        result = await self.get_ok(fetcher, self.url, headers=self.headers)
        if result is None:
            return []

        html = result.text
        congress_logger.debug(
            f"Capitol Trades page: {len(html)} chars, "
            f"__NEXT_DATA__={'__NEXT_DATA__' in html}"
        )
        for blob in embedded_json_blobs(html):
            try:
                parsed = json.loads(blob)
            except ValueError:
                continue
            records = find_trade_list(parsed)
            if records:
                return self.map_records(records)

        congress_logger.warning("Could not locate trades in Capitol Trades page state")
        return []


# -----------------------------------------------------------------------------
# Chain
# -----------------------------------------------------------------------------
def congress_adapter(name: str, config: Config, today: Optional[date] = None) -> Optional[SourceAdapter]:
    """Build the adapter registered under ``name``; None if unknown."""
    sources = config.congress
    if name == "house_clerk":
        return HouseClerkAdapter(config, today=today)
    if name == "capitol_trades_api":
        return CapitolTradesApiAdapter(sources.capitol_trades_api_url, cap=sources.feed_cap)
    if name == "house_stock_watcher":
        return HouseStockWatcherAdapter(sources.house_stock_watcher_url, cap=sources.feed_cap,
                                        lookback_days=sources.lookback_days, today=today)
    if name == "senate_stock_watcher":
        return SenateStockWatcherAdapter(sources.senate_stock_watcher_url, cap=sources.feed_cap,
                                         lookback_days=sources.lookback_days, today=today)
    if name == "unusual_whales":
        return UnusualWhalesAdapter(sources.unusual_whales_url, cap=sources.feed_cap)
    if name == "capitol_trades_html":
        return CapitolTradesHtmlAdapter(sources.capitol_trades_page_url, cap=sources.feed_cap)
    return None


def build_congress_chain(config: Optional[Config] = None, today: Optional[date] = None) -> SourceChain:
    """Congress chain in the configured priority order."""
    config = config or get_config()
    adapters = []
    for name in config.congress.priority:
        adapter = congress_adapter(name, config, today=today)
        if adapter is None:
            congress_logger.warning(f"Unknown congress source '{name}' ignored")
            continue
        adapters.append(adapter)
    return SourceChain("congressional", adapters)
