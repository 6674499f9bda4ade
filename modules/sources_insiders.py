"""
Rotation Data Proxy - Corporate Insider Sources

Adapters for the insider chain:

1. SEC EDGAR submissions for a watch list of issuers -> Form 4 XML (official)
2. OpenInsider screener table
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Optional

from config.settings import Config, get_config
from modules.clustering import deduplicate
from modules.exceptions import FetchError
from modules.extractors import (
    OPENINSIDER_LAYOUT,
    Form4Extractor,
    TableRowExtractor,
    isolate_table,
)
from modules.fetcher import DocumentFetcher
from modules.models import SEE_FILING, FilingReference, TradeFact
from modules.parsing import parse_date
from modules.source_chain import SHAPE_ERRORS, FilingSourceAdapter, SourceAdapter, SourceChain

insider_logger = logging.getLogger("rotation.sources.insiders")

FORM4 = "4"
FORM4_NOTE = "Form 4 mandatory within 2 business days of trade"


# -----------------------------------------------------------------------------
# SEC EDGAR (official)
# -----------------------------------------------------------------------------
def raw_document_name(primary_document: str) -> str:
    """
    Drop the rendering prefix from a primary document path.

    Submissions list "xslF345X05/form4.xml", which is the HTML rendering;
    the ownership XML itself sits at the accession root.
    """
    return primary_document.rsplit('/', 1)[-1]


class SecEdgarAdapter(FilingSourceAdapter):
    """
    Recent Form 4 filings for each watched issuer.

    SEC asks for a descriptive client header with a contact address, so
    every request here carries ``sec_user_agent``.
    """
    name = "sec_edgar"
    label = "SEC EDGAR Form 4"
    note = FORM4_NOTE

    def __init__(self, config: Optional[Config] = None, today: Optional[date] = None):
        config = config or get_config()
        sources = config.insiders
        self.submissions_url = sources.edgar_submissions_url
        self.archives_url = sources.edgar_archives_url
        self.browse_url = sources.edgar_browse_url
        self.watch_list = list(sources.watch_list)
        self.lookback_days = sources.lookback_days
        self.filings_per_issuer = sources.filings_per_issuer
        self.max_concurrency = sources.max_concurrency
        self.max_filings = len(self.watch_list) * self.filings_per_issuer
        self.detail_timeout = config.fetch.detail_timeout_seconds
        self.headers = {"User-Agent": config.fetch.sec_user_agent}
        self.today = today
        self.extractor = Form4Extractor()

    def issuer_filings(self, submissions: dict, cik: str, company: str,
                       since: date) -> list[FilingReference]:
        """Latest Form 4 filings in one issuer's submissions document."""
        recent = submissions.get("filings", {}).get("recent", {})
        forms = recent.get("form", [])
        accessions = recent.get("accessionNumber", [])
        filed_dates = recent.get("filingDate", [])
        documents = recent.get("primaryDocument", [])
        cik_int = int(cik)

        filings = []
        for i, form in enumerate(forms):
            if form != FORM4:
                continue
            if i >= len(accessions) or i >= len(documents):
                continue

            filed = parse_date(filed_dates[i] if i < len(filed_dates) else None)
            # Submissions are newest first
            if filed is not None and filed < since:
                break

            accession = accessions[i].replace('-', '')
            filings.append(FilingReference(
                subject=SEE_FILING,
                role="Insider",
                filed_date=filed,
                document_id=accessions[i],
                document_year=filed.year if filed else since.year,
                document_url=self.archives_url.format(
                    cik=cik_int, accession=accession, document=raw_document_name(documents[i]),
                ),
                company=company,
                source_url=self.browse_url.format(cik=cik),
            ))
            if len(filings) >= self.filings_per_issuer:
                break
        return filings

    async def _watched_issuer(self, fetcher: DocumentFetcher, cik: str, ticker: str, company: str,
                              since: date, semaphore: asyncio.Semaphore) -> list[FilingReference]:
        padded = cik.zfill(10)
        async with semaphore:
            try:
                result = await self.get_ok(fetcher, self.submissions_url.format(cik=padded),
                                           headers=self.headers)
                if result is None:
                    return []
                filings = self.issuer_filings(result.json(), cik, company, since)
            except FetchError as e:
                insider_logger.warning(f"EDGAR submissions for {ticker} failed: {e.reason}")
                return []
            except SHAPE_ERRORS as e:
                insider_logger.warning(f"EDGAR submissions for {ticker} unreadable: {e}")
                return []

        insider_logger.debug(f"{ticker}: {len(filings)} recent Form 4 filings")
        return filings

    async def list_filings(self, fetcher: DocumentFetcher) -> list[FilingReference]:
        since = (self.today or date.today()) - timedelta(days=self.lookback_days)
        semaphore = asyncio.Semaphore(self.max_concurrency)
        per_issuer = await asyncio.gather(*(
            self._watched_issuer(fetcher, cik, ticker, company, since, semaphore)
            for cik, ticker, company in self.watch_list
        ))
        return [filing for filings in per_issuer for filing in filings]

    async def extract_filing(self, fetcher: DocumentFetcher,
                             filing: FilingReference) -> list[TradeFact]:
        result = await self.get_ok(fetcher, filing.document_url, headers=self.headers)
        if result is None:
            return []
        return [
            extracted.to_fact(self.name, filing)
            for extracted in self.extractor.extract(result.text, filing)
        ]


# -----------------------------------------------------------------------------
# OpenInsider (aggregator)
# -----------------------------------------------------------------------------
class OpenInsiderAdapter(SourceAdapter):
    """Screener results table; rows under the minimum value are dropped."""
    name = "openinsider"
    label = "OpenInsider"
    note = FORM4_NOTE

    def __init__(self, url: str, min_value: float = OPENINSIDER_LAYOUT.min_value):
        self.url = url
        self.extractor = TableRowExtractor(replace(OPENINSIDER_LAYOUT, min_value=min_value))

    async def fetch_trades(self, fetcher: DocumentFetcher) -> list[TradeFact]:
        result = await self.get_ok(fetcher, self.url, headers={"Accept": "text/html"})
        if result is None:
            return []

        table = isolate_table(result.text, "tinytable")
        if table is None:
            insider_logger.warning("Could not find insider trades table")
            return []

        extracted = deduplicate(self.extractor.extract(table))
        return [trade.to_fact(self.name, source_url=self.url) for trade in extracted]


# -----------------------------------------------------------------------------
# Chain
# -----------------------------------------------------------------------------
def insider_adapter(name: str, config: Config, today: Optional[date] = None) -> Optional[SourceAdapter]:
    """Build the adapter registered under ``name``; None if unknown."""
    if name == "sec_edgar":
        return SecEdgarAdapter(config, today=today)
    if name == "openinsider":
        return OpenInsiderAdapter(config.insiders.openinsider_url, min_value=config.insiders.min_value)
    return None


def build_insider_chain(config: Optional[Config] = None, today: Optional[date] = None) -> SourceChain:
    """Insider chain in the configured priority order."""
    config = config or get_config()
    adapters = []
    for name in config.insiders.priority:
        adapter = insider_adapter(name, config, today=today)
        if adapter is None:
            insider_logger.warning(f"Unknown insider source '{name}' ignored")
            continue
        adapters.append(adapter)
    return SourceChain("insider", adapters)
