"""
Rotation Data Proxy - Source Adapter Chain

A chain holds the candidate sources for one logical endpoint in priority
order and commits to the first one that yields any trades. Each adapter
turns its own failures (transport, status, shape) into an empty result.

FilingSourceAdapter covers the index -> per-filing document pattern: every
filing found in the index produces either its extracted trades or exactly
one placeholder record.

A run may carry a time budget. Each adapter gets a share of what is left
of it, and the last adapter gets all of it, so a hung source cannot keep
the ones behind it from being tried.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from modules.clustering import deduplicate
from modules.exceptions import BudgetExceeded, FetchError, SourcesExhausted
from modules.fetcher import DocumentFetcher, FetchResult
from modules.models import FilingReference, TradeFact

chain_logger = logging.getLogger("rotation.sources")

# Raised by json/dict/attribute access on an upstream body we did not expect
SHAPE_ERRORS = (ValueError, KeyError, TypeError, AttributeError, IndexError)


def time_left(deadline: Optional[float]) -> Optional[float]:
    """Seconds until ``deadline`` (event loop clock); None means unbounded."""
    if deadline is None:
        return None
    return max(0.0, deadline - asyncio.get_running_loop().time())


# -----------------------------------------------------------------------------
# Adapters
# -----------------------------------------------------------------------------
class SourceAdapter:
    """Binds one upstream origin to the TradeFact contract."""
    name: str = "source"
    label: str = "Source"
    # Shown with the feed; what kind of disclosure this source carries
    note: Optional[str] = None

    async def fetch_trades(self, fetcher: DocumentFetcher) -> list[TradeFact]:
        raise NotImplementedError

    async def fetch_within(self, fetcher: DocumentFetcher,
                           deadline: Optional[float]) -> list[TradeFact]:
        """fetch_trades() cut off at ``deadline``."""
        return await asyncio.wait_for(self.fetch_trades(fetcher), timeout=time_left(deadline))

    async def collect(self, fetcher: DocumentFetcher,
                      deadline: Optional[float] = None) -> list[TradeFact]:
        """
        fetch_trades(), with every recoverable failure turned into [].

        asyncio.TimeoutError propagates when ``deadline`` passes before
        anything was confirmed.
        """
        try:
            trades = await self.fetch_within(fetcher, deadline)
        except FetchError as e:
            chain_logger.warning(f"[{self.name}] fetch failed: {e}")
            return []
        except SHAPE_ERRORS as e:
            chain_logger.warning(f"[{self.name}] unexpected response shape: {type(e).__name__}: {e}")
            return []

        chain_logger.info(f"[{self.name}] {len(trades)} trades")
        return trades

    async def get_ok(self, fetcher: DocumentFetcher, url: str,
                     headers: Optional[dict] = None) -> Optional[FetchResult]:
        """Fetch ``url``; None (logged) for a non-2xx status."""
        result = await fetcher.fetch(url, headers=headers)
        if not result.ok:
            chain_logger.warning(f"[{self.name}] {url} returned {result.status}")
            return None
        return result


class FilingSourceAdapter(SourceAdapter):
    """
    Index first, then one detail document per filing.

    Detail work runs concurrently (at most ``max_concurrency`` at a time,
    at most ``max_filings`` filings) and each filing has its own timeout.
    A filing that fails, yields nothing or is still unread at the deadline
    contributes one placeholder; it never aborts its siblings. Nothing is
    retried.
    """
    max_filings: int = 40
    max_concurrency: int = 8
    detail_timeout: float = 10.0

    async def list_filings(self, fetcher: DocumentFetcher) -> list[FilingReference]:
        raise NotImplementedError

    async def extract_filing(self, fetcher: DocumentFetcher,
                             filing: FilingReference) -> list[TradeFact]:
        raise NotImplementedError

    async def _filing_trades(self, fetcher: DocumentFetcher, filing: FilingReference,
                             semaphore: asyncio.Semaphore) -> list[TradeFact]:
        async with semaphore:
            try:
                trades = await asyncio.wait_for(
                    self.extract_filing(fetcher, filing),
                    timeout=self.detail_timeout,
                )
            except asyncio.TimeoutError:
                chain_logger.info(f"[{self.name}] {filing.document_id} timed out")
                trades = []
            except FetchError as e:
                chain_logger.info(f"[{self.name}] {filing.document_id} fetch failed: {e.reason}")
                trades = []
            except SHAPE_ERRORS as e:
                chain_logger.warning(f"[{self.name}] {filing.document_id} unreadable: {e}")
                trades = []

        trades = deduplicate(trades)
        if not trades:
            chain_logger.debug(f"[{self.name}] placeholder for {filing.document_id}")
            return [filing.placeholder(self.name)]
        return trades

    async def read_filings(self, fetcher: DocumentFetcher, filings: list[FilingReference],
                           deadline: Optional[float] = None) -> list[TradeFact]:
        """Detail phase; filings still unread at ``deadline`` become placeholders."""
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            asyncio.ensure_future(self._filing_trades(fetcher, filing, semaphore))
            for filing in filings
        ]
        _, pending = await asyncio.wait(tasks, timeout=time_left(deadline))
        if pending:
            chain_logger.warning(f"[{self.name}] {len(pending)} of {len(filings)} filings unread at the deadline")
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        # Filing order, whatever the completion order
        trades = []
        for filing, task in zip(filings, tasks):
            if task.cancelled():
                trades.append(filing.placeholder(self.name))
            else:
                trades.extend(task.result())
        return trades

    async def fetch_within(self, fetcher: DocumentFetcher,
                           deadline: Optional[float]) -> list[TradeFact]:
        # Only the index phase can time out; once filings are known they are all reported
        filings = await asyncio.wait_for(self.list_filings(fetcher), timeout=time_left(deadline))
        filings = filings[:self.max_filings]
        if not filings:
            return []

        chain_logger.info(f"[{self.name}] reading {len(filings)} filings")
        return await self.read_filings(fetcher, filings, deadline)

    async def fetch_trades(self, fetcher: DocumentFetcher) -> list[TradeFact]:
        return await self.fetch_within(fetcher, None)


# -----------------------------------------------------------------------------
# Chain
# -----------------------------------------------------------------------------
@dataclass
class ChainResult:
    """The batch a chain committed to."""
    chain: str
    source: str
    origin: str
    trades: list[TradeFact]
    tried: list[str]
    note: Optional[str] = None


class SourceChain:
    """Ordered fallback over source adapters."""

    def __init__(self, name: str, adapters: list[SourceAdapter], share: float = 0.5):
        self.name = name
        self.adapters = list(adapters)
        # Fraction of the remaining budget given to each adapter but the last
        self.share = share

    def slot_deadline(self, deadline: Optional[float], adapters_left: int) -> Optional[float]:
        if deadline is None or adapters_left <= 1:
            return deadline
        now = asyncio.get_running_loop().time()
        return now + (deadline - now) * self.share

    async def run(self, fetcher: DocumentFetcher, budget: Optional[float] = None) -> ChainResult:
        """
        Try adapters in priority order; the first non-empty batch wins.

        Lower-priority adapters are never invoked once one succeeds.
        Raises SourcesExhausted listing every source tried, or
        BudgetExceeded when ``budget`` seconds ran out first.
        """
        loop = asyncio.get_running_loop()
        deadline = None if budget is None else loop.time() + budget
        tried = []
        out_of_time = False

        for index, adapter in enumerate(self.adapters):
            slot = self.slot_deadline(deadline, len(self.adapters) - index)
            if slot is not None and slot <= loop.time():
                out_of_time = True
                break

            tried.append(adapter.label)
            try:
                trades = await adapter.collect(fetcher, slot)
            except asyncio.TimeoutError:
                chain_logger.warning(f"{self.name}: {adapter.name} ran out of time")
                out_of_time = deadline is not None and slot == deadline
                continue

            out_of_time = False
            if trades:
                chain_logger.info(f"{self.name}: using {adapter.name} ({len(trades)} trades)")
                return ChainResult(
                    chain=self.name,
                    source=adapter.label,
                    origin=adapter.name,
                    trades=trades,
                    tried=tried,
                    note=adapter.note,
                )

        if out_of_time:
            chain_logger.error(f"{self.name}: budget of {budget:g}s spent on {', '.join(tried)}")
            raise BudgetExceeded(self.name, tried, budget)
        chain_logger.error(f"{self.name}: all sources failed: {', '.join(tried)}")
        raise SourcesExhausted(self.name, tried)
