"""
Rotation Data Proxy - Deduplication and Ticker Clustering
"""
from __future__ import annotations

import logging
from typing import Iterable

from modules.models import UNKNOWN, TickerCluster, TradeFact, TransactionType

cluster_logger = logging.getLogger("rotation.clustering")


def dedupe_key(fact) -> tuple:
    return (fact.ticker, fact.transaction_type, fact.amount)


def deduplicate(facts: Iterable) -> list:
    """
    Drop repeats of (ticker, transaction_type, amount), keeping the first.

    Works on anything carrying those three attributes (TradeFact or
    ExtractedTrade). Running it on its own output removes nothing.
    """
    seen = set()
    out = []
    for fact in facts:
        key = dedupe_key(fact)
        if key in seen:
            continue
        seen.add(key)
        out.append(fact)
    return out


def cluster_by_ticker(facts: Iterable[TradeFact], limit: int = 30) -> list[TickerCluster]:
    """
    Group facts by ticker into buy/sell lists, busiest ticker first.

    Unknown tickers stay out of the clusters. Purchases are buys and every
    other type is a sell, so each clustered fact lands in exactly one list.
    Ties keep the order in which tickers were first seen.
    """
    by_ticker: dict[str, TickerCluster] = {}
    for fact in facts:
        if fact.ticker == UNKNOWN:
            continue
        cluster = by_ticker.get(fact.ticker)
        if cluster is None:
            cluster = TickerCluster(ticker=fact.ticker, company=fact.company)
            by_ticker[fact.ticker] = cluster
        if fact.transaction_type == TransactionType.PURCHASE:
            cluster.buys.append(fact)
        else:
            cluster.sells.append(fact)

    # sorted() is stable and dicts keep insertion order
    ranked = sorted(by_ticker.values(), key=lambda c: c.total, reverse=True)
    cluster_logger.debug(f"Clustered {len(ranked)} tickers")
    return ranked[:limit] if limit else ranked
