"""
Rotation Data Proxy - Result Assembler

Orders a committed batch newest first, trims it to the endpoint limit and
shapes the response body.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from modules.clustering import cluster_by_ticker
from modules.fetcher import DocumentFetcher
from modules.models import TradeFact
from modules.source_chain import ChainResult, SourceChain

assembler_logger = logging.getLogger("rotation.assembler")


def sort_date(fact: TradeFact) -> date:
    return fact.trade_date or fact.filed_date or date.min


def assemble(result: ChainResult, limit: int, cluster_limit: int = 30,
             with_clusters: bool = True) -> dict:
    """
    Response body for one chain run.

    The sort is stable, so trades on the same day keep extraction order.
    Clusters are built from the whole batch, not just the returned slice.
    """
    ordered = sorted(result.trades, key=sort_date, reverse=True)
    trades = ordered[:limit] if limit else ordered

    payload = {
        "success": True,
        "count": len(trades),
        "source": result.source,
        "trades": [trade.to_dict() for trade in trades],
    }
    if result.note:
        payload["note"] = result.note
    if with_clusters:
        payload["clustered"] = [c.to_dict() for c in cluster_by_ticker(result.trades, cluster_limit)]

    assembler_logger.info(
        f"{result.chain}: returning {len(trades)} of {len(result.trades)} trades from {result.source}"
    )
    return payload


async def collect(chain: SourceChain, fetcher: DocumentFetcher, limit: int,
                  cluster_limit: int = 30, with_clusters: bool = True,
                  budget: Optional[float] = None) -> dict:
    """Run ``chain`` within ``budget`` seconds and assemble its batch.

    Raises SourcesExhausted, or BudgetExceeded when nothing was confirmed in time.
    """
    result = await chain.run(fetcher, budget=budget)
    return assemble(result, limit, cluster_limit=cluster_limit, with_clusters=with_clusters)
