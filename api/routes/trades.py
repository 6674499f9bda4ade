"""
Trade Feed API Routes

Congressional (PTR) and corporate insider (Form 4) trade feeds. Each
request runs its source chain from scratch; nothing is cached.
"""
from __future__ import annotations

import logging
from typing import Optional, Union

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config.settings import get_config
from modules.assembler import collect
from modules.exceptions import BudgetExceeded, SourcesExhausted
from modules.fetcher import DocumentFetcher
from modules.source_chain import SourceChain
from modules.sources_congress import build_congress_chain
from modules.sources_insiders import build_insider_chain

router = APIRouter()
api_logger = logging.getLogger("rotation.api")


class AmountRangeResponse(BaseModel):
    """Disclosed dollar band."""
    min: float
    max: float


class TradeResponse(BaseModel):
    """One normalized trade."""
    subject: str
    role: str
    ticker: str
    company: str
    transaction_type: str
    amount: Union[float, AmountRangeResponse, str]
    trade_date: Optional[str]
    filed_date: Optional[str]
    source_url: Optional[str]
    origin: str
    party: Optional[str] = None
    chamber: Optional[str] = None
    state: Optional[str] = None
    price: Optional[float] = None
    shares: Optional[float] = None


class ClusterResponse(BaseModel):
    """Trades grouped under one ticker."""
    ticker: str
    company: str
    buys: list[TradeResponse]
    sells: list[TradeResponse]


class TradeFeedResponse(BaseModel):
    """Feed response model."""
    success: bool
    count: int
    source: str
    trades: list[TradeResponse]
    note: Optional[str] = None
    clustered: list[ClusterResponse] = []


class ErrorResponse(BaseModel):
    error: str
    tried: Optional[list[str]] = None


ERROR_RESPONSES = {
    404: {"model": ErrorResponse, "description": "Every source came back empty"},
    500: {"model": ErrorResponse, "description": "Unexpected internal error"},
    504: {"model": ErrorResponse, "description": "Request budget exceeded"},
}


def get_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Outbound transport; None means the real network."""
    return None


async def run_feed(chain: SourceChain, limit: int,
                   transport: Optional[httpx.AsyncBaseTransport] = None):
    """Run one chain under the request budget and map failures to HTTP errors."""
    config = get_config()
    budget = config.fetch.request_budget_seconds

    try:
        async with DocumentFetcher.from_config(config, transport=transport) as fetcher:
            return await collect(chain, fetcher, limit=limit,
                                 cluster_limit=config.api.cluster_limit, budget=budget)
    except SourcesExhausted as e:
        return JSONResponse(status_code=404, content={"error": str(e), "tried": e.tried})
    except BudgetExceeded as e:
        api_logger.error(f"{chain.name}: request budget of {budget}s exceeded")
        return JSONResponse(status_code=504, content={"error": str(e), "tried": e.tried})
    except Exception as e:
        api_logger.exception(f"{chain.name}: unexpected error")
        return JSONResponse(status_code=500, content={"error": str(e)})


@router.get("/congress", response_model=TradeFeedResponse, responses=ERROR_RESPONSES)
async def congress_trades(transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport)):
    """
    Recent congressional stock trades.

    Official House Clerk PTR filings first, then the aggregator feeds in
    priority order. Filings whose PDF could not be read appear once each
    with ticker "?" and amount "See filing".
    """
    config = get_config()
    return await run_feed(build_congress_chain(config), config.api.congress_limit, transport)


@router.get("/insiders", response_model=TradeFeedResponse, responses=ERROR_RESPONSES)
async def insider_trades(transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport)):
    """Recent corporate insider (Form 4) trades: SEC EDGAR first, then OpenInsider."""
    config = get_config()
    return await run_feed(build_insider_chain(config), config.api.insider_limit, transport)
