"""
Rotation Data Proxy - Exceptions

Errors that cross module boundaries. Upstream failures that a source can
recover from locally never escape the adapter that hit them.
"""
from __future__ import annotations

from typing import Optional


class ProxyError(Exception):
    """Base class for proxy errors."""


class FetchError(ProxyError):
    """Transport-level failure: timeout, refused connection, protocol error."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


class SourcesExhausted(ProxyError):
    """Every source in a chain came back empty."""

    def __init__(self, chain: str, tried: list[str]):
        self.chain = chain
        self.tried = list(tried)
        super().__init__(f"No {chain} data available from any source")


class BudgetExceeded(ProxyError):
    """The request budget ran out before any source yielded trades."""

    def __init__(self, chain: str, tried: list[str], budget: Optional[float] = None):
        self.chain = chain
        self.tried = list(tried)
        self.budget = budget
        within = f" within {budget:g}s" if budget is not None else ""
        super().__init__(f"No {chain} data{within}")
