"""
Tests for the HTTP surface (api/main.py, api/routes/trades.py).

Tests:
- GET / and GET /health
- GET /congress and GET /insiders end to end against fake upstreams
- 404 on exhaustion, 504 on budget overrun, 500 on unexpected errors
- CORS preflight
"""
import asyncio
from datetime import date

import pytest
from fastapi.testclient import TestClient

from conftest import json_reply, make_transport, status_reply, text_reply
from api.main import app
from api.routes import trades as trade_routes
from config.settings import get_config
from modules.models import FilingReference
from modules.source_chain import FilingSourceAdapter, SourceAdapter, SourceChain


@pytest.fixture
def client():
    """Test client with outbound HTTP routed to a fake transport."""
    yield TestClient(app)
    app.dependency_overrides.clear()


def use_transport(routes):
    transport = make_transport(routes)
    app.dependency_overrides[trade_routes.get_transport] = lambda: transport


class SlowAdapter(SourceAdapter):
    name = "slow"
    label = "Slow"

    async def fetch_trades(self, fetcher):
        await asyncio.sleep(5)
        return []


class BrokenAdapter(SourceAdapter):
    name = "broken"
    label = "Broken"

    async def fetch_trades(self, fetcher):
        raise RuntimeError("extractor bug")


class StalledFilingsAdapter(FilingSourceAdapter):
    """Index answers at once; every filing document hangs."""
    name = "stalled"
    label = "Stalled Filings"
    max_concurrency = 1
    detail_timeout = 0.2

    async def list_filings(self, fetcher):
        return [
            FilingReference(
                subject="Nancy Pelosi", role="House — CA-11", filed_date=date(2026, 1, 15),
                document_id=doc_id, document_year=2026,
                document_url=f"https://example.test/{doc_id}.pdf",
            )
            for doc_id in ("20026001", "20026002", "20026003")
        ]

    async def extract_filing(self, fetcher, filing):
        await asyncio.sleep(5)
        return []


# =============================================================================
# Health Route Tests
# =============================================================================

class TestHealthRoutes:
    """Tests for health check routes."""

    def test_root_lists_endpoints(self, client):
        """GET / describes the service."""
        data = client.get("/").json()

        assert data["status"] == "healthy"
        assert "/congress" in data["endpoints"]
        assert "/insiders" in data["endpoints"]

    def test_health(self, client):
        """GET /health returns ok."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_cors_preflight(self, client):
        """Any origin may GET."""
        response = client.options("/congress", headers={
            "Origin": "https://newsletter.example",
            "Access-Control-Request-Method": "GET",
        })

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"


# =============================================================================
# Congress
# =============================================================================

class TestCongressRoute:
    """Tests for GET /congress."""

    def test_falls_back_past_failing_source(self, client, capitol_trades_json):
        """A 500 from the official source falls through to Capitol Trades."""
        use_transport({
            "disclosures-clerk.house.gov": status_reply(500),
            "api.capitoltrades.com": json_reply(capitol_trades_json),
        })

        response = client.get("/congress")
        data = response.json()

        assert response.status_code == 200
        assert data["success"] is True
        assert data["source"] == "Capitol Trades"
        assert data["count"] == 3
        assert data["note"].startswith("Periodic Transaction Reports (PTR)")

    def test_trades_sorted_and_serialized(self, client, capitol_trades_json):
        """Newest first, ISO dates, all three amount forms."""
        use_transport({
            "disclosures-clerk.house.gov": status_reply(500),
            "api.capitoltrades.com": json_reply(capitol_trades_json),
        })

        trades = client.get("/congress").json()["trades"]

        assert [t["ticker"] for t in trades] == ["AAPL", "NVDA", "MSFT"]
        assert trades[0]["trade_date"] == "2026-01-08"
        assert trades[0]["amount"] == 15000.0
        assert trades[1]["amount"] == {"min": 1000001.0, "max": 5000000.0}
        assert trades[2]["amount"] == "$15,001 - $50,000"
        assert trades[1]["transaction_type"] == "Purchase"
        assert trades[1]["origin"] == "capitol_trades_api"

    def test_clusters_included(self, client, capitol_trades_json):
        """Per-ticker clusters come with the trades."""
        use_transport({
            "disclosures-clerk.house.gov": status_reply(500),
            "api.capitoltrades.com": json_reply(capitol_trades_json),
        })

        clustered = client.get("/congress").json()["clustered"]

        assert {c["ticker"] for c in clustered} == {"NVDA", "AAPL", "MSFT"}

    def test_all_sources_fail(self, client):
        """404 with the list of sources tried."""
        use_transport({"": status_reply(500)})

        response = client.get("/congress")
        data = response.json()

        assert response.status_code == 404
        assert "No congressional data available" in data["error"]
        assert data["tried"][0] == "House Clerk Financial Disclosures"
        assert len(data["tried"]) == len(get_config().congress.priority)

    def test_budget_exceeded(self, client, monkeypatch):
        """504 when the chain overruns the request budget."""
        monkeypatch.setattr(get_config().fetch, "request_budget_seconds", 0.05)
        monkeypatch.setattr(trade_routes, "build_congress_chain",
                            lambda config: SourceChain("congressional", [SlowAdapter()]))

        response = client.get("/congress")

        assert response.status_code == 504
        assert "error" in response.json()

    def test_budget_keeps_placeholders(self, client, monkeypatch):
        """Filings known before the budget runs out are returned as placeholders."""
        monkeypatch.setattr(get_config().fetch, "request_budget_seconds", 0.4)
        monkeypatch.setattr(trade_routes, "build_congress_chain",
                            lambda config: SourceChain("congressional", [StalledFilingsAdapter()]))

        response = client.get("/congress")
        data = response.json()

        assert response.status_code == 200
        assert data["source"] == "Stalled Filings"
        assert data["count"] == 3
        assert {t["ticker"] for t in data["trades"]} == {"?"}
        assert {t["amount"] for t in data["trades"]} == {"See filing"}

    def test_unexpected_error(self, client, monkeypatch):
        """500 with the error message."""
        monkeypatch.setattr(trade_routes, "build_congress_chain",
                            lambda config: SourceChain("congressional", [BrokenAdapter()]))

        response = client.get("/congress")

        assert response.status_code == 500
        assert response.json() == {"error": "extractor bug"}


# =============================================================================
# Insiders
# =============================================================================

class TestInsiderRoute:
    """Tests for GET /insiders."""

    def test_openinsider_fallback(self, client, openinsider_html):
        """EDGAR down, OpenInsider table used."""
        use_transport({
            "sec.gov": status_reply(503),
            "openinsider.com": text_reply(openinsider_html),
        })

        response = client.get("/insiders")
        data = response.json()

        assert response.status_code == 200
        assert data["source"] == "OpenInsider"
        assert data["note"] == "Form 4 mandatory within 2 business days of trade"
        assert [t["ticker"] for t in data["trades"]] == ["NVDA", "GS"]
        assert data["trades"][0]["shares"] == -100000.0

    def test_all_sources_fail(self, client):
        """404 naming both insider sources."""
        use_transport({"": status_reply(502)})

        response = client.get("/insiders")

        assert response.status_code == 404
        assert response.json()["tried"] == ["SEC EDGAR Form 4", "OpenInsider"]
