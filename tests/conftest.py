"""
Pytest fixtures for the rotation data proxy tests.

Provides a fresh config, fake upstreams (httpx.MockTransport) and sample
documents for every source format.
"""
import json
from datetime import date

import httpx
import pytest

from config.settings import Config, load_non_ticker_codes

TODAY = date(2026, 1, 20)


# =============================================================================
# Fake upstreams
# =============================================================================

def json_reply(data, status=200):
    return lambda request: httpx.Response(status, json=data)


def text_reply(text, status=200, content_type="text/html"):
    return lambda request: httpx.Response(status, text=text, headers={"Content-Type": content_type})


def bytes_reply(content, status=200):
    return lambda request: httpx.Response(status, content=content)


def status_reply(status):
    return lambda request: httpx.Response(status, text="")


def make_transport(routes: dict, seen: list = None) -> httpx.MockTransport:
    """
    Route requests by URL fragment; first matching fragment wins.

    Values are callables taking the request. Unrouted URLs get a 404.
    Requests are appended to ``seen`` when given.
    """
    def handler(request: httpx.Request):
        if seen is not None:
            seen.append(request)
        url = str(request.url)
        for fragment, reply in routes.items():
            if fragment in url:
                return reply(request)
        return httpx.Response(404, text="not found")

    return httpx.MockTransport(handler)


# =============================================================================
# Config
# =============================================================================

@pytest.fixture
def config():
    """Default configuration with short timeouts and OCR off."""
    cfg = Config()
    cfg.extraction.non_ticker_codes = load_non_ticker_codes()
    cfg.extraction.ocr_enabled = False
    cfg.fetch.timeout_seconds = 2
    cfg.fetch.detail_timeout_seconds = 2
    cfg.fetch.request_budget_seconds = 10
    cfg.congress.lookback_days = 90
    cfg.insiders.lookback_days = 30
    return cfg


# =============================================================================
# Sample Data - House Clerk
# =============================================================================

HOUSE_INDEX_XML = """<?xml version="1.0" encoding="utf-8"?>
<FinancialDisclosure>
  <Member>
    <Prefix>Hon.</Prefix><Last>Pelosi</Last><First>Nancy</First><Suffix />
    <FilingType>P</FilingType><StateDst>CA11</StateDst><Year>2026</Year>
    <FilingDate>1/15/2026</FilingDate><DocID>20026001</DocID>
  </Member>
  <Member>
    <Prefix>Hon.</Prefix><Last>Smith</Last><First>Adam</First><Suffix />
    <FilingType>O</FilingType><StateDst>WA09</StateDst><Year>2026</Year>
    <FilingDate>1/16/2026</FilingDate><DocID>10066000</DocID>
  </Member>
  <Member>
    <Prefix>Hon.</Prefix><Last>Crenshaw</Last><First>Dan</First><Suffix />
    <FilingType>P</FilingType><StateDst>TX02</StateDst><Year>2026</Year>
    <FilingDate>1/10/2026</FilingDate><DocID>20026002</DocID>
  </Member>
  <Member>
    <Prefix>Hon.</Prefix><Last>Green</Last><First>Mark</First><Suffix />
    <FilingType>P</FilingType><StateDst>TN07</StateDst><Year>2026</Year>
    <FilingDate>6/1/2025</FilingDate><DocID>20025999</DocID>
  </Member>
  <Member>
    <Prefix>Hon.</Prefix><Last>Nobody</Last><First>Ann</First><Suffix />
    <FilingType>P</FilingType><StateDst>OH01</StateDst><Year>2026</Year>
    <FilingDate>1/12/2026</FilingDate><DocID></DocID>
  </Member>
</FinancialDisclosure>
"""

WAT_PTR_TEXT = (
    "Filing ID #20026001\n"
    "Owner Asset Transaction Type Date Notification Date Amount\n"
    "SP Waters Corporation (WAT) [ST] P 12/08/2025 01/01/2026 $1,001 -\n"
    "$15,000\n"
    "F S : New\n"
)


@pytest.fixture
def house_index_xml():
    return HOUSE_INDEX_XML


# =============================================================================
# Sample Data - Aggregator feeds
# =============================================================================

CAPITOL_TRADES_RECORDS = [
    {
        "politician": {"name": "Nancy Pelosi", "party": "democrat", "chamber": "house", "state": "CA"},
        "issuer": {"ticker": "NVDA:US", "name": "NVIDIA Corp"},
        "amount": {"min": 1000001, "max": 5000000},
        "txDate": "2026-01-05",
        "reportedDate": "2026-01-12",
        "type": "buy",
    },
    {
        "politician": {"name": "Tommy Tuberville", "party": "republican", "chamber": "senate", "state": "AL"},
        "issuer": {"ticker": "AAPL:US", "name": "Apple Inc"},
        "amount": 15000,
        "txDate": "2026-01-08",
        "reportedDate": "2026-01-14",
        "type": "sell",
    },
    {
        "politician": {"name": "Nancy Pelosi", "party": "democrat", "chamber": "house", "state": "CA"},
        "issuer": {"ticker": "MSFT:US", "name": "Microsoft Corp"},
        "amount": "$15,001 - $50,000",
        "txDate": "2026-01-02",
        "reportedDate": "2026-01-12",
        "type": "buy",
    },
]


@pytest.fixture
def capitol_trades_json():
    return {"data": CAPITOL_TRADES_RECORDS, "meta": {"paging": {"totalItems": 3}}}


@pytest.fixture
def capitol_trades_next_data_html():
    state = {"props": {"pageProps": {"trades": {"data": CAPITOL_TRADES_RECORDS}}}}
    return (
        "<html><head><title>Trades</title></head><body><div id='__next'></div>"
        f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(state)}</script>'
        "</body></html>"
    )


@pytest.fixture
def house_watcher_json():
    return [
        {
            "representative": "Hon. Josh Gottheimer",
            "party": "Democrat",
            "district": "NJ05",
            "ticker": "MSFT",
            "asset_description": "Microsoft Corporation",
            "amount": "$1,001 -$15,000",
            "transaction_date": "2026-01-06",
            "disclosure_date": "01/15/2026",
            "type": "sale_partial",
            "ptr_link": "https://disclosures-clerk.house.gov/public_disc/ptr-pdfs/2026/20026010.pdf",
        },
        {
            "representative": "Hon. Josh Gottheimer",
            "district": "NJ05",
            "ticker": "--",
            "asset_description": "US Treasury Bill",
            "amount": "$15,001 - $50,000",
            "transaction_date": "2026-01-07",
            "type": "purchase",
        },
        {
            "representative": "Hon. Old Trade",
            "district": "NY10",
            "ticker": "IBM",
            "amount": "$1,001 - $15,000",
            "transaction_date": "2025-06-01",
            "type": "purchase",
        },
    ]


@pytest.fixture
def senate_watcher_json():
    return {"data": [
        {
            "first_name": "Shelley",
            "last_name": "Capito",
            "state": "WV",
            "ticker": "XOM",
            "asset_description": "Exxon Mobil Corporation",
            "amount": "$1,001 - $15,000",
            "transaction_date": "01/09/2026",
            "type": "Purchase",
        },
    ]}


# =============================================================================
# Sample Data - Insiders
# =============================================================================

FORM4_XML = """<?xml version="1.0"?>
<ownershipDocument>
  <schemaVersion>X0508</schemaVersion>
  <documentType>4</documentType>
  <periodOfReport>2026-01-14</periodOfReport>
  <issuer>
    <issuerCik>0001045810</issuerCik>
    <issuerName>NVIDIA CORP</issuerName>
    <issuerTradingSymbol>NVDA</issuerTradingSymbol>
  </issuer>
  <reportingOwner>
    <reportingOwnerId>
      <rptOwnerCik>0001197647</rptOwnerCik>
      <rptOwnerName>HUANG JEN HSUN</rptOwnerName>
    </reportingOwnerId>
    <reportingOwnerRelationship>
      <isDirector>1</isDirector>
      <isOfficer>1</isOfficer>
      <officerTitle>President and CEO</officerTitle>
    </reportingOwnerRelationship>
  </reportingOwner>
  <nonDerivativeTable>
    <nonDerivativeTransaction>
      <securityTitle><value>Common Stock</value></securityTitle>
      <transactionDate><value>2026-01-14</value></transactionDate>
      <transactionCoding>
        <transactionFormType>4</transactionFormType>
        <transactionCode>S</transactionCode>
      </transactionCoding>
      <transactionAmounts>
        <transactionShares><value>100000</value></transactionShares>
        <transactionPricePerShare><value>185.50</value></transactionPricePerShare>
        <transactionAcquiredDisposedCode><value>D</value></transactionAcquiredDisposedCode>
      </transactionAmounts>
    </nonDerivativeTransaction>
    <nonDerivativeTransaction>
      <securityTitle><value>Common Stock</value></securityTitle>
      <transactionDate><value>2026-01-13</value></transactionDate>
      <transactionCoding>
        <transactionFormType>4</transactionFormType>
        <transactionCode>M</transactionCode>
      </transactionCoding>
      <transactionAmounts>
        <transactionShares><value>20000</value></transactionShares>
        <transactionPricePerShare><value>12.50</value></transactionPricePerShare>
        <transactionAcquiredDisposedCode><value>A</value></transactionAcquiredDisposedCode>
      </transactionAmounts>
    </nonDerivativeTransaction>
  </nonDerivativeTable>
</ownershipDocument>
"""

EDGAR_SUBMISSIONS = {
    "cik": "1045810",
    "name": "NVIDIA CORP",
    "filings": {
        "recent": {
            "form": ["4", "8-K", "4", "4", "4"],
            "accessionNumber": [
                "0001045810-26-000010",
                "0001045810-26-000009",
                "0001045810-26-000008",
                "0001045810-26-000007",
                "0001045810-25-000001",
            ],
            "filingDate": ["2026-01-16", "2026-01-14", "2026-01-12", "2026-01-05", "2025-10-01"],
            "primaryDocument": [
                "xslF345X05/wk-form4_1.xml",
                "nvda-20260114.htm",
                "xslF345X05/wk-form4_2.xml",
                "xslF345X05/wk-form4_3.xml",
                "xslF345X05/wk-form4_4.xml",
            ],
        },
    },
}


def _openinsider_row(cells):
    return "<tr>" + "".join(f"<td>{cell}</td>" for cell in cells) + "</tr>"


OPENINSIDER_HTML = (
    "<html><body>"
    "<table class='nav'><tr><td>Screener</td></tr></table>"
    "<table class='tinytable'>"
    "<thead><tr>"
    + "".join(f"<th>{h}</th>" for h in (
        "X", "Filing Date", "Trade Date", "Ticker", "Company Name", "Insider Name",
        "Title", "Trade Type", "Price", "Qty", "Owned", "Value",
    ))
    + "</tr></thead><tbody>"
    + _openinsider_row([
        "M", "<div><a href='/filing'>2026-01-16 18:05:12</a></div>", "2026-01-14",
        "<b><a href='/NVDA'>NVDA</a></b>", "<a href='/NVDA'>NVIDIA Corp</a>", "Huang Jen Hsun",
        "CEO", "S - Sale+OE", "$185.50", "-100,000", "3,500,000", "$18,550",
    ])
    + _openinsider_row([
        "", "2026-01-15 16:01:00", "2026-01-13", "TINY", "Tiny Co", "Some Director",
        "Dir", "P - Purchase", "$2.00", "+10,000", "50,000", "$20",
    ])
    + _openinsider_row([
        "", "2026-01-15 09:30:00", "2026-01-12", "GS", "Goldman Sachs Group", "Solomon David",
        "CEO", "P - Purchase", "$480.00", "+1,000", "12,000", "$480",
    ])
    + _openinsider_row([
        "M", "2026-01-16 18:05:12", "2026-01-14", "NVDA", "NVIDIA Corp", "Huang Jen Hsun",
        "CEO", "S - Sale+OE", "$185.50", "-100,000", "3,500,000", "$18,550",
    ])
    + "<tr><td>short</td><td>row</td></tr>"
    + "</tbody></table></body></html>"
)


@pytest.fixture
def form4_xml():
    return FORM4_XML


@pytest.fixture
def edgar_submissions():
    return EDGAR_SUBMISSIONS


@pytest.fixture
def openinsider_html():
    return OPENINSIDER_HTML
