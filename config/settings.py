"""
Rotation Data Proxy - Configuration Settings

Centralized configuration management with environment variable loading
for upstream source URLs, fetch timeouts, extraction tables and API limits.
"""
from __future__ import annotations

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load from project root .env file
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
BASE_DIR = Path(__file__).parent.parent
CONFIG_DIR = Path(__file__).parent
NON_TICKER_CODES_PATH = CONFIG_DIR / "non_ticker_codes.json"

# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format=LOG_FORMAT,
    datefmt=LOG_DATE_FORMAT
)

logger = logging.getLogger("rotation")


def _env_list(key: str, default: list[str]) -> list[str]:
    """Comma separated env var, falling back to ``default``."""
    raw = os.getenv(key, "")
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or list(default)


def load_non_ticker_codes(path: Path = NON_TICKER_CODES_PATH) -> frozenset[str]:
    """
    Load the parenthetical codes that look like tickers but are not.

    The list is hand-curated data and is not assumed to be exhaustive.
    """
    if not path.exists():
        logger.warning(f"Non-ticker code list not found: {path}")
        return frozenset()

    try:
        with open(path, 'r') as f:
            data = json.load(f)
        codes = frozenset(
            str(code).strip().upper() for code in data.get('codes', [])
            if str(code).strip()
        )
        logger.debug(f"Loaded {len(codes)} non-ticker codes")
        return codes
    except (json.JSONDecodeError, AttributeError) as e:
        logger.error(f"Error loading non-ticker codes: {e}")
        return frozenset()


# -----------------------------------------------------------------------------
# Fetch Configuration
# -----------------------------------------------------------------------------
@dataclass
class FetchConfig:
    """Outbound HTTP behaviour shared by every source."""
    user_agent: str = field(default_factory=lambda: os.getenv(
        "FETCH_USER_AGENT",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
    ))
    # SEC requires a contact address in the client header
    sec_user_agent: str = field(default_factory=lambda: os.getenv(
        "SEC_USER_AGENT", "TheRotation newsletter@therotation.com"
    ))
    timeout_seconds: float = field(default_factory=lambda: float(os.getenv("FETCH_TIMEOUT", "15")))
    # Per-filing detail fetch + extraction
    detail_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("DETAIL_TIMEOUT", "10")))
    # Whole endpoint, all sources included
    request_budget_seconds: float = field(default_factory=lambda: float(os.getenv("REQUEST_BUDGET", "55")))


# -----------------------------------------------------------------------------
# Source Configuration
# -----------------------------------------------------------------------------
@dataclass
class CongressSourcesConfig:
    """Congressional trade sources, in priority order."""
    house_clerk_base: str = "https://disclosures-clerk.house.gov"
    capitol_trades_api_url: str = "https://api.capitoltrades.com/trades?pageSize=96&page=1"
    capitol_trades_page_url: str = "https://capitoltrades.com/trades"
    house_stock_watcher_url: str = "https://housestockwatcher.com/api/all_transactions.json"
    senate_stock_watcher_url: str = "https://senatestockwatcher.com/api/all_transactions.json"
    unusual_whales_url: str = "https://api.unusualwhales.com/api/congress/trades?limit=50"

    lookback_days: int = field(default_factory=lambda: int(os.getenv("CONGRESS_LOOKBACK_DAYS", "90")))
    # House index: stop scanning older years once this many filings are found
    enough_filings: int = 20
    max_filings: int = field(default_factory=lambda: int(os.getenv("HOUSE_MAX_FILINGS", "40")))
    max_concurrency: int = field(default_factory=lambda: int(os.getenv("HOUSE_MAX_CONCURRENCY", "8")))
    feed_cap: int = 60

    priority: list[str] = field(default_factory=lambda: _env_list("CONGRESS_SOURCES", [
        "house_clerk",
        "capitol_trades_api",
        "house_stock_watcher",
        "senate_stock_watcher",
        "unusual_whales",
        "capitol_trades_html",
    ]))


@dataclass
class InsiderSourcesConfig:
    """Corporate insider (Form 4) sources, in priority order."""
    edgar_submissions_url: str = "https://data.sec.gov/submissions/CIK{cik}.json"
    edgar_archives_url: str = "https://www.sec.gov/Archives/edgar/data/{cik}/{accession}/{document}"
    edgar_browse_url: str = (
        "https://www.sec.gov/cgi-bin/browse-edgar?action=getcompany"
        "&CIK={cik}&type=4&dateb=&owner=include&count=5"
    )
    openinsider_url: str = (
        "https://openinsider.com/screener?s=&o=&pl=&ph=&ll=&lh=&fd=30&fdr=&td=0&tdr="
        "&fdlyl=&fdlyh=&daysago=&xp=1&xs=1&vl=100&vh=&ocl=&och=&sic1=-1&sicl=100"
        "&sich=9999&grp=0&nfl=&nfh=&nil=&nih=&nol=&noh=&v2l=&v2h=&oc2l=&oc2h="
        "&sortcol=0&cnt=100&Action=Submit&action=1"
    )

    lookback_days: int = field(default_factory=lambda: int(os.getenv("INSIDER_LOOKBACK_DAYS", "30")))
    filings_per_issuer: int = 3
    max_concurrency: int = field(default_factory=lambda: int(os.getenv("EDGAR_MAX_CONCURRENCY", "6")))
    # OpenInsider rows below this dollar value are noise
    min_value: float = field(default_factory=lambda: float(os.getenv("INSIDER_MIN_VALUE", "50000")))

    # (CIK, ticker, company)
    watch_list: list[tuple[str, str, str]] = field(default_factory=lambda: [
        ("1045810", "NVDA", "NVIDIA"),
        ("0000320193", "AAPL", "Apple"),
        ("0000789019", "MSFT", "Microsoft"),
        ("0001326801", "META", "Meta"),
        ("0001318605", "TSLA", "Tesla"),
        ("0000034088", "XOM", "ExxonMobil"),
        ("0000040987", "GS", "Goldman Sachs"),
        ("0000101830", "RTX", "RTX Corp"),
        ("0000936395", "LMT", "Lockheed Martin"),
    ])

    priority: list[str] = field(default_factory=lambda: _env_list("INSIDER_SOURCES", [
        "sec_edgar",
        "openinsider",
    ]))


# -----------------------------------------------------------------------------
# Extraction Configuration
# -----------------------------------------------------------------------------
@dataclass
class ExtractionConfig:
    """Tables and knobs used by the trade extractors."""
    non_ticker_codes: frozenset[str] = field(default_factory=load_non_ticker_codes)
    # Loose grammar lookahead after a ticker marker (characters)
    loose_window: int = 250
    # Rasterize and OCR PDFs that carry no text layer
    ocr_enabled: bool = field(default_factory=lambda: os.getenv("OCR_ENABLED", "").lower() in ("1", "true", "yes"))
    ocr_dpi: int = 200


# -----------------------------------------------------------------------------
# API Configuration
# -----------------------------------------------------------------------------
@dataclass
class ApiConfig:
    """HTTP surface limits."""
    congress_limit: int = 80
    insider_limit: int = 100
    cluster_limit: int = 30
    cors_origins: list[str] = field(default_factory=lambda: _env_list("CORS_ORIGINS", ["*"]))


# -----------------------------------------------------------------------------
# Global Config Instance
# -----------------------------------------------------------------------------
@dataclass
class Config:
    """Main configuration container."""
    fetch: FetchConfig = field(default_factory=FetchConfig)
    congress: CongressSourcesConfig = field(default_factory=CongressSourcesConfig)
    insiders: InsiderSourcesConfig = field(default_factory=InsiderSourcesConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


# Singleton config instance
config = Config()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config
