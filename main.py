#!/usr/bin/env python3
"""
Rotation Data Proxy - Command Line Entry Point

Run a feed once and print its JSON payload, or serve the HTTP API:

    python main.py congress --limit 20
    python main.py insiders --debug
    python main.py serve --port 8000
"""
from __future__ import annotations

import json
import asyncio
import logging
from pathlib import Path
from typing import Optional

# Local imports
import sys
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import get_config
from modules.assembler import collect
from modules.exceptions import BudgetExceeded, SourcesExhausted
from modules.fetcher import DocumentFetcher
from modules.source_chain import SourceChain
from modules.sources_congress import build_congress_chain
from modules.sources_insiders import build_insider_chain

# Module logger
main_logger = logging.getLogger("rotation.main")


async def run_chain(chain: SourceChain, limit: int) -> dict:
    """One chain run under the request budget, as the API does it."""
    config = get_config()
    async with DocumentFetcher.from_config(config) as fetcher:
        return await collect(chain, fetcher, limit=limit, cluster_limit=config.api.cluster_limit,
                             budget=config.fetch.request_budget_seconds)


def run_feed(feed: str, limit: Optional[int] = None) -> int:
    """Print one feed's payload. Returns the process exit code."""
    config = get_config()
    if feed == "congress":
        chain = build_congress_chain(config)
        limit = limit if limit is not None else config.api.congress_limit
    else:
        chain = build_insider_chain(config)
        limit = limit if limit is not None else config.api.insider_limit

    try:
        payload = asyncio.run(run_chain(chain, limit))
    except (SourcesExhausted, BudgetExceeded) as e:
        main_logger.error(f"{e} (tried: {', '.join(e.tried)})")
        print(json.dumps({"error": str(e), "tried": e.tried}, indent=2))
        return 1

    print(json.dumps(payload, indent=2))
    return 0


def serve(host: str, port: int) -> None:
    import uvicorn
    uvicorn.run("api.main:app", host=host, port=port)


# -----------------------------------------------------------------------------
# Entry Point
# -----------------------------------------------------------------------------
def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Congressional and insider trade data proxy"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    for feed in ("congress", "insiders"):
        feed_parser = commands.add_parser(feed, help=f"Fetch the {feed} feed once and print it")
        feed_parser.add_argument("--limit", type=int, default=None, help="Maximum trades to return")
        feed_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    serve_parser = commands.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    # basicConfig already ran in config.settings
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command == "serve":
        serve(args.host, args.port)
        return 0
    return run_feed(args.command, args.limit)


if __name__ == "__main__":
    sys.exit(main())
