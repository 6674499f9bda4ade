"""
Rotation Data Proxy - FastAPI Application

Main FastAPI application with CORS and router registration.
Run with: uvicorn api.main:app --reload --port 8000
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import trades
from config.settings import get_config

logger = logging.getLogger("rotation.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    config = get_config()
    logger.info(
        f"Rotation data proxy starting (congress: {', '.join(config.congress.priority)}; "
        f"insiders: {', '.join(config.insiders.priority)})"
    )
    yield
    logger.info("Rotation data proxy shutting down")


app = FastAPI(
    title="Rotation Data Proxy",
    description="Normalized congressional and corporate insider trade feeds",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Read-only public data; any origin may call it
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().api.cors_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(trades.router, tags=["Trades"])


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - service description."""
    return {
        "status": "healthy",
        "service": "Rotation Data Proxy",
        "version": "1.0.0",
        "endpoints": ["/congress", "/insiders", "/health"],
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host="0.0.0.0", port=8000, reload=True)
