"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import accounts, valuations
from config import settings
from database import dispose_engine, init_db
from logging_config import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store on startup and release it on shutdown."""
    init_db()
    logger.info(
        "Portfolio tracker started (home currency %s, reference tz %s)",
        settings.HOME_CURRENCY,
        settings.REFERENCE_TIMEZONE,
    )
    try:
        yield
    finally:
        dispose_engine()


app = FastAPI(
    title="Portfolio Tracker",
    description="Holdings valuation and daily portfolio totals",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(accounts.router)
app.include_router(valuations.router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
