"""
NFL Season Simulator - FastAPI Application

Main entry point for the web API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import seasons_router, simulations_router
from .core.config import configure_logging, get_cors_origins
from .db import create_tables


configure_logging()
logger = logging.getLogger("nfl_simulator")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    try:
        await create_tables()
    except Exception as e:
        logger.error(f"Failed to create tables on startup: {e}")
        # App still starts; DB may become available later
    yield
    # Shutdown


# Create FastAPI app
app = FastAPI(
    title="NFL Season Simulator",
    description="Monte Carlo simulation of division and wildcard probabilities, including the leverage of each remaining game.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(seasons_router, prefix="/api")
app.include_router(simulations_router, prefix="/api")


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "NFL Season Simulator API",
        "version": "1.0.0",
        "docs": "/api/docs",
        "health": "/api/health"
    }
