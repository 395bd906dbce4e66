"""FastAPI application entry-point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from homelab import __version__
from homelab.routers import health, tools
from homelab.utils.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    setup_logging()
    yield


app = FastAPI(
    title="Homelab Tools API",
    description="Cluster, Flux and Talos operations for agent callers",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(tools.router)
