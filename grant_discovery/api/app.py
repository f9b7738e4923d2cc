"""FastAPI application exposing the discovery endpoints."""

from typing import Callable, Optional

from fastapi import FastAPI

from ..config import load_config
from ..orchestrator import SyncContext
from .discovery import router as discovery_router


def create_app(context_factory: Optional[Callable[[], SyncContext]] = None) -> FastAPI:
    """Create the app. Without a factory, each request is wired from the environment."""
    app = FastAPI(title="Grant Discovery Sync", version="0.1.0")
    app.state.context_factory = context_factory or (lambda: SyncContext.from_config(load_config()))
    app.include_router(discovery_router)

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app
