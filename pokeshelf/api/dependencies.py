"""
Shared FastAPI dependencies.

The sync engine and catalog client are built once in the application
lifespan and stored on ``app.state``; tests override these providers.
"""

from fastapi import HTTPException, Request, status

from pokeshelf.catalog.client import CatalogClient
from pokeshelf.sync.engine import SyncEngine


def get_engine(request: Request) -> SyncEngine:
    engine: SyncEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sync engine not initialised",
        )
    return engine


def get_catalog(request: Request) -> CatalogClient:
    catalog: CatalogClient | None = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog client not initialised",
        )
    return catalog
