import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from pokeshelf.api import (
    catalog_router,
    collection_router,
    health_router,
    profiles_router,
    sync_router,
)
from pokeshelf.catalog.client import CatalogClient
from pokeshelf.config import settings
from pokeshelf.db.database import async_session_factory, init_db
from pokeshelf.db.remote_store import RemoteStore
from pokeshelf.models.failure import KnownError
from pokeshelf.storage.local_cache import LocalCacheStore
from pokeshelf.sync.connectivity import Connectivity
from pokeshelf.sync.engine import SyncEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    try:
        await init_db()
    except (SQLAlchemyError, OSError) as e:
        # Start anyway: cached data stays available and writes are queued
        logger.warning("Remote store unavailable at startup: %s", e)

    cache = LocalCacheStore.from_path(
        settings.cache_path,
        search_ttl=settings.search_cache_ttl_seconds,
        item_ttl=settings.item_cache_ttl_seconds,
    )
    store = RemoteStore(async_session_factory)
    connectivity = Connectivity(probe=store.ping)
    await connectivity.refresh()

    engine = SyncEngine(cache, store, connectivity)
    stop_watching = engine.watch_connectivity()
    probing = asyncio.create_task(connectivity.poll(settings.connectivity_probe_interval_seconds))
    catalog = CatalogClient(
        cache,
        page_size=settings.catalog_search_page_size,
        max_ids_per_request=settings.catalog_max_ids_per_request,
    )

    app.state.engine = engine
    app.state.catalog = catalog
    try:
        yield
    finally:
        probing.cancel()
        stop_watching()
        await catalog.aclose()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("pokeshelf"),
    lifespan=lifespan,
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render explainable failures with their classification."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_detail().model_dump(mode="json"),
    )


app.include_router(catalog_router)
app.include_router(collection_router)
app.include_router(health_router)
app.include_router(profiles_router)
app.include_router(sync_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
