from pokeshelf.api.catalog import router as catalog_router
from pokeshelf.api.collection import router as collection_router
from pokeshelf.api.health import router as health_router
from pokeshelf.api.profiles import router as profiles_router
from pokeshelf.api.sync import router as sync_router

__all__ = [
    "catalog_router",
    "collection_router",
    "health_router",
    "profiles_router",
    "sync_router",
]
