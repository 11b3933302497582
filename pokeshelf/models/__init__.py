from pokeshelf.models.catalog import CachedLookup, CatalogItem, get_market_price
from pokeshelf.models.collection import (
    CARD_CONDITIONS,
    CardCondition,
    CollectionEntry,
    EntryChanges,
    format_condition,
    is_temp_id,
    new_temp_id,
    parse_condition,
    validate_quantity,
)
from pokeshelf.models.failure import (
    EntryNotFoundError,
    FailureDetail,
    FailureKind,
    FetchError,
    KnownError,
    OfflineError,
    RemoteStoreError,
)
from pokeshelf.models.pending import OperationKind, PendingOperation
from pokeshelf.models.profile import Profile
from pokeshelf.models.sync import ReplayReport, SyncStatus

__all__ = [
    "CARD_CONDITIONS",
    "CachedLookup",
    "CardCondition",
    "CatalogItem",
    "CollectionEntry",
    "EntryChanges",
    "EntryNotFoundError",
    "FailureDetail",
    "FailureKind",
    "FetchError",
    "KnownError",
    "OfflineError",
    "OperationKind",
    "PendingOperation",
    "Profile",
    "RemoteStoreError",
    "ReplayReport",
    "SyncStatus",
    "format_condition",
    "get_market_price",
    "is_temp_id",
    "new_temp_id",
    "parse_condition",
    "validate_quantity",
]
