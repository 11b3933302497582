from pokeshelf.db.database import init_db
from pokeshelf.db.operations import (
    create_profile,
    delete_entry,
    entry_to_model,
    get_entry,
    get_entry_by_client_ref,
    get_profile,
    insert_entry,
    list_entries,
    list_profiles,
    profile_to_model,
    update_entry,
)
from pokeshelf.db.remote_store import RemoteStore, classify_store_error

__all__ = [
    "RemoteStore",
    "classify_store_error",
    "create_profile",
    "delete_entry",
    "entry_to_model",
    "get_entry",
    "get_entry_by_client_ref",
    "get_profile",
    "init_db",
    "insert_entry",
    "list_entries",
    "list_profiles",
    "profile_to_model",
    "update_entry",
]
