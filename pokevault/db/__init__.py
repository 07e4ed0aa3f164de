from pokevault.db.database import async_session_factory, init_db
from pokevault.db.operations import (
    ACTIVE_COLLECTION_KEY,
    cached_card_to_model,
    delete_setting,
    get_cached_card,
    get_setting,
    load_cached_cards,
    set_setting,
    upsert_cached_card,
)

__all__ = [
    "ACTIVE_COLLECTION_KEY",
    "async_session_factory",
    "cached_card_to_model",
    "delete_setting",
    "get_cached_card",
    "get_setting",
    "init_db",
    "load_cached_cards",
    "set_setting",
    "upsert_cached_card",
]
