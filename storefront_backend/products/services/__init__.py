from .catalog_sync import SyncResult, sync_catalog, upsert_product

__all__ = [
    "SyncResult",
    "sync_catalog",
    "upsert_product",
]
