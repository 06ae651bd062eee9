from rack_ledger.store.base import (
    DocumentStore,
    StoreTransaction,
    bins_path,
    history_path,
    racks_path,
    warehouses_path,
)
from rack_ledger.store.memory import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "StoreTransaction",
    "bins_path",
    "history_path",
    "racks_path",
    "warehouses_path",
]
