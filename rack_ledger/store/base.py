"""Belge deposu arayüzü.

Çekirdek servisler depoyu yalnızca bu arayüz üzerinden kullanır; DynamoDB ve
bellek içi gerçekleştirmeler aynı davranışı sağlar.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, TypeVar

from rack_ledger.store.locks import ResourceLock

logger = logging.getLogger(__name__)

T = TypeVar("T")


def warehouses_path() -> str:
    return "warehouses"


def racks_path(warehouse_id: str) -> str:
    return f"warehouses/{warehouse_id}/racks"


def bins_path(warehouse_id: str) -> str:
    return f"warehouses/{warehouse_id}/bins"


def history_path(warehouse_id: str) -> str:
    return f"warehouses/{warehouse_id}/operationHistory"


def new_document_id() -> str:
    return str(uuid.uuid4())


def apply_query(
    docs: Iterable[dict],
    filter: Optional[dict] = None,
    order_by: Optional[str] = None,
) -> list[dict]:
    """Eşitlik filtresi ve tek alan sıralaması uygular.

    order_by "-" ile başlarsa azalan sıralanır. Alanı olmayan belgeler sona düşer.
    """
    result = [d for d in docs if not filter or all(d.get(k) == v for k, v in filter.items())]
    if order_by:
        descending = order_by.startswith("-")
        name = order_by.lstrip("-")
        present = [d for d in result if d.get(name) is not None]
        missing = [d for d in result if d.get(name) is None]
        present.sort(key=lambda d: d[name], reverse=descending)
        result = present + missing
    return result


@dataclass
class WriteOp:
    action: str  # create | update | delete
    collection: str
    doc_id: str
    payload: Optional[dict] = None


@dataclass
class StoreTransaction:
    """Bir işlem içindeki okuma/yazma tamponu.

    Okumalar commit edilmiş duruma gider, yazmalar fn dönene kadar bekletilir.
    """

    store: "DocumentStore"
    keys: tuple[str, ...] = ()
    writes: list[WriteOp] = field(default_factory=list)
    context: dict = field(default_factory=dict)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return self.store.get(collection, doc_id)

    def list(self, collection: str, filter: Optional[dict] = None, order_by: Optional[str] = None) -> list[dict]:
        return self.store.list(collection, filter=filter, order_by=order_by)

    def create(self, collection: str, doc: dict) -> dict:
        doc_id = doc.get("id") or new_document_id()
        stored = {**doc, "id": doc_id}
        self.writes.append(WriteOp("create", collection, doc_id, stored))
        return stored

    def update(self, collection: str, doc_id: str, patch: dict) -> None:
        self.writes.append(WriteOp("update", collection, doc_id, dict(patch)))

    def delete(self, collection: str, doc_id: str) -> None:
        self.writes.append(WriteOp("delete", collection, doc_id))


class DocumentStore(ABC):
    """Koleksiyon yolu + belge id ile adreslenen belge deposu."""

    def __init__(self, lock_timeout: float = 10.0):
        self.lock_timeout = lock_timeout
        self._resource_lock = ResourceLock()

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def list(self, collection: str, filter: Optional[dict] = None, order_by: Optional[str] = None) -> list[dict]:
        ...

    @abstractmethod
    def create(self, collection: str, doc: dict) -> dict:
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, patch: dict) -> None:
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    def _commit(self, tx: StoreTransaction) -> None:
        """Tamponlanmış yazmaları atomik olarak uygular."""
        ...

    def _begin(self, tx: StoreTransaction) -> None:
        """İşlem başında çağrılır (iyimser eşzamanlılık için sürüm okuma vb.)."""
        return None

    def transaction(self, fn: Callable[[StoreTransaction], T], keys: Iterable[str] = ()) -> T:
        """fn'i verilen anahtarlar üzerinde seri hale getirilmiş bir işlemde çalıştırır.

        fn hata fırlatırsa hiçbir yazma uygulanmaz. Kilit alınamazsa ya da
        commit çakışırsa TransactionConflict fırlatılır; tekrar deneme yapılmaz.
        """
        owner = new_document_id()
        with self._resource_lock.hold(keys, owner, timeout=self.lock_timeout) as held:
            tx = StoreTransaction(store=self, keys=held)
            self._begin(tx)
            result = fn(tx)
            if tx.writes:
                self._commit(tx)
                logger.debug("İşlem commit edildi: %d yazma, anahtarlar=%s", len(tx.writes), held)
            return result
