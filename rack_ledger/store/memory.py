"""Bellek içi belge deposu - testler ve geçici çalışma alanları için."""

from __future__ import annotations

import copy
import threading
from typing import Optional

from rack_ledger.errors import TransactionConflict
from rack_ledger.store.base import DocumentStore, StoreTransaction, apply_query, new_document_id


class InMemoryDocumentStore(DocumentStore):
    """Sözlük tabanlı depo. Okuma ve yazmalarda kopya alınır."""

    def __init__(self, lock_timeout: float = 10.0):
        super().__init__(lock_timeout=lock_timeout)
        self._collections: dict[str, dict[str, dict]] = {}
        self._data_lock = threading.RLock()

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        with self._data_lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def list(self, collection: str, filter: Optional[dict] = None, order_by: Optional[str] = None) -> list[dict]:
        with self._data_lock:
            docs = copy.deepcopy(list(self._collections.get(collection, {}).values()))
        return apply_query(docs, filter=filter, order_by=order_by)

    def create(self, collection: str, doc: dict) -> dict:
        doc_id = doc.get("id") or new_document_id()
        stored = {**copy.deepcopy(doc), "id": doc_id}
        with self._data_lock:
            docs = self._collections.setdefault(collection, {})
            if doc_id in docs:
                raise TransactionConflict(f"Belge zaten mevcut: {collection}/{doc_id}")
            docs[doc_id] = stored
        return copy.deepcopy(stored)

    def update(self, collection: str, doc_id: str, patch: dict) -> None:
        with self._data_lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                raise KeyError(f"Belge bulunamadı: {collection}/{doc_id}")
            doc.update(copy.deepcopy(patch))

    def delete(self, collection: str, doc_id: str) -> None:
        with self._data_lock:
            self._collections.get(collection, {}).pop(doc_id, None)

    def _commit(self, tx: StoreTransaction) -> None:
        with self._data_lock:
            # Önce tüm yazmaların uygulanabilir olduğunu doğrula, sonra uygula
            staged = copy.deepcopy(self._collections)
            for op in tx.writes:
                docs = staged.setdefault(op.collection, {})
                if op.action == "create":
                    if op.doc_id in docs:
                        raise TransactionConflict(f"Belge zaten mevcut: {op.collection}/{op.doc_id}", keys=tx.keys)
                    docs[op.doc_id] = copy.deepcopy(op.payload)
                elif op.action == "update":
                    if op.doc_id not in docs:
                        raise TransactionConflict(f"Güncellenecek belge yok: {op.collection}/{op.doc_id}", keys=tx.keys)
                    docs[op.doc_id].update(copy.deepcopy(op.payload))
                elif op.action == "delete":
                    docs.pop(op.doc_id, None)
                else:
                    raise ValueError(f"Bilinmeyen yazma tipi: {op.action}")
            self._collections = staged
