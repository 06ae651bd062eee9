"""Anahtar bazlı kilitler - aynı raf üzerindeki işlemleri sıraya sokar."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from rack_ledger.errors import TransactionConflict

logger = logging.getLogger(__name__)


class ResourceLock:
    """Eşzamanlı kaynak erişim kontrolü (anahtar başına bir threading.Lock)."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._lock_owners: dict[str, str] = {}
        self._master_lock = threading.Lock()

    def acquire(self, resource_key: str, owner: str, timeout: float = 10.0) -> bool:
        """Bir kaynak için kilit alır."""
        with self._master_lock:
            if resource_key not in self._locks:
                self._locks[resource_key] = threading.Lock()
            lock = self._locks[resource_key]

        acquired = lock.acquire(timeout=timeout)
        if acquired:
            with self._master_lock:
                self._lock_owners[resource_key] = owner
            logger.debug("Kilit alındı: %s -> %s", owner, resource_key)
        else:
            logger.warning("Kilit alınamadı: %s -> %s (timeout)", owner, resource_key)
        return acquired

    def release(self, resource_key: str, owner: str) -> bool:
        """Bir kaynak kilidini serbest bırakır. Sahip kontrolü ve silme tek adımdır."""
        with self._master_lock:
            lock = self._locks.get(resource_key)
            if lock is None:
                return False

            current = self._lock_owners.get(resource_key)
            if current != owner:
                logger.warning("Kilit sahibi uyuşmazlığı: %s != %s", owner, current)
                return False

            del self._lock_owners[resource_key]
            lock.release()
        return True

    def owner_of(self, resource_key: str) -> Optional[str]:
        with self._master_lock:
            return self._lock_owners.get(resource_key)

    def is_locked(self, resource_key: str) -> bool:
        """Kaynağın kilitli olup olmadığını kontrol eder."""
        with self._master_lock:
            lock = self._locks.get(resource_key)
        return lock is not None and lock.locked()

    @contextmanager
    def hold(self, resource_keys: Iterable[str], owner: str, timeout: float = 10.0) -> Iterator[tuple[str, ...]]:
        """Birden çok anahtarı sıralı alır, blok bitince bırakır.

        Anahtarlar her zaman sıralı alındığı için iki işlem birbirini kilitleyemez.
        Herhangi biri zaman aşımına uğrarsa alınanlar bırakılır ve
        TransactionConflict fırlatılır.
        """
        keys = tuple(sorted(set(resource_keys)))
        held: list[str] = []
        try:
            for key in keys:
                if not self.acquire(key, owner, timeout=timeout):
                    raise TransactionConflict(f"Kilit alınamadı: {key}", keys=keys)
                held.append(key)
            yield keys
        finally:
            for key in reversed(held):
                self.release(key, owner)
