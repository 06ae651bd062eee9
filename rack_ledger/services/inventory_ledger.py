"""Stok Defteri - operasyon geçmişinin yeniden oynatılması.

Putaway/pick kayıtları zaman sırasına göre oynatılarak her (SKU, göz) çifti
için açılış/kapanış miktarları yeniden hesaplanır. Oynatma saf bir
hesaplamadır; depoya hiçbir şey yazmaz.

Kapsam:
- since verilmişse since'ten önceki olaylar yalnızca açılış bakiyelerini kurar
- since <= zaman <= until aralığındaki olaylar hareket kaydı üretir
- skus verilmişse her iki geçişte de yalnızca bu SKU'lar işlenir

Kapanış miktarı 0'ın altına düşmez. Sabitleme olduğunda hareket miktarı
değiştirilmez, bunun yerine "clamped" uyarısı üretilir.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Iterator, Optional, Union

from rack_ledger.config import Settings, load_settings
from rack_ledger.errors import MalformedHistoryEntry, ReplayCancelled, ReplayContinuityWarning
from rack_ledger.models.history import (
    UNKNOWN_BIN_CODE,
    HistoryItem,
    LegacyItem,
    MovementRecord,
    OperationHistoryEntry,
    PickedBinsItem,
    PutawayAllocationItem,
    parse_history_entry,
    parse_timestamp,
)
from rack_ledger.models.warehouse import Bin, OperationType
from rack_ledger.store.base import DocumentStore, bins_path, history_path

logger = logging.getLogger(__name__)

BalanceKey = tuple[str, str]


@dataclass
class ReplayScope:
    since: Optional[Union[str, datetime]] = None
    until: Optional[Union[str, datetime]] = None
    skus: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        self.skus = frozenset(self.skus or ())

    def bounds(self) -> tuple[Optional[datetime], Optional[datetime]]:
        since = parse_timestamp(self.since) if self.since else None
        until = parse_timestamp(self.until) if self.until else None
        if since and until and since > until:
            raise ValueError(f"Geçersiz aralık: since ({self.since}) until'den ({self.until}) sonra")
        return since, until

    def includes_sku(self, sku: str) -> bool:
        return not self.skus or sku in self.skus


@dataclass
class ReplayResult:
    movements: list[MovementRecord] = field(default_factory=list)
    balances: dict[BalanceKey, int] = field(default_factory=dict)
    opening_balances: dict[BalanceKey, int] = field(default_factory=dict)
    warnings: list[ReplayContinuityWarning] = field(default_factory=list)


@dataclass
class ReplayRequest:
    warehouse_id: str
    scope: Optional[ReplayScope] = None


def item_deltas(
    operation_type: OperationType, item: HistoryItem
) -> Iterator[tuple[str, Optional[str], int]]:
    """Bir geçmiş kalemini (göz id, göz kodu, miktar değişimi) üçlülerine açar."""
    if isinstance(item, PutawayAllocationItem):
        for allocation in item.allocations:
            yield allocation.bin_id, allocation.bin_code, allocation.allocated_quantity
    elif isinstance(item, PickedBinsItem):
        for picked in item.picked_bins:
            yield picked.bin_id, picked.bin_code, -picked.quantity
    elif isinstance(item, LegacyItem):
        if operation_type == OperationType.PUTAWAY:
            yield item.bin_id, item.bin_code, item.quantity
        else:
            quantity = item.picked_qty if item.picked_qty is not None else item.quantity
            yield item.bin_id, item.bin_code, -quantity


def check_continuity(movements: Iterable[MovementRecord]) -> list[ReplayContinuityWarning]:
    """Aynı (SKU, göz) için ardışık hareketlerde açılış == önceki kapanış kontrolü."""
    warnings = []
    last_closing: dict[BalanceKey, int] = {}
    for movement in movements:
        key = movement.key
        if key in last_closing and movement.opening != last_closing[key]:
            warnings.append(
                ReplayContinuityWarning(
                    ReplayContinuityWarning.CONTINUITY,
                    movement.sku,
                    movement.bin_id,
                    expected=last_closing[key],
                    actual=movement.opening,
                    timestamp=movement.timestamp,
                    event_id=movement.event_id,
                )
            )
        last_closing[key] = movement.closing
    return warnings


def reconcile(balances: dict[BalanceKey, int], bins: Iterable[Bin]) -> list[ReplayContinuityWarning]:
    """Yeniden hesaplanan bakiyeleri gözlerin güncel kayıtlarıyla karşılaştırır.

    Yalnızca kapsamsız (tüm geçmiş) bir oynatmanın sonucu için anlamlıdır.
    """
    replayed_by_bin: dict[str, dict[str, int]] = {}
    for (sku, bin_id), quantity in balances.items():
        replayed_by_bin.setdefault(bin_id, {})[sku] = quantity

    warnings = []
    for bin in bins:
        recorded = bin.sku_quantities()
        replayed = replayed_by_bin.get(bin.id, {})
        for sku in sorted(set(recorded) | set(replayed)):
            expected = recorded.get(sku, 0)
            actual = replayed.get(sku, 0)
            if expected != actual:
                warnings.append(
                    ReplayContinuityWarning(
                        ReplayContinuityWarning.RECONCILIATION, sku, bin.id, expected=expected, actual=actual
                    )
                )
    return warnings


class InventoryLedger:
    """Operasyon geçmişinden stok hareketi yeniden oluşturucu."""

    def __init__(self, store: Optional[DocumentStore] = None, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or load_settings()

    # --- Saf oynatma ---

    def _coerce(self, events: Iterable[Union[OperationHistoryEntry, dict]]) -> list[OperationHistoryEntry]:
        entries = []
        for event in events:
            if isinstance(event, OperationHistoryEntry):
                entries.append(event)
                continue
            try:
                entries.append(parse_history_entry(event))
            except MalformedHistoryEntry as e:
                logger.warning("Geçmiş kaydı atlandı: %s", e)
        return entries

    def replay(
        self,
        events: Iterable[Union[OperationHistoryEntry, dict]],
        scope: Optional[ReplayScope] = None,
        bin_codes: Optional[dict[str, str]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReplayResult:
        """Olayları zaman sırasıyla oynatır.

        Aynı zaman damgalı olaylar giriş sırasını korur. cancel_event set
        edilirse ReplayCancelled fırlatılır ve kısmi sonuç döndürülmez.
        """
        scope = scope or ReplayScope()
        since, until = scope.bounds()
        bin_codes = bin_codes or {}
        entries = sorted(self._coerce(events), key=lambda e: e.occurred_at)

        result = ReplayResult()
        balances: dict[BalanceKey, int] = {}
        opening_done = since is None

        for entry in entries:
            if cancel_event is not None and cancel_event.is_set():
                raise ReplayCancelled("Oynatma iptal edildi")

            if since is not None and entry.occurred_at < since:
                self._apply(entry, scope, balances, bin_codes, result=None)
                continue
            if not opening_done:
                result.opening_balances = dict(balances)
                opening_done = True
            if until is not None and entry.occurred_at > until:
                # Sıralı olduğundan sonrakiler de aralık dışında
                break
            self._apply(entry, scope, balances, bin_codes, result=result)

        if not opening_done:
            result.opening_balances = dict(balances)
        result.balances = balances
        result.warnings.extend(check_continuity(result.movements))

        logger.debug(
            "Oynatma tamamlandı: %d olay, %d hareket, %d uyarı",
            len(entries), len(result.movements), len(result.warnings),
        )
        return result

    def _apply(
        self,
        entry: OperationHistoryEntry,
        scope: ReplayScope,
        balances: dict[BalanceKey, int],
        bin_codes: dict[str, str],
        result: Optional[ReplayResult],
    ) -> None:
        for item in entry.items:
            if not scope.includes_sku(item.sku):
                continue
            for bin_id, bin_code, delta in item_deltas(entry.operation_type, item):
                key = (item.sku, bin_id)
                opening = balances.get(key, 0)
                raw_closing = opening + delta
                closing = max(raw_closing, 0)
                balances[key] = closing

                if result is None:
                    continue

                clamped = raw_closing < 0
                if clamped:
                    warning = ReplayContinuityWarning(
                        ReplayContinuityWarning.CLAMPED,
                        item.sku,
                        bin_id,
                        expected=abs(delta),
                        actual=opening,
                        timestamp=entry.timestamp,
                        event_id=entry.id,
                    )
                    logger.warning("Kapanış 0'a sabitlendi: %s", warning)
                    result.warnings.append(warning)

                result.movements.append(
                    MovementRecord(
                        timestamp=entry.timestamp,
                        sku=item.sku,
                        bin_id=bin_id,
                        bin_code=bin_code or bin_codes.get(bin_id) or UNKNOWN_BIN_CODE,
                        operation_type=entry.operation_type,
                        quantity=abs(delta),
                        opening=opening,
                        closing=closing,
                        event_id=entry.id,
                        lot_number=item.lot_number,
                        status=item.status,
                        notes=item.notes,
                        clamped=clamped,
                    )
                )

    # --- Depo destekli işlemler ---

    def _require_store(self) -> DocumentStore:
        if self.store is None:
            raise RuntimeError("Bu işlem için InventoryLedger'a bir store verilmeli")
        return self.store

    def load_history(self, warehouse_id: str) -> list[OperationHistoryEntry]:
        """Deponun operasyon geçmişini okur, bozuk kayıtları uyarıyla atlar."""
        docs = self._require_store().list(history_path(warehouse_id), order_by="timestamp")
        entries = []
        for doc in docs:
            try:
                entries.append(parse_history_entry(doc, warehouse_id))
            except MalformedHistoryEntry as e:
                logger.warning("Geçmiş kaydı atlandı (%s): %s", warehouse_id, e)
        return entries

    def load_bins(self, warehouse_id: str) -> list[Bin]:
        return [Bin.from_document(d) for d in self._require_store().list(bins_path(warehouse_id))]

    def replay_warehouse(
        self,
        warehouse_id: str,
        scope: Optional[ReplayScope] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReplayResult:
        entries = self.load_history(warehouse_id)
        bin_codes = {b.id: b.code for b in self.load_bins(warehouse_id)}
        result = self.replay(entries, scope=scope, bin_codes=bin_codes, cancel_event=cancel_event)
        logger.info(
            "Depo %s oynatıldı: %d hareket, %d uyarı", warehouse_id, len(result.movements), len(result.warnings)
        )
        return result

    def replay_many(
        self,
        requests: list[ReplayRequest],
        cancel_event: Optional[threading.Event] = None,
    ) -> list[ReplayResult]:
        """Birden fazla oynatma isteğini worker havuzunda çalıştırır, sonuçlar istek sırasındadır."""
        if not requests:
            return []
        workers = min(self.settings.report_workers, len(requests))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self.replay_warehouse, r.warehouse_id, r.scope, cancel_event)
                for r in requests
            ]
            return [f.result() for f in futures]

    def reconcile_warehouse(self, warehouse_id: str) -> list[ReplayContinuityWarning]:
        """Tüm geçmişi oynatıp deponun güncel göz kayıtlarıyla karşılaştırır."""
        bins = self.load_bins(warehouse_id)
        result = self.replay(self.load_history(warehouse_id), bin_codes={b.id: b.code for b in bins})
        warnings = reconcile(result.balances, bins)
        for warning in warnings:
            logger.warning("Defter uyuşmazlığı: %s", warning)
        return warnings
