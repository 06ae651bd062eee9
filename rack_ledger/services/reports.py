"""Rapor servisi - stok hareketi, envanter özeti, göz doluluğu ve operasyon özetleri.

Servis yapılandırılmış kayıtlar üretir; tablo/dosya biçimlendirmesi dışarıda yapılır.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional, Union

from rack_ledger.config import Settings, load_settings
from rack_ledger.models.history import parse_timestamp
from rack_ledger.models.warehouse import Bin, OperationType, Rack, as_int, status_value
from rack_ledger.services.inventory_ledger import InventoryLedger, ReplayScope
from rack_ledger.services.report_projector import Direction, ReportProjector, StockMovementReport
from rack_ledger.store.base import DocumentStore, bins_path, history_path, racks_path

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "Completed"
STATUS_PARTIAL = "Partial"
STATUS_FAILED = "Failed"


def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 1) if whole > 0 else 0.0


class StockReportService:
    """Depo raporları. Ledger ve projector dışarıdan verilebilir."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[Settings] = None,
        ledger: Optional[InventoryLedger] = None,
        projector: Optional[ReportProjector] = None,
    ):
        self.store = store
        self.settings = settings or load_settings()
        self.ledger = ledger or InventoryLedger(store, settings=self.settings)
        self.projector = projector or ReportProjector()

    # --- Stok hareketleri ---

    def stock_movements_report(
        self,
        warehouse_id: str,
        scope: Optional[ReplayScope] = None,
        direction: Direction = Direction.MOST_RECENT_FIRST,
        cancel_event: Optional[threading.Event] = None,
    ) -> StockMovementReport:
        """Geçmişi oynatır, hareketleri rapor satırlarına dönüştürür; uyarılar rapora eklenir."""
        result = self.ledger.replay_warehouse(warehouse_id, scope=scope, cancel_event=cancel_event)
        report = self.projector.project(result.movements, direction=direction)
        report.warnings = list(result.warnings)
        logger.info(
            "Stok hareketi raporu hazır: %s, %d satır, %d uyarı",
            warehouse_id, len(report.rows), len(report.warnings),
        )
        return report

    # --- Envanter özeti ---

    def _bins(self, warehouse_id: str) -> list[Bin]:
        return [Bin.from_document(d) for d in self.store.list(bins_path(warehouse_id))]

    def _racks(self, warehouse_id: str) -> dict[str, Rack]:
        return {d["id"]: Rack.from_document(d) for d in self.store.list(racks_path(warehouse_id))}

    def inventory_summary(self, warehouse_id: str, skus: Optional[Iterable[str]] = None) -> dict:
        """Güncel stok; karışık gözlerde her SKU ayrı satırdır. SKU, sonra lokasyona göre sıralı."""
        selected = set(skus or ())
        bins = self._bins(warehouse_id)
        racks = self._racks(warehouse_id)

        inventory = []
        for bin in bins:
            rack = racks.get(bin.rack_id)
            if bin.is_mixed:
                contents = [
                    (c.sku, c.quantity, c.lot_number, c.expiry_date)
                    for c in bin.mixed_contents
                    if c.quantity > 0 and c.sku
                ]
            elif bin.current_qty > 0 and bin.sku:
                contents = [(bin.sku, bin.current_qty, bin.lot_number, bin.expiry_date)]
            else:
                contents = []

            for sku, quantity, lot_number, expiry_date in contents:
                if selected and sku not in selected:
                    continue
                inventory.append({
                    "sku": sku,
                    "location": bin.code,
                    "bin_id": bin.id,
                    "rack_code": rack.code if rack else None,
                    "quantity": quantity,
                    "lot_number": lot_number,
                    "expiry_date": expiry_date,
                })

        inventory.sort(key=lambda row: (row["sku"], row["location"]))
        occupied = sum(1 for b in bins if b.is_occupied)
        summary = {
            "total_rows": len(inventory),
            "total_skus": len({row["sku"] for row in inventory}),
            "total_quantity": sum(row["quantity"] for row in inventory),
            "total_bins_occupied": occupied,
            "total_bins_available": sum(1 for b in bins if b.capacity - b.current_qty > 0),
            "utilization_rate": _percent(occupied, len(bins)),
        }
        logger.info("Envanter özeti hazır: %s, %d satır", warehouse_id, len(inventory))
        return {"inventory": inventory, "summary": summary}

    # --- Göz doluluğu ---

    def bin_utilization(self, warehouse_id: str) -> dict:
        bins = self._bins(warehouse_id)
        racks = self._racks(warehouse_id)

        rows = []
        rack_stats: dict[str, dict] = {}
        for bin in sorted(bins, key=lambda b: b.code):
            rack = racks.get(bin.rack_id)
            rack_code = rack.code if rack else None
            rows.append({
                "bin_code": bin.code,
                "rack_code": rack_code,
                "rack_name": (rack.name if rack else None) or rack_code,
                "capacity": bin.capacity,
                "current_quantity": bin.current_qty,
                "available_space": bin.capacity - bin.current_qty,
                "utilization_percent": _percent(bin.current_qty, bin.capacity),
                "status": status_value(bin.status),
                "sku": bin.sku or ("Mixed" if bin.is_mixed else "Empty"),
            })

            stats = rack_stats.setdefault(bin.rack_id, {
                "rack_id": bin.rack_id,
                "rack_code": rack_code,
                "rack_name": (rack.name if rack else None) or rack_code,
                "floor": rack.floor if rack else None,
                "total_bins": 0,
                "occupied_bins": 0,
                "total_capacity": 0,
                "total_occupied": 0,
            })
            stats["total_bins"] += 1
            stats["total_capacity"] += bin.capacity
            stats["total_occupied"] += bin.current_qty
            if bin.is_occupied:
                stats["occupied_bins"] += 1

        for stats in rack_stats.values():
            stats["utilization"] = _percent(stats["total_occupied"], stats["total_capacity"])

        total_capacity = sum(b.capacity for b in bins)
        total_occupied = sum(b.current_qty for b in bins)
        summary = {
            "total_bins": len(bins),
            "occupied_bins": sum(1 for b in bins if b.is_occupied),
            "empty_bins": sum(1 for b in bins if not b.is_occupied),
            "full_bins": sum(1 for b in bins if b.current_qty >= b.capacity),
            "total_capacity": total_capacity,
            "total_occupied": total_occupied,
            "total_available": total_capacity - total_occupied,
            "overall_utilization": _percent(total_occupied, total_capacity),
            "rack_stats": list(rack_stats.values()),
        }
        return {"utilization": rows, "summary": summary}

    # --- Putaway / pick özetleri ---

    def operation_summary(
        self,
        warehouse_id: str,
        operation_type: Union[OperationType, str],
        since: Optional[str] = None,
        until: Optional[str] = None,
    ) -> dict:
        """Operasyon bazında durum sayıları, miktarlar ve günlük istatistikler.

        Pick özetinde istenen/toplanan miktar ve karşılama oranı (fill rate) da yer alır.
        """
        operation_type = OperationType(operation_type)
        is_pick = operation_type == OperationType.PICK
        lower = parse_timestamp(since) if since else None
        upper = parse_timestamp(until) if until else None

        docs = self.store.list(
            history_path(warehouse_id),
            filter={"operationType": operation_type.value},
            order_by="-timestamp",
        )

        operations = []
        daily: dict[str, dict] = {}
        totals = {
            "total_operations": 0,
            "total_items": 0,
            "successful_items": 0,
            "partial_items": 0,
            "failed_items": 0,
            "total_quantity": 0,
            "picked_quantity": 0,
        }
        for doc in docs:
            try:
                occurred_at = parse_timestamp(doc.get("timestamp"))
            except (TypeError, ValueError):
                logger.warning("Zaman damgası çözülemeyen kayıt atlandı: %s", doc.get("id"))
                continue
            if (lower and occurred_at < lower) or (upper and occurred_at > upper):
                continue

            items = (doc.get("executionDetails") or {}).get("items") or []
            statuses = [item.get("status") for item in items]
            row = {
                "id": doc.get("id"),
                "date": occurred_at.date().isoformat(),
                "file_name": doc.get("fileName"),
                "total_items": len(items),
                "successful_items": statuses.count(STATUS_COMPLETED),
                "partial_items": statuses.count(STATUS_PARTIAL),
                "failed_items": statuses.count(STATUS_FAILED),
                "total_quantity": sum(as_int(item.get("quantity")) for item in items),
            }
            if is_pick:
                row["picked_quantity"] = sum(as_int(item.get("pickedQty")) for item in items)
                row["fill_rate"] = _percent(row["picked_quantity"], row["total_quantity"])
            else:
                row["success_rate"] = _percent(row["successful_items"], row["total_items"])
            operations.append(row)

            totals["total_operations"] += 1
            for name in ("total_items", "successful_items", "partial_items", "failed_items", "total_quantity"):
                totals[name] += row[name]
            totals["picked_quantity"] += row.get("picked_quantity", 0)

            day = daily.setdefault(row["date"], {"date": row["date"], "operations": 0, "items": 0, "quantity": 0, "picked": 0})
            day["operations"] += 1
            day["items"] += row["total_items"]
            day["quantity"] += row["total_quantity"]
            day["picked"] += row.get("picked_quantity", 0)

        summary = dict(totals)
        summary["average_items_per_operation"] = (
            round(totals["total_items"] / totals["total_operations"], 1) if totals["total_operations"] else 0.0
        )
        summary["success_rate"] = _percent(totals["successful_items"], totals["total_items"])
        if is_pick:
            summary["fill_rate"] = _percent(totals["picked_quantity"], totals["total_quantity"])
        else:
            summary.pop("picked_quantity")

        daily_stats = []
        for day in sorted(daily.values(), key=lambda d: d["date"]):
            if is_pick:
                day["fill_rate"] = _percent(day["picked"], day["quantity"])
            else:
                day.pop("picked")
            daily_stats.append(day)

        logger.info(
            "%s özeti hazır: %s, %d operasyon", operation_type.value, warehouse_id, totals["total_operations"]
        )
        return {"operations": operations, "summary": summary, "daily_stats": daily_stats}
