"""Operasyon geçmişi (putaway/pick) kayıtları ve hareket modelleri.

Geçmiş kalemleri üç biçimde gelir:
- allocationPlan[] taşıyan putaway kalemleri
- pickedBins[] taşıyan pick kalemleri
- dizisi olmayan eski (legacy) düz kayıtlar: binId/binCode/quantity|pickedQty
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

from rack_ledger.errors import MalformedHistoryEntry
from rack_ledger.models.warehouse import OperationType, as_int

UNKNOWN_BIN_ID = "UNKNOWN"
UNKNOWN_BIN_CODE = "Unknown"


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """ISO-8601 zaman damgasını UTC'ye normalize edilmiş datetime'a çevirir.

    Saat dilimi olmayan değerler UTC kabul edilir.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class AllocationLine:
    bin_id: str
    bin_code: Optional[str]
    allocated_quantity: int
    reason: str = ""


@dataclass
class PickedBinLine:
    bin_id: str
    bin_code: Optional[str]
    quantity: int


@dataclass
class HistoryItem:
    sku: str
    lot_number: Optional[str] = None
    status: Optional[str] = None
    notes: str = ""


@dataclass
class PutawayAllocationItem(HistoryItem):
    allocations: list[AllocationLine] = field(default_factory=list)


@dataclass
class PickedBinsItem(HistoryItem):
    picked_bins: list[PickedBinLine] = field(default_factory=list)


@dataclass
class LegacyItem(HistoryItem):
    bin_id: str = UNKNOWN_BIN_ID
    bin_code: Optional[str] = None
    quantity: int = 0
    picked_qty: Optional[int] = None


@dataclass
class OperationHistoryEntry:
    id: str
    warehouse_id: str
    operation_type: OperationType
    timestamp: str
    occurred_at: datetime
    items: list[HistoryItem] = field(default_factory=list)


@dataclass
class MovementRecord:
    """Bir (SKU, göz) çifti için tek bir stok hareketi."""

    timestamp: str
    sku: str
    bin_id: str
    bin_code: str
    operation_type: OperationType
    quantity: int
    opening: int
    closing: int
    event_id: Optional[str] = None
    lot_number: Optional[str] = None
    status: Optional[str] = None
    notes: str = ""
    clamped: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return (self.sku, self.bin_id)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "sku": self.sku,
            "binId": self.bin_id,
            "binCode": self.bin_code,
            "operationType": self.operation_type.value,
            "quantity": self.quantity,
            "opening": self.opening,
            "closing": self.closing,
            "eventId": self.event_id,
            "lotNumber": self.lot_number,
            "status": self.status,
            "notes": self.notes,
            "clamped": self.clamped,
        }


def _parse_item(operation_type: OperationType, raw: dict) -> HistoryItem:
    sku = raw.get("barcode") or raw.get("sku") or ""
    common = {
        "sku": str(sku),
        "lot_number": raw.get("lotNumber"),
        "status": raw.get("status"),
        "notes": raw.get("notes") or raw.get("error") or "",
    }

    allocation_plan = raw.get("allocationPlan")
    if operation_type == OperationType.PUTAWAY and isinstance(allocation_plan, list):
        return PutawayAllocationItem(
            allocations=[
                AllocationLine(
                    bin_id=a.get("binId") or UNKNOWN_BIN_ID,
                    bin_code=a.get("binCode"),
                    allocated_quantity=as_int(a.get("allocatedQuantity")),
                    reason=a.get("reason") or "",
                )
                for a in allocation_plan
            ],
            **common,
        )

    picked_bins = raw.get("pickedBins")
    if operation_type == OperationType.PICK and isinstance(picked_bins, list):
        return PickedBinsItem(
            picked_bins=[
                PickedBinLine(
                    bin_id=p.get("binId") or UNKNOWN_BIN_ID,
                    bin_code=p.get("binCode"),
                    quantity=as_int(p.get("quantity")),
                )
                for p in picked_bins
            ],
            **common,
        )

    picked_qty = raw.get("pickedQty")
    return LegacyItem(
        bin_id=raw.get("binId") or UNKNOWN_BIN_ID,
        bin_code=raw.get("binCode"),
        quantity=as_int(raw.get("quantity")),
        picked_qty=as_int(picked_qty) if picked_qty not in (None, "") else None,
        **common,
    )


def parse_history_entry(doc: dict, warehouse_id: str = "") -> OperationHistoryEntry:
    """Depo belgesini tipli OperationHistoryEntry'ye çevirir."""
    entry_id = doc.get("id", "")
    try:
        operation_type = OperationType(doc.get("operationType"))
    except ValueError:
        raise MalformedHistoryEntry(entry_id, f"bilinmeyen operasyon tipi: {doc.get('operationType')!r}")

    raw_timestamp = doc.get("timestamp")
    if not raw_timestamp:
        raise MalformedHistoryEntry(entry_id, "timestamp eksik")
    try:
        occurred_at = parse_timestamp(raw_timestamp)
    except (TypeError, ValueError):
        raise MalformedHistoryEntry(entry_id, f"timestamp çözümlenemedi: {raw_timestamp!r}")

    details = doc.get("executionDetails") or {}
    raw_items = details.get("items") or []
    return OperationHistoryEntry(
        id=entry_id,
        warehouse_id=doc.get("warehouseId") or warehouse_id,
        operation_type=operation_type,
        timestamp=raw_timestamp if isinstance(raw_timestamp, str) else occurred_at.isoformat(),
        occurred_at=occurred_at,
        items=[_parse_item(operation_type, raw) for raw in raw_items if isinstance(raw, dict)],
    )


def history_document(
    operation_type: Union[OperationType, str],
    timestamp: str,
    items: list[dict],
    entry_id: Optional[str] = None,
    warehouse_id: Optional[str] = None,
    **extra: Any,
) -> dict:
    """Geçmiş belgesi sözlüğü üretir (kayıt tarafı ve testler için)."""
    doc = {
        "operationType": OperationType(operation_type).value,
        "timestamp": timestamp,
        "executionDetails": {"items": items},
        **extra,
    }
    if entry_id is not None:
        doc["id"] = entry_id
    if warehouse_id is not None:
        doc["warehouseId"] = warehouse_id
    return doc
