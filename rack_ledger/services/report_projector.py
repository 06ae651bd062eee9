"""Hareket kayıtlarını rapor satırları ve özet istatistiklere dönüştürür.

Filtreleme yapılmaz; kapsam InventoryLedger.replay'de belirlenir.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from rack_ledger.models.history import MovementRecord
from rack_ledger.models.warehouse import OperationType


class Direction(str, Enum):
    MOST_RECENT_FIRST = "most_recent_first"
    CHRONOLOGICAL = "chronological"


@dataclass
class StockMovementReport:
    rows: list[MovementRecord]
    summary: dict
    warnings: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rows": [r.to_dict() for r in self.rows],
            "summary": dict(self.summary),
            "warnings": [str(w) for w in self.warnings],
        }


def summarize(rows: list[MovementRecord]) -> dict:
    return {
        "total_movements": len(rows),
        "putaway_count": sum(1 for r in rows if r.operation_type == OperationType.PUTAWAY),
        "pick_count": sum(1 for r in rows if r.operation_type == OperationType.PICK),
        "total_quantity_moved": sum(r.quantity for r in rows),
        "unique_skus": len({r.sku for r in rows}),
        "unique_locations": len({r.bin_code for r in rows}),
    }


class ReportProjector:
    """Durumsuz rapor şekillendirici."""

    def project(
        self,
        movements: Iterable[MovementRecord],
        direction: Direction = Direction.MOST_RECENT_FIRST,
    ) -> StockMovementReport:
        rows = list(movements)
        if Direction(direction) == Direction.MOST_RECENT_FIRST:
            rows.reverse()
        return StockMovementReport(rows=rows, summary=summarize(rows))
