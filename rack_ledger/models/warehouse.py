"""Depo, raf ve göz veri modelleri.

Belgeler depoda camelCase alan adlarıyla saklanır; to_document/from_document
bu dönüşümü yapar.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union


class Floor(str, Enum):
    GROUND = "GF"
    FIRST = "FF"
    SECOND = "SF"
    THIRD = "TF"
    BASEMENT_1 = "B1"
    BASEMENT_2 = "B2"


class RackStatus(str, Enum):
    ACTIVE = "active"


class BinStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"


class OperationType(str, Enum):
    PUTAWAY = "putaway"
    PICK = "pick"


def as_int(value: Any, default: int = 0) -> int:
    """Belge değerini tamsayıya çevirir (Decimal, str, None toleranslı)."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, Decimal, float)):
        return int(value)
    try:
        return int(float(str(value).strip()))
    except ValueError:
        return default


def parse_status(enum_cls: type, value: Any, default: Enum) -> Union[Enum, str]:
    """Bilinen durumları enum'a çevirir; bilinmeyenler düz metin olarak kalır."""
    if value is None or value == "":
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return str(value)


def status_value(status: Union[Enum, str]) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def floor_code(floor: Any) -> str:
    """Floor enum'u ya da düz metni kat koduna çevirir."""
    return floor.value if isinstance(floor, Floor) else str(floor)


def _utcnow() -> str:
    return datetime.utcnow().isoformat()


@dataclass
class Warehouse:
    id: str
    code: str
    name: str

    @classmethod
    def from_document(cls, doc: dict) -> "Warehouse":
        return cls(id=doc["id"], code=doc.get("code") or "WH", name=doc.get("name", ""))

    def to_document(self) -> dict:
        return {"id": self.id, "code": self.code, "name": self.name}


@dataclass
class RackConfig:
    """Raf oluşturma/güncelleme isteği."""

    floor: str
    rack_number: int
    grid_count: int
    levels_per_grid: list[str]
    bins_per_level: int
    max_products_per_bin: int
    name: str = ""
    location: Optional[str] = None

    @property
    def total_bins(self) -> int:
        return self.grid_count * len(self.levels_per_grid) * self.bins_per_level

    @property
    def total_capacity(self) -> int:
        return self.total_bins * self.max_products_per_bin


@dataclass
class Rack:
    id: str
    warehouse_id: str
    floor: str
    rack_number: int
    grid_count: int
    levels_per_grid: list[str]
    bins_per_level: int
    max_products_per_bin: int
    name: str = ""
    location: Optional[str] = None
    status: Union[RackStatus, str] = RackStatus.ACTIVE
    created_at: str = field(default_factory=_utcnow)
    updated_at: Optional[str] = None

    @property
    def code(self) -> str:
        return f"R{self.rack_number:02d}"

    @property
    def total_bins(self) -> int:
        return self.grid_count * len(self.levels_per_grid) * self.bins_per_level

    @property
    def config(self) -> RackConfig:
        return RackConfig(
            floor=self.floor,
            rack_number=self.rack_number,
            grid_count=self.grid_count,
            levels_per_grid=list(self.levels_per_grid),
            bins_per_level=self.bins_per_level,
            max_products_per_bin=self.max_products_per_bin,
            name=self.name,
            location=self.location,
        )

    @classmethod
    def from_document(cls, doc: dict) -> "Rack":
        return cls(
            id=doc["id"],
            warehouse_id=doc.get("warehouseId", ""),
            floor=doc.get("floor", ""),
            rack_number=as_int(doc.get("rackNumber"), 1),
            grid_count=as_int(doc.get("gridCount")),
            levels_per_grid=list(doc.get("levelsPerGrid") or []),
            bins_per_level=as_int(doc.get("binsPerLevel")),
            max_products_per_bin=as_int(doc.get("maxProductsPerBin")),
            name=doc.get("name", ""),
            location=doc.get("location"),
            status=parse_status(RackStatus, doc.get("status"), RackStatus.ACTIVE),
            created_at=doc.get("createdAt") or _utcnow(),
            updated_at=doc.get("updatedAt"),
        )

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "warehouseId": self.warehouse_id,
            "code": self.code,
            "floor": floor_code(self.floor),
            "rackNumber": self.rack_number,
            "gridCount": self.grid_count,
            "levelsPerGrid": list(self.levels_per_grid),
            "binsPerLevel": self.bins_per_level,
            "maxProductsPerBin": self.max_products_per_bin,
            "totalBins": self.total_bins,
            "name": self.name,
            "location": self.location,
            "status": status_value(self.status),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass
class MixedContent:
    sku: str
    quantity: int
    lot_number: Optional[str] = None
    expiry_date: Optional[str] = None

    @classmethod
    def from_document(cls, doc: dict) -> "MixedContent":
        return cls(
            sku=doc.get("sku", ""),
            quantity=as_int(doc.get("quantity")),
            lot_number=doc.get("lotNumber"),
            expiry_date=doc.get("expiryDate"),
        )

    def to_document(self) -> dict:
        return {
            "sku": self.sku,
            "quantity": self.quantity,
            "lotNumber": self.lot_number,
            "expiryDate": self.expiry_date,
        }


@dataclass
class Bin:
    id: str
    rack_id: str
    grid_number: int
    level: str
    position: int
    code: str
    capacity: int
    current_qty: int = 0
    status: Union[BinStatus, str] = BinStatus.AVAILABLE
    sku: Optional[str] = None
    lot_number: Optional[str] = None
    expiry_date: Optional[str] = None
    mixed_contents: list[MixedContent] = field(default_factory=list)
    created_at: str = field(default_factory=_utcnow)

    @property
    def is_mixed(self) -> bool:
        return len(self.mixed_contents) > 0

    @property
    def is_occupied(self) -> bool:
        if self.current_qty > 0:
            return True
        return any(c.quantity > 0 for c in self.mixed_contents)

    def sku_quantities(self) -> dict[str, int]:
        """Gözdeki SKU -> miktar eşlemesi (karışık gözler dahil)."""
        if self.is_mixed:
            totals: dict[str, int] = {}
            for content in self.mixed_contents:
                if content.sku:
                    totals[content.sku] = totals.get(content.sku, 0) + content.quantity
            return totals
        if self.sku:
            return {self.sku: self.current_qty}
        return {}

    @classmethod
    def from_document(cls, doc: dict) -> "Bin":
        return cls(
            id=doc["id"],
            rack_id=doc.get("rackId", ""),
            grid_number=as_int(doc.get("gridNumber"), 1),
            level=doc.get("level") or "A",
            position=as_int(doc.get("position"), 1),
            code=doc.get("code", ""),
            capacity=as_int(doc.get("capacity")),
            current_qty=as_int(doc.get("currentQty")),
            status=parse_status(BinStatus, doc.get("status"), BinStatus.AVAILABLE),
            sku=doc.get("sku"),
            lot_number=doc.get("lotNumber"),
            expiry_date=doc.get("expiryDate"),
            mixed_contents=[MixedContent.from_document(c) for c in doc.get("mixedContents") or []],
            created_at=doc.get("createdAt") or _utcnow(),
        )

    def to_document(self) -> dict:
        doc = {
            "id": self.id,
            "rackId": self.rack_id,
            "gridNumber": self.grid_number,
            "level": self.level,
            "position": self.position,
            "code": self.code,
            "capacity": self.capacity,
            "currentQty": self.current_qty,
            "status": status_value(self.status),
            "createdAt": self.created_at,
        }
        if self.sku is not None:
            doc["sku"] = self.sku
            doc["lotNumber"] = self.lot_number
            doc["expiryDate"] = self.expiry_date
        if self.mixed_contents:
            doc["mixedContents"] = [c.to_document() for c in self.mixed_contents]
        return doc
