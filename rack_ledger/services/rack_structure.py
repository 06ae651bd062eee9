"""Raf Yapısı Yönetimi - raf ve gözlerinin oluşturulması, yeniden boyutlandırılması, silinmesi.

- Aynı depo/kat üzerinde raf numarası tekil olmalı (çakışmada boşluk dolduran öneriler)
- Küçültme stok içeren gözleri asla silmez; tek bir dolu göz tüm işlemi iptal eder
- Her okuma-doğrulama-yazma dizisi tek bir store işleminde çalışır
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional, Union

from rack_ledger.config import Settings, load_settings
from rack_ledger.errors import (
    CapacityBelowOccupancy,
    InvalidRackConfig,
    MalformedLocationCode,
    NonEmptyBinShrink,
    OccupiedBin,
    RackNotEmpty,
    RackNotFound,
    RackNumberConflict,
    TransactionConflict,
    WarehouseNotFound,
)
from rack_ledger.models.warehouse import Bin, BinStatus, Floor, Rack, RackConfig, Warehouse, floor_code
from rack_ledger.services import location_codec, rack_topology
from rack_ledger.services.location_codec import MAX_RACK_NUMBER
from rack_ledger.services.rack_topology import BinSlot
from rack_ledger.store.base import DocumentStore, StoreTransaction, bins_path, new_document_id, racks_path, warehouses_path

logger = logging.getLogger(__name__)

FLOOR_LABELS = {
    Floor.GROUND: "Ground Floor",
    Floor.FIRST: "First Floor",
    Floor.SECOND: "Second Floor",
    Floor.THIRD: "Third Floor",
    Floor.BASEMENT_1: "Basement 1",
    Floor.BASEMENT_2: "Basement 2",
}

FLOOR_OPTIONS = [
    {"value": floor.value, "label": f"{label} ({floor.value})"}
    for floor, label in FLOOR_LABELS.items()
]

# Kurulum süresi tahmini: dakikada 10 göz
BINS_PER_SETUP_MINUTE = 10


@dataclass
class RackCreationResult:
    rack: Rack
    bins: list[Bin]
    summary: dict


@dataclass
class UpdateResult:
    rack: Rack
    bins_added: int = 0
    bins_removed: int = 0
    capacity_updated: int = 0
    location_codes_updated: int = 0


@dataclass
class RackAvailability:
    available: bool
    conflicting_rack: Optional[Rack] = None
    suggestions: list[int] = field(default_factory=list)


def _rack_key(warehouse_id: str, rack_id: str) -> str:
    return f"rack:{warehouse_id}/{rack_id}"


def _floor_key(warehouse_id: str, floor: str) -> str:
    return f"floor:{warehouse_id}/{floor}"


def _now() -> str:
    return datetime.utcnow().isoformat()


def bin_quantity(bin: Bin) -> int:
    """Gözdeki toplam miktar (karışık gözlerde içeriklerin toplamı)."""
    if bin.is_mixed:
        return sum(max(c.quantity, 0) for c in bin.mixed_contents)
    return bin.current_qty


def occupied_bin(bin: Bin) -> OccupiedBin:
    if bin.is_mixed:
        skus = [c.sku for c in bin.mixed_contents if c.quantity > 0 and c.sku]
        sku = ", ".join(skus) or None
    else:
        sku = bin.sku
    return OccupiedBin(code=bin.code, sku=sku, quantity=bin_quantity(bin))


def suggest_rack_numbers(used_numbers, count: int = 5) -> list[int]:
    """1'den başlayarak kullanılmayan en küçük raf numaralarını döner."""
    used = set(used_numbers)
    suggestions = []
    for number in range(1, MAX_RACK_NUMBER + 1):
        if number not in used:
            suggestions.append(number)
            if len(suggestions) == count:
                break
    return suggestions


def validate_rack_config(config: RackConfig) -> list[str]:
    """Konfigürasyondaki tüm ihlalleri tek seferde toplar."""
    errors = []
    floor = floor_code(config.floor) if config.floor else ""
    if not floor:
        errors.append("Kat seçimi zorunlu")
    elif floor not in {f.value for f in Floor}:
        errors.append(f"Bilinmeyen kat kodu: {floor}")

    if not isinstance(config.rack_number, int) or not 1 <= config.rack_number <= MAX_RACK_NUMBER:
        errors.append(f"Raf numarası 1-{MAX_RACK_NUMBER} arasında olmalı: {config.rack_number}")
    if config.grid_count < 1:
        errors.append("Grid sayısı en az 1 olmalı")
    errors.extend(rack_topology.validate_levels(config.levels_per_grid))
    if config.bins_per_level < 1:
        errors.append("Seviye başına göz sayısı en az 1 olmalı")
    if config.max_products_per_bin < 1:
        errors.append("Göz başına maksimum ürün en az 1 olmalı")
    return errors


def generate_rack_summary(config: RackConfig) -> dict:
    """Oluşturma öncesi önizleme özeti."""
    total_bins = config.total_bins
    return {
        "rack_name": config.name,
        "floor": floor_code(config.floor),
        "rack_code": location_codec.format_rack_code(config.rack_number),
        "configuration": {
            "grids": config.grid_count,
            "levels": list(config.levels_per_grid),
            "bins_per_level": config.bins_per_level,
            "total_bins": total_bins,
            "capacity_per_bin": config.max_products_per_bin,
            "total_capacity": config.total_capacity,
        },
        "estimated_setup_minutes": math.ceil(total_bins / BINS_PER_SETUP_MINUTE),
    }


def calculate_rack_metrics(bins: list[Bin]) -> dict:
    total_bins = len(bins)
    occupied = sum(1 for b in bins if b.is_occupied)
    total_capacity = sum(b.capacity for b in bins)
    total_used = sum(bin_quantity(b) for b in bins)
    utilization = (total_used / total_capacity) * 100 if total_capacity > 0 else 0.0
    return {
        "total_bins": total_bins,
        "occupied_bins": occupied,
        "empty_bins": total_bins - occupied,
        "total_capacity": total_capacity,
        "total_used": total_used,
        "utilization": utilization,
    }


def bin_label_payload(bin: Bin) -> dict:
    """Göz etiketi için QR verisi. Kod çözülemezse location None olur."""
    try:
        location = asdict(location_codec.decode(bin.code))
    except MalformedLocationCode:
        logger.warning("Etiket için lokasyon kodu çözülemedi: %r", bin.code)
        location = None
    return {
        "type": "bin",
        "id": bin.id,
        "code": bin.code,
        "location": location,
        "capacity": bin.capacity,
    }


class RackStructureManager:
    """Raf yaşam döngüsü yöneticisi - store dependency injection ile verilir."""

    def __init__(self, store: DocumentStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or load_settings()

    # --- Okuma yardımcıları ---

    def _load_warehouse(self, reader: Union[DocumentStore, StoreTransaction], warehouse_id: str) -> Warehouse:
        doc = reader.get(warehouses_path(), warehouse_id)
        if doc is None:
            raise WarehouseNotFound(warehouse_id)
        return Warehouse.from_document(doc)

    def _load_rack(self, reader: Union[DocumentStore, StoreTransaction], warehouse_id: str, rack_id: str) -> Rack:
        doc = reader.get(racks_path(warehouse_id), rack_id)
        if doc is None:
            raise RackNotFound(warehouse_id, rack_id)
        return Rack.from_document(doc)

    def _load_bins(self, reader: Union[DocumentStore, StoreTransaction], warehouse_id: str, rack_id: str) -> list[Bin]:
        docs = reader.list(bins_path(warehouse_id), filter={"rackId": rack_id})
        return sorted((Bin.from_document(d) for d in docs), key=rack_topology.slot_of)

    def get_rack(self, warehouse_id: str, rack_id: str) -> Rack:
        return self._load_rack(self.store, warehouse_id, rack_id)

    def list_racks(self, warehouse_id: str, floor=None) -> list[Rack]:
        filter = {"floor": floor_code(floor)} if floor else None
        docs = self.store.list(racks_path(warehouse_id), filter=filter, order_by="rackNumber")
        return [Rack.from_document(d) for d in docs]

    def list_bins(self, warehouse_id: str, rack_id: str) -> list[Bin]:
        return self._load_bins(self.store, warehouse_id, rack_id)

    # --- Raf numarası tekilliği ---

    def _availability(
        self,
        reader: Union[DocumentStore, StoreTransaction],
        warehouse_id: str,
        floor: str,
        rack_number: int,
        exclude_rack_id: Optional[str] = None,
    ) -> RackAvailability:
        docs = reader.list(racks_path(warehouse_id), filter={"floor": floor})
        racks = [Rack.from_document(d) for d in docs if d.get("id") != exclude_rack_id]
        conflicting = next((r for r in racks if r.rack_number == rack_number), None)
        if conflicting is None:
            return RackAvailability(available=True)
        suggestions = suggest_rack_numbers(
            (r.rack_number for r in racks), self.settings.suggestion_count
        )
        return RackAvailability(available=False, conflicting_rack=conflicting, suggestions=suggestions)

    def check_rack_number_availability(
        self,
        warehouse_id: str,
        floor,
        rack_number: int,
        exclude_rack_id: Optional[str] = None,
    ) -> RackAvailability:
        return self._availability(self.store, warehouse_id, floor_code(floor), rack_number, exclude_rack_id)

    def suggest_rack_numbers(self, warehouse_id: str, floor) -> list[int]:
        docs = self.store.list(racks_path(warehouse_id), filter={"floor": floor_code(floor)})
        used = (Rack.from_document(d).rack_number for d in docs)
        return suggest_rack_numbers(used, self.settings.suggestion_count)

    def _ensure_unique(
        self,
        tx: StoreTransaction,
        warehouse_id: str,
        floor: str,
        rack_number: int,
        exclude_rack_id: Optional[str] = None,
    ) -> None:
        availability = self._availability(tx, warehouse_id, floor, rack_number, exclude_rack_id)
        if not availability.available:
            raise RackNumberConflict(rack_number, floor, availability.conflicting_rack, availability.suggestions)

    # --- Yazma yardımcıları ---

    def _new_bin(self, rack: Rack, warehouse_code: str, slot: BinSlot) -> Bin:
        return Bin(
            id=new_document_id(),
            rack_id=rack.id,
            grid_number=slot.grid_number,
            level=slot.level,
            position=slot.position,
            code=location_codec.encode(
                warehouse_code, rack.floor, rack.rack_number, slot.grid_number, slot.level, slot.position
            ),
            capacity=rack.max_products_per_bin,
            current_qty=0,
            status=BinStatus.AVAILABLE,
        )

    @staticmethod
    def _normalized(config: RackConfig) -> RackConfig:
        return RackConfig(
            floor=floor_code(config.floor),
            rack_number=config.rack_number,
            grid_count=config.grid_count,
            levels_per_grid=sorted(config.levels_per_grid),
            bins_per_level=config.bins_per_level,
            max_products_per_bin=config.max_products_per_bin,
            name=config.name,
            location=config.location,
        )

    def _validated(self, config: RackConfig) -> RackConfig:
        errors = validate_rack_config(config)
        if errors:
            raise InvalidRackConfig(errors)
        return self._normalized(config)

    # --- Oluşturma ---

    def create_rack_with_structure(self, warehouse_id: str, config: RackConfig) -> RackCreationResult:
        """Rafı ve tüm gözlerini tek işlemde oluşturur."""
        config = self._validated(config)

        def _create(tx: StoreTransaction) -> tuple[Rack, list[Bin]]:
            warehouse = self._load_warehouse(tx, warehouse_id)
            self._ensure_unique(tx, warehouse_id, config.floor, config.rack_number)

            rack = Rack(
                id=new_document_id(),
                warehouse_id=warehouse_id,
                floor=config.floor,
                rack_number=config.rack_number,
                grid_count=config.grid_count,
                levels_per_grid=list(config.levels_per_grid),
                bins_per_level=config.bins_per_level,
                max_products_per_bin=config.max_products_per_bin,
                name=config.name or location_codec.format_rack_code(config.rack_number),
                location=config.location,
            )
            tx.create(racks_path(warehouse_id), rack.to_document())

            bins = [
                self._new_bin(rack, warehouse.code, slot)
                for slot in rack_topology.enumerate_slots(rack.grid_count, rack.levels_per_grid, rack.bins_per_level)
            ]
            for bin in bins:
                tx.create(bins_path(warehouse_id), bin.to_document())
            return rack, bins

        rack, bins = self.store.transaction(_create, keys=[_floor_key(warehouse_id, config.floor)])
        logger.info(
            "Raf oluşturuldu: %s/%s-%s (%d göz, kapasite %d)",
            warehouse_id, rack.floor, rack.code, len(bins), config.total_capacity,
        )
        return RackCreationResult(
            rack=rack,
            bins=bins,
            summary={"total_bins": len(bins), "total_capacity": len(bins) * rack.max_products_per_bin},
        )

    # --- Güncelleme ---

    def update_rack_structure(self, warehouse_id: str, rack_id: str, new_config: RackConfig) -> UpdateResult:
        """Raf yapısını yeni konfigürasyona getirir.

        Tüm kontroller geçmeden hiçbir yazma yapılmaz. Kaldırılacak gözlerden
        biri bile doluysa NonEmptyBinShrink, tutulan bir gözün stoğu yeni
        kapasiteyi aşıyorsa CapacityBelowOccupancy fırlatılır.
        """
        target = self._validated(new_config)
        original_floor = self.get_rack(warehouse_id, rack_id).floor
        keys = {
            _rack_key(warehouse_id, rack_id),
            _floor_key(warehouse_id, original_floor),
            _floor_key(warehouse_id, target.floor),
        }

        def _update(tx: StoreTransaction) -> UpdateResult:
            rack = self._load_rack(tx, warehouse_id, rack_id)
            if rack.floor != original_floor:
                raise TransactionConflict(
                    f"Raf {rack_id} işlem sırasında başka bir kata taşındı", keys=tx.keys
                )
            warehouse = self._load_warehouse(tx, warehouse_id)
            bins = self._load_bins(tx, warehouse_id, rack_id)
            changes = rack_topology.diff(bins, target)

            blocked = [occupied_bin(b) for b in changes.to_remove if b.is_occupied]
            if blocked:
                raise NonEmptyBinShrink(blocked)

            relocated = target.floor != rack.floor or target.rack_number != rack.rack_number
            if relocated:
                self._ensure_unique(tx, warehouse_id, target.floor, target.rack_number, exclude_rack_id=rack_id)

            capacity_changed = target.max_products_per_bin != rack.max_products_per_bin
            if capacity_changed:
                overfull = [
                    occupied_bin(b) for b in changes.retained
                    if bin_quantity(b) > target.max_products_per_bin
                ]
                if overfull:
                    raise CapacityBelowOccupancy(target.max_products_per_bin, overfull)

            # Tüm kontroller geçti, yazmalar buradan sonra
            rack.floor = target.floor
            rack.rack_number = target.rack_number
            rack.grid_count = target.grid_count
            rack.levels_per_grid = list(target.levels_per_grid)
            rack.bins_per_level = target.bins_per_level
            rack.max_products_per_bin = target.max_products_per_bin
            rack.name = target.name or rack.name
            rack.location = target.location if target.location is not None else rack.location
            rack.updated_at = _now()
            patch = rack.to_document()
            patch.pop("id")
            patch.pop("createdAt")
            tx.update(racks_path(warehouse_id), rack_id, patch)

            result = UpdateResult(rack=rack)
            for slot in changes.to_create:
                tx.create(bins_path(warehouse_id), self._new_bin(rack, warehouse.code, slot).to_document())
                result.bins_added += 1

            for bin in changes.to_remove:
                tx.delete(bins_path(warehouse_id), bin.id)
                result.bins_removed += 1

            for bin in changes.retained:
                bin_patch = {}
                if capacity_changed:
                    bin_patch["capacity"] = target.max_products_per_bin
                    result.capacity_updated += 1
                if relocated:
                    bin_patch["code"] = location_codec.encode(
                        warehouse.code, rack.floor, rack.rack_number, bin.grid_number, bin.level, bin.position
                    )
                    result.location_codes_updated += 1
                if bin_patch:
                    tx.update(bins_path(warehouse_id), bin.id, bin_patch)
            return result

        result = self.store.transaction(_update, keys=sorted(keys))
        logger.info(
            "Raf güncellendi: %s/%s +%d -%d göz, kapasite=%d, kod=%d",
            warehouse_id, rack_id, result.bins_added, result.bins_removed,
            result.capacity_updated, result.location_codes_updated,
        )
        return result

    # --- Silme ---

    def delete_rack_structure(self, warehouse_id: str, rack_id: str) -> int:
        """Boş rafı ve gözlerini siler, silinen göz sayısını döner."""

        def _delete(tx: StoreTransaction) -> int:
            rack = self._load_rack(tx, warehouse_id, rack_id)
            bins = self._load_bins(tx, warehouse_id, rack_id)
            occupied = [occupied_bin(b) for b in bins if b.is_occupied]
            if occupied:
                raise RackNotEmpty(rack_id, occupied)
            for bin in bins:
                tx.delete(bins_path(warehouse_id), bin.id)
            tx.delete(racks_path(warehouse_id), rack_id)
            return len(bins)

        deleted = self.store.transaction(_delete, keys=[_rack_key(warehouse_id, rack_id)])
        logger.info("Raf silindi: %s/%s (%d göz)", warehouse_id, rack_id, deleted)
        return deleted
