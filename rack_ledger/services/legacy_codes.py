"""Eski lokasyon kodlarının kanonik formata tek seferlik taşınması.

Eski (grid-harfi) formatta harf grid numarasını, sayı ise grid içindeki sıralı
pozisyonu gösterir: WH1-GF-R04-G02-B7 = Grid 2, 7. göz. Depo kodunun sonuna da
"1" eklenirdi. Kanonik formatta ise harf seviyeyi gösterir; dolayısıyla aynı
metin iki formatta farklı gözü işaret eder. Bu modül canlı codec'e dahil
değildir, yalnızca taşıma sırasında çağrılır.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rack_ledger.errors import MalformedLocationCode
from rack_ledger.models.warehouse import Rack, as_int
from rack_ledger.services import location_codec
from rack_ledger.services.location_codec import LEVEL_LETTERS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CodeMigration:
    bin_id: str
    old_code: str
    new_code: str
    grid_number: int
    level: str
    position: int

    def to_patch(self) -> dict:
        return {
            "code": self.new_code,
            "gridNumber": self.grid_number,
            "level": self.level,
            "position": self.position,
        }


def sequential_to_slot(sequence: int, levels: list[str], bins_per_level: int) -> tuple[str, int]:
    """Grid içindeki sıralı pozisyonu (1'den başlar) (seviye, pozisyon) çiftine çevirir."""
    if sequence < 1:
        raise ValueError(f"Sıralı pozisyon pozitif olmalı: {sequence}")
    index = sequence - 1
    level_index, offset = divmod(index, bins_per_level)
    if level_index >= len(levels):
        raise ValueError(
            f"Sıralı pozisyon {sequence} raf yapısına sığmıyor "
            f"({len(levels)} seviye x {bins_per_level} göz)"
        )
    return levels[level_index], offset + 1


def parse_legacy_code(code: str) -> tuple[int, int]:
    """Eski grid-harfi kodundan (grid, sıralı pozisyon) çıkarır."""
    parts = location_codec.decode(code)
    # 26'dan büyük gridlerde harf başa döner
    expected_letter = LEVEL_LETTERS[(parts.grid_number - 1) % len(LEVEL_LETTERS)]
    if parts.level != expected_letter:
        raise MalformedLocationCode(
            code, f"grid harfi ({parts.level}) grid numarasıyla ({parts.grid_number}) uyuşmuyor"
        )
    return parts.grid_number, parts.position


def migrate_code(code: str, warehouse_code: str, levels: list[str], bins_per_level: int) -> str:
    """Tek bir eski kodu kanonik koda çevirir."""
    parts = location_codec.decode(code)
    grid_number, sequence = parse_legacy_code(code)
    level, position = sequential_to_slot(sequence, levels, bins_per_level)
    return location_codec.encode(warehouse_code, parts.floor, parts.rack_number, grid_number, level, position)


def migrate_bin_documents(bin_docs: list[dict], rack: Rack, warehouse_code: str) -> list[CodeMigration]:
    """Bir rafın eski belgelerinden kanonik kod yamaları üretir.

    Eski belgelerde grid numarası gridLevel/shelfLevel alanında, sıralı
    pozisyon position alanında tutulur. Zaten kanonik olan belgeler atlanır.
    """
    migrations: list[CodeMigration] = []
    for doc in bin_docs:
        if doc.get("level") and doc.get("gridNumber"):
            continue

        grid_number = as_int(doc.get("gridLevel") or doc.get("shelfLevel"), 1)
        sequence = as_int(doc.get("position"), 1)
        level, position = sequential_to_slot(sequence, rack.levels_per_grid, rack.bins_per_level)
        new_code = location_codec.encode(
            warehouse_code, rack.floor, rack.rack_number, grid_number, level, position
        )
        migrations.append(
            CodeMigration(
                bin_id=doc["id"],
                old_code=doc.get("code", ""),
                new_code=new_code,
                grid_number=grid_number,
                level=level,
                position=position,
            )
        )

    logger.info("Raf %s için %d göz kodu taşınacak", rack.code, len(migrations))
    return migrations
