"""Raf topolojisi - grid/seviye/pozisyon yerleşimi ve göz kümesi.

Saf hesaplama; depoya erişmez.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, NamedTuple, Union

from rack_ledger.models.warehouse import Bin, RackConfig
from rack_ledger.services.location_codec import LEVEL_LETTERS


class BinSlot(NamedTuple):
    grid_number: int
    level: str
    position: int


@dataclass
class TopologyDiff:
    to_create: list[BinSlot] = field(default_factory=list)
    to_remove: list[Bin] = field(default_factory=list)
    retained: list[Bin] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_create and not self.to_remove


def levels_through(last_level: str) -> list[str]:
    """Seçilen son seviyeye kadar tüm seviyeler: 'J' -> A..J."""
    letter = last_level.strip().upper()
    if len(letter) != 1 or letter not in LEVEL_LETTERS:
        raise ValueError(f"Seviye A-Z arasında tek harf olmalı: {last_level!r}")
    return list(LEVEL_LETTERS[: LEVEL_LETTERS.index(letter) + 1])


def validate_levels(levels: Iterable[str]) -> list[str]:
    """Seviye kümesinin A'dan başlayıp boşluksuz ilerlediğini doğrular, hata listesi döner.

    Sıra önemli değil: ["B", "A"] geçerlidir ve A, B olarak saklanır.
    """
    levels = list(levels)
    if not levels:
        return ["Grid başına en az bir seviye olmalı"]
    invalid = [
        level for level in levels
        if not isinstance(level, str) or len(level) != 1 or level not in LEVEL_LETTERS
    ]
    if invalid:
        return [f"Seviyeler A-Z arasında tek büyük harf olmalı: {invalid} geçersiz"]
    duplicates = sorted({level for level in levels if levels.count(level) > 1})
    if duplicates:
        return [f"Seviyeler tekrar edemez: {duplicates}"]
    ordered = sorted(levels)
    expected = list(LEVEL_LETTERS[: len(ordered)])
    if ordered != expected:
        return [f"Seviyeler A'dan başlayıp ardışık olmalı: {''.join(expected)} bekleniyordu, {levels} verildi"]
    return []


def total_bins(grid_count: int, levels: list[str], bins_per_level: int) -> int:
    return grid_count * len(levels) * bins_per_level


def enumerate_slots(grid_count: int, levels: list[str], bins_per_level: int) -> list[BinSlot]:
    """Rafın içermesi gereken tüm gözler; grid, seviye, pozisyon artan sırada."""
    ordered_levels = sorted(levels)
    return [
        BinSlot(grid, level, position)
        for grid in range(1, grid_count + 1)
        for level in ordered_levels
        for position in range(1, bins_per_level + 1)
    ]


def slot_of(bin: Union[Bin, BinSlot]) -> BinSlot:
    if isinstance(bin, BinSlot):
        return bin
    return BinSlot(bin.grid_number, bin.level, bin.position)


def diff(current_bins: list[Bin], target: RackConfig) -> TopologyDiff:
    """Mevcut gözleri hedef konfigürasyonla karşılaştırır.

    Aynı slotu paylaşan fazladan gözler (bozuk veri) silinecekler listesine düşer.
    """
    target_slots = enumerate_slots(target.grid_count, target.levels_per_grid, target.bins_per_level)
    target_set = set(target_slots)

    result = TopologyDiff()
    seen: set[BinSlot] = set()
    for bin in sorted(current_bins, key=slot_of):
        slot = slot_of(bin)
        if slot in target_set and slot not in seen:
            result.retained.append(bin)
            seen.add(slot)
        else:
            result.to_remove.append(bin)

    result.to_create = [slot for slot in target_slots if slot not in seen]
    return result
