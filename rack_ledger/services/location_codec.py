"""Lokasyon kodu - depo/kat/raf/grid/seviye/pozisyon adreslemesi.

Kanonik format: {depo}-{kat}-R{raf:02d}-G{grid:02d}-{seviye}{pozisyon}
Örnek: WH-GF-R01-G01-A1  (Raf 1, Grid 1, Seviye A, Pozisyon 1)

Seviye tek büyük harftir (A-Z, grid başına en fazla 26 seviye), pozisyon
dolgusuz pozitif tamsayıdır. encode ve decode iyi biçimli girdide birbirinin
tersidir.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass
from typing import Any

from rack_ledger.errors import MalformedLocationCode
from rack_ledger.models.warehouse import floor_code

LEVEL_LETTERS = string.ascii_uppercase
MAX_RACK_NUMBER = 99

_BIN_SEGMENT = re.compile(r"^([A-Z])(\d+)$")
_RACK_SEGMENT = re.compile(r"^R(\d{2,})$")
_GRID_SEGMENT = re.compile(r"^G(\d{2,})$")


@dataclass(frozen=True)
class LocationParts:
    warehouse_code: str
    floor: str
    rack_number: int
    grid_number: int
    level: str
    position: int


def format_rack_code(rack_number: int) -> str:
    return f"R{rack_number:02d}"


def format_grid_code(grid_number: int) -> str:
    return f"G{grid_number:02d}"


def _check_segment(name: str, value: str) -> None:
    if not value or "-" in value:
        raise ValueError(f"{name} boş olamaz ve '-' içeremez: {value!r}")


def encode(
    warehouse_code: str,
    floor: Any,
    rack_number: int,
    grid_number: int,
    level: str,
    position: int,
) -> str:
    """Yapısal koordinatları kanonik lokasyon koduna çevirir.

    Aralık dışı girdiler için ValueError fırlatır (MalformedLocationCode asla).
    """
    floor = floor_code(floor)
    _check_segment("Depo kodu", warehouse_code)
    _check_segment("Kat", floor)
    if not 1 <= rack_number <= MAX_RACK_NUMBER:
        raise ValueError(f"Raf numarası 1-{MAX_RACK_NUMBER} arasında olmalı: {rack_number}")
    if grid_number < 1:
        raise ValueError(f"Grid numarası pozitif olmalı: {grid_number}")
    if len(level) != 1 or level not in LEVEL_LETTERS:
        raise ValueError(f"Seviye A-Z arasında tek harf olmalı: {level!r}")
    if position < 1:
        raise ValueError(f"Pozisyon pozitif olmalı: {position}")

    return (
        f"{warehouse_code}-{floor}-{format_rack_code(rack_number)}-"
        f"{format_grid_code(grid_number)}-{level}{position}"
    )


def parse_bin_segment(segment: str) -> tuple[str, int]:
    """'A12' -> ('A', 12)."""
    match = _BIN_SEGMENT.match(segment)
    if not match:
        raise MalformedLocationCode(segment, "göz bölümü ^[A-Z]\\d+$ formatında değil")
    position = int(match.group(2))
    if position < 1:
        raise MalformedLocationCode(segment, "pozisyon pozitif olmalı")
    return match.group(1), position


def decode(code: str) -> LocationParts:
    """Kanonik lokasyon kodunu bileşenlerine ayırır."""
    if not isinstance(code, str):
        raise MalformedLocationCode(code, "metin değil")

    parts = code.split("-")
    if len(parts) != 5:
        raise MalformedLocationCode(code, f"5 bölüm bekleniyordu, {len(parts)} bulundu")

    warehouse_code, floor, rack_segment, grid_segment, bin_segment = parts
    if not warehouse_code or not floor:
        raise MalformedLocationCode(code, "depo ya da kat bölümü boş")

    rack_match = _RACK_SEGMENT.match(rack_segment)
    if not rack_match:
        raise MalformedLocationCode(code, f"raf bölümü geçersiz: {rack_segment!r}")
    grid_match = _GRID_SEGMENT.match(grid_segment)
    if not grid_match:
        raise MalformedLocationCode(code, f"grid bölümü geçersiz: {grid_segment!r}")

    try:
        level, position = parse_bin_segment(bin_segment)
    except MalformedLocationCode as e:
        raise MalformedLocationCode(code, e.reason) from e

    return LocationParts(
        warehouse_code=warehouse_code,
        floor=floor,
        rack_number=int(rack_match.group(1)),
        grid_number=int(grid_match.group(1)),
        level=level,
        position=position,
    )


def is_valid_code(code: Any) -> bool:
    try:
        decode(code)
    except MalformedLocationCode:
        return False
    return True
