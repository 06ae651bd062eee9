"""Lokasyon kodu encode/decode unit testleri."""

import pytest

from rack_ledger.errors import MalformedLocationCode
from rack_ledger.models.warehouse import Floor
from rack_ledger.services import location_codec
from rack_ledger.services.location_codec import LocationParts


class TestEncode:
    """Kanonik format üretimi."""

    def test_basic_code(self):
        assert location_codec.encode("WH", "GF", 1, 1, "A", 1) == "WH-GF-R01-G01-A1"

    def test_floor_enum_accepted(self):
        assert location_codec.encode("WH1", Floor.BASEMENT_1, 4, 12, "C", 7) == "WH1-B1-R04-G12-C7"

    def test_position_not_padded(self):
        assert location_codec.encode("WH", "FF", 99, 3, "Z", 15).endswith("-G03-Z15")

    @pytest.mark.parametrize(
        "args",
        [
            ("WH", "GF", 0, 1, "A", 1),
            ("WH", "GF", 100, 1, "A", 1),
            ("WH", "GF", 1, 0, "A", 1),
            ("WH", "GF", 1, 1, "AA", 1),
            ("WH", "GF", 1, 1, "a", 1),
            ("WH", "GF", 1, 1, "A", 0),
            ("W-H", "GF", 1, 1, "A", 1),
            ("", "GF", 1, 1, "A", 1),
        ],
    )
    def test_invalid_input_raises_value_error(self, args):
        with pytest.raises(ValueError) as exc:
            location_codec.encode(*args)
        assert not isinstance(exc.value, MalformedLocationCode)


class TestDecode:
    """Kod çözümleme ve hatalı girdiler."""

    def test_round_trip(self):
        """Özellik: decode(encode(...)) girdileri geri vermeli."""
        for args in [("WH", "GF", 1, 1, "A", 1), ("WH1", "B2", 42, 10, "K", 123), ("MAIN", "TF", 99, 1, "Z", 9)]:
            parts = location_codec.decode(location_codec.encode(*args))
            assert parts == LocationParts(*args)

    def test_wrong_segment_count(self):
        with pytest.raises(MalformedLocationCode):
            location_codec.decode("WH-GF-R01-A1")

    def test_bad_bin_segment(self):
        with pytest.raises(MalformedLocationCode) as exc:
            location_codec.decode("WH-GF-R01-G01-1A")
        assert exc.value.code == "WH-GF-R01-G01-1A"

    def test_lowercase_level_rejected(self):
        with pytest.raises(MalformedLocationCode):
            location_codec.decode("WH-GF-R01-G01-a1")

    def test_bad_rack_segment(self):
        with pytest.raises(MalformedLocationCode):
            location_codec.decode("WH-GF-X01-G01-A1")

    def test_non_string(self):
        with pytest.raises(MalformedLocationCode):
            location_codec.decode(None)

    def test_is_valid_code(self):
        assert location_codec.is_valid_code("WH-GF-R01-G01-A1") is True
        assert location_codec.is_valid_code("WH-GF-R01-G01") is False

    def test_parse_bin_segment(self):
        assert location_codec.parse_bin_segment("B12") == ("B", 12)
        with pytest.raises(MalformedLocationCode):
            location_codec.parse_bin_segment("B0")

    def test_format_rack_code(self):
        assert location_codec.format_rack_code(4) == "R04"
