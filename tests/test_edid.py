import struct

import pytest

from ubustub.edid import EDID_HEADER_PATTERN, EdidHeader, panel_id_from_edid, parse_edid
from ubustub.efi import EfiError, Status


def _manufacturer(letters):
    a, b, c = (ord(ch) - ord("A") + 1 for ch in letters)
    return (a << 10) | (b << 5) | c


def _blob(manufacturer_id, product_code=0xBEEF, serial=7, week=12, year=30, version=1, revision=4, size=128):
    head = EDID_HEADER_PATTERN + struct.pack(">H", manufacturer_id)
    head += struct.pack("<HIBBBB", product_code, serial, week, year, version, revision)
    return head + bytes(size - len(head))


def test_header_pattern_is_standard():
    standard = b"\x00\xff\xff\xff\xff\xff\xff\x00"
    rest = _blob(_manufacturer("ABC"))[8:]
    header = parse_edid(standard + rest)
    assert header.manufacturer_id == _manufacturer("ABC")
    with pytest.raises(ValueError):
        parse_edid(b"\x00\xff\xff\xff\xff\xff\xff\xff" + rest)


def test_parse_fields():
    header = parse_edid(_blob(_manufacturer("XYZ"), product_code=0x1234, serial=99, week=5, year=33))
    assert header == EdidHeader(
        manufacturer_id=_manufacturer("XYZ"),
        manufacturer_product_code=0x1234,
        serial_number=99,
        week_of_manufacture=5,
        year_of_manufacture=33,
        edid_version=1,
        edid_revision=4,
    )


def test_parse_accepts_longer_blobs():
    header = parse_edid(_blob(_manufacturer("ABC"), size=256))
    assert header.manufacturer_product_code == 0xBEEF


def test_parse_rejects_short_blob():
    with pytest.raises(ValueError):
        parse_edid(_blob(_manufacturer("ABC"))[:127])


def test_parse_rejects_bad_pattern():
    blob = bytearray(_blob(_manufacturer("ABC")))
    blob[0] = 0x01
    with pytest.raises(ValueError):
        parse_edid(bytes(blob))


@pytest.mark.parametrize("letters", ["ABC", "XYZ", "ZZZ", "AAA"])
def test_panel_id_letters(letters):
    panel = parse_edid(_blob(_manufacturer(letters), product_code=0xBEEF)).panel_id()
    assert panel == letters + "beef"
    assert len(panel) == 7


def test_panel_id_hex_digits_are_lowercase_and_padded():
    panel = parse_edid(_blob(_manufacturer("ABC"), product_code=0x00AB)).panel_id()
    assert panel[3:] == "00ab"


def test_panel_id_rejects_invalid_letter():
    header = parse_edid(_blob(0x7FFF))
    with pytest.raises(ValueError):
        header.panel_id()


def test_panel_id_from_edid_success():
    assert panel_id_from_edid(_blob(_manufacturer("DEF"), product_code=0xCAFE)) == "DEFcafe"


@pytest.mark.parametrize("blob", [None, b""])
def test_panel_id_from_edid_missing(blob):
    with pytest.raises(EfiError) as info:
        panel_id_from_edid(blob)
    assert info.value.status is Status.UNSUPPORTED


def test_panel_id_from_edid_malformed():
    with pytest.raises(EfiError) as info:
        panel_id_from_edid(bytes(128))
    assert info.value.status is Status.INCOMPATIBLE_VERSION


def test_panel_id_from_edid_bad_letters():
    with pytest.raises(EfiError) as info:
        panel_id_from_edid(_blob(0x7FFF))
    assert info.value.status is Status.INVALID_PARAMETER