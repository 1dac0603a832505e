"""Parsing of EDID blobs and derivation of panel identifiers."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .efi import EfiError, Status

EDID_MIN_SIZE = 128
EDID_HEADER_PATTERN = b"\x00\xff\xff\xff\xff\xff\xff\x00"

# pattern, manufacturer id (big endian), product code, serial, week, year, version, revision
_HEADER = struct.Struct(">8sH")
_TAIL = struct.Struct("<HIBBBB")


@dataclass(frozen=True)
class EdidHeader:
    """The fixed header fields of an EDID blob."""

    manufacturer_id: int
    manufacturer_product_code: int
    serial_number: int
    week_of_manufacture: int
    year_of_manufacture: int
    edid_version: int
    edid_revision: int

    def panel_id(self) -> str:
        """Return the seven-character panel id: three letters and four lowercase hex digits."""
        letters = []
        for shift in (10, 5, 0):
            letter = (self.manufacturer_id >> shift) & 0b11111
            if letter > 0b11010:
                raise ValueError(f"invalid manufacturer letter code {letter}")
            letters.append(chr(letter + ord("A") - 1))
        return "".join(letters) + f"{self.manufacturer_product_code & 0xFFFF:04x}"


def parse_edid(blob: bytes) -> EdidHeader:
    """Parse the header of an EDID blob; raises ValueError if it is malformed."""
    if len(blob) < EDID_MIN_SIZE:
        raise ValueError(f"EDID blob must be at least {EDID_MIN_SIZE} bytes")
    pattern, manufacturer_id = _HEADER.unpack_from(blob, 0)
    if pattern != EDID_HEADER_PATTERN:
        raise ValueError("EDID blob lacks the fixed header pattern")
    product_code, serial, week, year, version, revision = _TAIL.unpack_from(blob, _HEADER.size)
    return EdidHeader(
        manufacturer_id=manufacturer_id,
        manufacturer_product_code=product_code,
        serial_number=serial,
        week_of_manufacture=week,
        year_of_manufacture=year,
        edid_version=version,
        edid_revision=revision,
    )


def panel_id_from_edid(blob: bytes | None) -> str:
    """Return the panel id of a discovered EDID blob, raising EfiError on failure."""
    if not blob:
        raise EfiError(Status.UNSUPPORTED, "no EDID available")
    try:
        header = parse_edid(blob)
    except ValueError as exc:
        raise EfiError(Status.INCOMPATIBLE_VERSION, str(exc)) from exc
    try:
        return header.panel_id()
    except ValueError as exc:
        raise EfiError(Status.INVALID_PARAMETER, str(exc)) from exc