"""Computer hardware IDs (CHIDs) derived from SMBIOS data, and matching them against .hwids tables."""

from __future__ import annotations

import enum
import hashlib
import struct
from collections.abc import Mapping
from dataclasses import dataclass

from .efi import EfiError, Guid, Status

CHID_TYPES_MAX = 18
# CHIDs from this index on are non-standard and may be renumbered at any time.
EXTRA_CHID_BASE = 15

DEVICE_SIZE = 28
DEVICE_DESCRIPTOR_EOL = 0

_DEVICE = struct.Struct("<I16sII")

# fwupd's CHID namespace, stored with the first three fields byte-swapped.
CHID_NAMESPACE = Guid(0x12D8FF70, 0x7F4C, 0x7D4C)

ZERO_GUID = Guid(0, 0, 0)

# Most to least specific.
_PRIORITY = (17, 16, 15, 3, 6, 8, 10, 4, 5, 7, 9, 11)


class ChidField(enum.IntEnum):
    """The inputs a CHID may be computed from, in hashing order."""

    MANUFACTURER = 0
    FAMILY = 1
    PRODUCT_NAME = 2
    PRODUCT_SKU = 3
    BASEBOARD_MANUFACTURER = 4
    BASEBOARD_PRODUCT = 5
    BIOS_VENDOR = 6
    BIOS_VERSION = 7
    BIOS_MAJOR = 8
    BIOS_MINOR = 9
    ENCLOSURE_TYPE = 10
    EDID_PANEL = 11


class DeviceType(enum.IntEnum):
    """Kinds of resource a .hwids entry can bind a CHID to."""

    DEVICETREE = 0x1
    UEFI_FW = 0x2


def _mask(*fields: ChidField) -> int:
    value = 0
    for field in fields:
        value |= 1 << field
    return value


F = ChidField

CHID_SMBIOS_TABLE: tuple[int, ...] = (
    _mask(F.MANUFACTURER, F.FAMILY, F.PRODUCT_NAME, F.PRODUCT_SKU,
          F.BIOS_VENDOR, F.BIOS_VERSION, F.BIOS_MAJOR, F.BIOS_MINOR),
    _mask(F.MANUFACTURER, F.FAMILY, F.PRODUCT_NAME,
          F.BIOS_VENDOR, F.BIOS_VERSION, F.BIOS_MAJOR, F.BIOS_MINOR),
    _mask(F.MANUFACTURER, F.PRODUCT_NAME,
          F.BIOS_VENDOR, F.BIOS_VERSION, F.BIOS_MAJOR, F.BIOS_MINOR),
    _mask(F.MANUFACTURER, F.FAMILY, F.PRODUCT_NAME, F.PRODUCT_SKU,
          F.BASEBOARD_MANUFACTURER, F.BASEBOARD_PRODUCT),
    _mask(F.MANUFACTURER, F.FAMILY, F.PRODUCT_NAME, F.PRODUCT_SKU),
    _mask(F.MANUFACTURER, F.FAMILY, F.PRODUCT_NAME),
    _mask(F.MANUFACTURER, F.PRODUCT_SKU, F.BASEBOARD_MANUFACTURER, F.BASEBOARD_PRODUCT),
    _mask(F.MANUFACTURER, F.PRODUCT_SKU),
    _mask(F.MANUFACTURER, F.PRODUCT_NAME, F.BASEBOARD_MANUFACTURER, F.BASEBOARD_PRODUCT),
    _mask(F.MANUFACTURER, F.PRODUCT_NAME),
    _mask(F.MANUFACTURER, F.FAMILY, F.BASEBOARD_MANUFACTURER, F.BASEBOARD_PRODUCT),
    _mask(F.MANUFACTURER, F.FAMILY),
    _mask(F.MANUFACTURER, F.ENCLOSURE_TYPE),
    _mask(F.MANUFACTURER, F.BASEBOARD_MANUFACTURER, F.BASEBOARD_PRODUCT),
    _mask(F.MANUFACTURER),
    # non-standard extras
    _mask(F.MANUFACTURER, F.FAMILY, F.PRODUCT_NAME, F.EDID_PANEL),
    _mask(F.MANUFACTURER, F.FAMILY, F.EDID_PANEL),
    _mask(F.MANUFACTURER, F.PRODUCT_SKU, F.EDID_PANEL),
)

del F


@dataclass(frozen=True)
class SmbiosInfo:
    """Raw SMBIOS strings of the running system; None where a string is absent."""

    manufacturer: str | None = None
    product_name: str | None = None
    product_sku: str | None = None
    family: str | None = None
    baseboard_product: str | None = None
    baseboard_manufacturer: str | None = None


def smbios_to_hashable_string(value: str | None) -> str:
    """Strip leading spaces, then leading zeroes, then trailing spaces; None becomes ""."""
    if value is None:
        return ""
    return value.lstrip(" ").lstrip("0").rstrip(" ")


def hashable_fields(info: SmbiosInfo, panel_id: str | None = None) -> dict[ChidField, str | None]:
    """Build the CHID inputs from SMBIOS info and an optional EDID panel id.

    BIOS and enclosure fields are not gathered and stay missing, so the CHIDs that
    need them come out as the zero GUID.
    """
    fields: dict[ChidField, str | None] = dict.fromkeys(ChidField)
    fields[ChidField.MANUFACTURER] = smbios_to_hashable_string(info.manufacturer)
    fields[ChidField.PRODUCT_NAME] = smbios_to_hashable_string(info.product_name)
    fields[ChidField.PRODUCT_SKU] = smbios_to_hashable_string(info.product_sku)
    fields[ChidField.FAMILY] = smbios_to_hashable_string(info.family)
    fields[ChidField.BASEBOARD_PRODUCT] = smbios_to_hashable_string(info.baseboard_product)
    fields[ChidField.BASEBOARD_MANUFACTURER] = smbios_to_hashable_string(info.baseboard_manufacturer)
    fields[ChidField.EDID_PANEL] = panel_id
    return fields


def compute_chid(fields: Mapping[ChidField, str | None], mask: int) -> Guid:
    """Compute one name-based (version 5) CHID over the fields selected by mask.

    Returns the zero GUID if any selected field is missing.
    """
    if mask == 0:
        raise ValueError("mask must select at least one field")

    sha = hashlib.sha1(CHID_NAMESPACE.to_bytes())
    for field in ChidField:
        if not mask & (1 << field):
            continue
        value = fields.get(field)
        if value is None:
            return ZERO_GUID
        if field > 0:
            sha.update("&".encode("utf-16-le"))
        sha.update(value.encode("utf-16-le", "surrogatepass"))

    digest = sha.digest()
    data3 = (int.from_bytes(digest[6:8], "big") & 0x0FFF) | (5 << 12)
    data4 = bytes(((digest[8] & 0x3F) | 0x80,)) + digest[9:16]
    return Guid(
        int.from_bytes(digest[0:4], "big"),
        int.from_bytes(digest[4:6], "big"),
        data3,
        data4,
    )


def calculate_chids(fields: Mapping[ChidField, str | None]) -> list[Guid]:
    """Compute all CHIDs of the table, indexed by CHID number."""
    return [
        compute_chid(fields, mask) if mask else ZERO_GUID
        for mask in CHID_SMBIOS_TABLE
    ]


def make_descriptor(device_type: int, size: int = DEVICE_SIZE) -> int:
    """Combine a device type (top four bits) and structure size into a descriptor."""
    return ((size & 0x0FFFFFFF) | (int(device_type) << 28)) & 0xFFFFFFFF


def _string_at(base: bytes, offset: int) -> str | None:
    if offset == 0:
        return None
    if offset >= len(base):
        raise ValueError("string offset lies outside the section")
    end = base.find(b"\0", offset)
    if end < 0:
        raise ValueError("string is not NUL-terminated")
    return base[offset:end].decode("utf-8", "replace")


@dataclass(frozen=True)
class Device:
    """One entry of a .hwids section, binding a CHID to a resource.

    data_offset is the compatible string offset for devicetree entries and the
    firmware id offset for firmware entries; offsets are relative to the section.
    """

    descriptor: int
    chid: Guid
    name_offset: int = 0
    data_offset: int = 0

    @property
    def type(self) -> int:
        return self.descriptor >> 28

    @property
    def size(self) -> int:
        return self.descriptor & 0x0FFFFFFF

    def to_bytes(self) -> bytes:
        """Return the packed 28-byte form."""
        return _DEVICE.pack(self.descriptor, self.chid.to_bytes(), self.name_offset, self.data_offset)

    def name(self, base: bytes) -> str | None:
        """The entry's name, read from the section bytes, or None if absent."""
        if self.type not in (DeviceType.DEVICETREE, DeviceType.UEFI_FW):
            return None
        return _string_at(base, self.name_offset)

    def compatible(self, base: bytes) -> str | None:
        """The devicetree compatible string, or None for other entries or if absent."""
        if self.type != DeviceType.DEVICETREE:
            return None
        return _string_at(base, self.data_offset)

    def fwid(self, base: bytes) -> str | None:
        """The firmware id string, or None for other entries or if absent."""
        if self.type != DeviceType.UEFI_FW:
            return None
        return _string_at(base, self.data_offset)


def parse_devices(buffer: bytes) -> list[Device]:
    """Read the Device entries at the start of a .hwids section up to the end marker.

    Raises EfiError(UNSUPPORTED) on an entry of unknown type.
    """
    data = bytes(buffer)
    devices: list[Device] = []
    while (len(devices) + 1) * DEVICE_SIZE < len(data):
        descriptor, chid, name_offset, data_offset = _DEVICE.unpack_from(data, len(devices) * DEVICE_SIZE)
        if descriptor == DEVICE_DESCRIPTOR_EOL:
            break
        if descriptor >> 28 not in (DeviceType.UEFI_FW, DeviceType.DEVICETREE):
            raise EfiError(Status.UNSUPPORTED, "unknown device entry type")
        devices.append(Device(descriptor, Guid(*struct.unpack("<IHH8s", chid)), name_offset, data_offset))
    return devices


def chid_match(buffer: bytes, fields: Mapping[ChidField, str | None], match_type: int) -> Device:
    """Find the entry of match_type whose CHID is the most specific one of this system.

    Raises EfiError(NOT_FOUND) if no entry matches.
    """
    devices = parse_devices(buffer)
    if not devices:
        raise EfiError(Status.NOT_FOUND, "no device entries")
    chids = calculate_chids(fields)
    for index in _PRIORITY:
        for device in devices:
            if device.type != match_type:
                continue
            if chids[index] == device.chid:
                return device
    raise EfiError(Status.NOT_FOUND, "no matching device entry")