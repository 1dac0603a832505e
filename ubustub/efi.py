"""Core UEFI types: status codes, GUIDs and a few shared constants."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass

ERROR_MASK = 1 << 63
PAGE_SIZE = 4096

_GUID_STRUCT = struct.Struct("<IHH8s")


def _err(code: int) -> int:
    return code | ERROR_MASK


class Status(enum.IntEnum):
    """UEFI status codes; errors carry the high bit of a 64-bit word."""

    SUCCESS = 0
    WARN_UNKNOWN_GLYPH = 1
    WARN_DELETE_FAILURE = 2
    WARN_WRITE_FAILURE = 3
    WARN_BUFFER_TOO_SMALL = 4
    WARN_STALE_DATA = 5
    WARN_FILE_SYSTEM = 6
    WARN_RESET_REQUIRED = 7

    LOAD_ERROR = _err(1)
    INVALID_PARAMETER = _err(2)
    UNSUPPORTED = _err(3)
    BAD_BUFFER_SIZE = _err(4)
    BUFFER_TOO_SMALL = _err(5)
    NOT_READY = _err(6)
    DEVICE_ERROR = _err(7)
    WRITE_PROTECTED = _err(8)
    OUT_OF_RESOURCES = _err(9)
    VOLUME_CORRUPTED = _err(10)
    VOLUME_FULL = _err(11)
    NO_MEDIA = _err(12)
    MEDIA_CHANGED = _err(13)
    NOT_FOUND = _err(14)
    ACCESS_DENIED = _err(15)
    NO_RESPONSE = _err(16)
    NO_MAPPING = _err(17)
    TIMEOUT = _err(18)
    NOT_STARTED = _err(19)
    ALREADY_STARTED = _err(20)
    ABORTED = _err(21)
    ICMP_ERROR = _err(22)
    TFTP_ERROR = _err(23)
    PROTOCOL_ERROR = _err(24)
    INCOMPATIBLE_VERSION = _err(25)
    SECURITY_VIOLATION = _err(26)
    CRC_ERROR = _err(27)
    END_OF_MEDIA = _err(28)
    ERROR_RESERVED_29 = _err(29)
    ERROR_RESERVED_30 = _err(30)
    END_OF_FILE = _err(31)
    INVALID_LANGUAGE = _err(32)
    COMPROMISED_DATA = _err(33)
    IP_ADDRESS_CONFLICT = _err(34)
    HTTP_ERROR = _err(35)


class VariableAttribute(enum.IntFlag):
    """Attribute bits of a firmware variable."""

    NON_VOLATILE = 0x01
    BOOTSERVICE_ACCESS = 0x02
    RUNTIME_ACCESS = 0x04
    HARDWARE_ERROR_RECORD = 0x08
    AUTHENTICATED_WRITE_ACCESS = 0x10
    TIME_BASED_AUTHENTICATED_WRITE_ACCESS = 0x20
    APPEND_WRITE = 0x40
    ENHANCED_AUTHENTICATED_ACCESS = 0x80


class OsIndication(enum.IntFlag):
    """Bits of the OsIndications and OsIndicationsSupported variables."""

    BOOT_TO_FW_UI = 0x01
    TIMESTAMP_REVOCATION = 0x02
    FILE_CAPSULE_DELIVERY_SUPPORTED = 0x04
    FMP_CAPSULE_SUPPORTED = 0x08
    CAPSULE_RESULT_VAR_SUPPORTED = 0x10
    START_OS_RECOVERY = 0x20
    START_PLATFORM_RECOVERY = 0x40
    JSON_CONFIG_DATA_REFRESH = 0x80


def is_error(status: int) -> bool:
    """Return True if the status code denotes an error rather than success or a warning."""
    return bool(int(status) & ERROR_MASK)


class EfiError(Exception):
    """An operation failed with a UEFI error status."""

    def __init__(self, status: int, message: str | None = None) -> None:
        try:
            self.status: int = Status(status)
        except ValueError:
            self.status = int(status)
        name = self.status.name if isinstance(self.status, Status) else hex(self.status)
        super().__init__(f"{message}: {name}" if message else name)


@dataclass(frozen=True)
class Guid:
    """A GUID in the mixed-endian layout used by the firmware."""

    data1: int
    data2: int
    data3: int
    data4: bytes = bytes(8)

    def __post_init__(self) -> None:
        if not 0 <= self.data1 <= 0xFFFFFFFF:
            raise ValueError("data1 out of range")
        if not 0 <= self.data2 <= 0xFFFF:
            raise ValueError("data2 out of range")
        if not 0 <= self.data3 <= 0xFFFF:
            raise ValueError("data3 out of range")
        data4 = bytes(self.data4)
        if len(data4) != 8:
            raise ValueError("data4 must be 8 bytes")
        object.__setattr__(self, "data4", data4)

    def to_bytes(self) -> bytes:
        """Return the 16-byte in-memory representation."""
        return _GUID_STRUCT.pack(self.data1, self.data2, self.data3, self.data4)

    def __str__(self) -> str:
        d4 = self.data4
        return (
            f"{self.data1:08X}-{self.data2:04X}-{self.data3:04X}-"
            f"{d4[0]:02X}{d4[1]:02X}-" + "".join(f"{b:02X}" for b in d4[2:])
        )


def guid_from_bytes(data: bytes) -> Guid:
    """Decode a GUID from its 16-byte in-memory representation."""
    if len(data) != _GUID_STRUCT.size:
        raise ValueError(f"a GUID is {_GUID_STRUCT.size} bytes, got {len(data)}")
    return Guid(*_GUID_STRUCT.unpack(bytes(data)))


def size_to_pages(size: int) -> int:
    """Number of 4 KiB pages needed to hold size bytes."""
    if size < 0:
        raise ValueError("size must not be negative")
    return (size + 0xFFF) >> 12


GLOBAL_VARIABLE = Guid(0x8BE4DF61, 0x93CA, 0x11D2, bytes((0xAA, 0x0D, 0x00, 0xE0, 0x98, 0x03, 0x2B, 0x8C)))
IMAGE_SECURITY_DATABASE = Guid(
    0xD719B2CB, 0x3D3A, 0x4596, bytes((0xA3, 0xBC, 0xDA, 0xD0, 0x0E, 0x67, 0x65, 0x6F))
)
CERT_X509 = Guid(0xA5C059A1, 0x94E4, 0x4AA7, bytes((0x87, 0xB5, 0xAB, 0x15, 0x5C, 0x2B, 0xF0, 0x72)))
CERT_TYPE_PKCS7 = Guid(0x4AAFD29D, 0x68DF, 0x49EE, bytes((0x8A, 0xA9, 0x34, 0x7D, 0x37, 0x56, 0x65, 0xA7)))
CUSTOM_MODE_ENABLE = Guid(
    0xC076EC0C, 0x7028, 0x4399, bytes((0xA0, 0x72, 0x71, 0xEE, 0x5C, 0x44, 0x8B, 0x9F))
)
SYSTEM_RESOURCE_TABLE = Guid(
    0xB122A263, 0x3661, 0x4F68, bytes((0x99, 0x29, 0x78, 0xF8, 0xB0, 0xD6, 0x21, 0x80))
)