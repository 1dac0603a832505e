"""Reading and writing firmware variables in the encodings the boot stub uses."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .efi import GLOBAL_VARIABLE, EfiError, Guid, Status, VariableAttribute

# Shared by tools that follow the loader entries convention and its variables.
LOADER_GUID = Guid(0x4A67B082, 0x0A4C, 0x41CF, bytes((0xB6, 0xC7, 0x44, 0x0B, 0x29, 0xBB, 0x8C, 0x4F)))

_ALWAYS_SET = VariableAttribute.BOOTSERVICE_ACCESS | VariableAttribute.RUNTIME_ACCESS
_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_U64_MAX = 0xFFFFFFFFFFFFFFFF


class VariableStore:
    """Access to firmware variables.

    This base store holds no variables and accepts no writes; concrete stores
    override both methods.
    """

    def get_variable(self, vendor: Guid, name: str) -> bytes:
        """Return the contents of a variable; raises EfiError(NOT_FOUND) if absent."""
        raise EfiError(Status.NOT_FOUND, f"variable {name} not found")

    def set_variable(self, vendor: Guid, name: str, attributes: int, data: bytes) -> None:
        """Create, replace or (with empty data) delete a variable."""
        raise EfiError(Status.WRITE_PROTECTED, f"variable {name} cannot be written")


@dataclass
class MemoryVariableStore(VariableStore):
    """A variable store kept in a dictionary mapping (vendor, name) to (attributes, data)."""

    variables: dict[tuple[Guid, str], tuple[int, bytes]] = field(default_factory=dict)

    def get_variable(self, vendor: Guid, name: str) -> bytes:
        try:
            return self.variables[(vendor, name)][1]
        except KeyError:
            raise EfiError(Status.NOT_FOUND, f"variable {name} not found") from None

    def set_variable(self, vendor: Guid, name: str, attributes: int, data: bytes) -> None:
        key = (vendor, name)
        data = bytes(data)
        if not data:
            if key not in self.variables:
                raise EfiError(Status.NOT_FOUND, f"variable {name} not found")
            del self.variables[key]
            return
        self.variables[key] = (int(attributes), data)


class EfiVariables:
    """Typed access to the variables of a store."""

    def __init__(self, store: VariableStore | None = None) -> None:
        self.store = store if store is not None else MemoryVariableStore()

    def set_raw(self, vendor: Guid, name: str, data: bytes, flags: int = 0) -> None:
        """Write raw bytes; boot-service and runtime access are always granted."""
        self.store.set_variable(vendor, name, int(flags) | _ALWAYS_SET, bytes(data))

    def set_str16(self, vendor: Guid, name: str, value: str | None, flags: int = 0) -> None:
        """Write a NUL-terminated UCS-2 string; None deletes the variable."""
        data = b"" if value is None else (value + "\0").encode("utf-16-le", "surrogatepass")
        self.set_raw(vendor, name, data, flags)

    def set_uint64_str16(self, vendor: Guid, name: str, value: int, flags: int = 0) -> None:
        """Write an unsigned 64-bit number as a decimal UCS-2 string."""
        if not 0 <= value <= _U64_MAX:
            raise ValueError("value does not fit in 64 bits")
        self.set_str16(vendor, name, str(value), flags)

    def set_uint32_le(self, vendor: Guid, name: str, value: int, flags: int = 0) -> None:
        """Write a 32-bit little-endian number."""
        self.set_raw(vendor, name, _U32.pack(value & 0xFFFFFFFF), flags)

    def set_uint64_le(self, vendor: Guid, name: str, value: int, flags: int = 0) -> None:
        """Write a 64-bit little-endian number."""
        self.set_raw(vendor, name, _U64.pack(value & _U64_MAX), flags)

    def unset(self, vendor: Guid, name: str, flags: int = 0) -> None:
        """Delete a variable, writing only if it exists; raises EfiError if it cannot be read."""
        # Avoid a needless write (and flash wear) when the variable is already gone.
        self.get_raw(vendor, name)
        self.set_raw(vendor, name, b"", flags)

    def get_raw(self, vendor: Guid, name: str) -> bytes:
        """Return the raw contents of a variable."""
        return bytes(self.store.get_variable(vendor, name))

    def get_str16(self, vendor: Guid, name: str) -> str:
        """Read a UCS-2 string, up to its first NUL.

        A buffer that lacks a terminator has its final character replaced by one.
        """
        data = self.get_raw(vendor, name)
        if len(data) % 2:
            raise EfiError(Status.INVALID_PARAMETER, f"variable {name} holds an incomplete character")
        text = data.decode("utf-16-le", "surrogatepass")
        if not text.endswith("\0"):
            text = text[:-1]
        return text.split("\0", 1)[0]

    def get_uint64_str16(self, vendor: Guid, name: str) -> int:
        """Read an unsigned 64-bit number stored as a decimal UCS-2 string."""
        text = self.get_str16(vendor, name)
        if not text or not (text.isascii() and text.isdigit()):
            raise EfiError(Status.INVALID_PARAMETER, f"variable {name} is not a number")
        value = int(text)
        if value > _U64_MAX:
            raise EfiError(Status.INVALID_PARAMETER, f"variable {name} does not fit in 64 bits")
        return value

    def get_uint32_le(self, vendor: Guid, name: str) -> int:
        """Read a 32-bit little-endian number; the variable must be exactly 4 bytes."""
        data = self.get_raw(vendor, name)
        if len(data) != _U32.size:
            raise EfiError(Status.BUFFER_TOO_SMALL, f"variable {name} is not 4 bytes")
        return _U32.unpack(data)[0]

    def get_uint64_le(self, vendor: Guid, name: str) -> int:
        """Read a 64-bit little-endian number; the variable must be exactly 8 bytes."""
        data = self.get_raw(vendor, name)
        if len(data) != _U64.size:
            raise EfiError(Status.BUFFER_TOO_SMALL, f"variable {name} is not 8 bytes")
        return _U64.unpack(data)[0]

    def get_boolean_u8(self, vendor: Guid, name: str) -> bool:
        """Read a boolean stored as its first byte being non-zero."""
        data = self.get_raw(vendor, name)
        if not data:
            raise EfiError(Status.BUFFER_TOO_SMALL, f"variable {name} is empty")
        return data[0] > 0

    def os_indications_supported(self) -> int:
        """Return the supported OS indications, or 0 if they cannot be read."""
        try:
            return self.get_uint64_le(GLOBAL_VARIABLE, "OsIndicationsSupported")
        except EfiError:
            return 0