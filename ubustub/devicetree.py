"""Inspection of flattened devicetree blobs: finding and matching the "compatible" string."""

from __future__ import annotations

import enum
import struct

from .efi import EfiError, Status

FDT_MAGIC = 0xD00DFEED

_HEADER = struct.Struct(">10I")
_WORD = struct.Struct(">I")
_U32_MAX = 0xFFFFFFFF
_COMPATIBLE = b"compatible"


class FdtToken(enum.IntEnum):
    """Tokens of the devicetree structure block."""

    BEGIN_NODE = 1
    END_NODE = 2
    PROP = 3
    NOP = 4
    END = 9


def get_compatible(dtb: bytes) -> str | None:
    """Return the first entry of the root "compatible" property, or None if it cannot be found.

    Only the leading part of the structure block is walked: the property has to come
    before any named node or node end, as it does for the root node.
    """
    data = bytes(dtb)
    if len(data) < _HEADER.size:
        return None

    (
        magic,
        total_size,
        struct_off,
        strings_off,
        _mem_rsv_off,
        _version,
        _last_comp_version,
        _boot_cpuid,
        strings_size,
        struct_size,
    ) = _HEADER.unpack_from(data)

    if magic != FDT_MAGIC:
        return None

    end = strings_off + strings_size
    if end > _U32_MAX or end > total_size:
        return None

    if struct_off % 4 != 0:
        return None

    end = struct_off + struct_size
    if struct_size % 4 != 0 or end > _U32_MAX or end > strings_off:
        return None

    size_words = struct_size // 4

    def word(index: int) -> int:
        return _WORD.unpack_from(data, struct_off + 4 * index)[0]

    try:
        i = 0
        while i < end:
            token = word(i)
            if token == FdtToken.BEGIN_NODE:
                if i >= size_words:
                    return None
                i += 1
                if word(i) != 0:
                    return None
            elif token == FdtToken.NOP:
                pass
            elif token == FdtToken.PROP:
                # length, name offset and at least one word of value must follow
                if i + 3 >= size_words:
                    return None
                i += 1
                length = word(i)
                i += 1
                name_off = word(i)
                len_words = -(-length // 4)

                name_start = strings_off + name_off
                if (
                    name_off + len(_COMPATIBLE) < strings_size
                    and data[name_start : name_start + len(_COMPATIBLE) + 1] == _COMPATIBLE + b"\0"
                ):
                    i += 1
                    if length == 0 or i + len_words > size_words:
                        return None
                    start = struct_off + 4 * i
                    value = data[start : start + length]
                    if len(value) != length or value[-1] != 0:
                        return None
                    return value.split(b"\0", 1)[0].decode("latin-1")
                i += len_words
            else:
                return None
            i += 1
    except struct.error:
        return None

    return None


def match_by_compatible(dtb: bytes, compat: str | None) -> bool:
    """Return whether the first compatible entry of dtb equals compat.

    Raises EfiError(INVALID_PARAMETER) if the blob is malformed or compat is missing.
    """
    data = bytes(dtb)
    if len(data) < _HEADER.size or len(data) < _WORD.unpack_from(data, 4)[0]:
        raise EfiError(Status.INVALID_PARAMETER, "devicetree blob is truncated")
    if compat is None:
        raise EfiError(Status.INVALID_PARAMETER, "no compatible string to match")
    dt_compat = get_compatible(data)
    if dt_compat is None:
        raise EfiError(Status.INVALID_PARAMETER, "devicetree blob has no compatible property")
    return dt_compat == compat


def match(firmware_dtb: bytes | None, dtb: bytes) -> bool:
    """Return whether dtb describes the same device model as the firmware's devicetree.

    Only the first compatible entry of each blob is compared; the others usually name
    the SoC and cannot tell boards apart.
    """
    if firmware_dtb is None:
        raise EfiError(Status.UNSUPPORTED, "firmware provides no devicetree")
    fw_compat = get_compatible(firmware_dtb)
    if fw_compat is None:
        raise EfiError(Status.UNSUPPORTED, "firmware devicetree has no compatible property")
    return match_by_compatible(dtb, fw_compat)