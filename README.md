# ubustub

Pure-Python helpers for the data formats and decision logic a UEFI boot stub
works with. Every function works on bytes and plain values, so the code runs
anywhere and is easy to test.

## Modules

- `ubustub.efi`: the `Status` codes and `is_error`, the `EfiError` exception
  (it carries the failing `Status` as `.status`), the `Guid` type with
  `guid_from_bytes`, `Guid.to_bytes()` and `str(guid)` in the usual
  `XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX` form, `size_to_pages` for 4 KiB
  pages, the `VariableAttribute` and `OsIndication` flags, and well-known
  GUIDs such as `GLOBAL_VARIABLE`.
- `ubustub.edid`: `parse_edid` reads the fixed header of an EDID blob of at
  least 128 bytes into an `EdidHeader`, and raises `ValueError` if the blob is
  malformed. `EdidHeader.panel_id()` returns the seven-character panel id:
  three manufacturer letters and four lowercase hex digits of the product
  code, for example `"ABC0a1f"`. `panel_id_from_edid` does both steps and
  raises `EfiError` on failure.
- `ubustub.devicetree`: `get_compatible` returns the first entry of the
  `compatible` property in a flattened devicetree blob, or `None`.
  `match_by_compatible(dtb, compat)` and `match(firmware_dtb, dtb)` compare
  blobs by that first entry. They return a bool and raise `EfiError` when a
  blob is malformed or missing. `FdtToken` lists the structure-block tokens.
- `ubustub.chid`: computes Computer Hardware IDs (CHIDs). It turns an
  `SmbiosInfo` and an optional panel id into hash inputs with
  `hashable_fields`; `smbios_to_hashable_string` does the stripping for each
  string. `compute_chid` computes one CHID and `calculate_chids` computes the
  whole table of 18. CHIDs whose inputs are missing come out as the zero
  GUID. `parse_devices` reads the `Device` entries of a `.hwids` section.
  `Device.name()`, `Device.compatible()` and `Device.fwid()` read their
  strings from the section bytes. `chid_match` picks the entry of a given
  `DeviceType` that matches the most specific CHID, and raises
  `EfiError(Status.NOT_FOUND)` if none does.
- `ubustub.efivars`: `EfiVariables` reads and writes typed firmware
  variables: raw bytes, UCS-2 strings, decimal numbers, 32- and 64-bit
  little-endian numbers and byte booleans. It does this through a
  `VariableStore`. `MemoryVariableStore` keeps the variables in a
  dictionary. `LOADER_GUID` is the vendor GUID of the loader variables.

## Installing

```
pip install .
```

## Example

```python
from ubustub.chid import SmbiosInfo, hashable_fields, calculate_chids

info = SmbiosInfo(manufacturer="Example Corp", product_name="Laptop 1")
fields = hashable_fields(info, panel_id=None)
for index, chid in enumerate(calculate_chids(fields)):
    print(index, chid)
```

```python
from ubustub.efi import GLOBAL_VARIABLE
from ubustub.efivars import EfiVariables

variables = EfiVariables()  # backed by a MemoryVariableStore
variables.set_uint64_le(GLOBAL_VARIABLE, "OsIndicationsSupported", 0x41)
print(variables.os_indications_supported())  # 65
```

Errors that firmware would report as a status code are raised as
`ubustub.efi.EfiError`.

## What it does not do

The package does not talk to real firmware. It has no firmware variable
store of its own beyond the in-memory one. It does not build or print UEFI
device paths, does not select text-console modes or read keys, and has no
command-line tool.

## Tests

```
pip install .[test]
pytest
```