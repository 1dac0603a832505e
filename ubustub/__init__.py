"""Boot-stub helpers for UEFI data: status codes and GUIDs, EDID, devicetree, CHIDs and EFI variables."""

__version__ = "0.1.0"

__all__ = ["chid", "devicetree", "edid", "efi", "efivars"]