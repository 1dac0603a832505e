import pytest

from ubustub.efi import (
    ERROR_MASK,
    GLOBAL_VARIABLE,
    PAGE_SIZE,
    EfiError,
    Guid,
    Status,
    guid_from_bytes,
    is_error,
    size_to_pages,
)


def test_success_and_warnings_are_not_errors():
    assert is_error(Status.SUCCESS) is False
    assert is_error(Status.WARN_STALE_DATA) is False
    assert is_error(Status.WARN_RESET_REQUIRED) is False


@pytest.mark.parametrize(
    "status",
    [Status.LOAD_ERROR, Status.NOT_FOUND, Status.TIMEOUT, Status.HTTP_ERROR],
)
def test_error_statuses_are_errors(status):
    assert is_error(status) is True
    assert status & ERROR_MASK == ERROR_MASK


def test_error_codes_keep_low_bits():
    assert Status.INVALID_PARAMETER & ~ERROR_MASK == Status.WARN_DELETE_FAILURE
    assert Status.NOT_FOUND ^ ERROR_MASK == 14
    assert is_error(Status.INVALID_PARAMETER & ~ERROR_MASK) is False
    assert is_error(14 | ERROR_MASK) is True


def test_efi_error_carries_status():
    err = EfiError(Status.NOT_FOUND, "lookup failed")
    assert err.status is Status.NOT_FOUND
    assert "NOT_FOUND" in str(err)
    assert "lookup failed" in str(err)


def test_efi_error_from_plain_int():
    err = EfiError(int(Status.UNSUPPORTED))
    assert err.status is Status.UNSUPPORTED


def test_guid_string_format():
    guid = Guid(0x8BE4DF61, 0x93CA, 0x11D2, bytes.fromhex("aa0d00e098032b8c"))
    assert str(guid) == "8BE4DF61-93CA-11D2-AA0D-00E098032B8C"
    assert guid == GLOBAL_VARIABLE


def test_guid_wire_bytes():
    assert GLOBAL_VARIABLE.to_bytes() == bytes.fromhex("61dfe48bca93d211aa0d00e098032b8c")


def test_guid_round_trip():
    guid = Guid(0x01020304, 0x0506, 0x0708, bytes(range(9, 17)))
    data = guid.to_bytes()
    assert len(data) == 16
    assert guid_from_bytes(data) == guid


def test_guid_from_bytes_rejects_wrong_length():
    with pytest.raises(ValueError):
        guid_from_bytes(bytes(15))


@pytest.mark.parametrize(
    "args",
    [
        (1 << 32, 0, 0, bytes(8)),
        (0, 1 << 16, 0, bytes(8)),
        (0, 0, -1, bytes(8)),
        (0, 0, 0, bytes(7)),
    ],
)
def test_guid_rejects_out_of_range(args):
    with pytest.raises(ValueError):
        Guid(*args)


def test_size_to_pages_boundaries():
    assert size_to_pages(0) == 0
    assert size_to_pages(1) == 1
    assert size_to_pages(PAGE_SIZE) == 1
    assert size_to_pages(PAGE_SIZE + 1) == 2


@pytest.mark.parametrize("size", [3, 4095, 8192, 10000, 123457])
def test_size_to_pages_covers_size(size):
    pages = size_to_pages(size)
    assert pages * PAGE_SIZE >= size
    assert (pages - 1) * PAGE_SIZE < size


def test_size_to_pages_rejects_negative():
    with pytest.raises(ValueError):
        size_to_pages(-1)