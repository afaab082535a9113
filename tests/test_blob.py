import pytest

from fw_audit.firmware.blob import decode_bytes, decode_c_string, decode_integer


def test_decode_single_group():
    assert decode_bytes("deadbeef") == bytes([0xDE, 0xAD, 0xBE, 0xEF])


def test_decode_groups_do_not_overlap():
    data = decode_bytes("deadbeef cafef00d")
    assert data == bytes([0xDE, 0xAD, 0xBE, 0xEF, 0xCA, 0xFE, 0xF0, 0x0D])


def test_short_final_group():
    assert decode_bytes("48656c6c6f00") == b"Hello\0"


@pytest.mark.parametrize("blob", [
    "deadbee",
    "deadbeef  cafef00d",
    " deadbeef",
    "deadbeef\tcafef00d",
    "zzzzzzzz",
    "dead beef",
    None,
    42,
])
def test_malformed_blob_is_empty(blob):
    assert decode_bytes(blob) == b""


def test_empty_blob():
    assert decode_bytes("") == b""


def test_decode_integer():
    assert decode_integer("04000000", 0, 4) == 4


def test_decode_integer_is_little_endian():
    assert decode_integer("78563412", 0, 4) == 0x12345678
    assert decode_integer("78563412", 1, 2) == 0x3456
    assert decode_integer("78563412", 3, 1) == 0x12


def test_decode_integer_zero_length():
    assert decode_integer("78563412", 4, 0) == 0


@pytest.mark.parametrize("offset,length", [
    (0, 5),
    (1, 4),
    (4, 1),
    (-1, 1),
    (0, -1),
    (True, 1),
    (0, "4"),
])
def test_decode_integer_not_applicable(offset, length):
    assert decode_integer("78563412", offset, length) is None


def test_decode_integer_length_five_never_applies():
    assert decode_integer("00000000 00000000", 0, 5) is None


def test_decode_integer_on_malformed_blob():
    assert decode_integer("0400000", 0, 1) is None


def test_decode_c_string():
    assert decode_c_string("48656c6c6f00", 0) == "Hello"
    assert decode_c_string("48656c6c6f00", 1) == "ello"


def test_decode_c_string_without_terminator():
    assert decode_c_string("48656c6c 6f", 0) == "Hello"


def test_decode_c_string_at_terminator_is_empty():
    assert decode_c_string("48656c6c6f00", 5) == ""


def test_decode_c_string_offset_bounds():
    assert decode_c_string("48656c6c6f00", 6) is None
    assert decode_c_string("48656c6c6f00", -1) is None
    assert decode_c_string("48656c6c6f00", "0") is None
