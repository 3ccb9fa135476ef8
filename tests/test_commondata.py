import os

import pytest

from hashminer.commondata import (
    BadHexCharacter,
    ExternalFunctionFailure,
    HexPrefix,
    MinerError,
    ScaleSuffix,
    as_bytes,
    as_string,
    bytes_required,
    from_big_endian,
    from_hex,
    from_hex_char,
    get_formatted_hashes,
    get_formatted_memory,
    get_hashes_to_target,
    get_scaled_size,
    get_target_from_diff,
    int_to_hex,
    pad_left,
    pad_right,
    set_env,
    to_big_endian,
    to_compact_big_endian,
    to_compact_hex,
    to_hex,
)

DIFF1 = "0x00000000ffff0000000000000000000000000000000000000000000000000000"


def test_to_hex_documented_example():
    assert to_hex(b"A\x69") == "4169"
    assert to_hex(b"A\x69", HexPrefix.ADD) == "0x4169"


def test_from_hex_documented_example():
    assert from_hex("41626261") == as_bytes("Abba")


def test_from_hex_char_documented_examples():
    assert from_hex_char("A") == 10
    assert from_hex_char("f") == 15
    assert from_hex_char("5") == 5


def test_from_hex_char_bad():
    assert from_hex_char("g") == -1
    with pytest.raises(BadHexCharacter):
        from_hex_char("g", True)


@pytest.mark.parametrize("data", [b"", b"\x00", b"\x01\xff\x10", bytes(range(256))])
def test_hex_round_trip(data):
    assert from_hex(to_hex(data)) == data
    assert from_hex(to_hex(data, HexPrefix.ADD)) == data


def test_from_hex_odd_length_takes_first_digit_alone():
    assert from_hex("0x123") == from_hex("0123")
    assert to_hex(from_hex("abc")) == "0abc"


def test_from_hex_bad_digit():
    assert from_hex("12zz") == b""
    with pytest.raises(BadHexCharacter):
        from_hex("12zz", True)
    with pytest.raises(MinerError):
        from_hex("x", True)


def test_exceptions_messages():
    assert str(BadHexCharacter("q")) == "BadHexCharacter"
    err = ExternalFunctionFailure("open")
    assert str(err) == "Function open() failed."
    assert isinstance(err, MinerError)


def test_int_to_hex_padding_and_prefix():
    text = int_to_hex(255)
    assert len(text) == 16 and int(text, 16) == 255
    prefixed = int_to_hex(255, 8, HexPrefix.ADD)
    assert prefixed.startswith("0x") and len(prefixed) == 10
    assert int(prefixed, 16) == 255
    with pytest.raises(ValueError):
        int_to_hex(-1)


def test_to_compact_hex():
    text = to_compact_hex(4096)
    assert int(text, 16) == 4096 and not text.startswith("0")
    assert to_compact_hex(0) == "0"
    assert to_compact_hex(4096, HexPrefix.ADD) == "0x" + text


def test_string_bytes_round_trip():
    data = bytes(range(256))
    assert as_bytes(as_string(data)) == data


def test_big_endian_round_trip_and_truncation():
    value = 0x0123456789ABCDEF
    assert from_big_endian(to_big_endian(value)) == value
    assert len(to_big_endian(value)) == 32
    assert to_big_endian(0x1234, 1) == b"\x34"
    with pytest.raises(ValueError):
        to_big_endian(-1)


def test_compact_big_endian():
    for value in (0, 1, 255, 256, 2**64 - 1, 2**200 + 7):
        out = to_compact_big_endian(value)
        assert len(out) == bytes_required(value)
        assert from_big_endian(out) == value
    assert len(to_compact_big_endian(1, 4)) == 4


def test_bytes_required():
    assert bytes_required(0) == 0
    assert bytes_required(255) == 1
    assert bytes_required(256) == 2


def test_set_env(monkeypatch):
    monkeypatch.delenv("HASHMINER_TEST_VAR", raising=False)
    assert set_env("HASHMINER_TEST_VAR", "100")
    assert os.environ["HASHMINER_TEST_VAR"] == "100"
    set_env("HASHMINER_TEST_VAR", "200")
    assert os.environ["HASHMINER_TEST_VAR"] == "100"
    set_env("HASHMINER_TEST_VAR", "200", True)
    assert os.environ["HASHMINER_TEST_VAR"] == "200"


def test_target_from_diff_fixed_values():
    assert get_target_from_diff(1) == DIFF1
    assert get_target_from_diff(0) == "0x" + "f" * 64
    assert get_target_from_diff(1, HexPrefix.DONT_ADD) == DIFF1[2:]


def test_target_from_diff_scales_inversely():
    one = int(get_target_from_diff(1), 16)
    assert int(get_target_from_diff(2), 16) * 2 == one
    assert int(get_target_from_diff(0.5), 16) == one * 2
    assert len(get_target_from_diff(4, HexPrefix.DONT_ADD)) == 64


def test_hashes_to_target():
    assert get_hashes_to_target(DIFF1) == 2.0**32
    half = get_hashes_to_target(get_target_from_diff(2))
    assert half == 2 * get_hashes_to_target(DIFF1)


def test_formatted_hashes():
    assert get_formatted_hashes(1500) == "1.50 Kh"
    assert get_formatted_hashes(500, ScaleSuffix.DONT_ADD) == "500.00"
    assert get_formatted_hashes(5e9).endswith(" Gh")
    assert get_formatted_hashes(5e15).endswith(" Gh")


def test_formatted_memory():
    assert get_formatted_memory(2048) == "2.00 KB"
    assert get_formatted_memory(3 * 1024**3).endswith(" GB")
    assert get_formatted_memory(1024, precision=0) == "1024 B"


def test_scaled_size_custom_units():
    result = get_scaled_size(10.0, 2.0, 1, ["a", "b", "c"])
    assert result.endswith(" c")
    assert float(result.split()[0]) == 2.5


def test_padding():
    assert pad_left("7", 3, "0") == "007"
    assert pad_right("ab", 4, ".") == "ab.."
    assert pad_left("long", 2, "0") == "long"
    assert pad_right("long", 2, "0") == "long"