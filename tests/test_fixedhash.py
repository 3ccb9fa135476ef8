import pytest

from hashminer.commondata import BadHexCharacter, HexPrefix
from hashminer.fixedhash import ELLIPSIS, Align, FixedHash, hashes_to_string


HEX32 = "00000000ffff0000000000000000000000000000000000000000000000000000"


def test_hex_round_trip():
    h = FixedHash.from_hex(HEX32)
    assert h.hex() == HEX32
    assert str(h) == HEX32
    assert h.hex(HexPrefix.ADD) == "0x" + HEX32


def test_from_hex_accepts_prefix():
    assert FixedHash.from_hex("0x" + HEX32) == FixedHash.from_hex(HEX32)


def test_from_hex_wrong_length_gives_zero():
    h = FixedHash.from_hex("abcd")
    assert not h
    assert bytes(h) == bytes(32)


def test_from_hex_bad_digit_raises():
    with pytest.raises(BadHexCharacter):
        FixedHash.from_hex("zz" * 32)


def test_alignment_of_short_data():
    left = FixedHash(b"\x01\x02", 4, Align.LEFT)
    right = FixedHash(b"\x01\x02", 4, Align.RIGHT)
    assert bytes(left) == b"\x01\x02\x00\x00"
    assert bytes(right) == b"\x00\x00\x01\x02"


def test_alignment_crops_long_data():
    data = bytes(range(1, 7))
    assert bytes(FixedHash(data, 4, Align.LEFT)) == data[:4]
    assert bytes(FixedHash(data, 4, Align.RIGHT)) == data[2:]


def test_from_other_hash_defaults_to_left():
    small = FixedHash(b"\xaa\xbb", 2)
    big = FixedHash(small, 4)
    assert bytes(big) == b"\xaa\xbb\x00\x00"


def test_int_round_trip():
    value = 123456789
    assert int(FixedHash.from_int(value)) == value


def test_from_int_truncates():
    assert int(FixedHash.from_int(0x1FF, 1)) == 0xFF


def test_ordering_follows_numbers():
    a = FixedHash.from_int(5)
    b = FixedHash.from_int(300)
    assert a < b
    assert b > a
    assert a <= a
    assert a >= a
    assert not a < a


def test_equality_and_hash():
    a = FixedHash.from_int(42)
    b = FixedHash.from_int(42)
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1


def test_binary_operators():
    a = FixedHash.from_int(0b1100, 1)
    b = FixedHash.from_int(0b1010, 1)
    assert int(a ^ b) == 0b1100 ^ 0b1010
    assert int(a | b) == 0b1100 | 0b1010
    assert int(a & b) == 0b1100 & 0b1010
    assert not (a ^ a)


def test_invert_twice_is_identity():
    h = FixedHash.random()
    assert ~~h == h
    assert not (h & ~h)


def test_size_mismatch_raises():
    with pytest.raises(ValueError):
        FixedHash.from_int(1, 2) ^ FixedHash.from_int(1, 3)


def test_increment_and_wrap():
    h = FixedHash.from_int(255, 2)
    h.increment()
    assert int(h) == 256
    top = ~FixedHash(size=2)
    top.increment()
    assert not top


def test_item_access():
    h = FixedHash(size=4)
    h[3] = 7
    assert h[3] == 7
    assert int(h) == 7
    with pytest.raises(ValueError):
        h[0] = 256


def test_abridged():
    h = FixedHash.from_hex(HEX32)
    assert h.abridged() == HEX32[:8] + ELLIPSIS


def test_clear():
    h = FixedHash.random()
    h[0] = 1
    h.clear()
    assert not h
    assert len(h) == 32


def test_random_has_size():
    assert len(FixedHash.random(20)) == 20


def test_hashes_to_string():
    a = FixedHash.from_hex(HEX32)
    assert hashes_to_string([]) == "[ ]"
    assert hashes_to_string([a, a]) == "[ " + (a.abridged() + ", ") * 2 + "]"