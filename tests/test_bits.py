import pytest

from risottovm.bits import (
    pack8,
    pack16,
    pack32,
    pack64,
    unpack8,
    unpack16,
    unpack32,
    unpack64,
)

DATA = [True, True, False, True, False, False, False, True]


def test_pack8():
    assert pack8(DATA) == 209


def test_pack8_accepts_ints():
    assert pack8([1, 1, 0, 1, 0, 0, 0, 1]) == 209


def test_unpack8():
    assert unpack8(209) == DATA


def test_pack64():
    bools = [False] * 64
    bools[0] = True
    bools[64 - 8:] = DATA
    assert pack64(bools) == 9223372036854776017


def test_unpack64():
    bools = unpack64(9223372036854776017)
    assert len(bools) == 64
    assert bools[0] is True
    assert bools[64 - 8:] == DATA


def test_max_round_trip():
    maximum = 2**64 - 1
    assert pack64(unpack64(maximum)) == maximum


@pytest.mark.parametrize(
    "pack, unpack, width",
    [(pack8, unpack8, 8), (pack16, unpack16, 16), (pack32, unpack32, 32), (pack64, unpack64, 64)],
)
def test_round_trips(pack, unpack, width):
    for value in (0, 1, 209, (1 << width) - 1, 1 << (width - 1)):
        bits = unpack(value)
        assert len(bits) == width
        assert pack(bits) == value


def test_unpack_truncates_to_width():
    assert unpack8(0x1D1) == unpack8(0xD1)
    assert pack16(unpack16(0x12345)) == 0x2345


def test_wrong_length_raises():
    with pytest.raises(ValueError):
        pack8([True] * 7)
    with pytest.raises(ValueError):
        pack64([False] * 63)