import pytest

from ftxmodem.constants import (
    FT4,
    FT8,
    FT8_GRAY_MAP,
    FT8_INV_GRAY_MAP,
    Protocol,
    bits_to_gray,
    get_protocol_constants,
    gray_to_bits,
    protocol_params,
)


def test_gray_map_inverse():
    for tone in range(8):
        assert FT8_GRAY_MAP[FT8_INV_GRAY_MAP[tone]] == tone
    for tone in range(4):
        assert bits_to_gray(gray_to_bits(tone, FT4), FT4) == tone


@pytest.mark.parametrize("params", [FT8, FT4])
def test_gray_neighbours_differ_in_one_bit(params):
    # adjacent tones carry bit patterns that differ in exactly one bit
    for tone in range(params.num_tones - 1):
        a = gray_to_bits(tone, params)
        b = gray_to_bits(tone + 1, params)
        assert sum(x != y for x, y in zip(a, b)) == 1


def test_ft8_layout():
    sync = [pos for pos, _m, _k in FT8.sync_positions()]
    assert sync == list(range(0, 7)) + list(range(36, 43)) + list(range(72, 79))
    data = FT8.data_positions()
    assert len(data) == FT8.num_data_symbols == 58
    assert len(data) * FT8.bits_per_symbol == 174
    assert FT8.tone_spacing_hz == pytest.approx(6.25)


def test_ft4_layout():
    sync = [pos for pos, _m, _k in FT4.sync_positions()]
    assert sync == list(range(1, 5)) + list(range(34, 38)) + list(range(67, 71)) + list(range(100, 104))
    data = FT4.data_positions()
    assert 0 not in data and 104 not in data
    assert len(data) == FT4.num_data_symbols == 87
    assert len(data) * FT4.bits_per_symbol == 174
    assert [FT4.sync_tone(m, 0) for m in range(4)] == [0, 1, 2, 3]


def test_protocol_lookup():
    assert protocol_params("ft8") is FT8
    assert protocol_params(Protocol.FT4) is FT4
    with pytest.raises(ValueError):
        protocol_params("JT65")
    c = get_protocol_constants("FT4")
    assert c["total_symbols"] == 105
    assert c["slot_time"] == 7.5
    assert c["num_tones"] == 4
