import numpy as np
import pytest

from ftxmodem.api import encode
from ftxmodem.constants import FT4, FT4_COSTAS_PATTERN, FT8, FT8_COSTAS_PATTERN, gray_to_bits
from ftxmodem.ldpc_encode import parity_errors
from ftxmodem.synth import (
    encode_codeword,
    gfsk_pulse,
    pad_to_slot,
    scramble_payload,
    synthesize_gfsk,
    synthesize_slot,
    tones_from_codeword,
)


def test_ft8_tone_layout():
    msg = encode("CQ K1ABC FN42", "FT8")
    tones = msg.tones
    assert tones.shape == (79,)
    assert tones.min() >= 0 and tones.max() <= 7
    for start in (0, 36, 72):
        assert tuple(tones[start:start + 7]) == FT8_COSTAS_PATTERN


def test_ft4_tone_layout():
    msg = encode("K1ABC W9XYZ 73", "FT4")
    tones = msg.tones
    assert tones.shape == (105,)
    assert tones.max() <= 3
    assert tones[0] == 0 and tones[104] == 0
    for m, start in enumerate((1, 34, 67, 100)):
        assert tuple(tones[start:start + 4]) == FT4_COSTAS_PATTERN[m]


@pytest.mark.parametrize("params", [FT8, FT4])
def test_data_tones_carry_codeword(params):
    msg = encode("K1ABC W9XYZ RR73", params.protocol)
    cw = encode_codeword(msg.payload, params.protocol)
    assert parity_errors(cw) == 0
    bits = []
    for pos in params.data_positions():
        bits.extend(gray_to_bits(int(msg.tones[pos]), params))
    assert np.array_equal(np.array(bits, dtype=np.uint8), cw)
    assert np.array_equal(tones_from_codeword(cw, params), msg.tones)


def test_ft4_scrambles_payload():
    msg = encode("CQ K1ABC FN42", "FT4")
    ft8_cw = encode_codeword(msg.payload, "FT8")
    ft4_cw = encode_codeword(msg.payload, "FT4")
    assert not np.array_equal(ft8_cw[:77], ft4_cw[:77])
    assert scramble_payload(scramble_payload(msg.payload.data)) == msg.payload.data


def test_message_hash_is_crc():
    msg = encode("CQ K1ABC FN42")
    assert 0 <= msg.hash < (1 << 14)
    assert encode("cq  k1abc fn42").hash == msg.hash
    assert msg.text == "CQ K1ABC FN42"


def test_gfsk_pulse_cached_and_normalized():
    p = gfsk_pulse(1920, 2.0)
    assert p is gfsk_pulse(1920, 2.0)
    assert p.shape == (3 * 1920,)
    # the pulse integrates to one symbol of frequency deviation
    assert np.sum(p) / 1920 == pytest.approx(1.0, abs=1e-3)


def test_signal_lengths():
    msg8 = encode("CQ K1ABC FN42", "FT8")
    wave = synthesize_gfsk(msg8.tones, 1000.0, 12000, "FT8")
    assert wave.shape == (151680,)
    assert wave.dtype == np.float32
    assert np.max(np.abs(wave)) <= 1.0

    slot = synthesize_slot(msg8.tones, 1000.0, 12000, "FT8")
    assert slot.shape == (180000,)
    lead = (180000 - 151680) // 2
    assert not np.any(slot[:lead])
    assert not np.any(slot[lead + 151680:])
    assert np.any(slot[lead:lead + 1920])

    msg4 = encode("K1ABC W9XYZ 73", "FT4")
    assert synthesize_gfsk(msg4.tones, 1200.0, 12000, "FT4").shape == (105 * 576,)
    assert synthesize_slot(msg4.tones, 1200.0, 12000, "FT4").shape == (90000,)


def test_pad_truncates_long_signal():
    x = np.ones(200000, dtype=np.float32)
    assert pad_to_slot(x, 12000, FT8).shape == (180000,)


def test_spectrum_peaks_at_carrier():
    # a steady tone-0 sequence is a plain carrier
    tones = np.zeros(79, dtype=np.int32)
    x = synthesize_gfsk(tones, 1500.0, 12000, "FT8").astype(np.float64)
    spec = np.abs(np.fft.rfft(x))
    freqs = np.fft.rfftfreq(x.size, d=1.0 / 12000)
    assert abs(freqs[int(np.argmax(spec))] - 1500.0) < 1.0
