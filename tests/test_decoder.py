import numpy as np
import pytest

from ftxmodem.api import EncoderConfig, encode, encode_to_audio
from ftxmodem.callsign_hash import CallsignHashTable
from ftxmodem.char.channel import apply_awgn
from ftxmodem.constants import FT8, FT8_INV_GRAY_MAP
from ftxmodem.decoder import DecodeError, DecoderConfig, decode_candidate, decode_samples
from ftxmodem.payload import MessageType
from ftxmodem.sync import Candidate
from ftxmodem.synth import synthesize_slot
from ftxmodem.waterfall import Waterfall

SR = 12000


def _flip_bit(tones, pos, bit):
    out = tones.copy()
    idx = FT8_INV_GRAY_MAP[int(out[pos])] ^ (1 << bit)
    out[pos] = FT8.gray_map[idx]
    return out


def test_standard_qso_single_message():
    x = encode_to_audio("CQ CQ K1ABC FN42", EncoderConfig(frequency=1000.0, sample_rate=SR))
    assert x.shape == (180000,)
    msgs = decode_samples(x, SR)
    assert len(msgs) == 1
    m = msgs[0]
    assert m.text == "CQ K1ABC FN42"
    assert m.type is MessageType.STANDARD
    assert abs(m.frequency_hz - 1000.0) <= 0.5
    # transmission starts at 1.18 s; the two-symbol analysis frame reports one symbol later
    assert abs(m.time_s - 1.36) <= 0.02
    assert m.status.ok
    assert m.hash == encode("CQ K1ABC FN42").hash


def test_reply_decodes_without_ldpc_errors():
    x = encode_to_audio("K1ABC W9XYZ -14", EncoderConfig(frequency=1500.0))
    msgs = decode_samples(x, SR)
    assert [m.text for m in msgs] == ["K1ABC W9XYZ -14"]
    assert msgs[0].type is MessageType.STANDARD
    assert msgs[0].status.ldpc_errors == 0
    assert msgs[0].status.crc_extracted == msgs[0].status.crc_calculated


def test_ft4_73():
    x = encode_to_audio("K1ABC W9XYZ 73", EncoderConfig(protocol="FT4", frequency=1200.0))
    assert x.shape == (90000,)
    msgs = decode_samples(x, SR, DecoderConfig(protocol="FT4"))
    assert [m.text for m in msgs] == ["K1ABC W9XYZ 73"]
    assert abs(msgs[0].frequency_hz - 1200.0) <= 0.25 * 12000 / 576


def test_free_text():
    x = encode_to_audio("HELLO WORLD")
    msgs = decode_samples(x, SR)
    assert [m.text for m in msgs] == ["HELLO WORLD"]
    assert msgs[0].type is MessageType.FREE_TEXT


def test_single_bit_error_is_corrected():
    tones = encode("CQ K1ABC FN42").tones
    bad = _flip_bit(tones, FT8.data_positions()[10], 0)
    assert not np.array_equal(bad, tones)
    msgs = decode_samples(synthesize_slot(bad, 1000.0, SR, "FT8"), SR)
    assert [m.text for m in msgs] == ["CQ K1ABC FN42"]
    assert msgs[0].status.crc_extracted == msgs[0].status.crc_calculated


def test_three_bit_errors_never_give_wrong_text():
    rng = np.random.default_rng(99)
    tones = encode("CQ K1ABC FN42").tones
    positions = rng.choice(FT8.data_positions(), size=3, replace=False)
    bad = tones
    for pos in positions:
        bad = _flip_bit(bad, int(pos), int(rng.integers(0, 3)))
    msgs = decode_samples(synthesize_slot(bad, 1000.0, SR, "FT8"), SR)
    assert all(m.text == "CQ K1ABC FN42" for m in msgs)


def test_two_signals():
    a = encode_to_audio("CQ K1ABC FN42", EncoderConfig(frequency=1000.0))
    b = encode_to_audio("K1ABC W9XYZ -14", EncoderConfig(frequency=1500.0))
    config = DecoderConfig()
    msgs = decode_samples(0.5 * (a + b), SR, config)
    assert sorted(m.text for m in msgs) == ["CQ K1ABC FN42", "K1ABC W9XYZ -14"]
    assert all(m.score >= config.min_score for m in msgs)
    by_text = {m.text: m for m in msgs}
    assert abs(by_text["CQ K1ABC FN42"].frequency_hz - 1000.0) <= 0.5
    assert abs(by_text["K1ABC W9XYZ -14"].frequency_hz - 1500.0) <= 0.5


def test_decodes_in_noise():
    rng = np.random.default_rng(2024)
    x = encode_to_audio("K1ABC W9XYZ RR73", EncoderConfig(frequency=1234.0))
    y = apply_awgn(x, -12.0, rng)
    msgs = decode_samples(y, SR)
    assert "K1ABC W9XYZ RR73" in [m.text for m in msgs]


def test_hashed_call_resolved_by_table():
    tx = CallsignHashTable()
    x = encode_to_audio("<PJ4/K1ABC> W9XYZ", hash_table=tx)
    assert [m.text for m in decode_samples(x, SR)] == ["<...> W9XYZ"]
    rx = CallsignHashTable()
    rx.add("PJ4/K1ABC")
    assert [m.text for m in decode_samples(x, SR, hash_table=rx)] == ["<PJ4/K1ABC> W9XYZ"]


def test_silence_and_message_limit():
    assert decode_samples(np.zeros(180000, dtype=np.float32), SR) == []
    x = encode_to_audio("CQ K1ABC FN42")
    assert decode_samples(x, SR, DecoderConfig(max_decoded_messages=0)) == []


def test_zero_codeword_is_ldpc_failure():
    wf = Waterfall()
    wf.feed(np.zeros(180000))
    cand = Candidate(score=0, time_offset=0, freq_offset=0, time_sub=0, freq_sub=0)
    msg, status = decode_candidate(wf, cand)
    assert msg is None
    assert status.error is DecodeError.LDPC_FAIL
    assert not status.ok


def test_bad_input_rejected():
    with pytest.raises(ValueError):
        decode_samples(np.zeros((2, 1000)), SR)
    with pytest.raises(ValueError):
        DecoderConfig(max_candidates=-1)
