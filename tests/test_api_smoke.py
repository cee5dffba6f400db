import io

import numpy as np
import pytest
import soundfile as sf

from ftxmodem import (
    EncoderConfig,
    decode_wav,
    encode_to_audio,
    float32_to_pcm16,
    load_wav,
    pcm16_to_float32,
    save_wav,
)


def test_decode_smoke(tmp_path):
    # Create a silent 15s mono WAV and ensure API does not crash
    sr = 12000
    x = np.zeros(sr * 15, dtype=np.float32)
    wav = tmp_path / "silent.wav"
    sf.write(str(wav), x, sr)

    results = decode_wav(str(wav))
    assert results == []


def test_wav_roundtrip_decodes(tmp_path):
    x = encode_to_audio("CQ K1ABC FN42", EncoderConfig(frequency=1500.0))
    wav = tmp_path / "slot.wav"
    save_wav(wav, x, 12000)

    y, sr = load_wav(wav)
    assert sr == 12000
    assert y.dtype == np.float32
    assert y.shape == x.shape
    assert np.max(np.abs(y - x)) < 1e-3

    msgs = decode_wav(wav)
    assert [m.text for m in msgs] == ["CQ K1ABC FN42"]


def test_wav_file_object_and_stereo():
    x = encode_to_audio("K1ABC W9XYZ RR73")
    stereo = np.stack([x, np.zeros_like(x)], axis=1)
    buf = io.BytesIO()
    sf.write(buf, stereo, 12000, format="WAV", subtype="PCM_16")
    buf.seek(0)
    y, sr = load_wav(buf)
    assert sr == 12000
    assert y.shape == (180000,)
    buf.seek(0)
    assert [m.text for m in decode_wav(buf)] == ["K1ABC W9XYZ RR73"]


def test_pcm_conversions():
    pcm = float32_to_pcm16(np.array([1.5, -1.5, 0.0, 0.5], dtype=np.float32))
    assert pcm.dtype == np.int16
    assert pcm.tolist() == [32767, -32767, 0, 16384]
    back = pcm16_to_float32(np.array([-32768, 0, 16384], dtype=np.int16))
    assert back.dtype == np.float32
    assert back.tolist() == [-1.0, 0.0, 0.5]


def test_encoder_config_validation():
    with pytest.raises(ValueError):
        EncoderConfig(frequency=7000.0)
    with pytest.raises(ValueError):
        EncoderConfig(sample_rate=0)
    assert EncoderConfig(protocol="ft4").protocol.value == "FT4"
