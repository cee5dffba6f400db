from __future__ import annotations

import numpy as np

from ftxmodem.api import EncoderConfig, encode
from ftxmodem.constants import Protocol
from ftxmodem.synth import encode_codeword, synthesize_slot


def make_codeword(text: str, protocol: Protocol | str = Protocol.FT8) -> np.ndarray:
    """174-bit codeword (as transmitted, FT4 scrambling included) for a message."""
    msg = encode(text, protocol)
    return encode_codeword(msg.payload, msg.protocol)


def make_clean_signal(
    text: str,
    sample_rate_hz: float,
    base_freq_hz: float,
    protocol: Protocol | str = Protocol.FT8,
) -> tuple[np.ndarray, np.ndarray]:
    """Synthesize one clean slot and return (audio, tones).

    - audio: float32, slot_time * sample_rate samples, transmission centred
    - tones: int32 channel symbols (79 for FT8, 105 for FT4)
    """
    cfg = EncoderConfig(protocol=protocol, frequency=base_freq_hz, sample_rate=sample_rate_hz)
    msg = encode(text, cfg.protocol)
    x = synthesize_slot(msg.tones, cfg.frequency, cfg.sample_rate, cfg.protocol, cfg.symbol_bt)
    return x, msg.tones
