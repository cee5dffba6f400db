from __future__ import annotations

from functools import lru_cache
from typing import Optional
import numpy as np
from numpy.typing import NDArray
from scipy.special import erf

from .constants import FT4_XOR_SEQUENCE, LDPC_N, Protocol, ProtocolParams, protocol_params
from .crc import append_crc
from .ldpc_encode import encode174_bits
from .payload import Payload77

# K = pi * sqrt(2 / ln 2)
_GFSK_K = np.pi * np.sqrt(2.0 / np.log(2.0))


def scramble_payload(data: bytes) -> bytes:
    """XOR the 77 payload bits with the FT4 scrambling sequence (self-inverse)."""
    out = bytes(b ^ x for b, x in zip(data[:10], FT4_XOR_SEQUENCE))
    return out[:9] + bytes([out[9] & 0xF8])


def encode_codeword(payload: Payload77, protocol: Protocol | str = Protocol.FT8) -> NDArray[np.uint8]:
    """Payload -> 174-bit codeword: [77 payload | 14 CRC | 83 parity]."""
    params = protocol_params(protocol)
    data = payload.data
    if params.protocol is Protocol.FT4:
        data = scramble_payload(data)
    return encode174_bits(append_crc(Payload77(data).bits()))


def tones_from_codeword(codeword_bits: NDArray[np.uint8], params: ProtocolParams) -> NDArray[np.int32]:
    """Map 174 bits into channel tones and interleave the Costas sync blocks.

    FT8: S7 D29 S7 D29 S7. FT4: R S4 D29 S4 D29 S4 D29 S4 R (ramp symbols are tone 0).
    Each data symbol carries bits_per_symbol codeword bits, MSB first, through the Gray map.
    """
    bits = np.asarray(codeword_bits, dtype=np.int32) & 1
    if bits.shape[0] != LDPC_N:
        raise ValueError("codeword must have 174 bits")
    tones = np.zeros(params.num_symbols, dtype=np.int32)
    for pos, m, k in params.sync_positions():
        tones[pos] = params.sync_tone(m, k)

    k_bits = params.bits_per_symbol
    groups = bits[: params.num_data_symbols * k_bits].reshape(params.num_data_symbols, k_bits)
    weights = 1 << np.arange(k_bits - 1, -1, -1)
    idx = groups @ weights
    gray = np.asarray(params.gray_map, dtype=np.int32)
    tones[list(params.data_positions())] = gray[idx]
    return tones


def encode_tones(payload: Payload77, protocol: Protocol | str = Protocol.FT8) -> NDArray[np.int32]:
    params = protocol_params(protocol)
    return tones_from_codeword(encode_codeword(payload, params.protocol), params)


@lru_cache(maxsize=16)
def gfsk_pulse(n_spsym: int, symbol_bt: float) -> NDArray[np.float64]:
    """Gaussian-filtered rectangular frequency pulse spanning 3 symbols (3*n_spsym samples)."""
    t = np.arange(3 * n_spsym, dtype=np.float64) / n_spsym - 1.5
    arg1 = _GFSK_K * symbol_bt * (t + 0.5)
    arg2 = _GFSK_K * symbol_bt * (t - 0.5)
    pulse = (erf(arg1) - erf(arg2)) * 0.5
    pulse.setflags(write=False)
    return pulse


def samples_per_symbol(sample_rate: float, params: ProtocolParams) -> int:
    return int(round(sample_rate * params.symbol_period_s))


def synthesize_gfsk(
    tones: NDArray[np.int32],
    frequency: float,
    sample_rate: float,
    protocol: Protocol | str = Protocol.FT8,
    symbol_bt: Optional[float] = None,
) -> NDArray[np.float32]:
    """Continuous-phase GFSK waveform for a tone sequence, without slot padding.

    Returns len(tones) * N samples of a unit-amplitude sine, N = round(sample_rate * symbol_period).
    The first and last N/8 samples are tapered.
    """
    params = protocol_params(protocol)
    bt = params.symbol_bt if symbol_bt is None else float(symbol_bt)
    syms = np.asarray(tones, dtype=np.float64)
    n_sym = syms.shape[0]
    n_spsym = samples_per_symbol(sample_rate, params)
    n_wave = n_sym * n_spsym
    pulse = gfsk_pulse(n_spsym, bt)

    # frequency trajectory with one dummy symbol at either end
    dphi_peak = 2.0 * np.pi / n_spsym
    dphi = np.full(n_wave + 2 * n_spsym, 2.0 * np.pi * frequency / sample_rate, dtype=np.float64)
    for i in range(n_sym):
        ib = i * n_spsym
        dphi[ib:ib + 3 * n_spsym] += dphi_peak * syms[i] * pulse
    dphi[:2 * n_spsym] += dphi_peak * pulse[n_spsym:] * syms[0]
    dphi[n_sym * n_spsym:n_sym * n_spsym + 2 * n_spsym] += dphi_peak * pulse[:2 * n_spsym] * syms[-1]

    phi = np.zeros(n_wave, dtype=np.float64)
    phi[1:] = np.mod(np.cumsum(dphi[n_spsym:n_spsym + n_wave - 1]), 2.0 * np.pi)
    x = np.sin(phi)

    n_ramp = n_spsym // 8
    if n_ramp > 0:
        env = (1.0 - np.cos(np.pi * np.arange(n_ramp) / n_ramp)) / 2.0
        x[:n_ramp] *= env
        x[n_wave - n_ramp:] *= env[::-1]
    return x.astype(np.float32)


def pad_to_slot(signal: NDArray[np.float32], sample_rate: float, params: ProtocolParams) -> NDArray[np.float32]:
    """Centre a waveform in silence so the result is exactly one slot long."""
    total = int(round(params.slot_time_s * sample_rate))
    n = signal.shape[0]
    if n >= total:
        return signal[:total].astype(np.float32)
    lead = (total - n) // 2
    out = np.zeros(total, dtype=np.float32)
    out[lead:lead + n] = signal
    return out


def synthesize_slot(
    tones: NDArray[np.int32],
    frequency: float,
    sample_rate: float,
    protocol: Protocol | str = Protocol.FT8,
    symbol_bt: Optional[float] = None,
) -> NDArray[np.float32]:
    params = protocol_params(protocol)
    wave = synthesize_gfsk(tones, frequency, sample_rate, params.protocol, symbol_bt)
    return pad_to_slot(wave, sample_rate, params)
