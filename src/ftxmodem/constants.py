
"""
Core FT8/FT4 protocol constants and small lookup tables.

Values follow the public FT8/FT4 description (Franke, Somerville, Taylor) and
match the de-facto standard used by interoperable implementations.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class Protocol(str, Enum):
    FT8 = "FT8"
    FT4 = "FT4"


# FT8 timing
FT8_SYMBOL_PERIOD_S = 0.160  # seconds per FT8 symbol (6.25 baud)
FT8_SLOT_TIME_S = 15.0       # seconds per T/R slot
FT8_SYMBOL_BT = 2.0

# FT8 frame layout
FT8_ND = 58                  # number of data symbols (carry 3 bits each)
FT8_NN = 79                  # total channel symbols (includes sync symbols)
FT8_LENGTH_SYNC = 7          # symbols per Costas sync block
FT8_NUM_SYNC = 3             # number of Costas sync blocks
FT8_SYNC_OFFSET = 36         # distance between starts of successive sync blocks

# FT4 timing
FT4_SYMBOL_PERIOD_S = 0.048
FT4_SLOT_TIME_S = 7.5
FT4_SYMBOL_BT = 1.0

# FT4 frame layout: R S4 D29 S4 D29 S4 D29 S4 R
FT4_ND = 87
FT4_NN = 105
FT4_LENGTH_SYNC = 4
FT4_NUM_SYNC = 4
FT4_SYNC_OFFSET = 33

# LDPC(174,91)
LDPC_N = 174
LDPC_K = 91
LDPC_M = 83

# Payload
PAYLOAD_BITS = 77
PAYLOAD_BYTES = 10

# CRC-14
CRC14_POLY = 0x2757
CRC14_BITS = 14

# Costas sync tone patterns and Gray maps (bits -> tone index)
# These small tables are public and protocol-defined.
FT8_COSTAS_PATTERN = (3, 1, 4, 0, 6, 5, 2)
FT8_GRAY_MAP = (0, 1, 3, 2, 5, 6, 4, 7)

FT4_COSTAS_PATTERN = (
    (0, 1, 3, 2),
    (1, 0, 2, 3),
    (2, 3, 1, 0),
    (3, 2, 0, 1),
)
FT4_GRAY_MAP = (0, 1, 3, 2)

# FT4 scrambles the 77-bit payload before CRC and FEC so that CQ messages do
# not go out as a long run of zeros.
FT4_XOR_SEQUENCE = bytes((0x4A, 0x5E, 0x89, 0xB4, 0xB0, 0x8A, 0x79, 0x55, 0xBE, 0x28))


@dataclass(frozen=True)
class ProtocolParams:
    protocol: Protocol
    symbol_period_s: float
    slot_time_s: float
    symbol_bt: float
    num_tones: int
    bits_per_symbol: int
    num_data_symbols: int
    num_symbols: int
    length_sync: int
    num_sync: int
    sync_offset: int
    # index of the first Costas symbol (FT4 starts with a ramp symbol)
    sync_start: int
    costas: Tuple[Tuple[int, ...], ...]
    gray_map: Tuple[int, ...]

    @property
    def tone_spacing_hz(self) -> float:
        return 1.0 / self.symbol_period_s

    def sync_positions(self) -> Tuple[Tuple[int, int, int], ...]:
        """Return (symbol index, block index m, position k) for every sync symbol."""
        out = []
        for m in range(self.num_sync):
            for k in range(self.length_sync):
                out.append((self.sync_start + self.sync_offset * m + k, m, k))
        return tuple(out)

    def sync_tone(self, m: int, k: int) -> int:
        return self.costas[m % len(self.costas)][k]

    def data_positions(self) -> Tuple[int, ...]:
        """Symbol indices that carry codeword bits, in transmission order."""
        sync = {pos for pos, _m, _k in self.sync_positions()}
        ramp = {0, self.num_symbols - 1} if self.sync_start > 0 else set()
        return tuple(i for i in range(self.num_symbols) if i not in sync and i not in ramp)


FT8 = ProtocolParams(
    protocol=Protocol.FT8,
    symbol_period_s=FT8_SYMBOL_PERIOD_S,
    slot_time_s=FT8_SLOT_TIME_S,
    symbol_bt=FT8_SYMBOL_BT,
    num_tones=8,
    bits_per_symbol=3,
    num_data_symbols=FT8_ND,
    num_symbols=FT8_NN,
    length_sync=FT8_LENGTH_SYNC,
    num_sync=FT8_NUM_SYNC,
    sync_offset=FT8_SYNC_OFFSET,
    sync_start=0,
    costas=(FT8_COSTAS_PATTERN,),
    gray_map=FT8_GRAY_MAP,
)

FT4 = ProtocolParams(
    protocol=Protocol.FT4,
    symbol_period_s=FT4_SYMBOL_PERIOD_S,
    slot_time_s=FT4_SLOT_TIME_S,
    symbol_bt=FT4_SYMBOL_BT,
    num_tones=4,
    bits_per_symbol=2,
    num_data_symbols=FT4_ND,
    num_symbols=FT4_NN,
    length_sync=FT4_LENGTH_SYNC,
    num_sync=FT4_NUM_SYNC,
    sync_offset=FT4_SYNC_OFFSET,
    sync_start=1,
    costas=FT4_COSTAS_PATTERN,
    gray_map=FT4_GRAY_MAP,
)


def protocol_params(protocol: Protocol | str) -> ProtocolParams:
    """Return the parameter set for 'FT8'/'FT4' or a Protocol member."""
    if not isinstance(protocol, Protocol):
        protocol = Protocol(str(protocol).upper())
    return FT8 if protocol is Protocol.FT8 else FT4


def get_protocol_constants(protocol: Protocol | str) -> dict:
    params = protocol_params(protocol)
    return {
        "symbol_period": params.symbol_period_s,
        "slot_time": params.slot_time_s,
        "num_tones": params.num_tones,
        "num_data_symbols": params.num_data_symbols,
        "total_symbols": params.num_symbols,
        "sync_length": params.length_sync,
        "num_sync_blocks": params.num_sync,
        "sync_offset": params.sync_offset,
    }


def _inverse(gray_map: Tuple[int, ...]) -> Tuple[int, ...]:
    inv = [0] * len(gray_map)
    for idx, tone in enumerate(gray_map):
        inv[tone] = idx
    return tuple(inv)


# Inverse mappings from tone index -> binary index
FT8_INV_GRAY_MAP = _inverse(FT8_GRAY_MAP)
FT4_INV_GRAY_MAP = _inverse(FT4_GRAY_MAP)


def gray_to_bits(gray_symbol: int, params: ProtocolParams = FT8) -> tuple[int, ...]:
    """Return the bits (MSB first) carried by a tone index.

    Note: FT8 uses a non-standard Gray ordering; do NOT use the generic XOR inverse.
    """
    inv = FT8_INV_GRAY_MAP if params.protocol is Protocol.FT8 else FT4_INV_GRAY_MAP
    idx = inv[gray_symbol % params.num_tones]
    k = params.bits_per_symbol
    return tuple((idx >> (k - 1 - i)) & 1 for i in range(k))


def bits_to_gray(bits: tuple[int, ...] | list[int], params: ProtocolParams = FT8) -> int:
    """Return Gray-coded tone index for the bits (MSB first)."""
    idx = 0
    for b in bits:
        idx = (idx << 1) | (int(b) & 1)
    return params.gray_map[idx]
