from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple
import numpy as np
from numpy.typing import NDArray

from .constants import PAYLOAD_BITS, PAYLOAD_BYTES

# 28-bit call field ranges and the grid field limit
NTOKENS = 2063592
MAX22 = 4194304  # 2^22
MAXGRID4 = 32400


class MessageType(str, Enum):
    FREE_TEXT = "FREE_TEXT"
    DXPEDITION = "DXPEDITION"
    EU_VHF = "EU_VHF"
    ARRL_FD = "ARRL_FD"
    TELEMETRY = "TELEMETRY"
    CONTESTING = "CONTESTING"
    STANDARD = "STANDARD"
    ARRL_RTTY = "ARRL_RTTY"
    NONSTD_CALL = "NONSTD_CALL"
    WWROF = "WWROF"
    UNKNOWN = "UNKNOWN"


class EncodeErrorKind(str, Enum):
    CALLSIGN1 = "CALLSIGN1"
    CALLSIGN2 = "CALLSIGN2"
    SUFFIX = "SUFFIX"
    GRID = "GRID"
    TYPE = "TYPE"


class MessageEncodeError(ValueError):
    """Text does not fit any supported 77-bit message layout."""

    def __init__(self, kind: EncodeErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


@dataclass(frozen=True)
class Payload77:
    data: bytes  # 10 bytes, 77 bits MSB-first; the 3 trailing bits are zero

    def __post_init__(self) -> None:
        if len(self.data) != PAYLOAD_BYTES:
            raise ValueError("payload must be 10 bytes")
        if self.data[-1] & 0x07:
            object.__setattr__(self, "data", self.data[:-1] + bytes([self.data[-1] & 0xF8]))

    @classmethod
    def from_int(cls, value: int) -> "Payload77":
        if value < 0 or value >= (1 << PAYLOAD_BITS):
            raise ValueError("payload value out of range")
        return cls((value << 3).to_bytes(PAYLOAD_BYTES, "big"))

    @classmethod
    def from_bits(cls, bits: Iterable[int]) -> "Payload77":
        arr = np.asarray(list(bits) if not isinstance(bits, np.ndarray) else bits, dtype=np.uint8)
        if arr.size < PAYLOAD_BITS:
            raise ValueError("need 77 bits")
        padded = np.concatenate([arr[:PAYLOAD_BITS] & 1, np.zeros(3, dtype=np.uint8)])
        return cls(np.packbits(padded).tobytes())

    def to_int(self) -> int:
        return int.from_bytes(self.data, "big") >> 3

    def bits(self) -> NDArray[np.uint8]:
        return np.unpackbits(np.frombuffer(self.data, dtype=np.uint8))[:PAYLOAD_BITS].astype(np.uint8)

    @property
    def i3(self) -> int:
        return field(self.to_int(), 74, 3)

    @property
    def n3(self) -> int:
        return field(self.to_int(), 71, 3)

    def hex(self) -> str:
        return self.data.hex()


def field(value77: int, start: int, width: int) -> int:
    """Extract `width` bits starting at bit `start` (bit 0 is the first transmitted)."""
    return (value77 >> (PAYLOAD_BITS - start - width)) & ((1 << width) - 1)


def pack_fields(fields: Iterable[Tuple[int, int]]) -> int:
    """Concatenate (value, width) pairs MSB-first into one 77-bit integer."""
    value = 0
    total = 0
    for v, width in fields:
        if v < 0 or v >= (1 << width):
            raise ValueError(f"field value {v} does not fit in {width} bits")
        value = (value << width) | v
        total += width
    if total != PAYLOAD_BITS:
        raise ValueError(f"fields cover {total} bits, expected {PAYLOAD_BITS}")
    return value


def message_type(payload: Payload77) -> MessageType:
    """Classify a payload by its i3/n3 fields."""
    i3 = payload.i3
    if i3 == 0:
        return {
            0: MessageType.FREE_TEXT,
            1: MessageType.DXPEDITION,
            2: MessageType.EU_VHF,
            3: MessageType.ARRL_FD,
            4: MessageType.ARRL_FD,
            5: MessageType.TELEMETRY,
        }.get(payload.n3, MessageType.UNKNOWN)
    if i3 in (1, 2):
        return MessageType.STANDARD
    if i3 == 3:
        return MessageType.ARRL_RTTY
    if i3 == 4:
        return MessageType.NONSTD_CALL
    if i3 == 5:
        return MessageType.WWROF
    return MessageType.UNKNOWN


def pack_bits_msb_first(bits: NDArray[np.uint8]) -> bytes:
    nbits = bits.size
    nbytes = (nbits + 7) // 8
    out = np.zeros(nbytes, dtype=np.uint8)
    mask = 0x80
    i_byte = 0
    for i in range(nbits):
        if bits[i] & 1:
            out[i_byte] |= mask
        mask >>= 1
        if mask == 0:
            mask = 0x80
            i_byte += 1
    return out.tobytes()
