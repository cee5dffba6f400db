from __future__ import annotations

import logging
from enum import IntEnum
from typing import List, Optional, Protocol, Tuple

from .charset import ALPHANUM_SPACE_SLASH

logger = logging.getLogger(__name__)

HASH_TABLE_SIZE = 256
_HASH_MULTIPLIER = 47055833459
_MASK64 = (1 << 64) - 1


class HashWidth(IntEnum):
    BITS_22 = 22
    BITS_12 = 12
    BITS_10 = 10


def ihashcall(callsign: str, m: int = 22) -> Optional[int]:
    """
    m-bit hash of a callsign as used by the hashed 77-bit message fields.

    The call is padded with spaces to 11 characters and read as a base-38
    number. Returns None if the call has characters outside the hash alphabet.
    e.g. ihashcall("SX60RAAG", 22) == 3214310
    """
    call = callsign.strip().upper()
    if not call or len(call) > 11:
        return None
    x = 0
    for c in call.ljust(11):
        j = ALPHANUM_SPACE_SLASH.find(c)
        if j < 0:
            return None
        x = 38 * x + j
    x = (x * _HASH_MULTIPLIER) & _MASK64
    return x >> (64 - m)


def hash_widths(hash22: int) -> Tuple[int, int, int]:
    """Return (n22, n12, n10) derived from a 22-bit hash."""
    return hash22, hash22 >> 10, hash22 >> 12


# order of the values returned by hash_widths
_WIDTH_ORDER = (HashWidth.BITS_22, HashWidth.BITS_12, HashWidth.BITS_10)


class CallsignHashInterface(Protocol):
    def lookup(self, width: int, value: int) -> Optional[str]: ...

    def save(self, callsign: str, hash22: int) -> None: ...


class CallsignHashTable:
    """
    Callsigns seen so far, keyed by their 22-bit hash.

    Open addressing over 256 slots with linear probing. The first slot probed is
    (hash10 * 23) mod 256 so that 10-, 12- and 22-bit lookups of the same call
    start at the same place. Not thread-safe; give each pipeline its own table
    or guard it externally.
    """

    def __init__(self) -> None:
        self._slots: List[Optional[Tuple[str, int]]] = [None] * HASH_TABLE_SIZE

    @staticmethod
    def _width_index(width: int) -> int:
        try:
            return _WIDTH_ORDER.index(width)
        except ValueError:
            raise ValueError(f"unsupported hash width: {width}") from None

    @staticmethod
    def _start_index(hash10: int) -> int:
        return (hash10 * 23) % HASH_TABLE_SIZE

    def save(self, callsign: str, hash22: int) -> None:
        hash22, _, hash10 = hash_widths(hash22 & 0x3FFFFF)
        start = self._start_index(hash10)
        for probe in range(HASH_TABLE_SIZE):
            idx = (start + probe) % HASH_TABLE_SIZE
            slot = self._slots[idx]
            if slot is None:
                self._slots[idx] = (callsign[:11], hash22)
                return
            if slot[1] == hash22 and slot[0] == callsign[:11]:
                return
        logger.warning("callsign hash table full, overwriting slot %d with %s", start, callsign)
        self._slots[start] = (callsign[:11], hash22)

    def lookup(self, width: int, value: int) -> Optional[str]:
        k = self._width_index(width)
        start = self._start_index((value >> (width - HashWidth.BITS_10)) & 0x3FF)
        for probe in range(HASH_TABLE_SIZE):
            slot = self._slots[(start + probe) % HASH_TABLE_SIZE]
            if slot is None:
                return None
            if hash_widths(slot[1])[k] == value:
                return slot[0]
        return None

    def add(self, callsign: str) -> Optional[int]:
        """Hash and store a callsign; returns its 22-bit hash or None if it cannot be hashed."""
        h = ihashcall(callsign, 22)
        if h is not None:
            self.save(callsign.strip().upper(), h)
        return h

    def clear(self) -> None:
        self._slots = [None] * HASH_TABLE_SIZE

    def __len__(self) -> int:
        return sum(1 for s in self._slots if s is not None)

    def __contains__(self, callsign: object) -> bool:
        return any(s is not None and s[0] == callsign for s in self._slots)
