from __future__ import annotations
import numpy as np

from .constants import CRC14_POLY, CRC14_BITS, PAYLOAD_BITS

# FT8/FT4 use CRC-14 with polynomial x^14 + x^13 + x^10 + x^9 + x^8 + x^6 + x^4 + x^2 + x + 1
# Polynomial (no top bit) as integer: 0x2757 as used by WSJT-X
CRC14_MASK = (1 << CRC14_BITS) - 1
_TOPBIT = 1 << (CRC14_BITS - 1)

# 77 payload bits zero-extended to 82
CRC_OPERAND_BITS = PAYLOAD_BITS + 5


def crc14(bits_77: np.ndarray) -> int:
    """
    CRC-14 over 82 bits: the 77-bit payload zero-extended by 5 zero bits, MSB-first.
    Returns the 14-bit CRC value as an int.
    """
    reg: int = 0
    for i in range(CRC_OPERAND_BITS):
        bit = int(bits_77[i]) if i < PAYLOAD_BITS else 0
        reg ^= (bit & 1) << 13
        feedback = (reg >> 13) & 1
        reg = ((reg << 1) & CRC14_MASK)
        if feedback:
            reg ^= CRC14_POLY
    return reg & CRC14_MASK


def crc14_bits(crc: int) -> np.ndarray:
    return np.array([(crc >> i) & 1 for i in range(CRC14_BITS - 1, -1, -1)], dtype=np.uint8)


def append_crc(bits_77: np.ndarray) -> np.ndarray:
    """Return the 91-bit message [77 payload | 14 CRC]."""
    bits = np.asarray(bits_77, dtype=np.uint8)[:PAYLOAD_BITS]
    return np.concatenate([bits, crc14_bits(crc14(bits))])


def crc14_check(bits_with_crc: np.ndarray) -> bool:
    """Return True if CRC-14 over payload equals appended 14-bit CRC (MSB-first)."""
    if bits_with_crc.size < PAYLOAD_BITS + CRC14_BITS:
        return False
    payload = bits_with_crc[:PAYLOAD_BITS]
    crc_bits = bits_with_crc[PAYLOAD_BITS:PAYLOAD_BITS + CRC14_BITS]
    expected = crc14(payload)
    got = 0
    for b in crc_bits:
        got = (got << 1) | (int(b) & 1)
    return expected == got


def compute_crc(data: bytes, num_bits: int) -> int:
    """Byte-oriented CRC-14 over the first num_bits of data (MSB-first)."""
    remainder = 0
    idx_byte = 0
    for idx_bit in range(num_bits):
        if idx_bit % 8 == 0:
            remainder ^= data[idx_byte] << (CRC14_BITS - 8)
            idx_byte += 1
        if remainder & _TOPBIT:
            remainder = (remainder << 1) ^ CRC14_POLY
        else:
            remainder = remainder << 1
    return remainder & CRC14_MASK


def add_crc(payload: bytes) -> bytes:
    """Return the 12-byte a91 buffer: 77 payload bits followed by 14 CRC bits."""
    a91 = bytearray(12)
    a91[:10] = payload[:10]
    a91[9] &= 0xF8
    a91[10] = 0
    checksum = compute_crc(bytes(a91), 96 - 14)
    a91[9] |= (checksum >> 11) & 0xFF
    a91[10] = (checksum >> 3) & 0xFF
    a91[11] = (checksum << 5) & 0xFF
    return bytes(a91)


def extract_crc(a91: bytes) -> int:
    return ((a91[9] & 0x07) << 11) | (a91[10] << 3) | (a91[11] >> 5)
