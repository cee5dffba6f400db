from __future__ import annotations

from functools import lru_cache
import numpy as np

from .constants import LDPC_K, LDPC_M, LDPC_N
from .ldpc_tables import get_generator, get_parity_matrices


@lru_cache(maxsize=1)
def get_parity_check_matrix() -> np.ndarray:
    """Return the full H matrix (LDPC_M x LDPC_N) built from the Nm table."""
    _Mn, Nm = get_parity_matrices()
    H = np.zeros((LDPC_M, LDPC_N), dtype=np.uint8)
    for r in range(LDPC_M):
        for v in Nm[r]:
            vi = int(v)
            if vi < 0:
                continue
            H[r, vi] ^= 1
    H.setflags(write=False)
    return H


def encode174_bits(a91_bits: np.ndarray) -> np.ndarray:
    """Encode 91 payload+CRC bits to a 174-bit codeword.

    codeword = [a91_bits (K bits)] + [parity (M bits)], parity[i] = sum(G[i,j]*a91[j]) mod 2
    """
    a91_bits = np.asarray(a91_bits)
    if a91_bits.shape[0] != LDPC_K:
        raise ValueError("a91_bits must have length LDPC_K")
    G = get_generator()
    a = a91_bits.astype(np.uint8) & 1
    p = (G.astype(np.int32) @ a.astype(np.int32)) % 2
    codeword = np.concatenate([a, p.astype(np.uint8)])
    assert codeword.shape[0] == LDPC_N
    return codeword


def parity_errors(codeword_bits: np.ndarray) -> int:
    """Number of parity checks not satisfied by a hard-decision codeword."""
    _Mn, Nm = get_parity_matrices()
    bits = np.asarray(codeword_bits, dtype=np.uint8) & 1
    # index -1 picks up a dummy zero appended at the end
    padded = np.concatenate([bits, np.zeros(1, dtype=np.uint8)])
    syndrome = np.bitwise_xor.reduce(padded[Nm], axis=1)
    return int(np.count_nonzero(syndrome))
