from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple
import numpy as np
from numpy.typing import NDArray

from .constants import LDPC_N, LDPC_M
from .ldpc_tables import get_parity_matrices

# keeps arctanh finite; 2*atanh(1 - 1e-7) is about 16.8
_TANH_CLIP = 1.0 - 1e-7


@dataclass(frozen=True)
class BeliefPropagationConfig:
    max_iterations: int = 25

    def __post_init__(self) -> None:
        if self.max_iterations < 0:
            raise ValueError("max_iterations must be non-negative")


@dataclass(frozen=True)
class LdpcResult:
    errors: int                # unsatisfied parity checks of the returned bits
    bits: NDArray[np.uint8]    # 174 hard decisions
    iterations: int            # message-passing rounds performed


@lru_cache(maxsize=1)
def _tanner_graph() -> Tuple[NDArray[np.int64], NDArray[np.bool_], NDArray[np.int64]]:
    """
    Return (nm_idx, valid, edge_of_var) for the (174,91) code.

    nm_idx[m, j] is the j-th variable of check m (0 where padded), valid masks the
    padding, and edge_of_var[n, i] is the flat position in the [LDPC_M, 7] edge
    array of the edge between variable n and its i-th check.
    """
    Mn, Nm = get_parity_matrices()
    valid = Nm >= 0
    nm_idx = np.where(valid, Nm, 0).astype(np.int64)
    width = Nm.shape[1]
    edge_of_var = np.zeros((LDPC_N, 3), dtype=np.int64)
    for n in range(LDPC_N):
        for i in range(3):
            m = int(Mn[n, i])
            pos = int(np.flatnonzero(Nm[m] == n)[0])
            edge_of_var[n, i] = m * width + pos
    return nm_idx, valid, edge_of_var


def _syndrome_weight(bits: NDArray[np.uint8], nm_idx: NDArray[np.int64], valid: NDArray[np.bool_]) -> int:
    row_bits = np.where(valid, bits[nm_idx], 0)
    return int(np.count_nonzero(np.bitwise_xor.reduce(row_bits, axis=1)))


def bp_decode(llr_174: NDArray[np.float64], config: BeliefPropagationConfig | None = None) -> LdpcResult:
    """
    Sum-product belief propagation on the (174,91) parity-check graph.

    LLRs are positive for bit 0. The hard decision is checked before every
    round so a clean codeword returns after zero rounds. When the iterations run
    out, the best hard decision seen (fewest unsatisfied checks) is returned.
    """
    if config is None:
        config = BeliefPropagationConfig()
    llr = np.asarray(llr_174, dtype=np.float64)
    if llr.shape != (LDPC_N,):
        raise ValueError("llr_174 must have shape (174,)")

    nm_idx, valid, edge_of_var = _tanner_graph()
    ones = np.ones((LDPC_M, 1), dtype=np.float64)
    # check -> variable messages, stored per edge
    c2v = np.zeros(valid.shape, dtype=np.float64)

    best_errors = LDPC_M + 1
    best_bits = np.zeros(LDPC_N, dtype=np.uint8)
    iteration = 0
    for iteration in range(config.max_iterations + 1):
        total = llr + c2v.ravel()[edge_of_var].sum(axis=1)
        bits = (total < 0).astype(np.uint8)
        errors = _syndrome_weight(bits, nm_idx, valid)
        if errors < best_errors:
            best_errors = errors
            best_bits = bits
        if errors == 0 or iteration == config.max_iterations:
            break

        # variable -> check: everything except the message coming back from that check
        v2c = total[nm_idx] - c2v
        t = np.where(valid, np.tanh(0.5 * v2c), 1.0)
        # product over the other edges of each check via prefix/suffix products
        left = np.cumprod(np.concatenate([ones, t[:, :-1]], axis=1), axis=1)
        rev = t[:, ::-1]
        right = np.cumprod(np.concatenate([ones, rev[:, :-1]], axis=1), axis=1)[:, ::-1]
        excl = np.clip(left * right, -_TANH_CLIP, _TANH_CLIP)
        c2v = np.where(valid, 2.0 * np.arctanh(excl), 0.0)

    return LdpcResult(errors=best_errors, bits=best_bits, iterations=iteration)
