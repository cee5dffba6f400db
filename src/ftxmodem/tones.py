from __future__ import annotations

from functools import lru_cache
import math
import numpy as np
from numpy.typing import NDArray

from .constants import LDPC_N, ProtocolParams
from .sync import Candidate
from .waterfall import Waterfall

# variance the LLRs are scaled to before belief propagation
LLR_VARIANCE = 24.0


@lru_cache(maxsize=4)
def _bit_masks(num_tones: int, bits_per_symbol: int) -> NDArray[np.bool_]:
    """masks[b, j] is True when Gray index j has bit b (MSB first) set."""
    j = np.arange(num_tones)
    masks = np.array([((j >> (bits_per_symbol - 1 - b)) & 1) == 1 for b in range(bits_per_symbol)])
    masks.setflags(write=False)
    return masks


def symbol_llrs(tone_mags: NDArray[np.float64], params: ProtocolParams) -> NDArray[np.float64]:
    """Max-log bit LLRs for rows of per-tone magnitudes, shape [n, num_tones] -> [n, bits_per_symbol].

    Positive values favour bit 0. Magnitudes are first put in Gray-index order,
    s2[j] = mag[gray_map[j]].
    """
    s2 = tone_mags[:, list(params.gray_map)]
    masks = _bit_masks(params.num_tones, params.bits_per_symbol)
    out = np.empty((tone_mags.shape[0], params.bits_per_symbol), dtype=np.float64)
    for b in range(params.bits_per_symbol):
        ones = masks[b]
        out[:, b] = s2[:, ~ones].max(axis=1) - s2[:, ones].max(axis=1)
    return out


def extract_likelihood(wf: Waterfall, cand: Candidate) -> NDArray[np.float64]:
    """174 LLRs for a candidate; symbols that fall outside the waterfall give 0."""
    params = wf.params
    positions = np.asarray(params.data_positions(), dtype=np.int64)
    blocks = cand.time_offset + positions
    inside = (blocks >= 0) & (blocks < wf.num_blocks)

    llr = np.zeros((positions.size, params.bits_per_symbol), dtype=np.float64)
    if np.any(inside):
        cols = cand.freq_offset + np.arange(params.num_tones)
        mags = wf.mag[blocks[inside]][:, cols, cand.time_sub, cand.freq_sub].astype(np.float64) * 0.5
        llr[inside] = symbol_llrs(mags, params)
    out = llr.reshape(-1)
    assert out.shape[0] == LDPC_N
    return out


def normalize_llrs(llrs: NDArray[np.float64]) -> NDArray[np.float64]:
    """Scale LLRs so that their population variance is LLR_VARIANCE."""
    out = np.asarray(llrs, dtype=np.float64).copy()
    if out.size == 0:
        return out
    sum_val = float(np.sum(out))
    sum2_val = float(np.sum(out * out))
    inv_n = 1.0 / float(out.size)
    variance = (sum2_val - (sum_val * sum_val * inv_n)) * inv_n
    if variance <= 1e-12:
        return out
    out *= math.sqrt(LLR_VARIANCE / variance)
    return out

