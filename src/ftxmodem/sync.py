from __future__ import annotations

from dataclasses import dataclass
import heapq
import logging
from typing import List, Tuple
import numpy as np
from numpy.typing import NDArray

from .waterfall import Waterfall

logger = logging.getLogger(__name__)

# candidates may start this many symbols before the waterfall or after the nominal end
_TIME_MARGIN = 10


@dataclass(frozen=True)
class Candidate:
    score: int
    time_offset: int   # symbol periods from the start of the waterfall, may be negative
    freq_offset: int   # bins above min_bin
    time_sub: int
    freq_sub: int

    def sort_key(self) -> Tuple[int, int, int, int, int]:
        return (-self.score, self.time_offset, self.time_sub, self.freq_offset, self.freq_sub)


def candidate_time_range(wf: Waterfall) -> range:
    return range(-_TIME_MARGIN, wf.num_blocks - wf.params.num_symbols + _TIME_MARGIN)


def sync_score_grid(wf: Waterfall, time_sub: int, freq_sub: int) -> Tuple[NDArray[np.int64], range]:
    """
    Integer Costas sync score for every (time_offset, freq_offset) of one sub-phase.

    For every sync symbol inside the waterfall, the expected tone is compared
    with its neighbouring tones and with the same tone one symbol earlier and
    later inside the same Costas block. The score is the sum of those
    differences divided (truncating) by the number of terms.
    Returns (scores[time, freq], time_offsets).
    """
    params = wf.params
    times = candidate_time_range(wf)
    n_freq = wf.num_bins - params.num_tones + 1
    if len(times) <= 0 or n_freq <= 0 or wf.num_blocks == 0:
        return np.zeros((max(len(times), 0), max(n_freq, 0)), dtype=np.int64), times

    nb = wf.num_blocks
    # one zero row at the end for out-of-range blocks (index -1)
    W = np.zeros((nb + 1, wf.num_bins), dtype=np.int64)
    W[:nb] = wf.mag[:nb, :, time_sub, freq_sub]
    t_arr = np.arange(times.start, times.stop)
    f_arr = np.arange(n_freq)

    score = np.zeros((t_arr.size, n_freq), dtype=np.int64)
    count = np.zeros(t_arr.size, dtype=np.int64)

    def rows(blocks: NDArray[np.int64], ok: NDArray[np.bool_]) -> NDArray[np.int64]:
        return np.where(ok, blocks, nb)

    for pos, m, k in params.sync_positions():
        sm = params.sync_tone(m, k)
        blocks = t_arr + pos
        inside = (blocks >= 0) & (blocks < nb)
        cols = f_arr + sm
        p = W[rows(blocks, inside)][:, cols]
        valid = inside[:, None]
        if sm > 0:
            score += np.where(valid, p - W[rows(blocks, inside)][:, cols - 1], 0)
            count += inside
        if sm < params.num_tones - 1:
            score += np.where(valid, p - W[rows(blocks, inside)][:, cols + 1], 0)
            count += inside
        if k > 0:
            ok = inside & (blocks > 0)
            score += np.where(ok[:, None], p - W[rows(blocks - 1, ok)][:, cols], 0)
            count += ok
        if k + 1 < params.length_sync:
            ok = inside & (blocks + 1 < nb)
            score += np.where(ok[:, None], p - W[rows(blocks + 1, ok)][:, cols], 0)
            count += ok

    c = np.maximum(count, 1)[:, None]
    # C-style division, truncating toward zero
    result = np.where(score >= 0, score // c, -((-score) // c))
    result[count == 0] = 0
    return result, times


def find_candidates(wf: Waterfall, min_score: int = 10, max_candidates: int = 140) -> List[Candidate]:
    """Best sync positions, highest score first; ties go to earlier time, then lower frequency."""
    heap: List[Tuple[Tuple[int, int, int, int, int], Candidate]] = []
    for time_sub in range(wf.time_osr):
        for freq_sub in range(wf.freq_osr):
            scores, times = sync_score_grid(wf, time_sub, freq_sub)
            if scores.size == 0:
                continue
            ti, fi = np.nonzero(scores >= min_score)
            for t_idx, f_idx in zip(ti.tolist(), fi.tolist()):
                cand = Candidate(
                    score=int(scores[t_idx, f_idx]),
                    time_offset=times.start + t_idx,
                    freq_offset=f_idx,
                    time_sub=time_sub,
                    freq_sub=freq_sub,
                )
                # min-heap: the weakest, latest, highest candidate sits on top
                key = (cand.score, -cand.time_offset, -cand.time_sub, -cand.freq_offset, -cand.freq_sub)
                if len(heap) < max_candidates:
                    heapq.heappush(heap, (key, cand))
                elif heap and key > heap[0][0]:
                    heapq.heapreplace(heap, (key, cand))

    candidates = sorted((c for _key, c in heap), key=Candidate.sort_key)
    logger.debug("found %d candidates (min_score=%d, max=%d)", len(candidates), min_score, max_candidates)
    return candidates
