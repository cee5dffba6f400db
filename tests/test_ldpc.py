import numpy as np
import pytest

from ftxmodem.crc import add_crc
from ftxmodem.ldpc import BeliefPropagationConfig, bp_decode
from ftxmodem.ldpc_encode import encode174_bits, get_parity_check_matrix, parity_errors


def _random_codeword(rng):
    data = np.packbits(np.concatenate([rng.integers(0, 2, size=77, dtype=np.uint8), np.zeros(3, dtype=np.uint8)]))
    a91 = add_crc(data.tobytes())
    bits = np.unpackbits(np.frombuffer(a91, dtype=np.uint8))[:91]
    return encode174_bits(bits)


def test_encoded_codewords_satisfy_parity():
    rng = np.random.default_rng(1)
    H = get_parity_check_matrix()
    assert H.shape == (83, 174)
    for _ in range(10):
        cw = _random_codeword(rng)
        assert cw.shape == (174,)
        assert parity_errors(cw) == 0
        assert not np.any((H.astype(np.int64) @ cw) % 2)


def test_single_flip_breaks_parity():
    cw = _random_codeword(np.random.default_rng(2))
    cw[100] ^= 1
    assert parity_errors(cw) > 0


def test_bp_clean_llrs_returns_immediately():
    cw = _random_codeword(np.random.default_rng(3))
    llr = (1.0 - 2.0 * cw.astype(np.float64)) * 4.0
    res = bp_decode(llr)
    assert res.errors == 0
    assert res.iterations == 0
    assert np.array_equal(res.bits, cw)


def test_bp_corrects_weak_errors():
    rng = np.random.default_rng(4)
    cw = _random_codeword(rng)
    llr = (1.0 - 2.0 * cw.astype(np.float64)) * 4.0
    flips = rng.choice(174, size=5, replace=False)
    llr[flips] = -0.5 * np.sign(llr[flips])
    res = bp_decode(llr, BeliefPropagationConfig(max_iterations=25))
    assert res.errors == 0
    assert res.iterations >= 1
    assert np.array_equal(res.bits, cw)


def test_bp_rejects_bad_shape():
    with pytest.raises(ValueError):
        bp_decode(np.zeros(100))
    with pytest.raises(ValueError):
        BeliefPropagationConfig(max_iterations=-1)
