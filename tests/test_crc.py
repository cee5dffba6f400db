import numpy as np

from ftxmodem.crc import add_crc, append_crc, compute_crc, crc14, crc14_check, extract_crc
from ftxmodem.payload import Payload77


def test_crc14_roundtrip():
    payload = np.zeros(77, dtype=np.uint8)
    c = crc14(payload)
    bits = np.concatenate([payload, np.array([(c >> i) & 1 for i in range(13, -1, -1)], dtype=np.uint8)])
    assert crc14_check(bits)


def test_crc14_variation():
    # Randomized patterns to ensure roundtrip across a variety of payloads
    rng = np.random.default_rng(123)
    for _ in range(20):
        payload = rng.integers(0, 2, size=77, dtype=np.uint8)
        bits = append_crc(payload)
        assert bits.shape == (91,)
        assert crc14_check(bits)
        # Flip a bit to ensure failure
        bits = bits.copy()
        bits[0] ^= 1
        assert not crc14_check(bits)


def test_byte_and_bit_crc_agree():
    rng = np.random.default_rng(7)
    for _ in range(10):
        payload = Payload77.from_bits(rng.integers(0, 2, size=77, dtype=np.uint8))
        a91 = add_crc(payload.data)
        assert len(a91) == 12
        assert extract_crc(a91) == crc14(payload.bits())
        # payload bits are untouched by the CRC insertion
        assert a91[:9] == payload.data[:9]
        assert a91[9] & 0xF8 == payload.data[9]


def test_byte_crc_over_padded_payload():
    payload = Payload77(bytes(range(1, 11)))
    crc = compute_crc(payload.data + bytes(2), 82)
    assert 0 <= crc < (1 << 14)
    assert crc == crc14(payload.bits())


def test_short_input_fails_check():
    assert not crc14_check(np.zeros(50, dtype=np.uint8))
