import numpy as np
import pytest

from ftxmodem.waterfall import Waterfall, WaterfallConfig


def test_geometry_ft8():
    wf = Waterfall(WaterfallConfig())
    assert wf.block_size == 1920
    assert wf.subblock_size == 960
    assert wf.nfft == 3840
    assert wf.min_bin == 32
    assert wf.max_blocks == 93
    assert wf.bin_spacing == pytest.approx(6.25)
    assert wf.mag.shape == (93, wf.num_bins, 2, 2)
    assert wf.mag.dtype == np.uint8


def test_geometry_ft4():
    wf = Waterfall(WaterfallConfig(protocol="FT4"))
    assert wf.block_size == 576
    assert wf.nfft == 1152
    assert wf.max_blocks == 156
    assert wf.bin_spacing == pytest.approx(12000 / 576)


def test_config_validation():
    with pytest.raises(ValueError):
        WaterfallConfig(time_osr=0)
    with pytest.raises(ValueError):
        WaterfallConfig(f_min=3000.0, f_max=200.0)
    with pytest.raises(ValueError):
        WaterfallConfig(sample_rate=4000, f_max=3000.0)


def test_feed_in_chunks_matches_single_feed():
    rng = np.random.default_rng(5)
    x = rng.normal(0.0, 0.1, size=12000 * 3)
    a = Waterfall()
    a.feed(x)
    b = Waterfall()
    added = 0
    for start in range(0, x.size, 1000):
        added += b.feed(x[start:start + 1000])
    assert added == a.num_blocks == x.size // 1920
    assert np.array_equal(a.mag, b.mag)
    assert a.flush() and b.flush()
    assert np.array_equal(a.mag, b.mag)
    assert a.num_blocks == x.size // 1920 + 1


def test_process_limits():
    wf = Waterfall()
    with pytest.raises(ValueError):
        wf.process(np.zeros(100))
    wf.feed(np.zeros(12000 * 16))
    assert wf.is_full
    assert wf.num_blocks == wf.max_blocks
    assert wf.process(np.zeros(wf.block_size)) is False
    assert not wf.flush()
    wf.reset()
    assert wf.num_blocks == 0
    assert not wf.mag.any()


def test_tone_lands_in_expected_bin():
    sr = 12000
    t = np.arange(sr * 2) / sr
    x = 0.5 * np.sin(2 * np.pi * 1000.0 * t)
    wf = Waterfall()
    wf.feed(x)
    col = wf.mag[5, :, 0, 0]
    peak = int(np.argmax(col))
    assert wf.bins_to_hz(peak) == pytest.approx(1000.0)
    assert wf.max_mag > -20.0
