import numpy as np
import pytest

from ftxmodem.char.channel import apply_awgn, mix_signals
from ftxmodem.char.metrics import (
	bit_mutual_information,
	llr_separation,
	precision_fp_at_k,
	recall_at_k,
	rmse,
	text_recall,
)


def test_awgn_is_seeded_and_normalized():
	x = np.sin(np.linspace(0.0, 100.0, 5000)).astype(np.float32)
	a = apply_awgn(x, -5.0, np.random.default_rng(1))
	b = apply_awgn(x, -5.0, np.random.default_rng(1))
	assert np.array_equal(a, b)
	assert a.dtype == np.float32
	assert float(np.max(np.abs(a))) == pytest.approx(1.0)


def test_awgn_reference_bandwidth():
	x = np.full(200000, 0.5, dtype=np.float32)
	y = apply_awgn(x, 0.0, np.random.default_rng(3))
	assert float(np.mean(y) / np.std(y)) == pytest.approx(1.0, rel=0.03)
	# 12 kHz sampling spreads the noise over 6000 Hz, 2.4 times the 2500 Hz reference
	y = apply_awgn(x, 0.0, np.random.default_rng(3), 12000.0)
	assert float(np.mean(y) / np.std(y)) == pytest.approx(1.0 / np.sqrt(2.4), rel=0.03)
	# leading silence does not count towards the signal power
	padded = np.concatenate([np.zeros(200000, dtype=np.float32), x])
	y = apply_awgn(padded, 0.0, np.random.default_rng(3), 12000.0)
	assert float(np.mean(y[200000:]) / np.std(y[:200000])) == pytest.approx(1.0 / np.sqrt(2.4), rel=0.03)


def test_mix_signals_pads_and_normalizes():
	a = np.ones(10, dtype=np.float32)
	b = np.ones(5, dtype=np.float32)
	y = mix_signals([a, b], [0.0, -6.0])
	assert y.shape == (10,)
	assert float(np.max(np.abs(y))) == pytest.approx(1.0)
	assert y[0] > y[9]
	with pytest.raises(ValueError):
		mix_signals([a, b], [0.0])


def test_mix_signals_delays():
	a = np.ones(4, dtype=np.float32)
	y = mix_signals([a, 2.0 * a], [0.0, 0.0], [0, 6])
	assert y.shape == (10,)
	assert np.allclose(y, [0.5] * 4 + [0.0] * 2 + [1.0] * 4)
	with pytest.raises(ValueError):
		mix_signals([a, a], [0.0, 0.0], [0])
	with pytest.raises(ValueError):
		mix_signals([a, a], [0.0, 0.0], [0, -1])


def test_recall_and_precision():
	truth = [1000.0, 1500.0, 2000.0]
	cands = [(1001.0, 30.0), (1499.0, 20.0), (2500.0, 15.0), (1000.5, 12.0)]
	assert recall_at_k(truth, cands, tol=3.0) == pytest.approx(2.0 / 3.0)
	prec, fp = precision_fp_at_k(truth, cands, tol=3.0)
	assert prec == pytest.approx(0.5)
	assert fp == 2
	assert recall_at_k(truth, [], tol=3.0) == 0.0


def test_text_recall():
	recall, false_decodes = text_recall(["A", "B"], ["B", "C"])
	assert recall == pytest.approx(0.5)
	assert false_decodes == 1


def test_llr_quality_metrics():
	bits = np.array([0, 1, 0, 1], dtype=np.uint8)
	good = np.array([20.0, -20.0, 20.0, -20.0])
	assert bit_mutual_information(good, bits) == pytest.approx(1.0, abs=1e-6)
	assert bit_mutual_information(np.zeros(4), bits) == pytest.approx(0.0)
	assert llr_separation(good, bits) == pytest.approx(20.0)
	assert llr_separation(-good, bits) == pytest.approx(-20.0)
	assert rmse([3.0, -4.0]) == pytest.approx(np.sqrt(12.5))
