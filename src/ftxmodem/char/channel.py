from __future__ import annotations

from typing import Optional, Sequence
import numpy as np

# bandwidth that FT8/FT4 signal-to-noise ratios are quoted in
REFERENCE_BANDWIDTH_HZ = 2500.0


def _peak_normalized(y: np.ndarray) -> np.ndarray:
	peak = float(np.max(np.abs(y))) if y.size else 0.0
	if np.isfinite(peak) and peak > 1e-12:
		y = y / peak
	return y.astype(np.float32)


def apply_awgn(
	x: np.ndarray,
	snr_db: float,
	rng: np.random.Generator,
	sample_rate_hz: Optional[float] = None,
) -> np.ndarray:
	"""Add white Gaussian noise and peak-normalize the result to float32.

	Without sample_rate_hz, snr_db is the mean power of the whole array over the
	noise power, so the silence around a transmission lowers the effective SNR.

	With sample_rate_hz, snr_db is quoted the way FT8 reports it: the power of the
	transmission alone (its non-zero samples) over the noise power falling in a
	2500 Hz bandwidth. White noise spreads over sample_rate_hz / 2, so its total
	power is larger by sample_rate_hz / (2 * 2500).
	"""
	xp = np.asarray(x, dtype=np.float64)
	if sample_rate_hz is None:
		active = xp
		spread = 1.0
	else:
		active = xp[xp != 0.0]
		spread = 0.5 * float(sample_rate_hz) / REFERENCE_BANDWIDTH_HZ
	p_sig = float(np.mean(active * active)) if active.size else 0.0
	if not np.isfinite(p_sig) or p_sig <= 0.0:
		p_sig = 1.0
	sigma = np.sqrt(spread * p_sig / (10.0 ** (snr_db / 10.0)))
	return _peak_normalized(xp + rng.normal(0.0, sigma, size=xp.shape))


def mix_signals(
	signals: Sequence[np.ndarray],
	gains_db: Sequence[float],
	offsets: Optional[Sequence[int]] = None,
) -> np.ndarray:
	"""Sum signals, each scaled by its gain in dB and delayed by its offset in samples.

	The output is long enough to hold every delayed signal and is peak-normalized.
	"""
	if len(gains_db) != len(signals):
		raise ValueError("need one gain per signal")
	if offsets is None:
		offsets = [0] * len(signals)
	elif len(offsets) != len(signals):
		raise ValueError("need one offset per signal")
	if any(int(o) < 0 for o in offsets):
		raise ValueError("offsets must be non-negative")
	if not signals:
		return np.zeros(0, dtype=np.float32)

	length = max(int(o) + int(s.size) for s, o in zip(signals, offsets))
	acc = np.zeros(length, dtype=np.float64)
	for s, gdb, off in zip(signals, gains_db, offsets):
		start = int(off)
		acc[start:start + s.size] += 10.0 ** (float(gdb) / 20.0) * np.asarray(s, dtype=np.float64)
	return _peak_normalized(acc)
