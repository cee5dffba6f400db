from __future__ import annotations

import numpy as np
from typing import Iterable, Sequence


def recall_at_k(truth_values: Iterable[float], candidate_scores: Sequence[tuple[float, float]], tol: float) -> float:
	"""Fraction of truth values with at least one candidate within tol.

	- truth_values: ground-truth values (e.g., carrier frequencies in Hz)
	- candidate_scores: (value, score) pairs, best first
	- tol: absolute tolerance in the units of value
	"""
	truths = list(truth_values)
	if not truths or not candidate_scores:
		return 0.0
	cvals = [v for (v, _s) in candidate_scores]
	hits = 0
	for t in truths:
		hits += 1 if any(abs(cv - t) <= tol for cv in cvals) else 0
	return float(hits) / float(len(truths))


def precision_fp_at_k(truth_values: Iterable[float], candidate_scores: Sequence[tuple[float, float]], tol: float) -> tuple[float, int]:
	"""Return (precision, false_positives) over all candidates given; each truth matches once."""
	K = len(candidate_scores)
	if K == 0:
		return 0.0, 0
	truths = list(truth_values)
	matched = [False] * len(truths)
	tp = 0
	for cv, _s in candidate_scores:
		for i, t in enumerate(truths):
			if not matched[i] and abs(cv - t) <= tol:
				matched[i] = True
				tp += 1
				break
	return float(tp) / float(K), K - tp


def text_recall(truth_texts: Iterable[str], decoded_texts: Iterable[str]) -> tuple[float, int]:
	"""Return (recall, false_decodes) comparing message texts as sets."""
	truths = set(truth_texts)
	decoded = set(decoded_texts)
	if not truths:
		return 0.0, len(decoded)
	return float(len(truths & decoded)) / float(len(truths)), len(decoded - truths)


def rmse(errors: Iterable[float]) -> float:
	arr = np.array(list(errors), dtype=np.float64)
	if arr.size == 0:
		return 0.0
	return float(np.sqrt(np.mean(arr * arr)))


def bit_mutual_information(llrs: np.ndarray, bits: np.ndarray) -> float:
	"""Estimate bit mutual information from LLRs (positive favours 0) and true bits.

	BMI ~ 1 - mean(log2(1 + exp(-(1 - 2 b) * L)))
	"""
	if llrs.size == 0 or bits.size == 0:
		return 0.0
	s = 1.0 - 2.0 * bits.astype(np.float64)
	z = np.logaddexp(0.0, -(s * llrs.astype(np.float64))) / np.log(2.0)
	return float(1.0 - np.mean(z))


def llr_separation(llrs: np.ndarray, bits: np.ndarray) -> float:
	"""Mean signed LLR; positive when the LLR signs agree with the true bits."""
	if llrs.size == 0 or bits.size == 0:
		return 0.0
	signs = 1.0 - 2.0 * bits.astype(np.float64)
	return float(np.mean(signs * llrs.astype(np.float64)))
