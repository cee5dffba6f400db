from __future__ import annotations

import time
from typing import List, Optional
import numpy as np

from ftxmodem.callsign_hash import CallsignHashInterface
from ftxmodem.constants import Protocol
from ftxmodem.decoder import DecodedMessage, DecoderConfig, build_waterfall, decode_candidates, decode_samples
from ftxmodem.sync import find_candidates


def run_decoder(slot: np.ndarray, sample_rate_hz: float, protocol: Protocol | str = Protocol.FT8) -> List[DecodedMessage]:
	return decode_samples(slot, sample_rate_hz, DecoderConfig(protocol=protocol))


def decode_with_stage_times(
	samples: np.ndarray,
	sample_rate_hz: float,
	protocol: Protocol | str = Protocol.FT8,
	config: Optional[DecoderConfig] = None,
	hash_table: Optional[CallsignHashInterface] = None,
) -> dict:
	"""Run a single-slot decode with waterfall -> sync -> demod/LDPC/unpack stage timing.

	Each stage is the decoder's own step, so the messages match decode_samples.
	Returns dict with timings in ms, the candidate count and the decoded texts.
	"""
	if config is None:
		config = DecoderConfig(protocol=protocol)
	out: dict = {"waterfall_ms": 0.0, "sync_ms": 0.0, "decode_ms": 0.0, "candidates": 0, "decoded": 0, "texts": []}

	t0 = time.perf_counter()
	wf = build_waterfall(samples, sample_rate_hz, config)
	out["waterfall_ms"] = (time.perf_counter() - t0) * 1000.0

	t0 = time.perf_counter()
	cands = find_candidates(wf, config.min_score, config.max_candidates)
	out["sync_ms"] = (time.perf_counter() - t0) * 1000.0
	out["candidates"] = len(cands)

	t0 = time.perf_counter()
	messages = decode_candidates(wf, cands, config, hash_table)
	out["decode_ms"] = (time.perf_counter() - t0) * 1000.0
	out["decoded"] = len(messages)
	out["texts"] = [m.text for m in messages]
	return out
