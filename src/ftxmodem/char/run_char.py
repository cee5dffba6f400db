from __future__ import annotations

import argparse
import csv
from pathlib import Path
import numpy as np

from ftxmodem.char.channel import apply_awgn, mix_signals
from ftxmodem.char.metrics import bit_mutual_information, llr_separation, precision_fp_at_k, recall_at_k, rmse, text_recall
from ftxmodem.char.runner import decode_with_stage_times, run_decoder
from ftxmodem.char.scenarios import get_default_scenarios, load_scenarios
from ftxmodem.char.synth_utils import make_clean_signal, make_codeword
from ftxmodem.decoder import DecoderConfig, build_waterfall, candidate_frequency
from ftxmodem.sync import find_candidates
from ftxmodem.tones import extract_likelihood, normalize_llrs

TEST_MESSAGE = "K1ABC W9XYZ FN20"


def ensure_dir(p: Path) -> None:
	p.mkdir(parents=True, exist_ok=True)


def write_rows(path: Path, rows: list) -> None:
	ensure_dir(path.parent)
	with path.open("w", newline="", encoding="utf-8") as f:
		w = csv.writer(f)
		w.writerows(rows)


def occupancy_messages(n: int) -> list[str]:
	"""n distinct standard CQ messages."""
	out = []
	for i in range(n):
		call = f"W{i % 10}{chr(ord('A') + (i // 10) % 26)}AA"
		out.append(f"CQ {call} FN{i % 100:02d}")
	return out


def run_awgn_snr_sweep(cfg: dict, outdir: Path) -> None:
	protocol = cfg.get("protocol", "FT8")
	sr = float(cfg.get("sr", 12000.0))
	base_freq_hz = float(cfg.get("base_freq_hz", 1500.0))
	snr_list = list(cfg.get("snr_db", [-30, -28, -26, -24, -22, -20]))
	trials = int(cfg.get("trials", 10))
	rng = np.random.default_rng(int(cfg.get("seed", 123)))

	x, _ = make_clean_signal(TEST_MESSAGE, sr, base_freq_hz, protocol)
	rows = [("snr_db", "trials", "decode_rate")]
	for snr_db in snr_list:
		ok = 0
		for _ in range(trials):
			y = apply_awgn(x, float(snr_db), rng, sr)
			res = run_decoder(y, sr, protocol)
			ok += 1 if any(m.text == TEST_MESSAGE for m in res) else 0
		rows.append((snr_db, trials, f"{ok / float(trials):.3f}"))
	write_rows(outdir / "awgn_snr_sweep.csv", rows)


def run_freq_sweep(cfg: dict, outdir: Path) -> None:
	protocol = cfg.get("protocol", "FT8")
	sr = float(cfg.get("sr", 12000.0))
	base_freq_hz = float(cfg.get("base_freq_hz", 1500.0))
	offsets = list(cfg.get("offset_hz", [0.0, 0.8, 1.6, 2.4, 3.2, 4.0, 4.8, 5.6]))
	snr_db = float(cfg.get("snr_db", -22))
	trials = int(cfg.get("trials", 5))
	rng = np.random.default_rng(int(cfg.get("seed", 321)))

	rows = [("offset_hz", "trials", "decode_rate", "freq_rmse_hz")]
	for df in offsets:
		f0 = base_freq_hz + float(df)
		x, _ = make_clean_signal(TEST_MESSAGE, sr, f0, protocol)
		ok = 0
		errors = []
		for _ in range(trials):
			y = apply_awgn(x, snr_db, rng, sr)
			for m in run_decoder(y, sr, protocol):
				if m.text == TEST_MESSAGE:
					ok += 1
					errors.append(m.frequency_hz - f0)
					break
		rows.append((df, trials, f"{ok / float(trials):.3f}", f"{rmse(errors):.3f}"))
	write_rows(outdir / "freq_sweep.csv", rows)


def run_occupancy(cfg: dict, outdir: Path) -> None:
	protocol = cfg.get("protocol", "FT8")
	sr = float(cfg.get("sr", 12000.0))
	snr_db = float(cfg.get("snr_db", -12))
	max_dt_s = float(cfg.get("max_dt_s", 0.5))
	K_eval = int(cfg.get("K_eval", 140))
	nsigs_list = list(cfg.get("num_sigs", [5, 10, 20, 40]))
	rng = np.random.default_rng(int(cfg.get("seed", 1234)))
	config = DecoderConfig(protocol=protocol, max_candidates=K_eval)

	rows = [("num_sigs", "snr_db", "K_eval", "cand_recall", "cand_precision", "cand_fp", "msg_recall", "false_decodes", "time_ms")]
	for num_sigs in nsigs_list:
		freqs = np.linspace(300.0, 2900.0, num_sigs, endpoint=False) + rng.uniform(-1.5, 1.5, size=num_sigs)
		texts = occupancy_messages(num_sigs)
		signals = [make_clean_signal(t, sr, float(f), protocol)[0] for t, f in zip(texts, freqs)]
		delays = rng.integers(0, int(max_dt_s * sr) + 1, size=num_sigs)
		mixed = mix_signals(signals, [0.0] * num_sigs, delays.tolist())[:signals[0].size]
		slot = apply_awgn(mixed, snr_db, rng, sr)

		wf = build_waterfall(slot, sr, config)
		cands = find_candidates(wf, config.min_score, K_eval)
		cand_vals = [(candidate_frequency(wf, c), float(c.score)) for c in cands]
		tol = wf.params.tone_spacing_hz
		prec, fp = precision_fp_at_k(freqs.tolist(), cand_vals, tol)
		recall = recall_at_k(freqs.tolist(), cand_vals, tol)

		stats = decode_with_stage_times(slot, sr, config=config)
		msg_recall, false_decodes = text_recall(texts, stats["texts"])
		total_ms = stats["waterfall_ms"] + stats["sync_ms"] + stats["decode_ms"]
		rows.append((num_sigs, snr_db, K_eval, f"{recall:.3f}", f"{prec:.3f}", fp, f"{msg_recall:.3f}", false_decodes, f"{total_ms:.1f}"))
	write_rows(outdir / "occupancy.csv", rows)


def run_llr_quality(cfg: dict, outdir: Path) -> None:
	protocol = cfg.get("protocol", "FT8")
	sr = float(cfg.get("sr", 12000.0))
	base_freq_hz = float(cfg.get("base_freq_hz", 1500.0))
	snr_list = list(cfg.get("snr_db", [-26, -22, -18, -14]))
	trials = int(cfg.get("trials", 5))
	rng = np.random.default_rng(int(cfg.get("seed", 42)))
	config = DecoderConfig(protocol=protocol)

	x, _ = make_clean_signal(TEST_MESSAGE, sr, base_freq_hz, protocol)
	truth_bits = make_codeword(TEST_MESSAGE, protocol)
	rows = [("snr_db", "trials", "bmi", "llr_separation")]
	for snr_db in snr_list:
		bmis = []
		seps = []
		for _ in range(trials):
			y = apply_awgn(x, float(snr_db), rng, sr)
			wf = build_waterfall(y, sr, config)
			cands = find_candidates(wf, config.min_score, config.max_candidates)
			if not cands:
				continue
			llrs = normalize_llrs(extract_likelihood(wf, cands[0]))
			bmis.append(bit_mutual_information(llrs, truth_bits))
			seps.append(llr_separation(llrs, truth_bits))
		bmi = float(np.mean(bmis)) if bmis else 0.0
		sep = float(np.mean(seps)) if seps else 0.0
		rows.append((snr_db, trials, f"{bmi:.3f}", f"{sep:.3f}"))
	write_rows(outdir / "llr_quality.csv", rows)


def run_end_to_end(cfg: dict, outdir: Path) -> None:
	protocol = cfg.get("protocol", "FT8")
	sr = float(cfg.get("sr", 12000.0))
	base_freq_hz = float(cfg.get("base_freq_hz", 1500.0))
	snr_list = list(cfg.get("snr_db", [-24, -20, -16]))
	trials = int(cfg.get("trials", 5))
	rng = np.random.default_rng(int(cfg.get("seed", 7)))

	x, _ = make_clean_signal(TEST_MESSAGE, sr, base_freq_hz, protocol)
	rows = [("snr_db", "decode_rate", "waterfall_ms", "sync_ms", "decode_ms", "candidates")]
	for snr_db in snr_list:
		ok = 0
		waterfall_ms = 0.0
		sync_ms = 0.0
		decode_ms = 0.0
		candidates = 0
		for _ in range(trials):
			y = apply_awgn(x, float(snr_db), rng, sr)
			stats = decode_with_stage_times(y, sr, protocol)
			waterfall_ms += stats["waterfall_ms"]
			sync_ms += stats["sync_ms"]
			decode_ms += stats["decode_ms"]
			candidates += stats["candidates"]
			ok += 1 if TEST_MESSAGE in stats["texts"] else 0
		rows.append((
			snr_db,
			f"{ok / float(trials):.3f}",
			f"{waterfall_ms / trials:.2f}",
			f"{sync_ms / trials:.2f}",
			f"{decode_ms / trials:.2f}",
			f"{candidates / trials:.1f}",
		))
	write_rows(outdir / "end_to_end.csv", rows)


SCENARIO_RUNNERS = {
	"awgn_snr_sweep": run_awgn_snr_sweep,
	"freq_sweep": run_freq_sweep,
	"occupancy": run_occupancy,
	"llr_quality": run_llr_quality,
	"end_to_end": run_end_to_end,
}


def main(argv: list[str] | None = None) -> None:
	parser = argparse.ArgumentParser(description="Run FT8/FT4 characterization scenarios")
	parser.add_argument("scenario", nargs="?", default="awgn_snr_sweep", help="Scenario name or 'list'")
	parser.add_argument("--config", default=None, help="Path to JSON with scenarios")
	parser.add_argument("--outdir", default="reports", help="Output directory for CSV files")
	parser.add_argument("--protocol", default=None, choices=["FT8", "FT4"], help="Override the scenario protocol")
	args = parser.parse_args(argv)

	scenarios = get_default_scenarios() if args.config is None else load_scenarios(args.config)

	if args.scenario == "list":
		print("Available scenarios:")
		for k in scenarios.keys():
			print(" -", k)
		return

	cfg = scenarios.get(args.scenario)
	if cfg is None:
		raise SystemExit(f"Unknown scenario: {args.scenario}")
	runner = SCENARIO_RUNNERS.get(args.scenario)
	if runner is None:
		raise SystemExit(f"Scenario not implemented: {args.scenario}")
	if args.protocol is not None:
		cfg = dict(cfg, protocol=args.protocol)
	runner(cfg, Path(args.outdir))


if __name__ == "__main__":
	main()
