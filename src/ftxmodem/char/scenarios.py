from __future__ import annotations

from pathlib import Path
import json


def get_default_scenarios() -> dict:
    return {
        "awgn_snr_sweep": {
            "protocol": "FT8",
            "sr": 12000.0,
            "base_freq_hz": 1500.0,
            "snr_db": [-30, -28, -26, -24, -22, -20],
            "trials": 10,
            "seed": 123,
        },
        "freq_sweep": {
            "protocol": "FT8",
            "sr": 12000.0,
            "base_freq_hz": 1500.0,
            "offset_hz": [0.0, 0.8, 1.6, 2.4, 3.2, 4.0, 4.8, 5.6],
            "snr_db": -22,
            "trials": 5,
            "seed": 321,
        },
        "occupancy": {
            "protocol": "FT8",
            "sr": 12000.0,
            "num_sigs": [5, 10, 20, 40],
            "snr_db": -12,
            "max_dt_s": 0.5,
            "K_eval": 140,
            "seed": 1234,
        },
        "llr_quality": {
            "protocol": "FT8",
            "sr": 12000.0,
            "base_freq_hz": 1500.0,
            "snr_db": [-26, -22, -18, -14],
            "trials": 5,
            "seed": 42,
        },
        "end_to_end": {
            "protocol": "FT8",
            "sr": 12000.0,
            "base_freq_hz": 1500.0,
            "snr_db": [-24, -20, -16],
            "trials": 5,
            "seed": 7,
        },
    }


def load_scenarios(path: str | Path) -> dict:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))
    with p.open("r", encoding="utf-8") as f:
        data = json.load(f)
    return data
