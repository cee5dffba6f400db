# Expose key helpers for external import convenience
from .synth_utils import make_codeword, make_clean_signal
from .channel import apply_awgn, mix_signals
from .metrics import bit_mutual_information, recall_at_k, rmse, text_recall

__all__ = [
    "make_codeword",
    "make_clean_signal",
    "apply_awgn",
    "mix_signals",
    "recall_at_k",
    "rmse",
    "text_recall",
    "bit_mutual_information",
]
