from __future__ import annotations

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray
from scipy.signal import get_window

from .constants import Protocol, ProtocolParams, protocol_params

# 0..240 covers -120..0 dB in 0.5 dB steps
_DB_OFFSET = 240.0


@dataclass(frozen=True)
class WaterfallConfig:
    protocol: Protocol = Protocol.FT8
    sample_rate: float = 12000
    f_min: float = 200.0
    f_max: float = 3000.0
    time_osr: int = 2
    freq_osr: int = 2

    def __post_init__(self) -> None:
        object.__setattr__(self, "protocol", protocol_params(self.protocol).protocol)
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if self.time_osr < 1 or self.freq_osr < 1:
            raise ValueError("time_osr and freq_osr must be >= 1")
        if not 0 <= self.f_min < self.f_max < self.sample_rate / 2:
            raise ValueError("need 0 <= f_min < f_max < sample_rate/2")

    @property
    def params(self) -> ProtocolParams:
        return protocol_params(self.protocol)


class Waterfall:
    """
    Incremental magnitude spectrogram of one receive slot.

    Each call to `process` consumes one symbol period of audio (block_size
    samples) and fills one time block with time_osr sub-columns; every
    sub-column shifts the analysis frame by block_size/time_osr samples and
    takes a Hann-windowed real FFT of length block_size*freq_osr. Only bins
    min_bin..max_bin-1 (in tone-spacing units) are kept, each with freq_osr
    sub-bin phases.

    mag is indexed [block, bin, time_sub, freq_sub] and holds
    clip(round(2*dB + 240), 0, 255). Blocks below num_blocks are final.
    """

    def __init__(self, config: WaterfallConfig | None = None) -> None:
        self.config = config if config is not None else WaterfallConfig()
        params = self.config.params
        self.params = params
        self.symbol_period = params.symbol_period_s
        self.time_osr = self.config.time_osr
        self.freq_osr = self.config.freq_osr
        self.block_size = int(round(self.config.sample_rate * self.symbol_period))
        self.subblock_size = self.block_size // self.time_osr
        self.nfft = self.block_size * self.freq_osr
        fft_norm = 2.0 / self.nfft
        self.window = get_window("hann", self.nfft, fftbins=True).astype(np.float64) * fft_norm
        self.min_bin = int(self.config.f_min * self.symbol_period)
        self.max_bin = int(self.config.f_max * self.symbol_period) + 1
        self.num_bins = self.max_bin - self.min_bin
        self.max_blocks = int(params.slot_time_s / self.symbol_period)
        # Hz per stored bin (one tone spacing when block_size is exact)
        self.bin_spacing = self.config.sample_rate / self.nfft * self.freq_osr
        self.mag = np.zeros((self.max_blocks, self.num_bins, self.time_osr, self.freq_osr), dtype=np.uint8)
        self._src_bins = [
            np.arange(self.min_bin, self.max_bin) * self.freq_osr + fs for fs in range(self.freq_osr)
        ]
        self.reset()

    def reset(self) -> None:
        """Forget all audio; the waterfall can be reused for the next slot."""
        self.num_blocks = 0
        self.max_mag = -120.0
        self.mag[...] = 0
        self._last_frame = np.zeros(self.nfft, dtype=np.float64)
        self._pending = np.zeros(0, dtype=np.float64)

    @property
    def is_full(self) -> bool:
        return self.num_blocks >= self.max_blocks

    def process(self, frame: NDArray[np.floating]) -> bool:
        """Add one block of audio. Returns False (and ignores the frame) once the waterfall is full."""
        x = np.asarray(frame, dtype=np.float64)
        if x.shape != (self.block_size,):
            raise ValueError(f"frame must have shape ({self.block_size},), got {x.shape}")
        if self.is_full:
            return False

        block = self.num_blocks
        frame_pos = 0
        for time_sub in range(self.time_osr):
            step = self.subblock_size
            self._last_frame = np.concatenate([self._last_frame[step:], x[frame_pos:frame_pos + step]])
            frame_pos += step
            spectrum = np.fft.rfft(self._last_frame * self.window)
            for freq_sub in range(self.freq_osr):
                X = spectrum[self._src_bins[freq_sub]]
                db = 10.0 * np.log10(1e-12 + (X.real * X.real + X.imag * X.imag))
                scaled = np.clip(np.round(2.0 * db + _DB_OFFSET), 0, 255)
                self.mag[block, :, time_sub, freq_sub] = scaled.astype(np.uint8)
                peak = float(np.max(db)) if db.size else self.max_mag
                if peak > self.max_mag:
                    self.max_mag = peak
        self.num_blocks += 1
        return True

    def feed(self, samples: NDArray[np.floating]) -> int:
        """Buffer arbitrary-length audio and process every complete block. Returns blocks added."""
        x = np.asarray(samples, dtype=np.float64).ravel()
        buf = np.concatenate([self._pending, x]) if self._pending.size else x
        added = 0
        pos = 0
        while pos + self.block_size <= buf.shape[0] and not self.is_full:
            self.process(buf[pos:pos + self.block_size])
            pos += self.block_size
            added += 1
        self._pending = buf[pos:].copy() if not self.is_full else np.zeros(0, dtype=np.float64)
        return added

    def flush(self) -> bool:
        """Zero-pad and process any buffered partial block."""
        if self._pending.size == 0 or self.is_full:
            return False
        frame = np.zeros(self.block_size, dtype=np.float64)
        frame[:self._pending.size] = self._pending
        self._pending = np.zeros(0, dtype=np.float64)
        return self.process(frame)

    def bins_to_hz(self, bin_offset: float) -> float:
        """Frequency of a position measured in bins from min_bin."""
        return (self.min_bin + bin_offset) * self.bin_spacing
