from __future__ import annotations

from dataclasses import dataclass
import os
from typing import IO, List, Optional, Tuple, Union
import numpy as np
from numpy.typing import NDArray
import soundfile as sf

from .callsign_hash import CallsignHashInterface
from .constants import Protocol, protocol_params
from .crc import add_crc, extract_crc
from .decoder import DecodedMessage, DecoderConfig, decode_samples
from .message import encode_message, normalize_message_text
from .payload import Payload77
from .synth import encode_tones, scramble_payload, synthesize_slot

PathOrFile = Union[str, "os.PathLike[str]", IO[bytes]]


@dataclass(frozen=True)
class EncoderConfig:
    protocol: Protocol = Protocol.FT8
    frequency: float = 1000.0
    sample_rate: float = 12000
    symbol_bt: Optional[float] = None   # None: protocol default

    def __post_init__(self) -> None:
        object.__setattr__(self, "protocol", protocol_params(self.protocol).protocol)
        if self.sample_rate <= 0:
            raise ValueError("sample_rate must be positive")
        if not 0 < self.frequency < self.sample_rate / 2:
            raise ValueError("frequency must lie between 0 and sample_rate/2")
        if self.symbol_bt is not None and self.symbol_bt <= 0:
            raise ValueError("symbol_bt must be positive")


@dataclass(frozen=True)
class EncodedMessage:
    text: str
    payload: Payload77
    tones: NDArray[np.int32]
    hash: int
    protocol: Protocol


def encode(
    text: str,
    protocol: Protocol | str = Protocol.FT8,
    hash_table: Optional[CallsignHashInterface] = None,
) -> EncodedMessage:
    """Pack text and produce its channel tones. Raises MessageEncodeError."""
    params = protocol_params(protocol)
    payload = encode_message(text, hash_table)
    data = payload.data
    if params.protocol is Protocol.FT4:
        data = scramble_payload(data)
    return EncodedMessage(
        text=normalize_message_text(text),
        payload=payload,
        tones=encode_tones(payload, params.protocol),
        hash=extract_crc(add_crc(data)),
        protocol=params.protocol,
    )


def encode_to_audio(
    text: str,
    config: EncoderConfig | None = None,
    hash_table: Optional[CallsignHashInterface] = None,
) -> NDArray[np.float32]:
    """One slot of audio (slot_time * sample_rate samples) carrying the message."""
    if config is None:
        config = EncoderConfig()
    msg = encode(text, config.protocol, hash_table)
    return synthesize_slot(msg.tones, config.frequency, config.sample_rate, config.protocol, config.symbol_bt)


def pcm16_to_float32(pcm: NDArray[np.int16]) -> NDArray[np.float32]:
    return (np.asarray(pcm, dtype=np.float32) / 32768.0).astype(np.float32)


def float32_to_pcm16(samples: NDArray[np.floating]) -> NDArray[np.int16]:
    x = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    return np.round(x * 32767.0).astype(np.int16)


def load_wav(path_or_file: PathOrFile) -> Tuple[NDArray[np.float32], int]:
    """
    Read a WAV file as mono float32 in [-1, 1].

    Accepts a filesystem path or a binary file-like object (e.g., io.BytesIO).
    Multichannel files yield their first channel.
    """
    samples, sample_rate = sf.read(path_or_file, dtype="float32", always_2d=True)
    return np.ascontiguousarray(samples[:, 0]), int(sample_rate)


def save_wav(path_or_file: PathOrFile, samples: NDArray[np.floating], sample_rate: int) -> None:
    """Write mono 16-bit PCM."""
    sf.write(path_or_file, float32_to_pcm16(samples), int(sample_rate), subtype="PCM_16", format="WAV")


def decode_wav(
    path_or_file: PathOrFile,
    config: DecoderConfig | None = None,
    hash_table: Optional[CallsignHashInterface] = None,
) -> List[DecodedMessage]:
    """Decode all signals in one slot recorded as a WAV file or file-like object."""
    samples, sample_rate = load_wav(path_or_file)
    return decode_samples(samples, float(sample_rate), config, hash_table)
