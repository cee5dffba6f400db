from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import List, Optional, Set, Tuple
import numpy as np
from numpy.typing import NDArray

from .callsign_hash import CallsignHashInterface
from .constants import LDPC_K, PAYLOAD_BITS, Protocol, protocol_params
from .crc import crc14, crc14_check, extract_crc
from .ldpc import BeliefPropagationConfig, bp_decode
from .message import decode_message
from .payload import MessageType, Payload77, message_type, pack_bits_msb_first
from .sync import Candidate, find_candidates
from .synth import scramble_payload
from .tones import extract_likelihood, normalize_llrs
from .waterfall import Waterfall, WaterfallConfig

logger = logging.getLogger(__name__)


class DecodeError(str, Enum):
    LDPC_FAIL = "LDPC_FAIL"
    CRC_MISMATCH = "CRC_MISMATCH"
    MESSAGE_UNPACK_FAIL = "MESSAGE_UNPACK_FAIL"


@dataclass(frozen=True)
class DecodeStatus:
    ldpc_errors: int
    ldpc_iterations: int
    crc_extracted: int
    crc_calculated: int
    freq_hz: float
    time_s: float
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class DecodedMessage:
    text: str
    payload: Payload77
    hash: int               # CRC-14 of the transmitted payload
    type: MessageType
    frequency_hz: float
    time_s: float
    score: int
    status: DecodeStatus


@dataclass(frozen=True)
class DecoderConfig:
    protocol: Protocol = Protocol.FT8
    min_score: int = 10
    max_candidates: int = 140
    max_ldpc_iterations: int = 25
    max_decoded_messages: int = 50
    freq_osr: int = 2
    time_osr: int = 2
    f_min: float = 200.0
    f_max: float = 3000.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "protocol", protocol_params(self.protocol).protocol)
        if self.max_candidates < 0 or self.max_decoded_messages < 0:
            raise ValueError("candidate and message limits must be non-negative")
        if self.max_ldpc_iterations < 0:
            raise ValueError("max_ldpc_iterations must be non-negative")

    def waterfall_config(self, sample_rate: float) -> WaterfallConfig:
        return WaterfallConfig(
            protocol=self.protocol,
            sample_rate=sample_rate,
            f_min=self.f_min,
            f_max=self.f_max,
            time_osr=self.time_osr,
            freq_osr=self.freq_osr,
        )


def candidate_frequency(wf: Waterfall, cand: Candidate) -> float:
    return wf.bins_to_hz(cand.freq_offset + cand.freq_sub / wf.freq_osr)


def candidate_time(wf: Waterfall, cand: Candidate) -> float:
    return (cand.time_offset + cand.time_sub / wf.time_osr) * wf.symbol_period


def decode_candidate(
    wf: Waterfall,
    cand: Candidate,
    max_iterations: int = 25,
    hash_table: Optional[CallsignHashInterface] = None,
) -> Tuple[Optional[DecodedMessage], DecodeStatus]:
    """
    Soft-demodulate one candidate and run LDPC, CRC and message unpacking.

    Returns (message, status); message is None when status.error is set.
    """
    freq_hz = candidate_frequency(wf, cand)
    time_s = candidate_time(wf, cand)

    llr = normalize_llrs(extract_likelihood(wf, cand))
    result = bp_decode(llr, BeliefPropagationConfig(max_iterations=max_iterations))

    a91_bits = result.bits[:LDPC_K]
    crc_extracted = extract_crc(pack_bits_msb_first(a91_bits))
    crc_calculated = crc14(a91_bits[:PAYLOAD_BITS])

    def status(error: Optional[DecodeError]) -> DecodeStatus:
        return DecodeStatus(
            ldpc_errors=result.errors,
            ldpc_iterations=result.iterations,
            crc_extracted=crc_extracted,
            crc_calculated=crc_calculated,
            freq_hz=freq_hz,
            time_s=time_s,
            error=error,
        )

    # the all-zero codeword satisfies every check but is never transmitted
    if result.errors > 0 or not result.bits[:PAYLOAD_BITS].any():
        return None, status(DecodeError.LDPC_FAIL)
    if not crc14_check(a91_bits):
        return None, status(DecodeError.CRC_MISMATCH)

    data = Payload77.from_bits(a91_bits).data
    if wf.params.protocol is Protocol.FT4:
        data = scramble_payload(data)
    payload = Payload77(data)
    text = decode_message(payload, hash_table)
    if not text:
        return None, status(DecodeError.MESSAGE_UNPACK_FAIL)

    st = status(None)
    msg = DecodedMessage(
        text=text,
        payload=payload,
        hash=crc_extracted,
        type=message_type(payload),
        frequency_hz=freq_hz,
        time_s=time_s,
        score=cand.score,
        status=st,
    )
    return msg, st


def decode_candidates(
    wf: Waterfall,
    candidates: List[Candidate],
    config: DecoderConfig,
    hash_table: Optional[CallsignHashInterface] = None,
) -> List[DecodedMessage]:
    """Decode candidates in the given order, one message per distinct payload."""
    seen: Set[bytes] = set()
    messages: List[DecodedMessage] = []
    for cand in candidates:
        if len(messages) >= config.max_decoded_messages:
            break
        msg, st = decode_candidate(wf, cand, config.max_ldpc_iterations, hash_table)
        if msg is None:
            logger.debug(
                "candidate %s: %s (ldpc_errors=%d, crc %04x/%04x)",
                cand, st.error.value if st.error else "?", st.ldpc_errors, st.crc_extracted, st.crc_calculated,
            )
            continue
        if msg.payload.data in seen:
            continue
        seen.add(msg.payload.data)
        logger.debug("decoded %r at %.1f Hz, %.2f s, score %d", msg.text, msg.frequency_hz, msg.time_s, msg.score)
        messages.append(msg)
    return messages


def decode_waterfall(
    wf: Waterfall,
    config: DecoderConfig | None = None,
    hash_table: Optional[CallsignHashInterface] = None,
) -> List[DecodedMessage]:
    """Search a filled waterfall and decode its candidates best-first."""
    if config is None:
        config = DecoderConfig(protocol=wf.params.protocol)
    candidates = find_candidates(wf, config.min_score, config.max_candidates)
    return decode_candidates(wf, candidates, config, hash_table)


def build_waterfall(samples: NDArray[np.floating], sample_rate: float, config: DecoderConfig) -> Waterfall:
    """Feed one slot of mono audio through a new waterfall."""
    x = np.asarray(samples, dtype=np.float64)
    if x.ndim != 1:
        raise ValueError("samples must be a 1-D mono signal")
    wf = Waterfall(config.waterfall_config(sample_rate))
    wf.feed(x)
    wf.flush()
    logger.debug("waterfall filled: %d/%d blocks, peak %.1f dB", wf.num_blocks, wf.max_blocks, wf.max_mag)
    return wf


def decode_samples(
    samples: NDArray[np.floating],
    sample_rate: float,
    config: DecoderConfig | None = None,
    hash_table: Optional[CallsignHashInterface] = None,
) -> List[DecodedMessage]:
    """Decode every message in one slot of mono audio."""
    if config is None:
        config = DecoderConfig()
    return decode_waterfall(build_waterfall(samples, sample_rate, config), config, hash_table)
