# Public API
from .api import (
    EncodedMessage,
    EncoderConfig,
    decode_wav,
    encode,
    encode_to_audio,
    float32_to_pcm16,
    load_wav,
    pcm16_to_float32,
    save_wav,
)
from .callsign_hash import CallsignHashTable
from .constants import Protocol, get_protocol_constants
from .decoder import DecodeError, DecodeStatus, DecodedMessage, DecoderConfig, decode_candidate, decode_samples
from .message import (
    decode_message,
    encode_message,
    get_message_type,
    is_valid_message,
    parse_standard_message,
)
from .payload import EncodeErrorKind, MessageEncodeError, MessageType, Payload77, message_type
from .waterfall import Waterfall, WaterfallConfig

__all__ = [
    "CallsignHashTable",
    "DecodeError",
    "DecodeStatus",
    "DecodedMessage",
    "DecoderConfig",
    "EncodeErrorKind",
    "EncodedMessage",
    "EncoderConfig",
    "MessageEncodeError",
    "MessageType",
    "Payload77",
    "Protocol",
    "Waterfall",
    "WaterfallConfig",
    "decode_candidate",
    "decode_message",
    "decode_samples",
    "decode_wav",
    "encode",
    "encode_message",
    "encode_to_audio",
    "float32_to_pcm16",
    "get_message_type",
    "get_protocol_constants",
    "is_valid_message",
    "load_wav",
    "message_type",
    "parse_standard_message",
    "pcm16_to_float32",
    "save_wav",
]
