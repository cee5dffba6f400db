"""
Text <-> 77-bit payload codec.

Encoding is a syntactic cascade over the message layouts, most specific
first; the first packer that accepts the words wins. Decoding dispatches on
the i3/n3 fields and never raises: payloads with no valid reading render as
the empty string.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from .callsign_hash import CallsignHashInterface
from .ft8pack import (
    pack_dxpedition,
    pack_eu_vhf,
    pack_field_day,
    pack_free_text,
    pack_nonstd,
    pack_rtty,
    pack_standard,
    pack_telemetry,
    pack_wwrof,
    split_standard,
)
from .message_decode import unpack_message
from .payload import (
    EncodeErrorKind,
    MessageEncodeError,
    MessageType,
    Payload77,
    message_type,
)

logger = logging.getLogger(__name__)

__all__ = [
    "EncodeErrorKind",
    "MessageEncodeError",
    "MessageType",
    "Payload77",
    "decode_message",
    "encode_message",
    "get_message_type",
    "is_valid_message",
    "message_type",
    "normalize_message_text",
    "parse_standard_message",
]

_Packer = Callable[[str, List[str], Optional[CallsignHashInterface]], int]

_CASCADE: Tuple[Tuple[str, _Packer], ...] = (
    ("standard", lambda text, words, h: pack_standard(words, h)),
    ("dxpedition", lambda text, words, h: pack_dxpedition(words, h)),
    ("field day", lambda text, words, h: pack_field_day(words, h)),
    ("rtty", lambda text, words, h: pack_rtty(words, h)),
    ("eu vhf", lambda text, words, h: pack_eu_vhf(words, h)),
    ("eu vhf hashed", lambda text, words, h: pack_wwrof(words, h)),
    ("non-standard call", lambda text, words, h: pack_nonstd(words, h)),
    ("free text", lambda text, words, h: pack_free_text(text)),
    ("telemetry", lambda text, words, h: pack_telemetry(text)),
)


def normalize_message_text(text: str) -> str:
    """Upper-case, collapse whitespace and reduce a leading "CQ CQ" to "CQ"."""
    words = text.upper().split()
    while len(words) >= 2 and words[0] == "CQ" and words[1] == "CQ":
        words.pop(0)
    return " ".join(words)


def encode_message(text: str, hash_table: Optional[CallsignHashInterface] = None) -> Payload77:
    """
    Pack message text into a 77-bit payload.

    Callsigns that take part in hashed fields are saved into `hash_table`
    (pass None to skip). Raises MessageEncodeError when no layout accepts the
    text; its `kind` is the failure reported by the standard-message packer
    when the text has that shape, TYPE otherwise.
    """
    norm = normalize_message_text(text)
    if not norm:
        raise MessageEncodeError(EncodeErrorKind.TYPE, "empty message")
    words = norm.split(" ")

    first_error: Optional[MessageEncodeError] = None
    for name, packer in _CASCADE:
        try:
            value = packer(norm, words, hash_table)
        except MessageEncodeError as exc:
            if first_error is None:
                first_error = exc
            continue
        payload = Payload77.from_int(value)
        logger.debug("encoded %r as %s (%s)", norm, name, payload.hex())
        return payload

    assert first_error is not None
    logger.debug("cannot encode %r: %s", norm, first_error)
    raise first_error


def decode_message(payload: Payload77, hash_table: Optional[CallsignHashInterface] = None) -> str:
    """Unpack a payload to text; "" when the payload has no valid reading."""
    return unpack_message(payload, hash_table)


def is_valid_message(text: str) -> bool:
    try:
        encode_message(text, None)
    except MessageEncodeError:
        return False
    return True


def get_message_type(text: str) -> MessageType:
    """Message type the text would be sent as, UNKNOWN if it cannot be encoded."""
    try:
        payload = encode_message(text, None)
    except MessageEncodeError:
        return MessageType.UNKNOWN
    return message_type(payload)


def parse_standard_message(text: str) -> Optional[Tuple[str, str, str]]:
    """Return (call_to, call_de, extra) for text that encodes as a standard message."""
    if get_message_type(text) is not MessageType.STANDARD:
        return None
    return split_standard(normalize_message_text(text).split(" "))
