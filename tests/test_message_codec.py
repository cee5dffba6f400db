import pytest

from ftxmodem.callsign_hash import CallsignHashTable
from ftxmodem.message import (
    decode_message,
    encode_message,
    get_message_type,
    is_valid_message,
    normalize_message_text,
    parse_standard_message,
)
from ftxmodem.ft8pack import pack_eu_vhf, pack_wwrof
from ftxmodem.payload import EncodeErrorKind, MessageEncodeError, MessageType, Payload77, field, message_type


@pytest.mark.parametrize(
    "text,mtype",
    [
        ("CQ K1ABC FN42", MessageType.STANDARD),
        ("K1ABC W9XYZ EN37", MessageType.STANDARD),
        ("W9XYZ K1ABC -11", MessageType.STANDARD),
        ("K1ABC W9XYZ R-09", MessageType.STANDARD),
        ("K1ABC W9XYZ +05", MessageType.STANDARD),
        ("K1ABC W9XYZ R+12", MessageType.STANDARD),
        ("K1ABC W9XYZ -50", MessageType.STANDARD),
        ("K1ABC W9XYZ +49", MessageType.STANDARD),
        ("K1ABC W9XYZ R FN42", MessageType.STANDARD),
        ("K1ABC W9XYZ RRR", MessageType.STANDARD),
        ("K1ABC W9XYZ RR73", MessageType.STANDARD),
        ("K1ABC W9XYZ 73", MessageType.STANDARD),
        ("K1ABC W9XYZ", MessageType.STANDARD),
        ("CQ DX K1ABC FN42", MessageType.STANDARD),
        ("CQ 123 K1ABC FN42", MessageType.STANDARD),
        ("QRZ K1ABC FN42", MessageType.STANDARD),
        ("K1ABC/R W9XYZ FN42", MessageType.STANDARD),
        ("K1ABC W9XYZ/P R-05", MessageType.STANDARD),
        ("3DA0XYZ K1ABC FN42", MessageType.STANDARD),
        ("3XA0XYZ K1ABC -03", MessageType.STANDARD),
        ("K1ABC W9XYZ 6A WI", MessageType.ARRL_FD),
        ("W9XYZ K1ABC R 17B EMA", MessageType.ARRL_FD),
        ("K1ABC W9XYZ 579 WI", MessageType.ARRL_RTTY),
        ("TU; K1ABC W9XYZ R 569 0013", MessageType.ARRL_RTTY),
        ("PA3XYZ/P R 590003 IO91NP", MessageType.EU_VHF),
        ("G4ABC 520012 JO01AB", MessageType.EU_VHF),
        ("G4ABC 524095 JO01AB", MessageType.EU_VHF),
        ("CQ PJ4/K1ABC", MessageType.NONSTD_CALL),
        ("123456789ABCDEF012", MessageType.TELEMETRY),
        ("1234567890ABCD", MessageType.TELEMETRY),
        ("TNX BOB 73 GL", MessageType.FREE_TEXT),
        ("HELLO WORLD", MessageType.FREE_TEXT),
    ],
)
def test_roundtrip_without_hashes(text, mtype):
    payload = encode_message(text)
    assert message_type(payload) is mtype
    assert decode_message(payload) == text
    assert get_message_type(text) is mtype


@pytest.mark.parametrize(
    "text,mtype",
    [
        ("<W9XYZ> PJ4/K1ABC RRR", MessageType.NONSTD_CALL),
        ("PJ4/K1ABC <W9XYZ> 73", MessageType.NONSTD_CALL),
        ("<PJ4/K1ABC> W9XYZ", MessageType.STANDARD),
        ("K1ABC RR73; W9XYZ <KH1/KH7Z> -08", MessageType.DXPEDITION),
        ("<PA3XYZ> <G4ABC/P> R 590003 IO91NP", MessageType.WWROF),
    ],
)
def test_roundtrip_with_hash_table(text, mtype):
    table = CallsignHashTable()
    payload = encode_message(text, table)
    assert message_type(payload) is mtype
    assert decode_message(payload, table) == text


def test_unbracketed_hashed_call_decodes_with_brackets():
    table = CallsignHashTable()
    payload = encode_message("W9XYZ PJ4/K1ABC", table)
    assert message_type(payload) is MessageType.NONSTD_CALL
    assert decode_message(payload, table) == "<W9XYZ> PJ4/K1ABC"


def test_unknown_hash_renders_placeholder():
    payload = encode_message("K1ABC RR73; W9XYZ <KH1/KH7Z> -08", CallsignHashTable())
    assert decode_message(payload) == "K1ABC RR73; W9XYZ <...> -08"
    assert decode_message(payload, CallsignHashTable()) == "K1ABC RR73; W9XYZ <...> -08"


def test_receiver_learns_calls_from_earlier_messages():
    rx = CallsignHashTable()
    first = encode_message("CQ KH1/KH7Z")
    assert decode_message(first, rx) == "CQ KH1/KH7Z"
    later = encode_message("K1ABC RR73; W9XYZ <KH1/KH7Z> -08")
    assert decode_message(later, rx) == "K1ABC RR73; W9XYZ <KH1/KH7Z> -08"


def test_normalization():
    assert normalize_message_text("  cq  cq k1abc   fn42 ") == "CQ K1ABC FN42"
    assert encode_message("cq cq k1abc fn42") == encode_message("CQ K1ABC FN42")


def test_payload_layout_fields():
    payload = encode_message("K1ABC/P W9XYZ FN42")
    assert payload.i3 == 2
    assert payload.to_int() < (1 << 77)
    assert Payload77.from_int(payload.to_int()) == payload
    assert Payload77.from_bits(payload.bits()) == payload
    assert len(payload.hex()) == 20


@pytest.mark.parametrize(
    "text,kind",
    [
        ("", EncodeErrorKind.TYPE),
        ("   ", EncodeErrorKind.TYPE),
        ("K1ABC/P W9XYZ/R", EncodeErrorKind.SUFFIX),
        ("K1ABC W9XYZ ZZ99", EncodeErrorKind.GRID),
        ("K1ABC W9XYZ -51", EncodeErrorKind.GRID),
        ("KA1ABC QRZ FN42", EncodeErrorKind.CALLSIGN2),
        ("THIS MESSAGE IS FAR TOO LONG", EncodeErrorKind.TYPE),
    ],
)
def test_encode_errors(text, kind):
    with pytest.raises(MessageEncodeError) as excinfo:
        encode_message(text)
    assert excinfo.value.kind is kind
    assert isinstance(excinfo.value, ValueError)
    assert not is_valid_message(text)
    assert get_message_type(text) is MessageType.UNKNOWN


def test_parse_standard_message():
    assert parse_standard_message("CQ DX K1ABC FN42") == ("CQ DX", "K1ABC", "FN42")
    assert parse_standard_message("k1abc w9xyz R-07") == ("K1ABC", "W9XYZ", "R-07")
    assert parse_standard_message("K1ABC W9XYZ R FN42") == ("K1ABC", "W9XYZ", "R FN42")
    assert parse_standard_message("HELLO WORLD") is None


def test_undefined_layouts_decode_empty():
    # i3=0 n3=6 and i3=7 have no layout
    assert decode_message(Payload77.from_int((6 << 3) | 0)) == ""
    assert decode_message(Payload77.from_int(7)) == ""
    assert message_type(Payload77.from_int(7)) is MessageType.UNKNOWN


def test_unused_token_range_decodes_empty():
    # standard message whose first call falls in the unused token range
    value = (600000 << 49) | 1
    assert decode_message(Payload77.from_int(value)) == ""


@pytest.mark.parametrize("text", ["73", "DE", "ABC", "1234", "CAFE", "ABCDEF0123456"])
def test_short_hex_words_are_free_text(text):
    assert get_message_type(text) is MessageType.FREE_TEXT
    payload = encode_message(text)
    assert (payload.i3, payload.n3) == (0, 0)
    assert decode_message(payload) == text


def test_eu_vhf_field_positions():
    payload = encode_message("PA3XYZ/P R 590003 IO91NP")
    v = payload.to_int()
    assert (payload.i3, payload.n3) == (0, 2)
    assert field(v, 28, 1) == 1       # /P
    assert field(v, 29, 1) == 1       # R
    assert field(v, 30, 3) == 7       # 59
    assert field(v, 33, 12) == 3      # serial
    assert field(v, 70, 1) == 0
    assert field(pack_eu_vhf("G4ABC 524095 JO01AB".split()), 33, 12) == 4095


def test_serial_limits():
    with pytest.raises(MessageEncodeError):
        pack_eu_vhf("G4ABC 524096 JO01AB".split())
    assert field(pack_wwrof("<PA3XYZ> <G4ABC> 592047 IO91NP".split()), 38, 11) == 2047
    with pytest.raises(MessageEncodeError):
        pack_wwrof("<PA3XYZ> <G4ABC> 592048 IO91NP".split())
