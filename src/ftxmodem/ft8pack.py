from __future__ import annotations

import re
from typing import List, Optional, Tuple

from .callsign_hash import CallsignHashInterface, ihashcall
from .charset import (
    ALPHANUM,
    ALPHANUM_SPACE,
    ALPHANUM_SPACE_SLASH,
    FULL,
    HEX,
    LETTERS_SPACE,
    NUMERIC,
    is_digit,
    is_letter,
    nchar,
)
from .payload import MAX22, MAXGRID4, NTOKENS, EncodeErrorKind, MessageEncodeError, pack_fields

# ARRL/RAC sections for Field Day, stored 1-based in the 7-bit field
ARRL_SECTIONS = (
    "AB", "AK", "AL", "AR", "AZ", "BC", "CO", "CT", "DE", "EB", "EMA", "ENY", "EPA", "EWA", "GA", "GH",
    "IA", "ID", "IL", "IN", "KS", "KY", "LA", "LAX", "NS", "MB", "MDC", "ME", "MI", "MN", "MO", "MS",
    "MT", "NC", "ND", "NE", "NFL", "NH", "NL", "NLI", "NM", "NNJ", "NNY", "TER", "NTX", "NV", "OH", "OK",
    "ONE", "ONN", "ONS", "OR", "ORG", "PAC", "PR", "QC", "RI", "SB", "SC", "SCV", "SD", "SDG", "SF", "SFL",
    "SJV", "SK", "SNJ", "STX", "SV", "TN", "UT", "VA", "VI", "VT", "WCF", "WI", "WMA", "WNY", "WPA", "WTX",
    "WV", "WWA", "WY", "DX", "PE", "NB",
)

# ARRL RTTY Round-Up states/provinces, sent as 8001 + index
RU_STATES = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
    "NB", "NS", "QC", "ON", "MB", "SK", "AB", "BC", "NWT", "NF",
    "LB", "NU", "YT", "PEI", "DC",
)

# igrid4 values above MAXGRID4 for the non-grid words of a standard message
EXTRA_WORDS = {"": 1, "RRR": 2, "RR73": 3, "73": 4}
# nrpt field of the non-standard-call layout
NONSTD_REPLIES = ("", "RRR", "RR73", "73")

_REPORT_RE = re.compile(r"[+-]\d\d")
_FD_CLASS_RE = re.compile(r"(\d{1,2})([A-F])")
_RST_RE = re.compile(r"5[2-9]9")
_VHF_EXCHANGE_RE = re.compile(r"5[2-9]\d{4}")
_TOKENS = ("DE", "QRZ", "CQ")


def _fail(kind: EncodeErrorKind, detail: str) -> MessageEncodeError:
    return MessageEncodeError(kind, detail)


def is_bracketed(token: str) -> bool:
    return len(token) > 2 and token.startswith("<") and token.endswith(">")


def save_callsign(hash_if: Optional[CallsignHashInterface], callsign: str) -> Optional[int]:
    """Hash a callsign and record it in the table. Returns the 22-bit hash or None."""
    n22 = ihashcall(callsign, 22)
    if n22 is None:
        return None
    if hash_if is not None:
        hash_if.save(callsign, n22)
    return n22


def pack_basecall(callsign: str) -> int:
    """Pack a standard base callsign (no suffix) into 28 bits; -1 if it does not fit."""
    callsign = callsign.upper()
    length = len(callsign)
    if length < 3:
        return -1
    c6: Optional[str] = None
    if callsign.startswith("3DA0") and length <= 7:
        # Swaziland: 3DA0XYZ -> 3D0XYZ
        c6 = "3D0" + callsign[4:]
    elif callsign.startswith("3X") and is_letter(callsign[2]) and length <= 7:
        # Guinea: 3XA0XYZ -> QA0XYZ
        c6 = "Q" + callsign[2:]
    elif is_digit(callsign[2]) and length <= 6:
        # AB0XYZ
        c6 = callsign
    elif is_digit(callsign[1]) and length <= 5:
        # A0XYZ -> " A0XYZ"
        c6 = " " + callsign
    if c6 is None:
        return -1
    c6 = c6.ljust(6)

    i0 = nchar(c6[0], ALPHANUM_SPACE)
    i1 = nchar(c6[1], ALPHANUM)
    i2 = nchar(c6[2], NUMERIC)
    i3 = nchar(c6[3], LETTERS_SPACE)
    i4 = nchar(c6[4], LETTERS_SPACE)
    i5 = nchar(c6[5], LETTERS_SPACE)
    if min(i0, i1, i2, i3, i4, i5) < 0:
        return -1
    n = i0
    n = n * 36 + i1
    n = n * 10 + i2
    n = n * 27 + i3
    n = n * 27 + i4
    n = n * 27 + i5
    return n


def split_suffix(callsign: str) -> Tuple[str, str]:
    """Split off a trailing /R or /P; returns (base, suffix)."""
    if callsign.endswith("/R") or callsign.endswith("/P"):
        return callsign[:-2], callsign[-2:]
    return callsign, ""


def is_standard_call(callsign: str) -> bool:
    base, _suffix = split_suffix(callsign)
    return pack_basecall(base) >= 0


def _pack_cq_modifier(modifier: str) -> int:
    if len(modifier) == 3 and all(is_digit(c) for c in modifier):
        return 3 + int(modifier)
    if 1 <= len(modifier) <= 4 and all(is_letter(c) for c in modifier):
        m = 0
        for c in modifier.rjust(4):
            m = 27 * m + nchar(c, LETTERS_SPACE)
        return 1003 + m
    return -1


def is_cq_modifier(word: str) -> bool:
    return _pack_cq_modifier(word) >= 0


def pack28(token: str, hash_if: Optional[CallsignHashInterface] = None) -> Tuple[int, int]:
    """Return (n28, ip) for a callsign or token.

    Handles DE/QRZ/CQ, "CQ nnn" and "CQ abcd" directed calls, bracketed
    <CALL> (22-bit hash) and standard calls with an optional /R or /P suffix
    (reported through ip). Raises ValueError when the token does not fit.
    """
    token = token.upper()
    if token == "DE":
        return 0, 0
    if token == "QRZ":
        return 1, 0
    if token == "CQ":
        return 2, 0
    if token.startswith("CQ ") or token.startswith("CQ_"):
        n = _pack_cq_modifier(token[3:])
        if n < 0:
            raise ValueError(f"unsupported CQ modifier: {token[3:]!r}")
        return n, 0
    if is_bracketed(token):
        n22 = save_callsign(hash_if, token[1:-1])
        if n22 is None:
            raise ValueError(f"callsign cannot be hashed: {token!r}")
        return NTOKENS + n22, 0
    base, suffix = split_suffix(token)
    n = pack_basecall(base)
    if n < 0:
        raise ValueError(f"not a standard callsign: {token!r}")
    save_callsign(hash_if, token)
    return NTOKENS + MAX22 + n, 1 if suffix else 0


def _pack_call_field(token: str, hash_if: Optional[CallsignHashInterface], kind: EncodeErrorKind) -> int:
    """28-bit call for layouts without a suffix bit: plain or hashed calls, no tokens."""
    try:
        n28, ip = pack28(token, hash_if)
    except ValueError as exc:
        raise _fail(kind, str(exc)) from exc
    if n28 < NTOKENS or ip:
        raise _fail(kind, f"{token!r} is not allowed in this message type")
    return n28


def is_grid4(text: str) -> bool:
    return (
        len(text) == 4
        and 'A' <= text[0] <= 'R'
        and 'A' <= text[1] <= 'R'
        and is_digit(text[2])
        and is_digit(text[3])
    )


def is_grid6(text: str) -> bool:
    return len(text) == 6 and is_grid4(text[:4]) and 'A' <= text[4] <= 'X' and 'A' <= text[5] <= 'X'


def packgrid(extra: str) -> Tuple[int, int]:
    """Pack the third field of a standard message.

    Returns (igrid4, ir). Accepts a 4-char locator (optionally "R " prefixed),
    "", RRR, RR73, 73 and signal reports -50..+49 with optional R prefix.
    Raises ValueError otherwise.
    """
    extra = extra.upper()
    if extra in EXTRA_WORDS:
        return MAXGRID4 + EXTRA_WORDS[extra], 0
    ir = 0
    if extra.startswith("R "):
        ir = 1
        extra = extra[2:]
        if not is_grid4(extra):
            raise ValueError(f"expected grid after 'R ': {extra!r}")
    if is_grid4(extra):
        n = ord(extra[0]) - ord('A')
        n = n * 18 + (ord(extra[1]) - ord('A'))
        n = n * 10 + (ord(extra[2]) - ord('0'))
        n = n * 10 + (ord(extra[3]) - ord('0'))
        return n, ir
    if extra.startswith("R") and len(extra) == 4:
        ir = 1
        extra = extra[1:]
    if _REPORT_RE.fullmatch(extra):
        dd = int(extra)
        if not -50 <= dd <= 49:
            raise ValueError(f"report out of range: {extra!r}")
        if dd <= -31:
            dd += 101
        return MAXGRID4 + 35 + dd, ir
    raise ValueError(f"unsupported grid or report: {extra!r}")


def packgrid6(grid6: str) -> int:
    """25-bit value of a 6-char locator."""
    n = ord(grid6[0]) - ord('A')
    n = n * 18 + (ord(grid6[1]) - ord('A'))
    n = n * 10 + (ord(grid6[2]) - ord('0'))
    n = n * 10 + (ord(grid6[3]) - ord('0'))
    n = n * 24 + (ord(grid6[4]) - ord('A'))
    n = n * 24 + (ord(grid6[5]) - ord('A'))
    return n


def pack58(callsign: str) -> int:
    """Up to 11 characters of a non-standard call as a base-38 number."""
    if not 1 <= len(callsign) <= 11:
        raise ValueError(f"callsign must have 1..11 characters: {callsign!r}")
    n = 0
    for c in callsign.rjust(11):
        j = nchar(c, ALPHANUM_SPACE_SLASH)
        if j < 0:
            raise ValueError(f"invalid character {c!r} in {callsign!r}")
        n = 38 * n + j
    return n


def split_standard(words: List[str]) -> Optional[Tuple[str, str, str]]:
    """Split words into (call_to, call_de, extra) if they have the shape of a standard message."""
    if len(words) >= 3 and words[0] == "CQ" and is_cq_modifier(words[1]):
        words = ["CQ " + words[1]] + words[2:]
    if len(words) == 2:
        return words[0], words[1], ""
    if len(words) == 3:
        return words[0], words[1], words[2]
    if len(words) == 4 and words[2] == "R":
        return words[0], words[1], "R " + words[3]
    return None


def pack_standard(words: List[str], hash_if: Optional[CallsignHashInterface] = None) -> int:
    """i3=1/2: c28 r1 c28 r1 R1 g15 i3."""
    parts = split_standard(words)
    if parts is None:
        raise _fail(EncodeErrorKind.TYPE, "not a standard message")
    call_to, call_de, extra = parts
    try:
        n28a, ipa = pack28(call_to, hash_if)
    except ValueError as exc:
        raise _fail(EncodeErrorKind.CALLSIGN1, str(exc)) from exc
    try:
        n28b, ipb = pack28(call_de, hash_if)
    except ValueError as exc:
        raise _fail(EncodeErrorKind.CALLSIGN2, str(exc)) from exc
    if n28b < NTOKENS:
        raise _fail(EncodeErrorKind.CALLSIGN2, f"{call_de!r} cannot be the sending station")

    _base, suffix_to = split_suffix(call_to)
    _base, suffix_de = split_suffix(call_de)
    if {suffix_to, suffix_de} == {"/R", "/P"}:
        raise _fail(EncodeErrorKind.SUFFIX, "cannot mix /R and /P")
    i3 = 2 if "/P" in (suffix_to, suffix_de) else 1

    try:
        igrid4, ir = packgrid(extra)
    except ValueError as exc:
        raise _fail(EncodeErrorKind.GRID, str(exc)) from exc

    return pack_fields([(n28a, 28), (ipa, 1), (n28b, 28), (ipb, 1), (ir, 1), (igrid4, 15), (i3, 3)])


def pack_dxpedition(words: List[str], hash_if: Optional[CallsignHashInterface] = None) -> int:
    """i3=0 n3=1: "K1ABC RR73; W9XYZ <KH1/KH7Z> -08" as c28 c28 h10 r5."""
    if len(words) != 5 or words[1] != "RR73;" or not is_bracketed(words[3]):
        raise _fail(EncodeErrorKind.TYPE, "not a DXpedition message")
    n28a = _pack_call_field(words[0], hash_if, EncodeErrorKind.CALLSIGN1)
    n28b = _pack_call_field(words[2], hash_if, EncodeErrorKind.CALLSIGN2)
    n22 = save_callsign(hash_if, words[3][1:-1])
    if n22 is None:
        raise _fail(EncodeErrorKind.CALLSIGN2, f"callsign cannot be hashed: {words[3]!r}")
    report = words[4]
    if not _REPORT_RE.fullmatch(report):
        raise _fail(EncodeErrorKind.GRID, f"bad report {report!r}")
    rpt = int(report)
    if rpt % 2 or not -30 <= rpt <= 32:
        raise _fail(EncodeErrorKind.GRID, f"report must be even in -30..+32: {report!r}")
    n10 = n22 >> 12
    r5 = (rpt + 30) // 2
    return pack_fields([(n28a, 28), (n28b, 28), (n10, 10), (r5, 5), (1, 3), (0, 3)])


def pack_field_day(words: List[str], hash_if: Optional[CallsignHashInterface] = None) -> int:
    """i3=0 n3=3/4: "W9XYZ K1ABC R 17B EMA" as c28 c28 R1 n4 k3 S7."""
    if len(words) == 5 and words[2] == "R":
        ir, exch, section = 1, words[3], words[4]
    elif len(words) == 4:
        ir, exch, section = 0, words[2], words[3]
    else:
        raise _fail(EncodeErrorKind.TYPE, "not a Field Day message")
    m = _FD_CLASS_RE.fullmatch(exch)
    if m is None or section not in ARRL_SECTIONS:
        raise _fail(EncodeErrorKind.TYPE, "not a Field Day exchange")
    ntx = int(m.group(1))
    if not 1 <= ntx <= 32:
        raise _fail(EncodeErrorKind.TYPE, f"transmitter count out of range: {ntx}")
    n28a = _pack_call_field(words[0], hash_if, EncodeErrorKind.CALLSIGN1)
    n28b = _pack_call_field(words[1], hash_if, EncodeErrorKind.CALLSIGN2)
    if ntx <= 16:
        n3, intx = 3, ntx - 1
    else:
        n3, intx = 4, ntx - 17
    nclass = ord(m.group(2)) - ord('A')
    isec = ARRL_SECTIONS.index(section) + 1
    return pack_fields([(n28a, 28), (n28b, 28), (ir, 1), (intx, 4), (nclass, 3), (isec, 7), (n3, 3), (0, 3)])


def pack_rtty(words: List[str], hash_if: Optional[CallsignHashInterface] = None) -> int:
    """i3=3: "TU; K1ABC W9XYZ R 579 MA" as t1 c28 c28 R1 r3 s13."""
    tu = 0
    if words and words[0] == "TU;":
        tu = 1
        words = words[1:]
    if len(words) == 5 and words[2] == "R":
        ir, rst, exch = 1, words[3], words[4]
    elif len(words) == 4:
        ir, rst, exch = 0, words[2], words[3]
    else:
        raise _fail(EncodeErrorKind.TYPE, "not an RTTY Round-Up message")
    if not _RST_RE.fullmatch(rst):
        raise _fail(EncodeErrorKind.TYPE, f"bad RST {rst!r}")
    if exch in RU_STATES:
        s13 = 8001 + RU_STATES.index(exch)
    elif 1 <= len(exch) <= 4 and all(is_digit(c) for c in exch) and int(exch) <= 7999:
        s13 = int(exch)
    else:
        raise _fail(EncodeErrorKind.TYPE, f"bad serial or state {exch!r}")
    n28a = _pack_call_field(words[0], hash_if, EncodeErrorKind.CALLSIGN1)
    n28b = _pack_call_field(words[1], hash_if, EncodeErrorKind.CALLSIGN2)
    r3 = int(rst[1]) - 2
    return pack_fields([(tu, 1), (n28a, 28), (n28b, 28), (ir, 1), (r3, 3), (s13, 13), (3, 3)])


def _vhf_exchange(exch: str, grid6: str, serial_bits: int) -> Tuple[int, int, int]:
    if not _VHF_EXCHANGE_RE.fullmatch(exch) or int(exch[2:]) >= 1 << serial_bits:
        raise _fail(EncodeErrorKind.TYPE, f"bad report/serial {exch!r}")
    if not is_grid6(grid6):
        raise _fail(EncodeErrorKind.GRID, f"bad 6-character locator {grid6!r}")
    return int(exch[1]) - 2, int(exch[2:]), packgrid6(grid6)


def pack_eu_vhf(words: List[str], hash_if: Optional[CallsignHashInterface] = None) -> int:
    """i3=0 n3=2: "PA3XYZ/P R 590003 IO91NP" as c28 p1 R1 r3 s12 g25."""
    if len(words) == 4 and words[1] == "R":
        ir, exch, grid6 = 1, words[2], words[3]
    elif len(words) == 3:
        ir, exch, grid6 = 0, words[1], words[2]
    else:
        raise _fail(EncodeErrorKind.TYPE, "not an EU VHF message")
    base, suffix = split_suffix(words[0])
    if suffix == "/R":
        raise _fail(EncodeErrorKind.SUFFIX, "only /P is allowed")
    r3, serial, g25 = _vhf_exchange(exch, grid6, 12)
    n28 = _pack_call_field(base, hash_if, EncodeErrorKind.CALLSIGN1)
    save_callsign(hash_if, words[0])
    p1 = 1 if suffix else 0
    return pack_fields([(n28, 28), (p1, 1), (ir, 1), (r3, 3), (serial, 12), (g25, 25), (0, 1), (2, 3), (0, 3)])


def pack_wwrof(words: List[str], hash_if: Optional[CallsignHashInterface] = None) -> int:
    """i3=5: "<PA3XYZ> <G4ABC/P> R 590003 IO91NP" as h12 h22 R1 r3 s11 g25."""
    if len(words) == 5 and words[2] == "R":
        ir, exch, grid6 = 1, words[3], words[4]
    elif len(words) == 4:
        ir, exch, grid6 = 0, words[2], words[3]
    else:
        raise _fail(EncodeErrorKind.TYPE, "not an EU VHF contest message")
    r3, serial, g25 = _vhf_exchange(exch, grid6, 11)
    calls = [w[1:-1] if is_bracketed(w) else w for w in words[:2]]
    hashes = []
    for call, kind in zip(calls, (EncodeErrorKind.CALLSIGN1, EncodeErrorKind.CALLSIGN2)):
        if call in _TOKENS:
            raise _fail(kind, f"{call!r} cannot be hashed")
        n22 = save_callsign(hash_if, call)
        if n22 is None:
            raise _fail(kind, f"callsign cannot be hashed: {call!r}")
        hashes.append(n22)
    h12 = hashes[0] >> 10
    return pack_fields([(h12, 12), (hashes[1], 22), (ir, 1), (r3, 3), (serial, 11), (g25, 25), (5, 3)])


def _looks_like_call(callsign: str) -> bool:
    return len(callsign) >= 3 and any(is_digit(c) for c in callsign) and callsign not in _TOKENS


def pack_nonstd(words: List[str], hash_if: Optional[CallsignHashInterface] = None) -> int:
    """i3=4: one call sent in full (up to 11 chars), the other as a 12-bit hash.

    h12 c58 iflip1 nrpt2 icq1. iflip=1 means the full call comes first.
    """
    icq = 0
    iflip = 0
    nrpt = 0
    if len(words) == 2 and words[0] == "CQ":
        icq = 1
        full = words[1]
        hashed = None
    elif len(words) in (2, 3):
        extra = words[2] if len(words) == 3 else ""
        if extra not in NONSTD_REPLIES:
            raise _fail(EncodeErrorKind.GRID, f"{extra!r} not allowed with a non-standard call")
        nrpt = NONSTD_REPLIES.index(extra)
        call1, call2 = words[0], words[1]
        if call1 in _TOKENS:
            raise _fail(EncodeErrorKind.CALLSIGN1, f"{call1!r} not allowed here")
        if is_bracketed(call1) and not is_bracketed(call2):
            hashed, full, iflip = call1[1:-1], call2, 0
        elif is_bracketed(call2) and not is_bracketed(call1):
            hashed, full, iflip = call2[1:-1], call1, 1
        elif not is_standard_call(call1) and is_standard_call(call2):
            hashed, full, iflip = call2, call1, 1
        elif is_standard_call(call1) and not is_standard_call(call2):
            hashed, full, iflip = call1, call2, 0
        else:
            raise _fail(EncodeErrorKind.TYPE, "expected exactly one non-standard call")
    else:
        raise _fail(EncodeErrorKind.TYPE, "not a non-standard call message")

    if not _looks_like_call(full):
        kind = EncodeErrorKind.CALLSIGN1 if iflip or icq else EncodeErrorKind.CALLSIGN2
        raise _fail(kind, f"not a callsign: {full!r}")
    try:
        n58 = pack58(full)
    except ValueError as exc:
        kind = EncodeErrorKind.CALLSIGN1 if iflip or icq else EncodeErrorKind.CALLSIGN2
        raise _fail(kind, str(exc)) from exc
    save_callsign(hash_if, full)

    n12 = 0
    if hashed is not None:
        n22 = save_callsign(hash_if, hashed)
        if n22 is None:
            kind = EncodeErrorKind.CALLSIGN2 if iflip else EncodeErrorKind.CALLSIGN1
            raise _fail(kind, f"callsign cannot be hashed: {hashed!r}")
        n12 = n22 >> 10
    return pack_fields([(n12, 12), (n58, 58), (iflip, 1), (nrpt, 2), (icq, 1), (4, 3)])


def pack_telemetry(text: str) -> int:
    """i3=0 n3=5: 14 to 18 hex digits (71 bits); shorter text is sent as free text."""
    if not 14 <= len(text) <= 18 or text[0] == "0" or any(c not in HEX for c in text):
        raise _fail(EncodeErrorKind.TYPE, "not telemetry")
    value = int(text, 16)
    if value >= 1 << 71:
        raise _fail(EncodeErrorKind.TYPE, "telemetry exceeds 71 bits")
    return pack_fields([(value, 71), (5, 3), (0, 3)])


def pack_free_text(text: str) -> int:
    """i3=0 n3=0: up to 13 characters of the 42-symbol alphabet, base 42."""
    if not 1 <= len(text) <= 13:
        raise _fail(EncodeErrorKind.TYPE, "free text must have 1..13 characters")
    n = 0
    for c in text.ljust(13):
        j = nchar(c, FULL)
        if j < 0:
            raise _fail(EncodeErrorKind.TYPE, f"character {c!r} not allowed in free text")
        n = 42 * n + j
    return pack_fields([(n, 71), (0, 3), (0, 3)])
