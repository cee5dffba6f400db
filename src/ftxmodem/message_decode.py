from __future__ import annotations

import logging
from typing import Optional

from .callsign_hash import CallsignHashInterface
from .charset import ALPHANUM, ALPHANUM_SPACE, ALPHANUM_SPACE_SLASH, FULL, LETTERS_SPACE, NUMERIC, is_letter
from .ft8pack import ARRL_SECTIONS, NONSTD_REPLIES, RU_STATES, save_callsign
from .payload import MAX22, MAXGRID4, NTOKENS, Payload77, field

logger = logging.getLogger(__name__)

_EXTRA_WORDS = ("", "RRR", "RR73", "73")


def unpack_basecall(n: int) -> str:
    c = [' '] * 6
    c[5] = LETTERS_SPACE[n % 27]; n //= 27
    c[4] = LETTERS_SPACE[n % 27]; n //= 27
    c[3] = LETTERS_SPACE[n % 27]; n //= 27
    c[2] = NUMERIC[n % 10]; n //= 10
    c[1] = ALPHANUM[n % 36]; n //= 36
    c[0] = ALPHANUM_SPACE[n % 37]
    call = ''.join(c).strip()
    # undo the prefix workarounds applied when packing
    if call.startswith("3D0") and len(call) > 3:
        call = "3DA0" + call[3:]
    elif call.startswith("Q") and len(call) > 1 and is_letter(call[1]):
        call = "3X" + call[1:]
    return call


def _lookup(hash_if: Optional[CallsignHashInterface], width: int, value: int) -> str:
    call = hash_if.lookup(width, value) if hash_if is not None else None
    return f"<{call}>" if call else "<...>"


def unpack28(n28: int, ip: int, i3: int, hash_if: Optional[CallsignHashInterface] = None) -> str:
    """Decode a 28-bit call field into a callsign, token or <hashed> call.

    Raises ValueError for the unused token range. Standard calls are saved
    into the hash table so later hashed references resolve.
    """
    if n28 < NTOKENS:
        if n28 == 0:
            return "DE"
        if n28 == 1:
            return "QRZ"
        if n28 == 2:
            return "CQ"
        if n28 <= 1002:
            return f"CQ {n28 - 3:03d}"
        if n28 <= 532443:
            n = n28 - 1003
            aaaa = ""
            for _ in range(4):
                aaaa = LETTERS_SPACE[n % 27] + aaaa
                n //= 27
            return "CQ " + aaaa.strip()
        raise ValueError(f"unused token value {n28}")

    n = n28 - NTOKENS
    if n < MAX22:
        return _lookup(hash_if, 22, n)

    call = unpack_basecall(n - MAX22)
    if ip:
        if i3 == 1:
            call += "/R"
        elif i3 == 2:
            call += "/P"
    save_callsign(hash_if, call)
    return call


def unpackgrid(igrid4: int, ir: int) -> str:
    """Inverse of packgrid: locator, reply word or signal report."""
    if igrid4 < MAXGRID4:
        n = igrid4
        d4 = n % 10; n //= 10
        d3 = n % 10; n //= 10
        l2 = n % 18; n //= 18
        l1 = n
        grid = f"{chr(ord('A') + l1)}{chr(ord('A') + l2)}{d3}{d4}"
        return ("R " if ir else "") + grid
    irpt = igrid4 - MAXGRID4
    if 1 <= irpt <= 4:
        return _EXTRA_WORDS[irpt - 1]
    dd = irpt - 35
    if dd > 50:
        dd -= 101
    return ("R" if ir else "") + f"{dd:+03d}"


def unpackgrid6(g25: int) -> Optional[str]:
    n = g25
    l6 = n % 24; n //= 24
    l5 = n % 24; n //= 24
    d4 = n % 10; n //= 10
    d3 = n % 10; n //= 10
    l2 = n % 18; n //= 18
    l1 = n
    if l1 >= 18:
        return None
    return f"{chr(ord('A') + l1)}{chr(ord('A') + l2)}{d3}{d4}{chr(ord('A') + l5)}{chr(ord('A') + l6)}"


def unpack_standard(v: int, hash_if: Optional[CallsignHashInterface] = None) -> str:
    i3 = field(v, 74, 3)
    call_to = unpack28(field(v, 0, 28), field(v, 28, 1), i3, hash_if)
    call_de = unpack28(field(v, 29, 28), field(v, 57, 1), i3, hash_if)
    extra = unpackgrid(field(v, 59, 15), field(v, 58, 1))
    text = f"{call_to} {call_de}"
    return f"{text} {extra}" if extra else text


def unpack_dxpedition(v: int, hash_if: Optional[CallsignHashInterface] = None) -> str:
    call1 = unpack28(field(v, 0, 28), 0, 0, hash_if)
    call2 = unpack28(field(v, 28, 28), 0, 0, hash_if)
    call3 = _lookup(hash_if, 10, field(v, 56, 10))
    rpt = 2 * field(v, 66, 5) - 30
    return f"{call1} RR73; {call2} {call3} {rpt:+03d}"


def unpack_field_day(v: int, hash_if: Optional[CallsignHashInterface] = None) -> str:
    call1 = unpack28(field(v, 0, 28), 0, 0, hash_if)
    call2 = unpack28(field(v, 28, 28), 0, 0, hash_if)
    ir = field(v, 56, 1)
    ntx = field(v, 57, 4) + 1
    if field(v, 71, 3) == 4:
        ntx += 16
    nclass = chr(ord('A') + field(v, 61, 3))
    isec = field(v, 64, 7)
    if not 1 <= isec <= len(ARRL_SECTIONS):
        raise ValueError(f"unknown ARRL section index {isec}")
    r = "R " if ir else ""
    return f"{call1} {call2} {r}{ntx}{nclass} {ARRL_SECTIONS[isec - 1]}"


def unpack_rtty(v: int, hash_if: Optional[CallsignHashInterface] = None) -> str:
    tu = field(v, 0, 1)
    call1 = unpack28(field(v, 1, 28), 0, 3, hash_if)
    call2 = unpack28(field(v, 29, 28), 0, 3, hash_if)
    ir = field(v, 57, 1)
    rst = 529 + 10 * field(v, 58, 3)
    s13 = field(v, 61, 13)
    if s13 > 8000 and s13 - 8001 < len(RU_STATES):
        exch = RU_STATES[s13 - 8001]
    else:
        exch = f"{s13:04d}"
    prefix = "TU; " if tu else ""
    r = "R " if ir else ""
    return f"{prefix}{call1} {call2} {r}{rst} {exch}"


def unpack_eu_vhf(v: int, hash_if: Optional[CallsignHashInterface] = None) -> str:
    call = unpack28(field(v, 0, 28), 0, 0, hash_if)
    if field(v, 28, 1):
        call += "/P"
    ir = field(v, 29, 1)
    nrs = 52 + field(v, 30, 3)
    serial = field(v, 33, 12)
    grid6 = unpackgrid6(field(v, 45, 25))
    if grid6 is None:
        raise ValueError("invalid 6-character locator")
    r = "R " if ir else ""
    return f"{call} {r}{nrs}{serial:04d} {grid6}"


def unpack_wwrof(v: int, hash_if: Optional[CallsignHashInterface] = None) -> str:
    call1 = _lookup(hash_if, 12, field(v, 0, 12))
    call2 = _lookup(hash_if, 22, field(v, 12, 22))
    ir = field(v, 34, 1)
    nrs = 52 + field(v, 35, 3)
    serial = field(v, 38, 11)
    grid6 = unpackgrid6(field(v, 49, 25))
    if grid6 is None:
        raise ValueError("invalid 6-character locator")
    r = "R " if ir else ""
    return f"{call1} {call2} {r}{nrs}{serial:04d} {grid6}"


def unpack_nonstd(v: int, hash_if: Optional[CallsignHashInterface] = None) -> str:
    n58 = field(v, 12, 58)
    chars = []
    for _ in range(11):
        chars.append(ALPHANUM_SPACE_SLASH[n58 % 38])
        n58 //= 38
    call = ''.join(reversed(chars)).strip()
    save_callsign(hash_if, call)

    if field(v, 73, 1):
        return f"CQ {call}"
    hashed = _lookup(hash_if, 12, field(v, 0, 12))
    if field(v, 70, 1):
        text = f"{call} {hashed}"
    else:
        text = f"{hashed} {call}"
    reply = NONSTD_REPLIES[field(v, 71, 2)]
    return f"{text} {reply}" if reply else text


def unpack_telemetry(v: int) -> str:
    return f"{field(v, 0, 71):018X}".lstrip("0") or "0"


def unpack_free_text(v: int) -> str:
    n = field(v, 0, 71)
    chars = []
    for _ in range(13):
        chars.append(FULL[n % 42])
        n //= 42
    return ''.join(reversed(chars)).strip()


def unpack_message(payload: Payload77, hash_if: Optional[CallsignHashInterface] = None) -> str:
    """Render a payload as text; returns "" when it has no valid reading."""
    v = payload.to_int()
    i3 = field(v, 74, 3)
    n3 = field(v, 71, 3)
    try:
        if i3 in (1, 2):
            return unpack_standard(v, hash_if)
        if i3 == 3:
            return unpack_rtty(v, hash_if)
        if i3 == 4:
            return unpack_nonstd(v, hash_if)
        if i3 == 5:
            return unpack_wwrof(v, hash_if)
        if i3 == 0:
            if n3 == 0:
                return unpack_free_text(v)
            if n3 == 1:
                return unpack_dxpedition(v, hash_if)
            if n3 == 2:
                return unpack_eu_vhf(v, hash_if)
            if n3 in (3, 4):
                return unpack_field_day(v, hash_if)
            if n3 == 5:
                return unpack_telemetry(v)
    except ValueError as exc:
        logger.debug("payload %s (i3=%d n3=%d) has no valid reading: %s", payload.hex(), i3, n3, exc)
        return ""
    logger.debug("payload %s uses undefined layout i3=%d n3=%d", payload.hex(), i3, n3)
    return ""
