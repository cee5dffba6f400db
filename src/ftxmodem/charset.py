"""Character tables used by the 77-bit message packers."""

from __future__ import annotations

FULL = " 0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ+-./?"   # free text, 42 symbols
ALPHANUM_SPACE_SLASH = " 0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ/"  # hashes, long calls
ALPHANUM_SPACE = " 0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
ALPHANUM = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
LETTERS_SPACE = " ABCDEFGHIJKLMNOPQRSTUVWXYZ"
NUMERIC = "0123456789"
HEX = "0123456789ABCDEF"


def nchar(c: str, table: str) -> int:
    """Index of c in table, or -1."""
    if len(c) != 1:
        return -1
    return table.find(c)


def is_letter(c: str) -> bool:
    return 'A' <= c <= 'Z'


def is_digit(c: str) -> bool:
    return '0' <= c <= '9'
