"""
Save Title Decoding
===================

Save titles are stored as 64 bytes of Shift-JIS, almost always using the
full-width forms of digits and Latin letters. This module maps that subset
to plain ASCII for display and searching.

Decoded Pairs
-------------
    81 40          full-width space      -> " "
    82 4F..82 58   full-width 0-9        -> "0".."9"
    82 60..82 79   full-width A-Z        -> "A".."Z"
    82 81..82 9A   full-width a-z        -> "a".."z"
    00 xx          end of title

Every other pair, including full-width punctuation (81 43..81 97), is
skipped without output.
"""

TITLE_SIZE = 64

_SPACE_LEAD = 0x81
_SPACE_TRAIL = 0x40
_ALNUM_LEAD = 0x82
_TERMINATOR = 0x00


def _decode_alnum(trail: int) -> str:
    """Map the trail byte of an 0x82 pair to ASCII, or '' if out of range."""
    if 0x4F <= trail <= 0x58 or 0x60 <= trail <= 0x79:
        return chr(trail - 0x1F)
    if 0x81 <= trail <= 0x9A:
        return chr(trail - 0x20)
    return ""


def decode_title(raw: bytes) -> str:
    """
    Decode a Shift-JIS save title to ASCII.

    The input is consumed two bytes at a time for at most 64 bytes. A lead
    byte of 0x00 ends the title wherever it appears.

    Args:
        raw: The title field (normally exactly 64 bytes)

    Returns:
        The decoded title, possibly empty

    Example:
        >>> decode_title(bytes([0x82, 0x60, 0x82, 0x61, 0x00, 0x00]))
        'AB'
    """
    chars = []
    data = raw[:TITLE_SIZE]

    for p in range(0, len(data) - 1, 2):
        lead, trail = data[p], data[p + 1]
        if lead == _TERMINATOR:
            break
        if lead == _SPACE_LEAD:
            if trail == _SPACE_TRAIL:
                chars.append(" ")
        elif lead == _ALNUM_LEAD:
            chars.append(_decode_alnum(trail))

    return "".join(chars)


def encode_title(text: str) -> bytes:
    """
    Encode ASCII text to the Shift-JIS title subset, NUL padded to 64 bytes.

    The inverse of decode_title() for spaces, digits and letters. Other
    characters are dropped. Text longer than 32 characters is truncated.
    """
    out = bytearray()
    for ch in text:
        code = ord(ch)
        if ch == " ":
            out += bytes([_SPACE_LEAD, _SPACE_TRAIL])
        elif "0" <= ch <= "9" or "A" <= ch <= "Z":
            out += bytes([_ALNUM_LEAD, code + 0x1F])
        elif "a" <= ch <= "z":
            out += bytes([_ALNUM_LEAD, code + 0x20])
    return bytes(out[:TITLE_SIZE]).ljust(TITLE_SIZE, b"\x00")
