"""
PSX Memory Card Error Hierarchy
===============================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from MemCardError, allowing callers to catch every
card-related failure with a single except clause if desired.

Exception Hierarchy
-------------------
MemCardError (base)
├── CardStructureError - input ended before a record/block was complete
├── ChecksumMismatchError - a record's trailing XOR byte is wrong
├── TextDecodeError - product id bytes are not valid text
└── ImageExportError - icon image encoding failed

Misuse of the in-memory model (a field assigned with the wrong length, a
DataBlock that no longer adds up to one Block) is a programming error and
raises ValueError instead.
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class MemCardError(Exception):
    """
    Base exception for all memory card errors.

        try:
            card = MemCard.open("epsxe000.mcr")
        except MemCardError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Parsing Exceptions
# =============================================================================

class CardStructureError(MemCardError):
    """
    The card image is structurally incomplete.

    Raised when:
    - The byte source ends before 16 full blocks were read
    - A record or block buffer is shorter than its fixed size
    """
    pass


class ChecksumMismatchError(MemCardError):
    """
    Checksum verification failed.

    Raised when the byte stored in the last position of a 128-byte record
    does not equal the XOR of the preceding 127 bytes. The enclosing block
    parse is aborted; a corrupt record is never accepted silently.

    Attributes:
        expected: The checksum calculated from the record contents
        actual: The checksum byte stored in the record
        frame_index: Index of the frame within its block, when known
    """

    def __init__(
        self,
        expected: int,
        actual: int,
        frame_index: Optional[int] = None,
        message: str = "",
    ):
        self.expected = expected
        self.actual = actual
        self.frame_index = frame_index
        if not message:
            where = f" in frame {frame_index}" if frame_index is not None else ""
            message = (
                f"Checksum mismatch{where}: expected 0x{expected:02X}, "
                f"got 0x{actual:02X}"
            )
        super().__init__(message)


class TextDecodeError(MemCardError):
    """
    A text field could not be decoded.

    Only the accessor that raised it is affected; the rest of the card
    stays loaded and usable.
    """
    pass


# =============================================================================
# Export Exceptions
# =============================================================================

class ImageExportError(MemCardError):
    """
    Icon image encoding failed.

    Wraps the error reported by the image encoder or the filesystem. The
    original exception is available as ``__cause__``. The in-memory card is
    not affected.
    """
    pass
