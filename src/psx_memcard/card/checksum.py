"""
Frame Checksum Calculations
===========================

This module provides the checksum functions used by the 128-byte records
of the card's first block.

Frame Checksum
--------------
- Algorithm: XOR of bytes 0-126 of the frame
- Storage: byte 127 of the same frame
- Scope: card header, directory frames, bad-block frames, unused frames
  and the write-test frame. Save data blocks are not checksummed.

Checksums are never edited by hand. Every serialize path calls
stamp_checksum() so that edited fields produce a consistent frame.
"""

from typing import Callable, Optional, TypeVar
import logging

from psx_memcard.card.records import CHECKSUM_OFFSET, FRAME_SIZE
from psx_memcard.errors import CardStructureError, ChecksumMismatchError

# Logger for this module
logger = logging.getLogger(__name__)

T = TypeVar("T")


def calculate_checksum(record: bytes) -> int:
    """
    Calculate the checksum of a frame.

    Args:
        record: At least 127 bytes; only bytes 0-126 are used

    Returns:
        8-bit checksum value

    Example:
        >>> calculate_checksum(b"MC" + bytes(126))
        14
    """
    if len(record) < CHECKSUM_OFFSET:
        raise CardStructureError(
            f"Frame too short for checksum: need {CHECKSUM_OFFSET} bytes, "
            f"got {len(record)}"
        )

    checksum = 0
    for byte in record[:CHECKSUM_OFFSET]:
        checksum ^= byte
    return checksum


def verify_checksum(record: bytes) -> bool:
    """Return True if the stored checksum byte matches the frame contents."""
    if len(record) < FRAME_SIZE:
        return False
    return calculate_checksum(record) == record[CHECKSUM_OFFSET]


def validate_checksum(record: bytes, frame_index: Optional[int] = None) -> None:
    """
    Validate the stored checksum of a frame.

    Args:
        record: A 128-byte frame
        frame_index: Position of the frame in its block, for error messages

    Raises:
        CardStructureError: If the frame is shorter than 128 bytes
        ChecksumMismatchError: If the stored byte does not match
    """
    if len(record) < FRAME_SIZE:
        raise CardStructureError(
            f"Frame too short: need {FRAME_SIZE} bytes, got {len(record)}"
        )

    expected = calculate_checksum(record)
    actual = record[CHECKSUM_OFFSET]
    if expected != actual:
        raise ChecksumMismatchError(expected, actual, frame_index=frame_index)


def stamp_checksum(record: bytearray) -> bytearray:
    """
    Write the checksum of a frame into its last byte.

    The frame is modified in place and then validated again.

    Args:
        record: A mutable 128-byte frame

    Returns:
        The same bytearray, for chaining
    """
    record[CHECKSUM_OFFSET] = calculate_checksum(record)
    validate_checksum(record)
    return record


def load_frames(
    data: bytes,
    count: int,
    decode: Callable[[bytes], T],
    first_index: int = 0,
) -> list[T]:
    """
    Decode ``count`` consecutive checksummed frames.

    Each frame's checksum is validated before it is decoded. The first
    failure raises and nothing decoded so far is returned.

    Args:
        data: Buffer starting at the first frame
        count: Number of frames to read
        decode: Record factory, e.g. DirectoryFrame.from_bytes
        first_index: Block-relative index of the first frame, for errors

    Returns:
        List of decoded records

    Raises:
        CardStructureError: If the buffer holds fewer than ``count`` frames
        ChecksumMismatchError: If any frame fails validation
    """
    needed = count * FRAME_SIZE
    if len(data) < needed:
        raise CardStructureError(
            f"Need {count} frames ({needed} bytes), got {len(data)} bytes"
        )

    records = []
    for i in range(count):
        chunk = data[i * FRAME_SIZE:(i + 1) * FRAME_SIZE]
        validate_checksum(chunk, frame_index=first_index + i)
        records.append(decode(chunk))

    logger.debug(f"Loaded {count} frames starting at frame {first_index}")
    return records
