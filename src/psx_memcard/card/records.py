"""
Memory Card Record Definitions
==============================

This module defines the fixed 128-byte records that make up a PlayStation
memory card image, together with the layout constants of the card.

Card Structure Overview
-----------------------
A card image is exactly 131072 bytes:

    Block 0      InfoBlock (header, directory, bad-block table)
    Block 1-15   DataBlocks (one save slot each)

Every block is 64 frames of 128 bytes. Most frames in Block 0 end with an
XOR checksum of their first 127 bytes.

Record Layouts
--------------
All multi-byte fields are little-endian.

**Header** (card header and write-test frame):
    Offset  Size    Description
    0       2       Identifier ("MC")
    2       125     Padding
    127     1       Checksum

**DirectoryFrame** (one per save slot):
    0       4       Block allocation state
    4       4       File size in bytes
    8       2       Next block in the chain (0xFFFF = none)
    10      21      Filename, e.g. "BASLUS-00000GAMEDATA"
    31      96      Padding
    127     1       Checksum

**BrokenFrame** (bad-block table entry):
    0       4       Broken frame number (0xFFFFFFFF = none)
    4       123     Padding
    127     1       Checksum

**TitleFrame** (first frame of a DataBlock, not checksummed):
    0       2       Identifier ("SC")
    2       1       Icon display flag (0x11/0x12/0x13 = 1/2/3 frames)
    3       1       Block number
    4       64      Title, Shift-JIS
    68      28      Reserved
    96      32      Icon palette, 16 x 15-bit BGR colours

Reference
---------
- Format notes: https://www.psdevwiki.com/ps3/PS1_Savedata
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
import struct

from psx_memcard.card.title import decode_title
from psx_memcard.errors import CardStructureError, TextDecodeError


# =============================================================================
# Layout Constants
# =============================================================================

FRAME_SIZE = 0x80
FRAMES_PER_BLOCK = 64
BLOCK_SIZE = FRAME_SIZE * FRAMES_PER_BLOCK
BLOCKS_PER_CARD = 16
DATA_BLOCK_COUNT = BLOCKS_PER_CARD - 1
CARD_SIZE = BLOCK_SIZE * BLOCKS_PER_CARD

# InfoBlock sections, in frames
DIRECTORY_FRAME_COUNT = 15
BROKEN_FRAME_COUNT = 20
UNUSED_FRAME_COUNT = 27

CHECKSUM_OFFSET = FRAME_SIZE - 1

CARD_MAGIC = b"MC"
SAVE_MAGIC = b"SC"

ICON_COUNT_MASK = 0x03
PALETTE_SIZE = 16

NO_NEXT_BLOCK = 0xFFFF
NO_BROKEN_FRAME = 0xFFFFFFFF


def _require_length(data: bytes, size: int, what: str) -> None:
    """Raise CardStructureError if data is shorter than a record."""
    if len(data) < size:
        raise CardStructureError(
            f"{what} too short: need {size} bytes, got {len(data)}"
        )


def _check_field(value: bytes, size: int, name: str) -> None:
    """Raise ValueError if a fixed-size byte field was assigned the wrong length."""
    if len(value) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(value)}")


# =============================================================================
# Enumeration Types
# =============================================================================

class BlockState(IntEnum):
    """
    Block allocation state stored in DirectoryFrame.state.

    The low nibble gives the position in a multi-block save (1 first,
    2 middle, 3 last); the high nibble is 0x5 for allocated and 0xA for
    free blocks.
    """
    ALLOC_FIRST = 0x51
    ALLOC_MID = 0x52
    ALLOC_LAST = 0x53
    FREE = 0xA0
    FREE_FIRST = 0xA1
    FREE_MID = 0xA2
    FREE_LAST = 0xA3
    UNKNOWN = -1

    @classmethod
    def from_value(cls, value: int) -> "BlockState":
        """Convert a raw state word, mapping unknown values to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    def is_allocated(self) -> bool:
        return self in (BlockState.ALLOC_FIRST, BlockState.ALLOC_MID,
                        BlockState.ALLOC_LAST)


class Region(Enum):
    """Game region, from the second byte of the filename."""
    JAPAN = "I"
    AMERICA = "A"
    EUROPE = "E"
    UNKNOWN = "?"

    @classmethod
    def from_byte(cls, value: int) -> "Region":
        try:
            return cls(chr(value))
        except ValueError:
            return cls.UNKNOWN


class License(Enum):
    """Publisher licensing, from the fourth byte of the filename."""
    SONY = "C"
    LICENSED = "L"
    UNKNOWN = "?"

    @classmethod
    def from_byte(cls, value: int) -> "License":
        try:
            return cls(chr(value))
        except ValueError:
            return cls.UNKNOWN


class IconDisplay(IntEnum):
    """Icon animation layout, from TitleFrame.display."""
    ONE_FRAME = 0x11
    TWO_FRAMES = 0x12
    THREE_FRAMES = 0x13
    UNKNOWN = -1

    @classmethod
    def from_value(cls, value: int) -> "IconDisplay":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class RegionInfo:
    """
    Region, license and product id derived from a save filename.

    Not stored on the card; computed on demand by
    DirectoryFrame.region_info().
    """
    region: Region
    license: License
    name: str


# =============================================================================
# Generic Frame
# =============================================================================

@dataclass
class Frame:
    """
    A raw 128-byte frame.

    Typically the final byte is a checksum, but icon and save payload frames
    do not follow that convention.
    """
    data: bytes = field(default=bytes(FRAME_SIZE))

    def __post_init__(self) -> None:
        _check_field(self.data, FRAME_SIZE, "Frame data")

    @property
    def checksum(self) -> int:
        return self.data[CHECKSUM_OFFSET]

    def to_bytes(self) -> bytes:
        _check_field(self.data, FRAME_SIZE, "Frame data")
        return bytes(self.data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Frame":
        _require_length(data, FRAME_SIZE, "Frame")
        return cls(data=bytes(data[:FRAME_SIZE]))


# =============================================================================
# Header
# =============================================================================

@dataclass
class Header:
    """
    Card header (first frame of the card) or write-test frame (last frame
    of Block 0). Both share the same shape.
    """
    id: bytes = CARD_MAGIC
    pad: bytes = field(default=bytes(125), repr=False)
    checksum: int = 0

    FORMAT = "<2s125sB"

    def to_bytes(self) -> bytes:
        _check_field(self.id, 2, "Header.id")
        _check_field(self.pad, 125, "Header.pad")
        return struct.pack(self.FORMAT, self.id, self.pad, self.checksum)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Header":
        _require_length(data, FRAME_SIZE, "Header")
        id_, pad, checksum = struct.unpack_from(cls.FORMAT, data)
        return cls(id=id_, pad=pad, checksum=checksum)

    @classmethod
    def card(cls) -> "Header":
        """A freshly formatted card header."""
        return cls(id=CARD_MAGIC)

    @classmethod
    def write_test(cls) -> "Header":
        """A freshly formatted write-test frame."""
        return cls(id=CARD_MAGIC)


# =============================================================================
# Directory Frame
# =============================================================================

@dataclass
class DirectoryFrame:
    """
    Directory entry for one save slot (15 per card).

    Attributes:
        state: Raw allocation state word (see BlockState)
        filesize: Save size in bytes (multiple of 8192 on first blocks)
        next_block: Index of the next block of a multi-block save
        filename: 21-byte ASCII filename, e.g. b"BASLUS-00000GAMEDATA\\0"
        pad: Unused bytes
        checksum: Stored checksum byte
    """
    state: int = BlockState.FREE
    filesize: int = 0
    next_block: int = NO_NEXT_BLOCK
    filename: bytes = bytes(21)
    pad: bytes = field(default=bytes(96), repr=False)
    checksum: int = 0

    FORMAT = "<IIH21s96sB"

    def to_bytes(self) -> bytes:
        _check_field(self.filename, 21, "DirectoryFrame.filename")
        _check_field(self.pad, 96, "DirectoryFrame.pad")
        return struct.pack(
            self.FORMAT,
            self.state,
            self.filesize,
            self.next_block,
            self.filename,
            self.pad,
            self.checksum,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "DirectoryFrame":
        _require_length(data, FRAME_SIZE, "DirectoryFrame")
        state, filesize, next_block, filename, pad, checksum = struct.unpack_from(
            cls.FORMAT, data
        )
        return cls(
            state=state,
            filesize=filesize,
            next_block=next_block,
            filename=filename,
            pad=pad,
            checksum=checksum,
        )

    @classmethod
    def free(cls) -> "DirectoryFrame":
        """A directory entry as written by a card format."""
        return cls(state=BlockState.FREE, next_block=NO_NEXT_BLOCK)

    def get_block_state(self) -> BlockState:
        return BlockState.from_value(self.state)

    def region_info(self) -> RegionInfo:
        """
        Derive region, license and product id from the filename.

        The product id is bytes 12-20 of the filename, with trailing NUL
        padding removed.

        Raises:
            TextDecodeError: If the product id bytes are not valid UTF-8
        """
        region = Region.from_byte(self.filename[1])
        license_ = License.from_byte(self.filename[3])

        try:
            name = self.filename[12:].decode("utf-8")
        except UnicodeDecodeError as e:
            raise TextDecodeError(f"Product id is not valid UTF-8: {e}") from e

        return RegionInfo(region=region, license=license_, name=name.rstrip("\x00"))

    def describe(self) -> str:
        """Multi-line human-readable summary."""
        try:
            region = str(self.region_info())
        except TextDecodeError as e:
            region = f"<{e}>"
        return (
            f"State: {self.get_block_state().name}\n"
            f"Filesize: {self.filesize}\n"
            f"Next block: {self.next_block}\n"
            f"Region Info: {region}\n"
            f"Checksum: {self.checksum}"
        )


# =============================================================================
# Broken Frame
# =============================================================================

@dataclass
class BrokenFrame:
    """Bad-block table entry (20 per card)."""
    broken_frame: int = NO_BROKEN_FRAME
    pad: bytes = field(default=bytes(123), repr=False)
    checksum: int = 0

    FORMAT = "<I123sB"

    def to_bytes(self) -> bytes:
        _check_field(self.pad, 123, "BrokenFrame.pad")
        return struct.pack(self.FORMAT, self.broken_frame, self.pad, self.checksum)

    @classmethod
    def from_bytes(cls, data: bytes) -> "BrokenFrame":
        _require_length(data, FRAME_SIZE, "BrokenFrame")
        broken_frame, pad, checksum = struct.unpack_from(cls.FORMAT, data)
        return cls(broken_frame=broken_frame, pad=pad, checksum=checksum)

    @classmethod
    def unused(cls) -> "BrokenFrame":
        """An empty bad-block table entry."""
        return cls(broken_frame=NO_BROKEN_FRAME)


# =============================================================================
# Title Frame
# =============================================================================

@dataclass
class TitleFrame:
    """
    First frame of a save data block.

    Contains the title of the save, how many frames the icon has, the block
    number and the 16-colour icon palette. This frame carries no checksum.
    """
    id: bytes = SAVE_MAGIC
    display: int = 0
    block_num: int = 0
    title: bytes = bytes(64)
    reserved: bytes = field(default=bytes(28), repr=False)
    icon_palette: list[int] = field(default_factory=lambda: [0] * PALETTE_SIZE)

    FORMAT = "<2sBB64s28s16H"

    def to_bytes(self) -> bytes:
        _check_field(self.id, 2, "TitleFrame.id")
        _check_field(self.title, 64, "TitleFrame.title")
        _check_field(self.reserved, 28, "TitleFrame.reserved")
        if len(self.icon_palette) != PALETTE_SIZE:
            raise ValueError(
                f"TitleFrame.icon_palette must have {PALETTE_SIZE} entries, "
                f"got {len(self.icon_palette)}"
            )
        return struct.pack(
            self.FORMAT,
            self.id,
            self.display,
            self.block_num,
            self.title,
            self.reserved,
            *self.icon_palette,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "TitleFrame":
        _require_length(data, FRAME_SIZE, "TitleFrame")
        id_, display, block_num, title, reserved, *palette = struct.unpack_from(
            cls.FORMAT, data
        )
        return cls(
            id=id_,
            display=display,
            block_num=block_num,
            title=title,
            reserved=reserved,
            icon_palette=list(palette),
        )

    @property
    def icon_count(self) -> int:
        """Number of icon frames that follow; display masked to its low two bits."""
        return self.display & ICON_COUNT_MASK

    def get_icon_display(self) -> IconDisplay:
        return IconDisplay.from_value(self.display)

    def decode_title(self) -> str:
        """Decode the Shift-JIS title (digits, letters and spaces only)."""
        return decode_title(self.title)

    def describe(self) -> str:
        """Multi-line human-readable summary."""
        return (
            f"Filename: {self.decode_title()}\n"
            f"Icon: {self.get_icon_display().name}\n"
            f"Block Number: {self.block_num}"
        )
