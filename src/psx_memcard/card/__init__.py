"""
Memory Card Image Handling
==========================

This module provides support for reading, editing and writing raw
PlayStation memory card images (.mcr / .mcd, 131072 bytes).

This module provides:
- **MemCard**: Load, search, edit and save whole card images
- **InfoBlock / DataBlock**: The directory block and the save blocks
- **Record types**: The fixed 128-byte frames of the card
- **Checksum utilities**: Validate and stamp frame checksums
- **Title and icon helpers**: Decode save titles, translate icons to RGBA

Quick Start
-----------
    >>> from psx_memcard.card import MemCard
    >>> card = MemCard.open("epsxe000.mcr")
    >>> for slot, directory, block in card.iter_saves():
    ...     print(slot, block.decode_title())
"""

# =============================================================================
# Public API Exports
# =============================================================================

from psx_memcard.card.records import (
    # Layout constants
    FRAME_SIZE,
    FRAMES_PER_BLOCK,
    BLOCK_SIZE,
    BLOCKS_PER_CARD,
    DATA_BLOCK_COUNT,
    CARD_SIZE,
    # Enums
    BlockState,
    Region,
    License,
    IconDisplay,
    # Records
    RegionInfo,
    Frame,
    Header,
    DirectoryFrame,
    BrokenFrame,
    TitleFrame,
)

from psx_memcard.card.checksum import (
    calculate_checksum,
    verify_checksum,
    validate_checksum,
    stamp_checksum,
    load_frames,
)

from psx_memcard.card.title import decode_title, encode_title

from psx_memcard.card.icons import (
    ICON_RGBA_SIZE,
    palette_color_to_rgba,
    icon_to_rgba,
    rgba_to_image,
    write_png,
    write_gif,
)

from psx_memcard.card.blocks import InfoBlock, DataBlock
from psx_memcard.card.memcard import MemCard

__all__ = [
    # Layout constants
    "FRAME_SIZE",
    "FRAMES_PER_BLOCK",
    "BLOCK_SIZE",
    "BLOCKS_PER_CARD",
    "DATA_BLOCK_COUNT",
    "CARD_SIZE",
    # Enums
    "BlockState",
    "Region",
    "License",
    "IconDisplay",
    # Records
    "RegionInfo",
    "Frame",
    "Header",
    "DirectoryFrame",
    "BrokenFrame",
    "TitleFrame",
    # Checksum
    "calculate_checksum",
    "verify_checksum",
    "validate_checksum",
    "stamp_checksum",
    "load_frames",
    # Title
    "decode_title",
    "encode_title",
    # Icons
    "ICON_RGBA_SIZE",
    "palette_color_to_rgba",
    "icon_to_rgba",
    "rgba_to_image",
    "write_png",
    "write_gif",
    # Blocks
    "InfoBlock",
    "DataBlock",
    "MemCard",
]
