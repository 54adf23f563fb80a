"""
PSX Memory Card Toolkit
=======================

This package reads, edits and writes raw PlayStation memory card images,
and extracts the save icons stored on them as PNG and GIF images.

A card image is 131072 bytes: sixteen 8 KiB blocks of 64 frames each.
Block 0 is the directory; blocks 1-15 each hold one save slot with its
title, icon and payload.

Main Components
---------------
- **card**: Record model, checksums, block assemblers and MemCard
- **config**: Icon export settings
- **cli**: The ``psxmc`` command-line tool

Quick Start
-----------
Open a card and list its saves:
    >>> from psx_memcard import MemCard
    >>> card = MemCard.open("epsxe000.mcr")
    >>> for slot, directory, block in card.iter_saves():
    ...     print(f"{slot:2d} {block.decode_title()}")

Export icons:
    >>> from psx_memcard import ExportConfig
    >>> card.export_all_images(ExportConfig(output_dir="icons"))

Or use the command-line tool:
    $ psxmc info epsxe000.mcr
    $ psxmc find epsxe000.mcr "wild arms"
    $ psxmc export -o icons/ epsxe000.mcr

Reference Documentation
-----------------------
- Memory card format: https://www.psdevwiki.com/ps3/PS1_Savedata
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from psx_memcard.errors import (
    MemCardError,
    CardStructureError,
    ChecksumMismatchError,
    TextDecodeError,
    ImageExportError,
)

from psx_memcard.config import ExportConfig

from psx_memcard.card import (
    CARD_SIZE,
    BLOCK_SIZE,
    FRAME_SIZE,
    BlockState,
    Region,
    License,
    IconDisplay,
    RegionInfo,
    Frame,
    Header,
    DirectoryFrame,
    BrokenFrame,
    TitleFrame,
    InfoBlock,
    DataBlock,
    MemCard,
    calculate_checksum,
    validate_checksum,
    stamp_checksum,
    decode_title,
    icon_to_rgba,
)

__all__ = [
    # Version info
    "__version__",
    # Exception hierarchy
    "MemCardError",
    "CardStructureError",
    "ChecksumMismatchError",
    "TextDecodeError",
    "ImageExportError",
    # Configuration
    "ExportConfig",
    # Layout
    "CARD_SIZE",
    "BLOCK_SIZE",
    "FRAME_SIZE",
    # Records
    "BlockState",
    "Region",
    "License",
    "IconDisplay",
    "RegionInfo",
    "Frame",
    "Header",
    "DirectoryFrame",
    "BrokenFrame",
    "TitleFrame",
    # Blocks and card
    "InfoBlock",
    "DataBlock",
    "MemCard",
    # Helpers
    "calculate_checksum",
    "validate_checksum",
    "stamp_checksum",
    "decode_title",
    "icon_to_rgba",
]
