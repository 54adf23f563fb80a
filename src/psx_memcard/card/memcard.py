"""
Memory Card Image
=================

The MemCard class loads a whole 128 KiB card image, exposes its blocks for
inspection and editing, and writes it back out.

Usage Examples
--------------
Loading and searching a card:
    >>> from psx_memcard import MemCard
    >>> card = MemCard.open("epsxe000.mcr")
    >>> for block in card.find_game("wild"):
    ...     print(block.decode_title())

Editing and saving:
    >>> card.info.dir_frames[0].filesize = 16384
    >>> card.write("edited.mcr")

Checksums are recomputed on every write, so edited fields never need a
manual checksum update.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union
import io
import logging

from psx_memcard.card.blocks import DataBlock, InfoBlock
from psx_memcard.card.records import (
    BLOCK_SIZE,
    BLOCKS_PER_CARD,
    CARD_SIZE,
    DATA_BLOCK_COUNT,
    NO_BROKEN_FRAME,
    BlockState,
    DirectoryFrame,
    IconDisplay,
    RegionInfo,
)
from psx_memcard.config import ExportConfig
from psx_memcard.errors import CardStructureError, MemCardError, TextDecodeError

# Logger for this module
logger = logging.getLogger(__name__)


def _read_exact(stream: BinaryIO, size: int, block_index: int) -> bytes:
    """Read exactly ``size`` bytes or raise CardStructureError."""
    data = stream.read(size)
    if data is None or len(data) < size:
        got = 0 if data is None else len(data)
        raise CardStructureError(
            f"Card image truncated: block {block_index} has {got} of {size} bytes"
        )
    return data


@dataclass
class MemCard:
    """
    A complete memory card image.

    Attributes:
        info: The first block (header, directory, bad-block table)
        data: The fifteen save data blocks, positionally matching
            info.dir_frames
    """
    info: InfoBlock = field(default_factory=InfoBlock.blank)
    data: list[DataBlock] = field(
        default_factory=lambda: [DataBlock.blank() for _ in range(DATA_BLOCK_COUNT)]
    )

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def read(cls, stream: BinaryIO) -> "MemCard":
        """
        Read a card image from a binary stream.

        Exactly 16 blocks are consumed from the stream.

        Raises:
            CardStructureError: If the stream ends early
            ChecksumMismatchError: If a frame of the first block is corrupt
        """
        try:
            info = InfoBlock.from_bytes(_read_exact(stream, BLOCK_SIZE, 0))
            data = [
                DataBlock.from_bytes(_read_exact(stream, BLOCK_SIZE, index))
                for index in range(1, BLOCKS_PER_CARD)
            ]
        except MemCardError as e:
            logger.error(f"Failed to parse memory card: {e}")
            raise

        card = cls(info=info, data=data)
        for index, _directory, block in card.iter_saves():
            if block.title_frame.get_icon_display() is IconDisplay.UNKNOWN:
                logger.warning(
                    f"Slot {index}: unrecognized icon layout "
                    f"0x{block.title_frame.display:02X}"
                )

        logger.info(f"Loaded memory card ({len(data)} data blocks)")
        return card

    @classmethod
    def open(cls, path: Union[str, Path]) -> "MemCard":
        """
        Open and parse a card image file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            CardStructureError: If the file is shorter than a card
            ChecksumMismatchError: If a frame of the first block is corrupt
        """
        path = Path(path)
        with path.open("rb") as f:
            card = cls.read(f)
            if f.read(1):
                logger.warning(f"{path}: ignoring data after {CARD_SIZE} bytes")
        return card

    @classmethod
    def from_bytes(cls, data: bytes) -> "MemCard":
        """Parse a card image held in memory."""
        if len(data) > CARD_SIZE:
            logger.warning(
                f"Ignoring {len(data) - CARD_SIZE} bytes after the card image"
            )
        return cls.read(io.BytesIO(data))

    @classmethod
    def blank(cls) -> "MemCard":
        """A freshly formatted, empty card."""
        return cls()

    # =========================================================================
    # Saving
    # =========================================================================

    def to_bytes(self) -> bytes:
        """
        Serialize the card to exactly 131072 bytes.

        Raises:
            ValueError: If the card does not hold exactly 15 data blocks,
                or a block does not serialize to 8192 bytes
        """
        if len(self.data) != DATA_BLOCK_COUNT:
            raise ValueError(
                f"MemCard must hold {DATA_BLOCK_COUNT} data blocks, got {len(self.data)}"
            )
        out = bytearray(self.info.to_bytes())
        for block in self.data:
            out += block.to_bytes()
        return bytes(out)

    def write_to(self, stream: BinaryIO) -> int:
        """Write the card image to a binary stream. Returns bytes written."""
        image = self.to_bytes()
        stream.write(image)
        return len(image)

    def write(self, path: Union[str, Path]) -> int:
        """
        Write the card image to a file.

        The image is fully serialized before the file is opened, so a
        serialization error never leaves a partial file behind.

        Returns:
            Number of bytes written (always 131072)
        """
        path = Path(path)
        image = self.to_bytes()
        with path.open("wb") as f:
            f.write(image)
        logger.info(f"Wrote memory card to {path}")
        return len(image)

    # =========================================================================
    # Queries
    # =========================================================================

    def find_game(self, needle: str) -> list[DataBlock]:
        """
        Find save blocks whose decoded title contains ``needle``.

        The match is case-insensitive. Results keep slot order; two slots
        with the same title are both returned.
        """
        needle = needle.lower()
        return [block for block in self.data if needle in block.decode_title().lower()]

    def iter_slots(self) -> Iterator[tuple[int, DirectoryFrame, DataBlock]]:
        """Yield ``(slot, directory_frame, data_block)`` for all 15 slots."""
        for index, (directory, block) in enumerate(zip(self.info.dir_frames, self.data)):
            yield index, directory, block

    def iter_saves(self) -> Iterator[tuple[int, DirectoryFrame, DataBlock]]:
        """
        Like iter_slots(), but only the first block of each save.

        Middle and last blocks of a multi-block save hold payload only and
        have no meaningful title frame.
        """
        for index, directory, block in self.iter_slots():
            if directory.get_block_state() is BlockState.ALLOC_FIRST:
                yield index, directory, block

    def region_info(self, slot: int) -> RegionInfo:
        """
        Region info for a save slot (0-14).

        Raises:
            IndexError: If slot is out of range
            TextDecodeError: If the product id is not valid UTF-8
        """
        return self.data[slot].region_info(self.info.dir_frames[slot])

    def get_info(self) -> dict:
        """
        Get summary information about the card.

        Returns:
            Dictionary with card information
        """
        used_blocks = sum(
            1 for directory in self.info.dir_frames
            if directory.get_block_state().is_allocated()
        )
        saves = []
        for index, directory, block in self.iter_saves():
            try:
                product = directory.region_info().name
            except TextDecodeError:
                product = None
            saves.append({
                "slot": index,
                "state": directory.get_block_state().name,
                "filesize": directory.filesize,
                "product_id": product,
                "title": block.decode_title(),
                "icon_frames": len(block.icon_frames),
            })

        return {
            "header_id": self.info.header.id.decode("ascii", errors="replace"),
            "slot_count": len(self.data),
            "save_count": len(saves),
            "used_blocks": used_blocks,
            "free_blocks": len(self.data) - used_blocks,
            "broken_frames": [
                bf.broken_frame for bf in self.info.broken_frames
                if bf.broken_frame != NO_BROKEN_FRAME
            ],
            "saves": saves,
        }

    def export_all_images(
        self,
        config: Optional[ExportConfig] = None,
        needle: Optional[str] = None,
    ) -> list[Path]:
        """
        Export icons for every allocated save that has icon frames.

        Each save is written under ``slotNN_<title>`` so two saves of the
        same game don't overwrite each other.

        Args:
            config: Export settings, defaults to ExportConfig()
            needle: Only export saves whose title contains this text

        Returns:
            Paths of all files written
        """
        config = config or ExportConfig()
        written = []
        for index, _directory, block in self.iter_saves():
            title = block.decode_title()
            if needle is not None and needle.lower() not in title.lower():
                continue
            if not block.icon_frames:
                continue
            stem = f"slot{index:02d}_{title}" if title else f"slot{index:02d}"
            written.extend(block.export_images(basename=stem, config=config))

        logger.info(f"Exported {len(written)} image file(s) to {config.output_dir}")
        return written
