"""
Shared Test Fixtures
====================

Fixtures that build memory card images in memory through the public API,
so no binary card dumps need to be checked in.

The sample card holds:
    Slot 0   "Wild Arms"          2-frame animated icon, BASLUS product
    Slot 1   "Final Fantasy VII"  1-frame icon, 2-block save (slot 2 follows)
    Slot 2   continuation block of slot 1
    Slot 3   "Wild Arms"          second save of the same game
    Others   free
"""

from pathlib import Path

import pytest

from psx_memcard.card import (
    BLOCK_SIZE,
    FRAME_SIZE,
    BlockState,
    DataBlock,
    DirectoryFrame,
    Frame,
    MemCard,
    TitleFrame,
    encode_title,
)


# Palette entries: 0 = red, 1 = blue, 2 = green, 15 = white
SAMPLE_PALETTE = [0x001F, 0x7C00, 0x03E0] + [0] * 12 + [0x7FFF]


def make_save_block(
    title: str,
    display: int,
    icon_bytes: list[int],
    payload_byte: int = 0x5A,
) -> DataBlock:
    """
    Build a save DataBlock from scratch.

    Args:
        title: ASCII title, encoded to the Shift-JIS subset
        display: Raw display byte (0x11-0x13 for 1-3 icon frames)
        icon_bytes: One fill byte per icon frame
        payload_byte: Fill byte for the save payload frames
    """
    title_frame = TitleFrame(
        display=display,
        block_num=1,
        title=encode_title(title),
        icon_palette=list(SAMPLE_PALETTE),
    )
    raw = bytearray(title_frame.to_bytes())
    for fill in icon_bytes:
        raw += bytes([fill]) * FRAME_SIZE
    raw += bytes([payload_byte]) * (BLOCK_SIZE - len(raw))
    return DataBlock.from_bytes(bytes(raw))


def make_directory(state: int, filesize: int, filename: bytes, next_block: int = 0xFFFF) -> DirectoryFrame:
    return DirectoryFrame(
        state=state,
        filesize=filesize,
        next_block=next_block,
        filename=filename.ljust(21, b"\x00"),
    )


@pytest.fixture
def sample_card() -> MemCard:
    """A card with three saves, normalized through a write/read cycle."""
    card = MemCard.blank()

    card.info.dir_frames[0] = make_directory(
        BlockState.ALLOC_FIRST, 8192, b"BASLUS-00000WILDARMS"
    )
    card.data[0] = make_save_block("Wild Arms", 0x12, [0x10, 0x01])

    card.info.dir_frames[1] = make_directory(
        BlockState.ALLOC_FIRST, 16384, b"BISCPS-10000FF7", next_block=2
    )
    card.data[1] = make_save_block("Final Fantasy VII", 0x11, [0x22])

    card.info.dir_frames[2] = make_directory(BlockState.ALLOC_LAST, 0, b"")
    card.data[2] = DataBlock.from_bytes(bytes([0xA5]) * BLOCK_SIZE)

    card.info.dir_frames[3] = make_directory(
        BlockState.ALLOC_FIRST, 8192, b"BESLES-00001WILDARMS"
    )
    card.data[3] = make_save_block("Wild Arms", 0x11, [0xFF])

    return MemCard.from_bytes(card.to_bytes())


@pytest.fixture
def sample_card_bytes(sample_card: MemCard) -> bytes:
    return sample_card.to_bytes()


@pytest.fixture
def sample_card_file(tmp_path: Path, sample_card_bytes: bytes) -> Path:
    path = tmp_path / "sample.mcr"
    path.write_bytes(sample_card_bytes)
    return path


@pytest.fixture
def icon_frame() -> Frame:
    """An icon frame whose pixels alternate palette index 0 and 1."""
    return Frame(data=bytes([0x10]) * FRAME_SIZE)


@pytest.fixture
def sample_palette() -> list[int]:
    return list(SAMPLE_PALETTE)


@pytest.fixture
def save_block_factory():
    """Factory fixture wrapping make_save_block()."""
    return make_save_block


@pytest.fixture
def directory_factory():
    """Factory fixture wrapping make_directory()."""
    return make_directory
