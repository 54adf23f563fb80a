"""
Block Assemblers
================

A block is 8192 bytes, or 64 frames. The card holds one InfoBlock followed
by fifteen DataBlocks.

InfoBlock Layout
----------------
    Frame   Count   Record
    0       1       Header ("MC")
    1       15      DirectoryFrame
    16      20      BrokenFrame
    36      27      Frame (unused)
    63      1       Header (write test)

Every frame of the InfoBlock is checksummed. Parsing stops at the first
bad frame; serializing recomputes every checksum.

DataBlock Layout
----------------
    Frame   Count           Record
    0       1               TitleFrame
    1       icon_count      Frame (icon bitmap)
    ...     63-icon_count   Frame (save payload)

where ``icon_count = display & 0x03``. DataBlocks carry no checksums.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
import logging

from psx_memcard.card.checksum import load_frames, stamp_checksum, validate_checksum
from psx_memcard.card.icons import icon_to_rgba, write_gif, write_png
from psx_memcard.card.records import (
    BLOCK_SIZE,
    BROKEN_FRAME_COUNT,
    DIRECTORY_FRAME_COUNT,
    FRAME_SIZE,
    FRAMES_PER_BLOCK,
    UNUSED_FRAME_COUNT,
    BrokenFrame,
    DirectoryFrame,
    Frame,
    Header,
    IconDisplay,
    RegionInfo,
    TitleFrame,
)
from psx_memcard.config import ExportConfig
from psx_memcard.errors import CardStructureError, ImageExportError

# Logger for this module
logger = logging.getLogger(__name__)


def _require_block(data: bytes, what: str) -> None:
    if len(data) < BLOCK_SIZE:
        raise CardStructureError(
            f"{what} too short: need {BLOCK_SIZE} bytes, got {len(data)}"
        )


def _read_frames(data: bytes, count: int) -> list[Frame]:
    """Split ``count`` unchecked frames off the start of data."""
    return [
        Frame.from_bytes(data[i * FRAME_SIZE:(i + 1) * FRAME_SIZE])
        for i in range(count)
    ]


# =============================================================================
# InfoBlock
# =============================================================================

@dataclass
class InfoBlock:
    """
    The first block of the card.

    Holds the card header, the directory table describing the fifteen save
    slots, and the bad-block table.

    Attributes:
        header: Card identification header
        dir_frames: 15 directory entries, one per DataBlock
        broken_frames: 20 bad-block table entries
        unused_frames: 27 reserved frames, kept verbatim
        write_test_frame: Trailing header used by the console to test writes
    """
    header: Header = field(default_factory=Header.card)
    dir_frames: list[DirectoryFrame] = field(default_factory=list)
    broken_frames: list[BrokenFrame] = field(default_factory=list)
    unused_frames: list[Frame] = field(default_factory=list, repr=False)
    write_test_frame: Header = field(default_factory=Header.write_test)

    @classmethod
    def from_bytes(cls, data: bytes) -> "InfoBlock":
        """
        Parse the first block of the card.

        Raises:
            CardStructureError: If data is shorter than one block
            ChecksumMismatchError: If any frame in the block is corrupt
        """
        _require_block(data, "InfoBlock")

        validate_checksum(data[:FRAME_SIZE], frame_index=0)
        header = Header.from_bytes(data)
        offset = FRAME_SIZE

        dir_frames = load_frames(
            data[offset:], DIRECTORY_FRAME_COUNT, DirectoryFrame.from_bytes,
            first_index=offset // FRAME_SIZE,
        )
        offset += len(dir_frames) * FRAME_SIZE

        broken_frames = load_frames(
            data[offset:], BROKEN_FRAME_COUNT, BrokenFrame.from_bytes,
            first_index=offset // FRAME_SIZE,
        )
        offset += len(broken_frames) * FRAME_SIZE

        unused_frames = load_frames(
            data[offset:], UNUSED_FRAME_COUNT, Frame.from_bytes,
            first_index=offset // FRAME_SIZE,
        )
        offset += len(unused_frames) * FRAME_SIZE

        validate_checksum(data[offset:offset + FRAME_SIZE], frame_index=offset // FRAME_SIZE)
        write_test_frame = Header.from_bytes(data[offset:])

        logger.debug(f"Parsed InfoBlock with {len(dir_frames)} directory entries")
        return cls(
            header=header,
            dir_frames=dir_frames,
            broken_frames=broken_frames,
            unused_frames=unused_frames,
            write_test_frame=write_test_frame,
        )

    @classmethod
    def blank(cls) -> "InfoBlock":
        """A freshly formatted InfoBlock with every slot free."""
        block = cls(
            header=Header.card(),
            dir_frames=[DirectoryFrame.free() for _ in range(DIRECTORY_FRAME_COUNT)],
            broken_frames=[BrokenFrame.unused() for _ in range(BROKEN_FRAME_COUNT)],
            unused_frames=[Frame() for _ in range(UNUSED_FRAME_COUNT)],
            write_test_frame=Header.write_test(),
        )
        # Round-trip so the stored checksum fields match the stamped bytes
        return cls.from_bytes(block.to_bytes())

    def iter_records(self):
        """Yield every record in on-card order."""
        yield self.header
        yield from self.dir_frames
        yield from self.broken_frames
        yield from self.unused_frames
        yield self.write_test_frame

    def to_bytes(self) -> bytes:
        """
        Serialize the block, recomputing the checksum of every frame.

        The in-memory records are not modified.

        Raises:
            ValueError: If a record list has the wrong length
        """
        for name, records, expected in (
            ("dir_frames", self.dir_frames, DIRECTORY_FRAME_COUNT),
            ("broken_frames", self.broken_frames, BROKEN_FRAME_COUNT),
            ("unused_frames", self.unused_frames, UNUSED_FRAME_COUNT),
        ):
            if len(records) != expected:
                raise ValueError(
                    f"InfoBlock.{name} must have {expected} entries, got {len(records)}"
                )

        out = bytearray()
        for record in self.iter_records():
            out += stamp_checksum(bytearray(record.to_bytes()))

        if len(out) != BLOCK_SIZE:
            raise ValueError(f"InfoBlock serialized to {len(out)} bytes, expected {BLOCK_SIZE}")
        return bytes(out)


# =============================================================================
# DataBlock
# =============================================================================

@dataclass
class DataBlock:
    """
    One save data block.

    Attributes:
        title_frame: Title, icon layout and icon palette of the save
        icon_frames: The static or animated icon shown in the card manager,
            one to three frames for a recognized layout
        data_frames: The save payload
    """
    title_frame: TitleFrame = field(default_factory=TitleFrame)
    icon_frames: list[Frame] = field(default_factory=list)
    data_frames: list[Frame] = field(default_factory=list, repr=False)

    @classmethod
    def from_bytes(cls, data: bytes) -> "DataBlock":
        """
        Parse a save data block.

        The title frame decides how many icon frames follow; the rest of
        the block is payload.

        Raises:
            CardStructureError: If data is shorter than one block
        """
        _require_block(data, "DataBlock")

        title_frame = TitleFrame.from_bytes(data)
        icon_count = title_frame.icon_count
        if title_frame.get_icon_display() is IconDisplay.UNKNOWN:
            logger.debug(
                f"Unrecognized icon layout 0x{title_frame.display:02X}, "
                f"reading {icon_count} icon frames"
            )

        offset = FRAME_SIZE
        icon_frames = _read_frames(data[offset:], icon_count)
        offset += len(icon_frames) * FRAME_SIZE

        payload_count = (BLOCK_SIZE - offset) // FRAME_SIZE
        data_frames = _read_frames(data[offset:BLOCK_SIZE], payload_count)

        return cls(
            title_frame=title_frame,
            icon_frames=icon_frames,
            data_frames=data_frames,
        )

    @classmethod
    def blank(cls) -> "DataBlock":
        """An all-zero block, as found on a freshly formatted card."""
        return cls.from_bytes(bytes(BLOCK_SIZE))

    @property
    def payload_frame_count(self) -> int:
        return len(self.data_frames)

    def to_bytes(self) -> bytes:
        """
        Serialize the block: title, icons, then payload.

        Raises:
            ValueError: If the frames do not add up to exactly one block
        """
        out = bytearray(self.title_frame.to_bytes())
        for frame in self.icon_frames:
            out += frame.to_bytes()
        for frame in self.data_frames:
            out += frame.to_bytes()

        if len(out) != BLOCK_SIZE:
            frames = 1 + len(self.icon_frames) + len(self.data_frames)
            raise ValueError(
                f"DataBlock has {frames} frames ({len(out)} bytes), "
                f"expected {FRAMES_PER_BLOCK} ({BLOCK_SIZE} bytes)"
            )
        return bytes(out)

    # =========================================================================
    # Derived Data
    # =========================================================================

    def decode_title(self) -> str:
        return self.title_frame.decode_title()

    def region_info(self, directory: DirectoryFrame) -> RegionInfo:
        """
        Region info of this save, read from its directory entry.

        Slot metadata lives in the InfoBlock, so the caller passes the
        DirectoryFrame for this block's slot (see MemCard.region_info()).

        Raises:
            TextDecodeError: If the product id is not valid UTF-8
        """
        return directory.region_info()

    def icon_rgba_frames(self) -> list[bytes]:
        """Translate every icon frame to a 1024-byte RGBA buffer."""
        palette = self.title_frame.icon_palette
        return [icon_to_rgba(frame, palette) for frame in self.icon_frames]

    def export_images(
        self,
        output_dir: Union[str, Path, None] = None,
        basename: Optional[str] = None,
        config: Optional[ExportConfig] = None,
    ) -> list[Path]:
        """
        Export the icon as image files.

        Writes ``{basename}_frame{n}.png`` for each icon frame. If there is
        more than one frame, also writes ``{basename}.gif`` looping forever.

        Args:
            output_dir: Target directory (overrides config.output_dir)
            basename: File name stem, defaults to the decoded title
            config: Export settings, defaults to ExportConfig()

        Returns:
            Paths of the files written, in order

        Raises:
            ImageExportError: If an image could not be encoded or written
        """
        config = config or ExportConfig()
        directory = Path(output_dir) if output_dir is not None else config.output_dir
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ImageExportError(f"Unable to create {directory}: {e}") from e
        stem = basename or self.decode_title() or "untitled"

        buffers = self.icon_rgba_frames()
        written = []

        if config.write_png:
            for n, buffer in enumerate(buffers):
                written.append(
                    write_png(buffer, directory / f"{stem}_frame{n}.png", config.scale)
                )

        if config.write_gif and len(buffers) > 1:
            written.append(
                write_gif(buffers, directory / f"{stem}.gif",
                          config.gif_frame_ms, config.scale)
            )

        logger.debug(f"Exported {len(written)} image(s) for '{stem}'")
        return written
