"""
Record Unit Tests
=================

Tests for the 128-byte card records, frame checksums and title decoding.

Test Categories
---------------
1. Checksum: XOR calculation, validation and stamping
2. Title: Shift-JIS subset decoding and encoding
3. Enums: Block state, region, license and icon layout lookups
4. Records: Fixed-layout serialization of each record type
5. Region info: Filename-derived region, license and product id
"""

import struct

import pytest

from psx_memcard.card import (
    FRAME_SIZE,
    BlockState,
    BrokenFrame,
    DirectoryFrame,
    Frame,
    Header,
    IconDisplay,
    License,
    Region,
    TitleFrame,
    calculate_checksum,
    decode_title,
    encode_title,
    load_frames,
    stamp_checksum,
    validate_checksum,
    verify_checksum,
)
from psx_memcard.errors import (
    CardStructureError,
    ChecksumMismatchError,
    TextDecodeError,
)


def stamped(data: bytes) -> bytes:
    """Pad data to a frame and stamp its checksum."""
    return bytes(stamp_checksum(bytearray(data.ljust(FRAME_SIZE, b"\x00"))))


# =============================================================================
# Checksum Tests
# =============================================================================

class TestChecksum:
    """Tests for frame checksum functions."""

    def test_zero_frame(self):
        """An all-zero frame has checksum 0."""
        assert calculate_checksum(bytes(FRAME_SIZE)) == 0

    def test_card_header(self):
        """'M' ^ 'C' == 0x0E."""
        assert calculate_checksum(b"MC" + bytes(126)) == 0x0E

    def test_last_byte_ignored(self):
        """Byte 127 does not take part in the checksum."""
        frame = bytearray(FRAME_SIZE)
        frame[0] = 0x12
        frame[127] = 0xFF
        assert calculate_checksum(bytes(frame)) == 0x12

    def test_short_record_raises(self):
        with pytest.raises(CardStructureError):
            calculate_checksum(bytes(10))

    def test_verify(self):
        frame = stamped(b"MC")
        assert verify_checksum(frame)
        assert not verify_checksum(frame[:-1] + b"\x00")

    def test_verify_short_frame_is_false(self):
        assert not verify_checksum(b"MC")

    def test_validate_reports_frame_index(self):
        """A mismatch carries expected/actual values and the frame index."""
        frame = bytearray(stamped(b"MC"))
        frame[127] = 0x00
        with pytest.raises(ChecksumMismatchError) as exc_info:
            validate_checksum(bytes(frame), frame_index=5)

        error = exc_info.value
        assert error.expected == 0x0E
        assert error.actual == 0x00
        assert error.frame_index == 5
        assert "frame 5" in str(error)

    def test_stamp_in_place(self):
        frame = bytearray(FRAME_SIZE)
        frame[0:2] = b"SC"
        result = stamp_checksum(frame)
        assert result is frame
        assert frame[127] == ord("S") ^ ord("C")

    def test_load_frames(self):
        """Consecutive valid frames decode in order."""
        data = stamped(struct.pack("<I", 7)) + stamped(struct.pack("<I", 9))
        records = load_frames(data, 2, BrokenFrame.from_bytes)
        assert [r.broken_frame for r in records] == [7, 9]

    def test_load_frames_fails_on_bad_frame(self):
        """A single bad frame aborts the whole load."""
        bad = bytearray(stamped(b"\x01"))
        bad[127] ^= 0xFF
        data = stamped(b"") + bytes(bad)
        with pytest.raises(ChecksumMismatchError) as exc_info:
            load_frames(data, 2, Frame.from_bytes, first_index=10)
        assert exc_info.value.frame_index == 11

    def test_load_frames_short_buffer(self):
        with pytest.raises(CardStructureError):
            load_frames(stamped(b""), 2, Frame.from_bytes)


# =============================================================================
# Title Tests
# =============================================================================

class TestTitle:
    """Tests for save title decoding."""

    def test_letters(self):
        raw = bytes([0x82, 0x60, 0x82, 0x61, 0x00, 0x00])
        assert decode_title(raw) == "AB"

    def test_empty_title(self):
        assert decode_title(bytes(64)) == ""

    def test_digits(self):
        raw = bytes([0x82, 0x4F, 0x82, 0x58])
        assert decode_title(raw) == "09"

    def test_lowercase(self):
        raw = bytes([0x82, 0x81, 0x82, 0x9A])
        assert decode_title(raw) == "az"

    def test_space(self):
        raw = bytes([0x82, 0x60, 0x81, 0x40, 0x82, 0x61])
        assert decode_title(raw) == "A B"

    def test_unknown_pairs_skipped(self):
        """Full-width punctuation and stray bytes produce no output."""
        raw = bytes([0x82, 0x60, 0x81, 0x43, 0x41, 0x42, 0x82, 0x59, 0x82, 0x61])
        assert decode_title(raw) == "AB"

    def test_terminator_stops_decoding(self):
        raw = bytes([0x82, 0x60, 0x00, 0x82, 0x82, 0x61])
        assert decode_title(raw) == "A"

    def test_reads_at_most_64_bytes(self):
        raw = bytes([0x82, 0x60]) * 40
        assert decode_title(raw) == "A" * 32

    def test_odd_length_ignores_last_byte(self):
        assert decode_title(bytes([0x82, 0x60, 0x82])) == "A"

    def test_encode_round_trip(self):
        encoded = encode_title("Wild Arms 2")
        assert len(encoded) == 64
        assert decode_title(encoded) == "Wild Arms 2"

    def test_encode_drops_unsupported(self):
        assert decode_title(encode_title("Tomb-Raider!")) == "TombRaider"

    def test_encode_truncates(self):
        assert decode_title(encode_title("X" * 40)) == "X" * 32


# =============================================================================
# Enum Tests
# =============================================================================

class TestEnums:
    """Tests for raw value lookups."""

    def test_block_state_known(self):
        assert BlockState.from_value(0x51) is BlockState.ALLOC_FIRST
        assert BlockState.from_value(0xA0) is BlockState.FREE

    def test_block_state_unknown(self):
        assert BlockState.from_value(0x99) is BlockState.UNKNOWN

    def test_block_state_allocated(self):
        assert BlockState.ALLOC_MID.is_allocated()
        assert not BlockState.FREE_FIRST.is_allocated()
        assert not BlockState.UNKNOWN.is_allocated()

    def test_icon_display(self):
        assert IconDisplay.from_value(0x13) is IconDisplay.THREE_FRAMES
        assert IconDisplay.from_value(0x14) is IconDisplay.UNKNOWN

    def test_region_and_license(self):
        assert Region.from_byte(ord("E")) is Region.EUROPE
        assert Region.from_byte(0) is Region.UNKNOWN
        assert License.from_byte(ord("C")) is License.SONY
        assert License.from_byte(ord("X")) is License.UNKNOWN


# =============================================================================
# Record Serialization Tests
# =============================================================================

class TestRecords:
    """Tests for record layouts."""

    def test_header_layout(self):
        data = Header.card().to_bytes()
        assert len(data) == FRAME_SIZE
        assert data[:2] == b"MC"

    def test_directory_round_trip(self):
        raw = stamped(
            struct.pack("<IIH21s", 0x51, 8192, 0xFFFF, b"BASLUS-00000WILDARMS\x00")
        )
        frame = DirectoryFrame.from_bytes(raw)
        assert frame.get_block_state() is BlockState.ALLOC_FIRST
        assert frame.filesize == 8192
        assert frame.next_block == 0xFFFF
        assert frame.to_bytes() == raw

    def test_directory_free_defaults(self):
        frame = DirectoryFrame.free()
        assert frame.get_block_state() is BlockState.FREE
        assert frame.next_block == 0xFFFF

    def test_directory_bad_filename_length(self):
        frame = DirectoryFrame(filename=b"SHORT")
        with pytest.raises(ValueError):
            frame.to_bytes()

    def test_broken_frame(self):
        frame = BrokenFrame.unused()
        data = frame.to_bytes()
        assert data[:4] == b"\xff\xff\xff\xff"
        assert BrokenFrame.from_bytes(data).broken_frame == 0xFFFFFFFF

    def test_frame_wrong_size(self):
        with pytest.raises(ValueError):
            Frame(data=bytes(10))

    def test_short_record_raises(self):
        with pytest.raises(CardStructureError):
            DirectoryFrame.from_bytes(bytes(64))

    def test_title_frame(self, sample_palette):
        title = TitleFrame(display=0x12, block_num=1,
                           title=encode_title("Crash"), icon_palette=sample_palette)
        data = title.to_bytes()
        assert len(data) == FRAME_SIZE
        assert data[:2] == b"SC"
        assert data[2] == 0x12
        # Palette starts at offset 96
        assert struct.unpack_from("<H", data, 96)[0] == 0x001F

        parsed = TitleFrame.from_bytes(data)
        assert parsed.icon_count == 2
        assert parsed.get_icon_display() is IconDisplay.TWO_FRAMES
        assert parsed.decode_title() == "Crash"
        assert parsed.icon_palette == sample_palette

    def test_title_frame_palette_length(self):
        with pytest.raises(ValueError):
            TitleFrame(icon_palette=[0] * 15).to_bytes()

    def test_describe(self):
        title = TitleFrame(display=0x11, block_num=1, title=encode_title("Crash"))
        text = title.describe()
        assert "Filename: Crash" in text
        assert "ONE_FRAME" in text


# =============================================================================
# Region Info Tests
# =============================================================================

class TestRegionInfo:
    """Tests for filename-derived region info."""

    def test_american_licensed(self):
        frame = DirectoryFrame(filename=b"BASLUS-00000WILDARMS\x00")
        info = frame.region_info()
        assert info.region is Region.AMERICA
        assert info.license is License.LICENSED
        assert info.name == "WILDARMS"

    def test_japanese_sony(self):
        frame = DirectoryFrame(filename=b"BISCPS-10000FF7".ljust(21, b"\x00"))
        info = frame.region_info()
        assert info.region is Region.JAPAN
        assert info.license is License.SONY
        assert info.name == "FF7"

    def test_empty_filename(self):
        info = DirectoryFrame().region_info()
        assert info.region is Region.UNKNOWN
        assert info.license is License.UNKNOWN
        assert info.name == ""

    def test_invalid_utf8(self):
        frame = DirectoryFrame(filename=b"BASLUS-00000\xff\xfe".ljust(21, b"\x00"))
        with pytest.raises(TextDecodeError):
            frame.region_info()

    def test_describe_survives_invalid_utf8(self):
        frame = DirectoryFrame(filename=b"BASLUS-00000\xff".ljust(21, b"\x00"))
        assert "State: FREE" in frame.describe()
