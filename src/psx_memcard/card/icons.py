"""
Save Icon Translation
=====================

Save icons are 16x16 pixels at 4 bits per pixel, one 128-byte frame per
animation step. Each pixel indexes the 16-entry palette of the save's
TitleFrame.

Pixel Layout
------------
Each byte holds two pixels: the low nibble is the left pixel, the high
nibble the right one. Bytes run left to right, top to bottom.

Palette Format
--------------
Each palette entry is a 16-bit little-endian word:

    Bits 0-4    Red
    Bits 5-9    Green
    Bits 10-14  Blue
    Bit 15      Semi-transparency flag (ignored)

Channels are widened to 8 bits by multiplying by 8, so full intensity is
248, not 255. Alpha is always 255.

Image Encoding
--------------
RGBA buffers are encoded with Pillow: PNG for single frames, and an
infinitely looping GIF for animated icons.
"""

from pathlib import Path
from typing import Sequence, Union
import logging

from PIL import Image

from psx_memcard.card.records import FRAME_SIZE, PALETTE_SIZE, Frame
from psx_memcard.errors import ImageExportError

# Logger for this module
logger = logging.getLogger(__name__)

ICON_WIDTH = 16
ICON_HEIGHT = 16
RGBA_CHANNELS = 4
ICON_RGBA_SIZE = ICON_WIDTH * ICON_HEIGHT * RGBA_CHANNELS

_CHANNEL_MASK = 0x1F
_CHANNEL_SCALE = 8
_OPAQUE = 255


def palette_color_to_rgba(color: int) -> tuple[int, int, int, int]:
    """
    Convert one 15-bit palette entry to an RGBA tuple.

    Example:
        >>> palette_color_to_rgba(0x001F)
        (248, 0, 0, 255)
    """
    red = (color & _CHANNEL_MASK) * _CHANNEL_SCALE
    green = ((color >> 5) & _CHANNEL_MASK) * _CHANNEL_SCALE
    blue = ((color >> 10) & _CHANNEL_MASK) * _CHANNEL_SCALE
    return red, green, blue, _OPAQUE


def icon_to_rgba(icon: Union[Frame, bytes], palette: Sequence[int]) -> bytes:
    """
    Translate one icon frame to a flat RGBA buffer.

    Args:
        icon: The 128-byte icon frame (Frame or raw bytes)
        palette: The 16 palette words of the owning TitleFrame

    Returns:
        1024 bytes: 256 pixels x RGBA, row-major

    Raises:
        ValueError: If the icon is not 128 bytes or the palette is not
            16 entries
    """
    data = icon.data if isinstance(icon, Frame) else bytes(icon)
    if len(data) != FRAME_SIZE:
        raise ValueError(f"Icon frame must be {FRAME_SIZE} bytes, got {len(data)}")
    if len(palette) != PALETTE_SIZE:
        raise ValueError(
            f"Palette must have {PALETTE_SIZE} entries, got {len(palette)}"
        )

    colors = [palette_color_to_rgba(c) for c in palette]
    rgba = bytearray()
    for byte in data:
        rgba.extend(colors[byte & 0x0F])
        rgba.extend(colors[(byte >> 4) & 0x0F])
    return bytes(rgba)


# =============================================================================
# Image Encoding (Pillow)
# =============================================================================

def rgba_to_image(buffer: bytes, scale: int = 1) -> Image.Image:
    """
    Wrap a 1024-byte RGBA buffer in a Pillow image.

    Args:
        buffer: Output of icon_to_rgba()
        scale: Integer upscale factor (nearest neighbour)

    Returns:
        An RGBA Pillow image of 16*scale x 16*scale pixels
    """
    if len(buffer) != ICON_RGBA_SIZE:
        raise ValueError(
            f"RGBA buffer must be {ICON_RGBA_SIZE} bytes, got {len(buffer)}"
        )
    image = Image.frombytes("RGBA", (ICON_WIDTH, ICON_HEIGHT), bytes(buffer))
    if scale != 1:
        image = image.resize(
            (ICON_WIDTH * scale, ICON_HEIGHT * scale), Image.Resampling.NEAREST
        )
    return image


def write_png(buffer: bytes, path: Union[str, Path], scale: int = 1) -> Path:
    """
    Encode one RGBA icon frame as a PNG file.

    Raises:
        ImageExportError: If Pillow or the filesystem reports a failure
    """
    path = Path(path)
    try:
        rgba_to_image(buffer, scale).save(path, format="PNG")
    except (OSError, ValueError) as e:
        raise ImageExportError(f"Unable to encode PNG {path}: {e}") from e
    logger.debug(f"Wrote {path}")
    return path


def write_gif(
    buffers: Sequence[bytes],
    path: Union[str, Path],
    duration_ms: int = 160,
    scale: int = 1,
) -> Path:
    """
    Encode a sequence of RGBA icon frames as an infinitely looping GIF.

    Raises:
        ImageExportError: If there are no frames, or Pillow or the
            filesystem reports a failure
    """
    path = Path(path)
    if not buffers:
        raise ImageExportError(f"Unable to encode GIF {path}: no frames")

    try:
        frames = [rgba_to_image(b, scale) for b in buffers]
        frames[0].save(
            path,
            format="GIF",
            save_all=True,
            append_images=frames[1:],
            duration=duration_ms,
            loop=0,
            disposal=2,
        )
    except (OSError, ValueError) as e:
        raise ImageExportError(f"Unable to encode GIF {path}: {e}") from e
    logger.debug(f"Wrote {path} ({len(buffers)} frames)")
    return path
