"""
Icon Export Configuration
=========================

Settings for exporting save icons as images. Configuration can come from:
- Default values (defined here)
- Environment variables
- Command-line options (the psxmc CLI overrides individual fields)
"""

from dataclasses import dataclass, field
from pathlib import Path
import os


def _env_flag(value: str) -> bool | None:
    """Parse a boolean environment value, or None if unrecognized."""
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    return None


@dataclass
class ExportConfig:
    """
    Configuration for icon image export.

    Attributes:
        output_dir: Directory that receives the image files (default: ".")
        write_png: Write one PNG per icon frame (default: True)
        write_gif: Write a looping GIF for animated icons (default: True)
        gif_frame_ms: Display time of each GIF frame in ms (default: 160)
        scale: Integer upscale factor for the 16x16 icon, 1-16 (default: 1)
    """

    output_dir: Path = field(default_factory=lambda: Path("."))
    write_png: bool = True
    write_gif: bool = True

    # The console advances animated icons roughly every 10 vblanks
    gif_frame_ms: int = 160

    scale: int = 1

    MAX_SCALE = 16

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)
        if not 1 <= self.scale <= self.MAX_SCALE:
            raise ValueError(f"scale must be 1-{self.MAX_SCALE}, got {self.scale}")
        if self.gif_frame_ms <= 0:
            raise ValueError(f"gif_frame_ms must be positive, got {self.gif_frame_ms}")

    @classmethod
    def from_env(cls) -> "ExportConfig":
        """
        Create ExportConfig from environment variables.

        Environment variables (all optional):
            PSXMC_EXPORT_DIR: Output directory
            PSXMC_EXPORT_PNG: Write PNG frames (1/0, true/false)
            PSXMC_EXPORT_GIF: Write animated GIF (1/0, true/false)
            PSXMC_GIF_FRAME_MS: GIF frame duration in milliseconds
            PSXMC_EXPORT_SCALE: Upscale factor (1-16)

        Returns:
            ExportConfig with values from environment variables
        """
        config = cls()

        if output_dir := os.environ.get("PSXMC_EXPORT_DIR"):
            config.output_dir = Path(output_dir)

        if png := os.environ.get("PSXMC_EXPORT_PNG"):
            flag = _env_flag(png)
            if flag is not None:
                config.write_png = flag

        if gif := os.environ.get("PSXMC_EXPORT_GIF"):
            flag = _env_flag(gif)
            if flag is not None:
                config.write_gif = flag

        if frame_ms := os.environ.get("PSXMC_GIF_FRAME_MS"):
            try:
                value = int(frame_ms)
                if value > 0:
                    config.gif_frame_ms = value
            except ValueError:
                pass  # Ignore invalid values

        if scale := os.environ.get("PSXMC_EXPORT_SCALE"):
            try:
                value = int(scale)
                if 1 <= value <= cls.MAX_SCALE:
                    config.scale = value
            except ValueError:
                pass

        return config
