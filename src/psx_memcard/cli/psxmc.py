"""
psxmc - Memory Card Command-Line Interface
==========================================

This module implements the command-line interface for PlayStation memory
card images.

Commands
--------
- **info**: Show the card summary and directory table
- **find**: Search save titles
- **export**: Export save icons as PNG/GIF images
- **validate**: Check size and frame checksums
- **resave**: Load a card and write it back with fresh checksums
- **format**: Write a blank formatted card

Usage Examples
--------------
Show the directory:
    $ psxmc info epsxe000.mcr

Search for a game:
    $ psxmc find epsxe000.mcr "wild arms"

Export all icons, 4x upscaled:
    $ psxmc export -o ./icons/ --scale 4 epsxe000.mcr

Validate a card:
    $ psxmc validate epsxe000.mcr
"""

import sys
from pathlib import Path
from typing import Optional

import click

from psx_memcard import __version__
from psx_memcard.card import (
    BLOCK_SIZE,
    CARD_SIZE,
    FRAME_SIZE,
    FRAMES_PER_BLOCK,
    BlockState,
    MemCard,
    verify_checksum,
)
from psx_memcard.cli.errors import ExitCode, handle_cli_exception, setup_logging
from psx_memcard.config import ExportConfig
from psx_memcard.errors import MemCardError, TextDecodeError


CARD_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.version_option(__version__, "--version", "-V", prog_name="psxmc")
def main() -> None:
    """
    PlayStation memory card tool.

    Inspect, search, re-save and format raw memory card images
    (.mcr / .mcd) and export save icons.

    \b
    Commands:
      info      Show card summary and directory
      find      Search save titles
      export    Export save icons as PNG/GIF
      validate  Check size and frame checksums
      resave    Load and write back with fresh checksums
      format    Write a blank formatted card

    \b
    Examples:
      psxmc info epsxe000.mcr
      psxmc find epsxe000.mcr wild
      psxmc export -o ./icons/ epsxe000.mcr
    """
    pass


# =============================================================================
# Info Command
# =============================================================================

@main.command("info")
@click.argument("card_file", type=CARD_FILE)
@click.option("-a", "--all", "show_all", is_flag=True,
              help="Show every slot, not just the first block of each save")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def cmd_info(card_file: Path, show_all: bool, verbose: bool) -> None:
    """
    Show the card summary and directory table.

    \b
    Example:
      psxmc info epsxe000.mcr
    """
    setup_logging(verbose)
    try:
        card = MemCard.open(card_file)
        info = card.get_info()

        click.echo(f"Memory Card: {card_file}")
        click.echo("=" * 40)
        click.echo(f"Header:      {info['header_id']}")
        click.echo(f"Saves:       {info['save_count']}")
        click.echo(f"Used blocks: {info['used_blocks']}")
        click.echo(f"Free blocks: {info['free_blocks']}")
        if info["broken_frames"]:
            broken = ", ".join(str(n) for n in info["broken_frames"])
            click.echo(f"Broken:      {broken}")
        click.echo()

        click.echo(
            f"{'Slot':>4} {'State':<12} {'Size':>7} {'Reg':<8} {'Lic':<9} "
            f"{'Product':<10} {'Icon':<13} Title"
        )
        click.echo("-" * 78)

        for index, directory, block in card.iter_slots():
            state = directory.get_block_state()
            if state is not BlockState.ALLOC_FIRST:
                if show_all:
                    click.echo(f"{index:>4} {state.name:<12}")
                continue

            try:
                region = directory.region_info()
                reg, lic, product = region.region.name, region.license.name, region.name
            except TextDecodeError:
                reg, lic, product = "?", "?", "<invalid>"

            icon = block.title_frame.get_icon_display().name
            click.echo(
                f"{index:>4} {state.name:<12} {directory.filesize:>7} {reg:<8} "
                f"{lic:<9} {product:<10} {icon:<13} {block.decode_title()}"
            )

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


# =============================================================================
# Find Command
# =============================================================================

@main.command("find")
@click.argument("card_file", type=CARD_FILE)
@click.argument("term")
@click.option("-v", "--verbose", is_flag=True, help="Show title frame details")
def cmd_find(card_file: Path, term: str, verbose: bool) -> None:
    """
    Search save titles (case-insensitive substring match).

    \b
    Example:
      psxmc find epsxe000.mcr wild
    """
    setup_logging(verbose)
    try:
        card = MemCard.open(card_file)
        matches = card.find_game(term)

        if not matches:
            click.echo(f"No saves matching '{term}'")
            sys.exit(ExitCode.CARD_ERROR)

        for block in matches:
            if verbose:
                click.echo(block.title_frame.describe())
                click.echo()
            else:
                click.echo(block.decode_title())

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


# =============================================================================
# Export Command
# =============================================================================

@main.command("export")
@click.argument("card_file", type=CARD_FILE)
@click.option(
    "-o", "--output",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: $PSXMC_EXPORT_DIR or current directory)",
)
@click.option("-t", "--title", "term", help="Only export saves whose title contains this")
@click.option("--no-png", is_flag=True, help="Skip per-frame PNG files")
@click.option("--no-gif", is_flag=True, help="Skip animated GIF files")
@click.option(
    "--scale",
    type=click.IntRange(1, ExportConfig.MAX_SCALE),
    default=None,
    help="Upscale factor for the 16x16 icons",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def cmd_export(
    card_file: Path,
    output: Optional[Path],
    term: Optional[str],
    no_png: bool,
    no_gif: bool,
    scale: Optional[int],
    verbose: bool,
) -> None:
    """
    Export save icons as PNG frames and animated GIFs.

    \b
    Examples:
      psxmc export epsxe000.mcr
      psxmc export -o ./icons/ -t wild --scale 4 epsxe000.mcr
    """
    setup_logging(verbose)
    try:
        config = ExportConfig.from_env()
        if output is not None:
            config.output_dir = output
        if no_png:
            config.write_png = False
        if no_gif:
            config.write_gif = False
        if scale is not None:
            config.scale = scale

        card = MemCard.open(card_file)
        written = card.export_all_images(config, needle=term)

        if verbose:
            for path in written:
                click.echo(f"  {path}")
        click.echo(f"Exported {len(written)} files to {config.output_dir}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Export")


# =============================================================================
# Validate Command
# =============================================================================

@main.command("validate")
@click.argument("card_file", type=CARD_FILE)
@click.option("-v", "--verbose", is_flag=True, help="Show validation details")
def cmd_validate(card_file: Path, verbose: bool) -> None:
    """
    Validate a card image.

    Checks:
    - File size (131072 bytes)
    - Checksum of every frame in the directory block
    - Full parse of all 16 blocks

    \b
    Example:
      psxmc validate epsxe000.mcr
    """
    setup_logging(verbose)
    try:
        data = card_file.read_bytes()
        errors = []
        warnings = []

        if len(data) < CARD_SIZE:
            errors.append(f"File too small ({len(data)} bytes, expected {CARD_SIZE})")
        elif len(data) > CARD_SIZE:
            warnings.append(f"File has {len(data) - CARD_SIZE} trailing bytes")

        if len(data) >= BLOCK_SIZE:
            bad = [
                i for i in range(FRAMES_PER_BLOCK)
                if not verify_checksum(data[i * FRAME_SIZE:(i + 1) * FRAME_SIZE])
            ]
            for i in bad:
                errors.append(f"Frame {i}: checksum mismatch")
            if verbose and not bad:
                click.echo(f"  Directory checksums: OK ({FRAMES_PER_BLOCK} frames)")

        if not errors:
            try:
                card = MemCard.from_bytes(data)
                if verbose:
                    click.echo(f"  Saves: {len(list(card.iter_saves()))}")
            except MemCardError as e:
                errors.append(f"Parse error: {e}")

        if errors:
            click.echo("Validation FAILED:")
            for error in errors:
                click.echo(f"  ERROR: {error}")
            sys.exit(ExitCode.CARD_ERROR)
        elif warnings:
            click.echo("Validation passed with warnings:")
            for warning in warnings:
                click.echo(f"  WARNING: {warning}")
        else:
            click.echo(f"Validation PASSED: {card_file}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


# =============================================================================
# Resave Command
# =============================================================================

@main.command("resave")
@click.argument("card_file", type=CARD_FILE)
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def cmd_resave(card_file: Path, output: Path, verbose: bool) -> None:
    """
    Load a card and write it back out, recomputing all checksums.

    \b
    Example:
      psxmc resave epsxe000.mcr copy.mcr
    """
    setup_logging(verbose)
    try:
        card = MemCard.open(card_file)
        written = card.write(output)
        click.echo(f"Wrote {output} ({written} bytes)")
    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


# =============================================================================
# Format Command
# =============================================================================

@main.command("format")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("-f", "--force", is_flag=True, help="Overwrite an existing file")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def cmd_format(output: Path, force: bool, verbose: bool) -> None:
    """
    Write a blank, formatted card image.

    \b
    Example:
      psxmc format blank.mcr
    """
    setup_logging(verbose)
    try:
        if output.exists() and not force:
            raise click.BadParameter(f"{output} exists (use --force to overwrite)")
        written = MemCard.blank().write(output)
        click.echo(f"Formatted {output} ({written} bytes)")
    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
