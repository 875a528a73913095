"""
---
version: 0.1.0
created: 2026-10-19
updated: 2026-10-19
---

cipher_game.py — Command-line front end for the times-table cipher.

Keeps the player's settings (grid size, seed, last inputs) in a JSON
state file, regenerates the decoding table from them, and encodes or
decodes text.

Sections:
  1. Settings (sanitize, load, save)
  2. Actions (encode, decode, worksheet, key, stats)
  3. Main

Usage:
    python3 cipher_game.py --encode "meet me at noon"
    python3 cipher_game.py --decode "6x12 3x9 1x10"
    python3 cipher_game.py --grid-size 10 --seed 7 --grid --key
    python3 cipher_game.py --stats --no-save
    python3 cipher_game.py                      # re-run stored inputs
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict, dataclass
from pathlib import Path

from timescipher import (
    DEFAULT_GRID_SIZE, DEFAULT_SEED, MAX_GRID_SIZE, MIN_GRID_SIZE,
    DecodingTable,
    decode, encode, format_frequency_report, format_grid, format_key,
    generate_decoding_table, table_frequency_test,
)

logger = logging.getLogger(__name__)

SETTINGS_FILE = Path(os.environ.get("TIMESCIPHER_SETTINGS", "cipher_game_settings.json"))


# ============================================================================
# 1. SETTINGS
# ============================================================================

@dataclass
class Settings:
    grid_size: int = DEFAULT_GRID_SIZE
    seed: int = DEFAULT_SEED
    encode_input: str = ""
    decode_input: str = ""


def sanitize_grid_size(value: object) -> int:
    """
    Parse a grid size, falling back to DEFAULT_GRID_SIZE.

    Non-numeric values and sizes outside [MIN_GRID_SIZE, MAX_GRID_SIZE]
    give the default.
    """
    try:
        size = int(value)
    except (TypeError, ValueError):
        return DEFAULT_GRID_SIZE
    if not MIN_GRID_SIZE <= size <= MAX_GRID_SIZE:
        return DEFAULT_GRID_SIZE
    return size


def sanitize_seed(value: object) -> int:
    """Parse a seed; any integer is accepted, anything else gives DEFAULT_SEED."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return DEFAULT_SEED


def load_settings(settings_file: Path) -> Settings:
    """
    Load settings from a JSON state file.

    A missing file gives the defaults. Numeric settings are sanitized;
    input text is kept verbatim.
    """
    if not settings_file.exists():
        return Settings()
    try:
        with open(settings_file, encoding="utf-8") as f:
            state = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SystemExit(f"Cannot read settings file {settings_file}: {e}")
    if not isinstance(state, dict):
        raise SystemExit(f"Settings file {settings_file} does not hold a JSON object")
    return Settings(
        grid_size=sanitize_grid_size(state.get("grid_size")),
        seed=sanitize_seed(state.get("seed")),
        encode_input=str(state.get("encode_input", "")),
        decode_input=str(state.get("decode_input", "")),
    )


def save_settings(settings: Settings, settings_file: Path) -> None:
    with open(settings_file, "w", encoding="utf-8") as f:
        json.dump(asdict(settings), f, indent=2)


# ============================================================================
# 2. ACTIONS
# ============================================================================

def run_encode(message: str, table: DecodingTable) -> str:
    encoded = encode(message, table)
    print(f"Plaintext: {message}")
    print(f"Encoded:   {encoded}")
    return encoded


def run_decode(message: str, table: DecodingTable) -> str:
    decoded = decode(message, table)
    print(f"Facts:     {message}")
    print(f"Decoded:   {decoded}")
    return decoded


def show_table(table: DecodingTable, settings: Settings, grid: bool, key: bool, stats: bool) -> None:
    """Print the worksheet, the letter key and/or the frequency report."""
    title = f"GRID {settings.grid_size}x{settings.grid_size}, SEED {settings.seed}"
    if grid:
        print("=" * 70)
        print(f"WORKSHEET: {title}")
        print("=" * 70)
        print(format_grid(table, settings.grid_size))
        print()
    if key:
        print("=" * 70)
        print(f"KEY: {title}")
        print("=" * 70)
        print(format_key(table, settings.grid_size))
        print()
    if stats:
        print("=" * 70)
        print(f"LETTER SUPPLY: {title}")
        print("=" * 70)
        print(format_frequency_report(table_frequency_test(table, settings.grid_size)))
        print()


# ============================================================================
# MAIN
# ============================================================================

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Times-table cipher: write messages as multiplication facts"
    )
    parser.add_argument("--grid-size", type=str, default=None,
                        help=f"Grid size ({MIN_GRID_SIZE}-{MAX_GRID_SIZE}, default {DEFAULT_GRID_SIZE})")
    parser.add_argument("--seed", type=str, default=None,
                        help=f"Table seed (any integer, default {DEFAULT_SEED})")
    parser.add_argument("--encode", type=str, default=None, metavar="TEXT",
                        help="Encode TEXT as multiplication facts")
    parser.add_argument("--decode", type=str, default=None, metavar="FACTS",
                        help="Decode multiplication facts back to text")
    parser.add_argument("--grid", action="store_true", help="Print the grid worksheet")
    parser.add_argument("--key", action="store_true", help="Print the facts for every letter")
    parser.add_argument("--stats", action="store_true", help="Print letter supply statistics")
    parser.add_argument("--settings", type=str, default=None,
                        help=f"Settings file (default {SETTINGS_FILE})")
    parser.add_argument("--no-save", action="store_true", help="Do not write the settings file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

    settings_file = Path(args.settings) if args.settings else SETTINGS_FILE
    settings = load_settings(settings_file)

    if args.grid_size is not None:
        size = sanitize_grid_size(args.grid_size)
        try:
            requested = int(args.grid_size)
        except ValueError:
            requested = None
        if requested != size:
            print(f"Grid size {args.grid_size!r} outside {MIN_GRID_SIZE}-{MAX_GRID_SIZE}; "
                  f"using {size}", file=sys.stderr)
        settings.grid_size = size
    if args.seed is not None:
        settings.seed = sanitize_seed(args.seed)
    if args.encode is not None:
        settings.encode_input = args.encode
    if args.decode is not None:
        settings.decode_input = args.decode

    table = generate_decoding_table(settings.grid_size, settings.seed)
    logger.info("Table ready: grid_size=%d seed=%d", settings.grid_size, settings.seed)

    show_table(table, settings, args.grid, args.key, args.stats)

    explicit = args.encode is not None or args.decode is not None
    shown = args.grid or args.key or args.stats
    if args.encode is not None or (not explicit and not shown and settings.encode_input):
        run_encode(settings.encode_input, table)
    if args.decode is not None or (not explicit and not shown and settings.decode_input):
        run_decode(settings.decode_input, table)
    if not explicit and not shown and not (settings.encode_input or settings.decode_input):
        print("Nothing to do: pass --encode, --decode, --grid, --key or --stats.")

    if not args.no_save:
        save_settings(settings, settings_file)
        logger.debug("Settings saved to %s", settings_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
