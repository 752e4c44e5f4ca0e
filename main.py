"""
Huffman code table for a text file

Reads the file, builds the Huffman tree over its characters and prints one
row per symbol: symbol, frequency, code, bits

How to run:
  python main.py input.txt
  python main.py input.txt --show-frequencies --show-tree -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import huffman as huff

logger = logging.getLogger("huffman_table")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="huffman-table", description="Print the Huffman code table of a text file")
    ap.add_argument("input_file", type=str, help="UTF-8 text file to read")
    ap.add_argument("output_file", type=str, nargs="?", default=None,
                    help="Accepted for compatibility, the table is only printed")
    ap.add_argument("--show-frequencies", action="store_true", help="Print the symbol -> count mapping")
    ap.add_argument("--show-tree", action="store_true", help="Print the merge tree")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return ap


def run(args: argparse.Namespace) -> int:
    contents = Path(args.input_file).read_text(encoding="utf-8")
    logger.debug("read %d characters from %s", len(contents), args.input_file)

    frequency_table = huff.count_frequencies(contents)
    if args.show_frequencies:
        print(huff.format_frequencies(frequency_table))

    root = huff.build_huffman_tree(frequency_table)
    if root is None:
        print(f"Application Error: {args.input_file} is empty, no table producible", file=sys.stderr)
        return 1

    if args.show_tree:
        print(huff.format_tree(root))

    table = huff.assign_codes(root)
    print(table)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.output_file is not None:
        logger.warning("output file %s ignored, the table is printed to stdout", args.output_file)

    try:
        return run(args)
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("failed to read input", exc_info=True)
        print(f"Application Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
