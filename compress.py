"""
Command-line driver for the Huffman codec.

How to run:
  huffpack e notes.txt notes.txt.huff
  huffpack d notes.txt.huff notes.txt
  huffpack encode big.bin big.bin.huff -vv

Any mode starting with "e" encodes, any mode starting with "d" decodes.
The log level comes from HUFFPACK_LOG_LEVEL (a .env file is honoured) unless
-v/-vv is given.
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv

from codec import decode_file, encode_file
from errors import HuffmanError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "WARNING") -> None:
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Clear any existing handlers to avoid duplicate logs
    if root_logger.handlers:
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console_handler)


def parse_mode(value: str) -> str:
    mode = value.strip().lower()
    if mode.startswith("e"):
        return "encode"
    if mode.startswith("d"):
        return "decode"
    raise argparse.ArgumentTypeError(f"mode must start with 'e' (encode) or 'd' (decode), got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="huffpack", description="Static Huffman file compressor")
    ap.add_argument("mode", type=parse_mode, help="e(ncode) or d(ecode)")
    ap.add_argument("input", type=str, help="File to read")
    ap.add_argument("output", type=str, help="File to write")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG logging")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    if args.verbose >= 2:
        level = "DEBUG"
    elif args.verbose == 1:
        level = "INFO"
    else:
        level = os.getenv("HUFFPACK_LOG_LEVEL", "WARNING")
    configure_logging(level)

    try:
        if args.mode == "encode":
            result = encode_file(args.input, args.output)
            print(f"Reduced file size by {result.reduction_percent:f}%")
        else:
            result = decode_file(args.input, args.output)
            print(f"Decoded {result.decoded_size} bytes to {args.output}")
    except HuffmanError as e:
        logger.error("%s: %s", e.kind, e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
