# kang/cli.py
"""
Command line entry point.

    kang compress [-l N] [--chunk-size BYTES] [--workers N] <input> <output>
    kang decompress [--workers N] <input> <output>
    kang inspect <archive>

<input> may be a single file or a directory; in directory mode every
.safetensors (compress) or .kang (decompress) file is converted into <output>
with the opposite extension.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from . import file as kang_file
from .batch import process_directory
from .config import KangConfig
from .convenience import compress_file, decompress_file
from .exceptions import KangConfigError, KangError
from .lowlevel import DEFAULT_LEVEL
from .planner import DEFAULT_CHUNK_SIZE
from .types import Command
from ._internal.logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on usage errors; this tool uses 1 for every failure."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="kang",
        description="AI model compressor (.safetensors <-> .kang).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging verbosity. Env: KANG_LOG_LEVEL (default: INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")

    compress = subparsers.add_parser(
        "compress", help="Compress a .safetensors file or a folder of them."
    )
    compress.add_argument(
        "-l", "--level", type=int,
        help=f"Compression level (1-19, default: {DEFAULT_LEVEL}). Env: KANG_LEVEL",
    )
    compress.add_argument(
        "--chunk-size", type=int,
        help=f"Tensor chunk size in bytes (default: {DEFAULT_CHUNK_SIZE}). Env: KANG_CHUNK_SIZE",
    )

    decompress = subparsers.add_parser(
        "decompress", help="Decompress a .kang file or a folder of them."
    )

    for sub in (compress, decompress):
        sub.add_argument(
            "--workers", type=int,
            help="Threads used to process chunks (default: 1). Env: KANG_WORKERS",
        )
        sub.add_argument("input", type=Path, help="Input file or directory.")
        sub.add_argument("output", type=Path, help="Output file or directory.")

    inspect = subparsers.add_parser("inspect", help="Print the framing of a .kang file.")
    inspect.add_argument("input", type=Path, help="Archive to inspect.")
    return parser


def _inspect(path: Path) -> int:
    with kang_file.open(path, "r") as reader:
        info = reader.info
        header = reader.read_header()
        compressed_total = sum(c.compressed_size for c in reader.chunks)
        print(f"archive:           {path}")
        print(f"header:            {len(header)} bytes ({info.compressed_header_size} compressed)")
        print(f"tensor data:       {info.original_tensor_size} bytes ({compressed_total} compressed)")
        print(f"chunks:            {info.num_chunks}")
        for chunk in reader.chunks:
            print(
                f"  [{chunk.index:>4}] {chunk.original_size:>12} -> {chunk.compressed_size:>12}"
                f"  ({chunk.compression_ratio:.3f})"
            )
    return EXIT_OK


def _convert(command: Command, input_path: Path, output_path: Path, config: KangConfig) -> int:
    if input_path.is_dir():
        report = process_directory(command, input_path, output_path, config=config)
        return EXIT_OK if report.ok else EXIT_FAILURE
    if input_path.is_file():
        if command == Command.COMPRESS:
            compress_file(input_path, output_path, config=config)
        else:
            decompress_file(input_path, output_path, config=config)
        return EXIT_OK
    logger.error("Input path is not a valid file or directory: %s", input_path)
    return EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help(sys.stderr)
        return EXIT_FAILURE

    try:
        config = KangConfig.from_env().with_overrides(
            level=getattr(args, "level", None),
            chunk_size=getattr(args, "chunk_size", None),
            workers=getattr(args, "workers", None),
            log_level=args.log_level,
        )
    except KangConfigError as e:
        print(f"kang: error: {e.message}", file=sys.stderr)
        return EXIT_FAILURE

    setup_logging(config.log_level)

    try:
        if args.command == "inspect":
            return _inspect(args.input)
        return _convert(Command[args.command.upper()], args.input, args.output, config)
    except KangError as e:
        logger.error("%s failed: %s", args.command.capitalize(), e)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
