#!/usr/bin/env python3
"""
Command-line wrapper for framed serialization of raw files.
"""

import argparse
import logging
import sys
from pathlib import Path

from errors import SerializationError
from formats.registry import DEFAULT_REGISTRY
from framed_serialization import FramedSerializer
from serializer_configs import SerializerConfig
from transformers import BytesTransformer

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    """Parse command line arguments."""
    format_names = [fmt.name for fmt in DEFAULT_REGISTRY.formats()]

    parser = argparse.ArgumentParser(
        description="Frame files with a self-describing compression tag",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pack.py encode data.bin data.fs              # Store uncompressed
  pack.py encode -auto data.bin data.fs        # Smallest candidate format
  pack.py encode --format xz+huffman in out    # Explicit format
  pack.py decode data.fs data.bin              # Restore the original bytes
  pack.py inspect data.fs                      # Show tag and format
  pack.py benchmark data.bin                   # Compare every candidate
        """
    )

    parser.add_argument('command', choices=['encode', 'decode', 'inspect', 'benchmark'],
                        help='Operation to perform')
    parser.add_argument('input', help='Input file')
    parser.add_argument('output', nargs='?', help='Output file (encode/decode)')

    # Compression modes
    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument('-none', action='store_const', dest='mode', const='none',
                            help='No compression (default)')
    mode_group.add_argument('-auto', action='store_const', dest='mode', const='auto',
                            help='Pick the smallest candidate format')
    mode_group.add_argument('--format', dest='mode', choices=format_names, metavar='NAME',
                            help=f"Explicit format: {', '.join(format_names)}")

    parser.add_argument('--config', type=Path,
                        help='JSON configuration file')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose logging')

    args = parser.parse_args(argv)
    if args.command in ('encode', 'decode') and not args.output:
        parser.error(f"{args.command} requires an output file")
    return args


def run(args) -> int:
    config = SerializerConfig.from_json_file(args.config) if args.config else SerializerConfig.from_env()
    serializer = FramedSerializer(config, transformer=BytesTransformer())

    if args.command == 'encode':
        data = Path(args.input).read_bytes()
        fmt = serializer.serialize(data, args.output, args.mode)
        info = serializer.inspect(args.output)
        print(f"{args.input}: {len(data):,} -> {info.size:,} bytes as {fmt} (tag 0x{info.tag:02x})")

    elif args.command == 'decode':
        data = serializer.deserialize(args.input)
        Path(args.output).write_bytes(data)
        print(f"{args.output}: {len(data):,} bytes restored")

    elif args.command == 'inspect':
        info = serializer.inspect(args.input, decode=True)
        print(f"File:    {args.input}")
        print(f"Tag:     0x{info.tag:02x}")
        print(f"Format:  {info.format_name}")
        print(f"Size:    {info.size:,} bytes")
        print(f"Payload: {info.raw_size:,} bytes (ratio {info.compression_ratio:.3f})")

    elif args.command == 'benchmark':
        data = Path(args.input).read_bytes()
        result = serializer.selector.select(data)
        print(f"{args.input}: {len(data):,} bytes, {len(result.trials)} candidates\n")
        print(result.report())
        print(f"\nSmallest: {result.winner} ({result.size:,} bytes)")

    return 0


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        sys.exit(run(args))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(1)
    except (SerializationError, OSError, EOFError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        # Codec library errors (lzma.LZMAError, zlib.error, ...) arrive unwrapped
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
