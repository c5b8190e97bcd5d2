# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Command-line interface for metamerge

  metamerge info IMAGE [--width W --height H] [--json]
  metamerge merge ORIGINAL RENDERED -o OUTPUT

Copyright 2025 DNAi inc.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from metamerge.exceptions import MetaMergeError
from metamerge.exporter import Exporter
from metamerge.jpeg_segments import has_soi
from metamerge.metadata_reader import Dimensions, read_metadata
from metamerge.png_chunks import has_signature
from metamerge.summary import format_summary, summarize_metadata

logger = logging.getLogger(__name__)


def detect_container(data: bytes) -> Optional[str]:
    """Container type from magic bytes: 'JPEG', 'PNG' or None."""
    if has_soi(data):
        return 'JPEG'
    if has_signature(data):
        return 'PNG'
    return None


def cmd_info(args: argparse.Namespace) -> int:
    data = Path(args.image).read_bytes()
    dimensions = None
    if args.width is not None and args.height is not None:
        dimensions = Dimensions(args.width, args.height)

    metadata = read_metadata(data, dimensions)
    if args.json:
        print(json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(format_summary(summarize_metadata(metadata)))
    return 0


def cmd_merge(args: argparse.Namespace) -> int:
    original = Path(args.original).read_bytes()
    rendered = Path(args.rendered).read_bytes()
    exporter = Exporter()

    container = detect_container(rendered)
    if container == 'JPEG':
        result = exporter.export_jpeg(original, rendered)
    elif container == 'PNG':
        result = exporter.export_png(original, rendered)
    else:
        print(f"Error: {args.rendered} is neither JPEG nor PNG", file=sys.stderr)
        return 1

    Path(args.output).write_bytes(result.data)
    if result.message:
        print(result.message, file=sys.stderr)
    status = "with metadata" if result.metadata_merged else "without metadata"
    print(f"Wrote {args.output} ({result.mime_type}, {len(result.data)} bytes, {status})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='metamerge',
        description='Read image metadata and carry it from an original image into a rendered export.',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command')
    subparsers.required = True

    info = subparsers.add_parser('info', help='Show the metadata of a JPEG image')
    info.add_argument('image', help='Image file')
    info.add_argument('--width', type=int, help='Pixel width to report')
    info.add_argument('--height', type=int, help='Pixel height to report')
    info.add_argument('--json', action='store_true', help='Output metadata in JSON format')
    info.set_defaults(func=cmd_info)

    merge = subparsers.add_parser('merge', help='Merge metadata from ORIGINAL into RENDERED')
    merge.add_argument('original', help='Original JPEG holding the metadata')
    merge.add_argument('rendered', help='Rendered JPEG or PNG holding the pixels')
    merge.add_argument('-o', '--output', required=True, help='Output file')
    merge.set_defaults(func=cmd_merge)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        return args.func(args)
    except (OSError, MetaMergeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
