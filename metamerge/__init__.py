# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
metamerge - image metadata carry-over for rendered exports

Reads EXIF, IPTC, XMP and ICC metadata from an originally uploaded
JPEG and moves it into a freshly rendered JPEG or PNG without touching
the rendered pixel data. Pure Python, working directly on the binary
container structures.

Copyright 2025 DNAi inc.
"""

__version__ = "0.1.0"
__author__ = "DNAi inc."

from metamerge.exceptions import (
    FeatureDisabledError,
    FormatMismatchError,
    MetaMergeError,
    MetadataWriteError,
    TruncatedDataError,
)
from metamerge.byte_utils import ByteRange, concat_bytes, crc32
from metamerge.jpeg_segments import JpegSegment, parse_segments
from metamerge.jpeg_merge import merge_jpeg_metadata
from metamerge.png_chunks import PngChunk, encode_chunk, parse_chunks
from metamerge.png_merge import merge_png_metadata, try_merge_png_metadata
from metamerge.exif_parser import parse_exif
from metamerge.iptc_parser import parse_iptc
from metamerge.xmp_parser import parse_xmp
from metamerge.icc_parser import parse_icc
from metamerge.metadata_reader import Dimensions, MetadataSession, UnifiedMetadata, read_metadata
from metamerge.summary import summarize_metadata
from metamerge.config import ExportConfig, ImageEncoder
from metamerge.exporter import ExportResult, Exporter

__all__ = [
    "MetaMergeError",
    "FormatMismatchError",
    "TruncatedDataError",
    "MetadataWriteError",
    "FeatureDisabledError",
    "ByteRange",
    "concat_bytes",
    "crc32",
    "JpegSegment",
    "parse_segments",
    "merge_jpeg_metadata",
    "PngChunk",
    "encode_chunk",
    "parse_chunks",
    "merge_png_metadata",
    "try_merge_png_metadata",
    "parse_exif",
    "parse_iptc",
    "parse_xmp",
    "parse_icc",
    "Dimensions",
    "MetadataSession",
    "UnifiedMetadata",
    "read_metadata",
    "summarize_metadata",
    "ExportConfig",
    "ImageEncoder",
    "ExportResult",
    "Exporter",
]
