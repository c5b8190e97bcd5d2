# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
JPEG metadata merge

Moves the metadata-bearing segments (EXIF/XMP, ICC, IPTC, comments) of
an original JPEG into a freshly rendered JPEG. Only header segments are
rearranged; the rendered scan data is copied untouched.

Copyright 2025 DNAi inc.
"""

import logging
from typing import List

from metamerge.byte_utils import BytesLike, concat_bytes
from metamerge.exceptions import FormatMismatchError
from metamerge.jpeg_segments import (
    APP0, APP1, APP2, APP13, COM, SOI_BYTES, JpegSegment, has_soi, scan_segments,
)

logger = logging.getLogger(__name__)

# APP1 (EXIF/XMP), APP2 (ICC), APP13 (IPTC), COM
METADATA_MARKERS = frozenset((APP1, APP2, APP13, COM))


def metadata_segments(segments: List[JpegSegment]) -> List[JpegSegment]:
    """Every metadata-bearing segment, in stream order (not first-match only)."""
    return [segment for segment in segments if segment.marker in METADATA_MARKERS]


def merge_jpeg_metadata(original: BytesLike, rendered: BytesLike) -> bytes:
    """
    Merge the metadata segments of ``original`` into ``rendered``.

    Output layout:
    1. SOI
    2. The rendered leading APP0 (JFIF), if present
    3. All APP1/APP2/APP13/COM segments from the original, in order
    4. Remaining rendered segments minus its own metadata segments
    5. Rendered scan data from SOS to end of buffer, byte for byte

    Args:
        original: Source JPEG that holds the metadata
        rendered: Freshly exported JPEG that holds the pixels

    Returns:
        Merged JPEG bytes

    Raises:
        FormatMismatchError: If either input is not a JPEG stream
    """
    if not has_soi(original):
        raise FormatMismatchError("Original image is not a JPEG")
    if not has_soi(rendered):
        raise FormatMismatchError("Rendered image is not a JPEG")

    keep_from_original = metadata_segments(scan_segments(original).segments)
    rendered_layout = scan_segments(rendered)
    rendered_segments = rendered_layout.segments

    parts = [SOI_BYTES]

    first = 0
    if rendered_segments and rendered_segments[0].marker == APP0:
        parts.append(rendered_segments[0].range.view(rendered))
        first = 1

    for segment in keep_from_original:
        parts.append(segment.range.view(original))

    skipped = 0
    for segment in rendered_segments[first:]:
        if segment.marker in METADATA_MARKERS:
            skipped += 1
            continue
        parts.append(segment.range.view(rendered))

    parts.append(memoryview(rendered)[rendered_layout.scan_offset:])

    logger.debug("Merged %d metadata segment(s) from original, dropped %d from render",
                 len(keep_from_original), skipped)
    return concat_bytes(parts)
