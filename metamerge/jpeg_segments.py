# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
JPEG segment model

This module scans the marker segments of a JPEG stream up to the
start-of-scan marker. Segments are recorded as index pairs into the
caller's buffer; everything from SOS onward is opaque scan data.

Copyright 2025 DNAi inc.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from metamerge.byte_utils import ByteRange, BytesLike, read_u16_be
from metamerge.exceptions import FormatMismatchError

logger = logging.getLogger(__name__)

# JPEG markers (second byte after 0xFF)
SOI = 0xD8  # Start of Image
EOI = 0xD9  # End of Image
SOS = 0xDA  # Start of Scan
TEM = 0x01  # Temporary, no length
RST0 = 0xD0
RST7 = 0xD7
APP0 = 0xE0  # JFIF
APP1 = 0xE1  # EXIF / XMP
APP2 = 0xE2  # ICC profile
APP13 = 0xED  # IPTC (Photoshop IRB)
COM = 0xFE  # Comment

SOI_BYTES = b'\xff\xd8'
EXIF_HEADER = b'Exif\x00\x00'
XMP_NAMESPACE = b'http://ns.adobe.com/xap/1.0/'
ICC_HEADER = b'ICC_PROFILE\x00'

# Signatures that identify an APP1 payload as XMP rather than EXIF
XMP_SIGNATURES = (XMP_NAMESPACE, b'<?xpacket', b'x:xmpmeta')


def is_standalone_marker(marker: int) -> bool:
    """Markers that carry no length field (TEM and RST0-RST7)."""
    return marker == TEM or RST0 <= marker <= RST7


@dataclass(frozen=True)
class JpegSegment:
    """
    One marker segment of a JPEG stream.

    ``start``/``end`` cover the whole segment including the FF xx marker
    and, for non-standalone markers, the 2-byte length field. ``length``
    is the declared length (which counts the length field itself) or 0.
    """
    marker: int
    length: int
    start: int
    end: int

    @property
    def range(self) -> ByteRange:
        return ByteRange(self.start, self.end)

    @property
    def payload_range(self) -> ByteRange:
        """Bytes after the marker and length field."""
        if self.is_standalone:
            return ByteRange(self.end, self.end)
        return ByteRange(self.start + 4, self.end)

    @property
    def is_standalone(self) -> bool:
        return is_standalone_marker(self.marker)


@dataclass
class JpegLayout:
    """Result of a segment scan: the segments and where scan data begins."""
    segments: List[JpegSegment] = field(default_factory=list)
    # Offset of the SOS marker, or where scanning halted if none was reached
    scan_offset: int = 2
    found_sos: bool = False


def has_soi(data: BytesLike) -> bool:
    return len(data) >= 2 and data[0] == 0xFF and data[1] == SOI


def scan_segments(data: BytesLike) -> JpegLayout:
    """
    Scan JPEG marker segments starting after the SOI marker.

    Stops at SOS or EOI. A length field that would run past the end of
    the buffer halts the scan; segments found so far are kept.

    Args:
        data: Complete JPEG byte stream

    Returns:
        JpegLayout with the ordered segments and the scan-data offset

    Raises:
        FormatMismatchError: If the buffer does not start with SOI
    """
    if not has_soi(data):
        raise FormatMismatchError("Invalid JPEG data: missing SOI marker")

    layout = JpegLayout()
    size = len(data)
    i = 2

    while i + 4 <= size:
        if data[i] != 0xFF:
            # Fill or garbage byte between segments
            i += 1
            continue

        marker = data[i + 1]
        if marker == SOS or marker == EOI:
            layout.found_sos = marker == SOS
            layout.scan_offset = i
            return layout

        if is_standalone_marker(marker):
            layout.segments.append(JpegSegment(marker, 0, i, i + 2))
            i += 2
            continue

        length = read_u16_be(data, i + 2)
        end = i + 2 + length
        if length < 2 or end > size:
            logger.debug("JPEG segment 0x%02X at %d declares %d bytes past buffer end; stopping",
                         marker, i, length)
            break

        layout.segments.append(JpegSegment(marker, length, i, end))
        i = end

    layout.scan_offset = i
    return layout


def parse_segments(data: BytesLike) -> List[JpegSegment]:
    """
    Parse the marker segments of a JPEG stream up to SOS.

    Args:
        data: Complete JPEG byte stream

    Returns:
        Ordered list of segments

    Raises:
        FormatMismatchError: If the buffer does not start with SOI
    """
    return scan_segments(data).segments


def extract_app_payloads(data: BytesLike, marker: int) -> List[bytes]:
    """
    Return the payload of every segment carrying ``marker``.

    Non-JPEG input yields an empty list rather than an error.
    """
    if not has_soi(data):
        return []
    return [
        segment.payload_range.slice(data)
        for segment in parse_segments(data)
        if segment.marker == marker
    ]


def is_exif_payload(payload: BytesLike) -> bool:
    return bytes(payload[:6]) == EXIF_HEADER


def is_xmp_payload(payload: BytesLike, scan_length: int = 100) -> bool:
    """
    Check whether an APP1 payload holds an XMP packet.

    Looks for the Adobe namespace, an xpacket processing instruction or
    an x:xmpmeta element within the first ``scan_length`` bytes.
    """
    head = bytes(payload[:scan_length])
    return any(signature in head for signature in XMP_SIGNATURES)


def is_icc_payload(payload: BytesLike) -> bool:
    return bytes(payload[:len(ICC_HEADER)]) == ICC_HEADER
