# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
EXIF metadata parser

This module decodes the camera fields of an EXIF APP1 payload
("Exif\\0\\0" followed by a TIFF structure) into a flat dictionary.
Only IFD0 and the EXIF sub-IFD are read; the thumbnail IFD is not.

Copyright 2025 DNAi inc.
"""

import logging
import math
import struct
from enum import IntEnum
from typing import Any, Dict, Optional

from metamerge.byte_utils import BytesLike
from metamerge.exceptions import TruncatedDataError
from metamerge.jpeg_segments import EXIF_HEADER

logger = logging.getLogger(__name__)

# TIFF header starts right after "Exif\0\0"; all IFD offsets are relative to it
TIFF_BASE = 6
TIFF_MAGIC = 42
EXIF_IFD_POINTER = 0x8769


class ExifTagType(IntEnum):
    """EXIF tag data types"""
    BYTE = 1
    ASCII = 2
    SHORT = 3
    LONG = 4
    RATIONAL = 5
    UNDEFINED = 7
    SLONG = 9
    SRATIONAL = 10


# EXIF tag sizes in bytes
TAG_SIZES = {
    ExifTagType.BYTE: 1,
    ExifTagType.ASCII: 1,
    ExifTagType.SHORT: 2,
    ExifTagType.LONG: 4,
    ExifTagType.RATIONAL: 8,
    ExifTagType.UNDEFINED: 1,
    ExifTagType.SLONG: 4,
    ExifTagType.SRATIONAL: 8,
}

# Tag ID -> field name
EXIF_FIELDS = {
    0x010F: 'make',
    0x0110: 'model',
    0x0132: 'date_time',
    0x9003: 'date_time_original',
    0x920A: 'focal_length',
    0x829D: 'f_number',
    0x829A: 'exposure_time',
    0x8827: 'iso',
    0xA001: 'color_space',
    0x9207: 'metering_mode',
    0x8822: 'exposure_program',
}

METERING_MODES = {
    0: 'Unknown',
    1: 'Average',
    2: 'Center-weighted average',
    3: 'Spot',
    4: 'Multi-spot',
    5: 'Multi-segment',
    6: 'Partial',
    255: 'Other',
}

EXPOSURE_PROGRAMS = {
    0: 'Not defined',
    1: 'Manual',
    2: 'Normal program',
    3: 'Aperture priority',
    4: 'Shutter priority',
    5: 'Creative program',
    6: 'Action program',
    7: 'Portrait mode',
    8: 'Landscape mode',
}


def format_number(value: float) -> str:
    """Render a number the way it reads on a camera: no trailing ``.0``."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_exposure_time(seconds: float) -> Optional[str]:
    """``1/<n>`` below one second, otherwise the plain decimal."""
    if seconds <= 0:
        return None
    if seconds < 1:
        return f"1/{_round_half_up(1 / seconds)}"
    return format_number(seconds)


def format_color_space(value: int) -> str:
    if value == 1:
        return 'sRGB'
    if value == 0xFFFF:
        return 'Uncalibrated'
    return 'RGB'


class ExifParser:
    """
    Parser for the TIFF structure inside an EXIF APP1 payload.

    Byte order is taken from the "II"/"MM" marker and applies to every
    multi-byte read that follows.
    """

    def __init__(self, segment: BytesLike):
        """
        Initialize the EXIF parser.

        Args:
            segment: APP1 payload starting with "Exif\\0\\0"
        """
        self.data = bytes(segment)
        self.endian = '<'
        self.fields: Dict[str, Any] = {}
        self.next_ifd_offset: Optional[int] = None

    def parse(self) -> Dict[str, Any]:
        """
        Decode the known fields.

        Returns:
            Dictionary of decoded fields (first occurrence of a tag wins)

        Raises:
            TruncatedDataError: If a structure runs past the buffer; fields
                decoded before that point stay in ``self.fields``
        """
        data = self.data
        if len(data) < TIFF_BASE + 8 or data[:TIFF_BASE] != EXIF_HEADER:
            return self.fields

        byte_order = data[TIFF_BASE:TIFF_BASE + 2]
        if byte_order == b'II':
            self.endian = '<'
        elif byte_order == b'MM':
            self.endian = '>'
        else:
            return self.fields

        if self._u16(TIFF_BASE + 2) != TIFF_MAGIC:
            return self.fields

        ifd0_offset = TIFF_BASE + self._u32(TIFF_BASE + 4)
        exif_ifd_offset = self._parse_ifd(ifd0_offset, read_next=True)
        if exif_ifd_offset is not None and exif_ifd_offset != ifd0_offset:
            self._parse_ifd(exif_ifd_offset)

        return self.fields

    def _u16(self, offset: int) -> int:
        if offset + 2 > len(self.data):
            raise TruncatedDataError(f"EXIF u16 at {offset} past end of {len(self.data)} bytes")
        return struct.unpack(f'{self.endian}H', self.data[offset:offset + 2])[0]

    def _u32(self, offset: int) -> int:
        if offset + 4 > len(self.data):
            raise TruncatedDataError(f"EXIF u32 at {offset} past end of {len(self.data)} bytes")
        return struct.unpack(f'{self.endian}I', self.data[offset:offset + 4])[0]

    def _parse_ifd(self, ifd_offset: int, read_next: bool = False) -> Optional[int]:
        """
        Parse one IFD's entries into ``self.fields``.

        Args:
            ifd_offset: Absolute offset of the IFD within the payload
            read_next: Record the next-IFD pointer (not followed)

        Returns:
            Absolute offset of the EXIF sub-IFD if this IFD points to one
        """
        num_entries = self._u16(ifd_offset)
        entry_offset = ifd_offset + 2
        sub_ifd_offset = None

        for _ in range(num_entries):
            if entry_offset + 12 > len(self.data):
                break

            tag_id, tag_type, count, value_offset = struct.unpack(
                f'{self.endian}HHII',
                self.data[entry_offset:entry_offset + 12]
            )

            if tag_id == EXIF_IFD_POINTER:
                sub_ifd_offset = TIFF_BASE + value_offset
            elif tag_id in EXIF_FIELDS:
                value = self._read_tag_value(tag_type, count, value_offset, entry_offset + 8)
                self._store(EXIF_FIELDS[tag_id], value)

            entry_offset += 12

        if read_next and entry_offset + 4 <= len(self.data):
            self.next_ifd_offset = self._u32(entry_offset)

        return sub_ifd_offset

    def _read_tag_value(self, tag_type: int, count: int, value_offset: int, inline_offset: int) -> Any:
        """
        Read the value of an IFD entry.

        Values of four bytes or less sit in the entry itself; larger ones
        live at ``TIFF_BASE + value_offset``. Rationals reduce to the first
        value as a float, with a zero denominator giving 0.

        Returns:
            Decoded value, or None for unknown types and out-of-range data
        """
        try:
            tag_type_enum = ExifTagType(tag_type)
        except ValueError:
            return None

        if count == 0:
            return None

        total_size = TAG_SIZES[tag_type_enum] * count
        data_offset = inline_offset if total_size <= 4 else TIFF_BASE + value_offset
        if data_offset + total_size > len(self.data):
            return None

        data = self.data[data_offset:data_offset + total_size]

        if tag_type_enum == ExifTagType.ASCII:
            null_pos = data.find(b'\x00')
            if null_pos >= 0:
                data = data[:null_pos]
            try:
                return data.decode('utf-8').strip()
            except UnicodeDecodeError:
                return data.decode('latin-1').strip()

        if tag_type_enum == ExifTagType.UNDEFINED:
            return data
        if tag_type_enum == ExifTagType.BYTE:
            return data[0] if count == 1 else list(data)

        if tag_type_enum == ExifTagType.SHORT:
            values = struct.unpack(f'{self.endian}{count}H', data)
        elif tag_type_enum == ExifTagType.LONG:
            values = struct.unpack(f'{self.endian}{count}I', data)
        elif tag_type_enum == ExifTagType.SLONG:
            values = struct.unpack(f'{self.endian}{count}i', data)
        else:
            code = 'II' if tag_type_enum == ExifTagType.RATIONAL else 'ii'
            num, den = struct.unpack(f'{self.endian}{code}', data[:8])
            return num / den if den != 0 else 0

        return values[0] if count == 1 else list(values)

    def _store(self, name: str, value: Any) -> None:
        if name in self.fields or value is None:
            return

        if isinstance(value, list) and name == 'iso' and value:
            value = value[0]

        if name in ('make', 'model', 'date_time', 'date_time_original'):
            if isinstance(value, str) and value:
                self.fields[name] = value
            return

        if not _is_number(value):
            logger.debug("EXIF %s has non-numeric value %r; ignored", name, value)
            return

        if name == 'focal_length':
            self.fields[name] = f"{format_number(value)} mm"
        elif name == 'f_number':
            self.fields[name] = f"f/{format_number(value)}"
        elif name == 'exposure_time':
            formatted = format_exposure_time(value)
            if formatted:
                self.fields[name] = formatted
        elif name == 'iso':
            self.fields[name] = int(value)
        elif name == 'color_space':
            self.fields[name] = format_color_space(int(value))
        elif name == 'metering_mode':
            self.fields[name] = METERING_MODES.get(int(value), f"Mode {int(value)}")
        elif name == 'exposure_program':
            self.fields[name] = EXPOSURE_PROGRAMS.get(int(value), f"Program {int(value)}")


def parse_exif(segment: BytesLike) -> Dict[str, Any]:
    """
    Decode camera fields from an EXIF APP1 payload.

    Never raises: a truncated or malformed structure yields whatever
    fields were decoded before the problem.

    Args:
        segment: APP1 payload starting with "Exif\\0\\0"

    Returns:
        Dictionary with any of make, model, date_time, date_time_original,
        focal_length, f_number, exposure_time, iso, color_space,
        metering_mode and exposure_program
    """
    parser = ExifParser(segment)
    try:
        return parser.parse()
    except (TruncatedDataError, struct.error, ValueError) as e:
        logger.debug("EXIF parsing stopped early: %s", e)
        return parser.fields
