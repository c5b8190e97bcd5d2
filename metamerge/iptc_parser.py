# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
IPTC metadata parser

This module decodes IPTC-IIM records from a JPEG APP13 payload. Two
encodings are read from the same buffer, and both passes always run:

- IIM records nested in a Photoshop "8BIM" resource block (ID 0x0404)
- IIM records found directly by their 0x1C tag marker

Each record is 0x1C, dataset number, record number, a 2-byte big-endian
size and the data. Only the Application dataset (2) is interpreted.

Copyright 2025 DNAi inc.
"""

import logging
import struct
from typing import Any, Dict

from metamerge.byte_utils import BytesLike, decode_utf8

logger = logging.getLogger(__name__)

PHOTOSHOP_HEADER = b'Photoshop 3.0'
PHOTOSHOP_HEADER_SIZE = 14  # "Photoshop 3.0\0"
RESOURCE_SIGNATURE = b'8BIM'
IPTC_RESOURCE_ID = 0x0404
IIM_TAG_MARKER = 0x1C
APPLICATION_DATASET = 2

# Application dataset record numbers -> field name
IPTC_RECORDS = {
    5: 'object_name',
    25: 'keywords',
    40: 'instructions',
    55: 'date_created',
    60: 'time_created',
    80: 'byline',
    90: 'city',
    92: 'sub_location',
    95: 'province_state',
    101: 'country',
    105: 'headline',
    110: 'credit',
    116: 'contact',
    120: 'caption',
}

HEADLINE_RECORD = 105
OBJECT_NAME_RECORD = 5
KEYWORDS_RECORD = 25


def _apply_record(fields: Dict[str, Any], record: int, value: str) -> None:
    """Store one decoded record following the field precedence rules."""
    name = IPTC_RECORDS.get(record)
    if name is None or not value:
        return

    if record == HEADLINE_RECORD:
        fields['headline'] = value
    elif record == OBJECT_NAME_RECORD:
        # Object name only stands in for a missing headline
        fields.setdefault('headline', value)
    elif record == KEYWORDS_RECORD:
        keywords = fields.setdefault('keywords', [])
        if value not in keywords:
            keywords.append(value)
    else:
        fields.setdefault(name, value)


def parse_iim_records(data: bytes, start: int, fields: Dict[str, Any]) -> int:
    """
    Scan ``data`` from ``start`` for IIM records and apply them to ``fields``.

    Non-application records and records with an implausible size are
    stepped over one byte at a time, so a corrupt length never causes
    valid records further on to be skipped.

    Returns:
        Number of application records decoded
    """
    decoded = 0
    offset = start
    size = len(data)

    while offset < size - 5:
        if data[offset] != IIM_TAG_MARKER or data[offset + 1] != APPLICATION_DATASET:
            offset += 1
            continue

        record = data[offset + 2]
        data_size = struct.unpack('>H', data[offset + 3:offset + 5])[0]
        data_start = offset + 5

        if data_size == 0 or data_size >= 65536 or data_start + data_size > size:
            logger.debug("Invalid IPTC record size %d at offset %d, skipping", data_size, offset)
            offset += 1
            continue

        value = decode_utf8(data[data_start:data_start + data_size]).replace('\x00', '').strip()
        _apply_record(fields, record, value)
        decoded += 1
        offset = data_start + data_size

    return decoded


def _parse_resource_blocks(data: bytes, start: int, fields: Dict[str, Any]) -> None:
    """Decode IIM records inside every 8BIM resource with ID 0x0404."""
    size = len(data)
    for i in range(start, size - 8):
        if data[i:i + 4] != RESOURCE_SIGNATURE:
            continue

        resource_id = struct.unpack('>H', data[i + 4:i + 6])[0]
        if resource_id != IPTC_RESOURCE_ID:
            continue

        # Pascal-string name, padded so that length byte + name is even
        name_len = data[i + 6]
        offset = i + 7 + name_len
        if name_len % 2 == 0:
            offset += 1

        if offset + 4 > size:
            continue
        block_size = struct.unpack('>I', data[offset:offset + 4])[0]
        block_start = offset + 4
        block_end = block_start + block_size
        if block_end > size:
            logger.debug("8BIM IPTC block at %d overruns segment (%d > %d)", i, block_end, size)
            continue

        count = parse_iim_records(data[block_start:block_end], 0, fields)
        logger.debug("Decoded %d IPTC record(s) from 8BIM block at offset %d", count, i)


def parse_iptc(segment: BytesLike) -> Dict[str, Any]:
    """
    Decode IPTC fields from an APP13 payload or a bare IIM stream.

    Args:
        segment: APP13 payload (optionally starting with "Photoshop 3.0\\0")

    Returns:
        Dictionary with any of headline, caption, credit, byline, contact,
        instructions, sub_location, date_created, time_created, city,
        province_state, country and keywords (list)
    """
    data = bytes(segment)
    fields: Dict[str, Any] = {}

    search_start = 0
    if data.startswith(PHOTOSHOP_HEADER) and len(data) >= PHOTOSHOP_HEADER_SIZE:
        search_start = PHOTOSHOP_HEADER_SIZE

    _parse_resource_blocks(data, search_start, fields)
    # The direct scan also runs when a resource block matched; the
    # precedence rules make re-reading the same records harmless.
    parse_iim_records(data, search_start, fields)

    return fields
