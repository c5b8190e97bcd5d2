# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
ICC profile summary

Reads the header and description of an ICC profile carried in a JPEG
APP2 payload. Only the first APP2 chunk is inspected; multi-chunk
profiles still report their header fields.

Copyright 2025 DNAi inc.
"""

import logging
import struct
from typing import Any, Dict, Optional

from metamerge.byte_utils import BytesLike
from metamerge.jpeg_segments import ICC_HEADER

logger = logging.getLogger(__name__)

# "ICC_PROFILE\0" + chunk sequence number + chunk count
APP2_ICC_PREFIX_SIZE = len(ICC_HEADER) + 2
ICC_HEADER_SIZE = 128

COMMON_PROFILES = (
    'sRGB IEC61966-2.1',
    'Adobe RGB',
    'Display P3',
    'Rec. 2020',
    'ProPhoto RGB',
)


def _text(raw: bytes) -> str:
    return raw.decode('latin-1').replace('\x00', '').strip()


def _read_description(profile: bytes) -> Optional[str]:
    """Description from the 'desc' tag (v2 textDescriptionType or v4 mluc)."""
    if len(profile) < ICC_HEADER_SIZE + 4:
        return None

    tag_count = struct.unpack('>I', profile[128:132])[0]
    for index in range(min(tag_count, 256)):
        entry = 132 + index * 12
        if entry + 12 > len(profile):
            break
        signature, offset, size = struct.unpack('>4sII', profile[entry:entry + 12])
        if signature != b'desc':
            continue
        if offset + size > len(profile) or size < 12:
            return None

        tag = profile[offset:offset + size]
        tag_type = tag[:4]
        if tag_type == b'desc':
            count = struct.unpack('>I', tag[8:12])[0]
            return _text(tag[12:12 + count]) or None
        if tag_type == b'mluc' and size >= 28:
            record_count = struct.unpack('>I', tag[8:12])[0]
            if record_count == 0:
                return None
            length, text_offset = struct.unpack('>II', tag[20:28])
            text = tag[text_offset:text_offset + length]
            return text.decode('utf-16-be', errors='replace').replace('\x00', '').strip() or None
        return None
    return None


def _find_common_profile(profile: bytes) -> Optional[str]:
    as_text = profile.decode('latin-1')
    for name in COMMON_PROFILES:
        if name in as_text:
            return name
    return None


def parse_icc(payload: BytesLike) -> Dict[str, Any]:
    """
    Summarize an ICC profile from an APP2 payload.

    Args:
        payload: APP2 payload, with or without the "ICC_PROFILE" prefix

    Returns:
        Dictionary with ``present`` and, where readable, ``size``,
        ``device_class``, ``color_space`` and ``description``
    """
    info: Dict[str, Any] = {'present': True}
    raw = bytes(payload)
    profile = raw[APP2_ICC_PREFIX_SIZE:] if raw.startswith(ICC_HEADER) else raw

    try:
        if len(profile) >= 4:
            info['size'] = struct.unpack('>I', profile[:4])[0]
        if len(profile) >= 20:
            info['device_class'] = _text(profile[12:16])
            info['color_space'] = _text(profile[16:20])

        description = _read_description(profile) or _find_common_profile(profile)
        if description:
            info['description'] = description
    except (struct.error, UnicodeDecodeError) as e:
        logger.debug("ICC profile description unreadable: %s", e)

    return info
