# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Byte buffer helpers

Index-pair views into immutable buffers, concatenation, bounds-checked
big-endian reads and the CRC-32 used by PNG chunks (via zlib).

Copyright 2025 DNAi inc.
"""

import struct
import zlib
from dataclasses import dataclass
from typing import Iterable, Union

from metamerge.exceptions import TruncatedDataError

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class ByteRange:
    """A half-open ``[start, end)`` index pair into a buffer owned elsewhere."""
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def view(self, buffer: BytesLike) -> memoryview:
        """Return a zero-copy view of this range within ``buffer``."""
        return memoryview(buffer)[self.start:self.end]

    def slice(self, buffer: BytesLike) -> bytes:
        """Return a copy of this range within ``buffer``."""
        return bytes(buffer[self.start:self.end])


def concat_bytes(parts: Iterable[BytesLike]) -> bytes:
    """
    Concatenate bytes-like parts into one new buffer.
    
    Args:
        parts: bytes, bytearray or memoryview pieces in output order
        
    Returns:
        A freshly allocated bytes object
    """
    out = bytearray()
    for part in parts:
        out.extend(part)
    return bytes(out)


def crc32(data: BytesLike, crc: int = 0) -> int:
    """
    Compute the CRC-32 of ``data`` as defined for PNG chunks.
    
    Pass a previous result as ``crc`` to continue a running checksum.
    
    Args:
        data: Bytes to checksum
        crc: Running CRC from an earlier call (0 to start fresh)
        
    Returns:
        Unsigned 32-bit CRC
    """
    return zlib.crc32(data, crc) & 0xFFFFFFFF


def read_u16_be(data: BytesLike, offset: int) -> int:
    """Read a big-endian u16, raising TruncatedDataError past the buffer end."""
    if offset < 0 or offset + 2 > len(data):
        raise TruncatedDataError(f"u16 read at offset {offset} exceeds buffer of {len(data)} bytes")
    return struct.unpack('>H', data[offset:offset + 2])[0]


def read_u32_be(data: BytesLike, offset: int) -> int:
    """Read a big-endian u32, raising TruncatedDataError past the buffer end."""
    if offset < 0 or offset + 4 > len(data):
        raise TruncatedDataError(f"u32 read at offset {offset} exceeds buffer of {len(data)} bytes")
    return struct.unpack('>I', data[offset:offset + 4])[0]


def decode_utf8(data: BytesLike) -> str:
    """
    Decode UTF-8 text leniently.
    
    Falls back to a hand-rolled decoder for 1, 2 and 3 byte sequences
    if the codec path fails; invalid or 4-byte lead bytes are skipped.
    """
    raw = bytes(data)
    try:
        return raw.decode('utf-8', errors='replace')
    except (LookupError, UnicodeError):
        return decode_utf8_fallback(raw)


def decode_utf8_fallback(data: BytesLike) -> str:
    """Decode UTF-8 without the codec machinery, skipping malformed bytes."""
    raw = bytes(data)
    chars = []
    i = 0
    n = len(raw)
    while i < n:
        byte = raw[i]
        if byte < 0x80:
            chars.append(chr(byte))
            i += 1
        elif (byte & 0xE0) == 0xC0 and i + 1 < n:
            chars.append(chr(((byte & 0x1F) << 6) | (raw[i + 1] & 0x3F)))
            i += 2
        elif (byte & 0xF0) == 0xE0 and i + 2 < n:
            chars.append(chr(((byte & 0x0F) << 12) | ((raw[i + 1] & 0x3F) << 6) | (raw[i + 2] & 0x3F)))
            i += 3
        else:
            i += 1
    return ''.join(chars)
