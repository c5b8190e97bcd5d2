# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
PNG chunk model

Parses a PNG stream into length/type/data/CRC chunks and encodes new
chunks. Parsed chunks keep index pairs into the source buffer so that
untouched chunks can be re-emitted byte for byte.

Copyright 2025 DNAi inc.
"""

import logging
import struct
from dataclasses import dataclass
from typing import List

from metamerge.byte_utils import ByteRange, BytesLike, crc32, read_u32_be
from metamerge.exceptions import FormatMismatchError

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'

# PNG chunk types
CHUNK_IHDR = b'IHDR'
CHUNK_IEND = b'IEND'
CHUNK_EXIF = b'eXIf'  # EXIF data chunk (PNG 1.5 / extensions 1.5.0)
CHUNK_ITXT = b'iTXt'  # International text chunk (for XMP)

XMP_KEYWORD = 'XML:com.adobe.xmp'


@dataclass(frozen=True)
class PngChunk:
    """
    One chunk of a PNG stream.

    ``start`` is the offset of the length field; the encoded chunk spans
    ``12 + length`` bytes from there.
    """
    length: int
    chunk_type: bytes
    start: int
    data: ByteRange
    crc: int

    @property
    def end(self) -> int:
        return self.data.end + 4

    @property
    def range(self) -> ByteRange:
        return ByteRange(self.start, self.end)

    @property
    def type_name(self) -> str:
        return self.chunk_type.decode('latin-1')

    def crc_matches(self, buffer: BytesLike) -> bool:
        """Recompute CRC-32 over type and data and compare with the stored value."""
        return crc32(self.data.view(buffer), crc32(self.chunk_type)) == self.crc


def has_signature(data: BytesLike) -> bool:
    return bytes(data[:8]) == PNG_SIGNATURE


def parse_chunks(data: BytesLike) -> List[PngChunk]:
    """
    Parse the chunks of a PNG stream.

    Parsing stops after IEND, or before any chunk whose declared size
    runs past the end of the buffer.

    Args:
        data: Complete PNG byte stream

    Returns:
        Ordered list of chunks

    Raises:
        FormatMismatchError: If the PNG signature is missing
    """
    if not has_signature(data):
        raise FormatMismatchError("Invalid PNG data: bad signature")

    chunks = []
    size = len(data)
    offset = 8

    while offset + 8 <= size:
        length, chunk_type = struct.unpack('>I4s', data[offset:offset + 8])
        data_start = offset + 8
        data_end = data_start + length
        if data_end + 4 > size:
            logger.debug("PNG chunk %r at %d declares %d bytes past buffer end; stopping",
                         chunk_type, offset, length)
            break

        crc = read_u32_be(data, data_end)
        chunks.append(PngChunk(length, bytes(chunk_type), offset, ByteRange(data_start, data_end), crc))
        offset = data_end + 4

        if chunk_type == CHUNK_IEND:
            break

    return chunks


def encode_chunk(chunk_type: bytes, data: BytesLike) -> bytes:
    """
    Encode a PNG chunk with CRC.

    Args:
        chunk_type: Chunk type (4 ASCII bytes)
        data: Chunk data

    Returns:
        Complete chunk bytes (length + type + data + CRC)
    """
    if len(chunk_type) != 4:
        raise ValueError(f"PNG chunk type must be 4 bytes, got {chunk_type!r}")

    chunk = bytearray()
    chunk.extend(struct.pack('>I', len(data)))
    chunk.extend(chunk_type)
    chunk.extend(data)
    chunk.extend(struct.pack('>I', crc32(data, crc32(chunk_type))))
    return bytes(chunk)


def build_itxt_payload(keyword: str, text: bytes) -> bytes:
    """
    Build uncompressed iTXt chunk data.

    iTXt chunk format:
    - Keyword (null-terminated)
    - Compression flag (1 byte): 0 = uncompressed
    - Compression method (1 byte): 0
    - Language tag (null-terminated): empty
    - Translated keyword (null-terminated): empty
    - Text (UTF-8)
    """
    payload = bytearray()
    payload.extend(keyword.encode('latin-1'))
    payload.append(0)
    payload.append(0)  # compression flag
    payload.append(0)  # compression method
    payload.append(0)  # language tag
    payload.append(0)  # translated keyword
    payload.extend(text)
    return bytes(payload)


def itxt_keyword(chunk: PngChunk, buffer: BytesLike) -> str:
    """Keyword of an iTXt/tEXt chunk (bytes up to the first NUL)."""
    raw = chunk.data.slice(buffer)
    nul = raw.find(b'\x00')
    if nul >= 0:
        raw = raw[:nul]
    return raw.decode('latin-1')
