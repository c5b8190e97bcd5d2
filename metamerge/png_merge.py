# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
PNG metadata merge

Carries EXIF and XMP from an original JPEG into a rendered PNG as
PNG-native chunks:

- EXIF becomes an ``eXIf`` chunk holding the TIFF structure
  (the APP1 payload minus its ``Exif\\0\\0`` marker)
- XMP becomes an uncompressed ``iTXt`` chunk keyed ``XML:com.adobe.xmp``

ICC profiles are detected but not carried over: ``iCCP`` requires a
deflate-compressed profile, which this engine does not produce.

Metadata is best-effort on this path. ``merge_png_metadata`` never
raises; any failure returns the rendered bytes unchanged.

Copyright 2025 DNAi inc.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from metamerge.byte_utils import BytesLike, concat_bytes
from metamerge.exceptions import MetadataWriteError
from metamerge.jpeg_segments import (
    APP1, APP2, EXIF_HEADER, has_soi, is_exif_payload, is_icc_payload,
    is_xmp_payload, parse_segments,
)
from metamerge.png_chunks import (
    CHUNK_EXIF, CHUNK_IHDR, CHUNK_ITXT, PNG_SIGNATURE, XMP_KEYWORD,
    PngChunk, build_itxt_payload, encode_chunk, itxt_keyword, parse_chunks,
)
from metamerge.xmp_parser import locate_xmp_packet

logger = logging.getLogger(__name__)


@dataclass
class JpegMetadataPayloads:
    """Raw metadata payloads lifted from a JPEG's APP1/APP2 segments."""
    exif: Optional[bytes] = None
    xmp: Optional[bytes] = None
    icc: Optional[bytes] = None


@dataclass
class MergeOutcome:
    """Result of the inner PNG merge pipeline."""
    ok: bool
    data: bytes
    error: Optional[str] = None
    inserted: List[bytes] = field(default_factory=list)


def extract_jpeg_payloads(original: BytesLike) -> JpegMetadataPayloads:
    """
    Pull the first EXIF, XMP and ICC payloads out of a JPEG.

    Only APP1 and APP2 segments are looked at. Non-JPEG input yields an
    empty result.
    """
    payloads = JpegMetadataPayloads()
    if not has_soi(original):
        return payloads

    for segment in parse_segments(original):
        if segment.marker == APP1:
            payload = segment.payload_range.slice(original)
            if is_exif_payload(payload):
                if payloads.exif is None:
                    payloads.exif = payload
            elif is_xmp_payload(payload):
                if payloads.xmp is None:
                    payloads.xmp = payload
        elif segment.marker == APP2 and payloads.icc is None:
            payload = segment.payload_range.slice(original)
            if is_icc_payload(payload):
                payloads.icc = payload

    return payloads


def insertion_index(chunks: List[PngChunk]) -> int:
    """
    Index right after IHDR.

    IHDR must be the first chunk, so this is always ahead of the first
    IDAT, and still valid for a stream with no IDAT yet.

    Raises:
        MetadataWriteError: If the stream does not start with IHDR
    """
    if not chunks or chunks[0].chunk_type != CHUNK_IHDR:
        raise MetadataWriteError("PNG stream does not start with an IHDR chunk")
    return 1


def _is_replaced(chunk: PngChunk, rendered: BytesLike, new_types: List[bytes]) -> bool:
    if chunk.chunk_type == CHUNK_EXIF:
        return CHUNK_EXIF in new_types
    if chunk.chunk_type == CHUNK_ITXT and CHUNK_ITXT in new_types:
        return itxt_keyword(chunk, rendered) == XMP_KEYWORD
    return False


def _merge_png(original: BytesLike, rendered: BytesLike) -> MergeOutcome:
    try:
        payloads = extract_jpeg_payloads(original)
        chunks = parse_chunks(rendered)
        index = insertion_index(chunks)

        new_chunks = []
        new_types = []
        if payloads.exif is not None:
            tiff = payloads.exif[len(EXIF_HEADER):]
            if tiff:
                new_chunks.append(encode_chunk(CHUNK_EXIF, tiff))
                new_types.append(CHUNK_EXIF)

        if payloads.xmp is not None:
            packet = locate_xmp_packet(payloads.xmp)
            if packet:
                new_chunks.append(encode_chunk(CHUNK_ITXT, build_itxt_payload(XMP_KEYWORD, packet)))
                new_types.append(CHUNK_ITXT)

        if payloads.icc is not None:
            logger.info("ICC profile found (%d bytes) but not embedded: iCCP needs a compressed profile",
                        len(payloads.icc))

        if not new_chunks:
            return MergeOutcome(ok=True, data=bytes(rendered))

        parts = [PNG_SIGNATURE]
        parts.extend(chunk.range.view(rendered) for chunk in chunks[:index])
        parts.extend(new_chunks)
        parts.extend(
            chunk.range.view(rendered)
            for chunk in chunks[index:]
            if not _is_replaced(chunk, rendered, new_types)
        )
        # Bytes past the last whole chunk (truncated data or a trailer after IEND)
        parts.append(memoryview(rendered)[chunks[-1].end:])
        return MergeOutcome(ok=True, data=concat_bytes(parts), inserted=new_types)
    except Exception as e:
        return MergeOutcome(ok=False, data=bytes(rendered), error=f"{type(e).__name__}: {e}")


def try_merge_png_metadata(original: BytesLike, rendered: BytesLike) -> MergeOutcome:
    """
    Run the PNG merge pipeline and report the outcome instead of raising.

    On failure ``outcome.data`` is the rendered input, unchanged.
    """
    outcome = _merge_png(original, rendered)
    if not outcome.ok:
        logger.warning("PNG metadata merge failed, keeping rendered image: %s", outcome.error)
    elif outcome.inserted:
        logger.debug("Inserted PNG chunks: %s", [t.decode('latin-1') for t in outcome.inserted])
    return outcome


def merge_png_metadata(original: BytesLike, rendered: BytesLike) -> bytes:
    """
    Inject EXIF and XMP from a JPEG ``original`` into a PNG ``rendered``.

    Args:
        original: Source JPEG that holds the metadata
        rendered: Freshly rendered PNG

    Returns:
        PNG bytes with the metadata chunks inserted after IHDR, or
        ``rendered`` unchanged if anything goes wrong
    """
    return try_merge_png_metadata(original, rendered).data
