# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Unified metadata reader

Runs the EXIF, XMP, IPTC and ICC decoders over the segments of a source
JPEG and builds one read-only snapshot for display and for informing
merges.

Copyright 2025 DNAi inc.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Hashable, Mapping, Optional

from metamerge.byte_utils import BytesLike
from metamerge.exif_parser import parse_exif
from metamerge.icc_parser import parse_icc
from metamerge.iptc_parser import parse_iptc
from metamerge.jpeg_segments import (
    APP1, APP2, APP13, extract_app_payloads, has_soi, is_exif_payload, is_xmp_payload,
)
from metamerge.xmp_parser import parse_xmp

logger = logging.getLogger(__name__)

# Wider than the merge engine's window: some writers pad before the packet
XMP_DETECTION_WINDOW = 500

EXIF_SIGNAL_FIELDS = ('make', 'model', 'focal_length', 'date_time_original')
XMP_SIGNAL_FIELDS = ('title', 'description', 'keywords', 'headline', 'credit')
IPTC_SIGNAL_FIELDS = ('headline', 'credit', 'caption', 'keywords')


def looks_like_xmp(payload: BytesLike) -> bool:
    """
    XMP test used when reading: the usual signatures, or an XML
    declaration mentioning xmp, within the first 500 bytes.
    """
    if is_xmp_payload(payload, XMP_DETECTION_WINDOW):
        return True
    head = bytes(payload[:XMP_DETECTION_WINDOW])
    return b'<?xml' in head and b'xmp' in head


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int


def _freeze(fields: Optional[Dict[str, Any]]) -> Optional[Mapping[str, Any]]:
    if fields is None:
        return None
    return MappingProxyType({
        key: tuple(value) if isinstance(value, list) else value
        for key, value in fields.items()
    })


def _thaw(fields: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    if fields is None:
        return None
    return {
        key: list(value) if isinstance(value, tuple) else value
        for key, value in fields.items()
    }


@dataclass(frozen=True)
class UnifiedMetadata:
    """
    Read-only snapshot of everything decoded from one source image.

    Each block is None when the image carries no such segment; field
    maps are read-only and list values are stored as tuples.
    """
    dimensions: Optional[Dimensions]
    exif: Optional[Mapping[str, Any]] = None
    xmp: Optional[Mapping[str, Any]] = None
    iptc: Optional[Mapping[str, Any]] = None
    icc: Optional[Mapping[str, Any]] = None
    has_metadata: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-serializable copy of the snapshot."""
        dimensions = None
        if self.dimensions is not None:
            dimensions = {'width': self.dimensions.width, 'height': self.dimensions.height}
        return {
            'dimensions': dimensions,
            'exif': _thaw(self.exif),
            'xmp': _thaw(self.xmp),
            'iptc': _thaw(self.iptc),
            'icc': _thaw(self.icc),
            'has_metadata': self.has_metadata,
        }


def _has_any(fields: Optional[Dict[str, Any]], names) -> bool:
    return bool(fields) and any(fields.get(name) for name in names)


def read_metadata(data: BytesLike, dimensions: Optional[Dimensions] = None) -> UnifiedMetadata:
    """
    Build the unified metadata snapshot for a source image.

    Only JPEG sources carry decodable segments; anything else yields a
    snapshot with just the dimensions. The first EXIF APP1, first XMP
    APP1, first APP13 and first APP2 segment are used.

    Args:
        data: Source image bytes
        dimensions: Pixel size reported by the host, if known

    Returns:
        UnifiedMetadata snapshot
    """
    if not has_soi(data):
        return UnifiedMetadata(dimensions=dimensions)

    exif = None
    xmp = None
    for payload in extract_app_payloads(data, APP1):
        if len(payload) < 6:
            continue
        if is_exif_payload(payload):
            if exif is None:
                exif = parse_exif(payload)
        elif looks_like_xmp(payload):
            if xmp is None:
                xmp = parse_xmp(payload)

    iptc = None
    iptc_payloads = extract_app_payloads(data, APP13)
    if iptc_payloads:
        iptc = parse_iptc(iptc_payloads[0])

    icc = None
    icc_payloads = extract_app_payloads(data, APP2)
    if icc_payloads:
        icc = parse_icc(icc_payloads[0])

    has_metadata = (
        _has_any(exif, EXIF_SIGNAL_FIELDS)
        or _has_any(xmp, XMP_SIGNAL_FIELDS)
        or _has_any(iptc, IPTC_SIGNAL_FIELDS)
        or bool(icc and icc.get('present'))
    )

    logger.debug("Metadata read: exif=%s xmp=%s iptc=%s icc=%s",
                 exif is not None, xmp is not None, iptc is not None, icc is not None)

    return UnifiedMetadata(
        dimensions=dimensions,
        exif=_freeze(exif),
        xmp=_freeze(xmp),
        iptc=_freeze(iptc),
        icc=_freeze(icc),
        has_metadata=has_metadata,
    )


class MetadataSession:
    """
    Holds the snapshot for the currently active source image.

    The snapshot is rebuilt only when the active image identity changes.
    """

    def __init__(self):
        self.image_id: Optional[Hashable] = None
        self.metadata: Optional[UnifiedMetadata] = None

    def load(self, image_id: Hashable, data: BytesLike,
             dimensions: Optional[Dimensions] = None) -> UnifiedMetadata:
        if self.metadata is not None and image_id == self.image_id:
            return self.metadata
        self.metadata = read_metadata(data, dimensions)
        self.image_id = image_id
        return self.metadata

    def clear(self) -> None:
        self.image_id = None
        self.metadata = None
