# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Export pipeline

Composition root that turns an (original, rendered) pair into a file
ready to save: JPEG and PNG renders get the original's metadata merged
in, AVIF renders are handed to the configured encoder. Metadata loss
never prevents delivery of the image.

Copyright 2025 DNAi inc.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from metamerge.byte_utils import BytesLike
from metamerge.config import ExportConfig
from metamerge.exceptions import FeatureDisabledError, MetaMergeError
from metamerge.jpeg_merge import merge_jpeg_metadata
from metamerge.png_merge import try_merge_png_metadata

logger = logging.getLogger(__name__)

MIME_TYPES = {
    'jpg': 'image/jpeg',
    'png': 'image/png',
    'avif': 'image/avif',
}


def export_file_name(node_name: Optional[str], scale: float, extension: str) -> str:
    """``<name>@<scale>x.<ext>``, with ``export`` as the fallback name."""
    scale_text = f"{scale:g}" if isinstance(scale, float) else str(scale)
    return f"{node_name or 'export'}@{scale_text}x.{extension}"


@dataclass
class ExportResult:
    data: bytes
    mime_type: str
    file_name: str
    metadata_merged: bool
    message: str = ""


class Exporter:
    """Export entry points configured once at startup."""

    def __init__(self, config: Optional[ExportConfig] = None):
        self.config = config or ExportConfig()

    def export_jpeg(self, original: BytesLike, rendered: BytesLike,
                    node_name: Optional[str] = None, scale: float = 1) -> ExportResult:
        """
        Merge the original's metadata into a rendered JPEG.

        A merge failure falls back to the plain rendered bytes.
        """
        file_name = export_file_name(node_name, scale, 'jpg')
        try:
            merged = merge_jpeg_metadata(original, rendered)
        except MetaMergeError as e:
            logger.warning("JPEG metadata merge failed, exporting plain JPEG: %s", e)
            return ExportResult(bytes(rendered), MIME_TYPES['jpg'], file_name, False,
                                "Failed to merge metadata. Exported plain JPEG instead.")
        return ExportResult(merged, MIME_TYPES['jpg'], file_name, True)

    def export_png(self, original: BytesLike, rendered: BytesLike,
                   node_name: Optional[str] = None, scale: float = 1) -> ExportResult:
        """Carry EXIF/XMP from the original JPEG into a rendered PNG."""
        file_name = export_file_name(node_name, scale, 'png')
        outcome = try_merge_png_metadata(original, rendered)
        merged = outcome.ok and bool(outcome.inserted)
        message = "" if outcome.ok else "Failed to merge metadata. Exported plain PNG instead."
        return ExportResult(outcome.data, MIME_TYPES['png'], file_name, merged, message)

    def export_avif(self, original: BytesLike, rendered_png: BytesLike,
                    node_name: Optional[str] = None, scale: float = 1) -> ExportResult:
        """
        Encode a rendered PNG as AVIF with the configured encoder.

        Metadata is not injected into AVIF output; ``original`` is accepted
        so callers use the same shape as the other exports.

        Raises:
            FeatureDisabledError: If AVIF export is off or has no encoder
        """
        if not self.config.avif_enabled:
            raise FeatureDisabledError("AVIF export is disabled in this configuration")
        if self.config.avif_encoder is None:
            raise FeatureDisabledError("AVIF export is enabled but no encoder is configured")

        options = self.config.avif_options()
        encoded = self.config.avif_encoder.encode(bytes(rendered_png), options)
        if not encoded:
            raise MetaMergeError("AVIF encoder returned an empty buffer")

        logger.info("AVIF encoded at speed %d; metadata from the original (%d bytes) is not embedded",
                    options['speed'], len(original))
        return ExportResult(bytes(encoded), MIME_TYPES['avif'],
                            export_file_name(node_name, scale, 'avif'), False)
