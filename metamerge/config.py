# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Export configuration

Settings handed to the Exporter at startup. Whether AVIF export is
available, and which encoder performs it, is decided here rather than
by a module-level switch.

Copyright 2025 DNAi inc.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol


class ImageEncoder(Protocol):
    """
    Opaque pixel encoder.

    ``encode`` receives the rendered pixels (for AVIF, a PNG buffer) and
    encoder options, and returns the encoded container bytes.
    """

    def encode(self, pixels: bytes, options: Dict[str, Any]) -> bytes:
        ...


DEFAULT_AVIF_QUALITY = 50


def clamp_speed(speed: int) -> int:
    return max(0, min(10, int(speed)))


def avif_speed_for_quality(quality: int) -> int:
    """
    Map a 0-100 quality to an encoder speed of 0 (slowest) to 10 (fastest).

    Quality 100 gives speed 0 and quality 0 gives speed 10.
    """
    return clamp_speed(math.floor(10 * (1 - quality / 100) + 0.5))


@dataclass
class ExportConfig:
    """
    Configuration for an Exporter.

    Attributes:
        avif_enabled: Allow AVIF export at all
        avif_encoder: Encoder strategy used for AVIF export
        avif_quality: Quality 0-100, converted to an encoder speed
        avif_speed: Explicit encoder speed 0-10, overriding the quality mapping
    """
    avif_enabled: bool = False
    avif_encoder: Optional[ImageEncoder] = None
    avif_quality: int = DEFAULT_AVIF_QUALITY
    avif_speed: Optional[int] = None

    def avif_options(self) -> Dict[str, Any]:
        if self.avif_speed is not None:
            speed = clamp_speed(self.avif_speed)
        else:
            speed = avif_speed_for_quality(self.avif_quality)
        return {'quality': self.avif_quality, 'speed': speed}
