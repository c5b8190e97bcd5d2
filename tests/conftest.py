from __future__ import annotations

import sys
from pathlib import Path

import pytest

TESTS = Path(__file__).resolve().parent
ROOT = TESTS.parent

for candidate in (ROOT, TESTS):
    candidate_str = str(candidate)
    if candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

from image_builders import (  # noqa: E402
    make_exif_payload,
    make_iim_record,
    make_jpeg,
    make_png,
    make_segment,
    make_xmp_payload,
)


@pytest.fixture
def exif_payload() -> bytes:
    return make_exif_payload(
        ifd0={0x010F: ('ascii', 'Canon'), 0x0110: ('ascii', 'EOS R5')},
        exif_ifd={
            0x829A: ('rational', (1, 250)),
            0x829D: ('rational', (28, 10)),
            0x8827: ('short', 400),
            0x920A: ('rational', (50, 1)),
            0x9003: ('ascii', '2024:05:01 10:20:30'),
        },
    )


@pytest.fixture
def xmp_payload() -> bytes:
    return make_xmp_payload(
        '<dc:title><rdf:Alt><rdf:li xml:lang="x-default">Sunset</rdf:li></rdf:Alt></dc:title>'
        '<dc:subject><rdf:Bag><rdf:li>cat</rdf:li><rdf:li>dog</rdf:li></rdf:Bag></dc:subject>'
    )


@pytest.fixture
def iptc_payload() -> bytes:
    return (
        b'Photoshop 3.0\x00'
        + make_iim_record(105, b'Breaking news')
        + make_iim_record(110, b'Agency')
        + make_iim_record(25, b'harbor')
    )


@pytest.fixture
def original_jpeg(exif_payload, xmp_payload, iptc_payload) -> bytes:
    return make_jpeg(
        make_segment(0xE0, b'JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'),
        make_segment(0xE1, exif_payload),
        make_segment(0xE1, xmp_payload),
        make_segment(0xE2, b'ICC_PROFILE\x00\x01\x01' + b'\x00' * 20),
        make_segment(0xED, iptc_payload),
        make_segment(0xFE, b'original comment'),
        scan=b'\x11\x22\x33\x44',
    )


@pytest.fixture
def rendered_jpeg() -> bytes:
    return make_jpeg(
        make_segment(0xE0, b'JFIF\x00\x01\x02\x00\x00\x48\x00\x48\x00\x00'),
        make_segment(0xE1, b'Exif\x00\x00render-exif'),
        make_segment(0xDB, b'\x00' + bytes(range(64))),
        make_segment(0xC0, b'\x08\x00\x10\x00\x10\x03\x01\x22\x00\x02\x11\x01\x03\x11\x01'),
        scan=b'\xAA\xFF\x00\xBB\xFF\xD0\xCC',
    )


@pytest.fixture
def rendered_png() -> bytes:
    return make_png()
