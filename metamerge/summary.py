# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Human-readable metadata summary

Turns a UnifiedMetadata snapshot into labelled sections, choosing
between IPTC and XMP where both carry the same concept.

Copyright 2025 DNAi inc.
"""

import re
from typing import Any, List, Optional, Tuple

from metamerge.metadata_reader import UnifiedMetadata

Section = Tuple[str, List[Tuple[str, str]]]

_DATE_RE = re.compile(r'^\d{8}$')
_TIME_RE = re.compile(r'^\d{6}')


def format_iptc_date(value: str) -> str:
    """YYYYMMDD -> YYYY-MM-DD; anything else is returned as is."""
    if _DATE_RE.match(value):
        return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"
    return value


def format_iptc_time(value: str) -> str:
    """HHMMSS[+-HHMM] -> HH:MM:SS [+-HHMM]; anything else is returned as is."""
    if not _TIME_RE.match(value):
        return value
    formatted = f"{value[0:2]}:{value[2:4]}:{value[4:6]}"
    if len(value) > 6:
        formatted += f" {value[6:]}"
    return formatted


def _get(block, name: str) -> Any:
    if not block:
        return None
    return block.get(name)


def _first(*values: Any) -> Optional[Any]:
    for value in values:
        if value:
            return value
    return None


class _SectionBuilder:
    def __init__(self, title: str):
        self.title = title
        self.items: List[Tuple[str, str]] = []

    def add(self, label: str, value: Any) -> None:
        if value is None or value == '' or value == () or value == []:
            return
        if isinstance(value, (list, tuple)):
            value = ', '.join(str(v) for v in value)
        self.items.append((label, str(value)))


def summarize_metadata(meta: UnifiedMetadata) -> List[Section]:
    """
    Build display sections from a metadata snapshot.

    Sections with no items are left out. Precedence where sources
    overlap: keywords XMP then IPTC, headline IPTC then XMP, description
    XMP then IPTC caption, credit IPTC then XMP.

    Returns:
        List of ``(title, [(label, value), ...])`` in display order
    """
    exif, xmp, iptc, icc = meta.exif, meta.xmp, meta.iptc, meta.icc

    general = _SectionBuilder('General')
    if meta.dimensions is not None:
        general.add('Dimensions', f"{meta.dimensions.width} × {meta.dimensions.height}")
    if _get(icc, 'description'):
        general.add('Color profile', icc['description'])
    elif _get(icc, 'present'):
        general.add('Color profile', 'Embedded')
    general.add('Color space', _get(exif, 'color_space'))

    descriptive = _SectionBuilder('Descriptive')
    descriptive.add('Keywords', _first(_get(xmp, 'keywords'), _get(iptc, 'keywords')))
    descriptive.add('Title', _get(xmp, 'title'))
    descriptive.add('Headline', _first(_get(iptc, 'headline'), _get(xmp, 'headline')))
    descriptive.add('Description', _first(_get(xmp, 'description'), _get(iptc, 'caption')))
    descriptive.add('Credit', _first(_get(iptc, 'credit'), _get(xmp, 'credit')))
    descriptive.add('Creator', _get(xmp, 'creator'))
    descriptive.add('By-line', _get(iptc, 'byline'))
    descriptive.add('Contact', _get(iptc, 'contact'))
    descriptive.add('Instructions', _get(iptc, 'instructions'))

    location = _SectionBuilder('Location')
    location.add('Sub-location', _get(iptc, 'sub_location'))
    location.add('City', _get(iptc, 'city'))
    location.add('State or Province', _get(iptc, 'province_state'))
    location.add('Region', _get(iptc, 'country'))

    date_time = _SectionBuilder('Date & Time')
    if _get(iptc, 'date_created'):
        date_time.add('Date created', format_iptc_date(iptc['date_created']))
    if _get(iptc, 'time_created'):
        date_time.add('Time created', format_iptc_time(iptc['time_created']))

    camera = _SectionBuilder('Camera')
    camera.add('Device make', _get(exif, 'make'))
    camera.add('Device model', _get(exif, 'model'))
    camera.add('Focal length', _get(exif, 'focal_length'))
    camera.add('F number', _get(exif, 'f_number'))
    camera.add('Exposure time', _get(exif, 'exposure_time'))
    camera.add('ISO speed', _get(exif, 'iso'))
    camera.add('Exposure program', _get(exif, 'exposure_program'))
    camera.add('Metering mode', _get(exif, 'metering_mode'))
    camera.add('Date taken', _first(_get(exif, 'date_time_original'), _get(exif, 'date_time')))

    sections = (general, descriptive, location, date_time, camera)
    return [(section.title, section.items) for section in sections if section.items]


def format_summary(sections: List[Section]) -> str:
    """Plain-text rendering of summary sections."""
    if not sections:
        return "No metadata found in this image."
    lines = []
    for title, items in sections:
        lines.append(f"[{title}]")
        for label, value in items:
            lines.append(f"  {label}: {value}")
    return "\n".join(lines)
