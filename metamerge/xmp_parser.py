# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
XMP (Extensible Metadata Platform) extractor

Lenient field extraction from an XMP packet embedded in a JPEG APP1
payload. The packet is not parsed as a tree: each field is looked up
through an ordered list of pattern matchers covering the shapes XMP
writers actually emit (bare element, namespaced element, rdf:Alt,
rdf:Bag and rdf:Seq wrappers).

Copyright 2025 DNAi inc.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from metamerge.byte_utils import BytesLike, decode_utf8
from metamerge.jpeg_segments import XMP_NAMESPACE

logger = logging.getLogger(__name__)

XML_DECLARATION_START = b'<?xm'
PACKET_START_MARKERS = (b'<?xpacket', b'<x:xmpmeta', b'<rdf:RDF')

_FLAGS = re.IGNORECASE | re.DOTALL
_TAG_RE = re.compile(r'<[^>]+>')
_LI_RE = re.compile(r'<rdf:li[^>]*>(.*?)</rdf:li>', _FLAGS)

XML_ENTITIES = (
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&quot;', '"'),
    ('&apos;', "'"),
    ('&amp;', '&'),  # last, so "&amp;lt;" becomes "&lt;" and not "<"
)


def clean_text(raw: str) -> str:
    """Strip nested tags, unescape the five XML entities and trim."""
    text = _TAG_RE.sub('', raw.strip())
    for entity, char in XML_ENTITIES:
        text = text.replace(entity, char)
    return text.strip()


class FieldMatcher:
    """A single pattern shape tried against the XMP text."""

    def __init__(self, pattern: str):
        self.pattern = pattern
        self.regex = re.compile(pattern, _FLAGS)

    def match(self, xml_text: str) -> Optional[str]:
        found = self.regex.search(xml_text)
        if found and found.group(1):
            return clean_text(found.group(1))
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pattern!r})"


class ElementMatcher(FieldMatcher):
    """Text content of ``<tag ...>text</tag>``."""

    def __init__(self, tag: str):
        super().__init__(rf'<{tag}[^>]*>(.*?)</{tag}>')


def _inside(tag: str) -> str:
    """Lazy run of any text that does not cross ``</tag>``."""
    return rf'(?:(?!</{tag}>).)*?'


class ListItemMatcher(FieldMatcher):
    """First ``rdf:li`` under ``<tag>``, optionally inside a given container."""

    def __init__(self, tag: str, container: Optional[str] = None):
        body = _inside(tag)
        if container:
            super().__init__(rf'<{tag}[^>]*>{body}<rdf:{container}>{body}<rdf:li[^>]*>(.*?)</rdf:li>')
        else:
            super().__init__(rf'<{tag}[^>]*>{body}<rdf:li[^>]*>(.*?)</rdf:li>')


_HEADLINE_OWNERS = '(?:photoshop|Iptc4xmpCore):Headline'

# Ordered alternatives per field; the first matcher that hits wins
FIELD_MATCHERS: Dict[str, Tuple[FieldMatcher, ...]] = {
    'headline': (
        ElementMatcher('photoshop:Headline'),
        ElementMatcher('Iptc4xmpCore:Headline'),
        ElementMatcher('Headline'),
        ListItemMatcher(_HEADLINE_OWNERS),
        ListItemMatcher(_HEADLINE_OWNERS, 'Alt'),
        ListItemMatcher('Headline'),
    ),
    'credit': (
        ElementMatcher('photoshop:Credit'),
        ElementMatcher('Credit'),
        ListItemMatcher('photoshop:Credit'),
        ListItemMatcher('photoshop:Credit', 'Alt'),
    ),
    'title': (
        ListItemMatcher('dc:title'),
        ListItemMatcher('title'),
        ElementMatcher('dc:title'),
        ElementMatcher('title'),
        ListItemMatcher('dc:title', 'Alt'),
    ),
    'description': (
        ListItemMatcher('dc:description'),
        ListItemMatcher('description'),
        ElementMatcher('dc:description'),
        ElementMatcher('description'),
        ListItemMatcher('dc:description', 'Alt'),
    ),
    'creator': (
        ListItemMatcher('dc:creator'),
        ElementMatcher('dc:creator'),
    ),
}

_SUBJECT_BODY = _inside('dc:subject')
_SUBJECT_CONTAINERS = (
    re.compile(rf'<dc:subject[^>]*>{_SUBJECT_BODY}<rdf:Bag>.*?</rdf:Bag>', _FLAGS),
    re.compile(rf'<dc:subject[^>]*>{_SUBJECT_BODY}<rdf:Seq>.*?</rdf:Seq>', _FLAGS),
)
_SUBJECT_SIMPLE = re.compile(rf'<dc:subject[^>]*>{_SUBJECT_BODY}<rdf:li[^>]*>(.*?)</rdf:li>', _FLAGS)


def match_field(xml_text: str, field_name: str) -> Optional[str]:
    """Run one field's matcher cascade and return the first non-empty hit."""
    for matcher in FIELD_MATCHERS[field_name]:
        value = matcher.match(xml_text)
        if value:
            return value
    return None


def extract_keywords(xml_text: str) -> List[str]:
    """
    Collect ``dc:subject`` keywords.

    Every rdf:li inside the first Bag/Seq wrapper is used; without a
    wrapper, falls back to repeated ``<dc:subject>...<rdf:li>`` matches.
    """
    for container in _SUBJECT_CONTAINERS:
        block = container.search(xml_text)
        if block:
            keywords = [clean_text(item) for item in _LI_RE.findall(block.group(0))]
            return [keyword for keyword in keywords if keyword]

    keywords = [clean_text(item) for item in _SUBJECT_SIMPLE.findall(xml_text)]
    return [keyword for keyword in keywords if keyword]


def locate_xmp_packet(payload: BytesLike) -> Optional[bytes]:
    """
    Find the XMP document inside an APP1 payload.

    The document starts at the first ``<?xm`` (XML declaration). Packets
    written without one start at the earliest xpacket instruction,
    x:xmpmeta or rdf:RDF element; failing that, bytes after the Adobe
    namespace header are used. The document ends at the first NUL byte
    or the end of the payload.
    """
    raw = bytes(payload)
    start = raw.find(XML_DECLARATION_START)
    if start < 0:
        positions = [pos for pos in (raw.find(marker) for marker in PACKET_START_MARKERS) if pos >= 0]
        if positions:
            start = min(positions)
        elif raw.startswith(XMP_NAMESPACE + b'\x00'):
            start = len(XMP_NAMESPACE) + 1
        else:
            return None

    end = raw.find(b'\x00', start)
    if end < 0:
        end = len(raw)
    packet = raw[start:end]
    return packet or None


def parse_xmp(segment: BytesLike) -> Dict[str, Any]:
    """
    Extract descriptive fields from an XMP APP1 payload.

    Args:
        segment: APP1 payload (namespace header followed by the packet)

    Returns:
        Dictionary with any of title, description, headline, credit,
        creator and keywords
    """
    fields: Dict[str, Any] = {}
    packet = locate_xmp_packet(segment)
    if packet is None:
        return fields

    xml_text = decode_utf8(packet)
    for field_name in FIELD_MATCHERS:
        value = match_field(xml_text, field_name)
        if value:
            fields[field_name] = value

    keywords = extract_keywords(xml_text)
    if keywords:
        fields['keywords'] = keywords

    logger.debug("XMP fields: %s", sorted(fields))
    return fields
