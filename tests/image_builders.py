"""Builders for small synthetic JPEG, PNG, EXIF, IPTC and XMP buffers."""
from __future__ import annotations

import struct
import zlib
from typing import Dict, Optional, Tuple

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'

_TYPE_IDS = {'byte': 1, 'ascii': 2, 'short': 3, 'long': 4, 'rational': 5, 'srational': 10}


def make_segment(marker: int, payload: bytes) -> bytes:
    return bytes((0xFF, marker)) + struct.pack('>H', len(payload) + 2) + payload


def make_jpeg(*segments: bytes, scan: bytes = b'\x01\x02\x03') -> bytes:
    """SOI, the given segments, a minimal SOS header, ``scan`` and EOI."""
    sos = make_segment(0xDA, b'\x01\x01\x00\x00\x3F\x00')
    return b'\xff\xd8' + b''.join(segments) + sos + scan + b'\xff\xd9'


def _encode_value(kind: str, value, bo: str) -> Tuple[int, int, bytes]:
    type_id = _TYPE_IDS[kind]
    if kind == 'ascii':
        raw = value.encode('utf-8') + b'\x00'
        return type_id, len(raw), raw
    if kind == 'byte':
        return type_id, 1, bytes((value,))
    if kind == 'short':
        return type_id, 1, struct.pack(bo + 'H', value)
    if kind == 'long':
        return type_id, 1, struct.pack(bo + 'I', value)
    code = 'II' if kind == 'rational' else 'ii'
    return type_id, 1, struct.pack(bo + code, *value)


def _build_ifd(entries: Dict[int, Tuple[int, int, bytes]], offset: int, bo: str) -> bytes:
    count = len(entries)
    data_start = offset + 2 + 12 * count + 4
    table = struct.pack(bo + 'H', count)
    data = b''
    for tag in sorted(entries):
        type_id, value_count, raw = entries[tag]
        if len(raw) <= 4:
            table += struct.pack(bo + 'HHI', tag, type_id, value_count) + raw.ljust(4, b'\x00')
        else:
            table += struct.pack(bo + 'HHII', tag, type_id, value_count, data_start + len(data))
            data += raw
    table += struct.pack(bo + 'I', 0)
    return table + data


def make_tiff(ifd0: Dict[int, tuple], exif_ifd: Optional[Dict[int, tuple]] = None,
              big_endian: bool = False) -> bytes:
    """
    TIFF structure with IFD0 and an optional EXIF sub-IFD.

    Entries map tag -> (kind, value) where kind is one of byte, ascii,
    short, long, rational or srational.
    """
    bo = '>' if big_endian else '<'
    header = (b'MM' if big_endian else b'II') + struct.pack(bo + 'HI', 42, 8)

    entries0 = {tag: _encode_value(kind, value, bo) for tag, (kind, value) in ifd0.items()}
    if exif_ifd is None:
        return header + _build_ifd(entries0, 8, bo)

    entries0[0x8769] = (4, 1, struct.pack(bo + 'I', 0))
    sub_offset = 8 + len(_build_ifd(entries0, 8, bo))
    entries0[0x8769] = (4, 1, struct.pack(bo + 'I', sub_offset))
    entries1 = {tag: _encode_value(kind, value, bo) for tag, (kind, value) in exif_ifd.items()}
    return header + _build_ifd(entries0, 8, bo) + _build_ifd(entries1, sub_offset, bo)


def make_exif_payload(ifd0: Dict[int, tuple], exif_ifd: Optional[Dict[int, tuple]] = None,
                      big_endian: bool = False) -> bytes:
    return b'Exif\x00\x00' + make_tiff(ifd0, exif_ifd, big_endian)


def make_iim_record(record: int, data: bytes, dataset: int = 2) -> bytes:
    return bytes((0x1C, dataset, record)) + struct.pack('>H', len(data)) + data


def make_8bim_block(iim: bytes, name: bytes = b'', resource_id: int = 0x0404) -> bytes:
    name_field = bytes((len(name),)) + name
    if len(name_field) % 2:
        name_field += b'\x00'
    return b'8BIM' + struct.pack('>H', resource_id) + name_field + struct.pack('>I', len(iim)) + iim


def make_xmp_document(body: str) -> str:
    return (
        '<?xpacket begin="\ufeff" id="W5M0MpCehiHzreSzNTczkc9d"?>'
        '<x:xmpmeta xmlns:x="adobe:ns:meta/">'
        '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">'
        '<rdf:Description rdf:about="" xmlns:dc="http://purl.org/dc/elements/1.1/">'
        f'{body}'
        '</rdf:Description></rdf:RDF></x:xmpmeta>'
        '<?xpacket end="w"?>'
    )


def make_xmp_payload(body: str) -> bytes:
    return b'http://ns.adobe.com/xap/1.0/\x00' + make_xmp_document(body).encode('utf-8')


def make_chunk(chunk_type: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
    return struct.pack('>I', len(data)) + chunk_type + data + struct.pack('>I', crc)


def make_png(*extra_chunks: bytes, width: int = 2, height: int = 2) -> bytes:
    """Signature, IHDR, any ``extra_chunks``, one IDAT and IEND."""
    ihdr = struct.pack('>IIBBBBB', width, height, 8, 2, 0, 0, 0)
    idat = zlib.compress(b'\x00' + b'\x10\x20\x30' * width)
    return (
        PNG_SIGNATURE
        + make_chunk(b'IHDR', ihdr)
        + b''.join(extra_chunks)
        + make_chunk(b'IDAT', idat)
        + make_chunk(b'IEND', b'')
    )
