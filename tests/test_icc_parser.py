from __future__ import annotations

import struct

from metamerge.icc_parser import parse_icc

APP2_PREFIX = b"ICC_PROFILE\x00\x01\x01"


def _profile(tags=(), extra: bytes = b"") -> bytes:
    header = bytearray(128)
    header[12:16] = b"mntr"
    header[16:20] = b"RGB "
    header[36:40] = b"acsp"

    table = struct.pack(">I", len(tags))
    data = b""
    data_start = 128 + 4 + 12 * len(tags)
    for signature, body in tags:
        table += struct.pack(">4sII", signature, data_start + len(data), len(body))
        data += body

    profile = bytes(header) + table + data + extra
    return struct.pack(">I", len(profile)) + profile[4:]


def test_v2_description() -> None:
    desc = b"desc" + b"\x00" * 4 + struct.pack(">I", 13) + b"Test Profile\x00"
    profile = _profile([(b"desc", desc)])
    assert parse_icc(APP2_PREFIX + profile) == {
        "present": True,
        "size": len(profile),
        "device_class": "mntr",
        "color_space": "RGB",
        "description": "Test Profile",
    }


def test_v4_multi_localized_description() -> None:
    text = "Display P3".encode("utf-16-be")
    mluc = (
        b"mluc" + b"\x00" * 4
        + struct.pack(">II", 1, 12)
        + b"enUS" + struct.pack(">II", len(text), 28)
        + text
    )
    info = parse_icc(APP2_PREFIX + _profile([(b"desc", mluc)]))
    assert info["description"] == "Display P3"


def test_common_profile_name_fallback() -> None:
    info = parse_icc(_profile(extra=b"...sRGB IEC61966-2.1..."))
    assert info["description"] == "sRGB IEC61966-2.1"
    assert info["device_class"] == "mntr"


def test_description_tag_out_of_range() -> None:
    profile = bytearray(_profile([(b"desc", b"desc" + b"\x00" * 20)]))
    struct.pack_into(">I", profile, 132 + 4, 10_000)
    info = parse_icc(bytes(profile))
    assert "description" not in info
    assert info["color_space"] == "RGB"


def test_short_payload_is_still_present() -> None:
    assert parse_icc(APP2_PREFIX) == {"present": True}
    assert parse_icc(APP2_PREFIX + b"\x00\x00\x0c\x48") == {"present": True, "size": 3144}
