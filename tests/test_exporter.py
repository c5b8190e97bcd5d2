from __future__ import annotations

import pytest

from metamerge.config import ExportConfig, avif_speed_for_quality, clamp_speed
from metamerge.exceptions import FeatureDisabledError, MetaMergeError
from metamerge.exporter import Exporter, export_file_name
from metamerge.jpeg_merge import merge_jpeg_metadata
from metamerge.png_merge import merge_png_metadata


class RecordingEncoder:
    def __init__(self, output: bytes = b"AVIF-BYTES"):
        self.output = output
        self.calls = []

    def encode(self, pixels, options):
        self.calls.append((pixels, options))
        return self.output


def test_jpeg_export_merges_metadata(original_jpeg: bytes, rendered_jpeg: bytes) -> None:
    result = Exporter().export_jpeg(original_jpeg, rendered_jpeg, node_name="Hero", scale=2)
    assert result.data == merge_jpeg_metadata(original_jpeg, rendered_jpeg)
    assert result.mime_type == "image/jpeg"
    assert result.file_name == "Hero@2x.jpg"
    assert result.metadata_merged
    assert result.message == ""


def test_jpeg_export_falls_back_to_plain_render(rendered_jpeg: bytes) -> None:
    result = Exporter().export_jpeg(b"not a jpeg", rendered_jpeg)
    assert result.data == rendered_jpeg
    assert not result.metadata_merged
    assert result.message == "Failed to merge metadata. Exported plain JPEG instead."


def test_png_export(original_jpeg: bytes, rendered_png: bytes) -> None:
    result = Exporter().export_png(original_jpeg, rendered_png, node_name="Frame 1", scale=1.5)
    assert result.data == merge_png_metadata(original_jpeg, rendered_png)
    assert result.mime_type == "image/png"
    assert result.file_name == "Frame 1@1.5x.png"
    assert result.metadata_merged


def test_png_export_never_fails(original_jpeg: bytes) -> None:
    result = Exporter().export_png(original_jpeg, b"broken")
    assert result.data == b"broken"
    assert not result.metadata_merged
    assert result.message


@pytest.mark.parametrize(
    "name, scale, ext, expected",
    [
        (None, 1, "jpg", "export@1x.jpg"),
        ("", 3, "png", "export@3x.png"),
        ("Logo", 2.0, "avif", "Logo@2x.avif"),
        ("Logo", 0.5, "png", "Logo@0.5x.png"),
    ],
)
def test_export_file_name(name, scale, ext, expected) -> None:
    assert export_file_name(name, scale, ext) == expected


def test_avif_disabled_by_default(rendered_png: bytes) -> None:
    with pytest.raises(FeatureDisabledError):
        Exporter().export_avif(b"", rendered_png)


def test_avif_enabled_without_encoder(rendered_png: bytes) -> None:
    with pytest.raises(FeatureDisabledError):
        Exporter(ExportConfig(avif_enabled=True)).export_avif(b"", rendered_png)


def test_avif_export_uses_configured_encoder(original_jpeg: bytes, rendered_png: bytes) -> None:
    encoder = RecordingEncoder()
    exporter = Exporter(ExportConfig(avif_enabled=True, avif_encoder=encoder, avif_quality=80))

    result = exporter.export_avif(original_jpeg, rendered_png, node_name="Card")

    assert encoder.calls == [(rendered_png, {"quality": 80, "speed": 2})]
    assert result.data == b"AVIF-BYTES"
    assert result.mime_type == "image/avif"
    assert result.file_name == "Card@1x.avif"
    assert not result.metadata_merged


def test_avif_empty_output_is_an_error(rendered_png: bytes) -> None:
    exporter = Exporter(ExportConfig(avif_enabled=True, avif_encoder=RecordingEncoder(b"")))
    with pytest.raises(MetaMergeError):
        exporter.export_avif(b"", rendered_png)


@pytest.mark.parametrize("quality, speed", [(100, 0), (0, 10), (50, 5), (75, 3), (25, 8), (150, 0), (-20, 10)])
def test_avif_speed_for_quality(quality: int, speed: int) -> None:
    assert avif_speed_for_quality(quality) == speed


def test_explicit_speed_is_clamped() -> None:
    assert ExportConfig(avif_speed=15).avif_options() == {"quality": 50, "speed": 10}
    assert ExportConfig(avif_speed=-1).avif_options()["speed"] == 0
    assert clamp_speed(7) == 7
