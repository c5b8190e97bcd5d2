from __future__ import annotations

import json

from image_builders import make_jpeg
from metamerge.cli import detect_container, main
from metamerge.jpeg_merge import merge_jpeg_metadata
from metamerge.png_chunks import parse_chunks


def test_info_prints_summary(tmp_path, capsys, original_jpeg: bytes) -> None:
    image = tmp_path / "photo.jpg"
    image.write_bytes(original_jpeg)

    assert main(["info", str(image), "--width", "640", "--height", "480"]) == 0
    out = capsys.readouterr().out
    assert "[Camera]" in out
    assert "  Device make: Canon" in out
    assert "Dimensions: 640 × 480" in out


def test_info_json(tmp_path, capsys, original_jpeg: bytes) -> None:
    image = tmp_path / "photo.jpg"
    image.write_bytes(original_jpeg)

    assert main(["info", str(image), "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["exif"]["make"] == "Canon"
    assert data["dimensions"] is None
    assert data["has_metadata"] is True


def test_info_without_metadata(tmp_path, capsys) -> None:
    image = tmp_path / "plain.jpg"
    image.write_bytes(make_jpeg())

    assert main(["info", str(image)]) == 0
    assert "No metadata found in this image." in capsys.readouterr().out


def test_merge_jpeg(tmp_path, capsys, original_jpeg: bytes, rendered_jpeg: bytes) -> None:
    original = tmp_path / "original.jpg"
    rendered = tmp_path / "rendered.jpg"
    output = tmp_path / "out.jpg"
    original.write_bytes(original_jpeg)
    rendered.write_bytes(rendered_jpeg)

    assert main(["merge", str(original), str(rendered), "-o", str(output)]) == 0
    assert output.read_bytes() == merge_jpeg_metadata(original_jpeg, rendered_jpeg)
    assert "with metadata" in capsys.readouterr().out


def test_merge_png(tmp_path, original_jpeg: bytes, rendered_png: bytes) -> None:
    original = tmp_path / "original.jpg"
    rendered = tmp_path / "rendered.png"
    output = tmp_path / "out.png"
    original.write_bytes(original_jpeg)
    rendered.write_bytes(rendered_png)

    assert main(["-v", "merge", str(original), str(rendered), "-o", str(output)]) == 0
    types = [chunk.chunk_type for chunk in parse_chunks(output.read_bytes())]
    assert types == [b"IHDR", b"eXIf", b"iTXt", b"IDAT", b"IEND"]


def test_merge_rejects_unknown_container(tmp_path, capsys, original_jpeg: bytes) -> None:
    original = tmp_path / "original.jpg"
    rendered = tmp_path / "rendered.gif"
    original.write_bytes(original_jpeg)
    rendered.write_bytes(b"GIF89a")

    assert main(["merge", str(original), str(rendered), "-o", str(tmp_path / "out")]) == 1
    assert "neither JPEG nor PNG" in capsys.readouterr().err
    assert not (tmp_path / "out").exists()


def test_missing_file_returns_error(tmp_path, capsys) -> None:
    assert main(["info", str(tmp_path / "missing.jpg")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_detect_container(original_jpeg: bytes, rendered_png: bytes) -> None:
    assert detect_container(original_jpeg) == "JPEG"
    assert detect_container(rendered_png) == "PNG"
    assert detect_container(b"GIF89a") is None
