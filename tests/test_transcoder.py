"""Tests for image transcoding."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from espresso_gallery.errors import TranscodeError
from espresso_gallery.media.policy import TranscodeOptions
from espresso_gallery.media.transcoder import compute_target_size, transcode_image


GALLERY_BOX = TranscodeOptions(max_width=1200, max_height=800, quality=80)


class TestComputeTargetSize:
    def test_fits_already(self) -> None:
        assert compute_target_size(500, 500, 1200, 800) == (500, 500)

    def test_never_upscales(self) -> None:
        assert compute_target_size(10, 10, 1200, 800) == (10, 10)

    def test_width_bound(self) -> None:
        assert compute_target_size(2400, 800, 1200, 800) == (1200, 400)

    def test_height_bound(self) -> None:
        assert compute_target_size(800, 1600, 1200, 800) == (400, 800)

    def test_exact_box(self) -> None:
        assert compute_target_size(2400, 1600, 1200, 800) == (1200, 800)


class TestTranscodeImage:
    def test_output_is_progressive_jpeg(self, make_image) -> None:
        result = transcode_image(make_image(500, 500, "PNG"), GALLERY_BOX)
        with Image.open(io.BytesIO(result.data)) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"
            assert img.size == (500, 500)
            assert img.info.get("progressive") or img.info.get("progression")

    def test_downscales_preserving_aspect(self, make_image) -> None:
        result = transcode_image(make_image(2400, 1200, "JPEG"), GALLERY_BOX)
        assert (result.width, result.height) == (1200, 600)
        with Image.open(io.BytesIO(result.data)) as img:
            assert img.size == (1200, 600)

    def test_transparency_flattened_on_white(self, make_image) -> None:
        data = make_image(400, 400, "PNG", mode="RGBA", color=(0, 0, 0, 0))
        result = transcode_image(data, GALLERY_BOX)
        with Image.open(io.BytesIO(result.data)) as img:
            r, g, b = img.getpixel((200, 200))
        assert min(r, g, b) > 240

    def test_accepts_path(self, tmp_path, make_image) -> None:
        path = tmp_path / "in.webp"
        path.write_bytes(make_image(600, 600, "WEBP"))
        result = transcode_image(path, GALLERY_BOX)
        assert (result.width, result.height) == (600, 600)

    def test_garbage_raises_transcode_error(self) -> None:
        with pytest.raises(TranscodeError) as exc_info:
            transcode_image(b"not an image", GALLERY_BOX)
        assert exc_info.value.message.startswith("Error processing image")
        assert exc_info.value.status_code == 500
