"""Tests for image and key utilities."""

import io

import pytest
from PIL import Image

from image_variants.core.exceptions import DecodeError
from image_variants.core.image_utils import (
    calculate_archive_key,
    decode_image,
    derive_base_name,
    encode_variant,
    resize_image,
    should_resize,
)
from image_variants.core.models import ResizeGuard, SizeSpec
from image_variants.testing.fakes import create_test_image

SMALL = SizeSpec(name="small", width=400, height=400)


class TestShouldResize:
    def test_both_dimensions_differ_resizes(self):
        assert should_resize((640, 480), SMALL) is True

    def test_width_matches_does_not_resize(self):
        """Matching one axis skips the resize under the default guard."""
        assert should_resize((400, 300), SMALL) is False

    def test_height_matches_does_not_resize(self):
        assert should_resize((800, 400), SMALL) is False

    def test_exact_match_does_not_resize(self):
        assert should_resize((400, 400), SMALL) is False

    def test_any_dimension_guard_resizes_partial_match(self):
        assert should_resize((400, 300), SMALL, ResizeGuard.ANY_DIMENSION_DIFFERS) is True
        assert should_resize((400, 400), SMALL, ResizeGuard.ANY_DIMENSION_DIFFERS) is False


class TestResizeImage:
    def test_resizes_to_exact_target(self):
        image = Image.new("RGB", (640, 480))
        assert resize_image(image, SMALL).size == (400, 400)

    def test_width_match_keeps_original_size(self):
        image = Image.new("RGB", (400, 250))
        assert resize_image(image, SMALL).size == (400, 250)

    def test_upscales_when_both_smaller(self):
        image = Image.new("RGB", (50, 30))
        assert resize_image(image, SMALL).size == (400, 400)


class TestDecodeAndEncode:
    def test_decode_valid_png(self):
        image = decode_image(create_test_image(30, 20, format="PNG"))
        assert image.size == (30, 20)

    def test_decode_garbage_raises(self):
        with pytest.raises(DecodeError):
            decode_image(b"definitely not an image")

    def test_encode_is_jpeg(self):
        data = encode_variant(Image.new("RGB", (10, 10), "green"))
        assert Image.open(io.BytesIO(data)).format == "JPEG"

    def test_encode_converts_alpha_modes(self):
        data = encode_variant(Image.new("RGBA", (10, 10), (0, 0, 255, 128)))
        decoded = Image.open(io.BytesIO(data))
        assert decoded.format == "JPEG"
        assert decoded.mode == "RGB"

    def test_encode_palette_image(self):
        data = encode_variant(Image.new("P", (8, 8)))
        assert Image.open(io.BytesIO(data)).format == "JPEG"


class TestKeys:
    def test_archive_key_for_nested_key(self):
        assert calculate_archive_key("photos/2023/img.png") == "photos/2023/img.zip"

    def test_archive_key_without_directory(self):
        assert calculate_archive_key("img.png") == "img.zip"

    def test_archive_key_normalizes_backslashes(self):
        assert calculate_archive_key("photos\\2023\\img.png") == "photos/2023/img.zip"

    def test_archive_key_strips_only_last_extension(self):
        assert calculate_archive_key("a/b/scan.final.tiff") == "a/b/scan.final.zip"

    def test_archive_key_without_extension(self):
        assert calculate_archive_key("raw/blob") == "raw/blob.zip"

    @pytest.mark.parametrize(
        "key,expected",
        [
            ("photos/2023/img.png", "img"),
            ("img.jpeg", "img"),
            ("dir/my photo.jpg", "my photo"),
            ("dir/noext", "noext"),
        ],
    )
    def test_derive_base_name(self, key, expected):
        assert derive_base_name(key) == expected
