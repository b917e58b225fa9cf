"""Tests for zip packaging of variants."""

import io
import zipfile

from image_variants.core.archive import archive_entry_name, build_archive


def _open(data: bytes) -> zipfile.ZipFile:
    return zipfile.ZipFile(io.BytesIO(data))


def test_entry_name_has_no_extension():
    assert archive_entry_name("img", "small") == "img_small"


def test_entry_name_with_leading_slash():
    assert archive_entry_name("img", "small", preserve_leading_slash=True) == "/img_small"


def test_one_entry_per_variant_in_order():
    variants = {"small": b"s" * 100, "medium": b"m" * 200, "large": b"l" * 300}

    with _open(build_archive("img", variants)) as archive:
        assert archive.namelist() == ["img_small", "img_medium", "img_large"]
        assert archive.read("img_medium") == b"m" * 200
        assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in archive.infolist())
        assert not any(info.is_dir() for info in archive.infolist())


def test_leading_slash_is_kept_in_listing():
    data = build_archive("img", {"small": b"x"}, preserve_leading_slash=True)

    with _open(data) as archive:
        assert archive.namelist() == ["/img_small"]


def test_empty_variants_give_valid_empty_archive():
    data = build_archive("img", {})

    assert zipfile.is_zipfile(io.BytesIO(data))
    with _open(data) as archive:
        assert archive.namelist() == []


def test_same_input_gives_same_bytes():
    variants = {"small": b"abc", "large": b"def"}
    assert build_archive("img", variants) == build_archive("img", variants)
