"""Image and key utilities for the image variants pipeline."""

import io
import posixpath
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from .exceptions import DecodeError
from .models import DEFAULT_RESIZE_GUARD, ResizeGuard, SizeSpec

# Every variant is re-encoded to this format with the encoder's default quality.
VARIANT_FORMAT = "JPEG"
ARCHIVE_SUFFIX = ".zip"

_JPEG_MODES = ("RGB", "L", "CMYK")


def decode_image(image_bytes: bytes) -> "Image.Image":
    """
    Decode raw bytes into a fully loaded PIL Image.

    Raises:
        DecodeError: If the bytes are not a readable raster image
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (
        UnidentifiedImageError,
        OSError,
        SyntaxError,
        Image.DecompressionBombError,
    ) as img_err:
        raise DecodeError(f"Cannot decode image: {img_err}") from img_err
    return image


def should_resize(
    current: Tuple[int, int],
    target: SizeSpec,
    guard: ResizeGuard = DEFAULT_RESIZE_GUARD,
) -> bool:
    """
    Decide whether an image of ``current`` (width, height) is resized to ``target``.

    With ``BOTH_DIMENSIONS_DIFFER`` an image that already matches the target on
    one axis is left untouched, even if the other axis differs.
    """
    width, height = current
    width_differs = width != target.width
    height_differs = height != target.height

    if guard == ResizeGuard.BOTH_DIMENSIONS_DIFFER:
        return width_differs and height_differs
    if guard == ResizeGuard.ANY_DIMENSION_DIFFERS:
        return width_differs or height_differs
    raise ValueError(f"Unknown resize guard: {guard}")


def resize_image(
    img: "Image.Image",
    target: SizeSpec,
    guard: ResizeGuard = DEFAULT_RESIZE_GUARD,
) -> "Image.Image":
    """
    Apply the resize guard and return the image at its variant dimensions.

    The resize stretches to the exact target size; aspect ratio is only kept
    when the source proportions already match the target.
    """
    if should_resize(img.size, target, guard):
        return img.resize((target.width, target.height))
    return img


def encode_variant(img: "Image.Image") -> bytes:
    """Encode an image as a baseline JPEG with the encoder's default quality."""
    if img.mode not in _JPEG_MODES:
        img = img.convert("RGB")

    output_stream = io.BytesIO()
    img.save(output_stream, format=VARIANT_FORMAT)
    return output_stream.getvalue()


def _normalize_key(key: str) -> str:
    return key.replace("\\", "/")


def derive_base_name(source_key: str) -> str:
    """
    Return the source filename without its extension.

    Args:
        source_key: S3 key of the source object (e.g. "photos/2023/img.png")

    Returns:
        Base name used for archive entries (e.g. "img")
    """
    filename = posixpath.basename(_normalize_key(source_key))
    stem, _ = posixpath.splitext(filename)
    return stem


def calculate_archive_key(source_key: str) -> str:
    """
    Calculate the destination key of the archive for a source key.

    The archive sits next to its source: same directory, filename without
    extension, ``.zip`` suffix. Separators are normalized to ``/``.

    Args:
        source_key: S3 key of the source object

    Returns:
        Destination S3 key
    """
    directory = posixpath.dirname(_normalize_key(source_key))
    archive_name = f"{derive_base_name(source_key)}{ARCHIVE_SUFFIX}"

    if directory:
        return f"{directory}/{archive_name}"
    return archive_name
