"""In-memory zip packaging of resized variants."""

import io
import zipfile
from typing import Mapping

ARCHIVE_CONTENT_TYPE = "application/zip"


def archive_entry_name(
    base_name: str, variant_name: str, preserve_leading_slash: bool = False
) -> str:
    """Entry name for one variant: ``{base_name}_{variant_name}``, no extension."""
    name = f"{base_name}_{variant_name}"
    if preserve_leading_slash:
        return f"/{name}"
    return name


def build_archive(
    base_name: str,
    variants: Mapping[str, bytes],
    preserve_leading_slash: bool = False,
) -> bytes:
    """
    Package variants into a single deflated zip archive.

    Entries are written in the mapping's iteration order with no directory
    entries. An empty mapping produces a valid, empty archive.

    Args:
        base_name: Prefix of every entry name
        variants: Mapping of variant name to encoded bytes
        preserve_leading_slash: Prefix entry names with "/"

    Returns:
        The archive bytes
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        for variant_name, data in variants.items():
            entry = archive_entry_name(base_name, variant_name, preserve_leading_slash)
            # ZipInfo keeps the 1980-01-01 default timestamp so equal input gives equal bytes
            info = zipfile.ZipInfo(entry)
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, data)
    return buffer.getvalue()
