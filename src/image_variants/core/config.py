"""Pipeline configuration and its environment loader."""

import re
from typing import Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError
from .models import (
    DEFAULT_RESIZE_GUARD,
    DecodeFailurePolicy,
    ResizeGuard,
    SizeCatalog,
    SizeSpec,
)

SIZE_ENV_PREFIX = "Image_Size_"
OPTION_ENV_PREFIX = "IMAGE_VARIANTS_"

_SIZE_VALUE = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")
_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off", "")


class PipelineConfig(BaseModel):
    """Configuration for the notification pipeline, fixed at construction time."""

    catalog: SizeCatalog = Field(default_factory=SizeCatalog.default)
    resize_guard: ResizeGuard = DEFAULT_RESIZE_GUARD
    decode_failure_policy: DecodeFailurePolicy = DecodeFailurePolicy.SKIP_VARIANT
    preserve_leading_slash: bool = False
    upload_empty_archive: bool = True
    dest_bucket: Optional[str] = None
    upload_tags: Dict[str, str] = Field(default_factory=dict)
    skip_suffixes: Tuple[str, ...] = (".zip",)
    processor: Literal["serial", "multithread", "asyncio"] = "serial"
    concurrency: int = Field(default=4, ge=1)
    timeout_seconds: Optional[float] = Field(default=None, gt=0)
    fail_on_record_error: bool = False
    debug: bool = False


def parse_size_value(name: str, value: str) -> SizeSpec:
    """Parse a ``WIDTHxHEIGHT`` value into a SizeSpec."""
    match = _SIZE_VALUE.match(value)
    if not match:
        raise ConfigurationError(
            f"Invalid size for {SIZE_ENV_PREFIX}{name}: {value!r} (expected WIDTHxHEIGHT)"
        )
    try:
        return SizeSpec(name=name, width=int(match.group(1)), height=int(match.group(2)))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid size for {SIZE_ENV_PREFIX}{name}: {exc}") from exc


def parse_size_catalog(environ: Mapping[str, str]) -> Optional[SizeCatalog]:
    """
    Build a catalog from ``Image_Size_<name>=<W>x<H>`` entries.

    Sizes are ordered smallest area first, then by name. Returns None when no
    entry is present so the caller can fall back to the default catalog.
    """
    sizes: List[SizeSpec] = []
    for env_key, value in environ.items():
        if not env_key.startswith(SIZE_ENV_PREFIX):
            continue
        name = env_key[len(SIZE_ENV_PREFIX):]
        if not name:
            raise ConfigurationError(f"Size variable {env_key!r} has no size name")
        sizes.append(parse_size_value(name, value))

    if not sizes:
        return None

    sizes.sort(key=lambda s: (s.width * s.height, s.name))
    return SizeCatalog(sizes=sizes)


def _parse_bool(env_key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {env_key}: {value!r}")


def _parse_tags(value: str) -> Dict[str, str]:
    tags: Dict[str, str] = {}
    for pair in filter(None, (p.strip() for p in value.split(","))):
        key, sep, tag_value = pair.partition("=")
        if not sep or not key.strip():
            raise ConfigurationError(f"Invalid tag {pair!r} (expected key=value)")
        tags[key.strip()] = tag_value.strip()
    return tags


def load_config(environ: Mapping[str, str]) -> PipelineConfig:
    """
    Create a PipelineConfig from an environment mapping.

    This is the only place environment variables are read; the pipeline
    itself only ever sees the returned configuration.

    Raises:
        ConfigurationError: If any value is malformed
    """
    options: Dict[str, object] = {}

    catalog = parse_size_catalog(environ)
    if catalog is not None:
        options["catalog"] = catalog

    def opt(name: str) -> Optional[str]:
        return environ.get(f"{OPTION_ENV_PREFIX}{name}")

    if opt("DEST_BUCKET"):
        options["dest_bucket"] = opt("DEST_BUCKET")
    for name in ("PROCESSOR", "RESIZE_GUARD", "DECODE_FAILURE_POLICY"):
        value = opt(name)
        if value:
            options[name.lower()] = value.strip().lower()
    # pydantic coerces the numeric strings
    for name in ("CONCURRENCY", "TIMEOUT_SECONDS"):
        value = opt(name)
        if value:
            options[name.lower()] = value.strip()
    for name in ("PRESERVE_LEADING_SLASH", "UPLOAD_EMPTY_ARCHIVE"):
        value = opt(name)
        if value is not None:
            options[name.lower()] = _parse_bool(f"{OPTION_ENV_PREFIX}{name}", value)
    if opt("SKIP_SUFFIXES") is not None:
        options["skip_suffixes"] = tuple(
            s.strip() for s in opt("SKIP_SUFFIXES").split(",") if s.strip()
        )
    if opt("UPLOAD_TAGS"):
        options["upload_tags"] = _parse_tags(opt("UPLOAD_TAGS"))

    for env_key, field_name in (("FAIL_ON_RECORD_ERROR", "fail_on_record_error"), ("DEBUG", "debug")):
        if environ.get(env_key) is not None:
            options[field_name] = _parse_bool(env_key, environ[env_key])

    try:
        return PipelineConfig(**options)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid pipeline configuration: {exc}") from exc
