"""Translate request options into engine filter configuration.

Translation is two-phase. ``validate_read_options`` performs every check that
can reject a request, in a fixed order, before any file is touched.
``build_input_options`` then constructs the immutable
``AlignmentFilterConfig`` / ``ModFilterConfig`` pair. Absent options stay
``None`` so the engine applies its own defaults.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pydantic import AnyUrl, TypeAdapter, ValidationError

from ..constants import ALIGNMENT_TYPES, MAX_QUAL, MAX_THREADS, MOD_STRANDS
from ..errors import ConfigBuildError, InvalidOptionsError
from .options import ReadOptions
from .threshold import ThresholdPolicy, threshold_policy

logger = logging.getLogger(__name__)

# Single-letter modification code (e.g. m, h, a, T) or a ChEBI number (e.g. 76792)
MOD_CODE_PATTERN = re.compile(r"^([A-Za-z]|\d+)$")

_URL_ADAPTER = TypeAdapter(AnyUrl)


@dataclass(frozen=True)
class BamSource:
    """Where the alignments live: a local path or a URL."""

    location: str
    is_url: bool = False

    def __str__(self) -> str:
        return self.location


@dataclass(frozen=True)
class AlignmentFilterConfig:
    """Validated read-level filters handed to the engine."""

    source: BamSource
    min_seq_len: int | None = None
    min_align_len: int | None = None
    read_id_set: frozenset[str] | None = None
    threads: int | None = None
    include_zero_len: bool = False
    read_filter: frozenset[str] | None = None
    sample_fraction: float | None = None
    mapq_filter: int | None = None
    exclude_mapq_unavail: bool = False
    region: str | None = None
    full_region: bool = False


@dataclass(frozen=True)
class ModFilterConfig:
    """Validated modification-call filters handed to the engine."""

    threshold: ThresholdPolicy
    mod_strand: str | None = None
    trim_read_ends_mod: int | None = None
    base_qual_filter_mod: int | None = None
    tag: str | None = None
    mod_region: str | None = None


def build_bam_source(bam_path: str, treat_as_url: bool | None = None) -> BamSource:
    """Interpret ``bam_path`` as a URL when ``treat_as_url`` is true, else as a path.

    Raises:
        InvalidOptionsError: If a URL was requested and ``bam_path`` is not one.
    """
    if treat_as_url:
        try:
            _URL_ADAPTER.validate_python(bam_path)
        except ValidationError as e:
            raise InvalidOptionsError(f"Invalid URL: {bam_path!r}") from e
        return BamSource(bam_path, is_url=True)
    return BamSource(str(Path(bam_path)))


def _check_qual(name: str, value: int | None) -> None:
    if value is not None and not 0 <= value <= MAX_QUAL:
        raise InvalidOptionsError(f"{name} must be between 0 and {MAX_QUAL}, got {value}")


def _check_non_negative(name: str, value: int | None) -> None:
    if value is not None and value < 0:
        raise InvalidOptionsError(f"{name} must be non-negative, got {value}")


def _check_reject_range(reject: Sequence[int] | None) -> None:
    if reject is None:
        return
    if isinstance(reject, (str, bytes)) or not isinstance(reject, Sequence):
        raise InvalidOptionsError(
            "reject_mod_qual_non_inclusive must be an array of exactly 2 numbers [low, high]"
        )
    for bound in reject:
        _check_qual("reject_mod_qual_non_inclusive values", bound)


def validate_read_options(options: ReadOptions) -> tuple[BamSource, ThresholdPolicy]:
    """Run every rejection check on ``options``; the first violation wins.

    Order: zero-length reads, threads, sample fraction, path/URL, numeric
    ranges, then the modification-quality policy.

    Returns:
        The parsed source and threshold policy, so construction does not
        repeat the parsing.

    Raises:
        InvalidOptionsError: On the first invalid field.
    """
    if options.include_zero_len:
        raise InvalidOptionsError(
            "include_zero_len=True is not yet supported due to potential crashes "
            "in the underlying library"
        )

    if options.threads is not None and options.threads < 1:
        raise InvalidOptionsError("threads must be a positive integer")

    if options.sample_fraction is not None and not 0.0 <= options.sample_fraction <= 1.0:
        raise InvalidOptionsError("sample_fraction must be between 0 and 1")

    source = build_bam_source(options.bam_path, options.treat_as_url)

    if options.threads is not None and options.threads > MAX_THREADS:
        raise InvalidOptionsError(f"threads must be at most {MAX_THREADS}, got {options.threads}")
    _check_non_negative("min_seq_len", options.min_seq_len)
    _check_non_negative("trim_read_ends_mod", options.trim_read_ends_mod)
    _check_qual("mapq_filter", options.mapq_filter)
    _check_qual("min_mod_qual", options.min_mod_qual)
    _check_qual("base_qual_filter_mod", options.base_qual_filter_mod)
    _check_reject_range(options.reject_mod_qual_non_inclusive)

    policy = threshold_policy(options.min_mod_qual, options.reject_mod_qual_non_inclusive)
    return source, policy


def _parse_read_filter(read_filter: str) -> frozenset[str]:
    kinds = frozenset(part.strip() for part in read_filter.split(",") if part.strip())
    unknown = sorted(kinds - set(ALIGNMENT_TYPES))
    if unknown or not kinds:
        raise ConfigBuildError(
            f"Failed to build InputBam: invalid read_filter {read_filter!r}; "
            f"expected a comma-separated list of {', '.join(ALIGNMENT_TYPES)}"
        )
    return kinds


def _parse_tag(tag: str | None) -> str | None:
    if tag is None:
        return None
    if not MOD_CODE_PATTERN.match(tag):
        logger.debug("Ignoring unrecognised modification tag %r", tag)
        return None
    return tag


def build_input_options(options: ReadOptions) -> tuple[AlignmentFilterConfig, ModFilterConfig]:
    """Validate ``options`` and construct the alignment and modification configs.

    Raises:
        InvalidOptionsError: If validation fails.
        ConfigBuildError: If the options cannot form a consistent configuration.
    """
    source, policy = validate_read_options(options)

    if options.full_region and options.region is None:
        raise ConfigBuildError(
            "Failed to build InputBam: full_region can only be set when region is specified"
        )

    if options.mod_strand is not None and options.mod_strand not in MOD_STRANDS:
        raise ConfigBuildError(
            f"Failed to build InputMods: mod_strand must be one of {MOD_STRANDS}, "
            f"got {options.mod_strand!r}"
        )

    bam = AlignmentFilterConfig(
        source=source,
        min_seq_len=options.min_seq_len,
        min_align_len=options.min_align_len,
        read_id_set=frozenset(options.read_id_set) if options.read_id_set is not None else None,
        threads=options.threads,
        include_zero_len=bool(options.include_zero_len),
        read_filter=(
            _parse_read_filter(options.read_filter) if options.read_filter is not None else None
        ),
        sample_fraction=options.sample_fraction,
        mapq_filter=options.mapq_filter,
        exclude_mapq_unavail=bool(options.exclude_mapq_unavail),
        region=options.region,
        full_region=bool(options.full_region),
    )
    mods = ModFilterConfig(
        threshold=policy,
        mod_strand=options.mod_strand,
        trim_read_ends_mod=options.trim_read_ends_mod,
        base_qual_filter_mod=options.base_qual_filter_mod,
        tag=_parse_tag(options.tag),
        mod_region=options.mod_region,
    )

    logger.debug("Built filter configuration for %s", source)
    return bam, mods
