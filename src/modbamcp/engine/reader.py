"""Opening alignment sources and pre-filtering records with pysam."""

from __future__ import annotations

import contextlib
import logging
import zlib
from collections.abc import Iterator
from typing import TYPE_CHECKING

import pysam

from ..constants import MAPQ_UNAVAILABLE
from ..errors import BamOpenError

if TYPE_CHECKING:
    from ..core.filters import AlignmentFilterConfig

logger = logging.getLogger(__name__)


def parse_region(region: str) -> tuple[str, int | None, int | None]:
    """
    Parse a genomic region string into contig, start, end.

    Supports formats:
        - chr1
        - chr1:1000-2000
        - chr1:1,000-2,000

    Coordinates are 0-based, end-exclusive. A bare contig name means the whole
    contig and returns ``None`` for start and end.

    Returns:
        Tuple of (contig, start, end)

    Raises:
        ValueError: If region format is invalid.
    """
    region = region.replace(",", "").strip()
    if not region:
        raise ValueError("Invalid region format: ''. Expected format: 'chr1:1000-2000'")

    if ":" not in region:
        return region, None, None

    try:
        contig, coords = region.rsplit(":", 1)
        start_str, end_str = coords.split("-")
        start = int(start_str)
        end = int(end_str)
    except ValueError as e:
        raise ValueError(
            f"Invalid region format: '{region}'. Expected format: 'chr1:1000-2000'"
        ) from e

    if not contig:
        raise ValueError(f"Invalid region format: '{region}'. Missing contig name")
    if start < 0:
        raise ValueError(f"Start position must be non-negative, got {start}")
    if end <= start:
        raise ValueError(f"End position ({end}) must be greater than start ({start})")

    return contig, start, end


def resolve_region(samfile: pysam.AlignmentFile, region: str) -> tuple[str, int, int]:
    """Parse ``region`` and fill in whole-contig bounds from the header.

    Raises:
        BamOpenError: If the region is malformed or names an unknown contig.
    """
    try:
        contig, start, end = parse_region(region)
    except ValueError as e:
        raise BamOpenError(str(e)) from e

    if contig not in samfile.references:
        raise BamOpenError(f"Contig '{contig}' not found in BAM header")

    length = samfile.get_reference_length(contig)
    return contig, start if start is not None else 0, end if end is not None else length


def alignment_type(read: pysam.AlignedSegment) -> str:
    """Classify a record as e.g. ``primary_forward`` or ``unmapped``."""
    if read.is_unmapped:
        return "unmapped"
    if read.is_secondary:
        kind = "secondary"
    elif read.is_supplementary:
        kind = "supplementary"
    else:
        kind = "primary"
    return f"{kind}_{'reverse' if read.is_reverse else 'forward'}"


def _in_sample(read_id: str, fraction: float) -> bool:
    # Hash-based so repeated calls keep the same reads
    return zlib.crc32(read_id.encode()) / 2**32 < fraction


@contextlib.contextmanager
def open_alignment(bam: AlignmentFilterConfig) -> Iterator[pysam.AlignmentFile]:
    """Open the configured BAM file or URL, closing it afterwards.

    Raises:
        BamOpenError: If the source cannot be opened.
    """
    logger.debug("Opening alignment source %s", bam.source)
    try:
        samfile = pysam.AlignmentFile(str(bam.source), "rb", threads=bam.threads or 1)
    except (OSError, ValueError) as e:
        raise BamOpenError(f"Failed to open BAM: {e}") from e

    # Use context manager to ensure file handles are closed on exception
    with samfile:
        yield samfile


def fetch_records(
    samfile: pysam.AlignmentFile, bam: AlignmentFilterConfig
) -> Iterator[pysam.AlignedSegment]:
    """Yield the records of ``samfile`` that pass the alignment filters.

    Without a region the whole file is read in file order, unmapped reads
    included. With a region the index is required.

    Raises:
        BamOpenError: If the region cannot be fetched.
    """
    bounds: tuple[str, int, int] | None = None
    if bam.region is not None:
        bounds = resolve_region(samfile, bam.region)
        try:
            records = samfile.fetch(*bounds)
        except (OSError, ValueError) as e:
            raise BamOpenError(f"Failed to fetch region '{bam.region}': {e}") from e
    else:
        records = samfile.fetch(until_eof=True)

    for read in records:
        if passes_alignment_filter(read, bam, bounds):
            yield read


def passes_alignment_filter(
    read: pysam.AlignedSegment,
    bam: AlignmentFilterConfig,
    bounds: tuple[str, int, int] | None = None,
) -> bool:
    """Apply every read-level filter in ``bam`` to one record."""
    read_id = read.query_name or ""

    if not bam.include_zero_len and read.query_length == 0:
        return False
    if bam.min_seq_len is not None and read.query_length < bam.min_seq_len:
        return False
    if bam.min_align_len is not None:
        if read.is_unmapped or (read.reference_length or 0) < bam.min_align_len:
            return False
    if bam.read_id_set is not None and read_id not in bam.read_id_set:
        return False
    if bam.read_filter is not None and alignment_type(read) not in bam.read_filter:
        return False
    if bam.mapq_filter is not None and read.mapping_quality < bam.mapq_filter:
        return False
    if bam.exclude_mapq_unavail and read.mapping_quality == MAPQ_UNAVAILABLE:
        return False
    if bam.full_region and bounds is not None:
        _, start, end = bounds
        if read.is_unmapped or read.reference_start > start or (read.reference_end or 0) < end:
            return False
    if bam.sample_fraction is not None and not _in_sample(read_id, bam.sample_fraction):
        return False
    return True
