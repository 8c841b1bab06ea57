"""Region-clipped display sequences of reads, as a TSV table."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, BinaryIO

import pysam

from ..constants import DELETION_QUAL, MOD_CALL_THRESHOLD
from .mods import extract_mods
from .reader import alignment_type

if TYPE_CHECKING:
    from ..core.filters import ModFilterConfig

TABLE_COLUMNS = ("read_id", "alignment_type", "sequence_length", "sequence", "qualities")


def display_sequence(
    read: pysam.AlignedSegment,
    start: int,
    end: int,
    modified: set[int],
) -> tuple[str, str]:
    """Render the part of ``read`` aligned to ``[start, end)``.

    Deletions show as ``.``, insertions in lower case, and bases carrying a
    modification call as ``Z`` (``z`` inside an insertion). Qualities are
    period-separated numbers, with 255 for deleted bases.

    Returns:
        Tuple of (sequence, qualities)
    """
    seq = read.query_sequence or ""
    quals = read.query_qualities
    clip_start, clip_end = read.query_alignment_start, read.query_alignment_end

    bases: list[str] = []
    qual_values: list[int] = []
    last_ref: int | None = None

    for qpos, rpos in read.get_aligned_pairs():
        if rpos is not None:
            last_ref = rpos
            if not start <= rpos < end:
                continue
            if qpos is None:
                bases.append(".")
                qual_values.append(DELETION_QUAL)
                continue
            base = "Z" if qpos in modified else seq[qpos]
        else:
            # Insertion, unless it is a soft clip
            if qpos is None or not clip_start <= qpos < clip_end:
                continue
            if last_ref is None or not start <= last_ref < end - 1:
                continue
            base = "z" if qpos in modified else seq[qpos].lower()
        bases.append(base)
        qual_values.append(quals[qpos] if quals is not None else DELETION_QUAL)

    return "".join(bases), ".".join(str(q) for q in qual_values)


def run(
    sink: BinaryIO,
    records: Iterable[pysam.AlignedSegment],
    mods: ModFilterConfig,
    bounds: tuple[str, int, int],
) -> None:
    """Write a comment line, a header, and one row per mapped record."""
    contig, start, end = bounds
    sink.write(f"# reads table for {contig}:{start}-{end}\n".encode())
    sink.write(("\t".join(TABLE_COLUMNS) + "\n").encode())

    for read in records:
        if read.is_unmapped:
            continue
        modified = {
            call.read_pos
            for track in extract_mods(read, mods)
            for call in track.calls
            if call.qual >= MOD_CALL_THRESHOLD
        }
        sequence, qualities = display_sequence(read, start, end, modified)
        row = (read.query_name, alignment_type(read), read.query_length, sequence, qualities)
        sink.write(("\t".join(str(v) for v in row) + "\n").encode())
