"""Plain-text summary of a BAM header and the modification types in use."""

from __future__ import annotations

import itertools
from collections.abc import Iterable
from typing import BinaryIO

import pysam

from ..constants import PEEK_CONTIGS_HEADER, PEEK_EMPTY_MARKER, PEEK_MODS_HEADER
from .mods import mod_types


def run(
    sink: BinaryIO,
    samfile: pysam.AlignmentFile,
    records: Iterable[pysam.AlignedSegment],
    record_limit: int,
) -> None:
    """Write the contig table and the modification types seen in the first records."""
    lines = [PEEK_CONTIGS_HEADER]
    contigs = list(zip(samfile.references, samfile.lengths, strict=True))
    lines.extend(f"{name}\t{length}" for name, length in contigs)
    if not contigs:
        lines.append(PEEK_EMPTY_MARKER)

    seen: dict[str, None] = {}
    for read in itertools.islice(records, record_limit):
        for label in mod_types(read):
            seen.setdefault(label)

    lines.append(PEEK_MODS_HEADER)
    lines.extend(seen or [PEEK_EMPTY_MARKER])

    sink.write(("\n".join(lines) + "\n").encode())
