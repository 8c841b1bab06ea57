"""Modification calls decoded from MM/ML tags, filtered per request."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pysam

from .reader import parse_region

if TYPE_CHECKING:
    from ..core.filters import ModFilterConfig


@dataclass
class ModCall:
    """One modification call: query position, reference position, ML quality."""

    read_pos: int
    ref_pos: int | None
    qual: int


@dataclass
class ModTrack:
    """All kept calls of one modification type on one read."""

    base: str
    is_strand_plus: bool
    mod_code: str
    calls: list[ModCall] = field(default_factory=list)

    @property
    def label(self) -> str:
        """``T+T`` / ``C-m`` style name."""
        return f"{self.base}{'+' if self.is_strand_plus else '-'}{self.mod_code}"


def mod_types(read: pysam.AlignedSegment) -> list[str]:
    """Modification labels present on ``read``, in tag order."""
    modified = read.modified_bases or {}
    return [
        f"{base}{'+' if strand == 0 else '-'}{code}" for base, strand, code in modified.keys()
    ]


def extract_mods(read: pysam.AlignedSegment, mods: ModFilterConfig) -> list[ModTrack]:
    """Decode and filter the modification calls of ``read``.

    Positions are indices into the stored (reference-oriented) sequence.
    Tracks with no surviving calls are still returned.
    """
    modified = read.modified_bases or {}
    if not modified:
        return []

    seq_len = read.query_length
    quals = read.query_qualities
    ref_positions: list[int | None] = (
        [None] * seq_len if read.is_unmapped else read.get_reference_positions(full_length=True)
    )

    region_bounds = None
    if mods.mod_region is not None:
        region_bounds = parse_region(mods.mod_region)

    tracks: list[ModTrack] = []
    for (base, strand, code), calls in modified.items():
        is_plus = strand == 0
        if mods.mod_strand == "bc" and not is_plus:
            continue
        if mods.mod_strand == "bc_comp" and is_plus:
            continue
        if mods.tag is not None and str(code) != mods.tag:
            continue

        track = ModTrack(base=base, is_strand_plus=is_plus, mod_code=str(code))
        for pos, qual in calls:
            qual = max(qual, 0)
            if not mods.threshold.accepts(qual):
                continue
            trim = mods.trim_read_ends_mod
            if trim and (pos < trim or pos >= seq_len - trim):
                continue
            if (
                mods.base_qual_filter_mod is not None
                and quals is not None
                and quals[pos] < mods.base_qual_filter_mod
            ):
                continue
            ref_pos = ref_positions[pos]
            if region_bounds is not None and not _in_region(read, ref_pos, region_bounds):
                continue
            track.calls.append(ModCall(read_pos=pos, ref_pos=ref_pos, qual=qual))
        tracks.append(track)

    return tracks


def _in_region(
    read: pysam.AlignedSegment,
    ref_pos: int | None,
    bounds: tuple[str, int | None, int | None],
) -> bool:
    contig, start, end = bounds
    if ref_pos is None or read.is_unmapped or read.reference_name != contig:
        return False
    if start is not None and ref_pos < start:
        return False
    if end is not None and ref_pos >= end:
        return False
    return True
