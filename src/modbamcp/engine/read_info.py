"""Per-read JSON records: summary info, or the full modification table."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, BinaryIO

import pysam

from .mods import ModTrack, extract_mods
from .reader import alignment_type

if TYPE_CHECKING:
    from ..core.filters import ModFilterConfig


def _mod_count(tracks: list[ModTrack]) -> str:
    counts = [f"{track.label}:{len(track.calls)}" for track in tracks if track.calls]
    return ";".join(counts) if counts else "NA"


def _summary_record(read: pysam.AlignedSegment, tracks: list[ModTrack]) -> dict[str, Any]:
    kind = alignment_type(read)
    if kind == "unmapped":
        return {
            "read_id": read.query_name,
            "sequence_length": read.query_length,
            "alignment_type": kind,
            "mod_count": _mod_count(tracks),
        }
    return {
        "read_id": read.query_name,
        "sequence_length": read.query_length,
        "contig": read.reference_name,
        "reference_start": read.reference_start,
        "reference_end": read.reference_end,
        "alignment_length": read.reference_length,
        "alignment_type": kind,
        "mod_count": _mod_count(tracks),
    }


def _detailed_record(read: pysam.AlignedSegment, tracks: list[ModTrack]) -> dict[str, Any]:
    kind = alignment_type(read)
    record: dict[str, Any] = {"alignment_type": kind}
    if kind != "unmapped":
        record["alignment"] = {
            "start": read.reference_start,
            "end": read.reference_end,
            "contig": read.reference_name,
            "contig_id": read.reference_id,
        }
    record["mod_table"] = [
        {
            "base": track.base,
            "is_strand_plus": track.is_strand_plus,
            "mod_code": track.mod_code,
            "data": [
                [call.read_pos, call.ref_pos if call.ref_pos is not None else -1, call.qual]
                for call in track.calls
            ],
        }
        for track in tracks
    ]
    record["read_id"] = read.query_name
    record["seq_len"] = read.query_length
    return record


def run(
    sink: BinaryIO,
    records: Iterable[pysam.AlignedSegment],
    mods: ModFilterConfig,
    detailed: bool = False,
) -> None:
    """Write a JSON array with one object per record.

    Summary records are pretty-printed; detailed records are compact.
    """
    build = _detailed_record if detailed else _summary_record
    payload = [build(read, extract_mods(read, mods)) for read in records]
    if detailed:
        text = json.dumps(payload, separators=(",", ":"))
    else:
        text = json.dumps(payload, indent=2)
    sink.write(text.encode())
