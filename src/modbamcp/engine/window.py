"""Sliding-window statistics over the modification calls of each read."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, BinaryIO

import numpy as np
import pysam

from ..constants import MOD_CALL_THRESHOLD
from .mods import extract_mods

if TYPE_CHECKING:
    from ..core.filters import ModFilterConfig

WindowFunction = Callable[[np.ndarray, np.ndarray], float]

WINDOW_COLUMNS = (
    "#contig",
    "ref_win_start",
    "ref_win_end",
    "read_id",
    "win_val",
    "strand",
    "base",
    "mod_strand",
    "mod_type",
    "win_start",
    "win_end",
)


def threshold_and_mean(positions: np.ndarray, quals: np.ndarray) -> float:
    """Fraction of calls in the window that count as modified."""
    return float(np.mean(quals >= MOD_CALL_THRESHOLD))


def threshold_and_gradient(positions: np.ndarray, quals: np.ndarray) -> float:
    """Slope of the thresholded calls against read position."""
    if len(positions) < 2 or np.ptp(positions) == 0:
        return 0.0
    values = (quals >= MOD_CALL_THRESHOLD).astype(float)
    slope, _ = np.polyfit(positions.astype(float), values, 1)
    return float(slope)


WINDOW_FUNCTIONS: dict[str, WindowFunction] = {
    "density": threshold_and_mean,
    "grad_density": threshold_and_gradient,
}


def run(
    sink: BinaryIO,
    records: Iterable[pysam.AlignedSegment],
    win: int,
    step: int,
    mods: ModFilterConfig,
    func: WindowFunction,
) -> None:
    """Write one TSV row per window of ``win`` consecutive calls, moving ``step`` calls."""
    sink.write(("\t".join(WINDOW_COLUMNS) + "\n").encode())

    for read in records:
        if read.is_unmapped:
            contig, strand = ".", "."
        else:
            contig, strand = read.reference_name, "-" if read.is_reverse else "+"

        for track in extract_mods(read, mods):
            calls = sorted(track.calls, key=lambda c: c.read_pos)
            if len(calls) < win:
                continue
            positions = np.array([c.read_pos for c in calls])
            quals = np.array([c.qual for c in calls])

            for i in range(0, len(calls) - win + 1, step):
                window = calls[i : i + win]
                value = func(positions[i : i + win], quals[i : i + win])
                ref_positions = [c.ref_pos for c in window if c.ref_pos is not None]
                row = (
                    contig,
                    min(ref_positions) if ref_positions else -1,
                    max(ref_positions) + 1 if ref_positions else -1,
                    read.query_name,
                    round(value, 6),
                    strand,
                    track.base,
                    "+" if track.is_strand_plus else "-",
                    track.mod_code,
                    window[0].read_pos,
                    window[-1].read_pos + 1,
                )
                sink.write(("\t".join(str(v) for v in row) + "\n").encode())
