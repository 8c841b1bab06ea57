"""Default analysis engine built on pysam.

Each writer takes already-validated configuration and writes its output (text
report, JSON or TSV) into a byte sink. ``modbamcp.core.tools`` decodes and
normalizes what is written.
"""

from . import peek, read_info, reads_table, simulate, window
from .mods import ModCall, ModTrack, extract_mods, mod_types
from .reader import (
    alignment_type,
    fetch_records,
    open_alignment,
    parse_region,
    passes_alignment_filter,
    resolve_region,
)
from .simulate import SimulationConfig
from .window import WINDOW_FUNCTIONS, threshold_and_gradient, threshold_and_mean

__all__ = [
    "WINDOW_FUNCTIONS",
    "ModCall",
    "ModTrack",
    "SimulationConfig",
    "alignment_type",
    "extract_mods",
    "fetch_records",
    "mod_types",
    "open_alignment",
    "parse_region",
    "passes_alignment_filter",
    "peek",
    "read_info",
    "reads_table",
    "resolve_region",
    "simulate",
    "threshold_and_gradient",
    "threshold_and_mean",
    "window",
]
