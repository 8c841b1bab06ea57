"""Request translation and output normalization for Mod-BAM operations."""

from .filters import (
    AlignmentFilterConfig,
    BamSource,
    ModFilterConfig,
    build_bam_source,
    build_input_options,
    validate_read_options,
)
from .options import PeekOptions, ReadFilters, ReadOptions, SimulateOptions, WindowOptions
from .report import PeekResult, parse_peek_report
from .tables import project_seq_table
from .threshold import AtLeast, AtLeastExcluding, ThresholdPolicy, threshold_policy
from .tools import bam_mods, peek, read_info, seq_table, simulate_mod_bam, window_reads

__all__ = [
    "AlignmentFilterConfig",
    "AtLeast",
    "AtLeastExcluding",
    "BamSource",
    "ModFilterConfig",
    "PeekOptions",
    "PeekResult",
    "ReadFilters",
    "ReadOptions",
    "SimulateOptions",
    "ThresholdPolicy",
    "WindowOptions",
    "bam_mods",
    "build_bam_source",
    "build_input_options",
    "parse_peek_report",
    "peek",
    "project_seq_table",
    "read_info",
    "seq_table",
    "simulate_mod_bam",
    "threshold_policy",
    "validate_read_options",
    "window_reads",
]
