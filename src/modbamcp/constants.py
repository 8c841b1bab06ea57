"""Shared constants for modbamcp runtime defaults and thresholds.

This module is the single source of truth for default values that are consumed
across configuration loading, option translation, and the pysam engine.
"""

from __future__ import annotations

# Transport defaults
DEFAULT_HOST = "0.0.0.0"  # noqa: S104
DEFAULT_PORT = 8000
DEFAULT_TRANSPORT = "stdio"
DEFAULT_LOG_LEVEL = "INFO"

# Worker pool used for all blocking BAM work
DEFAULT_MAX_WORKERS = 4

# peek only looks at the first records for modification types
DEFAULT_PEEK_RECORD_LIMIT = 100

# Option translation
DEFAULT_MIN_MOD_QUAL = 0
DEFAULT_WIN_OP = "density"
MOD_STRANDS = ("bc", "bc_comp")
MAX_QUAL = 255
MAX_THREADS = 255

# Alignment types, used both by read_filter and in engine output
ALIGNMENT_TYPES = (
    "primary_forward",
    "primary_reverse",
    "secondary_forward",
    "secondary_reverse",
    "supplementary_forward",
    "supplementary_reverse",
    "unmapped",
)

# Mapping quality value meaning "unavailable" in SAM
MAPQ_UNAVAILABLE = 255

# A call with ML >= this value counts as modified when windowing/displaying
MOD_CALL_THRESHOLD = 128

# Quality shown for deleted bases in the reads table
DELETION_QUAL = 255

# Columns kept by seq_table
SEQ_TABLE_COLUMNS = ("read_id", "sequence", "qualities")

# Peek report grammar
PEEK_CONTIGS_HEADER = "contigs_and_lengths:"
PEEK_MODS_HEADER = "modifications:"
PEEK_EMPTY_MARKER = "None"
