"""Parser for the engine's plain-text peek report.

Grammar::

    contigs_and_lengths:
    <name>\t<length>
    ...
    modifications:
    <base><strand><code>
    ...

Blank lines and the literal ``None`` are ignored in both sections. Lines before
any header are read as contig lines. Modification lines are split by position,
not by delimiter: first character is the base, second the strand, the rest the
modification code (``A+a``, ``G-7200``, ``C+76792``).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..constants import PEEK_CONTIGS_HEADER, PEEK_EMPTY_MARKER, PEEK_MODS_HEADER
from ..errors import OutputFormatError


@dataclass
class PeekResult:
    """Contig lengths and modification types found in a BAM file."""

    contigs: dict[str, int] = field(default_factory=dict)
    modifications: list[tuple[str, str, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        """JSON-compatible form: modifications as ``[base, strand, code]`` lists."""
        return {
            "contigs": dict(self.contigs),
            "modifications": [list(mod) for mod in self.modifications],
        }


def _parse_contig_line(line: str) -> tuple[str, int]:
    parts = line.split("\t")
    name = parts[0]
    if not name:
        raise OutputFormatError("Missing contig name in peek output")
    if len(parts) < 2:
        raise OutputFormatError(f"Missing contig length in peek output: {line!r}")
    try:
        length = int(parts[1])
    except ValueError as e:
        raise OutputFormatError(f"Failed to parse contig length: {parts[1]!r}") from e
    return name, length


def _parse_mod_line(line: str) -> tuple[str, str, str]:
    if len(line) < 2:
        raise OutputFormatError(f"Modification string missing strand: {line!r}")
    base, strand, code = line[0], line[1], line[2:]
    if not code:
        raise OutputFormatError(f"Modification string missing mod code: {line!r}")
    return base, strand, code


def parse_peek_report(text: str) -> PeekResult:
    """Parse a peek report into contig lengths and modification triples.

    Repeated contig names keep the last length seen. Modifications keep
    report order.

    Raises:
        OutputFormatError: On a malformed contig or modification line.
    """
    result = PeekResult()
    in_contigs = True

    for raw in text.splitlines():
        line = raw.strip()
        if not line or line == PEEK_EMPTY_MARKER:
            continue
        if line == PEEK_CONTIGS_HEADER:
            in_contigs = True
        elif line == PEEK_MODS_HEADER:
            in_contigs = False
        elif in_contigs:
            name, length = _parse_contig_line(line)
            result.contigs[name] = length
        else:
            result.modifications.append(_parse_mod_line(line))

    return result
