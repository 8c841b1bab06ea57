"""Column projection for the engine's tab-separated reads table."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterator, Sequence

from ..constants import SEQ_TABLE_COLUMNS
from ..errors import OutputFormatError


def _data_lines(tsv: str) -> Iterator[str]:
    """Yield lines that are not ``#`` comments."""
    for line in io.StringIO(tsv):
        if not line.startswith("#"):
            yield line


def project_seq_table(tsv: str, columns: Sequence[str] = SEQ_TABLE_COLUMNS) -> str:
    """Keep only ``columns`` of a tab-separated table, in the given order.

    Comment lines (starting with ``#``) are skipped. Row order is kept and
    values pass through unchanged. The output always starts with a header.

    Raises:
        OutputFormatError: If the header lacks a column or a row does not
            have as many fields as the header.
    """
    reader = csv.reader(_data_lines(tsv), delimiter="\t")
    out = io.StringIO()
    writer = csv.writer(out, delimiter="\t", lineterminator="\n")
    writer.writerow(columns)

    try:
        header = next(reader)
    except StopIteration:
        return out.getvalue()
    except csv.Error as e:
        raise OutputFormatError(f"Failed to parse TSV header: {e}") from e

    try:
        indices = [header.index(name) for name in columns]
    except ValueError as e:
        raise OutputFormatError(f"TSV header is missing a required column: {e}") from e
    width = len(header)

    try:
        for row in reader:
            if not row:
                continue
            if len(row) != width:
                raise OutputFormatError(
                    f"Failed to parse TSV row {reader.line_num}: "
                    f"expected {width} fields, got {len(row)}"
                )
            writer.writerow([row[i] for i in indices])
    except csv.Error as e:
        raise OutputFormatError(f"Failed to parse TSV row: {e}") from e

    return out.getvalue()
