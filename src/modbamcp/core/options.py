"""Request option records for modbamcp operations.

Records are pydantic models in strict mode: field types are checked when a
record is built, and a wrongly-typed value is an ``InvalidOptionsError``.
Every field except the required ones defaults to ``None`` ("unset"). Ranges
and cross-field rules are left to ``core.filters``, which turns a record into
engine configuration.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import InvalidOptionsError

_T = TypeVar("_T", bound="OptionsModel")


def _describe(cls: type[BaseModel], error: ValidationError) -> str:
    """First error as ``field: message``, naming the field in snake_case."""
    names = {f.alias: name for name, f in cls.model_fields.items() if f.alias}
    first = error.errors()[0]
    parts = [names.get(part, part) if isinstance(part, str) else part for part in first["loc"]]
    loc = ".".join(str(part) for part in parts) or "options"
    return f"{loc}: {first['msg']}"


class OptionsModel(BaseModel):
    """Base for option records; accepts snake_case or camelCase keys."""

    model_config = ConfigDict(
        strict=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @classmethod
    def from_dict(cls: type[_T], data: Mapping[str, Any]) -> _T:
        """Create the record from a mapping with snake_case or camelCase keys.

        Raises:
            InvalidOptionsError: On unknown keys, missing required fields or
                wrongly-typed values.
        """
        known = set(cls.model_fields)
        known.update(f.alias for f in cls.model_fields.values() if f.alias)
        for key in data:
            if key not in known:
                raise InvalidOptionsError(f"Unknown option '{key}' for {cls.__name__}")
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            raise InvalidOptionsError(
                f"Invalid options for {cls.__name__}: {_describe(cls, e)}"
            ) from e


class PeekOptions(OptionsModel):
    """Options for ``peek``."""

    bam_path: str
    treat_as_url: bool | None = None


class ReadFilters(OptionsModel):
    """Optional read and modification filters shared by the per-read operations."""

    treat_as_url: bool | None = Field(None, description="Treat bam_path as a URL")

    # Alignment filters
    min_seq_len: int | None = Field(None, description="Minimum basecalled sequence length")
    min_align_len: int | None = Field(None, description="Minimum alignment length")
    read_id_set: list[str] | None = Field(None, description="Only keep these read ids")
    threads: int | None = Field(None, description="BAM decompression threads (1-255)")
    include_zero_len: bool | None = None
    read_filter: str | None = Field(
        None, description="Comma-separated alignment types, e.g. primary_forward,unmapped"
    )
    sample_fraction: float | None = Field(None, description="Fraction of reads to keep, 0-1")
    mapq_filter: int | None = Field(None, description="Minimum mapping quality")
    exclude_mapq_unavail: bool | None = None
    region: str | None = Field(None, description="Region such as chr1:1000-2000")
    full_region: bool | None = Field(None, description="Only reads spanning the whole region")

    # Modification filters
    tag: str | None = Field(None, description="Modification code, e.g. m or 76792")
    mod_strand: str | None = Field(None, description="bc or bc_comp")
    min_mod_qual: int | None = Field(None, description="Minimum modification probability (0-255)")
    reject_mod_qual_non_inclusive: list[int] | None = Field(
        None, description="[low, high]: drop calls strictly between low and high"
    )
    trim_read_ends_mod: int | None = None
    base_qual_filter_mod: int | None = None
    mod_region: str | None = None

    def as_options(self, bam_path: str) -> dict[str, Any]:
        """Set filters plus ``bam_path``, as a mapping for the operations."""
        return {"bam_path": bam_path, **self.model_dump(exclude_none=True)}


class ReadOptions(ReadFilters):
    """Options shared by read_info, bam_mods and seq_table."""

    bam_path: str

    def with_overrides(self, **changes: Any) -> ReadOptions:
        """Return a validated copy with some fields replaced."""
        return type(self).model_validate({**self.model_dump(), **changes})


class WindowOptions(ReadOptions):
    """Options for ``window_reads``: the read filters plus window parameters."""

    win: int
    step: int
    win_op: str | None = None

    def to_read_options(self) -> ReadOptions:
        """Drop the window parameters, keeping every filter field."""
        return ReadOptions.model_validate(self.model_dump(include=set(ReadOptions.model_fields)))


class SimulateOptions(OptionsModel):
    """Options for ``simulate_mod_bam``."""

    json_config: str
    bam_path: str
    fasta_path: str
