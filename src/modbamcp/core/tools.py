"""Async operations of modbamcp.

Each operation validates its options, opens the alignment source, runs the
engine into a byte buffer and normalizes the output. The whole sequence runs
as one task on the worker pool (see ``core.executor``); the coroutine only
waits for it.
"""

from __future__ import annotations

import contextlib
import io
import json
import logging
from collections.abc import Iterator, Mapping
from typing import Any, TypeVar

from .. import engine
from ..config import ModBamConfig
from ..constants import DEFAULT_WIN_OP
from ..errors import EngineError, InvalidOptionsError, OperationError, OutputFormatError
from ..engine.reader import fetch_records, open_alignment, resolve_region
from ..engine.simulate import SimulationConfig
from ..engine.window import WINDOW_FUNCTIONS
from .executor import run_blocking
from .filters import AlignmentFilterConfig, build_bam_source, build_input_options
from .options import PeekOptions, ReadOptions, SimulateOptions, WindowOptions
from .report import PeekResult, parse_peek_report
from .tables import project_seq_table

logger = logging.getLogger(__name__)

_O = TypeVar("_O", PeekOptions, ReadOptions, WindowOptions, SimulateOptions)


def _coerce(options: _O | Mapping[str, Any], cls: type[_O]) -> _O:
    if isinstance(options, cls):
        return options
    if isinstance(options, Mapping):
        return cls.from_dict(options)
    raise InvalidOptionsError(
        f"Expected {cls.__name__} or a mapping, got {type(options).__name__}"
    )


@contextlib.contextmanager
def _engine_errors(operation: str) -> Iterator[None]:
    """Report pysam/engine failures as ``EngineError`` with the operation name."""
    try:
        yield
    except OperationError:
        raise
    except (OSError, ValueError, KeyError, ArithmeticError, TypeError) as e:
        raise EngineError(f"{operation} failed: {e}") from e


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise OutputFormatError(f"Invalid UTF-8: {e}") from e


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise OutputFormatError(f"Failed to parse JSON: {e}") from e


# -- Synchronous implementations (run on the worker pool) ---------------------


def peek_sync(options: PeekOptions, record_limit: int) -> PeekResult:
    """Read the header and the first ``record_limit`` records of a BAM file."""
    bam = AlignmentFilterConfig(source=build_bam_source(options.bam_path, options.treat_as_url))

    buffer = io.BytesIO()
    with open_alignment(bam) as samfile, _engine_errors("Peek"):
        engine.peek.run(buffer, samfile, fetch_records(samfile, bam), record_limit)

    return parse_peek_report(_decode(buffer.getvalue()))


def _read_json(options: ReadOptions, detailed: bool) -> Any:
    bam, mods = build_input_options(options)
    operation = "bam_mods" if detailed else "read_info"
    logger.info("Running %s on %s", operation, bam.source)

    buffer = io.BytesIO()
    with open_alignment(bam) as samfile, _engine_errors(operation):
        engine.read_info.run(buffer, fetch_records(samfile, bam), mods, detailed=detailed)

    return _parse_json(_decode(buffer.getvalue()))


def read_info_sync(options: ReadOptions) -> Any:
    """Per-read summary records as a JSON value."""
    return _read_json(options, detailed=False)


def bam_mods_sync(options: ReadOptions) -> Any:
    """Per-read modification tables as a JSON value."""
    return _read_json(options, detailed=True)


def window_reads_sync(options: WindowOptions) -> str:
    """Windowed modification density (or its gradient) as TSV."""
    bam, mods = build_input_options(options.to_read_options())

    if options.win <= 0:
        raise InvalidOptionsError("Window size must be > 0")
    if options.step <= 0:
        raise InvalidOptionsError("Step size must be > 0")

    win_op = DEFAULT_WIN_OP if options.win_op is None else options.win_op
    func = WINDOW_FUNCTIONS.get(win_op)
    if func is None:
        raise InvalidOptionsError("win_op must be set to 'density' or 'grad_density'")

    logger.info("Running window_reads (%s, win=%d, step=%d) on %s",
                win_op, options.win, options.step, bam.source)

    buffer = io.BytesIO()
    with open_alignment(bam) as samfile, _engine_errors("window_reads"):
        engine.window.run(
            buffer, fetch_records(samfile, bam), options.win, options.step, mods, func
        )

    return _decode(buffer.getvalue())


def seq_table_sync(options: ReadOptions) -> str:
    """Region sequence table with read_id, sequence and qualities columns.

    Reads must span the whole region and only modifications inside it are
    shown, whatever ``full_region``/``mod_region`` the caller passed.
    """
    region = options.region
    if not region:
        raise InvalidOptionsError("region parameter is required for seq_table (cannot be empty)")

    bam, mods = build_input_options(options.with_overrides(full_region=True, mod_region=region))
    logger.info("Running seq_table for %s on %s", region, bam.source)

    buffer = io.BytesIO()
    with open_alignment(bam) as samfile:
        bounds = resolve_region(samfile, region)
        with _engine_errors("seq_table"):
            engine.reads_table.run(buffer, fetch_records(samfile, bam), mods, bounds)

    return project_seq_table(_decode(buffer.getvalue()))


def simulate_mod_bam_sync(options: SimulateOptions) -> None:
    """Generate a FASTA reference and an indexed Mod-BAM from a JSON config."""
    try:
        data = json.loads(options.json_config)
    except json.JSONDecodeError as e:
        raise OutputFormatError(f"Invalid JSON config: {e}") from e

    try:
        sim_config = SimulationConfig.from_dict(data)
    except KeyError as e:
        raise OutputFormatError(f"Invalid JSON config: missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise OutputFormatError(f"Invalid JSON config: {e}") from e

    with _engine_errors("Simulation"):
        engine.simulate.run(sim_config, options.bam_path, options.fasta_path)


# -- Async operations --------------------------------------------------------


def _config(config: ModBamConfig | None) -> ModBamConfig:
    return config if config is not None else ModBamConfig()


async def peek(
    options: PeekOptions | Mapping[str, Any], config: ModBamConfig | None = None
) -> PeekResult:
    """Contig lengths and modification types of a BAM file."""
    config = _config(config)
    opts = _coerce(options, PeekOptions)
    return await run_blocking(config, peek_sync, opts, config.peek_record_limit)


async def read_info(
    options: ReadOptions | Mapping[str, Any], config: ModBamConfig | None = None
) -> Any:
    """Per-read information as a JSON array."""
    return await run_blocking(_config(config), read_info_sync, _coerce(options, ReadOptions))


async def bam_mods(
    options: ReadOptions | Mapping[str, Any], config: ModBamConfig | None = None
) -> Any:
    """Per-read modification detail as a JSON array."""
    return await run_blocking(_config(config), bam_mods_sync, _coerce(options, ReadOptions))


async def window_reads(
    options: WindowOptions | Mapping[str, Any], config: ModBamConfig | None = None
) -> str:
    """Windowed modification statistics as TSV."""
    return await run_blocking(
        _config(config), window_reads_sync, _coerce(options, WindowOptions)
    )


async def seq_table(
    options: ReadOptions | Mapping[str, Any], config: ModBamConfig | None = None
) -> str:
    """Three-column sequence table for a region as TSV."""
    return await run_blocking(_config(config), seq_table_sync, _coerce(options, ReadOptions))


async def simulate_mod_bam(
    options: SimulateOptions | Mapping[str, Any], config: ModBamConfig | None = None
) -> None:
    """Write a simulated Mod-BAM (with index) and its FASTA reference."""
    await run_blocking(
        _config(config), simulate_mod_bam_sync, _coerce(options, SimulateOptions)
    )
