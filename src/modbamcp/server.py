"""MCP server setup for modbamcp using FastMCP."""

from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP

from .config import ModBamConfig
from .core.options import ReadFilters
from .core.tools import bam_mods, peek, read_info, seq_table, simulate_mod_bam, window_reads


def create_server(config: ModBamConfig | None = None) -> FastMCP:
    """Create and configure the modbamcp MCP server."""
    if config is None:
        config = ModBamConfig.from_env()

    mcp = FastMCP(name="modbamcp", host=config.host, port=config.port)

    # -- Tools ---------------------------------------------------------------
    # Thin wrappers around core.tools; errors propagate as tool errors.

    @mcp.tool(
        name="peek",
        description=(
            "List contigs with their lengths and the modification types seen in the "
            "first records of a BAM file. Use this first on a new file."
        ),
    )
    async def peek_bam(bam_path: str, treat_as_url: bool | None = None) -> str:
        args: dict = {"bam_path": bam_path}
        if treat_as_url is not None:
            args["treat_as_url"] = treat_as_url
        result = await peek(args, config)
        return json.dumps(result.to_dict())

    @mcp.tool(
        name="read_info",
        description="Per-read summary: lengths, alignment and modification counts (JSON)",
    )
    async def get_read_info(bam_path: str, filters: ReadFilters | None = None) -> str:
        result = await read_info((filters or ReadFilters()).as_options(bam_path), config)
        return json.dumps(result)

    @mcp.tool(
        name="bam_mods",
        description="Per-read modification calls with read/reference positions (JSON)",
    )
    async def get_bam_mods(bam_path: str, filters: ReadFilters | None = None) -> str:
        result = await bam_mods((filters or ReadFilters()).as_options(bam_path), config)
        return json.dumps(result)

    @mcp.tool(
        name="window_reads",
        description=(
            "Windowed modification density (win_op=density) or its gradient "
            "(win_op=grad_density) along each read, as TSV"
        ),
    )
    async def get_window_reads(
        bam_path: str,
        win: int,
        step: int,
        win_op: str | None = None,
        filters: ReadFilters | None = None,
    ) -> str:
        args = (filters or ReadFilters()).as_options(bam_path)
        args.update(win=win, step=step)
        if win_op is not None:
            args["win_op"] = win_op
        return await window_reads(args, config)

    @mcp.tool(
        name="seq_table",
        description=(
            "Sequences and base qualities of reads spanning a region, as TSV with "
            "read_id, sequence and qualities columns"
        ),
    )
    async def get_seq_table(bam_path: str, region: str, filters: ReadFilters | None = None) -> str:
        args = (filters or ReadFilters()).as_options(bam_path)
        args["region"] = region
        return await seq_table(args, config)

    @mcp.tool(
        name="simulate_mod_bam",
        description="Generate a simulated Mod-BAM and FASTA reference from a JSON config",
    )
    async def simulate_bam(json_config: str, bam_path: str, fasta_path: str) -> str:
        await simulate_mod_bam(
            {"json_config": json_config, "bam_path": bam_path, "fasta_path": fasta_path},
            config,
        )
        return json.dumps({"bam_path": bam_path, "fasta_path": fasta_path})

    return mcp
