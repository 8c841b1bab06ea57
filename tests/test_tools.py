"""Integration tests for the async operations in modbamcp.core.tools."""

import json
import os

import pytest

from modbamcp.config import ModBamConfig
from modbamcp.core.options import PeekOptions, ReadOptions, WindowOptions
from modbamcp.core.tools import (
    _engine_errors,
    bam_mods,
    peek,
    read_info,
    seq_table,
    simulate_mod_bam,
    window_reads,
)
from modbamcp.errors import (
    BamOpenError,
    ConfigBuildError,
    EngineError,
    InvalidOptionsError,
    OperationError,
    OutputFormatError,
)

SIMULATION = {
    "contigs": {"number": 2, "len_range": [200, 200]},
    "reads": [
        {
            "number": 20,
            "mapq_range": [10, 20],
            "base_qual_range": [10, 20],
            "len_range": [0.1, 0.5],
            "mods": [
                {
                    "base": "T",
                    "is_strand_plus": True,
                    "mod_code": "T",
                    "win": [2, 3],
                    "mod_range": [[0.1, 0.2], [0.7, 0.8]],
                }
            ],
        }
    ],
    "seed": 7,
}


def _by_id(records):
    return {r["read_id"]: r for r in records}


class TestPeek:
    """Tests for peek."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_contigs_and_mods(self, mod_bam_path, config):
        result = await peek(PeekOptions(bam_path=mod_bam_path), config)
        assert result.contigs == {"chr1": 1000, "chr2": 500}
        assert ("T", "+", "T") in result.modifications
        assert ("C", "+", "m") in result.modifications

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_accepts_camel_case_mapping(self, mod_bam_path):
        result = await peek({"bamPath": mod_bam_path})
        assert set(result.contigs) == {"chr1", "chr2"}

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_record_limit(self, mod_bam_path):
        """Only the first record (read_fwd) is inspected for modifications."""
        result = await peek({"bam_path": mod_bam_path}, ModBamConfig(peek_record_limit=1))
        assert result.modifications == [("T", "+", "T")]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_empty_bam(self, empty_bam_path, config):
        result = await peek({"bam_path": empty_bam_path}, config)
        assert result.contigs == {"chr1": 1000}
        assert result.modifications == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path, config):
        with pytest.raises(BamOpenError, match="Failed to open BAM"):
            await peek({"bam_path": str(tmp_path / "missing.bam")}, config)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_url(self, config):
        with pytest.raises(InvalidOptionsError, match="Invalid URL"):
            await peek({"bam_path": "not a url", "treat_as_url": True}, config)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_option(self, config):
        with pytest.raises(InvalidOptionsError, match="Unknown option"):
            await peek({"bam_path": "x.bam", "threads": 2}, config)


class TestReadInfo:
    """Tests for read_info."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_all_reads(self, mod_bam_path, config):
        records = await read_info({"bam_path": mod_bam_path}, config)
        assert len(records) == 6
        reads = _by_id(records)

        fwd = reads["read_fwd"]
        assert fwd["contig"] == "chr1"
        assert fwd["reference_start"] == 100
        assert fwd["reference_end"] == 120
        assert fwd["alignment_length"] == 20
        assert fwd["sequence_length"] == 20
        assert fwd["alignment_type"] == "primary_forward"
        assert fwd["mod_count"] == "T+T:5"

        assert reads["read_rev"]["alignment_type"] == "primary_reverse"
        assert reads["read_supp"]["alignment_type"] == "supplementary_forward"
        assert reads["read_nomods"]["mod_count"] == "NA"

        unmapped = reads["read_unmapped"]
        assert unmapped["alignment_type"] == "unmapped"
        assert "contig" not in unmapped
        assert unmapped["mod_count"] == "T+T:3"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_read_filter(self, mod_bam_path, config):
        records = await read_info({"bam_path": mod_bam_path, "read_filter": "unmapped"}, config)
        assert [r["read_id"] for r in records] == ["read_unmapped"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_mapq_filters(self, mod_bam_path, config):
        records = await read_info(ReadOptions(bam_path=mod_bam_path, mapq_filter=50), config)
        assert set(_by_id(records)) == {"read_fwd", "read_nomods"}

        records = await read_info(
            ReadOptions(bam_path=mod_bam_path, mapq_filter=50, exclude_mapq_unavail=True), config
        )
        assert set(_by_id(records)) == {"read_fwd"}

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_region(self, mod_bam_path, config):
        records = await read_info({"bam_path": mod_bam_path, "region": "chr2"}, config)
        assert len(records) == 1
        assert records[0]["read_id"] == "read_chr2"
        assert records[0]["mod_count"] == "C+m:5"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_min_mod_qual(self, mod_bam_path, config):
        records = await read_info(
            {"bam_path": mod_bam_path, "read_id_set": ["read_fwd"], "min_mod_qual": 100}, config
        )
        assert records[0]["mod_count"] == "T+T:3"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_reject_band(self, mod_bam_path, config):
        records = await read_info(
            {
                "bam_path": mod_bam_path,
                "read_id_set": ["read_fwd"],
                "reject_mod_qual_non_inclusive": [0, 200],
            },
            config,
        )
        assert records[0]["mod_count"] == "T+T:2"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_sample_fraction_zero(self, mod_bam_path, config):
        assert await read_info({"bam_path": mod_bam_path, "sample_fraction": 0.0}, config) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options, message",
        [
            ({"threads": 0}, "threads must be a positive integer"),
            ({"include_zero_len": True}, "include_zero_len"),
            ({"sample_fraction": 1.5}, "sample_fraction"),
            ({"reject_mod_qual_non_inclusive": [5]}, "exactly 2 numbers"),
        ],
    )
    async def test_invalid_options(self, options, message, config):
        # Rejected before the (nonexistent) file is opened
        with pytest.raises(InvalidOptionsError, match=message):
            await read_info({"bam_path": "/nonexistent.bam", **options}, config)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wrongly_typed_options(self, config):
        for options in (
            {"threads": "4"},
            {"min_mod_qual": "10"},
            {"reject_mod_qual_non_inclusive": ["a", "b"]},
        ):
            with pytest.raises(InvalidOptionsError, match="Invalid options for ReadOptions"):
                await read_info({"bam_path": "/nonexistent.bam", **options}, config)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_repeated_calls_agree(self, mod_bam_path, config):
        options = {"bam_path": mod_bam_path, "min_mod_qual": 100, "read_filter": "primary_forward"}
        assert await read_info(options, config) == await read_info(options, config)
        assert await bam_mods(options, config) == await bam_mods(options, config)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_full_region_without_region(self, config):
        with pytest.raises(ConfigBuildError):
            await read_info({"bam_path": "/nonexistent.bam", "full_region": True}, config)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_region_contig(self, mod_bam_path, config):
        with pytest.raises(BamOpenError, match="chr9"):
            await read_info({"bam_path": mod_bam_path, "region": "chr9:1-10"}, config)


class TestBamMods:
    """Tests for bam_mods."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_detail(self, mod_bam_path, config):
        records = _by_id(await bam_mods({"bam_path": mod_bam_path}, config))

        fwd = records["read_fwd"]
        assert fwd["alignment_type"] == "primary_forward"
        assert fwd["alignment"] == {"start": 100, "end": 120, "contig": "chr1", "contig_id": 0}
        assert fwd["seq_len"] == 20
        assert fwd["mod_table"] == [
            {
                "base": "T",
                "is_strand_plus": True,
                "mod_code": "T",
                "data": [[3, 103, 200], [7, 107, 10], [11, 111, 250], [15, 115, 5], [19, 119, 130]],
            }
        ]

        unmapped = records["read_unmapped"]
        assert "alignment" not in unmapped
        assert [entry[1] for entry in unmapped["mod_table"][0]["data"]] == [-1, -1, -1]

        assert records["read_nomods"]["mod_table"] == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_mod_region(self, mod_bam_path, config):
        records = await bam_mods(
            {"bam_path": mod_bam_path, "read_id_set": ["read_fwd"], "mod_region": "chr1:105-112"},
            config,
        )
        assert records[0]["mod_table"][0]["data"] == [[7, 107, 10], [11, 111, 250]]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_invalid_tag_is_ignored(self, mod_bam_path, config):
        records = await bam_mods(
            {"bam_path": mod_bam_path, "read_id_set": ["read_fwd"], "tag": "??"}, config
        )
        assert len(records[0]["mod_table"][0]["data"]) == 5


class TestWindowReads:
    """Tests for window_reads."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_density(self, mod_bam_path, config):
        tsv = await window_reads(
            {"bam_path": mod_bam_path, "win": 2, "step": 2, "read_id_set": ["read_fwd"]}, config
        )
        lines = tsv.splitlines()
        assert lines[0].split("\t")[:4] == ["#contig", "ref_win_start", "ref_win_end", "read_id"]
        rows = [line.split("\t") for line in lines[1:]]
        assert [(r[1], r[2], r[4]) for r in rows] == [("103", "108", "0.5"), ("111", "116", "0.5")]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_grad_density(self, mod_bam_path, config):
        tsv = await window_reads(
            WindowOptions(
                bam_path=mod_bam_path, win=5, step=1, win_op="grad_density", read_id_set=["read_fwd"]
            ),
            config,
        )
        assert len(tsv.splitlines()) == 2

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_window_larger_than_read(self, mod_bam_path, config):
        tsv = await window_reads(
            {"bam_path": mod_bam_path, "win": 50, "step": 1}, config
        )
        assert len(tsv.splitlines()) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options, message",
        [
            ({"win": 0, "step": 1}, "Window size must be > 0"),
            ({"win": 5, "step": 0}, "Step size must be > 0"),
            ({"win": 5, "step": 1, "win_op": "median"}, "win_op must be set to 'density' or 'grad_density'"),
            ({"win": 0, "step": 0, "threads": 0}, "threads must be a positive integer"),
        ],
    )
    async def test_invalid(self, options, message, config):
        with pytest.raises(InvalidOptionsError, match=message):
            await window_reads({"bam_path": "/nonexistent.bam", **options}, config)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wrongly_typed_window(self, config):
        with pytest.raises(InvalidOptionsError, match="Invalid options for WindowOptions: win"):
            await window_reads({"bam_path": "/nonexistent.bam", "win": "5", "step": 1}, config)


class TestSeqTable:
    """Tests for seq_table."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_region_table(self, mod_bam_path, config):
        tsv = await seq_table({"bam_path": mod_bam_path, "region": "chr1:110-115"}, config)
        lines = tsv.splitlines()
        assert lines[0] == "read_id\tsequence\tqualities"
        rows = {line.split("\t")[0]: line.split("\t") for line in lines[1:]}
        assert set(rows) == {"read_fwd", "read_rev"}
        assert rows["read_fwd"] == ["read_fwd", "GZACG", "30.30.30.30.30"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_full_region_is_forced(self, mod_bam_path, config):
        forced = await seq_table(
            {"bam_path": mod_bam_path, "region": "chr1:110-115", "full_region": False}, config
        )
        default = await seq_table({"bam_path": mod_bam_path, "region": "chr1:110-115"}, config)
        assert forced == default

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_mod_region_is_forced(self, mod_bam_path, config):
        forced = await seq_table(
            {"bam_path": mod_bam_path, "region": "chr1:110-115", "mod_region": "chr2:0-10"}, config
        )
        default = await seq_table({"bam_path": mod_bam_path, "region": "chr1:110-115"}, config)
        assert forced == default
        assert "Z" in forced

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_no_spanning_reads(self, mod_bam_path, config):
        tsv = await seq_table({"bam_path": mod_bam_path, "region": "chr1:800-900"}, config)
        assert tsv == "read_id\tsequence\tqualities\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("region", [None, ""])
    async def test_region_required(self, region, config):
        options = {"bam_path": "/nonexistent.bam"}
        if region is not None:
            options["region"] = region
        with pytest.raises(InvalidOptionsError, match="region parameter is required for seq_table"):
            await seq_table(options, config)

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unknown_contig(self, mod_bam_path, config):
        with pytest.raises(BamOpenError):
            await seq_table({"bam_path": mod_bam_path, "region": "chr9:1-10"}, config)


class TestSimulateModBam:
    """Tests for simulate_mod_bam."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_simulate_then_read(self, tmp_path, config):
        bam_path = str(tmp_path / "sim" / "sim.bam")
        fasta_path = str(tmp_path / "sim" / "sim.fa")

        result = await simulate_mod_bam(
            {"json_config": json.dumps(SIMULATION), "bam_path": bam_path, "fasta_path": fasta_path},
            config,
        )
        assert result is None
        assert os.path.exists(bam_path)
        assert os.path.exists(bam_path + ".bai")
        assert os.path.exists(fasta_path)

        summary = await peek({"bam_path": bam_path}, config)
        assert summary.contigs == {"contig_00000": 200, "contig_00001": 200}
        assert ("T", "+", "T") in summary.modifications

        records = await read_info({"bam_path": bam_path}, config)
        assert len(records) == 20

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_same_seed_same_reads(self, tmp_path, config):
        names = []
        for run in ("a", "b"):
            bam_path = str(tmp_path / f"{run}.bam")
            await simulate_mod_bam(
                {
                    "json_config": json.dumps(SIMULATION),
                    "bam_path": bam_path,
                    "fasta_path": str(tmp_path / f"{run}.fa"),
                },
                config,
            )
            names.append([r["read_id"] for r in await read_info({"bam_path": bam_path}, config)])
        assert names[0] == names[1]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path, config):
        with pytest.raises(OutputFormatError, match="Invalid JSON config"):
            await simulate_mod_bam(
                {
                    "json_config": "{not json",
                    "bam_path": str(tmp_path / "x.bam"),
                    "fasta_path": str(tmp_path / "x.fa"),
                },
                config,
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_field(self, tmp_path, config):
        with pytest.raises(OutputFormatError, match="missing field 'contigs'"):
            await simulate_mod_bam(
                {
                    "json_config": json.dumps({"reads": []}),
                    "bam_path": str(tmp_path / "x.bam"),
                    "fasta_path": str(tmp_path / "x.fa"),
                },
                config,
            )

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_mapq_out_of_range(self, tmp_path, config):
        sim = json.loads(json.dumps(SIMULATION))
        sim["reads"][0]["mapq_range"] = [300, 300]
        with pytest.raises(OutputFormatError, match="Invalid JSON config: mapq_range must lie within"):
            await simulate_mod_bam(
                {
                    "json_config": json.dumps(sim),
                    "bam_path": str(tmp_path / "x.bam"),
                    "fasta_path": str(tmp_path / "x.fa"),
                },
                config,
            )

    @pytest.mark.unit
    def test_engine_overflow_is_engine_error(self):
        with pytest.raises(EngineError, match="Simulation failed: value too large"):
            with _engine_errors("Simulation"):
                raise OverflowError("value too large to convert to uint8_t")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unwritable_output(self, tmp_path, config):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(OperationError, match="Simulation failed"):
            await simulate_mod_bam(
                {
                    "json_config": json.dumps(SIMULATION),
                    "bam_path": str(blocker / "x.bam"),
                    "fasta_path": str(tmp_path / "x.fa"),
                },
                config,
            )
