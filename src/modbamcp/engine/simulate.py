"""Synthetic Mod-BAM generation for tests and demos.

A simulation config looks like::

    {
      "contigs": {"number": 2, "len_range": [10000, 10000]},
      "reads": [
        {
          "number": 1000,
          "mapq_range": [10, 20],
          "base_qual_range": [10, 20],
          "len_range": [0.1, 0.8],
          "insert_middle": "ATCG",
          "mods": [
            {"base": "T", "is_strand_plus": true, "mod_code": "T",
             "win": [4, 5], "mod_range": [[0.1, 0.2], [0.3, 0.4]]}
          ]
        }
      ],
      "seed": 42
    }

``len_range`` of a read group is a fraction of the contig length. Candidate
bases of a modification are annotated in alternating runs: ``win[k]`` bases
with probabilities drawn from ``mod_range[k]``, cycling through both lists.
"""

from __future__ import annotations

import logging
import random
import uuid
from array import array
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pysam

from ..constants import MAX_QUAL

logger = logging.getLogger(__name__)

BASES = "ACGT"
_COMPLEMENT = str.maketrans("ACGTNacgtn", "TGCANtgcan")
FASTA_LINE_WIDTH = 80


def reverse_complement(seq: str) -> str:
    return seq.translate(_COMPLEMENT)[::-1]


def _pair(value: Sequence[Any], name: str, kind: type) -> tuple[Any, Any]:
    if len(value) != 2:
        raise ValueError(f"{name} must have exactly 2 values, got {list(value)}")
    low, high = kind(value[0]), kind(value[1])
    if low > high:
        raise ValueError(f"{name} must be ordered [low, high], got {list(value)}")
    return low, high


def _qual_pair(value: Sequence[Any], name: str) -> tuple[int, int]:
    low, high = _pair(value, name, int)
    if low < 0 or high > MAX_QUAL:
        raise ValueError(f"{name} must lie within [0, {MAX_QUAL}], got {list(value)}")
    return low, high


@dataclass
class ModSpec:
    """One modification type to write onto simulated reads."""

    base: str
    is_strand_plus: bool
    mod_code: str
    win: list[int]
    mod_range: list[tuple[float, float]]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ModSpec:
        base = str(data["base"]).upper()
        if base not in BASES + "N":
            raise ValueError(f"mod base must be one of ACGTN, got {base!r}")
        win = [int(w) for w in data["win"]]
        if not win or any(w < 1 for w in win):
            raise ValueError(f"mod win must be a non-empty list of positive integers, got {win}")
        mod_range = [_pair(r, "mod_range entry", float) for r in data["mod_range"]]
        if not mod_range or any(lo < 0 or hi > 1 for lo, hi in mod_range):
            raise ValueError("mod_range must be a non-empty list of [low, high] within [0, 1]")
        return cls(
            base=base,
            is_strand_plus=bool(data["is_strand_plus"]),
            mod_code=str(data["mod_code"]),
            win=win,
            mod_range=mod_range,
        )


@dataclass
class ReadGroupSpec:
    """A batch of reads sharing length, quality and modification settings."""

    number: int
    mapq_range: tuple[int, int]
    base_qual_range: tuple[int, int]
    len_range: tuple[float, float]
    insert_middle: str | None = None
    mods: list[ModSpec] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReadGroupSpec:
        number = int(data["number"])
        if number < 0:
            raise ValueError(f"reads number must be non-negative, got {number}")
        len_range = _pair(data["len_range"], "len_range", float)
        if len_range[0] <= 0 or len_range[1] > 1:
            raise ValueError(f"len_range must lie in (0, 1], got {list(len_range)}")
        insert_middle = data.get("insert_middle")
        if insert_middle is not None and set(insert_middle.upper()) - set(BASES):
            raise ValueError(f"insert_middle must only contain ACGT, got {insert_middle!r}")
        return cls(
            number=number,
            mapq_range=_qual_pair(data["mapq_range"], "mapq_range"),
            base_qual_range=_qual_pair(data["base_qual_range"], "base_qual_range"),
            len_range=len_range,
            insert_middle=insert_middle.upper() if insert_middle else None,
            mods=[ModSpec.from_dict(m) for m in data.get("mods", [])],
        )


@dataclass
class SimulationConfig:
    """Everything needed to generate a reference FASTA and a Mod-BAM."""

    contig_number: int
    contig_len_range: tuple[int, int]
    reads: list[ReadGroupSpec]
    seed: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SimulationConfig:
        """Build a config from parsed JSON.

        Raises:
            ValueError, KeyError, TypeError: If the document does not describe
                a valid simulation.
        """
        if not isinstance(data, Mapping):
            raise TypeError("simulation config must be a JSON object")
        contigs = data["contigs"]
        number = int(contigs["number"])
        if number < 1:
            raise ValueError(f"contigs number must be at least 1, got {number}")
        len_range = _pair(contigs["len_range"], "contigs len_range", int)
        if len_range[0] < 1:
            raise ValueError(f"contig lengths must be positive, got {list(len_range)}")
        seed = data.get("seed")
        return cls(
            contig_number=number,
            contig_len_range=len_range,
            reads=[ReadGroupSpec.from_dict(r) for r in data["reads"]],
            seed=int(seed) if seed is not None else None,
        )


def _mod_tags(
    original: str, specs: Sequence[ModSpec], rng: random.Random
) -> tuple[str, list[int]]:
    """Build MM and ML tag values for a read in its original orientation."""
    mm_parts: list[str] = []
    ml_values: list[int] = []
    for spec in specs:
        target = spec.base if spec.is_strand_plus else spec.base.translate(_COMPLEMENT)
        count = sum(1 for b in original if spec.base == "N" or b == target)

        probs: list[float] = []
        k = 0
        while len(probs) < count:
            lo, hi = spec.mod_range[k % len(spec.mod_range)]
            run_len = spec.win[k % len(spec.win)]
            probs.extend(rng.uniform(lo, hi) for _ in range(min(run_len, count - len(probs))))
            k += 1

        strand = "+" if spec.is_strand_plus else "-"
        # Every candidate base is listed, so all skip counts are zero
        skips = "".join(",0" for _ in range(count))
        mm_parts.append(f"{spec.base}{strand}{spec.mod_code}?{skips};")
        ml_values.extend(min(255, int(p * 256)) for p in probs)
    return "".join(mm_parts), ml_values


def _write_fasta(path: str, contigs: Sequence[tuple[str, str]]) -> None:
    with open(path, "w") as f:
        for name, seq in contigs:
            f.write(f">{name}\n")
            for i in range(0, len(seq), FASTA_LINE_WIDTH):
                f.write(seq[i : i + FASTA_LINE_WIDTH] + "\n")


def run(config: SimulationConfig, bam_path: str, fasta_path: str) -> None:
    """Write a random reference to ``fasta_path`` and sorted, indexed reads to ``bam_path``."""
    rng = random.Random(config.seed)

    contigs: list[tuple[str, str]] = []
    for i in range(config.contig_number):
        length = rng.randint(*config.contig_len_range)
        contigs.append((f"contig_{i:05d}", "".join(rng.choices(BASES, k=length))))

    Path(fasta_path).parent.mkdir(parents=True, exist_ok=True)
    Path(bam_path).parent.mkdir(parents=True, exist_ok=True)
    _write_fasta(fasta_path, contigs)

    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": name, "LN": len(seq)} for name, seq in contigs],
    }

    planned: list[tuple[int, int, dict[str, Any]]] = []
    for group in config.reads:
        for _ in range(group.number):
            ref_id = rng.randrange(len(contigs))
            ref_seq = contigs[ref_id][1]
            read_len = max(1, round(rng.uniform(*group.len_range) * len(ref_seq)))
            start = rng.randint(0, len(ref_seq) - read_len)
            aligned = ref_seq[start : start + read_len]

            cigar = [(0, read_len)]
            stored = aligned
            if group.insert_middle and read_len > 1:
                mid = read_len // 2
                stored = aligned[:mid] + group.insert_middle + aligned[mid:]
                cigar = [(0, mid), (1, len(group.insert_middle)), (0, read_len - mid)]

            is_reverse = rng.random() < 0.5
            original = reverse_complement(stored) if is_reverse else stored
            mm, ml = _mod_tags(original, group.mods, rng)

            planned.append(
                (
                    ref_id,
                    start,
                    {
                        "name": str(uuid.UUID(int=rng.getrandbits(128))),
                        "seq": stored,
                        "cigar": cigar,
                        "is_reverse": is_reverse,
                        "mapq": rng.randint(*group.mapq_range),
                        "quals": [rng.randint(*group.base_qual_range) for _ in stored],
                        "mm": mm,
                        "ml": ml,
                    },
                )
            )

    planned.sort(key=lambda item: (item[0], item[1]))

    with pysam.AlignmentFile(bam_path, "wb", header=header) as outf:
        for ref_id, start, spec in planned:
            a = pysam.AlignedSegment(outf.header)
            a.query_name = spec["name"]
            a.query_sequence = spec["seq"]
            a.flag = 16 if spec["is_reverse"] else 0
            a.reference_id = ref_id
            a.reference_start = start
            a.mapping_quality = spec["mapq"]
            a.cigartuples = spec["cigar"]
            a.query_qualities = array("B", spec["quals"])
            if spec["ml"]:
                a.set_tag("MM", spec["mm"], value_type="Z")
                a.set_tag("ML", array("B", spec["ml"]))
            outf.write(a)

    pysam.index(bam_path)
    logger.info(
        "Simulated %d reads on %d contigs into %s (reference %s)",
        len(planned),
        len(contigs),
        bam_path,
        fasta_path,
    )
