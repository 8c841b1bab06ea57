"""Modification-quality threshold policy.

A modification call carries a quality (ML value, 0-255). The policy decides
whether a call is kept:

- ``AtLeast(min)`` keeps calls with quality >= min.
- ``AtLeastExcluding(min, (lo, hi))`` additionally drops calls whose quality
  lies in the closed interval [lo, hi].

Callers describe the rejection band as ``[low, high]`` meaning "strictly
between low and high"; ``threshold_policy`` narrows it by one on each side so
the policy only ever does inclusive comparisons.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from ..constants import DEFAULT_MIN_MOD_QUAL
from ..errors import ConfigBuildError, InvalidOptionsError


@dataclass(frozen=True)
class AtLeast:
    """Keep calls with quality >= ``min_qual``."""

    min_qual: int

    def accepts(self, qual: int) -> bool:
        return qual >= self.min_qual


@dataclass(frozen=True)
class AtLeastExcluding:
    """Keep calls with quality >= ``min_qual`` outside ``reject`` (inclusive)."""

    min_qual: int
    reject: tuple[int, int]

    def __post_init__(self) -> None:
        lo, hi = self.reject
        if lo > hi:
            raise ConfigBuildError(f"Invalid rejection range ({lo}, {hi}): low exceeds high")

    def accepts(self, qual: int) -> bool:
        lo, hi = self.reject
        return qual >= self.min_qual and not lo <= qual <= hi


ThresholdPolicy = AtLeast | AtLeastExcluding


def threshold_policy(
    min_mod_qual: int | None = None,
    reject_mod_qual_non_inclusive: Sequence[int] | None = None,
) -> ThresholdPolicy:
    """Combine a minimum quality and an optional non-inclusive rejection band.

    Args:
        min_mod_qual: Minimum modification quality (default 0).
        reject_mod_qual_non_inclusive: ``[low, high]``; calls with
            ``low < qual < high`` are rejected.

    Returns:
        ``AtLeast`` when no band applies (absent, or ``high - low`` is 0 or 1),
        else ``AtLeastExcluding`` with band ``(low + 1, high - 1)``.

    Raises:
        InvalidOptionsError: If the band is not exactly two numbers or
            ``high < low``.
    """
    min_qual = DEFAULT_MIN_MOD_QUAL if min_mod_qual is None else min_mod_qual

    if reject_mod_qual_non_inclusive is None:
        return AtLeast(min_qual)

    if len(reject_mod_qual_non_inclusive) != 2:
        raise InvalidOptionsError(
            "reject_mod_qual_non_inclusive must be an array of exactly 2 numbers [low, high]"
        )

    low, high = reject_mod_qual_non_inclusive
    diff = high - low
    if diff < 0:
        raise InvalidOptionsError("for reject_mod_qual_non_inclusive, please set low < high")
    if diff in (0, 1):
        # No integer lies strictly between low and high
        return AtLeast(min_qual)

    return AtLeastExcluding(min_qual, (low + 1, high - 1))
