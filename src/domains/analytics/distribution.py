# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Score distribution buckets."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

# (label, exclusive upper bound); the last bucket catches the rest
BUCKETS: tuple[tuple[str, float], ...] = (
    ("0-19", 20.0),
    ("20-39", 40.0),
    ("40-59", 60.0),
    ("60-79", 80.0),
    ("80-100", float("inf")),
)


@dataclass(frozen=True)
class DistributionBucket:
    """Number of percentages that fell into one range."""

    bucket: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"bucket": self.bucket, "count": self.count}


def _bucket_index(value: float) -> int:
    for index, (_, upper) in enumerate(BUCKETS):
        if value < upper:
            return index
    return len(BUCKETS) - 1


def bucket(percentages: Iterable[float | None]) -> tuple[DistributionBucket, ...]:
    """Count percentages per fixed range.

    Args:
        percentages: Normalized percentages. None values are skipped.

    Returns:
        Five buckets in fixed order, zero counts included.
    """
    counts = [0] * len(BUCKETS)
    for value in percentages:
        if value is None:
            continue
        counts[_bucket_index(value)] += 1
    return tuple(
        DistributionBucket(bucket=label, count=count)
        for (label, _), count in zip(BUCKETS, counts)
    )
