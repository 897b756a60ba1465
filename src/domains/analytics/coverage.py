# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Marking coverage per test.

A test's status is recomputed on every read from two inputs only: how many
attempts have been recorded and its configured total marks. There is no
stored status and no transition history.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.domains.analytics.aggregator import AttemptContext, group_by_test, name_order
from src.domains.analytics.models import Attempt, ReferenceDirectory, Test
from src.domains.analytics.normalizer import mean_pct


class CoverageStatus(str, Enum):
    """Marking state of a test."""

    PENDING_MARKING = "pending_marking"
    MISSING_TOTAL_MARKS = "missing_total_marks"
    RECORDED = "recorded"


def classify(test: Test, attempt_count: int) -> CoverageStatus:
    """Derive the coverage status of a test.

    Evaluated in order, first match wins:
    1. No attempts recorded: pending marking.
    2. Total marks not positive: scores cannot be normalized.
    3. Otherwise: recorded.

    Args:
        test: Test to classify.
        attempt_count: Number of attempts recorded for the test.

    Returns:
        The coverage status.
    """
    if attempt_count == 0:
        return CoverageStatus.PENDING_MARKING
    if test.total_marks <= 0:
        return CoverageStatus.MISSING_TOTAL_MARKS
    return CoverageStatus.RECORDED


@dataclass(frozen=True)
class CoverageRow:
    """Coverage line for one test."""

    id: str
    title: str
    teacher_name: str
    class_name: str
    subject_name: str
    date: str | None
    total_marks: int
    attempts_count: int
    avg_pct: float | None
    status: CoverageStatus

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "teacher_name": self.teacher_name,
            "class_name": self.class_name,
            "subject_name": self.subject_name,
            "date": self.date,
            "total_marks": self.total_marks,
            "attempts_count": self.attempts_count,
            "avg_pct": self.avg_pct,
            "status": self.status.value,
        }


def build_coverage_rows(
    tests: Sequence[Test],
    attempts_by_test: Mapping[str, Sequence[Attempt]],
    contexts: Iterable[AttemptContext],
    directory: ReferenceDirectory,
) -> tuple[CoverageRow, ...]:
    """Build one coverage row per test.

    Args:
        tests: Tests in scope.
        attempts_by_test: Attempts fetched for each test id.
        contexts: Normalized attempt contexts for the same tests.
        directory: Display labels.

    Returns:
        Rows sorted by date (undated first), then title, then id.
    """
    normalized = group_by_test(contexts)
    rows = []
    for test in tests:
        attempt_count = len(attempts_by_test.get(test.id, ()))
        rows.append(
            CoverageRow(
                id=test.id,
                title=test.title,
                teacher_name=directory.teacher_name(test.teacher_id),
                class_name=directory.class_name(test),
                subject_name=directory.subject_name(test),
                date=test.date,
                total_marks=test.total_marks,
                attempts_count=attempt_count,
                avg_pct=mean_pct(record.pct for record in normalized.get(test.id, ())),
                status=classify(test, attempt_count),
            )
        )
    return tuple(sorted(rows, key=lambda row: (row.date or "", name_order(row.title), row.id)))
