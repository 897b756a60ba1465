# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Dimension aggregation over normalized attempts.

This module groups attempt records by an arbitrary dimension (class,
subject, teacher or student) and computes per-group statistics:
- attempts: Number of normalized attempts in the group
- tests_count: Number of distinct tests in the group
- avg_pct: Mean percentage, rounded to two decimals

Rows are ordered worst-first so that intervention targets surface at the
top of every table.

Usage:
    from src.domains.analytics.aggregator import aggregate, build_contexts, by_class

    contexts = build_contexts(tests, attempts)
    rows = aggregate(contexts, by_class(directory))
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple

from src.domains.analytics.models import Attempt, ReferenceDirectory, Test
from src.domains.analytics.normalizer import mean_pct, normalize


class GroupKey(NamedTuple):
    """Grouping id plus its display label."""

    id: str
    name: str


@dataclass(frozen=True)
class AttemptContext:
    """An attempt joined with its test and normalized percentage.

    Attributes:
        attempt: The recorded attempt.
        test: Parent test of the attempt.
        raw_score: Points awarded.
        pct: Percentage of total marks, or None when not computable.
    """

    attempt: Attempt
    test: Test
    raw_score: float
    pct: float | None


@dataclass(frozen=True)
class AggregateRow:
    """Rollup for one class, subject or teacher."""

    id: str
    name: str
    attempts: int
    tests_count: int
    avg_pct: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "attempts": self.attempts,
            "tests_count": self.tests_count,
            "avg_pct": self.avg_pct,
        }


@dataclass(frozen=True)
class StudentRow:
    """Rollup for one student."""

    student_id: str
    student_name: str
    class_name: str
    attempts: int
    tests_count: int
    avg_pct: float
    latest_date: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "student_name": self.student_name,
            "class_name": self.class_name,
            "attempts": self.attempts,
            "tests_count": self.tests_count,
            "avg_pct": self.avg_pct,
            "latest_date": self.latest_date,
        }


KeyOf = Callable[[AttemptContext], GroupKey]


def name_order(name: str) -> tuple[str, str]:
    """Sort key approximating a locale-aware, case-sensitive comparison."""
    return (name.casefold(), name)


def build_contexts(
    tests: Iterable[Test],
    attempts: Iterable[Attempt],
) -> tuple[AttemptContext, ...]:
    """Join attempts to their tests and normalize each score.

    Attempts whose test is not in ``tests`` are dropped.

    Args:
        tests: Tests in scope.
        attempts: Attempts recorded for those tests.

    Returns:
        One context per attempt with a known test.
    """
    test_by_id = {test.id: test for test in tests}
    contexts = []
    for attempt in attempts:
        test = test_by_id.get(attempt.test_id)
        if test is None:
            continue
        raw_score = float(attempt.total_score)
        contexts.append(
            AttemptContext(
                attempt=attempt,
                test=test,
                raw_score=raw_score,
                pct=normalize(raw_score, test.total_marks),
            )
        )
    return tuple(contexts)


def _group(
    records: Iterable[AttemptContext],
    key_of: Callable[[AttemptContext], str],
) -> dict[str, list[AttemptContext]]:
    # Insertion order keeps the first record seen for each id at index 0
    groups: dict[str, list[AttemptContext]] = {}
    for record in records:
        if record.pct is None:
            continue
        groups.setdefault(key_of(record), []).append(record)
    return groups


def _avg(records: Sequence[AttemptContext]) -> float:
    # Groups only exist once they hold a normalized record
    avg = mean_pct(record.pct for record in records)
    return avg if avg is not None else 0.0


def aggregate(
    records: Iterable[AttemptContext],
    key_of: KeyOf,
) -> tuple[AggregateRow, ...]:
    """Group normalized attempts and compute per-group statistics.

    Records with a null percentage are skipped and never create a group.
    The group label is taken from the first record seen for each id.

    Args:
        records: Attempt contexts to aggregate.
        key_of: Extracts the grouping id and label from a record.

    Returns:
        Rows sorted by avg_pct ascending, then name, then id.
    """
    keys: dict[str, GroupKey] = {}

    def group_id(record: AttemptContext) -> str:
        key = key_of(record)
        keys.setdefault(key.id, key)
        return key.id

    rows = [
        AggregateRow(
            id=group_id_,
            name=keys[group_id_].name,
            attempts=len(members),
            tests_count=len({member.test.id for member in members}),
            avg_pct=_avg(members),
        )
        for group_id_, members in _group(records, group_id).items()
    ]
    return tuple(sorted(rows, key=lambda row: (row.avg_pct, name_order(row.name), row.id)))


def _record_date(record: AttemptContext) -> str | None:
    return record.test.date or record.attempt.submitted_at or None


def aggregate_students(
    records: Iterable[AttemptContext],
    directory: ReferenceDirectory,
) -> tuple[StudentRow, ...]:
    """Per-student rollup, carrying the latest test or submission date.

    Args:
        records: Attempt contexts to aggregate.
        directory: Labels for students and classes.

    Returns:
        Rows sorted by avg_pct ascending, then student name, then id.
    """
    rows = []
    for student_id, members in _group(records, lambda r: r.attempt.student_id).items():
        first = members[0]
        student = directory.student(first.attempt)
        class_name = (
            (student.class_name if student else None)
            or (directory.class_names.get(student.class_id) if student and student.class_id else None)
            or directory.class_name(first.test)
        )
        latest = max((_record_date(member) or "" for member in members), default="")
        rows.append(
            StudentRow(
                student_id=student_id,
                student_name=student.full_name if student else "Student",
                class_name=class_name,
                attempts=len(members),
                tests_count=len({member.test.id for member in members}),
                avg_pct=_avg(members),
                latest_date=latest or None,
            )
        )
    return tuple(
        sorted(rows, key=lambda row: (row.avg_pct, name_order(row.student_name), row.student_id))
    )


def by_class(directory: ReferenceDirectory) -> KeyOf:
    """Group by the test's class."""
    return lambda record: GroupKey(record.test.class_id, directory.class_name(record.test))


def by_subject(directory: ReferenceDirectory) -> KeyOf:
    """Group by the test's subject."""
    return lambda record: GroupKey(record.test.subject_id, directory.subject_name(record.test))


def by_teacher(directory: ReferenceDirectory) -> KeyOf:
    """Group by the teacher who set the test."""
    return lambda record: GroupKey(
        record.test.teacher_id, directory.teacher_name(record.test.teacher_id)
    )


def group_by_test(records: Iterable[AttemptContext]) -> Mapping[str, list[AttemptContext]]:
    """Normalized contexts per test id."""
    return _group(records, lambda r: r.test.id)
