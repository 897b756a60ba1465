# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for marking coverage."""

import pytest

from src.domains.analytics.aggregator import build_contexts
from src.domains.analytics.coverage import CoverageStatus, build_coverage_rows, classify


class TestClassify:
    """Tests for the coverage status derivation."""

    def test_zero_total_marks_with_attempts(self, make_test) -> None:
        """Test recorded scores on a test without total marks."""
        test = make_test("t0", total_marks=0)

        assert classify(test, 2) == CoverageStatus.MISSING_TOTAL_MARKS

    def test_no_attempts_is_pending(self, make_test) -> None:
        """Test a test with no attempts is pending marking."""
        test = make_test("t20", total_marks=20)

        assert classify(test, 0) == CoverageStatus.PENDING_MARKING

    def test_pending_takes_precedence(self, make_test) -> None:
        """Test no attempts and no total marks is still pending marking."""
        test = make_test("t0", total_marks=0)

        assert classify(test, 0) == CoverageStatus.PENDING_MARKING

    def test_recorded(self, make_test) -> None:
        """Test attempts plus positive total marks is recorded."""
        assert classify(make_test(total_marks=50), 1) == CoverageStatus.RECORDED

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": "Renamed"},
            {"term": "Term 3"},
            {"date": None},
            {"class_id": "class-b"},
            {"teacher_id": "teacher-2"},
        ],
    )
    def test_depends_only_on_count_and_total(self, make_test, overrides) -> None:
        """Test other test fields never change the status."""
        base = make_test(total_marks=50)
        changed = make_test(total_marks=50, **overrides)

        for count in (0, 1, 7):
            assert classify(base, count) == classify(changed, count)

    def test_status_serializes_as_string(self) -> None:
        """Test the enum behaves as its string value."""
        assert CoverageStatus.RECORDED == "recorded"
        assert CoverageStatus("missing_total_marks") is CoverageStatus.MISSING_TOTAL_MARKS


class TestBuildCoverageRows:
    """Tests for per-test coverage rows."""

    def test_rows_for_each_status(self, make_test, make_attempt, directory) -> None:
        """Test a mix of recorded, missing-total and pending tests."""
        tests = [
            make_test("t-rec", total_marks=50, date="2025-02-10"),
            make_test("t-zero", total_marks=0, date="2025-02-12"),
            make_test("t-pend", total_marks=20, date="2025-02-14"),
        ]
        attempts_by_test = {
            "t-rec": [make_attempt("t-rec", "stu-1", 10), make_attempt("t-rec", "stu-2", 40)],
            "t-zero": [make_attempt("t-zero", "stu-1", 5), make_attempt("t-zero", "stu-2", 10)],
        }
        contexts = build_contexts(tests, [a for group in attempts_by_test.values() for a in group])

        rows = build_coverage_rows(tests, attempts_by_test, contexts, directory)

        by_id = {row.id: row for row in rows}
        assert by_id["t-rec"].status == CoverageStatus.RECORDED
        assert by_id["t-rec"].attempts_count == 2
        assert by_id["t-rec"].avg_pct == 50.0
        assert by_id["t-zero"].status == CoverageStatus.MISSING_TOTAL_MARKS
        assert by_id["t-zero"].attempts_count == 2
        assert by_id["t-zero"].avg_pct is None
        assert by_id["t-pend"].status == CoverageStatus.PENDING_MARKING
        assert by_id["t-pend"].attempts_count == 0
        assert by_id["t-pend"].avg_pct is None

    def test_labels_resolved_from_directory(self, make_test, directory) -> None:
        """Test teacher, class and subject labels."""
        test = make_test("t1", teacher_id="teacher-2", class_id="class-b", subject_id="eng")

        row = build_coverage_rows([test], {}, (), directory)[0]

        assert row.teacher_name == "Brian Mwangi"
        assert row.class_name == "Form 1B"
        assert row.subject_name == "English"

    def test_sorted_by_date_then_title(self, make_test, directory) -> None:
        """Test undated tests come first, then by date and title."""
        tests = [
            make_test("t1", title="Midterm", date="2025-03-01"),
            make_test("t2", title="Quiz", date=None),
            make_test("t3", title="Algebra check", date="2025-03-01"),
            make_test("t4", title="Opener", date="2025-01-15"),
        ]

        rows = build_coverage_rows(tests, {}, (), directory)

        assert [row.id for row in rows] == ["t2", "t4", "t3", "t1"]

    def test_avg_maps_back_to_mean_raw_score(self, make_test, make_attempt, directory) -> None:
        """Test avg_pct times total marks over 100 recovers the mean raw score."""
        test = make_test("t1", total_marks=37)
        scores = [12, 19.5, 30, 7]
        attempts = [make_attempt("t1", f"s{i}", score) for i, score in enumerate(scores)]

        row = build_coverage_rows(
            [test], {"t1": attempts}, build_contexts([test], attempts), directory
        )[0]

        assert row.avg_pct is not None
        mean_raw = sum(scores) / len(scores)
        assert abs(row.avg_pct * test.total_marks / 100 - mean_raw) <= 0.01 * test.total_marks

    def test_to_dict_uses_status_value(self, make_test, directory) -> None:
        """Test serialization of a pending row."""
        row = build_coverage_rows([make_test("t1", total_marks=20)], {}, (), directory)[0]

        assert row.to_dict() == {
            "id": "t1",
            "title": "Test t1",
            "teacher_name": "Amina Otieno",
            "class_name": "Form 1A",
            "subject_name": "Mathematics",
            "date": "2025-02-10",
            "total_marks": 20,
            "attempts_count": 0,
            "avg_pct": None,
            "status": "pending_marking",
        }
