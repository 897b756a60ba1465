# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the in-memory data source and scope records."""

import pytest
from pydantic import ValidationError

from src.domains.analytics.models import ScopeContext, ScopeFilter
from src.domains.analytics.sources import InMemoryDataSource


@pytest.fixture
def source(make_test, make_attempt, make_answer, directory) -> InMemoryDataSource:
    return InMemoryDataSource(
        tests=[make_test("t1"), make_test("t2", school_id="other-school")],
        attempts=[
            make_attempt("t1", "stu-1", 10, id="a1"),
            make_attempt("t1", "stu-2", 20, id="a2"),
            make_attempt("t2", "stu-9", 5, id="a9"),
        ],
        answers=[
            make_answer("a1", "topic-1", True, "Numbers"),
            make_answer("a1", "topic-2", False, "Shapes"),
            make_answer("a9", "topic-1", True, "Numbers"),
        ],
        directory=directory,
    )


class TestInMemoryDataSource:
    """Tests for InMemoryDataSource."""

    @pytest.mark.asyncio
    async def test_tests_scoped_to_school(self, source, school_scope) -> None:
        """Test only the scope's school tests are listed."""
        tests = await source.list_tests(school_scope)

        assert [test.id for test in tests] == ["t1"]

    @pytest.mark.asyncio
    async def test_attempts_derive_answer_count(self, source, school_scope) -> None:
        """Test attempts carry the number of answers supplied."""
        attempts = await source.list_attempts(school_scope, "t1")

        assert {a.id: a.answer_count for a in attempts} == {"a1": 2, "a2": 0}

    @pytest.mark.asyncio
    async def test_other_school_ids_return_nothing(self, source, school_scope) -> None:
        """Test ids belonging to another school are invisible."""
        assert await source.list_attempts(school_scope, "t2") == []
        assert await source.list_attempt_answers(school_scope, "a9") == []

    @pytest.mark.asyncio
    async def test_answers_for_attempt(self, source, school_scope) -> None:
        """Test answer-level rows are returned for an in-scope attempt."""
        answers = await source.list_attempt_answers(school_scope, "a1")

        assert [answer.resolved_topic_id for answer in answers] == ["topic-1", "topic-2"]

    @pytest.mark.asyncio
    async def test_directory(self, source, school_scope, directory) -> None:
        """Test the configured directory is returned."""
        assert await source.get_directory(school_scope) == directory


class TestScopeRecords:
    """Tests for scope records."""

    def test_filter_matches_all_fields(self, make_test) -> None:
        """Test every non-empty field must match."""
        test = make_test(teacher_id="teacher-1", class_id="class-a", subject_id="math", term="Term 1")

        assert ScopeFilter().matches(test)
        assert ScopeFilter(teacher_id="teacher-1", term="Term 1").matches(test)
        assert not ScopeFilter(teacher_id="teacher-1", class_id="class-b").matches(test)
        assert not ScopeFilter(subject_id="eng").matches(test)
        assert not ScopeFilter(term="Term 2").matches(test)

    def test_blank_term_is_no_restriction(self, make_test) -> None:
        """Test a blank term filter matches every test."""
        assert ScopeFilter(term="  ").matches(make_test(term=None))

    def test_records_are_immutable(self, sample_school_id) -> None:
        """Test scope records cannot be mutated."""
        scope = ScopeContext(school_id=sample_school_id)

        with pytest.raises(ValidationError):
            scope.school_id = "other"  # type: ignore[misc]

    def test_negative_total_marks_rejected(self, make_test) -> None:
        """Test total marks cannot be negative."""
        with pytest.raises(ValidationError):
            make_test(total_marks=-5)
