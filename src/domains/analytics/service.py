# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics service module.

This module provides the analytics facade used by dashboards and report
exporters. It filters tests by scope, fans out to the data source for
attempts and answer-level rows, and derives immutable view models:
- Overall average percentage and per-test score trend
- Score distribution
- Class, subject, teacher and student rollups
- Weakest topics
- Marking coverage per test and headline highlights

Every call recomputes from the data source; nothing is cached or
persisted. If any fetch fails the whole call fails with that error.

Usage:
    from src.domains.analytics import AnalyticsService, ScopeContext, ScopeFilter

    service = AnalyticsService(source=data_source)

    school = await service.get_school_analytics(
        scope=ScopeContext(school_id=school_id),
        filters=ScopeFilter(term="Term 1"),
    )

    teacher = await service.get_teacher_analytics(
        scope=ScopeContext(school_id=school_id, actor_id=teacher_id, actor_role="teacher"),
    )
"""

import asyncio
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from src.core.config import AnalyticsSettings, get_settings
from src.domains.analytics.aggregator import (
    AggregateRow,
    AttemptContext,
    StudentRow,
    aggregate,
    aggregate_students,
    build_contexts,
    by_class,
    by_subject,
    by_teacher,
    group_by_test,
    name_order,
)
from src.domains.analytics.coverage import CoverageRow, build_coverage_rows
from src.domains.analytics.distribution import DistributionBucket, bucket
from src.domains.analytics.models import (
    Attempt,
    AttemptAnswer,
    ReferenceDirectory,
    ScopeContext,
    ScopeFilter,
    Test,
)
from src.domains.analytics.normalizer import mean_pct, round1
from src.domains.analytics.sources import AnalyticsDataSource
from src.domains.analytics.topics import TopicRow, weakest_topics
from src.utils.logging import get_logger, log_context

logger = get_logger(__name__)

T = TypeVar("T")


class AnalyticsServiceError(Exception):
    """Base exception for analytics service errors."""

    pass


class MissingActorError(AnalyticsServiceError):
    """Raised when teacher analytics is requested without a teacher."""

    pass


@dataclass(frozen=True)
class TrendPoint:
    """Average percentage for one test, for the chronological trend."""

    test_id: str
    title: str
    short_label: str
    date: str | None
    avg_pct: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "test_id": self.test_id,
            "title": self.title,
            "short_label": self.short_label,
            "date": self.date,
            "avg_pct": self.avg_pct,
        }


@dataclass(frozen=True)
class Highlights:
    """Headline signals for follow-up.

    Attributes:
        tests_in_scope: Tests matching the filter.
        tests_without_marks: Tests with no recorded attempt.
        classes_below_threshold: Classes averaging below the threshold.
        subjects_below_threshold: Subjects averaging below the threshold.
        attempts_recorded: Attempts recorded for tests in scope.
        attempts_with_answers: Attempts carrying answer-level rows.
        answer_level_coverage_pct: Share of attempts with answer-level rows.
        students_assessed: Distinct students with a recorded attempt.
        students_total: Students known to the school.
    """

    tests_in_scope: int
    tests_without_marks: int
    classes_below_threshold: int
    subjects_below_threshold: int
    attempts_recorded: int
    attempts_with_answers: int
    answer_level_coverage_pct: float
    students_assessed: int
    students_total: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "tests_in_scope": self.tests_in_scope,
            "tests_without_marks": self.tests_without_marks,
            "classes_below_threshold": self.classes_below_threshold,
            "subjects_below_threshold": self.subjects_below_threshold,
            "attempts_recorded": self.attempts_recorded,
            "attempts_with_answers": self.attempts_with_answers,
            "answer_level_coverage_pct": self.answer_level_coverage_pct,
            "students_assessed": self.students_assessed,
            "students_total": self.students_total,
        }


@dataclass(frozen=True)
class TestOption:
    """A test a teacher can drill into."""

    __test__ = False

    id: str
    title: str
    date: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "date": self.date}


@dataclass(frozen=True)
class SchoolAnalytics:
    """School-wide analytics bundle for the admin dashboard."""

    overall_avg_pct: float | None
    trend: tuple[TrendPoint, ...]
    distribution: tuple[DistributionBucket, ...]
    class_rows: tuple[AggregateRow, ...]
    subject_rows: tuple[AggregateRow, ...]
    teacher_rows: tuple[AggregateRow, ...]
    student_rows: tuple[StudentRow, ...]
    top_students: tuple[StudentRow, ...]
    support_students: tuple[StudentRow, ...]
    weakest_topics: tuple[TopicRow, ...]
    has_answer_level_data: bool
    coverage: tuple[CoverageRow, ...]
    highlights: Highlights
    terms: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "overall_avg_pct": self.overall_avg_pct,
            "trend": [point.to_dict() for point in self.trend],
            "distribution": [item.to_dict() for item in self.distribution],
            "class_rows": [row.to_dict() for row in self.class_rows],
            "subject_rows": [row.to_dict() for row in self.subject_rows],
            "teacher_rows": [row.to_dict() for row in self.teacher_rows],
            "student_rows": [row.to_dict() for row in self.student_rows],
            "top_students": [row.to_dict() for row in self.top_students],
            "support_students": [row.to_dict() for row in self.support_students],
            "weakest_topics": [row.to_dict() for row in self.weakest_topics],
            "has_answer_level_data": self.has_answer_level_data,
            "coverage": [row.to_dict() for row in self.coverage],
            "highlights": self.highlights.to_dict(),
            "terms": list(self.terms),
        }


@dataclass(frozen=True)
class TeacherAnalytics:
    """Analytics bundle for a teacher's own tests."""

    teacher_id: str
    tests: tuple[TestOption, ...]
    overall_avg_pct: float | None
    trend: tuple[TrendPoint, ...]
    distribution: tuple[DistributionBucket, ...]
    weakest_topics: tuple[TopicRow, ...]
    has_answer_level_data: bool
    coverage: tuple[CoverageRow, ...]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "teacher_id": self.teacher_id,
            "tests": [test.to_dict() for test in self.tests],
            "overall_avg_pct": self.overall_avg_pct,
            "trend": [point.to_dict() for point in self.trend],
            "distribution": [item.to_dict() for item in self.distribution],
            "weakest_topics": [row.to_dict() for row in self.weakest_topics],
            "has_answer_level_data": self.has_answer_level_data,
            "coverage": [row.to_dict() for row in self.coverage],
        }


def shorten_label(value: str, max_length: int) -> str:
    """Truncate a label for chart axes."""
    if len(value) <= max_length:
        return value
    return f"{value[:max_length].rstrip()}..."


def available_terms(tests: Sequence[Test]) -> tuple[str, ...]:
    """Distinct non-blank terms, sorted."""
    terms = {(test.term or "").strip() for test in tests}
    return tuple(sorted((term for term in terms if term), key=name_order))


async def gather_or_cancel(*aws: Awaitable[T]) -> list[T]:
    """Await all awaitables concurrently, all-or-nothing.

    If any of them fails, the others are cancelled and awaited before the
    first failure is re-raised unchanged, so no fetch outlives the call.

    Args:
        *aws: Coroutines or futures to run.

    Returns:
        Results in argument order.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class AnalyticsService:
    """Facade deriving analytics view models from a data source.

    Attributes:
        _source: Supplier of tests, attempts and answers.
        _settings: Limits and thresholds for the views.
    """

    def __init__(
        self,
        source: AnalyticsDataSource,
        settings: AnalyticsSettings | None = None,
    ) -> None:
        """Initialize the analytics service.

        Args:
            source: Data source for analytics records.
            settings: View settings (defaults to application settings).
        """
        self._source = source
        self._settings = settings or get_settings().analytics

    async def get_school_analytics(
        self,
        scope: ScopeContext,
        filters: ScopeFilter | None = None,
        topic_limit: int | None = None,
    ) -> SchoolAnalytics:
        """Compute school-wide analytics for the tests matching a filter.

        Args:
            scope: School scope of the request.
            filters: Teacher, class, subject and term restrictions.
            topic_limit: Number of weakest topics (defaults to settings).

        Returns:
            SchoolAnalytics bundle. Empty collections when no test matches.

        Raises:
            Exception: Any data source failure, unchanged.
        """
        with log_context(
            school_id=scope.school_id,
            actor_id=scope.actor_id,
            actor_role=scope.actor_role,
        ):
            return await self._school_analytics(scope, filters or ScopeFilter(), topic_limit)

    async def _school_analytics(
        self,
        scope: ScopeContext,
        filters: ScopeFilter,
        topic_limit: int | None,
    ) -> SchoolAnalytics:
        all_tests = await self._source.list_tests(scope)
        tests = [test for test in all_tests if filters.matches(test)]

        attempts_by_test, directory = await gather_or_cancel(
            self._fetch_attempts(scope, tests),
            self._source.get_directory(scope),
        )
        attempts = [attempt for test in tests for attempt in attempts_by_test[test.id]]
        answers = await self._fetch_answers(scope, attempts)

        contexts = build_contexts(tests, attempts)
        class_rows = aggregate(contexts, by_class(directory))
        subject_rows = aggregate(contexts, by_subject(directory))
        student_rows = aggregate_students(contexts, directory)
        limit = self._settings.student_highlight_limit
        topics = weakest_topics(
            answers,
            self._settings.school_topic_limit if topic_limit is None else topic_limit,
        )

        result = SchoolAnalytics(
            overall_avg_pct=mean_pct(context.pct for context in contexts),
            trend=self._trend(tests, contexts),
            distribution=bucket(context.pct for context in contexts),
            class_rows=class_rows,
            subject_rows=subject_rows,
            teacher_rows=aggregate(contexts, by_teacher(directory)),
            student_rows=student_rows,
            top_students=tuple(
                sorted(
                    student_rows,
                    key=lambda row: (-row.avg_pct, name_order(row.student_name), row.student_id),
                )[:limit]
            ),
            support_students=student_rows[:limit],
            weakest_topics=topics,
            has_answer_level_data=bool(answers),
            coverage=build_coverage_rows(tests, attempts_by_test, contexts, directory),
            highlights=self._highlights(
                tests, attempts_by_test, attempts, class_rows, subject_rows, directory
            ),
            terms=available_terms(all_tests),
        )

        logger.info(
            "school_analytics_computed",
            tests=len(tests),
            attempts=len(attempts),
            answers=len(answers),
        )
        return result

    async def get_teacher_analytics(
        self,
        scope: ScopeContext,
        teacher_id: str | None = None,
        test_id: str | None = None,
        topic_limit: int | None = None,
    ) -> TeacherAnalytics:
        """Compute analytics over one teacher's tests.

        Attempts are fetched for all of the teacher's tests; when
        ``test_id`` is given only that test is reported on.

        Args:
            scope: School scope of the request.
            teacher_id: Teacher to report on (defaults to the actor).
            test_id: Optional single test to drill into.
            topic_limit: Number of weakest topics (defaults to settings).

        Returns:
            TeacherAnalytics bundle.

        Raises:
            MissingActorError: If no teacher id is given or in scope.
            Exception: Any data source failure, unchanged.
        """
        teacher_id = teacher_id or scope.actor_id
        if not teacher_id:
            raise MissingActorError("Teacher analytics requires a teacher id")

        with log_context(
            school_id=scope.school_id,
            actor_id=scope.actor_id,
            actor_role=scope.actor_role,
            teacher_id=teacher_id,
        ):
            return await self._teacher_analytics(scope, teacher_id, test_id, topic_limit)

    async def _teacher_analytics(
        self,
        scope: ScopeContext,
        teacher_id: str,
        test_id: str | None,
        topic_limit: int | None,
    ) -> TeacherAnalytics:
        own_tests = [
            test
            for test in await self._source.list_tests(scope)
            if test.teacher_id == teacher_id
        ]
        attempts_by_test, directory = await gather_or_cancel(
            self._fetch_attempts(scope, own_tests),
            self._source.get_directory(scope),
        )
        visible = [test for test in own_tests if not test_id or test.id == test_id]
        attempts = [attempt for test in visible for attempt in attempts_by_test[test.id]]
        answers = await self._fetch_answers(scope, attempts)
        contexts = build_contexts(visible, attempts)

        result = TeacherAnalytics(
            teacher_id=teacher_id,
            tests=tuple(
                TestOption(id=test.id, title=test.title, date=test.date)
                for test in sorted(
                    own_tests, key=lambda t: (t.date or "", name_order(t.title), t.id)
                )
            ),
            overall_avg_pct=mean_pct(context.pct for context in contexts),
            trend=self._trend(visible, contexts),
            distribution=bucket(context.pct for context in contexts),
            weakest_topics=weakest_topics(
                answers,
                self._settings.teacher_topic_limit if topic_limit is None else topic_limit,
            ),
            has_answer_level_data=bool(answers),
            coverage=build_coverage_rows(visible, attempts_by_test, contexts, directory),
        )

        logger.info(
            "teacher_analytics_computed",
            tests=len(visible),
            attempts=len(attempts),
        )
        return result

    async def _fetch_attempts(
        self,
        scope: ScopeContext,
        tests: Sequence[Test],
    ) -> dict[str, list[Attempt]]:
        """Fetch attempts for every test concurrently.

        Args:
            scope: School scope.
            tests: Tests to fetch attempts for.

        Returns:
            Attempts keyed by test id.
        """
        if not tests:
            return {}
        logger.debug("fetching_attempts", tests=len(tests))
        try:
            batches = await gather_or_cancel(
                *(self._source.list_attempts(scope, test.id) for test in tests)
            )
        except Exception as e:
            logger.error("attempt_fetch_failed", error=str(e), exc_info=True)
            raise
        return {test.id: list(batch) for test, batch in zip(tests, batches)}

    async def _fetch_answers(
        self,
        scope: ScopeContext,
        attempts: Sequence[Attempt],
    ) -> list[AttemptAnswer]:
        """Fetch answer-level rows for attempts that have any.

        Args:
            scope: School scope.
            attempts: Attempts in scope.

        Returns:
            Answers in attempt order.
        """
        with_answers = [attempt for attempt in attempts if attempt.answer_count > 0]
        if not with_answers:
            return []
        logger.debug("fetching_attempt_answers", attempts=len(with_answers))
        try:
            batches = await gather_or_cancel(
                *(self._source.list_attempt_answers(scope, a.id) for a in with_answers)
            )
        except Exception as e:
            logger.error("answer_fetch_failed", error=str(e), exc_info=True)
            raise
        return [answer for batch in batches for answer in batch]

    def _trend(
        self,
        tests: Sequence[Test],
        contexts: Sequence[AttemptContext],
    ) -> tuple[TrendPoint, ...]:
        normalized = group_by_test(contexts)
        points = []
        for test in tests:
            avg = mean_pct(context.pct for context in normalized.get(test.id, ()))
            if avg is None:
                continue
            points.append(
                TrendPoint(
                    test_id=test.id,
                    title=test.title,
                    short_label=shorten_label(test.title, self._settings.trend_label_length),
                    date=test.date,
                    avg_pct=avg,
                )
            )
        return tuple(
            sorted(points, key=lambda p: (p.date or "", name_order(p.title), p.test_id))
        )

    def _highlights(
        self,
        tests: Sequence[Test],
        attempts_by_test: dict[str, list[Attempt]],
        attempts: Sequence[Attempt],
        class_rows: Sequence[AggregateRow],
        subject_rows: Sequence[AggregateRow],
        directory: ReferenceDirectory,
    ) -> Highlights:
        threshold = self._settings.intervention_threshold_pct
        with_answers = sum(1 for attempt in attempts if attempt.answer_count > 0)
        return Highlights(
            tests_in_scope=len(tests),
            tests_without_marks=sum(1 for test in tests if not attempts_by_test.get(test.id)),
            classes_below_threshold=sum(1 for row in class_rows if row.avg_pct < threshold),
            subjects_below_threshold=sum(1 for row in subject_rows if row.avg_pct < threshold),
            attempts_recorded=len(attempts),
            attempts_with_answers=with_answers,
            answer_level_coverage_pct=(
                round1(with_answers / len(attempts) * 100) if attempts else 0.0
            ),
            students_assessed=len({attempt.student_id for attempt in attempts}),
            students_total=len(directory.students),
        )
