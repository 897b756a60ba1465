# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy-backed analytics data source.

Reads tests, attempts and answer-level rows from the school database and
converts them into analytics records. Every query is restricted to the
scope's school; attempts and answers are scoped through their parent test
or question.

Example:
    async with get_session() as session:
        service = AnalyticsService(source=SQLAlchemyDataSource(session))
        analytics = await service.get_school_analytics(scope)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import Any, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.domains.analytics.models import (
    Attempt,
    AttemptAnswer,
    ReferenceDirectory,
    ScopeContext,
    StudentRef,
    Test,
    TopicRef,
)
from src.domains.analytics.sources import AnalyticsDataSource
from src.infrastructure.database.connection import DatabaseError
from src.infrastructure.database.models import (
    AttemptAnswerModel,
    AttemptModel,
    ClassroomModel,
    QuestionModel,
    StudentModel,
    SubjectModel,
    TestModel,
    TopicModel,
    UserProfileModel,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _iso(value: date | datetime | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class SQLAlchemyDataSource(AnalyticsDataSource):
    """Analytics data source over an async SQLAlchemy session.

    A single AsyncSession cannot run statements concurrently, so queries
    issued by concurrent callers are serialized on a lock.

    Attributes:
        _db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize the data source.

        Args:
            db: Async database session.
        """
        self._db = db
        self._lock = asyncio.Lock()

    async def _run(self, operation: str, query: Callable[[], Awaitable[T]]) -> T:
        async with self._lock:
            try:
                return await query()
            except SQLAlchemyError as e:
                logger.error("Analytics query failed: operation=%s, error=%s", operation, str(e))
                raise DatabaseError(f"Failed to {operation}", e) from e

    async def _rows(self, stmt: Any) -> list[Any]:
        result = await self._db.execute(stmt)
        return list(result.all())

    async def list_tests(self, scope: ScopeContext) -> list[Test]:
        stmt = (
            select(TestModel, ClassroomModel.name, SubjectModel.name)
            .outerjoin(ClassroomModel, ClassroomModel.id == TestModel.class_id)
            .outerjoin(SubjectModel, SubjectModel.id == TestModel.subject_id)
            .where(TestModel.school_id == scope.school_id)
            .order_by(TestModel.date, TestModel.title)
        )
        rows = await self._run("list tests", lambda: self._rows(stmt))
        return [
            Test(
                id=test.id,
                school_id=test.school_id,
                teacher_id=test.teacher_id,
                class_id=test.class_id,
                subject_id=test.subject_id,
                title=test.title,
                term=test.term,
                date=_iso(test.date),
                total_marks=test.total_marks or 0,
                class_name=class_name,
                subject_name=subject_name,
            )
            for test, class_name, subject_name in rows
        ]

    async def list_attempts(self, scope: ScopeContext, test_id: str) -> list[Attempt]:
        answer_count = (
            select(func.count(AttemptAnswerModel.id))
            .where(AttemptAnswerModel.attempt_id == AttemptModel.id)
            .correlate(AttemptModel)
            .scalar_subquery()
        )
        stmt = (
            select(
                AttemptModel,
                StudentModel.full_name,
                StudentModel.class_id,
                ClassroomModel.name,
                answer_count,
            )
            .join(TestModel, TestModel.id == AttemptModel.test_id)
            .outerjoin(StudentModel, StudentModel.id == AttemptModel.student_id)
            .outerjoin(ClassroomModel, ClassroomModel.id == StudentModel.class_id)
            .where(AttemptModel.test_id == test_id, TestModel.school_id == scope.school_id)
            .order_by(AttemptModel.submitted_at.desc())
        )
        rows = await self._run("list attempts", lambda: self._rows(stmt))
        return [
            Attempt(
                id=attempt.id,
                test_id=attempt.test_id,
                student_id=attempt.student_id,
                total_score=float(attempt.total_score or 0),
                submitted_at=_iso(attempt.submitted_at),
                student=(
                    StudentRef(
                        id=attempt.student_id,
                        full_name=full_name,
                        class_id=class_id,
                        class_name=class_name,
                    )
                    if full_name
                    else None
                ),
                answer_count=count or 0,
            )
            for attempt, full_name, class_id, class_name, count in rows
        ]

    async def list_attempt_answers(
        self,
        scope: ScopeContext,
        attempt_id: str,
    ) -> list[AttemptAnswer]:
        stmt = (
            select(AttemptAnswerModel, QuestionModel.topic_id, TopicModel.title)
            .join(QuestionModel, QuestionModel.id == AttemptAnswerModel.question_id)
            .outerjoin(TopicModel, TopicModel.id == QuestionModel.topic_id)
            .where(
                AttemptAnswerModel.attempt_id == attempt_id,
                QuestionModel.school_id == scope.school_id,
            )
        )
        rows = await self._run("list attempt answers", lambda: self._rows(stmt))
        return [
            AttemptAnswer(
                id=answer.id,
                attempt_id=answer.attempt_id,
                question_id=answer.question_id,
                is_correct=answer.is_correct,
                score=float(answer.score or 0),
                answer_text=answer.answer_text,
                topic_id=topic_id,
                topic=TopicRef(id=topic_id, title=topic_title) if topic_id and topic_title else None,
            )
            for answer, topic_id, topic_title in rows
        ]

    async def get_directory(self, scope: ScopeContext) -> ReferenceDirectory:
        school_id = scope.school_id

        async def load() -> ReferenceDirectory:
            classes = await self._rows(
                select(ClassroomModel.id, ClassroomModel.name).where(
                    ClassroomModel.school_id == school_id
                )
            )
            subjects = await self._rows(
                select(SubjectModel.id, SubjectModel.name).where(
                    SubjectModel.school_id == school_id
                )
            )
            teachers = await self._rows(
                select(UserProfileModel.id, UserProfileModel.full_name).where(
                    UserProfileModel.school_id == school_id
                )
            )
            students = await self._rows(
                select(StudentModel.id, StudentModel.full_name, StudentModel.class_id).where(
                    StudentModel.school_id == school_id
                )
            )
            class_names = {class_id: name for class_id, name in classes}
            return ReferenceDirectory(
                class_names=class_names,
                subject_names={subject_id: name for subject_id, name in subjects},
                teacher_names={user_id: name for user_id, name in teachers},
                students={
                    student_id: StudentRef(
                        id=student_id,
                        full_name=full_name,
                        class_id=class_id,
                        class_name=class_names.get(class_id),
                    )
                    for student_id, full_name, class_id in students
                },
            )

        return await self._run("load directory", load)
