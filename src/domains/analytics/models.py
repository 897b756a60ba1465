# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain records for assessment analytics.

These are the typed join records exchanged with data sources. Relationship
fields are always single optional objects, never lists, so the aggregation
code never has to guess at shapes.

All records are immutable.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

UNTITLED_TOPIC = "Untitled topic"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class ScopeContext(_Record):
    """Explicit request scope.

    Attributes:
        school_id: School every record must belong to.
        actor_id: User performing the request.
        actor_role: Role of the actor.
    """

    school_id: str
    actor_id: str | None = None
    actor_role: Literal["school_admin", "teacher"] | None = None


class ScopeFilter(_Record):
    """AND-combined test filter. Empty values mean no restriction."""

    teacher_id: str | None = None
    class_id: str | None = None
    subject_id: str | None = None
    term: str | None = None

    def matches(self, test: "Test") -> bool:
        """Check whether a test falls inside this filter."""
        if self.teacher_id and test.teacher_id != self.teacher_id:
            return False
        if self.class_id and test.class_id != self.class_id:
            return False
        if self.subject_id and test.subject_id != self.subject_id:
            return False
        if self.term and self.term.strip() and (test.term or "") != self.term:
            return False
        return True


class Test(_Record):
    """A paper test set by a teacher for one class and subject."""

    __test__ = False

    id: str
    school_id: str
    teacher_id: str
    class_id: str
    subject_id: str
    title: str
    term: str | None = None
    date: str | None = None
    total_marks: int = Field(default=0, ge=0)
    class_name: str | None = None
    subject_name: str | None = None


class StudentRef(_Record):
    """Student label and class membership."""

    id: str
    full_name: str
    class_id: str | None = None
    class_name: str | None = None


class Attempt(_Record):
    """One recorded score per student per test.

    Attributes:
        answer_count: Number of answer-level rows recorded for the attempt.
    """

    id: str
    test_id: str
    student_id: str
    total_score: float = Field(default=0, ge=0)
    submitted_at: str | None = None
    student: StudentRef | None = None
    answer_count: int = Field(default=0, ge=0)


class TopicRef(_Record):
    id: str
    title: str


class AttemptAnswer(_Record):
    """Per-question correctness captured with answer-level marking."""

    id: str
    attempt_id: str
    question_id: str
    is_correct: bool | None = None
    score: float = 0
    answer_text: str | None = None
    topic_id: str | None = None
    topic: TopicRef | None = None

    @property
    def resolved_topic_id(self) -> str | None:
        """Topic id from the question, falling back to the joined topic."""
        if self.topic_id:
            return self.topic_id
        if self.topic is not None and self.topic.id:
            return self.topic.id
        return None

    @property
    def topic_title(self) -> str:
        if self.topic is not None and self.topic.title:
            return self.topic.title
        return UNTITLED_TOPIC


class ReferenceDirectory(_Record):
    """Display labels for the grouping dimensions, keyed by id."""

    class_names: dict[str, str] = Field(default_factory=dict)
    subject_names: dict[str, str] = Field(default_factory=dict)
    teacher_names: dict[str, str] = Field(default_factory=dict)
    students: dict[str, StudentRef] = Field(default_factory=dict)

    def class_name(self, test: Test) -> str:
        return test.class_name or self.class_names.get(test.class_id) or "Class"

    def subject_name(self, test: Test) -> str:
        return test.subject_name or self.subject_names.get(test.subject_id) or "Subject"

    def teacher_name(self, teacher_id: str) -> str:
        return self.teacher_names.get(teacher_id) or "Teacher"

    def student(self, attempt: Attempt) -> StudentRef | None:
        return attempt.student or self.students.get(attempt.student_id)
