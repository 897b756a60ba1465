# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Scope records for a sample school
- Builders for tests, attempts and answer-level rows
"""

from collections.abc import Callable
from typing import Any

import pytest

from src.core.config import AnalyticsSettings
from src.domains.analytics.models import (
    Attempt,
    AttemptAnswer,
    ReferenceDirectory,
    ScopeContext,
    StudentRef,
    Test,
    TopicRef,
)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )


# =============================================================================
# Scope Fixtures
# =============================================================================


@pytest.fixture
def sample_school_id() -> str:
    """Provide a sample school ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440000"


@pytest.fixture
def school_scope(sample_school_id: str) -> ScopeContext:
    """Provide an admin scope for the sample school."""
    return ScopeContext(
        school_id=sample_school_id,
        actor_id="admin-1",
        actor_role="school_admin",
    )


@pytest.fixture
def analytics_settings() -> AnalyticsSettings:
    """Provide default analytics settings independent of the environment."""
    return AnalyticsSettings(
        school_topic_limit=5,
        teacher_topic_limit=8,
        intervention_threshold_pct=40.0,
        student_highlight_limit=10,
        trend_label_length=22,
    )


@pytest.fixture
def directory() -> ReferenceDirectory:
    """Provide labels for two classes, two subjects, two teachers, four students."""
    return ReferenceDirectory(
        class_names={"class-a": "Form 1A", "class-b": "Form 1B"},
        subject_names={"math": "Mathematics", "eng": "English"},
        teacher_names={"teacher-1": "Amina Otieno", "teacher-2": "Brian Mwangi"},
        students={
            "stu-1": StudentRef(id="stu-1", full_name="Achieng", class_id="class-a", class_name="Form 1A"),
            "stu-2": StudentRef(id="stu-2", full_name="Baraka", class_id="class-a", class_name="Form 1A"),
            "stu-3": StudentRef(id="stu-3", full_name="Chebet", class_id="class-b", class_name="Form 1B"),
            "stu-4": StudentRef(id="stu-4", full_name="Daudi", class_id="class-b", class_name="Form 1B"),
        },
    )


# =============================================================================
# Record Builders
# =============================================================================


@pytest.fixture
def make_test(sample_school_id: str) -> Callable[..., Test]:
    """Build a Test with sensible defaults."""

    def _make(test_id: str = "test-1", **overrides: Any) -> Test:
        data: dict[str, Any] = {
            "id": test_id,
            "school_id": sample_school_id,
            "teacher_id": "teacher-1",
            "class_id": "class-a",
            "subject_id": "math",
            "title": f"Test {test_id}",
            "term": "Term 1",
            "date": "2025-02-10",
            "total_marks": 50,
        }
        data.update(overrides)
        return Test(**data)

    return _make


@pytest.fixture
def make_attempt() -> Callable[..., Attempt]:
    """Build an Attempt with sensible defaults."""
    counter = iter(range(1, 10_000))

    def _make(test_id: str, student_id: str, total_score: float, **overrides: Any) -> Attempt:
        data: dict[str, Any] = {
            "id": f"att-{next(counter)}",
            "test_id": test_id,
            "student_id": student_id,
            "total_score": total_score,
            "submitted_at": "2025-02-11T09:00:00+00:00",
        }
        data.update(overrides)
        return Attempt(**data)

    return _make


@pytest.fixture
def make_answer() -> Callable[..., AttemptAnswer]:
    """Build an AttemptAnswer for a topic."""
    counter = iter(range(1, 10_000))

    def _make(
        attempt_id: str,
        topic_id: str | None,
        is_correct: bool | None,
        topic_title: str | None = None,
    ) -> AttemptAnswer:
        index = next(counter)
        return AttemptAnswer(
            id=f"ans-{index}",
            attempt_id=attempt_id,
            question_id=f"q-{index}",
            is_correct=is_correct,
            topic_id=topic_id,
            topic=TopicRef(id=topic_id, title=topic_title) if topic_id and topic_title else None,
        )

    return _make
