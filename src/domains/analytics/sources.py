# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Data sources feeding the analytics service.

This module defines the abstract boundary between the analytics
service and whatever store holds tests and scores. Implementations must
return only records belonging to ``scope.school_id`` and handle their own
timeouts; the analytics service performs no retries.
"""

from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Iterable

from src.domains.analytics.models import (
    Attempt,
    AttemptAnswer,
    ReferenceDirectory,
    ScopeContext,
    Test,
)


class AnalyticsDataSource(ABC):
    """Abstract supplier of analytics input records."""

    @abstractmethod
    async def list_tests(self, scope: ScopeContext) -> list[Test]:
        """List every test of the school."""

    @abstractmethod
    async def list_attempts(self, scope: ScopeContext, test_id: str) -> list[Attempt]:
        """List recorded attempts for one test."""

    @abstractmethod
    async def list_attempt_answers(
        self,
        scope: ScopeContext,
        attempt_id: str,
    ) -> list[AttemptAnswer]:
        """List answer-level rows for one attempt, with topics resolved."""

    @abstractmethod
    async def get_directory(self, scope: ScopeContext) -> ReferenceDirectory:
        """Get display labels for classes, subjects, teachers and students."""


class InMemoryDataSource(AnalyticsDataSource):
    """Data source over plain in-memory collections.

    Attempts that do not carry an answer count get one derived from the
    answers supplied.

    Attributes:
        directory: Labels returned for every school.
    """

    def __init__(
        self,
        tests: Iterable[Test] = (),
        attempts: Iterable[Attempt] = (),
        answers: Iterable[AttemptAnswer] = (),
        directory: ReferenceDirectory | None = None,
    ) -> None:
        self._tests = list(tests)
        self._answers = list(answers)
        answer_counts = Counter(answer.attempt_id for answer in self._answers)
        self._attempts = [
            attempt
            if attempt.answer_count or not answer_counts[attempt.id]
            else attempt.model_copy(update={"answer_count": answer_counts[attempt.id]})
            for attempt in attempts
        ]
        self.directory = directory or ReferenceDirectory()

    def _school_test_ids(self, scope: ScopeContext) -> set[str]:
        return {test.id for test in self._tests if test.school_id == scope.school_id}

    async def list_tests(self, scope: ScopeContext) -> list[Test]:
        return [test for test in self._tests if test.school_id == scope.school_id]

    async def list_attempts(self, scope: ScopeContext, test_id: str) -> list[Attempt]:
        if test_id not in self._school_test_ids(scope):
            return []
        return [attempt for attempt in self._attempts if attempt.test_id == test_id]

    async def list_attempt_answers(
        self,
        scope: ScopeContext,
        attempt_id: str,
    ) -> list[AttemptAnswer]:
        test_ids = self._school_test_ids(scope)
        if not any(a.id == attempt_id and a.test_id in test_ids for a in self._attempts):
            return []
        return [answer for answer in self._answers if answer.attempt_id == attempt_id]

    async def get_directory(self, scope: ScopeContext) -> ReferenceDirectory:
        return self.directory
