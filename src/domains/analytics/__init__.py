# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Analytics domain services.

This module derives assessment analytics from recorded test scores:
- Score normalization and distribution buckets
- Class, subject, teacher and student rollups
- Weakest topics from answer-level marking
- Marking coverage per test
- School-wide and teacher dashboards, plus CSV report rows

The aggregation functions are pure and synchronous. Only the
AnalyticsService talks to a data source, fanning out concurrently and
failing as a whole if any fetch fails.

Usage:
    from src.domains.analytics import AnalyticsService, ScopeContext

    service = AnalyticsService(source=data_source)
    analytics = await service.get_school_analytics(ScopeContext(school_id="sch-1"))

    from src.domains.analytics import coverage_report_rows, to_csv

    csv_text = to_csv(coverage_report_rows(analytics.coverage))
"""

from src.domains.analytics.aggregator import (
    AggregateRow,
    AttemptContext,
    GroupKey,
    StudentRow,
    aggregate,
    aggregate_students,
    build_contexts,
    by_class,
    by_subject,
    by_teacher,
)
from src.domains.analytics.coverage import CoverageRow, CoverageStatus, classify
from src.domains.analytics.distribution import DistributionBucket, bucket
from src.domains.analytics.models import (
    Attempt,
    AttemptAnswer,
    ReferenceDirectory,
    ScopeContext,
    ScopeFilter,
    StudentRef,
    Test,
    TopicRef,
)
from src.domains.analytics.normalizer import mean_pct, normalize, round2
from src.domains.analytics.reports import coverage_report_rows, student_report_rows, to_csv
from src.domains.analytics.service import (
    AnalyticsService,
    AnalyticsServiceError,
    Highlights,
    MissingActorError,
    SchoolAnalytics,
    TeacherAnalytics,
    TestOption,
    TrendPoint,
)
from src.domains.analytics.sources import AnalyticsDataSource, InMemoryDataSource
from src.domains.analytics.topics import TopicRow, weakest_topics

__all__ = [
    # Records
    "ScopeContext",
    "ScopeFilter",
    "Test",
    "Attempt",
    "AttemptAnswer",
    "StudentRef",
    "TopicRef",
    "ReferenceDirectory",
    # Normalization and distribution
    "normalize",
    "round2",
    "mean_pct",
    "bucket",
    "DistributionBucket",
    # Aggregation
    "AttemptContext",
    "GroupKey",
    "AggregateRow",
    "StudentRow",
    "build_contexts",
    "aggregate",
    "aggregate_students",
    "by_class",
    "by_subject",
    "by_teacher",
    # Topics and coverage
    "TopicRow",
    "weakest_topics",
    "CoverageStatus",
    "CoverageRow",
    "classify",
    # Data sources
    "AnalyticsDataSource",
    "InMemoryDataSource",
    # Service
    "AnalyticsService",
    "AnalyticsServiceError",
    "MissingActorError",
    "SchoolAnalytics",
    "TeacherAnalytics",
    "Highlights",
    "TrendPoint",
    "TestOption",
    # Reports
    "student_report_rows",
    "coverage_report_rows",
    "to_csv",
]
