# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Topic weakness analysis from answer-level marking.

Answer-level rows are only captured when a teacher opts into marking
question by question, so an empty result means "no answer-level data",
not "no weak topics".
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from src.domains.analytics.aggregator import name_order
from src.domains.analytics.models import AttemptAnswer
from src.domains.analytics.normalizer import round2


@dataclass(frozen=True)
class TopicRow:
    """Correctness rate for one topic."""

    topic_id: str
    topic_title: str
    correct: int
    total: int
    pct_correct: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic_id": self.topic_id,
            "topic_title": self.topic_title,
            "correct": self.correct,
            "total": self.total,
            "pct_correct": self.pct_correct,
        }


def weakest_topics(answers: Iterable[AttemptAnswer], limit: int) -> tuple[TopicRow, ...]:
    """Rank topics by percentage of correct answers, worst first.

    Answers without a resolvable topic are dropped. Ties are broken by
    topic title, then topic id.

    Args:
        answers: Answer-level rows in scope.
        limit: Maximum number of topics to return.

    Returns:
        At most ``limit`` rows.
    """
    if limit <= 0:
        return ()

    titles: dict[str, str] = {}
    correct: dict[str, int] = {}
    total: dict[str, int] = {}
    for answer in answers:
        topic_id = answer.resolved_topic_id
        if topic_id is None:
            continue
        titles.setdefault(topic_id, answer.topic_title)
        total[topic_id] = total.get(topic_id, 0) + 1
        correct[topic_id] = correct.get(topic_id, 0) + (1 if answer.is_correct else 0)

    rows = [
        TopicRow(
            topic_id=topic_id,
            topic_title=titles[topic_id],
            correct=correct[topic_id],
            total=count,
            pct_correct=round2(correct[topic_id] / count * 100),
        )
        for topic_id, count in total.items()
    ]
    rows.sort(key=lambda row: (row.pct_correct, name_order(row.topic_title), row.topic_id))
    return tuple(rows[:limit])
