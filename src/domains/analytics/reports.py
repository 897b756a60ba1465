# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tabular report rows and CSV rendering.

Shapes analytics view models into flat rows for the student performance
and test coverage exports. Missing values are rendered as empty cells.
"""

import csv
from collections.abc import Iterable, Mapping, Sequence
from io import StringIO
from typing import Any

from src.domains.analytics.aggregator import StudentRow
from src.domains.analytics.coverage import CoverageRow


def _cell(value: Any) -> Any:
    return "" if value is None else value


def student_report_rows(rows: Iterable[StudentRow]) -> list[dict[str, Any]]:
    """Rows for the student performance export."""
    return [
        {
            "student_name": row.student_name,
            "class_name": row.class_name,
            "average_percent": row.avg_pct,
            "attempts": row.attempts,
            "tests_count": row.tests_count,
            "latest_date": _cell(row.latest_date),
        }
        for row in rows
    ]


def coverage_report_rows(rows: Iterable[CoverageRow]) -> list[dict[str, Any]]:
    """Rows for the test coverage export."""
    return [
        {
            "test_title": row.title,
            "teacher_name": row.teacher_name,
            "class_name": row.class_name,
            "subject_name": row.subject_name,
            "date": _cell(row.date),
            "total_marks": row.total_marks,
            "scripts_recorded": row.attempts_count,
            "average_percent": _cell(row.avg_pct),
            "status": row.status.value,
        }
        for row in rows
    ]


def to_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """Render rows as CSV text.

    The header comes from the first row's keys. Cells containing a comma,
    quote, ``\\n`` or ``\\r`` are quoted, with embedded quotes doubled. Lines
    are joined with ``\\n`` and there is no trailing newline.

    Quoting follows ``csv.QUOTE_MINIMAL``: a row made of a single empty
    cell is written as ``""`` so that it is not read back as a blank line.

    Args:
        rows: Report rows sharing the same keys.

    Returns:
        CSV text, or an empty string when there are no rows.
    """
    if not rows:
        return ""
    output = StringIO()
    writer = csv.DictWriter(
        output,
        fieldnames=list(rows[0].keys()),
        lineterminator="\n",
        extrasaction="ignore",
    )
    writer.writeheader()
    writer.writerows({key: _cell(value) for key, value in row.items()} for row in rows)
    return output.getvalue().removesuffix("\n")
