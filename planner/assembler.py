"""Flatten parsed syllabi into the ordered list of records sent to Notion."""
from __future__ import annotations

import typing as t

from syllabus_server.models import Assignment, ParsedSyllabus
from .models import SubmissionRecord


def occurrence_dates(assignment: Assignment) -> list[str]:
    """Expanded dates of a recurring assignment, ascending and unique."""
    if not assignment.is_recurring:
        return []
    return sorted(set(assignment.expanded_dates))


def records_for_assignment(course: str, assignment: Assignment) -> list[SubmissionRecord]:
    dates = occurrence_dates(assignment)
    if not dates:
        return [
            SubmissionRecord(
                course=course,
                title=assignment.title,
                due_date=assignment.due_date,
                weight=assignment.weight,
                type=assignment.type,
                description=assignment.description,
            )
        ]

    total = len(dates)
    return [
        SubmissionRecord(
            course=course,
            title=f"{assignment.title} ({index}/{total})" if total > 1 else assignment.title,
            due_date=due,
            weight=assignment.weight,
            type=assignment.type,
            description=assignment.description,
        )
        for index, due in enumerate(dates, 1)
    ]


def build_submission(syllabi: t.Iterable[ParsedSyllabus]) -> list[SubmissionRecord]:
    """Expand every assignment into submission records.

    Records are built syllabus by syllabus, assignment by assignment, and the
    complete list is then reversed; rows are inserted in the returned order.
    The input is not modified, so repeated calls give identical output.
    """
    records: list[SubmissionRecord] = []
    for syllabus in syllabi:
        course = syllabus.course_name or syllabus.file_name
        for assignment in syllabus.assignments:
            records.extend(records_for_assignment(course, assignment))
    records.reverse()
    return records
