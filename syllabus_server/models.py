"""
Data models for syllabus extraction and recurrence resolution.

This module contains the dataclasses shared by the extraction protocol, the
recurrence resolver and the submission assembler, plus helpers that convert
them to and from the camelCase JSON shape used on the wire.
"""
from __future__ import annotations

import typing as t
from dataclasses import dataclass, field
from datetime import date


# Type literals for commonly used values
AssignmentType = t.Literal["Exam", "Assignment", "Project", "Quiz", "Paper", "Participation"]
Weekday = t.Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

ASSIGNMENT_TYPES: tuple[str, ...] = t.get_args(AssignmentType)
DEFAULT_ASSIGNMENT_TYPE = "Assignment"

# Sentinel course name for files that could not be parsed
ERROR_COURSE_NAME = "Error parsing file"


@dataclass
class Assignment:
    """
    A graded deliverable extracted from a syllabus.

    ``due_date`` keeps the human string; ``expanded_dates`` holds the
    concrete instances once the recurrence resolver has run.
    """
    title: str = ""
    due_date: str = ""              # "YYYY-MM-DD", "" or a descriptive phrase
    weight: str = ""                # "7%", "50 points" or ""
    type: str = DEFAULT_ASSIGNMENT_TYPE
    description: str = ""
    additional_notes: str = ""
    is_recurring: bool = False
    recurring_day_of_week: t.Optional[Weekday] = None
    expanded_dates: list[str] = field(default_factory=list)  # sorted, unique


@dataclass
class ParsedSyllabus:
    """
    Top-level parsed representation for one uploaded file.
    """
    file_name: str = ""
    course_name: str = ""
    semester: str = ""
    instructor: str = ""
    assignments: list[Assignment] = field(default_factory=list)

    @property
    def is_placeholder(self) -> bool:
        """True for the empty result recorded when a file failed to parse."""
        return self.course_name == ERROR_COURSE_NAME and not self.assignments


@dataclass(frozen=True)
class SemesterRange:
    """Inclusive date range used to expand recurring due dates."""
    start: date
    end: date

    @classmethod
    def from_iso(cls, start: str, end: str) -> "SemesterRange":
        """Build a range from two ``YYYY-MM-DD`` strings.

        :raises ValueError: If either string is not an ISO date.
        """
        return cls(start=date.fromisoformat(start), end=date.fromisoformat(end))


def error_placeholder(file_name: str) -> ParsedSyllabus:
    """Result recorded for a file whose extraction failed."""
    return ParsedSyllabus(file_name=file_name, course_name=ERROR_COURSE_NAME, assignments=[])


# -----------------------------
# Wire (camelCase) conversion
# -----------------------------

def assignment_to_dict(assignment: Assignment) -> dict[str, t.Any]:
    return {
        "title": assignment.title,
        "dueDate": assignment.due_date,
        "weight": assignment.weight,
        "type": assignment.type,
        "description": assignment.description,
        "additionalNotes": assignment.additional_notes,
        "isRecurring": assignment.is_recurring,
        "recurringDayOfWeek": assignment.recurring_day_of_week,
        "expandedDates": list(assignment.expanded_dates),
    }


def assignment_from_dict(data: dict[str, t.Any]) -> Assignment:
    return Assignment(
        title=data.get("title", "") or "",
        due_date=data.get("dueDate", "") or "",
        weight=data.get("weight", "") or "",
        type=data.get("type", "") or DEFAULT_ASSIGNMENT_TYPE,
        description=data.get("description", "") or "",
        additional_notes=data.get("additionalNotes", "") or "",
        is_recurring=bool(data.get("isRecurring", False)),
        recurring_day_of_week=data.get("recurringDayOfWeek") or None,
        expanded_dates=list(data.get("expandedDates", []) or []),
    )


def syllabus_to_dict(syllabus: ParsedSyllabus) -> dict[str, t.Any]:
    return {
        "fileName": syllabus.file_name,
        "courseName": syllabus.course_name,
        "semester": syllabus.semester,
        "instructor": syllabus.instructor,
        "assignments": [assignment_to_dict(a) for a in syllabus.assignments],
    }


def syllabus_from_dict(data: dict[str, t.Any]) -> ParsedSyllabus:
    return ParsedSyllabus(
        file_name=data.get("fileName", "") or "",
        course_name=data.get("courseName", "") or "",
        semester=data.get("semester", "") or "",
        instructor=data.get("instructor", "") or "",
        assignments=[assignment_from_dict(a) for a in data.get("assignments", []) or []],
    )
