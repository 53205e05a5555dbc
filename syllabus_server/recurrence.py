"""
Recurring due-date detection and expansion.

A free-text due date is classified into one of four patterns:

- ``FixedDate``: a concrete (or empty) date. Any digit or month name puts
  the text here, whatever else it says.
- ``WeeklyRecurring``: "every Friday", "each tues", "weekly on Monday".
- ``SpanRecurring``: "throughout the semester", "ongoing", "continuous".
- ``Unresolved``: anything else; passed through untouched.

Only the two recurring patterns expand into calendar dates, and only when a
semester range is known.
"""
from __future__ import annotations

import re
import typing as t
from dataclasses import dataclass, field
from datetime import date, timedelta

from .models import Assignment, ParsedSyllabus, SemesterRange, Weekday


# Sunday=0 ... Saturday=6
WEEKDAY_INDEX: dict[str, int] = {
    "Sunday": 0,
    "Monday": 1,
    "Tuesday": 2,
    "Wednesday": 3,
    "Thursday": 4,
    "Friday": 5,
    "Saturday": 6,
}

WEEKDAY_SYNONYMS: dict[str, tuple[str, ...]] = {
    "Monday": ("monday", "mon"),
    "Tuesday": ("tuesday", "tues", "tue"),
    "Wednesday": ("wednesday", "wed"),
    "Thursday": ("thursday", "thurs", "thur", "thu"),
    "Friday": ("friday", "fri"),
    "Saturday": ("saturday", "sat"),
    "Sunday": ("sunday", "sun"),
}

MONTH_NAMES: tuple[str, ...] = (
    "jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "sept", "oct", "nov", "dec",
    "january", "february", "march", "april", "june", "july", "august", "september",
    "october", "november", "december",
)

RECURRENCE_QUALIFIERS: tuple[str, ...] = ("every", "each", "weekly")
SPAN_KEYWORDS: tuple[str, ...] = ("throughout", "ongoing", "continuous")

_SPELLING_TO_DAY: dict[str, str] = {
    spelling: day for day, spellings in WEEKDAY_SYNONYMS.items() for spelling in spellings
}

_SPECIFIC_DATE_RE = re.compile(
    r"\d|\b(?:" + "|".join(MONTH_NAMES) + r")\b",
    re.IGNORECASE,
)

# Longest spellings first so "tues" wins over "tue"
_WEEKDAY_ALTERNATION = "|".join(sorted(_SPELLING_TO_DAY, key=len, reverse=True))
_WEEKLY_RE = re.compile(
    r"\b(?:" + "|".join(RECURRENCE_QUALIFIERS) + r")\s+(?:on\s+)?"
    r"(?P<day>" + _WEEKDAY_ALTERNATION + r")s?\b",
)


# -----------------------------
# Classification
# -----------------------------

@dataclass(frozen=True)
class FixedDate:
    text: str


@dataclass(frozen=True)
class WeeklyRecurring:
    day: Weekday


@dataclass(frozen=True)
class SpanRecurring:
    pass


@dataclass(frozen=True)
class Unresolved:
    text: str


DueDatePattern = t.Union[FixedDate, WeeklyRecurring, SpanRecurring, Unresolved]


@dataclass
class RecurrenceFields:
    """The recurrence view of a due date, as stored on an ``Assignment``."""
    is_recurring: bool = False
    recurring_day_of_week: t.Optional[Weekday] = None
    expanded_dates: list[str] = field(default_factory=list)


def has_specific_date(text: str) -> bool:
    """True when the text carries a digit or an English month name."""
    return bool(_SPECIFIC_DATE_RE.search(text))


def classify_due_date(text: str) -> DueDatePattern:
    """Classify a free-text due date.

    The specific-date check runs first, so a text that mentions a month or a
    number is never treated as recurring.
    """
    if not text.strip() or has_specific_date(text):
        return FixedDate(text)

    lowered = text.lower()

    match = _WEEKLY_RE.search(lowered)
    if match:
        return WeeklyRecurring(day=t.cast(Weekday, _SPELLING_TO_DAY[match.group("day")]))

    if any(keyword in lowered for keyword in SPAN_KEYWORDS):
        return SpanRecurring()

    return Unresolved(text)


# -----------------------------
# Expansion
# -----------------------------

def _weekday_index(day: date) -> int:
    # date.weekday() is Monday=0; shift to Sunday=0
    return (day.weekday() + 1) % 7


def _step_weekly(first: date, end: date) -> list[str]:
    dates: list[str] = []
    current = first
    while current <= end:
        dates.append(current.isoformat())
        current += timedelta(days=7)
    return dates


def weekday_dates(day: str, semester: SemesterRange) -> list[str]:
    """Every date in the inclusive range that falls on ``day``."""
    target = WEEKDAY_INDEX[day]
    current = semester.start
    while _weekday_index(current) != target and current <= semester.end:
        current += timedelta(days=1)
    return _step_weekly(current, semester.end)


def weekly_dates(semester: SemesterRange) -> list[str]:
    """Every 7th day starting exactly at the range start."""
    return _step_weekly(semester.start, semester.end)


def expand(pattern: DueDatePattern, semester: t.Optional[SemesterRange]) -> RecurrenceFields:
    """Turn a classified pattern into recurrence fields."""
    if isinstance(pattern, WeeklyRecurring):
        dates = weekday_dates(pattern.day, semester) if semester else []
        return RecurrenceFields(is_recurring=True, recurring_day_of_week=pattern.day, expanded_dates=dates)
    if isinstance(pattern, SpanRecurring):
        dates = weekly_dates(semester) if semester else []
        return RecurrenceFields(is_recurring=True, expanded_dates=dates)
    return RecurrenceFields()


def classify_and_expand(due_date_text: str, semester: t.Optional[SemesterRange] = None) -> RecurrenceFields:
    """Classify ``due_date_text`` and expand it over ``semester``.

    Never raises; text that cannot be interpreted comes back as a
    non-recurring result with no dates.
    """
    return expand(classify_due_date(due_date_text or ""), semester)


def resolve_assignment(assignment: Assignment, semester: t.Optional[SemesterRange]) -> Assignment:
    """Overwrite the recurrence fields of ``assignment`` in place."""
    fields = classify_and_expand(assignment.due_date, semester)
    assignment.is_recurring = fields.is_recurring
    assignment.recurring_day_of_week = fields.recurring_day_of_week
    assignment.expanded_dates = fields.expanded_dates
    return assignment


def resolve_syllabi(syllabi: t.Iterable[ParsedSyllabus], semester: t.Optional[SemesterRange]) -> None:
    """Resolve every assignment of every syllabus in place."""
    for syllabus in syllabi:
        for assignment in syllabus.assignments:
            resolve_assignment(assignment, semester)
