"""
Working set of parsed syllabi for one client session.

The session is passed explicitly between pipeline stages. Crossing the OAuth
redirect means serializing it with ``to_json`` and restoring it with
``from_json``; nothing is kept in module state.
"""
from __future__ import annotations

import json
import typing as t
from dataclasses import dataclass, field, fields
from datetime import date

from syllabus_server.models import (Assignment, ParsedSyllabus, SemesterRange, syllabus_from_dict,
                                    syllabus_to_dict)
from syllabus_server.recurrence import resolve_assignment, resolve_syllabi
from .assembler import build_submission
from .models import SubmissionRecord

_EDITABLE_FIELDS = frozenset(f.name for f in fields(Assignment))
_RECURRENCE_FIELDS = frozenset({"is_recurring", "recurring_day_of_week", "expanded_dates"})


@dataclass
class WorkingSession:
    syllabi: list[ParsedSyllabus] = field(default_factory=list)
    semester_range: t.Optional[SemesterRange] = None

    def load(self, results: t.Iterable[ParsedSyllabus]) -> None:
        """Replace the working set and resolve recurring due dates."""
        self.syllabi = list(results)
        self.resolve_recurrence()

    def set_semester_range(self, start: t.Optional[str], end: t.Optional[str]) -> None:
        """Set (or clear, when either bound is empty) the range and re-resolve."""
        self.semester_range = SemesterRange.from_iso(start, end) if start and end else None
        self.resolve_recurrence()

    def resolve_recurrence(self) -> None:
        resolve_syllabi(self.syllabi, self.semester_range)

    def assignment(self, syllabus_index: int, assignment_index: int) -> Assignment:
        return self.syllabi[syllabus_index].assignments[assignment_index]

    def update_assignment(self, syllabus_index: int, assignment_index: int, **changes: t.Any) -> Assignment:
        """Apply a manual edit to one assignment.

        Library-level editing API for callers that hold the session in
        process; the HTTP service instead receives results with the client's
        edits already applied. A new ``due_date`` is re-resolved unless the
        edit also sets the recurrence fields itself. A rejected edit leaves
        the assignment untouched.

        :raises ValueError: If a field name is unknown or an expanded date is not ``YYYY-MM-DD``.
        """
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown assignment field(s): {', '.join(sorted(unknown))}")

        if "expanded_dates" in changes:
            changes["expanded_dates"] = _normalize_dates(changes["expanded_dates"])

        assignment = self.assignment(syllabus_index, assignment_index)
        for name, value in changes.items():
            setattr(assignment, name, value)

        if "due_date" in changes and not (_RECURRENCE_FIELDS & set(changes)):
            resolve_assignment(assignment, self.semester_range)
        return assignment

    def update_assignment_dates(self, syllabus_index: int, assignment_index: int,
                                dates: t.Iterable[str]) -> Assignment:
        """Replace the expanded dates of one assignment (date-picker edit).

        Library-level, like ``update_assignment``.

        :raises ValueError: If a date is not ``YYYY-MM-DD``.
        """
        assignment = self.assignment(syllabus_index, assignment_index)
        assignment.expanded_dates = _normalize_dates(dates)
        return assignment

    def build_submission(self) -> list[SubmissionRecord]:
        return build_submission(self.syllabi)

    def clear(self) -> None:
        """Drop the working set, e.g. after a successful delivery."""
        self.syllabi = []

    # -----------------------------
    # Serialization boundary
    # -----------------------------

    def to_dict(self) -> dict[str, t.Any]:
        return {
            "results": [syllabus_to_dict(s) for s in self.syllabi],
            "semesterStart": self.semester_range.start.isoformat() if self.semester_range else None,
            "semesterEnd": self.semester_range.end.isoformat() if self.semester_range else None,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, t.Any]) -> "WorkingSession":
        start, end = data.get("semesterStart"), data.get("semesterEnd")
        return cls(
            syllabi=[syllabus_from_dict(s) for s in data.get("results", []) or []],
            semester_range=SemesterRange.from_iso(start, end) if start and end else None,
        )

    @classmethod
    def from_json(cls, payload: str) -> "WorkingSession":
        return cls.from_dict(json.loads(payload))


def _normalize_dates(dates: t.Iterable[str]) -> list[str]:
    return sorted({date.fromisoformat(d).isoformat() for d in dates})
