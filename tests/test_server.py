# -*- coding: utf-8 -*-
"""Tests for the raw MCP tool implementations."""
import io
import json

import docx
import pytest

from syllabus_server.models import Assignment, ParsedSyllabus
from syllabus_server.server import _build_submission_records, _parse_syllabus, _resolve_due_date


def write_docx(path, lines: list[str]) -> None:
    document = docx.Document()
    for line in lines:
        document.add_paragraph(line)
    buffer = io.BytesIO()
    document.save(buffer)
    path.write_bytes(buffer.getvalue())


def test_parse_syllabus_from_local_file(tmp_path):
    syllabus_path = tmp_path / "hist210.docx"
    write_docx(syllabus_path, ["HIST 210", "Reading response due every Tuesday"])
    seen = []

    def complete(request):
        seen.append(request.user)
        return json.dumps({
            "courseName": "HIST 210",
            "assignments": [{"title": "Reading response", "dueDate": "every Tuesday", "type": "Paper"}],
        })

    parsed = _parse_syllabus(str(syllabus_path), "2024-09-02", "2024-09-17", complete=complete)

    assert "Reading response due every Tuesday" in seen[0]
    assert parsed.file_name == "hist210.docx"
    assert parsed.assignments[0].expanded_dates == ["2024-09-03", "2024-09-10", "2024-09-17"]


def test_parse_syllabus_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        _parse_syllabus(str(tmp_path / "missing.pdf"), complete=lambda request: "{}")


def test_resolve_due_date():
    fields = _resolve_due_date("each Wed", "2024-09-02", "2024-09-12")

    assert fields.is_recurring is True
    assert fields.recurring_day_of_week == "Wednesday"
    assert fields.expanded_dates == ["2024-09-04", "2024-09-11"]


def test_resolve_due_date_without_range():
    fields = _resolve_due_date("Oct 3")

    assert fields.is_recurring is False
    assert fields.expanded_dates == []


def test_build_submission_records():
    syllabus = ParsedSyllabus(course_name="MATH 120", assignments=[Assignment(title="Exam 1", due_date="2024-10-02")])

    [record] = _build_submission_records([syllabus])

    assert record == {
        "course": "MATH 120",
        "title": "Exam 1",
        "dueDate": "2024-10-02",
        "weight": "",
        "type": "Assignment",
        "description": "",
    }
