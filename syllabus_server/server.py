from __future__ import annotations

import functools
from pathlib import Path

from fastmcp import FastMCP

from planner.assembler import build_submission
from settings import load_settings
from .batch import UploadedSyllabus, parse_upload
from .extraction import Completer, OpenAICompleter
from .models import ParsedSyllabus, SemesterRange
from .recurrence import RecurrenceFields, classify_and_expand, resolve_syllabi


mcp = FastMCP("SyllabusServer")


@functools.lru_cache(maxsize=1)
def _default_completer() -> Completer:
    settings = load_settings()
    settings.require("llm_api_key")
    return OpenAICompleter(api_key=settings.llm_api_key, model=settings.llm_model, base_url=settings.llm_base_url)


def _range(semester_start: str, semester_end: str) -> SemesterRange | None:
    if semester_start and semester_end:
        return SemesterRange.from_iso(semester_start, semester_end)
    return None


# -----------------------------
# Raw implementations
# -----------------------------

def _parse_syllabus(path: str, semester_start: str = "", semester_end: str = "",
                    complete: Completer | None = None) -> ParsedSyllabus:
    """
    Parse a local PDF/DOCX syllabus and expand its recurring due dates.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"File not found: {path}")

    upload = UploadedSyllabus(file_name=file_path.name, content=file_path.read_bytes())
    parsed = parse_upload(upload, complete or _default_completer())
    resolve_syllabi([parsed], _range(semester_start, semester_end))
    return parsed


def _resolve_due_date(due_date: str, semester_start: str = "", semester_end: str = "") -> RecurrenceFields:
    return classify_and_expand(due_date, _range(semester_start, semester_end))


def _build_submission_records(syllabi: list[ParsedSyllabus]) -> list[dict[str, str]]:
    return [record.to_dict() for record in build_submission(syllabi)]


# -----------------------------
# MCP Tool Implementation
# -----------------------------

@mcp.tool()
def parse_syllabus(path: str, semester_start: str = "", semester_end: str = "") -> ParsedSyllabus:
    """Parse a PDF/DOCX syllabus into assignments.

    :param path: Local path of the syllabus file.
    :param semester_start: Optional semester start (YYYY-MM-DD) for expanding recurring dates.
    :param semester_end: Optional semester end (YYYY-MM-DD).
    """
    return _parse_syllabus(path, semester_start, semester_end)


@mcp.tool()
def resolve_due_date(due_date: str, semester_start: str = "", semester_end: str = "") -> RecurrenceFields:
    """Classify a free-text due date and list the concrete dates it stands for.

    "Every Friday" or "throughout the semester" expand over the semester
    range; anything with a month or a number is a fixed date.
    """
    return _resolve_due_date(due_date, semester_start, semester_end)


@mcp.tool()
def build_submission_records(syllabi: list[ParsedSyllabus]) -> list[dict[str, str]]:
    """Flatten parsed syllabi into the ordered records sent to Notion."""
    return _build_submission_records(syllabi)


if __name__ == "__main__":
    # Run as an MCP server over stdio
    mcp.run()
