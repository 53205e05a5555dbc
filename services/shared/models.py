"""
Shared Pydantic models for REST API serialization.

This module contains Pydantic equivalents of the dataclass models used throughout
the system. Fields are snake_case in Python and camelCase on the wire.
"""
from __future__ import annotations

import typing as t

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from syllabus_server.models import ParsedSyllabus as ParsedSyllabusData, syllabus_from_dict, syllabus_to_dict


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Assignment(CamelModel):
    """
    A graded deliverable, with its recurrence view.
    """
    title: str = ""
    due_date: str = ""                 # "YYYY-MM-DD", "" or descriptive phrase
    weight: str = ""
    type: str = "Assignment"
    description: str = ""
    additional_notes: str = ""
    is_recurring: bool = False
    recurring_day_of_week: t.Optional[str] = None
    expanded_dates: list[str] = Field(default_factory=list)


class ParsedSyllabus(CamelModel):
    """
    Parsed representation of one uploaded file.
    """
    file_name: str = ""
    course_name: str = ""
    semester: str = ""
    instructor: str = ""
    assignments: list[Assignment] = Field(default_factory=list)

    @classmethod
    def from_data(cls, syllabus: ParsedSyllabusData) -> "ParsedSyllabus":
        return cls.model_validate(syllabus_to_dict(syllabus))

    def to_data(self) -> ParsedSyllabusData:
        return syllabus_from_dict(self.model_dump(by_alias=True))


# Request/Response Models for API endpoints
class ParseSyllabusResponse(CamelModel):
    """Response model for a multi-file parse."""
    results: list[ParsedSyllabus]


class ResolveRecurrenceRequest(CamelModel):
    """Request model for re-expanding recurring dates over a semester range."""
    results: list[ParsedSyllabus]
    semester_start: t.Optional[str] = None
    semester_end: t.Optional[str] = None


class SendToNotionRequest(CamelModel):
    """Request model for delivering the working set to Notion."""
    results: list[ParsedSyllabus]
    database_name: t.Optional[str] = None


class SendToNotionResponse(CamelModel):
    """Response model for a delivery."""
    success: bool
    message: str
    created: int = 0
    failed: int = 0
    total: int = 0
    database_url: str = ""


class NotionActionRequest(CamelModel):
    """Request model for a natural-language Notion action."""
    prompt: str = ""


class StepResult(CamelModel):
    tool: str
    success: bool
    data: t.Optional[dict[str, t.Any]] = None
    error: t.Optional[str] = None


class NotionActionResponse(CamelModel):
    """Response model for a natural-language Notion action."""
    success: bool
    message: str
    results: list[StepResult] = Field(default_factory=list)
    error: t.Optional[str] = None
