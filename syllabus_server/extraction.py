"""
LLM extraction protocol: syllabus text in, normalized ``ParsedSyllabus`` out.

The model is reached through a ``Completer``: any callable taking a
``CompletionRequest`` and returning the raw response content (or ``None``).
``OpenAICompleter`` is the production implementation; tests pass a plain
function returning canned output.
"""
from __future__ import annotations

import json
import logging
import re
import typing as t
from dataclasses import dataclass

import openai
from openai import OpenAI

from prompts import load_prompt, render_prompt
from .errors import CompletionError, ProtocolParseError
from .models import ASSIGNMENT_TYPES, DEFAULT_ASSIGNMENT_TYPE, Assignment, ParsedSyllabus

logger = logging.getLogger(__name__)

MAX_DOCUMENT_CHARS = 60000
PLACEHOLDER_DUE_DATES = frozenset({"tba", "tbd", "n/a", "na", "none", "null", "-"})

_FENCE_RE = re.compile(r"^```[a-zA-Z]*[ \t]*\n?(?P<body>.*?)\n?```$", re.DOTALL)


@dataclass(frozen=True)
class CompletionRequest:
    """A single structured-output completion request."""
    system: str
    user: str
    json_response: bool = True


Completer = t.Callable[[CompletionRequest], t.Optional[str]]


class OpenAICompleter:
    """Completer backed by the OpenAI SDK (or any OpenAI-compatible endpoint)."""

    def __init__(self, api_key: str, model: str, base_url: t.Optional[str] = None,
                 client: t.Optional[OpenAI] = None) -> None:
        self.model = model
        self.client = client or OpenAI(api_key=api_key, base_url=base_url)

    def __call__(self, request: CompletionRequest) -> t.Optional[str]:
        kwargs: dict[str, t.Any] = {}
        if request.json_response:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": request.system},
                    {"role": "user", "content": request.user},
                ],
                **kwargs,
            )
        except openai.OpenAIError as e:
            raise CompletionError(f"LLM request failed: {e}") from e

        if not completion.choices:
            return None
        return completion.choices[0].message.content


# -----------------------------
# Request construction
# -----------------------------

def build_extraction_request(raw_text: str) -> CompletionRequest:
    """Embed the document text into the extraction prompts."""
    document_text = raw_text[:MAX_DOCUMENT_CHARS]
    return CompletionRequest(
        system=load_prompt("syllabus_extraction_system_prompt"),
        user=render_prompt("syllabus_extraction_user_prompt", document_text=document_text),
        json_response=True,
    )


# -----------------------------
# Response handling
# -----------------------------

def strip_code_fence(content: str) -> str:
    """Remove a leading ```/```json fence and its closing fence, if present."""
    text = content.strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group("body").strip()
    return text


def load_json_object(content: t.Optional[str]) -> dict[str, t.Any]:
    """Parse model output into a JSON object, tolerating a code fence.

    :raises ProtocolParseError: If the content is empty, not JSON, or not an object.
    """
    if not content or not content.strip():
        raise ProtocolParseError("Model returned no content")
    try:
        data = json.loads(strip_code_fence(content))
    except json.JSONDecodeError as e:
        raise ProtocolParseError(f"Model returned invalid JSON: {e}") from e
    except (ValueError, RecursionError) as e:
        # Oversized integers and pathological nesting
        raise ProtocolParseError(f"Model returned unparsable JSON: {type(e).__name__}") from e
    if not isinstance(data, dict):
        raise ProtocolParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _text(value: t.Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_type(value: t.Any) -> str:
    """Map a model-provided category onto one of the six assignment types."""
    lowered = _text(value).lower()
    for assignment_type in ASSIGNMENT_TYPES:
        if lowered == assignment_type.lower():
            return assignment_type
    return DEFAULT_ASSIGNMENT_TYPE


def normalize_weight(value: t.Any) -> str:
    if isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return f"{value}%"
    if isinstance(value, float):
        return f"{value:g}%"
    return _text(value)


def normalize_due_date(value: t.Any) -> str:
    due = _text(value)
    if due.lower() in PLACEHOLDER_DUE_DATES:
        return ""
    return due


def normalize_assignment(raw: dict[str, t.Any]) -> Assignment:
    return Assignment(
        title=_text(raw.get("title")),
        due_date=normalize_due_date(raw.get("dueDate")),
        weight=normalize_weight(raw.get("weight")),
        type=normalize_type(raw.get("type")),
        description=_text(raw.get("description")),
        additional_notes=_text(raw.get("additionalNotes")),
    )


def parse_extraction_response(content: t.Optional[str], file_name: str) -> ParsedSyllabus:
    """Validate and normalize the model's JSON into a ``ParsedSyllabus``."""
    data = load_json_object(content)

    raw_assignments = data.get("assignments") or []
    if not isinstance(raw_assignments, list):
        raise ProtocolParseError("'assignments' must be a list")

    assignments = [normalize_assignment(a) for a in raw_assignments if isinstance(a, dict)]
    dropped = len(raw_assignments) - len(assignments)
    if dropped:
        logger.warning("%s: dropped %d malformed assignment entries", file_name, dropped)

    return ParsedSyllabus(
        file_name=file_name,
        course_name=_text(data.get("courseName")),
        semester=_text(data.get("semester")),
        instructor=_text(data.get("instructor")),
        assignments=assignments,
    )


def extract(raw_text: str, file_name: str, complete: Completer) -> ParsedSyllabus:
    """Ask the model to turn syllabus text into a normalized assignment list.

    :raises CompletionError: If the model call fails.
    :raises ProtocolParseError: If the response cannot be parsed.
    """
    request = build_extraction_request(raw_text)
    logger.info("Extracting assignments from %s (%d chars)", file_name, len(raw_text))
    content = complete(request)
    parsed = parse_extraction_response(content, file_name)
    logger.info("%s: found %d assignment(s)", file_name, len(parsed.assignments))
    return parsed
