"""
Data models for the integration broker and Notion delivery.
"""
from __future__ import annotations

import typing as t
from dataclasses import dataclass, field


@dataclass
class ConnectionRequest:
    """A pending account link: where to send the user, and how to find it again."""
    id: str
    redirect_url: str
    status: str = ""


@dataclass
class ConnectedAccount:
    id: str
    status: str


@dataclass
class ActionResult:
    """Outcome of one remote action execution."""
    successful: bool
    data: dict[str, t.Any] = field(default_factory=dict)
    error: t.Optional[str] = None


@dataclass
class PropertySpec:
    """One database column as requested by a plan."""
    name: str
    type: str                                   # title | date | select | rich_text | text
    options: list[str] = field(default_factory=list)  # select only


@dataclass
class NotionActionPlan:
    """What to do in Notion: create a database and fill it with pages."""
    action: str = "create_database"
    database_name: str = ""
    properties: list[PropertySpec] = field(default_factory=list)
    pages: list[dict[str, t.Any]] = field(default_factory=list)


@dataclass
class StepResult:
    tool: str
    success: bool
    data: t.Optional[dict[str, t.Any]] = None
    error: t.Optional[str] = None


@dataclass
class DeliveryReport:
    """Aggregate result of applying a plan."""
    database_id: str = ""
    database_url: str = ""
    created: int = 0
    failed: int = 0
    steps: list[StepResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.failed

    @property
    def message(self) -> str:
        return f"Successfully created {self.created} out of {self.total} assignments in Notion"
