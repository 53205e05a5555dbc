"""
Notion action plans and their sequential execution through the broker.

A plan is either built deterministically from submission records or derived
by the LLM from a natural-language request. Applying a plan finds a parent
page, creates the database, then inserts rows one at a time; a failed row is
counted and skipped.
"""
from __future__ import annotations

import logging
import typing as t
from datetime import date

from planner.models import SubmissionRecord
from prompts import load_prompt
from syllabus_server.errors import ProtocolParseError, RemoteActionError
from syllabus_server.extraction import Completer, CompletionRequest, load_json_object
from syllabus_server.models import ASSIGNMENT_TYPES
from .client import CREATE_DATABASE_ACTION, INSERT_ROW_ACTION, SEARCH_PAGE_ACTION, BrokerClient
from .models import DeliveryReport, NotionActionPlan, PropertySpec, StepResult
from .properties import transform_db_properties, transform_page_properties

logger = logging.getLogger(__name__)

CREATE_DATABASE = "create_database"
STATUS_OPTIONS = ["Not Started", "In Progress", "Completed"]
DEFAULT_STATUS = "Not Started"

TRACKER_PROPERTIES = [
    PropertySpec(name="Name", type="title"),
    PropertySpec(name="Due Date", type="date"),
    PropertySpec(name="Course", type="select"),
    PropertySpec(name="Weight", type="text"),
    PropertySpec(name="Status", type="select", options=STATUS_OPTIONS),
    PropertySpec(name="Type", type="select", options=list(ASSIGNMENT_TYPES)),
]


def default_database_name(today: t.Optional[date] = None) -> str:
    return f"Assignment Tracker {(today or date.today()).year}"


def record_to_page(record: SubmissionRecord) -> dict[str, t.Any]:
    return {
        "Name": record.title,
        "Due Date": record.due_date,
        "Course": record.course,
        "Weight": record.weight,
        "Type": record.type,
        "Status": DEFAULT_STATUS,
    }


def plan_for_submission(records: t.Sequence[SubmissionRecord],
                        database_name: t.Optional[str] = None) -> NotionActionPlan:
    """Tracker database plus one page per record, in record order."""
    return NotionActionPlan(
        action=CREATE_DATABASE,
        database_name=database_name or default_database_name(),
        properties=list(TRACKER_PROPERTIES),
        pages=[record_to_page(r) for r in records],
    )


def plan_from_prompt(prompt: str, complete: Completer) -> NotionActionPlan:
    """Ask the LLM to turn a natural-language request into a plan.

    :raises ProtocolParseError: If the model output is not a usable JSON object.
    """
    content = complete(
        CompletionRequest(system=load_prompt("notion_action_system_prompt"), user=prompt, json_response=True)
    )
    data = load_json_object(content)

    properties = []
    for prop in data.get("properties") or []:
        if not isinstance(prop, dict) or not prop.get("name"):
            continue
        properties.append(
            PropertySpec(
                name=str(prop["name"]),
                type=str(prop.get("type") or "rich_text"),
                options=[str(o) for o in prop.get("options") or []],
            )
        )

    pages = data.get("pages") or []
    if not isinstance(pages, list):
        raise ProtocolParseError("'pages' must be a list")

    return NotionActionPlan(
        action=str(data.get("action") or ""),
        database_name=str(data.get("database_name") or ""),
        properties=properties,
        pages=[p for p in pages if isinstance(p, dict)],
    )


# -----------------------------
# Execution
# -----------------------------

def find_parent_page(broker: BrokerClient, user_id: str, version: str) -> str:
    """Id of the first page visible to the user; new databases are created under it.

    :raises RemoteActionError: If the search fails or finds nothing.
    """
    result = broker.execute(SEARCH_PAGE_ACTION, user_id, {"query": ""}, version)
    results = result.data.get("results") or []
    if not result.successful or not isinstance(results, list) or not results or not isinstance(results[0], dict):
        raise RemoteActionError(
            "Could not find a parent page in your Notion workspace. Please create at least one page first."
        )
    parent_id = results[0].get("id", "")
    logger.info("Using parent page %s", parent_id)
    return parent_id


def apply_plan(broker: BrokerClient, user_id: str, plan: NotionActionPlan, version: str) -> DeliveryReport:
    """Create the plan's database and insert its pages sequentially.

    :raises RemoteActionError: If the parent page cannot be found or the database cannot be created.
    """
    if plan.action != CREATE_DATABASE:
        raise ValueError(f"Unsupported action '{plan.action}'")

    parent_id = find_parent_page(broker, user_id, version)

    logger.info("Creating database %r", plan.database_name)
    db_result = broker.execute(
        CREATE_DATABASE_ACTION,
        user_id,
        {
            "parent_id": parent_id,
            "title": plan.database_name,
            "properties": transform_db_properties(plan.properties),
        },
        version,
    )
    database_id = db_result.data.get("id", "")
    if not db_result.successful or not database_id:
        raise RemoteActionError(f"Failed to create database: {db_result.error or 'no database id returned'}")

    report = DeliveryReport(database_id=database_id, database_url=db_result.data.get("url", ""))
    report.steps.append(StepResult(tool=CREATE_DATABASE_ACTION, success=True, data=db_result.data))

    for page in plan.pages:
        try:
            row = broker.execute(
                INSERT_ROW_ACTION,
                user_id,
                {"database_id": database_id, "properties": transform_page_properties(page)},
                version,
            )
        except RemoteActionError as e:
            logger.warning("Error adding page %r: %s", page.get("Name"), e)
            report.failed += 1
            report.steps.append(StepResult(tool=INSERT_ROW_ACTION, success=False, error=str(e)))
            continue

        if row.successful:
            report.created += 1
        else:
            logger.warning("Failed to add page %r: %s", page.get("Name"), row.error)
            report.failed += 1
        report.steps.append(StepResult(tool=INSERT_ROW_ACTION, success=row.successful, data=row.data, error=row.error))

    logger.info(report.message)
    return report


def deliver_submission(broker: BrokerClient, user_id: str, records: t.Sequence[SubmissionRecord],
                       version: str, database_name: t.Optional[str] = None) -> DeliveryReport:
    """Send assembled submission records to a new tracker database."""
    return apply_plan(broker, user_id, plan_for_submission(records, database_name), version)
