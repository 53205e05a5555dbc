# -*- coding: utf-8 -*-
"""Convert plan properties and page values into the broker's Notion argument format."""
import logging
import typing as t
from datetime import date

from .models import PropertySpec

logger = logging.getLogger(__name__)

SELECT_COLUMNS = ("Course", "Type", "Status")


def transform_db_properties(props: t.Iterable[PropertySpec]) -> list[dict[str, t.Any]]:
    """Database schema as a list of ``{name, type[, select]}`` entries."""
    result = []
    for prop in props:
        entry: dict[str, t.Any] = {
            "name": prop.name,
            "type": "rich_text" if prop.type == "text" else prop.type,
        }
        if prop.type == "select" and prop.options:
            entry["select"] = {"options": [{"name": o} for o in prop.options]}
        result.append(entry)
    return result


def _is_iso_date(value: t.Any) -> bool:
    try:
        date.fromisoformat(str(value))
    except ValueError:
        return False
    return True


def transform_page_properties(page: dict[str, t.Any]) -> list[dict[str, t.Any]]:
    """Row values as a list of ``{name, type, value}`` entries.

    Empty selects and empty or non-ISO dates are left out; keys that are not
    tracker columns are ignored.
    """
    props: list[dict[str, t.Any]] = []

    for key, value in page.items():
        if key == "Name":
            props.append({"name": key, "type": "title", "value": value or ""})
        elif key == "Due Date":
            if not value:
                continue
            if not _is_iso_date(value):
                logger.warning("Skipping non-ISO due date %r", value)
                continue
            props.append({"name": key, "type": "date", "value": value})
        elif key in SELECT_COLUMNS:
            if not value:
                continue
            props.append({"name": key, "type": "select", "value": value})
        elif key == "Weight":
            props.append({"name": key, "type": "rich_text", "value": value or ""})

    return props
