# -*- coding: utf-8 -*-
"""Tests for the syllabus FastAPI service.

Collaborators are swapped through ``app.dependency_overrides``; nothing here
talks to a real LLM or broker.
"""
import json
import typing as t

import httpx
import pytest

from notion_broker.client import CREATE_DATABASE_ACTION, INSERT_ROW_ACTION, SEARCH_PAGE_ACTION
from notion_broker.models import ActionResult, ConnectedAccount, ConnectionRequest
from services.syllabus_service.app import (
    app,
    get_broker,
    get_completer,
    get_settings,
    get_text_extractor,
)
from settings import Settings
from syllabus_server.errors import BrokerConnectionError, ExtractionError

SETTINGS = Settings(
    llm_api_key="sk-test",
    composio_api_key="ck-test",
    composio_auth_config_id="ac_test",
)

SYLLABUS_JSON = json.dumps({
    "courseName": "CS 101",
    "semester": "Fall 2024",
    "instructor": "Dr. Rivera",
    "assignments": [
        {"title": "Quiz", "dueDate": "every Friday", "weight": "5%", "type": "Quiz"},
        {"title": "Midterm", "dueDate": "2024-10-15", "weight": "30%", "type": "Exam"},
    ],
})


def fake_extractor(content: bytes, declared_type: str) -> str:
    if content == b"BROKEN":
        raise ExtractionError("corrupt")
    return content.decode("utf-8")


def fake_completer(request) -> str:
    return SYLLABUS_JSON


class FakeBroker:
    def __init__(self, fail_wait: bool = False) -> None:
        self.fail_wait = fail_wait
        self.rows: list[t.Any] = []

    def initiate_connection(self, user_id, auth_config_id, callback_url):
        self.initiated = (user_id, auth_config_id, callback_url)
        return ConnectionRequest(id="ca_1", redirect_url="https://notion.test/authorize")

    def wait_for_connection(self, connection_id):
        if self.fail_wait:
            raise BrokerConnectionError("timed out")
        return ConnectedAccount(id=connection_id, status="ACTIVE")

    def execute(self, action, user_id, arguments, version):
        if action == SEARCH_PAGE_ACTION:
            return ActionResult(successful=True, data={"results": [{"id": "page-1"}]})
        if action == CREATE_DATABASE_ACTION:
            return ActionResult(successful=True, data={"id": "db-1", "url": "https://notion.so/db-1"})
        if action == INSERT_ROW_ACTION:
            self.rows.append(arguments["properties"])
            return ActionResult(successful=True, data={})
        raise AssertionError(action)


@pytest.fixture
def broker():
    fake = FakeBroker()
    app.dependency_overrides[get_settings] = lambda: SETTINGS
    app.dependency_overrides[get_completer] = lambda: fake_completer
    app.dependency_overrides[get_text_extractor] = lambda: fake_extractor
    app.dependency_overrides[get_broker] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


def client(**kwargs) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test", **kwargs)


@pytest.mark.asyncio
async def test_health_check(broker):
    async with client() as c:
        response = await c.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_parse_without_files_is_rejected(broker):
    async with client() as c:
        response = await c.post("/parse-syllabus", data={"semester_start": "2024-09-02"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_parse_isolates_failed_file_and_expands_dates(broker):
    files = [
        ("files", ("cs101.pdf", b"syllabus text", "application/pdf")),
        ("files", ("broken.pdf", b"BROKEN", "application/pdf")),
        ("files", ("notes.docx", b"more text", "application/octet-stream")),
    ]
    data = {"semester_start": "2024-09-02", "semester_end": "2024-09-30"}

    async with client() as c:
        response = await c.post("/parse-syllabus", files=files, data=data)

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["fileName"] for r in results] == ["cs101.pdf", "broken.pdf", "notes.docx"]
    assert results[1]["courseName"] == "Error parsing file"
    assert results[1]["assignments"] == []

    quiz = results[0]["assignments"][0]
    assert quiz["isRecurring"] is True
    assert quiz["recurringDayOfWeek"] == "Friday"
    assert quiz["expandedDates"] == ["2024-09-06", "2024-09-13", "2024-09-20", "2024-09-27"]


@pytest.mark.asyncio
async def test_parse_with_invalid_range(broker):
    files = [("files", ("cs101.pdf", b"syllabus text", "application/pdf"))]
    async with client() as c:
        response = await c.post("/parse-syllabus", files=files,
                                data={"semester_start": "fall", "semester_end": "2024-09-30"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_missing_llm_key_is_a_config_error():
    app.dependency_overrides[get_settings] = lambda: Settings()
    try:
        files = [("files", ("cs101.pdf", b"syllabus text", "application/pdf"))]
        async with client() as c:
            response = await c.post("/parse-syllabus", files=files)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert "LLM_API_KEY" in response.json()["error"]


@pytest.mark.asyncio
async def test_resolve_recurrence_keeps_manual_fields(broker):
    body = {
        "results": [{
            "fileName": "cs101.pdf",
            "courseName": "CS 101",
            "assignments": [{"title": "Lab", "dueDate": "each Monday", "weight": "edited"}],
        }],
        "semesterStart": "2024-09-02",
        "semesterEnd": "2024-09-16",
    }
    async with client() as c:
        response = await c.post("/resolve-recurrence", json=body)

    assignment = response.json()["results"][0]["assignments"][0]
    assert assignment["weight"] == "edited"
    assert assignment["expandedDates"] == ["2024-09-02", "2024-09-09", "2024-09-16"]


@pytest.mark.asyncio
async def test_send_to_notion_requires_connected_user(broker):
    async with client() as c:
        response = await c.post("/send-to-notion", json={"results": []})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_send_to_notion_requires_records(broker):
    async with client(cookies={"composio_user_id": "user-1"}) as c:
        response = await c.post("/send-to-notion", json={"results": [{"fileName": "empty.pdf"}]})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_send_to_notion_delivers_expanded_records(broker):
    body = {
        "results": [{
            "fileName": "cs101.pdf",
            "courseName": "CS 101",
            "assignments": [
                {"title": "Quiz", "dueDate": "every Friday", "isRecurring": True,
                 "recurringDayOfWeek": "Friday", "expandedDates": ["2024-09-06", "2024-09-13"]},
                {"title": "Midterm", "dueDate": "2024-10-15", "type": "Exam"},
            ],
        }],
    }
    async with client(cookies={"composio_user_id": "user-1"}) as c:
        response = await c.post("/send-to-notion", json=body)

    payload = response.json()
    assert payload["success"] is True
    assert payload["created"] == 3
    assert payload["total"] == 3
    assert payload["message"] == "Successfully created 3 out of 3 assignments in Notion"
    assert payload["databaseUrl"] == "https://notion.so/db-1"
    titles = [props[0]["value"] for props in broker.rows]
    assert titles == ["Midterm", "Quiz (2/2)", "Quiz (1/2)"]


@pytest.mark.asyncio
async def test_notion_action_with_unusable_model_output(broker):
    app.dependency_overrides[get_completer] = lambda: (lambda request: "no json here")
    async with client(cookies={"composio_user_id": "user-1"}) as c:
        response = await c.post("/notion-action", json={"prompt": "make a reading list"})

    payload = response.json()
    assert payload["success"] is False
    assert payload["error"]


@pytest.mark.asyncio
async def test_notion_action_requires_prompt(broker):
    async with client(cookies={"composio_user_id": "user-1"}) as c:
        response = await c.post("/notion-action", json={"prompt": ""})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_connect_notion_sets_user_cookie_and_redirects(broker):
    async with client() as c:
        response = await c.get("/composio/connect-notion")

    assert response.status_code == 307
    user_id = response.cookies["composio_user_id"]
    assert user_id.startswith("user-")
    assert response.headers["location"] == f"http://test/composio/link?userId={user_id}"
    assert "httponly" in response.headers["set-cookie"].lower()


@pytest.mark.asyncio
async def test_link_redirects_to_broker(broker):
    async with client() as c:
        response = await c.get("/composio/link", params={"userId": "user-1"})

    assert response.headers["location"] == "https://notion.test/authorize"
    assert response.cookies["composio_connection_request_id"] == "ca_1"
    assert broker.initiated == ("user-1", "ac_test", "http://test/composio/callback")


@pytest.mark.asyncio
async def test_link_requires_user(broker):
    async with client() as c:
        response = await c.get("/composio/link")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_callback_redirects_optimistically_on_failure(broker):
    broker.fail_wait = True
    async with client(cookies={"composio_connection_request_id": "ca_1"}) as c:
        response = await c.get("/composio/callback")

    assert response.headers["location"] == "http://test/?connected=true"


@pytest.mark.asyncio
async def test_callback_without_broker_reports_config_error(broker):
    app.dependency_overrides[get_broker] = lambda: None
    async with client() as c:
        response = await c.get("/composio/callback")

    assert response.headers["location"] == "http://test/?error=config_error"
