# -*- coding: utf-8 -*-
"""Tests for the integration broker HTTP client, with a fake requests session."""
import typing as t

import pytest
import requests

from notion_broker.actions import deliver_submission
from notion_broker.client import INSERT_ROW_ACTION, BrokerClient
from planner.models import SubmissionRecord
from syllabus_server.errors import BrokerConnectionError, RemoteActionError


class FakeResponse:
    def __init__(self, payload: dict[str, t.Any], status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code
        self.text = str(payload)

    def json(self) -> dict[str, t.Any]:
        return self.payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class FakeSession:
    """Records calls and replays queued responses (or exceptions)."""

    def __init__(self, responses: list[t.Any]) -> None:
        self.headers: dict[str, str] = {}
        self.responses = list(responses)
        self.calls: list[tuple[str, str, dict[str, t.Any]]] = []

    def _next(self, method: str, url: str, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)


def make_client(responses: list[t.Any]) -> tuple[BrokerClient, FakeSession]:
    session = FakeSession(responses)
    client = BrokerClient(api_key="key-123", base_url="https://broker.test/", session=session,
                          sleep=lambda seconds: None)
    return client, session


def test_api_key_header_is_set():
    _, session = make_client([])
    assert session.headers["x-api-key"] == "key-123"


def test_initiate_connection():
    client, session = make_client([
        FakeResponse({"id": "ca_1", "redirect_url": "https://notion.test/oauth", "status": "INITIATED"}),
    ])

    request = client.initiate_connection("user-abc", "ac_1", "https://app.test/composio/callback")

    assert request.id == "ca_1"
    assert request.redirect_url == "https://notion.test/oauth"
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", "https://broker.test/api/v3/connected_accounts")
    assert kwargs["json"] == {
        "auth_config": {"id": "ac_1"},
        "connection": {"user_id": "user-abc", "callback_url": "https://app.test/composio/callback"},
    }
    assert kwargs["timeout"] == 30.0


def test_initiate_connection_without_redirect_fails():
    client, _ = make_client([FakeResponse({"id": "ca_1"})])

    with pytest.raises(BrokerConnectionError):
        client.initiate_connection("user-abc", "ac_1", "https://app.test/cb")


def test_initiate_connection_http_error():
    client, _ = make_client([FakeResponse({"error": "bad auth config"}, status_code=400)])

    with pytest.raises(BrokerConnectionError):
        client.initiate_connection("user-abc", "ac_1", "https://app.test/cb")


def test_wait_for_connection_polls_until_active():
    client, session = make_client([
        FakeResponse({"id": "ca_1", "status": "initiated"}),
        FakeResponse({"id": "ca_1", "status": "ACTIVE"}),
    ])

    account = client.wait_for_connection("ca_1")

    assert account.status == "ACTIVE"
    assert len(session.calls) == 2
    assert session.calls[0][1] == "https://broker.test/api/v3/connected_accounts/ca_1"


def test_wait_for_connection_failed_status():
    client, _ = make_client([FakeResponse({"id": "ca_1", "status": "FAILED"})])

    with pytest.raises(BrokerConnectionError):
        client.wait_for_connection("ca_1")


def test_wait_for_connection_times_out():
    client, _ = make_client([FakeResponse({"id": "ca_1", "status": "INITIATED"})])

    with pytest.raises(BrokerConnectionError):
        client.wait_for_connection("ca_1", timeout=0)


def test_execute_posts_arguments_and_version():
    client, session = make_client([
        FakeResponse({"successful": True, "data": {"id": "row-1"}, "error": None}),
    ])

    result = client.execute(INSERT_ROW_ACTION, "user-abc", {"database_id": "db-1"}, "20251027_00")

    assert result.successful is True
    assert result.data == {"id": "row-1"}
    method, url, kwargs = session.calls[0]
    assert url == "https://broker.test/api/v3/tools/execute/NOTION_INSERT_ROW_DATABASE"
    assert kwargs["json"] == {"user_id": "user-abc", "arguments": {"database_id": "db-1"},
                              "version": "20251027_00"}


def test_execute_reports_unsuccessful_result():
    client, _ = make_client([FakeResponse({"successful": False, "data": None, "error": "validation failed"})])

    result = client.execute(INSERT_ROW_ACTION, "user-abc", {}, "v")

    assert result.successful is False
    assert result.data == {}
    assert result.error == "validation failed"


@pytest.mark.parametrize("failure", [
    requests.Timeout("slow"),
    requests.ConnectionError("down"),
    FakeResponse({"error": "server"}, status_code=502),
])
def test_execute_transport_failures_raise(failure):
    client, _ = make_client([failure])

    with pytest.raises(RemoteActionError):
        client.execute(INSERT_ROW_ACTION, "user-abc", {}, "v")


@pytest.mark.parametrize("body", [
    ["gateway error"],
    {"successful": True, "data": ["not", "an", "object"]},
])
def test_execute_malformed_body_raises(body):
    client, _ = make_client([FakeResponse(body)])

    with pytest.raises(RemoteActionError):
        client.execute(INSERT_ROW_ACTION, "user-abc", {}, "v")


def test_connect_calls_reject_non_object_bodies():
    client, _ = make_client([FakeResponse(["nope"]), FakeResponse(["nope"])])

    with pytest.raises(BrokerConnectionError):
        client.initiate_connection("user-abc", "ac_1", "https://app.test/cb")
    with pytest.raises(BrokerConnectionError):
        client.get_connected_account("ca_1")


def test_malformed_row_response_is_counted_not_fatal():
    """A garbled insert-row reply fails that row only; delivery goes on."""
    client, session = make_client([
        FakeResponse({"successful": True, "data": {"results": [{"id": "page-1"}]}}),
        FakeResponse({"successful": True, "data": {"id": "db-1", "url": "https://notion.so/db-1"}}),
        FakeResponse(["gateway error"]),
        FakeResponse({"successful": True, "data": {"id": "row-2"}}),
    ])
    records = [
        SubmissionRecord(course="CS 101", title="Quiz (2/2)", due_date="2024-09-13"),
        SubmissionRecord(course="CS 101", title="Quiz (1/2)", due_date="2024-09-06"),
    ]

    report = deliver_submission(client, "user-abc", records, "20251027_00")

    assert report.created == 1
    assert report.failed == 1
    assert report.message == "Successfully created 1 out of 2 assignments in Notion"
    assert len(session.calls) == 4
