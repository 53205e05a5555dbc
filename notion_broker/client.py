"""
HTTP client for the integration broker (account linking + remote actions).

Talks to the broker's v3 REST API with ``requests``. Every call is
blocking and retry-less; callers decide whether a failure is fatal.
"""
from __future__ import annotations

import logging
import time
import typing as t

import requests

from syllabus_server.errors import BrokerConnectionError, RemoteActionError
from .models import ActionResult, ConnectedAccount, ConnectionRequest

logger = logging.getLogger(__name__)

# Remote action names
SEARCH_PAGE_ACTION = "NOTION_SEARCH_NOTION_PAGE"
CREATE_DATABASE_ACTION = "NOTION_CREATE_DATABASE"
INSERT_ROW_ACTION = "NOTION_INSERT_ROW_DATABASE"

REQUEST_TIMEOUT = 30.0  # seconds per HTTP call
CONNECTION_WAIT_TIMEOUT = 60.0
ACTIVE_STATUS = "ACTIVE"
TERMINAL_FAILURE_STATUSES = frozenset({"FAILED", "EXPIRED", "INACTIVE"})


class BrokerClient:
    def __init__(
            self,
            api_key: str,
            base_url: str,
            session: t.Optional[requests.Session] = None,
            timeout: float = REQUEST_TIMEOUT,
            sleep: t.Callable[[float], None] = time.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"x-api-key": api_key})
        self._sleep = sleep

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/v3/{path.lstrip('/')}"

    # -----------------------------
    # Connect flow
    # -----------------------------

    def initiate_connection(self, user_id: str, auth_config_id: str, callback_url: str) -> ConnectionRequest:
        """Start linking ``user_id``'s account.

        :raises BrokerConnectionError: If the broker refuses or returns no redirect URL.
        """
        payload = {
            "auth_config": {"id": auth_config_id},
            "connection": {"user_id": user_id, "callback_url": callback_url},
        }
        try:
            response = self.session.post(self._url("connected_accounts"), json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise BrokerConnectionError(f"Failed to initiate connection: {e}") from e
        if not isinstance(data, dict):
            raise BrokerConnectionError(f"Unexpected connection response: {data!r}")

        redirect_url = data.get("redirect_url") or data.get("redirect_uri") or ""
        if not redirect_url:
            raise BrokerConnectionError("No redirect URL returned from the integration broker")

        return ConnectionRequest(id=data.get("id", ""), redirect_url=redirect_url, status=data.get("status", ""))

    def get_connected_account(self, connection_id: str) -> ConnectedAccount:
        try:
            response = self.session.get(self._url(f"connected_accounts/{connection_id}"), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise BrokerConnectionError(f"Failed to fetch connection {connection_id}: {e}") from e
        if not isinstance(data, dict):
            raise BrokerConnectionError(f"Unexpected response for connection {connection_id}: {data!r}")
        return ConnectedAccount(id=data.get("id", connection_id), status=str(data.get("status", "")).upper())

    def wait_for_connection(self, connection_id: str, timeout: float = CONNECTION_WAIT_TIMEOUT,
                            poll_interval: float = 1.0) -> ConnectedAccount:
        """Poll until the connection is active.

        :raises BrokerConnectionError: On a failed status or when ``timeout`` elapses.
        """
        deadline = time.monotonic() + timeout
        while True:
            account = self.get_connected_account(connection_id)
            if account.status == ACTIVE_STATUS:
                return account
            if account.status in TERMINAL_FAILURE_STATUSES:
                raise BrokerConnectionError(f"Connection {connection_id} ended with status {account.status}")
            if time.monotonic() >= deadline:
                raise BrokerConnectionError(f"Timed out waiting for connection {connection_id}")
            self._sleep(poll_interval)

    # -----------------------------
    # Remote actions
    # -----------------------------

    def execute(self, action: str, user_id: str, arguments: dict[str, t.Any], version: str) -> ActionResult:
        """Run a named remote action on behalf of ``user_id``.

        :raises RemoteActionError: On transport or HTTP errors, or a malformed response body.
        """
        payload = {"user_id": user_id, "arguments": arguments, "version": version}
        try:
            response = self.session.post(self._url(f"tools/execute/{action}"), json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise RemoteActionError(f"{action} timed out after {self.timeout} seconds") from e
        except requests.HTTPError as e:
            raise RemoteActionError(f"HTTP error from {action}: {e.response.status_code} {e.response.text}") from e
        except requests.RequestException as e:
            raise RemoteActionError(f"Error calling {action}: {e}") from e

        if not isinstance(data, dict):
            raise RemoteActionError(f"Unexpected response from {action}: {data!r}")
        result_data = data.get("data") or {}
        if not isinstance(result_data, dict):
            raise RemoteActionError(f"Unexpected data from {action}: {result_data!r}")

        error = data.get("error")
        result = ActionResult(
            successful=bool(data.get("successful", False)),
            data=result_data,
            error=str(error) if error else None,
        )
        logger.debug("%s -> successful=%s", action, result.successful)
        return result
