"""Shared fixtures for tenant move tests.

Graph traffic is served by httpx.MockTransport backed by a small routing table,
so tests can assert on the exact sequence of requests a run issues.
"""

import json
from typing import Any, Callable, Dict, List, Tuple, Union
from unittest.mock import Mock

import httpx
import pytest

from autopilot_tenant_move.models import AuthToken

TEST_TENANT_ID = "12345678-1234-1234-1234-123456789abc"
TEST_CLIENT_ID = "87654321-4321-4321-4321-210987654321"
TEST_CLIENT_SECRET = "mock-secret-value"  # pragma: allowlist secret

MANAGED_DEVICES_PATH = "/Beta/deviceManagement/managedDevices"
AUTOPILOT_DEVICES_PATH = "/beta/deviceManagement/windowsAutopilotDeviceIdentities"
AUTOPILOT_SYNC_PATH = "/beta/deviceManagement/windowsAutopilotSettings/sync"

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


@pytest.fixture(autouse=True)
def tenant_env(monkeypatch):
    """Set tenant credentials and keep host settings out of the tests."""
    monkeypatch.setenv("AZURE_TENANT_ID", TEST_TENANT_ID)
    monkeypatch.setenv("AZURE_CLIENT_ID", TEST_CLIENT_ID)
    monkeypatch.setenv("AZURE_CLIENT_SECRET", TEST_CLIENT_SECRET)
    monkeypatch.setenv("COMPUTERNAME", "PC01")
    for name in (
        "ATM_GRAPH_BASE_URL",
        "ATM_GRAPH_RESOURCE",
        "ATM_LOGIN_AUTHORITY",
        "ATM_SETTLE_SECONDS",
        "ATM_CONFIG_FILE_NAME",
        "ATM_SOURCE_DIR",
        "ATM_PROVISIONING_DIR",
        "ATM_IME_LOG_PATH",
        "ATM_SANITIZE_MARKER",
        "LOG_LEVEL",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)


class FakeGraph:
    """Routes Graph requests by (method, path) and records every request."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, route: Route) -> None:
        self.routes[(method, path)] = route

    def add_json(self, method: str, path: str, payload: Any, status_code: int = 200) -> None:
        self.add(method, path, httpx.Response(status_code, json=payload))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(
                404, json={"error": {"code": "NotFound", "message": "no route"}}
            )
        if callable(route):
            return route(request)
        return route

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self) -> List[Tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    def body(self, index: int) -> Any:
        content = self.requests[index].content
        return json.loads(content) if content else None


@pytest.fixture
def fake_graph() -> FakeGraph:
    return FakeGraph()


@pytest.fixture
def auth_token() -> AuthToken:
    return AuthToken(bearer_value="test-token")


@pytest.fixture
def mock_credential():
    """Stand-in for ClientSecretCredential returning a fixed token."""
    credential = Mock()
    credential.get_token = Mock(return_value=Mock(token="test-token", expires_on=0))
    return credential


def device_payload(
    device_id: str = "abc", name: str = "PC01", serial: str = "SN1"
) -> Dict[str, Any]:
    return {
        "id": device_id,
        "deviceName": name,
        "azureADDeviceId": f"aad-{device_id}",
        "serialNumber": serial,
    }


def registration_payload(
    registration_id: str = "reg-1", serial: str = "SN1"
) -> Dict[str, Any]:
    return {
        "id": registration_id,
        "serialNumber": serial,
        "model": "Surface Laptop 5",
        "managedDeviceId": "abc",
    }


@pytest.fixture(name="device_payload")
def device_payload_fixture():
    return device_payload


@pytest.fixture(name="registration_payload")
def registration_payload_fixture():
    return registration_payload


@pytest.fixture
def graph_paths():
    return {
        "managed_devices": MANAGED_DEVICES_PATH,
        "autopilot_devices": AUTOPILOT_DEVICES_PATH,
        "autopilot_sync": AUTOPILOT_SYNC_PATH,
    }
