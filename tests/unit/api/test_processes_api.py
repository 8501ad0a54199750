"""API tests for POST /v1/processes/manage."""

from __future__ import annotations

import httpx
import pytest

from wharf.api.dependencies import get_driver_factory
from wharf.config import Settings, get_settings
from wharf.drivers.base import SupervisorError
from wharf.main import create_app
from wharf.models.process import ProcessStatus
from tests.fakes import FakeSupervisorDriver


@pytest.fixture
def fake_driver() -> FakeSupervisorDriver:
    return FakeSupervisorDriver()


@pytest.fixture
async def client(settings: Settings, fake_driver: FakeSupervisorDriver):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_driver_factory] = lambda: (lambda: fake_driver)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def manage(client: httpx.AsyncClient, key_pem: bytes | None, **fields) -> httpx.Response:
    files = {"privateKey": ("id_rsa", key_pem)} if key_pem is not None else None
    data = {"name": "alice", **fields}
    return await client.post("/v1/processes/manage", files=files, data=data)


class TestProcessesApi:
    async def test_list_empty(self, client, key_pair) -> None:
        resp = await manage(client, key_pair[0], action="list")
        assert resp.status_code == 200, resp.text
        assert resp.json() == {"message": "Process list", "processes": []}

    async def test_start_new_then_status(self, client, key_pair, fake_driver, settings) -> None:
        resp = await manage(
            client, key_pair[0], action="start", projectName="api", scriptPath="api/index.js"
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["message"] == "New project api started successfully"
        assert body["processes"][0]["status"] == "online"

        resp = await manage(client, key_pair[0], action="status", projectName="api")
        assert resp.status_code == 200
        [status] = resp.json()["status"]
        assert status["name"] == "api"
        assert status["pid"] is not None
        assert "processes" not in resp.json()

    async def test_status_ghost_is_404(self, client, key_pair) -> None:
        resp = await manage(client, key_pair[0], action="status", projectName="ghost")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    async def test_stop(self, client, key_pair, fake_driver) -> None:
        fake_driver.add_process("api")
        resp = await manage(client, key_pair[0], action="stop", projectName="api")
        assert resp.status_code == 200
        assert resp.json()["processes"][0]["status"] == ProcessStatus.STOPPED.value

    async def test_invalid_action_is_400(self, client, key_pair) -> None:
        resp = await manage(client, key_pair[0], action="explode", projectName="api")
        assert resp.status_code == 400

    async def test_missing_key_is_401(self, client) -> None:
        resp = await manage(client, None, action="list")
        assert resp.status_code == 401

    async def test_supervisor_down_is_502(self, client, key_pair, fake_driver) -> None:
        fake_driver.connect_exception = SupervisorError("connect", "ECONNREFUSED")
        resp = await manage(client, key_pair[0], action="list")
        assert resp.status_code == 502
        assert resp.json()["error"]["code"] == "upstream_error"
