"""API tests for POST /v1/deployments.

Uses httpx ASGITransport against a fresh app; settings are overridden to
point at per-test temp directories.
"""

from __future__ import annotations

import io
import zipfile

import httpx
import pytest

from wharf.config import Settings, get_settings
from wharf.main import create_app


def zip_bytes(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
async def client(settings: Settings):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class TestDeploymentsApi:
    async def test_deploy_zip(self, client, settings, key_pair) -> None:
        resp = await client.post(
            "/v1/deployments",
            files={
                "file": ("site.zip", zip_bytes({"index.js": "1", "lib/util.js": "2"}), "application/zip"),
                "privateKey": ("id_rsa", key_pair[0]),
            },
            data={"name": "alice", "path": "deployments/alice/site1"},
        )

        assert resp.status_code == 200, resp.text
        body = resp.json()
        target = settings.storage.upload_path / "deployments/alice/site1"
        assert body["status"] == "success"
        assert body["message"] == "Files extracted successfully"
        assert body["file_path"] == str(target)
        assert body["files_extracted"] == 2
        assert (target / "lib/util.js").read_text() == "2"
        assert list(settings.storage.temp_path.iterdir()) == []

    async def test_plain_file(self, client, settings, key_pair) -> None:
        resp = await client.post(
            "/v1/deployments",
            files={"file": ("app.jar", b"jar"), "privateKey": ("id_rsa", key_pair[0])},
            data={"name": "alice", "path": "deployments/alice"},
        )

        assert resp.status_code == 200, resp.text
        assert resp.json()["message"] == "File uploaded successfully"
        assert (settings.storage.upload_path / "deployments/alice/app.jar").read_bytes() == b"jar"

    async def test_missing_key_is_401(self, client, settings) -> None:
        resp = await client.post(
            "/v1/deployments",
            files={"file": ("site.zip", zip_bytes({"a": "b"}))},
            data={"name": "alice", "path": "deployments/alice"},
        )

        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"
        assert resp.json()["error"]["message"] == "Authentication failed"
        assert list(settings.storage.temp_path.iterdir()) == []

    async def test_wrong_key_is_401(self, client, other_key_pair) -> None:
        resp = await client.post(
            "/v1/deployments",
            files={"file": ("a.txt", b"a"), "privateKey": ("id_rsa", other_key_pair[0])},
            data={"name": "alice", "path": "deployments/alice"},
        )
        assert resp.status_code == 401

    async def test_forbidden_is_403(self, client, settings, key_pair) -> None:
        resp = await client.post(
            "/v1/deployments",
            files={"file": ("a.txt", b"a"), "privateKey": ("id_rsa", key_pair[0])},
            data={"name": "bob", "path": "deployments/alice/site1"},
        )

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"
        assert not (settings.storage.upload_path / "deployments/alice").exists()

    async def test_invalid_path_is_400(self, client, key_pair) -> None:
        resp = await client.post(
            "/v1/deployments",
            files={"file": ("a.txt", b"a"), "privateKey": ("id_rsa", key_pair[0])},
            data={"name": "alice", "path": "deployments/alice/../bob"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_path"

    async def test_missing_file_is_400(self, client, key_pair) -> None:
        resp = await client.post(
            "/v1/deployments",
            files={"privateKey": ("id_rsa", key_pair[0])},
            data={"name": "alice", "path": "deployments/alice"},
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "Missing required files"

    async def test_corrupt_zip_is_500(self, client, key_pair) -> None:
        resp = await client.post(
            "/v1/deployments",
            files={"file": ("site.zip", b"garbage"), "privateKey": ("id_rsa", key_pair[0])},
            data={"name": "alice", "path": "deployments/alice"},
        )
        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "unzip_failed"

    async def test_request_id_echoed(self, client) -> None:
        resp = await client.post(
            "/v1/deployments",
            data={"name": "alice"},
            headers={"X-Request-Id": "req-123"},
        )
        assert resp.headers["X-Request-Id"] == "req-123"
        assert resp.json()["error"]["request_id"] == "req-123"


class TestHealth:
    async def test_health(self, client) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
