"""Tests for the FastAPI server."""

import concurrent.futures
import json
import logging

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from openspec_viewer.core import FileChangeEvent
from openspec_viewer.server import _log_failed_refresh, create_app


@pytest_asyncio.fixture
async def client(openspec_dir):
    """An HTTP client against an app whose snapshot is already loaded."""
    app = create_app(openspec_dir, watch=False)
    await app.state.store.refresh()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_data_not_loaded(openspec_dir):
    app = create_app(openspec_dir, watch=False)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/api/project")
        assert resp.status_code == 503
        resp = await client.get("/api/status")
        assert resp.json()["loaded"] is False


@pytest.mark.asyncio
async def test_get_project(client):
    resp = await client.get("/api/project")
    assert resp.status_code == 200
    project = resp.json()["project"]
    assert project["name"] == "My Cool App"
    assert project["description"].startswith("A tool for tracking")


@pytest.mark.asyncio
async def test_get_specs(client):
    resp = await client.get("/api/specs")
    assert resp.status_code == 200
    specs = resp.json()["specs"]
    assert [s["name"] for s in specs] == ["auth", "billing"]
    assert [s["hasDesign"] for s in specs] == [True, False]


@pytest.mark.asyncio
async def test_get_spec(client):
    resp = await client.get("/api/specs/auth")
    assert resp.status_code == 200
    spec = resp.json()["spec"]
    assert spec["name"] == "auth"
    assert "### Requirement: Login" in spec["specContent"]
    assert spec["designContent"].startswith("# Auth design")


@pytest.mark.asyncio
async def test_get_spec_not_found(client):
    resp = await client.get("/api/specs/nope")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Spec nope not found"


@pytest.mark.asyncio
async def test_get_changes(client):
    resp = await client.get("/api/changes")
    assert resp.status_code == 200
    data = resp.json()
    assert [c["name"] for c in data["active"]] == ["add-2fa", "add-search"]
    first = data["active"][0]
    assert first["taskProgress"] == {"done": 2, "total": 5, "percentage": 40}
    assert first["specDeltaCount"] == 1
    assert first["hasProposal"] is True
    assert first["hasDesign"] is True
    assert data["archived"][0]["archivedDate"] == "2024-03-15"


@pytest.mark.asyncio
async def test_get_change(client):
    resp = await client.get("/api/changes/add-2fa")
    assert resp.status_code == 200
    change = resp.json()["change"]
    assert change["isArchived"] is False
    assert [g["name"] for g in change["fileGroups"]] == ["Proposal", "Tasks", "Design", "Mockups", "Other"]
    assert change["specDeltas"][0]["operations"][0] == {
        "type": "added",
        "name": "Two-Factor Login",
        "content": change["specDeltas"][0]["operations"][0]["content"],
        "startLine": 2,
        "endLine": 8,
    }
    html = next(f for f in change["files"] if f["type"] == "html")
    assert "content" not in html
    assert change["tasks"][1]["subtasks"][0]["completed"] is True


@pytest.mark.asyncio
async def test_get_archived_change(client):
    resp = await client.get("/api/changes/add-auth")
    assert resp.status_code == 200
    assert resp.json()["change"]["name"] == "2024-03-15-add-auth"


@pytest.mark.asyncio
async def test_get_change_not_found(client):
    resp = await client.get("/api/changes/nope")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_change_file(client):
    resp = await client.get("/api/changes/add-2fa/files/mockups/login.html")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert resp.text == "<h1>Login</h1>"

    resp = await client.get("/api/changes/add-2fa/files/proposal.md")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/markdown")


@pytest.mark.asyncio
async def test_get_change_file_in_legacy_encoding(client, openspec_dir):
    raw = "<p>café</p>".encode("latin-1")
    (openspec_dir / "changes" / "add-2fa" / "legacy.html").write_bytes(raw)
    resp = await client.get("/api/changes/add-2fa/files/legacy.html")
    assert resp.status_code == 200
    assert resp.content == raw


@pytest.mark.asyncio
async def test_get_change_file_with_reserved_characters(client, openspec_dir):
    folder = openspec_dir / "changes" / "add-2fa" / "mock ups"
    folder.mkdir()
    (folder / "step #1?.html").write_text("<p>step</p>", encoding="utf-8")
    resp = await client.get("/api/changes/add-2fa/files/mock%20ups/step%20%231%3F.html")
    assert resp.status_code == 200
    assert resp.text == "<p>step</p>"


@pytest.mark.asyncio
async def test_index_encodes_file_links(client):
    resp = await client.get("/")
    assert 'path.split("/").map(encodeURIComponent)' in resp.text


@pytest.mark.asyncio
async def test_get_change_file_errors(client):
    resp = await client.get("/api/changes/add-2fa/files/missing.md")
    assert resp.status_code == 404
    resp = await client.get("/api/changes/add-2fa/files/notes.txt")
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_get_stats(client):
    resp = await client.get("/api/stats")
    assert resp.status_code == 200
    stats = resp.json()["stats"]
    assert stats["totalSpecs"] == 2
    assert stats["activeChanges"] == 2
    assert stats["archivedChanges"] == 3
    assert stats["overallTaskProgress"] == {"done": 4, "total": 7, "percentage": 57}


@pytest.mark.asyncio
async def test_search(client):
    resp = await client.get("/api/search", params={"q": "two-factor"})
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert len(results) == 1
    assert results[0]["type"] == "change"
    assert results[0]["name"] == "add-2fa"
    assert results[0]["matchLine"] == 1


@pytest.mark.asyncio
async def test_search_short_query(client):
    resp = await client.get("/api/search", params={"q": "a"})
    assert resp.json() == {"results": []}


@pytest.mark.asyncio
async def test_status(client):
    resp = await client.get("/api/status")
    assert resp.json() == {"loaded": True, "errors": [], "warnings": []}


@pytest.mark.asyncio
async def test_index_page(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert "openspec-viewer" in resp.text


@pytest.mark.asyncio
async def test_client_side_routes_serve_index(client):
    resp = await client.get("/changes/add-2fa")
    assert resp.status_code == 200
    assert "openspec-viewer" in resp.text

    resp = await client.get("/api/unknown")
    assert resp.status_code == 404


def test_websocket_receives_refreshes(openspec_dir):
    app = create_app(openspec_dir, watch=False)
    with TestClient(app) as test_client:
        with test_client.websocket_connect("/ws") as ws:
            assert ws.receive_json() == {"type": "data:refresh", "entity": "all"}

            event = FileChangeEvent(
                type="change",
                path=str(openspec_dir / "specs" / "auth" / "spec.md"),
                affected_entity="specs",
                entity_id="auth",
            )
            test_client.portal.call(app.state.store.handle_event, event)

            message = json.loads(ws.receive_text())
            assert message["type"] == "data:refresh"
            assert message["entity"] == "specs"
            assert message["entityId"] == "auth"
            assert [s["name"] for s in message["data"]["specs"]] == ["auth", "billing"]
            assert message["data"]["stats"]["totalSpecs"] == 2


def test_lifespan_loads_snapshot(openspec_dir):
    app = create_app(openspec_dir, watch=False)
    with TestClient(app) as test_client:
        resp = test_client.get("/api/project")
        assert resp.status_code == 200
        assert app.state.watcher is None


class TestLogFailedRefresh:

    def test_logs_exception(self, caplog):
        future = concurrent.futures.Future()
        future.set_exception(RuntimeError("disk vanished"))
        with caplog.at_level(logging.ERROR, logger="openspec_viewer.server"):
            _log_failed_refresh(future)
        assert "Refresh after file change failed" in caplog.text
        assert "disk vanished" in caplog.text

    def test_quiet_on_success(self, caplog):
        future = concurrent.futures.Future()
        future.set_result(None)
        with caplog.at_level(logging.ERROR, logger="openspec_viewer.server"):
            _log_failed_refresh(future)
        assert caplog.records == []
