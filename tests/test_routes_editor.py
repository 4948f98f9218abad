"""Route tests for the editor and store APIs (app/routes_editor.py, app/routes_store.py)."""

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from app.main import app


@pytest.fixture
def client(monkeypatch, tmp_path):
    """TestClient with a fresh temp DB and no open editors."""
    monkeypatch.setenv("DB_PATH", str(tmp_path / "test.db"))
    monkeypatch.setenv("STORE_BASE_URL", "")
    from app.config import get_settings
    get_settings.cache_clear()

    from app.routes_editor import _editors, _last_seen
    _editors.clear()
    _last_seen.clear()
    with TestClient(app) as c:
        yield c
    _editors.clear()
    _last_seen.clear()


def _seed(client: TestClient) -> tuple[str, list[str]]:
    song_ids = []
    for i in (1, 2, 3):
        resp = client.post(
            "/store/song",
            json={
                "title": f"S{i}",
                "artist": "Artist",
                "year": 2000 + i,
                "owner_username": "alice",
                "owner_email": "alice@example.com",
            },
        )
        assert resp.status_code == 201
        song_ids.append(resp.json()["song"]["id"])
    resp = client.post(
        "/store/playlist",
        json={"name": "Road Trip", "owner_email": "alice@example.com", "song_ids": song_ids},
    )
    assert resp.status_code == 201
    return resp.json()["playlist"]["id"], song_ids


def _login_and_open(client: TestClient, playlist_id: str) -> dict:
    client.post("/editor/identity", json={"username": "alice", "email": "alice@example.com"})
    resp = client.post("/editor/open", json={"playlist_id": playlist_id})
    assert resp.status_code == 200
    return resp.json()


def _titles(status: dict) -> list[str]:
    return [s["title"] for s in status["songs"]]


def test_editor_requires_identity(client):
    resp = client.get("/editor/status")
    assert resp.status_code == 401


def test_status_without_open_playlist(client):
    client.post("/editor/identity", json={"username": "alice", "email": "alice@example.com"})
    resp = client.post("/editor/undo")
    assert resp.status_code == 404


def test_open_unknown_playlist_is_404(client):
    client.post("/editor/identity", json={"username": "alice", "email": "alice@example.com"})
    resp = client.post("/editor/open", json={"playlist_id": "nope"})
    assert resp.status_code == 404


def test_move_undo_redo(client):
    playlist_id, _ = _seed(client)
    status = _login_and_open(client, playlist_id)
    assert _titles(status) == ["S1", "S2", "S3"]
    assert status["has_undo"] is False

    status = client.post("/editor/move", json={"from_index": 2, "to_index": 0}).json()
    assert _titles(status) == ["S3", "S1", "S2"]
    assert status["has_undo"] is True

    status = client.post("/editor/undo").json()
    assert _titles(status) == ["S1", "S2", "S3"]
    assert status["has_redo"] is True

    status = client.post("/editor/redo").json()
    assert _titles(status) == ["S3", "S1", "S2"]

    stored = client.get(f"/store/playlist/{playlist_id}/songs").json()["songs"]
    assert [s["title"] for s in stored] == ["S3", "S1", "S2"]


def test_remove_and_undo(client):
    playlist_id, _ = _seed(client)
    _login_and_open(client, playlist_id)

    status = client.post("/editor/remove", json={"index": 1}).json()
    assert _titles(status) == ["S1", "S3"]

    status = client.post("/editor/undo").json()
    assert _titles(status) == ["S1", "S2", "S3"]


def test_duplicate_and_undo(client):
    playlist_id, song_ids = _seed(client)
    _login_and_open(client, playlist_id)

    status = client.post("/editor/duplicate", json={"index": 0}).json()
    assert _titles(status) == ["S1", "S1", "S2", "S3"]
    copy = status["songs"][1]
    assert copy["id"] not in song_ids
    assert copy["owner_email"] == "alice@example.com"

    status = client.post("/editor/undo").json()
    assert _titles(status) == ["S1", "S2", "S3"]
    resp = client.post(f"/store/song/{copy['id']}/copy", json={"owner_username": "x", "owner_email": "x@example.com"})
    assert resp.status_code == 404


def test_invalid_index_is_400(client):
    playlist_id, _ = _seed(client)
    _login_and_open(client, playlist_id)

    resp = client.post("/editor/remove", json={"index": 9})
    assert resp.status_code == 400
    assert client.get("/editor/status").json()["has_undo"] is False


def test_rename_conflict_is_409(client):
    playlist_id, _ = _seed(client)
    client.post("/store/playlist", json={"name": "Gym Mix", "owner_email": "alice@example.com"})
    _login_and_open(client, playlist_id)

    resp = client.post("/editor/rename", json={"name": "GYM mix"})
    assert resp.status_code == 409

    stored = client.get(f"/store/playlist/{playlist_id}").json()["playlist"]
    assert stored["name"] == "Road Trip"
    assert client.get("/editor/status").json()["has_undo"] is False


def test_rename_commits_directly(client):
    playlist_id, _ = _seed(client)
    _login_and_open(client, playlist_id)

    status = client.post("/editor/rename", json={"name": "Summer"}).json()
    assert status["playlist_name"] == "Summer"
    assert status["has_undo"] is False
    owned = client.get("/store/playlists", params={"ownerEmail": "alice@example.com"}).json()
    assert [p["name"] for p in owned["playlists"]] == ["Summer"]


def test_close_discards_editor(client):
    playlist_id, _ = _seed(client)
    _login_and_open(client, playlist_id)
    client.post("/editor/move", json={"from_index": 0, "to_index": 1})

    assert client.post("/editor/close").json() == {"status": "closed"}
    assert client.get("/editor/status").status_code == 404


def test_idle_editor_is_evicted(client):
    from app.routes_editor import _editors, _last_seen

    playlist_id, _ = _seed(client)
    _login_and_open(client, playlist_id)
    client.post("/editor/move", json={"from_index": 0, "to_index": 1})
    _last_seen["alice@example.com"] = time.time() - 7200

    assert client.get("/editor/status").status_code == 404
    assert "alice@example.com" not in _editors
    assert "alice@example.com" not in _last_seen


def test_active_editor_is_kept(client):
    from app.routes_editor import _editors

    playlist_id, _ = _seed(client)
    _login_and_open(client, playlist_id)

    assert client.get("/editor/status").status_code == 200
    assert client.get("/editor/status").status_code == 200
    assert "alice@example.com" in _editors


def test_reopen_same_playlist_then_undo_matches_store(client):
    playlist_id, _ = _seed(client)
    _login_and_open(client, playlist_id)
    client.post("/editor/move", json={"from_index": 0, "to_index": 1})

    status = client.post("/editor/open", json={"playlist_id": playlist_id}).json()
    assert status["has_undo"] is True

    status = client.post("/editor/undo").json()
    assert _titles(status) == ["S1", "S2", "S3"]
    stored = client.get(f"/store/playlist/{playlist_id}/songs").json()["songs"]
    assert [s["title"] for s in stored] == ["S1", "S2", "S3"]
