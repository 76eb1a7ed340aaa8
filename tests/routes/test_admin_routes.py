"""Tests for the /admin/api authoring endpoints."""
from __future__ import annotations

import io

import pytest  # type: ignore[import-not-found]
from flask import Flask

from katha_vault.db.engine import init_engine_once, reset_for_tests
from katha_vault.routes.admin import register_admin_blueprint
from katha_vault.services import users_service

STORY = {
    "title": "River Song",
    "genre": "Poetry",
    "description": "Verses from the delta.",
    "tags": ["river"],
    "status": "Published",
}


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("KATHA_DB_PATH", ":memory:")
    monkeypatch.setenv("KATHA_UPLOAD_DIR", str(tmp_path / "uploads"))
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def client():
    app = Flask(__name__)
    app.config["SECRET_KEY"] = "admin-secret"
    register_admin_blueprint(app)
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def admin_client(client):
    with client.session_transaction() as sess:
        sess["user_id"] = "admin-1"
        sess["user_name"] = "Editor"
        sess["is_admin"] = True
    return client


def test_non_admin_gets_403_and_anonymous_401(client):
    assert client.get("/admin/api/stories").status_code == 401
    with client.session_transaction() as sess:
        sess["user_id"] = "reader-1"
    resp = client.post("/admin/api/stories", json=STORY)
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "admin_required"


def test_profile_admin_flag_grants_access(client):
    users_service.grant_admin("reader-1")
    with client.session_transaction() as sess:
        sess["user_id"] = "reader-1"
    assert client.get("/admin/api/stories").status_code == 200


def test_story_and_chapter_crud(admin_client):
    resp = admin_client.post("/admin/api/stories", json=STORY)
    assert resp.status_code == 201
    story = resp.get_json()["story"]
    assert story["slug"] == "river-song"
    assert story["author_name"] == "Editor"

    resp = admin_client.put(f"/admin/api/stories/{story['id']}", json=dict(STORY, title="River Song II"))
    assert resp.status_code == 200
    assert resp.get_json()["story"]["title"] == "River Song II"

    resp = admin_client.post(f"/admin/api/stories/{story['id']}/chapters", json={"title": "Source", "content": "spring"})
    assert resp.status_code == 201
    chapter = resp.get_json()["chapter"]
    assert chapter["order"] == 1

    resp = admin_client.put(
        f"/admin/api/stories/{story['id']}/chapters/{chapter['id']}",
        json={"title": "Source", "content": "a mountain spring"},
    )
    assert resp.get_json()["chapter"]["word_count"] == 3

    listing = admin_client.get("/admin/api/stories").get_json()
    assert listing["count"] == 1
    assert [c["title"] for c in listing["stories"][0]["chapters"]] == ["Source"]

    resp = admin_client.delete(f"/admin/api/stories/{story['id']}/chapters/{chapter['id']}")
    assert resp.get_json()["removed"]["chapters"] == 1

    resp = admin_client.delete(f"/admin/api/stories/{story['id']}")
    assert resp.status_code == 200
    assert admin_client.delete(f"/admin/api/stories/{story['id']}").status_code == 404


def test_story_validation_error(admin_client):
    resp = admin_client.post("/admin/api/stories", json=dict(STORY, title=""))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "title_required"


def test_cover_upload(admin_client):
    resp = admin_client.post(
        "/admin/api/covers",
        data={"file": (io.BytesIO(b"gif-bytes"), "cover.gif")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    assert resp.get_json()["url"].startswith("/uploads/covers/")

    resp = admin_client.post("/admin/api/covers", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "file_required"


def test_users_and_admin_role(admin_client):
    users_service.create_user_profile("reader-1", "ravi@example.com", "Ravi")
    resp = admin_client.post("/admin/api/users/reader-1/admin", json={"admin": True})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["is_admin"] is True

    users = admin_client.get("/admin/api/users").get_json()["users"]
    assert [u["id"] for u in users] == ["reader-1"]

    resp = admin_client.post("/admin/api/users/admin-1/admin", json={"admin": False})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "cannot_revoke_own_admin"

    assert admin_client.post("/admin/api/users/ghost/admin", json={}).status_code == 404


def test_site_settings(admin_client):
    assert admin_client.get("/admin/api/settings").get_json()["site_title"] == "Katha Vault"
    resp = admin_client.put("/admin/api/settings", json={"site_title": "Katha Vault Beta"})
    assert resp.get_json()["settings"]["site_title"] == "Katha Vault Beta"
    assert admin_client.get("/admin/api/settings").get_json()["site_title"] == "Katha Vault Beta"
