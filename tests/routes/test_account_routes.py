"""Tests for /api/profile/me and /api/settings."""
from __future__ import annotations

import io

import pytest  # type: ignore[import-not-found]
from flask import Flask

from katha_vault.db.engine import init_engine_once, reset_for_tests
from katha_vault.routes.account import register_account_blueprint


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
    app.config["SECRET_KEY"] = "account-secret"
    register_account_blueprint(app)
    with app.test_client() as test_client:
        with test_client.session_transaction() as sess:
            sess["user_id"] = "reader-1"
            sess["user_name"] = "Ravi"
            sess["email"] = "Ravi@Example.com"
        yield test_client


def test_profile_created_on_first_visit(client):
    resp = client.get("/api/profile/me")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["id"] == "reader-1"
    assert data["name"] == "Ravi"
    assert data["email"] == "ravi@example.com"


def test_profile_requires_login():
    app = Flask(__name__)
    app.config["SECRET_KEY"] = "account-secret"
    register_account_blueprint(app)
    with app.test_client() as anonymous:
        assert anonymous.get("/api/profile/me").status_code == 401


def test_patch_profile_name_and_bio(client):
    client.get("/api/profile/me")
    resp = client.patch("/api/profile/me", json={"display_name": "Ravi K", "bio": "Night reader"})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["name"] == "Ravi K"
    assert data["bio"] == "Night reader"

    resp = client.patch("/api/profile/me", json={"bio": "b" * 501})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "bio_too_long"


def test_avatar_upload_updates_profile(client):
    resp = client.post(
        "/api/profile/me/avatar",
        data={"file": (io.BytesIO(b"jpeg-bytes"), "me.jpg")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["avatar_url"].startswith("/uploads/avatars/reader-1/")
    assert data["profile"]["avatar_url"] == data["avatar_url"]


def test_settings_round_trip(client):
    assert client.get("/api/settings").get_json() == {"settings": {}}
    resp = client.put("/api/settings", json={"settings": {"theme": "sepia"}})
    assert resp.get_json()["settings"] == {"theme": "sepia"}
    client.put("/api/settings", json={"font": "serif"})
    assert client.get("/api/settings").get_json()["settings"] == {"theme": "sepia", "font": "serif"}
