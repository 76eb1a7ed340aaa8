"""Tests for reader_service story pages, comments and library."""
from __future__ import annotations

import pytest  # type: ignore[import-not-found]

from katha_vault.db import app_session
from katha_vault.db.engine import init_engine_once, reset_for_tests
from katha_vault.db.models import Chapter, Comment, LibraryEntry, Story
from katha_vault.db.repositories import library_repo
from katha_vault.services import rating_service, reader_service, stories_service
from katha_vault.services.errors import AuthorizationError, NotFoundError, ValidationError
from katha_vault.utils.identity import ANONYMOUS, Identity

ADMIN = Identity(user_id="admin-1", display_name="Editor", avatar_url="/a.png", is_admin=True)
READER = Identity(user_id="reader-1", display_name="Ravi", avatar_url="/r.png")


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("KATHA_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def story():
    saved = stories_service.save_story(ADMIN, None, {
        "title": "Moonlit Ghats",
        "genre": "Fantasy",
        "description": "River spirits and a lost map.",
        "tags": ["river", "magic"],
        "status": "Ongoing",
    })
    for title in ("Arrival", "The Map", "Crossing"):
        stories_service.save_chapter(ADMIN, saved["id"], None, {"title": title, "content": f"{title} words here"})
    return saved


def test_fetch_story_details_includes_chapters_and_reader_state(story):
    rating_service.submit_rating(READER, "story", story["id"], "reader-1", 4)
    reader_service.toggle_library_status(READER, "reader-1", story["id"], True)

    details = reader_service.fetch_story_details("moonlit-ghats", "reader-1")

    assert details["id"] == story["id"]
    assert details["chapters"] == 3
    assert [c["order"] for c in details["chapters_data"]] == [1, 2, 3]
    assert details["chapters_data"][1]["title"] == "The Map"
    assert details["chapters_data"][0]["word_count"] == 3
    assert details["author"] == {"id": "admin-1", "name": "Editor", "avatar_url": "/a.png"}
    assert details["average_rating"] == 4.0
    assert details["total_ratings"] == 1
    assert details["user_rating"] == 4
    assert details["is_in_library"] is True


def test_fetch_story_details_anonymous_defaults(story):
    details = reader_service.fetch_story_details("moonlit-ghats")
    assert details["user_rating"] == 0
    assert details["is_in_library"] is False
    assert details["average_rating"] is None
    assert details["comments"] == []


def test_fetch_story_details_missing_slug():
    with pytest.raises(NotFoundError) as excinfo:
        reader_service.fetch_story_details("nope")
    assert str(excinfo.value) == "story_missing"


def test_fetch_chapter_details_navigation(story):
    first = reader_service.fetch_chapter_details("moonlit-ghats", 1)
    assert first["title"] == "Arrival"
    assert first["previous_chapter"] is None
    assert first["next_chapter"] == 2
    assert first["total_chapters"] == 3

    last = reader_service.fetch_chapter_details("moonlit-ghats", 3, "reader-1")
    assert last["previous_chapter"] == 2
    assert last["next_chapter"] is None
    assert last["story_title"] == "Moonlit Ghats"

    with pytest.raises(NotFoundError) as excinfo:
        reader_service.fetch_chapter_details("moonlit-ghats", 9)
    assert str(excinfo.value) == "chapter_missing"


def test_submit_comment_denormalizes_commenter_and_counts(story):
    comment = reader_service.submit_comment(READER, "story", story["id"], "reader-1", "  Loved it  ")
    assert comment["text"] == "Loved it"
    assert comment["user_name"] == "Ravi"
    assert comment["user_avatar"] == "/r.png"

    nameless = Identity(user_id="reader-2")
    reader_service.submit_comment(nameless, "story", story["id"], "reader-2", "Second")

    with app_session() as session:
        assert session.query(Story).filter(Story.id == story["id"]).one().comment_count == 2

    details = reader_service.fetch_story_details("moonlit-ghats")
    assert [c["text"] for c in details["comments"]] == ["Second", "Loved it"]
    assert details["comments"][0]["user_name"] == "Anonymous"


def test_submit_chapter_comment_records_parent_story(story):
    chapter = reader_service.fetch_chapter_details("moonlit-ghats", 2)
    reader_service.submit_comment(
        READER, "chapter", chapter["chapter_id"], "reader-1", "Cliffhanger!", story_id=story["id"]
    )
    with app_session() as session:
        row = session.query(Comment).one()
        assert row.story_id == story["id"]
        assert session.query(Chapter).filter(Chapter.id == chapter["chapter_id"]).one().comment_count == 1
    again = reader_service.fetch_chapter_details("moonlit-ghats", 2)
    assert [c["text"] for c in again["comments"]] == ["Cliffhanger!"]


@pytest.mark.parametrize("text, code", [("", "comment_required"), ("   ", "comment_required"), ("x" * 1001, "comment_too_long")])
def test_submit_comment_validation(story, text, code):
    with pytest.raises(ValidationError) as excinfo:
        reader_service.submit_comment(READER, "story", story["id"], "reader-1", text)
    assert str(excinfo.value) == code


def test_submit_comment_requires_matching_caller(story):
    with pytest.raises(AuthorizationError):
        reader_service.submit_comment(READER, "story", story["id"], "someone-else", "hi")
    with pytest.raises(AuthorizationError):
        reader_service.submit_comment(ANONYMOUS, "story", story["id"], "reader-1", "hi")


def test_submit_comment_missing_entity():
    with pytest.raises(NotFoundError):
        reader_service.submit_comment(READER, "chapter", "missing", "reader-1", "hi")


def test_library_toggle_is_idempotent_and_searchable(story):
    other = stories_service.save_story(ADMIN, None, {
        "title": "Desert Letters",
        "genre": "Drama",
        "description": "Letters across the sand.",
        "status": "Published",
    })
    reader_service.toggle_library_status(READER, "reader-1", story["id"], True)
    reader_service.toggle_library_status(READER, "reader-1", story["id"], True)
    reader_service.toggle_library_status(READER, "reader-1", other["id"], True)

    entries = reader_service.list_library(READER, "reader-1")
    assert len(entries) == 2
    assert {e["slug"] for e in entries} == {"moonlit-ghats", "desert-letters"}

    assert [e["title"] for e in reader_service.list_library(READER, "reader-1", "desert")] == ["Desert Letters"]

    removed = reader_service.toggle_library_status(READER, "reader-1", story["id"], False)
    assert removed["in_library"] is False
    reader_service.toggle_library_status(READER, "reader-1", story["id"], False)
    assert [e["story_id"] for e in reader_service.list_library(READER, "reader-1")] == [other["id"]]


def test_library_add_survives_concurrent_insert(story, monkeypatch):
    reader_service.toggle_library_status(READER, "reader-1", story["id"], True)

    real_find = library_repo._find_entry
    misses = {"left": 1}

    def find_missing_once(session, user_id, story_id):
        # first lookup behaves as if the other request had not committed yet
        if misses["left"]:
            misses["left"] -= 1
            return None
        return real_find(session, user_id, story_id)

    monkeypatch.setattr(library_repo, "_find_entry", find_missing_once)
    result = reader_service.toggle_library_status(READER, "reader-1", story["id"], True)

    assert result["in_library"] is True
    assert result["entry"]["story_id"] == story["id"]
    assert misses["left"] == 0
    with app_session() as session:
        assert session.query(LibraryEntry).count() == 1


def test_library_add_missing_story():
    with pytest.raises(NotFoundError):
        reader_service.toggle_library_status(READER, "reader-1", "missing", True)


def test_browse_stories_only_public_and_sorted(story):
    stories_service.save_story(ADMIN, None, {
        "title": "Hidden Draft",
        "genre": "Fantasy",
        "description": "Not yet.",
    })
    trending = stories_service.save_story(ADMIN, None, {
        "title": "Busy Bazaar",
        "genre": "Comedy",
        "description": "Crowds.",
        "status": "Completed",
    })
    for _ in range(3):
        reader_service.record_read(trending["id"])

    titles = [s["title"] for s in reader_service.browse_stories(sort="trending")]
    assert titles == ["Busy Bazaar", "Moonlit Ghats"]
    assert [s["title"] for s in reader_service.browse_stories(genre="Fantasy")] == ["Moonlit Ghats"]
    assert [s["title"] for s in reader_service.browse_stories(search="bazaar")] == ["Busy Bazaar"]

    with pytest.raises(ValidationError):
        reader_service.browse_stories(sort="random")
