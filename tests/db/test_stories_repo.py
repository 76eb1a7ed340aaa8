"""Tests for stories_repo listing, counters and cascade deletes."""
from __future__ import annotations

import pytest  # type: ignore[import-not-found]

from katha_vault.db import app_session
from katha_vault.db.engine import init_engine_once, reset_for_tests
from katha_vault.db.models import Chapter, Comment, LibraryEntry, Story, UserRating
from katha_vault.db.repositories import stories_repo


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("KATHA_DB_PATH", ":memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def _add_story(story_id: str, *, status: str = "Published", genre: str = "Fantasy", **extra) -> None:
    with app_session() as session:
        session.add(Story(
            id=story_id,
            slug=story_id,
            title=extra.pop("title", story_id.title()),
            description="desc",
            genre=genre,
            tags=[],
            status=status,
            author_id="author-1",
            author_name=extra.pop("author_name", "Meera"),
            **extra,
        ))


def test_list_public_stories_filters_status_and_genre():
    _add_story("alpha")
    _add_story("draft", status="Draft")
    _add_story("gamma", genre="Romance", status="Ongoing")

    public = {s.id for s in stories_repo.list_public_stories()}
    assert public == {"alpha", "gamma"}

    fantasy = [s.id for s in stories_repo.list_public_stories(genres=["Fantasy"])]
    assert fantasy == ["alpha"]


def test_list_public_stories_sort_by_rating_and_search():
    _add_story("low", total_rating_sum=4, rating_count=2)
    _add_story("high", total_rating_sum=9, rating_count=2)
    _add_story("unrated", author_name="Kabir")

    by_rating = [s.id for s in stories_repo.list_public_stories(sort=stories_repo.SORT_RATING)]
    assert by_rating == ["high", "low", "unrated"]

    found = [s.id for s in stories_repo.list_public_stories(search="kabir")]
    assert found == ["unrated"]


def test_increment_reads_is_atomic_counter():
    _add_story("alpha")
    assert stories_repo.increment_reads("alpha") is True
    assert stories_repo.increment_reads("alpha") is True
    assert stories_repo.increment_reads("missing") is False
    assert stories_repo.get_story("alpha").reads == 2


def test_refresh_author_fields_touches_only_author_stories():
    _add_story("alpha")
    _add_story("other", author_name="Someone")
    with app_session() as session:
        session.query(Story).filter(Story.id == "other").update({Story.author_id: "author-2"})

    touched = stories_repo.refresh_author_fields("author-1", {"name": "Meera Rao"})
    assert touched == 1
    assert stories_repo.get_story("alpha").author_name == "Meera Rao"
    assert stories_repo.get_story("other").author_name == "Someone"


def test_delete_story_cascade_removes_children():
    _add_story("alpha")
    _add_story("keep")
    with app_session() as session:
        session.add(Chapter(id="ch-1", story_id="alpha", title="One", content="x", order=1))
        session.add(Chapter(id="ch-keep", story_id="keep", title="One", content="x", order=1))
        session.add(UserRating(entity_type="story", entity_id="alpha", user_id="u1", rating=4))
        session.add(UserRating(entity_type="chapter", entity_id="ch-1", user_id="u1", rating=5))
        session.add(UserRating(entity_type="story", entity_id="keep", user_id="u1", rating=3))
        session.add(Comment(entity_type="chapter", entity_id="ch-1", story_id="alpha", user_id="u1", text="hi"))
        session.add(LibraryEntry(user_id="u1", story_id="alpha"))

    with app_session() as session:
        story = stories_repo.load_story(session, "alpha")
        removed = stories_repo.delete_story_cascade(session, story)

    assert removed == {"chapters": 1, "ratings": 2, "comments": 1, "library_entries": 1}
    with app_session() as session:
        assert session.query(Story).count() == 1
        assert session.query(Chapter).count() == 1
        assert session.query(UserRating).count() == 1
        assert session.query(Comment).count() == 0
        assert session.query(LibraryEntry).count() == 0
