"""Interleaved rating submissions against a file-backed SQLite database.

Each session gets its own connection here, so a rating committed from inside
another submission's read-modify-write makes the outer commit fail its
version check and re-run against fresh state.
"""
from __future__ import annotations

import threading

import pytest  # type: ignore[import-not-found]

from katha_vault.db import app_session
from katha_vault.db.engine import init_engine_once, reset_for_tests
from katha_vault.db.models import Story, UserRating
from katha_vault.db.repositories import ratings_repo
from katha_vault.services import rating_service
from katha_vault.utils.identity import Identity

USER_A = Identity(user_id="user-a")
USER_B = Identity(user_id="user-b")


@pytest.fixture(autouse=True)
def file_db(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("KATHA_DB_PATH", str(tmp_path / "katha.db"))
    init_engine_once()
    with app_session() as session:
        session.add(Story(
            id="s1",
            slug="s1",
            title="Race",
            description="desc",
            genre="Thriller",
            tags=[],
            status="Published",
            author_id="author-1",
        ))
    yield
    reset_for_tests(drop=True)


def _interleave(monkeypatch, concurrent):
    """Run ``concurrent()`` right after the first entity read of the outer call."""
    real_load = ratings_repo.load_entity
    state = {"reads": 0, "fired": False}

    def load_then_interleave(session, entity_type, entity_id):
        entity = real_load(session, entity_type, entity_id)
        state["reads"] += 1
        if not state["fired"]:
            state["fired"] = True
            concurrent()
        return entity

    monkeypatch.setattr(ratings_repo, "load_entity", load_then_interleave)
    return state


def _story_aggregate():
    with app_session() as session:
        story = session.query(Story).filter(Story.id == "s1").one()
        return story.total_rating_sum, story.rating_count, story.version


def test_concurrent_distinct_raters_both_counted(monkeypatch):
    state = _interleave(
        monkeypatch,
        lambda: rating_service.submit_rating(USER_B, "story", "s1", "user-b", 2),
    )

    result = rating_service.submit_rating(USER_A, "story", "s1", "user-a", 4)

    assert (result.total_rating_sum, result.rating_count) == (6, 2)
    total, count, _version = _story_aggregate()
    assert (total, count) == (6, 2)
    # outer read, inner read, outer retry read
    assert state["reads"] == 3


def test_concurrent_same_user_last_commit_wins(monkeypatch):
    _interleave(
        monkeypatch,
        lambda: rating_service.submit_rating(USER_A, "story", "s1", "user-a", 5),
    )

    result = rating_service.submit_rating(USER_A, "story", "s1", "user-a", 3)

    assert result.previous_rating == 5
    assert _story_aggregate()[:2] == (3, 1)
    with app_session() as session:
        rows = session.query(UserRating).filter(UserRating.user_id == "user-a").all()
        assert [r.rating for r in rows] == [3]


def test_every_submission_bumps_entity_version():
    _, _, start = _story_aggregate()
    rating_service.submit_rating(USER_A, "story", "s1", "user-a", 4)
    rating_service.submit_rating(USER_A, "story", "s1", "user-a", 4)
    total, count, end = _story_aggregate()
    assert (total, count) == (4, 1)
    assert end == start + 2


@pytest.mark.parametrize("threads", [2, 8])
def test_threaded_raters_lose_no_updates(monkeypatch, threads):
    monkeypatch.setenv("KATHA_RATING_MAX_ATTEMPTS", "50")
    barrier = threading.Barrier(threads)
    errors = []
    values = {f"user-{n}": (n % 5) + 1 for n in range(threads)}

    def rate(uid, value):
        try:
            barrier.wait(timeout=10)
            rating_service.submit_rating(Identity(user_id=uid), "story", "s1", uid, value)
        except Exception as exc:  # surfaced through the assertion below
            errors.append(exc)

    workers = [threading.Thread(target=rate, args=item) for item in values.items()]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=60)

    assert errors == []
    total, count, _version = _story_aggregate()
    assert (total, count) == (sum(values.values()), threads)
    assert ratings_repo.count_ratings("story", "s1") == threads
