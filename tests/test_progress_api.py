import pytest

from app.services.local_cache import PROGRESS_KEY, user_key
from models import get_progress_document, get_user_by_email


def signup(client, email="player@example.com", password="Secret123"):
    response = client.post(
        "/api/auth/signup",
        json={"email": email, "password": password, "confirm_password": password},
    )
    assert response.status_code == 201
    return response.get_json()["profile"]


def test_new_learner_starts_at_zero(client):
    signup(client)

    response = client.get("/api/progress")

    assert response.status_code == 200
    progress = response.get_json()["progress"]
    assert progress["level"] == 1
    assert progress["xp"] == 0
    assert progress["quiz"]["games_completed"] == 0
    assert progress["flashcards"]["known_words"] == []


def test_record_progress_updates_level_and_achievements(client, app_context):
    profile = signup(client)

    response = client.post(
        "/api/progress",
        json={"games_played": 1, "xp": 150, "words_learned": 10, "total_points": 30},
    )

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["progress"]["level"] == 2
    assert payload["progress"]["last_active"] is not None
    assert payload["unlocked"] == ["first_game", "ten_words"]

    stored = get_progress_document(profile["uid"])
    assert stored["xp"] == 150
    assert stored["achievements"]["ten_words"] is True

    again = client.post("/api/progress", json={"games_played": 1, "xp": 150, "words_learned": 10})
    assert again.get_json()["unlocked"] == []
    assert again.get_json()["progress"]["achievements"]["first_game"] is True


def test_activity_results_merge_and_show_in_profile(client):
    signup(client)
    client.post("/api/progress", json={"quiz": {"games_completed": 1, "best_score": 80}})
    client.post(
        "/api/progress",
        json={"quiz": {"games_completed": 2}, "flashcards": {"known_words": ["w1", "w2"]}},
    )

    progress = client.get("/api/progress").get_json()["progress"]
    assert progress["quiz"] == {
        "games_completed": 2,
        "correct_answers": 0,
        "total_questions": 0,
        "best_score": 80,
    }
    assert progress["flashcards"]["known_words"] == ["w1", "w2"]

    profile = client.get("/api/profile").get_json()["profile"]
    assert profile["progress"]["quiz"]["games_completed"] == 2


def test_signalled_achievement_unlocks(client):
    signup(client)

    response = client.post(
        "/api/progress",
        json={"correct_answers": 10, "total_answers": 10, "achievements": {"perfect_score": True}},
    )

    assert "perfect_score" in response.get_json()["unlocked"]


@pytest.mark.parametrize(
    "payload",
    [{"xp": "lots"}, {"words_learned": -2}, {"match": {"best_time": 1.5}}, {"flashcards": {"known_words": "w1"}}],
)
def test_invalid_progress_update_is_rejected(client, payload):
    signup(client)

    response = client.post("/api/progress", json=payload)

    assert response.status_code == 400
    assert "error" in response.get_json()


def test_progress_survives_remote_failure(client, app, monkeypatch):
    profile = signup(client)

    def refuse(user_id, snapshot):
        raise ConnectionError("database unavailable")

    monkeypatch.setattr("app.repositories.progress_repo.save_snapshot", refuse)

    response = client.post("/api/progress", json={"xp": 220, "games_played": 2})

    assert response.status_code == 200
    assert response.get_json()["progress"]["level"] == 3
    cached = app.extensions["vocaboplay"].progress_cache.get(user_key(PROGRESS_KEY, profile["uid"]))
    assert cached["xp"] == 220
    assert client.get("/api/progress").get_json()["progress"]["xp"] == 220


def test_login_hydrates_progress_from_store(client, app):
    profile = signup(client)
    client.post("/api/progress", json={"xp": 310, "streak": 3})
    client.post("/api/auth/logout")
    app.extensions["vocaboplay"].progress_cache.remove(user_key(PROGRESS_KEY, profile["uid"]))

    response = client.post(
        "/api/auth/login",
        json={"email": "player@example.com", "password": "Secret123"},
    )

    progress = response.get_json()["profile"]["progress"]
    assert progress["level"] == 4
    assert progress["achievements"]["three_day_streak"] is True


def test_progress_routes_are_for_students_only(client, admin_user):
    client.post("/api/admin/login", json={"email": "admin@example.com", "password": "AdminPass123"})

    assert client.get("/api/progress").status_code == 403
    assert client.post("/api/progress", json={"xp": 10}).status_code == 403


def test_profile_update_round_trip(client, app_context):
    profile = signup(client)

    response = client.put(
        "/api/profile",
        json={"display_name": "Player One", "bio": "Word nerd", "social_links": {"twitter": "@p1"}},
    )

    assert response.status_code == 200
    updated = response.get_json()["profile"]
    assert updated["display_name"] == "Player One"
    assert updated["social_links"]["twitter"] == "@p1"
    assert updated["social_links"]["instagram"] == ""
    assert get_user_by_email("player@example.com").display_name == "Player One"

    fetched = client.get("/api/profile").get_json()["profile"]
    assert fetched["bio"] == "Word nerd"
    assert fetched["uid"] == profile["uid"]


def test_profile_update_validation_and_remote_failure(client, monkeypatch):
    signup(client)

    invalid = client.put("/api/profile", json={"username": ""})
    assert invalid.status_code == 400

    def refuse(user_id, fields):
        raise ConnectionError("database unavailable")

    monkeypatch.setattr("app.repositories.users_repo.save_profile_fields", refuse)
    failed = client.put("/api/profile", json={"bio": "Unsaved"})

    assert failed.status_code == 502
    assert failed.get_json()["error"] == "Failed to save profile"
    assert failed.get_json()["profile"]["bio"] == "Unsaved"
