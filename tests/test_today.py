"""
Tests for the today endpoints: GET /api/today and POST /api/today/complete.
"""
from datetime import timedelta
from types import SimpleNamespace

import pytest
from pymongo.errors import PyMongoError

import kindness
from kindness import StaleProfile, _record_streak
from conftest import TODAY, USER_ID

YESTERDAY = TODAY - timedelta(days=1)


def _seed_profile(db, current, best, last):
    db["profile"].insert_one({
        "_id": USER_ID,
        "current_streak": current,
        "best_streak": best,
        "last_completion_date": last.isoformat() if last else None,
    })


def test_no_act_scheduled(client):
    response = client.get("/api/today")
    assert response.status_code == 404
    assert response.json()["detail"] == "No act scheduled for today"


def test_complete_without_act_is_not_found(client, db):
    response = client.post("/api/today/complete")
    assert response.status_code == 404
    assert response.json()["detail"] == "No act scheduled for today"
    assert db["completion"].count_documents({}) == 0


def test_requires_user_header(client, add_act):
    add_act(TODAY)
    response = client.get("/api/today", headers={"X-User-Id": ""})
    assert response.status_code == 401
    assert response.json()["detail"] == "Not signed in"


def test_today_act_not_completed(client, add_act):
    act_id = add_act(TODAY, "Compliment a stranger", "Say something kind")
    add_act(YESTERDAY, "Call a friend")

    response = client.get("/api/today")

    assert response.status_code == 200
    data = response.json()
    assert data["completed"] is False
    assert data["act"] == {
        "id": act_id,
        "title": "Compliment a stranger",
        "description": "Say something kind",
        "date": TODAY.isoformat(),
    }


def test_first_completion(client, db, add_act):
    act_id = add_act(TODAY)

    response = client.post("/api/today/complete")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["celebrate"] is True
    assert data["streak"]["current_streak"] == 1
    assert data["streak"]["best_streak"] == 1
    assert data["streak"]["last_completion_date"] == TODAY.isoformat()

    completion = db["completion"].find_one({"user_id": USER_ID})
    assert completion["act_id"] == act_id
    assert completion["date"] == TODAY.isoformat()
    assert client.get("/api/today").json()["completed"] is True


def test_consecutive_day_increments_streak(client, db, add_act):
    add_act(TODAY)
    _seed_profile(db, current=3, best=3, last=YESTERDAY)

    data = client.post("/api/today/complete").json()

    assert data["streak"]["current_streak"] == 4
    assert data["streak"]["best_streak"] == 4
    profile = db["profile"].find_one({"_id": USER_ID})
    assert profile["current_streak"] == 4
    assert profile["last_completion_date"] == TODAY.isoformat()


def test_consecutive_day_keeps_higher_best(client, db, add_act):
    add_act(TODAY)
    _seed_profile(db, current=3, best=9, last=YESTERDAY)

    data = client.post("/api/today/complete").json()

    assert data["streak"]["current_streak"] == 4
    assert data["streak"]["best_streak"] == 9


def test_gap_resets_streak(client, db, add_act):
    add_act(TODAY)
    _seed_profile(db, current=5, best=5, last=TODAY - timedelta(days=3))

    data = client.post("/api/today/complete").json()

    assert data["streak"]["current_streak"] == 1
    assert data["streak"]["best_streak"] == 5


def test_double_submission_counts_once(client, db, add_act):
    add_act(TODAY)
    _seed_profile(db, current=2, best=2, last=YESTERDAY)

    first = client.post("/api/today/complete").json()
    second = client.post("/api/today/complete").json()

    assert first["status"] == "completed"
    assert second["status"] == "already_completed"
    assert second["celebrate"] is False
    assert second["streak"]["current_streak"] == 3
    assert db["completion"].count_documents({"user_id": USER_ID}) == 1
    assert db["profile"].find_one({"_id": USER_ID})["current_streak"] == 3


def test_streak_failure_removes_completion(client, db, add_act, monkeypatch):
    add_act(TODAY)

    def broken(*args, **kwargs):
        raise PyMongoError("write concern error")

    monkeypatch.setattr(kindness, "_record_streak", broken)

    response = client.post("/api/today/complete")

    assert response.status_code == 500
    assert response.json()["detail"] == "Couldn't mark as complete. Please try again."
    assert db["completion"].count_documents({}) == 0
    assert client.get("/api/today").json()["completed"] is False


def test_fetch_failure_is_reported(client, monkeypatch, add_act):
    add_act(TODAY)

    def broken(*args, **kwargs):
        raise PyMongoError("connection refused")

    monkeypatch.setattr(kindness, "find_act", broken)

    response = client.get("/api/today")
    assert response.status_code == 503
    assert response.json()["detail"] == "Couldn't load today's act"


class _RacingProfiles:
    """Profile collection whose document changes before every write."""

    def __init__(self):
        self.updates = 0

    def find_one(self, flt):
        return {"_id": USER_ID, "current_streak": 2, "best_streak": 2,
                "last_completion_date": YESTERDAY.isoformat()}

    def update_one(self, flt, update):
        self.updates += 1
        return SimpleNamespace(matched_count=0)


def test_record_streak_gives_up_after_repeated_races():
    profiles = _RacingProfiles()

    with pytest.raises(StaleProfile):
        _record_streak({"profile": profiles}, USER_ID, TODAY)

    assert profiles.updates == kindness.PROFILE_WRITE_ATTEMPTS


def test_completion_insert_failure_writes_no_profile(client, db, add_act, monkeypatch):
    add_act(TODAY)

    def broken(*args, **kwargs):
        raise PyMongoError("not primary")

    monkeypatch.setattr(kindness, "create_document", broken)

    response = client.post("/api/today/complete")

    assert response.status_code == 500
    assert response.json()["detail"] == "Couldn't mark as complete. Please try again."
    assert db["profile"].count_documents({}) == 0
    assert db["completion"].count_documents({}) == 0


def test_complete_when_database_is_down(down_client):
    response = down_client.post("/api/today/complete")
    assert response.status_code == 500
    assert response.json()["detail"] == "Couldn't mark as complete. Please try again."
