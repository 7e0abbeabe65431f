"""
Kindness service: today's act, completing it, streak counters and history.

Route handlers in main.py stay thin; everything that touches collections lives
here and raises KindifyError subclasses that main.py turns into responses.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from database import create_document
from schemas import Act, Completion, Profile
from streak import next_streak, streak_message

logger = logging.getLogger(__name__)

PROFILE_WRITE_ATTEMPTS = 3


class KindifyError(Exception):
    status_code = 500
    detail = "Something went wrong"

    def __init__(self, detail: Optional[str] = None):
        if detail:
            self.detail = detail
        super().__init__(self.detail)


class NoActScheduled(KindifyError):
    status_code = 404
    detail = "No act scheduled for today"


class ActExists(KindifyError):
    status_code = 409
    detail = "An act is already scheduled for that date"


class FetchFailed(KindifyError):
    status_code = 503
    detail = "Couldn't load data"


class ActionFailed(KindifyError):
    status_code = 500
    detail = "Couldn't mark as complete. Please try again."


class StaleProfile(Exception):
    """The profile kept changing underneath a streak update."""


# -----------------------------
# Serialization
# -----------------------------

def _serialize_doc(doc: dict):
    if not doc:
        return None
    out = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = str(v)
        elif k in ("created_at", "updated_at"):
            continue
        elif isinstance(v, (datetime, date)):
            out[k] = v.isoformat()
        else:
            out[k] = v
    return out


def _streak_out(profile: Optional[dict]) -> dict:
    profile = profile or {}
    current = profile.get("current_streak") or 0
    return {
        "current_streak": current,
        "best_streak": profile.get("best_streak") or 0,
        "last_completion_date": profile.get("last_completion_date"),
        "message": streak_message(current),
    }


# -----------------------------
# Acts
# -----------------------------

def find_act(db, day: date) -> Optional[dict]:
    return _serialize_doc(db["act"].find_one({"date": day.isoformat()}))


def create_act(db, title: str, day: date, description: Optional[str] = None) -> str:
    act = Act(title=title, description=description, date=day.isoformat())
    try:
        return create_document("act", act, database=db)
    except DuplicateKeyError:
        raise ActExists()
    except PyMongoError:
        logger.exception("Error creating act for %s", day)
        raise ActionFailed("Couldn't create act")


def get_act(db, day: date) -> dict:
    try:
        act = find_act(db, day)
    except PyMongoError:
        logger.exception("Error fetching act for %s", day)
        raise FetchFailed("Couldn't load act")
    if act is None:
        raise NoActScheduled("No act scheduled for that date")
    return act


# -----------------------------
# Today
# -----------------------------

def get_today(db, user_id: str, today: date) -> dict:
    """Today's act and whether the user already completed it."""
    try:
        act = find_act(db, today)
        if act is None:
            raise NoActScheduled()
        completion = db["completion"].find_one({"user_id": user_id, "act_id": act["id"]})
    except PyMongoError:
        logger.exception("Error fetching today's act for %s", user_id)
        raise FetchFailed("Couldn't load today's act")
    return {"act": act, "completed": completion is not None}


def _record_streak(db, user_id: str, today: date) -> dict:
    """Apply one completion to the user's profile and return the new profile.

    The write only lands if last_completion_date still holds the value that was
    read, so two racing requests can't both count the same day.
    """
    profiles = db["profile"]
    for _ in range(PROFILE_WRITE_ATTEMPTS):
        profile = profiles.find_one({"_id": user_id})
        if profile is None:
            current, best = next_streak(0, 0, None, today)
            profile = {"_id": user_id, **Profile(
                current_streak=current, best_streak=best, last_completion_date=today.isoformat()
            ).model_dump()}
            try:
                profiles.insert_one(profile)
            except DuplicateKeyError:
                continue
            return profile

        previous = profile.get("last_completion_date")
        current, best = next_streak(
            profile.get("current_streak"), profile.get("best_streak"), previous, today
        )
        changes = Profile(
            current_streak=current, best_streak=best, last_completion_date=today.isoformat()
        ).model_dump()
        res = profiles.update_one(
            {"_id": user_id, "last_completion_date": previous},
            {"$set": {**changes, "updated_at": datetime.now(timezone.utc)}},
        )
        if res.matched_count:
            return {**profile, **changes}

    raise StaleProfile(f"profile {user_id} changed {PROFILE_WRITE_ATTEMPTS} times during update")


def complete_today(db, user_id: str, today: date) -> dict:
    """Record today's completion and bump the streak.

    The (user_id, act_id) unique index makes a repeated submission a no-op. If
    the streak can't be written, the completion is removed again so the two
    never disagree.
    """
    try:
        act = find_act(db, today)
    except PyMongoError:
        logger.exception("Error looking up today's act for %s", user_id)
        raise ActionFailed()
    if act is None:
        raise NoActScheduled()

    completion = Completion(user_id=user_id, act_id=act["id"], date=today.isoformat())
    try:
        completion_id = create_document("completion", completion, database=db)
    except DuplicateKeyError:
        logger.info("User %s already completed act %s", user_id, act["id"])
        return {
            "status": "already_completed",
            "celebrate": False,
            "message": "You've already completed today's act of kindness.",
            "streak": get_streak(db, user_id),
        }
    except PyMongoError:
        logger.exception("Error completing act %s for %s", act["id"], user_id)
        raise ActionFailed()

    try:
        profile = _record_streak(db, user_id, today)
    except (PyMongoError, StaleProfile):
        logger.exception("Streak update failed for %s, removing completion %s", user_id, completion_id)
        try:
            db["completion"].delete_one({"_id": ObjectId(completion_id)})
        except PyMongoError:
            logger.exception("Could not remove completion %s", completion_id)
        raise ActionFailed()

    logger.info(
        "User %s completed act %s (streak %s, best %s)",
        user_id, act["id"], profile["current_streak"], profile["best_streak"],
    )
    return {
        "status": "completed",
        "celebrate": True,
        "message": "Amazing! You've completed today's act of kindness! 🎉",
        "streak": _streak_out(profile),
    }


# -----------------------------
# Streak & history
# -----------------------------

def get_streak(db, user_id: str) -> dict:
    try:
        profile = db["profile"].find_one({"_id": user_id})
    except PyMongoError:
        logger.exception("Error fetching streaks for %s", user_id)
        raise FetchFailed("Couldn't load your streak")
    return _streak_out(profile)


def get_history(db, user_id: str, today: date, days: int = 30) -> List[dict]:
    """Acts from the last `days` days, newest first, with completion status.

    Today's act is only listed once it has been completed.
    """
    today_str = today.isoformat()
    start = (today - timedelta(days=days)).isoformat()
    try:
        acts = list(
            db["act"].find({"date": {"$gte": start, "$lte": today_str}}).sort("date", -1)
        )
        act_ids = [str(a["_id"]) for a in acts]
        done = {
            c["act_id"]
            for c in db["completion"].find(
                {"user_id": user_id, "act_id": {"$in": act_ids}}, {"act_id": 1}
            )
        }
    except PyMongoError:
        logger.exception("Error fetching history for %s", user_id)
        raise FetchFailed("Couldn't load your history")

    entries = []
    for act in acts:
        act_id = str(act["_id"])
        completed = act_id in done
        if act["date"] > today_str or (act["date"] == today_str and not completed):
            continue
        entries.append({
            "act": _serialize_doc(act),
            "completed": completed,
            "status": "completed" if completed else "missed",
        })
    return entries
