"""
Database Schemas for Kindify

Each Pydantic model represents a MongoDB collection. The collection name is the
lowercase form of the class name (e.g., Act -> "act"). Calendar days are stored
as ISO strings (YYYY-MM-DD) so range queries compare lexicographically.
"""

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class Act(BaseModel):
    """
    The single act of kindness scheduled for a calendar day.
    Collection: "act"
    """
    title: str = Field(..., min_length=1, max_length=200, description="Short title, e.g., Compliment a stranger")
    description: Optional[str] = Field(None, description="Optional longer explanation")
    date: str = Field(..., description="Day the act is scheduled for (YYYY-MM-DD)")


class Completion(BaseModel):
    """
    A user's record of having performed an act.
    Collection: "completion"
    """
    user_id: str = Field(..., description="Id of the user supplied by the auth layer")
    act_id: str = Field(..., description="Reference to Act _id as string")
    date: str = Field(..., description="Day the completion was recorded (YYYY-MM-DD)")


class Profile(BaseModel):
    """
    Per-user streak counters.
    Collection: "profile" (the document _id is the user id)
    """
    current_streak: int = Field(0, ge=0)
    best_streak: int = Field(0, ge=0)
    last_completion_date: Optional[str] = Field(None, description="YYYY-MM-DD")


# -----------------------------
# Request / response bodies
# -----------------------------

class ActCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    date: dt.date


class ActOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    date: str


class TodayOut(BaseModel):
    act: ActOut
    completed: bool


class StreakOut(BaseModel):
    current_streak: int
    best_streak: int
    last_completion_date: Optional[str] = None
    message: str


class CompleteOut(BaseModel):
    status: Literal["completed", "already_completed"]
    celebrate: bool
    message: str
    streak: StreakOut


class HistoryEntry(BaseModel):
    act: ActOut
    completed: bool
    status: Literal["completed", "missed"]


class HistoryOut(BaseModel):
    entries: List[HistoryEntry]
