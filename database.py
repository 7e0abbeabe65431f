"""
Database Helper Functions

MongoDB connection and small helpers shared by the API endpoints.
Collections are named after the lowercase schema class (Act -> "act").
"""
import logging
from datetime import datetime, timezone
from typing import Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient

from config import settings

logger = logging.getLogger(__name__)

_client = None
db = None

if settings.database_url and settings.database_name:
    _client = MongoClient(settings.database_url)
    db = _client[settings.database_name]


class DatabaseUnavailable(Exception):
    pass


def get_db():
    """FastAPI dependency returning the configured database."""
    if db is None:
        raise DatabaseUnavailable("DATABASE_URL and DATABASE_NAME are not set")
    return db


def ensure_indexes(database) -> None:
    """Create the unique indexes the data model relies on."""
    database["act"].create_index([("date", ASCENDING)], unique=True)
    database["completion"].create_index(
        [("user_id", ASCENDING), ("act_id", ASCENDING)], unique=True
    )
    database["completion"].create_index([("user_id", ASCENDING), ("date", ASCENDING)])
    logger.info("Indexes ensured on %s", getattr(database, "name", database))


def create_document(collection_name: str, data: Union[BaseModel, dict], database=None) -> str:
    """Insert a document with created/updated timestamps and return its id."""
    database = database if database is not None else db
    if database is None:
        raise DatabaseUnavailable(
            "Database not available. Check DATABASE_URL and DATABASE_NAME environment variables."
        )

    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()

    now = datetime.now(timezone.utc)
    data_dict["created_at"] = now
    data_dict["updated_at"] = now

    result = database[collection_name].insert_one(data_dict)
    return str(result.inserted_id)
