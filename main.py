import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

import database
import kindness
from config import settings
from database import DatabaseUnavailable, ensure_indexes, get_db
from kindness import KindifyError
from schemas import ActCreate, ActOut, CompleteOut, HistoryOut, StreakOut, TodayOut

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        try:
            ensure_indexes(database.db)
        except PyMongoError:
            logger.exception("Could not create indexes")
    else:
        logger.warning("DATABASE_URL / DATABASE_NAME not set, running without a database")
    yield


app = FastAPI(title="Kindify API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KindifyError)
async def kindify_error_handler(request, exc: KindifyError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(DatabaseUnavailable)
async def database_unavailable_handler(request, exc: DatabaseUnavailable):
    logger.error("Database unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"detail": "Database not available"})


# -----------------------------
# Dependencies
# -----------------------------

def get_today() -> date:
    return datetime.now(timezone.utc).date()


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not signed in")
    return x_user_id


# -----------------------------
# Health & Root
# -----------------------------
@app.get("/")
def read_root():
    return {"message": "Kindify backend is running"}


@app.get("/test")
def test_database():
    """Test endpoint to check if database is available and accessible"""
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }

    db = database.db
    try:
        if db is not None:
            response["database"] = "✅ Available"
            response["connection_status"] = "Connected"

            try:
                collections = db.list_collection_names()
                response["collections"] = collections[:10]
                response["database"] = "✅ Connected & Working"
            except PyMongoError as e:
                response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        else:
            response["database"] = "⚠️  Available but not initialized"

    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"

    response["database_url"] = "✅ Set" if settings.database_url else "❌ Not Set"
    response["database_name"] = "✅ Set" if settings.database_name else "❌ Not Set"

    return response


# -----------------------------
# Today
# -----------------------------
@app.get("/api/today", response_model=TodayOut)
def read_today(
    user_id: str = Depends(get_user_id),
    today: date = Depends(get_today),
    db=Depends(get_db),
):
    return kindness.get_today(db, user_id, today)


@app.post("/api/today/complete", response_model=CompleteOut)
def complete_today(
    user_id: str = Depends(get_user_id),
    today: date = Depends(get_today),
    db=Depends(get_db),
):
    return kindness.complete_today(db, user_id, today)


# -----------------------------
# Streak & History
# -----------------------------
@app.get("/api/streak", response_model=StreakOut)
def read_streak(user_id: str = Depends(get_user_id), db=Depends(get_db)):
    return kindness.get_streak(db, user_id)


@app.get("/api/history", response_model=HistoryOut)
def read_history(
    days: Optional[int] = Query(None, ge=1, le=365),
    user_id: str = Depends(get_user_id),
    today: date = Depends(get_today),
    db=Depends(get_db),
):
    entries = kindness.get_history(db, user_id, today, days or settings.history_days)
    return {"entries": entries}


# -----------------------------
# Acts (maintenance)
# -----------------------------
@app.post("/api/acts", status_code=201)
def create_act(payload: ActCreate, db=Depends(get_db)):
    new_id = kindness.create_act(db, payload.title, payload.date, payload.description)
    return {"id": new_id}


@app.get("/api/acts/{day}", response_model=ActOut)
def read_act(day: date, db=Depends(get_db)):
    return kindness.get_act(db, day)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
