from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from streakflame.db.base import get_db, init_db
from streakflame.core.config import settings
from streakflame.core.logging import configure_logging
from streakflame.routers import backup as backup_router
from streakflame.routers import lists as lists_router
from streakflame.routers import recovery as recovery_router
from streakflame.routers import stats as stats_router
from streakflame.routers import streaks as streaks_router
from streakflame.services.reminders import ReminderRegistry
from streakflame.core.errors import (
    StreakflameException,
    streakflame_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(env=settings.APP_ENV, level=settings.LOG_LEVEL)
    init_db()
    app.state.reminders.start()
    yield
    app.state.reminders.stop()


app = FastAPI(
    title="StreakFlame API",
    description=(
        "**Local habit-streak tracker**\n\n"
        "Streaks are completed at most once per local day; status, run length and "
        "statistics are derived from completion dates. Stored data is validated on "
        "boot and recovered from the last good snapshot when corrupted.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.reminders = ReminderRegistry()
app.state.boot_result = None

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(StreakflameException, streakflame_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(streaks_router.router)
app.include_router(lists_router.router)
app.include_router(stats_router.router)
app.include_router(backup_router.router)
app.include_router(recovery_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
