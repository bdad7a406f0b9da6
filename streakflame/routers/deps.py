"""
Shared router dependencies.

Each request gets its own KeyValueStore (one SQLAlchemy session) and a
StreakEngine built on it. The first request of the process runs boot
recovery; its RecoveryResult is kept on `app.state.boot_result` and later
requests only reload the primary store.
"""
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from streakflame.db.base import get_db
from streakflame.services.storage import KeyValueStore
from streakflame.services.streak_engine import StreakEngine


def get_store(db: Session = Depends(get_db)) -> KeyValueStore:
    return KeyValueStore(db)


def get_engine(request: Request, store: KeyValueStore = Depends(get_store)) -> StreakEngine:
    engine = StreakEngine(store, reminders=getattr(request.app.state, "reminders", None))
    if getattr(request.app.state, "boot_result", None) is None:
        request.app.state.boot_result = engine.boot()
    else:
        engine.load()
    return engine
