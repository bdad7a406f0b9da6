"""
KeyValueEntry — the local key-value store every StreakFlame collection lives in.

One row per storage key. `value` holds the serialized JSON blob exactly as
written; it is never parsed at the ORM layer, so a corrupted blob survives
a round trip and can be detected by the recovery service on boot.
"""
from datetime import datetime
from sqlalchemy import String, Text, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from streakflame.db.base import Base


class KeyValueEntry(Base):
    __tablename__ = "kv_store"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
