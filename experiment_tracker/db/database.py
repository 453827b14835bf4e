from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
import uuid

from sqlalchemy import create_engine

from experiment_tracker.config.settings import settings
from experiment_tracker.db.models import Base


def get_connection() -> sqlite3.Connection:
    db_path = settings.state_db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def create_schema() -> None:
    db_path = settings.state_db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")
    try:
        Base.metadata.create_all(engine)
    finally:
        engine.dispose()


async def init_db() -> None:
    create_schema()


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
