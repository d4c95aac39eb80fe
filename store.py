import json
import logging
import os
from typing import Any, Optional, Union

import aiosqlite

logger = logging.getLogger(__name__)

MOOD_LIST_LIMIT = 30

# UTC ISO 8601 with milliseconds, the same shape a JS/ISO client sends
_NOW = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"

SCHEMA = [
    f"""
    CREATE TABLE IF NOT EXISTS moods (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL,
        level INTEGER NOT NULL,
        tags TEXT,
        timestamp TEXT DEFAULT {_NOW},
        UNIQUE(user_id, date)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS journals (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        content TEXT NOT NULL,
        sentiment_score REAL,
        risk_label TEXT,
        advice TEXT,
        timestamp TEXT DEFAULT {_NOW}
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS chat_history (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        role TEXT NOT NULL,
        content TEXT NOT NULL,
        timestamp TEXT DEFAULT {_NOW}
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_journals_user
    ON journals(user_id, timestamp)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_chat_user
    ON chat_history(user_id, timestamp)
    """,
]


class StoreNotOpenError(RuntimeError):
    pass


class Store:
    """Single shared handle on the MindGuard SQLite file.

    Open it once at process start and close it at shutdown. Every write is
    committed immediately.
    """

    schema = SCHEMA

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    async def open(self) -> None:
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        db = await aiosqlite.connect(self.db_path)
        try:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA busy_timeout=5000")
            await db.execute("PRAGMA journal_mode=WAL")
            for statement in self.schema:
                await db.execute(statement)
            await db.commit()
        except BaseException:
            await db.close()
            raise
        self._db = db
        logger.info(f"Opened store at {self.db_path}")

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.info("Store closed")

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreNotOpenError("Store.open() has not been awaited")
        return self._db

    async def _fetch_all(self, query: str, params: tuple) -> list[dict]:
        cursor = await self.db.execute(query, params)
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    async def _write(self, query: str, params: tuple) -> None:
        await self.db.execute(query, params)
        await self.db.commit()

    # --- moods ---

    async def list_moods(self, user_id: str) -> list[dict]:
        return await self._fetch_all(
            """
            SELECT * FROM moods
            WHERE user_id = ?
            ORDER BY date DESC
            LIMIT ?
            """,
            (user_id, MOOD_LIST_LIMIT),
        )

    async def upsert_mood(
        self,
        user_id: str,
        level: Any,
        date: Any,
        tags: Optional[str] = None,
    ) -> None:
        await self._write(
            """
            INSERT OR REPLACE INTO moods (user_id, date, level, tags)
            VALUES (?, ?, ?, ?)
            """,
            (user_id, date, level, tags),
        )

    # --- journals ---

    async def list_journals(self, user_id: str) -> list[dict]:
        return await self._fetch_all(
            """
            SELECT * FROM journals
            WHERE user_id = ?
            ORDER BY timestamp DESC, id DESC
            """,
            (user_id,),
        )

    async def add_journal(
        self,
        user_id: str,
        content: Optional[str],
        sentiment_score: Any = None,
        risk_label: Optional[str] = None,
        advice: Union[list, str, None] = None,
        timestamp: Optional[str] = None,
    ) -> None:
        if isinstance(advice, list):
            advice = json.dumps(advice, ensure_ascii=False)

        if timestamp:
            await self._write(
                """
                INSERT INTO journals
                    (user_id, content, sentiment_score, risk_label, advice, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (user_id, content, sentiment_score, risk_label, advice, timestamp),
            )
        else:
            await self._write(
                """
                INSERT INTO journals
                    (user_id, content, sentiment_score, risk_label, advice)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, content, sentiment_score, risk_label, advice),
            )

    # --- chat ---

    async def list_chat_history(self, user_id: str) -> list[dict]:
        return await self._fetch_all(
            """
            SELECT * FROM chat_history
            WHERE user_id = ?
            ORDER BY timestamp ASC, id ASC
            """,
            (user_id,),
        )

    async def add_chat_message(
        self,
        user_id: str,
        role: Optional[str],
        content: Optional[str],
    ) -> None:
        await self._write(
            "INSERT INTO chat_history (user_id, role, content) VALUES (?, ?, ?)",
            (user_id, role, content),
        )
