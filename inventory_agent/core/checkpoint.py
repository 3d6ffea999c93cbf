"""
Checkpoint store: persisted ConversationState per thread id.

Two backends: an in-memory dict (process-local, for dev and tests) and a SQLite file with
one row per thread. Saves overwrite the whole state; there is no versioning, so two
concurrent turns on one thread race and the later save wins.
"""

import asyncio
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from inventory_agent.agent.messages import ConversationState
from inventory_agent.core.config import CHECKPOINT_BACKEND, CHECKPOINT_DB_PATH

logger = logging.getLogger(__name__)

# Project root (where data/ lives)
_ROOT = Path(__file__).resolve().parent.parent.parent
_TABLE = "checkpoints"


class CheckpointStore(ABC):
    @abstractmethod
    async def load(self, thread_id: str) -> ConversationState:
        """State for thread_id, or an empty state if the thread is unknown."""

    @abstractmethod
    async def save(self, thread_id: str, state: ConversationState) -> None:
        """Replace the stored state for thread_id."""


class InMemoryCheckpointStore(CheckpointStore):
    def __init__(self) -> None:
        self._threads: dict[str, ConversationState] = {}
        self._lock = threading.Lock()

    async def load(self, thread_id: str) -> ConversationState:
        with self._lock:
            state = self._threads.get(thread_id) or ConversationState()
        logger.info("[checkpoint:memory:load] thread_id=%s messages=%d", thread_id[:16], len(state))
        return state

    async def save(self, thread_id: str, state: ConversationState) -> None:
        with self._lock:
            self._threads[thread_id] = state
        logger.info("[checkpoint:memory:save] thread_id=%s messages=%d", thread_id[:16], len(state))


class SqliteCheckpointStore(CheckpointStore):
    """SQLite-backed checkpoints. Table: checkpoints (thread_id, messages, updated_at)."""

    def __init__(self, db_path: str | Path = CHECKPOINT_DB_PATH) -> None:
        path = Path(db_path)
        self.db_path = path if path.is_absolute() else _ROOT / path
        self._initialized = False

    def _get_conn(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(str(self.db_path))

    def init_db(self) -> None:
        """Create the checkpoints table if it does not exist."""
        if self._initialized:
            return
        conn = self._get_conn()
        try:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_TABLE} (
                    thread_id TEXT PRIMARY KEY,
                    messages TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()
        self._initialized = True

    def _load_sync(self, thread_id: str) -> ConversationState:
        self.init_db()
        conn = self._get_conn()
        try:
            row = conn.execute(
                f"SELECT messages FROM {_TABLE} WHERE thread_id = ?", (thread_id,)
            ).fetchone()
        finally:
            conn.close()
        if row is None:
            return ConversationState()
        return ConversationState.from_records(json.loads(row[0]))

    def _save_sync(self, thread_id: str, state: ConversationState) -> None:
        self.init_db()
        conn = self._get_conn()
        try:
            conn.execute(
                f"""
                INSERT INTO {_TABLE} (thread_id, messages, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(thread_id) DO UPDATE SET
                    messages = excluded.messages,
                    updated_at = excluded.updated_at
                """,
                (thread_id, json.dumps(state.to_records()), datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()
        finally:
            conn.close()

    async def load(self, thread_id: str) -> ConversationState:
        state = await asyncio.to_thread(self._load_sync, thread_id)
        logger.info("[checkpoint:sqlite:load] thread_id=%s messages=%d", thread_id[:16], len(state))
        return state

    async def save(self, thread_id: str, state: ConversationState) -> None:
        await asyncio.to_thread(self._save_sync, thread_id, state)
        logger.info("[checkpoint:sqlite:save] thread_id=%s messages=%d", thread_id[:16], len(state))


def create_checkpoint_store(backend: str = CHECKPOINT_BACKEND) -> CheckpointStore:
    if backend == "memory":
        return InMemoryCheckpointStore()
    if backend == "sqlite":
        return SqliteCheckpointStore()
    raise ValueError(f"Unknown CHECKPOINT_BACKEND: {backend!r} (expected 'sqlite' or 'memory')")
