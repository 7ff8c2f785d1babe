"""Checkpoint backends and thread identifiers.

Workflow state is persisted per thread id. The in-memory saver lives as long
as the process; the SQLite saver lets a paused trip be resumed later.
"""
import logging
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.checkpoint.memory import InMemorySaver
from langgraph.checkpoint.sqlite import SqliteSaver

from config.settings import Settings, load_settings
from exceptions import ConfigurationError

logger = logging.getLogger("workflow")


def memory_checkpointer() -> InMemorySaver:
    return InMemorySaver()


def sqlite_checkpointer(path: str) -> SqliteSaver:
    db_path = Path(path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Using SQLite checkpoint store at {db_path}")
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    return SqliteSaver(conn)


def get_checkpointer(settings: Optional[Settings] = None) -> BaseCheckpointSaver:
    """Return the checkpoint backend selected by CHECKPOINT_BACKEND."""
    settings = settings or load_settings()
    if settings.checkpoint_backend == "memory":
        logger.info("Using in-memory checkpoint store")
        return memory_checkpointer()
    if settings.checkpoint_backend == "sqlite":
        return sqlite_checkpointer(settings.checkpoint_path)
    raise ConfigurationError(f"Unknown checkpoint backend: {settings.checkpoint_backend}")


def close_checkpointer(checkpointer: Optional[BaseCheckpointSaver]) -> None:
    """Release the database connection held by a SQLite saver."""
    if isinstance(checkpointer, SqliteSaver):
        logger.info("Closing SQLite checkpoint store")
        checkpointer.conn.close()


def new_thread_id() -> str:
    return str(uuid.uuid4())


def thread_config(thread_id: str) -> Dict[str, Any]:
    return {"configurable": {"thread_id": thread_id}}
