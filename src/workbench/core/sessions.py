"""Persistent task → workspace session records."""

import logging
from pathlib import Path

from workbench.db.engine import SessionIOError, locked_state, read_state, state_file_path
from workbench.db.models import Session, SessionState, utc_now

logger = logging.getLogger(__name__)


def load_state(base_path: str | Path) -> SessionState:
    """Load all sessions. Missing or corrupt files read as an empty state."""
    try:
        return read_state(state_file_path(base_path))
    except SessionIOError as e:
        logger.warning("%s; treating as empty", e)
        return SessionState()


def list_sessions(base_path: str | Path) -> list[Session]:
    return load_state(base_path).sessions


def find_session_by_task(base_path: str | Path, task_id: str) -> Session | None:
    return load_state(base_path).find(task_id)


def save_session(base_path: str | Path, session: Session) -> Session:
    """Insert or replace the session for its task id."""
    session = session.stamped()
    with locked_state(base_path) as state:
        state.upsert(session)
    logger.debug("Saved session for task %s", session.task_id)
    return session


def touch_session(
    base_path: str | Path,
    task_id: str,
    opencode_session_id: str | None = None,
) -> Session | None:
    """Refresh updated_at (and the session id, if given) on resume."""
    with locked_state(base_path) as state:
        session = state.find(task_id)
        if session is None:
            return None
        updates: dict = {"updated_at": utc_now()}
        if opencode_session_id:
            updates["opencode_session_id"] = opencode_session_id
        session = session.model_copy(update=updates)
        state.upsert(session)
    return session


def remove_session(base_path: str | Path, task_id: str) -> bool:
    """Delete the session for a task. Returns False if there was none."""
    with locked_state(base_path) as state:
        removed = state.remove(task_id)
    if removed:
        logger.info("Removed session for task %s", task_id)
    return removed
