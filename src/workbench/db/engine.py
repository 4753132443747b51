"""JSON session file access: locking, atomic writes and corruption handling."""

import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import ValidationError

from workbench.db.models import SessionState

logger = logging.getLogger(__name__)

STATE_DIR = ".workbench"
STATE_FILE = "sessions.json"


class SessionIOError(Exception):
    """Raised when the session file exists but cannot be read or parsed."""


def state_file_path(base_path: str | Path) -> Path:
    return Path(base_path) / STATE_DIR / STATE_FILE


def read_state(path: Path) -> SessionState:
    """Parse the session file. A missing file is an empty state."""
    if not path.exists():
        return SessionState()
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SessionIOError(f"Cannot read {path}: {e}") from e
    if not raw.strip():
        return SessionState()
    try:
        return SessionState.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise SessionIOError(f"Malformed session file {path}: {e}") from e


def write_state(path: Path, state: SessionState) -> None:
    """Replace the session file atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(state.to_record(), fh, indent=2)
            fh.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


@contextmanager
def file_lock(path: Path) -> Iterator[None]:
    """Exclusive advisory lock on ``<path>.lock`` for the duration of the block."""
    lock_path = path.with_name(path.name + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("w") as fh:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


def _set_aside(path: Path) -> Path:
    backup = path.with_name(path.name + ".corrupt")
    os.replace(path, backup)
    return backup


@contextmanager
def locked_state(base_path: str | Path) -> Iterator[SessionState]:
    """Read-modify-write the session file under the lock.

    Changes made to the yielded state are written back when the block exits
    without an exception. An unchanged state is not written. A corrupt file
    is read as empty and moved aside, for later inspection, only when it is
    about to be replaced.
    """
    path = state_file_path(base_path)
    with file_lock(path):
        corrupt_error = None
        try:
            state = read_state(path)
        except SessionIOError as e:
            corrupt_error = e
            state = SessionState()
        before = state.to_record()
        yield state
        if state.to_record() == before:
            return
        if corrupt_error is not None:
            backup = _set_aside(path)
            logger.warning("%s; moved to %s and starting from an empty state", corrupt_error, backup)
        write_state(path, state)
