"""
SESSION HISTORY
===============
Finished sessions stored as a JSON list, newest first.

Writes go through a temp file + os.replace, so readers never see a half
written file. Saves to the same path are serialized with a lock.
"""

import json
import logging
import os
import tempfile
import threading
import time
import uuid
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_PATH = os.path.join(os.path.expanduser("~"), ".relaxify", "history.json")

# One lock per history file, shared by every SessionHistory pointing at it
_locks = {}
_locks_guard = threading.Lock()


def _lock_for(path):
    key = os.path.abspath(path)
    with _locks_guard:
        return _locks.setdefault(key, threading.Lock())


class HistoryError(Exception):
    """The history file exists but could not be read as a list."""


class SessionHistory:
    """
    JSON-file store for completion records.

    Each entry: {"id", "exercise", "counter", "reward", "timestamp"}
    """

    def __init__(self, path=None):
        self.path = path or os.environ.get("RELAXIFY_HISTORY", DEFAULT_HISTORY_PATH)
        self._lock = _lock_for(self.path)

    def load(self):
        """Saved sessions, newest first ([] if the file is missing or unreadable)."""
        try:
            return self._read()
        except HistoryError as e:
            logger.warning("⚠️  Could not read history %s: %s", self.path, e)
            return []

    def save(self, record):
        """
        Prepend a completion record and write the file.

        An unreadable history file is moved aside to "<path>.corrupt-<time>"
        before a fresh list is started; it is never overwritten.

        PARAMETERS:
            record: CompletionRecord or dict with exercise / counter / reward

        RETURNS:
            The stored entry
        """
        data = record.to_dict() if hasattr(record, "to_dict") else dict(record)
        entry = {
            "id": uuid.uuid4().hex[:8],
            "exercise": data["exercise"],
            "counter": int(data.get("counter", 0)),
            "reward": int(data.get("reward", 0)),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        with self._lock:
            try:
                sessions = self._read()
            except HistoryError as e:
                backup = self._move_aside()
                logger.warning("⚠️  History %s unreadable (%s), moved to %s", self.path, e, backup)
                sessions = []
            self._write([entry] + sessions)

        logger.info("💾 Saved %s session (%d reps)", entry["exercise"], entry["counter"])
        return entry

    def totals(self):
        """Reps and points per exercise across all stored sessions."""
        totals = {}
        for entry in self.load():
            t = totals.setdefault(entry.get("exercise", "unknown"), {"sessions": 0, "counter": 0, "reward": 0})
            t["sessions"] += 1
            t["counter"] += int(entry.get("counter", 0))
            t["reward"] += int(entry.get("reward", 0))
        return totals

    # ========================================
    # FILE HELPERS
    # ========================================

    def _read(self):
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise HistoryError(str(e)) from e
        if not isinstance(data, list):
            raise HistoryError(f"expected a list, got {type(data).__name__}")
        return data

    def _write(self, sessions):
        directory = os.path.dirname(self.path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".history-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(sessions, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _move_aside(self):
        backup = f"{self.path}.corrupt-{int(time.time())}-{uuid.uuid4().hex[:4]}"
        os.replace(self.path, backup)
        return backup
