"""
Local drafts: one JSON file per (assessment type, user, student).

Drafts are rewritten on every material change through DraftWriter, which
debounces writes with one pending timer per draft (last write wins). A draft is
deleted once the assessment has been submitted.
"""
import logging
import os
import re
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel

from drivecoach.constants import ASSESSMENT_TYPE_FULL_LICENSE, ASSESSMENT_TYPE_RESTRICTED
from drivecoach.schemas import CURRENT_VERSION, FullLicenseRecord, RestrictedRecord, dumps, loads

logger = logging.getLogger(__name__)

DRAFT_SAVE_DELAY_SECONDS = 0.5

RECORD_MODELS = {
    ASSESSMENT_TYPE_FULL_LICENSE: FullLicenseRecord,
    ASSESSMENT_TYPE_RESTRICTED: RestrictedRecord,
}


def draft_key(assessment_type: str, user_id: str, student_id: str) -> str:
    return f"drivingschool.assessments.{assessment_type}.draft.v{CURRENT_VERSION}:{user_id}:{student_id}"


class DraftStore:
    """File-backed key-value store for in-progress mock tests."""

    def __init__(self, root_dir: Path | str):
        self.root_dir = Path(root_dir)

    def _path(self, assessment_type: str, user_id: str, student_id: str) -> Path:
        key = draft_key(assessment_type, user_id, student_id)
        safe = re.sub(r"[^A-Za-z0-9._-]", "_", key)
        return self.root_dir / f"{safe}.json"

    def save(self, assessment_type: str, user_id: str, student_id: str, record: BaseModel) -> Path:
        """Write atomically: a reader sees either the old draft or the new one."""
        path = self._path(assessment_type, user_id, student_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(dumps(record), encoding="utf-8")
        os.replace(tmp, path)
        logger.debug("Draft saved: %s", path.name)
        return path

    def load(self, assessment_type: str, user_id: str, student_id: str) -> Optional[BaseModel]:
        """
        Return the validated draft, or None when there is none.
        A draft that fails to parse or validate is discarded.
        """
        path = self._path(assessment_type, user_id, student_id)
        if not path.exists():
            return None
        result = loads(RECORD_MODELS[assessment_type], path.read_text(encoding="utf-8"))
        if not result.ok:
            logger.warning("Discarding corrupt draft %s: %s", path.name, "; ".join(result.errors))
            path.unlink(missing_ok=True)
            return None
        return result.record

    def exists(self, assessment_type: str, user_id: str, student_id: str) -> bool:
        return self._path(assessment_type, user_id, student_id).exists()

    def delete(self, assessment_type: str, user_id: str, student_id: str) -> None:
        self._path(assessment_type, user_id, student_id).unlink(missing_ok=True)


class DraftWriter:
    """
    Debounced draft persistence, one pending write per draft key.
    Scheduling a key replaces only that key's pending write.
    """

    def __init__(self, store: DraftStore, delay: float = DRAFT_SAVE_DELAY_SECONDS):
        self.store = store
        self.delay = delay
        self._timers: Dict[str, threading.Timer] = {}
        self._pending: Dict[str, Tuple[str, str, str, BaseModel]] = {}
        self._lock = threading.Lock()

    def schedule(self, assessment_type: str, user_id: str, student_id: str, record: BaseModel) -> None:
        key = draft_key(assessment_type, user_id, student_id)
        with self._lock:
            if key in self._timers:
                self._timers[key].cancel()
            self._pending[key] = (assessment_type, user_id, student_id, record)
            timer = threading.Timer(self.delay, self._flush_key, args=(key,))
            timer.daemon = True
            self._timers[key] = timer
            timer.start()

    @property
    def pending(self) -> bool:
        return bool(self._pending)

    def _flush_key(self, key: str) -> Optional[Path]:
        with self._lock:
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            pending = self._pending.pop(key, None)
        if pending is None:
            return None
        try:
            return self.store.save(*pending)
        except OSError as e:
            # no retry; the next change schedules a fresh write
            logger.error(f"Error writing draft {key}: {e}")
            return None

    def flush(self) -> List[Path]:
        """Write every pending draft now. Returns the paths written."""
        with self._lock:
            keys = list(self._pending)
        written = [self._flush_key(key) for key in keys]
        return [path for path in written if path is not None]

    def cancel(self, assessment_type: str, user_id: str, student_id: str) -> None:
        """Drop the pending write for one draft; other drafts are untouched."""
        key = draft_key(assessment_type, user_id, student_id)
        with self._lock:
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            self._pending.pop(key, None)
