"""
Resumable session store.

A key-value layer scoped to one respondent session. It holds:
    - STATE_KEY: the JSON snapshot of the in-progress SurveyState
    - after completion, a flag plus the identifiers and responses needed by
      the contact follow-up (COMPLETED_KEY, RESPONSES_KEY,
      RESPONDENT_KEY, INTERVIEW_KEY), cleared once that flow ends

Corrupt or missing snapshots read back as "no saved session".
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from mbi.model import Response, SurveyState
from mbi.serialization import (
    MalformedPersistedStateError,
    responses_from_list,
    responses_to_list,
    state_from_json,
    state_to_json,
)
from mbi.state_machine import resume

logger = logging.getLogger(__name__)

STATE_KEY = "mbi_state"
COMPLETED_KEY = "mbi_completed"
RESPONSES_KEY = "mbi_responses"
RESPONDENT_KEY = "mbi_respondent_id"
INTERVIEW_KEY = "mbi_interview_id"

SESSION_KEYS = (STATE_KEY, COMPLETED_KEY, RESPONSES_KEY, RESPONDENT_KEY, INTERVIEW_KEY)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store; lives as long as the process."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class FileStore:
    """
    Directory-backed store: one file per key.

    Writes go to a temporary file that is then renamed over the target, so a
    crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass


@dataclass(frozen=True)
class CompletionSnapshot:
    """What the contact follow-up needs once the survey state is gone."""
    respondent_id: str
    interview_id: Optional[str]
    responses: List[Response]


def save_state(store: KeyValueStore, state: SurveyState) -> None:
    store.set(STATE_KEY, state_to_json(state))


def load_state(store: KeyValueStore) -> Optional[SurveyState]:
    """
    Restore the saved SurveyState, or None when there is nothing usable.

    A corrupt or inconsistent snapshot is logged and treated as absent.
    """
    raw = store.get(STATE_KEY)
    if raw is None:
        return None
    try:
        return resume(state_from_json(raw))
    except MalformedPersistedStateError as e:
        logger.warning("Ignoring saved session: %s", e)
        return None


def save_completion(store: KeyValueStore, state: SurveyState) -> None:
    store.set(COMPLETED_KEY, "true")
    store.set(RESPONSES_KEY, json.dumps(responses_to_list(state.responses)))
    store.set(RESPONDENT_KEY, state.respondent_id or "")
    store.set(INTERVIEW_KEY, state.interview_id or "")


def load_completion(store: KeyValueStore) -> Optional[CompletionSnapshot]:
    """Return the completion snapshot, or None if the survey was not completed here."""
    if store.get(COMPLETED_KEY) != "true":
        return None
    respondent_id = store.get(RESPONDENT_KEY)
    raw = store.get(RESPONSES_KEY)
    if not respondent_id or raw is None:
        logger.warning("Completion flag set without respondent data")
        return None
    try:
        responses = responses_from_list(json.loads(raw)).all()
    except (ValueError, KeyError, TypeError, OverflowError, RecursionError, MalformedPersistedStateError) as e:
        logger.warning("Ignoring corrupt completion snapshot: %s", e)
        return None
    return CompletionSnapshot(
        respondent_id=respondent_id,
        interview_id=store.get(INTERVIEW_KEY) or None,
        responses=responses,
    )


def clear_session(store: KeyValueStore) -> None:
    for key in SESSION_KEYS:
        store.remove(key)
