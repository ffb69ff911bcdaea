import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from taskboard.models.schemas import Task
from taskboard.services.board import BoardState, seed_tasks

TRANSCRIPT_KEY = "taskmaster-transcript"
TASKS_KEY = "taskmaster-tasks"

_task_list = TypeAdapter(List[Task])


class BoardStore:
    """
    String key-value store persisted as one JSON object on disk.

    An unreadable file behaves like an empty store.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or os.getenv("TASKBOARD_STORE", "taskboard_store.json"))

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def save_board(store: BoardStore, board: BoardState) -> None:
    store.set(TRANSCRIPT_KEY, board.transcript)
    store.set(TASKS_KEY, json.dumps([t.to_storage_dict() for t in board.tasks], ensure_ascii=False))


def load_board(store: BoardStore) -> BoardState:
    transcript = store.get(TRANSCRIPT_KEY) or ""
    raw = store.get(TASKS_KEY)
    if raw is None:
        return BoardState(seed_tasks(), transcript)
    try:
        tasks = _task_list.validate_json(raw)
        if len({t.id for t in tasks}) != len(tasks):
            raise ValueError("duplicate task ids")
    except (ValidationError, ValueError):
        # Corrupt saved tasks: keep the seed list, no user-facing error
        tasks = seed_tasks()
    return BoardState(tasks, transcript)
