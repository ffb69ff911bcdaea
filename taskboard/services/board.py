import itertools
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import requests

from taskboard.models.schemas import Priority, Task

PRIORITIES = ("P1", "P2", "P3")
PRIORITY_RANK = {"P1": 0, "P2": 1, "P3": 2}
STAT_KINDS = ("total", "completed", "pending", "high-priority")

_sequence = itertools.count()


def new_task_id(index: int = 0) -> str:
    """Millisecond clock plus a per-process sequence, so ids in one batch never collide."""
    return f"{int(time.time() * 1000)}-{index}-{next(_sequence)}"


def seed_tasks() -> List[Task]:
    return [
        Task(id="1", description="Take the landing page", assignee="Aman",
             due_date="10:00 PM, Tomorrow", priority="P3"),
        Task(id="2", description="Client follow-up", assignee="Rajeev",
             due_date="Wednesday", priority="P2"),
        Task(id="3", description="Review the marketing deck", assignee="Shreya",
             due_date="Tonight", priority="P1", completed=True),
    ]


def _text(value: Any, default: str) -> str:
    if not value:
        return default
    return value if isinstance(value, str) else str(value)


def _priority(value: Any) -> Priority:
    # Out-of-set values ("P9", "urgent", 1) clamp to the lowest priority
    if not value:
        return "P3"
    p = str(value).strip().upper()
    return p if p in PRIORITIES else "P3"


def normalize_candidate(candidate: Any, task_id: str) -> Task:
    c = candidate if isinstance(candidate, dict) else {}
    return Task(
        id=task_id,
        description=_text(c.get("description"), "Untitled task"),
        assignee=_text(c.get("assignee"), "Unassigned"),
        due_date=_text(c.get("dueDate"), "No deadline"),
        priority=_priority(c.get("priority")),
        completed=False,
    )


def normalize_candidates(candidates: Iterable[Any]) -> List[Task]:
    return [normalize_candidate(c, new_task_id(i)) for i, c in enumerate(candidates)]


def format_due_date(when: Optional[datetime]) -> str:
    if when is None:
        return "No deadline"
    hour = when.hour % 12 or 12
    return f"{when:%A, %B} {when.day}, {when.year} at {hour}:{when:%M} {when:%p}"


class ExtractionFailed(RuntimeError):
    pass


def request_extraction(api_base: str, transcript: str, timeout: int = 60) -> List[Any]:
    """POST the transcript to the extraction service and return its raw candidates."""
    url = f"{api_base.rstrip('/')}/api/extract-tasks"
    try:
        r = requests.post(url, json={"transcript": transcript}, timeout=timeout)
    except requests.RequestException as e:
        raise ExtractionFailed(f"Extraction service not reachable: {e}") from e

    try:
        data = r.json()
    except ValueError:
        data = {}

    if not r.ok:
        raise ExtractionFailed(data.get("error") or f"API Error: {r.status_code}")
    return data.get("tasks") or []


class BoardState:
    """The client's task list plus the transcript being edited."""

    def __init__(self, tasks: Optional[List[Task]] = None, transcript: str = ""):
        self.tasks: List[Task] = list(tasks) if tasks is not None else seed_tasks()
        self.transcript = transcript

    def _fresh_id(self, index: int = 0) -> str:
        existing = {t.id for t in self.tasks}
        task_id = new_task_id(index)
        while task_id in existing:
            task_id = new_task_id(index)
        return task_id

    def get(self, task_id: str) -> Optional[Task]:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def add_task(self, description: str, assignee: str, due_date: str = "No deadline",
                 priority: Priority = "P3") -> Task:
        description = (description or "").strip()
        assignee = (assignee or "").strip()
        if not description or not assignee:
            raise ValueError("Description and assignee are required")
        if priority not in PRIORITIES:
            raise ValueError(f"Unknown priority: {priority}")

        task = Task(id=self._fresh_id(), description=description, assignee=assignee,
                    due_date=due_date or "No deadline", priority=priority)
        self.tasks.append(task)
        return task

    def merge_extracted(self, candidates: Iterable[Any]) -> List[Task]:
        new_tasks = normalize_candidates(candidates)
        existing = {t.id for t in self.tasks}
        for i, task in enumerate(new_tasks):
            if task.id in existing:
                task.id = self._fresh_id(i)
            existing.add(task.id)
        self.tasks.extend(new_tasks)
        if new_tasks:
            self.transcript = ""
        return new_tasks

    def toggle(self, task_id: str) -> bool:
        task = self.get(task_id)
        if task is None:
            return False
        task.completed = not task.completed
        return True

    def delete(self, task_id: str) -> bool:
        before = len(self.tasks)
        self.tasks = [t for t in self.tasks if t.id != task_id]
        return len(self.tasks) != before

    def visible_tasks(self, priority: str = "all", status: str = "all",
                      search: str = "", sort_by: str = "priority") -> List[Task]:
        term = (search or "").lower()

        def matches(t: Task) -> bool:
            if priority != "all" and t.priority != priority:
                return False
            if status == "completed" and not t.completed:
                return False
            if status == "pending" and t.completed:
                return False
            return term in t.description.lower() or term in t.assignee.lower()

        result = [t for t in self.tasks if matches(t)]
        if sort_by == "priority":
            result.sort(key=lambda t: PRIORITY_RANK[t.priority])
        elif sort_by == "assignee":
            result.sort(key=lambda t: t.assignee.casefold())
        return result

    def stats(self) -> Dict[str, int]:
        completed = sum(1 for t in self.tasks if t.completed)
        return {
            "total": len(self.tasks),
            "completed": completed,
            "pending": len(self.tasks) - completed,
            "high_priority": sum(1 for t in self.tasks if t.priority == "P1"),
        }

    def tasks_for_stat(self, kind: str) -> List[Task]:
        if kind == "total":
            return list(self.tasks)
        if kind == "completed":
            return [t for t in self.tasks if t.completed]
        if kind == "pending":
            return [t for t in self.tasks if not t.completed]
        if kind == "high-priority":
            return [t for t in self.tasks if t.priority == "P1"]
        return []
