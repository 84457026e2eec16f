"""Volatile task storage.

``InMemoryTaskStore`` keeps every task in process memory and loses them on
restart. Handlers depend only on the ``TaskStore`` protocol so a persistent
backend can be swapped in.
"""
from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol

from taskdigest.core.errors import NotFoundError, ValidationError

logger = logging.getLogger("taskdigest.store")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Task:
    """A single to-do item."""
    id: int
    title: str
    description: str = ""
    completed: bool = False
    created_at: datetime = field(default_factory=_now)
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "createdAt": _iso(self.created_at),
        }
        if self.updated_at is not None:
            data["updatedAt"] = _iso(self.updated_at)
        return data


class TaskStore(Protocol):
    def list(self) -> List[Task]: ...

    def get(self, task_id: int) -> Task: ...

    def create(
        self,
        title: Any,
        description: Optional[str] = None,
        completed: bool = False,
    ) -> Task: ...

    def delete(self, task_id: int) -> None: ...

    def toggle(self, task_id: int) -> Task: ...


class InMemoryTaskStore:
    """Ordered task list plus a monotonic id counter."""

    def __init__(self) -> None:
        self._tasks: List[Task] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def list(self) -> List[Task]:
        with self._lock:
            return copy.deepcopy(self._tasks)

    def get(self, task_id: int) -> Task:
        with self._lock:
            return copy.deepcopy(self._find(task_id))

    def create(
        self,
        title: Any,
        description: Optional[str] = None,
        completed: bool = False,
    ) -> Task:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Title is required")
        with self._lock:
            task = Task(
                id=self._next_id,
                title=title.strip(),
                description=description.strip() if description else "",
                completed=bool(completed),
            )
            self._next_id += 1
            self._tasks.append(task)
            logger.debug("Created task %d: %s", task.id, task.title)
            return copy.deepcopy(task)

    def delete(self, task_id: int) -> None:
        with self._lock:
            task = self._find(task_id)
            self._tasks.remove(task)
            logger.debug("Deleted task %d", task_id)

    def toggle(self, task_id: int) -> Task:
        with self._lock:
            task = self._find(task_id)
            task.completed = not task.completed
            task.updated_at = _now()
            logger.debug("Toggled task %d -> completed=%s", task_id, task.completed)
            return copy.deepcopy(task)

    def clear(self) -> None:
        """Drop every task and restart ids at 1."""
        with self._lock:
            self._tasks.clear()
            self._next_id = 1

    def _find(self, task_id: int) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise NotFoundError("Todo not found")
