"""In-memory store of tasks, keyed by id and remembered in creation order."""

from __future__ import annotations

import copy
import threading
from collections.abc import Mapping

from .models import Task, TaskRequest, TaskStatus, utc_now
from .processor import Processor


class TaskNotFoundError(LookupError):
    """Raised when no task has the requested id."""

    def __init__(self, task_id: int) -> None:
        super().__init__(f"task with ID {task_id} not found")
        self.task_id = task_id


def _matches(task: Task, query_params: Mapping[str, bool]) -> bool:
    if not query_params:
        return True
    return bool(query_params.get(task.status.value, False))


class Repository:
    """Holds every known task and hands out increasing ids starting at 1."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._last_id = 0
        self.tasks: dict[int, Task] = {}
        self.order: list[int] = []

    def _next_id(self) -> int:
        self._last_id += 1
        self.order.append(self._last_id)
        return self._last_id

    def find_by_id(self, task_id: int) -> Task:
        """Return the task with ``task_id`` after refreshing its duration."""
        with self._lock:
            task = self.tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            task.set_duration()
            return task

    def get_tasks(self, query_params: Mapping[str, bool]) -> list[Task]:
        """Return snapshots of the tasks whose status is selected by the filters.

        An empty filter mapping selects every task.
        """
        with self._lock:
            selected = []
            for task in self.tasks.values():
                if _matches(task, query_params):
                    task.set_duration()
                    selected.append(copy.copy(task))
            return selected

    def get_tasks_in_order(self, query_params: Mapping[str, bool]) -> list[Task]:
        """Like :meth:`get_tasks`, but in the order the tasks were created."""
        with self._lock:
            selected = []
            for task_id in self.order:
                task = self.tasks.get(task_id)
                if task is not None and _matches(task, query_params):
                    task.set_duration()
                    selected.append(copy.copy(task))
            return selected

    def delete(self, task_id: int, processor: Processor) -> None:
        """Remove a task, cancelling it if it runs or unqueueing it if it waits."""
        with self._lock:
            task = self.tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            if task.status is TaskStatus.RUNNING:
                task.delete_event.set()
            elif task.status is TaskStatus.CREATED:
                processor.remove_task(task)
            del self.tasks[task_id]
            self.order = [known for known in self.order if known != task_id]

    def create(self, request: TaskRequest) -> Task:
        """Store a new task built from ``request`` and return it."""
        with self._lock:
            now = utc_now()
            task = Task(
                id=self._next_id(),
                title=request.title,
                description=request.description,
                created_at=now,
                updated_at=now,
                status=TaskStatus.CREATED,
            )
            self.tasks[task.id] = task
            return task

    def update(self, request: TaskRequest, task_id: int) -> Task:
        """Change a task's title, and its description when one is given."""
        with self._lock:
            task = self.tasks.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            task.title = request.title
            if request.description:
                task.description = request.description
            task.updated_at = utc_now()
            return task