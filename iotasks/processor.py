"""Pool of worker machines that run queued tasks in background threads."""

from __future__ import annotations

import random
import threading

from .models import Task, TaskStatus, utc_now

MAX_MACHINES = 10
WORK_DURATION = 120.0
FAILURE_RATE = 0.25
TASK_ERROR = "unable to complete the task"


class Machine:
    """A worker that runs one task at a time for its processor."""

    def __init__(self, processor: "Processor") -> None:
        self.processor = processor
        self.working = False
        self.task: Task | None = None

    def assign_task(self, task: Task) -> None:
        """Mark the task running and process it on a background thread."""
        processor = self.processor
        with processor._changed:
            task.status = TaskStatus.RUNNING
            self.working = True
            self.task = task
            processor._mark_busy(self)
        threading.Thread(
            target=self._process, args=(task,), name=f"task-{task.id}", daemon=True
        ).start()

    def _process(self, task: Task) -> None:
        processor = self.processor
        deleted = task.delete_event.wait(processor.work_duration)
        failed = not deleted and processor._roll_failure()
        with processor._changed:
            self.working = False
            self.task = None
            processor._mark_free(self)
            if failed:
                task.error = TASK_ERROR
                task.status = TaskStatus.FAILED
            else:
                task.status = TaskStatus.COMPLETED
            finished = utc_now()
            task.finished_at = finished
            task.set_duration(finished)


class Processor:
    """Queue of pending tasks handed out to at most ``max_machines`` workers."""

    def __init__(
        self,
        max_machines: int = MAX_MACHINES,
        work_duration: float = WORK_DURATION,
        failure_rate: float = FAILURE_RATE,
        rng: random.Random | None = None,
    ) -> None:
        if max_machines < 1:
            raise ValueError("max_machines must be at least 1")
        self.max_machines = max_machines
        self.work_duration = work_duration
        self.failure_rate = failure_rate
        self._rng = rng if rng is not None else random.Random()
        self._changed = threading.Condition(threading.RLock())
        self._queue: list[Task] = []
        self._free: dict[Machine, None] = {Machine(self): None}
        self._busy: dict[Machine, None] = {}
        self._stopped = False

    def add_task(self, task: Task) -> None:
        """Queue a task for processing."""
        with self._changed:
            self._queue.append(task)
            self._changed.notify_all()

    def remove_task(self, task: Task) -> None:
        """Drop every queued task with the same id as ``task``."""
        with self._changed:
            self._queue = [queued for queued in self._queue if queued.id != task.id]

    def queued_tasks(self) -> list[Task]:
        """Return the tasks still waiting for a worker, oldest first."""
        with self._changed:
            return list(self._queue)

    def start(self) -> None:
        """Hand queued tasks to workers until :meth:`stop` is called; blocks."""
        with self._changed:
            while not self._stopped:
                assignment = self._next_assignment()
                if assignment is None:
                    self._changed.wait()
                    continue
                worker, task = assignment
                worker.assign_task(task)

    def stop(self) -> None:
        """Make :meth:`start` return; running tasks are left to finish."""
        with self._changed:
            self._stopped = True
            self._changed.notify_all()

    def _next_assignment(self) -> tuple[Machine, Task] | None:
        if not self._queue:
            return None
        if not self._free and len(self._busy) < self.max_machines:
            self._free[Machine(self)] = None
        if not self._free:
            return None
        worker = next(iter(self._free))
        return worker, self._queue.pop(0)

    def _roll_failure(self) -> bool:
        with self._changed:
            return self._rng.random() < self.failure_rate

    def _mark_busy(self, worker: Machine) -> None:
        self._free.pop(worker, None)
        self._busy[worker] = None

    def _mark_free(self, worker: Machine) -> None:
        self._busy.pop(worker, None)
        self._free[worker] = None
        self._changed.notify_all()