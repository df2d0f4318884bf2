"""In-memory task collection with overdue classification."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone

from .dates import normalize, today
from .models import Bucket, Category, Task

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskStore:
    """Owns the task list and keeps each task's overdue state consistent.

    The store is volatile: it lives for the duration of the process. Tasks
    keep insertion order, which only matters for display grouping.
    """

    def __init__(
        self,
        tasks: Iterable[Task] = (),
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._tasks: list[Task] = []
        self._next_id = 1
        self._clock = clock
        for task in tasks:
            self.add(task)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return any(t.id == task_id for t in self._tasks)

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, task: Task) -> Task:
        """Insert an already-built task, e.g. one read from a snapshot.

        A task with no id, or an id that is taken, gets a fresh one.
        """
        if not task.id:
            task.id = self._allocate_id()
        elif task.id in self:
            fresh = self._allocate_id()
            logger.warning("Task id %s is already in use; reassigned to %s", task.id, fresh)
            task.id = fresh
        elif task.id.isdigit():
            self._next_id = max(self._next_id, int(task.id) + 1)
        self._tasks.append(task)
        return task

    def create_task(
        self,
        text: str,
        category: Category | None,
        start: date | None,
        end: date | None,
    ) -> Task:
        task = Task(
            id=self._allocate_id(),
            text=text,
            category=category,
            start_date=start,
            end_date=end,
        )
        self._tasks.append(task)
        logger.info("Created task %s '%s' (%s .. %s)", task.id, text, start, end)
        return task

    def edit_task(
        self,
        task_id: str,
        text: str,
        category: Category | None,
        start: date | None,
        end: date | None,
    ) -> Task | None:
        """Replace a task's editable fields. Unknown ids are ignored."""
        task = self.get(task_id)
        if task is None:
            logger.debug("Edit of unknown task %s ignored", task_id)
            return None
        task.text = text
        task.category = category
        task.start_date = start
        task.end_date = end
        logger.info("Edited task %s '%s' (%s .. %s)", task_id, text, start, end)
        return task

    def toggle_completed(self, task_id: str) -> Task | None:
        """Flip completion; completing an overdue task resolves it into done."""
        task = self.get(task_id)
        if task is None:
            logger.debug("Toggle of unknown task %s ignored", task_id)
            return None
        if task.overdue:
            task.overdue = False
            task.completed = True
        else:
            task.completed = not task.completed
        logger.info("Task %s is now %s", task_id, task.bucket.value)
        return task

    def delete_task(self, task_id: str) -> bool:
        task = self.get(task_id)
        if task is None:
            logger.debug("Delete of unknown task %s ignored", task_id)
            return False
        self._tasks.remove(task)
        logger.info("Deleted task %s '%s'", task_id, task.text)
        return True

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def recompute_overdue(self, now: datetime | date | None = None) -> int:
        """Re-derive overdue flags against the reference day of ``now``.

        Completion is only ever forced on here, never off. Returns the number
        of tasks whose flags changed.
        """
        reference_day = normalize(now if now is not None else self._clock())
        changed = 0
        for task in self._tasks:
            before = (task.completed, task.overdue)
            if _is_overdue(task, reference_day):
                task.completed = True
                task.overdue = True
            else:
                task.overdue = False
            if (task.completed, task.overdue) != before:
                changed += 1
                logger.debug(
                    "Task %s '%s' moved to %s (reference day %s)",
                    task.id, task.text, task.bucket.value, reference_day,
                )
        return changed

    def list_by(self, bucket: Bucket) -> list[Task]:
        return [t for t in self._tasks if t.bucket is bucket]

    def observe(self, now: datetime | date | None = None) -> dict[Bucket, list[Task]]:
        """Recompute overdue state, then return every bucket."""
        self.recompute_overdue(now)
        return {bucket: self.list_by(bucket) for bucket in Bucket}

    def reference_day(self) -> date:
        """Today in the reference timezone, per the store's clock."""
        return today(self._clock())

    def counts(self) -> dict[Bucket, int]:
        return {bucket: len(self.list_by(bucket)) for bucket in Bucket}

    def _allocate_id(self) -> str:
        while True:
            candidate = str(self._next_id)
            self._next_id += 1
            if candidate not in self:
                return candidate


def _is_overdue(task: Task, reference_day: date) -> bool:
    # A task completed by hand (completed but never flagged) is left alone.
    manually_completed = task.completed and not task.overdue
    if manually_completed or task.end_date is None:
        return False
    return task.end_date < reference_day
