"""Two-step date-range acquisition for creating and editing tasks.

A create or edit asks for a start date, then an end date, then commits the
draft to the store. The prompts come from a ``DatePicker`` supplied by the
front end; it answers by calling back into the collector, either right away
or later from an event loop. Only one draft is in flight at a time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Protocol

from .dates import normalize
from .models import Category, Task, ValidationError
from .store import TaskStore

logger = logging.getLogger(__name__)


class DatePurpose(str, Enum):
    START = "start"
    END = "end"


class CollectorState(str, Enum):
    IDLE = "idle"
    AWAITING_START = "awaiting_start"
    AWAITING_END = "awaiting_end"
    COMMITTING = "committing"


class Outcome(str, Enum):
    """How the most recent draft ended."""

    COMMITTED = "committed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class DatePicker(Protocol):
    def request_date(self, purpose: DatePurpose, default: date | None) -> None:
        """Ask the user for a date.

        Exactly one of the collector's matching ``on_*_chosen`` /
        ``on_*_cancelled`` callbacks must follow.
        """


@dataclass
class Draft:
    """The in-flight text, category and dates of a create or edit."""

    text: str
    category: Category | None
    editing_task_id: str | None = None
    start: date | None = None
    default_start: date | None = None
    default_end: date | None = None


class DateRangeCollector:
    def __init__(self, store: TaskStore, picker: DatePicker) -> None:
        self.store = store
        self.picker = picker
        self.state = CollectorState.IDLE
        self.draft: Draft | None = None
        self.last_outcome: Outcome | None = None
        self.last_task: Task | None = None

    @property
    def pending(self) -> bool:
        return self.state is not CollectorState.IDLE

    def begin(
        self,
        text: str,
        category: Category | None,
        editing_task_id: str | None = None,
    ) -> None:
        """Start a create (or an edit of ``editing_task_id``) and ask for the start date."""
        draft = Draft(text=text, category=category, editing_task_id=editing_task_id)
        if editing_task_id is not None:
            task = self.store.get(editing_task_id)
            if task is not None:
                draft.default_start = task.start_date
                draft.default_end = task.end_date
        self._start(draft)

    def begin_edit(
        self,
        task_id: str,
        text: str | None = None,
        category: Category | None = None,
        clear_category: bool = False,
    ) -> Draft | None:
        """Re-submit an existing task through the collector.

        Text and category not given are taken from the task, and the task's
        dates become the prompt defaults. ``clear_category`` drops the task's
        category instead of keeping it. Returns the pre-populated draft, or
        None when the task no longer exists.
        """
        task = self.store.get(task_id)
        if task is None:
            logger.debug("Edit of unknown task %s ignored", task_id)
            return None
        if clear_category:
            category = None
        elif category is None:
            category = task.category
        draft = Draft(
            text=text if text is not None else task.text,
            category=category,
            editing_task_id=task_id,
            default_start=task.start_date,
            default_end=task.end_date,
        )
        self._start(draft)
        return draft

    def _start(self, draft: Draft) -> None:
        if not draft.text or not draft.text.strip():
            raise ValidationError("empty task name")
        if self.pending and self.draft is not None:
            logger.warning("Discarding in-flight draft '%s' for a new one", self.draft.text)
        draft.text = draft.text.strip()
        self.draft = draft
        self.last_outcome = None
        self.last_task = None
        self._transition(CollectorState.AWAITING_START)
        self.picker.request_date(DatePurpose.START, draft.default_start)

    def on_start_date_chosen(self, instant: datetime | date) -> None:
        if self.state is not CollectorState.AWAITING_START or self.draft is None:
            logger.debug("Start date ignored in state %s", self.state.value)
            return
        self.draft.start = normalize(instant)
        self._transition(CollectorState.AWAITING_END)
        self.picker.request_date(DatePurpose.END, self.draft.default_end)

    def on_start_date_cancelled(self) -> None:
        if self.state is not CollectorState.AWAITING_START:
            logger.debug("Start cancel ignored in state %s", self.state.value)
            return
        self._finish(Outcome.CANCELLED)

    def on_end_date_chosen(self, instant: datetime | date) -> Task | None:
        """Validate the range and commit the draft.

        Raises ValidationError when the end date is before the start date;
        the draft is discarded either way.
        """
        if self.state is not CollectorState.AWAITING_END or self.draft is None:
            logger.debug("End date ignored in state %s", self.state.value)
            return None
        draft = self.draft
        start = draft.start
        end = normalize(instant)
        if start is not None and end < start:
            self._finish(Outcome.REJECTED)
            raise ValidationError("end before start")

        self._transition(CollectorState.COMMITTING)
        if draft.editing_task_id is None:
            task = self.store.create_task(draft.text, draft.category, start, end)
        else:
            task = self.store.edit_task(
                draft.editing_task_id, draft.text, draft.category, start, end
            )
        self.last_task = task
        self._finish(Outcome.COMMITTED)
        return task

    def on_end_date_cancelled(self) -> None:
        if self.state is not CollectorState.AWAITING_END:
            logger.debug("End cancel ignored in state %s", self.state.value)
            return
        self._finish(Outcome.CANCELLED)

    def on_date_chosen(self, purpose: DatePurpose, instant: datetime | date) -> Task | None:
        if purpose is DatePurpose.START:
            self.on_start_date_chosen(instant)
            return None
        return self.on_end_date_chosen(instant)

    def on_date_cancelled(self, purpose: DatePurpose) -> None:
        if purpose is DatePurpose.START:
            self.on_start_date_cancelled()
        else:
            self.on_end_date_cancelled()

    def _finish(self, outcome: Outcome) -> None:
        self.draft = None
        self.last_outcome = outcome
        self._transition(CollectorState.IDLE)
        logger.debug("Draft %s", outcome.value)

    def _transition(self, state: CollectorState) -> None:
        logger.debug("Collector %s -> %s", self.state.value, state.value)
        self.state = state
