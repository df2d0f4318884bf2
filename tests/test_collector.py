"""Tests for the start/end date collection state machine.

The date picker is a MagicMock, so each test drives the picker callbacks
by hand the way an asynchronous UI would.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from unittest.mock import MagicMock, call

import pytest

from todo_tracker.collector import (
    CollectorState,
    DatePicker,
    DatePurpose,
    DateRangeCollector,
    Outcome,
)
from todo_tracker.models import Category, ValidationError
from todo_tracker.store import TaskStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _collector(store: TaskStore | None = None) -> tuple[DateRangeCollector, MagicMock]:
    picker = MagicMock(spec=DatePicker)
    return DateRangeCollector(store or TaskStore(), picker), picker


# ===================================================================
# Create flow
# ===================================================================


class TestCreate:
    def test_begin_asks_for_start_date(self):
        collector, picker = _collector()
        collector.begin("Buy milk", None)

        assert collector.state is CollectorState.AWAITING_START
        assert collector.draft.text == "Buy milk"
        picker.request_date.assert_called_once_with(DatePurpose.START, None)

    def test_start_date_asks_for_end_date(self):
        collector, picker = _collector()
        collector.begin("Buy milk", None)
        collector.on_start_date_chosen(date(2024, 5, 1))

        assert collector.state is CollectorState.AWAITING_END
        assert collector.draft.start == date(2024, 5, 1)
        assert picker.request_date.call_args_list == [
            call(DatePurpose.START, None),
            call(DatePurpose.END, None),
        ]

    def test_full_flow_creates_task(self):
        collector, _ = _collector()
        collector.begin("Buy milk", Category.HEALTH)
        collector.on_start_date_chosen(date(2024, 5, 1))
        task = collector.on_end_date_chosen(date(2024, 5, 3))

        assert collector.state is CollectorState.IDLE
        assert collector.draft is None
        assert collector.last_outcome is Outcome.COMMITTED
        assert collector.last_task is task
        assert collector.store.tasks == (task,)
        assert task.text == "Buy milk"
        assert task.category is Category.HEALTH
        assert (task.start_date, task.end_date) == (date(2024, 5, 1), date(2024, 5, 3))
        assert task.completed is False
        assert task.overdue is False

    def test_same_day_range_is_accepted(self):
        collector, _ = _collector()
        collector.begin("Dentist", None)
        collector.on_start_date_chosen(date(2024, 5, 1))
        task = collector.on_end_date_chosen(date(2024, 5, 1))
        assert task is not None

    def test_picked_instants_are_normalized(self):
        collector, _ = _collector()
        collector.begin("Late call", None)
        collector.on_start_date_chosen(datetime(2024, 5, 9, 18, 0, tzinfo=timezone.utc))
        task = collector.on_end_date_chosen(datetime(2024, 5, 10, 1, 0, tzinfo=timezone.utc))

        assert task.start_date == date(2024, 5, 10)
        assert task.end_date == date(2024, 5, 10)

    def test_text_is_trimmed(self):
        collector, _ = _collector()
        collector.begin("  Read book  ", None)
        assert collector.draft.text == "Read book"


# ===================================================================
# Validation
# ===================================================================


class TestValidation:
    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_name_is_rejected_before_prompting(self, text):
        collector, picker = _collector()
        with pytest.raises(ValidationError, match="empty task name"):
            collector.begin(text, None)
        assert collector.state is CollectorState.IDLE
        picker.request_date.assert_not_called()

    def test_end_before_start_discards_draft(self):
        collector, _ = _collector()
        collector.begin("Call bob", None)
        collector.on_start_date_chosen(date(2024, 5, 10))

        with pytest.raises(ValidationError, match="end before start"):
            collector.on_end_date_chosen(date(2024, 5, 5))

        assert len(collector.store) == 0
        assert collector.state is CollectorState.IDLE
        assert collector.draft is None
        assert collector.last_outcome is Outcome.REJECTED

    def test_rejected_edit_leaves_task_unchanged(self):
        store = TaskStore()
        task = store.create_task("Call bob", None, date(2024, 5, 1), date(2024, 5, 2))
        collector, _ = _collector(store)

        collector.begin_edit(task.id, "Call Bob back")
        collector.on_start_date_chosen(date(2024, 5, 10))
        with pytest.raises(ValidationError):
            collector.on_end_date_chosen(date(2024, 5, 9))

        assert task.text == "Call bob"
        assert (task.start_date, task.end_date) == (date(2024, 5, 1), date(2024, 5, 2))


# ===================================================================
# Cancellation and out-of-order callbacks
# ===================================================================


class TestCancellation:
    def test_cancel_start_returns_to_idle(self):
        collector, picker = _collector()
        collector.begin("Walk", None)
        collector.on_start_date_cancelled()

        assert collector.state is CollectorState.IDLE
        assert collector.draft is None
        assert collector.last_outcome is Outcome.CANCELLED
        assert picker.request_date.call_count == 1
        assert len(collector.store) == 0

    def test_cancel_end_returns_to_idle(self):
        collector, _ = _collector()
        collector.begin("Walk", None)
        collector.on_start_date_chosen(date(2024, 5, 1))
        collector.on_end_date_cancelled()

        assert collector.state is CollectorState.IDLE
        assert collector.last_outcome is Outcome.CANCELLED
        assert len(collector.store) == 0

    def test_callbacks_in_wrong_state_are_ignored(self):
        collector, picker = _collector()
        assert collector.on_end_date_chosen(date(2024, 5, 1)) is None
        collector.on_start_date_chosen(date(2024, 5, 1))
        collector.on_start_date_cancelled()
        collector.on_end_date_cancelled()
        assert collector.state is CollectorState.IDLE
        picker.request_date.assert_not_called()

        collector.begin("Swim", None)
        collector.on_start_date_chosen(date(2024, 5, 1))
        collector.on_start_date_chosen(date(2024, 4, 1))
        collector.on_start_date_cancelled()
        assert collector.state is CollectorState.AWAITING_END
        assert collector.draft.start == date(2024, 5, 1)

    def test_purpose_dispatch(self):
        collector, _ = _collector()
        collector.begin("Swim", None)
        collector.on_date_chosen(DatePurpose.START, date(2024, 5, 1))
        task = collector.on_date_chosen(DatePurpose.END, date(2024, 5, 2))
        assert task.end_date == date(2024, 5, 2)

        collector.begin("Bike", None)
        collector.on_date_cancelled(DatePurpose.START)
        assert collector.last_outcome is Outcome.CANCELLED

    def test_reentry_overwrites_in_flight_draft(self):
        collector, _ = _collector()
        collector.begin("First", None)
        collector.on_start_date_chosen(date(2024, 5, 1))

        collector.begin("Second", Category.MOVIE)
        assert collector.state is CollectorState.AWAITING_START
        collector.on_start_date_chosen(date(2024, 6, 1))
        collector.on_end_date_chosen(date(2024, 6, 2))

        assert [t.text for t in collector.store.tasks] == ["Second"]
        assert collector.store.tasks[0].start_date == date(2024, 6, 1)


# ===================================================================
# Edit flow
# ===================================================================


class TestEdit:
    def test_begin_edit_prepopulates_draft(self):
        store = TaskStore()
        task = store.create_task("Gym", Category.SPORT, date(2024, 5, 1), date(2024, 5, 2))
        collector, picker = _collector(store)

        draft = collector.begin_edit(task.id)

        assert draft.text == "Gym"
        assert draft.category is Category.SPORT
        assert draft.editing_task_id == task.id
        picker.request_date.assert_called_once_with(DatePurpose.START, date(2024, 5, 1))

        collector.on_start_date_chosen(date(2024, 5, 3))
        assert picker.request_date.call_args == call(DatePurpose.END, date(2024, 5, 2))

    def test_edit_commits_in_place(self):
        store = TaskStore()
        task = store.create_task("Gym", Category.SPORT, date(2024, 5, 1), date(2024, 5, 2))
        task.completed = True
        collector, _ = _collector(store)

        collector.begin_edit(task.id, "Gym twice", Category.HEALTH)
        collector.on_start_date_chosen(date(2024, 5, 3))
        edited = collector.on_end_date_chosen(date(2024, 5, 4))

        assert edited is task
        assert len(store) == 1
        assert task.text == "Gym twice"
        assert task.category is Category.HEALTH
        assert (task.start_date, task.end_date) == (date(2024, 5, 3), date(2024, 5, 4))
        assert task.completed is True

    def test_begin_with_editing_id_edits(self):
        store = TaskStore()
        task = store.create_task("Old", None, date(2024, 5, 1), date(2024, 5, 2))
        collector, _ = _collector(store)

        collector.begin("New", None, editing_task_id=task.id)
        collector.on_start_date_chosen(date(2024, 5, 1))
        collector.on_end_date_chosen(date(2024, 5, 2))

        assert [t.text for t in store.tasks] == ["New"]

    def test_begin_edit_can_clear_category(self):
        store = TaskStore()
        task = store.create_task("Gym", Category.SPORT, date(2024, 5, 1), date(2024, 5, 2))
        collector, _ = _collector(store)

        draft = collector.begin_edit(task.id, clear_category=True)
        assert draft.category is None
        collector.on_start_date_chosen(date(2024, 5, 1))
        collector.on_end_date_chosen(date(2024, 5, 2))

        assert task.text == "Gym"
        assert task.category is None

    def test_begin_edit_unknown_task(self):
        collector, picker = _collector()
        assert collector.begin_edit("42") is None
        assert collector.state is CollectorState.IDLE
        picker.request_date.assert_not_called()

    def test_task_deleted_mid_edit_is_ignored(self):
        store = TaskStore()
        task = store.create_task("Gone soon", None, date(2024, 5, 1), date(2024, 5, 2))
        collector, _ = _collector(store)

        collector.begin_edit(task.id)
        collector.on_start_date_chosen(date(2024, 5, 1))
        store.delete_task(task.id)
        result = collector.on_end_date_chosen(date(2024, 5, 2))

        assert result is None
        assert len(store) == 0
        assert collector.state is CollectorState.IDLE
