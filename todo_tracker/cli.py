"""CLI entry point for todo-tracker."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Callable, Iterator
from datetime import date, datetime, timezone
from pathlib import Path
from typing import TextIO

from .collector import DateRangeCollector, DatePurpose, Outcome
from .dates import REFERENCE_OFFSET, parse_day
from .markdown import load_store, write_tasks_file
from .models import Bucket, Category, Task, ValidationError
from .store import TaskStore

HELP_TEXT = """\
Commands:
  add <text> [@Category]         create a task, then pick start and end dates
  edit <id> [<text>] [@Category] change a task and pick its dates again
                                 (@none clears the category)
  toggle <id>                    mark a task done / not done
  delete <id>                    remove a task
  list                           show doing, overdue and done tasks
  save                           write the tasks file now
  help                           show this help
  quit                           leave (the tasks file is saved on exit)

Date prompts take YYYY-MM-DD. Press Enter for the suggested date,
or type 'c' to cancel.
Categories: """ + ", ".join(c.value for c in Category)

CANCEL_WORDS = {"c", "cancel"}
NO_CATEGORY_WORDS = {"none", "-"}


class PromptDatePicker:
    """DatePicker that asks for dates on the terminal.

    Answers are delivered straight back to the bound collector, so a whole
    create or edit runs inside the collector's ``begin`` call.
    """

    def __init__(
        self,
        read_line: Callable[[str], str | None],
        write: Callable[[str], None],
        reference_day: Callable[[], date],
    ) -> None:
        self.read_line = read_line
        self.write = write
        self.reference_day = reference_day
        self.collector: DateRangeCollector | None = None

    def request_date(self, purpose: DatePurpose, default: date | None) -> None:
        if self.collector is None:
            raise RuntimeError("PromptDatePicker is not bound to a collector")
        suggested = default or self.reference_day()
        while True:
            raw = self.read_line(f"{purpose.value} date [{suggested.isoformat()}]: ")
            if raw is None or raw.strip().lower() in CANCEL_WORDS:
                self.collector.on_date_cancelled(purpose)
                return
            if not raw.strip():
                chosen = suggested
                break
            try:
                chosen = parse_day(raw)
            except ValidationError as e:
                self.write(f"error: {e}")
                continue
            break
        self.collector.on_date_chosen(purpose, chosen)


class Shell:
    """Line-oriented front end over a TaskStore."""

    def __init__(
        self,
        store: TaskStore,
        lines: Iterator[str],
        out: TextIO,
        tasks_path: Path | None = None,
    ) -> None:
        self.store = store
        self.lines = lines
        self.out = out
        self.tasks_path = tasks_path
        self.picker = PromptDatePicker(self.read_line, self.write, store.reference_day)
        self.collector = DateRangeCollector(store, self.picker)
        self.picker.collector = self.collector

    def write(self, text: str = "") -> None:
        print(text, file=self.out)

    def read_line(self, prompt: str) -> str | None:
        self.out.write(prompt)
        self.out.flush()
        line = next(self.lines, None)
        if line is None:
            return None
        return line.rstrip("\r\n")

    def run(self) -> None:
        self.store.recompute_overdue()
        self.write("Type 'help' for commands.")
        while True:
            line = self.read_line("> ")
            if line is None:
                break
            line = line.strip()
            if not line:
                continue
            if not self.dispatch(line):
                break
            self.store.recompute_overdue()

    def dispatch(self, line: str) -> bool:
        """Run one command. Returns False when the session should end."""
        command, _, rest = line.partition(" ")
        command = command.lower()
        rest = rest.strip()
        try:
            if command in ("quit", "exit"):
                return False
            elif command == "help":
                self.write(HELP_TEXT)
            elif command == "list":
                self.show()
            elif command == "add":
                self.add(rest)
            elif command == "edit":
                self.edit(rest)
            elif command == "toggle":
                self.toggle(rest)
            elif command == "delete":
                self.delete(rest)
            elif command == "save":
                self.save()
            else:
                self.write(f"unknown command: {command} (try 'help')")
        except ValidationError as e:
            self.write(f"error: {e}")
        return True

    def add(self, rest: str) -> None:
        text, category, _ = _split_category(rest)
        self.collector.begin(text, category)
        self._report("added")

    def edit(self, rest: str) -> None:
        task_id, _, tail = rest.partition(" ")
        if not task_id:
            self.write("usage: edit <id> [<text>] [@Category]")
            return
        text, category, clear = _split_category(tail)
        draft = self.collector.begin_edit(
            task_id, text or None, category, clear_category=clear
        )
        if draft is None:
            self.write(f"no such task: {task_id}")
            return
        self._report("updated")

    def toggle(self, task_id: str) -> None:
        task = self.store.toggle_completed(task_id)
        if task is None:
            self.write(f"no such task: {task_id}")
            return
        self.write(f"{task.id} is now {task.bucket.value}")

    def delete(self, task_id: str) -> None:
        if not self.store.delete_task(task_id):
            self.write(f"no such task: {task_id}")
            return
        self.write(f"deleted {task_id}")

    def save(self) -> None:
        if self.tasks_path is None:
            self.write("no tasks file configured")
            return
        if write_tasks_file(self.tasks_path, self.store):
            self.write(f"saved {self.tasks_path}")
        else:
            self.write("nothing to save")

    def show(self) -> None:
        buckets = self.store.observe()
        for bucket in Bucket:
            tasks = buckets[bucket]
            self.write(f"{bucket.heading} ({len(tasks)})")
            if not tasks:
                self.write("  (none)")
            for task in tasks:
                self.write("  " + format_task(task))

    def _report(self, verb: str) -> None:
        outcome = self.collector.last_outcome
        if outcome is Outcome.COMMITTED and self.collector.last_task is not None:
            self.write(f"{verb} " + format_task(self.collector.last_task))
        elif outcome is Outcome.CANCELLED:
            self.write("cancelled")


def format_task(task: Task) -> str:
    mark = "x" if task.completed else " "
    parts = [f"[{mark}] {task.id}  {task.text}"]
    if task.category is not None:
        parts.append(f"@{task.category.value}")
    if task.has_dates:
        parts.append(f"{task.start_date} .. {task.end_date}")
    if task.overdue:
        parts.append("! overdue")
    return "  ".join(parts)


def _split_category(rest: str) -> tuple[str, Category | None, bool]:
    """Split ``@Category`` tokens off a command argument.

    Returns the remaining text, the category, and whether ``@none`` asked
    for the category to be cleared.
    """
    category: Category | None = None
    clear = False
    kept: list[str] = []
    for word in rest.split():
        if word.startswith("@") and len(word) > 1:
            if word[1:].lower() in NO_CATEGORY_WORDS:
                category, clear = None, True
            else:
                category, clear = Category.parse(word[1:]), False
        else:
            kept.append(word)
    return " ".join(kept), category, clear


def _pinned_clock(day: date) -> Callable[[], datetime]:
    pinned = datetime(day.year, day.month, day.day, 12, tzinfo=timezone(REFERENCE_OFFSET))
    return lambda: pinned


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="todo-tracker",
        description="Personal task tracker: doing, overdue and done tasks by date window.",
    )
    parser.add_argument(
        "tasks_file",
        type=str,
        nargs="?",
        default=None,
        help="TASKS.md snapshot to load and save (or set TODO_TRACKER_FILE env var)",
    )
    parser.add_argument(
        "--now",
        type=parse_day,
        default=None,
        help="Pin today's date (YYYY-MM-DD) for overdue checks",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--output-json",
        type=str,
        default=None,
        help="Write bucket counts and task ids per bucket to a JSON file on exit",
    )

    args = parser.parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(message)s",
    )

    raw_path = args.tasks_file or os.environ.get("TODO_TRACKER_FILE")
    tasks_path = Path(raw_path) if raw_path else None

    store = TaskStore(clock=_pinned_clock(args.now)) if args.now else TaskStore()

    if tasks_path is not None and tasks_path.is_file():
        try:
            load_store(tasks_path, store)
        except (OSError, UnicodeDecodeError) as e:
            logging.error("Could not read %s: %s", tasks_path, e)
            return 1

    shell = Shell(store, iter(sys.stdin), sys.stdout, tasks_path)
    shell.run()

    if tasks_path is not None:
        try:
            write_tasks_file(tasks_path, store)
        except OSError as e:
            logging.error("Could not write %s: %s", tasks_path, e)
            return 1

    if args.output_json:
        buckets = store.observe()
        out: dict = {"counts": {bucket.value: n for bucket, n in store.counts().items()}}
        out.update({bucket.value: [t.id for t in buckets[bucket]] for bucket in Bucket})
        try:
            Path(args.output_json).write_text(json.dumps(out, indent=2))
        except OSError as e:
            logging.error("Could not write %s: %s", args.output_json, e)
            return 1
        logging.info("Results written to %s", args.output_json)

    return 0


if __name__ == "__main__":
    sys.exit(main())
