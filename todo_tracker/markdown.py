"""Read and write TASKS.md-style snapshots of a task store."""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path

from .dates import parse_day
from .models import Bucket, Category, Task, ValidationError
from .store import TaskStore

logger = logging.getLogger(__name__)

# Regex patterns
RE_BUCKET_HEADING = re.compile(r"^##\s+(.+)$")
RE_TASK_HEADING = re.compile(r"^###\s+(.+)$")
RE_TASK_ID = re.compile(r"^<!--\s*id:\s*(\S+)\s*-->$")
RE_CATEGORY = re.compile(r"^-\s+\*\*Category:\*\*\s*(.*?)\s*$")
RE_START = re.compile(r"^-\s+\*\*Start:\*\*\s*(\S+)\s*$")
RE_END = re.compile(r"^-\s+\*\*End:\*\*\s*(\S+)\s*$")

_BUCKET_ALIASES = {
    "doing": Bucket.DOING,
    "todo": Bucket.DOING,
    "to do": Bucket.DOING,
    "in progress": Bucket.DOING,
    "in-progress": Bucket.DOING,
    "overdue": Bucket.OVERDUE,
    "late": Bucket.OVERDUE,
    "done": Bucket.DONE,
    "completed": Bucket.DONE,
}


def parse_tasks_md(content: str) -> list[Task]:
    """Parse a snapshot string into tasks, flagged by the section they sit in.

    Tasks without an id comment get an empty id; the store assigns one.
    """
    tasks: list[Task] = []
    current_bucket = Bucket.DOING
    current_task: _TaskBuilder | None = None

    for line in content.splitlines():
        m = RE_BUCKET_HEADING.match(line)
        if m:
            if current_task:
                tasks.append(current_task.build())
                current_task = None
            current_bucket = _normalize_bucket(m.group(1).strip())
            continue

        m = RE_TASK_HEADING.match(line)
        if m:
            if current_task:
                tasks.append(current_task.build())
            text = m.group(1).strip()
            if not text:
                logger.warning("Skipping task with an empty name")
                current_task = None
                continue
            current_task = _TaskBuilder(text=text, bucket=current_bucket)
            continue

        if current_task is not None:
            current_task.feed_line(line.strip())

    if current_task is not None:
        tasks.append(current_task.build())

    return tasks


def read_tasks_file(path: str | Path) -> list[Task]:
    p = Path(path)
    tasks = parse_tasks_md(p.read_text(encoding="utf-8"))
    logger.info("Loaded %d task(s) from %s", len(tasks), p)
    return tasks


def load_store(path: str | Path, store: TaskStore) -> TaskStore:
    """Add every task in a snapshot file to ``store``."""
    for task in read_tasks_file(path):
        store.add(task)
    return store


def render_tasks_md(store: TaskStore) -> str:
    lines = ["# Tasks", ""]
    for bucket in Bucket:
        lines.append(f"## {bucket.heading}")
        lines.append("")
        for task in store.list_by(bucket):
            lines.append(f"### {task.text}")
            lines.append(f"<!-- id: {task.id} -->")
            if task.category is not None:
                lines.append(f"- **Category:** {task.category.value}")
            if task.start_date is not None:
                lines.append(f"- **Start:** {task.start_date.isoformat()}")
            if task.end_date is not None:
                lines.append(f"- **End:** {task.end_date.isoformat()}")
            lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n"


def write_tasks_file(path: str | Path, store: TaskStore) -> bool:
    """Write the store to ``path``.

    Returns:
        True if the file was written, False if it already held this content.
    """
    p = Path(path)
    content = render_tasks_md(store)
    if p.is_file() and p.read_text(encoding="utf-8") == content:
        logger.debug("Snapshot %s unchanged", p)
        return False
    p.write_text(content, encoding="utf-8")
    logger.info("Saved %d task(s) to %s", len(store), p)
    return True


def _normalize_bucket(raw: str) -> Bucket:
    bucket = _BUCKET_ALIASES.get(raw.lower().strip())
    if bucket is None:
        logger.warning("Unknown section '%s'; treating its tasks as doing", raw)
        return Bucket.DOING
    return bucket


class _TaskBuilder:
    """Accumulates metadata lines for a single task block and builds a Task."""

    def __init__(self, text: str, bucket: Bucket) -> None:
        self.text = text
        self.bucket = bucket
        self.task_id = ""
        self.category: Category | None = None
        self.start: date | None = None
        self.end: date | None = None

    def feed_line(self, line: str) -> None:
        m = RE_TASK_ID.match(line)
        if m:
            self.task_id = m.group(1)
            return

        m = RE_CATEGORY.match(line)
        if m:
            try:
                self.category = Category.parse(m.group(1))
            except ValidationError as e:
                logger.warning("Task '%s': %s; dropping category", self.text, e)
            return

        m = RE_START.match(line)
        if m:
            self.start = self._parse_date(m.group(1))
            return

        m = RE_END.match(line)
        if m:
            self.end = self._parse_date(m.group(1))

    def _parse_date(self, raw: str) -> date | None:
        try:
            return parse_day(raw)
        except ValidationError as e:
            logger.warning("Task '%s': %s; dropping date", self.text, e)
            return None

    def build(self) -> Task:
        start, end = self.start, self.end
        if (start is None) != (end is None):
            logger.warning("Task '%s' has only one of start/end; dropping both", self.text)
            start = end = None
        elif start is not None and end is not None and end < start:
            logger.warning("Task '%s' ends before it starts; dropping both dates", self.text)
            start = end = None
        return Task(
            id=self.task_id,
            text=self.text,
            category=self.category,
            start_date=start,
            end_date=end,
            completed=self.bucket is not Bucket.DOING,
            overdue=self.bucket is Bucket.OVERDUE,
        )
