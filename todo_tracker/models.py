"""Data models for tracked tasks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class ValidationError(ValueError):
    """User input that cannot become (or update) a task."""


class Category(str, Enum):
    WORK = "Work"
    SPORT = "Sport"
    MOVIE = "Movie"
    HEALTH = "Health"
    STUDY = "Study"

    @classmethod
    def parse(cls, raw: str | None) -> Category | None:
        """Match a category label case-insensitively. Blank means no category."""
        if raw is None or not raw.strip():
            return None
        lowered = raw.strip().lower()
        for category in cls:
            if category.value.lower() == lowered:
                return category
        raise ValidationError(f"unknown category: {raw.strip()}")


class Bucket(str, Enum):
    DOING = "doing"
    OVERDUE = "overdue"
    DONE = "done"

    @property
    def heading(self) -> str:
        return self.value.capitalize()


@dataclass
class Task:
    """A single task and its date window."""

    id: str
    text: str
    category: Category | None = None
    start_date: date | None = None
    end_date: date | None = None
    completed: bool = False
    overdue: bool = False

    @property
    def has_dates(self) -> bool:
        return self.start_date is not None and self.end_date is not None

    @property
    def bucket(self) -> Bucket:
        if self.overdue:
            return Bucket.OVERDUE
        if self.completed:
            return Bucket.DONE
        return Bucket.DOING
