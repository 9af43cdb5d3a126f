"""Data models for scraped timetable data."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Group:
    """Study group listed on the schedule index page."""
    name: str
    url: str


@dataclass(frozen=True)
class Course:
    """Single scheduled session from a group timetable."""
    name: str
    type: str
    date_str: str  # e.g. "04.03.2026 (Mittwoch)"
    start_time: str  # "08:15"
    end_time: str  # "09:45"
    room: str  # "WF-EX-7/3"
    group_str: str


@dataclass
class ScheduleFetchResult:
    """Outcome of fetching one group's schedule in a batch."""
    schedule_id: str
    courses: list[Course]
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None
