"""Data models for commute planning."""
from dataclasses import dataclass
from typing import Optional

from scraper.models import Course
from transit.models import Journey


@dataclass
class ResolvedCommute:
    """Commute to the first class of one day: a journey or the error that prevented it."""
    date: str
    course: Course
    journey: Optional[Journey] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.journey is not None
