"""File cache for scraped group schedules."""
import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional

from scraper.models import Course

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".faliactl_cache"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    """On-disk cache record for one schedule."""
    timestamp: datetime
    courses: List[Course]


class ScheduleCache:
    """
    TTL cache of course lists, one JSON file per schedule identifier.

    Files are read and written without locking; concurrent writers race and
    the last one wins.
    """

    CACHE_DURATION = timedelta(hours=12)

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        cache_duration: timedelta = CACHE_DURATION,
        clock: Callable[[], datetime] = _utcnow
    ):
        """
        Initialize the cache.

        Args:
            cache_dir: Directory holding cache files (default: ~/.faliactl_cache)
            cache_duration: How long an entry stays valid (default: 12 hours)
            clock: Returns the current timezone-aware time
        """
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir else DEFAULT_CACHE_DIR
        self.cache_duration = cache_duration
        self.clock = clock

    def cache_path(self, schedule_id: str) -> Path:
        """Return the cache file path, e.g. "161902.html" -> "161902.html.json"."""
        base = os.path.basename(schedule_id.rstrip('/')) or 'index'
        return self.cache_dir / f"{base}.json"

    def is_valid(self, entry: CacheEntry, now: Optional[datetime] = None) -> bool:
        """Check whether an entry is still within the cache duration."""
        now = now or self.clock()
        return now - entry.timestamp <= self.cache_duration

    def read(self, schedule_id: str) -> Optional[List[Course]]:
        """
        Read cached courses for a schedule.

        Args:
            schedule_id: Schedule document identifier

        Returns:
            Cached courses, or None if missing, unreadable or expired
        """
        path = self.cache_path(schedule_id)

        try:
            data = json.loads(path.read_text(encoding='utf-8'))
            entry = self._dict_to_entry(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"Ignoring unreadable cache file {path}: {e}")
            return None

        if not self.is_valid(entry):
            logger.debug(f"Cache for {schedule_id} expired at {entry.timestamp}")
            return None

        return entry.courses

    def write(self, schedule_id: str, courses: List[Course]) -> None:
        """
        Store courses for a schedule with the current timestamp.

        Write failures are logged and otherwise ignored.
        """
        path = self.cache_path(schedule_id)
        entry = CacheEntry(timestamp=self.clock(), courses=list(courses))

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(self._entry_to_dict(entry), indent=2, ensure_ascii=False),
                encoding='utf-8'
            )
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not write schedule cache {path}: {e}")
            return

        logger.info(f"Cached {len(courses)} courses for {schedule_id}")

    def _dict_to_entry(self, data: dict) -> CacheEntry:
        timestamp = datetime.fromisoformat(data['timestamp'])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return CacheEntry(
            timestamp=timestamp,
            courses=[Course(**item) for item in data['courses']]
        )

    def _entry_to_dict(self, entry: CacheEntry) -> dict:
        return {
            'timestamp': entry.timestamp.isoformat(),
            'courses': [asdict(course) for course in entry.courses]
        }
