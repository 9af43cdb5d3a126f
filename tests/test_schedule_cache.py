"""Unit tests for ScheduleCache."""
import json
from datetime import datetime, timedelta, timezone

import pytest

from scraper.models import Course
from storage.schedule_cache import CacheEntry, ScheduleCache

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def courses():
    """Create sample courses."""
    return [
        Course(
            name="Testing 101",
            type="Vorlesung",
            date_str="24.02.2026 (Dienstag)",
            start_time="10:00",
            end_time="11:30",
            room="WF Exer",
            group_str="DTI 1"
        ),
        Course(
            name="Datenbanken",
            type="Übung",
            date_str="25.02.2026 (Mittwoch)",
            start_time="08:15",
            end_time="09:45",
            room="SZ-2",
            group_str="DTI 1, DTI 2"
        )
    ]


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestScheduleCache:
    """Test cases for ScheduleCache class."""

    def test_read_missing_entry(self, tmp_path):
        """Test reading a schedule that was never cached."""
        assert ScheduleCache(cache_dir=tmp_path).read("12345.html") is None

    def test_write_then_read_round_trip(self, tmp_path, courses):
        """Test written courses are read back unchanged."""
        cache = ScheduleCache(cache_dir=tmp_path)

        cache.write("12345.html", courses)

        assert (tmp_path / "12345.html.json").exists()
        assert cache.read("12345.html") == courses

    def test_creates_cache_directory(self, tmp_path, courses):
        """Test the cache directory is created on first write."""
        cache = ScheduleCache(cache_dir=tmp_path / "nested" / "cache")

        cache.write("12345.html", courses)

        assert cache.read("12345.html") == courses

    def test_file_format(self, tmp_path, courses):
        """Test the file holds a timestamp and the course list."""
        cache = ScheduleCache(cache_dir=tmp_path, clock=FakeClock(NOW))

        cache.write("12345.html", courses)

        data = json.loads((tmp_path / "12345.html.json").read_text(encoding='utf-8'))
        assert datetime.fromisoformat(data['timestamp']) == NOW
        assert data['courses'][0]['name'] == "Testing 101"
        assert data['courses'][1]['date_str'] == "25.02.2026 (Mittwoch)"

    def test_expired_entry_is_ignored(self, tmp_path, courses):
        """Test an entry older than 12 hours is treated as absent."""
        clock = FakeClock(NOW - timedelta(hours=24))
        cache = ScheduleCache(cache_dir=tmp_path, clock=clock)
        cache.write("expired.html", courses)

        clock.now = NOW

        assert cache.read("expired.html") is None

    def test_entry_valid_until_cache_duration(self, tmp_path, courses):
        """Test an entry exactly 12 hours old is still used."""
        clock = FakeClock(NOW - timedelta(hours=12))
        cache = ScheduleCache(cache_dir=tmp_path, clock=clock)
        cache.write("12345.html", courses)

        clock.now = NOW

        assert cache.read("12345.html") == courses

    def test_is_valid(self, tmp_path):
        """Test validity is elapsed time against the cache duration."""
        cache = ScheduleCache(cache_dir=tmp_path)

        fresh = CacheEntry(timestamp=NOW - timedelta(hours=11, minutes=59), courses=[])
        boundary = CacheEntry(timestamp=NOW - timedelta(hours=12), courses=[])
        stale = CacheEntry(timestamp=NOW - timedelta(hours=12, seconds=1), courses=[])

        assert cache.is_valid(fresh, NOW)
        assert cache.is_valid(boundary, NOW)
        assert not cache.is_valid(stale, NOW)

    def test_corrupt_file_is_cache_miss(self, tmp_path):
        """Test an unparseable cache file is treated as absent."""
        (tmp_path / "12345.html.json").write_text("{not json", encoding='utf-8')

        assert ScheduleCache(cache_dir=tmp_path).read("12345.html") is None

    def test_wrong_shape_is_cache_miss(self, tmp_path):
        """Test a JSON file with unexpected fields is treated as absent."""
        (tmp_path / "12345.html.json").write_text(
            json.dumps({'timestamp': NOW.isoformat(), 'courses': [{'title': 'x'}]}),
            encoding='utf-8'
        )

        assert ScheduleCache(cache_dir=tmp_path).read("12345.html") is None

    def test_last_write_wins(self, tmp_path, courses):
        """Test a later write replaces the earlier entry entirely."""
        cache = ScheduleCache(cache_dir=tmp_path)

        cache.write("12345.html", courses)
        cache.write("12345.html", courses[1:])

        assert cache.read("12345.html") == courses[1:]

    def test_cache_path_uses_base_name(self, tmp_path):
        """Test nested schedule identifiers map to their base name."""
        cache = ScheduleCache(cache_dir=tmp_path)

        assert cache.cache_path("plans/161902.html") == tmp_path / "161902.html.json"

    def test_cache_dir_expands_home(self, tmp_path, monkeypatch, courses):
        """Test a cache directory given as ~/... lands under the home directory."""
        monkeypatch.setenv('HOME', str(tmp_path))
        cache = ScheduleCache(cache_dir="~/.faliactl_cache")

        cache.write("12345.html", courses)

        assert cache.cache_dir == tmp_path / ".faliactl_cache"
        assert (tmp_path / ".faliactl_cache" / "12345.html.json").exists()

    def test_write_failure_is_swallowed(self, tmp_path, courses):
        """Test an unwritable cache location does not raise."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding='utf-8')
        cache = ScheduleCache(cache_dir=blocker / "cache")

        cache.write("12345.html", courses)

        assert cache.read("12345.html") is None
