"""Timetable scraper for the Ostfalia schedule website."""
import logging
from typing import Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from scraper.models import Course, Group, ScheduleFetchResult
from scraper.retrying_fetcher import RetryingFetcher
from storage.schedule_cache import ScheduleCache

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class ScheduleParseError(Exception):
    """Schedule document could not be parsed at all."""


def course_key(course: Course) -> str:
    """Build the equality key used to detect duplicate course entries."""
    return f"{course.name}|{course.date_str}|{course.start_time}|{course.end_time}"


def deduplicate_courses(courses: Iterable[Course]) -> List[Course]:
    """
    Drop repeated courses, keeping the first occurrence in input order.

    The same popover can be listed more than once when a session spans
    multiple weeks.
    """
    seen = set()
    unique = []

    for course in courses:
        key = course_key(course)
        if key not in seen:
            seen.add(key)
            unique.append(course)

    return unique


def parse_time_range(time_text: str) -> Tuple[str, str]:
    """
    Parse a time range such as "08:15 Uhr - 09:45 Uhr".

    Returns:
        Tuple of (start_time, end_time); both empty if the text is not a range
    """
    parts = time_text.split('-')
    if len(parts) != 2:
        return '', ''

    start_time = parts[0].replace('Uhr', '').strip()
    end_time = parts[1].replace('Uhr', '').strip()
    return start_time, end_time


def parse_schedule(html_content: str) -> List[Course]:
    """
    Parse course sessions out of a group schedule page.

    Each session is a div.event-popover with a header (title, type) and
    content parts tagged by their icon: clock (date and time range),
    map-marker (room) and group/info-circle (participating groups).
    Sessions without a date, start and end time are skipped.

    Args:
        html_content: Schedule page HTML

    Returns:
        Deduplicated list of Course objects

    Raises:
        ScheduleParseError: If the document is not parseable markup
    """
    try:
        soup = BeautifulSoup(html_content, 'html.parser')
    except ParserRejectedMarkup as e:
        raise ScheduleParseError(f"Could not parse schedule HTML: {e}") from e

    if soup.find() is None:
        raise ScheduleParseError("Schedule document contains no markup")

    courses = []
    for element in soup.select('div.event-popover'):
        course = _parse_course_element(element)
        if course:
            courses.append(course)
        else:
            logger.debug("Skipping session block without complete time info")

    unique = deduplicate_courses(courses)
    logger.info(f"Parsed {len(unique)} courses ({len(courses) - len(unique)} duplicates dropped)")
    return unique


def _text(element, selector: str) -> str:
    found = element.select_one(selector)
    return found.get_text(strip=True) if found else ''


def _parse_course_element(element) -> Optional[Course]:
    header = element.select_one('.header')
    name = _text(header, 'p.title') if header else ''
    course_type = _text(header, 'p.description') if header else ''

    date_str = start_time = end_time = room = group_str = ''

    for part in element.select('.content .part'):
        icon = part.find('img')
        src = icon.get('src', '') if icon else ''

        if 'clock' in src:
            date_str = _text(part, '.item p.title')
            start_time, end_time = parse_time_range(_text(part, '.item p.description'))
        elif 'map-marker' in src:
            room = _text(part, '.item p.title')
        elif 'group' in src or 'info-circle' in src:
            groups = [_text(item, 'p.title') for item in part.select('.item')]
            group_str = ', '.join(groups)

    if not (date_str and start_time and end_time):
        return None

    return Course(
        name=name,
        type=course_type,
        date_str=date_str,
        start_time=start_time,
        end_time=end_time,
        room=room,
        group_str=group_str
    )


class OstfaliaScheduleScraper:
    """Scraper for Ostfalia group timetables."""

    BASE_URL = "https://intranet-i.ostfalia.de/fips/stundenplan"
    INDEX_PAGE = "schedule.html"

    def __init__(
        self,
        base_url: str = BASE_URL,
        fetcher: Optional[RetryingFetcher] = None,
        cache: Optional[ScheduleCache] = None,
        timeout: int = 10
    ):
        """
        Initialize the schedule scraper.

        Args:
            base_url: Root URL of the schedule site
            fetcher: HTTP fetcher (default: RetryingFetcher with a browser user agent)
            cache: Schedule cache (default: ScheduleCache in the home directory)
            timeout: HTTP request timeout in seconds when no fetcher is given
        """
        self.base_url = base_url.rstrip('/')
        self.fetcher = fetcher or RetryingFetcher(
            timeout=timeout, user_agent=BROWSER_USER_AGENT
        )
        self.cache = cache or ScheduleCache()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def fetch_groups(self) -> List[Group]:
        """
        Fetch all study groups listed on the schedule index page.

        Returns:
            List of Group objects in page order
        """
        response = self.fetcher.fetch(self._url(self.INDEX_PAGE))
        soup = BeautifulSoup(response.text, 'html.parser')

        groups = []
        for option in soup.select('select#group option'):
            value = option.get('value')
            if value:
                groups.append(Group(name=option.get_text(strip=True), url=value))

        logger.info(f"Found {len(groups)} study groups")
        return groups

    def fetch_schedule(self, schedule_id: str) -> List[Course]:
        """
        Fetch the courses of one group, serving unexpired cache entries first.

        Args:
            schedule_id: Schedule document name, e.g. "161902.html"

        Returns:
            List of Course objects

        Raises:
            requests.RequestException: If the page cannot be fetched
            ScheduleParseError: If the page cannot be parsed
        """
        cached = self.cache.read(schedule_id)
        if cached is not None:
            logger.info(f"Using cached schedule for {schedule_id} ({len(cached)} courses)")
            return cached

        logger.info(f"Fetching schedule {schedule_id}")
        response = self.fetcher.fetch(self._url(schedule_id))
        courses = parse_schedule(response.text)

        self.cache.write(schedule_id, courses)
        return courses

    def fetch_schedules(self, schedule_ids: Iterable[str]) -> List[ScheduleFetchResult]:
        """
        Fetch several group schedules one after another.

        A failing group is recorded in its result and does not stop the others.

        Args:
            schedule_ids: Schedule document names

        Returns:
            One ScheduleFetchResult per schedule, in input order
        """
        results = []

        for schedule_id in schedule_ids:
            try:
                courses = self.fetch_schedule(schedule_id)
                results.append(ScheduleFetchResult(schedule_id=schedule_id, courses=courses))
            except Exception as e:
                logger.warning(f"Failed to fetch schedule '{schedule_id}': {e}")
                results.append(
                    ScheduleFetchResult(schedule_id=schedule_id, courses=[], error=e)
                )

        return results
