"""Resolution of class sessions into transit commutes."""
import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from processor.campus_destinations import CampusDestinationMap
from processor.models import ResolvedCommute
from scraper.models import Course
from transit.hafas_client import HafasTransitClient
from transit.models import Journey

logger = logging.getLogger(__name__)

LOCAL_TZ = ZoneInfo("Europe/Berlin")
COURSE_DATETIME_FORMAT = '%d.%m.%Y %H:%M'


class CourseTimeError(ValueError):
    """Course date or start time cannot be parsed."""


class NoRouteFoundError(Exception):
    """Routing API returned no journeys."""


def course_date(course: Course) -> str:
    """Return the bare date of a course, "04.03.2026 (Mittwoch)" -> "04.03.2026"."""
    parts = course.date_str.split()
    return parts[0] if parts else ''


def parse_course_start(course: Course, tz: ZoneInfo = LOCAL_TZ) -> datetime:
    """
    Parse the start of a course session as a timezone-aware datetime.

    Raises:
        CourseTimeError: If date or start time are malformed
    """
    text = f"{course_date(course)} {course.start_time}"
    try:
        return datetime.strptime(text, COURSE_DATETIME_FORMAT).replace(tzinfo=tz)
    except ValueError as e:
        raise CourseTimeError(f"Could not parse class start time '{text}': {e}") from e


def select_best_journey(journeys: List[Journey], deadline: datetime) -> Journey:
    """
    Pick the journey to take for an arrival deadline.

    Journeys come ascending by arrival, so the last one leaves home latest.
    The deadline is only honoured on a best-effort basis upstream: if the
    last journey still arrives after it, the first (earliest) one is used.

    Raises:
        NoRouteFoundError: If there are no journeys
    """
    if not journeys:
        raise NoRouteFoundError("no routes found")

    best = journeys[-1]
    if best.final_arrival > deadline:
        logger.info(
            f"Latest journey arrives {best.final_arrival:%H:%M} after deadline "
            f"{deadline:%H:%M}, falling back to earliest journey"
        )
        best = journeys[0]
    return best


class JourneyResolver:
    """Plans commutes from the saved home station to class."""

    def __init__(
        self,
        transit_client: HafasTransitClient,
        destinations: Optional[CampusDestinationMap] = None,
        tz: ZoneInfo = LOCAL_TZ,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize the resolver.

        Args:
            transit_client: Routing API client
            destinations: Room to campus station rules (default: Ostfalia campuses)
            tz: Time zone of the schedule
            clock: Returns the current aware time (default: now in tz)
        """
        self.transit_client = transit_client
        self.destinations = destinations or CampusDestinationMap()
        self.tz = tz
        self.clock = clock or (lambda: datetime.now(self.tz))

    def resolve_commute(
        self,
        home_id: str,
        course: Course,
        destinations: Optional[CampusDestinationMap] = None
    ) -> Journey:
        """
        Find the journey that gets from home to a class in time.

        Args:
            home_id: Home station ID
            course: Class session to reach
            destinations: Overrides the resolver's campus rules

        Returns:
            Selected Journey

        Raises:
            CourseTimeError: If the class start cannot be parsed
            NoRouteFoundError: If the routing API returns no journeys
            TransitApiError: If the routing API call fails
        """
        destination = (destinations or self.destinations).resolve(course.room)
        deadline = parse_course_start(course, self.tz)

        logger.info(
            f"Routing {home_id} -> {destination.name} ({destination.station_id}) "
            f"for '{course.name}' at {deadline.isoformat()}"
        )
        journeys = self.transit_client.fetch_journeys_by_arrival(
            home_id, destination.station_id, deadline
        )
        return select_best_journey(journeys, deadline)

    def first_classes_per_day(
        self,
        courses: Iterable[Course],
        saved_course_names: Optional[Iterable[str]] = None,
        days: int = 7,
        now: Optional[datetime] = None
    ) -> List[Tuple[str, Course]]:
        """
        Select the first upcoming class of each day within the planning window.

        The window runs from now until midnight `days` days from today.
        Courses with unparseable times are skipped.

        Args:
            courses: Candidate courses, in any order
            saved_course_names: Only consider these course names (all if None, none if empty)
            days: Number of days to plan
            now: Current aware time (default: clock)

        Returns:
            List of (date, course) tuples in chronological order
        """
        now = now or self.clock()
        today_start = now.astimezone(self.tz).replace(hour=0, minute=0, second=0, microsecond=0)
        horizon = today_start + timedelta(days=days)
        saved = None if saved_course_names is None else set(saved_course_names)

        upcoming = []
        for course in courses:
            if saved is not None and course.name not in saved:
                continue
            try:
                start = parse_course_start(course, self.tz)
            except CourseTimeError as e:
                logger.warning(f"Skipping course '{course.name}': {e}")
                continue
            if now < start < horizon:
                upcoming.append((start, course))

        upcoming.sort(key=lambda item: item[0])

        first_classes = []
        seen_dates = set()
        for _, course in upcoming:
            date = course_date(course)
            if date not in seen_dates:
                seen_dates.add(date)
                first_classes.append((date, course))

        return first_classes

    def plan_commutes(
        self,
        home_id: str,
        courses: Iterable[Course],
        saved_course_names: Optional[Iterable[str]] = None,
        days: int = 7,
        now: Optional[datetime] = None
    ) -> List[ResolvedCommute]:
        """
        Resolve one commute per day, to the first saved class of that day.

        Days are resolved one at a time; a failing day records its error and
        planning continues with the next one.

        Returns:
            List of ResolvedCommute objects in chronological order
        """
        results = []

        for date, course in self.first_classes_per_day(courses, saved_course_names, days, now):
            try:
                journey = self.resolve_commute(home_id, course)
                results.append(ResolvedCommute(date=date, course=course, journey=journey))
            except Exception as e:
                logger.warning(f"Could not resolve commute for {date} ('{course.name}'): {e}")
                results.append(ResolvedCommute(date=date, course=course, error=e))

        resolved = sum(1 for r in results if r.ok)
        logger.info(f"Resolved {resolved} of {len(results)} daily commutes")
        return results


def resolve_route_home(
    transit_client: HafasTransitClient,
    campus_station_id: str,
    home_id: str
) -> Journey:
    """
    Find the next journey from a campus station back home.

    Raises:
        NoRouteFoundError: If the routing API returns no journeys
    """
    journeys = transit_client.fetch_journeys(campus_station_id, home_id)
    if not journeys:
        raise NoRouteFoundError("no routes found")
    return journeys[0]
