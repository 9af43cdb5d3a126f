"""Entry point for planning the weekly commute to saved classes."""
import json
import logging
import os
import sys
import time
from typing import Any, Dict, List, Optional, TextIO

from processor.journey_resolver import JourneyResolver
from processor.models import ResolvedCommute
from scraper.ostfalia_schedule import OstfaliaScheduleScraper
from scraper.retrying_fetcher import RetryingFetcher
from storage.schedule_cache import DEFAULT_CACHE_DIR, ScheduleCache
from transit.hafas_client import HafasTransitClient


class JsonFormatter(logging.Formatter):
    """Renders each record as one JSON line, keeping an `error_type` extra if given."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        error_type = getattr(record, 'error_type', None)
        if error_type:
            log_data['error_type'] = error_type

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO', stream: Optional[TextIO] = None) -> None:
    """
    Send all log output as JSON lines to stderr, keeping stdout for the plan.

    Args:
        log_level: Logging level name, unknown names fall back to INFO
        stream: Output stream (default: sys.stderr)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _split(value: Any, separator: str) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in str(value or '').split(separator) if part.strip()]


def load_settings(event: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Read settings from environment variables, overridden by event keys.

    SAVED_GROUP_URLS is comma separated, SAVED_COURSES semicolon separated
    since course names may contain commas.
    """
    event = event or {}

    def setting(key: str, env_name: str, default: Any) -> Any:
        return event.get(key, os.environ.get(env_name, default))

    return {
        'home_station_id': setting('home_station_id', 'HOME_STATION_ID', ''),
        'home_address': setting('home_address', 'HOME_ADDRESS', ''),
        'saved_group_urls': _split(setting('saved_group_urls', 'SAVED_GROUP_URLS', ''), ','),
        'saved_courses': _split(setting('saved_courses', 'SAVED_COURSES', ''), ';'),
        'days_ahead': int(setting('days_ahead', 'DAYS_AHEAD', '7')),
        'timeout_seconds': int(setting('timeout_seconds', 'TIMEOUT_SECONDS', '30')),
        'log_level': setting('log_level', 'LOG_LEVEL', 'INFO'),
        'cache_dir': setting('cache_dir', 'CACHE_DIR', str(DEFAULT_CACHE_DIR)),
        'schedule_base_url': setting(
            'schedule_base_url', 'SCHEDULE_BASE_URL', OstfaliaScheduleScraper.BASE_URL
        ),
        'transit_base_url': setting(
            'transit_base_url', 'TRANSIT_BASE_URL', HafasTransitClient.BASE_URL
        ),
    }


def serialize_commute(result: ResolvedCommute) -> Dict[str, Any]:
    """Convert a resolved commute into a JSON-friendly dict."""
    item = {
        'date': result.date,
        'course': result.course.name,
        'room': result.course.room,
        'start_time': result.course.start_time,
    }

    if not result.ok:
        item['error'] = str(result.error)
        item['error_type'] = type(result.error).__name__
        return item

    journey = result.journey
    item.update({
        'leave_by': journey.first_departure.isoformat(),
        'arrival': journey.final_arrival.isoformat(),
        'duration_minutes': int(journey.duration.total_seconds() // 60),
        'legs': [
            {
                'line': leg.line.name if not leg.is_walk else 'Walk',
                'origin': leg.origin.name,
                'destination': leg.destination.name,
                'departure': leg.departure.isoformat(),
                'arrival': leg.arrival.isoformat()
            }
            for leg in journey.legs
        ]
    })
    return item


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {'statusCode': status_code, 'body': json.dumps(body, ensure_ascii=False)}


def plan_weekly_commute(event: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Plan one commute per day to the first saved class.

    Args:
        event: Optional settings overriding the environment

    Returns:
        Response dict with statusCode and a JSON body
    """
    settings = load_settings(event)
    setup_logging(settings['log_level'])
    logger = logging.getLogger(__name__)

    start_time = time.time()

    if not settings['home_station_id']:
        logger.error("Home station is not configured")
        return _response(400, {'message': 'Home station is not configured'})
    if not settings['saved_group_urls']:
        logger.error("No saved groups configured")
        return _response(400, {'message': 'No saved groups configured'})
    if not settings['saved_courses']:
        logger.warning("No saved courses configured, no commutes will be planned")

    logger.info(
        f"Planning {settings['days_ahead']}-day commute from {settings['home_station_id']} "
        f"for {len(settings['saved_group_urls'])} groups"
    )

    try:
        scraper = OstfaliaScheduleScraper(
            base_url=settings['schedule_base_url'],
            cache=ScheduleCache(cache_dir=settings['cache_dir']),
            timeout=settings['timeout_seconds']
        )
        transit_client = HafasTransitClient(
            base_url=settings['transit_base_url'],
            fetcher=RetryingFetcher(timeout=settings['timeout_seconds'])
        )
        resolver = JourneyResolver(transit_client)

        # Fetch schedules; failing groups are reported, the rest still count
        fetch_results = scraper.fetch_schedules(settings['saved_group_urls'])
        group_errors = [
            {'group': r.schedule_id, 'error': str(r.error), 'error_type': type(r.error).__name__}
            for r in fetch_results if not r.ok
        ]
        if len(group_errors) == len(fetch_results):
            logger.error("Failed to fetch any saved schedule")
            return _response(500, {
                'message': 'Failed to fetch schedules',
                'errors': group_errors,
                'duration_seconds': round(time.time() - start_time, 2)
            })

        courses = [course for r in fetch_results for course in r.courses]
        commutes = resolver.plan_commutes(
            settings['home_station_id'],
            courses,
            saved_course_names=settings['saved_courses'],
            days=settings['days_ahead']
        )

        duration = time.time() - start_time
        resolved = sum(1 for c in commutes if c.ok)
        logger.info(
            f"Commute planning completed: {resolved}/{len(commutes)} days resolved "
            f"in {duration:.2f}s"
        )

        return _response(200, {
            'message': 'Commute planning completed',
            'home_address': settings['home_address'],
            'statistics': {
                'courses_fetched': len(courses),
                'days_planned': len(commutes),
                'days_resolved': resolved,
                'duration_seconds': round(duration, 2)
            },
            'commutes': [serialize_commute(c) for c in commutes],
            'errors': group_errors
        })

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Commute planning failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Commute planning failed',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })


def main() -> None:
    """Console entry point: print the commute plan as JSON."""
    response = plan_weekly_commute({})
    print(json.dumps(json.loads(response['body']), indent=2, ensure_ascii=False))
    sys.exit(0 if response['statusCode'] == 200 else 1)


if __name__ == '__main__':
    main()
