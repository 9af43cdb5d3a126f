"""Departure boards for named campuses."""
import logging
from typing import List

from processor.campus_destinations import campus_station_id
from transit.departure_summary import summarize_departures
from transit.hafas_client import HafasTransitClient
from transit.models import SummarizedRoute

logger = logging.getLogger(__name__)


class UnknownCampusError(ValueError):
    """Campus name is not in the station table."""


def campus_departure_board(
    transit_client: HafasTransitClient,
    campus: str,
    duration: int = 60,
    max_per_route: int = 2
) -> List[SummarizedRoute]:
    """
    Fetch and summarize the next departures at a campus station.

    Args:
        transit_client: Routing API client
        campus: Campus name, e.g. "salzgitter" or "wf-exer"
        duration: Look-ahead window in minutes
        max_per_route: Departures kept per line and direction

    Returns:
        Summarized routes, soonest first; empty if nothing departs

    Raises:
        UnknownCampusError: If the campus name is unknown
    """
    station_id = campus_station_id(campus)
    if station_id is None:
        raise UnknownCampusError(f"Unknown campus '{campus}'")

    departures = transit_client.fetch_departures(station_id, duration)
    routes = summarize_departures(departures, max_per_route)
    logger.info(f"{len(departures)} departures at {campus} grouped into {len(routes)} routes")
    return routes
