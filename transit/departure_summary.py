"""Grouping of departure boards into per-route digests."""
from typing import Dict, List, Tuple

from transit.models import Departure, SummarizedRoute


def summarize_departures(departures: List[Departure], max_per_route: int) -> List[SummarizedRoute]:
    """
    Group departures by line and direction, keeping the next few of each.

    Departures are sorted by time before grouping, so routes come out in
    order of their soonest departure. A high-frequency line therefore cannot
    push a line that leaves in two minutes further down the list.

    Args:
        departures: Raw departures; entries without a time are ignored
        max_per_route: Maximum departures kept per (line, direction)

    Returns:
        List of SummarizedRoute objects, soonest route first
    """
    valid = sorted((d for d in departures if d.when), key=lambda d: d.when)

    routes: Dict[Tuple[str, str], SummarizedRoute] = {}
    for departure in valid:
        key = (departure.line.name, departure.direction)
        route = routes.get(key)
        if route is None:
            route = SummarizedRoute(line_name=departure.line.name, direction=departure.direction)
            routes[key] = route

        if len(route.departures) < max_per_route:
            route.departures.append(departure)

    return list(routes.values())
