"""Client for the public HAFAS REST API (v6.db.transport.rest).

API Documentation: https://v6.db.transport.rest/api.html
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from scraper.retrying_fetcher import RetryingFetcher
from transit.models import Departure, Journey, Location

logger = logging.getLogger(__name__)

T = TypeVar('T')


class TransitApiError(Exception):
    """Routing API call failed or returned an unexpected payload."""

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: Optional[int] = None,
        body: str = ''
    ):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        detail = f" (status {status_code})" if status_code is not None else ''
        excerpt = f": {body[:200]}" if body else ''
        super().__init__(f"{operation} failed{detail}: {message}{excerpt}")


class HafasTransitClient:
    """Location search, departure boards and journey planning."""

    BASE_URL = "https://v6.db.transport.rest"
    USABLE_LOCATION_TYPES = frozenset({'station', 'stop'})

    def __init__(
        self,
        base_url: str = BASE_URL,
        fetcher: Optional[RetryingFetcher] = None,
        timeout: int = 30
    ):
        """
        Initialize the transit client.

        Args:
            base_url: Root URL of the routing API
            fetcher: HTTP fetcher (default: RetryingFetcher with the project user agent)
            timeout: HTTP request timeout in seconds when no fetcher is given
        """
        self.base_url = base_url.rstrip('/')
        self.fetcher = fetcher or RetryingFetcher(timeout=timeout)

    def _get_json(self, operation: str, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"

        try:
            response = self.fetcher.fetch(url, params=params)
        except requests.RequestException as e:
            last_error = getattr(e, 'last_error', None)
            status_code = getattr(e, 'status_code', getattr(last_error, 'status_code', None))
            body = getattr(e, 'body', '')
            raise TransitApiError(operation, str(e), status_code, body) from e

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Could not decode {operation} response from {url}: {e}")
            raise TransitApiError(
                operation, f"invalid JSON: {e}", response.status_code, response.text
            ) from e

    def _records(self, operation: str, payload: Any, key: Optional[str] = None) -> List[Any]:
        try:
            records = payload[key] if key else payload
        except (KeyError, TypeError) as e:
            raise TransitApiError(
                operation, f"unexpected payload shape: {e!r}", body=str(payload)
            ) from e
        if not isinstance(records, list):
            raise TransitApiError(
                operation,
                f"unexpected payload shape: expected a list, got {type(records).__name__}",
                body=str(payload)
            )
        return records

    def _map_each(self, operation: str, records: List[Any], mapper: Callable[[Any], T]) -> List[T]:
        mapped = []
        for record in records:
            try:
                mapped.append(mapper(record))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed {operation} record: {e!r}")
        return mapped

    def search_locations(self, query: str, results: int = 5) -> List[Location]:
        """
        Search for transit stops matching a text query.

        Address and point-of-interest matches are dropped, only stations and
        stops are returned.

        Args:
            query: Free text, e.g. a street address or station name
            results: Maximum number of raw results requested

        Returns:
            List of Location objects, possibly empty
        """
        payload = self._get_json(
            'search_locations', '/locations', {'query': query, 'results': results}
        )
        locations = self._map_each(
            'search_locations', self._records('search_locations', payload), Location.from_dict
        )

        filtered = [loc for loc in locations if loc.type in self.USABLE_LOCATION_TYPES]
        logger.info(f"Location search '{query}' matched {len(filtered)} stops")
        return filtered

    def fetch_departures(self, station_id: str, duration: int = 60, results: int = 15) -> List[Departure]:
        """
        Fetch the departure board of a station.

        Args:
            station_id: Station ID
            duration: Look-ahead window in minutes
            results: Maximum number of departures

        Returns:
            List of Departure objects in API order; malformed records are skipped
        """
        payload = self._get_json(
            'fetch_departures',
            f"/stops/{station_id}/departures",
            {'duration': duration, 'results': results}
        )
        records = self._records('fetch_departures', payload, 'departures')
        return self._map_each('fetch_departures', records, Departure.from_dict)

    def fetch_journeys(self, from_id: str, to_id: str, results: int = 3) -> List[Journey]:
        """
        Plan the soonest trips between two stations.

        Returns:
            List of Journey objects, ascending by arrival
        """
        return self._journeys('fetch_journeys', {'from': from_id, 'to': to_id, 'results': results})

    def fetch_journeys_by_arrival(
        self,
        from_id: str,
        to_id: str,
        arrival: datetime,
        results: int = 3
    ) -> List[Journey]:
        """
        Plan trips that should arrive no later than a deadline.

        The deadline is a best-effort constraint of the upstream service.

        Args:
            from_id: Origin station ID
            to_id: Destination station ID
            arrival: Timezone-aware arrival deadline
            results: Maximum number of journeys

        Returns:
            List of Journey objects, ascending by arrival
        """
        params = {
            'from': from_id,
            'to': to_id,
            'arrival': arrival.isoformat(),
            'results': results
        }
        return self._journeys('fetch_journeys_by_arrival', params)

    def _journeys(self, operation: str, params: Dict[str, Any]) -> List[Journey]:
        payload = self._get_json(operation, '/journeys', params)
        records = self._records(operation, payload, 'journeys')
        journeys = self._map_each(operation, records, Journey.from_dict)
        logger.info(f"{operation} {params['from']} -> {params['to']}: {len(journeys)} journeys")
        return journeys
