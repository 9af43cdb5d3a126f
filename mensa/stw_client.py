"""Client for the Studentenwerk Ost-Niedersachsen mensa API."""
import logging
from datetime import date
from typing import List, Optional

from scraper.retrying_fetcher import RetryingFetcher, UnexpectedStatusError
from mensa.models import Announcement, Meal, MensaLocation, Menu

logger = logging.getLogger(__name__)


class MensaClient:
    """Mensa locations and daily menus."""

    BASE_URL = "https://sls.api.stw-on.de/v1"

    def __init__(
        self,
        base_url: str = BASE_URL,
        fetcher: Optional[RetryingFetcher] = None,
        timeout: int = 10
    ):
        self.base_url = base_url.rstrip('/')
        self.fetcher = fetcher or RetryingFetcher(timeout=timeout, user_agent="faliactl/1.0")

    def fetch_locations(self) -> List[MensaLocation]:
        """
        Fetch mensa locations that publish opening hours.

        Returns:
            List of MensaLocation objects
        """
        response = self.fetcher.fetch(f"{self.base_url}/location")
        locations = [MensaLocation.from_dict(item) for item in response.json()]
        return [loc for loc in locations if loc.opening_hours]

    def fetch_menu(self, location_id: int, day: date) -> Optional[Menu]:
        """
        Fetch the menu of a location for one day.

        Args:
            location_id: Mensa location ID
            day: Day of the menu

        Returns:
            Menu, or None if no menu is published for that day
        """
        url = f"{self.base_url}/locations/{location_id}/menu/{day:%Y-%m-%d}"
        try:
            response = self.fetcher.fetch(url)
        except UnexpectedStatusError as e:
            if e.status_code == 404:
                logger.info(f"No menu for location {location_id} on {day}")
                return None
            raise

        data = response.json()
        return Menu(
            meals=[Meal.from_dict(item) for item in data.get('meals') or []],
            announcements=[Announcement.from_dict(item) for item in data.get('announcements') or []]
        )
