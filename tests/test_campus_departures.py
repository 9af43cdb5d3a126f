"""Unit tests for campus departure boards."""
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from processor.campus_departures import UnknownCampusError, campus_departure_board
from transit.models import Departure, Line

NOW = datetime(2026, 2, 25, 8, 0, tzinfo=timezone.utc)


class TestCampusDepartureBoard:
    """Test cases for campus_departure_board."""

    def test_fetches_and_summarizes(self):
        """Test departures at the campus station are grouped per route."""
        client = Mock()
        client.fetch_departures.return_value = [
            Departure(when=NOW + timedelta(minutes=m), direction="Hbf", line=Line(name="Bus 420"))
            for m in (5, 10, 15)
        ]

        routes = campus_departure_board(client, "Salzgitter", duration=30, max_per_route=2)

        client.fetch_departures.assert_called_once_with("991604089", 30)
        assert len(routes) == 1
        assert len(routes[0].departures) == 2

    def test_no_departures(self):
        """Test an empty board yields no routes."""
        client = Mock()
        client.fetch_departures.return_value = []

        assert campus_departure_board(client, "wf-haupt") == []

    def test_unknown_campus(self):
        """Test an unknown campus is rejected before any API call."""
        client = Mock()

        with pytest.raises(UnknownCampusError):
            campus_departure_board(client, "atlantis")

        client.fetch_departures.assert_not_called()
