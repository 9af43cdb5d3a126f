"""Data models for transit routing responses."""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp from the routing API, None if unset."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


def _required_timestamp(data: Dict[str, Any], key: str, planned_key: str) -> datetime:
    # Cancelled stopovers only carry the planned time
    value = parse_timestamp(data.get(key) or data.get(planned_key))
    if value is None:
        raise ValueError(f"leg has no {key} time")
    return value


@dataclass(frozen=True)
class Location:
    """Place returned by a location search."""
    type: str
    id: str
    name: str
    latitude: float = 0.0
    longitude: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Location':
        coords = data.get('location') or {}
        return cls(
            type=data.get('type', ''),
            id=str(data.get('id') or ''),
            name=data.get('name') or '',
            latitude=float(coords.get('latitude') or 0.0),
            longitude=float(coords.get('longitude') or 0.0)
        )


@dataclass(frozen=True)
class Line:
    """Bus or train line."""
    name: str
    product: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Line':
        return cls(name=data.get('name') or '', product=data.get('productName') or '')


@dataclass(frozen=True)
class Departure:
    """Single vehicle leaving a station."""
    when: Optional[datetime]
    direction: str
    line: Line
    delay: Optional[int] = None  # seconds
    platform: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Departure':
        return cls(
            when=parse_timestamp(data.get('when')),
            direction=data.get('direction') or '',
            line=Line.from_dict(data.get('line') or {}),
            delay=data.get('delay'),
            platform=data.get('platform')
        )


@dataclass(frozen=True)
class Leg:
    """Continuous part of a journey: one ride, or a walk when line is None."""
    origin: Location
    destination: Location
    departure: datetime
    arrival: datetime
    line: Optional[Line] = None
    walking: bool = False

    @property
    def is_walk(self) -> bool:
        return self.walking or self.line is None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Leg':
        line = data.get('line')
        return cls(
            origin=Location.from_dict(data.get('origin') or {}),
            destination=Location.from_dict(data.get('destination') or {}),
            departure=_required_timestamp(data, 'departure', 'plannedDeparture'),
            arrival=_required_timestamp(data, 'arrival', 'plannedArrival'),
            line=Line.from_dict(line) if line else None,
            walking=bool(data.get('walking', False))
        )


@dataclass(frozen=True)
class Journey:
    """Start-to-finish trip, possibly with transfers."""
    legs: List[Leg] = field(default_factory=list)

    @property
    def first_departure(self) -> datetime:
        return self.legs[0].departure

    @property
    def final_arrival(self) -> datetime:
        return self.legs[-1].arrival

    @property
    def duration(self) -> timedelta:
        return self.final_arrival - self.first_departure

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Journey':
        legs = [Leg.from_dict(leg) for leg in data['legs']]
        if not legs:
            raise ValueError("journey has no legs")
        return cls(legs=legs)


@dataclass(frozen=True)
class SummarizedRoute:
    """Next few departures of one line towards one direction."""
    line_name: str
    direction: str
    departures: List[Departure] = field(default_factory=list)
