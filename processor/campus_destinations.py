"""Mapping of room codes and campus names to transit station IDs."""
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence


@dataclass(frozen=True)
class CampusDestination:
    """Station serving a campus."""
    station_id: str
    name: str


@dataclass(frozen=True)
class CampusRule:
    """Routes rooms matching the predicate to a campus station."""
    matches: Callable[[str], bool]
    destination: CampusDestination


SALZGITTER = CampusDestination("991604089", "Ostfalia Salzgitter")
SUDERBURG = CampusDestination("991604106", "Ostfalia Suderburg")
WF_EXER = CampusDestination("891011", "Ostfalia Am Exer")
WF_MAIN_CAMPUS = CampusDestination("891097", "Ostfalia Hauptcampus (Salzdahlumer Str.)")

# Checked in order against the upper-cased room code, first match wins.
DEFAULT_ROOM_RULES = (
    CampusRule(lambda room: room.startswith('SZ'), SALZGITTER),
    CampusRule(lambda room: room.startswith('SUD'), SUDERBURG),
    CampusRule(lambda room: 'EX' in room, WF_EXER),
)

CAMPUS_STATION_IDS: Dict[str, str] = {
    'wf-haupt': WF_MAIN_CAMPUS.station_id,
    'wf-exer': WF_EXER.station_id,
    'wolfenbuettel': WF_MAIN_CAMPUS.station_id,
    'salzgitter': SALZGITTER.station_id,
    'suderburg': SUDERBURG.station_id,
    'braunschweig': "8000049",  # Braunschweig Hbf
}


class CampusDestinationMap:
    """Ordered room-code rules with a main campus fallback."""

    def __init__(
        self,
        rules: Sequence[CampusRule] = DEFAULT_ROOM_RULES,
        default: CampusDestination = WF_MAIN_CAMPUS
    ):
        self.rules = tuple(rules)
        self.default = default

    def resolve(self, room: str) -> CampusDestination:
        """Return the destination for a room code such as "WF-EX-7/3"."""
        room_upper = (room or '').strip().upper()
        for rule in self.rules:
            if rule.matches(room_upper):
                return rule.destination
        return self.default


def campus_station_id(campus: str) -> Optional[str]:
    """Look up a campus name like "Salzgitter" or "wf-exer", None if unknown."""
    return CAMPUS_STATION_IDS.get(campus.strip().lower())
