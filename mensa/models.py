"""Data models for the Studentenwerk mensa API."""
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class MensaLocation:
    """Cafeteria with its city and opening hours."""
    id: int
    name: str
    city: str
    opening_hours: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MensaLocation':
        return cls(
            id=int(data['id']),
            name=data.get('name') or '',
            city=(data.get('address') or {}).get('city') or '',
            opening_hours=list(data.get('opening_hours') or [])
        )


@dataclass(frozen=True)
class Meal:
    """Single dish on a menu."""
    id: int
    name: str
    date: str
    lane: str
    student_price: str
    employee_price: str
    guest_price: str
    categories: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Meal':
        price = data.get('price') or {}
        tags = data.get('tags') or {}
        return cls(
            id=int(data.get('id') or 0),
            name=data.get('name') or '',
            date=data.get('date') or '',
            lane=(data.get('lane') or {}).get('name') or '',
            student_price=price.get('student') or '',
            employee_price=price.get('employee') or '',
            guest_price=price.get('guest') or '',
            categories=[c.get('name', '') for c in tags.get('categories') or []]
        )


@dataclass(frozen=True)
class Announcement:
    """Notice such as a closure."""
    text: str
    start_date: str
    end_date: str
    closed: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Announcement':
        return cls(
            text=data.get('text') or '',
            start_date=data.get('start_date') or '',
            end_date=data.get('end_date') or '',
            closed=bool(data.get('closed', False))
        )


@dataclass(frozen=True)
class Menu:
    """Meals and announcements of one location on one day."""
    meals: List[Meal] = field(default_factory=list)
    announcements: List[Announcement] = field(default_factory=list)

    @property
    def closed(self) -> bool:
        return any(a.closed for a in self.announcements)
