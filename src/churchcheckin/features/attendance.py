"""Attendance totals and the recent check-ins feed.

Everything here is recomputed from the latest fetched data each time it's
displayed. Counts come from the server's service totals, never from local
increments, so all stations show the same numbers.
"""

import dataclasses
import datetime
from typing import Iterable, Optional

from churchcheckin import model
from churchcheckin.features import security


DEFAULT_LOCATION = "Main Campus"
RECENT_LIMIT = 20


def format_time(timestamp: datetime.datetime) -> str:
    """Format a timestamp as a short clock time, e.g., 9:05 AM."""
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone()
    hour = timestamp.hour % 12 or 12
    meridiem = "AM" if timestamp.hour < 12 else "PM"
    return f"{hour}:{timestamp.minute:02d} {meridiem}"


@dataclasses.dataclass
class DisplayService:
    """A service with its current check-in count."""

    service_id: str
    name: str
    time: str
    location: str
    checked_in: int
    """Adult and child check-ins reported by the server."""
    expected: int
    is_active: bool
    """True if check-in is open."""

    @classmethod
    def from_service(cls, service: model.Service, expected: int) -> "DisplayService":
        return cls(
            service_id=service.service_id,
            name=service.name,
            time=service.start_time,
            location=service.location or DEFAULT_LOCATION,
            checked_in=checked_in_count(service),
            expected=expected,
            is_active=service.is_check_in_open,
        )

    @property
    def fraction(self) -> float:
        """Progress toward expected attendance, 0.0 to 1.0."""
        if self.expected <= 0:
            return 1.0 if self.checked_in else 0.0
        return min(self.checked_in / self.expected, 1.0)


def checked_in_count(service: model.Service) -> int:
    """Adult plus child check-ins for a service."""
    return service.total_check_ins + service.total_child_check_ins


def display_services(
    services: Iterable[model.Service], expected: int
) -> list[DisplayService]:
    return [DisplayService.from_service(service, expected) for service in services]


def total_attendance(services: Iterable[model.Service]) -> int:
    """Total attendance across all of today's services."""
    return sum(checked_in_count(service) for service in services)


def default_service(services: list[model.Service]) -> Optional[model.Service]:
    """Service to preselect: the first open service, else the first service."""
    for service in services:
        if service.is_check_in_open:
            return service
    return services[0] if services else None


@dataclasses.dataclass
class RecentCheckIn:
    """An entry in the recent check-ins feed."""

    checkin_id: str
    name: str
    time: str
    service: str
    is_child: bool
    check_in_time: datetime.datetime
    security_code: Optional[str] = None
    """Only set for children."""

    @classmethod
    def from_checkin(cls, checkin: model.CheckIn, service_name: str) -> "RecentCheckIn":
        return cls(
            checkin_id=checkin.checkin_id,
            name=checkin.display_name,
            time=format_time(checkin.check_in_time),
            service=service_name,
            is_child=False,
            check_in_time=checkin.check_in_time,
        )

    @classmethod
    def from_child_checkin(
        cls, child: model.ChildCheckIn, service_name: str
    ) -> "RecentCheckIn":
        return cls(
            checkin_id=child.checkin_id,
            name=child.child_name,
            time=format_time(child.check_in_time),
            service=service_name,
            is_child=True,
            check_in_time=child.check_in_time,
            security_code=security.format_code(child.security_code),
        )


def _sort_key(entry: RecentCheckIn) -> float:
    """Naive timestamps are assumed to be local time."""
    return entry.check_in_time.timestamp()


def recent_check_ins(
    checkins: Iterable[model.CheckIn],
    child_checkins: Iterable[model.ChildCheckIn],
    service_name: str = "Service",
    limit: int = RECENT_LIMIT,
) -> list[RecentCheckIn]:
    """Merge adult and child check-ins, most recent first."""
    entries = [RecentCheckIn.from_checkin(c, service_name) for c in checkins]
    entries.extend(
        RecentCheckIn.from_child_checkin(c, service_name) for c in child_checkins
    )
    entries.sort(key=_sort_key, reverse=True)
    return entries[:limit]
